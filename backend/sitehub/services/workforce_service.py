import logging
from collections import OrderedDict
from datetime import date, timedelta

from ..errors import AppError
from ..utils import month_bounds, parse_date
from .access_guard import require_restricted_org_id, scope_organization_id

logger = logging.getLogger(__name__)

MANAGER_ROLES = ('site_manager', 'supervisor')
DEFAULT_RANGE_DAYS = 30


class WorkforceService:
    """Read models for the mobile (worker) and partner surfaces."""

    def __init__(self, site_repo, assignment_repo, report_repo):
        self.site_repo = site_repo
        self.assignment_repo = assignment_repo
        self.report_repo = report_repo

    def current_site(self, auth):
        """
        The caller's most recent active assignment with the site's managers.

        Returns:
            (assignment, managers) or (None, []) when unassigned
        """
        assignments = self.assignment_repo.get_active_for_user(auth.user_id)
        if not assignments:
            return None, []
        assignment = assignments[0]
        managers = [
            a for a in self.assignment_repo.get_active_for_site(assignment.site_id)
            if a.role in MANAGER_ROLES
        ]
        return assignment, managers

    def my_work_logs(self, auth, year, month):
        try:
            start, end = month_bounds(int(year), int(month))
        except (TypeError, ValueError):
            raise AppError.validation('올바르지 않은 연월입니다.')
        rows = self.report_repo.get_worker_lines(
            start, end, worker_id=auth.user_id, worker_name=auth.full_name
        )
        days = OrderedDict()
        for report, line in rows:
            key = report.work_date.isoformat()
            day = days.setdefault(key, {'work_date': key, 'labor_hours': 0.0, 'sites': [], 'report_ids': []})
            day['labor_hours'] += float(line.labor_hours or 0)
            site_name = report.site.name if report.site else None
            if site_name and site_name not in day['sites']:
                day['sites'].append(site_name)
            day['report_ids'].append(str(report.id))
        logs = list(days.values())
        return {
            'year': start.year,
            'month': start.month,
            'work_days': len(logs),
            'total_labor_hours': round(sum(d['labor_hours'] for d in logs), 2),
            'logs': logs,
        }

    def labor_by_site(self, auth, date_from=None, date_to=None, organization_id=None):
        """
        Total 공수, distinct workers and report count per site of one organization.

        Restricted callers always get their own organization.
        """
        if auth.is_restricted:
            organization_id = require_restricted_org_id(auth)
        else:
            organization_id = scope_organization_id(auth, organization_id)
            if not organization_id:
                raise AppError.validation('조직을 선택해주세요.')
        try:
            end = parse_date(date_to, 'date_to') or date.today()
            start = parse_date(date_from, 'date_from') or end - timedelta(days=DEFAULT_RANGE_DAYS - 1)
        except ValueError as e:
            raise AppError.validation(str(e))
        if end < start:
            raise AppError.validation('종료일은 시작일 이후여야 합니다.')

        sites = self.site_repo.get_for_organization(organization_id)
        summary = OrderedDict(
            (str(site.id), {
                'site_id': str(site.id),
                'site_name': site.name,
                'status': site.status,
                'total_labor_hours': 0.0,
                'worker_count': 0,
                'report_count': 0,
                '_workers': set(),
            })
            for site in sites
        )
        if summary:
            reports = self.report_repo.get_reports_in_range(
                start, end, site_ids=[site.id for site in sites], exclude_statuses=['rejected']
            )
            for report in reports:
                item = summary.get(str(report.site_id))
                if item is None:
                    continue
                item['report_count'] += 1
                for line in report.workers:
                    item['total_labor_hours'] += float(line.labor_hours or 0)
                    item['_workers'].add(str(line.worker_id) if line.worker_id else line.worker_name)

        result = []
        for item in summary.values():
            item['worker_count'] = len(item.pop('_workers'))
            item['total_labor_hours'] = round(item['total_labor_hours'], 2)
            result.append(item)
        return {
            'organization_id': str(organization_id),
            'date_from': start.isoformat(),
            'date_to': end.isoformat(),
            'sites': result,
        }
