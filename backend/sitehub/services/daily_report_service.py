import logging

from ..errors import AccessMessages, AdminErrors, AppError
from ..models.daily_reports import DailyReport, REPORT_STATUSES
from ..utils import parse_date, utc_now
from .access_guard import assert_org_access, coerce_uuid, deny
from .validation import validate_labor_hours

logger = logging.getLogger(__name__)

REPORT_FIELDS = (
    'member_name', 'process_type', 'component_name', 'work_process', 'work_section',
    'npc1000_incoming', 'npc1000_used', 'npc1000_remaining', 'issues',
)
EDITABLE_STATUSES = ('draft', 'rejected')
AUTHOR_ROLES = ('worker', 'site_manager')


class DailyReportService:
    """Daily work report (작업일지) lifecycle: draft, submitted, approved or rejected."""

    def __init__(self, report_repo, assignment_repo, guard, notifier, audit_repo):
        self.report_repo = report_repo
        self.assignment_repo = assignment_repo
        self.guard = guard
        self.notifier = notifier
        self.audit_repo = audit_repo

    def _is_assigned(self, auth, site_id) -> bool:
        return self.assignment_repo.get_active(site_id, auth.user_id) is not None

    def _site_for_write(self, auth, site_id):
        site = self.guard.ensure_site_accessible(auth, site_id)
        if auth.is_admin:
            return site
        if auth.role not in AUTHOR_ROLES or not self._is_assigned(auth, site.id):
            raise deny('daily_report', AccessMessages.SITE)
        return site

    def _ensure_can_view(self, auth, report):
        if auth.is_admin or auth.is_restricted:
            assert_org_access(auth, report.site.organization_id, AccessMessages.REPORT, resource='daily_report')
            return
        if str(report.created_by) == str(auth.user_id) or self._is_assigned(auth, report.site_id):
            return
        raise deny('daily_report', AccessMessages.REPORT)

    def _ensure_can_edit(self, auth, report):
        if auth.is_admin:
            assert_org_access(auth, report.site.organization_id, AccessMessages.REPORT, resource='daily_report')
        elif str(report.created_by) != str(auth.user_id):
            raise deny('daily_report', AccessMessages.REPORT)
        if report.status not in EDITABLE_STATUSES:
            raise AppError.conflict('제출된 작업일지는 수정할 수 없습니다.')

    def _load(self, report_id) -> DailyReport:
        report = self.report_repo.get_with_workers(coerce_uuid(report_id))
        if not report:
            raise AppError.not_found('작업일지를 찾을 수 없습니다.')
        return report

    @staticmethod
    def normalize_workers(workers) -> list:
        """
        Validate worker lines; blank or zero lines are dropped.

        Returns:
            List of dicts ready for DailyReportWorker(**line)
        """
        lines = []
        for entry in workers or []:
            name = (entry.get('worker_name') or '').strip()
            labor = entry.get('labor_hours')
            if labor in (None, '') or (not name and not entry.get('worker_id')):
                continue
            try:
                labor_value = float(labor)
            except (TypeError, ValueError):
                raise AppError.validation('공수는 숫자여야 합니다.')
            if labor_value == 0:
                continue
            result = validate_labor_hours(labor_value)
            if not result['is_valid']:
                raise AppError.validation(f"{name or '작업자'}: {result['error']}")
            if not name:
                raise AppError.validation('작업자 이름은 필수입니다.')
            lines.append({
                'worker_name': name,
                'labor_hours': result['labor_hours'],
                'worker_id': coerce_uuid(entry.get('worker_id')),
            })
        return lines

    @staticmethod
    def _report_fields(data: dict) -> dict:
        return {key: data[key] for key in REPORT_FIELDS if key in data}

    def save_report(self, auth, data: dict):
        """
        Create the caller's report for (site, work_date), or update it when it exists.

        Returns:
            (report, created) tuple
        """
        if not data.get('site_id') or not data.get('work_date'):
            raise AppError.validation(AdminErrors.REQUIRED_FIELDS)
        try:
            work_date = parse_date(data['work_date'], 'work_date')
        except ValueError as e:
            raise AppError.validation(str(e))

        site = self._site_for_write(auth, data['site_id'])
        workers = self.normalize_workers(data.get('workers'))
        fields = self._report_fields(data)

        report = self.report_repo.get_for_author(site.id, work_date, auth.user_id)
        created = report is None
        if created:
            fields.setdefault('member_name', auth.full_name)
            report = DailyReport(
                site_id=site.id,
                work_date=work_date,
                created_by=auth.user_id,
                status='draft',
                **fields
            )
            self.report_repo.add(report)
        else:
            if report.status not in EDITABLE_STATUSES:
                raise AppError.conflict('제출된 작업일지는 수정할 수 없습니다.')
            for key, value in fields.items():
                setattr(report, key, value)
            report.status = 'draft'

        if 'workers' in data or created:
            self.report_repo.replace_workers(report, workers)
        else:
            self.report_repo.commit()
        return report, created

    def update_report(self, auth, report_id, data: dict):
        report = self._load(report_id)
        self._ensure_can_edit(auth, report)
        for key, value in self._report_fields(data).items():
            setattr(report, key, value)
        report.status = 'draft'
        if 'workers' in data:
            self.report_repo.replace_workers(report, self.normalize_workers(data.get('workers')))
        else:
            self.report_repo.commit()
        return report

    def submit_report(self, auth, report_id):
        report = self._load(report_id)
        if str(report.created_by) != str(auth.user_id) and not auth.is_admin:
            raise deny('daily_report', AccessMessages.REPORT)
        if auth.is_admin:
            assert_org_access(auth, report.site.organization_id, AccessMessages.REPORT, resource='daily_report')
        if report.status != 'draft':
            raise AppError.conflict('임시저장 상태의 작업일지만 제출할 수 있습니다.')
        if not report.workers:
            raise AppError.validation('작업자 정보가 없는 작업일지는 제출할 수 없습니다.')

        report.status = 'submitted'
        report.submitted_at = utc_now()
        self.report_repo.commit()
        self.notifier.report_submitted(report, report.site.name, auth.full_name or '작업자')
        return report

    def process_report(self, auth, report_id, approve: bool, comments: str = None):
        report = self._load(report_id)
        if auth.is_admin:
            assert_org_access(auth, report.site.organization_id, AccessMessages.REPORT, resource='daily_report')
        else:
            assignment = self.assignment_repo.get_active(report.site_id, auth.user_id)
            if not assignment or assignment.role not in ('site_manager', 'supervisor'):
                raise deny('daily_report', AccessMessages.REPORT)
        if report.status != 'submitted':
            raise AppError.conflict('제출된 작업일지만 승인 또는 반려할 수 있습니다.')
        if not approve and not (comments or '').strip():
            raise AppError.validation('반려 사유를 입력해주세요.')

        report.status = 'approved' if approve else 'rejected'
        report.approved_by = auth.user_id
        report.approved_at = utc_now()
        if comments:
            report.notes = comments.strip()
        self.report_repo.commit()

        self.audit_repo.log_event(
            'APPROVE' if approve else 'REJECT', 'DAILY_REPORT', report.id,
            actor_id=auth.user_id,
            organization_id=report.site.organization_id,
            site_id=report.site_id,
        )
        self.notifier.report_processed(report, approve, comments)
        return report

    def visible_site_ids(self, auth):
        """None when every site is visible, otherwise the list of visible site ids."""
        if auth.is_admin or auth.is_restricted:
            return self.guard.accessible_site_ids(auth)
        return self.assignment_repo.get_site_ids_for_user(auth.user_id)

    def list_reports(self, auth, page=1, per_page=20, site_id=None, status=None,
                     start_date=None, end_date=None, mine=False):
        if status and status not in REPORT_STATUSES:
            raise AppError.validation('올바르지 않은 작업일지 상태입니다.')
        site_ids = self.visible_site_ids(auth)
        site_id = coerce_uuid(site_id)
        if site_id and site_ids is not None and str(site_id) not in {str(s) for s in site_ids}:
            raise deny('daily_report', AccessMessages.SITE)
        try:
            start_date = parse_date(start_date, 'start_date')
            end_date = parse_date(end_date, 'end_date')
        except ValueError as e:
            raise AppError.validation(str(e))
        return self.report_repo.search(
            page=page,
            per_page=per_page,
            site_ids=site_ids,
            site_id=site_id,
            status=status,
            start_date=start_date,
            end_date=end_date,
            created_by=auth.user_id if mine else None,
        )

    def get_report(self, auth, report_id):
        report = self._load(report_id)
        self._ensure_can_view(auth, report)
        return report

    def delete_report(self, auth, report_id):
        report = self._load(report_id)
        if not auth.is_admin:
            raise deny('daily_report', AccessMessages.REPORT)
        organization_id = report.site.organization_id
        assert_org_access(auth, organization_id, AccessMessages.REPORT, resource='daily_report')
        report_id, work_date = report.id, report.work_date
        self.report_repo.delete(report_id)
        self.audit_repo.log_event(
            'DELETE', 'DAILY_REPORT', report_id,
            actor_id=auth.user_id,
            organization_id=organization_id,
            metadata={'work_date': work_date.isoformat()},
        )
        return True
