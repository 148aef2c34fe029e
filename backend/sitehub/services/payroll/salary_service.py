import logging
import time
from collections import OrderedDict
from datetime import date

from sqlalchemy.exc import IntegrityError

from ...errors import AccessMessages, AdminErrors, AppError, from_integrity_error
from ...models.payroll import RECORD_STATUSES, RULE_TYPES
from ...observability import sitehub_metrics
from ...utils import month_bounds, parse_date, utc_now
from ..access_guard import coerce_uuid, deny
from .salary_calculator import (
    HOURS_PER_LABOR_DAY,
    aggregate_worker_days,
    calculate_daily_pay,
    find_rule,
    role_daily_rate,
    won,
)

logger = logging.getLogger(__name__)

NO_PAYROLL_DATA = '계산할 급여 데이터가 없습니다.'
SUMMARY_ROLES = ('worker', 'site_manager', 'customer_manager')


def resolve_line_workers(lines, profile_repo):
    """
    Map report worker lines to profiles.

    Lines linked by ``worker_id`` win; unlinked lines fall back to an exact
    ``full_name`` match.

    Args:
        lines: Iterable of DailyReportWorker rows
        profile_repo: ProfileRepository

    Returns:
        Dict of line id -> Profile for every line that resolved
    """
    lines = list(lines)
    by_id = {
        str(p.id): p
        for p in profile_repo.get_by_ids(list({line.worker_id for line in lines if line.worker_id}))
    }
    names = list({line.worker_name for line in lines if not line.worker_id and line.worker_name})
    by_name = {}
    for profile in profile_repo.get_by_full_names(names):
        by_name.setdefault(profile.full_name, profile)

    resolved = {}
    for line in lines:
        profile = by_id.get(str(line.worker_id)) if line.worker_id else by_name.get(line.worker_name)
        if profile is not None:
            resolved[line.id] = profile
    return resolved


class SalaryService:
    """Salary rules, daily salary calculation from work reports, records and stats."""

    def __init__(self, rule_repo, record_repo, report_repo, profile_repo, guard, audit_repo):
        self.rule_repo = rule_repo
        self.record_repo = record_repo
        self.report_repo = report_repo
        self.profile_repo = profile_repo
        self.guard = guard
        self.audit_repo = audit_repo

    # Rules

    def list_rules(self, auth, site_id=None, active_only=False):
        self.guard.ensure_site_in_scope(auth, site_id)
        return self.rule_repo.list_rules(
            site_id=coerce_uuid(site_id),
            site_ids=self.guard.accessible_site_ids(auth),
            active_only=active_only,
        )

    def _ensure_rule_writable(self, auth, site_id):
        if not auth.is_restricted:
            return
        if not site_id:
            raise deny('salary_rule', AccessMessages.SALARY)
        self.guard.ensure_site_accessible(auth, site_id)

    def upsert_rule(self, auth, data: dict):
        name = (data.get('rule_name') or '').strip()
        rule_type = data.get('rule_type')
        if not name or not rule_type:
            raise AppError.validation(AdminErrors.REQUIRED_FIELDS)
        if rule_type not in RULE_TYPES:
            raise AppError.validation('올바르지 않은 규칙 유형입니다.')
        try:
            base_amount = float(data.get('base_amount') or 0)
            multiplier = float(data['multiplier']) if data.get('multiplier') not in (None, '') else None
        except (TypeError, ValueError):
            raise AppError.validation('금액은 숫자여야 합니다.')
        if base_amount < 0:
            raise AppError.validation('기본 금액은 0 이상이어야 합니다.')

        site_id = coerce_uuid(data.get('site_id'))
        self._ensure_rule_writable(auth, site_id)
        payload = {
            'rule_name': name,
            'rule_type': rule_type,
            'base_amount': base_amount,
            'multiplier': multiplier,
            'conditions': data.get('conditions'),
            'site_id': site_id,
            'role': data.get('role') or None,
            'is_active': bool(data.get('is_active', True)),
        }

        try:
            if data.get('id'):
                rule = self.rule_repo.get_by_id(coerce_uuid(data['id']))
                if not rule:
                    raise AppError.not_found('급여 규칙을 찾을 수 없습니다.')
                self._ensure_rule_writable(auth, rule.site_id)
                rule = self.rule_repo.update(rule.id, **payload)
                event_type = 'UPDATE'
            else:
                rule = self.rule_repo.create(**payload)
                event_type = 'CREATE'
        except IntegrityError as e:
            raise from_integrity_error(e)

        self.audit_repo.log_event(
            event_type, 'SALARY_RULE', rule.id,
            actor_id=auth.user_id,
            organization_id=auth.restricted_org_id,
            site_id=rule.site_id,
            metadata={'rule_type': rule_type},
        )
        return rule

    def delete_rules(self, auth, rule_ids):
        ids = [coerce_uuid(rid) for rid in rule_ids or []]
        if not ids:
            raise AppError.validation('삭제할 규칙을 선택해주세요.')
        rules = self.rule_repo.get_by_ids(ids)
        if auth.is_restricted:
            if len(rules) != len({str(i) for i in ids}) or any(r.site_id is None for r in rules):
                raise deny('salary_rule', AccessMessages.SALARY)
            self.guard.ensure_sites_accessible(auth, [r.site_id for r in rules])
        try:
            count = self.rule_repo.delete_many([r.id for r in rules])
        except IntegrityError as e:
            raise from_integrity_error(e)
        self.audit_repo.log_event(
            'DELETE', 'SALARY_RULE',
            actor_id=auth.user_id,
            organization_id=auth.restricted_org_id,
            metadata={'rule_ids': [str(r.id) for r in rules]},
        )
        return count

    # Calculation

    @staticmethod
    def _date_range(date_from, date_to):
        try:
            start = parse_date(date_from, 'date_from') or date.today()
            end = parse_date(date_to, 'date_to') or start
        except ValueError as e:
            raise AppError.validation(str(e))
        if end < start:
            raise AppError.validation('종료일은 시작일 이후여야 합니다.')
        return start, end

    def calculate(self, auth, date_from=None, date_to=None, site_id=None, worker_id=None):
        """
        Recalculate daily salary records from work reports.

        ``site_id`` picks which worker-days are recalculated; their labor is
        still summed over every accessible site. Every 'calculated' report
        record in the scope is replaced. Labor already held by records this run
        keeps (approved, paid, manual or outside the site filter) is subtracted,
        so a worker-day is never paid twice.

        Returns:
            Dict with ``count``, ``message``, ``date_from`` and ``date_to``
        """
        started = time.perf_counter()
        start, end = self._date_range(date_from, date_to)
        self.guard.ensure_site_in_scope(auth, site_id)
        site_id = coerce_uuid(site_id)
        worker_id = coerce_uuid(worker_id)
        if worker_id:
            self.guard.ensure_user_accessible(auth, worker_id)

        site_ids = self.guard.accessible_site_ids(auth)
        result = {'date_from': start.isoformat(), 'date_to': end.isoformat()}
        if site_ids is not None and not site_ids:
            return dict(result, count=0, message=NO_PAYROLL_DATA)

        reports = self.report_repo.get_reports_in_range(
            start, end, site_ids=site_ids, exclude_statuses=['rejected']
        )
        lines = [(report, line) for report in reports for line in report.workers]
        workers = resolve_line_workers([line for _, line in lines], self.profile_repo)

        entries = []
        for report, line in lines:
            worker = workers.get(line.id)
            if worker is None:
                logger.debug('Skipping unmatched worker line %s on report %s', line.worker_name, report.id)
                continue
            if worker_id and str(worker.id) != str(worker_id):
                continue
            entries.append({
                'worker_id': worker.id,
                'worker_role': worker.role,
                'site_id': report.site_id,
                'work_date': report.work_date,
                'labor_hours': line.labor_hours,
                'in_scope': not site_id or str(report.site_id) == str(site_id),
            })
        # In-scope lines first so the kept site is one the caller asked for
        entries.sort(key=lambda e: not e['in_scope'])

        scope_site_ids = None if site_ids is None else {str(s) for s in site_ids}

        def replaced(record):
            return (
                record.status == 'calculated'
                and record.source == 'report'
                and (not site_id or str(record.site_id) == str(site_id))
                and (scope_site_ids is None or str(record.site_id) in scope_site_ids)
            )

        kept_labor = {}
        for record in self.record_repo.find(worker_id=worker_id, date_from=start, date_to=end):
            if not replaced(record):
                key = (str(record.worker_id), record.work_date)
                kept_labor[key] = kept_labor.get(key, 0.0) + float(record.labor_hours or 0)

        rules = self.rule_repo.list_rules(site_ids=site_ids, active_only=True)
        records = []
        for entry in aggregate_worker_days(entries):
            if not entry['in_scope']:
                continue
            labor = entry['labor_hours'] - kept_labor.get((str(entry['worker_id']), entry['work_date']), 0.0)
            if labor <= 0:
                continue
            daily_rule = find_rule(rules, 'daily_rate', entry['site_id'], entry['worker_role'])
            hourly_rule = find_rule(rules, 'hourly_rate', entry['site_id'], entry['worker_role'])
            overtime_rule = find_rule(rules, 'overtime_multiplier', entry['site_id'], match_role=False)
            pay = calculate_daily_pay(labor, daily_rule, hourly_rule, overtime_rule)
            records.append(dict(
                pay,
                worker_id=entry['worker_id'],
                site_id=entry['site_id'],
                work_date=entry['work_date'],
                status='calculated',
                source='report',
            ))

        count = self.record_repo.replace_calculated(
            records,
            site_id=site_id,
            site_ids=site_ids,
            worker_id=worker_id,
            date_from=start,
            date_to=end,
        )
        sitehub_metrics.increment_records_calculated(count)
        sitehub_metrics.observe_payroll_latency(time.perf_counter() - started, auth.is_restricted)
        logger.info('Calculated %d salary records for %s..%s', count, start, end)

        self.audit_repo.log_event(
            'CALCULATE', 'SALARY_RECORD',
            actor_id=auth.user_id,
            organization_id=auth.restricted_org_id,
            site_id=site_id,
            metadata=dict(result, count=count),
        )
        message = f'{count}건의 급여가 계산되었습니다.' if count else NO_PAYROLL_DATA
        return dict(result, count=count, message=message)

    # Records

    def _record_filters(self, auth, site_id=None, worker_id=None, date_from=None, date_to=None, status=None):
        if status and status not in RECORD_STATUSES:
            raise AppError.validation('올바르지 않은 급여 상태입니다.')
        self.guard.ensure_site_in_scope(auth, site_id)
        try:
            start = parse_date(date_from, 'date_from')
            end = parse_date(date_to, 'date_to')
        except ValueError as e:
            raise AppError.validation(str(e))
        return {
            'site_id': coerce_uuid(site_id),
            'site_ids': self.guard.accessible_site_ids(auth),
            'worker_id': coerce_uuid(worker_id),
            'date_from': start,
            'date_to': end,
            'status': status,
        }

    def list_records(self, auth, page=1, per_page=20, **filters):
        return self.record_repo.search(page=page, per_page=per_page, **self._record_filters(auth, **filters))

    def _load_records_in_scope(self, auth, record_ids):
        ids = [coerce_uuid(rid) for rid in record_ids or []]
        if not ids:
            raise AppError.validation('처리할 급여 기록을 선택해주세요.')
        records = self.record_repo.get_by_ids(ids)
        if len(records) != len({str(i) for i in ids}):
            raise AppError.not_found('급여 기록을 찾을 수 없습니다.')
        if len(self.guard.filter_records_by_site_org(auth, records)) != len(records):
            raise deny('salary_record', AccessMessages.SALARY)
        return records

    def approve_records(self, auth, record_ids):
        records = self._load_records_in_scope(auth, record_ids)
        if any(r.status == 'paid' for r in records):
            raise AppError.conflict('지급 완료된 급여는 승인할 수 없습니다.')
        count = self.record_repo.set_status(
            [r.id for r in records], 'approved', approved_by=auth.user_id, approved_at=utc_now()
        )
        self._log_bulk(auth, 'APPROVE', records)
        return count

    def mark_paid(self, auth, record_ids):
        records = self._load_records_in_scope(auth, record_ids)
        if any(r.status != 'approved' for r in records):
            raise AppError.conflict('승인된 급여만 지급 처리할 수 있습니다.')
        count = self.record_repo.set_status([r.id for r in records], 'paid', paid_at=utc_now())
        self._log_bulk(auth, 'PAY', records)
        return count

    def _log_bulk(self, auth, event_type, records):
        self.audit_repo.log_event(
            event_type, 'SALARY_RECORD',
            actor_id=auth.user_id,
            organization_id=auth.restricted_org_id,
            metadata={'record_ids': [str(r.id) for r in records]},
        )

    def get_stats(self, auth, site_id=None, date_from=None, date_to=None):
        empty = {
            'total_workers': 0,
            'pending_calculations': 0,
            'approved_payments': 0,
            'total_payroll': 0,
            'average_daily_pay': 0,
            'overtime_percentage': 0,
        }
        filters = self._record_filters(auth, site_id=site_id, date_from=date_from, date_to=date_to)
        if filters['site_ids'] is not None and not filters['site_ids']:
            return empty
        records = self.record_repo.find(**filters)
        if not records:
            return empty

        total_payroll = sum(float(r.total_pay or 0) for r in records)
        regular = sum(float(r.regular_hours or 0) for r in records)
        overtime = sum(float(r.overtime_hours or 0) for r in records)
        return {
            'total_workers': len({str(r.worker_id) for r in records}),
            'pending_calculations': len([r for r in records if r.status == 'calculated']),
            'approved_payments': len([r for r in records if r.status == 'approved']),
            'total_payroll': won(total_payroll),
            'average_daily_pay': won(total_payroll / len(records)),
            'overtime_percentage': round(overtime / (regular + overtime) * 100, 2) if regular + overtime else 0,
        }

    def output_summary(self, auth, year: int, month: int, site_id=None, search=None):
        """
        Labor output per worker and site for a month.

        Returns:
            List of dicts, one per (worker, site), with work days, 공수, hours
            and an estimated pay at the role's daily rate
        """
        try:
            start, end = month_bounds(int(year), int(month))
        except (TypeError, ValueError):
            raise AppError.validation('올바르지 않은 연월입니다.')
        self.guard.ensure_site_in_scope(auth, site_id)
        site_ids = self.guard.accessible_site_ids(auth)
        if site_ids is not None and not site_ids:
            return []

        reports = self.report_repo.get_reports_in_range(
            start, end, site_id=coerce_uuid(site_id), site_ids=site_ids, exclude_statuses=['rejected']
        )
        lines = [(report, line) for report in reports for line in report.workers]
        workers = resolve_line_workers([line for _, line in lines], self.profile_repo)
        term = (search or '').strip().lower()

        summary = OrderedDict()
        for report, line in lines:
            worker = workers.get(line.id)
            if worker is None or worker.role not in SUMMARY_ROLES:
                continue
            if term and term not in (worker.full_name or '').lower():
                continue
            key = (str(worker.id), str(report.site_id))
            item = summary.get(key)
            if item is None:
                item = summary[key] = {
                    'worker_id': str(worker.id),
                    'worker_name': worker.full_name,
                    'worker_role': worker.role,
                    'site_id': str(report.site_id),
                    'site_name': report.site.name if report.site else None,
                    'work_dates': set(),
                    'total_labor_hours': 0.0,
                    'total_work_hours': 0.0,
                    'total_overtime_hours': 0.0,
                    'base_pay': 0,
                }
            labor = float(line.labor_hours or 0)
            hours = labor * HOURS_PER_LABOR_DAY
            item['work_dates'].add(report.work_date.isoformat())
            item['total_labor_hours'] += labor
            item['total_work_hours'] += hours
            item['total_overtime_hours'] += max(hours - HOURS_PER_LABOR_DAY, 0)
            item['base_pay'] += won(labor * role_daily_rate(worker.role))

        result = []
        for item in summary.values():
            work_dates = sorted(item.pop('work_dates'))
            item.update({
                'work_days_count': len(work_dates),
                'work_dates': work_dates,
                'first_work_date': work_dates[0] if work_dates else None,
                'last_work_date': work_dates[-1] if work_dates else None,
                'total_pay': item['base_pay'],
            })
            result.append(item)
        return result
