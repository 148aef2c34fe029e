import logging
from collections import defaultdict

from sqlalchemy.exc import IntegrityError

from ...errors import AccessMessages, AppError, from_integrity_error
from ...utils import month_bounds, utc_now
from ..access_guard import assert_org_access, coerce_uuid, deny
from .salary_calculator import DEFAULT_DAILY_PAY, monthly_statement, resolve_tax_rates
from .salary_service import resolve_line_workers

logger = logging.getLogger(__name__)

DEFAULT_EMPLOYMENT_TYPE = 'daily_worker'


def month_label(year: int, month: int) -> str:
    return f'{year}년 {month}월'


class MonthlyStatementBuilder:
    """Per-worker monthly labor and pay, computed from work report lines."""

    def __init__(self, report_repo, profile_repo, setting_repo, tax_rate_repo, guard):
        self.report_repo = report_repo
        self.profile_repo = profile_repo
        self.setting_repo = setting_repo
        self.tax_rate_repo = tax_rate_repo
        self.guard = guard

    @staticmethod
    def bounds(year, month):
        try:
            return month_bounds(int(year), int(month))
        except (TypeError, ValueError):
            raise AppError.validation('올바르지 않은 연월입니다.')

    def labor_matrix(self, auth, start, end, site_id=None, worker_ids=None, all_sites=False):
        """
        Labor per worker and day. With ``all_sites`` the site filter and the
        caller's site scope are ignored, so each worker's whole month counts.

        Returns:
            (workers, matrix) where workers maps worker id -> Profile and
            matrix maps worker id -> {work_date: 공수}
        """
        site_ids = None
        if all_sites:
            site_id = None
        else:
            self.guard.ensure_site_in_scope(auth, site_id)
            site_ids = self.guard.accessible_site_ids(auth)
            if site_ids is not None and not site_ids:
                return {}, {}
        reports = self.report_repo.get_reports_in_range(
            start, end, site_id=coerce_uuid(site_id), site_ids=site_ids, exclude_statuses=['rejected']
        )
        lines = [(report, line) for report in reports for line in report.workers]
        resolved = resolve_line_workers([line for _, line in lines], self.profile_repo)
        wanted = {str(w) for w in worker_ids} if worker_ids else None

        workers, matrix = {}, defaultdict(lambda: defaultdict(float))
        for report, line in lines:
            worker = resolved.get(line.id)
            if worker is None or (wanted is not None and str(worker.id) not in wanted):
                continue
            if auth.is_restricted and str(worker.organization_id) != str(auth.restricted_org_id):
                continue
            workers[str(worker.id)] = worker
            matrix[str(worker.id)][report.work_date] += float(line.labor_hours or 0)
        return workers, matrix

    def build(self, auth, year, month, site_id=None, worker_ids=None, all_sites=False):
        """
        Monthly statements for every worker with labor in the month.

        Workers without a salary setting are paid the default daily rate as
        daily workers.

        Returns:
            List of (worker, statement) tuples ordered by worker name
        """
        start, end = self.bounds(year, month)
        workers, matrix = self.labor_matrix(
            auth, start, end, site_id=site_id, worker_ids=worker_ids, all_sites=all_sites
        )
        rates = self.tax_rate_repo.list_rates()

        result = []
        for worker_key, worker in sorted(workers.items(), key=lambda item: item[1].full_name or ''):
            setting = self.setting_repo.get_effective(worker.id, end)
            employment_type = setting.employment_type if setting else DEFAULT_EMPLOYMENT_TYPE
            daily_rate = float(setting.daily_rate) if setting else DEFAULT_DAILY_PAY
            tax_rates = resolve_tax_rates(employment_type, rates, setting.custom_tax_rates if setting else None)
            statement = monthly_statement(matrix[worker_key], daily_rate, employment_type, tax_rates, start, end)
            result.append((worker, statement))
        return result


class SalarySnapshotService:
    """Issues and reads monthly payslip snapshots."""

    def __init__(self, snapshot_repo, statement_builder, guard, notifier, audit_repo):
        self.snapshot_repo = snapshot_repo
        self.statement_builder = statement_builder
        self.guard = guard
        self.notifier = notifier
        self.audit_repo = audit_repo

    @staticmethod
    def build_payload(worker, year: int, month: int, statement: dict) -> dict:
        return {
            'worker_id': str(worker.id),
            'worker_name': worker.full_name,
            'year': year,
            'month': month,
            'month_label': month_label(year, month),
            'employment_type': statement['employment_type'],
            'daily_rate': statement['daily_rate'],
            'status': 'issued',
            'workDays': statement['work_days'],
            'totalLaborHours': statement['total_labor_hours'],
            'salary': {
                key: statement[key]
                for key in (
                    'work_days', 'total_labor_hours', 'base_pay', 'total_gross_pay',
                    'tax_deduction', 'national_pension', 'health_insurance',
                    'employment_insurance', 'total_deductions', 'net_pay',
                    'period_start', 'period_end',
                )
            },
        }

    def issue(self, auth, year, month, site_id=None, worker_ids=None):
        """
        Issue (or re-issue) payslips for a month; one snapshot per worker.

        ``site_id`` and the caller's site scope only choose which workers get a
        payslip. Each payslip covers the worker's labor at every site.

        Returns:
            List of SalarySnapshot rows
        """
        start, end = self.statement_builder.bounds(year, month)
        year, month = start.year, start.month
        worker_ids = [coerce_uuid(w) for w in worker_ids or []] or None
        if worker_ids:
            self.guard.ensure_users_accessible(auth, worker_ids)

        workers, _ = self.statement_builder.labor_matrix(auth, start, end, site_id=site_id, worker_ids=worker_ids)
        statements = []
        if workers:
            statements = self.statement_builder.build(auth, year, month, worker_ids=list(workers), all_sites=True)
        issued = []
        now = utc_now()
        try:
            for worker, statement in statements:
                payload = self.build_payload(worker, year, month, statement)
                snapshot = self.snapshot_repo.get_for_month(worker.id, year, month)
                if snapshot is None:
                    snapshot = self.snapshot_repo.add(self.snapshot_repo.model_class(
                        worker_id=worker.id,
                        organization_id=worker.organization_id,
                        year=year,
                        month=month,
                    ))
                snapshot.payload = payload
                snapshot.status = 'issued'
                snapshot.issued_by = auth.user_id
                snapshot.issued_at = now
                issued.append(snapshot)
            self.snapshot_repo.commit()
        except IntegrityError as e:
            self.snapshot_repo.rollback()
            raise from_integrity_error(e)

        logger.info('Issued %d payslips for %04d-%02d', len(issued), year, month)
        self.audit_repo.log_event(
            'ISSUE', 'SALARY_SNAPSHOT',
            actor_id=auth.user_id,
            organization_id=auth.restricted_org_id,
            metadata={'year': year, 'month': month, 'count': len(issued)},
        )
        for snapshot in issued:
            self.notifier.payslip_issued(snapshot)
        return issued

    def list_snapshots(self, auth, year=None, month=None, worker_id=None):
        worker_id = coerce_uuid(worker_id)
        if worker_id:
            self.guard.ensure_user_accessible(auth, worker_id)
        return self.snapshot_repo.list_snapshots(
            year=year,
            month=month,
            worker_id=worker_id,
            organization_id=auth.restricted_org_id if auth.is_restricted else None,
        )

    def get_snapshot(self, auth, snapshot_id):
        snapshot = self.snapshot_repo.get_by_id(coerce_uuid(snapshot_id))
        if not snapshot:
            raise AppError.not_found('급여명세서를 찾을 수 없습니다.')
        if str(snapshot.worker_id) == str(auth.user_id):
            return snapshot
        if not auth.is_admin and not auth.is_restricted:
            raise deny('salary_snapshot', AccessMessages.SALARY)
        assert_org_access(auth, snapshot.organization_id, AccessMessages.SALARY, resource='salary_snapshot')
        return snapshot

    def my_snapshots(self, auth, year=None):
        return self.snapshot_repo.list_snapshots(year=year, worker_id=auth.user_id)
