import logging
from datetime import date

from sqlalchemy.exc import IntegrityError

from ...errors import AdminErrors, AppError, from_integrity_error
from ...models.payroll import EMPLOYMENT_TYPES
from ...utils import month_bounds, parse_date
from ..access_guard import coerce_uuid, deny
from .salary_calculator import calculate_personal_salary, resolve_tax_rates, split_labor

logger = logging.getLogger(__name__)

SETTING_NOT_FOUND = '해당 직원의 급여 설정을 찾을 수 없습니다. 먼저 급여 설정을 등록해주세요.'


def _number(value, message: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise AppError.validation(message)


class PersonalSalaryService:
    """Employment tax rates, per-worker pay settings and individual salary calculation."""

    def __init__(self, tax_rate_repo, setting_repo, record_repo, guard, audit_repo):
        self.tax_rate_repo = tax_rate_repo
        self.setting_repo = setting_repo
        self.record_repo = record_repo
        self.guard = guard
        self.audit_repo = audit_repo

    # Tax rates

    def list_tax_rates(self, employment_type=None):
        if employment_type and employment_type not in EMPLOYMENT_TYPES:
            raise AppError.validation('올바르지 않은 고용 형태입니다.')
        return self.tax_rate_repo.list_rates(employment_type=employment_type)

    def update_tax_rate(self, auth, rate_id, data: dict):
        if auth.is_restricted:
            raise deny('tax_rate', AdminErrors.FORBIDDEN)
        rate = self.tax_rate_repo.get_by_id(coerce_uuid(rate_id))
        if not rate:
            raise AppError.not_found('세율 정보를 찾을 수 없습니다.')
        payload = {}
        if 'rate' in data:
            value = _number(data['rate'], '세율은 숫자여야 합니다.')
            if value < 0 or value > 100:
                raise AppError.validation('세율은 0에서 100 사이여야 합니다.')
            payload['rate'] = value
        for key in ('description', 'is_active'):
            if key in data:
                payload[key] = data[key]
        updated = self.tax_rate_repo.update(rate.id, **payload)
        self.audit_repo.log_event(
            'UPDATE', 'TAX_RATE', rate.id,
            actor_id=auth.user_id,
            metadata={'employment_type': rate.employment_type, 'tax_name': rate.tax_name, 'rate': payload.get('rate')},
        )
        return updated

    # Worker settings

    def list_settings(self, auth, worker_id=None, active_only=True):
        worker_ids = None
        if worker_id:
            worker_ids = [self.guard.ensure_user_accessible(auth, worker_id).id]
        settings = self.setting_repo.list_settings(worker_ids=worker_ids, active_only=active_only)
        if auth.is_restricted:
            settings = [
                s for s in settings
                if s.worker and str(s.worker.organization_id) == str(auth.restricted_org_id)
            ]
        return settings

    def set_setting(self, auth, data: dict):
        if not data.get('worker_id') or not data.get('employment_type') or data.get('daily_rate') in (None, ''):
            raise AppError.validation(AdminErrors.REQUIRED_FIELDS)
        worker = self.guard.ensure_user_accessible(auth, data['worker_id'])
        if data['employment_type'] not in EMPLOYMENT_TYPES:
            raise AppError.validation('올바르지 않은 고용 형태입니다.')
        daily_rate = _number(data['daily_rate'], '일급은 숫자여야 합니다.')
        if daily_rate <= 0:
            raise AppError.validation('일급은 0보다 커야 합니다.')
        hourly_rate = None
        if data.get('hourly_rate') not in (None, ''):
            hourly_rate = _number(data['hourly_rate'], '시급은 숫자여야 합니다.')
        try:
            effective_date = parse_date(data.get('effective_date'), 'effective_date') or date.today()
        except ValueError as e:
            raise AppError.validation(str(e))

        custom_rates = data.get('custom_tax_rates') or None
        if custom_rates:
            for name, value in custom_rates.items():
                rate = _number(value, '세율은 숫자여야 합니다.')
                if rate < 0 or rate > 100:
                    raise AppError.validation('세율은 0에서 100 사이여야 합니다.')

        try:
            setting = self.setting_repo.replace_active(
                worker.id,
                effective_date,
                employment_type=data['employment_type'],
                daily_rate=daily_rate,
                hourly_rate=hourly_rate,
                custom_tax_rates=custom_rates,
                bank_account_info=data.get('bank_account_info'),
                notes=data.get('notes'),
                created_by=auth.user_id,
            )
        except IntegrityError as e:
            raise from_integrity_error(e)
        self.audit_repo.log_event(
            'UPDATE', 'SALARY_SETTING', setting.id,
            actor_id=auth.user_id,
            organization_id=worker.organization_id,
            metadata={'worker_id': str(worker.id), 'daily_rate': daily_rate},
        )
        return setting

    # Personal calculation

    def calculate(self, auth, data: dict):
        """
        Gross, deductions and net pay for one worker-day entry.

        Returns:
            (worker, setting, result) where result holds the pay breakdown
        """
        if not data.get('worker_id') or not data.get('work_date') or data.get('labor_hours') in (None, ''):
            raise AppError.validation(AdminErrors.REQUIRED_FIELDS)
        worker = self.guard.ensure_user_accessible(auth, data['worker_id'])
        try:
            work_date = parse_date(data['work_date'], 'work_date')
        except ValueError as e:
            raise AppError.validation(str(e))
        labor_hours = _number(data['labor_hours'], '공수는 숫자여야 합니다.')
        if labor_hours <= 0:
            raise AppError.validation('공수는 0보다 커야 합니다.')
        additional = _number(data.get('additional_deductions') or 0, '추가 공제액은 숫자여야 합니다.')

        setting = self.setting_repo.get_effective(worker.id, work_date)
        if not setting:
            raise AppError.not_found(SETTING_NOT_FOUND)

        tax_rates = resolve_tax_rates(
            setting.employment_type,
            self.tax_rate_repo.list_rates(employment_type=setting.employment_type),
            setting.custom_tax_rates,
        )
        result = calculate_personal_salary(setting.daily_rate, labor_hours, tax_rates, additional)
        result.update({
            'worker_id': str(worker.id),
            'worker_name': worker.full_name,
            'work_date': work_date.isoformat(),
            'employment_type': setting.employment_type,
            'daily_rate': float(setting.daily_rate),
            'labor_hours': labor_hours,
        })
        return worker, setting, result

    def save_record(self, auth, data: dict):
        worker, setting, result = self.calculate(auth, data)
        site_id = coerce_uuid(data.get('site_id'))
        if site_id:
            self.guard.ensure_site_accessible(auth, site_id)

        regular_labor, overtime_labor = split_labor(result['labor_hours'])
        tax_details = dict(result['tax_rates'], labor_hours=result['labor_hours'])
        try:
            record = self.record_repo.create(
                worker_id=worker.id,
                site_id=site_id,
                work_date=parse_date(result['work_date']),
                employment_type=setting.employment_type,
                labor_hours=result['labor_hours'],
                regular_hours=regular_labor,
                overtime_hours=overtime_labor,
                base_pay=result['gross_pay'],
                income_tax=result['income_tax'],
                resident_tax=result['resident_tax'],
                national_pension=result['national_pension'],
                health_insurance=result['health_insurance'],
                employment_insurance=result['employment_insurance'],
                deductions=result['additional_deductions'],
                tax_amount=result['total_tax'],
                total_pay=result['net_pay'],
                tax_details=tax_details,
                status='calculated',
                source='manual',
                notes=data.get('notes'),
            )
        except IntegrityError as e:
            raise from_integrity_error(e)
        logger.info('Saved personal salary record %s for worker %s', record.id, worker.id)
        return record

    def monthly_summary(self, auth, worker_id, year, month):
        worker = self.guard.ensure_user_accessible(auth, worker_id)
        try:
            start, end = month_bounds(int(year), int(month))
        except (TypeError, ValueError):
            raise AppError.validation('올바르지 않은 연월입니다.')
        records = self.record_repo.find(worker_id=worker.id, date_from=start, date_to=end)
        return {
            'worker_id': str(worker.id),
            'worker_name': worker.full_name,
            'year': int(year),
            'month': int(month),
            'total_records': len(records),
            'total_labor_hours': round(sum(float(r.labor_hours or r.regular_hours or 0) for r in records), 2),
            'total_gross_pay': sum(float(r.base_pay or 0) for r in records),
            'total_tax': sum(float(r.tax_amount or 0) for r in records),
            'total_net_pay': sum(float(r.total_pay or 0) for r in records),
            'employment_type': records[0].employment_type if records and records[0].employment_type else 'daily_worker',
            'records': records,
        }
