import logging

from flask import Blueprint, g, request

from ..auth_utils import admin_required, token_required
from ..errors import AppError
from ..repositories.payroll_settings_repository import (
    SalarySnapshotRepository,
    TaxRateRepository,
    WorkerSalarySettingRepository,
)
from ..repositories.salary_repository import SalaryRecordRepository, SalaryRuleRepository
from ..services.payroll.export_service import SalaryExportService
from ..services.payroll.personal_salary_service import PersonalSalaryService
from ..services.payroll.salary_service import SalaryService
from ..services.payroll.snapshot_service import MonthlyStatementBuilder, SalarySnapshotService
from .common import audit_repo, guard, notifier, profile_repo, report_repo
from .utils import (
    api_response,
    error_response,
    id_list,
    json_body,
    model_to_dict,
    models_to_list,
    server_error,
)

logger = logging.getLogger(__name__)

salary_bp = Blueprint('salary', __name__, url_prefix='/api/admin/salary')

rule_repo = SalaryRuleRepository()
record_repo = SalaryRecordRepository()
tax_rate_repo = TaxRateRepository()
setting_repo = WorkerSalarySettingRepository()
snapshot_repo = SalarySnapshotRepository()

service = SalaryService(rule_repo, record_repo, report_repo, profile_repo, guard, audit_repo)
personal_service = PersonalSalaryService(tax_rate_repo, setting_repo, record_repo, guard, audit_repo)
statement_builder = MonthlyStatementBuilder(report_repo, profile_repo, setting_repo, tax_rate_repo, guard)
snapshot_service = SalarySnapshotService(snapshot_repo, statement_builder, guard, notifier, audit_repo)
export_service = SalaryExportService(statement_builder)


@salary_bp.route('/rules', methods=['GET'])
@token_required
@admin_required
def list_rules():
    try:
        active_only = request.args.get('active_only', 'false').lower() == 'true'
        rules = service.list_rules(g.auth, site_id=request.args.get('site_id'), active_only=active_only)
        return api_response(data=models_to_list(rules))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list salary rules', e)


@salary_bp.route('/rules', methods=['POST'])
@token_required
@admin_required
def upsert_rule():
    try:
        data = json_body()
        rule = service.upsert_rule(g.auth, data)
        return api_response(
            data=model_to_dict(rule),
            message='급여 규칙이 저장되었습니다.',
            status_code=200 if data.get('id') else 201,
        )
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to save salary rule', e)


@salary_bp.route('/rules/bulk-delete', methods=['POST'])
@token_required
@admin_required
def delete_rules():
    try:
        count = service.delete_rules(g.auth, id_list(json_body()))
        return api_response(data={'deleted': count}, message='급여 규칙이 삭제되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to delete salary rules', e)


@salary_bp.route('/calculate', methods=['POST'])
@token_required
@admin_required
def calculate_salaries():
    try:
        data = request.get_json(silent=True) or {}
        result = service.calculate(
            g.auth,
            date_from=data.get('date_from'),
            date_to=data.get('date_to'),
            site_id=data.get('site_id'),
            worker_id=data.get('worker_id'),
        )
        return api_response(data=result, message=result['message'])
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to calculate salaries', e)


@salary_bp.route('/stats', methods=['GET'])
@token_required
@admin_required
def get_stats():
    try:
        stats = service.get_stats(
            g.auth,
            site_id=request.args.get('site_id'),
            date_from=request.args.get('date_from'),
            date_to=request.args.get('date_to'),
        )
        return api_response(data=stats)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to load salary stats', e)


@salary_bp.route('/output-summary', methods=['GET'])
@token_required
@admin_required
def output_summary():
    year = request.args.get('year')
    month = request.args.get('month')
    if not year or not month:
        return api_response(status_code=400, message="year와 month는 필수입니다.", error="Bad Request")

    try:
        items = service.output_summary(
            g.auth, year, month,
            site_id=request.args.get('site_id'),
            search=request.args.get('search'),
        )
        return api_response(data=items, meta={'total': len(items)})
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to build output summary', e)
