from flask import g, request

from ..auth_utils import admin_required, token_required
from ..errors import AppError
from .salary import personal_service, salary_bp
from .salary_records import record_to_dict
from .utils import (
    api_response,
    error_response,
    json_body,
    model_to_dict,
    models_to_list,
    server_error,
)


def setting_to_dict(setting):
    data = model_to_dict(setting)
    worker = setting.worker
    data['worker_name'] = worker.full_name if worker else None
    return data


@salary_bp.route('/tax-rates', methods=['GET'])
@token_required
@admin_required
def list_tax_rates():
    try:
        rates = personal_service.list_tax_rates(request.args.get('employment_type'))
        return api_response(data=models_to_list(rates))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list tax rates', e)


@salary_bp.route('/tax-rates/<uuid:rate_id>', methods=['PUT'])
@token_required
@admin_required
def update_tax_rate(rate_id):
    try:
        rate = personal_service.update_tax_rate(g.auth, rate_id, json_body())
        return api_response(data=model_to_dict(rate), message='세율이 수정되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to update tax rate {rate_id}', e)


@salary_bp.route('/worker-settings', methods=['GET'])
@token_required
@admin_required
def list_worker_settings():
    try:
        active_only = request.args.get('active_only', 'true').lower() != 'false'
        settings = personal_service.list_settings(
            g.auth, worker_id=request.args.get('worker_id'), active_only=active_only
        )
        return api_response(data=[setting_to_dict(s) for s in settings])
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list worker salary settings', e)


@salary_bp.route('/worker-settings', methods=['POST'])
@token_required
@admin_required
def set_worker_setting():
    try:
        setting = personal_service.set_setting(g.auth, json_body())
        return api_response(data=setting_to_dict(setting), message='급여 설정이 저장되었습니다.', status_code=201)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to save worker salary setting', e)


@salary_bp.route('/personal/calculate', methods=['POST'])
@token_required
@admin_required
def calculate_personal_salary():
    try:
        _, _, result = personal_service.calculate(g.auth, json_body())
        return api_response(data=result)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to calculate personal salary', e)


@salary_bp.route('/personal/records', methods=['POST'])
@token_required
@admin_required
def save_personal_record():
    try:
        record = personal_service.save_record(g.auth, json_body())
        return api_response(data=record_to_dict(record), message='급여 기록이 저장되었습니다.', status_code=201)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to save personal salary record', e)


@salary_bp.route('/personal/<uuid:worker_id>/monthly', methods=['GET'])
@token_required
@admin_required
def personal_monthly_summary(worker_id):
    year = request.args.get('year')
    month = request.args.get('month')
    if not year or not month:
        return api_response(status_code=400, message="year와 month는 필수입니다.", error="Bad Request")

    try:
        summary = personal_service.monthly_summary(g.auth, worker_id, year, month)
        summary['records'] = [record_to_dict(r) for r in summary['records']]
        return api_response(data=summary)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to load monthly summary for {worker_id}', e)
