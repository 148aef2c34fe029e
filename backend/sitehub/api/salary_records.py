from flask import g, request

from ..auth_utils import admin_required, token_required
from ..errors import AppError
from .salary import salary_bp, service
from .utils import (
    api_response,
    error_response,
    id_list,
    json_body,
    model_to_dict,
    paginated_response,
    pagination_args,
    server_error,
)


def record_to_dict(record):
    data = model_to_dict(record)
    worker = record.worker
    data['worker_name'] = worker.full_name if worker else None
    data['site_name'] = record.site.name if record.site else None
    return data


@salary_bp.route('/records', methods=['GET'])
@token_required
@admin_required
def list_records():
    try:
        result = service.list_records(
            g.auth,
            site_id=request.args.get('site_id'),
            worker_id=request.args.get('worker_id'),
            date_from=request.args.get('date_from'),
            date_to=request.args.get('date_to'),
            status=request.args.get('status'),
            **pagination_args()
        )
        return paginated_response(result, record_to_dict)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list salary records', e)


@salary_bp.route('/records/approve', methods=['POST'])
@token_required
@admin_required
def approve_records():
    try:
        count = service.approve_records(g.auth, id_list(json_body()))
        return api_response(data={'updated': count}, message=f'{count}건의 급여가 승인되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to approve salary records', e)


@salary_bp.route('/records/mark-paid', methods=['POST'])
@token_required
@admin_required
def mark_records_paid():
    try:
        count = service.mark_paid(g.auth, id_list(json_body()))
        return api_response(data={'updated': count}, message=f'{count}건의 급여가 지급 처리되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to mark salary records paid', e)
