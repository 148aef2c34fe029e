import logging

from flask import Blueprint, g, request

from ..auth_utils import admin_required, token_required
from ..errors import AppError
from ..services.daily_report_service import DailyReportService
from .common import assignment_repo, audit_repo, guard, notifier, report_repo
from .utils import (
    api_response,
    error_response,
    json_body,
    model_to_dict,
    models_to_list,
    paginated_response,
    pagination_args,
    server_error,
)

logger = logging.getLogger(__name__)

daily_reports_bp = Blueprint('daily_reports', __name__, url_prefix='/api/daily-reports')
admin_daily_reports_bp = Blueprint('admin_daily_reports', __name__, url_prefix='/api/admin/daily-reports')
service = DailyReportService(report_repo, assignment_repo, guard, notifier, audit_repo)


def report_to_dict(report, include_workers: bool = True):
    data = model_to_dict(report)
    site = report.site
    data['site'] = {'id': str(site.id), 'name': site.name, 'organization_id': str(site.organization_id) if site.organization_id else None} if site else None
    if include_workers:
        data['workers'] = models_to_list(report.workers)
    return data


def _list_filters():
    return dict(
        site_id=request.args.get('site_id'),
        status=request.args.get('status'),
        start_date=request.args.get('start_date'),
        end_date=request.args.get('end_date'),
        **pagination_args()
    )


@daily_reports_bp.route('', methods=['GET'])
@token_required
def list_reports():
    try:
        mine = request.args.get('mine', 'false').lower() == 'true'
        result = service.list_reports(g.auth, mine=mine, **_list_filters())
        return paginated_response(result, lambda r: report_to_dict(r, include_workers=False))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list daily reports', e)


@daily_reports_bp.route('', methods=['POST'])
@token_required
def save_report():
    try:
        report, created = service.save_report(g.auth, json_body())
        return api_response(
            data=report_to_dict(report),
            message='작업일지가 저장되었습니다.',
            status_code=201 if created else 200,
        )
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to save daily report', e)


@daily_reports_bp.route('/<uuid:report_id>', methods=['GET'])
@token_required
def get_report(report_id):
    try:
        return api_response(data=report_to_dict(service.get_report(g.auth, report_id)))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to get daily report {report_id}', e)


@daily_reports_bp.route('/<uuid:report_id>', methods=['PUT'])
@token_required
def update_report(report_id):
    try:
        report = service.update_report(g.auth, report_id, json_body())
        return api_response(data=report_to_dict(report), message='작업일지가 수정되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to update daily report {report_id}', e)


@daily_reports_bp.route('/<uuid:report_id>/submit', methods=['POST'])
@token_required
def submit_report(report_id):
    try:
        report = service.submit_report(g.auth, report_id)
        return api_response(data=report_to_dict(report), message='작업일지가 제출되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to submit daily report {report_id}', e)


@daily_reports_bp.route('/<uuid:report_id>/approve', methods=['POST'])
@token_required
def approve_report(report_id):
    try:
        data = request.get_json(silent=True) or {}
        report = service.process_report(g.auth, report_id, True, data.get('comments'))
        return api_response(data=report_to_dict(report), message='작업일지가 승인되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to approve daily report {report_id}', e)


@daily_reports_bp.route('/<uuid:report_id>/reject', methods=['POST'])
@token_required
def reject_report(report_id):
    try:
        data = request.get_json(silent=True) or {}
        report = service.process_report(g.auth, report_id, False, data.get('comments'))
        return api_response(data=report_to_dict(report), message='작업일지가 반려되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to reject daily report {report_id}', e)


@admin_daily_reports_bp.route('', methods=['GET'])
@token_required
@admin_required
def admin_list_reports():
    try:
        result = service.list_reports(g.auth, **_list_filters())
        return paginated_response(result, lambda r: report_to_dict(r, include_workers=False))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list daily reports', e)


@admin_daily_reports_bp.route('/<uuid:report_id>', methods=['GET'])
@token_required
@admin_required
def admin_get_report(report_id):
    try:
        return api_response(data=report_to_dict(service.get_report(g.auth, report_id)))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to get daily report {report_id}', e)


@admin_daily_reports_bp.route('/<uuid:report_id>', methods=['DELETE'])
@token_required
@admin_required
def admin_delete_report(report_id):
    try:
        service.delete_report(g.auth, report_id)
        return api_response(message='작업일지가 삭제되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to delete daily report {report_id}', e)
