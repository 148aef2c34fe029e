import logging
from datetime import date

from flask import Blueprint, g, request

from ..auth_utils import token_required
from ..errors import AppError
from ..services.workforce_service import WorkforceService
from .common import assignment_repo, report_repo, site_repo
from .salary import snapshot_service
from .utils import api_response, error_response, model_to_dict, models_to_list, profile_summary, server_error

logger = logging.getLogger(__name__)

mobile_bp = Blueprint('mobile', __name__, url_prefix='/api/mobile')
service = WorkforceService(site_repo, assignment_repo, report_repo)


@mobile_bp.route('/site-info', methods=['GET'])
@token_required
def get_site_info():
    try:
        assignment, managers = service.current_site(g.auth)
        if assignment is None:
            return api_response(data=None, message='배정된 현장이 없습니다.')
        return api_response(data={
            'assignment': model_to_dict(assignment),
            'site': model_to_dict(assignment.site),
            'managers': [
                dict(profile_summary(a.user), assignment_role=a.role, phone=a.user.phone)
                for a in managers if a.user
            ],
        })
    except Exception as e:
        return server_error('Failed to load site info', e)


@mobile_bp.route('/work-logs', methods=['GET'])
@token_required
def get_work_logs():
    today = date.today()
    try:
        logs = service.my_work_logs(
            g.auth,
            request.args.get('year', today.year),
            request.args.get('month', today.month),
        )
        return api_response(data=logs)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to load work logs', e)


@mobile_bp.route('/payslips', methods=['GET'])
@token_required
def list_my_payslips():
    try:
        snapshots = snapshot_service.my_snapshots(g.auth, year=request.args.get('year', type=int))
        return api_response(data=models_to_list(snapshots))
    except Exception as e:
        return server_error('Failed to list payslips', e)


@mobile_bp.route('/payslips/<uuid:snapshot_id>', methods=['GET'])
@token_required
def get_my_payslip(snapshot_id):
    try:
        return api_response(data=model_to_dict(snapshot_service.get_snapshot(g.auth, snapshot_id)))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to get payslip {snapshot_id}', e)
