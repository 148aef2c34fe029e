import logging

from flask import Blueprint, g, request

from ..auth_utils import admin_required, token_required
from ..errors import AppError
from ..services.user_service import UserService
from .common import assignment_repo, audit_repo, guard, profile_repo, report_repo
from .utils import (
    api_response,
    error_response,
    id_list,
    json_body,
    model_to_dict,
    paginated_response,
    pagination_args,
    profile_to_dict,
    server_error,
)

logger = logging.getLogger(__name__)

users_bp = Blueprint('users', __name__, url_prefix='/api/admin/users')
service = UserService(profile_repo, assignment_repo, report_repo, guard, audit_repo)


def _assignment_to_dict(assignment):
    data = model_to_dict(assignment)
    site = assignment.site
    data['site'] = {'id': str(site.id), 'name': site.name, 'status': site.status} if site else None
    return data


@users_bp.route('', methods=['GET'])
@token_required
@admin_required
def list_users():
    try:
        result = service.list_users(
            g.auth,
            search=request.args.get('search'),
            role=request.args.get('role'),
            status=request.args.get('status'),
            **pagination_args()
        )
        return paginated_response(result, profile_to_dict)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list users', e)


@users_bp.route('/<uuid:user_id>', methods=['GET'])
@token_required
@admin_required
def get_user(user_id):
    try:
        profile, assignments, stats = service.get_user_detail(g.auth, user_id)
        data = profile_to_dict(profile, include_organization=True)
        data['site_assignments'] = [_assignment_to_dict(a) for a in assignments]
        data['work_log_stats'] = stats
        return api_response(data=data)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to get user {user_id}', e)


@users_bp.route('', methods=['POST'])
@token_required
@admin_required
def create_user():
    try:
        profile, temp_password = service.create_user(g.auth, json_body())
        data = profile_to_dict(profile)
        data['temporary_password'] = temp_password
        return api_response(data=data, message='사용자가 생성되었습니다.', status_code=201)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to create user', e)


@users_bp.route('/<uuid:user_id>', methods=['PUT'])
@token_required
@admin_required
def update_user(user_id):
    try:
        profile = service.update_user(g.auth, user_id, json_body())
        return api_response(data=profile_to_dict(profile), message='사용자 정보가 수정되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to update user {user_id}', e)


@users_bp.route('/bulk-delete', methods=['POST'])
@token_required
@admin_required
def delete_users():
    try:
        count = service.delete_users(g.auth, id_list(json_body()))
        return api_response(data={'deleted': count}, message=f'{count}명의 사용자가 삭제되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to delete users', e)


@users_bp.route('/bulk-role', methods=['POST'])
@token_required
@admin_required
def update_roles():
    try:
        data = json_body()
        count = service.update_roles(g.auth, id_list(data), data.get('role'))
        return api_response(data={'updated': count}, message='역할이 변경되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to update user roles', e)


@users_bp.route('/bulk-status', methods=['POST'])
@token_required
@admin_required
def update_status():
    try:
        data = json_body()
        count = service.update_status(g.auth, id_list(data), data.get('status'))
        return api_response(data={'updated': count}, message='상태가 변경되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to update user status', e)


@users_bp.route('/<uuid:user_id>/reset-password', methods=['POST'])
@token_required
@admin_required
def reset_password(user_id):
    try:
        temp_password = service.reset_password(g.auth, user_id)
        return api_response(data={'temporary_password': temp_password}, message='비밀번호가 초기화되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to reset password for {user_id}', e)
