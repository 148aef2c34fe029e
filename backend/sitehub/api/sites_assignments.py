from flask import g, request

from ..auth_utils import admin_required, token_required
from ..errors import AppError
from .sites import assignment_to_dict, service, site_to_dict, sites_bp
from .utils import api_response, error_response, json_body, model_to_dict, profile_summary, server_error


@sites_bp.route('/<uuid:site_id>/assignments', methods=['GET'])
@token_required
@admin_required
def list_assignments(site_id):
    try:
        site, assignments = service.list_assignments(g.auth, site_id)
        return api_response(data={
            'site': site_to_dict(site),
            'assignments': [assignment_to_dict(a) for a in assignments],
        })
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to list assignments for site {site_id}', e)


@sites_bp.route('/<uuid:site_id>/assignments', methods=['POST'])
@token_required
@admin_required
def assign_user(site_id):
    try:
        data = json_body()
        assignment = service.assign_user(g.auth, site_id, data.get('user_id'), data.get('role') or 'worker')
        return api_response(data=model_to_dict(assignment), message='사용자가 현장에 배정되었습니다.', status_code=201)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to assign user to site {site_id}', e)


@sites_bp.route('/<uuid:site_id>/assignments/<uuid:user_id>', methods=['DELETE'])
@token_required
@admin_required
def remove_assignment(site_id, user_id):
    try:
        service.remove_assignment(g.auth, site_id, user_id)
        return api_response(message='배정이 해제되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to remove assignment {site_id}/{user_id}', e)


@sites_bp.route('/<uuid:site_id>/assignments/<uuid:user_id>', methods=['PUT'])
@token_required
@admin_required
def update_assignment_role(site_id, user_id):
    try:
        assignment = service.update_assignment_role(g.auth, site_id, user_id, json_body().get('role'))
        return api_response(data=model_to_dict(assignment), message='배정 역할이 변경되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to update assignment {site_id}/{user_id}', e)


@sites_bp.route('/<uuid:site_id>/available-users', methods=['GET'])
@token_required
@admin_required
def available_users(site_id):
    try:
        users = service.search_available_users(
            g.auth,
            site_id,
            search=request.args.get('search'),
            role=request.args.get('role'),
            limit=min(request.args.get('limit', 50, type=int), 200),
        )
        return api_response(data=[profile_summary(u) for u in users])
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to search available users for site {site_id}', e)
