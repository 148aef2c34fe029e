from flask import g, request

from ..auth_utils import admin_required, token_required
from ..errors import AppError
from .sites import service, site_to_dict, sites_bp
from .utils import api_response, error_response, id_list, json_body, paginated_response, pagination_args, server_error


@sites_bp.route('', methods=['GET'])
@token_required
@admin_required
def list_sites():
    try:
        result = service.list_sites(
            g.auth,
            search=request.args.get('search'),
            status=request.args.get('status'),
            sort_by=request.args.get('sort_by', 'created_at'),
            sort_order=request.args.get('sort_order', 'desc'),
            include_deleted=request.args.get('include_deleted', 'false').lower() == 'true',
            **pagination_args()
        )
        return paginated_response(result, site_to_dict)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list sites', e)


@sites_bp.route('/<uuid:site_id>', methods=['GET'])
@token_required
@admin_required
def get_site(site_id):
    try:
        return api_response(data=site_to_dict(service.get_site(g.auth, site_id)))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to get site {site_id}', e)


@sites_bp.route('', methods=['POST'])
@token_required
@admin_required
def create_site():
    try:
        site = service.create_site(g.auth, json_body())
        return api_response(data=site_to_dict(site), message='현장이 생성되었습니다.', status_code=201)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to create site', e)


@sites_bp.route('/<uuid:site_id>', methods=['PUT'])
@token_required
@admin_required
def update_site(site_id):
    try:
        site = service.update_site(g.auth, site_id, json_body())
        return api_response(data=site_to_dict(site), message='현장 정보가 수정되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to update site {site_id}', e)


@sites_bp.route('/bulk-delete', methods=['POST'])
@token_required
@admin_required
def delete_sites():
    try:
        count = service.delete_sites(g.auth, id_list(json_body()))
        return api_response(data={'deleted': count}, message=f'{count}개 현장이 삭제되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to delete sites', e)


@sites_bp.route('/bulk-restore', methods=['POST'])
@token_required
@admin_required
def restore_sites():
    try:
        count = service.restore_sites(g.auth, id_list(json_body()))
        return api_response(data={'restored': count}, message=f'{count}개 현장이 복구되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to restore sites', e)


@sites_bp.route('/bulk-purge', methods=['POST'])
@token_required
@admin_required
def purge_sites():
    try:
        count = service.purge_sites(g.auth, id_list(json_body()))
        return api_response(data={'purged': count}, message=f'{count}개 현장이 영구 삭제되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to purge sites', e)


@sites_bp.route('/bulk-status', methods=['POST'])
@token_required
@admin_required
def update_site_status():
    try:
        data = json_body()
        count = service.update_status(g.auth, id_list(data), data.get('status'))
        return api_response(data={'updated': count}, message='현장 상태가 변경되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to update site status', e)
