import logging

from flask import Blueprint, g, request

from ..auth_utils import admin_required, token_required
from ..errors import AppError
from ..repositories.material_repository import MaterialRepository, MaterialRequestRepository
from ..services.material_service import MaterialService
from .common import assignment_repo, audit_repo, guard, notifier
from .utils import (
    api_response,
    error_response,
    id_list,
    json_body,
    model_to_dict,
    models_to_list,
    paginated_response,
    pagination_args,
    profile_summary,
    server_error,
)

logger = logging.getLogger(__name__)

materials_bp = Blueprint('materials', __name__, url_prefix='/api/materials')
admin_materials_bp = Blueprint('admin_materials', __name__, url_prefix='/api/admin/materials')
service = MaterialService(
    MaterialRepository(), MaterialRequestRepository(), assignment_repo, guard, notifier, audit_repo
)


def request_to_dict(material_request):
    data = model_to_dict(material_request)
    site = material_request.site
    data['site'] = {'id': str(site.id), 'name': site.name} if site else None
    data['requester'] = profile_summary(material_request.requester)
    items = []
    for item in material_request.items:
        line = model_to_dict(item)
        material = item.material
        line['material'] = {
            'id': str(material.id),
            'name': material.name,
            'code': material.code,
            'unit': material.unit,
        } if material else None
        items.append(line)
    data['items'] = items
    return data


@materials_bp.route('', methods=['GET'])
@token_required
def list_materials():
    try:
        return api_response(data=models_to_list(service.list_materials(request.args.get('search'))))
    except Exception as e:
        return server_error('Failed to list materials', e)


@materials_bp.route('', methods=['POST'])
@token_required
@admin_required
def create_material():
    try:
        material = service.create_material(g.auth, json_body())
        return api_response(data=model_to_dict(material), message='자재가 등록되었습니다.', status_code=201)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to create material', e)


@materials_bp.route('/requests', methods=['POST'])
@token_required
def create_request():
    try:
        material_request = service.create_request(g.auth, json_body())
        return api_response(data=request_to_dict(material_request), message='자재 요청이 등록되었습니다.', status_code=201)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to create material request', e)


@materials_bp.route('/requests/mine', methods=['GET'])
@token_required
def list_my_requests():
    try:
        result = service.list_my_requests(g.auth, status=request.args.get('status'), **pagination_args())
        return paginated_response(result, request_to_dict)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list my material requests', e)


@admin_materials_bp.route('/requests', methods=['GET'])
@token_required
@admin_required
def list_requests():
    try:
        result = service.list_requests(
            g.auth,
            search=request.args.get('search'),
            site_id=request.args.get('site_id'),
            priority=request.args.get('priority'),
            status=request.args.get('status'),
            material_name=request.args.get('material_name'),
            **pagination_args()
        )
        return paginated_response(result, request_to_dict)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list material requests', e)


@admin_materials_bp.route('/requests/approve', methods=['POST'])
@token_required
@admin_required
def approve_requests():
    try:
        data = json_body()
        requests = service.process_requests(g.auth, id_list(data), True, data.get('comments'))
        return api_response(data={'updated': len(requests)}, message=f'{len(requests)}건의 요청이 승인되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to approve material requests', e)


@admin_materials_bp.route('/requests/reject', methods=['POST'])
@token_required
@admin_required
def reject_requests():
    try:
        data = json_body()
        requests = service.process_requests(g.auth, id_list(data), False, data.get('comments'))
        return api_response(data={'updated': len(requests)}, message=f'{len(requests)}건의 요청이 거부되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to reject material requests', e)
