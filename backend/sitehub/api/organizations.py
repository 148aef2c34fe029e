import logging

from flask import Blueprint, g, request

from ..auth_utils import admin_required, token_required
from ..errors import AppError
from ..repositories.organization_repository import OrganizationRepository
from ..services.organization_service import OrganizationService
from .common import audit_repo
from .utils import api_response, error_response, json_body, model_to_dict, models_to_list, server_error

logger = logging.getLogger(__name__)

organizations_bp = Blueprint('organizations', __name__, url_prefix='/api/admin/organizations')
service = OrganizationService(OrganizationRepository(), audit_repo)


@organizations_bp.route('', methods=['GET'])
@token_required
@admin_required
def list_organizations():
    try:
        include_inactive = request.args.get('include_inactive', 'true').lower() != 'false'
        organizations = service.list_organizations(g.auth, include_inactive=include_inactive)
        return api_response(data=models_to_list(organizations))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list organizations', e)


@organizations_bp.route('/<uuid:organization_id>', methods=['GET'])
@token_required
@admin_required
def get_organization(organization_id):
    try:
        return api_response(data=model_to_dict(service.get_organization(g.auth, organization_id)))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to get organization {organization_id}', e)


@organizations_bp.route('', methods=['POST'])
@token_required
@admin_required
def create_organization():
    try:
        organization = service.create_organization(g.auth, json_body())
        return api_response(data=model_to_dict(organization), message='조직이 생성되었습니다.', status_code=201)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to create organization', e)


@organizations_bp.route('/<uuid:organization_id>', methods=['PUT'])
@token_required
@admin_required
def update_organization(organization_id):
    try:
        organization = service.update_organization(g.auth, organization_id, json_body())
        return api_response(data=model_to_dict(organization), message='조직 정보가 수정되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to update organization {organization_id}', e)


@organizations_bp.route('/<uuid:organization_id>/deactivate', methods=['POST'])
@token_required
@admin_required
def deactivate_organization(organization_id):
    try:
        organization = service.set_active(g.auth, organization_id, False)
        return api_response(data=model_to_dict(organization), message='조직이 비활성화되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to deactivate organization {organization_id}', e)


@organizations_bp.route('/<uuid:organization_id>/activate', methods=['POST'])
@token_required
@admin_required
def activate_organization(organization_id):
    try:
        organization = service.set_active(g.auth, organization_id, True)
        return api_response(data=model_to_dict(organization), message='조직이 활성화되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to activate organization {organization_id}', e)
