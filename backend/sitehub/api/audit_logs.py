import logging

from flask import Blueprint, g, request

from ..auth_utils import admin_required, token_required
from .common import audit_repo
from .utils import model_to_dict, paginated_response, server_error

logger = logging.getLogger(__name__)

audit_logs_bp = Blueprint('audit_logs', __name__, url_prefix='/api/admin/audit-logs')


@audit_logs_bp.route('', methods=['GET'])
@token_required
@admin_required
def list_audit_logs():
    try:
        result = audit_repo.search(
            page=request.args.get('page', 1, type=int),
            per_page=request.args.get('per_page', 50, type=int),
            organization_id=g.auth.restricted_org_id if g.auth.is_restricted else None,
            entity_type=request.args.get('entity_type'),
            event_type=request.args.get('event_type'),
        )
        return paginated_response(result, model_to_dict)
    except Exception as e:
        return server_error('Failed to list audit logs', e)
