import logging

from flask import Blueprint, g, request

from ..auth_utils import role_required, token_required
from ..errors import AppError
from ..models.users import ADMIN_ROLES
from ..services.workforce_service import WorkforceService
from .common import assignment_repo, report_repo, site_repo
from .utils import api_response, error_response, server_error

logger = logging.getLogger(__name__)

partner_bp = Blueprint('partner', __name__, url_prefix='/api/partner')
service = WorkforceService(site_repo, assignment_repo, report_repo)

PARTNER_ROLES = ('partner', 'customer_manager') + tuple(ADMIN_ROLES)


@partner_bp.route('/labor-by-site', methods=['GET'])
@token_required
@role_required(*PARTNER_ROLES)
def labor_by_site():
    try:
        result = service.labor_by_site(
            g.auth,
            date_from=request.args.get('date_from'),
            date_to=request.args.get('date_to'),
            organization_id=request.args.get('organization_id'),
        )
        return api_response(data=result)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to load labor by site', e)
