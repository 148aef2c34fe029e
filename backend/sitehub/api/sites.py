import logging

from flask import Blueprint

from ..services.site_service import SiteService
from .common import assignment_repo, audit_repo, guard, profile_repo, site_repo
from .utils import model_to_dict, profile_summary

logger = logging.getLogger(__name__)

sites_bp = Blueprint('sites', __name__, url_prefix='/api/admin/sites')
service = SiteService(site_repo, assignment_repo, profile_repo, guard, audit_repo)


def site_to_dict(site):
    data = model_to_dict(site)
    organization = site.organization
    data['organization'] = {'id': str(organization.id), 'name': organization.name} if organization else None
    return data


def assignment_to_dict(assignment):
    data = model_to_dict(assignment)
    user = assignment.user
    profile = profile_summary(user)
    if profile is not None:
        organization = user.organization
        profile['organization'] = {'id': str(organization.id), 'name': organization.name} if organization else None
    data['profile'] = profile
    return data
