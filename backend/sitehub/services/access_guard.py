"""
Organization access guard.

A caller is *restricted* when their profile carries ``is_restricted`` or their
role is one of the partner-side roles. Restricted callers only ever see or
touch rows of their own organization: single-row operations on another
organization's data are rejected with 403 before any write happens, and list
operations are silently scoped. Unrestricted callers operate unscoped.
"""
import logging
from typing import Iterable, List, Optional
from uuid import UUID

from ..errors import AccessMessages, AppError
from ..models.users import ADMIN_ROLES, RESTRICTED_ROLES
from ..observability import sitehub_metrics
from ..utils import to_uuid

logger = logging.getLogger(__name__)


class AuthContext:
    """Authorization facts about the caller, derived once per request."""

    def __init__(self, user_id, role: str, organization_id=None, is_restricted: bool = False,
                 restricted_org_id=None, full_name: str = None):
        self.user_id = user_id
        self.role = role
        self.organization_id = organization_id
        self.is_restricted = is_restricted
        self.restricted_org_id = restricted_org_id
        self.full_name = full_name

    @classmethod
    def from_profile(cls, profile) -> 'AuthContext':
        restricted = bool(getattr(profile, 'is_restricted', False)) or profile.role in RESTRICTED_ROLES
        return cls(
            user_id=profile.id,
            role=profile.role,
            organization_id=profile.organization_id,
            is_restricted=restricted,
            restricted_org_id=profile.organization_id if restricted else None,
            full_name=getattr(profile, 'full_name', None),
        )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def to_dict(self):
        return {
            'user_id': str(self.user_id),
            'role': self.role,
            'organization_id': str(self.organization_id) if self.organization_id else None,
            'is_restricted': self.is_restricted,
            'restricted_org_id': str(self.restricted_org_id) if self.restricted_org_id else None,
        }


def coerce_uuid(value, message: str = '올바르지 않은 ID 형식입니다.'):
    try:
        return to_uuid(value)
    except (ValueError, AttributeError, TypeError):
        raise AppError.validation(message)


def _same_id(left, right) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def deny(resource: str, message: str) -> AppError:
    sitehub_metrics.increment_guard_denial(resource)
    logger.info('Access guard denied %s', resource)
    return AppError.forbidden(message)


def require_restricted_org_id(auth: AuthContext) -> Optional[UUID]:
    """Return the caller's organization when restricted, None otherwise."""
    if not auth.is_restricted:
        return None
    if not auth.restricted_org_id:
        raise deny('organization', AccessMessages.NO_ORGANIZATION)
    return auth.restricted_org_id


def assert_org_access(auth: AuthContext, organization_id, message: str = AccessMessages.ORGANIZATION,
                      resource: str = 'organization') -> None:
    """
    Reject a restricted caller whose organization differs from the target's.

    A target without an organization counts as a different organization.
    """
    if not auth.is_restricted:
        return
    restricted_org_id = require_restricted_org_id(auth)
    if not _same_id(organization_id, restricted_org_id):
        raise deny(resource, message)


def scope_organization_id(auth: AuthContext, requested=None):
    """
    Organization to stamp on a created/updated row.

    Restricted callers always get their own organization; asking for another
    one is an authorization error.
    """
    if not auth.is_restricted:
        return coerce_uuid(requested, '올바르지 않은 조직 ID입니다.')
    restricted_org_id = require_restricted_org_id(auth)
    if requested and not _same_id(requested, restricted_org_id):
        raise deny('organization', AccessMessages.ORGANIZATION)
    return restricted_org_id


class OrgAccessGuard:
    """Row-level checks that need to look up the target rows."""

    def __init__(self, site_repo, profile_repo):
        self.site_repo = site_repo
        self.profile_repo = profile_repo

    def ensure_site_accessible(self, auth: AuthContext, site_id):
        """
        Load a site the caller may act on.

        Raises:
            AppError: 404 when the site does not exist, 403 when it belongs to
                another organization and the caller is restricted
        """
        site = self.site_repo.get_by_id(coerce_uuid(site_id))
        if not site:
            raise AppError.not_found(AccessMessages.SITE_NOT_FOUND)
        assert_org_access(auth, site.organization_id, AccessMessages.SITE, resource='site')
        return site

    def ensure_sites_accessible(self, auth: AuthContext, site_ids: Iterable) -> None:
        """Every id must exist and belong to the restricted caller's organization."""
        if not auth.is_restricted:
            return
        restricted_org_id = require_restricted_org_id(auth)
        site_ids = [coerce_uuid(site_id) for site_id in site_ids]
        unique_ids = {str(site_id) for site_id in site_ids}
        if not unique_ids:
            return
        sites = self.site_repo.get_by_ids(site_ids)
        if len(sites) != len(unique_ids):
            raise deny('site', AccessMessages.SITE)
        if any(not _same_id(site.organization_id, restricted_org_id) for site in sites):
            raise deny('site', AccessMessages.SITE)

    def ensure_user_accessible(self, auth: AuthContext, user_id):
        profile = self.profile_repo.get_by_id(coerce_uuid(user_id))
        if not profile:
            raise AppError.not_found(AccessMessages.USER_NOT_FOUND)
        assert_org_access(auth, profile.organization_id, AccessMessages.USER, resource='user')
        return profile

    def ensure_users_accessible(self, auth: AuthContext, user_ids: Iterable) -> None:
        if not auth.is_restricted:
            return
        restricted_org_id = require_restricted_org_id(auth)
        user_ids = [coerce_uuid(user_id) for user_id in user_ids]
        unique_ids = {str(user_id) for user_id in user_ids}
        if not unique_ids:
            return
        profiles = self.profile_repo.get_by_ids(user_ids)
        if len(profiles) != len(unique_ids):
            raise deny('user', AccessMessages.USER)
        if any(not _same_id(p.organization_id, restricted_org_id) for p in profiles):
            raise deny('user', AccessMessages.USER)

    def accessible_site_ids(self, auth: AuthContext) -> Optional[List[UUID]]:
        """Site ids a restricted caller may see, or None meaning "no restriction"."""
        if not auth.is_restricted:
            return None
        return self.site_repo.get_ids_for_organization(require_restricted_org_id(auth))

    def filter_records_by_site_org(self, auth: AuthContext, records: list, site_attr: str = 'site_id') -> list:
        if not auth.is_restricted:
            return records
        allowed = {str(site_id) for site_id in self.accessible_site_ids(auth)}
        return [r for r in records if str(getattr(r, site_attr, None)) in allowed]

    def ensure_site_in_scope(self, auth: AuthContext, site_id) -> None:
        """Optional site filter check: a restricted caller may only filter by own sites."""
        if site_id and auth.is_restricted:
            self.ensure_site_accessible(auth, site_id)
