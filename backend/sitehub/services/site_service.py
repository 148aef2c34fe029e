import logging
from datetime import date

from sqlalchemy.exc import IntegrityError

from ..errors import AdminErrors, AppError, from_integrity_error
from ..models.sites import ASSIGNMENT_ROLES, SITE_STATUSES
from ..utils import parse_date, utc_now
from .access_guard import scope_organization_id

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'name', 'address', 'description', 'status', 'start_date', 'end_date',
    'manager_name', 'construction_manager_phone', 'safety_manager_name',
    'safety_manager_phone', 'accommodation_name', 'accommodation_address',
    'work_process', 'work_section', 'component_name',
)

ASSIGNABLE_USER_ROLES = ['worker', 'site_manager', 'customer_manager']


class SiteService:
    """Admin site management and site assignments, scoped by the access guard."""

    def __init__(self, site_repo, assignment_repo, profile_repo, guard, audit_repo):
        self.site_repo = site_repo
        self.assignment_repo = assignment_repo
        self.profile_repo = profile_repo
        self.guard = guard
        self.audit_repo = audit_repo

    def _clean_payload(self, data: dict, creating: bool) -> dict:
        payload = {key: data[key] for key in EDITABLE_FIELDS if key in data}
        for key in ('name', 'address'):
            if key in payload and isinstance(payload[key], str):
                payload[key] = payload[key].strip()

        if creating:
            missing = [key for key in ('name', 'address', 'start_date') if not payload.get(key)]
            if missing:
                raise AppError.validation(AdminErrors.REQUIRED_FIELDS)
            payload.setdefault('status', 'active')
        else:
            for key in ('name', 'address', 'start_date'):
                if key in payload and not payload[key]:
                    raise AppError.validation(AdminErrors.REQUIRED_FIELDS)

        if 'status' in payload and payload['status'] not in SITE_STATUSES:
            raise AppError.validation('올바르지 않은 현장 상태입니다.')
        try:
            for key in ('start_date', 'end_date'):
                if key in payload:
                    payload[key] = parse_date(payload[key], key)
        except ValueError as e:
            raise AppError.validation(str(e))
        if payload.get('start_date') and payload.get('end_date') and payload['end_date'] < payload['start_date']:
            raise AppError.validation('종료일은 시작일 이후여야 합니다.')
        return payload

    def list_sites(self, auth, page=1, per_page=20, search=None, status=None,
                   sort_by='created_at', sort_order='desc', include_deleted=False):
        organization_id = scope_organization_id(auth)
        return self.site_repo.search(
            page=page,
            per_page=per_page,
            search=search,
            status=status,
            organization_id=organization_id,
            sort_by=sort_by,
            sort_order=sort_order,
            include_deleted=include_deleted,
        )

    def get_site(self, auth, site_id):
        return self.guard.ensure_site_accessible(auth, site_id)

    def create_site(self, auth, data: dict):
        payload = self._clean_payload(data, creating=True)
        payload['organization_id'] = scope_organization_id(auth, data.get('organization_id'))
        payload['created_by'] = auth.user_id
        site = self.site_repo.create(**payload)
        self.audit_repo.log_event(
            'CREATE', 'SITE', site.id,
            actor_id=auth.user_id,
            organization_id=site.organization_id,
            site_id=site.id,
        )
        return site

    def update_site(self, auth, site_id, data: dict):
        site = self.guard.ensure_site_accessible(auth, site_id)
        payload = self._clean_payload(data, creating=False)
        if 'organization_id' in data:
            payload['organization_id'] = scope_organization_id(auth, data.get('organization_id'))
        updated = self.site_repo.update(site.id, **payload)
        self.audit_repo.log_event(
            'UPDATE', 'SITE', site.id,
            actor_id=auth.user_id,
            organization_id=updated.organization_id,
            site_id=site.id,
            metadata={'fields': sorted(payload.keys())},
        )
        return updated

    def delete_sites(self, auth, site_ids):
        self.guard.ensure_sites_accessible(auth, site_ids)
        count = self.site_repo.soft_delete_many(site_ids, utc_now())
        self._log_bulk(auth, 'DELETE', site_ids)
        return count

    def restore_sites(self, auth, site_ids):
        self.guard.ensure_sites_accessible(auth, site_ids)
        count = self.site_repo.restore_many(site_ids)
        self._log_bulk(auth, 'RESTORE', site_ids)
        return count

    def purge_sites(self, auth, site_ids):
        self.guard.ensure_sites_accessible(auth, site_ids)
        try:
            count = self.site_repo.delete_many(site_ids)
        except IntegrityError as e:
            raise from_integrity_error(e)
        self._log_bulk(auth, 'PURGE', site_ids)
        return count

    def update_status(self, auth, site_ids, status: str):
        if status not in SITE_STATUSES:
            raise AppError.validation('올바르지 않은 현장 상태입니다.')
        self.guard.ensure_sites_accessible(auth, site_ids)
        count = self.site_repo.update_many(site_ids, status=status, updated_at=utc_now())
        self._log_bulk(auth, 'STATUS_CHANGE', site_ids, {'status': status})
        return count

    def _log_bulk(self, auth, event_type, site_ids, extra=None):
        metadata = {'site_ids': [str(s) for s in site_ids]}
        metadata.update(extra or {})
        self.audit_repo.log_event(
            event_type, 'SITE',
            actor_id=auth.user_id,
            organization_id=auth.restricted_org_id or auth.organization_id,
            metadata=metadata,
        )

    def list_assignments(self, auth, site_id):
        site = self.guard.ensure_site_accessible(auth, site_id)
        assignments = self.assignment_repo.get_active_for_site(site.id)
        if auth.is_restricted:
            assignments = [
                a for a in assignments
                if a.user and str(a.user.organization_id) == str(auth.restricted_org_id)
            ]
        return site, assignments

    def assign_user(self, auth, site_id, user_id, role: str = 'worker'):
        if role not in ASSIGNMENT_ROLES:
            raise AppError.validation('올바르지 않은 배정 역할입니다.')
        site = self.guard.ensure_site_accessible(auth, site_id)
        profile = self.guard.ensure_user_accessible(auth, user_id)
        if self.assignment_repo.get_active(site.id, profile.id):
            raise AppError.conflict('사용자가 이미 해당 현장에 배정되어 있습니다.')
        assignment = self.assignment_repo.create(
            site_id=site.id,
            user_id=profile.id,
            role=role,
            is_active=True,
            assigned_date=date.today(),
        )
        self.audit_repo.log_event(
            'ASSIGN', 'SITE_ASSIGNMENT', assignment.id,
            actor_id=auth.user_id,
            organization_id=site.organization_id,
            site_id=site.id,
            metadata={'user_id': str(profile.id), 'role': role},
        )
        return assignment

    def remove_assignment(self, auth, site_id, user_id):
        site = self.guard.ensure_site_accessible(auth, site_id)
        profile = self.guard.ensure_user_accessible(auth, user_id)
        assignment = self.assignment_repo.get_active(site.id, profile.id)
        if not assignment:
            raise AppError.not_found('배정 정보를 찾을 수 없습니다.')
        self.assignment_repo.update(assignment.id, is_active=False, unassigned_date=date.today())
        self.audit_repo.log_event(
            'UNASSIGN', 'SITE_ASSIGNMENT', assignment.id,
            actor_id=auth.user_id,
            organization_id=site.organization_id,
            site_id=site.id,
            metadata={'user_id': str(profile.id)},
        )
        return assignment

    def update_assignment_role(self, auth, site_id, user_id, role: str):
        if role not in ASSIGNMENT_ROLES:
            raise AppError.validation('올바르지 않은 배정 역할입니다.')
        site = self.guard.ensure_site_accessible(auth, site_id)
        profile = self.guard.ensure_user_accessible(auth, user_id)
        assignment = self.assignment_repo.get_active(site.id, profile.id)
        if not assignment:
            raise AppError.not_found('배정 정보를 찾을 수 없습니다.')
        return self.assignment_repo.update(assignment.id, role=role)

    def search_available_users(self, auth, site_id, search=None, role=None, limit=50):
        site = self.guard.ensure_site_accessible(auth, site_id)
        roles = [role] if role in ASSIGNABLE_USER_ROLES else ASSIGNABLE_USER_ROLES
        organization_id = scope_organization_id(auth)
        return self.profile_repo.get_available_for_site(
            site.id, roles, search=search, organization_id=organization_id, limit=limit
        )
