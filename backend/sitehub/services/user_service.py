import logging

from sqlalchemy.exc import IntegrityError
from werkzeug.security import generate_password_hash

from ..errors import AccessMessages, AdminErrors, AppError, from_integrity_error
from ..models.users import ADMIN_ROLES, ROLES, USER_STATUSES
from ..utils import generate_temp_password
from .access_guard import deny, scope_organization_id
from .validation import require_valid, validate_email, validate_korean_phone_number

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('full_name', 'email', 'phone', 'role', 'status', 'organization_id', 'is_restricted')


def hash_password(password: str) -> str:
    return generate_password_hash(password, method='pbkdf2:sha256')


class UserService:
    """Admin user (profile) management."""

    def __init__(self, profile_repo, assignment_repo, report_repo, guard, audit_repo):
        self.profile_repo = profile_repo
        self.assignment_repo = assignment_repo
        self.report_repo = report_repo
        self.guard = guard
        self.audit_repo = audit_repo

    def _check_role_grant(self, auth, role: str):
        if role not in ROLES:
            raise AppError.validation('올바르지 않은 역할입니다.')
        if role == 'system_admin' and auth.role != 'system_admin':
            raise deny('user', AdminErrors.FORBIDDEN)
        if auth.is_restricted and role in ADMIN_ROLES:
            raise deny('user', AccessMessages.USER)

    def _ensure_not_system_admin(self, auth, profiles):
        if auth.role != 'system_admin' and any(p.role == 'system_admin' for p in profiles):
            raise deny('user', AdminErrors.FORBIDDEN)

    def _normalize(self, auth, data: dict, creating: bool) -> dict:
        payload = {key: data[key] for key in PROFILE_FIELDS if key in data}

        if creating or 'email' in payload:
            payload['email'] = require_valid(validate_email(payload.get('email')))['normalized']
        if creating or 'full_name' in payload:
            name = (payload.get('full_name') or '').strip()
            if not name:
                raise AppError.validation('이름은 필수입니다.')
            payload['full_name'] = name
        if payload.get('phone'):
            payload['phone'] = require_valid(validate_korean_phone_number(payload['phone']))['formatted']
        if 'role' in payload or creating:
            payload['role'] = payload.get('role') or 'worker'
            self._check_role_grant(auth, payload['role'])
        if 'status' in payload and payload['status'] not in USER_STATUSES:
            raise AppError.validation('올바르지 않은 사용자 상태입니다.')
        if 'is_restricted' in payload and auth.is_restricted:
            payload.pop('is_restricted')
        if creating or 'organization_id' in payload:
            payload['organization_id'] = scope_organization_id(auth, payload.get('organization_id'))
        return payload

    def list_users(self, auth, page=1, per_page=20, search=None, role=None, status=None):
        return self.profile_repo.search(
            page=page,
            per_page=per_page,
            search=search,
            role=role,
            status=status,
            organization_id=scope_organization_id(auth),
        )

    def get_user_detail(self, auth, user_id):
        profile = self.guard.ensure_user_accessible(auth, user_id)
        assignments = self.assignment_repo.get_active_for_user(profile.id)
        if auth.is_restricted:
            assignments = [
                a for a in assignments
                if a.site and str(a.site.organization_id) == str(auth.restricted_org_id)
            ]
        stats = self.report_repo.get_report_stats_for_user(profile.id)
        return profile, assignments, stats

    def create_user(self, auth, data: dict):
        payload = self._normalize(auth, data, creating=True)
        if self.profile_repo.get_by_email(payload['email']):
            raise AppError.conflict('이미 존재하는 이메일입니다.')

        temp_password = generate_temp_password()
        payload['password_hash'] = hash_password(temp_password)
        payload.setdefault('status', 'active')
        try:
            profile = self.profile_repo.create(**payload)
        except IntegrityError as e:
            raise from_integrity_error(e)

        self.audit_repo.log_event(
            'CREATE', 'USER', profile.id,
            actor_id=auth.user_id,
            organization_id=profile.organization_id,
            metadata={'role': profile.role},
        )
        return profile, temp_password

    def update_user(self, auth, user_id, data: dict):
        profile = self.guard.ensure_user_accessible(auth, user_id)
        payload = self._normalize(auth, data, creating=False)
        if 'role' in payload and str(profile.id) == str(auth.user_id) and payload['role'] != profile.role:
            raise AppError.validation('자신의 역할은 변경할 수 없습니다.')
        self._ensure_not_system_admin(auth, [profile])
        if payload.get('email'):
            existing = self.profile_repo.get_by_email(payload['email'])
            if existing and str(existing.id) != str(profile.id):
                raise AppError.conflict('이미 존재하는 이메일입니다.')
        try:
            updated = self.profile_repo.update(profile.id, **payload)
        except IntegrityError as e:
            raise from_integrity_error(e)
        self.audit_repo.log_event(
            'UPDATE', 'USER', profile.id,
            actor_id=auth.user_id,
            organization_id=updated.organization_id,
            metadata={'fields': sorted(payload.keys())},
        )
        return updated

    def delete_users(self, auth, user_ids):
        self.guard.ensure_users_accessible(auth, user_ids)
        if any(str(uid) == str(auth.user_id) for uid in user_ids):
            raise AppError.validation('자기 자신은 삭제할 수 없습니다.')
        profiles = self.profile_repo.get_by_ids(user_ids)
        if any(p.role in ADMIN_ROLES for p in profiles):
            raise AppError.forbidden('관리자 계정은 삭제할 수 없습니다.')
        try:
            count = self.profile_repo.delete_many([p.id for p in profiles])
        except IntegrityError as e:
            raise from_integrity_error(e)
        self._log_bulk(auth, 'DELETE', user_ids)
        return count

    def update_roles(self, auth, user_ids, role: str):
        self._check_role_grant(auth, role)
        self.guard.ensure_users_accessible(auth, user_ids)
        if any(str(uid) == str(auth.user_id) for uid in user_ids):
            raise AppError.validation('자신의 역할은 변경할 수 없습니다.')
        self._ensure_not_system_admin(auth, self.profile_repo.get_by_ids(user_ids))
        count = self.profile_repo.update_many(user_ids, role=role)
        self._log_bulk(auth, 'ROLE_CHANGE', user_ids, {'role': role})
        return count

    def update_status(self, auth, user_ids, status: str):
        if status not in USER_STATUSES:
            raise AppError.validation('올바르지 않은 사용자 상태입니다.')
        self.guard.ensure_users_accessible(auth, user_ids)
        if status != 'active' and any(str(uid) == str(auth.user_id) for uid in user_ids):
            raise AppError.validation('자신의 계정은 비활성화할 수 없습니다.')
        self._ensure_not_system_admin(auth, self.profile_repo.get_by_ids(user_ids))
        count = self.profile_repo.update_many(user_ids, status=status)
        self._log_bulk(auth, 'STATUS_CHANGE', user_ids, {'status': status})
        return count

    def reset_password(self, auth, user_id):
        profile = self.guard.ensure_user_accessible(auth, user_id)
        self._ensure_not_system_admin(auth, [profile])
        temp_password = generate_temp_password()
        self.profile_repo.update(profile.id, password_hash=hash_password(temp_password))
        self.audit_repo.log_event(
            'RESET_PASSWORD', 'USER', profile.id,
            actor_id=auth.user_id,
            organization_id=profile.organization_id,
        )
        return temp_password

    def _log_bulk(self, auth, event_type, user_ids, extra=None):
        metadata = {'user_ids': [str(u) for u in user_ids]}
        metadata.update(extra or {})
        self.audit_repo.log_event(
            event_type, 'USER',
            actor_id=auth.user_id,
            organization_id=auth.restricted_org_id or auth.organization_id,
            metadata=metadata,
        )
