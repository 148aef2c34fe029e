import logging

from sqlalchemy.exc import IntegrityError

from ..errors import AccessMessages, AdminErrors, AppError, from_integrity_error
from .access_guard import assert_org_access, coerce_uuid, deny, require_restricted_org_id
from .validation import require_valid, validate_business_registration_number, validate_korean_phone_number

logger = logging.getLogger(__name__)

ORGANIZATION_TYPES = ('head_office', 'branch_office', 'partner')
EDITABLE_FIELDS = ('name', 'type', 'business_registration_number', 'representative_name', 'phone', 'address')


class OrganizationService:
    def __init__(self, organization_repo, audit_repo):
        self.organization_repo = organization_repo
        self.audit_repo = audit_repo

    def _clean(self, data: dict, creating: bool) -> dict:
        payload = {key: data[key] for key in EDITABLE_FIELDS if key in data}
        if creating or 'name' in payload:
            payload['name'] = (payload.get('name') or '').strip()
            if not payload['name']:
                raise AppError.validation(AdminErrors.REQUIRED_FIELDS)
        if 'type' in payload and payload['type'] not in ORGANIZATION_TYPES:
            raise AppError.validation('올바르지 않은 조직 유형입니다.')
        if payload.get('business_registration_number'):
            result = require_valid(validate_business_registration_number(
                payload['business_registration_number'], check_checksum=True
            ))
            payload['business_registration_number'] = result['digits']
        if payload.get('phone'):
            payload['phone'] = require_valid(validate_korean_phone_number(payload['phone']))['formatted']
        return payload

    def _load(self, auth, organization_id):
        organization = self.organization_repo.get_by_id(coerce_uuid(organization_id))
        if not organization:
            raise AppError.not_found('조직 정보를 찾을 수 없습니다.')
        assert_org_access(auth, organization.id)
        return organization

    def list_organizations(self, auth, include_inactive=True):
        organization_id = require_restricted_org_id(auth)
        return self.organization_repo.list_scoped(organization_id=organization_id, include_inactive=include_inactive)

    def get_organization(self, auth, organization_id):
        return self._load(auth, organization_id)

    def create_organization(self, auth, data: dict):
        if auth.is_restricted:
            raise deny('organization', AccessMessages.ORGANIZATION)
        payload = self._clean(data, creating=True)
        number = payload.get('business_registration_number')
        if number and self.organization_repo.get_by_registration_number(number):
            raise AppError.conflict('이미 등록된 사업자등록번호입니다.')
        try:
            organization = self.organization_repo.create(**payload)
        except IntegrityError as e:
            raise from_integrity_error(e)
        self.audit_repo.log_event(
            'CREATE', 'ORGANIZATION', organization.id,
            actor_id=auth.user_id,
            organization_id=organization.id,
        )
        return organization

    def update_organization(self, auth, organization_id, data: dict):
        organization = self._load(auth, organization_id)
        payload = self._clean(data, creating=False)
        if auth.is_restricted:
            payload.pop('type', None)
        number = payload.get('business_registration_number')
        if number:
            existing = self.organization_repo.get_by_registration_number(number)
            if existing and str(existing.id) != str(organization.id):
                raise AppError.conflict('이미 등록된 사업자등록번호입니다.')
        try:
            updated = self.organization_repo.update(organization.id, **payload)
        except IntegrityError as e:
            raise from_integrity_error(e)
        self.audit_repo.log_event(
            'UPDATE', 'ORGANIZATION', organization.id,
            actor_id=auth.user_id,
            organization_id=organization.id,
            metadata={'fields': sorted(payload.keys())},
        )
        return updated

    def set_active(self, auth, organization_id, is_active: bool):
        if auth.is_restricted:
            raise deny('organization', AccessMessages.ORGANIZATION)
        organization = self._load(auth, organization_id)
        updated = self.organization_repo.set_active(organization.id, is_active)
        self.audit_repo.log_event(
            'ACTIVATE' if is_active else 'DEACTIVATE', 'ORGANIZATION', organization.id,
            actor_id=auth.user_id,
            organization_id=organization.id,
        )
        return updated
