import logging
import secrets
import string
from datetime import date

from sqlalchemy.exc import IntegrityError

from ..errors import AccessMessages, AdminErrors, AppError, from_integrity_error
from ..models.materials import REQUEST_PRIORITIES, REQUEST_STATUSES
from ..utils import parse_date, utc_now
from .access_guard import coerce_uuid, deny

logger = logging.getLogger(__name__)

REQUEST_NUMBER_ATTEMPTS = 5
APPROVED_SUFFIX = ' (관리자 승인)'
REJECTED_SUFFIX = ' (관리자 거부)'


def generate_request_number(day: date, sequence: int = None) -> str:
    """MR-YYYYMMDD-XXXX; the suffix is the day's sequence or a random token."""
    if sequence is not None:
        suffix = f'{sequence:04d}'
    else:
        suffix = ''.join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(4))
    return f"MR-{day.strftime('%Y%m%d')}-{suffix}"


class MaterialService:
    """Materials catalog and site material requests."""

    def __init__(self, material_repo, request_repo, assignment_repo, guard, notifier, audit_repo):
        self.material_repo = material_repo
        self.request_repo = request_repo
        self.assignment_repo = assignment_repo
        self.guard = guard
        self.notifier = notifier
        self.audit_repo = audit_repo

    def list_materials(self, search=None):
        return self.material_repo.get_active(search)

    def create_material(self, auth, data: dict):
        name = (data.get('name') or '').strip()
        if not name:
            raise AppError.validation('자재명은 필수입니다.')
        code = (data.get('code') or '').strip() or None
        if code and self.material_repo.get_by_code(code):
            raise AppError.conflict('이미 존재하는 자재 코드입니다.')
        try:
            material = self.material_repo.create(
                name=name,
                code=code,
                specification=data.get('specification'),
                unit=data.get('unit') or 'ea',
            )
        except IntegrityError as e:
            raise from_integrity_error(e)
        self.audit_repo.log_event('CREATE', 'MATERIAL', material.id, actor_id=auth.user_id)
        return material

    def _next_request_number(self, today: date) -> str:
        candidate = generate_request_number(today, self.request_repo.count_for_day(today) + 1)
        attempts = 0
        while self.request_repo.request_number_exists(candidate):
            attempts += 1
            if attempts >= REQUEST_NUMBER_ATTEMPTS:
                raise AppError.conflict('요청 번호를 생성할 수 없습니다. 다시 시도해주세요.')
            candidate = generate_request_number(today)
        return candidate

    def _normalize_items(self, items) -> list:
        lines = []
        for item in items or []:
            material_id = coerce_uuid(item.get('material_id'), '올바르지 않은 자재 ID입니다.')
            try:
                quantity = float(item.get('requested_quantity', item.get('quantity')))
            except (TypeError, ValueError):
                raise AppError.validation('요청 수량은 숫자여야 합니다.')
            if not material_id:
                raise AppError.validation(AdminErrors.REQUIRED_FIELDS)
            if quantity <= 0:
                raise AppError.validation('요청 수량은 0보다 커야 합니다.')
            lines.append({'material_id': material_id, 'requested_quantity': quantity, 'notes': item.get('notes')})
        if not lines:
            raise AppError.validation('요청할 자재를 하나 이상 입력해주세요.')

        known = {str(m.id) for m in self.material_repo.get_by_ids([line['material_id'] for line in lines])}
        if any(str(line['material_id']) not in known for line in lines):
            raise AppError.not_found('자재 정보를 찾을 수 없습니다.')
        return lines

    def create_request(self, auth, data: dict):
        if not data.get('site_id'):
            raise AppError.validation(AdminErrors.REQUIRED_FIELDS)
        site = self.guard.ensure_site_accessible(auth, data['site_id'])
        if not auth.is_admin and not self.assignment_repo.get_active(site.id, auth.user_id):
            raise deny('material_request', AccessMessages.SITE)

        priority = data.get('priority') or 'normal'
        if priority not in REQUEST_PRIORITIES:
            raise AppError.validation('올바르지 않은 우선순위입니다.')
        try:
            needed_by = parse_date(data.get('needed_by'), 'needed_by')
        except ValueError as e:
            raise AppError.validation(str(e))
        items = self._normalize_items(data.get('items'))

        try:
            request = self.request_repo.create_with_items(
                items,
                request_number=self._next_request_number(date.today()),
                site_id=site.id,
                requested_by=auth.user_id,
                priority=priority,
                status='pending',
                needed_by=needed_by,
                notes=data.get('notes'),
            )
        except IntegrityError as e:
            self.request_repo.rollback()
            raise from_integrity_error(e)
        logger.info('Material request %s created for site %s', request.request_number, site.id)
        return request

    def list_my_requests(self, auth, page=1, per_page=20, status=None):
        return self.request_repo.search(page=page, per_page=per_page, status=status, requested_by=auth.user_id)

    def list_requests(self, auth, page=1, per_page=20, search=None, site_id=None,
                      priority=None, status=None, material_name=None):
        if status and status not in REQUEST_STATUSES:
            raise AppError.validation('올바르지 않은 요청 상태입니다.')
        self.guard.ensure_site_in_scope(auth, site_id)
        return self.request_repo.search(
            page=page,
            per_page=per_page,
            search=search,
            site_id=coerce_uuid(site_id),
            site_ids=self.guard.accessible_site_ids(auth),
            priority=priority,
            status=status,
            material_name=material_name,
        )

    def process_requests(self, auth, request_ids, approve: bool, comments: str = None):
        """
        Bulk approve (``approved``) or reject (``cancelled``) pending requests.

        Returns:
            The updated MaterialRequest rows
        """
        ids = [coerce_uuid(rid) for rid in request_ids or []]
        if not ids:
            raise AppError.validation('처리할 요청을 선택해주세요.')
        requests = self.request_repo.get_by_ids(ids)
        if len(requests) != len({str(i) for i in ids}):
            raise AppError.not_found('자재 요청을 찾을 수 없습니다.')
        self.guard.ensure_sites_accessible(auth, [r.site_id for r in requests])
        if any(r.status != 'pending' for r in requests):
            raise AppError.conflict('대기 중인 요청만 처리할 수 있습니다.')

        suffix = APPROVED_SUFFIX if approve else REJECTED_SUFFIX
        now = utc_now()
        for request in requests:
            request.status = 'approved' if approve else 'cancelled'
            request.approved_by = auth.user_id
            request.approved_at = now
            if comments:
                request.notes = f'{comments.strip()}{suffix}'
        self.request_repo.commit()

        self.audit_repo.log_event(
            'APPROVE' if approve else 'REJECT', 'MATERIAL_REQUEST',
            actor_id=auth.user_id,
            organization_id=auth.restricted_org_id or auth.organization_id,
            metadata={'request_ids': [str(r.id) for r in requests]},
        )
        self.notifier.material_requests_processed(requests, approve)
        return requests
