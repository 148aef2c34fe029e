import logging

from ..errors import AccessMessages, AppError
from ..models.documents import DOCUMENT_TYPES, PERMISSION_TYPES
from ..utils import as_utc, parse_datetime, utc_now
from .access_guard import assert_org_access, coerce_uuid, deny
from .validation import MAX_DOCUMENT_BYTES, require_valid, validate_document_metadata

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('title', 'description', 'document_type', 'folder_path', 'is_public')
LIST_SCOPES = ('personal', 'shared', 'all')


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


class DocumentService:
    """Document storage, visibility and sharing."""

    def __init__(self, document_repo, assignment_repo, guard, notifier, audit_repo,
                 max_bytes: int = MAX_DOCUMENT_BYTES):
        self.document_repo = document_repo
        self.assignment_repo = assignment_repo
        self.guard = guard
        self.notifier = notifier
        self.audit_repo = audit_repo
        self.max_bytes = max_bytes

    def _unrestricted_admin(self, auth) -> bool:
        return auth.is_admin and not auth.is_restricted

    def _active_permission(self, document, auth):
        permission = self.document_repo.get_permission(document.id, auth.user_id)
        if permission is None:
            return None
        if permission.expires_at and as_utc(permission.expires_at) <= utc_now():
            return None
        return permission

    def _visible_site_ids(self, auth):
        if auth.is_restricted:
            return self.guard.accessible_site_ids(auth)
        return self.assignment_repo.get_site_ids_for_user(auth.user_id)

    def _can_view(self, auth, document) -> bool:
        if self._unrestricted_admin(auth):
            return True
        if str(document.owner_id) == str(auth.user_id) or document.is_public:
            return True
        if self._active_permission(document, auth):
            return True
        if auth.is_restricted and str(document.organization_id) == str(auth.restricted_org_id):
            return True
        if document.site_id:
            return str(document.site_id) in {str(s) for s in self._visible_site_ids(auth) or []}
        return False

    def _ensure_admin_scope(self, auth, document):
        assert_org_access(auth, document.organization_id, AccessMessages.DOCUMENT, resource='document')

    def _load(self, document_id):
        document = self.document_repo.get_by_id(coerce_uuid(document_id))
        if not document:
            raise AppError.not_found('문서를 찾을 수 없습니다.')
        return document

    def upload(self, auth, file_bytes: bytes, file_name: str, mime_type: str, form: dict):
        title = (form.get('title') or '').strip()
        require_valid(validate_document_metadata(title, mime_type, len(file_bytes or b''), self.max_bytes))

        document_type = form.get('document_type') or 'personal'
        if document_type not in DOCUMENT_TYPES:
            raise AppError.validation('올바르지 않은 문서 유형입니다.')

        organization_id = auth.restricted_org_id or auth.organization_id
        site_id = None
        if form.get('site_id'):
            site = self.guard.ensure_site_accessible(auth, form['site_id'])
            if not auth.is_admin and not auth.is_restricted \
                    and not self.assignment_repo.get_active(site.id, auth.user_id):
                raise deny('document', AccessMessages.SITE)
            site_id, organization_id = site.id, site.organization_id

        document = self.document_repo.create_with_file(
            file_bytes,
            title=title,
            description=form.get('description'),
            file_name=file_name,
            file_size=len(file_bytes),
            mime_type=mime_type,
            document_type=document_type,
            folder_path=form.get('folder_path'),
            owner_id=auth.user_id,
            organization_id=organization_id,
            site_id=site_id,
            is_public=_as_bool(form.get('is_public', False)),
        )
        logger.info('Document %s uploaded by %s (%d bytes)', document.id, auth.user_id, len(file_bytes))
        return document

    def list_documents(self, auth, scope='all', page=1, per_page=20, search=None,
                       site_id=None, document_type=None):
        if scope not in LIST_SCOPES:
            raise AppError.validation('올바르지 않은 문서 목록 유형입니다.')
        unrestricted = self._unrestricted_admin(auth)
        return self.document_repo.search(
            user_id=auth.user_id,
            scope=scope,
            page=page,
            per_page=per_page,
            search=search,
            site_id=coerce_uuid(site_id),
            document_type=document_type,
            organization_id=auth.restricted_org_id if auth.is_restricted else None,
            visible_site_ids=None if unrestricted else self._visible_site_ids(auth),
            unrestricted=unrestricted,
        )

    def get_document(self, auth, document_id):
        document = self._load(document_id)
        if not self._can_view(auth, document):
            raise deny('document', AccessMessages.DOCUMENT)
        return document

    def get_file(self, auth, document_id):
        """
        Returns:
            (document, document_file) tuple for a download
        """
        document = self.get_document(auth, document_id)
        stored = self.document_repo.get_file(document.id)
        if not stored:
            raise AppError.not_found('파일을 찾을 수 없습니다.')
        return document, stored

    def update_document(self, auth, document_id, data: dict):
        document = self._load(document_id)
        if str(document.owner_id) != str(auth.user_id):
            permission = self._active_permission(document, auth)
            if auth.is_admin:
                self._ensure_admin_scope(auth, document)
            elif not permission or permission.permission_type not in ('edit', 'admin'):
                raise deny('document', AccessMessages.DOCUMENT)

        payload = {key: data[key] for key in UPDATABLE_FIELDS if key in data}
        if 'title' in payload:
            payload['title'] = (payload['title'] or '').strip()
            if not payload['title']:
                raise AppError.validation('문서 제목은 필수입니다.')
        if 'document_type' in payload and payload['document_type'] not in DOCUMENT_TYPES:
            raise AppError.validation('올바르지 않은 문서 유형입니다.')
        if 'is_public' in payload:
            payload['is_public'] = _as_bool(payload['is_public'])
        return self.document_repo.update(document.id, **payload)

    def delete_document(self, auth, document_id):
        document = self._load(document_id)
        if str(document.owner_id) != str(auth.user_id):
            if not auth.is_admin:
                raise deny('document', AccessMessages.DOCUMENT)
            self._ensure_admin_scope(auth, document)
        document_id, organization_id, title = document.id, document.organization_id, document.title
        self.document_repo.delete(document_id)
        self.audit_repo.log_event(
            'DELETE', 'DOCUMENT', document_id,
            actor_id=auth.user_id,
            organization_id=organization_id,
            metadata={'title': title},
        )
        return True

    def share_document(self, auth, document_id, user_ids, permission_type='view', expires_at=None):
        document = self._load(document_id)
        if str(document.owner_id) != str(auth.user_id):
            permission = self._active_permission(document, auth)
            if auth.is_admin:
                self._ensure_admin_scope(auth, document)
            elif not permission or permission.permission_type != 'admin':
                raise deny('document', AccessMessages.DOCUMENT)

        if permission_type not in PERMISSION_TYPES:
            raise AppError.validation('올바르지 않은 권한 유형입니다.')
        recipients = [coerce_uuid(uid) for uid in user_ids or []]
        recipients = [uid for uid in dict.fromkeys(recipients) if uid and str(uid) != str(document.owner_id)]
        if not recipients:
            raise AppError.validation('공유할 사용자를 선택해주세요.')
        self.guard.ensure_users_accessible(auth, recipients)
        try:
            expires = parse_datetime(expires_at, 'expires_at')
        except ValueError as e:
            raise AppError.validation(str(e))
        if expires and expires <= utc_now():
            raise AppError.validation('만료일은 현재 시각 이후여야 합니다.')

        permissions = self.document_repo.upsert_permissions(
            document.id, recipients, permission_type, auth.user_id, expires
        )
        self.audit_repo.log_event(
            'SHARE', 'DOCUMENT', document.id,
            actor_id=auth.user_id,
            organization_id=document.organization_id,
            metadata={'user_ids': [str(uid) for uid in recipients], 'permission_type': permission_type},
        )
        self.notifier.document_shared(document, recipients, auth.full_name or '사용자')
        return permissions

    def shared_with_me(self, auth):
        return self.document_repo.get_shared_with(auth.user_id)
