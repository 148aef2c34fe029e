from typing import Optional, List, Dict, Any
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.orm import joinedload
from .base import BaseRepository
from ..models.documents import Document, DocumentFile, DocumentPermission
from ..utils import utc_now


class DocumentRepository(BaseRepository[Document]):
    """Repository for documents, their stored bytes and share permissions."""

    def __init__(self):
        super().__init__(Document)

    def create_with_file(self, file_bytes: bytes, **fields) -> Document:
        """
        Create a document row and its file payload in one transaction.

        Args:
            file_bytes: Raw uploaded content
            **fields: Document columns

        Returns:
            The created Document instance
        """
        document = Document(**fields)
        document.file = DocumentFile(
            content_type=fields.get('mime_type') or 'application/octet-stream',
            file_size_bytes=len(file_bytes),
            file_bytes=file_bytes,
        )
        self.add(document)
        self.commit()
        return document

    def get_file(self, document_id: UUID) -> Optional[DocumentFile]:
        return self.session.query(DocumentFile).filter_by(document_id=document_id).first()

    def _shared_ids_query(self, user_id: UUID):
        now = utc_now()
        return self.session.query(DocumentPermission.document_id).filter(
            DocumentPermission.user_id == user_id,
            or_(DocumentPermission.expires_at.is_(None), DocumentPermission.expires_at > now),
        )

    def search(
        self,
        user_id: UUID,
        scope: str = 'all',
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
        site_id: Optional[UUID] = None,
        document_type: Optional[str] = None,
        organization_id: Optional[UUID] = None,
        visible_site_ids: Optional[List[UUID]] = None,
        unrestricted: bool = False,
    ) -> Dict[str, Any]:
        """
        Paginated documents visible to a user.

        Args:
            user_id: The caller's profile UUID
            scope: 'personal' (owned), 'shared' (public or shared with the caller) or 'all'
            search: Substring matched against title and file name
            site_id: Exact site filter
            document_type: Exact document type filter
            organization_id: Every document of this organization (restricted callers)
            visible_site_ids: Sites whose documents the caller may see
            unrestricted: Skip the visibility predicate (unrestricted admins)

        Returns:
            Pagination dict (see BaseRepository.paginate)
        """
        query = self.session.query(Document).options(joinedload(Document.owner))
        shared_ids = self._shared_ids_query(user_id)

        if scope == 'personal':
            query = query.filter(Document.owner_id == user_id)
        elif scope == 'shared':
            query = query.filter(
                Document.owner_id != user_id,
                or_(Document.is_public.is_(True), Document.id.in_(shared_ids)),
            )
        elif not unrestricted and not organization_id:
            clauses = [
                Document.owner_id == user_id,
                Document.is_public.is_(True),
                Document.id.in_(shared_ids),
            ]
            if visible_site_ids:
                clauses.append(Document.site_id.in_(visible_site_ids))
            query = query.filter(or_(*clauses))

        if organization_id:
            query = query.filter(Document.organization_id == organization_id)
        if search:
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(Document.title.ilike(pattern), Document.file_name.ilike(pattern)))
        if site_id:
            query = query.filter(Document.site_id == site_id)
        if document_type:
            query = query.filter(Document.document_type == document_type)

        query = query.order_by(Document.created_at.desc())
        return self.paginate(query, page, per_page)

    def get_permission(self, document_id: UUID, user_id: UUID) -> Optional[DocumentPermission]:
        return self.session.query(DocumentPermission).filter_by(
            document_id=document_id,
            user_id=user_id,
        ).first()

    def upsert_permissions(
        self,
        document_id: UUID,
        user_ids: List[UUID],
        permission_type: str,
        granted_by: UUID,
        expires_at=None,
    ) -> List[DocumentPermission]:
        """
        Grant or refresh one permission row per user, committing once.

        Args:
            document_id: The shared document
            user_ids: Recipients
            permission_type: view, edit or admin
            granted_by: Profile granting access
            expires_at: Optional expiry timestamp

        Returns:
            The created or updated DocumentPermission rows
        """
        existing = {
            p.user_id: p
            for p in self.session.query(DocumentPermission).filter(
                DocumentPermission.document_id == document_id,
                DocumentPermission.user_id.in_(user_ids),
            ).all()
        }
        result = []
        for user_id in user_ids:
            permission = existing.get(user_id)
            if permission is None:
                permission = DocumentPermission(document_id=document_id, user_id=user_id)
                self.session.add(permission)
            permission.permission_type = permission_type
            permission.granted_by = granted_by
            permission.expires_at = expires_at
            result.append(permission)
        self.commit()
        return result

    def get_shared_with(self, user_id: UUID) -> List[Any]:
        """
        Documents explicitly shared with a user, with the permission that grants access.

        Returns:
            List of (Document, DocumentPermission) tuples, newest share first
        """
        now = utc_now()
        return self.session.query(Document, DocumentPermission).join(
            DocumentPermission, DocumentPermission.document_id == Document.id
        ).filter(
            DocumentPermission.user_id == user_id,
            or_(DocumentPermission.expires_at.is_(None), DocumentPermission.expires_at > now),
        ).order_by(DocumentPermission.created_at.desc()).all()
