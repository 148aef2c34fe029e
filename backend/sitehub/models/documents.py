import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now
from .types import BinaryType

DOCUMENT_TYPES = ('personal', 'shared', 'blueprint', 'report', 'certificate', 'other')
PERMISSION_TYPES = ('view', 'edit', 'admin')


class Document(db.Model):
    __tablename__ = 'documents'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    file_name = db.Column(db.Text, nullable=False)
    file_size = db.Column(db.Integer, nullable=False)
    mime_type = db.Column(db.Text, nullable=False)
    document_type = db.Column(db.Text, nullable=False, default='personal')
    folder_path = db.Column(db.Text, nullable=True)
    owner_id = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=False)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=True)
    site_id = db.Column(UUID(as_uuid=True), db.ForeignKey('sites.id'), nullable=True)
    is_public = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    owner = db.relationship('Profile', foreign_keys=[owner_id])
    site = db.relationship('Site')
    file = db.relationship('DocumentFile', backref='document', uselist=False, cascade='all, delete-orphan')
    permissions = db.relationship('DocumentPermission', backref='document', cascade='all, delete-orphan')

    __table_args__ = (
        Index('ix_documents_owner_id', 'owner_id'),
        Index('ix_documents_site_id', 'site_id'),
        Index('ix_documents_organization_id', 'organization_id'),
    )


class DocumentFile(db.Model):
    __tablename__ = 'document_files'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    document_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey('documents.id', ondelete='CASCADE'),
        unique=True,
        nullable=False
    )
    content_type = db.Column(db.Text, nullable=False)
    file_size_bytes = db.Column(db.Integer, nullable=False)
    file_bytes = db.Column(BinaryType, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)


class DocumentPermission(db.Model):
    __tablename__ = 'document_permissions'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    document_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey('documents.id', ondelete='CASCADE'),
        nullable=False
    )
    user_id = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=False)
    permission_type = db.Column(db.Text, nullable=False, default='view')
    granted_by = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        db.UniqueConstraint('document_id', 'user_id', name='uq_document_permissions_document_user'),
        Index('ix_document_permissions_user_id', 'user_id'),
    )
