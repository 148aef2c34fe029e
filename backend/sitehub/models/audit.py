import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now
from .types import JSONType


class AuditEvent(db.Model):
    __tablename__ = 'audit_events'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    actor_user_id = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=True)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=True)
    event_type = db.Column(db.Text, nullable=False)
    entity_type = db.Column(db.Text, nullable=False)
    entity_id = db.Column(UUID(as_uuid=True), nullable=True)
    site_id = db.Column(UUID(as_uuid=True), db.ForeignKey('sites.id', ondelete='SET NULL'), nullable=True)
    event_metadata = db.Column('metadata', JSONType, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index('ix_audit_events_entity', 'entity_type', 'entity_id'),
        Index('ix_audit_events_org_time', 'organization_id', 'created_at'),
    )
