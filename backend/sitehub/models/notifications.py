import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now
from .types import JSONType


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    type = db.Column(db.Text, nullable=False, default='info')  # info, success, warning, error
    title = db.Column(db.Text, nullable=False)
    message = db.Column(db.Text, nullable=False)
    related_entity_type = db.Column(db.Text, nullable=True)
    related_entity_id = db.Column(UUID(as_uuid=True), nullable=True)
    action_url = db.Column(db.Text, nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notification_metadata = db.Column('metadata', JSONType, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index('ix_notifications_user_created', 'user_id', 'created_at'),
        Index('ix_notifications_user_unread', 'user_id', 'is_read'),
    )
