import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now

REQUEST_PRIORITIES = ('low', 'normal', 'high', 'urgent')
REQUEST_STATUSES = ('pending', 'approved', 'ordered', 'delivered', 'cancelled')


class Material(db.Model):
    __tablename__ = 'materials'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = db.Column(db.Text, unique=True, nullable=True)
    name = db.Column(db.Text, nullable=False)
    specification = db.Column(db.Text, nullable=True)
    unit = db.Column(db.Text, nullable=False, default='ea')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class MaterialRequest(db.Model):
    __tablename__ = 'material_requests'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_number = db.Column(db.Text, unique=True, nullable=False)
    site_id = db.Column(UUID(as_uuid=True), db.ForeignKey('sites.id'), nullable=False)
    requested_by = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=False)
    priority = db.Column(db.Text, nullable=False, default='normal')
    status = db.Column(db.Text, nullable=False, default='pending')
    needed_by = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    approved_by = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    site = db.relationship('Site')
    requester = db.relationship('Profile', foreign_keys=[requested_by])
    items = db.relationship('MaterialRequestItem', backref='request', cascade='all, delete-orphan')

    __table_args__ = (
        Index('ix_material_requests_site_id', 'site_id'),
        Index('ix_material_requests_status', 'status'),
    )


class MaterialRequestItem(db.Model):
    __tablename__ = 'material_request_items'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey('material_requests.id', ondelete='CASCADE'),
        nullable=False
    )
    material_id = db.Column(UUID(as_uuid=True), db.ForeignKey('materials.id'), nullable=False)
    requested_quantity = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    material = db.relationship('Material')
