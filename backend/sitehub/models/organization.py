import uuid
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now


class Organization(db.Model):
    __tablename__ = 'organizations'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = db.Column(db.Text, nullable=False)
    type = db.Column(db.Text, nullable=False, default='partner')  # head_office, branch_office, partner
    business_registration_number = db.Column(db.Text, unique=True, nullable=True)
    representative_name = db.Column(db.Text, nullable=True)
    phone = db.Column(db.Text, nullable=True)
    address = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    profiles = db.relationship('Profile', backref='organization', lazy='dynamic')
    sites = db.relationship('Site', backref='organization', lazy='dynamic')
