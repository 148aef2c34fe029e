import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now

ROLES = ('worker', 'site_manager', 'customer_manager', 'partner', 'admin', 'system_admin')
ADMIN_ROLES = ('admin', 'system_admin')
RESTRICTED_ROLES = ('customer_manager', 'partner')
USER_STATUSES = ('active', 'inactive', 'suspended')


class Profile(db.Model):
    __tablename__ = 'profiles'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=True)
    full_name = db.Column(db.Text, nullable=False)
    email = db.Column(db.Text, unique=True, nullable=False)
    phone = db.Column(db.Text, nullable=True)
    role = db.Column(db.Text, nullable=False, default='worker')
    status = db.Column(db.Text, nullable=False, default='active')
    is_restricted = db.Column(db.Boolean, nullable=False, default=False)
    password_hash = db.Column(db.Text, nullable=True)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index('ix_profiles_organization_id', 'organization_id'),
        Index('ix_profiles_role', 'role'),
    )

    @property
    def is_active(self) -> bool:
        return self.status == 'active'
