import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now

SITE_STATUSES = ('active', 'inactive', 'completed')
ASSIGNMENT_ROLES = ('worker', 'site_manager', 'supervisor')


class Site(db.Model):
    __tablename__ = 'sites'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=True)
    name = db.Column(db.Text, nullable=False)
    address = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.Text, nullable=False, default='active')
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    manager_name = db.Column(db.Text, nullable=True)
    construction_manager_phone = db.Column(db.Text, nullable=True)
    safety_manager_name = db.Column(db.Text, nullable=True)
    safety_manager_phone = db.Column(db.Text, nullable=True)
    accommodation_name = db.Column(db.Text, nullable=True)
    accommodation_address = db.Column(db.Text, nullable=True)
    work_process = db.Column(db.Text, nullable=True)
    work_section = db.Column(db.Text, nullable=True)
    component_name = db.Column(db.Text, nullable=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_by = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    assignments = db.relationship('SiteAssignment', backref='site', lazy='dynamic')

    __table_args__ = (
        Index('ix_sites_organization_id', 'organization_id'),
        Index('ix_sites_status', 'status'),
    )


class SiteAssignment(db.Model):
    __tablename__ = 'site_assignments'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    site_id = db.Column(UUID(as_uuid=True), db.ForeignKey('sites.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    role = db.Column(db.Text, nullable=False, default='worker')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    assigned_date = db.Column(db.Date, nullable=True)
    unassigned_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    user = db.relationship('Profile', backref=db.backref('site_assignments', lazy='dynamic'))

    __table_args__ = (
        Index('ix_site_assignments_site_id', 'site_id'),
        Index('ix_site_assignments_user_active', 'user_id', 'is_active'),
    )
