import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now
from .types import Rate

REPORT_STATUSES = ('draft', 'submitted', 'approved', 'rejected')


class DailyReport(db.Model):
    __tablename__ = 'daily_reports'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    site_id = db.Column(UUID(as_uuid=True), db.ForeignKey('sites.id'), nullable=False)
    work_date = db.Column(db.Date, nullable=False)
    member_name = db.Column(db.Text, nullable=True)
    process_type = db.Column(db.Text, nullable=True)
    component_name = db.Column(db.Text, nullable=True)
    work_process = db.Column(db.Text, nullable=True)
    work_section = db.Column(db.Text, nullable=True)
    total_workers = db.Column(db.Integer, nullable=False, default=0)
    npc1000_incoming = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)
    npc1000_used = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)
    npc1000_remaining = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)
    issues = db.Column(db.Text, nullable=True)
    status = db.Column(db.Text, nullable=False, default='draft')
    created_by = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=False)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_by = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    site = db.relationship('Site', backref=db.backref('daily_reports', lazy='dynamic'))
    workers = db.relationship(
        'DailyReportWorker',
        backref='daily_report',
        cascade='all, delete-orphan',
        order_by='DailyReportWorker.created_at',
    )

    __table_args__ = (
        db.UniqueConstraint('site_id', 'work_date', 'created_by', name='uq_daily_reports_site_date_author'),
        Index('ix_daily_reports_site_date', 'site_id', 'work_date'),
        Index('ix_daily_reports_status', 'status'),
    )


class DailyReportWorker(db.Model):
    __tablename__ = 'daily_report_workers'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    daily_report_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey('daily_reports.id', ondelete='CASCADE'),
        nullable=False
    )
    worker_id = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=True)
    worker_name = db.Column(db.Text, nullable=False)
    labor_hours = db.Column(Rate, nullable=False)  # 공수, 1.0 = 8 hours
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index('ix_daily_report_workers_report_id', 'daily_report_id'),
        Index('ix_daily_report_workers_worker_id', 'worker_id'),
    )
