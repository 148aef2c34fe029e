import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now
from .types import JSONType, Money, Rate

RULE_TYPES = ('hourly_rate', 'daily_rate', 'overtime_multiplier', 'bonus_calculation')
RECORD_STATUSES = ('calculated', 'approved', 'paid')
EMPLOYMENT_TYPES = ('regular_employee', 'freelancer', 'daily_worker')


class SalaryCalculationRule(db.Model):
    __tablename__ = 'salary_calculation_rules'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    rule_name = db.Column(db.Text, nullable=False)
    rule_type = db.Column(db.Text, nullable=False)
    base_amount = db.Column(Money, nullable=False, default=0)
    multiplier = db.Column(Rate, nullable=True)
    conditions = db.Column(JSONType, nullable=True)
    site_id = db.Column(UUID(as_uuid=True), db.ForeignKey('sites.id'), nullable=True)
    role = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index('ix_salary_rules_type_site', 'rule_type', 'site_id'),
    )


class SalaryRecord(db.Model):
    __tablename__ = 'salary_records'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    worker_id = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=False)
    site_id = db.Column(UUID(as_uuid=True), db.ForeignKey('sites.id'), nullable=True)
    work_date = db.Column(db.Date, nullable=False)
    employment_type = db.Column(db.Text, nullable=True)
    labor_hours = db.Column(Rate, nullable=True)
    regular_hours = db.Column(Rate, nullable=False, default=0)
    overtime_hours = db.Column(Rate, nullable=False, default=0)
    base_pay = db.Column(Money, nullable=False, default=0)
    overtime_pay = db.Column(Money, nullable=False, default=0)
    bonus_pay = db.Column(Money, nullable=False, default=0)
    deductions = db.Column(Money, nullable=False, default=0)
    income_tax = db.Column(Money, nullable=True)
    resident_tax = db.Column(Money, nullable=True)
    national_pension = db.Column(Money, nullable=True)
    health_insurance = db.Column(Money, nullable=True)
    employment_insurance = db.Column(Money, nullable=True)
    tax_amount = db.Column(Money, nullable=True)
    total_pay = db.Column(Money, nullable=False, default=0)
    tax_details = db.Column(JSONType, nullable=True)
    status = db.Column(db.Text, nullable=False, default='calculated')
    # report: rebuilt by salary calculation. manual: saved from the personal calculator
    source = db.Column(db.Text, nullable=False, default='report')
    notes = db.Column(db.Text, nullable=True)
    approved_by = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    worker = db.relationship('Profile', foreign_keys=[worker_id])
    site = db.relationship('Site')

    __table_args__ = (
        Index('ix_salary_records_worker_date', 'worker_id', 'work_date'),
        Index('ix_salary_records_site_date', 'site_id', 'work_date'),
        Index('ix_salary_records_status', 'status'),
    )


class EmploymentTaxRate(db.Model):
    __tablename__ = 'employment_tax_rates'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employment_type = db.Column(db.Text, nullable=False)
    tax_name = db.Column(db.Text, nullable=False)
    rate = db.Column(Rate, nullable=False)
    calculation_method = db.Column(db.Text, nullable=False, default='percentage')
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        db.UniqueConstraint('employment_type', 'tax_name', name='uq_employment_tax_rates_type_name'),
    )


class WorkerSalarySetting(db.Model):
    __tablename__ = 'worker_salary_settings'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    worker_id = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=False)
    employment_type = db.Column(db.Text, nullable=False)
    daily_rate = db.Column(Money, nullable=False)
    hourly_rate = db.Column(Money, nullable=True)
    custom_tax_rates = db.Column(JSONType, nullable=True)
    bank_account_info = db.Column(JSONType, nullable=True)
    effective_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    worker = db.relationship('Profile', foreign_keys=[worker_id])

    __table_args__ = (
        Index('ix_worker_salary_settings_worker_active', 'worker_id', 'is_active'),
    )


class SalarySnapshot(db.Model):
    __tablename__ = 'salary_snapshots'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    worker_id = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=False)
    organization_id = db.Column(UUID(as_uuid=True), db.ForeignKey('organizations.id'), nullable=True)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    status = db.Column(db.Text, nullable=False, default='issued')
    payload = db.Column(JSONType, nullable=False)
    issued_by = db.Column(UUID(as_uuid=True), db.ForeignKey('profiles.id'), nullable=True)
    issued_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    worker = db.relationship('Profile', foreign_keys=[worker_id])

    __table_args__ = (
        db.UniqueConstraint('worker_id', 'year', 'month', name='uq_salary_snapshots_worker_month'),
    )
