"""
Repository layer for data access.

Route handlers and services go through these repositories rather than
querying SQLAlchemy models directly.

Usage:
    from backend.sitehub.repositories import ProfileRepository, SiteRepository

    profile_repo = ProfileRepository()
    admin = profile_repo.get_by_email("admin@example.com")

    site_repo = SiteRepository()
    page = site_repo.search(search="강남", status="active")
"""

from .base import BaseRepository
from .organization_repository import OrganizationRepository
from .profile_repository import ProfileRepository
from .site_repository import SiteRepository, SiteAssignmentRepository
from .daily_report_repository import DailyReportRepository
from .document_repository import DocumentRepository
from .material_repository import MaterialRepository, MaterialRequestRepository
from .salary_repository import SalaryRuleRepository, SalaryRecordRepository
from .payroll_settings_repository import (
    TaxRateRepository,
    WorkerSalarySettingRepository,
    SalarySnapshotRepository,
)
from .notification_repository import NotificationRepository
from .audit_event_repository import AuditEventRepository

__all__ = [
    'BaseRepository',
    'OrganizationRepository',
    'ProfileRepository',
    'SiteRepository',
    'SiteAssignmentRepository',
    'DailyReportRepository',
    'DocumentRepository',
    'MaterialRepository',
    'MaterialRequestRepository',
    'SalaryRuleRepository',
    'SalaryRecordRepository',
    'TaxRateRepository',
    'WorkerSalarySettingRepository',
    'SalarySnapshotRepository',
    'NotificationRepository',
    'AuditEventRepository',
]
