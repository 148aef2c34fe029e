from .organization import Organization
from .users import Profile
from .sites import Site, SiteAssignment
from .daily_reports import DailyReport, DailyReportWorker
from .documents import Document, DocumentFile, DocumentPermission
from .materials import Material, MaterialRequest, MaterialRequestItem
from .payroll import (
    SalaryCalculationRule,
    SalaryRecord,
    EmploymentTaxRate,
    WorkerSalarySetting,
    SalarySnapshot,
)
from .notifications import Notification
from .audit import AuditEvent

__all__ = [
    'Organization',
    'Profile',
    'Site',
    'SiteAssignment',
    'DailyReport',
    'DailyReportWorker',
    'Document',
    'DocumentFile',
    'DocumentPermission',
    'Material',
    'MaterialRequest',
    'MaterialRequestItem',
    'SalaryCalculationRule',
    'SalaryRecord',
    'EmploymentTaxRate',
    'WorkerSalarySetting',
    'SalarySnapshot',
    'Notification',
    'AuditEvent',
]
