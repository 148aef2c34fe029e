"""Repositories and cross-cutting services shared by the blueprints."""
from ..repositories import (
    AuditEventRepository,
    DailyReportRepository,
    NotificationRepository,
    ProfileRepository,
    SiteAssignmentRepository,
    SiteRepository,
)
from ..services.access_guard import OrgAccessGuard
from ..services.notification_service import NotificationService

site_repo = SiteRepository()
assignment_repo = SiteAssignmentRepository()
profile_repo = ProfileRepository()
report_repo = DailyReportRepository()
notification_repo = NotificationRepository()
audit_repo = AuditEventRepository()

guard = OrgAccessGuard(site_repo, profile_repo)
notifier = NotificationService(notification_repo, assignment_repo)
