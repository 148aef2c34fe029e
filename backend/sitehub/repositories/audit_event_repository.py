from typing import Optional, Dict, Any
from uuid import UUID
from .base import BaseRepository
from ..models.audit import AuditEvent


class AuditEventRepository(BaseRepository[AuditEvent]):
    """Append-only audit trail of admin actions."""

    def __init__(self):
        super().__init__(AuditEvent)

    def log_event(
        self,
        event_type: str,
        entity_type: str,
        entity_id: Optional[UUID] = None,
        actor_id: Optional[UUID] = None,
        organization_id: Optional[UUID] = None,
        site_id: Optional[UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        """
        Record one admin action.

        Args:
            event_type: CREATE, UPDATE, DELETE, APPROVE, REJECT, PAY, ISSUE, SHARE ...
            entity_type: SITE, USER, DAILY_REPORT, SALARY_RECORD, DOCUMENT ...
            entity_id: Affected row; None for bulk actions (ids go in metadata)
            actor_id: Profile that performed the action
            organization_id: Organization used to scope audit log reads
            site_id: Site the action touched, if any
            metadata: Free-form JSON details
        """
        return self.create(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_id,
            organization_id=organization_id,
            site_id=site_id,
            event_metadata=metadata,
        )

    def search(
        self,
        page: int = 1,
        per_page: int = 50,
        organization_id: Optional[UUID] = None,
        entity_type: Optional[str] = None,
        event_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        query = self.session.query(AuditEvent)
        if organization_id:
            query = query.filter(AuditEvent.organization_id == organization_id)
        if entity_type:
            query = query.filter(AuditEvent.entity_type == entity_type)
        if event_type:
            query = query.filter(AuditEvent.event_type == event_type)
        query = query.order_by(AuditEvent.created_at.desc())
        return self.paginate(query, page, per_page)
