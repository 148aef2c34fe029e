from typing import Optional, List
from uuid import UUID
from .base import BaseRepository
from ..models.organization import Organization


class OrganizationRepository(BaseRepository[Organization]):
    """Repository for Organization model operations."""

    def __init__(self):
        super().__init__(Organization)

    def get_by_registration_number(self, number: str) -> Optional[Organization]:
        """
        Get an organization by its business registration number.

        Args:
            number: Digits-only registration number

        Returns:
            Organization instance or None if not found
        """
        return self.session.query(Organization).filter_by(business_registration_number=number).first()

    def list_scoped(self, organization_id: Optional[UUID] = None, include_inactive: bool = True) -> List[Organization]:
        """
        List organizations, optionally restricted to one organization.

        Args:
            organization_id: Only return this organization when given
            include_inactive: Include deactivated organizations

        Returns:
            List of Organization instances ordered by name
        """
        query = self.session.query(Organization)
        if organization_id:
            query = query.filter(Organization.id == organization_id)
        if not include_inactive:
            query = query.filter(Organization.is_active.is_(True))
        return query.order_by(Organization.name).all()

    def set_active(self, organization_id: UUID, is_active: bool) -> Optional[Organization]:
        return self.update(organization_id, is_active=is_active)
