from typing import Optional, List, Dict, Any
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.orm import joinedload
from .base import BaseRepository
from ..models.sites import Site, SiteAssignment

SORTABLE_COLUMNS = {
    'name': Site.name,
    'address': Site.address,
    'status': Site.status,
    'start_date': Site.start_date,
    'end_date': Site.end_date,
    'created_at': Site.created_at,
    'updated_at': Site.updated_at,
}


class SiteRepository(BaseRepository[Site]):
    """Repository for Site model operations."""

    def __init__(self):
        super().__init__(Site)

    def search(
        self,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
        status: Optional[str] = None,
        organization_id: Optional[UUID] = None,
        sort_by: str = 'created_at',
        sort_order: str = 'desc',
        include_deleted: bool = False,
    ) -> Dict[str, Any]:
        """
        Paginated site listing for the admin dashboard.

        Args:
            page: Page number (1-indexed)
            per_page: Page size
            search: Substring matched against name and address
            status: Exact status filter
            organization_id: Restrict to one organization
            sort_by: Column key from SORTABLE_COLUMNS (falls back to created_at)
            sort_order: 'asc' or 'desc'
            include_deleted: Include soft-deleted sites

        Returns:
            Pagination dict (see BaseRepository.paginate)
        """
        query = self.session.query(Site)
        if not include_deleted:
            query = query.filter(Site.is_deleted.is_(False))
        if search:
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(Site.name.ilike(pattern), Site.address.ilike(pattern)))
        if status:
            query = query.filter(Site.status == status)
        if organization_id:
            query = query.filter(Site.organization_id == organization_id)

        column = SORTABLE_COLUMNS.get(sort_by, Site.created_at)
        query = query.order_by(column.asc() if sort_order == 'asc' else column.desc())
        return self.paginate(query, page, per_page)

    def get_ids_for_organization(self, organization_id: UUID) -> List[UUID]:
        """
        Get the IDs of every non-deleted site owned by an organization.

        Args:
            organization_id: The organization UUID

        Returns:
            List of site UUIDs
        """
        rows = self.session.query(Site.id).filter(
            Site.organization_id == organization_id,
            Site.is_deleted.is_(False),
        ).all()
        return [row[0] for row in rows]

    def get_for_organization(self, organization_id: UUID) -> List[Site]:
        return self.session.query(Site).filter(
            Site.organization_id == organization_id,
            Site.is_deleted.is_(False),
        ).order_by(Site.name).all()

    def soft_delete_many(self, site_ids: List[UUID], deleted_at) -> int:
        return self.update_many(site_ids, is_deleted=True, deleted_at=deleted_at)

    def restore_many(self, site_ids: List[UUID]) -> int:
        return self.update_many(site_ids, is_deleted=False, deleted_at=None)


class SiteAssignmentRepository(BaseRepository[SiteAssignment]):
    """Repository for SiteAssignment model operations."""

    def __init__(self):
        super().__init__(SiteAssignment)

    def get_active_for_site(self, site_id: UUID) -> List[SiteAssignment]:
        """
        Get active assignments for a site with their profiles preloaded.

        Args:
            site_id: The site UUID

        Returns:
            List of SiteAssignment instances ordered by assignment date
        """
        return self.session.query(SiteAssignment).options(
            joinedload(SiteAssignment.user)
        ).filter(
            SiteAssignment.site_id == site_id,
            SiteAssignment.is_active.is_(True),
        ).order_by(SiteAssignment.assigned_date.desc()).all()

    def get_active(self, site_id: UUID, user_id: UUID) -> Optional[SiteAssignment]:
        return self.session.query(SiteAssignment).filter_by(
            site_id=site_id,
            user_id=user_id,
            is_active=True,
        ).first()

    def get_active_for_user(self, user_id: UUID) -> List[SiteAssignment]:
        """
        Get a user's active assignments with sites preloaded, newest first.

        Args:
            user_id: The profile UUID

        Returns:
            List of SiteAssignment instances
        """
        return self.session.query(SiteAssignment).options(
            joinedload(SiteAssignment.site)
        ).filter(
            SiteAssignment.user_id == user_id,
            SiteAssignment.is_active.is_(True),
        ).order_by(SiteAssignment.assigned_date.desc()).all()

    def get_site_ids_for_user(self, user_id: UUID) -> List[UUID]:
        rows = self.session.query(SiteAssignment.site_id).filter(
            SiteAssignment.user_id == user_id,
            SiteAssignment.is_active.is_(True),
        ).all()
        return [row[0] for row in rows]

    def get_user_ids_for_site(self, site_id: UUID, roles: Optional[List[str]] = None) -> List[UUID]:
        query = self.session.query(SiteAssignment.user_id).filter(
            SiteAssignment.site_id == site_id,
            SiteAssignment.is_active.is_(True),
        )
        if roles:
            query = query.filter(SiteAssignment.role.in_(roles))
        return [row[0] for row in query.all()]
