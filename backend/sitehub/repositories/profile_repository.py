from typing import Optional, List, Dict, Any
from uuid import UUID
from sqlalchemy import or_
from .base import BaseRepository
from ..models.users import Profile
from ..models.sites import SiteAssignment


class ProfileRepository(BaseRepository[Profile]):
    """Repository for Profile (user account) operations."""

    def __init__(self):
        super().__init__(Profile)

    def get_by_email(self, email: str) -> Optional[Profile]:
        """
        Get a profile by email address (case-insensitive, globally unique).

        Args:
            email: The user's email address

        Returns:
            Profile instance or None if not found
        """
        if not email:
            return None
        return self.session.query(Profile).filter(Profile.email == email.strip().lower()).first()

    def get_by_full_names(self, names: List[str]) -> List[Profile]:
        if not names:
            return []
        return self.session.query(Profile).filter(Profile.full_name.in_(names)).all()

    def search(
        self,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
        organization_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """
        Paginated profile listing used by the admin users screen.

        Args:
            page: Page number (1-indexed)
            per_page: Page size
            search: Substring matched against name and email
            role: Exact role filter
            status: Exact status filter
            organization_id: Restrict to one organization

        Returns:
            Pagination dict (see BaseRepository.paginate)
        """
        query = self.session.query(Profile)
        if search:
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(Profile.full_name.ilike(pattern), Profile.email.ilike(pattern)))
        if role:
            query = query.filter(Profile.role == role)
        if status:
            query = query.filter(Profile.status == status)
        if organization_id:
            query = query.filter(Profile.organization_id == organization_id)
        query = query.order_by(Profile.created_at.desc())
        return self.paginate(query, page, per_page)

    def get_available_for_site(
        self,
        site_id: UUID,
        roles: List[str],
        search: Optional[str] = None,
        organization_id: Optional[UUID] = None,
        limit: int = 50,
    ) -> List[Profile]:
        """
        Active users with one of ``roles`` that hold no active assignment on the site.
        """
        assigned = self.session.query(SiteAssignment.user_id).filter(
            SiteAssignment.site_id == site_id,
            SiteAssignment.is_active.is_(True),
        )
        query = self.session.query(Profile).filter(
            Profile.status == 'active',
            Profile.role.in_(roles),
            ~Profile.id.in_(assigned),
        )
        if search:
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(Profile.full_name.ilike(pattern), Profile.email.ilike(pattern)))
        if organization_id:
            query = query.filter(Profile.organization_id == organization_id)
        return query.order_by(Profile.full_name).limit(limit).all()

    def get_by_roles(self, roles: List[str], organization_id: Optional[UUID] = None) -> List[Profile]:
        query = self.session.query(Profile).filter(Profile.role.in_(roles))
        if organization_id:
            query = query.filter(Profile.organization_id == organization_id)
        return query.order_by(Profile.full_name).all()
