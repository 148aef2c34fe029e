from datetime import date
from typing import Optional, List, Dict, Any
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.orm import joinedload, selectinload
from .base import BaseRepository
from ..models.materials import Material, MaterialRequest, MaterialRequestItem


class MaterialRepository(BaseRepository[Material]):
    """Repository for the materials catalog."""

    def __init__(self):
        super().__init__(Material)

    def get_active(self, search: Optional[str] = None) -> List[Material]:
        query = self.session.query(Material).filter(Material.is_active.is_(True))
        if search:
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(Material.name.ilike(pattern), Material.code.ilike(pattern)))
        return query.order_by(Material.name).all()

    def get_by_code(self, code: str) -> Optional[Material]:
        return self.session.query(Material).filter_by(code=code).first()


class MaterialRequestRepository(BaseRepository[MaterialRequest]):
    """Repository for material requests and their line items."""

    def __init__(self):
        super().__init__(MaterialRequest)

    def request_number_exists(self, request_number: str) -> bool:
        return self.session.query(
            self.session.query(MaterialRequest).filter_by(request_number=request_number).exists()
        ).scalar()

    def count_for_day(self, day: date) -> int:
        prefix = f"MR-{day.strftime('%Y%m%d')}-"
        return self.session.query(MaterialRequest).filter(
            MaterialRequest.request_number.like(f'{prefix}%')
        ).count()

    def create_with_items(self, items: List[Dict[str, Any]], **fields) -> MaterialRequest:
        request = MaterialRequest(**fields)
        request.items = [MaterialRequestItem(**item) for item in items]
        self.add(request)
        self.commit()
        return request

    def get_with_items(self, request_id: UUID) -> Optional[MaterialRequest]:
        return self.session.query(MaterialRequest).options(
            selectinload(MaterialRequest.items).joinedload(MaterialRequestItem.material),
            joinedload(MaterialRequest.site),
        ).filter(MaterialRequest.id == request_id).first()

    def search(
        self,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
        site_id: Optional[UUID] = None,
        site_ids: Optional[List[UUID]] = None,
        priority: Optional[str] = None,
        status: Optional[str] = None,
        material_name: Optional[str] = None,
        requested_by: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """
        Paginated material request listing for admins and requesters.

        Args:
            search: Substring matched against request number and notes
            site_id: Exact site filter
            site_ids: Restrict to these sites when not None
            priority: Exact priority filter
            status: Exact status filter
            material_name: Only requests containing a material whose name matches
            requested_by: Restrict to one requester

        Returns:
            Pagination dict (see BaseRepository.paginate)
        """
        query = self.session.query(MaterialRequest).options(
            selectinload(MaterialRequest.items).joinedload(MaterialRequestItem.material),
            joinedload(MaterialRequest.site),
            joinedload(MaterialRequest.requester),
        )
        if search:
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(MaterialRequest.request_number.ilike(pattern), MaterialRequest.notes.ilike(pattern)))
        if site_id:
            query = query.filter(MaterialRequest.site_id == site_id)
        if site_ids is not None:
            query = query.filter(MaterialRequest.site_id.in_(site_ids))
        if priority:
            query = query.filter(MaterialRequest.priority == priority)
        if status:
            query = query.filter(MaterialRequest.status == status)
        if requested_by:
            query = query.filter(MaterialRequest.requested_by == requested_by)
        if material_name:
            matching = self.session.query(MaterialRequestItem.request_id).join(
                Material, Material.id == MaterialRequestItem.material_id
            ).filter(Material.name.ilike(f'%{material_name.strip()}%'))
            query = query.filter(MaterialRequest.id.in_(matching))
        query = query.order_by(MaterialRequest.created_at.desc())
        return self.paginate(query, page, per_page)
