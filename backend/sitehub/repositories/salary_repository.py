from datetime import date
from typing import Optional, List, Dict, Any
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.orm import joinedload
from sqlalchemy.exc import SQLAlchemyError
from .base import BaseRepository
from ..models.payroll import SalaryCalculationRule, SalaryRecord


class SalaryRuleRepository(BaseRepository[SalaryCalculationRule]):
    """Repository for salary calculation rules."""

    def __init__(self):
        super().__init__(SalaryCalculationRule)

    def list_rules(
        self,
        site_id: Optional[UUID] = None,
        site_ids: Optional[List[UUID]] = None,
        active_only: bool = False,
    ) -> List[SalaryCalculationRule]:
        """
        List rules, always including global (site-less) rules.

        Args:
            site_id: Rules of this site plus global rules
            site_ids: Rules of these sites plus global rules, when not None
            active_only: Leave out inactive rules

        Returns:
            List of SalaryCalculationRule instances, newest first
        """
        query = self.session.query(SalaryCalculationRule)
        if site_id:
            query = query.filter(or_(
                SalaryCalculationRule.site_id.is_(None),
                SalaryCalculationRule.site_id == site_id,
            ))
        if site_ids is not None:
            query = query.filter(or_(
                SalaryCalculationRule.site_id.is_(None),
                SalaryCalculationRule.site_id.in_(site_ids),
            ))
        if active_only:
            query = query.filter(SalaryCalculationRule.is_active.is_(True))
        return query.order_by(SalaryCalculationRule.created_at.desc()).all()


class SalaryRecordRepository(BaseRepository[SalaryRecord]):
    """Repository for per-day salary records."""

    def __init__(self):
        super().__init__(SalaryRecord)

    def _filtered(
        self,
        site_id: Optional[UUID] = None,
        site_ids: Optional[List[UUID]] = None,
        worker_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[str] = None,
        source: Optional[str] = None,
    ):
        query = self.session.query(SalaryRecord)
        if site_id:
            query = query.filter(SalaryRecord.site_id == site_id)
        if site_ids is not None:
            query = query.filter(SalaryRecord.site_id.in_(site_ids))
        if worker_id:
            query = query.filter(SalaryRecord.worker_id == worker_id)
        if date_from:
            query = query.filter(SalaryRecord.work_date >= date_from)
        if date_to:
            query = query.filter(SalaryRecord.work_date <= date_to)
        if status:
            query = query.filter(SalaryRecord.status == status)
        if source:
            query = query.filter(SalaryRecord.source == source)
        return query

    def search(self, page: int = 1, per_page: int = 20, **filters) -> Dict[str, Any]:
        """
        Paginated salary records with worker and site preloaded.

        Args:
            page: Page number (1-indexed)
            per_page: Page size
            **filters: site_id, site_ids, worker_id, date_from, date_to, status

        Returns:
            Pagination dict (see BaseRepository.paginate)
        """
        query = self._filtered(**filters).options(
            joinedload(SalaryRecord.worker),
            joinedload(SalaryRecord.site),
        ).order_by(SalaryRecord.work_date.desc(), SalaryRecord.created_at.desc())
        return self.paginate(query, page, per_page)

    def find(self, **filters) -> List[SalaryRecord]:
        return self._filtered(**filters).options(
            joinedload(SalaryRecord.worker),
            joinedload(SalaryRecord.site),
        ).order_by(SalaryRecord.work_date).all()

    def replace_calculated(self, records: List[Dict[str, Any]], **scope) -> int:
        """
        Delete the 'calculated' report records in scope and insert fresh ones in one commit.

        Approved, paid and manual records are never touched.

        Args:
            records: Column dicts for the new SalaryRecord rows
            **scope: site_id, site_ids, worker_id, date_from, date_to

        Returns:
            Number of records inserted
        """
        try:
            self._filtered(status='calculated', source='report', **scope).delete(synchronize_session=False)
            self.session.add_all([SalaryRecord(**record) for record in records])
            self.session.commit()
            return len(records)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise e

    def set_status(self, record_ids: List[UUID], status: str, **values) -> int:
        return self.update_many(record_ids, status=status, **values)
