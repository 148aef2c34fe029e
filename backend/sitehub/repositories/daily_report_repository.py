from datetime import date
from typing import Optional, List, Dict, Any
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.orm import joinedload, selectinload
from .base import BaseRepository
from ..models.daily_reports import DailyReport, DailyReportWorker


class DailyReportRepository(BaseRepository[DailyReport]):
    """Repository for DailyReport and its worker lines."""

    def __init__(self):
        super().__init__(DailyReport)

    def get_with_workers(self, report_id: UUID) -> Optional[DailyReport]:
        return self.session.query(DailyReport).options(
            selectinload(DailyReport.workers),
            joinedload(DailyReport.site),
        ).filter(DailyReport.id == report_id).first()

    def get_for_author(self, site_id: UUID, work_date: date, created_by: UUID) -> Optional[DailyReport]:
        """
        Get the single report an author may hold for a site and day.

        Args:
            site_id: The site UUID
            work_date: Work date of the report
            created_by: Author profile UUID

        Returns:
            DailyReport instance or None if not found
        """
        return self.session.query(DailyReport).filter_by(
            site_id=site_id,
            work_date=work_date,
            created_by=created_by,
        ).first()

    def search(
        self,
        page: int = 1,
        per_page: int = 20,
        site_ids: Optional[List[UUID]] = None,
        site_id: Optional[UUID] = None,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        created_by: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """
        Paginated report listing, newest work date first.

        Args:
            site_ids: Restrict to these sites when not None (empty list yields nothing)
            site_id: Exact site filter
            status: Exact status filter
            start_date: Inclusive lower bound on work_date
            end_date: Inclusive upper bound on work_date
            created_by: Restrict to one author

        Returns:
            Pagination dict (see BaseRepository.paginate)
        """
        query = self.session.query(DailyReport).options(joinedload(DailyReport.site))
        if site_ids is not None:
            query = query.filter(DailyReport.site_id.in_(site_ids))
        if site_id:
            query = query.filter(DailyReport.site_id == site_id)
        if status:
            query = query.filter(DailyReport.status == status)
        if start_date:
            query = query.filter(DailyReport.work_date >= start_date)
        if end_date:
            query = query.filter(DailyReport.work_date <= end_date)
        if created_by:
            query = query.filter(DailyReport.created_by == created_by)
        query = query.order_by(DailyReport.work_date.desc(), DailyReport.created_at.desc())
        return self.paginate(query, page, per_page)

    def get_reports_in_range(
        self,
        start_date: date,
        end_date: date,
        site_id: Optional[UUID] = None,
        site_ids: Optional[List[UUID]] = None,
        exclude_statuses: Optional[List[str]] = None,
    ) -> List[DailyReport]:
        """
        Reports with their worker lines for a date range, ordered for stable aggregation.

        Args:
            start_date: Inclusive lower bound
            end_date: Inclusive upper bound
            site_id: Exact site filter
            site_ids: Restrict to these sites when not None
            exclude_statuses: Statuses to leave out

        Returns:
            List of DailyReport instances with workers loaded
        """
        query = self.session.query(DailyReport).options(selectinload(DailyReport.workers)).filter(
            DailyReport.work_date >= start_date,
            DailyReport.work_date <= end_date,
        )
        if site_id:
            query = query.filter(DailyReport.site_id == site_id)
        if site_ids is not None:
            query = query.filter(DailyReport.site_id.in_(site_ids))
        if exclude_statuses:
            query = query.filter(~DailyReport.status.in_(exclude_statuses))
        return query.order_by(DailyReport.work_date, DailyReport.created_at).all()

    def replace_workers(self, report: DailyReport, workers: List[Dict[str, Any]]) -> DailyReport:
        """
        Replace a report's worker lines and refresh ``total_workers`` in one commit.
        """
        report.workers = [DailyReportWorker(**worker) for worker in workers]
        report.total_workers = len(workers)
        self.commit()
        return report

    def get_report_stats_for_user(self, user_id: UUID) -> Dict[str, Any]:
        total, last_date = self.session.query(
            func.count(DailyReport.id),
            func.max(DailyReport.work_date),
        ).filter(DailyReport.created_by == user_id).one()
        return {
            'total_reports': total or 0,
            'last_report_date': last_date.isoformat() if last_date else None,
        }

    def get_worker_lines(
        self,
        start_date: date,
        end_date: date,
        worker_id: Optional[UUID] = None,
        worker_name: Optional[str] = None,
        site_ids: Optional[List[UUID]] = None,
    ) -> List[Any]:
        """
        Flat (report, worker line) rows for labor summaries.

        Args:
            start_date: Inclusive lower bound
            end_date: Inclusive upper bound
            worker_id: Match lines linked to this profile
            worker_name: Match unlinked lines by name
            site_ids: Restrict to these sites when not None

        Returns:
            List of (DailyReport, DailyReportWorker) tuples
        """
        query = self.session.query(DailyReport, DailyReportWorker).join(
            DailyReportWorker, DailyReportWorker.daily_report_id == DailyReport.id
        ).filter(
            DailyReport.work_date >= start_date,
            DailyReport.work_date <= end_date,
            DailyReport.status != 'rejected',
        )
        if worker_id and worker_name:
            query = query.filter(
                (DailyReportWorker.worker_id == worker_id)
                | ((DailyReportWorker.worker_id.is_(None)) & (DailyReportWorker.worker_name == worker_name))
            )
        elif worker_id:
            query = query.filter(DailyReportWorker.worker_id == worker_id)
        if site_ids is not None:
            query = query.filter(DailyReport.site_id.in_(site_ids))
        return query.order_by(DailyReport.work_date).all()
