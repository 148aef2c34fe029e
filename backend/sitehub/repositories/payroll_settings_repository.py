from datetime import date, timedelta
from typing import Optional, List
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload
from .base import BaseRepository
from ..models.payroll import EmploymentTaxRate, WorkerSalarySetting, SalarySnapshot


class TaxRateRepository(BaseRepository[EmploymentTaxRate]):
    """Repository for per-employment-type deduction rates."""

    def __init__(self):
        super().__init__(EmploymentTaxRate)

    def list_rates(self, employment_type: Optional[str] = None, active_only: bool = True) -> List[EmploymentTaxRate]:
        query = self.session.query(EmploymentTaxRate)
        if employment_type:
            query = query.filter(EmploymentTaxRate.employment_type == employment_type)
        if active_only:
            query = query.filter(EmploymentTaxRate.is_active.is_(True))
        return query.order_by(EmploymentTaxRate.employment_type, EmploymentTaxRate.tax_name).all()

    def get_by_type_and_name(self, employment_type: str, tax_name: str) -> Optional[EmploymentTaxRate]:
        return self.session.query(EmploymentTaxRate).filter_by(
            employment_type=employment_type,
            tax_name=tax_name,
        ).first()


class WorkerSalarySettingRepository(BaseRepository[WorkerSalarySetting]):
    """Repository for individual worker pay settings."""

    def __init__(self):
        super().__init__(WorkerSalarySetting)

    def list_settings(self, worker_ids: Optional[List[UUID]] = None, active_only: bool = True) -> List[WorkerSalarySetting]:
        query = self.session.query(WorkerSalarySetting).options(joinedload(WorkerSalarySetting.worker))
        if worker_ids is not None:
            query = query.filter(WorkerSalarySetting.worker_id.in_(worker_ids))
        if active_only:
            query = query.filter(WorkerSalarySetting.is_active.is_(True))
        return query.order_by(WorkerSalarySetting.effective_date.desc()).all()

    def get_effective(self, worker_id: UUID, on_date: date) -> Optional[WorkerSalarySetting]:
        """
        Get the setting in force for a worker on a given day.

        Args:
            worker_id: The worker's profile UUID
            on_date: Day the pay applies to

        Returns:
            The most recent setting effective on that day, or None
        """
        return self.session.query(WorkerSalarySetting).filter(
            WorkerSalarySetting.worker_id == worker_id,
            WorkerSalarySetting.effective_date <= on_date,
            or_(WorkerSalarySetting.end_date.is_(None), WorkerSalarySetting.end_date >= on_date),
        ).order_by(WorkerSalarySetting.effective_date.desc()).first()

    def replace_active(self, worker_id: UUID, effective_date: date, **fields) -> WorkerSalarySetting:
        """
        Close the worker's active settings and insert a new active one in one commit.
        """
        try:
            previous = self.session.query(WorkerSalarySetting).filter_by(
                worker_id=worker_id,
                is_active=True,
            ).all()
            for setting in previous:
                setting.is_active = False
                if setting.end_date is None or setting.end_date >= effective_date:
                    setting.end_date = max(setting.effective_date, effective_date - timedelta(days=1))
            setting = WorkerSalarySetting(
                worker_id=worker_id,
                effective_date=effective_date,
                is_active=True,
                **fields
            )
            self.session.add(setting)
            self.session.commit()
            return setting
        except SQLAlchemyError as e:
            self.session.rollback()
            raise e


class SalarySnapshotRepository(BaseRepository[SalarySnapshot]):
    """Repository for issued monthly payslip snapshots."""

    def __init__(self):
        super().__init__(SalarySnapshot)

    def get_for_month(self, worker_id: UUID, year: int, month: int) -> Optional[SalarySnapshot]:
        return self.session.query(SalarySnapshot).filter_by(worker_id=worker_id, year=year, month=month).first()

    def list_snapshots(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
        worker_id: Optional[UUID] = None,
        organization_id: Optional[UUID] = None,
    ) -> List[SalarySnapshot]:
        query = self.session.query(SalarySnapshot)
        if year:
            query = query.filter(SalarySnapshot.year == year)
        if month:
            query = query.filter(SalarySnapshot.month == month)
        if worker_id:
            query = query.filter(SalarySnapshot.worker_id == worker_id)
        if organization_id:
            query = query.filter(SalarySnapshot.organization_id == organization_id)
        return query.order_by(SalarySnapshot.year.desc(), SalarySnapshot.month.desc()).all()
