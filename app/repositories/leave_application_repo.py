from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import and_, func, or_, update
from sqlalchemy.orm import Session, joinedload
from app.models.employee import Employee
from app.models.leave_application import LeaveApplication, LeaveStatus, BLOCKING_STATUSES


class LeaveApplicationRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, application: LeaveApplication) -> LeaveApplication:
        self.db.add(application)
        self.db.flush()  # Get ID without committing
        return application

    def get_by_id(self, request_id: int) -> Optional[LeaveApplication]:
        return self.db.query(LeaveApplication).options(
            joinedload(LeaveApplication.employee)
        ).filter(LeaveApplication.id == request_id).first()

    def get_overlapping_leaves(self, emp_id: int, from_date: date, to_date: date,
                               exclude_id: Optional[int] = None) -> List[LeaveApplication]:
        """Pending or approved applications whose inclusive date range intersects [from_date, to_date]."""
        query = self.db.query(LeaveApplication).filter(
            LeaveApplication.employee_id == emp_id,
            LeaveApplication.status.in_(BLOCKING_STATUSES),
            LeaveApplication.start_date <= to_date,
            LeaveApplication.end_date >= from_date,
        )
        if exclude_id is not None:
            query = query.filter(LeaveApplication.id != exclude_id)
        return query.order_by(LeaveApplication.start_date.asc()).all()

    def compare_and_set(self, request_id: int, expected_version: int, values: Dict[str, Any]) -> bool:
        """
        Apply `values` only if the application is still PENDING at `expected_version`.
        Exactly one of several racing writers can win; the rest get False.
        """
        stmt = (
            update(LeaveApplication)
            .where(
                LeaveApplication.id == request_id,
                LeaveApplication.status == LeaveStatus.PENDING.value,
                LeaveApplication.version == expected_version,
            )
            .values(
                **values,
                version=LeaveApplication.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def get_by_employee_id(self, emp_id: int) -> List[LeaveApplication]:
        return self.db.query(LeaveApplication).filter(
            LeaveApplication.employee_id == emp_id
        ).order_by(LeaveApplication.created_at.desc(), LeaveApplication.id.desc()).all()

    def count_pending_by_employee_id(self, emp_id: int) -> int:
        return self.db.query(func.count(LeaveApplication.id)).filter(
            LeaveApplication.employee_id == emp_id,
            LeaveApplication.status == LeaveStatus.PENDING.value
        ).scalar() or 0

    def get_pending_for_manager(self, manager_id: int) -> List[LeaveApplication]:
        """
        Pending applications that still wait for this manager: direct reports, plus
        reports who lost their manager after submitting to this one.
        """
        return self.db.query(LeaveApplication).join(
            Employee, LeaveApplication.employee_id == Employee.id
        ).options(joinedload(LeaveApplication.employee)).filter(
            or_(
                Employee.manager_id == manager_id,
                and_(Employee.manager_id.is_(None), LeaveApplication.manager_id_at_submission == manager_id),
            ),
            LeaveApplication.status == LeaveStatus.PENDING.value,
            LeaveApplication.manager_approver_id.is_(None)
        ).order_by(LeaveApplication.created_at.desc(), LeaveApplication.id.desc()).all()

    def get_pending_for_hr(self, company_id: int) -> List[LeaveApplication]:
        """Pending applications that require HR and have no outstanding manager step."""
        return self.db.query(LeaveApplication).join(
            Employee, LeaveApplication.employee_id == Employee.id
        ).options(joinedload(LeaveApplication.employee)).filter(
            Employee.company_id == company_id,
            LeaveApplication.status == LeaveStatus.PENDING.value,
            LeaveApplication.requires_hr_approval == True,  # noqa: E712
            (LeaveApplication.manager_id_at_submission.is_(None)) | (LeaveApplication.manager_approver_id.isnot(None))
        ).order_by(LeaveApplication.created_at.desc(), LeaveApplication.id.desc()).all()

    def get_by_company_and_date_range(self, company_id: int, from_date: date, to_date: date) -> List[LeaveApplication]:
        return self.db.query(LeaveApplication).join(
            Employee, LeaveApplication.employee_id == Employee.id
        ).options(joinedload(LeaveApplication.employee)).filter(
            Employee.company_id == company_id,
            LeaveApplication.start_date >= from_date,
            LeaveApplication.end_date <= to_date
        ).order_by(LeaveApplication.start_date.asc(), LeaveApplication.id.asc()).all()
