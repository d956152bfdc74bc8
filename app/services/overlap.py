from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.leave_application import LeaveApplication
from app.repositories.leave_application_repo import LeaveApplicationRepository


class OverlapChecker:
    """Finds Pending/Approved applications of an employee that intersect a date range (inclusive bounds)."""

    def __init__(self, db: Session):
        self.applications = LeaveApplicationRepository(db)

    def find_conflicts(
        self,
        employee_id: int,
        start_date: date,
        end_date: date,
        exclude_application_id: Optional[int] = None,
    ) -> List[LeaveApplication]:
        return self.applications.get_overlapping_leaves(
            employee_id, start_date, end_date, exclude_id=exclude_application_id
        )
