from typing import List, Optional
from sqlalchemy.orm import Session
from app.models.leave_policy import LeavePolicy

class LeavePolicyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_active(self, company_id: int, leave_type: str) -> Optional[LeavePolicy]:
        return self.db.query(LeavePolicy).filter(
            LeavePolicy.company_id == company_id,
            LeavePolicy.leave_type == leave_type,
            LeavePolicy.active == True  # noqa: E712
        ).first()

    def list_active(self, company_id: int) -> List[LeavePolicy]:
        return self.db.query(LeavePolicy).filter(
            LeavePolicy.company_id == company_id,
            LeavePolicy.active == True  # noqa: E712
        ).order_by(LeavePolicy.leave_type.asc()).all()
