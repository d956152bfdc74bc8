from typing import Optional
from sqlalchemy.orm import Session
from app.models.employee import Employee

class EmployeeRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, emp_id: int, lock: bool = False) -> Optional[Employee]:
        """Get employee by id. lock=True takes a row lock (no-op on SQLite) to serialize per-employee writes."""
        query = self.db.query(Employee).filter(Employee.id == emp_id)
        if lock:
            query = query.with_for_update()
        return query.first()
