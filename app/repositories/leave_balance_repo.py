from typing import List, Optional
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.models.leave_balance import LeaveBalance

# Tolerance for float rounding in day arithmetic (half days are exact, tenths are not)
LEDGER_EPSILON = 1e-9


class LeaveBalanceRepository:
    def __init__(self, db: Session):
        self.db = db

    def _bucket_filter(self, emp_id: int, leave_type: str, year: int):
        return (
            LeaveBalance.employee_id == emp_id,
            LeaveBalance.leave_type == leave_type,
            LeaveBalance.year == year,
        )

    def get_bucket(self, emp_id: int, leave_type: str, year: int, refresh: bool = False) -> Optional[LeaveBalance]:
        """Get the ledger bucket. refresh=True bypasses the identity map after a bulk UPDATE."""
        stmt = select(LeaveBalance).where(*self._bucket_filter(emp_id, leave_type, year))
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_employee_id(self, emp_id: int, year: Optional[int] = None) -> List[LeaveBalance]:
        query = self.db.query(LeaveBalance).filter(LeaveBalance.employee_id == emp_id)
        if year is not None:
            query = query.filter(LeaveBalance.year == year)
        return query.order_by(LeaveBalance.year.desc(), LeaveBalance.leave_type.asc()).all()

    def ensure_bucket(self, emp_id: int, leave_type: str, year: int,
                      total_quota: float = 0.0, carried_forward: float = 0.0) -> bool:
        """
        Insert the bucket if it does not exist yet. Safe under concurrent callers:
        the unique (employee, type, year) key decides, losers are ignored.
        Returns True if this call created the row.
        """
        values = dict(
            employee_id=emp_id,
            leave_type=leave_type,
            year=year,
            total_quota=total_quota,
            used=0.0,
            pending=0.0,
            carried_forward=carried_forward,
            available=total_quota + carried_forward,
            version=1,
        )
        dialect = self.db.get_bind().dialect.name
        if dialect in ("postgresql", "sqlite"):
            if dialect == "postgresql":
                from sqlalchemy.dialects.postgresql import insert
            else:
                from sqlalchemy.dialects.sqlite import insert
            stmt = insert(LeaveBalance).values(**values).on_conflict_do_nothing(
                index_elements=["employee_id", "leave_type", "year"]
            )
            return self.db.execute(stmt).rowcount == 1

        if self.get_bucket(emp_id, leave_type, year) is not None:
            return False
        try:
            with self.db.begin_nested():
                self.db.add(LeaveBalance(**values))
        except IntegrityError:
            return False
        return True

    def apply_delta(self, emp_id: int, leave_type: str, year: int,
                    pending_delta: float, used_delta: float = 0.0) -> int:
        """
        Shift days between buckets in a single UPDATE so concurrent writers on the
        same key are serialized by the database. The WHERE clause refuses any
        change that would drive pending or used below zero.
        Returns the number of rows updated (0 or 1).
        """
        new_pending = LeaveBalance.pending + pending_delta
        new_used = LeaveBalance.used + used_delta
        stmt = (
            update(LeaveBalance)
            .where(
                *self._bucket_filter(emp_id, leave_type, year),
                new_pending >= -LEDGER_EPSILON,
                new_used >= -LEDGER_EPSILON,
            )
            .values(
                pending=new_pending,
                used=new_used,
                available=LeaveBalance.total_quota + LeaveBalance.carried_forward - new_used - new_pending,
                version=LeaveBalance.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount
