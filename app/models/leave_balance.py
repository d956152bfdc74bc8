from sqlalchemy import Column, Integer, String, Float, ForeignKey, UniqueConstraint
from app.database import Base

class LeaveBalance(Base):
    """
    Ledger bucket for one (employee, leave type, year).

    available == total_quota + carried_forward - used - pending
    """
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type", "year", name="uq_leave_balance_bucket"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(String(30), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    total_quota = Column(Float, nullable=False, default=0.0)
    used = Column(Float, nullable=False, default=0.0)
    pending = Column(Float, nullable=False, default=0.0)
    carried_forward = Column(Float, nullable=False, default=0.0)
    available = Column(Float, nullable=False, default=0.0)
    version = Column(Integer, nullable=False, default=1)

    def expected_available(self) -> float:
        return self.total_quota + self.carried_forward - self.used - self.pending
