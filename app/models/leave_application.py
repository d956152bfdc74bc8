"""
Leave application model.

Approval and rejection data are stored as column pairs but only ever read
through the ApprovalStamp / Rejection value objects, so callers never see one
half of a pair without the other.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, Date, Float, Boolean, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.database import Base


class LeaveType(str, enum.Enum):
    CASUAL_LEAVE = "CASUAL_LEAVE"
    SICK_LEAVE = "SICK_LEAVE"
    EARNED_LEAVE = "EARNED_LEAVE"
    LOSS_OF_PAY = "LOSS_OF_PAY"
    COMP_OFF = "COMP_OFF"
    OPTIONAL_HOLIDAY = "OPTIONAL_HOLIDAY"


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# Statuses that block another application for the same dates
BLOCKING_STATUSES = (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value)


@dataclass(frozen=True)
class ApprovalStamp:
    actor_id: int
    at: datetime


@dataclass(frozen=True)
class Rejection:
    reason: Optional[str]
    at: datetime


class LeaveApplication(Base):
    __tablename__ = "leave_applications"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(String(30), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    number_of_days = Column(Float, nullable=False)
    is_half_day = Column(Boolean, default=False)
    reason = Column(String(1000), nullable=True)
    attachment_ref = Column(String(500), nullable=True)
    status = Column(String(20), default=LeaveStatus.PENDING.value, nullable=False, index=True)

    # Fixed at submission
    requires_hr_approval = Column(Boolean, default=False, nullable=False)
    manager_id_at_submission = Column(Integer, ForeignKey("employees.id"), nullable=True)

    manager_approver_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    manager_approved_at = Column(DateTime(timezone=True), nullable=True)
    hr_approver_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    hr_approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(String(500), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    employee = relationship("Employee", foreign_keys=[employee_id])

    @property
    def balance_year(self) -> int:
        # Ranges crossing Dec 31 are booked against the start year
        return self.start_date.year

    @property
    def manager_approval(self) -> Optional[ApprovalStamp]:
        if self.manager_approver_id is None:
            return None
        return ApprovalStamp(actor_id=self.manager_approver_id, at=self.manager_approved_at)

    @property
    def hr_approval(self) -> Optional[ApprovalStamp]:
        if self.hr_approver_id is None:
            return None
        return ApprovalStamp(actor_id=self.hr_approver_id, at=self.hr_approved_at)

    @property
    def rejection(self) -> Optional[Rejection]:
        if self.rejected_at is None:
            return None
        return Rejection(reason=self.rejection_reason, at=self.rejected_at)

    @property
    def needs_manager_step(self) -> bool:
        return self.manager_id_at_submission is not None

    def __repr__(self):
        return f"<LeaveApplication {self.id} {self.leave_type} {self.status}>"
