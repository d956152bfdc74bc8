from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date, datetime
from typing import Optional

from app.models.leave_application import LeaveType

class LeaveApplicationCreate(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    number_of_days: float
    is_half_day: bool = False
    reason: Optional[str] = Field(default=None, max_length=1000)
    attachment_ref: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def check_date_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self

class LeaveDecisionRequest(BaseModel):
    approved: bool
    rejection_reason: Optional[str] = Field(default=None, max_length=500)

class ApprovalStampResponse(BaseModel):
    actor_id: int
    at: datetime

    model_config = ConfigDict(from_attributes=True)

class RejectionResponse(BaseModel):
    reason: Optional[str] = None
    at: datetime

    model_config = ConfigDict(from_attributes=True)

class LeaveApplicationResponse(BaseModel):
    id: int
    employee_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    number_of_days: float
    is_half_day: bool
    reason: Optional[str] = None
    attachment_ref: Optional[str] = None
    status: str
    requires_hr_approval: bool
    manager_approval: Optional[ApprovalStampResponse] = None
    hr_approval: Optional[ApprovalStampResponse] = None
    rejection: Optional[RejectionResponse] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class LeaveBalanceResponse(BaseModel):
    employee_id: int
    leave_type: str
    year: int
    total_quota: float
    used: float
    pending: float
    carried_forward: float
    available: float

    model_config = ConfigDict(from_attributes=True)

class PendingCountResponse(BaseModel):
    employee_id: int
    pending: int
