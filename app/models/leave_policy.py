from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base

class LeavePolicy(Base):
    __tablename__ = "leave_policies"
    __table_args__ = (
        UniqueConstraint("company_id", "leave_type", name="uq_leave_policy_company_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    leave_type = Column(String(30), nullable=False, index=True)
    annual_quota = Column(Float, nullable=False, default=0.0)
    carry_forward = Column(Boolean, default=False)
    max_carry_forward = Column(Float, default=0.0)
    half_day_allowed = Column(Boolean, default=True)
    requires_hr_approval = Column(Boolean, default=False)  # HR sign-off even when a manager exists
    active = Column(Boolean, default=True)

    company = relationship("Company", back_populates="leave_policies")
