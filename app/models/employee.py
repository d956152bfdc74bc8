"""
Employee model.
Employees belong to exactly one company and may report to a direct manager.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.database import Base


class EmployeeRole(str, enum.Enum):
    """
    Roles relevant to the leave workflow.

    - SUPER_ADMIN: Platform-wide access, may act as HR in any company
    - HR_ADMIN: Final approver for applications that require HR sign-off
    - MANAGER: Approves leave for direct reports
    - EMPLOYEE: Self-service access
    """
    SUPER_ADMIN = "SUPER_ADMIN"
    HR_ADMIN = "HR_ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(Enum(EmployeeRole), default=EmployeeRole.EMPLOYEE, nullable=False)
    manager_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    company = relationship("Company", back_populates="employees")
    manager = relationship("Employee", remote_side=[id], back_populates="direct_reports")
    direct_reports = relationship("Employee", back_populates="manager")

    def __repr__(self):
        return f"<Employee {self.email} ({self.role.value})>"

    @property
    def is_hr(self) -> bool:
        """Check if employee may take HR decisions."""
        return self.role in [EmployeeRole.HR_ADMIN, EmployeeRole.SUPER_ADMIN]
