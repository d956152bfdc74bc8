# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    company, employee, leave_policy, leave_balance, leave_application, notification
)

# Explicit class exports for cleaner imports
from .company import Company
from .employee import Employee, EmployeeRole
from .leave_policy import LeavePolicy
from .leave_balance import LeaveBalance
from .leave_application import LeaveApplication, LeaveStatus, LeaveType
from .notification import Notification

__all__ = [
    "Company",
    "Employee",
    "EmployeeRole",
    "LeavePolicy",
    "LeaveBalance",
    "LeaveApplication",
    "LeaveStatus",
    "LeaveType",
    "Notification",
]
