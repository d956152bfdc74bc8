"""
Identity dependencies.
Authentication happens upstream; the gateway forwards the authenticated
employee id in the X-Employee-ID header and this module resolves it.
"""
import logging

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.employee import Employee
from app.repositories.employee_repo import EmployeeRepository

logger = logging.getLogger(__name__)


def get_acting_employee(
    x_employee_id: int = Header(..., alias="X-Employee-ID"),
    db: Session = Depends(get_db),
) -> Employee:
    """Resolves the acting employee from the forwarded identity header."""
    employee = EmployeeRepository(db).get_by_id(x_employee_id)
    if employee is None:
        logger.warning(f"Identity resolution failed: employee {x_employee_id} not found")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown employee",
        )
    if not employee.is_active:
        logger.warning(f"Identity resolution failed: employee {x_employee_id} is inactive")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Employee is inactive",
        )
    return employee


def require_hr(current: Employee = Depends(get_acting_employee)) -> Employee:
    if not current.is_hr:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Required roles: ['HR_ADMIN', 'SUPER_ADMIN']",
        )
    return current
