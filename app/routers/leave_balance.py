from typing import List, Optional

from fastapi import APIRouter, Depends

from app.core.exceptions import AccessDeniedError
from app.models.employee import Employee
from app.models.leave_application import LeaveType
from app.routers.identity_deps import get_acting_employee
from app.routers.leave import get_leave_service
from app.schemas.leave import LeaveBalanceResponse
from app.services.leave_application_service import LeaveApplicationService

router = APIRouter(prefix="/leave-balances", tags=["Leave Balances"])


@router.get("", response_model=List[LeaveBalanceResponse])
def my_balances(
    year: Optional[int] = None,
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    return service.ledger.list_balances(current.id, year)


@router.get("/employee/{employee_id}", response_model=List[LeaveBalanceResponse])
def employee_balances(
    employee_id: int,
    year: Optional[int] = None,
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    """All buckets of one employee, for the employee, their manager or HR."""
    if not service.can_view_balance(current, employee_id):
        raise AccessDeniedError("You cannot view this employee's leave balances")
    return service.ledger.list_balances(employee_id, year)


@router.get("/{employee_id}/{leave_type}/{year}", response_model=LeaveBalanceResponse)
def get_balance(
    employee_id: int,
    leave_type: LeaveType,
    year: int,
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    if not service.can_view_balance(current, employee_id):
        raise AccessDeniedError("You cannot view this employee's leave balance")
    return service.get_balance(employee_id, leave_type.value, year)
