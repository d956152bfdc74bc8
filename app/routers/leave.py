from datetime import date
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.employee import Employee
from app.routers.identity_deps import get_acting_employee, require_hr
from app.schemas.leave import (
    LeaveApplicationCreate,
    LeaveApplicationResponse,
    LeaveDecisionRequest,
    PendingCountResponse,
)
from app.services.entitlements import CompanySettingsEntitlementGate, EntitlementGate
from app.services.leave_application_service import LeaveApplicationService
from app.services.notification import Notifier, build_notifier

router = APIRouter(prefix="/leave-applications", tags=["Leave Applications"])


def get_notifier() -> Notifier:
    return build_notifier()


def get_entitlement_gate(db: Session = Depends(get_db)) -> EntitlementGate:
    return CompanySettingsEntitlementGate(db)


def get_leave_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    gate: EntitlementGate = Depends(get_entitlement_gate),
    notifier: Notifier = Depends(get_notifier),
) -> LeaveApplicationService:
    return LeaveApplicationService(
        db, entitlement_gate=gate, notifier=notifier, background_tasks=background_tasks
    )


@router.post("", response_model=LeaveApplicationResponse, status_code=status.HTTP_201_CREATED)
def submit_leave(
    request: LeaveApplicationCreate,
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    return service.submit_leave(current.id, request)


@router.get("/my", response_model=List[LeaveApplicationResponse])
def my_applications(
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    return service.list_my_applications(current.id)


@router.get("/my/pending/count", response_model=PendingCountResponse)
def my_pending_count(
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    return PendingCountResponse(employee_id=current.id, pending=service.count_pending(current.id))


@router.get("/pending/manager", response_model=List[LeaveApplicationResponse])
def pending_for_manager(
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    return service.pending_for_manager(current.id)


@router.get("/pending/hr", response_model=List[LeaveApplicationResponse])
def pending_for_hr(
    current: Employee = Depends(require_hr),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    return service.pending_for_hr(current.company_id)


@router.get("/range", response_model=List[LeaveApplicationResponse])
def applications_in_range(
    start_date: date = Query(...),
    end_date: date = Query(...),
    current: Employee = Depends(require_hr),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date cannot be before start_date")
    return service.applications_in_range(current.company_id, start_date, end_date)


@router.get("/{application_id}", response_model=LeaveApplicationResponse)
def get_application(
    application_id: int,
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    return service.get_application(application_id, current.company_id)


@router.post("/{application_id}/decision/manager", response_model=LeaveApplicationResponse)
def decide_as_manager(
    application_id: int,
    decision: LeaveDecisionRequest,
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    return service.decide_as_manager(application_id, current.id, decision.approved, decision.rejection_reason)


@router.post("/{application_id}/decision/hr", response_model=LeaveApplicationResponse)
def decide_as_hr(
    application_id: int,
    decision: LeaveDecisionRequest,
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    return service.decide_as_hr(application_id, current.id, decision.approved, decision.rejection_reason)


@router.post("/{application_id}/cancel", response_model=LeaveApplicationResponse)
def cancel_leave(
    application_id: int,
    current: Employee = Depends(get_acting_employee),
    service: LeaveApplicationService = Depends(get_leave_service),
):
    return service.cancel_leave(application_id, current.id)
