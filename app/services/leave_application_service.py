"""
Leave Application Service

Approval state machine for leave applications:

    PENDING -> APPROVED | REJECTED | CANCELLED

Architecture:
- Router -> Service (this module) -> Repositories / LeaveLedger
- Each transition is a compare-and-set on (status, version) plus the ledger
  mutation, committed together; the loser of a race gets ConcurrentModificationError
- Notifications are sent after commit and can never undo a decision. With a
  BackgroundTasks instance (HTTP requests) delivery runs after the response
  is sent; without one (scripts, tests) it runs inline
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AccessDeniedError,
    ConcurrentModificationError,
    EntitlementDeniedError,
    InvalidStateError,
    LeaveOverlapError,
    LeavePolicyError,
    NotFoundError,
)
from app.models.employee import Employee, EmployeeRole
from app.models.leave_application import LeaveApplication, LeaveStatus
from app.models.leave_balance import LeaveBalance
from app.repositories.employee_repo import EmployeeRepository
from app.repositories.leave_application_repo import LeaveApplicationRepository
from app.repositories.leave_policy_repo import LeavePolicyRepository
from app.schemas.leave import LeaveApplicationCreate
from app.services.entitlements import Capability, CompanySettingsEntitlementGate, EntitlementGate
from app.services.leave_ledger import LeaveLedger
from app.services.notification import NotificationKind, Notifier, build_notifier
from app.services.overlap import OverlapChecker

logger = logging.getLogger(__name__)

LedgerOperation = Callable[[int, str, int, float], LeaveBalance]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LeaveApplicationService:
    def __init__(
        self,
        db: Session,
        entitlement_gate: Optional[EntitlementGate] = None,
        notifier: Optional[Notifier] = None,
        ledger: Optional[LeaveLedger] = None,
        overlap_checker: Optional[OverlapChecker] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        self.db = db
        self.applications = LeaveApplicationRepository(db)
        self.employees = EmployeeRepository(db)
        self.policies = LeavePolicyRepository(db)
        self.ledger = ledger or LeaveLedger(db)
        self.overlap_checker = overlap_checker or OverlapChecker(db)
        self.entitlement_gate = entitlement_gate or CompanySettingsEntitlementGate(db)
        self.notifier = notifier if notifier is not None else build_notifier()
        self.background_tasks = background_tasks

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def submit_leave(self, employee_id: int, request: LeaveApplicationCreate) -> LeaveApplication:
        """Create a PENDING application and reserve its days in the ledger."""
        try:
            # Row lock serializes concurrent submissions of one employee so the overlap check holds
            employee = self.employees.get_by_id(employee_id, lock=True)
            if not employee or not employee.is_active:
                raise NotFoundError("Employee not found")

            decision = self.entitlement_gate.check_allowed(employee.company_id, Capability.CREATE_LEAVE_APPLICATION)
            if not decision.allowed:
                raise EntitlementDeniedError(
                    decision.reason or "Leave applications are not available in your plan",
                    details={"company_id": employee.company_id},
                )

            conflicts = self.overlap_checker.find_conflicts(employee.id, request.start_date, request.end_date)
            if conflicts:
                raise LeaveOverlapError(
                    f"Leave dates overlap with existing application from {conflicts[0].start_date} to {conflicts[0].end_date}",
                    details={"conflicting_application_ids": [c.id for c in conflicts]},
                )

            leave_type = request.leave_type.value
            policy = self.policies.get_active(employee.company_id, leave_type)
            if request.is_half_day and policy is not None and not policy.half_day_allowed:
                raise LeavePolicyError(
                    f"Half-day {leave_type} is not allowed by company policy",
                    details={"leave_type": leave_type},
                )
            requires_hr = employee.manager_id is None or bool(policy and policy.requires_hr_approval)

            application = self.applications.create(LeaveApplication(
                employee_id=employee.id,
                leave_type=leave_type,
                start_date=request.start_date,
                end_date=request.end_date,
                number_of_days=request.number_of_days,
                is_half_day=request.is_half_day,
                reason=request.reason,
                attachment_ref=request.attachment_ref,
                status=LeaveStatus.PENDING.value,
                requires_hr_approval=requires_hr,
                manager_id_at_submission=employee.manager_id,
                version=1,
            ))

            self.ledger.reserve(employee.id, leave_type, application.balance_year, application.number_of_days)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(application)
        logger.info(
            f"Leave application {application.id} submitted",
            extra={"employee_id": employee_id, "days": application.number_of_days,
                   "requires_hr_approval": application.requires_hr_approval},
        )
        return application

    def decide_as_manager(
        self,
        application_id: int,
        manager_id: int,
        approved: bool,
        rejection_reason: Optional[str] = None,
    ) -> LeaveApplication:
        application = self._get_application(application_id)

        if self._deciding_manager_id(application) != manager_id:
            raise AccessDeniedError("You are not the manager of this employee")
        self._ensure_pending(application)
        if application.manager_approval is not None:
            raise InvalidStateError(
                "Manager decision already recorded; application is awaiting HR approval",
                details={"application_id": application.id},
            )

        now = _utcnow()
        if approved:
            values: Dict[str, Any] = {"manager_approver_id": manager_id, "manager_approved_at": now}
            if application.requires_hr_approval:
                ledger_op = None
                kind = NotificationKind.LEAVE_AWAITING_HR
            else:
                values["status"] = LeaveStatus.APPROVED.value
                ledger_op = self.ledger.commit
                kind = NotificationKind.LEAVE_APPROVED
        else:
            values = {
                "status": LeaveStatus.REJECTED.value,
                "rejection_reason": rejection_reason,
                "rejected_at": now,
            }
            ledger_op = self.ledger.release
            kind = NotificationKind.LEAVE_REJECTED

        self._transition(application, values, ledger_op, actor_id=manager_id)
        self._notify(application, kind)
        return application

    def decide_as_hr(
        self,
        application_id: int,
        hr_id: int,
        approved: bool,
        rejection_reason: Optional[str] = None,
    ) -> LeaveApplication:
        application = self._get_application(application_id)

        hr = self.employees.get_by_id(hr_id)
        if not hr or not hr.is_active or not hr.is_hr:
            raise AccessDeniedError("HR approval requires an HR role")
        if hr.role != EmployeeRole.SUPER_ADMIN and hr.company_id != application.employee.company_id:
            raise AccessDeniedError("Access denied")

        self._ensure_pending(application)
        # HR takes over when no active manager is left to decide
        manager_reachable = self._deciding_manager_id(application) is not None
        if not application.requires_hr_approval and manager_reachable:
            raise InvalidStateError(
                "This application does not require HR approval; the manager decides",
                details={"application_id": application.id},
            )
        if application.needs_manager_step and application.manager_approval is None and manager_reachable:
            raise InvalidStateError(
                "Manager approval required first",
                details={"application_id": application.id},
            )

        now = _utcnow()
        if approved:
            values: Dict[str, Any] = {
                "status": LeaveStatus.APPROVED.value,
                "hr_approver_id": hr_id,
                "hr_approved_at": now,
            }
            ledger_op = self.ledger.commit
            kind = NotificationKind.LEAVE_APPROVED
        else:
            values = {
                "status": LeaveStatus.REJECTED.value,
                "rejection_reason": rejection_reason,
                "rejected_at": now,
            }
            ledger_op = self.ledger.release
            kind = NotificationKind.LEAVE_REJECTED

        self._transition(application, values, ledger_op, actor_id=hr_id)
        self._notify(application, kind)
        return application

    def cancel_leave(self, application_id: int, employee_id: int) -> LeaveApplication:
        application = self._get_application(application_id)

        if application.employee_id != employee_id:
            raise AccessDeniedError("You can only cancel your own leave applications")
        if application.status != LeaveStatus.PENDING.value:
            raise InvalidStateError(
                "Only pending applications can be cancelled",
                details={"application_id": application.id, "status": application.status},
            )

        self._transition(
            application,
            {"status": LeaveStatus.CANCELLED.value, "cancelled_at": _utcnow()},
            self.ledger.release,
            actor_id=employee_id,
        )
        return application

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_application(self, application_id: int, company_id: int) -> LeaveApplication:
        application = self._get_application(application_id)
        if application.employee.company_id != company_id:
            raise AccessDeniedError("Access denied")
        return application

    def list_my_applications(self, employee_id: int) -> List[LeaveApplication]:
        return self.applications.get_by_employee_id(employee_id)

    def count_pending(self, employee_id: int) -> int:
        return self.applications.count_pending_by_employee_id(employee_id)

    def pending_for_manager(self, manager_id: int) -> List[LeaveApplication]:
        return self.applications.get_pending_for_manager(manager_id)

    def pending_for_hr(self, company_id: int) -> List[LeaveApplication]:
        return self.applications.get_pending_for_hr(company_id)

    def applications_in_range(self, company_id: int, start_date: date, end_date: date) -> List[LeaveApplication]:
        return self.applications.get_by_company_and_date_range(company_id, start_date, end_date)

    def get_balance(self, employee_id: int, leave_type: str, year: int) -> LeaveBalance:
        return self.ledger.get_balance(employee_id, leave_type, year)

    def can_view_balance(self, viewer: Employee, employee_id: int) -> bool:
        """Self, the direct manager, or HR of the same company."""
        if viewer.id == employee_id:
            return True
        target = self.employees.get_by_id(employee_id)
        if target is None:
            raise NotFoundError("Employee not found")
        if target.manager_id == viewer.id:
            return True
        if viewer.role == EmployeeRole.SUPER_ADMIN:
            return True
        return viewer.is_hr and viewer.company_id == target.company_id

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_application(self, application_id: int) -> LeaveApplication:
        application = self.applications.get_by_id(application_id)
        if not application:
            raise NotFoundError("Leave application not found")
        return application

    def _deciding_manager_id(self, application: LeaveApplication) -> Optional[int]:
        """
        The employee's current manager; if the employee has none any more, the
        manager recorded at submission. None when that person is gone or inactive.
        """
        candidate_id = application.employee.manager_id or application.manager_id_at_submission
        if candidate_id is None:
            return None
        manager = self.employees.get_by_id(candidate_id)
        if manager is None or not manager.is_active:
            return None
        return manager.id

    def _ensure_pending(self, application: LeaveApplication) -> None:
        if application.status != LeaveStatus.PENDING.value:
            raise InvalidStateError(
                "Leave application is not pending",
                details={"application_id": application.id, "status": application.status},
            )

    def _transition(
        self,
        application: LeaveApplication,
        values: Dict[str, Any],
        ledger_op: Optional[LedgerOperation],
        actor_id: int,
    ) -> None:
        """Compare-and-set the application row and apply the ledger change in one transaction."""
        expected_version = application.version
        try:
            if not self.applications.compare_and_set(application.id, expected_version, values):
                raise ConcurrentModificationError(
                    details={"application_id": application.id, "expected_version": expected_version}
                )
            if ledger_op is not None:
                ledger_op(
                    application.employee_id,
                    application.leave_type,
                    application.balance_year,
                    application.number_of_days,
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(application)
        logger.info(
            f"Leave application {application.id} -> {application.status}",
            extra={"actor_id": actor_id, "employee_id": application.employee_id},
        )

    def _notify(self, application: LeaveApplication, kind: str) -> None:
        employee = application.employee
        payload = {
            "application_id": application.id,
            "link": f"{settings.api_prefix}/leave-applications/{application.id}",
            "leave_type": application.leave_type,
            "start_date": application.start_date.isoformat(),
            "end_date": application.end_date.isoformat(),
            "number_of_days": application.number_of_days,
            "status": application.status,
            "rejection_reason": application.rejection_reason or "not specified",
            "employee_name": employee.full_name if employee else None,
            "employee_email": employee.email if employee else None,
        }
        if self.background_tasks is not None:
            self.background_tasks.add_task(self._deliver, application.employee_id, kind, payload)
        else:
            self._deliver(application.employee_id, kind, payload)

    def _deliver(self, recipient_employee_id: int, kind: str, payload: Dict[str, Any]) -> None:
        """Runs after the response when scheduled; must not touch the request session."""
        try:
            self.notifier.notify(recipient_employee_id, kind, payload)
        except Exception as e:
            # Don't fail the request if notification fails
            logger.warning(f"Notification failed: {e}", exc_info=True)
