"""
Leave Balance Ledger

Owns the per (employee, leave type, year) bucket and the three mutations the
approval workflow performs on it:

- reserve: days enter `pending` when an application is submitted
- commit:  days move from `pending` to `used` on final approval
- release: days leave `pending` on rejection or cancellation

Every mutation is a single guarded UPDATE (see LeaveBalanceRepository.apply_delta),
so the database linearizes concurrent writers on the same bucket. The ledger
never commits; the caller owns the transaction.
"""
import logging
import math
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import LedgerConsistencyError, NotFoundError
from app.models.employee import Employee
from app.models.leave_balance import LeaveBalance
from app.models.leave_policy import LeavePolicy
from app.repositories.leave_balance_repo import LeaveBalanceRepository, LEDGER_EPSILON
from app.repositories.leave_policy_repo import LeavePolicyRepository

logger = logging.getLogger(__name__)


def check_invariant(balance: LeaveBalance) -> None:
    """Raise if the bucket violates available == quota + carried - used - pending or has negative counts."""
    problems = []
    if balance.used < -LEDGER_EPSILON:
        problems.append(f"used is negative ({balance.used})")
    if balance.pending < -LEDGER_EPSILON:
        problems.append(f"pending is negative ({balance.pending})")
    if not math.isclose(balance.available, balance.expected_available(), abs_tol=1e-6):
        problems.append(
            f"available {balance.available} != quota {balance.total_quota} + carried {balance.carried_forward}"
            f" - used {balance.used} - pending {balance.pending}"
        )
    if problems:
        raise LedgerConsistencyError(
            "Leave balance invariant violated: " + "; ".join(problems),
            details={
                "employee_id": balance.employee_id,
                "leave_type": balance.leave_type,
                "year": balance.year,
            },
        )


class LeaveLedger:
    def __init__(self, db: Session):
        self.db = db
        self.balances = LeaveBalanceRepository(db)
        self.policies = LeavePolicyRepository(db)

    def reserve(self, employee_id: int, leave_type: str, year: int, days: float) -> LeaveBalance:
        """Move `days` into pending, creating the bucket with a zero quota if needed."""
        if self.balances.ensure_bucket(employee_id, leave_type, year):
            logger.info(f"Created leave balance bucket employee={employee_id} type={leave_type} year={year}")
        return self._mutate(employee_id, leave_type, year, pending_delta=days, used_delta=0.0, action="reserve")

    def commit(self, employee_id: int, leave_type: str, year: int, days: float) -> LeaveBalance:
        """Move `days` from pending to used."""
        return self._mutate(employee_id, leave_type, year, pending_delta=-days, used_delta=days, action="commit")

    def release(self, employee_id: int, leave_type: str, year: int, days: float) -> LeaveBalance:
        """Drop `days` from pending without touching used."""
        return self._mutate(employee_id, leave_type, year, pending_delta=-days, used_delta=0.0, action="release")

    def _mutate(self, employee_id: int, leave_type: str, year: int,
                pending_delta: float, used_delta: float, action: str) -> LeaveBalance:
        key = {"employee_id": employee_id, "leave_type": leave_type, "year": year}
        updated = self.balances.apply_delta(employee_id, leave_type, year, pending_delta, used_delta)
        if updated == 0:
            current = self.balances.get_bucket(employee_id, leave_type, year, refresh=True)
            if current is None:
                raise NotFoundError(
                    f"Leave balance not found for {leave_type} {year}",
                    details=key,
                )
            logger.error(
                f"Ledger {action} refused: pending={current.pending} used={current.used} "
                f"pending_delta={pending_delta} used_delta={used_delta}",
                extra=key,
            )
            raise LedgerConsistencyError(
                f"Ledger {action} would make leave balance negative",
                details={**key, "pending": current.pending, "used": current.used,
                         "pending_delta": pending_delta, "used_delta": used_delta},
            )

        balance = self.balances.get_bucket(employee_id, leave_type, year, refresh=True)
        check_invariant(balance)
        logger.debug(
            f"Ledger {action}: pending={balance.pending} used={balance.used} available={balance.available}",
            extra=key,
        )
        return balance

    def get_balance(self, employee_id: int, leave_type: str, year: int) -> LeaveBalance:
        """
        Current bucket. A bucket that was never created is reported as an
        all-zero balance (transient, not added to the session).
        """
        balance = self.balances.get_bucket(employee_id, leave_type, year)
        if balance is not None:
            return balance
        return LeaveBalance(
            employee_id=employee_id,
            leave_type=leave_type,
            year=year,
            total_quota=0.0,
            used=0.0,
            pending=0.0,
            carried_forward=0.0,
            available=0.0,
            version=0,
        )

    def list_balances(self, employee_id: int, year: Optional[int] = None) -> List[LeaveBalance]:
        return self.balances.get_by_employee_id(employee_id, year)

    def initialize_balances(self, employee: Employee, year: Optional[int] = None) -> List[LeaveBalance]:
        """
        Create one bucket per active company policy with quota = annual quota.
        Policies with carry_forward bring over the unspent part of last year's
        bucket, capped at max_carry_forward. Existing buckets are kept.
        """
        year = year or date.today().year
        for policy in self.policies.list_active(employee.company_id):
            carried = self._carry_over(employee.id, policy, year)
            self.balances.ensure_bucket(
                employee.id, policy.leave_type, year,
                total_quota=policy.annual_quota, carried_forward=carried,
            )
        return self.balances.get_by_employee_id(employee.id, year)

    def _carry_over(self, employee_id: int, policy: LeavePolicy, year: int) -> float:
        if not policy.carry_forward:
            return 0.0
        previous = self.balances.get_bucket(employee_id, policy.leave_type, year - 1)
        if previous is None:
            return 0.0
        return min(max(previous.available, 0.0), policy.max_carry_forward or 0.0)
