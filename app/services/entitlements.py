"""
Entitlement gate.

The engine does not know about plans or subscriptions; it only asks whether a
company may use a capability right now and aborts when the answer is no.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.models.company import Company

logger = logging.getLogger(__name__)


class Capability:
    CREATE_LEAVE_APPLICATION = "create-leave-application"
    ATTENDANCE_RATE_ANALYTICS = "attendance-rate-analytics"


@dataclass(frozen=True)
class EntitlementDecision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "EntitlementDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "EntitlementDecision":
        return cls(allowed=False, reason=reason)


class EntitlementGate(ABC):
    @abstractmethod
    def check_allowed(self, company_id: int, capability: str) -> EntitlementDecision:
        """Answer whether the company may use `capability` right now."""


class StaticEntitlementGate(EntitlementGate):
    """Fixed answers; everything not listed in `denied` is allowed."""

    def __init__(self, denied: Iterable[str] = (), reason: str = "Not available in your plan"):
        self.denied = set(denied)
        self.reason = reason

    def check_allowed(self, company_id: int, capability: str) -> EntitlementDecision:
        if capability in self.denied:
            return EntitlementDecision.deny(self.reason)
        return EntitlementDecision.allow()


class CompanySettingsEntitlementGate(EntitlementGate):
    """
    Reads switches from the company's JSON settings:

        {"disabled_capabilities": ["create-leave-application"]}

    Capabilities are allowed unless explicitly disabled.
    """

    def __init__(self, db: Session):
        self.db = db

    def check_allowed(self, company_id: int, capability: str) -> EntitlementDecision:
        company = self.db.query(Company).filter(Company.id == company_id).first()
        if company is None:
            return EntitlementDecision.deny("Company not found")

        disabled = company.settings_dict.get("disabled_capabilities") or []
        if capability in disabled:
            logger.info(f"Capability {capability} disabled for company {company_id}")
            return EntitlementDecision.deny(f"{capability} is not available in your plan")
        return EntitlementDecision.allow()
