from typing import Any, Dict, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details
        )

class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )

class InvalidStateError(AppException):
    """Transition attempted on an application that is not in a state that allows it."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, error_code: str = "INVALID_STATE"):
        super().__init__(
            message=message,
            status_code=409,
            error_code=error_code,
            details=details
        )

class ConcurrentModificationError(InvalidStateError):
    """Another request changed the application between read and write."""
    def __init__(self, message: str = "Leave application was modified by another request", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details, error_code="CONFLICT")

class LeaveOverlapError(AppException):
    def __init__(self, message: str = "Leave dates overlap with existing application", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=409,
            error_code="LEAVE_OVERLAP",
            details=details
        )

class EntitlementDeniedError(AppException):
    def __init__(self, message: str = "Operation is not available in your plan", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code="ENTITLEMENT_DENIED",
            details=details
        )

class LedgerConsistencyError(AppException):
    """Ledger arithmetic would break the balance invariant. Always a bug, never clamped."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="LEDGER_INCONSISTENT",
            details=details
        )

class LeavePolicyError(AppException):
    """Request is well-formed but the company's leave policy forbids it."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="POLICY_VIOLATION",
            details=details
        )
