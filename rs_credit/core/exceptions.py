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

class ValidationError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details=details
        )

class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity} {entity_id} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details={"entity": entity, "id": entity_id}
        )

class CannotRemoveLastMonthError(AppException):
    def __init__(self, employee_id: str, month: str):
        super().__init__(
            message="Cannot remove the last remaining month. Delete the employee instead.",
            status_code=409,
            error_code="CANNOT_REMOVE_LAST_MONTH",
            details={"employee_id": employee_id, "month": month}
        )

class ExternalServiceError(AppException):
    def __init__(
        self,
        message: str,
        status_code: int = 503,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details
        )

class QuotaExceededError(ExternalServiceError):
    def __init__(self, message: str = "AI extraction quota exhausted.", daily: bool = False):
        super().__init__(
            message=message,
            status_code=429,
            error_code="AI_DAILY_QUOTA_EXCEEDED" if daily else "AI_QUOTA_EXCEEDED",
            details={"daily": daily}
        )

class AIKillSwitchError(ExternalServiceError):
    def __init__(self):
        super().__init__(
            message="AI extraction is disabled. Enter payroll data manually.",
            error_code="AI_KILL_SWITCH_ACTIVE"
        )

class PersistenceError(AppException):
    """Raised after a failed write once in-memory state has been restored."""
    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"Could not save {operation}: {reason}",
            status_code=500,
            error_code="PERSISTENCE_ERROR",
            details={"operation": operation}
        )
