"""
Workflow errors
===============

Every error the engine raises derives from ``WorkflowError`` and carries a
machine-readable ``code`` so the API layer can map it to a status without
string matching.

Usage:
    from thesis_tracker.exceptions import InvalidTransition

    if slot.status != ApprovalStatus.pending_approval:
        raise InvalidTransition(...)
"""

from typing import Any, Dict, Optional


class WorkflowError(Exception):
    """Base exception for all workflow errors"""

    def __init__(
        self,
        message: str,
        code: str = "WORKFLOW_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class InvalidTransition(WorkflowError):
    """A state machine precondition was violated"""

    def __init__(self, message: str, current_status: Optional[str] = None, **details: Any):
        if current_status is not None:
            details["current_status"] = current_status
        super().__init__(message, code="INVALID_TRANSITION", details=details)


class ValidationError(WorkflowError):
    """Input rejected before any write"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field} if field else None
        )


class RubricOutOfRange(ValidationError):
    """A rubric score fell outside [1, 5]"""

    def __init__(self, index: int, value: Any):
        super().__init__(f"Rubric {index} must be an integer between 1 and 5, got {value!r}",
                         field=f"rubric_{index}")
        self.code = "RUBRIC_OUT_OF_RANGE"
        self.details["value"] = value


class NotFound(WorkflowError):
    """Referenced student, slot, grade or record does not exist"""

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class Unauthorized(WorkflowError):
    """Actor's role does not permit this operation"""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


class ConcurrencyConflict(WorkflowError):
    """Optimistic retries were exhausted while racing another writer"""

    def __init__(self, key: Any, attempts: int):
        super().__init__(
            f"Concurrent modification of {key} after {attempts} attempts",
            code="CONCURRENCY_CONFLICT",
            details={"key": str(key), "attempts": attempts}
        )
