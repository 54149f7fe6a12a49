"""Waymark Error Hierarchy.

Provides a structured error hierarchy for ledger and document operations:
- WaymarkError: Base exception for all bridge errors
- ValidationError: Missing or malformed arguments (rejected before any state change)
- NotFoundError: An id does not resolve in the ledger or the document
- RollbackIneligibleError: Explicit rollback of a record that cannot be undone
- NoEligibleOperationError: Nothing in the ledger can be undone
- DependencyConflictError: A guarded delete would remove dependent elements
- ExternalMutationFailure: The underlying document write raised

Each error type includes:
- Descriptive message
- Recoverable flag for retry logic
- Context fields for diagnostics
- Structured representation for command results

Usage:
    from waymark.errors import NotFoundError

    if not accessor.exists(element_id):
        raise NotFoundError("Element not found", resource_type="element",
                            resource_id=element_id)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Base Class
# =============================================================================


class WaymarkError(Exception):
    """Base exception for all bridge errors.

    Attributes:
        message: Human-readable error description
        recoverable: Whether the operation can be retried
        context: Additional context for debugging
    """

    error_type = "internal"

    def __init__(
        self,
        message: str,
        *,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to structured dictionary for command results."""
        return {
            "type": self.error_type,
            "message": self.message,
            "recoverable": self.recoverable,
            **{k: v for k, v in self.context.items() if v is not None},
        }


# =============================================================================
# Boundary Errors
# =============================================================================


class ValidationError(WaymarkError):
    """Input validation failed.

    Example:
        raise ValidationError("limit must be positive", field="limit", value=0)
    """

    error_type = "validation"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if constraint:
            context["constraint"] = constraint
        if value is not None:
            context["value"] = _truncate(str(value), 100)
        super().__init__(message, recoverable=False, context=context)
        self.field = field
        self.constraint = constraint


class NotFoundError(WaymarkError):
    """Resource not found (element, operation record, scope)."""

    error_type = "not_found"

    def __init__(
        self,
        message: str,
        *,
        resource_type: str | None = None,
        resource_id: Any = None,
    ) -> None:
        super().__init__(
            message,
            recoverable=False,
            context={"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


# =============================================================================
# Rollback Errors
# =============================================================================


class RollbackIneligibleError(WaymarkError):
    """Explicit rollback of a record that cannot be mechanically reversed."""

    error_type = "rollback_ineligible"

    def __init__(
        self,
        message: str,
        *,
        operation_id: str | None = None,
        operation_type: str | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(
            message,
            recoverable=False,
            context={
                "operation_id": operation_id,
                "operation_type": operation_type,
                "reason": reason,
            },
        )
        self.operation_id = operation_id


class NoEligibleOperationError(WaymarkError):
    """No record in the ledger can be undone."""

    error_type = "no_eligible_operation"

    def __init__(
        self,
        message: str = "No operation found to undo",
        *,
        operation_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            recoverable=False,
            context={"operation_id": operation_id},
        )


class DependencyConflictError(WaymarkError):
    """A guarded delete would cascade into dependent elements."""

    error_type = "dependency_conflict"

    def __init__(
        self,
        message: str,
        *,
        element_id: int,
        element_name: str | None = None,
        element_category: str | None = None,
        dependents: list[str] | None = None,
    ) -> None:
        dependents = dependents or []
        super().__init__(
            message,
            # Retrying with force=true is a valid way forward
            recoverable=True,
            context={
                "element_id": element_id,
                "element_name": element_name,
                "element_category": element_category,
                "dependent_count": len(dependents),
                "dependents": dependents,
                "warning": (
                    f"Deleting this element will also delete "
                    f"{len(dependents)} dependent element(s)"
                ),
            },
        )
        self.dependents = dependents


class ExternalMutationFailure(WaymarkError):
    """The document rejected or failed a write."""

    error_type = "external_mutation_failure"

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        element_id: int | None = None,
        cause: BaseException | None = None,
        completed: list[int] | None = None,
    ) -> None:
        super().__init__(
            message,
            recoverable=True,
            context={
                "operation": operation,
                "element_id": element_id,
                "error_type": type(cause).__name__ if cause is not None else None,
                "detail": _truncate(str(cause), 500) if cause is not None else None,
                # Elements already changed before the failing write
                "completed_ids": completed,
            },
        )
        self.completed = list(completed or [])


class ConfigurationError(WaymarkError):
    """Configuration or setup issue."""

    error_type = "configuration"

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        super().__init__(
            message,
            recoverable=False,
            context={"setting": setting, "suggestion": suggestion},
        )


# =============================================================================
# Helpers
# =============================================================================


def _truncate(value: str | None, max_len: int) -> str | None:
    """Truncate a string value for safe logging."""
    if value is None:
        return None
    if len(value) <= max_len:
        return value
    return value[:max_len] + "..."


# =============================================================================
# Error Response Helpers
# =============================================================================


@dataclass
class ErrorResponse:
    """Structured failure payload for the command boundary."""

    error_type: str
    message: str
    recoverable: bool = False
    code: int = -32603
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "success": False,
            "error": {
                "type": self.error_type,
                "code": self.code,
                "message": self.message,
                "recoverable": self.recoverable,
            },
        }
        if self.details:
            result["error"]["details"] = self.details
        return result


def error_response(exc: Exception) -> ErrorResponse:
    """Convert an exception to a structured error response."""
    if isinstance(exc, WaymarkError):
        return ErrorResponse(
            error_type=exc.error_type,
            message=exc.message,
            recoverable=exc.recoverable,
            code=get_error_code(exc),
            details={k: v for k, v in exc.context.items() if v is not None},
        )

    # Unknown exception type
    return ErrorResponse(
        error_type="internal",
        message=str(exc) if str(exc) else "An unexpected error occurred",
        recoverable=False,
        details={"error_type": type(exc).__name__},
    )


# =============================================================================
# RPC Error Code Mapping
# =============================================================================


ERROR_CODES: dict[type[WaymarkError], int] = {
    ValidationError: -32000,
    NotFoundError: -32003,
    RollbackIneligibleError: -32060,
    NoEligibleOperationError: -32061,
    DependencyConflictError: -32062,
    ExternalMutationFailure: -32063,
    ConfigurationError: -32030,
}


def get_error_code(exc: WaymarkError) -> int:
    """Get the JSON-RPC error code for a domain error."""
    if type(exc) in ERROR_CODES:
        return ERROR_CODES[type(exc)]
    for error_type, code in ERROR_CODES.items():
        if isinstance(exc, error_type):
            return code
    return -32603
