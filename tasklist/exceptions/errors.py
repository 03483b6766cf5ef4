"""
Standard Exception Hierarchy for tasklist

This module provides the exception hierarchy used by the task model, the
repository and the service layer. All exceptions inherit from ServiceError,
carry an optional wrapped original error, and can be rendered to a dictionary
for structured output (CLI JSON mode, logging).
"""
from typing import Any


# ============================================================================
# Base Exception Class
# ============================================================================

class ServiceError(Exception):
    """Base exception for all tasklist errors.

    Attributes:
        message: Human-readable error message
        context: Dictionary of additional context
        original_error: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        """Initialize service error.

        Args:
            message: Human-readable error message
            context: Optional dictionary of additional context
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
        }
        if self.context:
            result["context"] = self.context
        if self.original_error:
            result["original_error"] = {
                "type": type(self.original_error).__name__,
                "message": str(self.original_error)
            }
        return result


# ============================================================================
# Common Exception Types
# ============================================================================

class NotFoundError(ServiceError):
    """Raised when a requested resource is not found.

    Attributes:
        resource_type: Type of resource (e.g., "Task")
        resource_id: ID of the resource that was not found
    """

    def __init__(
        self,
        resource_type: str,
        resource_id: str | int,
        *,
        message: str | None = None,
        context: dict[str, Any] | None = None
    ):
        if message is None:
            message = f"{resource_type} with ID '{resource_id}' not found"

        super().__init__(message, context=context)
        self.resource_type = resource_type
        self.resource_id = str(resource_id)
        self.context.setdefault("resource_type", resource_type)
        self.context.setdefault("resource_id", str(resource_id))


class ValidationError(ServiceError):
    """Raised when task data or a serialized payload fails validation.

    Attributes:
        field: Optional field name that failed validation
        value: Optional value that failed validation
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, context=context, original_error=original_error)
        self.field = field
        self.value = value
        if field is not None:
            self.context.setdefault("field", field)
        if value is not None:
            self.context.setdefault("value", str(value))


class InvalidArgumentError(ServiceError):
    """Raised when a public method receives an argument of the wrong shape or type.

    Attributes:
        argument: Optional name of the offending argument
    """

    def __init__(
        self,
        message: str,
        *,
        argument: str | None = None,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, context=context, original_error=original_error)
        self.argument = argument
        if argument is not None:
            self.context.setdefault("argument", argument)


class PersistenceError(ServiceError):
    """Raised when the storage adapter rejects a write.

    Attributes:
        operation: Optional repository operation that failed (e.g., "save", "clear")
    """

    def __init__(
        self,
        message: str,
        *,
        original_error: Exception | None = None,
        operation: str | None = None,
        context: dict[str, Any] | None = None
    ):
        """Initialize persistence error.

        Args:
            message: Error message describing the storage failure
            original_error: Optional original storage exception
            operation: Optional repository operation that failed
            context: Optional additional context
        """
        super().__init__(message, context=context, original_error=original_error)
        self.operation = operation
        if operation is not None:
            self.context.setdefault("operation", operation)


# ============================================================================
# Service-Specific Exceptions
# ============================================================================

class TaskNotFoundError(NotFoundError):
    """Raised when a task is not found."""

    def __init__(self, task_id: str | int, **kwargs):
        super().__init__("Task", task_id, **kwargs)
        self.task_id = task_id  # Convenience attribute


# ============================================================================
# Helper Functions
# ============================================================================

def rewrap(exc: ServiceError, message: str) -> ServiceError:
    """Build a new error of the same category as ``exc`` with a new message.

    The returned error keeps ``exc`` as its original_error so callers can
    still inspect the underlying cause. Callers raise it with ``from exc``.

    Args:
        exc: Error to wrap
        message: Contextual message for the new error

    Returns:
        ValidationError, InvalidArgumentError, PersistenceError or ServiceError
    """
    if isinstance(exc, ValidationError):
        return ValidationError(message, field=exc.field, value=exc.value, original_error=exc)
    if isinstance(exc, InvalidArgumentError):
        return InvalidArgumentError(message, argument=exc.argument, original_error=exc)
    if isinstance(exc, PersistenceError):
        return PersistenceError(message, operation=exc.operation, original_error=exc)
    return ServiceError(message, original_error=exc)


# ============================================================================
# Exports
# ============================================================================

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ValidationError",
    "InvalidArgumentError",
    "PersistenceError",
    "TaskNotFoundError",
    "rewrap",
]
