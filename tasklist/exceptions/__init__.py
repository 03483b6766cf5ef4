"""
Standard exceptions for the application.
"""
from tasklist.exceptions.errors import (
    ServiceError,
    NotFoundError,
    ValidationError,
    InvalidArgumentError,
    PersistenceError,
    TaskNotFoundError,
    rewrap,
)

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ValidationError",
    "InvalidArgumentError",
    "PersistenceError",
    "TaskNotFoundError",
    "rewrap",
]
