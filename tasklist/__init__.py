"""
tasklist - a local task list manager.

The Task model, a storage-backed TaskRepository with all-or-nothing writes,
and a TaskService applying business rules on top of it.
"""
from tasklist.exceptions import (
    ServiceError,
    NotFoundError,
    ValidationError,
    InvalidArgumentError,
    PersistenceError,
    TaskNotFoundError,
)
from tasklist.models import Task
from tasklist.services import TaskService
from tasklist.storage import (
    StorageAdapter,
    StorageError,
    StorageQuotaExceededError,
    MemoryStorage,
    FileStorage,
    TaskRepository,
)

__version__ = "0.1.0"

__all__ = [
    "Task",
    "TaskRepository",
    "TaskService",
    "StorageAdapter",
    "StorageError",
    "StorageQuotaExceededError",
    "MemoryStorage",
    "FileStorage",
    "ServiceError",
    "NotFoundError",
    "ValidationError",
    "InvalidArgumentError",
    "PersistenceError",
    "TaskNotFoundError",
]
