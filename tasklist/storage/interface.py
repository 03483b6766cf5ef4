"""
Storage abstraction layer.

StorageAdapter is the durability boundary: a synchronous key to string blob
store. TaskRepositoryInterface is the contract the service layer depends on,
so that any repository implementation can be injected.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence

from tasklist.models import Task

TaskPredicate = Callable[[Task], bool]


class StorageError(Exception):
    """Raised by a storage adapter when a read or write fails."""


class StorageQuotaExceededError(StorageError):
    """Raised by a storage adapter when a write would exceed its capacity."""


class StorageAdapter(ABC):
    """Abstract key/value blob store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the blob stored under key, or None if there is none."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store value under key, replacing any previous blob.

        Raises:
            StorageQuotaExceededError: If the write would exceed capacity
            StorageError: If the write fails for any other reason
        """
        pass


class TaskRepositoryInterface(ABC):
    """Abstract contract for task persistence."""

    @abstractmethod
    def save(self, task: Task) -> Task:
        """Insert or replace a task by id."""
        pass

    @abstractmethod
    def save_many(self, tasks: Sequence[Task]) -> int:
        """Insert or replace several tasks atomically."""
        pass

    @abstractmethod
    def exists(self, task_id: str) -> bool:
        """Check whether a task id is stored."""
        pass

    @abstractmethod
    def find_all(self) -> List[Task]:
        """Return copies of every stored task."""
        pass

    @abstractmethod
    def find_by(self, predicate: TaskPredicate) -> List[Task]:
        """Return copies of the tasks matching predicate."""
        pass

    @abstractmethod
    def find_by_id(self, task_id: str) -> Optional[Task]:
        """Return a copy of the task, or None."""
        pass

    @abstractmethod
    def delete(self, task_id: str) -> bool:
        """Remove a task; False if it was not stored."""
        pass

    @abstractmethod
    def delete_many(self, task_ids: Sequence[str]) -> int:
        """Remove several tasks atomically; returns the number removed."""
        pass

    @abstractmethod
    def clear(self) -> int:
        """Remove every task; returns the number removed."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of stored tasks."""
        pass

    @abstractmethod
    def count_by(self, predicate: TaskPredicate) -> int:
        """Number of stored tasks matching predicate."""
        pass

    @abstractmethod
    def export_json(self) -> str:
        """Serialize the collection as pretty-printed JSON."""
        pass

    @abstractmethod
    def import_json(self, json_string: str) -> int:
        """Replace the collection with the tasks in json_string."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Return total/completed/pending counts and a formatted completion rate."""
        pass
