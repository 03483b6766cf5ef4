"""
Repository for task persistence.

TaskRepository owns the canonical in-memory collection (a dict keyed by task
id, in insertion order) and mirrors it to a StorageAdapter under a single key.
Every mutating operation takes a snapshot of the dict, mutates, then persists;
if persisting fails the snapshot is restored so no partial change is ever
observable.
"""
import json
import logging
from collections.abc import Sequence
from typing import Any, Dict, List, Optional

from tasklist.exceptions import (
    InvalidArgumentError,
    PersistenceError,
    ServiceError,
    ValidationError,
)
from tasklist.models import Task
from tasklist.storage.interface import (
    StorageAdapter,
    StorageError,
    StorageQuotaExceededError,
    TaskPredicate,
    TaskRepositoryInterface,
)

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "todo_tasks"


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


class TaskRepository(TaskRepositoryInterface):
    """Storage-backed task repository with snapshot/revert semantics."""

    def __init__(self, storage: StorageAdapter, storage_key: str = DEFAULT_STORAGE_KEY):
        """
        Initialize TaskRepository and load any persisted tasks.

        Args:
            storage: Storage adapter used as the durability boundary
            storage_key: Key the collection is stored under
        """
        self._storage = storage
        self._storage_key = storage_key
        self._tasks: Dict[str, Task] = {}
        self._initialize()

    @property
    def storage_key(self) -> str:
        return self._storage_key

    # -------------------- loading --------------------
    def _initialize(self) -> None:
        try:
            self._load()
        except ServiceError as e:
            logger.error(f"Failed to load tasks from '{self._storage_key}', starting empty: {e.message}")
            self._tasks = {}
        logger.info(f"TaskRepository ready key={self._storage_key} total={len(self._tasks)}")

    def _load(self) -> None:
        """
        Load tasks from storage.

        Individually invalid records are logged and skipped. A payload that is
        not valid JSON or not a list raises ValidationError.
        """
        try:
            data = self._storage.get(self._storage_key)
        except StorageError as e:
            raise PersistenceError(f"Failed to read storage: {e}", operation="load", original_error=e) from e
        if not data:
            return

        try:
            parsed = json.loads(data)
        except json.JSONDecodeError as e:
            raise ValidationError("Corrupted storage data: invalid JSON", original_error=e) from e
        if not isinstance(parsed, list):
            raise ValidationError("Corrupted storage data: expected a list of tasks")

        tasks: Dict[str, Task] = {}
        for record in parsed:
            try:
                task = Task.from_dict(record)
            except ValidationError as e:
                logger.warning(f"Skipping invalid task record {record!r}: {e.message}")
                continue
            tasks[task.id] = task
        self._tasks = tasks

    # -------------------- persistence --------------------
    def _serialize(self, tasks: Dict[str, Task], indent: Optional[int] = None) -> str:
        return json.dumps([task.to_dict() for task in tasks.values()], indent=indent, ensure_ascii=False)

    def _write(self, tasks: Dict[str, Task], operation: str) -> None:
        """Write the given collection to storage, translating adapter failures."""
        try:
            self._storage.set(self._storage_key, self._serialize(tasks))
        except StorageQuotaExceededError as e:
            logger.error(f"Storage quota exceeded during {operation}: {e}")
            raise PersistenceError(
                "Storage quota exceeded. Remove some tasks.",
                operation=operation,
                original_error=e
            ) from e
        except Exception as e:
            logger.error(f"Storage write failed during {operation}: {e}", exc_info=True)
            raise PersistenceError(
                f"Failed to write to storage: {e}",
                operation=operation,
                original_error=e
            ) from e

    def _persist(self, operation: str) -> None:
        self._write(self._tasks, operation)

    @staticmethod
    def _validate_task(task: Any) -> None:
        if not isinstance(task, Task):
            raise InvalidArgumentError(
                f"Invalid object: expected a Task instance, got {type(task).__name__}",
                argument="task"
            )

    @staticmethod
    def _validate_predicate(predicate: Any) -> None:
        if not callable(predicate):
            raise InvalidArgumentError("Predicate must be callable", argument="predicate")

    # -------------------- single-task operations --------------------
    def save(self, task: Task) -> Task:
        """
        Insert or replace a task.

        Raises:
            InvalidArgumentError: If task is not a Task
            PersistenceError: If storage rejects the write (state is reverted)
        """
        self._validate_task(task)
        previous = self._tasks.get(task.id)

        self._tasks[task.id] = task
        try:
            self._persist("save")
        except PersistenceError as e:
            if previous is None:
                del self._tasks[task.id]
            else:
                self._tasks[task.id] = previous
            raise PersistenceError(
                f"Failed to save task {task.id}: {e.message}",
                operation="save",
                original_error=e
            ) from e

        logger.debug(f"Saved task {task.id}")
        return task

    def exists(self, task_id: str) -> bool:
        return task_id in self._tasks

    def find_all(self) -> List[Task]:
        return [task.copy() for task in self._tasks.values()]

    def find_by(self, predicate: TaskPredicate) -> List[Task]:
        self._validate_predicate(predicate)
        return [task for task in self.find_all() if predicate(task)]

    def find_by_id(self, task_id: str) -> Optional[Task]:
        task = self._tasks.get(task_id)
        return task.copy() if task else None

    def delete(self, task_id: str) -> bool:
        """
        Remove a task.

        Returns:
            False if the task was not stored, True once removal is persisted

        Raises:
            PersistenceError: If storage rejects the write (task is restored)
        """
        task = self._tasks.get(task_id)
        if task is None:
            return False

        snapshot = dict(self._tasks)
        del self._tasks[task_id]
        try:
            self._persist("delete")
        except PersistenceError as e:
            self._tasks = snapshot
            raise PersistenceError(
                f"Failed to delete task {task_id}: {e.message}",
                operation="delete",
                original_error=e
            ) from e

        logger.debug(f"Deleted task {task_id}")
        return True

    # -------------------- bulk operations --------------------
    def delete_many(self, task_ids: Sequence[str]) -> int:
        """
        Remove several tasks in one write.

        Missing ids are ignored. Nothing is written when no id matched.

        Returns:
            Number of tasks actually removed

        Raises:
            InvalidArgumentError: If task_ids is not a sequence of string ids
            PersistenceError: If storage rejects the write (state is reverted)
        """
        if not _is_sequence(task_ids):
            raise InvalidArgumentError("task_ids must be a list of ids", argument="task_ids")
        if not all(isinstance(task_id, str) for task_id in task_ids):
            raise InvalidArgumentError("task_ids must contain only string ids", argument="task_ids")

        snapshot = dict(self._tasks)
        deleted = 0
        for task_id in task_ids:
            if self._tasks.pop(task_id, None) is not None:
                deleted += 1

        if deleted == 0:
            return 0

        try:
            self._persist("delete_many")
        except PersistenceError as e:
            self._tasks = snapshot
            raise PersistenceError(
                f"Failed to delete multiple tasks: {e.message}",
                operation="delete_many",
                original_error=e
            ) from e

        logger.info(f"Deleted {deleted} tasks")
        return deleted

    def save_many(self, tasks: Sequence[Task]) -> int:
        """
        Insert or replace several tasks in one write.

        Returns:
            Number of tasks processed

        Raises:
            InvalidArgumentError: If tasks is not a sequence or holds a non-Task (state is reverted)
            PersistenceError: If storage rejects the write (state is reverted)
        """
        if not _is_sequence(tasks):
            raise InvalidArgumentError("tasks must be a list of Task instances", argument="tasks")

        snapshot = dict(self._tasks)
        try:
            for task in tasks:
                self._validate_task(task)
                self._tasks[task.id] = task
            self._persist("save_many")
        except InvalidArgumentError as e:
            self._tasks = snapshot
            raise InvalidArgumentError(
                f"Failed to save multiple tasks: {e.message}",
                argument="tasks",
                original_error=e
            ) from e
        except PersistenceError as e:
            self._tasks = snapshot
            raise PersistenceError(
                f"Failed to save multiple tasks: {e.message}",
                operation="save_many",
                original_error=e
            ) from e

        logger.info(f"Saved {len(tasks)} tasks")
        return len(tasks)

    def clear(self) -> int:
        """
        Remove every task.

        Returns:
            Number of tasks removed (0 without touching storage when already empty)

        Raises:
            PersistenceError: If storage rejects the write (state is reverted)
        """
        count = len(self._tasks)
        if count == 0:
            return 0

        snapshot = dict(self._tasks)
        self._tasks = {}
        try:
            self._persist("clear")
        except PersistenceError as e:
            self._tasks = snapshot
            raise PersistenceError(
                f"Failed to clear storage: {e.message}",
                operation="clear",
                original_error=e
            ) from e

        logger.info(f"Cleared {count} tasks")
        return count

    # -------------------- import / export --------------------
    def export_json(self) -> str:
        """Serialize every task as JSON indented with 2 spaces."""
        return self._serialize(self._tasks, indent=2)

    def import_json(self, json_string: str) -> int:
        """
        Replace the whole collection with the tasks in json_string.

        Unlike the initial load, a single invalid record rejects the import.
        The new collection is written once and only then swapped in.

        Returns:
            Number of tasks in the new collection

        Raises:
            InvalidArgumentError: If json_string is not a string
            ValidationError: If the payload or any record is invalid
            PersistenceError: If storage rejects the write
        """
        if not isinstance(json_string, str):
            raise InvalidArgumentError("Import data must be a JSON string", argument="json_string")

        snapshot = dict(self._tasks)
        try:
            try:
                parsed = json.loads(json_string)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid JSON: {e.msg}", original_error=e) from e
            if not isinstance(parsed, list):
                raise ValidationError("Invalid JSON: expected a list of tasks")

            imported: Dict[str, Task] = {}
            for index, record in enumerate(parsed):
                try:
                    task = Task.from_dict(record)
                except ValidationError as e:
                    raise ValidationError(
                        f"Invalid task at index {index}: {e.message}",
                        field=e.field,
                        value=e.value,
                        original_error=e
                    ) from e
                imported[task.id] = task

            self._write(imported, "import")
            self._tasks = imported
        except ValidationError as e:
            self._tasks = snapshot
            raise ValidationError(
                f"Failed to import tasks: {e.message}",
                field=e.field,
                value=e.value,
                original_error=e
            ) from e
        except PersistenceError as e:
            self._tasks = snapshot
            raise PersistenceError(
                f"Failed to import tasks: {e.message}",
                operation="import",
                original_error=e
            ) from e

        logger.info(f"Imported {len(self._tasks)} tasks into '{self._storage_key}'")
        return len(self._tasks)

    # -------------------- aggregates --------------------
    def count(self) -> int:
        return len(self._tasks)

    def count_by(self, predicate: TaskPredicate) -> int:
        self._validate_predicate(predicate)
        return sum(1 for task in self._tasks.values() if predicate(task))

    def get_stats(self) -> Dict[str, Any]:
        """
        Collection statistics.

        Returns:
            Dictionary with total, completed, pending and completion_rate,
            where completion_rate is formatted like "33.3%" ("0%" when empty)
        """
        total = len(self._tasks)
        completed = sum(1 for task in self._tasks.values() if task.completed)
        if total > 0:
            completion_rate = f"{completed / total * 100:.1f}%"
        else:
            completion_rate = "0%"
        return {
            "total": total,
            "completed": completed,
            "pending": total - completed,
            "completion_rate": completion_rate,
        }
