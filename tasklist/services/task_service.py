"""
Task service - business logic for task operations.
This layer contains no storage or presentation dependencies.

The service depends only on the repository contract. It validates requests,
turns them into Task instances or predicates, applies the named filter and
sort strategies, and aggregates statistics.
"""
import locale
import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Dict, List, Optional

from tasklist.exceptions import (
    InvalidArgumentError,
    ServiceError,
    TaskNotFoundError,
    rewrap,
)
from tasklist.models import Task
from tasklist.storage.interface import TaskRepositoryInterface

logger = logging.getLogger(__name__)


def _is_completed(task: Task) -> bool:
    return task.completed


def _is_pending(task: Task) -> bool:
    return not task.completed


FILTER_STRATEGIES: Dict[str, Callable[[Task], bool]] = {
    "all": lambda task: True,
    "completed": _is_completed,
    "pending": _is_pending,
}

SORT_STRATEGIES: Dict[str, Callable[[Task], Any]] = {
    "title": lambda task: locale.strxfrm(task.title.casefold()),
    "createdAt": lambda task: task.created_at,
    "order": lambda task: task.order,
}

UPDATABLE_FIELDS = ("title", "completed", "order")

REQUIRED_REPOSITORY_METHODS = (
    "save",
    "save_many",
    "delete",
    "delete_many",
    "clear",
    "find_all",
    "find_by",
    "find_by_id",
    "export_json",
    "import_json",
    "count",
    "count_by",
)


class TaskService:
    """Service for task business logic."""

    def __init__(self, repository: TaskRepositoryInterface):
        """
        Initialize task service with repository dependency.

        Raises:
            InvalidArgumentError: If no repository is given or it lacks part of the contract
        """
        if repository is None:
            raise InvalidArgumentError("TaskService requires a repository", argument="repository")
        missing = [name for name in REQUIRED_REPOSITORY_METHODS if not callable(getattr(repository, name, None))]
        if missing:
            raise InvalidArgumentError(
                f"Repository is missing required methods: {', '.join(missing)}",
                argument="repository"
            )
        self.repository = repository

    # -------------------- helpers --------------------
    def _ensure_task_exists(self, task_id: str) -> Task:
        if not isinstance(task_id, str):
            raise InvalidArgumentError(f"Task id must be a string, got {task_id!r}", argument="task_id")
        task = self.repository.find_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    @staticmethod
    def _get_filter(filter_name: str) -> Callable[[Task], bool]:
        strategy = FILTER_STRATEGIES.get(filter_name)
        if strategy is None:
            raise InvalidArgumentError(
                f"Invalid filter: {filter_name!r}. Must be one of: {', '.join(FILTER_STRATEGIES)}",
                argument="filter"
            )
        return strategy

    @staticmethod
    def _get_sort_key(sort_by: str) -> Callable[[Task], Any]:
        strategy = SORT_STRATEGIES.get(sort_by)
        if strategy is None:
            raise InvalidArgumentError(
                f"Invalid sort criterion: {sort_by!r}. Must be one of: {', '.join(SORT_STRATEGIES)}",
                argument="sort_by"
            )
        return strategy

    # -------------------- commands --------------------
    def create_task(self, title: str) -> Task:
        """
        Create and store a new task.

        Args:
            title: Task title (trimmed; validated by Task)

        Returns:
            The stored task

        Raises:
            ValidationError: If the title is invalid
            PersistenceError: If the task could not be stored
        """
        task = Task(title=title)
        try:
            saved = self.repository.save(task)
        except ServiceError as e:
            raise rewrap(e, f"Failed to create task: {e.message}") from e
        logger.info(f"Created task {saved.id}")
        return saved

    def update_task(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        """
        Update title, completion and/or order of a task.

        Updates are applied in a fixed order: title, then completion (only
        when the requested value differs from the current one), then order.
        Keys whose value is None are ignored.

        Args:
            task_id: Task ID
            updates: Mapping with any of "title", "completed", "order"

        Returns:
            The stored, updated task

        Raises:
            TaskNotFoundError: If the task does not exist
            InvalidArgumentError: If updates is not a mapping or has unknown keys
            ValidationError: If a new value is invalid
            PersistenceError: If the task could not be stored
        """
        current = self._ensure_task_exists(task_id)

        if not isinstance(updates, Mapping):
            raise InvalidArgumentError("updates must be a mapping", argument="updates")
        unknown = sorted(set(updates) - set(UPDATABLE_FIELDS))
        if unknown:
            raise InvalidArgumentError(
                f"Unknown update fields: {', '.join(unknown)}. Must be among: {', '.join(UPDATABLE_FIELDS)}",
                argument="updates"
            )

        updated = current
        try:
            if updates.get("title") is not None:
                updated = updated.update_title(updates["title"])
            if updates.get("completed") is not None and bool(updates["completed"]) != current.completed:
                updated = updated.toggle_completed()
            if updates.get("order") is not None:
                updated = updated.update_order(updates["order"])
            return self.repository.save(updated)
        except ServiceError as e:
            raise rewrap(e, f"Failed to update task: {e.message}") from e

    def toggle_task_completion(self, task_id: str) -> Task:
        """Flip the completion state of a task."""
        current = self._ensure_task_exists(task_id)
        try:
            return self.repository.save(current.toggle_completed())
        except ServiceError as e:
            raise rewrap(e, f"Failed to toggle task: {e.message}") from e

    def reorder_tasks(self, reordered: Sequence[Mapping[str, Any]]) -> int:
        """
        Update the order of several tasks at once (drag and drop).

        Every id is checked before anything is written, and the batch is
        stored with a single atomic save_many.

        Args:
            reordered: Items like {"id": "...", "order": 0}

        Returns:
            Number of tasks updated

        Raises:
            InvalidArgumentError: If reordered is not a list of {id, order} mappings
            TaskNotFoundError: If any id does not exist (nothing is written)
            ValidationError: If an order is not an integer
            PersistenceError: If the batch could not be stored
        """
        if not isinstance(reordered, Sequence) or isinstance(reordered, (str, bytes)):
            raise InvalidArgumentError("reordered must be a list of {id, order} items", argument="reordered")

        to_update: List[Task] = []
        for item in reordered:
            if not isinstance(item, Mapping) or "id" not in item or "order" not in item:
                raise InvalidArgumentError(
                    f"Each reorder item must have 'id' and 'order', got {item!r}",
                    argument="reordered"
                )
            task = self._ensure_task_exists(item["id"])
            try:
                to_update.append(task.update_order(item["order"]))
            except ServiceError as e:
                raise rewrap(e, f"Failed to reorder task {task.id}: {e.message}") from e

        try:
            return self.repository.save_many(to_update)
        except ServiceError as e:
            raise rewrap(e, f"Failed to reorder tasks: {e.message}") from e

    def delete_task(self, task_id: str) -> bool:
        """Delete an existing task."""
        self._ensure_task_exists(task_id)
        try:
            return self.repository.delete(task_id)
        except ServiceError as e:
            raise rewrap(e, f"Failed to delete task: {e.message}") from e

    def clear_completed(self) -> int:
        """Delete every completed task in one bulk call; returns the count removed."""
        ids = [task.id for task in self.repository.find_by(_is_completed)]
        try:
            removed = self.repository.delete_many(ids)
        except ServiceError as e:
            raise rewrap(e, f"Failed to clear completed tasks: {e.message}") from e
        if removed:
            logger.info(f"Cleared {removed} completed tasks")
        return removed

    def clear_all(self) -> int:
        try:
            return self.repository.clear()
        except ServiceError as e:
            raise rewrap(e, f"Failed to clear tasks: {e.message}") from e

    # -------------------- queries --------------------
    def get_tasks(self, filter: str = "all") -> List[Task]:
        """
        List tasks matching a named filter.

        Args:
            filter: One of "all", "completed", "pending"

        Returns:
            Fresh task copies in repository order
        """
        predicate = self._get_filter(filter)
        return [task for task in self.repository.find_all() if predicate(task)]

    def get_tasks_sorted(self, sort_by: str = "createdAt", filter: str = "all") -> List[Task]:
        """
        List tasks matching a named filter, sorted by a named criterion.

        Args:
            sort_by: One of "title", "createdAt", "order"
            filter: One of "all", "completed", "pending"

        Returns:
            Sorted fresh task copies
        """
        tasks = self.get_tasks(filter)
        return sorted(tasks, key=self._get_sort_key(sort_by))

    def get_task_by_id(self, task_id: str) -> Optional[Task]:
        return self.repository.find_by_id(task_id)

    def search_tasks(self, search_term: Any) -> List[Task]:
        """
        Case-insensitive substring search over task titles.

        Returns an empty list for non-string or empty terms. A term that trims
        to nothing matches every task.
        """
        if not search_term or not isinstance(search_term, str):
            return []
        normalized = search_term.strip().casefold()
        return self.repository.find_by(lambda task: normalized in task.title.casefold())

    def get_statistics(self) -> Dict[str, int]:
        """
        Task statistics.

        Returns:
            Dictionary with total, completed, pending and completion_rate
            (an integer percentage, rounded half up)
        """
        total = self.repository.count()
        completed = self.repository.count_by(_is_completed)
        completion_rate = math.floor(completed / total * 100 + 0.5) if total > 0 else 0
        return {
            "total": total,
            "completed": completed,
            "pending": total - completed,
            "completion_rate": completion_rate,
        }

    def has_task(self) -> bool:
        return self.repository.count() > 0

    def has_completed_tasks(self) -> bool:
        return self.repository.count_by(_is_completed) > 0

    def has_pending_tasks(self) -> bool:
        return self.repository.count_by(_is_pending) > 0

    # -------------------- import / export --------------------
    def export_tasks(self) -> str:
        return self.repository.export_json()

    def import_tasks(self, json_string: str) -> int:
        return self.repository.import_json(json_string)
