"""
Task entity.

A Task is an immutable value object. Every "mutation" (title change, order
change, completion toggle) returns a new Task that shares the id and the
creation timestamp of the original. Construction is the only place where
fields are validated, so no Task can exist with an invalid title.
"""
import math
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from tasklist.exceptions import ValidationError

MAX_TITLE_LENGTH = 200


def _now_ms() -> int:
    """Current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Task:
    """A single to-do item.

    Fields:
        title: Trimmed, non-empty title of at most MAX_TITLE_LENGTH characters.
        completed: Whether the task is done.
        id: Unique identifier; a UUID4 string is generated when absent.
        created_at: Creation time in epoch milliseconds; set once.
        order: Manual sort position.
    """
    title: str
    completed: bool = False
    id: Optional[str] = None
    created_at: Optional[int] = None
    order: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "title", self._validate_title(self.title))
        object.__setattr__(self, "completed", bool(self.completed))
        object.__setattr__(self, "id", self._validate_id(self.id))
        object.__setattr__(self, "created_at", self._validate_created_at(self.created_at))
        object.__setattr__(self, "order", self._validate_order(self.order))

    # -------------------- validation --------------------
    @staticmethod
    def _validate_title(title: Any) -> str:
        if not title or not isinstance(title, str):
            raise ValidationError("Title is required and must be a string", field="title", value=title)
        trimmed = title.strip()
        if not trimmed:
            raise ValidationError("Title cannot be empty", field="title")
        if len(trimmed) > MAX_TITLE_LENGTH:
            raise ValidationError(
                f"Title cannot exceed {MAX_TITLE_LENGTH} characters",
                field="title",
                context={"length": len(trimmed)}
            )
        return trimmed

    @staticmethod
    def _validate_id(task_id: Any) -> str:
        if task_id is None or task_id == "":
            return str(uuid.uuid4())
        if not isinstance(task_id, str):
            raise ValidationError("Task id must be a string", field="id", value=task_id)
        return task_id

    @staticmethod
    def _validate_created_at(created_at: Any) -> int:
        if created_at is None or created_at == 0:
            return _now_ms()
        if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
            raise ValidationError("createdAt must be a numeric timestamp", field="createdAt", value=created_at)
        if isinstance(created_at, float) and not math.isfinite(created_at):
            raise ValidationError("createdAt must be a finite timestamp", field="createdAt", value=created_at)
        return int(created_at)

    @staticmethod
    def _validate_order(order: Any) -> int:
        if isinstance(order, bool) or not isinstance(order, int):
            raise ValidationError("order must be an integer", field="order", value=order)
        return order

    # -------------------- derived copies --------------------
    def update_title(self, new_title: str) -> "Task":
        return replace(self, title=new_title)

    def update_order(self, new_order: int) -> "Task":
        return replace(self, order=new_order)

    def toggle_completed(self) -> "Task":
        return replace(self, completed=not self.completed)

    def copy(self) -> "Task":
        """Return a fresh, equal instance."""
        return replace(self)

    # -------------------- serialization --------------------
    def to_dict(self) -> Dict[str, Any]:
        """Record shape used for persistence and export."""
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "createdAt": self.created_at,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Task":
        """Build a Task from a persisted record.

        Raises:
            ValidationError: If the record is not a mapping or any field is invalid
        """
        if not isinstance(data, Mapping):
            raise ValidationError("Task record must be an object", value=data)
        order = data.get("order")
        return cls(
            title=data.get("title"),
            completed=data.get("completed", False),
            id=data.get("id"),
            created_at=data.get("createdAt"),
            order=0 if order is None else order,
        )
