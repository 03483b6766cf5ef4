"""
Pytest configuration and shared fixtures.
Provides a storage adapter whose writes can be made to fail, plus repository
and service fixtures built on top of it.
"""
import pytest

from tasklist.models import Task
from tasklist.services import TaskService
from tasklist.storage import MemoryStorage, StorageError, StorageQuotaExceededError, TaskRepository

STORAGE_KEY = "test_tasks"


class FlakyStorage(MemoryStorage):
    """MemoryStorage whose writes fail on demand."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False
        self.quota_exceeded = False
        self.get_error = None

    def get(self, key):
        if self.get_error is not None:
            raise self.get_error
        return super().get(key)

    def set(self, key, value):
        if self.quota_exceeded:
            raise StorageQuotaExceededError("quota exceeded")
        if self.fail_writes:
            raise StorageError("disk unavailable")
        super().set(key, value)


def build_task(title="Task", completed=False, order=0, created_at=1_700_000_000_000, task_id=None):
    """Helper to build a Task with predictable fields."""
    return Task(title=title, completed=completed, order=order, created_at=created_at, id=task_id)


def repository_snapshot(repository):
    """Content of a repository as a comparable list of records."""
    return sorted((task.to_dict() for task in repository.find_all()), key=lambda r: r["id"])


@pytest.fixture
def storage_key():
    """Key the test repositories persist under."""
    return STORAGE_KEY


@pytest.fixture
def make_task():
    """Factory for tasks with predictable fields."""
    return build_task


@pytest.fixture
def snapshot():
    """Function turning a repository into a comparable list of records."""
    return repository_snapshot


@pytest.fixture
def storage():
    """Storage adapter whose writes can be made to fail."""
    return FlakyStorage()


@pytest.fixture
def repository(storage):
    """Empty repository backed by the flaky storage."""
    return TaskRepository(storage, STORAGE_KEY)


@pytest.fixture
def service(repository):
    """TaskService over the real repository."""
    return TaskService(repository)


@pytest.fixture
def populated_repository(repository):
    """
    Repository holding three tasks, one of them completed.
    Returns (repository, [tasks]).
    """
    tasks = [
        build_task("Buy milk", order=2, created_at=1_700_000_000_300, task_id="t-1"),
        build_task("Write report", completed=True, order=1, created_at=1_700_000_000_100, task_id="t-2"),
        build_task("call plumber", order=0, created_at=1_700_000_000_200, task_id="t-3"),
    ]
    repository.save_many(tasks)
    return repository, tasks
