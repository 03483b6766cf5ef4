"""
Storage abstraction layer.
Provides the storage adapter contract, concrete adapters and the task repository.
"""
from .interface import (
    StorageAdapter,
    StorageError,
    StorageQuotaExceededError,
    TaskRepositoryInterface,
)
from .adapters import MemoryStorage, FileStorage
from .task_repository import TaskRepository, DEFAULT_STORAGE_KEY

__all__ = [
    'StorageAdapter',
    'StorageError',
    'StorageQuotaExceededError',
    'TaskRepositoryInterface',
    'MemoryStorage',
    'FileStorage',
    'TaskRepository',
    'DEFAULT_STORAGE_KEY',
]
