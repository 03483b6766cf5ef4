"""
Concrete storage adapters.

MemoryStorage keeps blobs in a dict and is mostly useful for tests and
embedding. FileStorage keeps one JSON file per key in a directory and is what
the CLI uses.
"""
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from tasklist.storage.interface import StorageAdapter, StorageError, StorageQuotaExceededError

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _size_of(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemoryStorage(StorageAdapter):
    """In-memory adapter with an optional total-size quota."""

    def __init__(self, quota_bytes: Optional[int] = None):
        """
        Initialize MemoryStorage.

        Args:
            quota_bytes: Maximum combined UTF-8 size of all keys and values
                (None or 0 disables the quota)
        """
        self.data: Dict[str, str] = {}
        self.quota_bytes = quota_bytes or None
        self.write_count = 0

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(_size_of(k, v) for k, v in self.data.items() if k != key)
            needed = used + _size_of(key, value)
            if needed > self.quota_bytes:
                raise StorageQuotaExceededError(
                    f"Writing {key!r} needs {needed} bytes, quota is {self.quota_bytes}"
                )
        self.data[key] = value
        self.write_count += 1


class FileStorage(StorageAdapter):
    """Directory-backed adapter storing each key as ``<key>.json``."""

    def __init__(self, directory: Union[str, Path], quota_bytes: Optional[int] = None):
        """
        Initialize FileStorage.

        Args:
            directory: Directory holding the blob files (created on first write)
            quota_bytes: Maximum UTF-8 size of a single blob (None or 0 disables the quota)
        """
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes or None

    def _path_for(self, key: str) -> Path:
        if not KEY_PATTERN.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        size = len(value.encode("utf-8"))
        if self.quota_bytes is not None and size > self.quota_bytes:
            raise StorageQuotaExceededError(
                f"Blob for {key!r} is {size} bytes, quota is {self.quota_bytes}"
            )
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Write to a temp file in the same directory, then swap it in
            fd, tmp_name = tempfile.mkstemp(dir=str(self.directory), prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug(f"Wrote {size} bytes to {path}")
