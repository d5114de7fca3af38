"""Flat key-value persistence (JSON + fcntl.flock + atomic write)."""

import fcntl
import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any


class StorageError(Exception):
    """Raised when the backing store cannot be read or written."""


class JsonKeyValueStore:
    """Key-value namespace persisted as a single JSON object on disk.

    Writes hold an exclusive lock on a sibling ``.lock`` file, re-read the
    current contents, apply the batch and replace the file atomically, so
    keys written by other components between our writes are preserved.

    Args:
        path: Location of the JSON file. Parent directories are created.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock_path = self.path.with_name(self.path.name + ".lock")

    def read_all(self) -> dict[str, Any]:
        """Return every stored key. A missing file is an empty store."""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                try:
                    data = json.load(f)
                finally:
                    fcntl.flock(f, fcntl.LOCK_UN)
        except (OSError, ValueError, RecursionError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Expected a JSON object in {self.path}")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self.read_all().get(key, default)

    def keys(self) -> list[str]:
        return list(self.read_all())

    def write_batch(
        self, updates: dict[str, Any], deletions: Iterable[str] = ()
    ) -> None:
        """Set ``updates`` and remove ``deletions`` in one atomic replace."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._lock_path, "w") as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                try:
                    data = self.read_all()
                except StorageError:
                    # Unreadable contents are replaced by the new batch.
                    data = {}
                data.update(updates)
                for key in deletions:
                    data.pop(key, None)
                with tempfile.NamedTemporaryFile(
                    "w", dir=self.path.parent, delete=False, suffix=".json"
                ) as tmp:
                    json.dump(data, tmp, indent=2)
                try:
                    os.replace(tmp.name, self.path)
                except OSError:
                    os.unlink(tmp.name)
                    raise
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e

    def delete(self, *keys: str) -> None:
        if keys:
            self.write_batch({}, keys)


class MemoryKeyValueStore:
    """In-process key-value store with the same interface as the JSON one."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    def read_all(self) -> dict[str, Any]:
        return dict(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def keys(self) -> list[str]:
        return list(self._data)

    def write_batch(
        self, updates: dict[str, Any], deletions: Iterable[str] = ()
    ) -> None:
        self._data.update(updates)
        for key in deletions:
            self._data.pop(key, None)

    def delete(self, *keys: str) -> None:
        self.write_batch({}, keys)
