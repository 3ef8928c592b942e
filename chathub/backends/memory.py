"""
In-memory storage backend, for tests and throwaway sessions.
"""

import io
import threading
from typing import BinaryIO, Optional

from .base import CommitWriter, normalize_path, under_prefix


class MemoryBackend:
    """Dict of path to bytes. Contents are lost when the process exits."""

    def __init__(self, files: Optional[dict[str, bytes]] = None):
        self._files: dict[str, bytes] = {
            normalize_path(k): v for k, v in (files or {}).items()
        }
        self._lock = threading.Lock()

    def _store(self, path: str, data: bytes) -> None:
        with self._lock:
            self._files[path] = data

    def open_reader(self, path: str, *, timeout: Optional[float] = None) -> BinaryIO:
        path = normalize_path(path)
        with self._lock:
            if path not in self._files:
                raise FileNotFoundError(path)
            return io.BytesIO(self._files[path])

    def open_writer(self, path: str, *, timeout: Optional[float] = None) -> BinaryIO:
        path = normalize_path(path)
        return CommitWriter(lambda data: self._store(path, data))

    def list(self, prefix: str, *, timeout: Optional[float] = None) -> list[str]:
        with self._lock:
            return sorted(p for p in self._files if under_prefix(p, prefix))

    def delete(self, path: str, *, timeout: Optional[float] = None) -> None:
        path = normalize_path(path)
        with self._lock:
            if path not in self._files:
                raise FileNotFoundError(path)
            del self._files[path]

    def exists(self, path: str, *, timeout: Optional[float] = None) -> bool:
        with self._lock:
            return normalize_path(path) in self._files

    def close(self) -> None:
        pass
