"""
Shared helpers for storage backend implementations.
"""

import io
from typing import Callable


def normalize_path(path: str) -> str:
    """Strip surrounding slashes; backend paths are always relative."""
    return path.strip("/")


def under_prefix(path: str, prefix: str) -> bool:
    """True if path is inside the folder prefix (or prefix is the root)."""
    prefix = normalize_path(prefix)
    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")


class CommitWriter(io.BytesIO):
    """
    In-memory writer that hands its buffer to ``commit`` on a clean close.

    Used as a context manager: if the ``with`` block raises, nothing is
    committed. A plain ``close()`` commits whatever was written.
    """

    def __init__(self, commit: Callable[[bytes], None]):
        super().__init__()
        self._commit = commit
        self._done = False

    def _finish(self, commit: bool) -> None:
        if self._done:
            return
        self._done = True
        data = self.getvalue()
        super().close()
        if commit:
            self._commit(data)

    def close(self) -> None:
        self._finish(commit=True)

    def __exit__(self, exc_type, exc, tb):
        self._finish(commit=exc_type is None)
        return False
