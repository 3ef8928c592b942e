"""
Local filesystem storage backend.

Paths are relative to a root directory. Writes go to a temporary file in
the target directory and are moved into place with ``os.replace``, so a
reader never sees a half-written document.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from .base import CommitWriter, normalize_path

logger = logging.getLogger(__name__)


class FileBackend:
    """Stores each path as a file under ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        """Map a backend path to a filesystem path inside root."""
        target = (self.root / normalize_path(path)).resolve()
        if target != self.root and self.root not in target.parents:
            raise PermissionError(f"Path escapes storage root: {path}")
        return target

    def _replace(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def open_reader(self, path: str, *, timeout: Optional[float] = None) -> BinaryIO:
        target = self._resolve(path)
        if target.is_dir():
            raise IsADirectoryError(path)
        return open(target, "rb")

    def open_writer(self, path: str, *, timeout: Optional[float] = None) -> BinaryIO:
        target = self._resolve(path)
        return CommitWriter(lambda data: self._replace(target, data))

    def list(self, prefix: str, *, timeout: Optional[float] = None) -> list[str]:
        base = self._resolve(prefix)
        if base.is_file():
            return [base.relative_to(self.root).as_posix()]
        if not base.is_dir():
            return []
        files = []
        for entry in base.rglob("*"):
            if entry.name.startswith("."):
                continue
            if entry.is_file():
                files.append(entry.relative_to(self.root).as_posix())
        return sorted(files)

    def delete(self, path: str, *, timeout: Optional[float] = None) -> None:
        target = self._resolve(path)
        target.unlink()
        logger.debug("Deleted %s", target)

    def exists(self, path: str, *, timeout: Optional[float] = None) -> bool:
        return self._resolve(path).is_file()

    def close(self) -> None:
        pass
