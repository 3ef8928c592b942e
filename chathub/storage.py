"""
Storage wrapper adding chathub-specific operations to a backend.

Every call takes an optional CancelToken. Without one, the backend is
called inline. With one, the call runs on a worker thread and the caller
stops waiting as soon as the token is cancelled or its deadline passes;
the remaining time is also handed to the backend as its ``timeout``.
Backend exceptions are wrapped in StorageError with the operation name
and path.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Optional, TypeVar

from .errors import DocumentNotFoundError, StorageError
from .naming import is_document_path
from .protocol import StorageBackend
from .types import CancelToken

logger = logging.getLogger(__name__)

T = TypeVar("T")

# How often a waiting caller re-checks its token
_POLL_INTERVAL = 0.05
_MAX_WORKERS = 8


def _check(cancel: Optional[CancelToken], operation: str) -> None:
    if cancel is not None:
        cancel.check(operation)


def _wrap(exc: Exception, message: str) -> StorageError:
    if isinstance(exc, FileNotFoundError):
        return DocumentNotFoundError(f"{message}: not found")
    return StorageError(f"{message}: {exc}")


class Storage:
    """Backend plus the configured root folder for conversations."""

    def __init__(self, backend: StorageBackend, folder: str):
        self._backend = backend
        self._folder = folder.strip("/")
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    @property
    def folder(self) -> str:
        return self._folder

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def close(self) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
        self._backend.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def _pool(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=_MAX_WORKERS, thread_name_prefix="chathub-storage",
                )
            return self._executor

    def _call(
        self,
        cancel: Optional[CancelToken],
        operation: str,
        fn: Callable[[Optional[float]], T],
    ) -> T:
        """
        Run ``fn(timeout)`` against the backend under a cancellation token.

        An abandoned call keeps running on its worker thread until the
        backend returns; a write abandoned this way may still land.

        Raises:
            OperationCancelledError: If the token fires before ``fn`` returns
        """
        _check(cancel, operation)
        if cancel is None:
            return fn(None)
        future = self._pool().submit(fn, cancel.remaining())
        while True:
            remaining = cancel.remaining()
            step = _POLL_INTERVAL if remaining is None else min(_POLL_INTERVAL, remaining)
            done, _ = wait([future], timeout=step)
            if done:
                break
            if cancel.cancelled:
                logger.debug("Abandoned in-flight %s", operation)
                cancel.check(operation)
        try:
            result = future.result()
        except OSError:
            # a backend that gave up on the same deadline
            _check(cancel, operation)
            raise
        _check(cancel, operation)
        return result

    def save(self, path: str, content: bytes, *, cancel: Optional[CancelToken] = None) -> None:
        """Write content to a path, replacing anything already there."""
        def write(timeout):
            with self._backend.open_writer(path, timeout=timeout) as writer:
                writer.write(content)

        try:
            self._call(cancel, f"write {path}", write)
        except OSError as e:
            raise _wrap(e, f"failed to write {path}") from e
        logger.debug("Wrote %s (%d bytes)", path, len(content))

    def read(self, path: str, *, cancel: Optional[CancelToken] = None) -> bytes:
        def fetch(timeout):
            with self._backend.open_reader(path, timeout=timeout) as reader:
                return reader.read()

        try:
            return self._call(cancel, f"read {path}", fetch)
        except OSError as e:
            raise _wrap(e, f"failed to read {path}") from e

    def list(self, prefix: str, *, cancel: Optional[CancelToken] = None) -> list[str]:
        try:
            return self._call(
                cancel, f"list {prefix}",
                lambda timeout: self._backend.list(prefix, timeout=timeout),
            )
        except OSError as e:
            raise _wrap(e, f"failed to list {prefix}") from e

    def list_conversations(self, *, cancel: Optional[CancelToken] = None) -> list[str]:
        """All conversation documents under the root folder."""
        return [f for f in self.list(self._folder, cancel=cancel) if is_document_path(f)]

    def list_by_source(self, source: str, *, cancel: Optional[CancelToken] = None) -> list[str]:
        """Conversation documents from one source platform."""
        prefix = f"{self._folder}/{source}" if self._folder else source
        return [f for f in self.list(prefix, cancel=cancel) if is_document_path(f)]

    def delete(self, path: str, *, cancel: Optional[CancelToken] = None) -> None:
        try:
            self._call(
                cancel, f"delete {path}",
                lambda timeout: self._backend.delete(path, timeout=timeout),
            )
        except OSError as e:
            raise _wrap(e, f"failed to delete {path}") from e

    def exists(self, path: str, *, cancel: Optional[CancelToken] = None) -> bool:
        try:
            return self._call(
                cancel, f"exists {path}",
                lambda timeout: self._backend.exists(path, timeout=timeout),
            )
        except OSError as e:
            raise _wrap(e, f"failed to check existence of {path}") from e
