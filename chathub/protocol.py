"""
Protocol definitions for chathub and its storage backends.

Defines interface contracts at two levels:
- ConversationServiceProtocol: the operation surface (MCP tools, CLI)
- StorageBackend: byte storage over forward-slash paths
  (local files, in-memory, GitHub repository contents)
"""

from typing import BinaryIO, Optional, Protocol, runtime_checkable

from .types import (
    AppendResult,
    CancelToken,
    ConversationDocument,
    DeleteResult,
    ListResult,
    SaveResult,
    SearchOutput,
)


@runtime_checkable
class StorageBackend(Protocol):
    """
    Byte storage keyed by forward-slash paths.

    Readers and writers are context managers. A writer's content becomes
    visible when it is closed without error; backends should make that
    commit atomic where they can.

    Every method takes an optional keyword-only ``timeout``: the seconds left
    before the caller gives up, or None for no deadline. Network backends
    should bound their requests by it; local backends may ignore it.

    Example implementation:
        class DictBackend:
            def __init__(self):
                self.files = {}

            def open_reader(self, path, *, timeout=None):
                return io.BytesIO(self.files[path])
            ...
    """

    def open_reader(self, path: str, *, timeout: Optional[float] = None) -> BinaryIO:
        """
        Open a path for reading.

        Raises:
            FileNotFoundError: If the path does not exist
            OSError: On any other backend failure
        """
        ...

    def open_writer(self, path: str, *, timeout: Optional[float] = None) -> BinaryIO:
        """Open a path for writing, creating or replacing it on close."""
        ...

    def list(self, prefix: str, *, timeout: Optional[float] = None) -> list[str]:
        """
        All paths under a folder prefix, recursively, in sorted order.

        Returns an empty list when nothing exists under the prefix.
        """
        ...

    def delete(self, path: str, *, timeout: Optional[float] = None) -> None:
        """
        Remove a path.

        Raises:
            FileNotFoundError: If the path does not exist
        """
        ...

    def exists(self, path: str, *, timeout: Optional[float] = None) -> bool:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class ConversationServiceProtocol(Protocol):
    """
    The public interface for conversation operations.

    Implemented by ConversationService; consumed by the MCP server and CLI.
    """

    def save(
        self,
        title: str,
        content: str,
        source: str,
        tags: Optional[list[str]] = None,
        categories: Optional[list[str]] = None,
        description: Optional[str] = None,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> SaveResult: ...

    def read(self, path: str, *, cancel: Optional[CancelToken] = None) -> ConversationDocument: ...

    def append(self, path: str, content: str, *, cancel: Optional[CancelToken] = None) -> AppendResult: ...

    def delete(self, path: str, *, cancel: Optional[CancelToken] = None) -> DeleteResult: ...

    def list(
        self,
        source: Optional[str] = None,
        limit: int = 0,
        offset: int = 0,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> ListResult: ...

    def search(
        self,
        query: str,
        source: Optional[str] = None,
        limit: int = 0,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> SearchOutput: ...

    def close(self) -> None: ...
