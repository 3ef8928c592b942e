"""
Data types for conversation documents.
"""

import threading
import time
from dataclasses import dataclass, field
from datetime import date as date_type, datetime, timezone
from typing import Optional, Union

from .errors import OperationCancelledError


# Source platform identifiers (closed set)
SOURCE_CHATGPT = "chatgpt"
SOURCE_CLAUDE = "claude"
SOURCE_CLAUDE_CODE = "claude-code"
SOURCE_GEMINI = "gemini"
SOURCE_PERPLEXITY = "perplexity"
SOURCE_CODEX = "codex"

SOURCES = (
    SOURCE_CHATGPT,
    SOURCE_CLAUDE,
    SOURCE_CLAUDE_CODE,
    SOURCE_GEMINI,
    SOURCE_PERPLEXITY,
    SOURCE_CODEX,
)


def utc_now() -> datetime:
    """Current UTC time, truncated to whole seconds.

    Frontmatter timestamps are written with second precision, so values
    produced here survive a render/parse round trip unchanged.
    """
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as RFC 3339 UTC: YYYY-MM-DDTHH:MM:SSZ."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_utc_timestamp(value: Union[str, datetime, date_type]) -> datetime:
    """Parse a stored timestamp to a timezone-aware UTC datetime.

    Accepts datetimes (as produced by YAML timestamp resolution), plain
    dates, and ISO strings with or without a 'Z' / offset suffix.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date_type):
        dt = datetime(value.year, value.month, value.day)
    else:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class Metadata:
    """
    Hugo-compatible frontmatter with chathub extension fields.

    ``date`` is the creation time and ``lastmod`` the last content change;
    both keep their Hugo key names on disk.
    """
    # Hugo standard fields
    title: str = ""
    date: Optional[datetime] = None
    lastmod: Optional[datetime] = None
    draft: bool = False
    tags: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    author: str = ""
    description: str = ""
    slug: str = ""
    weight: int = 0
    aliases: list[str] = field(default_factory=list)

    # chathub extension fields
    source: str = ""
    conversation_id: str = ""
    participants: list[str] = field(default_factory=list)
    message_count: int = 0
    model: str = ""
    tokens: int = 0


@dataclass
class ConversationDocument:
    """A conversation read back from storage.

    ``content`` is the raw document when a header exists and the body
    otherwise, matching what callers display.
    """
    path: str
    content: str
    body: str
    metadata: Optional[Metadata] = None

    @property
    def title(self) -> str:
        return self.metadata.title if self.metadata else ""

    @property
    def source(self) -> str:
        return self.metadata.source if self.metadata else ""


@dataclass
class ConversationSummary:
    """A conversation entry in list results."""
    path: str
    title: str = ""
    date: str = ""
    source: str = ""
    tags: list[str] = field(default_factory=list)
    description: str = ""


@dataclass
class DocumentOutcome:
    """Result of loading one document during list/search.

    Exactly one of ``value`` or ``reason`` is set. Skipped documents are
    dropped from the public result but stay visible here for tests and logs.
    """
    path: str
    value: Optional[object] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, path: str, value: object) -> "DocumentOutcome":
        return cls(path=path, value=value)

    @classmethod
    def skipped(cls, path: str, reason: str) -> "DocumentOutcome":
        return cls(path=path, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.reason is None


@dataclass
class SaveResult:
    path: str
    conversation_id: str


@dataclass
class AppendResult:
    path: str
    message_count: Optional[int] = None  # None when the document has no header


@dataclass
class DeleteResult:
    deleted: bool
    message: str = ""


@dataclass
class ListResult:
    conversations: list[ConversationSummary]
    total: int
    has_more: bool


@dataclass
class SearchResult:
    path: str
    title: str
    snippet: str
    score: float


@dataclass
class SearchOutput:
    results: list[SearchResult]
    total: int


class CancelToken:
    """
    Cooperative cancellation signal with an optional deadline.

    Storage checks it before and after each backend call and stops waiting
    on an in-flight call once it fires. ``cancel()`` may be called from any
    thread.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self, operation: str = "") -> None:
        """Raise OperationCancelledError if cancelled or past the deadline."""
        if self._event.is_set():
            raise OperationCancelledError(f"{operation or 'operation'} cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise OperationCancelledError(f"{operation or 'operation'} timed out")
