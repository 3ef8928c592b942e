"""
Slug, path, and conversation ID generation.

Paths follow the layout ``{folder}/{source}/{YYYY-MM-DD}_{slug}.md``.
"""

import re
import threading
import time
from datetime import datetime

DOCUMENT_EXTENSION = ".md"
MAX_SLUG_LENGTH = 50
CONVERSATION_ID_PREFIX = "conv_"

# Characters dropped from slugs (anything but a-z, 0-9, whitespace, hyphen)
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
# Runs collapsed to a single hyphen
_SLUG_SEPARATOR_RE = re.compile(r"[\s_]+")


def generate_slug(title: str) -> str:
    """Create a URL-friendly slug from a title.

    >>> generate_slug("Building an MCP Server")
    'building-an-mcp-server'
    """
    slug = title.lower()
    slug = _SLUG_STRIP_RE.sub("", slug)
    slug = _SLUG_SEPARATOR_RE.sub("-", slug)
    slug = slug.strip("-")

    if len(slug) > MAX_SLUG_LENGTH:
        # Don't end on a hyphen
        slug = slug[:MAX_SLUG_LENGTH].rstrip("-")

    return slug


def generate_path(folder: str, source: str, title: str, date: datetime) -> str:
    """Storage path for a conversation. Same inputs always give the same path."""
    slug = generate_slug(title)
    name = f"{source}/{date:%Y-%m-%d}_{slug}{DOCUMENT_EXTENSION}"
    folder = folder.strip("/")
    # An empty folder means the backend root
    return f"{folder}/{name}" if folder else name


def is_document_path(path: str) -> bool:
    return path.endswith(DOCUMENT_EXTENSION)


class ConversationIdGenerator:
    """
    Produces ``conv_<nanoseconds>`` identifiers.

    IDs are strictly increasing within a process: if the clock has not
    advanced since the last ID (coarse timers, fast callers), the previous
    value is bumped by one. Not unique across processes that start within
    the same nanosecond tick.
    """

    def __init__(self, prefix: str = CONVERSATION_ID_PREFIX, clock_ns=time.time_ns):
        self._prefix = prefix
        self._clock_ns = clock_ns
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            now = self._clock_ns()
            if now <= self._last:
                now = self._last + 1
            self._last = now
        return f"{self._prefix}{now}"


_default_generator = ConversationIdGenerator()


def generate_conversation_id() -> str:
    """Create a process-unique conversation ID."""
    return _default_generator()
