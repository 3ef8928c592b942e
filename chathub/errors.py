"""
Error types and error logging utilities for chathub.

The CLI prints one-line messages; full tracebacks go to chathub-errors.log.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class ChatHubError(Exception):
    """Base class for all chathub errors."""


class InvalidFrontmatterError(ChatHubError, ValueError):
    """Frontmatter block is unterminated or cannot be decoded."""


class InvalidSourceError(ChatHubError, ValueError):
    """Source platform is not one of the supported identifiers."""

    def __init__(self, source: str):
        super().__init__(f"invalid source: {source}")
        self.source = source


class StorageError(ChatHubError, OSError):
    """Underlying storage backend failed."""


class DocumentNotFoundError(StorageError):
    """The requested path does not exist in the backend."""


class OperationCancelledError(ChatHubError):
    """The cancellation token fired or its deadline passed mid-operation."""


class ConfigError(ChatHubError, ValueError):
    """Configuration is incomplete or invalid."""


def chathub_home() -> Path:
    """Directory for chathub's own files (logs), respecting CHATHUB_HOME."""
    home = os.environ.get("CHATHUB_HOME")
    if home:
        return Path(home)
    return Path.home() / ".chathub"


def _error_log_path() -> Path:
    return chathub_home() / "chathub-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log; the caller still reports the error
    return log_path
