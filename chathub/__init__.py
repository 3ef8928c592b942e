"""
chathub: an archive of AI assistant conversations.

Conversations are stored as Markdown documents with Hugo-compatible YAML
frontmatter, laid out as ``{folder}/{source}/{YYYY-MM-DD}_{slug}.md`` on a
pluggable storage backend (local files, in-memory, or a GitHub repository).

Quick start::

    from chathub import ConversationService, Storage, MemoryBackend

    service = ConversationService(Storage(MemoryBackend(), "conversations"))
    saved = service.save("Parser notes", "# Notes\\n\\nTokenizer ideas", "claude")
    print(service.read(saved.path).metadata.conversation_id)
"""

__version__ = "0.3.0"

from .backends import FileBackend, GitHubBackend, MemoryBackend
from .config import Config, load_config
from .errors import (
    ChatHubError,
    ConfigError,
    DocumentNotFoundError,
    InvalidFrontmatterError,
    InvalidSourceError,
    OperationCancelledError,
    StorageError,
)
from .service import ConversationService
from .storage import Storage
from .types import CancelToken, ConversationDocument, Metadata, SOURCES

__all__ = [
    "__version__",
    "CancelToken",
    "ChatHubError",
    "Config",
    "ConfigError",
    "ConversationDocument",
    "ConversationService",
    "DocumentNotFoundError",
    "FileBackend",
    "GitHubBackend",
    "InvalidFrontmatterError",
    "InvalidSourceError",
    "MemoryBackend",
    "Metadata",
    "OperationCancelledError",
    "SOURCES",
    "Storage",
    "StorageError",
    "load_config",
]
