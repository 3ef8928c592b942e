"""Built-in storage backends: memory, file, github."""

from .file import FileBackend
from .github import GitHubBackend
from .memory import MemoryBackend

__all__ = ["FileBackend", "GitHubBackend", "MemoryBackend"]
