"""
Shared pytest fixtures for chathub tests.

Provides an in-memory storage stack with a fixed clock and predictable
conversation IDs, so paths and frontmatter are deterministic.
"""

import itertools
from datetime import datetime, timezone

import pytest

from chathub.backends.memory import MemoryBackend
from chathub.frontmatter import new_metadata, render_with_content
from chathub.service import ConversationService
from chathub.storage import Storage

FIXED_NOW = datetime(2026, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def storage(backend):
    return Storage(backend, "conversations")


@pytest.fixture
def id_generator():
    """Returns conv_1, conv_2, ... in call order."""
    counter = itertools.count(1)
    return lambda: f"conv_{next(counter)}"


@pytest.fixture
def service(storage, id_generator):
    return ConversationService(
        storage,
        clock=lambda: FIXED_NOW,
        id_generator=id_generator,
    )


def make_document(title, source="claude", body="Hello", **fields) -> bytes:
    """Render a complete document with frontmatter for seeding a backend."""
    meta = new_metadata(title, source, now=FIXED_NOW, conversation_id="conv_seed")
    for name, value in fields.items():
        setattr(meta, name, value)
    return render_with_content(meta, body)


@pytest.fixture
def seed(backend):
    """Write raw documents straight into the backend: seed(path, bytes)."""
    def _seed(path: str, content) -> str:
        if isinstance(content, str):
            content = content.encode("utf-8")
        with backend.open_writer(path) as f:
            f.write(content)
        return path
    return _seed
