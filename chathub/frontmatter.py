"""
Hugo-compatible YAML frontmatter parsing and rendering.

A document optionally starts with a header block::

    ---
    title: Building an MCP Server
    date: '2026-01-10T14:30:00Z'
    source: claude
    ---

    # Conversation body...

The header is decoded into :class:`~chathub.types.Metadata`. Documents
without a leading ``---`` have no header; a header that opens but never
closes is an error.
"""

import re
from datetime import date as date_type, datetime
from typing import Any, Optional, Union

import yaml

from .errors import InvalidFrontmatterError
from .naming import generate_slug
from .types import SOURCES, Metadata, format_timestamp, parse_utc_timestamp

DELIMITER = "---"
DEFAULT_DESCRIPTION_LENGTH = 150

# Closing delimiter: the marker at the start of a line
_CLOSING_RE = re.compile(r"^---", re.MULTILINE)

# (attribute, yaml key, kind). Order here is the order written to disk.
_FIELDS = (
    ("title", "title", "str"),
    ("date", "date", "time"),
    ("lastmod", "lastmod", "time"),
    ("draft", "draft", "bool"),
    ("tags", "tags", "list"),
    ("categories", "categories", "list"),
    ("author", "author", "str"),
    ("description", "description", "str"),
    ("slug", "slug", "str"),
    ("weight", "weight", "int"),
    ("aliases", "aliases", "list"),
    ("source", "source", "str"),
    ("conversation_id", "conversation_id", "str"),
    ("participants", "participants", "list"),
    ("message_count", "message_count", "int"),
    ("model", "model", "str"),
    ("tokens", "tokens", "int"),
)

# Always written, even when empty
REQUIRED_KEYS = frozenset({"title", "date", "source"})


def valid_source(source: str) -> bool:
    """Check if a source is one of the supported platforms."""
    return source in SOURCES


def new_metadata(
    title: str,
    source: str,
    *,
    now: datetime,
    conversation_id: str,
) -> Metadata:
    """Create Metadata with creation defaults."""
    return Metadata(
        title=title,
        date=now,
        lastmod=now,
        draft=False,
        author=source,
        slug=generate_slug(title),
        source=source,
        conversation_id=conversation_id,
    )


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------

def _to_text(content: Union[bytes, str], strict: bool = False) -> str:
    if not isinstance(content, bytes):
        return content
    if not strict:
        return content.decode("utf-8", errors="replace")
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidFrontmatterError(
            f"invalid document encoding: byte {e.start} is not valid UTF-8"
        ) from e


def _decode_value(key: str, kind: str, value: Any) -> Any:
    if kind == "str":
        if isinstance(value, (list, dict)):
            raise InvalidFrontmatterError(f"invalid frontmatter format: {key} must be a string")
        return str(value)
    if kind == "time":
        if not isinstance(value, (str, datetime, date_type)):
            raise InvalidFrontmatterError(f"invalid frontmatter format: {key} must be a timestamp")
        try:
            return parse_utc_timestamp(value)
        except ValueError as e:
            raise InvalidFrontmatterError(f"invalid frontmatter format: {key}: {e}") from e
    if kind == "bool":
        if not isinstance(value, bool):
            raise InvalidFrontmatterError(f"invalid frontmatter format: {key} must be a boolean")
        return value
    if kind == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidFrontmatterError(f"invalid frontmatter format: {key} must be an integer")
        return value
    # list of strings
    if not isinstance(value, list):
        raise InvalidFrontmatterError(f"invalid frontmatter format: {key} must be a list")
    items = []
    for item in value:
        if isinstance(item, (list, dict)) or item is None:
            raise InvalidFrontmatterError(f"invalid frontmatter format: {key} must contain strings")
        items.append(str(item))
    return items


def _decode_metadata(yaml_text: str) -> Metadata:
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as e:
        raise InvalidFrontmatterError(f"invalid frontmatter format: {e}") from e

    if data is None:
        return Metadata()
    if not isinstance(data, dict):
        raise InvalidFrontmatterError("invalid frontmatter format: header is not a mapping")

    values = {}
    for attr, key, kind in _FIELDS:
        value = data.get(key)
        if value is None:
            continue
        values[attr] = _decode_value(key, kind, value)
    return Metadata(**values)


def parse(content: Union[bytes, str], *, strict: bool = False) -> tuple[Optional[Metadata], str]:
    """
    Extract frontmatter from Markdown content.

    Invalid UTF-8 is replaced with U+FFFD unless ``strict`` is set, in
    which case it is an error. Callers that write the body back use strict.

    Returns:
        (metadata, body). metadata is None when the content has no header,
        in which case body is the whole (trimmed) content.

    Raises:
        InvalidFrontmatterError: Header is unterminated or not valid YAML,
            or ``strict`` and the content is not valid UTF-8
    """
    text = _to_text(content, strict).strip()

    if not text.startswith(DELIMITER):
        return None, text

    rest = text[len(DELIMITER):]
    match = _CLOSING_RE.search(rest)
    if match is None:
        raise InvalidFrontmatterError("invalid frontmatter format: missing closing delimiter")

    metadata = _decode_metadata(rest[:match.start()].strip())
    body = rest[match.end():].strip()
    return metadata, body


# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------

def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value is False or (
        isinstance(value, int) and not isinstance(value, bool) and value == 0
    )


def to_dict(metadata: Metadata) -> dict[str, Any]:
    """Frontmatter mapping in on-disk key order, empty fields omitted."""
    data: dict[str, Any] = {}
    for attr, key, kind in _FIELDS:
        value = getattr(metadata, attr)
        if key not in REQUIRED_KEYS and _is_empty(value):
            continue
        if kind == "time" and value is not None:
            value = format_timestamp(value)
        elif kind == "list":
            value = list(value)
        data[key] = value
    return data


def render(metadata: Metadata) -> bytes:
    """Render the frontmatter block, including both delimiter lines."""
    try:
        yaml_text = yaml.safe_dump(
            to_dict(metadata),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            width=4096,
        )
    except yaml.YAMLError as e:
        raise InvalidFrontmatterError(f"cannot render frontmatter: {e}") from e
    return f"{DELIMITER}\n{yaml_text}{DELIMITER}\n".encode("utf-8")


def render_with_content(metadata: Metadata, content: Union[bytes, str]) -> bytes:
    """Render a complete document: frontmatter, blank line, then the body verbatim."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return render(metadata) + b"\n" + content


# -----------------------------------------------------------------------------
# Description extraction
# -----------------------------------------------------------------------------

def extract_description(content: Union[bytes, str], max_len: int = DEFAULT_DESCRIPTION_LENGTH) -> str:
    """First non-empty, non-heading line of content, truncated to max_len."""
    for line in _to_text(content).split("\n"):
        line = line.strip()
        if not line:
            continue
        if line.startswith("#"):
            continue
        if len(line) > max_len:
            line = line[:max_len] + "..."
        return line
    return ""
