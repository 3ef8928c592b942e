"""
MCP server for chathub: conversation archive tools for AI assistants.

Exposes ConversationService operations as MCP tools so assistants
(ChatGPT, Claude, Claude Code, Gemini, Codex, ...) can save and recall
conversations as Markdown with Hugo-compatible frontmatter.

Usage:
    chathub serve                       # transport from CHATHUB_TRANSPORT
    claude mcp add chathub -- chathub serve

All service calls are serialized through a single asyncio.Lock, so each
document has at most one writer at a time within this process.
"""

import asyncio
import logging
import os
import signal
from typing import Annotated, Any, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations
from pydantic import Field

from .config import TRANSPORT_HTTP, Config, load_config
from .errors import ChatHubError
from .protocol import ConversationServiceProtocol
from .types import SOURCES, format_timestamp

logger = logging.getLogger(__name__)

APP_NAME = "chathub"

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

mcp = FastMCP(
    APP_NAME,
    instructions=(
        "Archive of AI assistant conversations stored as Markdown. "
        "Save a conversation when the user asks to keep it, search or list "
        "to find earlier ones, and append to continue an existing record."
    ),
)

_service: Optional[ConversationServiceProtocol] = None
_config: Optional[Config] = None
_lock = asyncio.Lock()


def _get_service() -> ConversationServiceProtocol:
    """Lazy-init the service from the configuration given to ``run``,
    or from the environment when there is none.

    Must be called inside ``async with _lock``.

    Raises:
        ConfigError: If the configuration is invalid
    """
    global _service
    if _service is None:
        from .backend import open_service
        config = _config if _config is not None else load_config()
        _apply_verbose(config)
        _service = open_service(config)
    return _service


def _apply_verbose(config: Config) -> None:
    if config.verbose:
        from .logging_config import enable_debug_mode
        enable_debug_mode()


def _close_service() -> None:
    global _service
    if _service is not None:
        _service.close()
        _service = None


# ---------------------------------------------------------------------------
# Tool annotations
# ---------------------------------------------------------------------------

_READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False)
_WRITE = ToolAnnotations(destructiveHint=False, idempotentHint=False)
_DESTRUCTIVE = ToolAnnotations(destructiveHint=True, idempotentHint=True)

_SOURCE_HELP = f"Source platform ({'/'.join(SOURCES)})"


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool(
    description="Save an AI conversation to storage with Hugo-compatible frontmatter",
    annotations=_WRITE,
)
async def save_conversation(
    title: Annotated[str, Field(description="Conversation title")],
    content: Annotated[str, Field(description="Full conversation in Markdown")],
    source: Annotated[str, Field(description=_SOURCE_HELP)],
    tags: Annotated[Optional[list[str]], Field(description="Tags for categorization")] = None,
    categories: Annotated[Optional[list[str]], Field(description="Categories for organization")] = None,
    description: Annotated[Optional[str], Field(description="Brief summary")] = None,
) -> dict[str, Any]:
    """Save a conversation."""
    async with _lock:
        try:
            service = _get_service()
            result = service.save(
                title, content, source,
                tags=tags, categories=categories, description=description,
            )
        except ChatHubError as e:
            raise ToolError(f"failed to save conversation: {e}") from e
    return {"path": result.path, "conversation_id": result.conversation_id}


@mcp.tool(
    description="Read a conversation from storage, returning content and metadata",
    annotations=_READ_ONLY,
)
async def read_conversation(
    path: Annotated[str, Field(description="Full path to conversation")],
) -> dict[str, Any]:
    """Read a conversation."""
    async with _lock:
        try:
            service = _get_service()
            doc = service.read(path)
        except ChatHubError as e:
            raise ToolError(f"failed to read conversation: {e}") from e

    output: dict[str, Any] = {
        "content": doc.content,
        "title": "",
        "date": "",
        "source": "",
        "tags": [],
        "description": "",
    }
    meta = doc.metadata
    if meta is not None:
        output.update(
            title=meta.title,
            date=format_timestamp(meta.date) if meta.date else "",
            source=meta.source,
            tags=list(meta.tags),
            description=meta.description,
        )
        extra = {
            "conversation_id": meta.conversation_id,
            "author": meta.author,
            "slug": meta.slug,
        }
        if meta.model:
            extra["model"] = meta.model
        output["metadata"] = extra
    return output


@mcp.tool(
    description="List conversations with optional filtering by source platform",
    annotations=_READ_ONLY,
)
async def list_conversations(
    source: Annotated[Optional[str], Field(description="Filter by source platform")] = None,
    limit: Annotated[int, Field(description="Max results (default 50)")] = 0,
    offset: Annotated[int, Field(description="Pagination offset")] = 0,
) -> dict[str, Any]:
    """List conversations."""
    async with _lock:
        try:
            service = _get_service()
            result = service.list(source=source, limit=limit, offset=offset)
        except ChatHubError as e:
            raise ToolError(f"failed to list conversations: {e}") from e

    return {
        "conversations": [
            {
                "path": c.path,
                "title": c.title,
                "date": c.date,
                "source": c.source,
                "tags": c.tags,
                "description": c.description,
            }
            for c in result.conversations
        ],
        "total": result.total,
        "has_more": result.has_more,
    }


@mcp.tool(
    description="Search conversations by content or metadata",
    annotations=_READ_ONLY,
)
async def search_conversations(
    query: Annotated[str, Field(description="Search query")],
    source: Annotated[Optional[str], Field(description="Filter by source")] = None,
    limit: Annotated[int, Field(description="Max results (default 20)")] = 0,
) -> dict[str, Any]:
    """Search conversations."""
    async with _lock:
        try:
            service = _get_service()
            output = service.search(query, source=source, limit=limit)
        except ChatHubError as e:
            raise ToolError(f"failed to search conversations: {e}") from e

    return {
        "results": [
            {"path": r.path, "title": r.title, "snippet": r.snippet, "score": r.score}
            for r in output.results
        ],
        "total": output.total,
    }


@mcp.tool(
    description="Delete a conversation from storage",
    annotations=_DESTRUCTIVE,
)
async def delete_conversation(
    path: Annotated[str, Field(description="Full path to conversation")],
) -> dict[str, Any]:
    """Delete a conversation."""
    async with _lock:
        try:
            service = _get_service()
            result = service.delete(path)
        except ChatHubError as e:
            raise ToolError(f"failed to delete conversation: {e}") from e
    return {"deleted": result.deleted, "message": result.message}


@mcp.tool(
    description="Append content to an existing conversation",
    annotations=_WRITE,
)
async def append_conversation(
    path: Annotated[str, Field(description="Path to the existing conversation")],
    content: Annotated[str, Field(description="Content to append (Markdown)")],
) -> dict[str, Any]:
    """Append to a conversation."""
    async with _lock:
        try:
            service = _get_service()
            result = service.append(path, content)
        except ChatHubError as e:
            raise ToolError(f"failed to append to conversation: {e}") from e

    output: dict[str, Any] = {"path": result.path}
    if result.message_count is not None:
        output["message_count"] = result.message_count
    return output


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _install_signal_handlers() -> None:
    """Exit promptly on SIGINT/SIGTERM.

    anyio's stdin reader shields the blocking readline from cancellation,
    so a plain KeyboardInterrupt can hang. Close the backend, then use
    os._exit to avoid deadlocking on the stdin buffer lock at shutdown.
    """
    def _shutdown(signum, frame):
        logger.info("Received signal %d, shutting down", signum)
        try:
            _close_service()
        except (ChatHubError, OSError) as e:
            logger.warning("Error closing storage: %s", e)
        os._exit(128 + signum)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)


def run(config: Optional[Config] = None) -> None:
    """Run the MCP server on the configured transport."""
    from . import __version__
    from .errors import chathub_home
    from .logging_config import configure_ops_log

    global _config
    if config is None:
        config = load_config()
    _config = config

    configure_ops_log(chathub_home())
    _apply_verbose(config)
    _install_signal_handlers()

    if config.transport == TRANSPORT_HTTP:
        mcp.settings.host = config.host
        mcp.settings.port = config.port
        logger.info("Starting %s v%s (HTTP transport) on %s:%d",
                    APP_NAME, __version__, config.host, config.port)
        mcp.run(transport="streamable-http")
    else:
        logger.info("Starting %s v%s (stdio transport)", APP_NAME, __version__)
        mcp.run(transport="stdio")


def main():
    """Console entry point for chathub-mcp."""
    run()


if __name__ == "__main__":
    main()
