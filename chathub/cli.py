"""
CLI interface for the chathub conversation archive.

Usage:
    chathub save "Debugging the parser" --source claude < transcript.md
    chathub list --source claude
    chathub search "tokenizer"
    chathub read conversations/claude/2026-01-15_debugging-the-parser.md
    chathub serve
"""

import json
import select
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .config import load_config
from .errors import ChatHubError
from .frontmatter import to_dict
from .logging_config import configure_quiet_mode, enable_debug_mode
from .protocol import ConversationServiceProtocol
from .types import SOURCES


def _has_stdin_data() -> bool:
    """Check if stdin has data available without blocking.

    Returns True only when stdin is a pipe with data ready to read.
    """
    if sys.stdin.isatty():
        return False
    try:
        ready, _, _ = select.select([sys.stdin], [], [], 0)
        return bool(ready)
    except (ValueError, OSError):
        return False


# Quiet by default; --verbose or the verbose setting turns on debug logging
configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from . import __version__
        print(f"chathub {__version__}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_config_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _config_callback(value: Optional[Path]):
    global _config_override
    _config_override = value


app = typer.Typer(
    name="chathub",
    help="Archive AI conversations as Markdown with Hugo frontmatter.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    config: Annotated[Optional[Path], typer.Option(
        "--config", "-c",
        envvar="CHATHUB_CONFIG",
        help="Path to a chathub TOML config file",
        callback=_config_callback,
        is_eager=True,
    )] = None,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
):
    """Archive AI conversations as Markdown with Hugo frontmatter."""


# -----------------------------------------------------------------------------
# Service access and output
# -----------------------------------------------------------------------------

def _get_service() -> ConversationServiceProtocol:
    """Build the service from configuration, exiting with a message on failure."""
    import atexit

    from .backend import open_service

    try:
        config = load_config(_config_override)
        if config.verbose:
            enable_debug_mode()
        service = open_service(config)
    except ChatHubError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    atexit.register(service.close)
    return service


def _fail(e: Exception) -> typer.Exit:
    typer.echo(f"Error: {e}", err=True)
    return typer.Exit(1)


def _emit(data: dict, text: str) -> None:
    """Print JSON when --json is set, otherwise the human-readable text."""
    if _get_json_output():
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        typer.echo(text)


def _read_content(content: Optional[str], file: Optional[Path]) -> str:
    """Content from the argument, a file, or stdin ('-' or piped)."""
    if content is not None and file is not None:
        typer.echo("Error: Specify content or --file, not both", err=True)
        raise typer.Exit(1)
    if file is not None:
        try:
            return file.expanduser().read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise _fail(e)
    if content == "-" or (content is None and _has_stdin_data()):
        try:
            return sys.stdin.read()
        except UnicodeDecodeError:
            typer.echo("Error: stdin contains binary data (not valid UTF-8)", err=True)
            raise typer.Exit(1)
    if content is None:
        typer.echo("Error: No content (pass it as an argument, with --file, or on stdin)", err=True)
        raise typer.Exit(1)
    return content


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

SourceFilterOption = Annotated[
    Optional[str],
    typer.Option(
        "--source", "-S",
        help=f"Only conversations from this platform ({', '.join(SOURCES)})",
    )
]

FileOption = Annotated[
    Optional[Path],
    typer.Option(
        "--file", "-f",
        help="Read content from this file",
    )
]


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def save(
    title: Annotated[str, typer.Argument(help="Conversation title")],
    source: Annotated[str, typer.Option(
        "--source", "-S",
        help=f"Source platform ({', '.join(SOURCES)})",
    )],
    content: Annotated[Optional[str], typer.Argument(
        help="Conversation Markdown, or '-' for stdin",
    )] = None,
    tag: Annotated[Optional[list[str]], typer.Option(
        "--tag", "-t",
        help="Tag (repeatable)",
    )] = None,
    category: Annotated[Optional[list[str]], typer.Option(
        "--category", "-C",
        help="Category (repeatable)",
    )] = None,
    description: Annotated[Optional[str], typer.Option(
        "--description", "-d",
        help="Brief summary (default: first line of content)",
    )] = None,
    file: FileOption = None,
):
    """Save a new conversation."""
    text = _read_content(content, file)
    service = _get_service()
    try:
        result = service.save(
            title, text, source,
            tags=tag, categories=category, description=description,
        )
    except ChatHubError as e:
        raise _fail(e)
    _emit(asdict(result), result.path)


@app.command()
def read(
    path: Annotated[str, typer.Argument(help="Path to the conversation")],
):
    """Print a conversation."""
    service = _get_service()
    try:
        doc = service.read(path)
    except ChatHubError as e:
        raise _fail(e)
    data = {
        "path": doc.path,
        "content": doc.content,
        "metadata": to_dict(doc.metadata) if doc.metadata else None,
    }
    _emit(data, doc.content)


@app.command("list")
def list_cmd(
    source: SourceFilterOption = None,
    limit: Annotated[int, typer.Option(
        "--limit", "-n",
        help="Maximum results to return (default 50)",
    )] = 0,
    offset: Annotated[int, typer.Option(
        "--offset",
        help="Skip this many conversations",
    )] = 0,
):
    """List conversations."""
    service = _get_service()
    try:
        result = service.list(source=source, limit=limit, offset=offset)
    except ChatHubError as e:
        raise _fail(e)

    lines = []
    for c in result.conversations:
        parts = [c.path]
        if c.date:
            parts.append(c.date)
        if c.title:
            parts.append(c.title)
        lines.append("  ".join(parts))
    if result.has_more:
        lines.append(f"({len(result.conversations)} of {result.total}; use --offset for more)")
    _emit(asdict(result), "\n".join(lines) if lines else "No conversations.")


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Text to search for (case-insensitive)")],
    source: SourceFilterOption = None,
    limit: Annotated[int, typer.Option(
        "--limit", "-n",
        help="Maximum results to return (default 20)",
    )] = 0,
):
    """Search conversations by content or metadata."""
    service = _get_service()
    try:
        output = service.search(query, source=source, limit=limit)
    except ChatHubError as e:
        raise _fail(e)

    lines = []
    for r in output.results:
        lines.append(f"{r.score:.2f}  {r.path}  {r.title}".rstrip())
        if r.snippet:
            lines.append(f"    {r.snippet}")
    _emit(asdict(output), "\n".join(lines) if lines else "No matches.")


@app.command()
def append(
    path: Annotated[str, typer.Argument(help="Path to the conversation")],
    content: Annotated[Optional[str], typer.Argument(
        help="Markdown to append, or '-' for stdin",
    )] = None,
    file: FileOption = None,
):
    """Append content to an existing conversation."""
    text = _read_content(content, file)
    service = _get_service()
    try:
        result = service.append(path, text)
    except ChatHubError as e:
        raise _fail(e)

    data = {"path": result.path}
    if result.message_count is not None:
        data["message_count"] = result.message_count
    _emit(data, result.path)


@app.command()
def delete(
    path: Annotated[str, typer.Argument(help="Path to the conversation")],
):
    """Delete a conversation."""
    service = _get_service()
    try:
        result = service.delete(path)
    except ChatHubError as e:
        raise _fail(e)
    _emit(asdict(result), result.message)


@app.command()
def serve():
    """Run the MCP server (transport from CHATHUB_TRANSPORT)."""
    from .mcp import run
    try:
        config = load_config(_config_override)
    except ChatHubError as e:
        raise _fail(e)
    run(config)


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="chathub CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
