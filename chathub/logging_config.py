"""
Logging configuration for chathub.

Quiet by default. The MCP stdio server owns stdout, so every handler
installed here writes to stderr or to a file.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "mcp", "uvicorn.access")


def configure_quiet_mode(quiet: bool = True):
    """Hold chatty third-party loggers at WARNING, or release them when quiet is False."""
    if quiet:
        warnings.filterwarnings("ignore", category=DeprecationWarning)
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    else:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.NOTSET)


def enable_debug_mode():
    """Send DEBUG records from chathub and httpx to stderr."""
    warnings.filterwarnings("default")

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    has_stderr = any(
        isinstance(h, logging.StreamHandler) and h.stream is sys.stderr
        for h in root.handlers
    )
    if not has_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.DEBUG)
        console.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        ))
        root.addHandler(console)

    for name in ("chathub", "httpx"):
        logging.getLogger(name).setLevel(logging.DEBUG)


def configure_ops_log(directory) -> RotatingFileHandler:
    """Configure a persistent operations log.

    Writes to {directory}/chathub-ops.log using a rotating file handler
    (1MB max, 3 backups). Returns the handler so it can be removed on close.
    """
    log_dir = Path(directory)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_dir / "chathub-ops.log"),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    chathub_logger = logging.getLogger("chathub")
    chathub_logger.addHandler(handler)
    # Ensure chathub logger allows INFO through even in quiet mode
    if chathub_logger.level == logging.NOTSET or chathub_logger.level > logging.INFO:
        chathub_logger.setLevel(logging.INFO)

    return handler
