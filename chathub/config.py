"""
Configuration management for chathub.

Settings come from environment variables. An optional TOML file (path in
CHATHUB_CONFIG) supplies the same settings; environment variables win.

Example chathub.toml::

    [chathub]
    backend = "file"
    folder = "conversations"
    transport = "stdio"

    [backend]
    root = "~/chathub-data"
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV = "CHATHUB_CONFIG"

# Backend types
BACKEND_GITHUB = "github"
BACKEND_FILE = "file"
BACKEND_MEMORY = "memory"
BUILTIN_BACKENDS = (BACKEND_GITHUB, BACKEND_FILE, BACKEND_MEMORY)

# Transport types
TRANSPORT_STDIO = "stdio"
TRANSPORT_HTTP = "http"
TRANSPORTS = (TRANSPORT_STDIO, TRANSPORT_HTTP)

DEFAULT_FOLDER = "conversations"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

# Backend option name -> (environment variable, default)
_BACKEND_ENV = {
    BACKEND_GITHUB: {
        "token": ("GITHUB_TOKEN", ""),
        "owner": ("GITHUB_OWNER", ""),
        "repo": ("GITHUB_REPO", ""),
        "branch": ("GITHUB_BRANCH", "main"),
    },
    BACKEND_FILE: {
        "root": ("FILE_ROOT", ""),
    },
    BACKEND_MEMORY: {},
}

# Options each built-in backend cannot run without
_REQUIRED_OPTIONS = {
    BACKEND_GITHUB: ("token", "owner", "repo"),
    BACKEND_FILE: ("root",),
}

_OPTION_ENV_NAMES = {
    "token": "GITHUB_TOKEN",
    "owner": "GITHUB_OWNER",
    "repo": "GITHUB_REPO",
    "root": "FILE_ROOT",
}


@dataclass
class Config:
    """Complete chathub configuration."""
    backend: str = BACKEND_GITHUB
    backend_options: dict[str, str] = field(default_factory=dict)
    folder: str = DEFAULT_FOLDER
    transport: str = TRANSPORT_STDIO
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    verbose: bool = False
    config_path: Optional[Path] = None

    def validate(self) -> None:
        """
        Check transport and backend settings.

        Unknown backend names are allowed here; the backend factory
        resolves them through entry points and reports if none match.

        Raises:
            ConfigError: If a setting is invalid or a required option is missing
        """
        if not self.backend:
            raise ConfigError("backend is required")
        if self.transport not in TRANSPORTS:
            raise ConfigError(f"invalid transport: {self.transport}")
        if not 0 < self.port < 65536:
            raise ConfigError(f"invalid port: {self.port}")
        for option in _REQUIRED_OPTIONS.get(self.backend, ()):
            if not self.backend_options.get(option):
                env_name = _OPTION_ENV_NAMES.get(option, option.upper())
                raise ConfigError(f"{env_name} is required for {self.backend} backend")


def _get_env(key: str, default: str) -> str:
    value = os.environ.get(key)
    return value if value else default


def _get_env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if value:
        try:
            return int(value)
        except ValueError:
            logger.warning("Ignoring non-integer %s=%r", key, value)
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value:
        lowered = value.strip().lower()
        if lowered in ("1", "t", "true", "yes", "on"):
            return True
        if lowered in ("0", "f", "false", "no", "off"):
            return False
        logger.warning("Ignoring non-boolean %s=%r", key, value)
    return default


def read_config_file(path: Path) -> dict[str, Any]:
    """
    Read a chathub TOML file.

    Raises:
        ConfigError: If the file is missing or not valid TOML
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config not found: {path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e


def load_backend_options(backend: str, file_options: Optional[dict[str, Any]] = None) -> dict[str, str]:
    """Backend options from the config file, overridden by environment variables."""
    options = {k: str(v) for k, v in (file_options or {}).items()}
    for name, (env_key, default) in _BACKEND_ENV.get(backend, {}).items():
        value = os.environ.get(env_key)
        if value:
            options[name] = value
        elif name not in options and default:
            options[name] = default
    return options


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from environment variables and an optional TOML file.

    This is the main entry point for config management.

    Raises:
        ConfigError: If the config file is unreadable or the result is invalid
    """
    if config_path is None and os.environ.get(CONFIG_ENV):
        config_path = Path(os.environ[CONFIG_ENV]).expanduser()

    data: dict[str, Any] = {}
    if config_path is not None:
        data = read_config_file(config_path)
    section = data.get("chathub", {})

    def _file_int(key: str, default: int) -> int:
        value = section.get(key, default)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{key} must be an integer in {config_path}")
        return value

    backend = _get_env("CHATHUB_BACKEND", section.get("backend", BACKEND_GITHUB))
    cfg = Config(
        backend=backend,
        backend_options=load_backend_options(backend, data.get("backend")),
        folder=_get_env("CHATHUB_FOLDER", section.get("folder", DEFAULT_FOLDER)),
        transport=_get_env("CHATHUB_TRANSPORT", section.get("transport", TRANSPORT_STDIO)),
        host=_get_env("CHATHUB_HOST", section.get("host", DEFAULT_HOST)),
        port=_get_env_int("CHATHUB_PORT", _file_int("port", DEFAULT_PORT)),
        verbose=_get_env_bool("CHATHUB_VERBOSE", bool(section.get("verbose", False))),
        config_path=config_path,
    )
    cfg.validate()
    return cfg
