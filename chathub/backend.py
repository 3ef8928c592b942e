"""
Pluggable storage backend factory.

Creates a storage backend by name. Built-in backends are ``memory``,
``file`` and ``github``. External backends register via the
``chathub.backends`` entry point group.

External backend packages provide a factory function::

    def create_backend(options: dict[str, str]) -> StorageBackend:
        ...

and register it in their pyproject.toml::

    [project.entry-points."chathub.backends"]
    my-backend = "my_package.backend:create_backend"
"""

import logging
from pathlib import Path

from .config import BACKEND_FILE, BACKEND_GITHUB, BACKEND_MEMORY, BUILTIN_BACKENDS, Config
from .errors import ConfigError, StorageError
from .protocol import StorageBackend
from .storage import Storage

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "chathub.backends"


def create_backend(name: str, options: dict[str, str]) -> StorageBackend:
    """
    Create a storage backend from its name and options.

    Raises:
        ConfigError: If no backend with that name is available
        StorageError: If the backend fails to initialize
    """
    try:
        if name == BACKEND_MEMORY:
            from .backends.memory import MemoryBackend
            return MemoryBackend()
        if name == BACKEND_FILE:
            from .backends.file import FileBackend
            return FileBackend(Path(options["root"]).expanduser())
        if name == BACKEND_GITHUB:
            from .backends.github import GitHubBackend
            return GitHubBackend(
                options.get("token", ""),
                options.get("owner", ""),
                options.get("repo", ""),
                branch=options.get("branch", "main"),
            )
    except KeyError as e:
        raise ConfigError(f"Missing option {e} for {name} backend") from e
    except ValueError as e:
        raise ConfigError(f"Invalid {name} backend options: {e}") from e
    except OSError as e:
        raise StorageError(f"failed to open backend {name}: {e}") from e
    return _load_backend(name, options)


def _load_backend(name: str, options: dict[str, str]) -> StorageBackend:
    """Load a backend by entry point name."""
    from importlib.metadata import entry_points

    eps = entry_points(group=ENTRY_POINT_GROUP)
    for ep in eps:
        if ep.name == name:
            factory = ep.load()
            return factory(options)

    available = [ep.name for ep in eps]
    if available:
        raise ConfigError(
            f"Unknown backend: {name!r}. Available: "
            f"{list(BUILTIN_BACKENDS) + available}"
        )
    raise ConfigError(
        f"Unknown backend: {name!r}. Built-in backends: "
        f"{list(BUILTIN_BACKENDS)}"
    )


def open_storage(config: Config) -> Storage:
    """Create the configured backend and wrap it with the root folder."""
    backend = create_backend(config.backend, config.backend_options)
    logger.info("Opened %s backend (folder=%s)", config.backend, config.folder)
    return Storage(backend, config.folder)


def open_service(config: Config):
    """Open storage for config and build a ConversationService over it."""
    from .service import ConversationService
    return ConversationService(open_storage(config))
