"""Tests for configuration loading and the backend factory."""

import pytest

from chathub.backend import create_backend, open_service, open_storage
from chathub.backends.file import FileBackend
from chathub.backends.github import GitHubBackend
from chathub.backends.memory import MemoryBackend
from chathub.config import (
    BACKEND_FILE,
    BACKEND_GITHUB,
    BUILTIN_BACKENDS,
    Config,
    load_backend_options,
    load_config,
)
from chathub.errors import ConfigError
from chathub.service import ConversationService

_ENV_VARS = [
    "CHATHUB_CONFIG", "CHATHUB_BACKEND", "CHATHUB_FOLDER", "CHATHUB_TRANSPORT",
    "CHATHUB_HOST", "CHATHUB_PORT", "CHATHUB_VERBOSE",
    "GITHUB_TOKEN", "GITHUB_OWNER", "GITHUB_REPO", "GITHUB_BRANCH", "FILE_ROOT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:

    def test_github_requires_token(self):
        with pytest.raises(ConfigError, match="GITHUB_TOKEN is required"):
            load_config()

    def test_github_from_env(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "tok")
        monkeypatch.setenv("GITHUB_OWNER", "octo")
        monkeypatch.setenv("GITHUB_REPO", "archive")
        cfg = load_config()
        assert cfg.backend == BACKEND_GITHUB
        assert cfg.backend_options == {
            "token": "tok", "owner": "octo", "repo": "archive", "branch": "main",
        }
        assert cfg.folder == "conversations"
        assert cfg.transport == "stdio"
        assert cfg.port == 8080
        assert cfg.host == "127.0.0.1"

    def test_github_requires_owner(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "tok")
        with pytest.raises(ConfigError, match="GITHUB_OWNER"):
            load_config()

    def test_file_backend(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CHATHUB_BACKEND", "file")
        monkeypatch.setenv("FILE_ROOT", str(tmp_path))
        monkeypatch.setenv("CHATHUB_FOLDER", "chats")
        cfg = load_config()
        assert cfg.backend == BACKEND_FILE
        assert cfg.backend_options == {"root": str(tmp_path)}
        assert cfg.folder == "chats"

    def test_file_backend_requires_root(self, monkeypatch):
        monkeypatch.setenv("CHATHUB_BACKEND", "file")
        with pytest.raises(ConfigError, match="FILE_ROOT is required"):
            load_config()

    def test_memory_backend_needs_nothing(self, monkeypatch):
        monkeypatch.setenv("CHATHUB_BACKEND", "memory")
        assert load_config().backend_options == {}

    def test_http_transport_and_port(self, monkeypatch):
        monkeypatch.setenv("CHATHUB_BACKEND", "memory")
        monkeypatch.setenv("CHATHUB_TRANSPORT", "http")
        monkeypatch.setenv("CHATHUB_PORT", "9000")
        cfg = load_config()
        assert cfg.transport == "http"
        assert cfg.port == 9000

    def test_invalid_transport(self, monkeypatch):
        monkeypatch.setenv("CHATHUB_BACKEND", "memory")
        monkeypatch.setenv("CHATHUB_TRANSPORT", "carrier-pigeon")
        with pytest.raises(ConfigError, match="invalid transport"):
            load_config()

    def test_non_integer_port_ignored(self, monkeypatch):
        monkeypatch.setenv("CHATHUB_BACKEND", "memory")
        monkeypatch.setenv("CHATHUB_PORT", "eighty")
        assert load_config().port == 8080

    def test_invalid_port(self, monkeypatch):
        monkeypatch.setenv("CHATHUB_BACKEND", "memory")
        monkeypatch.setenv("CHATHUB_PORT", "70000")
        with pytest.raises(ConfigError, match="invalid port"):
            load_config()

    def test_verbose(self, monkeypatch):
        monkeypatch.setenv("CHATHUB_BACKEND", "memory")
        monkeypatch.setenv("CHATHUB_VERBOSE", "true")
        assert load_config().verbose is True


class TestConfigFile:

    def test_toml_file(self, tmp_path):
        path = tmp_path / "chathub.toml"
        path.write_text(
            '[chathub]\n'
            'backend = "file"\n'
            'folder = "archive"\n'
            'port = 9100\n'
            '\n'
            '[backend]\n'
            f'root = "{tmp_path.as_posix()}"\n'
        )
        cfg = load_config(path)
        assert cfg.backend == "file"
        assert cfg.folder == "archive"
        assert cfg.port == 9100
        assert cfg.backend_options["root"] == tmp_path.as_posix()
        assert cfg.config_path == path

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "chathub.toml"
        path.write_text('[chathub]\nbackend = "file"\nfolder = "archive"\n[backend]\nroot = "/from/file"\n')
        monkeypatch.setenv("CHATHUB_FOLDER", "from-env")
        monkeypatch.setenv("FILE_ROOT", "/from/env")
        cfg = load_config(path)
        assert cfg.folder == "from-env"
        assert cfg.backend_options["root"] == "/from/env"

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "chathub.toml"
        path.write_text('[chathub]\nbackend = "memory"\n')
        monkeypatch.setenv("CHATHUB_CONFIG", str(path))
        assert load_config().backend == "memory"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Config not found"):
            load_config(tmp_path / "absent.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[chathub\nbackend=")
        with pytest.raises(ConfigError, match="Invalid config file"):
            load_config(path)

    def test_port_must_be_integer_in_file(self, tmp_path):
        path = tmp_path / "chathub.toml"
        path.write_text('[chathub]\nbackend = "memory"\nport = "eighty"\n')
        with pytest.raises(ConfigError, match="port must be an integer"):
            load_config(path)


class TestLoadBackendOptions:

    def test_defaults_fill_missing(self):
        assert load_backend_options("github", {}) == {"branch": "main"}

    def test_file_options_kept_for_unknown_backend(self):
        assert load_backend_options("s3", {"bucket": "b"}) == {"bucket": "b"}


class TestBackendFactory:

    def test_memory(self):
        assert isinstance(create_backend("memory", {}), MemoryBackend)

    def test_file(self, tmp_path):
        backend = create_backend("file", {"root": str(tmp_path)})
        assert isinstance(backend, FileBackend)
        assert backend.root == tmp_path.resolve()

    def test_file_missing_root(self):
        with pytest.raises(ConfigError, match="Missing option"):
            create_backend("file", {})

    def test_github(self):
        backend = create_backend("github", {"token": "t", "owner": "o", "repo": "r", "branch": "dev"})
        assert isinstance(backend, GitHubBackend)
        assert backend.branch == "dev"
        backend.close()

    def test_github_missing_token(self):
        with pytest.raises(ConfigError, match="Invalid github backend options"):
            create_backend("github", {"owner": "o", "repo": "r"})

    def test_unknown_backend(self):
        with pytest.raises(ConfigError, match="Unknown backend: 'dropbox'") as exc_info:
            create_backend("dropbox", {})
        for name in BUILTIN_BACKENDS:
            assert repr(name) in str(exc_info.value)

    def test_open_storage_uses_folder(self):
        storage = open_storage(Config(backend="memory", folder="/chats/"))
        assert storage.folder == "chats"

    def test_open_service(self):
        service = open_service(Config(backend="memory"))
        assert isinstance(service, ConversationService)
        saved = service.save("Hi", "there", "claude")
        assert service.read(saved.path).title == "Hi"
