"""Tests for the error hierarchy, error log, and logging setup."""

import logging

import pytest

from chathub.errors import (
    ChatHubError,
    ConfigError,
    DocumentNotFoundError,
    InvalidFrontmatterError,
    InvalidSourceError,
    StorageError,
    chathub_home,
    log_exception,
)
from chathub.logging_config import configure_ops_log, configure_quiet_mode


class TestHierarchy:

    @pytest.mark.parametrize("exc_type", [
        InvalidFrontmatterError, InvalidSourceError, StorageError, ConfigError,
    ])
    def test_all_are_chathub_errors(self, exc_type):
        assert issubclass(exc_type, ChatHubError)

    def test_builtin_bases(self):
        assert issubclass(InvalidFrontmatterError, ValueError)
        assert issubclass(StorageError, OSError)
        assert issubclass(DocumentNotFoundError, StorageError)

    def test_invalid_source_message(self):
        err = InvalidSourceError("bard")
        assert str(err) == "invalid source: bard"
        assert err.source == "bard"


class TestErrorLog:

    def test_home_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CHATHUB_HOME", str(tmp_path))
        assert chathub_home() == tmp_path

    def test_log_exception_writes_traceback(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CHATHUB_HOME", str(tmp_path))
        try:
            raise StorageError("failed to write x.md: disk full")
        except StorageError as e:
            path = log_exception(e, context="chathub CLI")
        assert path == tmp_path / "chathub-errors.log"
        text = path.read_text()
        assert "chathub CLI" in text
        assert "disk full" in text
        assert "Traceback" in text


class TestLogging:

    def test_ops_log(self, tmp_path):
        handler = configure_ops_log(tmp_path)
        try:
            logging.getLogger("chathub.service").info("Saved conversation p.md")
            handler.flush()
            assert "Saved conversation p.md" in (tmp_path / "chathub-ops.log").read_text()
        finally:
            logging.getLogger("chathub").removeHandler(handler)
            handler.close()

    def test_quiet_mode(self):
        configure_quiet_mode(quiet=True)
        assert logging.getLogger("httpx").level == logging.WARNING
        configure_quiet_mode(quiet=False)
        assert logging.getLogger("httpx").level == logging.NOTSET
