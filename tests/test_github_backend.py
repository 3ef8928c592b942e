"""Tests for chathub.backends.github against a fake contents API."""

import base64
import hashlib
import json

import httpx
import pytest

from chathub.backends.github import GitHubBackend
from chathub.errors import DocumentNotFoundError
from chathub.service import ConversationService
from chathub.storage import Storage
from chathub.types import CancelToken

PREFIX = "/repos/octo/archive"


class FakeGitHub:
    """In-memory stand-in for the repository contents and trees endpoints."""

    def __init__(self, files=None, status_override=None):
        self.files: dict[str, bytes] = dict(files or {})
        self.requests: list[httpx.Request] = []
        self.status_override = status_override

    @staticmethod
    def sha(data: bytes) -> str:
        return hashlib.sha1(data).hexdigest()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_override is not None:
            return httpx.Response(self.status_override, text="server says no")

        path = request.url.path
        if path.startswith(f"{PREFIX}/git/trees/"):
            if not self.files:
                return httpx.Response(409, json={"message": "Git Repository is empty."})
            tree = [{"path": p, "type": "blob"} for p in self.files]
            tree.append({"path": "conversations", "type": "tree"})
            return httpx.Response(200, json={"tree": tree, "truncated": False})

        assert path.startswith(f"{PREFIX}/contents/")
        file_path = path[len(f"{PREFIX}/contents/"):]

        if request.method == "GET":
            if file_path not in self.files:
                if any(p.startswith(file_path + "/") for p in self.files):
                    return httpx.Response(200, json=[{"type": "file"}])
                return httpx.Response(404, json={"message": "Not Found"})
            data = self.files[file_path]
            if request.headers["accept"] == "application/vnd.github.raw+json":
                return httpx.Response(200, content=data)
            return httpx.Response(200, json={"type": "file", "sha": self.sha(data)})

        body = json.loads(request.content)
        if request.method == "PUT":
            existing = self.files.get(file_path)
            if existing is not None and body.get("sha") != self.sha(existing):
                return httpx.Response(409, json={"message": "sha mismatch"})
            self.files[file_path] = base64.b64decode(body["content"])
            return httpx.Response(201, json={"content": {"path": file_path}})

        if request.method == "DELETE":
            if body.get("sha") != self.sha(self.files[file_path]):
                return httpx.Response(409, json={"message": "sha mismatch"})
            del self.files[file_path]
            return httpx.Response(200, json={})

        return httpx.Response(405)


@pytest.fixture
def fake():
    return FakeGitHub()


@pytest.fixture
def gh(fake):
    backend = GitHubBackend(
        "test-token", "octo", "archive",
        transport=httpx.MockTransport(fake.handler),
    )
    yield backend
    backend.close()


def _write(backend, path, data: bytes):
    with backend.open_writer(path) as f:
        f.write(data)


class TestConstruction:

    def test_requires_token(self):
        with pytest.raises(ValueError, match="token"):
            GitHubBackend("", "octo", "archive")

    def test_requires_owner_and_repo(self):
        with pytest.raises(ValueError, match="owner and repo"):
            GitHubBackend("t", "", "archive")

    def test_default_branch(self):
        backend = GitHubBackend("t", "octo", "archive", branch="")
        assert backend.branch == "main"
        backend.close()


class TestGitHubBackend:

    def test_auth_and_branch_sent(self, gh, fake):
        _write(gh, "conversations/claude/a.md", b"hello")
        put = [r for r in fake.requests if r.method == "PUT"][0]
        assert put.headers["authorization"] == "Bearer test-token"
        assert json.loads(put.content)["branch"] == "main"
        assert put.url.params.get("ref") is None

    def test_create_then_read(self, gh, fake):
        _write(gh, "conversations/claude/a.md", b"hello")
        assert fake.files["conversations/claude/a.md"] == b"hello"
        with gh.open_reader("conversations/claude/a.md") as f:
            assert f.read() == b"hello"

    def test_update_sends_existing_sha(self, gh, fake):
        _write(gh, "a.md", b"one")
        _write(gh, "a.md", b"two")
        puts = [json.loads(r.content) for r in fake.requests if r.method == "PUT"]
        assert "sha" not in puts[0]
        assert puts[1]["sha"] == FakeGitHub.sha(b"one")
        assert fake.files["a.md"] == b"two"

    def test_read_missing(self, gh):
        with pytest.raises(FileNotFoundError):
            gh.open_reader("missing.md")

    def test_client_timeout_by_default(self, gh, fake):
        _write(gh, "a.md", b"x")
        assert all(r.extensions["timeout"]["read"] == 30.0 for r in fake.requests)

    def test_per_call_timeout_bounds_every_request(self, gh, fake):
        with gh.open_writer("a.md", timeout=2.5) as f:
            f.write(b"x")
        gh.open_reader("a.md", timeout=2.5)
        gh.list("", timeout=2.5)
        gh.delete("a.md", timeout=2.5)
        assert len(fake.requests) == 6
        assert all(r.extensions["timeout"]["read"] == 2.5 for r in fake.requests)

    def test_deadline_reaches_github_requests(self, gh, fake):
        storage = Storage(gh, "conversations")
        storage.save("conversations/claude/a.md", b"x", cancel=CancelToken(timeout=20))
        for request in fake.requests:
            assert 0 < request.extensions["timeout"]["read"] <= 20
        storage.close()

    def test_list_filters_prefix_and_blobs(self, gh, fake):
        fake.files.update({
            "conversations/claude/b.md": b"x",
            "conversations/claude/a.md": b"x",
            "README.md": b"x",
        })
        assert gh.list("conversations") == [
            "conversations/claude/a.md",
            "conversations/claude/b.md",
        ]

    def test_list_empty_repository(self, gh):
        assert gh.list("conversations") == []

    def test_exists(self, gh, fake):
        fake.files["conversations/claude/a.md"] = b"x"
        assert gh.exists("conversations/claude/a.md")
        assert not gh.exists("conversations/claude/missing.md")
        # directories are not documents
        assert not gh.exists("conversations/claude")

    def test_delete(self, gh, fake):
        fake.files["a.md"] = b"x"
        gh.delete("a.md")
        assert "a.md" not in fake.files

    def test_delete_missing(self, gh):
        with pytest.raises(FileNotFoundError):
            gh.delete("missing.md")

    def test_server_error_is_oserror(self, fake):
        fake.status_override = 500
        backend = GitHubBackend("t", "octo", "archive", transport=httpx.MockTransport(fake.handler))
        with pytest.raises(OSError, match="500"):
            backend.list("conversations")
        backend.close()

    def test_transport_error_is_oserror(self):
        def fail(request):
            raise httpx.ConnectError("no route", request=request)

        backend = GitHubBackend("t", "octo", "archive", transport=httpx.MockTransport(fail))
        with pytest.raises(OSError, match="no route"):
            backend.open_reader("a.md")
        backend.close()


class TestServiceOverGitHub:

    def test_save_append_read_delete(self, gh, fake):
        service = ConversationService(Storage(gh, "conversations"))
        saved = service.save("Repo Chat", "First", "codex")
        assert saved.path in fake.files

        appended = service.append(saved.path, "Second")
        assert appended.message_count == 1

        doc = service.read(saved.path)
        assert doc.body == "First\n\nSecond"
        assert service.list().total == 1

        assert service.delete(saved.path).deleted is True
        with pytest.raises(DocumentNotFoundError):
            service.read(saved.path)
