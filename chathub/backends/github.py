"""
GitHub repository storage backend.

Stores each path as a file in a repository branch through the REST
contents API. Every write and delete is a commit.
"""

from __future__ import annotations

import base64
import io
import logging
from typing import BinaryIO, Optional
from urllib.parse import quote

import httpx

from .base import CommitWriter, normalize_path, under_prefix

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
DEFAULT_BRANCH = "main"
DEFAULT_TIMEOUT = 30.0


class GitHubBackend:
    """Files in ``owner/repo`` on ``branch``, authenticated with a token."""

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        *,
        branch: str = DEFAULT_BRANCH,
        api_url: str = GITHUB_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not token:
            raise ValueError("GitHub token is required")
        if not owner or not repo:
            raise ValueError("GitHub owner and repo are required")
        self.owner = owner
        self.repo = repo
        self.branch = branch or DEFAULT_BRANCH
        self._client = httpx.Client(
            base_url=api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout,
            transport=transport,
        )

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{quote(normalize_path(path))}"

    def _request(
        self, method: str, url: str, *, timeout: Optional[float] = None, **kwargs
    ) -> httpx.Response:
        """
        Send a request, mapping transport failures to OSError.

        ``timeout`` overrides the client default for this request only.
        """
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise OSError(f"GitHub {method} {url} failed: {e}") from e

    @staticmethod
    def _raise_for_status(resp: httpx.Response, path: str) -> None:
        if resp.status_code == 404:
            raise FileNotFoundError(path)
        if resp.status_code >= 400:
            raise OSError(f"GitHub API error {resp.status_code} for {path}: {resp.text[:200]}")

    def _file_sha(self, path: str, timeout: Optional[float] = None) -> Optional[str]:
        """Blob sha of an existing file, or None if it doesn't exist."""
        resp = self._request(
            "GET", self._contents_url(path), params={"ref": self.branch}, timeout=timeout,
        )
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp, path)
        data = resp.json()
        if not isinstance(data, dict) or data.get("type") != "file":
            raise IsADirectoryError(path)
        return data["sha"]

    def _put(self, path: str, data: bytes, timeout: Optional[float] = None) -> None:
        payload = {
            "message": f"chathub: update {normalize_path(path)}",
            "content": base64.b64encode(data).decode("ascii"),
            "branch": self.branch,
        }
        sha = self._file_sha(path, timeout)
        if sha:
            payload["sha"] = sha
        resp = self._request("PUT", self._contents_url(path), json=payload, timeout=timeout)
        self._raise_for_status(resp, path)
        logger.debug("Committed %s to %s/%s@%s", path, self.owner, self.repo, self.branch)

    def open_reader(self, path: str, *, timeout: Optional[float] = None) -> BinaryIO:
        resp = self._request(
            "GET",
            self._contents_url(path),
            params={"ref": self.branch},
            headers={"Accept": "application/vnd.github.raw+json"},
            timeout=timeout,
        )
        self._raise_for_status(resp, path)
        return io.BytesIO(resp.content)

    def open_writer(self, path: str, *, timeout: Optional[float] = None) -> BinaryIO:
        return CommitWriter(lambda data: self._put(path, data, timeout))

    def list(self, prefix: str, *, timeout: Optional[float] = None) -> list[str]:
        url = f"/repos/{self.owner}/{self.repo}/git/trees/{quote(self.branch)}"
        resp = self._request("GET", url, params={"recursive": "1"}, timeout=timeout)
        if resp.status_code in (404, 409):
            # Missing branch or empty repository
            return []
        self._raise_for_status(resp, prefix)
        data = resp.json()
        if data.get("truncated"):
            logger.warning("GitHub tree listing truncated for %s/%s", self.owner, self.repo)
        return sorted(
            entry["path"]
            for entry in data.get("tree", [])
            if entry.get("type") == "blob" and under_prefix(entry["path"], prefix)
        )

    def delete(self, path: str, *, timeout: Optional[float] = None) -> None:
        sha = self._file_sha(path, timeout)
        if sha is None:
            raise FileNotFoundError(path)
        resp = self._request(
            "DELETE",
            self._contents_url(path),
            json={
                "message": f"chathub: delete {normalize_path(path)}",
                "sha": sha,
                "branch": self.branch,
            },
            timeout=timeout,
        )
        self._raise_for_status(resp, path)

    def exists(self, path: str, *, timeout: Optional[float] = None) -> bool:
        try:
            return self._file_sha(path, timeout) is not None
        except IsADirectoryError:
            return False

    def close(self) -> None:
        self._client.close()
