"""
Async client for the GitHub REST API (contents and commits).

Only the fields the core needs are parsed. Content reads report the HTTP
status instead of raising, so callers can tell "absent" (4xx) from
"broken" (anything else) themselves.

Invariants:
    - File content is base64 in transit; ``GitHubFile.decode`` returns text
    - Commits are returned newest first, as the API lists them
    - Write methods raise GitHubApiError on any non-2xx status
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from ..entry.model import parse_datetime
from ..errors import GitHubApiError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


@dataclass(frozen=True)
class GitHubFile:
    """A file from the contents API.

    Attributes:
        content: Base64-encoded content (may contain line breaks)
        sha: Blob sha, required to update or delete the file
        url: API url of the file
    """

    content: str
    sha: str
    url: str = ""

    def decode(self) -> str:
        return base64.b64decode("".join(self.content.split())).decode("utf-8")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GitHubFile:
        return cls(
            content=data.get("content") or "",
            sha=data.get("sha") or "",
            url=data.get("url") or "",
        )


@dataclass(frozen=True)
class FileResponse:
    status_code: int
    file: GitHubFile | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500


@dataclass(frozen=True)
class Commit:
    """Author of one commit touching a path."""

    author_name: str
    author_date: datetime | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Commit:
        author = (data.get("commit") or {}).get("author") or {}
        date = author.get("date")
        return cls(
            author_name=author.get("name") or "",
            author_date=parse_datetime(date) if date else None,
        )


class GitHubClient:
    """Thin wrapper over ``httpx.AsyncClient`` for one set of credentials.

    Example:
        >>> client = GitHubClient(access_token="ghp_...")
        >>> response = await client.get_file("making", "blog.ik.am", "content/00001.md")
        >>> if response.ok:
        ...     print(response.file.decode())
        >>> await client.close()
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        access_token: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: REST API base URL
            access_token: Token sent as ``Authorization: token <value>``
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        headers = {"Accept": "application/vnd.github+json"}
        if access_token:
            headers["Authorization"] = f"token {access_token}"
        self.api_url = api_url
        self._client = httpx.AsyncClient(
            base_url=api_url,
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _contents_url(owner: str, repo: str, path: str) -> str:
        return f"/repos/{owner}/{repo}/contents/{path}"

    async def get_file(self, owner: str, repo: str, path: str) -> FileResponse:
        response = await self._client.get(self._contents_url(owner, repo, path))
        if response.is_success:
            return FileResponse(response.status_code, GitHubFile.from_dict(response.json()))
        return FileResponse(response.status_code)

    async def get_commits(self, owner: str, repo: str, path: str) -> list[Commit]:
        """List commits touching ``path``, newest first.

        Raises:
            GitHubApiError: On a non-2xx status
        """
        response = await self._client.get(f"/repos/{owner}/{repo}/commits", params={"path": path})
        self._raise_for_status(response, path)
        return [Commit.from_dict(c) for c in response.json()]

    async def create_file(
        self, owner: str, repo: str, path: str, message: str, content: str
    ) -> dict[str, Any]:
        body = {"message": message, "content": _encode(content)}
        return await self._write("PUT", owner, repo, path, body)

    async def update_file(
        self, owner: str, repo: str, path: str, message: str, content: str, sha: str
    ) -> dict[str, Any]:
        body = {"message": message, "content": _encode(content), "sha": sha}
        return await self._write("PUT", owner, repo, path, body)

    async def delete_file(
        self, owner: str, repo: str, path: str, message: str, sha: str
    ) -> dict[str, Any]:
        body = {"message": message, "sha": sha}
        return await self._write("DELETE", owner, repo, path, body)

    async def _write(
        self, method: str, owner: str, repo: str, path: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        response = await self._client.request(
            method, self._contents_url(owner, repo, path), json=body
        )
        self._raise_for_status(response, path)
        logger.info(
            f"{method} {owner}/{repo}/{path}: {body['message']}",
            extra={"status_code": response.status_code},
        )
        return response.json() if response.content else {}

    @staticmethod
    def _raise_for_status(response: httpx.Response, path: str) -> None:
        if not response.is_success:
            raise GitHubApiError(
                f"Unexpected response returned from GitHub API: {response.status_code}",
                status_code=response.status_code,
                path=path,
            )


def _encode(content: str) -> str:
    return base64.b64encode(content.encode("utf-8")).decode("ascii")
