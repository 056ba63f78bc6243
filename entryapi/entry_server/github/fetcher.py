"""
Authoritative fetcher: content file + commit history -> Entry.

Authorship is derived from the commit history of the file, never from the
file itself: the oldest commit gives ``created``, the newest ``updated``.

Status handling:
    2xx        -> Entry
    4xx        -> None (absent)
    otherwise  -> GitHubApiError
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Protocol

from ..entry.markdown import parse_markdown
from ..entry.model import Author, Entry, EntryKey, parse_id
from ..errors import GitHubApiError, TenantConfigurationError
from .client import Commit

if TYPE_CHECKING:
    from ..tenants import TenantRegistry

logger = logging.getLogger(__name__)


class EntryFetcher(Protocol):
    async def fetch(self, tenant_id: str | None, owner: str, repo: str, path: str) -> Entry | None:
        ...


def _to_author(commit: Commit) -> Author:
    return Author(commit.author_name, commit.author_date)


class GitHubEntryFetcher:
    def __init__(self, tenants: TenantRegistry) -> None:
        self.tenants = tenants

    async def fetch(self, tenant_id: str | None, owner: str, repo: str, path: str) -> Entry | None:
        """Fetch one entry file.

        Args:
            tenant_id: Tenant whose credentials are used
            owner: Repository owner
            repo: Repository name
            path: File path, e.g. "content/00001.md"

        Returns:
            Parsed Entry, or None when the host reports a 4xx

        Raises:
            TenantConfigurationError: If the tenant is not registered
            GitHubApiError: On any other unexpected status
            ValueError: If the file name is not an entry id
        """
        tenant = self.tenants.resolve(tenant_id)
        if tenant is None:
            raise TenantConfigurationError(str(tenant_id))

        entry_key = EntryKey(parse_id(PurePosixPath(path).name), tenant_id)
        response = await tenant.client.get_file(owner, repo, path)

        if response.ok and response.file is not None:
            logger.info(f"Retrieved file: {response.file.url}", extra={"entry_key": str(entry_key)})
            commits = await tenant.client.get_commits(owner, repo, path)
            if commits:
                created = _to_author(commits[-1])
                updated = _to_author(commits[0])
            else:
                created = updated = Author.unknown()
            return parse_markdown(entry_key, response.file.decode(), created, updated)

        if response.is_client_error:
            logger.info(
                f"Failed to retrieve file statusCode: {response.status_code}",
                extra={"tenant_id": tenant_id, "owner": owner, "repo": repo, "path": path},
            )
            return None

        raise GitHubApiError(
            f"Unexpected response returned from GitHub File API: {response.status_code}",
            status_code=response.status_code,
            path=path,
        )
