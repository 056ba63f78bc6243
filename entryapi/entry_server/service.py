"""
Entry service - the layer the HTTP adapter talks to.

Reads delegate to the cache-aside repository. Writes have two modes:

    direct_update off: write to the fast store only; the content host is
                       updated out of band and syncs back via webhooks
    direct_update on:  write the markdown file to the content host first,
                       then mirror the change into the fast store

Invariants:
    - In direct-update mode the content host write happens before the
      fast-store write; a failed host write leaves the fast store untouched
    - Commit messages are "Create entry NNNNN", "Update entry NNNNN" and
      "Delete entry NNNNN"
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .entry.markdown import parse_markdown, to_markdown
from .entry.model import (
    DEFAULT_PAGE_SIZE,
    Author,
    Category,
    CursorPage,
    CursorPageRequest,
    Entry,
    EntryKey,
    SearchCriteria,
    TagAndCount,
    format_id,
)
from .errors import EntryNotFoundError, TenantConfigurationError
from .repository import EntryRepository
from .tenants import TenantCoordinates, TenantRegistry

logger = logging.getLogger(__name__)

DEFAULT_CURSOR_REQUEST = CursorPageRequest(cursor=None, page_size=DEFAULT_PAGE_SIZE)


class EntryService:
    """Entry use cases on top of EntryRepository.

    Attributes:
        repository: Cache-aside repository
        tenants: Tenant registry (used for write-through)
        direct_update: Write through to the content host
    """

    def __init__(
        self,
        repository: EntryRepository,
        tenants: TenantRegistry,
        direct_update: bool = False,
    ) -> None:
        self.repository = repository
        self.tenants = tenants
        self.direct_update = direct_update

    async def find_by_id(self, entry_key: EntryKey) -> Entry | None:
        return await self.repository.find_by_id(entry_key)

    async def find_all(self, entry_keys: list[EntryKey]) -> list[Entry]:
        return await self.repository.find_all(entry_keys)

    async def find_order_by_updated(
        self,
        tenant_id: str | None,
        criteria: SearchCriteria,
        page_request: CursorPageRequest,
    ) -> CursorPage:
        return await self.repository.find_order_by_updated(tenant_id, criteria, page_request)

    async def find_latest(self, tenant_id: str | None) -> CursorPage:
        return await self.repository.find_order_by_updated(
            tenant_id, SearchCriteria(), DEFAULT_CURSOR_REQUEST
        )

    async def find_all_categories(self, tenant_id: str | None) -> list[list[Category]]:
        return await self.repository.find_all_categories(tenant_id)

    async def find_all_tags(self, tenant_id: str | None) -> list[TagAndCount]:
        return await self.repository.find_all_tags(tenant_id)

    async def next_id(self, tenant_id: str | None) -> int:
        return await self.repository.next_id(tenant_id)

    async def save(self, entry: Entry) -> Entry:
        if self.direct_update:
            return await self._save_to_github(entry)
        return await self.repository.save(entry)

    async def save_all(self, entries: Iterable[Entry]) -> None:
        await self.repository.save_all(entries)

    async def delete_by_id(self, entry_key: EntryKey) -> None:
        if self.direct_update:
            await self._delete_from_github(entry_key)
            return
        await self.repository.delete_by_id(entry_key)

    async def update_summary(self, entry_key: EntryKey, summary: str) -> Entry | None:
        """Replace the summary of an entry.

        Returns:
            The updated entry, or None when it does not exist (fast-store mode)

        Raises:
            EntryNotFoundError: In direct-update mode, if the file is missing
        """
        if self.direct_update:
            entry = await self._fetch_from_github(entry_key)
            return await self._save_to_github(entry.with_summary(summary))
        return await self.repository.update_summary(entry_key, summary)

    def _coordinates(self, tenant_id: str) -> TenantCoordinates:
        tenant = self.tenants.resolve(tenant_id)
        if tenant is None:
            raise TenantConfigurationError(tenant_id)
        return tenant

    async def _save_to_github(self, entry: Entry) -> Entry:
        entry_key = entry.entry_key
        tenant = self._coordinates(entry_key.tenant_id)
        path = self.repository.content_path(entry_key.entry_id)
        content = to_markdown(entry)
        formatted_id = format_id(entry_key.entry_id)
        log_extra = {"tenant_id": entry_key.tenant_id, "repository": tenant.full_name, "path": path}

        current = await tenant.client.get_file(tenant.owner, tenant.repo, path)
        if current.status_code == 404:
            logger.info("action=create_file", extra=log_extra)
            await tenant.client.create_file(
                tenant.owner, tenant.repo, path, f"Create entry {formatted_id}", content
            )
        else:
            sha = current.file.sha if current.file else ""
            logger.info("action=update_file", extra={**log_extra, "sha": sha})
            await tenant.client.update_file(
                tenant.owner, tenant.repo, path, f"Update entry {formatted_id}", content, sha
            )
        return await self.repository.save(entry)

    async def _delete_from_github(self, entry_key: EntryKey) -> None:
        tenant = self._coordinates(entry_key.tenant_id)
        path = self.repository.content_path(entry_key.entry_id)
        log_extra = {"tenant_id": entry_key.tenant_id, "repository": tenant.full_name, "path": path}

        current = await tenant.client.get_file(tenant.owner, tenant.repo, path)
        if current.status_code == 404:
            logger.info("action=skip_delete reason=not_found", extra=log_extra)
        else:
            sha = current.file.sha if current.file else ""
            logger.info("action=delete_file", extra={**log_extra, "sha": sha})
            await tenant.client.delete_file(
                tenant.owner, tenant.repo, path, f"Delete entry {format_id(entry_key.entry_id)}", sha
            )
        await self.repository.delete_by_id(entry_key)

    async def _fetch_from_github(self, entry_key: EntryKey) -> Entry:
        tenant = self._coordinates(entry_key.tenant_id)
        path = self.repository.content_path(entry_key.entry_id)
        response = await tenant.client.get_file(tenant.owner, tenant.repo, path)
        if response.file is None:
            logger.warning(
                f"action=fetch_file status={response.status_code}",
                extra={"tenant_id": entry_key.tenant_id, "path": path},
            )
            raise EntryNotFoundError(entry_key)
        # Authorship comes from commit history, not from the file
        existing = await self.repository.find_by_id(entry_key)
        created = existing.created if existing else Author.unknown()
        updated = existing.updated if existing else Author.unknown()
        return parse_markdown(entry_key, response.file.decode(), created, updated)
