"""
Cache-aside entry repository.

Reads go to the SQLite fast store first. On a miss, the entry is fetched
from the tenant's content repository, written into the fast store and
returned. Writes only touch the fast store; pushing changes to the content
host is the service layer's job.

Read path (find_by_id):
    hit   -> mapped Entry
    miss  -> resolve tenant -> fetch <content_dir>/NNNNN.md -> save -> Entry
    fetch reports absent -> None, nothing written

Invariants:
    - The fast store is never the source of truth
    - A non-default tenant without coordinates is a TenantConfigurationError,
      never a miss
    - List views (find_all, find_order_by_updated) never return content
    - Page order is ``updatedAt`` descending; the cursor is the ``updated``
      date of the last item of the previous page

How to change safely:
    - Criteria fragments start at placeholder ?4; the first three are the
      tenant, the cursor and the limit
    - next_id is not atomic: two concurrent creators can get the same id.
      Swap in another IdAllocator if that matters
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable
from typing import Protocol

from .entry.model import (
    Category,
    CursorPage,
    CursorPageRequest,
    Entry,
    EntryKey,
    SearchCriteria,
    Tag,
    TagAndCount,
    format_id,
    normalize_tenant_id,
    to_epoch_millis,
)
from .errors import TenantConfigurationError
from .github.fetcher import EntryFetcher
from .query.compiler import CompiledQuery, compile_categories, compile_query, compile_tag
from .store.entry_store import TABLE, EntryStore
from .store.record import EntryRecord
from .tenants import TenantRegistry

logger = logging.getLogger(__name__)

# Cursor used for the first page (max int64)
MAX_CURSOR = 2**63 - 1

PAGE_QUERY = f"""
    SELECT *
    FROM {TABLE}
    WHERE tenantId = ?1
      AND updatedAt < ?2
      {{criteria}}
    ORDER BY updatedAt DESC
    LIMIT ?3
"""


class IdAllocator(Protocol):
    async def next_id(self, tenant_id: str) -> int:
        ...


class MaxScanIdAllocator:
    """Next id = highest stored id in the tenant + 1.

    Relies on the zero-padded key sorting numerically, which holds while
    ids fit in the padding width.
    """

    def __init__(self, store: EntryStore) -> None:
        self.store = store

    async def next_id(self, tenant_id: str) -> int:
        rows = await self.store.select(
            f"SELECT entryKey FROM {TABLE} WHERE tenantId = ?1 ORDER BY entryKey DESC LIMIT 1",
            [tenant_id],
        )
        if not rows:
            return 1
        return EntryKey.parse(rows[0]["entryKey"]).entry_id + 1


def _to_list_entry(row: sqlite3.Row) -> Entry:
    return EntryRecord.from_row(row).to_entry().without_content()


class EntryRepository:
    """Cache-aside repository over EntryStore and an EntryFetcher.

    Example:
        >>> repository = EntryRepository(store, fetcher, tenants)
        >>> entry = await repository.find_by_id(EntryKey(1))
        >>> page = await repository.find_order_by_updated(
        ...     None, SearchCriteria(query="spring"), CursorPageRequest(page_size=10)
        ... )
    """

    def __init__(
        self,
        store: EntryStore,
        fetcher: EntryFetcher,
        tenants: TenantRegistry,
        id_allocator: IdAllocator | None = None,
        content_dir: str = "content",
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.tenants = tenants
        self.id_allocator = id_allocator or MaxScanIdAllocator(store)
        self.content_dir = content_dir.strip("/")

    def content_path(self, entry_id: int) -> str:
        return f"{self.content_dir}/{format_id(entry_id)}.md"

    async def exists(self, entry_key: EntryKey) -> bool:
        return await self.store.exists(str(entry_key))

    async def find_by_id(self, entry_key: EntryKey) -> Entry | None:
        record = await self.store.get(str(entry_key))
        if record is not None:
            return record.to_entry()

        tenant = self.tenants.resolve(entry_key.tenant_id)
        if tenant is None:
            raise TenantConfigurationError(entry_key.tenant_id)

        logger.info(f"Cache miss, fetching entry {entry_key}", extra={"entry_key": str(entry_key)})
        entry = await self.fetcher.fetch(
            entry_key.tenant_id,
            tenant.owner,
            tenant.repo,
            self.content_path(entry_key.entry_id),
        )
        if entry is None:
            return None
        return await self.save(entry)

    async def find_all(self, entry_keys: Iterable[EntryKey]) -> list[Entry]:
        """Batch lookup from the fast store only; missing keys are dropped."""
        records = await self.store.get_all([str(k) for k in entry_keys])
        records.sort(key=lambda r: r.entry_key)
        return [r.to_entry().without_content() for r in records]

    def _criteria_fragments(self, criteria: SearchCriteria, index: int) -> CompiledQuery:
        compiled: list[CompiledQuery] = []
        if criteria.query and criteria.query.strip():
            compiled.append(compile_query(criteria.query, index))
        if criteria.tag:
            compiled.append(compile_tag(criteria.tag, index + sum(len(c.params) for c in compiled)))
        if criteria.categories:
            compiled.append(
                compile_categories(criteria.categories, index + sum(len(c.params) for c in compiled))
            )
        fragment = "".join(f"AND ({c.fragment}) " for c in compiled if c.fragment)
        params = [p for c in compiled if c.fragment for p in c.params]
        return CompiledQuery(fragment.strip(), params)

    async def find_order_by_updated(
        self,
        tenant_id: str | None,
        criteria: SearchCriteria,
        page_request: CursorPageRequest,
    ) -> CursorPage:
        """One page of entries ordered by ``updated`` descending.

        Args:
            tenant_id: Tenant to list (None = default tenant)
            criteria: Free-text query, tag and category filters
            page_request: Cursor and page size

        Returns:
            CursorPage with content cleared

        Raises:
            QueryExecutionError: If SQLite rejects the compiled filter
        """
        page_size = page_request.page_size
        cursor = page_request.cursor
        params: list[object] = [
            normalize_tenant_id(tenant_id),
            to_epoch_millis(cursor) if cursor is not None else MAX_CURSOR,
            page_size + 1,
        ]
        criteria_query = self._criteria_fragments(criteria, len(params) + 1)
        params.extend(criteria_query.params)
        sql = PAGE_QUERY.format(criteria=criteria_query.fragment)
        logger.debug(f"Executing query: {sql}, params: {params}")

        rows = await self.store.select(sql, params)
        content = [_to_list_entry(row) for row in rows]
        has_next = len(content) == page_size + 1
        return CursorPage(
            content=content[:page_size] if has_next else content,
            page_size=page_size,
            has_previous=cursor is not None,
            has_next=has_next,
        )

    async def save(self, entry: Entry) -> Entry:
        await self.store.put(EntryRecord.from_entry(entry))
        return entry

    async def save_all(self, entries: Iterable[Entry]) -> None:
        await self.store.put_all(EntryRecord.from_entry(e) for e in entries)

    async def delete_by_id(self, entry_key: EntryKey) -> None:
        await self.store.remove(str(entry_key))

    async def delete_all(self) -> None:
        removed = await self.store.remove_all()
        logger.info(f"Removed {removed} entries from the fast store")

    async def next_id(self, tenant_id: str | None) -> int:
        return await self.id_allocator.next_id(normalize_tenant_id(tenant_id))

    async def find_all_categories(self, tenant_id: str | None) -> list[list[Category]]:
        """Distinct category paths of the tenant, ordered by joined path."""
        rows = await self.store.select(
            f"""
            SELECT DISTINCT categories, joinedCategories
            FROM {TABLE}
            WHERE tenantId = ?1
            ORDER BY joinedCategories
            """,
            [normalize_tenant_id(tenant_id)],
        )
        return [
            [Category(name) for name in json.loads(row["categories"])]
            for row in rows
        ]

    async def find_all_tags(self, tenant_id: str | None) -> list[TagAndCount]:
        rows = await self.store.select(
            f"""
            SELECT tag.value AS tag, COUNT(*) AS count
            FROM {TABLE}, json_each({TABLE}.tags) AS tag
            WHERE {TABLE}.tenantId = ?1
            GROUP BY tag.value
            ORDER BY tag.value
            """,
            [normalize_tenant_id(tenant_id)],
        )
        return [TagAndCount(Tag(row["tag"]), row["count"]) for row in rows]

    async def update_summary(self, entry_key: EntryKey, summary: str) -> Entry | None:
        entry = await self.find_by_id(entry_key)
        if entry is None:
            return None
        return await self.save(entry.with_summary(summary))
