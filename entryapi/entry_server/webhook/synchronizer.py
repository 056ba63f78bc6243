"""
Webhook synchronizer: push event -> fast-store refresh.

For every changed entry file in a push event:
    added / modified -> fetch from the content host, save to the fast store
    removed          -> delete from the fast store

Invariants:
    - Paths outside <content_dir>/NNNNN.md are ignored
    - Paths are processed in payload order (commit by commit; added,
      modified, then removed within a commit)
    - A failing path is recorded and the rest of the batch still runs;
      paths already applied are not rolled back
    - The tenant comes from the repository name; a tenant named by the
      caller must be backed by that repository

How to change safely:
    - Keep WebhookResult.to_dict() stable, webhook senders log it
    - Redelivery of the same event must stay harmless (saves and deletes
      are idempotent)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from ..entry.model import EntryKey, is_default_tenant, normalize_tenant_id
from ..errors import WebhookValidationError
from ..github.fetcher import EntryFetcher
from ..repository import EntryRepository
from ..tenants import TenantCoordinates, TenantRegistry
from .payload import Operation, WebhookPayload

logger = logging.getLogger(__name__)

STATUS_APPLIED = "applied"
STATUS_NOT_FOUND = "not_found"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class WebhookResult:
    """Outcome for one changed path.

    Attributes:
        operation: What the push did to the file
        entry_key: Entry the path maps to
        status: applied, not_found or failed
        error: Failure message (None unless failed or not_found)
    """

    operation: Operation
    entry_key: EntryKey
    status: str = STATUS_APPLIED
    error: str | None = None

    @property
    def applied(self) -> bool:
        return self.status == STATUS_APPLIED

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = self.entry_key.to_dict()
        if not self.applied:
            body["status"] = self.status
            body["error"] = self.error
        return {self.operation.value: body}


class WebhookSynchronizer:
    """Applies push events to the fast store.

    Example:
        >>> synchronizer = WebhookSynchronizer(repository, fetcher, tenants)
        >>> results = await synchronizer.synchronize(WebhookPayload.from_dict(body))
        >>> [r.to_dict() for r in results]
        [{'added': {'entryId': 100, 'tenantId': '_'}}]
    """

    def __init__(
        self,
        repository: EntryRepository,
        fetcher: EntryFetcher,
        tenants: TenantRegistry,
        content_dir: str = "content",
    ) -> None:
        self.repository = repository
        self.fetcher = fetcher
        self.tenants = tenants
        self.content_dir = content_dir.strip("/")
        self._path_pattern = re.compile(rf"^{re.escape(self.content_dir)}/(\d+)\.md$")

    def _resolve_tenant(self, repository: str, tenant_id: str | None) -> TenantCoordinates:
        candidates = self.tenants.find_by_repository(repository)
        if tenant_id is not None:
            wanted = normalize_tenant_id(tenant_id)
            for tenant in candidates:
                if tenant.tenant_id == wanted:
                    return tenant
            raise WebhookValidationError(
                f"Repository {repository} is not configured for tenant {wanted}",
                repository=repository,
            )
        if not candidates:
            raise WebhookValidationError(f"Unknown repository: {repository}", repository=repository)
        for tenant in candidates:
            if is_default_tenant(tenant.tenant_id):
                return tenant
        return candidates[0]

    def entry_id_for(self, path: str) -> int | None:
        match = self._path_pattern.match(path)
        return int(match.group(1)) if match else None

    async def _apply(
        self, tenant: TenantCoordinates, operation: Operation, path: str, entry_key: EntryKey
    ) -> WebhookResult:
        if operation is Operation.REMOVED:
            await self.repository.delete_by_id(entry_key)
            return WebhookResult(operation, entry_key)

        entry = await self.fetcher.fetch(tenant.tenant_id, tenant.owner, tenant.repo, path)
        if entry is None:
            return WebhookResult(
                operation, entry_key, status=STATUS_NOT_FOUND, error=f"File not found: {path}"
            )
        await self.repository.save(entry)
        return WebhookResult(operation, entry.entry_key)

    async def synchronize(
        self, payload: WebhookPayload, tenant_id: str | None = None
    ) -> list[WebhookResult]:
        """Apply every entry-file change in a push event.

        Args:
            payload: Parsed push event
            tenant_id: Tenant named by the webhook URL (None = resolve from
                the repository, preferring the default tenant)

        Returns:
            One result per entry path, in processing order

        Raises:
            WebhookValidationError: If the repository does not map to the tenant
        """
        tenant = self._resolve_tenant(payload.repository, tenant_id)
        results: list[WebhookResult] = []

        for commit in payload.commits:
            for operation, path in commit.paths():
                entry_id = self.entry_id_for(path)
                if entry_id is None:
                    logger.debug(f"Ignoring non-entry path {path}")
                    continue
                entry_key = EntryKey(entry_id, tenant.tenant_id)
                try:
                    result = await self._apply(tenant, operation, path, entry_key)
                except Exception as e:
                    logger.error(
                        f"Failed to {operation.value} {path}: {e}",
                        exc_info=True,
                        extra={"tenant_id": tenant.tenant_id, "path": path},
                    )
                    result = WebhookResult(operation, entry_key, status=STATUS_FAILED, error=str(e))
                results.append(result)
                logger.info(
                    f"Webhook {operation.value} {entry_key}: {result.status}",
                    extra={"tenant_id": tenant.tenant_id, "path": path},
                )

        return results
