"""
Tenant registry: tenant id -> content-host coordinates.

Every component that talks to the content host (repository, fetcher,
service, webhook synchronizer) receives the same registry instead of
reaching into global configuration.

Invariants:
    - The default tenant is always registered
    - Unknown tenants resolve to None; deciding whether that is fatal is
      the caller's job
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import GitHubConfig
from .entry.model import DEFAULT_TENANT_ID, normalize_tenant_id
from .github.client import GitHubClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantCoordinates:
    """Where a tenant's entries live.

    Attributes:
        tenant_id: Normalized tenant id
        owner: Repository owner
        repo: Repository name
        client: Client carrying this tenant's credentials
    """

    tenant_id: str
    owner: str
    repo: str
    client: GitHubClient

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class TenantRegistry:
    def __init__(self, tenants: list[TenantCoordinates] | None = None) -> None:
        self._tenants: dict[str, TenantCoordinates] = {}
        for tenant in tenants or []:
            self.register(tenant)

    def register(self, tenant: TenantCoordinates) -> None:
        self._tenants[normalize_tenant_id(tenant.tenant_id)] = tenant

    def resolve(self, tenant_id: str | None) -> TenantCoordinates | None:
        return self._tenants.get(normalize_tenant_id(tenant_id))

    def find_by_repository(self, full_name: str) -> list[TenantCoordinates]:
        """All tenants backed by ``owner/repo`` (case-insensitive)."""
        name = full_name.lower()
        return [t for t in self._tenants.values() if t.full_name.lower() == name]

    def tenant_ids(self) -> list[str]:
        return list(self._tenants)

    async def close(self) -> None:
        closed: set[int] = set()
        for tenant in self._tenants.values():
            if id(tenant.client) not in closed:
                closed.add(id(tenant.client))
                await tenant.client.close()

    @classmethod
    def from_config(cls, config: GitHubConfig) -> TenantRegistry:
        """Build clients for the default tenant and every configured tenant."""
        default_client = GitHubClient(
            api_url=config.api_url,
            access_token=config.access_token,
            timeout_seconds=config.timeout_seconds,
        )
        registry = cls([TenantCoordinates(DEFAULT_TENANT_ID, config.owner, config.repo, default_client)])
        for tenant in config.tenants:
            client = default_client
            if tenant.access_token:
                client = GitHubClient(
                    api_url=config.api_url,
                    access_token=tenant.access_token,
                    timeout_seconds=config.timeout_seconds,
                )
            registry.register(TenantCoordinates(tenant.tenant_id, tenant.owner, tenant.repo, client))
            logger.info(
                f"Registered tenant {tenant.tenant_id}",
                extra={"tenant_id": tenant.tenant_id, "repository": f"{tenant.owner}/{tenant.repo}"},
            )
        return registry
