"""
Configuration management for the Entry API server.

All configuration is done via environment variables - no config files inside containers.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - The default tenant always uses the GITHUB_OWNER/GITHUB_REPO coordinates
    - Secrets (access tokens, webhook secret) are never logged

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Tenant settings follow the GITHUB_TENANT_<ID>_<NAME> naming; keep new
      per-tenant settings in that shape
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class TenantConfig:
    """Content-host coordinates for one non-default tenant.

    Attributes:
        tenant_id: Tenant identifier
        owner: Repository owner
        repo: Repository name
        access_token: Token for this tenant (falls back to GITHUB_ACCESS_TOKEN)
    """

    tenant_id: str
    owner: str
    repo: str
    access_token: str | None = None

    @classmethod
    def from_env(cls, tenant_id: str) -> TenantConfig:
        """Load one tenant from GITHUB_TENANT_<ID>_* variables."""
        prefix = f"GITHUB_TENANT_{tenant_id.upper().replace('-', '_')}_"
        return cls(
            tenant_id=tenant_id,
            owner=os.getenv(prefix + "OWNER", ""),
            repo=os.getenv(prefix + "REPO", ""),
            access_token=os.getenv(prefix + "ACCESS_TOKEN"),
        )


@dataclass(frozen=True)
class GitHubConfig:
    """Content host (GitHub REST API) configuration.

    Attributes:
        api_url: REST API base URL
        access_token: Default access token
        owner: Repository owner for the default tenant
        repo: Repository name for the default tenant
        content_dir: Directory holding NNNNN.md entry files
        webhook_secret: Shared secret for X-Hub-Signature-256 (None disables checks)
        direct_update: Write through to GitHub before updating the fast store
        timeout_seconds: Per-request timeout
        tenants: Additional tenants
    """

    api_url: str = "https://api.github.com"
    access_token: str | None = None
    owner: str = "making"
    repo: str = "blog.ik.am"
    content_dir: str = "content"
    webhook_secret: str | None = None
    direct_update: bool = False
    timeout_seconds: float = 10.0
    tenants: tuple[TenantConfig, ...] = ()

    @classmethod
    def from_env(cls) -> GitHubConfig:
        """Load configuration from environment variables."""
        tenant_ids = [t.strip() for t in os.getenv("GITHUB_TENANTS", "").split(",") if t.strip()]
        return cls(
            api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
            access_token=os.getenv("GITHUB_ACCESS_TOKEN"),
            owner=os.getenv("GITHUB_OWNER", "making"),
            repo=os.getenv("GITHUB_REPO", "blog.ik.am"),
            content_dir=os.getenv("GITHUB_CONTENT_DIR", "content"),
            webhook_secret=os.getenv("GITHUB_WEBHOOK_SECRET"),
            direct_update=_env_bool("GITHUB_DIRECT_UPDATE", "false"),
            timeout_seconds=float(os.getenv("GITHUB_TIMEOUT_SECONDS", "10")),
            tenants=tuple(TenantConfig.from_env(t) for t in tenant_ids),
        )


@dataclass(frozen=True)
class StorageConfig:
    """Local fast-store configuration.

    Attributes:
        data_dir: Directory for the SQLite database
        db_name: SQLite database file name
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
        cache_size_pages: SQLite cache size in pages (negative = KB)
    """

    data_dir: str = "/var/lib/entryapi"
    db_name: str = "entries.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000
    cache_size_pages: int = -64000  # 64MB

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        return cls(
            data_dir=os.getenv("DATA_DIR", "/var/lib/entryapi"),
            db_name=os.getenv("ENTRY_DB_NAME", "entries.db"),
            wal_mode=_env_bool("SQLITE_WAL_MODE", "true"),
            busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
            cache_size_pages=int(os.getenv("SQLITE_CACHE_SIZE", "-64000")),
        )


@dataclass(frozen=True)
class HttpConfig:
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(cls) -> HttpConfig:
        """Load configuration from environment variables."""
        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8080")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class ServerConfig:
    """Complete server configuration.

    This aggregates all configuration sections and provides validation.

    Attributes:
        github: Content host configuration
        storage: Fast-store configuration
        http: HTTP server configuration
        observability: Logging configuration
    """

    github: GitHubConfig = field(default_factory=GitHubConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Load complete configuration from environment variables.

        Returns:
            ServerConfig with all sections populated from environment.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        config = cls(
            github=GitHubConfig.from_env(),
            storage=StorageConfig.from_env(),
            http=HttpConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.github.owner or not self.github.repo:
            raise ValueError("GITHUB_OWNER and GITHUB_REPO are required")

        for tenant in self.github.tenants:
            if not tenant.owner or not tenant.repo:
                prefix = f"GITHUB_TENANT_{tenant.tenant_id.upper()}_"
                raise ValueError(f"{prefix}OWNER and {prefix}REPO are required")

        if self.github.direct_update and not self.github.access_token:
            raise ValueError("GITHUB_ACCESS_TOKEN is required when GITHUB_DIRECT_UPDATE=true")

        if not os.path.exists(self.storage.data_dir):
            logger.warning(
                f"Data directory does not exist: {self.storage.data_dir}. "
                "It will be created on first write."
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Server configuration loaded",
            extra={
                "github_api_url": self.github.api_url,
                "github_repository": f"{self.github.owner}/{self.github.repo}",
                "tenants": [t.tenant_id for t in self.github.tenants],
                "direct_update": self.github.direct_update,
                "webhook_signature_check": self.github.webhook_secret is not None,
                "data_dir": self.storage.data_dir,
                "http_bind": f"{self.http.host}:{self.http.port}",
                "log_level": self.observability.log_level,
            },
        )
