"""
Entry API Server - Main entry point.

This module starts the server with all components:
- SQLite fast store
- Tenant registry and GitHub clients
- Cache-aside repository, service and webhook synchronizer
- HTTP server

Usage:
    python -m entryapi.entry_server.main

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - The fast store schema exists before the HTTP server accepts requests
    - Graceful shutdown closes the HTTP server before the GitHub clients

How to change safely:
    - Add new components with enable/disable flags
    - Test shutdown sequence thoroughly
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from pathlib import Path

import json_log_formatter

from .api import AppContext, run_http_server
from .config import ServerConfig
from .github import GitHubEntryFetcher
from .repository import EntryRepository
from .service import EntryService
from .store import EntryStore
from .tenants import TenantRegistry
from .webhook import WebhookSynchronizer

logger = logging.getLogger(__name__)


def setup_logging(config: ServerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Server configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


class Server:
    """Entry API server orchestrator.

    Attributes:
        config: Server configuration
        store: SQLite fast store
        tenants: Tenant registry
        service: Entry service
        synchronizer: Webhook synchronizer

    Example:
        >>> server = Server()
        >>> await server.start()
        >>> # Server is running
        >>> await server.stop()
    """

    def __init__(self, config: ServerConfig | None = None) -> None:
        """Initialize the server.

        Args:
            config: Optional server configuration (loaded from env if not provided)
        """
        self.config = config or ServerConfig.from_env()
        self._running = False
        self._shutdown_event = asyncio.Event()

        # Components (initialized in start())
        self.store: EntryStore | None = None
        self.tenants: TenantRegistry | None = None
        self.service: EntryService | None = None
        self.synchronizer: WebhookSynchronizer | None = None

        self._tasks: list[asyncio.Task] = []

    async def start(self) -> None:
        """Start the server and all components."""
        if self._running:
            logger.warning("Server already running")
            return

        logger.info("Starting Entry API server")
        self.config.log_config()

        try:
            data_dir = Path(self.config.storage.data_dir)
            data_dir.mkdir(parents=True, exist_ok=True)

            self.store = EntryStore(
                data_dir=str(data_dir),
                db_name=self.config.storage.db_name,
                wal_mode=self.config.storage.wal_mode,
                busy_timeout_ms=self.config.storage.busy_timeout_ms,
                cache_size_pages=self.config.storage.cache_size_pages,
            )
            await self.store.initialize()

            self.tenants = TenantRegistry.from_config(self.config.github)
            fetcher = GitHubEntryFetcher(self.tenants)
            repository = EntryRepository(
                self.store,
                fetcher,
                self.tenants,
                content_dir=self.config.github.content_dir,
            )
            self.service = EntryService(
                repository,
                self.tenants,
                direct_update=self.config.github.direct_update,
            )
            self.synchronizer = WebhookSynchronizer(
                repository,
                fetcher,
                self.tenants,
                content_dir=self.config.github.content_dir,
            )

            context = AppContext(
                service=self.service,
                synchronizer=self.synchronizer,
                webhook_secret=self.config.github.webhook_secret,
            )
            http_task = asyncio.create_task(run_http_server(context, self.config.http))
            self._tasks.append(http_task)

            self._running = True
            logger.info("Entry API server started successfully")

            # Wait for shutdown signal
            await self._shutdown_event.wait()

        except Exception as e:
            logger.error(f"Server startup failed: {e}", exc_info=True)
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the server gracefully."""
        if not self._running:
            return

        logger.info("Stopping Entry API server")

        for task in self._tasks:
            task.cancel()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self.tenants:
            await self.tenants.close()

        self._running = False
        logger.info("Entry API server stopped")

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()


def main() -> None:
    """Main entry point."""
    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)

    server = Server(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def handle_signal(sig: int) -> None:
        logger.info(f"Received signal {sig}, initiating shutdown")
        server.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        pass
    finally:
        loop.run_until_complete(server.stop())
        loop.close()


if __name__ == "__main__":
    main()
