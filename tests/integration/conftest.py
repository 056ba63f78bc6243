"""
Integration test fixtures for the Entry API.

Provides a temporary SQLite fast store and the in-memory GitHub from
github_fake wired into a tenant registry.
"""

import tempfile

import httpx
import pytest

from entryapi.entry_server.github import GitHubClient, GitHubEntryFetcher
from entryapi.entry_server.repository import EntryRepository
from entryapi.entry_server.store import EntryStore
from entryapi.entry_server.tenants import TenantCoordinates, TenantRegistry
from tests.integration.github_fake import OWNER, REPO, FakeGitHub


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def store(data_dir):
    """Fast store (call initialize() in the test)."""
    return EntryStore(data_dir, wal_mode=False)


@pytest.fixture
def github():
    """In-memory GitHub."""
    return FakeGitHub()


@pytest.fixture
def tenants(github):
    """Default tenant plus tenant1, both on the fake GitHub."""
    client = GitHubClient(access_token="test-token", transport=httpx.MockTransport(github.handler))
    return TenantRegistry(
        [
            TenantCoordinates("_", OWNER, REPO, client),
            TenantCoordinates("tenant1", "tenant1-org", "tenant1-blog", client),
        ]
    )


@pytest.fixture
def fetcher(tenants):
    """GitHub-backed fetcher."""
    return GitHubEntryFetcher(tenants)


@pytest.fixture
def repository(store, fetcher, tenants):
    """Cache-aside repository over the temporary store."""
    return EntryRepository(store, fetcher, tenants)
