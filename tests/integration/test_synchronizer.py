"""
Integration tests for the webhook synchronizer.

Tests cover:
- Added / modified files fetched and stored
- Removed files deleted from the fast store
- Non-entry paths ignored
- Tenant resolution from the repository name
- Partial failure reporting
"""

import pytest

from entryapi.entry_server.entry import EntryKey
from entryapi.entry_server.errors import WebhookValidationError
from entryapi.entry_server.webhook import Operation, WebhookPayload, WebhookSynchronizer
from tests.integration.github_fake import OWNER, REPO, commit, markdown


def _payload(repository: str = f"{OWNER}/{REPO}", **changes) -> WebhookPayload:
    return WebhookPayload.from_dict({"repository": {"full_name": repository}, "commits": [changes]})


@pytest.fixture
def synchronizer(repository, fetcher, tenants):
    return WebhookSynchronizer(repository, fetcher, tenants)


class TestWebhookSynchronizer:
    """Tests for WebhookSynchronizer."""

    @pytest.mark.asyncio
    async def test_added_modified_removed(self, store, repository, synchronizer, github):
        """Each operation is applied to the fast store."""
        await store.initialize()
        github.add_file(
            "content/00001.md", markdown("One"), history=[commit("alice", "2025-01-01T00:00:00Z")]
        )
        github.add_file("content/00002.md", markdown("Two v1"))
        github.add_file("content/00003.md", markdown("Three"))
        await repository.save((await repository.find_by_id(EntryKey(2))).with_summary("stale"))
        await repository.find_by_id(EntryKey(3))
        github.add_file("content/00002.md", markdown("Two v2"))

        results = await synchronizer.synchronize(
            _payload(
                added=["content/00001.md"],
                modified=["content/00002.md"],
                removed=["content/00003.md"],
            )
        )

        assert [r.to_dict() for r in results] == [
            {"added": {"entryId": 1, "tenantId": "_"}},
            {"modified": {"entryId": 2, "tenantId": "_"}},
            {"removed": {"entryId": 3, "tenantId": "_"}},
        ]
        assert (await repository.find_by_id(EntryKey(1))).front_matter.title == "One"
        modified = await store.get("00002")
        assert modified.title == "Two v2"
        assert modified.summary == ""
        assert not await repository.exists(EntryKey(3))

    @pytest.mark.asyncio
    async def test_non_entry_paths_ignored(self, store, synchronizer, github):
        """Only content/NNNNN.md paths are processed."""
        await store.initialize()

        results = await synchronizer.synchronize(
            _payload(added=["README.md", "content/notes.md", "content/00001.txt"])
        )

        assert results == []
        assert github.requests == []

    @pytest.mark.asyncio
    async def test_tenant_from_repository(self, store, synchronizer, github):
        """A tenant's repository maps to that tenant's keys."""
        await store.initialize()
        github.add_file(
            "content/00005.md", markdown("Tenant"), owner="tenant1-org", repo="tenant1-blog"
        )

        results = await synchronizer.synchronize(
            _payload("Tenant1-Org/Tenant1-Blog", added=["content/00005.md"])
        )

        assert results[0].entry_key == EntryKey(5, "tenant1")
        assert await store.exists("00005|tenant1")

    @pytest.mark.asyncio
    async def test_tenant_must_match_repository(self, store, synchronizer):
        """A tenant named by the caller must own the repository."""
        await store.initialize()

        with pytest.raises(WebhookValidationError):
            await synchronizer.synchronize(
                _payload(added=["content/00001.md"]), tenant_id="tenant1"
            )

    @pytest.mark.asyncio
    async def test_unknown_repository(self, store, synchronizer):
        """Pushes from unconfigured repositories are rejected."""
        await store.initialize()

        with pytest.raises(WebhookValidationError):
            await synchronizer.synchronize(_payload("someone/else", added=["content/00001.md"]))

    @pytest.mark.asyncio
    async def test_partial_failure(self, store, repository, synchronizer, github):
        """A failing path is reported and the rest still runs."""
        await store.initialize()
        github.add_file("content/00001.md", markdown("One"))
        github.statuses[f"{OWNER}/{REPO}/content/00002.md"] = 500
        github.add_file("content/00004.md", markdown("Four"))

        results = await synchronizer.synchronize(
            _payload(added=["content/00001.md", "content/00002.md", "content/00003.md", "content/00004.md"])
        )

        assert [(r.entry_key.entry_id, r.status) for r in results] == [
            (1, "applied"),
            (2, "failed"),
            (3, "not_found"),
            (4, "applied"),
        ]
        assert results[1].operation is Operation.ADDED
        assert "500" in results[1].error
        assert results[1].to_dict()["added"]["status"] == "failed"
        assert await repository.exists(EntryKey(1))
        assert not await repository.exists(EntryKey(2))
        assert await repository.exists(EntryKey(4))

    @pytest.mark.asyncio
    async def test_redelivery_is_harmless(self, store, repository, synchronizer, github):
        """Applying the same push twice gives the same store state."""
        await store.initialize()
        github.add_file("content/00001.md", markdown("One"))
        payload = _payload(added=["content/00001.md"], removed=["content/00009.md"])

        await synchronizer.synchronize(payload)
        await synchronizer.synchronize(payload)

        assert await store.count() == 1
        assert (await repository.find_by_id(EntryKey(1))).front_matter.title == "One"
