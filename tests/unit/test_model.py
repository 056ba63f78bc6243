"""
Unit tests for the entry domain model.

Tests cover:
- EntryKey normalization, string form and parsing
- Id formatting and file-name parsing
- Tag identity
- Epoch conversions and cursor pages
"""

from datetime import datetime, timezone

import pytest

from entryapi.entry_server.entry import (
    Author,
    CursorPage,
    Entry,
    EntryKey,
    FrontMatter,
    SearchCriteria,
    Tag,
)
from entryapi.entry_server.entry.model import (
    DEFAULT_TENANT_ID,
    format_id,
    from_epoch_millis,
    parse_datetime,
    parse_id,
    to_epoch_millis,
)


class TestEntryKey:
    """Tests for EntryKey."""

    def test_default_tenant_normalized(self):
        """Missing tenant ids collapse onto the default tenant."""
        assert EntryKey(1).tenant_id == DEFAULT_TENANT_ID
        assert EntryKey(1, None) == EntryKey(1, "")
        assert EntryKey(1, None) == EntryKey(1, DEFAULT_TENANT_ID)

    def test_string_form(self):
        """Default-tenant keys omit the tenant suffix."""
        assert str(EntryKey(1)) == "00001"
        assert str(EntryKey(42, "tenant1")) == "00042|tenant1"

    def test_parse(self):
        """parse() reverses str()."""
        assert EntryKey.parse("00001") == EntryKey(1)
        assert EntryKey.parse("00042|tenant1") == EntryKey(42, "tenant1")

    def test_tenants_distinguish_keys(self):
        """Same id in different tenants are different entries."""
        assert EntryKey(1, "a") != EntryKey(1, "b")

    def test_to_dict(self):
        """JSON form names both parts."""
        assert EntryKey(7, "t").to_dict() == {"entryId": 7, "tenantId": "t"}


class TestIds:
    """Tests for id helpers."""

    def test_format_id(self):
        """Ids are zero-padded to five digits."""
        assert format_id(1) == "00001"
        assert format_id(12345) == "12345"

    def test_parse_id(self):
        """Ids come from the file stem."""
        assert parse_id("00042.md") == 42
        assert parse_id("content/00100.md") == 100

    def test_parse_id_rejects_non_numeric(self):
        """Non-entry files are rejected."""
        with pytest.raises(ValueError):
            parse_id("README.md")


class TestTag:
    """Tests for Tag identity."""

    def test_equality_ignores_version(self):
        """Tags are identified by name."""
        assert Tag("java", "21") == Tag("java")
        assert len({Tag("java", "21"), Tag("java", "17")}) == 1

    def test_different_names(self):
        """Different names are different tags."""
        assert Tag("java") != Tag("kotlin")


class TestDates:
    """Tests for date conversions."""

    def test_epoch_round_trip(self):
        """Millisecond precision survives conversion."""
        value = datetime(2025, 6, 27, 15, 55, 20, 123000, tzinfo=timezone.utc)
        assert from_epoch_millis(to_epoch_millis(value)) == value

    def test_unknown_date_is_zero(self):
        """A missing date is stored as 0 and read back as None."""
        assert to_epoch_millis(None) == 0
        assert from_epoch_millis(0) is None

    def test_parse_datetime_z_suffix(self):
        """Z suffix parses as UTC."""
        assert parse_datetime("2025-06-27T15:55:20Z") == datetime(
            2025, 6, 27, 15, 55, 20, tzinfo=timezone.utc
        )


class TestCursorPage:
    """Tests for CursorPage."""

    def _entry(self, entry_id: int, updated: datetime) -> Entry:
        return Entry(EntryKey(entry_id), FrontMatter(title=f"e{entry_id}"), updated=Author("a", updated))

    def test_next_cursor_is_last_updated(self):
        """The cursor is the updated date of the last item."""
        first = datetime(2025, 1, 2, tzinfo=timezone.utc)
        last = datetime(2025, 1, 1, tzinfo=timezone.utc)
        page = CursorPage([self._entry(2, first), self._entry(1, last)], 2, False, True)
        assert page.next_cursor() == last
        assert page.to_dict()["next"] == "2025-01-01T00:00:00Z"

    def test_no_next_on_last_page(self):
        """The last page advertises no cursor."""
        page = CursorPage([self._entry(1, datetime(2025, 1, 1, tzinfo=timezone.utc))], 2, True, False)
        body = page.to_dict()
        assert body["next"] is None
        assert body["hasPrevious"] is True
        assert body["hasNext"] is False

    def test_empty_page(self):
        """An empty page has no cursor."""
        assert CursorPage([], 10, False, False).next_cursor() is None

    def test_undated_last_item_ends_pagination(self):
        """A page ending in an entry with no history advertises no next page."""
        dated = self._entry(2, datetime(2025, 1, 1, tzinfo=timezone.utc))
        undated = Entry(EntryKey(1), FrontMatter(title="e1"), updated=Author.unknown())
        body = CursorPage([dated, undated], 2, False, True).to_dict()
        assert body["hasNext"] is False
        assert body["next"] is None


def test_search_criteria_default():
    """Criteria without filters are the default criteria."""
    assert SearchCriteria().is_default()
    assert not SearchCriteria(tag="java").is_default()
    assert not SearchCriteria(categories=("Dev",)).is_default()
