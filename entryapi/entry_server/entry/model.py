"""
Domain model for blog entries.

All types are immutable value objects. Changes produce new instances via
the copy helpers (``with_summary``, ``without_content``) or
``dataclasses.replace``.

Invariants:
    - EntryKey tenant ids are normalized: None/"" becomes DEFAULT_TENANT_ID
    - Two EntryKeys are equal iff entry_id and normalized tenant_id match
    - Tag identity is its name; version is metadata only
    - A FrontMatter category tuple is one ordered path in a hierarchy
    - Author dates are timezone-aware UTC datetimes or None

How to change safely:
    - EntryKey string form is persisted as the fast-store primary key;
      changing ID_WIDTH or KEY_DELIMITER breaks existing stores
    - Keep to_dict() field names stable, HTTP clients depend on them
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePosixPath
from typing import Any

DEFAULT_TENANT_ID = "_"
KEY_DELIMITER = "|"
ID_WIDTH = 5
DEFAULT_PAGE_SIZE = 30
UNKNOWN_AUTHOR_NAME = "unknown"


def normalize_tenant_id(tenant_id: str | None) -> str:
    """Map a missing tenant id onto the default-tenant sentinel."""
    return tenant_id if tenant_id else DEFAULT_TENANT_ID


def is_default_tenant(tenant_id: str | None) -> bool:
    return normalize_tenant_id(tenant_id) == DEFAULT_TENANT_ID


def format_id(entry_id: int) -> str:
    """Zero-pad an entry id, e.g. 1 -> "00001"."""
    return str(entry_id).zfill(ID_WIDTH)


def parse_id(file_name: str) -> int:
    """Extract the entry id from a content file name, e.g. "00042.md" -> 42.

    Raises:
        ValueError: If the file stem is not a decimal number
    """
    stem = PurePosixPath(file_name).stem
    if not stem.isdigit():
        raise ValueError(f"Not an entry file name: {file_name}")
    return int(stem)


def to_epoch_millis(value: datetime | None) -> int:
    if value is None:
        return 0
    return round(value.timestamp() * 1000)


def from_epoch_millis(value: int | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp such as "2025-06-27T15:55:20Z"."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class EntryKey:
    """Identity of an entry within a tenant.

    Attributes:
        entry_id: Numeric entry id
        tenant_id: Tenant identifier (DEFAULT_TENANT_ID when absent)

    Example:
        >>> str(EntryKey(1))
        '00001'
        >>> str(EntryKey(1, "tenant1"))
        '00001|tenant1'
    """

    entry_id: int
    tenant_id: str | None = DEFAULT_TENANT_ID

    def __post_init__(self) -> None:
        object.__setattr__(self, "tenant_id", normalize_tenant_id(self.tenant_id))

    @property
    def is_default_tenant(self) -> bool:
        return self.tenant_id == DEFAULT_TENANT_ID

    @classmethod
    def parse(cls, value: str) -> EntryKey:
        """Parse the composite string form produced by ``str(key)``."""
        entry_id, _, tenant_id = value.partition(KEY_DELIMITER)
        return cls(int(entry_id), tenant_id or None)

    def __str__(self) -> str:
        if self.is_default_tenant:
            return format_id(self.entry_id)
        return f"{format_id(self.entry_id)}{KEY_DELIMITER}{self.tenant_id}"

    def to_dict(self) -> dict[str, Any]:
        return {"entryId": self.entry_id, "tenantId": self.tenant_id}


@dataclass(frozen=True)
class Category:
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name}


@dataclass(frozen=True, eq=False)
class Tag:
    """A tag, optionally pinned to a version (e.g. "java" / "21").

    Equality and hashing use the name only.
    """

    name: str
    version: str | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tag):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version}


@dataclass(frozen=True)
class Author:
    """Who touched an entry and when.

    Attributes:
        name: Author name
        date: When the change happened (None when unknown)
    """

    name: str
    date: datetime | None = None

    @classmethod
    def unknown(cls) -> Author:
        return cls(UNKNOWN_AUTHOR_NAME)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "date": format_datetime(self.date)}


@dataclass(frozen=True)
class FrontMatter:
    title: str = ""
    summary: str = ""
    categories: tuple[Category, ...] = ()
    tags: tuple[Tag, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "summary": self.summary,
            "categories": [c.to_dict() for c in self.categories],
            "tags": [t.to_dict() for t in self.tags],
        }


@dataclass(frozen=True)
class Entry:
    """A blog entry.

    Attributes:
        entry_key: Identity of the entry
        front_matter: Title, summary, categories and tags
        content: Markdown body (empty in list views)
        created: Author and date of the first revision
        updated: Author and date of the latest revision
    """

    entry_key: EntryKey
    front_matter: FrontMatter
    content: str = ""
    created: Author = field(default_factory=Author.unknown)
    updated: Author = field(default_factory=Author.unknown)

    def with_summary(self, summary: str) -> Entry:
        return replace(self, front_matter=replace(self.front_matter, summary=summary))

    def without_content(self) -> Entry:
        return replace(self, content="")

    def to_cursor(self) -> datetime | None:
        return self.updated.date

    def to_dict(self) -> dict[str, Any]:
        return {
            "entryId": self.entry_key.entry_id,
            "tenantId": self.entry_key.tenant_id,
            "frontMatter": self.front_matter.to_dict(),
            "content": self.content,
            "created": self.created.to_dict(),
            "updated": self.updated.to_dict(),
        }


@dataclass(frozen=True)
class TagAndCount:
    tag: Tag
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.tag.name, "count": self.count}


@dataclass(frozen=True)
class SearchCriteria:
    """Filters for list queries.

    Attributes:
        query: Free-text query (see entry_server.query)
        tag: Exact tag name
        categories: Category path prefix
    """

    query: str | None = None
    tag: str | None = None
    categories: tuple[str, ...] | None = None

    def is_default(self) -> bool:
        return not self.query and not self.tag and not self.categories


class Navigation(Enum):
    NEXT = "next"


@dataclass(frozen=True)
class CursorPageRequest:
    """Request for one page ordered by ``updated`` descending.

    Attributes:
        cursor: ``updated`` date of the last item on the previous page
        page_size: Maximum number of entries on the page
        navigation: Direction (only NEXT is supported)
    """

    cursor: datetime | None = None
    page_size: int = DEFAULT_PAGE_SIZE
    navigation: Navigation = Navigation.NEXT


@dataclass(frozen=True)
class CursorPage:
    content: list[Entry]
    page_size: int
    has_previous: bool
    has_next: bool

    def next_cursor(self) -> datetime | None:
        """Cursor for the following page (``updated`` of the last item).

        Undated entries sort last and cannot serve as a cursor, so a page
        ending in one has no following page.
        """
        if not self.content:
            return None
        return self.content[-1].to_cursor()

    def to_dict(self) -> dict[str, Any]:
        cursor = self.next_cursor() if self.has_next else None
        return {
            "content": [e.to_dict() for e in self.content],
            "size": self.page_size,
            "hasPrevious": self.has_previous,
            "hasNext": cursor is not None,
            "next": format_datetime(cursor),
        }
