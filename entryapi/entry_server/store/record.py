"""
Flattened fast-store representation of an Entry.

The fast store cannot hold nested values, so front matter and authorship are
flattened into scalar columns and JSON arrays. The flattened shape never
leaves this module: callers convert with ``EntryRecord.from_entry`` and
``EntryRecord.to_entry``.

Invariants:
    - ``tags`` holds every tag name, in front-matter order, without duplicates
    - ``tag_with_versions`` holds ``name|version`` only for versioned tags
    - A version may itself contain ``|``; the name ends at the first one
    - ``joined_categories`` is ``categories`` joined with ``|``
    - ``created_at``/``updated_at`` are epoch milliseconds, 0 when unknown

How to change safely:
    - COLUMNS names are the persisted schema; renaming one is a migration
    - Keep from_entry/to_entry lossless for every field they carry
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from typing import Any

from ..entry.model import (
    Author,
    Category,
    Entry,
    EntryKey,
    FrontMatter,
    Tag,
    from_epoch_millis,
    to_epoch_millis,
)

TAG_VERSION_DELIMITER = "|"
CATEGORY_DELIMITER = "|"

# Persisted column order
COLUMNS = (
    "entryKey",
    "title",
    "summary",
    "categories",
    "joinedCategories",
    "tags",
    "tagWithVersions",
    "content",
    "createdBy",
    "createdAt",
    "updatedBy",
    "updatedAt",
    "tenantId",
)


@dataclass(frozen=True)
class EntryRecord:
    """One row of the ``entries`` table.

    Attributes:
        entry_key: Composite key string (``str(EntryKey)``)
        title: Front matter title
        summary: Front matter summary
        categories: Ordered category path
        joined_categories: Category path joined with ``|``
        tags: Tag names
        tag_with_versions: ``name|version`` for versioned tags
        content: Markdown body
        created_by: Name of the first author
        created_at: First revision time (epoch ms, 0 when unknown)
        updated_by: Name of the latest author
        updated_at: Latest revision time (epoch ms, 0 when unknown)
        tenant_id: Normalized tenant id
    """

    entry_key: str
    title: str
    summary: str
    categories: list[str] = field(default_factory=list)
    joined_categories: str = ""
    tags: list[str] = field(default_factory=list)
    tag_with_versions: list[str] = field(default_factory=list)
    content: str = ""
    created_by: str = ""
    created_at: int = 0
    updated_by: str = ""
    updated_at: int = 0
    tenant_id: str = ""

    @classmethod
    def from_entry(cls, entry: Entry) -> EntryRecord:
        front_matter = entry.front_matter
        categories = [c.name for c in front_matter.categories]
        tags: list[str] = []
        tag_with_versions: list[str] = []
        for tag in front_matter.tags:
            if tag.name in tags:
                continue
            tags.append(tag.name)
            if tag.version is not None:
                tag_with_versions.append(f"{tag.name}{TAG_VERSION_DELIMITER}{tag.version}")
        return cls(
            entry_key=str(entry.entry_key),
            title=front_matter.title,
            summary=front_matter.summary,
            categories=categories,
            joined_categories=CATEGORY_DELIMITER.join(categories),
            tags=tags,
            tag_with_versions=tag_with_versions,
            content=entry.content,
            created_by=entry.created.name,
            created_at=to_epoch_millis(entry.created.date),
            updated_by=entry.updated.name,
            updated_at=to_epoch_millis(entry.updated.date),
            tenant_id=entry.entry_key.tenant_id,
        )

    def _versions(self) -> dict[str, str]:
        versions: dict[str, str] = {}
        for value in self.tag_with_versions:
            name, delimiter, version = value.partition(TAG_VERSION_DELIMITER)
            if not delimiter:
                raise ValueError(f"Invalid tagWithVersions member for {self.entry_key}: {value!r}")
            versions[name] = version
        return versions

    def to_entry(self) -> Entry:
        """Rebuild the domain Entry.

        Raises:
            ValueError: If a ``tag_with_versions`` member has no ``|``
        """
        versions = self._versions()
        front_matter = FrontMatter(
            title=self.title,
            summary=self.summary,
            categories=tuple(Category(c) for c in self.categories),
            tags=tuple(Tag(name, versions.get(name)) for name in self.tags),
        )
        return Entry(
            entry_key=EntryKey.parse(self.entry_key),
            front_matter=front_matter,
            content=self.content,
            created=Author(self.created_by, from_epoch_millis(self.created_at)),
            updated=Author(self.updated_by, from_epoch_millis(self.updated_at)),
        )

    def to_row(self) -> tuple[Any, ...]:
        """Column values in COLUMNS order."""
        return (
            self.entry_key,
            self.title,
            self.summary,
            json.dumps(self.categories, ensure_ascii=False),
            self.joined_categories,
            json.dumps(self.tags, ensure_ascii=False),
            json.dumps(self.tag_with_versions, ensure_ascii=False),
            self.content,
            self.created_by,
            self.created_at,
            self.updated_by,
            self.updated_at,
            self.tenant_id,
        )

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> EntryRecord:
        return cls(
            entry_key=row["entryKey"],
            title=row["title"] or "",
            summary=row["summary"] or "",
            categories=json.loads(row["categories"] or "[]"),
            joined_categories=row["joinedCategories"] or "",
            tags=json.loads(row["tags"] or "[]"),
            tag_with_versions=json.loads(row["tagWithVersions"] or "[]"),
            content=row["content"] or "",
            created_by=row["createdBy"] or "",
            created_at=row["createdAt"] or 0,
            updated_by=row["updatedBy"] or "",
            updated_at=row["updatedAt"] or 0,
            tenant_id=row["tenantId"],
        )
