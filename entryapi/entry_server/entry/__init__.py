"""
Entry domain module.

This module provides:
- Immutable value types for entries and their identity
- Search criteria and cursor pagination types
- The markdown/front matter codec used for content files

Invariants:
    - Entries are immutable; mutations produce new instances
    - Tenant ids are normalized to DEFAULT_TENANT_ID when absent
"""

from .markdown import parse_markdown, to_markdown
from .model import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_TENANT_ID,
    Author,
    Category,
    CursorPage,
    CursorPageRequest,
    Entry,
    EntryKey,
    FrontMatter,
    Navigation,
    SearchCriteria,
    Tag,
    TagAndCount,
    format_id,
    is_default_tenant,
    normalize_tenant_id,
    parse_id,
)

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_TENANT_ID",
    "Author",
    "Category",
    "CursorPage",
    "CursorPageRequest",
    "Entry",
    "EntryKey",
    "FrontMatter",
    "Navigation",
    "SearchCriteria",
    "Tag",
    "TagAndCount",
    "format_id",
    "is_default_tenant",
    "normalize_tenant_id",
    "parse_id",
    "parse_markdown",
    "to_markdown",
]
