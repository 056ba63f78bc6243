"""
Markdown codec for entries stored in the content repository.

A content file is a YAML front matter block followed by the markdown body:

    ---
    title: Getting Started
    summary: A short introduction
    tags:
    - spring
    - name: java
      version: '21'
    categories:
    - Programming
    - Java
    ---

    # Body

Authorship is never read from the front matter. Created/updated authors come
from the content host's commit history and are passed in by the caller.
"""

from __future__ import annotations

import logging
from typing import Any

import yaml

from .model import Author, Category, Entry, EntryKey, FrontMatter, Tag

logger = logging.getLogger(__name__)

FRONT_MATTER_DELIMITER = "---"


def _split_front_matter(markdown: str) -> tuple[dict[str, Any], str]:
    lines = markdown.splitlines(keepends=True)
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        return {}, markdown

    for i in range(1, len(lines)):
        if lines[i].strip() == FRONT_MATTER_DELIMITER:
            header = "".join(lines[1:i])
            body = "".join(lines[i + 1 :]).lstrip("\r\n")
            try:
                data = yaml.safe_load(header) or {}
            except yaml.YAMLError as e:
                logger.warning(f"Ignoring unparsable front matter: {e}")
                data = {}
            if not isinstance(data, dict):
                data = {}
            return data, body

    # Unterminated front matter is treated as body text
    return {}, markdown


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _parse_tag(value: Any) -> Tag:
    if isinstance(value, dict):
        version = value.get("version")
        return Tag(str(value.get("name", "")), str(version) if version is not None else None)
    return Tag(str(value))


def parse_front_matter(data: dict[str, Any]) -> FrontMatter:
    tags: list[Tag] = []
    for value in _as_list(data.get("tags")):
        tag = _parse_tag(value)
        if tag.name and tag not in tags:
            tags.append(tag)
    return FrontMatter(
        title=str(data.get("title") or ""),
        summary=str(data.get("summary") or ""),
        categories=tuple(Category(str(c)) for c in _as_list(data.get("categories"))),
        tags=tuple(tags),
    )


def parse_markdown(
    entry_key: EntryKey,
    markdown: str,
    created: Author,
    updated: Author,
) -> Entry:
    """Build an Entry from a content file.

    Args:
        entry_key: Key of the entry being parsed
        markdown: Raw file text
        created: Author of the first revision
        updated: Author of the latest revision

    Returns:
        Parsed Entry
    """
    data, body = _split_front_matter(markdown)
    return Entry(
        entry_key=entry_key,
        front_matter=parse_front_matter(data),
        content=body,
        created=created,
        updated=updated,
    )


def to_markdown(entry: Entry) -> str:
    """Render an Entry back into its content-file form."""
    front_matter = entry.front_matter
    data: dict[str, Any] = {"title": front_matter.title}
    if front_matter.summary:
        data["summary"] = front_matter.summary
    data["tags"] = [
        {"name": t.name, "version": t.version} if t.version is not None else t.name
        for t in front_matter.tags
    ]
    data["categories"] = [c.name for c in front_matter.categories]
    header = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"{FRONT_MATTER_DELIMITER}\n{header}{FRONT_MATTER_DELIMITER}\n\n{entry.content}"
