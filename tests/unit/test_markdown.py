"""
Unit tests for the markdown codec.

Tests cover:
- Front matter parsing (plain and versioned tags, category paths)
- Files without or with broken front matter
- Rendering back to markdown
"""

from datetime import datetime, timezone

from entryapi.entry_server.entry import (
    Author,
    Category,
    EntryKey,
    Tag,
    parse_markdown,
    to_markdown,
)

CREATED = Author("alice", datetime(2024, 1, 1, tzinfo=timezone.utc))
UPDATED = Author("bob", datetime(2025, 6, 27, 15, 55, 20, tzinfo=timezone.utc))

SAMPLE = """---
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

# Hello

Body text.
"""


class TestParseMarkdown:
    """Tests for parse_markdown."""

    def test_front_matter(self):
        """Title, summary, tags and categories come from the header."""
        entry = parse_markdown(EntryKey(1), SAMPLE, CREATED, UPDATED)

        assert entry.front_matter.title == "Getting Started"
        assert entry.front_matter.summary == "A short introduction"
        assert entry.front_matter.categories == (Category("Programming"), Category("Java"))
        assert [(t.name, t.version) for t in entry.front_matter.tags] == [
            ("spring", None),
            ("java", "21"),
        ]

    def test_body_and_authors(self):
        """The body follows the header; authors are the ones passed in."""
        entry = parse_markdown(EntryKey(1, "t1"), SAMPLE, CREATED, UPDATED)

        assert entry.content == "# Hello\n\nBody text.\n"
        assert entry.created == CREATED
        assert entry.updated == UPDATED
        assert entry.entry_key == EntryKey(1, "t1")

    def test_duplicate_tags_collapsed(self):
        """A tag listed twice appears once."""
        markdown = "---\ntitle: t\ntags: [java, java, kotlin]\n---\nbody"
        entry = parse_markdown(EntryKey(1), markdown, CREATED, UPDATED)
        assert entry.front_matter.tags == (Tag("java"), Tag("kotlin"))

    def test_no_front_matter(self):
        """A plain file is all body."""
        entry = parse_markdown(EntryKey(1), "# Just text\n", CREATED, UPDATED)
        assert entry.front_matter.title == ""
        assert entry.content == "# Just text\n"

    def test_unterminated_front_matter_is_body(self):
        """Without a closing delimiter the header is body text."""
        markdown = "---\ntitle: t\n# Body"
        entry = parse_markdown(EntryKey(1), markdown, CREATED, UPDATED)
        assert entry.front_matter.title == ""
        assert entry.content == markdown

    def test_unparsable_front_matter_ignored(self):
        """Broken YAML leaves an empty front matter."""
        markdown = "---\ntitle: [unclosed\n---\nbody"
        entry = parse_markdown(EntryKey(1), markdown, CREATED, UPDATED)
        assert entry.front_matter.title == ""
        assert entry.content == "body"


class TestToMarkdown:
    """Tests for to_markdown."""

    def test_round_trip(self):
        """Rendered markdown parses back to the same front matter and body."""
        entry = parse_markdown(EntryKey(1), SAMPLE, CREATED, UPDATED)
        rendered = to_markdown(entry)
        reparsed = parse_markdown(EntryKey(1), rendered, CREATED, UPDATED)

        assert reparsed.front_matter == entry.front_matter
        assert [t.version for t in reparsed.front_matter.tags] == [None, "21"]
        assert reparsed.content == entry.content

    def test_header_layout(self):
        """The header is delimited and the summary is omitted when empty."""
        entry = parse_markdown(EntryKey(1), "---\ntitle: Hi\n---\nbody", CREATED, UPDATED)
        rendered = to_markdown(entry)

        assert rendered.startswith("---\ntitle: Hi\n")
        assert "summary" not in rendered
        assert rendered.endswith("---\n\nbody")
