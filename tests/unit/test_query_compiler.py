"""
Unit tests for query compilation.

Tests cover:
- Free-text queries to LIKE fragments
- Negation, grouping and OR parenthesization
- Placeholder numbering from an offset
- Tag and category-path fragments
- Terms without executable semantics
"""

import pytest

from entryapi.entry_server.query import (
    AndNode,
    CompiledQuery,
    NotNode,
    RootNode,
    TokenNode,
    compile_categories,
    compile_query,
    compile_tag,
)


class TestCompileQuery:
    """Tests for compile_query."""

    def test_single_token(self):
        """A token becomes a substring match."""
        compiled = compile_query("hello")
        assert compiled.fragment == "lower(content) LIKE ?1"
        assert compiled.params == ["%hello%"]

    def test_negation(self):
        """-word compiles to NOT (...) with its own placeholder."""
        compiled = compile_query("hello -world")
        assert compiled.fragment == "lower(content) LIKE ?1 AND NOT (lower(content) LIKE ?2)"
        assert compiled.params == ["%hello%", "%world%"]

    def test_negation_only(self):
        """A lone negated term is not wrapped in anything else."""
        compiled = compile_query("-hello")
        assert compiled.fragment == "NOT (lower(content) LIKE ?1)"
        assert compiled.params == ["%hello%"]

    def test_nested_or_is_parenthesized(self):
        """An OR group under the root keeps its parentheses."""
        compiled = compile_query("hello (world or java)")
        assert compiled.fragment == (
            "lower(content) LIKE ?1 AND (lower(content) LIKE ?2 OR lower(content) LIKE ?3)"
        )
        assert compiled.params == ["%hello%", "%world%", "%java%"]

    def test_top_level_or_has_no_parentheses(self):
        """The outermost node is never parenthesized."""
        compiled = compile_query("hello or world")
        assert compiled.fragment == "lower(content) LIKE ?1 OR lower(content) LIKE ?2"

    def test_negated_group(self):
        """NOT over a group keeps the group's own parentheses."""
        compiled = compile_query("-(a OR b)")
        assert compiled.fragment == "NOT ((lower(content) LIKE ?1 OR lower(content) LIKE ?2))"

    def test_phrase(self):
        """A phrase matches as one substring."""
        compiled = compile_query('"Spring Boot"')
        assert compiled.fragment == "lower(content) LIKE ?1"
        assert compiled.params == ["%spring boot%"]

    def test_params_are_lower_cased(self):
        """Matching is case-insensitive on both sides."""
        assert compile_query("HeLLo").params == ["%hello%"]

    def test_wildcards(self):
        """* and ? map to SQL % and _ without extra wrapping."""
        compiled = compile_query("spr*ng j?va")
        assert compiled.fragment == "lower(content) LIKE ?1 AND lower(content) LIKE ?2"
        assert compiled.params == ["spr%ng", "j_va"]

    def test_index_offset(self):
        """Numbering starts at the requested placeholder."""
        compiled = compile_query("a b", index=4)
        assert compiled.fragment == "lower(content) LIKE ?4 AND lower(content) LIKE ?5"

    def test_field_fuzzy_range_ignored(self):
        """Terms without executable semantics are dropped."""
        compiled = compile_query("hello title:spring java~1 [a TO b]")
        assert compiled.fragment == "lower(content) LIKE ?1"
        assert compiled.params == ["%hello%"]

    def test_numbering_skips_dropped_terms(self):
        """Dropped terms do not consume placeholders."""
        compiled = compile_query("title:x hello world")
        assert compiled.fragment == "lower(content) LIKE ?1 AND lower(content) LIKE ?2"

    def test_empty_query(self):
        """Blank input compiles to nothing."""
        compiled = compile_query("")
        assert compiled.is_empty
        assert compiled.params == []

    def test_negated_empty_group(self):
        """Negating something empty produces no fragment."""
        assert compile_query("-(title:x)").is_empty

    def test_prebuilt_tree(self):
        """An AST can be compiled without parsing."""
        root = RootNode((AndNode((TokenNode("a"), NotNode(TokenNode("b")))),))
        compiled = compile_query(root)
        assert compiled == CompiledQuery(
            "(lower(content) LIKE ?1 AND NOT (lower(content) LIKE ?2))",
            ["%a%", "%b%"],
        )

    def test_unknown_node_rejected(self):
        """Anything outside the node set is a programming error."""
        with pytest.raises(TypeError):
            compile_query(RootNode(("not a node",)))


class TestCriteriaFragments:
    """Tests for tag and category fragments."""

    def test_tag(self):
        """Tags match exact array members."""
        compiled = compile_tag("Java", 4)
        assert compiled.fragment == "?4 IN (SELECT value FROM json_each(tags))"
        assert compiled.params == ["Java"]

    def test_categories_prefix(self):
        """Each requested category is pinned to its position."""
        compiled = compile_categories(["Dev", "Java"], 5)
        assert compiled.fragment == (
            "json_array_length(categories) >= 2 "
            "AND (json_extract(categories, '$[0]') = ?5 AND json_extract(categories, '$[1]') = ?6)"
        )
        assert compiled.params == ["Dev", "Java"]
