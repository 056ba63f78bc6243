"""
Unit tests for the search query parser.

Tests cover:
- Tokens, phrases and implicit AND
- OR precedence and grouping
- Negation with "-" and NOT
- Field, fuzzy, wildcard and range terms
- Lenient recovery from malformed input
"""

from entryapi.entry_server.query import (
    AndNode,
    FieldNode,
    FuzzyNode,
    NotNode,
    OrNode,
    PhraseNode,
    RangeNode,
    RootNode,
    TokenNode,
    WildcardNode,
    parse,
    to_pretty_string,
)


class TestTerms:
    """Tests for leaf terms."""

    def test_single_token(self):
        """One word parses to a root with one token."""
        assert parse("hello") == RootNode((TokenNode("hello"),))

    def test_hyphenated_word_is_one_token(self):
        """A hyphen inside a word is not negation."""
        assert parse("hello-world") == RootNode((TokenNode("hello-world"),))

    def test_implicit_and(self):
        """Whitespace-separated terms are AND-ed at the root."""
        assert parse("hello world") == RootNode((TokenNode("hello"), TokenNode("world")))

    def test_explicit_and_is_skipped(self):
        """AND between terms behaves like whitespace."""
        assert parse("hello AND world") == parse("hello world")

    def test_phrase(self):
        """Quoted text is a single phrase."""
        assert parse('"hello world"') == RootNode((PhraseNode("hello world"),))

    def test_unterminated_phrase_runs_to_end(self):
        """A missing closing quote ends the phrase at end of input."""
        assert parse('"hello world') == RootNode((PhraseNode("hello world"),))

    def test_wildcards(self):
        """Tokens with * or ? become wildcard terms."""
        root = parse("spr*ng j?va")
        assert root == RootNode((WildcardNode("spr*ng"), WildcardNode("j?va")))

    def test_field_term(self):
        """field:value becomes a field term."""
        assert parse("title:spring") == RootNode((FieldNode("title", "spring"),))

    def test_field_phrase(self):
        """field:"a b" keeps the quoted value."""
        assert parse('title:"spring boot"') == RootNode((FieldNode("title", "spring boot"),))

    def test_fuzzy_with_distance(self):
        """word~N carries the edit distance."""
        assert parse("spring~1") == RootNode((FuzzyNode("spring", 1),))

    def test_fuzzy_default_distance(self):
        """word~ defaults to two edits."""
        assert parse("spring~") == RootNode((FuzzyNode("spring", 2),))

    def test_inclusive_range(self):
        """[a TO b] is an inclusive range."""
        assert parse("[a TO b]") == RootNode((RangeNode("a", "b"),))

    def test_exclusive_field_range(self):
        """field:{a TO b} is an exclusive range on a field."""
        root = parse("date:{2020 TO 2021}")
        assert root == RootNode(
            (RangeNode("2020", "2021", field="date", include_start=False, include_end=False),)
        )


class TestOperators:
    """Tests for OR, grouping and negation."""

    def test_top_level_or_is_root(self):
        """A query that is one OR expression returns the OrNode itself."""
        assert parse("hello or world") == OrNode((TokenNode("hello"), TokenNode("world")))

    def test_or_binds_looser_than_and(self):
        """a b OR c is (a AND b) OR c."""
        root = parse("a b OR c")
        assert root == OrNode((AndNode((TokenNode("a"), TokenNode("b"))), TokenNode("c")))

    def test_group(self):
        """Parenthesized OR stays nested under the root."""
        root = parse("hello (world or java)")
        assert root == RootNode(
            (TokenNode("hello"), OrNode((TokenNode("world"), TokenNode("java"))))
        )

    def test_minus_negates(self):
        """-word negates the following term."""
        assert parse("hello -world") == RootNode(
            (TokenNode("hello"), NotNode(TokenNode("world")))
        )

    def test_not_keyword_negates(self):
        """NOT word is the same as -word."""
        assert parse("NOT hello") == parse("-hello")

    def test_negated_group(self):
        """Negation applies to a whole group."""
        root = parse("-(a OR b)")
        assert root == RootNode((NotNode(OrNode((TokenNode("a"), TokenNode("b")))),))


class TestRecovery:
    """Tests for lenient handling of malformed queries."""

    def test_empty_input(self):
        """Blank and missing input give an empty root."""
        assert parse("") == RootNode(())
        assert parse("   ") == RootNode(())
        assert parse(None) == RootNode(())

    def test_unmatched_close_paren_dropped(self):
        """A stray ) is ignored."""
        assert parse("hello)") == RootNode((TokenNode("hello"),))

    def test_unclosed_group_closed_at_end(self):
        """A missing ) is implied at end of input."""
        assert parse("(hello world") == RootNode(
            (AndNode((TokenNode("hello"), TokenNode("world"))),)
        )

    def test_empty_group_disappears(self):
        """() contributes nothing."""
        assert parse("hello ()") == RootNode((TokenNode("hello"),))

    def test_dangling_operators_dropped(self):
        """Trailing NOT and lone - are ignored."""
        assert parse("hello NOT") == RootNode((TokenNode("hello"),))
        assert parse("hello - world") == RootNode((TokenNode("hello"), TokenNode("world")))

    def test_dangling_or_dropped(self):
        """OR without a right-hand side keeps the left side only."""
        assert parse("hello OR") == RootNode((TokenNode("hello"),))


def test_pretty_string():
    """Trees render one node per line."""
    rendered = to_pretty_string(parse("hello -world"))
    assert rendered.splitlines() == [
        "RootNode",
        "  TokenNode[hello]",
        "  NotNode",
        "    TokenNode[world]",
    ]
