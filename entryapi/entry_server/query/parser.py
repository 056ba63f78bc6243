"""
Lenient parser for the free-text search language.

Grammar (OR binds looser than AND):

    query   := or_expr
    or_expr := and_expr ( OR and_expr )*
    and_expr:= unary ( [AND] unary )*
    unary   := ( "-" | NOT ) unary | primary
    primary := "(" or_expr ")" | PHRASE | WORD | WILDCARD
             | FIELD ":" ( WORD | PHRASE ) | FUZZY | RANGE

Search is best-effort, so parsing never raises. Recovery rules:
    - An unmatched ")" is dropped
    - An unclosed "(" is closed at end of input
    - An unterminated quote runs to end of input
    - Dangling AND / OR / NOT / "-" are dropped
    - Empty groups disappear

When the whole query is a single OR expression the OrNode is returned as the
root; otherwise a RootNode holds the implicitly AND-ed terms.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from .ast import (
    AndNode,
    FieldNode,
    FuzzyNode,
    Node,
    NotNode,
    OrNode,
    PhraseNode,
    RangeNode,
    RootNode,
    TokenNode,
    WildcardNode,
)

logger = logging.getLogger(__name__)

_FUZZY = re.compile(r"^(.+)~(\d*)$")
_RANGE = re.compile(r"^\s*(\S+)\s+TO\s+(\S+)\s*$", re.IGNORECASE)
_WORD_BREAK = set("()\"")
_RANGE_CLOSE = {"[": "]", "{": "}"}


class Kind(Enum):
    LPAREN = "("
    RPAREN = ")"
    MINUS = "-"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    TERM = "term"


@dataclass(frozen=True)
class Lexeme:
    kind: Kind
    node: Node | None = None


class _Lexer:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def _peek_char(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.text[i] if i < len(self.text) else ""

    def _read_phrase(self) -> str:
        # Opening quote at self.pos
        end = self.text.find('"', self.pos + 1)
        if end < 0:
            value = self.text[self.pos + 1 :]
            self.pos = len(self.text)
        else:
            value = self.text[self.pos + 1 : end]
            self.pos = end + 1
        return value

    def _read_range(self, field: str | None) -> Node | None:
        opening = self.text[self.pos]
        closing = _RANGE_CLOSE[opening]
        end = self.text.find(closing, self.pos + 1)
        if end < 0:
            inner = self.text[self.pos + 1 :]
            self.pos = len(self.text)
        else:
            inner = self.text[self.pos + 1 : end]
            self.pos = end + 1
        match = _RANGE.match(inner)
        if not match:
            value = inner.strip()
            return TokenNode(value) if value else None
        return RangeNode(
            start=match.group(1),
            end=match.group(2),
            field=field,
            include_start=opening == "[",
            include_end=closing == "]",
        )

    def _read_word(self) -> str:
        start = self.pos
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch.isspace() or ch in _WORD_BREAK:
                break
            self.pos += 1
        return self.text[start : self.pos]

    def _classify(self, word: str) -> Lexeme | None:
        upper = word.upper()
        if upper in ("AND", "OR", "NOT"):
            return Lexeme(Kind(upper))

        if word.endswith(":") and len(word) > 1:
            field = word[:-1]
            nxt = self._peek_char()
            if nxt == '"':
                return Lexeme(Kind.TERM, FieldNode(field, self._read_phrase()))
            if nxt in _RANGE_CLOSE:
                node = self._read_range(field)
                return Lexeme(Kind.TERM, node) if node else None
            return Lexeme(Kind.TERM, TokenNode(word))

        field, sep, value = word.partition(":")
        if sep and field and value:
            if value[0] in _RANGE_CLOSE:
                # Rewind to the bracket and read the whole range
                self.pos -= len(value)
                node = self._read_range(field)
                return Lexeme(Kind.TERM, node) if node else None
            return Lexeme(Kind.TERM, FieldNode(field, value))

        fuzzy = _FUZZY.match(word)
        if fuzzy:
            edits = int(fuzzy.group(2)) if fuzzy.group(2) else 2
            return Lexeme(Kind.TERM, FuzzyNode(fuzzy.group(1), edits))

        if "*" in word or "?" in word:
            return Lexeme(Kind.TERM, WildcardNode(word))

        return Lexeme(Kind.TERM, TokenNode(word))

    def tokenize(self) -> list[Lexeme]:
        lexemes: list[Lexeme] = []
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch.isspace():
                self.pos += 1
            elif ch == "(":
                lexemes.append(Lexeme(Kind.LPAREN))
                self.pos += 1
            elif ch == ")":
                lexemes.append(Lexeme(Kind.RPAREN))
                self.pos += 1
            elif ch == '"':
                value = self._read_phrase()
                if value.strip():
                    lexemes.append(Lexeme(Kind.TERM, PhraseNode(value)))
            elif ch == "-":
                self.pos += 1
                nxt = self._peek_char()
                if nxt and not nxt.isspace():
                    lexemes.append(Lexeme(Kind.MINUS))
            elif ch in _RANGE_CLOSE:
                node = self._read_range(None)
                if node:
                    lexemes.append(Lexeme(Kind.TERM, node))
            else:
                lexeme = self._classify(self._read_word())
                if lexeme:
                    lexemes.append(lexeme)
        return _drop_unmatched_parens(lexemes)


def _drop_unmatched_parens(lexemes: list[Lexeme]) -> list[Lexeme]:
    depth = 0
    kept: list[Lexeme] = []
    for lexeme in lexemes:
        if lexeme.kind is Kind.LPAREN:
            depth += 1
        elif lexeme.kind is Kind.RPAREN:
            if depth == 0:
                continue
            depth -= 1
        kept.append(lexeme)
    return kept


def tokenize(text: str) -> list[Lexeme]:
    return _Lexer(text or "").tokenize()


class _Parser:
    def __init__(self, lexemes: list[Lexeme]) -> None:
        self.lexemes = lexemes
        self.pos = 0

    def _peek(self) -> Kind | None:
        if self.pos < len(self.lexemes):
            return self.lexemes[self.pos].kind
        return None

    def _next(self) -> Lexeme:
        lexeme = self.lexemes[self.pos]
        self.pos += 1
        return lexeme

    def or_branches(self) -> list[list[Node]]:
        branches = [self.and_terms()]
        while self._peek() is Kind.OR:
            self._next()
            branches.append(self.and_terms())
        return [b for b in branches if b]

    def and_terms(self) -> list[Node]:
        terms: list[Node] = []
        while True:
            kind = self._peek()
            if kind is None or kind in (Kind.OR, Kind.RPAREN):
                return terms
            if kind is Kind.AND:
                self._next()
                continue
            term = self.unary()
            if term is not None:
                terms.append(term)

    def unary(self) -> Node | None:
        kind = self._peek()
        if kind in (Kind.MINUS, Kind.NOT):
            self._next()
            if self._peek() in (None, Kind.OR, Kind.AND, Kind.RPAREN):
                return None
            child = self.unary()
            return NotNode(child) if child is not None else None
        return self.primary()

    def primary(self) -> Node | None:
        lexeme = self._next()
        if lexeme.kind is Kind.LPAREN:
            branches = self.or_branches()
            if self._peek() is Kind.RPAREN:
                self._next()
            return _group(branches)
        return lexeme.node


def _and(terms: list[Node]) -> Node:
    return terms[0] if len(terms) == 1 else AndNode(tuple(terms))


def _group(branches: list[list[Node]]) -> Node | None:
    if not branches:
        return None
    if len(branches) == 1:
        return _and(branches[0])
    return OrNode(tuple(_and(b) for b in branches))


def parse(text: str | None) -> Node:
    """Parse a free-text query into an AST root.

    Args:
        text: Query text (None and blank input give an empty RootNode)

    Returns:
        RootNode, or an OrNode when the whole query is one OR expression
    """
    parser = _Parser(tokenize(text or ""))
    branches = parser.or_branches()
    if len(branches) > 1:
        return OrNode(tuple(_and(b) for b in branches))
    return RootNode(tuple(branches[0]) if branches else ())
