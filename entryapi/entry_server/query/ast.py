"""
Query AST node kinds.

The node set is closed: the compiler dispatches over exactly these classes
and raises TypeError on anything else. Adding a node kind means adding a
branch to ``compiler._lower`` and to ``to_pretty_string``.

Field, fuzzy and range nodes are produced by the parser but carry no
executable semantics in the compiler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TokenNode:
    value: str


@dataclass(frozen=True)
class PhraseNode:
    value: str


@dataclass(frozen=True)
class WildcardNode:
    """Token containing ``*`` (any run) or ``?`` (one character)."""

    value: str


@dataclass(frozen=True)
class FieldNode:
    field: str
    value: str


@dataclass(frozen=True)
class FuzzyNode:
    value: str
    max_edits: int = 2


@dataclass(frozen=True)
class RangeNode:
    start: str
    end: str
    field: str | None = None
    include_start: bool = True
    include_end: bool = True


@dataclass(frozen=True)
class NotNode:
    child: Node


@dataclass(frozen=True)
class AndNode:
    children: tuple[Node, ...]


@dataclass(frozen=True)
class OrNode:
    children: tuple[Node, ...]


@dataclass(frozen=True)
class RootNode:
    """Top of a parsed query; children are implicitly AND-ed."""

    children: tuple[Node, ...] = ()


Node = Union[
    TokenNode,
    PhraseNode,
    WildcardNode,
    FieldNode,
    FuzzyNode,
    RangeNode,
    NotNode,
    AndNode,
    OrNode,
    RootNode,
]


def to_pretty_string(node: Node, indent: int = 0) -> str:
    """Render a tree for trace logging."""
    pad = "  " * indent
    if isinstance(node, (TokenNode, PhraseNode, WildcardNode)):
        return f"{pad}{type(node).__name__}[{node.value}]"
    if isinstance(node, FieldNode):
        return f"{pad}FieldNode[{node.field}={node.value}]"
    if isinstance(node, FuzzyNode):
        return f"{pad}FuzzyNode[{node.value}~{node.max_edits}]"
    if isinstance(node, RangeNode):
        return f"{pad}RangeNode[{node.field or ''}:{node.start} TO {node.end}]"
    if isinstance(node, NotNode):
        return f"{pad}NotNode\n{to_pretty_string(node.child, indent + 1)}"
    if isinstance(node, (AndNode, OrNode, RootNode)):
        lines = [f"{pad}{type(node).__name__}"]
        lines.extend(to_pretty_string(child, indent + 1) for child in node.children)
        return "\n".join(lines)
    raise TypeError(f"Unknown query node: {node!r}")
