"""
Compile query ASTs and search criteria into SQLite filter fragments.

Every fragment uses numbered placeholders (``?N``). The caller passes the
first free placeholder number and gets back the fragment plus the parameters
it claims, in placeholder order. Compilation is a pure fold: each child is
lowered with ``index + len(params so far)``.

Invariants:
    - Full-text parameters are lower-cased; tag and category parameters
      are bound verbatim
    - Children compiling to an empty fragment are dropped
    - The top-level node is never parenthesized; nested AND/OR are
    - Field, fuzzy and range nodes compile to an empty fragment

How to change safely:
    - Fragments reference the fast-store columns ``content``, ``tags`` and
      ``categories``; renaming a column means updating this module and
      store.entry_store together
    - New node kinds need a branch in ``_lower`` (unknown kinds raise)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

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
    to_pretty_string,
)
from .parser import parse

logger = logging.getLogger(__name__)

CONTENT_FIELD = "lower(content)"


@dataclass(frozen=True)
class CompiledQuery:
    """A filter fragment and the parameters bound to its placeholders."""

    fragment: str
    params: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.fragment


def _like(index: int, param: str) -> tuple[str, list[str]]:
    return f"{CONTENT_FIELD} LIKE ?{index}", [param]


def _join(
    children: tuple[Node, ...], operator: str, index: int
) -> tuple[str, list[str]]:
    fragments: list[str] = []
    params: list[str] = []
    for child in children:
        fragment, child_params = _lower(child, index + len(params), nested=True)
        if fragment:
            fragments.append(fragment)
            params.extend(child_params)
    return operator.join(fragments), params


def _lower(node: Node, index: int, nested: bool) -> tuple[str, list[str]]:
    if isinstance(node, (TokenNode, PhraseNode)):
        return _like(index, f"%{node.value}%")

    if isinstance(node, WildcardNode):
        return _like(index, node.value.replace("*", "%").replace("?", "_"))

    if isinstance(node, NotNode):
        child = node.child
        if isinstance(child, (TokenNode, PhraseNode)):
            fragment, params = _like(index, f"%{child.value}%")
            return f"NOT ({fragment})", params
        fragment, params = _lower(child, index, nested=True)
        if not fragment:
            return "", []
        return f"NOT ({fragment})", params

    if isinstance(node, (AndNode, OrNode, RootNode)):
        operator = " OR " if isinstance(node, OrNode) else " AND "
        fragment, params = _join(node.children, operator, index)
        if fragment and nested and not isinstance(node, RootNode):
            fragment = f"({fragment})"
        return fragment, params

    if isinstance(node, (FieldNode, FuzzyNode, RangeNode)):
        logger.debug(f"Ignoring unsupported query node {type(node).__name__}")
        return "", []

    raise TypeError(f"Unknown query node: {node!r}")


def compile_query(query: str | Node, index: int = 1) -> CompiledQuery:
    """Compile free-text query into a content filter.

    Args:
        query: Query text or an already parsed AST
        index: First free placeholder number

    Returns:
        CompiledQuery with lower-cased parameters

    Example:
        >>> compile_query("hello -world")
        CompiledQuery(fragment='lower(content) LIKE ?1 AND NOT (lower(content) LIKE ?2)', params=['%hello%', '%world%'])
    """
    root = parse(query) if isinstance(query, str) else query
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Compiling query tree:\n{to_pretty_string(root)}")
    fragment, params = _lower(root, index, nested=False)
    return CompiledQuery(fragment, [p.lower() for p in params])


def compile_tag(tag: str, index: int) -> CompiledQuery:
    """Exact tag membership against the ``tags`` JSON array."""
    return CompiledQuery(f"?{index} IN (SELECT value FROM json_each(tags))", [tag])


def compile_categories(categories: list[str] | tuple[str, ...], index: int) -> CompiledQuery:
    """Category-path prefix match.

    The requested categories must equal the first ``len(categories)``
    elements of the stored ordered ``categories`` array.
    """
    clauses = [
        f"json_extract(categories, '$[{i}]') = ?{index + i}"
        for i in range(len(categories))
    ]
    fragment = (
        f"json_array_length(categories) >= {len(categories)} "
        f"AND ({' AND '.join(clauses)})"
    )
    return CompiledQuery(fragment, list(categories))
