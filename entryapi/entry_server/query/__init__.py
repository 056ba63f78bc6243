"""
Search query module.

This module provides:
- The query AST (closed set of node kinds)
- A lenient parser for the free-text query language
- Compilation of queries, tags and category paths into SQLite filters

Query language:
    hello world          both words (implicit AND)
    "hello world"        phrase
    hello OR world       either word
    -hello / NOT hello   negation
    hello (world OR x)   grouping
    spr*ng, j?va         wildcards
    title:spring         field term (parsed, not executed)
    spring~1             fuzzy term (parsed, not executed)
    [a TO b]             range term (parsed, not executed)
"""

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
from .compiler import CompiledQuery, compile_categories, compile_query, compile_tag
from .parser import parse

__all__ = [
    "AndNode",
    "CompiledQuery",
    "FieldNode",
    "FuzzyNode",
    "Node",
    "NotNode",
    "OrNode",
    "PhraseNode",
    "RangeNode",
    "RootNode",
    "TokenNode",
    "WildcardNode",
    "compile_categories",
    "compile_query",
    "compile_tag",
    "parse",
    "to_pretty_string",
]
