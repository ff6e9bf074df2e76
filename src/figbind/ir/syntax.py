"""Thin tree-sitter layer: grammar selection, parsing, node text and locations."""

from __future__ import annotations

import codecs
from collections.abc import Iterator
from functools import lru_cache
from typing import Final, Literal

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

Dialect = Literal["tsx", "typescript"]

_ERROR_SNIPPET_MAX: Final[int] = 40


@lru_cache(maxsize=2)
def _language(dialect: Dialect) -> Language:
    if dialect == "typescript":
        return Language(tree_sitter_typescript.language_typescript())
    return Language(tree_sitter_typescript.language_tsx())


def dialect_for(filename: str) -> Dialect:
    """``.ts`` files (HTML/Angular bindings) use the TypeScript grammar; the rest use TSX."""

    lowered = filename.lower()
    if lowered.endswith(".ts") and not lowered.endswith(".d.ts"):
        return "typescript"
    return "tsx"


class SourceText:
    """UTF-8 source buffer with node-relative accessors."""

    __slots__ = ("code", "data")

    def __init__(self, code: str) -> None:
        self.code = code
        self.data = code.encode("utf-8")

    def text(self, node: Node) -> str:
        return self.data[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def line(self, node: Node) -> int:
        return node.start_point[0] + 1

    def column(self, node: Node) -> int:
        return node.start_point[1] + 1

    def parse(self, dialect: Dialect) -> Tree:
        parser = Parser(_language(dialect))
        return parser.parse(self.data)


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal over every node below (and including) ``node``."""

    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def find_syntax_error(root: Node) -> Node | None:
    """Return the first ERROR or MISSING node in document order, if any."""

    if not root.has_error:
        return None
    stack = [root]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current
        stack.extend(reversed([child for child in current.children if child.has_error]))
    return None


def describe_syntax_error(node: Node, source: SourceText) -> str:
    if node.is_missing:
        return f"missing '{node.type}'"
    snippet = " ".join(source.text(node).split())
    if len(snippet) > _ERROR_SNIPPET_MAX:
        snippet = snippet[: _ERROR_SNIPPET_MAX - 3] + "..."
    if not snippet:
        return "unexpected end of input"
    return f"unexpected '{snippet}'"


def call_arguments(call: Node) -> list[Node]:
    """Expression arguments of a call_expression, comments excluded."""

    args_node = call.child_by_field_name("arguments")
    if args_node is None or args_node.type != "arguments":
        return []
    return [child for child in args_node.named_children if child.type != "comment"]


def string_value(node: Node, source: SourceText) -> str:
    parts: list[str] = []
    for child in node.named_children:
        raw = source.text(child)
        if child.type == "escape_sequence":
            parts.append(_decode_escape(raw))
        else:
            parts.append(raw)
    return "".join(parts)


def property_key(node: Node | None, source: SourceText) -> str | None:
    """Static name of an object-literal key; ``None`` for computed keys."""

    if node is None:
        return None
    if node.type == "string":
        return string_value(node, source)
    if node.type in {"property_identifier", "number", "identifier", "private_property_identifier"}:
        return source.text(node)
    return None


def _decode_escape(raw: str) -> str:
    try:
        return codecs.decode(raw, "unicode_escape")
    except UnicodeDecodeError:
        return raw[1:]


__all__ = [
    "Dialect",
    "SourceText",
    "call_arguments",
    "describe_syntax_error",
    "dialect_for",
    "find_syntax_error",
    "property_key",
    "string_value",
    "walk",
]
