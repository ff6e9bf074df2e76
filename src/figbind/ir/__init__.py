"""Binding IR extraction (tree-sitter TSX/TypeScript front end)."""

from figbind.ir.extractor import (
    CODE_CONNECT_MODULE,
    DEFAULT_NAMESPACE,
    extract_ir,
    is_code_connect_source,
    resolve_namespace,
)
from figbind.ir.syntax import dialect_for

__all__ = [
    "CODE_CONNECT_MODULE",
    "DEFAULT_NAMESPACE",
    "dialect_for",
    "extract_ir",
    "is_code_connect_source",
    "resolve_namespace",
]
