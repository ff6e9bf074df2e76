"""Lexical scan of template regions marked by the IR extractor.

Some constructs inside embedded template syntax (``{{ ... }}`` interpolation,
Angular binding attributes, ``${...}`` written into a JSX string) are plain
text to the TypeScript grammar, so they are matched with regular expressions
here. Only text the extractor recorded as a ``TemplateRegion`` is scanned.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from typing import Final

from figbind.domain.models import ExampleDescriptor, IssueKind, TemplateRegion, ValidationIssue

_PLACEHOLDER_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\$\{([^}]*)\}"),
    re.compile(r"\{\{(.*?)\}\}", re.DOTALL),
)
_BINDING_ATTRIBUTE: Final[re.Pattern[str]] = re.compile(
    r"""(?:\[\(?[\w.\-]+\)?\]|\([\w.\-]+\)|\*[\w\-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')"""
)

_TERNARY: Final[re.Pattern[str]] = re.compile(r"(?<![?.])\?(?![?.])[^:]*:")
_LOGICAL: Final[re.Pattern[str]] = re.compile(r"&&|\|\||\?\?")
_COMPARISON: Final[re.Pattern[str]] = re.compile(r"===|!==|==|!=|<=|>=")
_PREFIX_UNARY: Final[re.Pattern[str]] = re.compile(r"^\s*(?:!(?!=)|~|typeof\b|void\b|delete\b)")
_NESTED_TEMPLATE: Final[re.Pattern[str]] = re.compile(r"`")

_LINE_COMMENT: Final[re.Pattern[str]] = re.compile(r"//[^\n]*")
_BLOCK_COMMENT: Final[re.Pattern[str]] = re.compile(r"/\*.*?\*/", re.DOTALL)
_RETURN: Final[re.Pattern[str]] = re.compile(r"\breturn\b")

STATEMENTS_BEFORE_RETURN_MESSAGE: Final[str] = (
    "Example function has a body with statements - the example must directly return "
    "its template: example: (props) => html`...` not "
    "example: (props) => { ... return html`...` }"
)


def scan_template_regions(regions: Iterable[TemplateRegion]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for region in regions:
        for offset, content, where in _expression_slots(region.text):
            line = region.line + region.text.count("\n", 0, offset)
            issues.extend(_check_expression(content, where, line))
    return issues


def scan_example_body(example: ExampleDescriptor) -> ValidationIssue | None:
    """Flag a block-bodied example that runs statements before its ``return``."""

    body = example.body_text.strip()
    if not example.is_function or not body.startswith("{"):
        return None
    inner = _BLOCK_COMMENT.sub("", body[1:])
    inner = _LINE_COMMENT.sub("", inner)
    match = _RETURN.search(inner)
    if match is None or not inner[: match.start()].strip():
        return None
    return ValidationIssue(
        kind=IssueKind.STRUCTURAL,
        message=STATEMENTS_BEFORE_RETURN_MESSAGE,
        line=example.body_line or None,
        column=example.body_column or None,
    )


def _expression_slots(text: str) -> Iterator[tuple[int, str, str]]:
    for pattern in _PLACEHOLDER_PATTERNS:
        for match in pattern.finditer(text):
            yield match.start(), match.group(1), "template interpolation"
    for match in _BINDING_ATTRIBUTE.finditer(text):
        content = match.group(1) if match.group(1) is not None else match.group(2)
        yield match.start(), content, "attribute binding"


def _check_expression(content: str, where: str, line: int) -> list[ValidationIssue]:
    found: list[str] = []
    if _NESTED_TEMPLATE.search(content):
        found.append(
            f"Nested template literal in {where} - nested templates are not allowed. "
            "Compute the string in props instead."
        )
    if _TERNARY.search(content):
        found.append(
            f"Ternary expression in {where} - conditionals are not allowed. "
            "Use figma.boolean() or figma.enum() to map the condition instead."
        )
    if _LOGICAL.search(content):
        found.append(
            f"Logical operator in {where} - &&/||/?? are not allowed. "
            "Compute the value in props instead."
        )
    if _COMPARISON.search(content):
        found.append(
            f"Comparison operator in {where} - binary expressions are not allowed. "
            "Compute the boolean value in props instead."
        )
    if _PREFIX_UNARY.search(content):
        found.append(
            f"Prefix unary operator in {where} - !/~/typeof/void/delete are not allowed. "
            "Compute the value in props instead."
        )
    return [
        ValidationIssue(kind=IssueKind.EXPRESSION_POLICY, message=message, line=line)
        for message in found
    ]


__all__ = [
    "STATEMENTS_BEFORE_RETURN_MESSAGE",
    "scan_example_body",
    "scan_template_regions",
]
