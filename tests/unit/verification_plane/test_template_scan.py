"""Unit tests for the lexical template-region scan and the example body check."""

from __future__ import annotations

import pytest

from figbind.domain.models import ExampleDescriptor, IssueKind, TemplateRegion
from figbind.verification_plane.template_scan import (
    STATEMENTS_BEFORE_RETURN_MESSAGE,
    scan_example_body,
    scan_template_regions,
)


def _scan(text: str, *, line: int = 1, kind: str = "template") -> list[str]:
    issues = scan_template_regions([TemplateRegion(kind=kind, text=text, line=line)])
    assert all(issue.kind is IssueKind.EXPRESSION_POLICY for issue in issues)
    return [issue.message for issue in issues]


@pytest.mark.parametrize(
    "text",
    [
        "<ds-button>{{ label }}</ds-button>",
        "<ds-button>{{ user?.name }}</ds-button>",
        '<ds-button [size]="size" (click)="onClick()"></ds-button>',
        "<ds-button>plain text with ? and : and ! in it</ds-button>",
    ],
)
def test_clean_regions_produce_no_issues(text: str) -> None:
    assert _scan(text) == []


def test_logical_operator_in_interpolation() -> None:
    messages = _scan("<a>{{ first && second }}</a>")

    assert len(messages) == 1
    assert messages[0].startswith("Logical operator in template interpolation")


def test_nullish_coalescing_is_logical_not_ternary() -> None:
    messages = _scan('<a (click)="handler ?? fallback"></a>')

    assert len(messages) == 1
    assert messages[0].startswith("Logical operator in attribute binding")


def test_comparison_reports_line_within_region() -> None:
    issues = scan_template_regions(
        [TemplateRegion(kind="template", text="<a>\n\n{{ x === y }}</a>", line=10)]
    )

    assert len(issues) == 1
    assert issues[0].line == 12
    assert issues[0].message.startswith("Comparison operator in template interpolation")


def test_prefix_unary_in_structural_directive() -> None:
    messages = _scan('<div *ngIf="!visible"></div>')

    assert len(messages) == 1
    assert messages[0].startswith("Prefix unary operator in attribute binding")


def test_ternary_in_property_binding() -> None:
    messages = _scan("<a [class]=\"active ? 'on' : 'off'\"></a>")

    assert len(messages) == 1
    assert messages[0].startswith("Ternary expression in attribute binding")


def test_nested_template_literal() -> None:
    messages = _scan("<a>${ `inner` }</a>")

    assert messages == [
        "Nested template literal in template interpolation - nested templates are not "
        "allowed. Compute the string in props instead."
    ]


def test_one_placeholder_can_break_several_rules() -> None:
    messages = _scan("<a>{{ !a && b == c }}</a>")

    assert [message.split(" in ")[0] for message in messages] == [
        "Logical operator",
        "Comparison operator",
        "Prefix unary operator",
    ]


def test_body_with_statements_before_return_is_flagged() -> None:
    example = ExampleDescriptor(
        is_function=True,
        line=4,
        column=12,
        body_text="{\n  const label = props.label\n  return html`<a>${label}</a>`\n}",
        body_line=4,
        body_column=22,
    )

    issue = scan_example_body(example)

    assert issue is not None
    assert issue.kind is IssueKind.STRUCTURAL
    assert issue.message == STATEMENTS_BEFORE_RETURN_MESSAGE
    assert (issue.line, issue.column) == (4, 22)


@pytest.mark.parametrize(
    "body",
    [
        "html`<a></a>`",
        "{\n  // just a comment\n  return html`<a></a>`\n}",
        "{ /* block */ return html`<a></a>` }",
    ],
)
def test_bodies_without_leading_statements_pass(body: str) -> None:
    example = ExampleDescriptor(is_function=True, line=1, column=1, body_text=body, body_line=1)

    assert scan_example_body(example) is None


def test_non_function_example_is_not_body_scanned() -> None:
    example = ExampleDescriptor(is_function=False, line=1, column=1, body_text="{ a; return b }")

    assert scan_example_body(example) is None
