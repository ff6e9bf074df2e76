"""
figbind — tier-1 semantic validator

File: src/figbind/verification_plane/semantic.py

Purpose
- Check a binding file's IR against component evidence and the example
  expression policy without leaving the process.

Functional requirements
- Expected failures are returned as data (``ValidationResult``), never raised.
- A ``ParseError`` from the extractor becomes a single-element error list.
- Checks run in a fixed order: presence, structure, keys, enum values,
  variant restrictions, lexical template scan.
- Errors are de-duplicated keeping the first occurrence; output is a pure
  function of ``(code, evidence, filename)``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Literal

from figbind.domain.errors import EvidenceLoadError, ParseError
from figbind.domain.models import (
    BindingIR,
    ConnectDescriptor,
    ConnectKind,
    Evidence,
    ExampleDescriptor,
    ExpressionKind,
    HelperCall,
    HelperKind,
    IssueKind,
    ValidationIssue,
    ValidationResult,
    ValidationTier,
)
from figbind.ir.extractor import extract_ir, is_code_connect_source
from figbind.verification_plane.key_sets import KeySets, build_key_sets, normalize_key
from figbind.verification_plane.template_scan import scan_example_body, scan_template_regions

ParserMode = Literal["react", "html"]

EMPTY_CODE_MESSAGE = "Generated code is empty or invalid"
MISSING_EVIDENCE_MESSAGE = "Figma evidence is missing or invalid"
MISSING_IMPORT_MESSAGE = "Missing @figma/code-connect import"

_KEY_ERROR_TEMPLATES: dict[HelperKind, str] = {
    HelperKind.STRING: "{ns}.string('{key}') - '{key}' is not a valid TEXT property or variant",
    HelperKind.BOOLEAN: "{ns}.boolean('{key}') - '{key}' is not a valid BOOLEAN property",
    HelperKind.ENUM: "{ns}.enum('{key}', ...) - '{key}' is not a valid variant property",
    HelperKind.INSTANCE: "{ns}.instance('{key}') - '{key}' is not a valid INSTANCE_SWAP property",
    HelperKind.TEXT_CONTENT: "{ns}.textContent('{key}') - '{key}' is not a known text layer name",
    HelperKind.CHILDREN: "{ns}.children('{key}') - '{key}' is not a known slot layer name",
}


def default_filename(parser_mode: ParserMode) -> str:
    return "binding.figma.ts" if parser_mode == "html" else "binding.figma.tsx"


def validate_local(
    code: str,
    evidence: Evidence | Mapping[str, object] | None,
    *,
    filename: str | None = None,
    parser_mode: ParserMode = "react",
) -> ValidationResult:
    """Run every tier-1 check and return ``{valid, errors}``."""

    if not isinstance(code, str) or not code.strip():
        return _single(IssueKind.STRUCTURAL, EMPTY_CODE_MESSAGE)
    resolved = _coerce_evidence(evidence)
    if resolved is None:
        return _single(IssueKind.STRUCTURAL, MISSING_EVIDENCE_MESSAGE)

    name = filename or default_filename(parser_mode)
    try:
        ir = extract_ir(code, filename=name)
    except ParseError as exc:
        return ValidationResult.from_issues(
            [
                ValidationIssue(
                    kind=IssueKind.PARSE,
                    message=f"Parse error in {exc.filename}: {exc.detail}",
                    line=exc.line,
                    column=exc.column,
                )
            ]
        )

    key_sets = build_key_sets(resolved)
    issues: list[ValidationIssue] = []
    issues.extend(check_presence(ir))
    for connect in ir.connects:
        issues.extend(check_structure(connect, ir.namespace))
    issues.extend(check_keys(ir.helper_calls(), key_sets, ir.namespace))
    issues.extend(check_enum_mappings(ir.helper_calls(), key_sets, ir.namespace))
    for connect in ir.connects:
        issues.extend(check_variant(connect, key_sets))
    for example in _examples(ir):
        issues.extend(scan_template_regions(example.template_regions))
        body_issue = scan_example_body(example)
        if body_issue is not None:
            issues.append(body_issue)
    return ValidationResult.from_issues(issues, tier=ValidationTier.LOCAL)


def check_presence(ir: BindingIR) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not ir.connects:
        issues.append(
            ValidationIssue(kind=IssueKind.STRUCTURAL, message=f"Missing {ir.namespace}.connect() call")
        )
    if not any(is_code_connect_source(declaration.source) for declaration in ir.imports):
        issues.append(ValidationIssue(kind=IssueKind.STRUCTURAL, message=MISSING_IMPORT_MESSAGE))
    return issues


def check_structure(connect: ConnectDescriptor, namespace: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    call = f"{namespace}.connect()"

    if connect.kind is ConnectKind.INVALID:
        observed = ", ".join(connect.argument_types) or "no arguments"
        issues.append(
            ValidationIssue(
                kind=IssueKind.STRUCTURAL,
                message=(
                    f"{call} has an invalid argument shape ({observed}) - expected "
                    "(Component, 'figma-url', { ... }) or ('figma-url', { ... })"
                ),
                line=connect.line,
                column=connect.column,
            )
        )
        if len(connect.argument_types) >= 2 and not connect.url_is_literal:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"{call} url must be a string literal",
                    line=connect.line,
                    column=connect.column,
                )
            )

    config = connect.config
    if config is None or not config.is_object_literal:
        if connect.kind is not ConnectKind.INVALID or connect.argument_types:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"{call} config must be an object literal",
                    line=config.line if config is not None else connect.line,
                    column=config.column if config is not None else connect.column,
                )
            )
        return issues

    if config.props is not None and not config.props.is_object_literal:
        issues.append(
            ValidationIssue(
                kind=IssueKind.STRUCTURAL,
                message=f"{call} props must be an object literal",
                line=config.line,
                column=config.column,
            )
        )
    if config.variant is not None and not config.variant.is_object_literal:
        issues.append(
            ValidationIssue(
                kind=IssueKind.STRUCTURAL,
                message=f"{call} variant must be an object literal",
                line=config.variant.line or config.line,
            )
        )

    example = config.example
    if example is None:
        issues.append(
            ValidationIssue(
                kind=IssueKind.STRUCTURAL,
                message=f"{call} config is missing an example function",
                line=config.line,
                column=config.column,
            )
        )
        return issues
    if not example.is_function:
        issues.append(
            ValidationIssue(
                kind=IssueKind.STRUCTURAL,
                message="example must be a function that returns the code snippet",
                line=example.line,
                column=example.column,
            )
        )
        return issues
    if not example.is_single_expression:
        issues.append(
            ValidationIssue(
                kind=IssueKind.STRUCTURAL,
                message=(
                    "example function has a block body - it must directly return its "
                    "snippet: example: (props) => <Component /> not "
                    "example: (props) => { return <Component /> }"
                ),
                line=example.body_line,
                column=example.body_column,
            )
        )
    for expression in example.disallowed_expressions:
        if expression.kind is ExpressionKind.NESTED_TEMPLATE:
            message = (
                "Nested template literal in interpolation - nested templates are not "
                "allowed. Compute the string in props instead."
            )
        else:
            message = (
                f"{expression.describe().capitalize()} in example - conditional logic "
                "is not allowed. Map the value in props with figma.boolean() or "
                "figma.enum() instead."
            )
        issues.append(
            ValidationIssue(
                kind=IssueKind.EXPRESSION_POLICY,
                message=message,
                line=expression.line,
                column=expression.column,
            )
        )
    return issues


def check_keys(
    calls: Sequence[HelperCall], key_sets: KeySets, namespace: str
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for call in calls:
        allowed = key_sets.for_helper(call.helper_kind)
        if allowed is None:
            continue
        if call.key is None:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"{namespace}.{call.helper_kind.value}() is missing its property key",
                    line=call.line,
                    column=call.column,
                )
            )
            continue
        if not call.key_is_literal:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=(
                        f"{namespace}.{call.helper_kind.value}({call.key}) - the property key "
                        "must be a string literal"
                    ),
                    line=call.line,
                    column=call.column,
                )
            )
            continue
        if normalize_key(call.key) not in allowed:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.KEY,
                    message=_KEY_ERROR_TEMPLATES[call.helper_kind].format(
                        ns=namespace, key=call.key
                    ),
                    line=call.line,
                    column=call.column,
                )
            )
    return issues


def check_enum_mappings(
    calls: Sequence[HelperCall], key_sets: KeySets, namespace: str
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for call in calls:
        if call.helper_kind is not HelperKind.ENUM or not call.key_is_literal or call.key is None:
            continue
        if not call.enum_mapping_is_literal or not call.enum_mapping:
            continue
        allowed = key_sets.axis_values(call.key)
        if allowed is None:
            continue
        lowered = {str(value).lower() for value in allowed}
        for mapping in call.enum_mapping:
            if mapping.figma_value.lower() in lowered:
                continue
            issues.append(
                ValidationIssue(
                    kind=IssueKind.ENUM_VALUE,
                    message=(
                        f"{namespace}.enum('{call.key}', ...) - '{mapping.figma_value}' is not a "
                        f"valid value for variant '{call.key}'. Valid values: "
                        f"{_format_values(allowed)}"
                    ),
                    line=call.line,
                    column=call.column,
                )
            )
    return issues


def check_variant(connect: ConnectDescriptor, key_sets: KeySets) -> list[ValidationIssue]:
    config = connect.config
    if config is None or config.variant is None or not config.variant.is_object_literal:
        return []
    variant = config.variant
    issues: list[ValidationIssue] = []
    for key, value in variant.restrictions:
        allowed = key_sets.axis_values(key)
        if allowed is None:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.KEY,
                    message=f"variant restriction '{key}' is not a valid variant property",
                    line=variant.line,
                )
            )
            continue
        if value is None:
            continue
        if str(value).lower() not in {str(item).lower() for item in allowed}:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.ENUM_VALUE,
                    message=(
                        f"variant restriction {key}: '{value}' is not a valid value. "
                        f"Valid values: {_format_values(allowed)}"
                    ),
                    line=variant.line,
                )
            )
    return issues


def _examples(ir: BindingIR) -> list[ExampleDescriptor]:
    return [
        connect.config.example
        for connect in ir.connects
        if connect.config is not None and connect.config.example is not None
    ]


def _coerce_evidence(evidence: Evidence | Mapping[str, object] | None) -> Evidence | None:
    if isinstance(evidence, Evidence):
        return evidence
    if isinstance(evidence, Mapping):
        try:
            return Evidence.from_dict(evidence)
        except EvidenceLoadError:
            return None
    return None


def _format_values(values: Sequence[str | bool]) -> str:
    return ", ".join(f"'{value}'" for value in values)


def _single(kind: IssueKind, message: str) -> ValidationResult:
    return ValidationResult.from_issues([ValidationIssue(kind=kind, message=message)])


__all__ = [
    "EMPTY_CODE_MESSAGE",
    "MISSING_EVIDENCE_MESSAGE",
    "MISSING_IMPORT_MESSAGE",
    "ParserMode",
    "check_enum_mappings",
    "check_keys",
    "check_presence",
    "check_structure",
    "check_variant",
    "default_filename",
    "validate_local",
]
