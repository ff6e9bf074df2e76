"""Dataclass domain models: evidence, binding IR, validation results, attempts."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from enum import StrEnum
from typing import NoReturn

from figbind.domain.errors import EvidenceLoadError

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


class PropertyKind(StrEnum):
    STRING = "STRING"
    TEXT = "TEXT"
    BOOLEAN = "BOOLEAN"
    INSTANCE_SWAP = "INSTANCE_SWAP"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: object) -> PropertyKind:
        if not isinstance(raw, str):
            return cls.UNKNOWN
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return cls.UNKNOWN


class HelperKind(StrEnum):
    """Closed vocabulary of Code Connect property helpers."""

    STRING = "string"
    BOOLEAN = "boolean"
    ENUM = "enum"
    INSTANCE = "instance"
    TEXT_CONTENT = "textContent"
    CHILDREN = "children"
    NESTED_PROPS = "nestedProps"
    CLASS_NAME = "className"


class ConnectKind(StrEnum):
    COMPONENT = "component"
    URL_ONLY = "url-only"
    INVALID = "invalid"


class ExpressionKind(StrEnum):
    TERNARY = "ternary"
    LOGICAL = "logical"
    BINARY = "binary"
    UNARY = "unary"
    NESTED_TEMPLATE = "nested_template"


class IssueKind(StrEnum):
    PARSE = "ParseError"
    STRUCTURAL = "StructuralError"
    KEY = "KeyError"
    ENUM_VALUE = "EnumValueError"
    EXPRESSION_POLICY = "ExpressionPolicyError"
    EXTERNAL = "ExternalValidatorError"


class ValidationTier(StrEnum):
    LOCAL = "local"
    EXTERNAL = "external"


class AttemptErrorType(StrEnum):
    GENERATOR = "generator"
    VALIDATION = "validation"


class OrchestratorState(StrEnum):
    GENERATING = "generating"
    VALIDATING = "validating"
    REPAIRING = "repairing"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


def _fail(path: str, message: str) -> NoReturn:
    raise EvidenceLoadError(f"{path}: {message}")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ComponentProperty:
    name: str
    kind: PropertyKind
    default_value: JSONScalar = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {"name": self.name, "kind": self.kind.value, "default_value": self.default_value}


@dataclass(frozen=True, slots=True)
class Layer:
    name: str

    def to_dict(self) -> dict[str, JSONValue]:
        return {"name": self.name}


@dataclass(frozen=True, slots=True)
class Evidence:
    """Design-tool metadata for one component. Never mutated after construction."""

    component_name: str
    variant_properties: Mapping[str, tuple[str | bool, ...]] = field(
        default_factory=dict, hash=False
    )
    component_properties: tuple[ComponentProperty, ...] = ()
    text_layers: tuple[Layer, ...] = ()
    slot_layers: tuple[Layer, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.component_name, str):
            _fail("Evidence.component_name", "must be a string")
        variants: dict[str, tuple[str | bool, ...]] = {}
        for axis, values in dict(self.variant_properties).items():
            if not isinstance(axis, str):
                _fail("Evidence.variant_properties", "axis names must be strings")
            variants[axis] = tuple(values)
        object.__setattr__(self, "variant_properties", MappingProxyType(variants))
        object.__setattr__(self, "component_properties", tuple(self.component_properties))
        object.__setattr__(self, "text_layers", tuple(self.text_layers))
        object.__setattr__(self, "slot_layers", tuple(self.slot_layers))

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> Evidence:
        """Build evidence from the scanner's camelCase JSON (snake_case also accepted)."""

        if not isinstance(payload, Mapping):
            _fail("Evidence", "payload must be an object")

        name = payload.get("componentName", payload.get("component_name", ""))
        if name is None:
            name = ""
        if not isinstance(name, str):
            _fail("Evidence.componentName", "must be a string")

        raw_variants = payload.get("variantProperties", payload.get("variant_properties")) or {}
        if not isinstance(raw_variants, Mapping):
            _fail("Evidence.variantProperties", "must be an object")
        variants: dict[str, tuple[str | bool, ...]] = {}
        for axis, values in raw_variants.items():
            if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
                _fail(f"Evidence.variantProperties.{axis}", "must be a list of values")
            variants[str(axis)] = tuple(
                value if isinstance(value, (str, bool)) else str(value) for value in values
            )

        raw_props = payload.get("componentProperties", payload.get("component_properties")) or []
        if isinstance(raw_props, Mapping):
            # Figma REST shape: {name: {type, defaultValue}}
            raw_props = [
                {"name": key, **dict(value)}
                for key, value in raw_props.items()
                if isinstance(value, Mapping)
            ]
        if not isinstance(raw_props, Sequence):
            _fail("Evidence.componentProperties", "must be a list")
        properties: list[ComponentProperty] = []
        for item in raw_props:
            if not isinstance(item, Mapping) or not item.get("name"):
                continue
            default = item.get("defaultValue", item.get("default_value"))
            properties.append(
                ComponentProperty(
                    name=str(item["name"]),
                    kind=PropertyKind.parse(item.get("type", item.get("kind"))),
                    default_value=default if isinstance(default, (str, int, float, bool)) else None,
                )
            )

        return cls(
            component_name=name,
            variant_properties=variants,
            component_properties=tuple(properties),
            text_layers=_parse_layers(payload, "textLayers", "text_layers"),
            slot_layers=_parse_layers(payload, "slotLayers", "slot_layers"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "componentName": self.component_name,
            "variantProperties": {
                axis: list(values) for axis, values in self.variant_properties.items()
            },
            "componentProperties": [prop.to_dict() for prop in self.component_properties],
            "textLayers": [layer.to_dict() for layer in self.text_layers],
            "slotLayers": [layer.to_dict() for layer in self.slot_layers],
        }


def _parse_layers(payload: Mapping[str, object], camel: str, snake: str) -> tuple[Layer, ...]:
    raw = payload.get(camel, payload.get(snake)) or []
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        _fail(f"Evidence.{camel}", "must be a list")
    layers: list[Layer] = []
    for item in raw:
        if isinstance(item, Mapping) and item.get("name"):
            layers.append(Layer(name=str(item["name"])))
        elif isinstance(item, str) and item:
            layers.append(Layer(name=item))
    return tuple(layers)


# ---------------------------------------------------------------------------
# Binding IR
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ImportSpecifier:
    kind: str
    name: str
    alias: str | None = None


@dataclass(frozen=True, slots=True)
class ImportDeclaration:
    source: str
    specifiers: tuple[ImportSpecifier, ...] = ()


@dataclass(frozen=True, slots=True)
class EnumMapping:
    figma_value: str
    code_value: JSONScalar
    code_value_is_literal: bool


@dataclass(frozen=True, slots=True)
class HelperCall:
    prop_name: str
    helper_kind: HelperKind
    key: str | None
    key_is_literal: bool
    line: int
    column: int
    enum_mapping: tuple[EnumMapping, ...] | None = None
    enum_mapping_is_literal: bool = False


@dataclass(frozen=True, slots=True)
class PropsDescriptor:
    is_object_literal: bool
    helpers: tuple[HelperCall, ...] = ()


@dataclass(frozen=True, slots=True)
class PropsReference:
    name: str
    line: int
    column: int


@dataclass(frozen=True, slots=True)
class DisallowedExpression:
    kind: ExpressionKind
    line: int
    column: int
    operator: str | None = None

    def describe(self) -> str:
        if self.kind is ExpressionKind.TERNARY:
            return "ternary expression (?:)"
        if self.kind is ExpressionKind.LOGICAL:
            return f"logical operator '{self.operator}'"
        if self.kind is ExpressionKind.BINARY:
            return f"binary operator '{self.operator}'"
        if self.kind is ExpressionKind.NESTED_TEMPLATE:
            return "nested template literal in interpolation"
        return f"prefix unary operator '{self.operator}'"


@dataclass(frozen=True, slots=True)
class TemplateRegion:
    """Static template/attribute text with substitutions blanked out."""

    kind: str
    text: str
    line: int


@dataclass(frozen=True, slots=True)
class ExampleDescriptor:
    is_function: bool
    line: int
    column: int
    is_single_expression: bool = False
    params: tuple[str, ...] = ()
    props_references: tuple[PropsReference, ...] = ()
    disallowed_expressions: tuple[DisallowedExpression, ...] = ()
    template_regions: tuple[TemplateRegion, ...] = ()
    body_text: str = ""
    body_line: int = 0
    body_column: int = 0


@dataclass(frozen=True, slots=True)
class VariantDescriptor:
    is_object_literal: bool
    restrictions: tuple[tuple[str, JSONScalar], ...] = ()
    line: int = 0


@dataclass(frozen=True, slots=True)
class ConnectConfig:
    is_object_literal: bool
    line: int
    column: int
    props: PropsDescriptor | None = None
    example: ExampleDescriptor | None = None
    variant: VariantDescriptor | None = None


@dataclass(frozen=True, slots=True)
class ConnectDescriptor:
    kind: ConnectKind
    line: int
    column: int
    argument_types: tuple[str, ...] = ()
    component: str | None = None
    url: str | None = None
    url_is_literal: bool = False
    config: ConnectConfig | None = None


@dataclass(frozen=True, slots=True)
class BindingIR:
    imports: tuple[ImportDeclaration, ...]
    connects: tuple[ConnectDescriptor, ...]
    namespace: str = "figma"

    def helper_calls(self) -> tuple[HelperCall, ...]:
        calls: list[HelperCall] = []
        for connect in self.connects:
            if connect.config is not None and connect.config.props is not None:
                calls.extend(connect.config.props.helpers)
        return tuple(calls)


# ---------------------------------------------------------------------------
# Validation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    kind: IssueKind
    message: str
    line: int | None = None
    column: int | None = None

    def render(self) -> str:
        if self.line is None:
            return self.message
        return f"Line {self.line}: {self.message}"

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "line": self.line,
            "column": self.column,
        }


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    errors: tuple[str, ...] = ()
    issues: tuple[ValidationIssue, ...] = ()
    tier: ValidationTier = ValidationTier.LOCAL

    @classmethod
    def from_issues(
        cls,
        issues: Sequence[ValidationIssue],
        *,
        tier: ValidationTier = ValidationTier.LOCAL,
    ) -> ValidationResult:
        unique: list[ValidationIssue] = []
        seen: set[str] = set()
        for issue in issues:
            rendered = issue.render()
            if rendered in seen:
                continue
            seen.add(rendered)
            unique.append(issue)
        return cls(
            valid=not unique,
            errors=tuple(issue.render() for issue in unique),
            issues=tuple(unique),
            tier=tier,
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "issues": [issue.to_dict() for issue in self.issues],
            "tier": self.tier.value,
        }


# ---------------------------------------------------------------------------
# Orchestration records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    def __post_init__(self) -> None:
        if self.input_tokens < 0:
            raise ValueError("input_tokens must be >= 0")
        if self.output_tokens < 0:
            raise ValueError("output_tokens must be >= 0")

    def to_dict(self) -> dict[str, JSONValue]:
        return {"input_tokens": self.input_tokens, "output_tokens": self.output_tokens}


@dataclass(frozen=True, slots=True)
class Attempt:
    """One generate-then-validate cycle."""

    index: int
    generated_code: str | None
    usage: TokenUsage | None
    valid: bool
    errors: tuple[str, ...] = ()
    error_type: AttemptErrorType | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "index": self.index,
            "generated_code": self.generated_code,
            "usage": self.usage.to_dict() if self.usage is not None else None,
            "valid": self.valid,
            "errors": list(self.errors),
            "error_type": self.error_type.value if self.error_type is not None else None,
        }


@dataclass(frozen=True, slots=True)
class OrchestrationResult:
    success: bool
    code: str | None
    errors: tuple[str, ...]
    attempts: tuple[Attempt, ...]
    states: tuple[OrchestratorState, ...] = ()

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "success": self.success,
            "code": self.code,
            "errors": list(self.errors),
            "attempts": [attempt.to_dict() for attempt in self.attempts],
            "states": [state.value for state in self.states],
        }

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())


__all__ = [
    "Attempt",
    "AttemptErrorType",
    "BindingIR",
    "ComponentProperty",
    "ConnectConfig",
    "ConnectDescriptor",
    "ConnectKind",
    "DisallowedExpression",
    "EnumMapping",
    "Evidence",
    "ExampleDescriptor",
    "ExpressionKind",
    "HelperCall",
    "HelperKind",
    "ImportDeclaration",
    "ImportSpecifier",
    "IssueKind",
    "JSONValue",
    "Layer",
    "OrchestrationResult",
    "OrchestratorState",
    "PropertyKind",
    "PropsDescriptor",
    "PropsReference",
    "TemplateRegion",
    "TokenUsage",
    "ValidationIssue",
    "ValidationResult",
    "ValidationTier",
    "VariantDescriptor",
]
