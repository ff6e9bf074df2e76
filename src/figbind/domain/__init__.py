"""
figbind — domain layer

File: src/figbind/domain/__init__.py

Purpose
- Types shared across planes: Evidence, binding IR, validation results, attempts.

Functional requirements
- Domain objects are immutable and serializable via ``to_dict()``.

Non-functional requirements
- No IO at import time; ``evidence_io`` is the only module that touches files.
"""

from figbind.domain.errors import (
    EvidenceLoadError,
    FigbindError,
    GeneratorAuthError,
    GeneratorError,
    GeneratorRateLimitError,
    GeneratorTimeoutError,
    GeneratorTransportError,
    ParseError,
)
from figbind.domain.models import (
    Attempt,
    AttemptErrorType,
    BindingIR,
    ComponentProperty,
    ConnectConfig,
    ConnectDescriptor,
    ConnectKind,
    DisallowedExpression,
    EnumMapping,
    Evidence,
    ExampleDescriptor,
    ExpressionKind,
    HelperCall,
    HelperKind,
    ImportDeclaration,
    ImportSpecifier,
    IssueKind,
    Layer,
    OrchestrationResult,
    OrchestratorState,
    PropertyKind,
    PropsDescriptor,
    PropsReference,
    TemplateRegion,
    TokenUsage,
    ValidationIssue,
    ValidationResult,
    ValidationTier,
    VariantDescriptor,
)

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
    "EvidenceLoadError",
    "ExampleDescriptor",
    "ExpressionKind",
    "FigbindError",
    "GeneratorAuthError",
    "GeneratorError",
    "GeneratorRateLimitError",
    "GeneratorTimeoutError",
    "GeneratorTransportError",
    "HelperCall",
    "HelperKind",
    "ImportDeclaration",
    "ImportSpecifier",
    "IssueKind",
    "Layer",
    "OrchestrationResult",
    "OrchestratorState",
    "ParseError",
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
