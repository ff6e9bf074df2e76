"""
figbind — verification plane

File: src/figbind/verification_plane/__init__.py

Purpose
- Key-set construction, tier-1 semantic validation, the lexical template scan,
  the authoritative CLI validator and the two-tier pipeline.
"""

from figbind.verification_plane.external import (
    AuthoritativeValidator,
    CommandExecutor,
    CommandResult,
    CommandSpec,
    FigmaCliValidator,
    LocalSubprocessExecutor,
    extract_cli_errors,
)
from figbind.verification_plane.key_sets import (
    KeySets,
    build_key_sets,
    is_boolean_variant,
    normalize_key,
)
from figbind.verification_plane.pipeline import BindingValidator
from figbind.verification_plane.semantic import ParserMode, validate_local
from figbind.verification_plane.template_scan import scan_example_body, scan_template_regions

__all__ = [
    "AuthoritativeValidator",
    "BindingValidator",
    "CommandExecutor",
    "CommandResult",
    "CommandSpec",
    "FigmaCliValidator",
    "KeySets",
    "LocalSubprocessExecutor",
    "ParserMode",
    "build_key_sets",
    "extract_cli_errors",
    "is_boolean_variant",
    "normalize_key",
    "scan_example_body",
    "scan_template_regions",
    "validate_local",
]
