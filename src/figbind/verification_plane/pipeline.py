"""
figbind — two-tier validation pipeline

File: src/figbind/verification_plane/pipeline.py

Purpose
- Compose tier 1 (local semantic checks) and tier 2 (authoritative toolchain)
  behind one ``validate`` call used by the retry orchestrator.

Normative behavior
- Tier 2 runs only when tier 1 passes and an authoritative validator is
  configured and not skipped.
- The returned result's ``tier`` names the tier that produced the verdict.
- The parser mode given per call (the target's framework) wins over the
  configured default, for both tiers.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from figbind.domain.models import Evidence, ValidationResult
from figbind.verification_plane.external import AuthoritativeValidator
from figbind.verification_plane.semantic import ParserMode, validate_local


class BindingValidator:
    """Runs the local checks, then (optionally) the authoritative validator."""

    def __init__(
        self,
        *,
        authoritative: AuthoritativeValidator | None = None,
        parser_mode: ParserMode = "react",
        skip_external: bool = False,
        logger: Any | None = None,
    ) -> None:
        if parser_mode not in {"react", "html"}:
            raise ValueError(f"parser_mode must be 'react' or 'html', got {parser_mode!r}")
        self._authoritative = authoritative
        self._parser_mode: ParserMode = parser_mode
        self._skip_external = skip_external
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def parser_mode(self) -> ParserMode:
        return self._parser_mode

    @property
    def external_enabled(self) -> bool:
        return self._authoritative is not None and not self._skip_external

    def _resolve_mode(self, parser_mode: ParserMode | None) -> ParserMode:
        if parser_mode is None:
            return self._parser_mode
        if parser_mode not in {"react", "html"}:
            raise ValueError(f"parser_mode must be 'react' or 'html', got {parser_mode!r}")
        return parser_mode

    def validate_local(
        self,
        code: str,
        evidence: Evidence | Mapping[str, object] | None,
        *,
        parser_mode: ParserMode | None = None,
    ) -> ValidationResult:
        return validate_local(code, evidence, parser_mode=self._resolve_mode(parser_mode))

    async def validate(
        self,
        code: str,
        evidence: Evidence | Mapping[str, object] | None,
        *,
        parser_mode: ParserMode | None = None,
    ) -> ValidationResult:
        """Validate ``code``; ``parser_mode`` overrides the configured default for this call."""
        mode = self._resolve_mode(parser_mode)
        local = self.validate_local(code, evidence, parser_mode=mode)
        if not local.valid:
            self._logger.info(
                "validation_local_failed",
                parser_mode=mode,
                error_count=len(local.errors),
                issue_kinds=sorted({issue.kind.value for issue in local.issues}),
            )
            return local
        authoritative = self._authoritative
        if authoritative is None or self._skip_external:
            return local

        external = await authoritative.validate(code, mode)
        if not external.valid:
            self._logger.info(
                "validation_external_failed",
                parser_mode=mode,
                error_count=len(external.errors),
            )
        return external


__all__ = ["BindingValidator"]
