"""
figbind — error taxonomy

File: src/figbind/domain/errors.py

Purpose
- Exception classes raised across package boundaries.

Notes
- Expected validation failures are never raised; they are reported as
  ``ValidationIssue`` values (see ``figbind.domain.models.IssueKind``).
- Only ``ParseError`` escapes the IR extractor, and the validator converts it
  into a single-element error list.
"""

from __future__ import annotations


class FigbindError(Exception):
    """Base error for the figbind package."""


class ParseError(FigbindError):
    """Binding source could not be parsed; carries the originating location."""

    def __init__(self, *, filename: str, line: int, column: int, detail: str) -> None:
        self.filename = filename
        self.line = line
        self.column = column
        self.detail = " ".join(str(detail).split()) or "syntax error"
        super().__init__(f"Parse error in {filename}:{line}:{column}: {self.detail}")


class EvidenceLoadError(FigbindError, ValueError):
    """Raised when design-tool evidence cannot be read or is malformed."""


class GeneratorError(FigbindError, RuntimeError):
    """Normalized generator-collaborator failure with machine-readable fields."""

    def __init__(self, *, code: str, detail: str, retryable: bool) -> None:
        self.code = code
        self.detail = _normalize_detail(detail)
        self.retryable = bool(retryable)
        super().__init__(
            f"code={self.code} retryable={str(self.retryable).lower()} detail={self.detail}"
        )


class GeneratorTransportError(GeneratorError):
    """Transport-level failure (network, TLS, connection reset, unknown SDK error)."""

    def __init__(self, detail: str) -> None:
        super().__init__(code="transport", detail=detail, retryable=True)


class GeneratorAuthError(GeneratorError):
    """Authentication/authorization failures."""

    def __init__(self, detail: str) -> None:
        super().__init__(code="auth", detail=detail, retryable=False)


class GeneratorRateLimitError(GeneratorError):
    def __init__(self, detail: str) -> None:
        super().__init__(code="rate_limit", detail=detail, retryable=True)


class GeneratorTimeoutError(GeneratorError):
    def __init__(self, detail: str) -> None:
        super().__init__(code="timeout", detail=detail, retryable=True)


def _normalize_detail(value: object) -> str:
    text = str(value).strip()
    if not text:
        return "unknown error"
    return " ".join(text.split())


__all__ = [
    "EvidenceLoadError",
    "FigbindError",
    "GeneratorAuthError",
    "GeneratorError",
    "GeneratorRateLimitError",
    "GeneratorTimeoutError",
    "GeneratorTransportError",
    "ParseError",
]
