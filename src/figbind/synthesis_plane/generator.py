"""
figbind — generator collaborator contract

File: src/figbind/synthesis_plane/generator.py

Purpose
- The narrow async interface the retry orchestrator drives: one prompt pair in,
  one text completion (plus token usage) out.

Functional requirements
- Failures surface as ``GeneratorError`` subclasses; ``map_generator_exception``
  normalizes anything else an SDK might raise.
- Requests carry the per-call token ceiling.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from figbind.domain.errors import (
    GeneratorAuthError,
    GeneratorError,
    GeneratorRateLimitError,
    GeneratorTimeoutError,
    GeneratorTransportError,
)
from figbind.domain.models import JSONValue, TokenUsage


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    system_prompt: str
    user_prompt: str
    max_tokens: int
    label: str = ""

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "system_prompt": self.system_prompt,
            "user_prompt": self.user_prompt,
            "max_tokens": self.max_tokens,
            "label": self.label,
        }


@dataclass(frozen=True, slots=True)
class GenerationResponse:
    text: str
    usage: TokenUsage | None = None


@runtime_checkable
class Generator(Protocol):
    """Model-call collaborator. Transport, auth and cost accounting live behind it."""

    async def generate(self, request: GenerationRequest) -> GenerationResponse: ...


def map_generator_exception(exc: BaseException) -> GeneratorError:
    """Normalize an arbitrary generator exception into the ``GeneratorError`` family."""

    if isinstance(exc, GeneratorError):
        return exc

    status_code = _read_status_code(exc)
    class_name = exc.__class__.__name__.lower()
    detail = _exception_detail(exc)

    if status_code in {401, 403} or "auth" in class_name or "permission" in class_name:
        return GeneratorAuthError(detail)
    if status_code == 429 or "ratelimit" in class_name:
        return GeneratorRateLimitError(detail)
    if isinstance(exc, asyncio.TimeoutError) or "timeout" in class_name:
        return GeneratorTimeoutError(detail)
    return GeneratorTransportError(detail)


def _exception_detail(exc: BaseException) -> str:
    text = str(exc).strip()
    if text:
        return " ".join(text.split())
    return exc.__class__.__name__


def _read_status_code(exc: BaseException) -> int | None:
    for key in ("status_code", "status", "http_status"):
        value = getattr(exc, key, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    if response is not None:
        nested = getattr(response, "status_code", None)
        if isinstance(nested, int):
            return nested
    return None


__all__ = [
    "GenerationRequest",
    "GenerationResponse",
    "Generator",
    "map_generator_exception",
]
