"""
Per-run orchestration context: retry budget, counters, metrics and logger.

Each ``RetryOrchestrator.run`` owns one ``OrchestrationContext`` (unless the
caller injects one), so concurrent runs for different components never share
mutable state. The context integrates with:
- ``MetricsRegistry`` for counters and token distributions
- ``structlog`` for machine-parseable attempt logs
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from figbind.domain.models import JSONValue, TokenUsage
from figbind.observability.metrics import MetricsRegistry


@dataclass(frozen=True, slots=True)
class RetryBudget:
    """``max_retries`` repairs after the initial attempt; ``max_tokens`` per call."""

    max_retries: int = 2
    max_tokens: int = 2048

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if isinstance(self.max_tokens, bool) or self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")

    @property
    def max_generator_calls(self) -> int:
        return self.max_retries + 1


@dataclass(slots=True)
class RunCounters:
    generator_calls: int = 0
    generator_failures: int = 0
    validation_failures: int = 0
    input_tokens: int = 0
    output_tokens: int = 0

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "generator_calls": self.generator_calls,
            "generator_failures": self.generator_failures,
            "validation_failures": self.validation_failures,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
        }


@dataclass(slots=True)
class OrchestrationContext:
    """Mutable state for exactly one orchestration run."""

    label: str = "component"
    counters: RunCounters = field(default_factory=RunCounters)
    metrics: MetricsRegistry = field(default_factory=MetricsRegistry)
    logger: Any = None

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = structlog.get_logger(__name__).bind(component=self.label)

    def record_generator_call(self, usage: TokenUsage | None) -> None:
        self.counters.generator_calls += 1
        self.metrics.inc("generator_calls")
        if usage is None:
            return
        self.counters.input_tokens += usage.input_tokens
        self.counters.output_tokens += usage.output_tokens
        self.metrics.observe("input_tokens", usage.input_tokens)
        self.metrics.observe("output_tokens", usage.output_tokens)

    def record_generator_failure(self, code: str) -> None:
        self.counters.generator_failures += 1
        self.metrics.inc("generator_failures", labels={"code": code})

    def record_validation(self, *, valid: bool, tier: str) -> None:
        if valid:
            self.metrics.inc("attempts_valid")
            return
        self.counters.validation_failures += 1
        self.metrics.inc("attempts_invalid", labels={"tier": tier})

    def remaining_calls(self, budget: RetryBudget) -> int:
        return max(0, budget.max_generator_calls - self.counters.generator_calls)


__all__ = ["OrchestrationContext", "RetryBudget", "RunCounters"]
