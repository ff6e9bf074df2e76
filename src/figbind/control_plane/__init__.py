"""Retry orchestration: the generate/validate/repair state machine and its run context."""

from figbind.control_plane.budgets import OrchestrationContext, RetryBudget, RunCounters
from figbind.control_plane.orchestrator import RetryOrchestrator, Validator

__all__ = [
    "OrchestrationContext",
    "RetryBudget",
    "RetryOrchestrator",
    "RunCounters",
    "Validator",
]
