"""Logging and metrics for figbind runs."""

from figbind.observability.logging import configure_logging, redact_event_dict, setup_logging
from figbind.observability.metrics import MetricsRegistry

__all__ = ["MetricsRegistry", "configure_logging", "redact_event_dict", "setup_logging"]
