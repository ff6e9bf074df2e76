"""
figbind — unit tests for structured logging setup

File: tests/unit/observability/test_logging_setup.py

Purpose
- Verify JSON/console rendering through the ``figbind`` stdlib logger, level
  filtering and secret redaction.
"""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from figbind.config import load_config
from figbind.observability.logging import configure_logging, redact_event_dict, setup_logging

REDACTED = "***REDACTED***"


@pytest.fixture
def log_stream() -> Iterator[io.StringIO]:
    stream = io.StringIO()
    yield stream
    structlog.reset_defaults()
    logging.getLogger("figbind").handlers.clear()


def _records(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_json_output_with_redaction(log_stream: io.StringIO) -> None:
    setup_logging("DEBUG", json_output=True, stream=log_stream)

    structlog.get_logger("figbind.tests").info(
        "generator_call",
        api_key="sk-ant-REDACTED",
        input_tokens=12,
        max_tokens=2048,
        detail="request failed with Bearer abc.def123 and token=xyz",
        argv=["npx", "--key", "sk-abcdefghijklmnop1234"],
    )

    (record,) = _records(log_stream)
    assert record["event"] == "generator_call"
    assert record["level"] == "info"
    assert record["logger"] == "figbind.tests"
    assert record["api_key"] == REDACTED
    assert record["input_tokens"] == 12
    assert record["max_tokens"] == 2048
    assert "abc.def123" not in record["detail"]
    assert "xyz" not in record["detail"]
    assert record["argv"] == ["npx", "--key", REDACTED]
    assert "timestamp" in record


def test_level_filtering(log_stream: io.StringIO) -> None:
    setup_logging("WARNING", stream=log_stream)
    logger = structlog.get_logger("figbind.tests")

    logger.info("orchestrator_attempt", attempt=0)
    logger.warning("orchestrator_exhausted", attempts=3)

    assert [record["event"] for record in _records(log_stream)] == ["orchestrator_exhausted"]


def test_console_output(log_stream: io.StringIO) -> None:
    setup_logging("INFO", json_output=False, stream=log_stream)

    structlog.get_logger("figbind.tests").info("validation_local_failed", error_count=2)

    output = log_stream.getvalue()
    assert "validation_local_failed" in output
    assert "error_count=2" in output


def test_setup_replaces_previous_handler(log_stream: io.StringIO) -> None:
    other = io.StringIO()
    setup_logging("INFO", stream=other)
    logger = setup_logging("INFO", stream=log_stream)

    structlog.get_logger("figbind.tests").info("orchestrator_success")

    assert len(logger.handlers) == 1
    assert logger.propagate is False
    assert other.getvalue() == ""
    assert len(_records(log_stream)) == 1


def test_invalid_level_is_rejected() -> None:
    with pytest.raises(ValueError, match="unsupported logging level"):
        setup_logging("LOUD")


def test_redact_event_dict_handles_nested_values() -> None:
    event = redact_event_dict(
        None,
        "info",
        {
            "event": "x",
            "password": "hunter2",
            "nested": {"auth_token": "abc", "count": 1},
            "output_tokens": 10,
        },
    )

    assert event == {
        "event": "x",
        "password": REDACTED,
        "nested": {"auth_token": REDACTED, "count": 1},
        "output_tokens": 10,
    }


def test_configure_logging_applies_config_section(log_stream: io.StringIO) -> None:
    config = load_config(
        overrides={"logging.level": "WARNING", "logging.json": False}, environ={}
    )

    logger = configure_logging(config, stream=log_stream)
    structlog.get_logger("figbind.tests").info("orchestrator_attempt", attempt=0)
    structlog.get_logger("figbind.tests").warning("orchestrator_exhausted", attempts=3)

    assert logger.level == logging.WARNING
    output = log_stream.getvalue()
    assert "orchestrator_attempt" not in output
    assert "orchestrator_exhausted" in output
    assert "attempts=3" in output
    assert not output.lstrip().startswith("{")


def test_configure_logging_from_environment(log_stream: io.StringIO) -> None:
    config = load_config(environ={"FIGBIND_LOGGING_LEVEL": "debug"})

    configure_logging(config, stream=log_stream)
    structlog.get_logger("figbind.tests").debug("validation_local_failed", error_count=1)

    (record,) = _records(log_stream)
    assert record["event"] == "validation_local_failed"
    assert record["level"] == "debug"
