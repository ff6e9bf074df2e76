"""
figbind — configuration schema and validation.

File: src/figbind/config/schema.py

Purpose
- Define configuration defaults and strict validation rules.

What should be included in this file
- Validation rules for sections, types, enums and numeric constraints.
- Deterministic deep-merge helper used by the loader.
- The typed ``FigbindConfig`` view handed to the rest of the package.

Functional requirements
- Validate config payloads and return structured errors (field path + message),
  reporting every issue at once.
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from figbind.domain.errors import FigbindError

ParserModeSetting = Literal["react", "html"]

_PARSER_MODES: Final[frozenset[str]] = frozenset({"react", "html"})


class GenerationConfig(TypedDict):
    max_retries: int
    max_tokens: int


class ValidationConfig(TypedDict):
    parser_mode: str
    external_enabled: bool
    external_command: list[str]
    external_timeout_seconds: float


class LoggingSection(TypedDict):
    level: str
    json: bool


class ConfigPayload(TypedDict):
    generation: GenerationConfig
    validation: ValidationConfig
    logging: LoggingSection


DEFAULT_CONFIG: Final[ConfigPayload] = {
    "generation": {
        "max_retries": 2,
        "max_tokens": 2048,
    },
    "validation": {
        "parser_mode": "react",
        "external_enabled": True,
        "external_command": ["npx", "@figma/code-connect"],
        "external_timeout_seconds": 30.0,
    },
    "logging": {
        "level": "INFO",
        "json": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str


class ConfigValidationError(FigbindError, ValueError):
    """Raised when config validation fails; lists every issue found."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)


@dataclass(frozen=True, slots=True)
class GenerationSettings:
    max_retries: int = 2
    max_tokens: int = 2048


@dataclass(frozen=True, slots=True)
class ValidationSettings:
    parser_mode: ParserModeSetting = "react"
    external_enabled: bool = True
    external_command: tuple[str, ...] = ("npx", "@figma/code-connect")
    external_timeout_seconds: float = 30.0


@dataclass(frozen=True, slots=True)
class LoggingSettings:
    level: str = "INFO"
    json: bool = True


@dataclass(frozen=True, slots=True)
class FigbindConfig:
    """Validated, immutable effective configuration."""

    generation: GenerationSettings = GenerationSettings()
    validation: ValidationSettings = ValidationSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> FigbindConfig:
        validated = assert_valid_config(payload)
        generation = validated["generation"]
        validation = validated["validation"]
        log_section = validated["logging"]
        return cls(
            generation=GenerationSettings(
                max_retries=generation["max_retries"],
                max_tokens=generation["max_tokens"],
            ),
            validation=ValidationSettings(
                parser_mode=validation["parser_mode"],
                external_enabled=validation["external_enabled"],
                external_command=tuple(validation["external_command"]),
                external_timeout_seconds=validation["external_timeout_seconds"],
            ),
            logging=LoggingSettings(level=log_section["level"], json=log_section["json"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "generation": {
                "max_retries": self.generation.max_retries,
                "max_tokens": self.generation.max_tokens,
            },
            "validation": {
                "parser_mode": self.validation.parser_mode,
                "external_enabled": self.validation.external_enabled,
                "external_command": list(self.validation.external_command),
                "external_timeout_seconds": self.validation.external_timeout_seconds,
            },
            "logging": {"level": self.logging.level, "json": self.logging.json},
        }


def default_config() -> dict[str, Any]:
    """Deep copy of the built-in defaults."""

    return copy.deepcopy(dict(DEFAULT_CONFIG))


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key in sorted(overlay):
        value = overlay[key]
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: Mapping[str, object] | object) -> tuple[ConfigValidationIssue, ...]:
    issues = _IssueCollector()
    if not isinstance(config, Mapping):
        issues.add("<root>", f"expected object, got {type(config).__name__}")
        return issues.items()

    _reject_unknown_keys(config, {"generation", "validation", "logging"}, "", issues)

    generation = _section(config, "generation", issues)
    if generation is not None:
        _reject_unknown_keys(generation, {"max_retries", "max_tokens"}, "generation", issues)
        _check_int(generation.get("max_retries"), "generation.max_retries", issues, minimum=0)
        _check_int(generation.get("max_tokens"), "generation.max_tokens", issues, minimum=1)

    validation = _section(config, "validation", issues)
    if validation is not None:
        _reject_unknown_keys(
            validation,
            {"parser_mode", "external_enabled", "external_command", "external_timeout_seconds"},
            "validation",
            issues,
        )
        mode = validation.get("parser_mode")
        if not isinstance(mode, str) or mode not in _PARSER_MODES:
            issues.add("validation.parser_mode", f"must be one of react, html (got {mode!r})")
        if not isinstance(validation.get("external_enabled"), bool):
            issues.add("validation.external_enabled", "expected boolean")
        command = validation.get("external_command")
        if (
            not isinstance(command, Sequence)
            or isinstance(command, str)
            or not command
            or not all(isinstance(item, str) and item.strip() for item in command)
        ):
            issues.add("validation.external_command", "must be a non-empty list of strings")
        timeout = validation.get("external_timeout_seconds")
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            issues.add("validation.external_timeout_seconds", "expected number")
        elif not math.isfinite(float(timeout)) or timeout <= 0:
            issues.add("validation.external_timeout_seconds", "must be > 0")

    log_section = _section(config, "logging", issues)
    if log_section is not None:
        _reject_unknown_keys(log_section, {"level", "json"}, "logging", issues)
        level = log_section.get("level")
        if not isinstance(level, str) or not isinstance(
            logging.getLevelName(level.strip().upper()), int
        ):
            issues.add("logging.level", f"unsupported logging level {level!r}")
        if not isinstance(log_section.get("json"), bool):
            issues.add("logging.json", "expected boolean")

    return issues.items()


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    issues = validate_config(config)
    if issues:
        raise ConfigValidationError(issues)
    assert isinstance(config, Mapping)
    normalized = merge_config({}, config)
    normalized["validation"]["external_timeout_seconds"] = float(
        normalized["validation"]["external_timeout_seconds"]
    )
    normalized["logging"]["level"] = normalized["logging"]["level"].strip().upper()
    return normalized


def _section(
    config: Mapping[str, object], name: str, issues: _IssueCollector
) -> Mapping[str, object] | None:
    value = config.get(name)
    if not isinstance(value, Mapping):
        issues.add(name, f"expected object, got {type(value).__name__}")
        return None
    return value


def _reject_unknown_keys(
    payload: Mapping[str, object], allowed: set[str], path: str, issues: _IssueCollector
) -> None:
    for key in sorted(set(payload) - allowed):
        issues.add(f"{path}.{key}" if path else key, "unknown key")


def _check_int(value: object, path: str, issues: _IssueCollector, *, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
    elif value < minimum:
        issues.add(path, f"must be >= {minimum}")


__all__ = [
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DEFAULT_CONFIG",
    "FigbindConfig",
    "GenerationSettings",
    "LoggingSettings",
    "ValidationSettings",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
