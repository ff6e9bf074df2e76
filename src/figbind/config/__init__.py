"""Configuration: ``figbind.toml`` + ``FIGBIND_*`` env vars + explicit overrides."""

from figbind.config.loader import ConfigLoadError, load_config
from figbind.config.schema import (
    ConfigValidationError,
    ConfigValidationIssue,
    FigbindConfig,
    GenerationSettings,
    LoggingSettings,
    ValidationSettings,
    default_config,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "FigbindConfig",
    "GenerationSettings",
    "LoggingSettings",
    "ValidationSettings",
    "default_config",
    "load_config",
    "validate_config",
]
