"""
figbind — unit tests for config loading and validation

File: tests/unit/config/test_config_loader.py

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides and
  explicit overrides, plus strict schema validation.

What this test file should cover
- Precedence: overrides > env > file > defaults.
- Env var naming and type coercion (int, float, bool, whitespace-split list).
- Every invalid field reported in one error.
- Missing explicit file and malformed TOML.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from figbind.config import (
    ConfigLoadError,
    ConfigValidationError,
    FigbindConfig,
    default_config,
    load_config,
    validate_config,
)


def _write_config(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    config = load_config(environ={})

    assert config == FigbindConfig()
    assert config.generation.max_retries == 2
    assert config.generation.max_tokens == 2048
    assert config.validation.parser_mode == "react"
    assert config.validation.external_command == ("npx", "@figma/code-connect")
    assert config.validation.external_timeout_seconds == 30.0
    assert config.logging.level == "INFO"


def test_default_file_in_cwd_is_picked_up(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_config(tmp_path / "figbind.toml", "[generation]\nmax_retries = 3\n")
    monkeypatch.chdir(tmp_path)

    assert load_config(environ={}).generation.max_retries == 3


def test_precedence_overrides_env_file_defaults(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path / "figbind.toml",
        """
[generation]
max_retries = 5
max_tokens = 1000

[validation]
parser_mode = "html"
""".strip(),
    )

    config = load_config(
        config_path,
        overrides={"generation.max_retries": 1},
        environ={"FIGBIND_GENERATION_MAX_RETRIES": "3", "FIGBIND_GENERATION_MAX_TOKENS": "4096"},
    )

    assert config.generation.max_retries == 1
    assert config.generation.max_tokens == 4096
    assert config.validation.parser_mode == "html"
    assert config.logging.json is True


def test_env_values_are_coerced(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "figbind.toml", "")

    config = load_config(
        config_path,
        environ={
            "FIGBIND_VALIDATION_EXTERNAL_ENABLED": "off",
            "FIGBIND_VALIDATION_EXTERNAL_COMMAND": "pnpm dlx @figma/code-connect",
            "FIGBIND_VALIDATION_EXTERNAL_TIMEOUT_SECONDS": "12",
            "FIGBIND_LOGGING_LEVEL": "debug",
            "FIGBIND_LOGGING_JSON": "no",
            "FIGBIND_UNRELATED": "ignored",
        },
    )

    assert config.validation.external_enabled is False
    assert config.validation.external_command == ("pnpm", "dlx", "@figma/code-connect")
    assert config.validation.external_timeout_seconds == 12.0
    assert config.logging.level == "DEBUG"
    assert config.logging.json is False


@pytest.mark.parametrize(
    ("env_name", "value", "fragment"),
    [
        ("FIGBIND_GENERATION_MAX_TOKENS", "lots", "must be an integer"),
        ("FIGBIND_VALIDATION_EXTERNAL_TIMEOUT_SECONDS", "soon", "must be a number"),
        ("FIGBIND_VALIDATION_EXTERNAL_ENABLED", "maybe", "must be a boolean"),
    ],
)
def test_uncoercible_env_values_raise(
    tmp_path: Path, env_name: str, value: str, fragment: str
) -> None:
    config_path = _write_config(tmp_path / "figbind.toml", "")

    with pytest.raises(ConfigLoadError, match=fragment) as exc_info:
        load_config(config_path, environ={env_name: value})

    assert env_name in str(exc_info.value)


def test_nested_mapping_overrides(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "figbind.toml", "")

    config = load_config(
        config_path,
        overrides={"validation": {"external_enabled": False}},
        environ={},
    )

    assert config.validation.external_enabled is False
    assert config.validation.parser_mode == "react"


def test_invalid_values_are_all_reported(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "figbind.toml", "")

    with pytest.raises(ConfigValidationError) as exc_info:
        load_config(
            config_path,
            overrides={
                "generation.max_retries": -1,
                "validation.parser_mode": "vue",
                "logging.level": "LOUD",
            },
            environ={},
        )

    paths = {issue.path for issue in exc_info.value.issues}
    assert paths == {"generation.max_retries", "validation.parser_mode", "logging.level"}
    assert isinstance(exc_info.value, ValueError)


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "figbind.toml", "[generation]\ntemperature = 0.2\n")

    with pytest.raises(ConfigValidationError, match="generation.temperature"):
        load_config(config_path, environ={})


def test_missing_explicit_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "absent.toml", environ={})


def test_malformed_toml_is_an_error(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "figbind.toml", "[generation\nmax_retries = ")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


def test_validate_config_reports_structural_problems() -> None:
    assert validate_config(default_config()) == ()

    root_issues = validate_config(["not", "a", "mapping"])
    assert [issue.path for issue in root_issues] == ["<root>"]

    payload = default_config()
    payload["validation"]["external_command"] = []
    payload["validation"]["external_timeout_seconds"] = 0
    payload["logging"]["json"] = "yes"
    del payload["generation"]
    paths = [issue.path for issue in validate_config(payload)]
    assert paths == [
        "generation",
        "validation.external_command",
        "validation.external_timeout_seconds",
        "logging.json",
    ]


def test_config_round_trips_through_dict(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "figbind.toml", "[logging]\nlevel = \"warning\"\n")
    config = load_config(config_path, environ={})

    assert config.logging.level == "WARNING"
    assert FigbindConfig.from_dict(config.to_dict()) == config
