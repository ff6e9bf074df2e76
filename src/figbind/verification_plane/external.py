"""
figbind — authoritative (tier-2) validator

File: src/figbind/verification_plane/external.py

Purpose
- Hand a binding file that passed tier 1 to the real Code Connect toolchain
  (``figma connect parse``) and translate its output into a ``ValidationResult``.

What should be included in this file
- The async command execution contract (``CommandSpec`` / ``CommandResult`` /
  ``CommandExecutor``) and a local subprocess implementation.
- Parsing of CLI ``ParserError`` blocks and prop-mapping complaints.

Functional requirements
- Executor/OS failures and timeouts become ``ExternalValidatorError`` issues;
  nothing is raised for an expected failure.
- Each call runs in its own temporary directory, removed afterwards.

Non-functional requirements
- The subprocess timeout is owned here, not by the orchestrator.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import tempfile
import time
from collections.abc import Mapping, Sequence
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Protocol, runtime_checkable

import structlog

from figbind.domain.models import IssueKind, ValidationIssue, ValidationResult, ValidationTier
from figbind.verification_plane.semantic import ParserMode

DEFAULT_CLI_COMMAND: Final[tuple[str, ...]] = ("npx", "@figma/code-connect")
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
UNKNOWN_FAILURE_MESSAGE: Final[str] = "Figma CLI validation failed (unknown error)"
UNREADABLE_FILE_MESSAGE: Final[str] = "Code Connect file could not be parsed by Figma CLI"

_PARSER_ERROR: Final[re.Pattern[str]] = re.compile(
    r"ParserError[\s\S]*?:\s*([^\n]+)\s*\n\s*->\s*[^:\n]+:(\d+):(\d+)"
)
_MISSING_PROP_MAPPING: Final[re.Pattern[str]] = re.compile(r"Could not find prop mapping for (\w+)")
_UNREADABLE_FILES: Final[str] = "Exiting due to unreadable files"
_MAX_OUTPUT_CHARS: Final[int] = 200_000
_FAILURE_EXCERPT_CHARS: Final[int] = 500


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """One subprocess invocation."""

    argv: tuple[str, ...]
    cwd: str | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    timeout_seconds: float | None = None
    inherit_env: bool = True

    def __post_init__(self) -> None:
        if not self.argv or not all(isinstance(item, str) and item for item in self.argv):
            raise ValueError("CommandSpec.argv must be a non-empty sequence of strings")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("CommandSpec.timeout_seconds must be > 0")
        object.__setattr__(self, "argv", tuple(self.argv))
        object.__setattr__(self, "env", dict(self.env))

    def build_env(self) -> dict[str, str]:
        if not self.inherit_env:
            return dict(self.env)
        env = dict(os.environ)
        env.update(self.env)
        return env


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    exit_code: int | None
    stdout: str
    stderr: str
    duration_ms: int
    timed_out: bool = False
    error: str | None = None

    def is_success(self) -> bool:
        return not self.timed_out and self.error is None and self.exit_code == 0


@runtime_checkable
class CommandExecutor(Protocol):
    """Pluggable async command execution interface."""

    async def run(self, spec: CommandSpec) -> CommandResult: ...


class LocalSubprocessExecutor(CommandExecutor):
    """Async local subprocess executor with output capture and a hard timeout."""

    def __init__(self, *, max_output_chars: int | None = _MAX_OUTPUT_CHARS) -> None:
        self._max_output_chars = max_output_chars

    async def run(self, spec: CommandSpec) -> CommandResult:
        started_ns = time.monotonic_ns()
        try:
            process = await asyncio.create_subprocess_exec(
                *spec.argv,
                cwd=spec.cwd,
                env=spec.build_env(),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return CommandResult(
                argv=spec.argv,
                exit_code=None,
                stdout="",
                stderr="",
                duration_ms=_elapsed_ms(started_ns),
                error=str(exc),
            )

        try:
            if spec.timeout_seconds is None:
                stdout_bytes, stderr_bytes = await process.communicate()
            else:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(), timeout=spec.timeout_seconds
                )
        except TimeoutError:
            with suppress(ProcessLookupError):
                process.kill()
            stdout_bytes, stderr_bytes = await process.communicate()
            return CommandResult(
                argv=spec.argv,
                exit_code=None,
                stdout=self._decode(stdout_bytes),
                stderr=self._decode(stderr_bytes),
                duration_ms=_elapsed_ms(started_ns),
                timed_out=True,
                error=f"command timed out after {spec.timeout_seconds:.3f}s",
            )
        except asyncio.CancelledError:
            with suppress(ProcessLookupError):
                process.kill()
            await process.communicate()
            raise

        return CommandResult(
            argv=spec.argv,
            exit_code=process.returncode,
            stdout=self._decode(stdout_bytes),
            stderr=self._decode(stderr_bytes),
            duration_ms=_elapsed_ms(started_ns),
        )

    def _decode(self, raw: bytes) -> str:
        text = raw.decode("utf-8", errors="replace").replace("\r\n", "\n").replace("\r", "\n")
        if self._max_output_chars is None or len(text) <= self._max_output_chars:
            return text
        omitted = len(text) - self._max_output_chars
        return f"{text[: self._max_output_chars]}\n...[truncated {omitted} chars]"


@runtime_checkable
class AuthoritativeValidator(Protocol):
    async def validate(self, code: str, parser_mode: ParserMode) -> ValidationResult: ...


class FigmaCliValidator(AuthoritativeValidator):
    """Runs ``<command> connect parse`` against a throwaway Code Connect project."""

    def __init__(
        self,
        *,
        executor: CommandExecutor | None = None,
        command: Sequence[str] = DEFAULT_CLI_COMMAND,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        logger: Any | None = None,
    ) -> None:
        if not command:
            raise ValueError("command must not be empty")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._executor = executor if executor is not None else LocalSubprocessExecutor()
        self._command = tuple(command)
        self._timeout_seconds = float(timeout_seconds)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    async def validate(self, code: str, parser_mode: ParserMode = "react") -> ValidationResult:
        extension = ".figma.tsx" if parser_mode == "react" else ".figma.ts"
        with tempfile.TemporaryDirectory(prefix="figbind-validate-") as workdir:
            root = Path(workdir)
            config_path = root / "figma.config.json"
            try:
                (root / f"temp{extension}").write_text(code, encoding="utf-8")
                config_path.write_text(
                    json.dumps({"codeConnect": {"parser": parser_mode, "include": [f"*{extension}"]}}),
                    encoding="utf-8",
                )
            except OSError as exc:
                return self._failure([f"Figma CLI validation error: {exc}"])

            spec = CommandSpec(
                argv=(
                    *self._command,
                    "connect",
                    "parse",
                    "-c",
                    str(config_path),
                    "--exit-on-unreadable-files",
                ),
                cwd=str(root),
                env={"FORCE_COLOR": "0"},
                timeout_seconds=self._timeout_seconds,
            )
            result = await self._executor.run(spec)

        if result.timed_out or result.error is not None:
            detail = result.error or "command failed"
            self._logger.warning(
                "validation_external_error",
                argv=list(result.argv),
                timed_out=result.timed_out,
                detail=detail,
            )
            return self._failure([f"Figma CLI validation error: {detail}"])

        if result.exit_code == 0 and "ParserError" not in result.stderr:
            return ValidationResult(valid=True, tier=ValidationTier.EXTERNAL)

        errors = extract_cli_errors(result.stdout, result.stderr)
        self._logger.info(
            "validation_external_failed",
            exit_code=result.exit_code,
            error_count=len(errors),
            duration_ms=result.duration_ms,
        )
        return self._failure(errors or _unparsed_failure_details(result))

    async def is_available(self) -> bool:
        """True when ``<command> --version`` exits cleanly."""

        result = await self._executor.run(
            CommandSpec(argv=(*self._command, "--version"), timeout_seconds=10.0)
        )
        return result.is_success()

    @staticmethod
    def _failure(messages: Sequence[str]) -> ValidationResult:
        return ValidationResult.from_issues(
            [ValidationIssue(kind=IssueKind.EXTERNAL, message=message) for message in messages],
            tier=ValidationTier.EXTERNAL,
        )


def extract_cli_errors(stdout: str = "", stderr: str = "") -> list[str]:
    """Human-readable errors from ``figma connect parse`` output."""

    combined = f"{stdout}\n{stderr}"
    errors: list[str] = []
    for match in _PARSER_ERROR.finditer(combined):
        errors.append(f"Line {match.group(2)}: {match.group(1).strip()}")
    for match in _MISSING_PROP_MAPPING.finditer(combined):
        prop_name = match.group(1)
        if any(prop_name in error for error in errors):
            continue
        errors.append(f"Prop '{prop_name}' used in example() but not defined in props object")
    if not errors and _UNREADABLE_FILES in combined:
        errors.append(UNREADABLE_FILE_MESSAGE)
    return errors


def _unparsed_failure_details(result: CommandResult) -> list[str]:
    """Exit code and output excerpts for a failure with no recognizable errors."""

    details = [UNKNOWN_FAILURE_MESSAGE, f"Exit code: {result.exit_code}"]
    stdout = result.stdout.strip()
    stderr = result.stderr.strip()
    if stdout:
        details.append(f"stdout: {stdout[:_FAILURE_EXCERPT_CHARS]}")
    if stderr:
        details.append(f"stderr: {stderr[:_FAILURE_EXCERPT_CHARS]}")
    return details


def _elapsed_ms(started_ns: int) -> int:
    return max(0, (time.monotonic_ns() - started_ns) // 1_000_000)


__all__ = [
    "AuthoritativeValidator",
    "CommandExecutor",
    "CommandResult",
    "CommandSpec",
    "DEFAULT_CLI_COMMAND",
    "DEFAULT_TIMEOUT_SECONDS",
    "FigmaCliValidator",
    "LocalSubprocessExecutor",
    "UNKNOWN_FAILURE_MESSAGE",
    "UNREADABLE_FILE_MESSAGE",
    "extract_cli_errors",
]
