"""
figbind — end-to-end orchestration with both validation tiers

File: tests/integration/test_end_to_end.py

Purpose
- Drive ``RetryOrchestrator.from_config`` with a scripted generator and a fake
  Code Connect CLI, exercising config, prompts, both validation tiers, metrics
  and JSON logging together.

Functional requirements
- Offline: no model calls, no ``npx``.
"""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytest
import structlog

from figbind import GenerationTarget, RetryOrchestrator, load_evidence
from figbind.config import load_config
from figbind.control_plane import OrchestrationContext
from figbind.domain.models import AttemptErrorType, OrchestratorState
from figbind.observability import configure_logging
from figbind.synthesis_plane.generator import GenerationRequest, GenerationResponse
from figbind.verification_plane.external import CommandResult, CommandSpec

REACT_CODE = """import figma from "@figma/code-connect"
import { Button } from "./Button"

figma.connect(Button, "https://www.figma.com/design/abc?node-id=1-1", {
  props: {
    label: figma.string("Label"),
    size: figma.enum("Size", { Small: "sm", Large: "lg" }),
  },
  example: (props) => <Button size={props.size}>{props.label}</Button>,
})"""

REACT_CODE_WITH_TERNARY = REACT_CODE.replace(
    "{props.label}</Button>", '{props.size ? "a" : "b"}</Button>'
)

ANGULAR_CODE = """import figma, { html } from "@figma/code-connect/html"

figma.connect("https://www.figma.com/design/abc?node-id=2-2", {
  props: {
    label: figma.string("Label"),
  },
  example: (props) => html`<ds-button label="${props.label}"></ds-button>`,
})"""

ANGULAR_CODE_WITH_INTERPOLATION_LOGIC = ANGULAR_CODE.replace(
    'label="${props.label}">', ">{{ label || 'Default' }}"
)

CLI_PARSER_ERROR = "ParserError: Could not resolve import\n  -> temp.figma.tsx:2:1\n"


@dataclass(slots=True)
class ScriptedGenerator:
    replies: list[str]
    requests: list[GenerationRequest] = field(default_factory=list)

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        reply = self.replies[min(len(self.requests), len(self.replies) - 1)]
        self.requests.append(request)
        return GenerationResponse(text=f"```tsx\n{reply}\n```")


@dataclass(slots=True)
class FakeCliExecutor:
    """Fails the first ``failures`` parses with a ParserError, then succeeds."""

    failures: int = 1
    specs: list[CommandSpec] = field(default_factory=list)
    parsed_files: list[str] = field(default_factory=list)

    async def run(self, spec: CommandSpec) -> CommandResult:
        self.specs.append(spec)
        assert spec.cwd is not None
        self.parsed_files.extend(
            path.name for path in Path(spec.cwd).iterdir() if path.name.startswith("temp.")
        )
        failing = len(self.specs) <= self.failures
        return CommandResult(
            argv=spec.argv,
            exit_code=1 if failing else 0,
            stdout="",
            stderr=CLI_PARSER_ERROR if failing else "",
            duration_ms=5,
        )


@pytest.fixture
def evidence_file(tmp_path: Path) -> Path:
    path = tmp_path / "button.json"
    path.write_text(
        json.dumps(
            {
                "componentName": "Button",
                "variantProperties": {"Size": ["Small", "Large"]},
                "componentProperties": [{"name": "Label", "type": "TEXT"}],
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def log_stream() -> Iterator[io.StringIO]:
    stream = io.StringIO()
    configure_logging(load_config(environ={}), stream=stream)
    yield stream
    structlog.reset_defaults()
    logging.getLogger("figbind").handlers.clear()


def _events(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


@pytest.mark.asyncio
async def test_external_failure_is_repaired_through_the_cli_loop(
    evidence_file: Path, log_stream: io.StringIO
) -> None:
    config = load_config(overrides={"generation.max_retries": 2}, environ={})
    generator = ScriptedGenerator([REACT_CODE])
    executor = FakeCliExecutor(failures=1)
    orchestrator = RetryOrchestrator.from_config(config, generator=generator, executor=executor)
    context = OrchestrationContext(label="Button")
    target = GenerationTarget(
        figma_url="https://www.figma.com/design/abc?node-id=1-1",
        component_name="Button",
        import_path="./Button",
    )

    result = await orchestrator.run(load_evidence(evidence_file), target, context=context)

    assert result.success is True
    assert result.code == REACT_CODE
    assert len(result.attempts) == 2
    assert result.attempts[0].errors == ("Line 2: Could not resolve import",)
    assert result.attempts[0].error_type is AttemptErrorType.VALIDATION
    assert len(executor.specs) == 2
    assert executor.parsed_files == ["temp.figma.tsx", "temp.figma.tsx"]
    assert "- Line 2: Could not resolve import" in generator.requests[1].user_prompt
    assert context.metrics.get_counter("attempts_invalid", labels={"tier": "external"}) == 1.0

    events = [record["event"] for record in _events(log_stream)]
    assert "validation_external_failed" in events
    assert events[-1] == "orchestrator_success"
    success = _events(log_stream)[-1]
    assert success["component"] == "Button"
    assert success["generator_calls"] == 2


@pytest.mark.asyncio
async def test_local_failures_never_reach_the_cli(
    evidence_file: Path, log_stream: io.StringIO
) -> None:
    config = load_config(overrides={"generation.max_retries": 1}, environ={})
    generator = ScriptedGenerator([REACT_CODE_WITH_TERNARY])
    executor = FakeCliExecutor(failures=0)
    orchestrator = RetryOrchestrator.from_config(config, generator=generator, executor=executor)
    target = GenerationTarget(figma_url="https://www.figma.com/design/abc?node-id=1-1")

    result = await orchestrator.run(load_evidence(evidence_file), target)

    assert result.success is False
    assert len(generator.requests) == 2
    assert executor.specs == []
    assert any("Ternary expression" in error for error in result.errors)
    assert result.states[-1] is OrchestratorState.EXHAUSTED
    assert _events(log_stream)[-1]["event"] == "orchestrator_exhausted"


@pytest.mark.asyncio
async def test_angular_binding_converges_in_html_mode(evidence_file: Path) -> None:
    config = load_config(
        overrides={"validation.parser_mode": "html", "generation.max_retries": 2}, environ={}
    )
    generator = ScriptedGenerator([ANGULAR_CODE_WITH_INTERPOLATION_LOGIC, ANGULAR_CODE])
    executor = FakeCliExecutor(failures=0)
    orchestrator = RetryOrchestrator.from_config(config, generator=generator, executor=executor)
    target = GenerationTarget(
        figma_url="https://www.figma.com/design/abc?node-id=2-2",
        component_name="ButtonComponent",
        framework="angular",
        selector="ds-button",
        inputs=("label",),
    )

    result = await orchestrator.run(load_evidence(evidence_file), target)

    assert result.success is True
    assert result.code == ANGULAR_CODE
    assert result.attempts[0].errors[0].startswith(
        "Line 7: Logical operator in template interpolation"
    )
    assert executor.parsed_files == ["temp.figma.ts"]
    assert generator.requests[0].label == "angular-ButtonComponent-attempt1"
    assert "```ts\n" in generator.requests[1].user_prompt


@dataclass(slots=True)
class ProjectCapturingExecutor:
    """Succeeds, recording the temp project's files and Code Connect config."""

    files: list[list[str]] = field(default_factory=list)
    configs: list[dict[str, object]] = field(default_factory=list)

    async def run(self, spec: CommandSpec) -> CommandResult:
        assert spec.cwd is not None
        root = Path(spec.cwd)
        self.files.append(sorted(path.name for path in root.iterdir()))
        self.configs.append(json.loads((root / "figma.config.json").read_text(encoding="utf-8")))
        return CommandResult(argv=spec.argv, exit_code=0, stdout="", stderr="", duration_ms=1)


@pytest.mark.asyncio
async def test_angular_target_uses_html_parser_under_default_config(
    evidence_file: Path,
) -> None:
    config = load_config(environ={})
    assert config.validation.parser_mode == "react"
    generator = ScriptedGenerator([ANGULAR_CODE])
    executor = ProjectCapturingExecutor()
    orchestrator = RetryOrchestrator.from_config(config, generator=generator, executor=executor)
    target = GenerationTarget(
        figma_url="https://www.figma.com/design/abc?node-id=2-2",
        component_name="ButtonComponent",
        framework="angular",
        selector="ds-button",
    )

    result = await orchestrator.run(load_evidence(evidence_file), target)

    assert result.success is True
    assert len(result.attempts) == 1
    assert executor.files == [["figma.config.json", "temp.figma.ts"]]
    assert executor.configs[0]["codeConnect"] == {"parser": "html", "include": ["*.figma.ts"]}


@pytest.mark.asyncio
async def test_react_target_keeps_react_parser_when_config_says_html(
    evidence_file: Path,
) -> None:
    config = load_config(overrides={"validation.parser_mode": "html"}, environ={})
    executor = ProjectCapturingExecutor()
    orchestrator = RetryOrchestrator.from_config(
        config, generator=ScriptedGenerator([REACT_CODE]), executor=executor
    )

    result = await orchestrator.run(
        load_evidence(evidence_file),
        GenerationTarget(figma_url="https://www.figma.com/design/abc?node-id=1-1"),
    )

    assert result.success is True
    assert executor.files == [["figma.config.json", "temp.figma.tsx"]]
    assert executor.configs[0]["codeConnect"]["parser"] == "react"  # type: ignore[index]


@pytest.mark.asyncio
async def test_disabled_external_tier_trusts_local_validation(evidence_file: Path) -> None:
    config = load_config(overrides={"validation.external_enabled": False}, environ={})
    generator = ScriptedGenerator([REACT_CODE])
    executor = FakeCliExecutor(failures=5)
    orchestrator = RetryOrchestrator.from_config(config, generator=generator, executor=executor)

    result = await orchestrator.run(
        load_evidence(evidence_file),
        GenerationTarget(figma_url="https://www.figma.com/design/abc?node-id=1-1"),
    )

    assert result.success is True
    assert executor.specs == []
