"""
figbind — retry orchestrator

File: src/figbind/control_plane/orchestrator.py

Purpose
- Drive a generator collaborator toward a binding file that passes both
  validation tiers, within a fixed retry budget.

Normative behavior
- States: GENERATING -> VALIDATING -> (SUCCESS | REPAIRING) -> (GENERATING | EXHAUSTED).
  A generator failure goes GENERATING -> (REPAIRING | EXHAUSTED) without validating.
- Attempt 0 sends the initial prompt. Later attempts send a repair prompt built
  from the most recent generated code and the errors it produced; while no
  attempt has produced code the initial prompt is sent again.
- Exactly one ``Attempt`` is appended per generator call, so at most
  ``max_retries + 1`` generator calls happen and ``len(attempts)`` equals the
  number of calls.
- Generator failures are tagged ``error_type="generator"`` and consume the same
  budget as validation failures.
- Each attempt is validated under the target's parser mode (``html`` for
  Angular, ``react`` otherwise); the configured mode is only the validator's
  default.
- The core never edits generated code beyond stripping markdown fences.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

from figbind.control_plane.budgets import OrchestrationContext, RetryBudget
from figbind.domain.models import (
    Attempt,
    AttemptErrorType,
    Evidence,
    OrchestrationResult,
    OrchestratorState,
    ValidationResult,
)
from figbind.synthesis_plane.generator import (
    GenerationRequest,
    Generator,
    map_generator_exception,
)
from figbind.synthesis_plane.prompts import GenerationTarget, PromptBuilder, PromptPair
from figbind.synthesis_plane.response import extract_code_from_response
from figbind.verification_plane.external import FigmaCliValidator
from figbind.verification_plane.pipeline import BindingValidator

if TYPE_CHECKING:
    from figbind.config.schema import FigbindConfig
    from figbind.verification_plane.external import CommandExecutor
    from figbind.verification_plane.semantic import ParserMode


class Validator(Protocol):
    async def validate(
        self,
        code: str,
        evidence: Evidence | Mapping[str, object] | None,
        *,
        parser_mode: ParserMode | None = None,
    ) -> ValidationResult: ...


class RetryOrchestrator:
    """Bounded generate -> validate -> repair loop for one component at a time."""

    def __init__(
        self,
        *,
        generator: Generator,
        validator: Validator,
        prompt_builder: PromptBuilder | None = None,
        budget: RetryBudget | None = None,
        logger: Any | None = None,
    ) -> None:
        self._generator = generator
        self._validator = validator
        self._prompts = prompt_builder if prompt_builder is not None else PromptBuilder()
        self._budget = budget if budget is not None else RetryBudget()
        self._logger = logger

    @classmethod
    def from_config(
        cls,
        config: FigbindConfig,
        *,
        generator: Generator,
        executor: CommandExecutor | None = None,
        prompt_builder: PromptBuilder | None = None,
    ) -> RetryOrchestrator:
        validation = config.validation
        authoritative = (
            FigmaCliValidator(
                executor=executor,
                command=validation.external_command,
                timeout_seconds=validation.external_timeout_seconds,
            )
            if validation.external_enabled
            else None
        )
        return cls(
            generator=generator,
            validator=BindingValidator(
                authoritative=authoritative, parser_mode=validation.parser_mode
            ),
            prompt_builder=prompt_builder,
            budget=RetryBudget(
                max_retries=config.generation.max_retries,
                max_tokens=config.generation.max_tokens,
            ),
        )

    @property
    def budget(self) -> RetryBudget:
        return self._budget

    async def run(
        self,
        evidence: Evidence,
        target: GenerationTarget,
        *,
        context: OrchestrationContext | None = None,
    ) -> OrchestrationResult:
        label = target.component_name or evidence.component_name or "component"
        ctx = context if context is not None else OrchestrationContext(label=label)
        log = self._logger.bind(component=label) if self._logger is not None else ctx.logger

        initial = self._prompts.build_initial(evidence, target)
        max_calls = self._budget.max_generator_calls
        attempts: list[Attempt] = []
        states: list[OrchestratorState] = []
        last_code: str | None = None
        last_code_errors: tuple[str, ...] = ()
        last_errors: tuple[str, ...] = ()

        for index in range(max_calls):
            states.append(OrchestratorState.GENERATING)
            prompt = self._prompt_for(index, initial, last_code, last_code_errors, target)
            request = GenerationRequest(
                system_prompt=prompt.system,
                user_prompt=prompt.user,
                max_tokens=self._budget.max_tokens,
                label=f"{target.framework}-{label}-attempt{index + 1}",
            )
            has_next = index + 1 < max_calls

            try:
                response = await self._generator.generate(request)
            except Exception as exc:  # noqa: BLE001
                error = map_generator_exception(exc)
                ctx.record_generator_call(None)
                ctx.record_generator_failure(error.code)
                last_errors = (f"Generator error: {error.detail}",)
                attempts.append(
                    Attempt(
                        index=index,
                        generated_code=None,
                        usage=None,
                        valid=False,
                        errors=last_errors,
                        error_type=AttemptErrorType.GENERATOR,
                    )
                )
                log.warning(
                    "orchestrator_generator_failed",
                    attempt=index,
                    code=error.code,
                    retryable=error.retryable,
                    detail=error.detail,
                )
                states.append(
                    OrchestratorState.REPAIRING if has_next else OrchestratorState.EXHAUSTED
                )
                continue

            ctx.record_generator_call(response.usage)
            code = extract_code_from_response(response.text)

            states.append(OrchestratorState.VALIDATING)
            result = await self._validator.validate(
                code, evidence, parser_mode=target.parser_mode
            )
            ctx.record_validation(valid=result.valid, tier=result.tier.value)
            attempts.append(
                Attempt(
                    index=index,
                    generated_code=code,
                    usage=response.usage,
                    valid=result.valid,
                    errors=() if result.valid else result.errors,
                    error_type=None if result.valid else AttemptErrorType.VALIDATION,
                )
            )
            log.info(
                "orchestrator_attempt",
                attempt=index,
                valid=result.valid,
                tier=result.tier.value,
                error_count=len(result.errors),
                input_tokens=response.usage.input_tokens if response.usage else None,
                output_tokens=response.usage.output_tokens if response.usage else None,
            )

            if result.valid:
                states.append(OrchestratorState.SUCCESS)
                log.info("orchestrator_success", attempts=len(attempts), **ctx.counters.to_dict())
                return OrchestrationResult(
                    success=True,
                    code=code,
                    errors=(),
                    attempts=tuple(attempts),
                    states=tuple(states),
                )

            last_code = code
            last_code_errors = result.errors
            last_errors = result.errors
            states.append(OrchestratorState.REPAIRING if has_next else OrchestratorState.EXHAUSTED)

        log.warning(
            "orchestrator_exhausted",
            attempts=len(attempts),
            last_errors=list(last_errors),
            **ctx.counters.to_dict(),
        )
        return OrchestrationResult(
            success=False,
            code=None,
            errors=last_errors,
            attempts=tuple(attempts),
            states=tuple(states),
        )

    def _prompt_for(
        self,
        index: int,
        initial: PromptPair,
        last_code: str | None,
        last_code_errors: tuple[str, ...],
        target: GenerationTarget,
    ) -> PromptPair:
        if index == 0 or last_code is None:
            return initial
        return self._prompts.build_repair(
            initial,
            previous_code=last_code,
            errors=last_code_errors,
            target=target,
        )


__all__ = ["RetryOrchestrator", "Validator"]
