"""
figbind — prompt construction

File: src/figbind/synthesis_plane/prompts.py

Purpose
- Render the system, initial and repair prompts from the jinja2 templates in
  ``synthesis_plane/templates``.

Functional requirements
- Rendering is deterministic for the same inputs (evidence JSON uses sorted
  keys, source context is rendered in path order).
- A repair prompt is the original user prompt, a ``---`` separator, the
  validator's errors and the previous code.
- Missing template variables fail loudly (``StrictUndefined``).
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Literal

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

from figbind.domain.errors import FigbindError
from figbind.domain.models import Evidence

Framework = Literal["react", "angular"]

MAX_SOURCE_CONTEXT_CHARS: Final[int] = 20_000
_DEFAULT_TEMPLATE_ROOT: Final[Path] = Path(__file__).resolve().parent / "templates"


class PromptTemplateError(FigbindError, RuntimeError):
    """Template missing or failed to render."""


@dataclass(frozen=True, slots=True)
class GenerationTarget:
    """Where the binding points: design URL plus the code-side component."""

    figma_url: str
    component_name: str | None = None
    framework: Framework = "react"
    import_path: str | None = None
    selector: str | None = None
    inputs: tuple[str, ...] = ()
    valid_props: tuple[str, ...] = ()
    source_context: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.figma_url.strip():
            raise ValueError("figma_url must not be empty")
        if self.framework not in {"react", "angular"}:
            raise ValueError(f"framework must be 'react' or 'angular', got {self.framework!r}")
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "valid_props", tuple(self.valid_props))
        object.__setattr__(self, "source_context", dict(self.source_context))

    @property
    def parser_mode(self) -> Literal["react", "html"]:
        return "html" if self.framework == "angular" else "react"

    @property
    def file_suffix(self) -> str:
        return ".figma.ts" if self.framework == "angular" else ".figma.tsx"


@dataclass(frozen=True, slots=True)
class PromptPair:
    system: str
    user: str


class PromptBuilder:
    def __init__(self, *, template_root: Path | str | None = None) -> None:
        root = Path(template_root) if template_root is not None else _DEFAULT_TEMPLATE_ROOT
        if not root.is_dir():
            raise PromptTemplateError(f"template root is not a directory: {root}")
        self._environment = Environment(
            loader=FileSystemLoader(str(root)),
            undefined=StrictUndefined,
            autoescape=False,
            newline_sequence="\n",
            keep_trailing_newline=False,
        )

    def build_initial(self, evidence: Evidence, target: GenerationTarget) -> PromptPair:
        component_name = target.component_name or evidence.component_name or "Component"
        user = self._render(
            "initial.j2",
            evidence_json=json.dumps(evidence.to_dict(), indent=2, sort_keys=True, ensure_ascii=False),
            framework=target.framework,
            component_name=component_name,
            import_path=target.import_path or "unknown",
            selector=target.selector or component_name.lower(),
            inputs=list(target.inputs),
            valid_props=list(target.valid_props),
            figma_url=target.figma_url,
            source_context=[
                (path, content[:MAX_SOURCE_CONTEXT_CHARS])
                for path, content in sorted(target.source_context.items())
            ],
            source_fence=_source_fence(target),
            file_suffix=target.file_suffix,
        )
        return PromptPair(system=self.build_system(target), user=user)

    def build_system(self, target: GenerationTarget) -> str:
        import_source = (
            "@figma/code-connect/html" if target.framework == "angular" else "@figma/code-connect"
        )
        return self._render(
            "system.j2",
            framework=target.framework,
            file_suffix=target.file_suffix,
            import_source=import_source,
        )

    def build_repair(
        self,
        initial: PromptPair,
        *,
        previous_code: str,
        errors: Sequence[str],
        target: GenerationTarget,
    ) -> PromptPair:
        user = self._render(
            "repair.j2",
            original_user=initial.user,
            errors=list(errors),
            previous_code=previous_code,
            source_fence=_source_fence(target),
            file_suffix=target.file_suffix,
        )
        return PromptPair(system=initial.system, user=user)

    def _render(self, template_name: str, **variables: object) -> str:
        try:
            template = self._environment.get_template(template_name)
        except TemplateNotFound as exc:
            raise PromptTemplateError(f"prompt template not found: {template_name}") from exc
        return template.render(**variables).strip()


def _source_fence(target: GenerationTarget) -> str:
    return "ts" if target.framework == "angular" else "tsx"


__all__ = [
    "Framework",
    "GenerationTarget",
    "MAX_SOURCE_CONTEXT_CHARS",
    "PromptBuilder",
    "PromptPair",
    "PromptTemplateError",
]
