"""Load design-tool evidence files (scanner JSON output or YAML fixtures)."""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from figbind.domain.errors import EvidenceLoadError
from figbind.domain.models import Evidence

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def load_evidence(path: str | Path) -> Evidence:
    """Read one component's evidence from a ``.json``, ``.yaml`` or ``.yml`` file."""

    resolved = Path(path)
    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise EvidenceLoadError(f"cannot read evidence file {resolved}: {exc}") from exc

    if resolved.suffix.lower() in _YAML_SUFFIXES:
        try:
            payload = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise EvidenceLoadError(f"invalid YAML in {resolved}: {exc}") from exc
    else:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise EvidenceLoadError(f"invalid JSON in {resolved}: {exc}") from exc

    if not isinstance(payload, dict):
        raise EvidenceLoadError(f"{resolved}: evidence root must be an object")
    return Evidence.from_dict(payload)


__all__ = ["load_evidence"]
