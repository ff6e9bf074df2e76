"""
figbind — key-set builder

File: src/figbind/verification_plane/key_sets.py

Purpose
- Derive the six vocabularies of legal helper keys from design-tool evidence.

Functional requirements
- Names are compared after ``normalize_key`` so ``.Label?`` matches ``label``.
- Every variant axis is readable as an enum and as a string.
- Two-valued true/false, yes/no, on/off axes are also boolean-capable.
- Component properties of an unrecognized kind fall back to the string set.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Final

from figbind.domain.models import Evidence, HelperKind, PropertyKind

_BOOLEAN_AXIS_PAIRS: Final[tuple[frozenset[str], ...]] = (
    frozenset({"false", "true"}),
    frozenset({"no", "yes"}),
    frozenset({"off", "on"}),
)


def normalize_key(key: str) -> str:
    """Strip one leading ``.`` and one trailing ``?``, lowercase, trim."""

    text = str(key)
    if text.startswith("."):
        text = text[1:]
    if text.endswith("?"):
        text = text[:-1]
    return text.lower().strip()


def is_boolean_variant(values: Iterable[str | bool]) -> bool:
    items = list(values)
    if len(items) != 2:
        return False
    lowered = frozenset(str(value).lower() for value in items)
    return lowered in _BOOLEAN_AXIS_PAIRS


@dataclass(frozen=True, slots=True)
class KeySets:
    string_keys: frozenset[str] = frozenset()
    boolean_keys: frozenset[str] = frozenset()
    enum_keys: frozenset[str] = frozenset()
    instance_keys: frozenset[str] = frozenset()
    text_layer_names: frozenset[str] = frozenset()
    slot_layer_names: frozenset[str] = frozenset()
    axes: Mapping[str, tuple[str | bool, ...]] = field(default_factory=dict)

    def for_helper(self, kind: HelperKind) -> frozenset[str] | None:
        """Key vocabulary for a helper kind; ``None`` when the helper is never key-checked."""

        if kind is HelperKind.STRING:
            return self.string_keys | self.enum_keys
        if kind is HelperKind.BOOLEAN:
            return self.boolean_keys
        if kind is HelperKind.ENUM:
            return self.enum_keys
        if kind is HelperKind.INSTANCE:
            return self.instance_keys
        if kind is HelperKind.TEXT_CONTENT:
            return self.text_layer_names
        if kind is HelperKind.CHILDREN:
            return self.slot_layer_names
        return None

    def axis_values(self, key: str) -> tuple[str | bool, ...] | None:
        return self.axes.get(normalize_key(key))

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "string_keys": sorted(self.string_keys),
            "boolean_keys": sorted(self.boolean_keys),
            "enum_keys": sorted(self.enum_keys),
            "instance_keys": sorted(self.instance_keys),
            "text_layer_names": sorted(self.text_layer_names),
            "slot_layer_names": sorted(self.slot_layer_names),
        }


def build_key_sets(evidence: Evidence) -> KeySets:
    string_keys: set[str] = set()
    boolean_keys: set[str] = set()
    enum_keys: set[str] = set()
    instance_keys: set[str] = set()
    axes: dict[str, tuple[str | bool, ...]] = {}

    for axis, values in evidence.variant_properties.items():
        normalized = normalize_key(axis)
        enum_keys.add(normalized)
        string_keys.add(normalized)
        axes.setdefault(normalized, tuple(values))
        if is_boolean_variant(values):
            boolean_keys.add(normalized)

    for prop in evidence.component_properties:
        normalized = normalize_key(prop.name)
        if prop.kind is PropertyKind.BOOLEAN:
            boolean_keys.add(normalized)
        elif prop.kind is PropertyKind.INSTANCE_SWAP:
            instance_keys.add(normalized)
        else:
            string_keys.add(normalized)

    return KeySets(
        string_keys=frozenset(string_keys),
        boolean_keys=frozenset(boolean_keys),
        enum_keys=frozenset(enum_keys),
        instance_keys=frozenset(instance_keys),
        text_layer_names=frozenset(normalize_key(layer.name) for layer in evidence.text_layers),
        slot_layer_names=frozenset(normalize_key(layer.name) for layer in evidence.slot_layers),
        axes=axes,
    )


__all__ = ["KeySets", "build_key_sets", "is_boolean_variant", "normalize_key"]
