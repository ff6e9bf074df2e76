"""Pull binding source out of a model completion."""

from __future__ import annotations

import re
from typing import Final

_FENCED_BLOCK: Final[re.Pattern[str]] = re.compile(
    r"```(?:tsx?|typescript|javascript|js)?[^\n]*\n([\s\S]*?)```"
)


def extract_code_from_response(text: str) -> str:
    """Return the first fenced code block's body, or the whole reply when unfenced."""

    match = _FENCED_BLOCK.search(text)
    if match is not None:
        return match.group(1).strip()
    return text.strip()


__all__ = ["extract_code_from_response"]
