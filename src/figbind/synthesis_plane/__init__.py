"""
figbind — synthesis plane

File: src/figbind/synthesis_plane/__init__.py

Purpose
- Generator contract, prompt rendering and response cleanup.
"""

from figbind.synthesis_plane.generator import (
    GenerationRequest,
    GenerationResponse,
    Generator,
    map_generator_exception,
)
from figbind.synthesis_plane.prompts import (
    GenerationTarget,
    PromptBuilder,
    PromptPair,
    PromptTemplateError,
)
from figbind.synthesis_plane.response import extract_code_from_response

__all__ = [
    "GenerationRequest",
    "GenerationResponse",
    "GenerationTarget",
    "Generator",
    "PromptBuilder",
    "PromptPair",
    "PromptTemplateError",
    "extract_code_from_response",
    "map_generator_exception",
]
