"""
figbind — Code Connect binding validation and retry-convergence engine

File: src/figbind/__init__.py

Purpose
- Package root. Exposes the small public surface: IR extraction, tier-1
  validation, the two-tier validator and the retry orchestrator.

Functional requirements
- No side effects at import time (no config loading, no logging setup).
"""

from figbind.control_plane.orchestrator import RetryOrchestrator
from figbind.domain.evidence_io import load_evidence
from figbind.domain.models import Evidence, OrchestrationResult, ValidationResult
from figbind.ir.extractor import extract_ir
from figbind.synthesis_plane.prompts import GenerationTarget
from figbind.verification_plane.pipeline import BindingValidator
from figbind.verification_plane.semantic import validate_local

__version__ = "0.1.0"

__all__ = [
    "BindingValidator",
    "Evidence",
    "GenerationTarget",
    "OrchestrationResult",
    "RetryOrchestrator",
    "ValidationResult",
    "__version__",
    "extract_ir",
    "load_evidence",
    "validate_local",
]
