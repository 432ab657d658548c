"""Truncated-generation recovery for AI code-generation pipelines."""

from .decision import RecoveryDecisionEngine, analyze_truncated_response
from .emergency import extract as emergency_extract
from .emergency import guess_path
from .handler import TruncationOutcome, handle_truncation, recover_from_parse_failure
from .models import (ContinuationState, ExtractionOutcome, FilePlan, GenerationMeta,
                     PartialFile, RecoveryAction, RecoveryResult)
from .partial_repair import fix_partial_files
from .version import __version__

__all__ = [
    "ContinuationState",
    "ExtractionOutcome",
    "FilePlan",
    "GenerationMeta",
    "PartialFile",
    "RecoveryAction",
    "RecoveryDecisionEngine",
    "RecoveryResult",
    "TruncationOutcome",
    "__version__",
    "analyze_truncated_response",
    "emergency_extract",
    "fix_partial_files",
    "guess_path",
    "handle_truncation",
    "recover_from_parse_failure",
]
