"""
Truncation handling for the generation orchestrator.

Ties the pieces together: run the decision engine, fall back to emergency
extraction when it finds nothing, and turn the result into something the
orchestrator can act on (start a continuation, apply files, or give up).
"""

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .config import RecoverySettings
from .continuation import start_continuation
from .decision import Extractor, RecoveryDecisionEngine
from .emergency import extract
from .models import ContinuationState, FilePlan, FileSystem, RecoveryAction

logger = logging.getLogger(__name__)


@dataclass
class TruncationOutcome:
    """What the orchestrator should do after a truncated generation."""

    handled: bool  # False: nothing recovered, report failure
    continuation_started: bool = False
    files: FileSystem = field(default_factory=dict)  # Project files with recovered files merged in
    recovered_files: FileSystem = field(default_factory=dict)
    label: Optional[str] = None  # Review label for the change
    explanation: Optional[str] = None
    continuation_state: Optional[ContinuationState] = None
    file_plan: Optional[FilePlan] = None  # Updated plan (continuation only)


def handle_truncation(
    buffer: str,
    current_files: Optional[Mapping[str, str]] = None,
    file_plan: Optional[FilePlan] = None,
    original_prompt: str = "",
    response_format: str = "json",
    extractor: Optional[Extractor] = None,
    settings: Optional[RecoverySettings] = None,
) -> TruncationOutcome:
    """
    Recover what we can from a truncated generation.

    Args:
        buffer: Accumulated response text
        current_files: Current project files
        file_plan: Active generation plan
        original_prompt: Prompt of the truncated request (for continuation)
        response_format: "json" or "marker"; selects the continuation instruction
        extractor: Structured extractor override
        settings: Threshold override

    Returns:
        TruncationOutcome
    """
    current = dict(current_files or {})
    result = RecoveryDecisionEngine(extractor=extractor, settings=settings).analyze(
        buffer, current, file_plan
    )
    logger.info(f"[TruncationRecovery] Analysis result: {result.action.value}")

    if result.action == RecoveryAction.NONE:
        emergency_files = extract(buffer, settings=settings)
        if not emergency_files:
            return TruncationOutcome(handled=False)

        logger.info(f"[TruncationRecovery] Emergency recovery: {len(emergency_files)} code blocks")
        return TruncationOutcome(
            handled=True,
            files={**current, **emergency_files},
            recovered_files=emergency_files,
            label="Generated App (Recovered)",
            explanation=f"Generation was truncated but recovered {len(emergency_files)} code sections.",
        )

    if result.action == RecoveryAction.CONTINUATION:
        state = start_continuation(result, original_prompt, response_format)
        if state is None:
            return TruncationOutcome(handled=False)

        updated_plan = None
        if file_plan is not None:
            updated_plan = file_plan.model_copy(
                update={"completed": list(state.generation_meta.completed_files)}
            )
        return TruncationOutcome(
            handled=True,
            continuation_started=True,
            files=current,
            recovered_files=dict(state.accumulated_files),
            explanation=result.message,
            continuation_state=state,
            file_plan=updated_plan,
        )

    recovered = dict(result.recovered_files or {})
    partial = result.action == RecoveryAction.PARTIAL
    return TruncationOutcome(
        handled=True,
        files={**current, **recovered},
        recovered_files=recovered,
        label="Generated App (Partial)" if partial else "Generated App",
        explanation=(
            "Generation incomplete (recovered partial files)." if partial else "Generation complete."
        ),
    )


def recover_from_parse_failure(
    buffer: str,
    settings: Optional[RecoverySettings] = None,
) -> Optional[FileSystem]:
    """Format fallback: the structured parsers failed on a finished response."""
    logger.info("[TruncationRecovery] Standard parsers failed, trying emergency code block extraction")
    return extract(buffer, force_extract=True, settings=settings)
