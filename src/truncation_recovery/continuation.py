"""
Continuation prompting and batch bookkeeping.

Continuing from the last completed file is cheaper and more reliable than
regenerating everything:

    Attempt 1: Generate 12 files -> truncates at file #11
    Continuation: "Continue from file #11" -> completes files #11-12

Without continuation the retry regenerates all 12 files and tends to
truncate at the same place again.
"""

import logging
import re
from typing import List, Mapping, Optional

from .config import RecoverySettings, get_settings
from .models import ContinuationState, GenerationMeta, RecoveryAction, RecoveryResult

logger = logging.getLogger(__name__)

CONTINUATION_HEADER = "CONTINUATION REQUEST"

CONTINUATION_SYSTEM_INSTRUCTION = """You are continuing a multi-file generation that was cut short.
Respond with a JSON object {"files": {"path": "full file content"}, "explanation": "..."}.
Only include the files listed as remaining. Every file must be complete; never truncate a file midway.
If you cannot fit every remaining file, finish the ones you start and stop cleanly."""

CONTINUATION_SYSTEM_INSTRUCTION_MARKER = """You are continuing a multi-file generation that was cut short.
Write each file as a path comment line followed by its complete content:
// src/path/to/File.tsx
<file content>
Only include the files listed as remaining. Every file must be complete; never truncate a file midway.
If you cannot fit every remaining file, finish the ones you start and stop cleanly."""

_STALE_CONTINUATION_PATTERN = re.compile(
    rf"{CONTINUATION_HEADER}.*?Continue from where.*?$",
    re.DOTALL | re.MULTILINE,
)

MAX_LISTED_COMPLETED = 5
MAX_LISTED_REMAINING = 10


def system_instruction_for(response_format: str) -> str:
    """Format-aware continuation instruction ("json" or "marker")."""
    if response_format == "marker":
        return CONTINUATION_SYSTEM_INSTRUCTION_MARKER
    return CONTINUATION_SYSTEM_INSTRUCTION


def _capped_list(paths: List[str], limit: int) -> str:
    listed = "\n".join(f"  - {p}" for p in paths[:limit])
    if len(paths) > limit:
        listed += f"\n  - ... and {len(paths) - limit} more"
    return listed


def build_continuation_prompt(
    meta: GenerationMeta,
    original_prompt: str,
    files_to_regenerate: Optional[List[str]] = None,
) -> str:
    """
    Build continuation prompt from generation progress.

    Args:
        meta: Progress so far
        original_prompt: The prompt of the truncated request
        files_to_regenerate: Files that looked complete but were cut short

    Returns:
        Prompt asking only for the remaining files
    """
    completed_count = len(meta.completed_files)
    remaining = list(meta.remaining_files)

    logger.info(
        f"[Continuation] Building continuation prompt: "
        f"{completed_count} completed, {len(remaining)} remaining"
    )

    if meta.completed_files:
        completed_section = f"\n\nAlready completed:\n{_capped_list(meta.completed_files, MAX_LISTED_COMPLETED)}"
    else:
        completed_section = ""

    if remaining:
        remaining_section = f"\n\nRemaining to complete:\n{_capped_list(remaining, MAX_LISTED_REMAINING)}"
    else:
        remaining_section = "\n\n(All planned files appear to be completed - please finish any partial work)"

    if files_to_regenerate:
        regenerate_section = (
            "\n\nThese files were cut short and must be rewritten in full:\n"
            f"{_capped_list(files_to_regenerate, MAX_LISTED_REMAINING)}"
        )
    else:
        regenerate_section = ""

    continuation_prompt = f"""
{CONTINUATION_HEADER} - Previous attempt was truncated at {completed_count}/{meta.total_files_planned} files (batch {meta.current_batch}/{meta.total_batches}).

IMPORTANT: Only generate the remaining files listed below. Do NOT regenerate already-completed files.
{completed_section}
{remaining_section}{regenerate_section}

Continue from where the previous attempt was truncated. Generate ONLY the remaining files.
"""

    # Drop headers left by earlier continuation rounds
    base_prompt = _STALE_CONTINUATION_PATTERN.sub("", original_prompt).strip()

    return continuation_prompt + "\n\n" + base_prompt


def start_continuation(
    result: RecoveryResult,
    original_prompt: str,
    response_format: str = "json",
) -> Optional[ContinuationState]:
    """ContinuationState for a ``continuation`` result, None for any other action."""
    if result.action != RecoveryAction.CONTINUATION or result.generation_meta is None:
        return None

    accumulated = result.good_files if result.good_files is not None else result.recovered_files
    return ContinuationState(
        is_active=True,
        original_prompt=original_prompt or "Generate app",
        system_instruction=system_instruction_for(response_format),
        generation_meta=result.generation_meta,
        accumulated_files=dict(accumulated or {}),
        current_batch=1,
    )


def merge_batch(
    state: ContinuationState,
    batch_files: Mapping[str, str],
    settings: Optional[RecoverySettings] = None,
) -> ContinuationState:
    """
    Fold the files of one continuation batch into the running state.

    Returns:
        New ContinuationState; the input state is not modified
    """
    cfg = get_settings(settings)
    accumulated = {**state.accumulated_files, **batch_files}
    meta = state.generation_meta

    completed = list(accumulated)
    remaining = [path for path in meta.remaining_files if path not in accumulated]
    next_batch = state.current_batch + 1

    new_meta = GenerationMeta.for_plan(
        total=meta.total_files_planned,
        completed=completed,
        remaining=remaining,
        batch_size=cfg.batch_size,
        current_batch=next_batch,
    )
    new_meta.files_in_this_batch = list(batch_files)

    logger.info(
        f"[Continuation] Batch {state.current_batch} merged {len(batch_files)} files, "
        f"{len(remaining)} remaining"
    )
    return state.model_copy(
        update={
            "is_active": not new_meta.is_complete,
            "generation_meta": new_meta,
            "accumulated_files": accumulated,
            "current_batch": next_batch,
            "retry_attempts": 0,
        }
    )


def record_retry(
    state: ContinuationState,
    partial_files: Optional[Mapping[str, str]] = None,
    settings: Optional[RecoverySettings] = None,
) -> Optional[ContinuationState]:
    """
    Count one automatic retry of a batch that came back truncated.

    Files salvaged from the truncated batch are kept so the retry does not lose them.

    Returns:
        New ContinuationState, or None once the retry budget is spent
    """
    cfg = get_settings(settings)
    if state.retry_attempts >= cfg.max_retry_attempts:
        logger.warning(
            f"[Continuation] Batch {state.current_batch} still truncated after "
            f"{state.retry_attempts} retries, giving up"
        )
        return None

    attempt = state.retry_attempts + 1
    logger.info(f"[Continuation] Response truncated, retry attempt {attempt}/{cfg.max_retry_attempts}")
    return state.model_copy(
        update={
            "accumulated_files": {**state.accumulated_files, **(partial_files or {})},
            "retry_attempts": attempt,
        }
    )
