"""
Recovery decisions for truncated generation output.

When a generation stream stops early (token limit, timeout, malformed output)
the orchestrator hands the accumulated buffer to ``analyze`` and gets back one
RecoveryResult saying what to do next:

    none          nothing trustworthy; fall back to emergency extraction or fail
    continuation  ask the model for the remaining (or truncated) planned files
    success       the recovered files are complete
    partial       only repaired partial files are available

The checks run as an ordered ladder of guard clauses. Order matters: each
branch assumes the ones before it did not match.
"""

import logging
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .config import RecoverySettings, get_settings
from .heuristics import base_name, is_suspicious, is_truncated
from .models import (ExtractionOutcome, FilePlan, FileSystem, GenerationMeta,
                     RecoveryAction, RecoveryResult)
from .partial_repair import fix_partial_files
from .structured_extractor import extract_files_from_truncated_response

logger = logging.getLogger(__name__)

Extractor = Callable[[str, Mapping[str, str]], ExtractionOutcome]


class RecoveryDecisionEngine:
    """
    Classifies a possibly-incomplete response buffer into a recovery plan.

    The engine is stateless: the same buffer, file tree and plan always give
    the same result, and ``analyze`` never raises.

    Example:
        Plan: 12 files. Stream truncates while writing file #11.
        -> continuation, completed=10 files, remaining=[#11, #12]
    """

    def __init__(
        self,
        extractor: Optional[Extractor] = None,
        settings: Optional[RecoverySettings] = None,
    ):
        """
        Args:
            extractor: Structured file extractor; defaults to the JSON extractor
            settings: Threshold override; defaults to environment settings
        """
        self.extractor = extractor or extract_files_from_truncated_response
        self.settings = get_settings(settings)

    def analyze(
        self,
        buffer: str,
        current_files: Optional[Mapping[str, str]] = None,
        file_plan: Optional[FilePlan] = None,
    ) -> RecoveryResult:
        """
        Decide how to recover from a truncated response.

        Args:
            buffer: Full text accumulated from the generation stream
            current_files: Current project files
            file_plan: Active generation plan, if any

        Returns:
            RecoveryResult describing the next action
        """
        if buffer is None or len(buffer) < self.settings.min_analysis_length:
            logger.debug("[TruncationRecovery] Buffer too short to recover from")
            return RecoveryResult.none()

        extraction = self._extract(buffer, current_files or {})
        if extraction is None or extraction.is_empty:
            return RecoveryResult.none()

        complete = extraction.complete_files
        partial = extraction.partial_files
        logger.info(
            f"[TruncationRecovery] Extracted {len(complete)} complete, {len(partial)} partial files"
        )

        missing = self._missing_from_plan(complete, file_plan)
        if missing:
            return self._plan_continuation(complete, missing, file_plan)

        if file_plan is not None and not partial and self._plan_covered(complete, file_plan):
            return self._success(complete)

        if partial and file_plan is not None and file_plan.create:
            if any(is_suspicious(path, content, self.settings) for path, content in complete.items()):
                return self._regeneration_continuation(complete, file_plan)

        if complete:
            return self._success(complete)

        fixed = fix_partial_files(partial, self.settings)
        if fixed:
            logger.info(f"[TruncationRecovery] Salvaged {len(fixed)} partial files")
            return RecoveryResult(
                action=RecoveryAction.PARTIAL,
                recovered_files=fixed,
                recovered_count=len(fixed),
                message=f"Recovered {len(fixed)} partial files",
            )

        return RecoveryResult.none()

    def _extract(self, buffer: str, current_files: Mapping[str, str]) -> Optional[ExtractionOutcome]:
        try:
            return self.extractor(buffer, current_files)
        except Exception as e:
            logger.warning(f"[TruncationRecovery] Structured extraction failed: {e}")
            return None

    @staticmethod
    def _missing_from_plan(complete: FileSystem, file_plan: Optional[FilePlan]) -> List[str]:
        if file_plan is None:
            return []
        return [path for path in file_plan.create if path not in complete]

    @staticmethod
    def _plan_covered(complete: FileSystem, file_plan: FilePlan) -> bool:
        """Every planned file's base name appears among the recovered files."""
        recovered_names = {base_name(path) for path in complete}
        return all(base_name(path) in recovered_names for path in file_plan.create)

    def _plan_continuation(
        self,
        complete: FileSystem,
        missing: List[str],
        file_plan: FilePlan,
    ) -> RecoveryResult:
        meta = GenerationMeta.for_plan(
            total=file_plan.total,
            completed=list(complete),
            remaining=missing,
            batch_size=self.settings.batch_size,
        )
        logger.info(
            f"[TruncationRecovery] Continuation: {len(complete)}/{file_plan.total} files, "
            f"{len(missing)} remaining"
        )
        return RecoveryResult(
            action=RecoveryAction.CONTINUATION,
            recovered_files=dict(complete),
            generation_meta=meta,
            recovered_count=len(complete),
            message=f"Generating... {len(complete)}/{file_plan.total} files",
        )

    def _split_truncated(
        self,
        complete: FileSystem,
        file_plan: FilePlan,
    ) -> Tuple[List[str], Dict[str, str]]:
        """Split complete files into (to_regenerate, good)."""
        truncated = [path for path, content in complete.items() if is_truncated(path, content, self.settings)]
        # Nothing individually flagged: the last planned file is the likeliest casualty
        to_regenerate = truncated or [file_plan.create[-1]]
        good = {path: content for path, content in complete.items() if path not in to_regenerate}
        return to_regenerate, good

    def _regeneration_continuation(self, complete: FileSystem, file_plan: FilePlan) -> RecoveryResult:
        to_regenerate, good = self._split_truncated(complete, file_plan)
        remaining = list(to_regenerate) + [
            path for path in file_plan.create if path not in good and path not in to_regenerate
        ]
        meta = GenerationMeta.for_plan(
            total=file_plan.total,
            completed=list(good),
            remaining=remaining,
            batch_size=self.settings.batch_size,
        )
        logger.warning(
            f"[TruncationRecovery] Suspicious truncation, regenerating {len(to_regenerate)} file(s): "
            f"{to_regenerate}"
        )
        return RecoveryResult(
            action=RecoveryAction.CONTINUATION,
            recovered_files=dict(complete),
            files_to_regenerate=to_regenerate,
            good_files=good,
            generation_meta=meta,
            recovered_count=len(good),
            message=f"Generating... {len(good)}/{file_plan.total} files",
        )

    @staticmethod
    def _success(complete: FileSystem) -> RecoveryResult:
        return RecoveryResult(
            action=RecoveryAction.SUCCESS,
            recovered_files=dict(complete),
            recovered_count=len(complete),
            message=f"Generated {len(complete)} files!",
        )


def analyze_truncated_response(
    buffer: str,
    current_files: Optional[Mapping[str, str]] = None,
    file_plan: Optional[FilePlan] = None,
    extractor: Optional[Extractor] = None,
    settings: Optional[RecoverySettings] = None,
) -> RecoveryResult:
    """Module-level convenience wrapper around ``RecoveryDecisionEngine.analyze``."""
    return RecoveryDecisionEngine(extractor=extractor, settings=settings).analyze(
        buffer, current_files, file_plan
    )
