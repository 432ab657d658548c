"""Tunable thresholds for truncation recovery.

The numbers below were chosen empirically against real truncated model output.
They are kept here, not inline, so they can be tuned per deployment through
``TRUNCATION_RECOVERY_*`` environment variables without touching the heuristics.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class RecoverySettings(BaseSettings):
    """Recovery thresholds."""

    model_config = SettingsConfigDict(
        env_prefix="TRUNCATION_RECOVERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Buffers shorter than this are not worth analyzing
    min_analysis_length: int = 1000
    # Emergency extraction only runs on buffers at least this long (unless forced)
    min_emergency_length: int = 5000
    # Files per continuation batch
    batch_size: int = 5
    # Automatic retries of a truncated continuation batch
    max_retry_attempts: int = 3

    # Suspicion thresholds (open minus close)
    max_brace_imbalance: int = 1
    max_paren_imbalance: int = 2

    # Partial files at or below this length are dropped
    min_partial_length: int = 100
    # Emergency extraction ignores code regions shorter than this
    min_block_length: int = 50
    # Prose boundaries inside the first N chars of a region are ignored
    min_boundary_offset: int = 50
    # Characters before a fenced block searched for a path token
    context_window: int = 100


settings = RecoverySettings()


def get_settings(override: RecoverySettings | None = None) -> RecoverySettings:
    """Return the explicit override if given, else the module-level settings."""

    return override if override is not None else settings
