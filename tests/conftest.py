"""Pytest configuration and fixtures for truncation recovery tests"""

import sys
from pathlib import Path

import pytest

# Ensure src directory is in Python path before any imports
project_root = Path(__file__).resolve().parent.parent
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from truncation_recovery.config import RecoverySettings  # noqa: E402
from truncation_recovery.models import ExtractionOutcome  # noqa: E402


@pytest.fixture
def settings():
    """Default thresholds, independent of the environment."""
    return RecoverySettings(_env_file=None)


@pytest.fixture
def long_buffer():
    """A buffer long enough to pass the analysis guard."""
    return "x" * 1500


@pytest.fixture
def stub_extractor():
    """Factory for extractors that return a fixed outcome."""

    def make(complete=None, partial=None):
        outcome = ExtractionOutcome(complete_files=complete or {}, partial_files=partial or {})

        def extractor(buffer, current_files):
            return outcome

        return extractor

    return make
