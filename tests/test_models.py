"""Tests for models and settings."""

import pytest

from truncation_recovery.config import RecoverySettings, get_settings, settings as default_settings
from truncation_recovery.exceptions import PlanFormatError
from truncation_recovery.models import (ExtractionOutcome, FilePlan, GenerationMeta, PartialFile,
                                        RecoveryAction, RecoveryResult)


class TestFilePlan:
    """Test FilePlan parsing."""

    def test_total_defaults_to_create_count(self):
        assert FilePlan(create=["a.ts", "b.ts"]).total == 2

    def test_explicit_total_is_kept(self):
        assert FilePlan(create=["a.ts"], total=4).total == 4

    def test_from_dict(self):
        plan = FilePlan.from_dict({"create": ["src/App.tsx"], "delete": [], "total": 1})
        assert plan.create == ["src/App.tsx"]
        assert plan.completed is None

    @pytest.mark.parametrize(
        "payload",
        [
            ["src/App.tsx"],
            "src/App.tsx",
            {"create": "src/App.tsx"},
            {"create": [], "unexpected": True},
        ],
    )
    def test_from_dict_rejects_malformed(self, payload):
        with pytest.raises(PlanFormatError) as exc_info:
            FilePlan.from_dict(payload)
        assert exc_info.value.payload == payload


class TestGenerationMeta:
    """Test GenerationMeta.for_plan."""

    @pytest.mark.parametrize("total,batches", [(1, 1), (5, 1), (6, 2), (10, 2), (11, 3)])
    def test_total_batches(self, total, batches):
        meta = GenerationMeta.for_plan(total=total, completed=[], remaining=["x"])
        assert meta.total_batches == batches

    def test_complete_when_nothing_remains(self):
        meta = GenerationMeta.for_plan(total=2, completed=["a", "b"], remaining=[])
        assert meta.is_complete
        assert meta.files_in_this_batch == ["a", "b"]


class TestResults:
    """Test result models."""

    def test_none_result(self):
        result = RecoveryResult.none()
        assert result.action == RecoveryAction.NONE
        assert result.model_dump(exclude_none=True) == {"action": RecoveryAction.NONE}

    def test_action_serializes_as_string(self):
        assert RecoveryResult.none().model_dump_json(exclude_none=True) == '{"action":"none"}'

    def test_partial_values_accept_dicts_and_strings(self):
        outcome = ExtractionOutcome(
            partial_files={"a.ts": {"content": "x", "truncated_at": 1}, "b.ts": "y"}
        )
        assert outcome.partial_files["a.ts"] == PartialFile(content="x", truncated_at=1)
        assert outcome.partial_files["b.ts"] == "y"
        assert not outcome.is_empty
        assert ExtractionOutcome().is_empty


class TestSettings:
    """Test RecoverySettings."""

    def test_defaults(self, settings):
        assert settings.min_analysis_length == 1000
        assert settings.min_emergency_length == 5000
        assert settings.batch_size == 5
        assert settings.max_retry_attempts == 3
        assert settings.max_brace_imbalance == 1
        assert settings.max_paren_imbalance == 2
        assert settings.min_boundary_offset == 50

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("TRUNCATION_RECOVERY_BATCH_SIZE", "3")
        assert RecoverySettings(_env_file=None).batch_size == 3

    def test_get_settings(self, settings):
        assert get_settings(settings) is settings
        assert get_settings() is default_settings
