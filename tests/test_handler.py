"""Tests for the truncation handler glue."""

import pytest

from truncation_recovery.handler import handle_truncation, recover_from_parse_failure
from truncation_recovery.models import FilePlan

from .samples import APP_TSX, HEADER_TSX

FOO_BODY = 'export default function Foo() {\n  return <div className="foo">Hello from Foo</div>;\n}'
PARTIAL_BODY = "const config = {\\n" + "".join(f'  field_{i}: \\"value {i}\\",\\n' for i in range(8))


@pytest.fixture
def current_files():
    return {"src/index.css": "body { margin: 0; }", "src/App.tsx": "old app"}


class TestHandleTruncation:
    """Test handle_truncation for each recovery action."""

    def test_emergency_fallback(self, current_files):
        buffer = (
            "The quick brown fox jumps over the lazy dog. " * 120
            + "\n\n// src/components/Foo.tsx\n```tsx\n" + FOO_BODY + "\n```\n"
        )

        outcome = handle_truncation(buffer, current_files)

        assert outcome.handled
        assert not outcome.continuation_started
        assert outcome.recovered_files == {"src/components/Foo.tsx": FOO_BODY}
        assert outcome.files == {**current_files, "src/components/Foo.tsx": FOO_BODY}
        assert outcome.label == "Generated App (Recovered)"
        assert "recovered 1 code sections" in outcome.explanation

    def test_nothing_recovered(self, current_files, stub_extractor, long_buffer):
        outcome = handle_truncation(long_buffer, current_files, extractor=stub_extractor())
        assert not outcome.handled
        assert outcome.files == {}

    def test_continuation(self, current_files, stub_extractor, long_buffer):
        plan = FilePlan(create=["src/App.tsx", "src/components/Header.tsx"], delete=["src/old.tsx"])
        outcome = handle_truncation(
            long_buffer,
            current_files,
            plan,
            original_prompt="Build a landing page",
            extractor=stub_extractor(complete={"src/App.tsx": APP_TSX}),
        )

        assert outcome.handled
        assert outcome.continuation_started
        assert outcome.explanation == "Generating... 1/2 files"
        state = outcome.continuation_state
        assert state.original_prompt == "Build a landing page"
        assert state.accumulated_files == {"src/App.tsx": APP_TSX}
        assert state.generation_meta.remaining_files == ["src/components/Header.tsx"]
        assert outcome.file_plan.completed == ["src/App.tsx"]
        assert outcome.file_plan.delete == ["src/old.tsx"]
        # Original plan is left alone
        assert plan.completed is None

    def test_success_merges_files(self, current_files, stub_extractor, long_buffer):
        complete = {"src/App.tsx": APP_TSX, "src/components/Header.tsx": HEADER_TSX}
        outcome = handle_truncation(long_buffer, current_files, extractor=stub_extractor(complete=complete))

        assert outcome.handled
        assert outcome.label == "Generated App"
        assert outcome.explanation == "Generation complete."
        assert outcome.files["src/App.tsx"] == APP_TSX
        assert outcome.files["src/index.css"] == current_files["src/index.css"]

    def test_partial(self, current_files, stub_extractor, long_buffer):
        outcome = handle_truncation(
            long_buffer, current_files, extractor=stub_extractor(partial={"src/config.ts": PARTIAL_BODY})
        )
        assert outcome.handled
        assert outcome.label == "Generated App (Partial)"
        assert outcome.explanation == "Generation incomplete (recovered partial files)."
        assert "src/config.ts" in outcome.files


class TestParseFailureFallback:
    """Test recover_from_parse_failure."""

    def test_short_buffer_is_forced(self):
        text = "// src/components/Foo.tsx\n```tsx\n" + FOO_BODY + "\n```"
        assert recover_from_parse_failure(text) == {"src/components/Foo.tsx": FOO_BODY}

    def test_nothing_to_recover(self):
        assert recover_from_parse_failure("Sorry, I cannot help with that.") is None
