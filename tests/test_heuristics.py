"""Tests for the structural truncation heuristics."""

import pytest

from truncation_recovery.heuristics import (base_name, count_imbalance, has_incomplete_component,
                                            has_trailing_escape, is_suspicious, is_truncated)


class TestCounts:
    """Test brace/paren counting helpers."""

    def test_count_imbalance(self):
        assert count_imbalance("{{{}", "{", "}") == 2
        assert count_imbalance("(a)(b))", "(", ")") == -1

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("src/components/Header.tsx", "Header.tsx"),
            ("App.tsx", "App.tsx"),
            ("a/b/c/d.ts", "d.ts"),
        ],
    )
    def test_base_name(self, path, expected):
        assert base_name(path) == expected


class TestTrailingEscape:
    """Test trailing backslash detection."""

    @pytest.mark.parametrize(
        "content,expected",
        [
            ('const path = "c:\\', True),
            ("const path = 'c:\\\\", False),  # Escaped backslash
            ("line continuation \\\\\\  \n", True),
            ("const a = 1;", False),
        ],
    )
    def test_has_trailing_escape(self, content, expected):
        assert has_trailing_escape(content) is expected


class TestSuspicion:
    """Test per-file suspicion rules."""

    def test_three_open_one_close_brace_is_suspicious(self):
        content = "function a() { if (x) { while (y) { run(); }"
        assert is_suspicious("src/a.ts", content)
        assert is_truncated("src/a.ts", content)

    def test_balanced_file_is_not_suspicious(self):
        content = "export function a() {\n  return { ok: true };\n}\n"
        assert not is_suspicious("src/a.ts", content)
        assert not is_truncated("src/a.ts", content)

    def test_single_unclosed_brace_is_tolerated(self):
        assert not is_suspicious("src/a.ts", "const a = { b: 1;")

    def test_paren_imbalance_is_suspicious_but_not_truncated(self):
        content = "const value = compute(a, (b, (c, d"
        assert is_suspicious("src/a.ts", content)
        assert not is_truncated("src/a.ts", content)

    def test_two_unclosed_parens_are_tolerated(self):
        assert not is_suspicious("src/a.ts", "call((x")

    def test_component_without_closing_brace(self):
        content = "export default function App() {\n  return <div>Hello</div>;\n}\nexport { App };\nconst x = 1;"
        assert has_incomplete_component("src/App.tsx", content)
        assert is_suspicious("src/App.tsx", content)
        # Same content in a non-component file is fine
        assert not is_suspicious("src/App.ts", content)

    def test_component_ending_with_brace_and_whitespace(self):
        assert not has_incomplete_component("src/App.jsx", "function App() {\n  return null;\n}\n\n  ")

    def test_thresholds_come_from_settings(self, settings):
        strict = settings.model_copy(update={"max_brace_imbalance": 0})
        content = "const a = { b: 1;"
        assert not is_truncated("src/a.ts", content, settings)
        assert is_truncated("src/a.ts", content, strict)
