"""
Structural heuristics for spotting truncated generated files.

These are deliberately cheap character counts, not parsers: a file is flagged
when its shape is inconsistent with a finished source file. False positives
only cost a regeneration, so the checks lean toward flagging.
"""

from typing import Optional

from .config import RecoverySettings, get_settings

COMPONENT_EXTENSIONS = (".tsx", ".jsx")


def base_name(path: str) -> str:
    """Path tail after the last separator."""
    return path.rsplit("/", 1)[-1]


def count_imbalance(content: str, open_char: str, close_char: str) -> int:
    """Number of ``open_char`` minus number of ``close_char``."""
    return content.count(open_char) - content.count(close_char)


def has_trailing_escape(content: str) -> bool:
    """True if the trimmed content ends in an unescaped backslash."""
    stripped = content.strip()
    trailing = len(stripped) - len(stripped.rstrip("\\"))
    return trailing % 2 == 1


def is_component_file(path: str) -> bool:
    return path.endswith(COMPONENT_EXTENSIONS)


def has_incomplete_component(path: str, content: str) -> bool:
    """UI component files are expected to end with a closing brace."""
    return is_component_file(path) and not content.strip().endswith("}")


def is_truncated(path: str, content: str, settings: Optional[RecoverySettings] = None) -> bool:
    """Per-file truncation check used to pick files for regeneration."""
    cfg = get_settings(settings)
    return (
        count_imbalance(content, "{", "}") > cfg.max_brace_imbalance
        or has_trailing_escape(content)
        or has_incomplete_component(path, content)
    )


def is_suspicious(path: str, content: str, settings: Optional[RecoverySettings] = None) -> bool:
    """Truncation check plus parenthesis balance, used to decide whether to look closer."""
    cfg = get_settings(settings)
    return (
        is_truncated(path, content, cfg)
        or count_imbalance(content, "(", ")") > cfg.max_paren_imbalance
    )
