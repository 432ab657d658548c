"""
Best-effort repair of files the extractor marked as partial.

Partial content usually comes straight out of a half-written JSON string, so
it still carries escape sequences and may stop mid-token. The repairs here are
minimal: enough to make the file usable as a starting point, not to make it
correct.
"""

import logging
import re
from typing import Dict, Mapping, Optional, Union

from .config import RecoverySettings, get_settings
from .models import FileSystem, PartialFile

logger = logging.getLogger(__name__)

# Escapes left behind by a JSON string that never closed
_ESCAPES = (
    ("\\n", "\n"),
    ("\\t", "\t"),
    ('\\"', '"'),
    ("\\'", "'"),
)

TRAILING_COMMA_PATTERN = re.compile(r",\s*$")
UNESCAPED_QUOTE_PATTERN = re.compile(r'(?<!\\)"')


def _content_of(data: Union[PartialFile, str, None]) -> str:
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return data.content


def unescape(content: str) -> str:
    for escaped, literal in _ESCAPES:
        content = content.replace(escaped, literal)
    return content


def close_trailing_quote(content: str) -> str:
    """Close a double-quoted string left open on the last line."""
    last_line = content.rsplit("\n", 1)[-1]
    if len(UNESCAPED_QUOTE_PATTERN.findall(last_line)) % 2 == 1:
        return content + '"'
    return content


def close_trailing_object(content: str) -> str:
    """Append a closing brace if the final ``{`` is never closed."""
    last_open = content.rfind("{")
    if last_open != -1 and "}" not in content[last_open:]:
        return content + "\n}"
    return content


def repair_partial_content(content: str) -> str:
    cleaned = unescape(content).strip()
    cleaned = TRAILING_COMMA_PATTERN.sub("", cleaned)
    cleaned = close_trailing_quote(cleaned)
    return close_trailing_object(cleaned)


def fix_partial_files(
    partial_files: Mapping[str, Union[PartialFile, str]],
    settings: Optional[RecoverySettings] = None,
) -> FileSystem:
    """
    Repair partial files and keep the ones substantial enough to use.

    Args:
        partial_files: Path -> raw content (or PartialFile)
        settings: Optional threshold override

    Returns:
        Path -> repaired content, only entries longer than ``min_partial_length``
    """
    cfg = get_settings(settings)
    fixed: Dict[str, str] = {}

    for path, data in partial_files.items():
        content = _content_of(data)
        if len(content) <= cfg.min_partial_length:
            continue

        repaired = repair_partial_content(content)
        if len(repaired) > cfg.min_partial_length:
            fixed[path] = repaired
        else:
            logger.debug(f"[PartialRepair] Dropped {path}: {len(repaired)} chars after repair")

    return fixed
