"""
Structured file extraction from (possibly truncated) JSON generation output.

The generation format is a JSON object ``{"files": {path: content}, "explanation": ...}``.
When the stream is cut short the object never closes, so a strict parse is
tried first and a linear scan for ``"path": "content"`` pairs second. Each
recovered file is then classified as complete or partial by a balance scan
that understands strings, template literals and comments.

This is the default collaborator for the recovery engine; callers with their
own parser can inject a different ``(buffer, current_files) -> ExtractionOutcome``.
"""

import json
import logging
import re
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .models import ExtractionOutcome, FileSystem, PartialFile

logger = logging.getLogger(__name__)

INVISIBLE_CHARS_PATTERN = re.compile("[\ufeff\u200b\u200c\u200d\u2060]")
PLAN_LINE_PATTERN = re.compile(r"^\s*//\s*PLAN:[^\n]*(?:\n|$)")
JSON_FENCE_PATTERN = re.compile(r"^```(?:json)?[ \t]*\n(.*?)(?:\n```|$)", re.DOTALL)

# "src/App.tsx": followed by a string or template value
FILE_KEY_PATTERN = re.compile(r'(?<!\\)"([\w@$./-]{1,200}\.[A-Za-z0-9]{1,10})"\s*:\s*(?=["`])')
EXPLANATION_PATTERN = re.compile(r'"explanation"\s*:\s*"((?:[^"\\]|\\.)*)"')
BARE_EXTENSION_PATTERN = re.compile(r"^\.?[A-Za-z0-9]{1,10}$")

MIN_FILE_LENGTH = 10

_CLOSERS = {"}": "{", "]": "[", ")": "("}


def clean_response(text: str) -> str:
    """Strip invisible characters, a leading PLAN comment and a JSON fence."""
    text = INVISIBLE_CHARS_PATTERN.sub("", text).strip()
    text = PLAN_LINE_PATTERN.sub("", text, count=1).strip()
    fence = JSON_FENCE_PATTERN.match(text)
    if fence:
        text = fence.group(1).strip()
    return text


def is_balanced_source(content: str) -> bool:
    """
    Single pass over ``content`` checking that every string, template literal,
    block comment and bracket it opens is closed again.

    Quote strings end at a newline: JS strings cannot span lines, so a lone
    apostrophe in JSX text must not swallow the rest of the file.
    """
    stack = []
    quote: Optional[str] = None
    i = 0
    n = len(content)

    while i < n:
        ch = content[i]

        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote or ch == "\n":
                quote = None
            i += 1
            continue

        if stack and stack[-1] == "`":
            if ch == "\\":
                i += 2
                continue
            if ch == "`":
                stack.pop()
            elif ch == "$" and content.startswith("{", i + 1):
                stack.append("${")
                i += 2
                continue
            i += 1
            continue

        if ch == "/" and content.startswith("/", i + 1):
            newline = content.find("\n", i)
            i = n if newline == -1 else newline
            continue
        if ch == "/" and content.startswith("*", i + 1):
            end = content.find("*/", i + 2)
            if end == -1:
                return False
            i = end + 2
            continue

        if ch in ("'", '"'):
            quote = ch
        elif ch == "`":
            stack.append("`")
        elif ch in "{[(":
            stack.append(ch)
        elif ch in _CLOSERS and stack:
            top = stack[-1]
            if top == _CLOSERS[ch] or (ch == "}" and top == "${"):
                stack.pop()
        i += 1

    return quote is None and not stack


def is_content_complete(path: str, content: str) -> bool:
    """Classify a single file as complete (True) or cut short (False)."""
    stripped = content.strip()
    if len(stripped) < MIN_FILE_LENGTH:
        return False

    if path.endswith(".json"):
        try:
            json.loads(stripped)
        except ValueError:
            return False
        return True

    if stripped.endswith(","):
        return False

    return is_balanced_source(stripped)


def _decode_json_string(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"')
    except ValueError:
        # Control characters or bad escapes: keep the text, undo the common escapes
        return (
            raw.replace("\\n", "\n")
            .replace("\\t", "\t")
            .replace('\\"', '"')
            .replace("\\\\", "\\")
        )


def _scan_value(text: str, start: int) -> Tuple[str, int, bool]:
    """
    Read a quoted (``"``) or template (`````) value starting at ``text[start]``.

    Returns:
        Tuple of (raw_value, end_position, terminated)
    """
    delimiter = text[start]
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == delimiter:
            return text[start + 1:i], i + 1, True
        i += 1
    return text[start + 1:], n, False


def _parse_strict(text: str) -> Optional[Tuple[Dict[str, Any], str]]:
    """Parse the first ``{`` .. last ``}`` span as JSON; return (files, explanation)."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None

    try:
        payload = json.loads(text[start:end + 1])
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None

    explanation = payload.get("explanation")
    explanation = explanation if isinstance(explanation, str) else ""

    files = payload.get("files")
    if isinstance(files, list):
        files = {
            entry.get("path"): entry.get("content")
            for entry in files
            if isinstance(entry, dict) and isinstance(entry.get("path"), str)
        }
    if isinstance(files, dict):
        return files, explanation

    # Bare path map: {"src/App.tsx": "..."}
    if payload and all(isinstance(k, str) and "." in k for k in payload):
        return payload, explanation
    return None


def _scan_files(text: str) -> Tuple[Dict[str, str], Dict[str, PartialFile]]:
    """Linear scan for ``"path": value`` pairs in text that does not parse."""
    terminated: Dict[str, str] = {}
    unterminated: Dict[str, PartialFile] = {}

    pos = 0
    while True:
        match = FILE_KEY_PATTERN.search(text, pos)
        if not match:
            break
        path = match.group(1)
        raw, pos, closed = _scan_value(text, match.end())
        is_template = text[match.end()] == "`"

        if BARE_EXTENSION_PATTERN.match(raw.strip()):
            continue
        if path in terminated or path in unterminated:
            continue

        if closed:
            terminated[path] = raw if is_template else _decode_json_string(raw)
        else:
            unterminated[path] = PartialFile(content=raw, truncated_at=len(raw))

    return terminated, unterminated


def _build_summary(
    explanation: str,
    complete: FileSystem,
    partial: Mapping[str, Union[PartialFile, str]],
    current_files: Mapping[str, str],
) -> str:
    if explanation:
        return explanation
    updated = sum(1 for path in complete if path in current_files)
    return (
        f"Recovered {len(complete)} complete and {len(partial)} partial files "
        f"({len(complete) - updated} new, {updated} updated)"
    )


def extract_files_from_truncated_response(
    text: str,
    current_files: Optional[Mapping[str, str]] = None,
) -> ExtractionOutcome:
    """
    Extract complete and partial files from a generation buffer.

    Args:
        text: Accumulated response text
        current_files: Current project files (used for the summary only)

    Returns:
        ExtractionOutcome; empty when nothing file-shaped was found
    """
    current_files = current_files or {}
    try:
        cleaned = clean_response(text or "")
        if not cleaned:
            return ExtractionOutcome()

        complete: Dict[str, str] = {}
        partial: Dict[str, Union[PartialFile, str]] = {}

        strict = _parse_strict(cleaned)
        if strict is not None:
            candidates, explanation = strict
        else:
            candidates, unterminated = _scan_files(cleaned)
            partial.update(unterminated)
            match = EXPLANATION_PATTERN.search(cleaned)
            explanation = _decode_json_string(match.group(1)) if match else ""

        for path, content in candidates.items():
            if not isinstance(content, str):
                continue
            if is_content_complete(path, content):
                complete[path] = content
            else:
                partial[path] = PartialFile(content=content)

        logger.debug(
            f"[StructuredExtractor] {'strict' if strict is not None else 'scan'} parse: "
            f"{len(complete)} complete, {len(partial)} partial"
        )
        return ExtractionOutcome(
            complete_files=complete,
            partial_files=partial,
            summary=_build_summary(explanation, complete, partial, current_files),
        )
    except Exception as e:
        logger.warning(f"[StructuredExtractor] Extraction failed: {e}")
        return ExtractionOutcome()
