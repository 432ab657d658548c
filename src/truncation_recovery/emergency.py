"""
Emergency extraction of files from raw model text.

Last-resort recovery for when no structured (JSON) parse succeeded at all.
Two independent text grammars are tried in priority order; the first that
yields anything wins and later ones are not run:

1. Fenced code blocks, optionally preceded by a path comment:

       // src/components/Header.tsx
       ```tsx
       export default function Header() { ... }
       ```

2. Bare path comments followed directly by code (no fences):

       // components/Header.tsx
       import { useState } from 'react'
       ...

Files without a recognizable path get one guessed from their content.
"""

import logging
import re
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from .config import RecoverySettings, get_settings
from .models import FileSystem

logger = logging.getLogger(__name__)

SOURCE_ROOT = "src/"

# Optional "// src/path.ext" line, then a fenced script block
FENCED_BLOCK_PATTERN = re.compile(
    r"(?://[ \t]*(src/[\w./-]+\.[a-zA-Z]+)[ \t]*\r?\n)?"
    r"```(?:tsx?|jsx?|typescript|javascript)[ \t]*\r?\n(.*?)\r?\n```",
    re.DOTALL,
)
LEADING_PATH_COMMENT_PATTERN = re.compile(r"^//\s*(src/[\w./-]+\.[a-zA-Z]+)[ \t]*(?:\r?\n|$)")
# Path token at the very end of the text preceding a block, e.g. "**src/App.tsx**:"
CONTEXT_PATH_PATTERN = re.compile(r"(src/[\w./-]+\.[a-zA-Z]+)[`*:]*\s*$")

PATH_MARKER_PATTERN = re.compile(r"//[ \t]*((?:src/)?[\w./-]+\.(?:tsx?|jsx?|css|json|md))[ \t]*\r?\n")

# Prose that follows the code in marker-style responses
PROSE_BOUNDARY_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"\r?\n\r?\n[A-Z][^{}\[\]()\r\n]*:[ \t]*\r?$", re.MULTILINE),  # "Section Name:"
    re.compile(r"\r?\n\r?\n[-*•]\s+[A-Z]"),  # "- Bullet point"
    re.compile(r"\r?\n\r?\n\d+\.\s+[A-Z]"),  # "1. Numbered list"
    re.compile(r"\r?\n\r?\n(?:Created|Updated|Added|Fixed|Implemented)\s"),
)
LEADING_STATEMENT_PATTERN = re.compile(
    r"""^(?:import|export|const|let|var|function|interface|type|class|/\*|'use|"use)"""
)


class PathRule(NamedTuple):
    """Content pattern -> path template; ``name_pattern`` filters the captured name."""

    pattern: re.Pattern
    template: str
    name_pattern: Optional[re.Pattern] = None


EXPORTED_FUNCTION_PATTERN = re.compile(r"export\s+(?:default\s+)?function\s+(\w+)")

# Ordered: first matching rule wins
PATH_RULES: Tuple[PathRule, ...] = (
    PathRule(EXPORTED_FUNCTION_PATTERN, "src/components/{name}.tsx", re.compile(r"^[A-Z]")),
    PathRule(EXPORTED_FUNCTION_PATTERN, "src/hooks/{name}.ts", re.compile(r"^use[A-Z]")),
    PathRule(re.compile(r"^(?:export\s+)?(?:interface|type)\s+\w+", re.MULTILINE), "src/types/index.ts"),
    PathRule(re.compile(r"function\s+App\s*\("), "src/App.tsx"),
)
FALLBACK_PATH_TEMPLATE = "src/recovered{index}.tsx"


def fallback_path(index: int) -> str:
    return FALLBACK_PATH_TEMPLATE.format(index=index)


def guess_path(content: str, index: int) -> str:
    """
    Guess a file path from code content.

    Args:
        content: Code content
        index: Position of the block among recovered files (used for the fallback name)

    Returns:
        Guessed path, e.g. ``src/components/Header.tsx`` or ``src/recovered3.tsx``
    """
    for rule in PATH_RULES:
        match = rule.pattern.search(content)
        if not match:
            continue
        name = match.group(1) if match.groups() else ""
        if rule.name_pattern is not None and not rule.name_pattern.search(name):
            continue
        return rule.template.format(name=name, index=index)
    return fallback_path(index)


def normalize_path(path: str) -> str:
    """Give a path the ``src/`` prefix if it lacks one."""
    while path.startswith("./"):
        path = path[2:]
    if not path.startswith(SOURCE_ROOT):
        path = SOURCE_ROOT + path
    return path


def _resolve_block_path(text: str, match: "re.Match", content: str, window: int) -> Optional[str]:
    """Path for a fenced block: comment before, comment inside, or a token just before it."""
    if match.group(1):
        return match.group(1)

    first_line = LEADING_PATH_COMMENT_PATTERN.match(content)
    if first_line:
        return first_line.group(1)

    context = text[max(0, match.start() - window):match.start()]
    found = CONTEXT_PATH_PATTERN.search(context)
    return found.group(1) if found else None


def extract_fenced_blocks(text: str, settings: Optional[RecoverySettings] = None) -> FileSystem:
    """Grammar 1: script code fences, path from comment, context or content."""
    cfg = get_settings(settings)
    files: Dict[str, str] = {}
    index = 1

    for match in FENCED_BLOCK_PATTERN.finditer(text):
        content = match.group(2).strip()
        if len(content) < cfg.min_block_length:
            continue

        path = _resolve_block_path(text, match, content, cfg.context_window)
        if path is None:
            path = guess_path(content, index)
            if path in files:
                path = fallback_path(index)

        if path in files:
            logger.debug(f"[EmergencyExtraction] Duplicate block for {path}, keeping the first")
            continue

        files[path] = LEADING_PATH_COMMENT_PATTERN.sub("", content, count=1).strip()
        index += 1

    return files


def _trim_prose(section: str, min_offset: int) -> str:
    """Cut the section at the earliest prose boundary past ``min_offset``."""
    cut = len(section)
    for pattern in PROSE_BOUNDARY_PATTERNS:
        found = pattern.search(section, min_offset + 1)
        if found and found.start() < cut:
            cut = found.start()
    return section[:cut]


def looks_like_code(content: str, min_length: int) -> bool:
    if len(content) <= min_length:
        return False
    first_line = content.split("\n", 1)[0]
    return bool(LEADING_STATEMENT_PATTERN.match(first_line))


def extract_path_markers(text: str, settings: Optional[RecoverySettings] = None) -> FileSystem:
    """Grammar 2: ``// path.ext`` markers followed by unfenced code."""
    cfg = get_settings(settings)
    files: Dict[str, str] = {}
    markers = list(PATH_MARKER_PATTERN.finditer(text))

    for i, marker in enumerate(markers):
        path = normalize_path(marker.group(1))
        end = markers[i + 1].start() if i + 1 < len(markers) else len(text)
        section = text[marker.end():end]

        content = _trim_prose(section, cfg.min_boundary_offset).strip()
        if not looks_like_code(content, cfg.min_block_length):
            continue

        if path in files:
            logger.debug(f"[EmergencyExtraction] Duplicate marker for {path}, keeping the first")
            continue

        files[path] = content
        logger.info(f"[EmergencyExtraction] Extracted: {path} ({len(content)} chars)")

    return files


Strategy = Callable[[str, Optional[RecoverySettings]], FileSystem]

# Tried in order; the first non-empty result wins
STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("fenced_blocks", extract_fenced_blocks),
    ("path_markers", extract_path_markers),
)


def extract(
    text: str,
    force_extract: bool = False,
    settings: Optional[RecoverySettings] = None,
) -> Optional[FileSystem]:
    """
    Recover files from raw text when structured parsing has failed.

    Args:
        text: The full model response
        force_extract: Skip the minimum length check (format fallback)
        settings: Threshold override

    Returns:
        Path -> content, or None if nothing was recovered
    """
    cfg = get_settings(settings)
    if not text:
        return None
    if not force_extract and len(text) < cfg.min_emergency_length:
        return None

    for name, strategy in STRATEGIES:
        try:
            files = strategy(text, cfg)
        except Exception as e:
            logger.warning(f"[EmergencyExtraction] Strategy {name} failed: {e}")
            continue
        if files:
            logger.info(f"[EmergencyExtraction] {name}: recovered {sorted(files)}")
            return files
        logger.debug(f"[EmergencyExtraction] {name}: no files")

    return None
