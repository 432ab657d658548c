"""Command-line entry point for truncation recovery.

Usage:
    python -m truncation_recovery analyze response.txt [--plan plan.json] [--files files.json]
    python -m truncation_recovery extract response.txt [--force]
    python -m truncation_recovery --version

Results are printed to stdout as JSON. Exit codes: 0 recovered something,
1 nothing recovered, 2 bad input.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from .decision import analyze_truncated_response
from .emergency import extract
from .exceptions import InputError, TruncationRecoveryError
from .logging_config import configure_logging, setup_structured_logging
from .models import FilePlan, RecoveryAction

logger = logging.getLogger(__name__)

EXIT_RECOVERED = 0
EXIT_NOTHING = 1
EXIT_BAD_INPUT = 2


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise InputError(f"Cannot read {path}: {e}") from e


def _read_json(path: str) -> Any:
    try:
        return json.loads(_read_text(path))
    except ValueError as e:
        raise InputError(f"Invalid JSON in {path}: {e}") from e


def _load_files(path: Optional[str]) -> dict:
    if not path:
        return {}
    files = _read_json(path)
    if not isinstance(files, dict) or not all(isinstance(v, str) for v in files.values()):
        raise InputError(f"{path} must map file paths to contents")
    return files


def run_analyze(args) -> int:
    buffer = _read_text(args.buffer)
    plan = FilePlan.from_dict(_read_json(args.plan)) if args.plan else None
    result = analyze_truncated_response(buffer, _load_files(args.files), plan)
    print(result.model_dump_json(indent=2, exclude_none=True))
    return EXIT_NOTHING if result.action == RecoveryAction.NONE else EXIT_RECOVERED


def run_extract(args) -> int:
    files = extract(_read_text(args.buffer), force_extract=args.force)
    print(json.dumps(files, indent=2))
    return EXIT_RECOVERED if files else EXIT_NOTHING


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="truncation-recovery",
        description="Recover generated files from truncated model output",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze_parser = subparsers.add_parser("analyze", help="Decide how to recover a truncated response")
    analyze_parser.add_argument("buffer", help="File holding the accumulated response text")
    analyze_parser.add_argument("--plan", help="JSON file with the generation plan")
    analyze_parser.add_argument("--files", help="JSON file mapping current paths to contents")

    extract_parser = subparsers.add_parser("extract", help="Emergency extraction from raw text")
    extract_parser.add_argument("buffer", help="File holding the response text")
    extract_parser.add_argument(
        "--force", action="store_true", help="Skip the minimum length check"
    )

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from .version import __version__

        print(f"truncation-recovery {__version__}")
        return 0

    if args.json_logs:
        setup_structured_logging(args.log_level)
    else:
        configure_logging(log_level=args.log_level or "WARNING")

    handlers = {"analyze": run_analyze, "extract": run_extract}
    if args.command not in handlers:
        parser.print_help()
        return EXIT_BAD_INPUT

    try:
        return handlers[args.command](args)
    except TruncationRecoveryError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT


if __name__ == "__main__":
    sys.exit(main())
