#!/usr/bin/env python3
"""
mutlint CLI

Thin wrapper over the analysis engine.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from mutlint.config import find_config, load_policy
from mutlint.data_structures import Rule
from mutlint.explanation import format_text, summarize, to_dict
from mutlint.fixes import suggest_fix
from mutlint.orchestrator import analyze_paths

EXIT_CLEAN = 0
EXIT_FINDINGS = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mutlint",
        description="Check that functions which mutate outside state are named with the `Mut` marker.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mutlint check .
  mutlint check src/ --since origin/main
  mutlint check app.py --format json --show-fixes
        """,
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        metavar="{check}",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Check Python files for marker violations",
    )
    check_parser.add_argument(
        "paths",
        nargs="*",
        default=["."],
        help="Files or directories to check (default: current directory)",
    )
    check_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="pyproject.toml to read [tool.mutlint] from (default: nearest one)",
    )
    check_parser.add_argument(
        "--since",
        metavar="REV",
        default=None,
        help="Only check Python files changed since this Git revision",
    )
    check_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    check_parser.add_argument(
        "--disable",
        action="append",
        default=[],
        choices=[rule.value for rule in Rule],
        metavar="RULE",
        help="Disable a rule; may be repeated",
    )
    check_parser.add_argument(
        "-j", "--jobs",
        type=int,
        default=1,
        help="Number of files to analyze in parallel (default: 1)",
    )
    check_parser.add_argument(
        "--show-fixes",
        action="store_true",
        help="Show the rename that would resolve each finding",
    )
    check_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log scope and reporting decisions to stderr",
    )

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _run_check(args: argparse.Namespace) -> int:
    paths = [Path(p) for p in args.paths]
    for path in paths:
        if not path.exists():
            print(f"Error: Path does not exist: {path}", file=sys.stderr)
            return EXIT_ERROR

    config_path = args.config if args.config is not None else find_config(paths[0])
    policy = load_policy(config_path)
    if args.disable:
        policy = policy.with_disabled(*(Rule.from_id(r) for r in args.disable))

    result = analyze_paths(paths, policy, since=args.since, jobs=max(1, args.jobs))
    diagnostics = result.diagnostics

    def fix_hint(diagnostic):
        if not args.show_fixes:
            return None
        fix = suggest_fix(diagnostic, policy)
        return fix.describe() if fix else None

    if args.format == "json":
        print(json.dumps([to_dict(d, fix_hint(d)) for d in diagnostics], indent=2))
    else:
        for diagnostic in diagnostics:
            print(format_text(diagnostic, fix_hint(diagnostic)))
        print(summarize(diagnostics, result.files_analyzed))

    return EXIT_FINDINGS if diagnostics else EXIT_CLEAN


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(getattr(args, "verbose", False))

    if args.command == "check":
        try:
            return _run_check(args)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_ERROR
        except RuntimeError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_ERROR
        except Exception:
            logging.getLogger(__name__).debug("Unexpected failure", exc_info=True)
            print("Internal error while checking files.", file=sys.stderr)
            print("Run with --verbose for details.", file=sys.stderr)
            return EXIT_ERROR

    # This should never happen because argparse enforces commands
    parser.error(f"Unknown command: {args.command}")
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
