"""
Command-line interface for inspecting the scopes of a JavaScript file.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

import esprima

from frontend import run_frontend
from report import ReportOptions, render_report
from scoping import AnalysisOptions, ScopeAnalysisError


def _format_location(line: int | None, column: int | None) -> str:
    if line is None:
        return ""
    if column is None:
        return f":{line}"
    return f":{line}:{column}"


def _print_diagnostics(messages: List[str]) -> None:
    for message in messages:
        sys.stderr.write(message + "\n")


def _collect_diagnostics(frontend_result) -> List[str]:
    diagnostics: List[str] = []
    source_name = frontend_result.parse.source_name

    for error in frontend_result.parse.errors:
        loc = _format_location(error.line, error.column)
        diagnostics.append(f"ERROR {source_name}{loc}: {error.description}")

    for issue in frontend_result.issues:
        loc = _format_location(issue.loc.line, issue.loc.column)
        diagnostics.append(f"WARNING {source_name}{loc}: [{issue.code}] {issue.message}")

    return diagnostics


def _analysis_options(args: argparse.Namespace) -> AnalysisOptions:
    return AnalysisOptions(
        ecma_version=args.ecma_version,
        source_type="module" if args.module else "script",
        directive=args.directive,
        optimistic=args.optimistic,
        ignore_eval=args.ignore_eval,
        implied_strict=args.implied_strict,
    )


def analyze_command(args: argparse.Namespace) -> int:
    input_path = Path(args.input).resolve()
    if not input_path.exists():
        sys.stderr.write(f"ERROR: Input file not found: {input_path}\n")
        return 1

    try:
        source = input_path.read_text(encoding="utf-8")
    except OSError as exc:
        sys.stderr.write(f"ERROR: Failed to read {input_path}: {exc}\n")
        return 1

    try:
        options = _analysis_options(args)
        frontend_result = run_frontend(
            source,
            source_name=str(input_path),
            tolerant=not args.strict,
            options=options,
            report_undeclared=args.undeclared,
        )
    except ValueError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1
    except esprima.Error as exc:
        sys.stderr.write(f"ERROR: Parsing failed: {exc}\n")
        return 1
    except ScopeAnalysisError as exc:
        sys.stderr.write(f"ERROR: Scope analysis failed: {exc}\n")
        return 1

    if frontend_result.analysis is None:
        sys.stderr.write("ERROR: Parsing failed; no AST produced.\n")
        for error in frontend_result.parse.errors:
            loc = _format_location(error.line, error.column)
            sys.stderr.write(f"  {error.description}{loc}\n")
        return 1

    report = render_report(
        frontend_result.analysis,
        ReportOptions(format=args.format, include_references=not args.no_references),
    )
    if args.out:
        output_path = Path(args.out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report.text, encoding="utf-8")
    else:
        sys.stdout.write(report.text)

    _print_diagnostics(_collect_diagnostics(frontend_result))

    has_errors = bool(frontend_result.parse.errors)
    if args.strict and frontend_result.issues:
        has_errors = True
    return 1 if has_errors else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jsscope", description="Static lexical scope analysis for JavaScript"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command")

    analyze_parser = subparsers.add_parser("analyze", help="Print the scope tree of a JS file")
    analyze_parser.add_argument("input", help="Path to the JavaScript file")
    analyze_parser.add_argument("--out", help="Write the report to this file instead of stdout")
    analyze_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Report format"
    )
    analyze_parser.add_argument(
        "--no-references",
        action="store_true",
        help="Omit reference lists from the report.",
    )
    analyze_parser.add_argument(
        "--ecma-version",
        type=int,
        default=6,
        help="Language version; 5 disables block scoping (default: 6).",
    )
    analyze_parser.add_argument(
        "--module",
        action="store_true",
        help="Parse the input as an ES module (enables import/export syntax).",
    )
    analyze_parser.add_argument(
        "--directive",
        action="store_true",
        help="Detect strict mode from directive prologue nodes.",
    )
    analyze_parser.add_argument(
        "--optimistic",
        action="store_true",
        help="Resolve references statically through `with` and eval scopes.",
    )
    analyze_parser.add_argument(
        "--ignore-eval", action="store_true", help="Do not treat direct eval specially."
    )
    analyze_parser.add_argument(
        "--implied-strict", action="store_true", help="Treat every scope as strict."
    )
    analyze_parser.add_argument(
        "--undeclared",
        action="store_true",
        help="Also warn about references that resolve to no declaration.",
    )
    analyze_parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat warnings as errors and disable tolerant parsing.",
    )
    analyze_parser.set_defaults(func=analyze_command)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
