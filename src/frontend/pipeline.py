"""
Front-end glue: parse JavaScript source and run scope analysis on it.

`run_frontend` accepts raw source, obtains an AST from the parser, builds
the scope tree and derives diagnostics from it, and persists the parse
artefact when a cache directory is given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from parser import ParseResult, parse_js
from report import AnalysisIssue, collect_issues
from scoping import AnalysisOptions, ScopeManager, analyze

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrontEndResult:
    """Combined output from the parsing and analysis pipeline."""

    parse: ParseResult
    analysis: Optional[ScopeManager]
    issues: List[AnalysisIssue] = field(default_factory=list)

    @property
    def has_ast(self) -> bool:
        return self.parse.ast is not None

    @property
    def diagnostics(self):
        """Parse errors followed by scope analysis issues."""
        diagnostics = list(self.parse.errors)
        diagnostics.extend(self.issues)
        return diagnostics


def run_frontend(
    source: str,
    *,
    source_name: str = "<input>",
    tolerant: bool = True,
    analyze_scopes: bool = True,
    source_type: str = "script",
    ecma_version: int = 6,
    options: Optional[AnalysisOptions] = None,
    report_undeclared: bool = False,
    cache_dir: Optional[Union[str, Path]] = None,
) -> FrontEndResult:
    """
    Parse JavaScript input and optionally analyze its scopes.

    Args:
        source: Raw JavaScript source text.
        source_name: Identifier used in diagnostics, e.g. file path.
        tolerant: Forwarded to the parser; when True esprima attempts recovery.
        analyze_scopes: Set to False to stop after parsing.
        source_type: `"script"` or `"module"`; ignored when `options` is given.
        ecma_version: Language version; ignored when `options` is given.
        options: Full analysis configuration.
        report_undeclared: Also report references that resolve nowhere.
        cache_dir: Optional directory to write parse artefacts (`None` disables).

    Returns:
        FrontEndResult with the parser output, the scope manager and issues.
    """
    if options is None:
        options = AnalysisOptions(ecma_version=ecma_version, source_type=source_type)

    parse_result = parse_js(
        source,
        source_name=source_name,
        tolerant=tolerant,
        source_type=options.source_type,
    )
    if parse_result.errors:
        logger.info("%s: %d parse errors", source_name, len(parse_result.errors))

    scope_manager: Optional[ScopeManager] = None
    issues: List[AnalysisIssue] = []
    if analyze_scopes and parse_result.ast is not None:
        scope_manager = analyze(parse_result.ast, options)
        issues = collect_issues(scope_manager, report_undeclared=report_undeclared)

    if cache_dir is not None:
        _persist_parse(cache_dir, parse_result)

    return FrontEndResult(parse=parse_result, analysis=scope_manager, issues=issues)


def _persist_parse(cache_dir: Union[str, Path], parse_result: ParseResult) -> None:
    """Store the raw parse output to disk for reuse in subsequent runs."""
    path = Path(cache_dir)
    path.mkdir(parents=True, exist_ok=True)
    cache_file = path / f"{parse_result.source_hash}.json"
    cache_file.write_text(parse_result.to_json(), encoding="utf-8")
    logger.debug("cached parse of %s at %s", parse_result.source_name, cache_file)


__all__ = ["FrontEndResult", "run_frontend"]
