"""Diagnostics and rendering for scope analysis results."""

from .issues import AnalysisIssue, SourcePosition, collect_issues
from .writer import REPORT_FORMATS, ReportOptions, ReportResult, render_report, scope_to_dict

__all__ = [
    "AnalysisIssue",
    "REPORT_FORMATS",
    "ReportOptions",
    "ReportResult",
    "SourcePosition",
    "collect_issues",
    "render_report",
    "scope_to_dict",
]
