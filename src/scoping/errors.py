"""Errors raised by the scope analyzer."""

from __future__ import annotations

from typing import Any, Dict, Optional


def format_location(node: Optional[Dict[str, Any]]) -> str:
    if not node or not isinstance(node, dict):
        return ""
    loc_meta = node.get("loc") or {}
    start = loc_meta.get("start") or {}
    line = start.get("line")
    column = start.get("column")
    if line is None or column is None:
        return ""
    return f" (line {line}, column {column})"


class ScopeAnalysisError(AssertionError):
    """Raised when the analysis hits a broken precondition and must abort."""

    def __init__(self, message: str, node: Optional[Dict[str, Any]] = None):
        super().__init__(f"{message}{format_location(node)}")
        self.node = node


__all__ = ["ScopeAnalysisError", "format_location"]
