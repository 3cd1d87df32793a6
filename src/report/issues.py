"""
Diagnostics derived from a finished scope analysis.

These are the constructs a translator or linter has to treat with care:
direct `eval`, `with`, sloppy-mode implicit globals, references that hit a
binding inside its temporal dead zone and, on request, references that
never resolved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from scoping import Reference, ScopeManager, ScopeType


@dataclass(frozen=True)
class SourcePosition:
    line: Optional[int]
    column: Optional[int]


@dataclass(frozen=True)
class AnalysisIssue:
    code: str
    message: str
    loc: SourcePosition


def source_position(node: Optional[Dict[str, Any]]) -> SourcePosition:
    loc = (node or {}).get("loc") or {}
    start = loc.get("start") or {}
    return SourcePosition(line=start.get("line"), column=start.get("column"))


def _is_declared_on_chain(reference: Reference) -> bool:
    # References that passed a dynamic scope are left unresolved even when
    # an enclosing scope binds the name.
    scope = reference.from_scope
    while scope is not None:
        if reference.name in scope.variables:
            return True
        scope = scope.upper
    return False


def collect_issues(
    scope_manager: ScopeManager, *, report_undeclared: bool = False
) -> List[AnalysisIssue]:
    issues: List[AnalysisIssue] = []

    for scope in scope_manager.scopes:
        if scope.direct_call_to_eval_scope:
            issues.append(
                AnalysisIssue(
                    code="EVAL_CALL",
                    message="Use of eval makes static analysis of this scope unreliable.",
                    loc=source_position(scope.block),
                )
            )
        if scope.type is ScopeType.WITH:
            issues.append(
                AnalysisIssue(
                    code="WITH_STATEMENT",
                    message="`with` statement changes scope resolution dynamically.",
                    loc=source_position(scope.block),
                )
            )
        if scope.type is ScopeType.TDZ:
            for variable in scope.variables.values():
                for reference in variable.references:
                    issues.append(
                        AnalysisIssue(
                            code="TDZ_REFERENCE",
                            message=f"'{variable.name}' is used before its declaration is initialized.",
                            loc=source_position(reference.identifier),
                        )
                    )

    global_scope = scope_manager.global_scope
    if global_scope is None:
        return issues

    for name, variable in global_scope.implicit.variables.items():
        for definition in variable.defs:
            issues.append(
                AnalysisIssue(
                    code="IMPLICIT_GLOBAL",
                    message=f"Assignment to undeclared '{name}' creates an implicit global.",
                    loc=source_position(definition.name),
                )
            )

    if report_undeclared:
        for reference in global_scope.through:
            if reference.resolved is None and not _is_declared_on_chain(reference):
                issues.append(
                    AnalysisIssue(
                        code="UNDECLARED_REFERENCE",
                        message=f"'{reference.name}' is not declared in any enclosing scope.",
                        loc=source_position(reference.identifier),
                    )
                )

    return issues


__all__ = ["AnalysisIssue", "SourcePosition", "collect_issues", "source_position"]
