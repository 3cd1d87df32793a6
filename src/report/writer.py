"""
Render a scope tree as indented text or as a JSON document.

The JSON form is stable enough to diff between runs; the text form is
meant for people reading a terminal.
"""

from __future__ import annotations

import io
import json
from dataclasses import dataclass
from typing import Any, Dict, List

from scoping import Reference, ReferenceFlag, Scope, ScopeManager

from .issues import source_position

REPORT_FORMATS = ("text", "json")

_FLAG_NAMES = {
    ReferenceFlag.READ: "read",
    ReferenceFlag.WRITE: "write",
    ReferenceFlag.RW: "read-write",
}


@dataclass(frozen=True)
class ReportOptions:
    format: str = "text"
    include_references: bool = True
    trailing_newline: bool = True


@dataclass(frozen=True)
class ReportResult:
    text: str
    scope_count: int


def _reference_to_dict(reference: Reference) -> Dict[str, Any]:
    position = source_position(reference.identifier)
    return {
        "name": reference.name,
        "flag": _FLAG_NAMES[reference.flag],
        "resolved": reference.resolved is not None,
        "line": position.line,
        "column": position.column,
    }


def scope_to_dict(scope: Scope, *, include_references: bool = True) -> Dict[str, Any]:
    position = source_position(scope.block)
    variables = []
    for name, variable in sorted(scope.variables.items()):
        variables.append(
            {
                "name": name,
                "defs": [
                    {
                        "kind": definition.kind.value,
                        "declarationKind": definition.declaration_kind,
                        "line": source_position(definition.name).line,
                    }
                    for definition in variable.defs
                ],
                "references": len(variable.references),
            }
        )
    payload: Dict[str, Any] = {
        "type": scope.type.value,
        "block": scope.block.get("type"),
        "line": position.line,
        "column": position.column,
        "strict": scope.is_strict,
        "dynamic": scope.dynamic,
        "variables": variables,
        "through": [reference.name for reference in scope.through],
    }
    if include_references:
        payload["references"] = [_reference_to_dict(ref) for ref in scope.references]
    payload["children"] = [
        scope_to_dict(child, include_references=include_references)
        for child in scope.child_scopes
    ]
    return payload


def _write_scope(buffer: io.StringIO, scope: Scope, depth: int, options: ReportOptions) -> None:
    indent = "  " * depth
    position = source_position(scope.block)
    flags: List[str] = []
    if scope.is_strict:
        flags.append("strict")
    if scope.direct_call_to_eval_scope:
        flags.append("eval")
    if scope.this_found:
        flags.append("this")
    suffix = f" [{', '.join(flags)}]" if flags else ""
    buffer.write(
        f"{indent}{scope.type.value} scope ({scope.block.get('type')} "
        f"{position.line}:{position.column}){suffix}\n"
    )

    for name, variable in sorted(scope.variables.items()):
        kinds = ", ".join(
            definition.declaration_kind or definition.kind.value for definition in variable.defs
        ) or "implicit"
        buffer.write(f"{indent}  - {name} ({kinds}) refs={len(variable.references)}\n")
    if options.include_references and scope.through:
        names = sorted({reference.name for reference in scope.through})
        buffer.write(f"{indent}  through: {', '.join(names)}\n")

    for child in scope.child_scopes:
        _write_scope(buffer, child, depth + 1, options)


def render_report(scope_manager: ScopeManager, options: ReportOptions = ReportOptions()) -> ReportResult:
    """Render the scope tree rooted at the global scope."""
    if options.format not in REPORT_FORMATS:
        raise ValueError(f"format must be one of {REPORT_FORMATS}, got {options.format!r}")

    root = scope_manager.global_scope
    if options.format == "json":
        document = scope_to_dict(root, include_references=options.include_references)
        text = json.dumps(document, indent=2)
        if options.trailing_newline:
            text += "\n"
    else:
        buffer = io.StringIO()
        _write_scope(buffer, root, 0, options)
        text = buffer.getvalue()
        if not options.trailing_newline:
            text = text.rstrip("\n")

    return ReportResult(text=text, scope_count=len(scope_manager.scopes))


__all__ = ["REPORT_FORMATS", "ReportOptions", "ReportResult", "render_report", "scope_to_dict"]
