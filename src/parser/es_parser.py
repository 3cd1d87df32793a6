"""
Front door to the Python `esprima` port.

`parse_js` returns the dict-shaped ESTree consumed by the scope analyzer.
Recoverable syntax errors travel with the tree, and the sha256 of the
source names the cached parse artefact.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

import esprima

# Keyed by `AnalysisOptions.source_type`.
_ESPRIMA_ENTRY_POINTS: Dict[str, Callable[..., Any]] = {
    "script": esprima.parseScript,
    "module": esprima.parseModule,
}


@dataclass(frozen=True)
class ParseError:
    """A syntax error esprima reported or raised."""

    description: str
    line: Optional[int]
    column: Optional[int]

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ParseError":
        return cls(record.get("description"), record.get("lineNumber"), record.get("column"))

    @classmethod
    def from_exception(cls, exc: esprima.Error) -> "ParseError":
        description = getattr(exc, "description", None) or str(exc) or "Failed to parse source."
        return cls(description, getattr(exc, "lineNumber", None), getattr(exc, "column", None))


@dataclass(frozen=True)
class ParseResult:
    """Tree (or `None` after a fatal error) plus what is known about the run."""

    ast: Any
    source_hash: str
    source_name: str
    source_type: str = "script"
    errors: List[ParseError] = field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False, indent=2)


def parse_js(
    source: str,
    *,
    source_name: str = "<input>",
    tolerant: bool = True,
    source_type: str = "script",
) -> ParseResult:
    """
    Parse `source` as a script or an ES module.

    In tolerant mode esprima skips over what it can; a fatal error then
    produces a result whose `ast` is None and whose single error describes
    the failure. Without it, `esprima.Error` propagates.

    Raises:
        ValueError: `source_type` is neither "script" nor "module".
    """
    entry_point = _ESPRIMA_ENTRY_POINTS.get(source_type)
    if entry_point is None:
        raise ValueError(
            f"source_type must be one of {tuple(_ESPRIMA_ENTRY_POINTS)}, got {source_type!r}"
        )
    digest = hashlib.sha256(source.encode("utf-8")).hexdigest()

    try:
        program = entry_point(source, loc=True, range=True, tolerant=tolerant)
    except esprima.Error as exc:
        if not tolerant:
            raise
        return ParseResult(None, digest, source_name, source_type, [ParseError.from_exception(exc)])

    tree = program.toDict() if hasattr(program, "toDict") else program
    recovered = tree.get("errors") if tolerant and isinstance(tree, dict) else None
    return ParseResult(
        tree,
        digest,
        source_name,
        source_type,
        [ParseError.from_record(record) for record in recovered or []],
    )


__all__ = ["ParseResult", "ParseError", "parse_js"]
