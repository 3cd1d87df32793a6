"""
Configuration for a single scope analysis run.

Options can be built directly or from a mapping using either the
snake_case field names or the camelCase keys used by ESTree tooling
(`ecmaVersion`, `sourceType`, `ignoreEval`, `impliedStrict`).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

SOURCE_TYPES = ("script", "module")

_ALIASES = {
    "ecmaVersion": "ecma_version",
    "sourceType": "source_type",
    "ignoreEval": "ignore_eval",
    "impliedStrict": "implied_strict",
}


@dataclass(frozen=True)
class AnalysisOptions:
    ecma_version: int = 6
    source_type: str = "script"
    directive: bool = False
    optimistic: bool = False
    ignore_eval: bool = False
    implied_strict: bool = False

    def __post_init__(self) -> None:
        if self.source_type not in SOURCE_TYPES:
            raise ValueError(
                f"source_type must be one of {SOURCE_TYPES}, got {self.source_type!r}"
            )
        if not isinstance(self.ecma_version, int) or isinstance(self.ecma_version, bool):
            raise ValueError(f"ecma_version must be an integer, got {self.ecma_version!r}")

    @property
    def is_es6(self) -> bool:
        return self.ecma_version >= 6

    @property
    def is_module(self) -> bool:
        return self.source_type == "module"

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "AnalysisOptions":
        """Build options from a plain mapping, rejecting unknown keys."""
        if not mapping:
            return cls()
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in mapping.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown analysis option: {key!r}")
            values[name] = value
        return cls(**values)


__all__ = ["AnalysisOptions", "SOURCE_TYPES"]
