"""Per-name accumulator living inside a scope."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List

from .definition import Definition, DefinitionKind
from .reference import Reference

if TYPE_CHECKING:
    from .scope import Scope


@dataclass(eq=False)
class Variable:
    name: str
    scope: "Scope"
    defs: List[Definition] = field(default_factory=list)
    identifiers: List[Dict[str, Any]] = field(default_factory=list)
    references: List[Reference] = field(default_factory=list)
    # Stays True while every resolved reference comes from the same
    # variable scope as the binding.
    stack: bool = True

    def add_definition(self, definition: Definition) -> None:
        self.defs.append(definition)
        self.identifiers.append(definition.name)

    def add_reference(self, reference: Reference) -> None:
        self.references.append(reference)
        if reference.from_scope.variable_scope is not self.scope.variable_scope:
            self.stack = False

    def has_kind(self, kind: DefinitionKind) -> bool:
        return any(definition.kind == kind for definition in self.defs)

    def __repr__(self) -> str:
        kinds = ",".join(definition.kind.value for definition in self.defs)
        return f"Variable({self.name!r}, defs=[{kinds}], refs={len(self.references)})"


__all__ = ["Variable"]
