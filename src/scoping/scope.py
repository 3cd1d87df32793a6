"""
Lexical scopes and the resolution performed when they close.

A scope collects the bindings declared in it and every identifier
reference made while it is the innermost scope. References are kept on a
pending list until the scope closes; at that point each one is either
matched against the scope's own variables or handed to the parent scope
and recorded as passing through.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .definition import Definition, DefinitionKind
from .errors import ScopeAnalysisError
from .reference import ImplicitGlobalCandidate, Reference, ReferenceFlag
from .variable import Variable

if TYPE_CHECKING:
    from .scope_manager import ScopeManager

logger = logging.getLogger(__name__)


class ScopeType(str, Enum):
    GLOBAL = "global"
    MODULE = "module"
    FUNCTION = "function"
    BLOCK = "block"
    SWITCH = "switch"
    CATCH = "catch"
    WITH = "with"
    CLASS = "class"
    TDZ = "TDZ"
    FUNCTION_EXPRESSION_NAME = "function-expression-name"


VARIABLE_SCOPE_TYPES = frozenset({ScopeType.GLOBAL, ScopeType.FUNCTION, ScopeType.MODULE})


@dataclass(eq=False, repr=False)
class ImplicitGlobals:
    """Names the global scope created for sloppy-mode assignments."""

    variables: Dict[str, Variable] = field(default_factory=dict)
    left: List[Reference] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class Scope:
    type: ScopeType
    block: Dict[str, Any]
    upper: Optional["Scope"] = None
    is_strict: bool = False
    function_expression_scope: bool = False
    variable_scope: Optional["Scope"] = None
    variables: Dict[str, Variable] = field(default_factory=dict)
    references: List[Reference] = field(default_factory=list)
    through: List[Reference] = field(default_factory=list)
    child_scopes: List["Scope"] = field(default_factory=list)
    dynamic: bool = False
    direct_call_to_eval_scope: bool = False
    this_found: bool = False
    implicit: Optional[ImplicitGlobals] = None
    _left: Optional[List[Reference]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.type in VARIABLE_SCOPE_TYPES or self.upper is None:
            self.variable_scope = self
        else:
            self.variable_scope = self.upper.variable_scope
        if self.type in (ScopeType.GLOBAL, ScopeType.WITH):
            self.dynamic = True
        if self.type is ScopeType.GLOBAL:
            self.implicit = ImplicitGlobals()
        if self.upper is not None:
            self.upper.child_scopes.append(self)

    def __repr__(self) -> str:
        return (
            f"Scope({self.type.value}, block={self.block.get('type')}, "
            f"variables={sorted(self.variables)})"
        )

    # ------------------------------------------------------------ building

    def define(self, node: Optional[Dict[str, Any]], definition: Definition) -> Optional[Variable]:
        """Bind the identifier `node` in this scope."""
        if not isinstance(node, dict) or node.get("type") != "Identifier":
            return None
        name = node.get("name")
        variable = self.variables.get(name)
        if variable is None:
            variable = Variable(name=name, scope=self)
            self.variables[name] = variable
        variable.add_definition(definition)
        return variable

    def define_arguments(self) -> Variable:
        """Bind the implicit `arguments` object of a non-arrow function."""
        variable = Variable(name="arguments", scope=self)
        self.variables["arguments"] = variable
        return variable

    def add_reference(
        self,
        node: Optional[Dict[str, Any]],
        flag: ReferenceFlag = ReferenceFlag.READ,
        write_expr: Optional[Dict[str, Any]] = None,
        maybe_implicit_global: Optional[ImplicitGlobalCandidate] = None,
        partial: bool = False,
        init: bool = False,
    ) -> Optional[Reference]:
        """Record a use of the identifier `node`; other node types are ignored."""
        if not isinstance(node, dict) or node.get("type") != "Identifier":
            return None
        if self.is_closed:
            raise ScopeAnalysisError("Cannot add a reference to a closed scope.", node)
        reference = Reference(
            identifier=node,
            from_scope=self,
            flag=flag,
            write_expr=write_expr,
            maybe_implicit_global=maybe_implicit_global,
            partial=partial,
            init=init,
        )
        self.references.append(reference)
        self._left.append(reference)
        return reference

    def detect_eval(self) -> None:
        self.direct_call_to_eval_scope = True
        current: Optional[Scope] = self
        while current is not None:
            current.dynamic = True
            current = current.upper

    def detect_this(self) -> None:
        self.this_found = True

    # ------------------------------------------------------------- queries

    @property
    def is_closed(self) -> bool:
        return self._left is None

    def is_static(self) -> bool:
        return not self.dynamic

    def is_arguments_materialized(self) -> bool:
        """Whether the `arguments` object can be observed at runtime."""
        if self.type is not ScopeType.FUNCTION:
            return True
        if self.block.get("type") == "ArrowFunctionExpression":
            return False
        if not self.is_static():
            return True
        variable = self.variables.get("arguments")
        return variable is not None and bool(variable.references)

    def resolve(self, identifier: Dict[str, Any]) -> Optional[Reference]:
        """Return the reference created for `identifier` in this scope."""
        if not self.is_closed:
            raise ScopeAnalysisError("Scope must be closed before resolving.", identifier)
        for reference in self.references:
            if reference.identifier is identifier:
                return reference
        return None

    def is_used_name(self, name: str) -> bool:
        if name in self.variables:
            return True
        return any(reference.name == name for reference in self.through)

    # ------------------------------------------------------------- closing

    def close(self, scope_manager: "ScopeManager") -> Optional["Scope"]:
        """Resolve pending references and freeze the scope; returns the parent."""
        if self.is_closed:
            raise ScopeAnalysisError("Scope closed twice.", self.block)
        if self.type is ScopeType.GLOBAL:
            self._materialize_implicit_globals()

        statically = (
            not self.dynamic
            or scope_manager.is_optimistic()
            or self.type is ScopeType.GLOBAL
        )
        for reference in self._left:
            if statically:
                if not self._resolve(reference):
                    self._delegate_to_upper_scope(reference)
            else:
                self._mark_through_all_scopes(reference)
        self._left = None

        if self.implicit is not None:
            self.implicit.left = list(self.through)
        logger.debug(
            "closed %s scope at %s: %d references, %d through",
            self.type.value,
            self.block.get("type"),
            len(self.references),
            len(self.through),
        )
        return self.upper

    def _resolve(self, reference: Reference) -> bool:
        variable = self.variables.get(reference.name)
        if variable is None:
            return False
        variable.add_reference(reference)
        reference.resolved = variable
        return True

    def _delegate_to_upper_scope(self, reference: Reference) -> None:
        if self.upper is not None:
            self.upper._left.append(reference)
        self.through.append(reference)

    def _mark_through_all_scopes(self, reference: Reference) -> None:
        # A dynamic scope may shadow any name at runtime, so nothing above
        # it can claim the reference statically.
        current: Optional[Scope] = self
        while current is not None:
            current.through.append(reference)
            current = current.upper

    def _materialize_implicit_globals(self) -> None:
        candidates: List[ImplicitGlobalCandidate] = []
        for reference in self._left:
            candidate = reference.maybe_implicit_global
            if candidate is not None and reference.name not in self.variables:
                candidates.append(candidate)
        for candidate in candidates:
            variable = self.define(
                candidate.pattern,
                Definition(
                    kind=DefinitionKind.VARIABLE,
                    name=candidate.pattern,
                    node=candidate.node,
                ),
            )
            self.implicit.variables[variable.name] = variable


__all__ = ["ImplicitGlobals", "Scope", "ScopeType", "VARIABLE_SCOPE_TYPES"]
