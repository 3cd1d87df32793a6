"""
Registry of every scope created during one analysis run.

`ScopeManager` is the factory for scopes and the index from AST nodes to
the scopes they own. A node can own several scopes (a named function
expression owns its name scope and its function scope; a `for-of` with a
`let` head owns a TDZ scope and an iteration scope), so the index maps a
node to an ordered list of handles into the `scopes` arena.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .definition import Definition, DefinitionKind
from .options import AnalysisOptions
from .scope import Scope, ScopeType

logger = logging.getLogger(__name__)

_SYNTHETIC_SCOPE_TYPES = frozenset({ScopeType.FUNCTION_EXPRESSION_NAME, ScopeType.TDZ})

_BLOCK_SCOPE_NODES = frozenset(
    {"BlockStatement", "ForStatement", "ForInStatement", "ForOfStatement"}
)


def _scope_type_for(node: Dict[str, Any]) -> ScopeType:
    node_type = node.get("type")
    if node_type == "Program":
        return ScopeType.GLOBAL
    if node_type == "CatchClause":
        return ScopeType.CATCH
    if node_type == "WithStatement":
        return ScopeType.WITH
    if node_type in ("ClassDeclaration", "ClassExpression"):
        return ScopeType.CLASS
    if node_type == "SwitchStatement":
        return ScopeType.SWITCH
    if node_type in _BLOCK_SCOPE_NODES:
        return ScopeType.BLOCK
    return ScopeType.FUNCTION


def _is_use_strict(statement: Dict[str, Any], use_directive: bool) -> Optional[bool]:
    """True/False for a prologue statement, None once the prologue ends."""
    if statement.get("type") != "ExpressionStatement":
        return None
    if use_directive:
        directive = statement.get("directive")
        if directive is None:
            return None
        return directive == "use strict"
    expression = statement.get("expression") or {}
    if expression.get("type") != "Literal" or not isinstance(expression.get("value"), str):
        return None
    raw = expression.get("raw")
    if raw is not None:
        return raw in ('"use strict"', "'use strict'")
    return expression.get("value") == "use strict"


class ScopeManager:
    def __init__(self, options: Optional[AnalysisOptions] = None) -> None:
        self.options = options or AnalysisOptions()
        self.scopes: List[Scope] = []
        self.global_scope: Optional[Scope] = None
        self._node_to_scope: Dict[int, List[int]] = {}

    # ------------------------------------------------------------- options

    def is_es6(self) -> bool:
        return self.options.is_es6

    def is_module(self) -> bool:
        return self.options.is_module

    def is_optimistic(self) -> bool:
        return self.options.optimistic

    def use_directive(self) -> bool:
        return self.options.directive

    def ignore_eval(self) -> bool:
        return self.options.ignore_eval

    def is_implied_strict(self) -> bool:
        return self.options.implied_strict

    # -------------------------------------------------------------- lookup

    def acquire_all(self, node: Dict[str, Any]) -> Optional[List[Scope]]:
        handles = self._node_to_scope.get(id(node))
        if not handles:
            return None
        return [self.scopes[handle] for handle in handles]

    def acquire(self, node: Dict[str, Any], inner: bool = False) -> Optional[Scope]:
        """
        Pick the scope a consumer most likely means for `node`.

        Synthetic scopes (function-expression names, TDZ) are never
        returned. With `inner`, the most recently created candidate wins,
        otherwise the first one.
        """
        scopes = self.acquire_all(node)
        if not scopes:
            return None
        candidates = [scope for scope in scopes if scope.type not in _SYNTHETIC_SCOPE_TYPES]
        if not candidates:
            return None
        return candidates[-1] if inner else candidates[0]

    def release(self, node: Dict[str, Any], inner: bool = False) -> Optional[Scope]:
        """Return the scope enclosing the one `acquire` would pick."""
        scope = self.acquire(node, inner)
        if scope is None:
            return None
        upper = scope.upper
        while upper is not None and upper.type in _SYNTHETIC_SCOPE_TYPES:
            upper = upper.upper
        return upper

    # ------------------------------------------------------------ creation

    def nest_scope(
        self,
        node: Dict[str, Any],
        upper: Optional[Scope],
        is_method_definition: bool = False,
    ) -> Scope:
        """
        Create the scope `node` introduces below `upper`.

        A named function expression first gets the synthetic scope that
        binds its own name; the function scope is then nested inside it.
        Non-arrow function scopes bind `arguments` before any parameter.
        """
        scope_type = _scope_type_for(node)
        if (
            scope_type is ScopeType.FUNCTION
            and node.get("type") == "FunctionExpression"
            and node.get("id")
            and not is_method_definition
        ):
            upper = self.nest_function_expression_name_scope(node, upper)
        scope = self._create(scope_type, node, upper)
        if scope_type is ScopeType.FUNCTION and node.get("type") != "ArrowFunctionExpression":
            scope.define_arguments()
        return scope

    def nest_module_scope(self, node: Dict[str, Any], upper: Scope) -> Scope:
        return self._create(ScopeType.MODULE, node, upper)

    def nest_tdz_scope(self, node: Dict[str, Any], upper: Scope) -> Scope:
        return self._create(ScopeType.TDZ, node, upper)

    def nest_function_expression_name_scope(
        self, node: Dict[str, Any], upper: Optional[Scope]
    ) -> Scope:
        scope = self._create(
            ScopeType.FUNCTION_EXPRESSION_NAME,
            node,
            upper,
            function_expression_scope=True,
        )
        scope.define(
            node.get("id"),
            Definition(kind=DefinitionKind.FUNCTION_NAME, name=node.get("id"), node=node),
        )
        return scope

    def _create(
        self,
        scope_type: ScopeType,
        node: Dict[str, Any],
        upper: Optional[Scope],
        function_expression_scope: bool = False,
    ) -> Scope:
        scope = Scope(
            type=scope_type,
            block=node,
            upper=upper,
            is_strict=self._is_strict_scope(scope_type, node, upper),
            function_expression_scope=function_expression_scope,
        )
        handle = len(self.scopes)
        self.scopes.append(scope)
        self._node_to_scope.setdefault(id(node), []).append(handle)
        if scope_type is ScopeType.GLOBAL:
            self.global_scope = scope
        logger.debug(
            "nested %s scope #%d for %s (strict=%s)",
            scope_type.value,
            handle,
            node.get("type"),
            scope.is_strict,
        )
        return scope

    def _is_strict_scope(
        self, scope_type: ScopeType, node: Dict[str, Any], upper: Optional[Scope]
    ) -> bool:
        if self.is_implied_strict():
            return True
        if upper is not None and upper.is_strict:
            return True
        if scope_type in (ScopeType.CLASS, ScopeType.MODULE):
            return True
        if scope_type is ScopeType.GLOBAL:
            body = node.get("body") or []
        elif scope_type is ScopeType.FUNCTION:
            function_body = node.get("body") or {}
            if function_body.get("type") != "BlockStatement":
                return False
            body = function_body.get("body") or []
        else:
            return False

        use_directive = self.use_directive()
        for statement in body:
            verdict = _is_use_strict(statement, use_directive)
            if verdict is None:
                break
            if verdict:
                return True
        return False


__all__ = ["ScopeManager"]
