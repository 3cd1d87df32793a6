"""
Single-pass binder for ESTree programs.

`Referencer` walks an esprima-compatible AST depth first, asks the
`ScopeManager` for a new scope whenever it enters a scope-introducing
construct, registers bindings and references against the scope active at
that point, and closes each scope as soon as the walk leaves the subtree
that introduced it. The active scope is passed explicitly to every
handler, so nested scopes are closed in strict LIFO order by the call
structure itself.
"""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from .definition import Definition, DefinitionKind
from .errors import ScopeAnalysisError
from .options import AnalysisOptions
from .patterns import is_pattern, visit_pattern
from .reference import ImplicitGlobalCandidate, ReferenceFlag
from .scope import Scope
from .scope_manager import ScopeManager
from .visitor import NodeVisitor, is_node

logger = logging.getLogger(__name__)

Node = Dict[str, Any]


class IterationPhase(str, Enum):
    MATERIALIZE_TDZ = "materialize-tdz"
    VISIT_RIGHT = "visit-right"
    CLOSE_TDZ = "close-tdz"
    MATERIALIZE_ITERATION = "materialize-iteration"
    VISIT_BODY = "visit-body"
    CLOSE_ITERATION = "close-iteration"


# Order in which a `for (let/const ... in/of ...)` statement is processed.
LEXICAL_ITERATION_PHASES = (
    IterationPhase.MATERIALIZE_TDZ,
    IterationPhase.VISIT_RIGHT,
    IterationPhase.CLOSE_TDZ,
    IterationPhase.MATERIALIZE_ITERATION,
    IterationPhase.VISIT_BODY,
    IterationPhase.CLOSE_ITERATION,
)


def _is_lexical_declaration(node: Optional[Node]) -> bool:
    return (
        isinstance(node, dict)
        and node.get("type") == "VariableDeclaration"
        and node.get("kind") != "var"
    )


class Referencer(NodeVisitor):
    def __init__(self, scope_manager: ScopeManager) -> None:
        self.scope_manager = scope_manager

    # ------------------------------------------------------------------ helpers

    def _close(self, node: Node, scope: Optional[Scope]) -> Optional[Scope]:
        """Close every scope owned by `node`, innermost first."""
        while scope is not None and scope.block is node:
            scope = scope.close(self.scope_manager)
        return scope

    def _require_module(self, node: Node) -> None:
        if not (self.scope_manager.is_es6() and self.scope_manager.is_module()):
            raise ScopeAnalysisError(
                f"{node.get('type')} should appear only in an ES6 module context.",
                node,
            )

    def _visit_declarator(
        self,
        target_scope: Scope,
        kind: DefinitionKind,
        declaration: Node,
        index: int,
        scope: Scope,
    ) -> List[Node]:
        """
        Bind the names of one declarator in `target_scope`.

        Writes from the initializer are recorded against `scope`, the scope
        active at the declaration. Returns the expressions embedded in the
        binding pattern, which the caller decides where to visit.
        """
        declarator = declaration["declarations"][index]
        init = declarator.get("init")
        right_hand_nodes: List[Node] = []

        def define(pattern: Node, toplevel: bool) -> None:
            target_scope.define(
                pattern,
                Definition(
                    kind=kind,
                    name=pattern,
                    node=declarator,
                    parent=declaration,
                    index=index,
                    declaration_kind=declaration.get("kind"),
                ),
            )
            if init is not None:
                scope.add_reference(
                    pattern,
                    ReferenceFlag.WRITE,
                    init,
                    partial=not toplevel,
                    init=toplevel,
                )

        visit_pattern(declarator.get("id"), define, right_hand_nodes)
        return right_hand_nodes

    def _assignment_target(self, scope: Scope, node: Node, write_expr: Optional[Node]):
        def reference(pattern: Node, toplevel: bool) -> None:
            candidate = None
            if not scope.is_strict:
                candidate = ImplicitGlobalCandidate(pattern=pattern, node=node)
            scope.add_reference(
                pattern,
                ReferenceFlag.WRITE,
                write_expr,
                candidate,
                partial=not toplevel,
            )

        return reference

    # ---------------------------------------------------------------- functions

    def _visit_function(
        self, node: Node, scope: Scope, is_method_definition: bool = False
    ) -> None:
        # A declaration's name belongs to the enclosing scope, not the
        # function's own.
        if node.get("type") == "FunctionDeclaration":
            scope.define(
                node.get("id"),
                Definition(kind=DefinitionKind.FUNCTION_NAME, name=node.get("id"), node=node),
            )

        function_scope = self.scope_manager.nest_scope(node, scope, is_method_definition)

        right_hand_nodes: List[Node] = []
        for index, param in enumerate(node.get("params") or []):

            def define(pattern: Node, toplevel: bool, index: int = index) -> None:
                function_scope.define(
                    pattern,
                    Definition(
                        kind=DefinitionKind.PARAMETER,
                        name=pattern,
                        node=node,
                        index=index,
                    ),
                )

            visit_pattern(param, define, right_hand_nodes)
        self.visit(right_hand_nodes, function_scope)

        body = node.get("body")
        if is_node(body) and body["type"] == "BlockStatement":
            self.visit_children(body, function_scope)
        else:
            self.visit(body, function_scope)

        self._close(node, function_scope)

    def _visit_FunctionDeclaration(self, node: Node, scope: Scope) -> None:
        self._visit_function(node, scope)

    def _visit_FunctionExpression(self, node: Node, scope: Scope) -> None:
        self._visit_function(node, scope)

    def _visit_ArrowFunctionExpression(self, node: Node, scope: Scope) -> None:
        self._visit_function(node, scope)

    # ------------------------------------------------------------------ classes

    def _visit_class(self, node: Node, scope: Scope) -> None:
        class_id = node.get("id")
        if node.get("type") == "ClassDeclaration":
            scope.define(
                class_id,
                Definition(kind=DefinitionKind.CLASS_NAME, name=class_id, node=node),
            )

        # The heritage is evaluated before the class name is visible.
        self.visit(node.get("superClass"), scope)

        class_scope = self.scope_manager.nest_scope(node, scope)
        if class_id:
            class_scope.define(
                class_id,
                Definition(kind=DefinitionKind.CLASS_NAME, name=class_id, node=node),
            )
        self.visit(node.get("body"), class_scope)

        self._close(node, class_scope)

    def _visit_ClassDeclaration(self, node: Node, scope: Scope) -> None:
        self._visit_class(node, scope)

    def _visit_ClassExpression(self, node: Node, scope: Scope) -> None:
        self._visit_class(node, scope)

    def _visit_property(self, node: Node, scope: Scope) -> None:
        if node.get("computed"):
            self.visit(node.get("key"), scope)

        value = node.get("value")
        is_method = node.get("type") == "MethodDefinition" or node.get("method")
        if is_method and is_node(value) and value["type"] in (
            "FunctionExpression",
            "ArrowFunctionExpression",
        ):
            self._visit_function(value, scope, is_method_definition=True)
        else:
            self.visit(value, scope)

    def _visit_Property(self, node: Node, scope: Scope) -> None:
        self._visit_property(node, scope)

    def _visit_MethodDefinition(self, node: Node, scope: Scope) -> None:
        self._visit_property(node, scope)

    # ------------------------------------------------------------ program/block

    def _visit_Program(self, node: Node, scope: Optional[Scope]) -> None:
        current = self.scope_manager.nest_scope(node, scope)
        if self.scope_manager.is_es6() and self.scope_manager.is_module():
            current = self.scope_manager.nest_module_scope(node, current)

        self.visit_children(node, current)
        self._close(node, current)

    def _visit_BlockStatement(self, node: Node, scope: Scope) -> None:
        current = scope
        if self.scope_manager.is_es6():
            current = self.scope_manager.nest_scope(node, scope)

        self.visit_children(node, current)
        self._close(node, current)

    def _visit_SwitchStatement(self, node: Node, scope: Scope) -> None:
        self.visit(node.get("discriminant"), scope)

        current = scope
        if self.scope_manager.is_es6():
            current = self.scope_manager.nest_scope(node, scope)

        self.visit(node.get("cases"), current)
        self._close(node, current)

    def _visit_WithStatement(self, node: Node, scope: Scope) -> None:
        self.visit(node.get("object"), scope)

        with_scope = self.scope_manager.nest_scope(node, scope)
        self.visit(node.get("body"), with_scope)
        self._close(node, with_scope)

    def _visit_CatchClause(self, node: Node, scope: Scope) -> None:
        catch_scope = self.scope_manager.nest_scope(node, scope)

        right_hand_nodes: List[Node] = []

        def define(pattern: Node, toplevel: bool) -> None:
            catch_scope.define(
                pattern,
                Definition(kind=DefinitionKind.CATCH_CLAUSE, name=pattern, node=node),
            )

        visit_pattern(node.get("param"), define, right_hand_nodes)
        self.visit(right_hand_nodes, catch_scope)
        self.visit(node.get("body"), catch_scope)

        self._close(node, catch_scope)

    # ---------------------------------------------------------------- bindings

    def _visit_VariableDeclaration(self, node: Node, scope: Scope) -> None:
        target_scope = scope.variable_scope if node.get("kind") == "var" else scope
        for index, declarator in enumerate(node.get("declarations") or []):
            right_hand_nodes = self._visit_declarator(
                target_scope, DefinitionKind.VARIABLE, node, index, scope
            )
            self.visit(right_hand_nodes, scope)
            self.visit(declarator.get("init"), scope)

    def _visit_AssignmentExpression(self, node: Node, scope: Scope) -> None:
        left = node.get("left")
        if is_pattern(left):
            if node.get("operator") == "=":
                right_hand_nodes: List[Node] = []
                visit_pattern(
                    left,
                    self._assignment_target(scope, node, node.get("right")),
                    right_hand_nodes,
                )
                self.visit(right_hand_nodes, scope)
            else:
                # Compound assignment targets are never destructured.
                scope.add_reference(left, ReferenceFlag.RW, node.get("right"))
        else:
            self.visit(left, scope)
        self.visit(node.get("right"), scope)

    def _visit_UpdateExpression(self, node: Node, scope: Scope) -> None:
        argument = node.get("argument")
        if is_node(argument) and argument["type"] == "Identifier":
            scope.add_reference(argument, ReferenceFlag.RW)
        else:
            self.visit_children(node, scope)

    def _visit_Identifier(self, node: Node, scope: Scope) -> None:
        scope.add_reference(node)

    def _visit_MemberExpression(self, node: Node, scope: Scope) -> None:
        self.visit(node.get("object"), scope)
        if node.get("computed"):
            self.visit(node.get("property"), scope)

    def _visit_CallExpression(self, node: Node, scope: Scope) -> None:
        callee = node.get("callee") or {}
        if (
            not self.scope_manager.ignore_eval()
            and callee.get("type") == "Identifier"
            and callee.get("name") == "eval"
        ):
            # Direct eval may declare `var`s in the caller's variable scope.
            scope.variable_scope.detect_eval()
        self.visit_children(node, scope)

    def _visit_ThisExpression(self, node: Node, scope: Scope) -> None:
        scope.variable_scope.detect_this()

    def _visit_MetaProperty(self, node: Node, scope: Scope) -> None:
        pass

    def _visit_BreakStatement(self, node: Node, scope: Scope) -> None:
        pass

    def _visit_ContinueStatement(self, node: Node, scope: Scope) -> None:
        pass

    def _visit_LabeledStatement(self, node: Node, scope: Scope) -> None:
        self.visit(node.get("body"), scope)

    # ------------------------------------------------------------------- loops

    def _visit_ForStatement(self, node: Node, scope: Scope) -> None:
        # One static scope stands in for the per-iteration environments.
        current = scope
        if self.scope_manager.is_es6() and _is_lexical_declaration(node.get("init")):
            current = self.scope_manager.nest_scope(node, scope)

        self.visit_children(node, current)
        self._close(node, current)

    def _visit_ForInStatement(self, node: Node, scope: Scope) -> None:
        self._visit_for_in(node, scope)

    def _visit_ForOfStatement(self, node: Node, scope: Scope) -> None:
        self._visit_for_in(node, scope)

    def _visit_for_in(self, node: Node, scope: Scope) -> None:
        left = node.get("left")
        if self.scope_manager.is_es6() and _is_lexical_declaration(left):
            self._visit_lexical_for_in(node, scope)
            return

        if is_node(left) and left["type"] == "VariableDeclaration":
            self.visit(left, scope)

            def reference(pattern: Node, toplevel: bool) -> None:
                scope.add_reference(
                    pattern,
                    ReferenceFlag.WRITE,
                    node.get("right"),
                    partial=not toplevel,
                    init=toplevel,
                )

            visit_pattern(left["declarations"][0].get("id"), reference)
        elif is_pattern(left):
            right_hand_nodes: List[Node] = []
            visit_pattern(
                left,
                self._assignment_target(scope, node, node.get("right")),
                right_hand_nodes,
            )
            self.visit(right_hand_nodes, scope)
        else:
            self.visit(left, scope)

        self.visit(node.get("right"), scope)
        self.visit(node.get("body"), scope)

    def _visit_lexical_for_in(self, node: Node, scope: Scope) -> None:
        """
        Process a `let`/`const` headed for-in/for-of statement.

        The right-hand expression is evaluated inside a TDZ scope that
        shadows the loop names, so it can never see the iteration binding.
        The body then runs in a fresh scope declaring those names.
        """
        current = scope
        for phase in LEXICAL_ITERATION_PHASES:
            logger.debug("for-in/of phase %s", phase.value)
            if phase is IterationPhase.MATERIALIZE_TDZ:
                current = self._materialize_tdz_scope(node, current)
            elif phase is IterationPhase.VISIT_RIGHT:
                self.visit(node.get("right"), current)
            elif phase is IterationPhase.CLOSE_TDZ:
                current = current.close(self.scope_manager)
            elif phase is IterationPhase.MATERIALIZE_ITERATION:
                current = self._materialize_iteration_scope(node, current)
            elif phase is IterationPhase.VISIT_BODY:
                self.visit(node.get("body"), current)
            elif phase is IterationPhase.CLOSE_ITERATION:
                current = self._close(node, current)

    def _materialize_tdz_scope(self, node: Node, scope: Scope) -> Scope:
        tdz_scope = self.scope_manager.nest_tdz_scope(node, scope)
        self._visit_declarator(tdz_scope, DefinitionKind.TDZ, node["left"], 0, tdz_scope)
        return tdz_scope

    def _materialize_iteration_scope(self, node: Node, scope: Scope) -> Scope:
        iteration_scope = self.scope_manager.nest_scope(node, scope)
        declaration = node["left"]
        right_hand_nodes = self._visit_declarator(
            iteration_scope, DefinitionKind.VARIABLE, declaration, 0, iteration_scope
        )

        def reference(pattern: Node, toplevel: bool) -> None:
            iteration_scope.add_reference(
                pattern,
                ReferenceFlag.WRITE,
                node.get("right"),
                partial=not toplevel,
                init=toplevel,
            )

        visit_pattern(declaration["declarations"][0].get("id"), reference)
        self.visit(right_hand_nodes, iteration_scope)
        return iteration_scope

    # ----------------------------------------------------------------- modules

    def _visit_ImportDeclaration(self, node: Node, scope: Scope) -> None:
        self._require_module(node)
        for specifier in node.get("specifiers") or []:
            local = specifier.get("local")
            scope.define(
                local,
                Definition(
                    kind=DefinitionKind.IMPORT_BINDING,
                    name=local,
                    node=specifier,
                    parent=node,
                ),
            )

    def _visit_ExportNamedDeclaration(self, node: Node, scope: Scope) -> None:
        self._require_module(node)
        if node.get("source"):
            return
        if node.get("declaration"):
            self.visit(node.get("declaration"), scope)
            return
        self.visit(node.get("specifiers"), scope)

    def _visit_ExportDefaultDeclaration(self, node: Node, scope: Scope) -> None:
        self._require_module(node)
        self.visit(node.get("declaration"), scope)

    def _visit_ExportAllDeclaration(self, node: Node, scope: Scope) -> None:
        self._require_module(node)

    def _visit_ExportSpecifier(self, node: Node, scope: Scope) -> None:
        self.visit(node.get("local"), scope)


def analyze(
    tree: Node,
    options: Union[AnalysisOptions, Mapping[str, Any], None] = None,
    **overrides: Any,
) -> ScopeManager:
    """
    Build the scope tree for an ESTree `Program`.

    Args:
        tree: esprima-compatible AST as a dict (see `parser.parse_js`).
        options: `AnalysisOptions`, or a mapping of option names.
        overrides: Individual option values applied on top of `options`.

    Returns:
        ScopeManager holding every scope, all of them closed.

    Raises:
        ScopeAnalysisError: If import/export appears outside ES6 module mode.
    """
    if isinstance(options, AnalysisOptions):
        if overrides:
            options = dataclasses.replace(options, **overrides)
    else:
        options = AnalysisOptions.from_mapping({**(options or {}), **overrides})

    scope_manager = ScopeManager(options)
    logger.debug(
        "analyzing %s (ecma_version=%d, source_type=%s)",
        tree.get("type"),
        options.ecma_version,
        options.source_type,
    )
    Referencer(scope_manager).visit(tree, None)
    logger.debug("analysis produced %d scopes", len(scope_manager.scopes))
    return scope_manager


__all__ = ["IterationPhase", "LEXICAL_ITERATION_PHASES", "Referencer", "analyze"]
