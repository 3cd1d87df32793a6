"""Binding occurrences recorded while walking declarations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class DefinitionKind(str, Enum):
    VARIABLE = "Variable"
    PARAMETER = "Parameter"
    FUNCTION_NAME = "FunctionName"
    CLASS_NAME = "ClassName"
    CATCH_CLAUSE = "CatchClause"
    IMPORT_BINDING = "ImportBinding"
    TDZ = "TDZ"


@dataclass(frozen=True, eq=False)
class Definition:
    """
    One place where a name is bound.

    `name` is the binding identifier node, `node` the construct that
    introduced it (declarator, function, class, catch clause or import
    specifier) and `parent` the enclosing declaration, when there is one.
    """

    kind: DefinitionKind
    name: Dict[str, Any]
    node: Dict[str, Any]
    parent: Optional[Dict[str, Any]] = None
    index: Optional[int] = None
    declaration_kind: Optional[str] = None


__all__ = ["Definition", "DefinitionKind"]
