"""Lexical scope analysis for ECMAScript ASTs."""

from .definition import Definition, DefinitionKind
from .errors import ScopeAnalysisError
from .options import AnalysisOptions
from .patterns import is_pattern, visit_pattern
from .reference import ImplicitGlobalCandidate, Reference, ReferenceFlag
from .referencer import LEXICAL_ITERATION_PHASES, IterationPhase, Referencer, analyze
from .scope import ImplicitGlobals, Scope, ScopeType
from .scope_manager import ScopeManager
from .variable import Variable

__all__ = [
    "AnalysisOptions",
    "Definition",
    "DefinitionKind",
    "ImplicitGlobalCandidate",
    "ImplicitGlobals",
    "IterationPhase",
    "LEXICAL_ITERATION_PHASES",
    "Reference",
    "ReferenceFlag",
    "Referencer",
    "Scope",
    "ScopeAnalysisError",
    "ScopeManager",
    "ScopeType",
    "Variable",
    "analyze",
    "is_pattern",
    "visit_pattern",
]
