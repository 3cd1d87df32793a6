"""Identifier uses collected during the walk."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .scope import Scope
    from .variable import Variable


class ReferenceFlag(IntFlag):
    READ = 0x1
    WRITE = 0x2
    RW = READ | WRITE


@dataclass(frozen=True, eq=False)
class ImplicitGlobalCandidate:
    pattern: Dict[str, Any]
    node: Dict[str, Any]


@dataclass(eq=False)
class Reference:
    """
    A single read and/or write of an identifier.

    Only `resolved` changes after construction; it is filled in when the
    scope that finally matches the name is closed.
    """

    identifier: Dict[str, Any]
    from_scope: "Scope"
    flag: ReferenceFlag = ReferenceFlag.READ
    write_expr: Optional[Dict[str, Any]] = None
    maybe_implicit_global: Optional[ImplicitGlobalCandidate] = None
    partial: bool = False
    init: bool = False
    resolved: Optional["Variable"] = None

    @property
    def name(self) -> str:
        return self.identifier.get("name")

    def is_static(self) -> bool:
        return self.resolved is not None and self.resolved.scope.is_static()

    def is_write(self) -> bool:
        return bool(self.flag & ReferenceFlag.WRITE)

    def is_read(self) -> bool:
        return bool(self.flag & ReferenceFlag.READ)

    def is_read_only(self) -> bool:
        return self.flag == ReferenceFlag.READ

    def is_write_only(self) -> bool:
        return self.flag == ReferenceFlag.WRITE

    def is_read_write(self) -> bool:
        return self.flag == ReferenceFlag.RW


__all__ = ["ImplicitGlobalCandidate", "Reference", "ReferenceFlag"]
