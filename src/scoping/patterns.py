"""
Enumeration of the identifiers bound by a destructuring pattern.

`visit_pattern` reports each bound identifier together with a `toplevel`
flag, which is true only when the whole pattern is a bare identifier.
Expressions embedded in a pattern (default values, computed keys, member
expression targets) are not bindings; they are collected separately so
the caller can visit them as ordinary expressions.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

PatternCallback = Callable[[Dict[str, Any], bool], None]

PATTERN_TYPES = frozenset(
    {
        "Identifier",
        "ObjectPattern",
        "ArrayPattern",
        "AssignmentPattern",
        "SpreadElement",
        "RestElement",
    }
)


def is_pattern(node: Optional[Dict[str, Any]]) -> bool:
    return isinstance(node, dict) and node.get("type") in PATTERN_TYPES


def visit_pattern(
    root: Optional[Dict[str, Any]],
    callback: PatternCallback,
    right_hand_nodes: Optional[List[Dict[str, Any]]] = None,
) -> None:
    """
    Call `callback(identifier, toplevel)` for every identifier bound by `root`.

    Elided array slots are skipped. When `right_hand_nodes` is given, the
    embedded expressions found along the way are appended to it.
    """
    if not isinstance(root, dict):
        return
    if root.get("type") == "Identifier":
        callback(root, True)
        return
    _walk(root, callback, right_hand_nodes)


def _walk(
    node: Optional[Dict[str, Any]],
    callback: PatternCallback,
    right_hand_nodes: Optional[List[Dict[str, Any]]],
) -> None:
    if not isinstance(node, dict):
        return
    node_type = node.get("type")

    if node_type == "Identifier":
        callback(node, False)
    elif node_type == "ObjectPattern":
        for prop in node.get("properties") or []:
            if prop.get("type") != "Property":
                _walk(prop, callback, right_hand_nodes)
                continue
            if prop.get("computed") and right_hand_nodes is not None:
                right_hand_nodes.append(prop.get("key"))
            if prop.get("shorthand") and (prop.get("value") or {}).get("type") != "AssignmentPattern":
                callback(prop.get("key"), False)
            else:
                _walk(prop.get("value"), callback, right_hand_nodes)
    elif node_type == "ArrayPattern":
        for element in node.get("elements") or []:
            if element is None:
                continue
            _walk(element, callback, right_hand_nodes)
    elif node_type in ("RestElement", "SpreadElement"):
        _walk(node.get("argument"), callback, right_hand_nodes)
    elif node_type == "AssignmentPattern":
        _walk(node.get("left"), callback, right_hand_nodes)
        if right_hand_nodes is not None and node.get("right") is not None:
            right_hand_nodes.append(node.get("right"))
    elif right_hand_nodes is not None:
        # Member expressions and other assignment targets are evaluated.
        right_hand_nodes.append(node)


__all__ = ["PATTERN_TYPES", "PatternCallback", "is_pattern", "visit_pattern"]
