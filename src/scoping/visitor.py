"""
Recursive visitor over the dict-shaped ESTree produced by esprima.

Subclasses define `_visit_<NodeType>(node, scope)` handlers; node types
without a handler fall back to visiting their children in source order.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator

# Node keys that carry metadata rather than child nodes.
_METADATA_KEYS = frozenset(
    {
        "type",
        "loc",
        "range",
        "comments",
        "leadingComments",
        "trailingComments",
        "innerComments",
        "tokens",
        "errors",
        "regex",
    }
)


def is_node(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("type"), str)


def iter_child_nodes(node: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    """Yield the direct child nodes of `node` in source order."""
    for key, value in node.items():
        if key in _METADATA_KEYS:
            continue
        if isinstance(value, list):
            for element in value:
                if is_node(element):
                    yield element
        elif is_node(value):
            yield value


class NodeVisitor:
    def visit(self, node: Any, scope: Any) -> None:
        if node is None:
            return
        if isinstance(node, list):
            for element in node:
                self.visit(element, scope)
            return
        if not is_node(node):
            return

        handler = getattr(self, f"_visit_{node['type']}", None)
        if handler:
            handler(node, scope)
        else:
            self.visit_children(node, scope)

    def visit_children(self, node: Dict[str, Any], scope: Any) -> None:
        for child in iter_child_nodes(node):
            self.visit(child, scope)


__all__ = ["NodeVisitor", "is_node", "iter_child_nodes"]
