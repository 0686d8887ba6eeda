"""
Template nodes.

Immutable node classes produced by the parser. A template compiles to a flat
list of nodes per level; an ImportNode carries the imported template's own
list so it keeps its independent scope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class TemplateNode:
    """Base class for all template nodes."""
    line: int = field(default=0, compare=False, kw_only=True)
    column: int = field(default=0, compare=False, kw_only=True)


@dataclass(frozen=True)
class LiteralNode(TemplateNode):
    """Verbatim output text."""
    text: str


@dataclass(frozen=True)
class EscapedNode(TemplateNode):
    """Expression whose value is HTML-escaped before output."""
    expr: str


@dataclass(frozen=True)
class RawNode(TemplateNode):
    """Expression whose value is output as is."""
    expr: str


@dataclass(frozen=True)
class CodeNode(TemplateNode):
    """
    Statement fragment without direct output.

    A fragment ending with ':' opens a block that guards the following nodes
    up to an `end` fragment.
    """
    fragment: str


@dataclass(frozen=True)
class ImportNode(TemplateNode):
    """
    Resolved import of another template.

    `locals_expr` of None means the imported template shares the importer's
    scope; otherwise its value becomes the imported template's scope.
    """
    name: str
    locals_expr: Optional[str] = None
    nodes: Tuple[TemplateNode, ...] = ()

    @property
    def shares_scope(self) -> bool:
        return self.locals_expr is None


# Compiled node sequence of one template level
TemplateAST = List[TemplateNode]


def iter_imports(nodes: List[TemplateNode]):
    """Yields every ImportNode, depth first, in document order."""
    for node in nodes:
        if isinstance(node, ImportNode):
            yield node
            yield from iter_imports(list(node.nodes))


__all__ = [
    "TemplateNode",
    "LiteralNode",
    "EscapedNode",
    "RawNode",
    "CodeNode",
    "ImportNode",
    "TemplateAST",
    "iter_imports",
]
