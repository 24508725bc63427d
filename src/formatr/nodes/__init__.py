"""formatr AST nodes.

Immutable, slotted dataclasses. A template is a flat sequence of nodes;
placeholders hold their path and filter chain as tuples, so nothing in
the tree is nested deeper than one level.
"""

from formatr.nodes.base import Node
from formatr.nodes.output import FilterCall, Include, Literal, Placeholder, TemplateNode

__all__ = [
    "FilterCall",
    "Include",
    "Literal",
    "Node",
    "Placeholder",
    "TemplateNode",
]
