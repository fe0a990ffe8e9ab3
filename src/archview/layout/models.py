"""
Layout request/response structures exchanged with a layout solver.

The request is a nested container tree: every visible node becomes a
LayoutNode attached to its nearest visible ancestor, and each LayoutEdge
lives on its source's LayoutNode. A solver fills in `x`, `y`, `width` and
`height` (relative to the parent container) and one EdgeSection per edge
(relative to the edge's common container, see `find_common_container`).
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from ..core.types import EdgeSection

ROOT_ID = "root"


@dataclass
class Padding:
    top: float = 0.0
    left: float = 0.0
    bottom: float = 0.0
    right: float = 0.0


@dataclass
class LayoutLabel:
    text: str
    width: float = 0.0
    height: float = 0.0
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass
class LayoutEdge:
    id: str
    source: str
    target: str
    labels: List[LayoutLabel] = field(default_factory=list)
    selected: bool = False
    section: Optional[EdgeSection] = None


@dataclass
class LayoutNode:
    id: str
    children: List["LayoutNode"] = field(default_factory=list)
    edges: List[LayoutEdge] = field(default_factory=list)
    padding: Padding = field(default_factory=Padding)
    min_width: Optional[float] = None
    min_height: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


@dataclass
class LayoutOptions:
    algorithm: str = "layered"
    direction: str = "RIGHT"
    content_alignment: str = "H_CENTER"
    hierarchy_handling: str = "INCLUDE_CHILDREN"
    edge_edge_spacing: float = 20.0
    node_node_spacing: float = 20.0
    layer_spacing: float = 20.0
    # Space above nodes kept free of ports for environment and issue badges
    ports_surrounding_top: float = 13.0


class LayoutSolver(Protocol):
    """A hierarchical layout engine."""

    def layout(self, graph: LayoutNode, options: LayoutOptions) -> LayoutNode:
        ...


def index_layout_tree(graph: LayoutNode) -> tuple[Dict[str, LayoutNode], Dict[str, Optional[str]]]:
    """
    Index a layout tree.

    Returns:
        A (nodes by id, parent id by id) pair. Top-level nodes have a parent
        of None; the synthetic root itself is not indexed.
    """
    nodes: Dict[str, LayoutNode] = {}
    parents: Dict[str, Optional[str]] = {}

    stack = [(child, None) for child in graph.children]
    while stack:
        node, parent_id = stack.pop()
        nodes[node.id] = node
        parents[node.id] = parent_id
        stack.extend((child, node.id) for child in node.children)

    return nodes, parents


def strict_ancestors(node_id: str, parents: Dict[str, Optional[str]]) -> List[str]:
    ancestors = []
    current = parents.get(node_id)
    while current is not None:
        ancestors.append(current)
        current = parents.get(current)
    return ancestors


def find_common_container(source: str, target: str, parents: Dict[str, Optional[str]]) -> Optional[str]:
    """
    The container an edge's coordinates are relative to.

    A loopback edge uses its node's parent. Otherwise the longest common
    prefix of the two node ids is trimmed back to a whole `Type::id` pair;
    when that names a layout node enclosing both endpoints it is used,
    else the lowest common layout ancestor is. None means the root.
    """
    if source == target:
        return parents.get(source)

    parts = os.path.commonprefix([source, target]).split("::")
    if len(parts) % 2 == 0:
        # Ends inside a type name
        parts = parts[:-1]
    else:
        # Ends inside an id, drop it along with its type
        parts = parts[:-2]
    candidate = "::".join(parts)

    source_ancestors = strict_ancestors(source, parents)
    target_ancestors = set(strict_ancestors(target, parents))

    if candidate and candidate in source_ancestors and candidate in target_ancestors:
        return candidate

    for ancestor in source_ancestors:
        if ancestor in target_ancestors:
            return ancestor
    return None


def container_offset(container_id: Optional[str], nodes: Dict[str, LayoutNode], parents: Dict[str, Optional[str]]) -> tuple[float, float]:
    """Absolute position of a container, summing positions up the layout tree."""
    x = y = 0.0
    current = container_id
    while current is not None:
        node = nodes[current]
        x += node.x or 0.0
        y += node.y or 0.0
        current = parents.get(current)
    return x, y
