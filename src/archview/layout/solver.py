"""
Default layered layout solver.

A small left-to-right layered layout built on networkx. Each container lays
out its own children: edges between descendants are lifted to the children
of their common container, strongly connected groups are condensed, and
each child is placed in the layer given by its longest incoming path.
Containers are sized bottom-up to fit their children plus padding.

Production renderers can plug in a full hierarchical engine through the
LayoutSolver protocol; this solver keeps the CLI and tests self-contained.
"""

import copy
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

import networkx as nx

from ..config import NODE_HEIGHT, NODE_MIN_WIDTH
from ..core.types import EdgeSection, Point
from .models import (
    LayoutEdge,
    LayoutNode,
    LayoutOptions,
    container_offset,
    find_common_container,
    index_layout_tree,
    strict_ancestors,
)

logger = logging.getLogger(__name__)

LABEL_HEIGHT = 14.0
ROUTE_MARGIN = 10.0


class LayeredLayoutSolver:
    """Lays out a nested container tree left to right."""

    def __init__(self, default_width: float = NODE_MIN_WIDTH, default_height: float = NODE_HEIGHT):
        self.default_width = default_width
        self.default_height = default_height
        self._logger = logging.getLogger(f"{__name__}.LayeredLayoutSolver")

    def layout(self, graph: LayoutNode, options: LayoutOptions) -> LayoutNode:
        result = copy.deepcopy(graph)
        nodes, parents = index_layout_tree(result)

        edges: List[LayoutEdge] = []
        for node in nodes.values():
            edges.extend(node.edges)
        edges.extend(result.edges)

        lifted = self._lift_edges(edges, parents)

        for child in result.children:
            self._size_and_place(child, lifted, options)
        self._place_children(result, result.children, lifted.get(None, []), options)
        result.x = result.y = 0.0

        for edge in edges:
            self._route(edge, nodes, parents, options)

        self._logger.debug(f"Placed {len(nodes)} nodes, routed {len(edges)} edges")
        return result

    # =========================================================================
    # Placement
    # =========================================================================

    def _lift_edges(
        self,
        edges: List[LayoutEdge],
        parents: Dict[str, Optional[str]],
    ) -> Dict[Optional[str], List[Tuple[str, str]]]:
        """Map each edge to a (child, child) pair inside its common container."""
        lifted: Dict[Optional[str], List[Tuple[str, str]]] = defaultdict(list)

        def lift(node_id: str, container: Optional[str]) -> str:
            while parents.get(node_id) != container:
                node_id = parents[node_id]
            return node_id

        for edge in edges:
            if edge.source not in parents or edge.target not in parents:
                continue
            container = _lowest_common_ancestor(edge.source, edge.target, parents)
            source = lift(edge.source, container)
            target = lift(edge.target, container)
            if source != target:
                lifted[container].append((source, target))

        return lifted

    def _size_and_place(
        self,
        node: LayoutNode,
        lifted: Dict[Optional[str], List[Tuple[str, str]]],
        options: LayoutOptions,
    ) -> None:
        for child in node.children:
            self._size_and_place(child, lifted, options)

        if not node.children:
            node.width = max(node.min_width or 0.0, self.default_width)
            node.height = max(node.min_height or 0.0, self.default_height)
            return

        self._place_children(node, node.children, lifted.get(node.id, []), options)

    def _place_children(
        self,
        container: LayoutNode,
        children: List[LayoutNode],
        pairs: List[Tuple[str, str]],
        options: LayoutOptions,
    ) -> None:
        graph = nx.DiGraph()
        graph.add_nodes_from(child.id for child in children)
        graph.add_edges_from(pairs)

        condensed = nx.condensation(graph)
        layer_of_component: Dict[int, int] = {}
        for component in nx.topological_sort(condensed):
            predecessors = list(condensed.predecessors(component))
            layer_of_component[component] = (
                max(layer_of_component[p] for p in predecessors) + 1 if predecessors else 0
            )

        mapping = condensed.graph["mapping"]
        layers: Dict[int, List[LayoutNode]] = defaultdict(list)
        for child in children:
            layers[layer_of_component[mapping[child.id]]].append(child)

        padding = container.padding
        x = padding.left
        content_height = 0.0
        for layer_index in sorted(layers):
            layer = layers[layer_index]
            y = padding.top
            layer_width = 0.0
            for child in layer:
                child.x = x
                child.y = y
                y += (child.height or 0.0) + options.node_node_spacing
                layer_width = max(layer_width, child.width or 0.0)
            content_height = max(content_height, y - options.node_node_spacing - padding.top)
            x += layer_width + options.layer_spacing

        content_width = x - options.layer_spacing - padding.left if layers else 0.0
        container.width = max(container.min_width or 0.0, padding.left + content_width + padding.right)
        container.height = max(container.min_height or 0.0, padding.top + content_height + padding.bottom)

    # =========================================================================
    # Routing
    # =========================================================================

    def _route(
        self,
        edge: LayoutEdge,
        nodes: Dict[str, LayoutNode],
        parents: Dict[str, Optional[str]],
        options: LayoutOptions,
    ) -> None:
        source = nodes.get(edge.source)
        target = nodes.get(edge.target)
        if source is None or target is None:
            return

        sx, sy = container_offset(edge.source, nodes, parents)
        tx, ty = container_offset(edge.target, nodes, parents)
        sw, sh = source.width or 0.0, source.height or 0.0
        tw, th = target.width or 0.0, target.height or 0.0

        top = options.ports_surrounding_top
        start = Point(x=sx + sw, y=sy + top + (sh - top) / 2)
        end = Point(x=tx, y=ty + top + (th - top) / 2)
        bends: List[Point] = []

        if edge.source == edge.target:
            above = sy - ROUTE_MARGIN
            bends = [
                Point(x=start.x + ROUTE_MARGIN, y=start.y),
                Point(x=start.x + ROUTE_MARGIN, y=above),
                Point(x=end.x - ROUTE_MARGIN, y=above),
                Point(x=end.x - ROUTE_MARGIN, y=end.y),
            ]
        elif end.x >= start.x:
            if start.y != end.y:
                middle = (start.x + end.x) / 2
                bends = [Point(x=middle, y=start.y), Point(x=middle, y=end.y)]
        else:
            below = max(sy + sh, ty + th) + ROUTE_MARGIN
            bends = [
                Point(x=start.x + ROUTE_MARGIN, y=start.y),
                Point(x=start.x + ROUTE_MARGIN, y=below),
                Point(x=end.x - ROUTE_MARGIN, y=below),
                Point(x=end.x - ROUTE_MARGIN, y=end.y),
            ]

        # Report coordinates relative to the edge's common container
        container_id = find_common_container(edge.source, edge.target, parents)
        cx, cy = container_offset(container_id, nodes, parents)

        def relative(point: Point) -> Point:
            return Point(x=point.x - cx, y=point.y - cy)

        edge.section = EdgeSection(
            start_point=relative(start),
            end_point=relative(end),
            bend_points=[relative(point) for point in bends],
            incoming_shape=edge.source,
            outgoing_shape=edge.target,
        )

        for label in edge.labels:
            label.height = label.height or LABEL_HEIGHT
            label.x = (start.x + end.x) / 2 - label.width / 2 - cx
            label.y = min(start.y, end.y) - label.height - cy


def _lowest_common_ancestor(source: str, target: str, parents: Dict[str, Optional[str]]) -> Optional[str]:
    target_chain = set(strict_ancestors(target, parents))
    for ancestor in strict_ancestors(source, parents):
        if ancestor in target_chain:
            return ancestor
    return None
