"""
Layout Adapter.

Builds the nested-container request for a LayoutSolver from the current
nodes and edges, coalesces parallel edges, hides self-loops created by
collapsing, and translates the solved relative coordinates back into
absolute node positions and edge routes.
"""

import logging
from typing import Dict, Optional, Tuple

from ..config import (
    CONTAINER_PADDING,
    EDGE_EDGE_SPACING,
    ISSUE_BADGE_SIZE,
    LAYER_SPACING_LABEL_OFFSET,
    MULTIPLE_EVENTS_LABEL,
    NODE_NODE_SPACING,
    TITLE_HEIGHT,
)
from ..core.errors import GraphIntegrityError
from ..core.ids import node_id_from_resource_id
from ..core.types import Edge, EdgeSection, Measurement, Node, Point
from ..graph.visibility import get_node
from .models import (
    ROOT_ID,
    LayoutEdge,
    LayoutLabel,
    LayoutNode,
    LayoutOptions,
    LayoutSolver,
    Padding,
    container_offset,
    find_common_container,
    index_layout_tree,
)

logger = logging.getLogger(__name__)


def default_layout_options() -> LayoutOptions:
    return LayoutOptions(
        edge_edge_spacing=EDGE_EDGE_SPACING,
        node_node_spacing=NODE_NODE_SPACING,
        ports_surrounding_top=ISSUE_BADGE_SIZE / 2,
    )


def _container_padding() -> Padding:
    return Padding(
        top=TITLE_HEIGHT + CONTAINER_PADDING,
        left=CONTAINER_PADDING,
        bottom=CONTAINER_PADDING,
        right=CONTAINER_PADDING,
    )


def _resolve_endpoint(
    nodes: Dict[str, Node],
    coalesced_targets: Dict[str, str],
    original_id: str,
) -> Node:
    node = get_node(nodes, coalesced_targets.get(original_id, original_id))
    # Inside a collapsed ancestor, attach to the closest visible one
    while node.hidden and node.parent_id:
        node = get_node(nodes, node.parent_id)
    return node


def layout_graph(
    nodes: Dict[str, Node],
    edges: Dict[str, Edge],
    measurements: Dict[str, Measurement],
    solver: LayoutSolver,
) -> Tuple[Dict[str, Node], Dict[str, Edge]]:
    """
    Lay out the visible graph.

    Each pass first resets every edge to its own events, the ones whose
    principal and resource match the edge's original endpoints, dropping
    events merged in by an earlier pass. Several distinct events between the
    same pair survive the reset and keep the "(Multiple)" label.

    Args:
        nodes: Current nodes.
        edges: Current edges.
        measurements: Rendered sizes used as minimum node sizes.
        solver: The layout engine.

    Returns:
        New nodes and edges dicts with positions, sizes and routes applied.

    Raises:
        GraphIntegrityError: If an edge lacks its original endpoints or
            references a node missing from the layout tree.
    """
    nodes = dict(nodes)
    edges = dict(edges)
    options = default_layout_options()

    layout_nodes: Dict[str, LayoutNode] = {
        node_id: LayoutNode(id=node_id, padding=_container_padding()) for node_id in nodes
    }
    root = LayoutNode(id=ROOT_ID)

    # Attach each visible node to its closest visible true ancestor
    for node_id, node in list(nodes.items()):
        if node.hidden:
            continue

        parent: Optional[Node] = None
        if node.original_parent_id:
            parent = get_node(nodes, node.original_parent_id)
            while parent.hidden and parent.original_parent_id:
                parent = get_node(nodes, parent.original_parent_id)

        if parent is not None and not parent.hidden:
            layout_nodes[parent.id].children.append(layout_nodes[node_id])
            nodes[node_id] = node.model_copy(update={"parent_resource_id": parent.resource_id})
        else:
            root.children.append(layout_nodes[node_id])

    # Hidden (coalesced) ancestors map to the first visible node found below them
    coalesced_targets: Dict[str, str] = {}
    for node_id, node in nodes.items():
        if node.hidden or not node.original_parent_id:
            continue
        parent_id: Optional[str] = node.original_parent_id
        while parent_id:
            parent = get_node(nodes, parent_id)
            if not parent.hidden:
                break
            coalesced_targets.setdefault(parent_id, node_id)
            parent_id = parent.original_parent_id

    for node_id, measurement in measurements.items():
        layout_node = layout_nodes.get(node_id)
        if layout_node is not None:
            layout_node.min_width = measurement.width
            layout_node.min_height = measurement.height

    _, tree_parents = index_layout_tree(root)

    layout_edges: Dict[str, LayoutEdge] = {}
    for edge_id, edge in list(edges.items()):
        if not edge.events:
            raise GraphIntegrityError(f"Edge {edge_id} has no events", item_id=edge_id)

        if not edge.original_source_id:
            raise GraphIntegrityError(f"Edge {edge_id} missing original source", item_id=edge_id)
        if not edge.original_target_id:
            raise GraphIntegrityError(f"Edge {edge_id} missing original target", item_id=edge_id)

        # Undo coalescing from any previous layout pass
        own_events = [
            event for event in edge.events
            if node_id_from_resource_id(event.principal) == edge.original_source_id
            and node_id_from_resource_id(event.resource) == edge.original_target_id
        ] or edge.events[:1]
        edge = edge.model_copy(update={
            "events": own_events,
            "label": edge.label.model_copy(update={
                "text": own_events[0].type if len(own_events) == 1 else MULTIPLE_EVENTS_LABEL,
            }),
        })

        source = _resolve_endpoint(nodes, coalesced_targets, edge.original_source_id)
        target = _resolve_endpoint(nodes, coalesced_targets, edge.original_target_id)

        for endpoint in (source, target):
            if endpoint.id not in tree_parents:
                raise GraphIntegrityError(
                    f"Node {endpoint.id} not found in layout tree while processing edge {edge_id}",
                    item_id=endpoint.id,
                )

        if source.id == target.id and (
            source.id != edge.original_source_id or target.id != edge.original_target_id
        ):
            edges[edge_id] = edge.model_copy(update={"hidden": True})
            continue

        edge = edge.model_copy(update={"hidden": False})
        edges[edge_id] = edge

        pair_key = f"{source.id}\0{target.id}"
        existing = layout_edges.get(pair_key)
        if existing is None:
            layout_edge = LayoutEdge(
                id=edge_id,
                source=source.id,
                target=target.id,
                labels=[LayoutLabel(text=edge.label.text, width=edge.label.width or 0.0)],
                selected=edge.selected,
            )
            layout_edges[pair_key] = layout_edge
            layout_nodes[source.id].edges.append(layout_edge)
            continue

        # Coalesce parallel edges, keeping a selected one visible
        if edge.selected and not existing.selected:
            loser_id = existing.id
            existing.id = edge_id
            existing.selected = True
        else:
            loser_id = edge_id

        kept_id = existing.id
        loser = edges[loser_id]
        edges[loser_id] = loser.model_copy(update={"hidden": True})

        kept = edges[kept_id]
        edges[kept_id] = kept.model_copy(update={
            "label": kept.label.model_copy(update={"text": MULTIPLE_EVENTS_LABEL}),
            "events": kept.events + loser.events,
        })
        existing.labels[0].text = MULTIPLE_EVENTS_LABEL

    widths = [edge.label.width for edge in edges.values() if not edge.hidden and edge.label.width]
    if widths:
        # Leave room between layers for the widest label
        options.layer_spacing = max(max(widths) - LAYER_SPACING_LABEL_OFFSET, 0.0)
    else:
        options.layer_spacing = options.node_node_spacing

    logger.debug(f"Solving layout for {len(tree_parents)} visible nodes and {len(layout_edges)} edges")
    solved = solver.layout(root, options)

    solved_nodes, solved_parents = index_layout_tree(solved)

    def visit(layout_node: LayoutNode, parent_id: Optional[str]) -> None:
        node = get_node(nodes, layout_node.id)
        parent_abs = nodes[parent_id].absolute_position if parent_id else Point()
        position = Point(x=layout_node.x or 0.0, y=layout_node.y or 0.0)
        nodes[layout_node.id] = node.model_copy(update={
            "parent_id": parent_id,
            "extent": "parent" if parent_id else None,
            "position": position,
            "width": layout_node.width,
            "height": layout_node.height,
            "absolute_position": Point(x=position.x + parent_abs.x, y=position.y + parent_abs.y),
        })

        for child in layout_node.children:
            visit(child, layout_node.id)

        for layout_edge in layout_node.edges:
            _apply_edge_route(edges, layout_edge, solved_nodes, solved_parents)

    for child in solved.children:
        visit(child, None)

    logger.info(f"Laid out {len(solved_nodes)} nodes")
    return nodes, edges


def _apply_edge_route(
    edges: Dict[str, Edge],
    layout_edge: LayoutEdge,
    solved_nodes: Dict[str, LayoutNode],
    solved_parents: Dict[str, Optional[str]],
) -> None:
    section = layout_edge.section
    if section is None:
        return

    edge = edges.get(layout_edge.id)
    if edge is None:
        raise GraphIntegrityError(f"Edge {layout_edge.id} not found after layout", item_id=layout_edge.id)

    # Solver coordinates are relative to the closest common container
    container_id = find_common_container(
        section.incoming_shape or layout_edge.source,
        section.outgoing_shape or layout_edge.target,
        solved_parents,
    )
    dx, dy = container_offset(container_id, solved_nodes, solved_parents)

    def shift(point: Point) -> Point:
        return Point(x=point.x + dx, y=point.y + dy)

    absolute_section = EdgeSection(
        start_point=shift(section.start_point),
        end_point=shift(section.end_point),
        bend_points=[shift(point) for point in section.bend_points],
        incoming_shape=section.incoming_shape,
        outgoing_shape=section.outgoing_shape,
    )

    label = layout_edge.labels[0] if layout_edge.labels else None
    edges[layout_edge.id] = edge.model_copy(update={
        "source": layout_edge.source,
        "target": layout_edge.target,
        "label": edge.label.model_copy(update={
            "x": ((label.x if label and label.x is not None else 0.0) + dx),
            "y": ((label.y if label and label.y is not None else 0.0) + dy),
        }),
        "section": absolute_section,
    })
