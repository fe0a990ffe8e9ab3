"""
Graph Builder.

Converts the flat resource and event lists into a node tree (synthesizing
ancestors that only exist implicitly), attaches environment badges,
applies global-container overrides and the initial collapse policy, and
builds one edge per (source, target) pair.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence

from ..config import LABEL_CHAR_WIDTH, LABEL_PADDING, MULTIPLE_EVENTS_LABEL
from ..core.environments import node_environments
from ..core.ids import edge_id_from_node_ids, node_id_from_resource_id, parent_resource_id
from ..core.types import (
    Edge,
    EdgeLabel,
    GlobalContainer,
    InitialCollapseNodesType,
    MenuSection,
    Node,
    Resource,
    ResourceEnvironments,
    ResourceEvent,
    ResourceIdPart,
)
from .visibility import coalesce_nodes, get_node, visible_ancestor

logger = logging.getLogger(__name__)

LabelWidth = Callable[[str], float]


def estimate_label_width(text: str) -> float:
    """Character-count estimate of a rendered edge label's width."""
    return len(text) * LABEL_CHAR_WIDTH + LABEL_PADDING


@dataclass
class Flow:
    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: Dict[str, Edge] = field(default_factory=dict)


def add_node_and_parents(resource_id: Sequence[ResourceIdPart], nodes: Dict[str, Node]) -> Node:
    """
    Return the node for `resource_id`, creating it and any missing ancestors.

    New nodes start collapsed with their display parent equal to their true
    parent.
    """
    node_id = node_id_from_resource_id(resource_id)
    existing = nodes.get(node_id)
    if existing is not None:
        return existing

    parent = parent_resource_id(resource_id)
    parent_node_id = node_id_from_resource_id(parent) if parent else None

    node = Node(
        id=node_id,
        resource_id=list(resource_id),
        parent_id=parent_node_id,
        extent="parent" if parent else None,
        original_parent_id=parent_node_id,
        original_parent_resource_id=parent,
        parent_resource_id=parent,
    )
    nodes[node_id] = node

    if parent:
        add_node_and_parents(parent, nodes)

    return node


def _expand_parents(nodes: Dict[str, Node], node: Node) -> None:
    parent_id = node.parent_id
    while parent_id:
        parent = get_node(nodes, parent_id)
        parent.collapsed = False
        parent_id = parent.parent_id


def flow_from_query_response(
    resources: Sequence[Resource],
    resources_environments: Dict[str, ResourceEnvironments],
    environments: Sequence[str],
    resource_events: Sequence[ResourceEvent],
    global_containers: Sequence[GlobalContainer],
    collapse_nodes: InitialCollapseNodesType,
    section: MenuSection,
    label_width: Optional[LabelWidth] = None,
) -> Flow:
    """
    Build the initial nodes and edges.

    Args:
        resources: Resources in the active date window.
        resources_environments: Resolved environments keyed by node id.
        environments: Global environment list (stable colour order).
        resource_events: Flattened per-hop events.
        global_containers: Display overrides.
        collapse_nodes: Initial collapse policy.
        section: The view being built; coalescing is skipped for Environments.
        label_width: Measures edge label text. Defaults to an estimate.

    Returns:
        Flow: Nodes sorted by id and edges keyed by edge id.
    """
    measure = label_width or estimate_label_width
    nodes: Dict[str, Node] = {}

    # Nodes are private to this function until returned, so they are
    # mutated directly here.
    for resource in resources:
        node = add_node_and_parents(resource.id, nodes)
        node.environments = node_environments(resources_environments.get(node.id), environments)
        node.first_seen_at = resource.first_seen_at
        node.last_seen_at = resource.last_seen_at

    for event in resource_events:
        add_node_and_parents(event.principal, nodes)
        add_node_and_parents(event.resource, nodes)

    for container in global_containers:
        add_node_and_parents(container.id, nodes)

    if collapse_nodes == InitialCollapseNodesType.NONE:
        for node in nodes.values():
            node.collapsed = False
    elif collapse_nodes == InitialCollapseNodesType.ENVIRONMENTS:
        for node in list(nodes.values()):
            if any(env.inherited_from is None for env in node.environments):
                _expand_parents(nodes, node)

    for container in global_containers:
        contains_id = node_id_from_resource_id(container.contains)
        contained = nodes.get(contains_id)
        if contained is None:
            logger.debug(f"Global container target {contains_id} not in view, skipping override")
            continue
        container_id = node_id_from_resource_id(container.id)
        contained.parent_id = container_id
        contained.original_parent_id = container_id
        contained.original_parent_resource_id = list(container.id)
        contained.parent_resource_id = list(container.id)
        contained.extent = "parent"

    for node in nodes.values():
        if node.parent_id:
            parent = get_node(nodes, node.parent_id)
            parent.num_children += 1
            if parent.collapsed:
                node.hidden = True

    if section != MenuSection.ENVIRONMENTS:
        coalesce_nodes(nodes)

    edges = _build_edges(nodes, resource_events)

    widths: Dict[str, float] = {}
    for edge_id, edge in edges.items():
        text = edge.label.text
        if not text:
            continue
        if text not in widths:
            widths[text] = measure(text)
        edges[edge_id] = edge.model_copy(update={"label": edge.label.model_copy(update={"width": widths[text]})})

    sorted_nodes = {node_id: nodes[node_id] for node_id in sorted(nodes)}

    logger.info(f"Built graph with {len(sorted_nodes)} nodes and {len(edges)} edges")
    return Flow(nodes=sorted_nodes, edges=edges)


def _build_edges(nodes: Dict[str, Node], resource_events: Sequence[ResourceEvent]) -> Dict[str, Edge]:
    edges: Dict[str, Edge] = {}

    for event in resource_events:
        source = node_id_from_resource_id(event.principal)
        target = node_id_from_resource_id(event.resource)
        edge_id = edge_id_from_node_ids(source, target)

        existing = edges.get(edge_id)
        if existing is not None:
            edges[edge_id] = existing.model_copy(update={
                "label": EdgeLabel(text=MULTIPLE_EVENTS_LABEL),
                "events": existing.events + [event],
            })
            continue

        edge = Edge(
            id=edge_id,
            source=source,
            target=target,
            original_source_id=source,
            original_target_id=target,
            label=EdgeLabel(text=event.type),
            events=[event],
        )

        # A self-loop created only by collapsing is not drawn
        source_visible = visible_ancestor(nodes, source)
        target_visible = visible_ancestor(nodes, target)
        if source_visible.id == target_visible.id and (source_visible.id != source or target_visible.id != target):
            edge.hidden = True

        edges[edge_id] = edge

    return edges


def highlight_secret_values(nodes: Dict[str, Node], secret_type: str) -> Dict[str, Node]:
    """Flag nodes whose top-level segment is of `secret_type`."""
    highlighted: Dict[str, Node] = {}
    for node_id, node in nodes.items():
        if node.resource_id and node.resource_id[0].type == secret_type:
            highlighted[node_id] = node.model_copy(update={"highlighted": True})
        else:
            highlighted[node_id] = node
    return highlighted
