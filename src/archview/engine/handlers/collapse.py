"""Collapse and expand handlers."""

import logging
from typing import Dict

from ...core.errors import GraphIntegrityError
from ...core.types import LayoutState, MenuSection, Node, QueryData
from ...graph.visibility import coalesce_nodes, first_child, get_node, reveal_descendants, show_node, update_node
from ..actions import ToggleNodeCollapsed

logger = logging.getLogger(__name__)


def _collapses_into(nodes: Dict[str, Node], node: Node, collapsed_id: str) -> bool:
    """Whether the first stop on `node`'s display-parent walk is `collapsed_id`."""
    parent_id = node.parent_id
    while parent_id:
        parent = get_node(nodes, parent_id)
        if parent.id == collapsed_id:
            return True
        if parent.collapsed:
            return False
        parent_id = parent.parent_id
    return False


def toggle_node_collapsed(state: QueryData, action: ToggleNodeCollapsed) -> QueryData:
    """
    Flip a node's collapsed flag.

    Collapsing hides everything displayed inside the node that is not already
    behind another collapsed container. Expanding reveals the node's children
    (descending coalesced chains outside the Environments view) and, below
    them, every container that was left expanded.

    Raises:
        GraphIntegrityError: If the node is missing, or has no children to expand.
    """
    nodes = dict(state.nodes)
    measurements = dict(state.measurements)

    node = get_node(nodes, action.node_id)
    collapsed = not node.collapsed
    update_node(nodes, node.id, collapsed=collapsed)

    # The node and every container around it must be re-measured
    current_id = node.id
    while current_id:
        measurements.pop(current_id, None)
        current = update_node(nodes, current_id, width=None, height=None)
        current_id = current.parent_id

    if not collapsed:
        child = first_child(nodes, node.id)
        if child is None:
            raise GraphIntegrityError(
                f"Node with id {node.id} has no children, cannot toggle collapsed state.",
                item_id=node.id,
            )
        coalesce = state.section != MenuSection.ENVIRONMENTS
        show_node(nodes, measurements, child.id, coalesce_nodes=coalesce)
        reveal_descendants(nodes, measurements, node.id, coalesce_nodes=coalesce)
    else:
        hidden = [
            other.id for other in nodes.values()
            if not other.hidden and _collapses_into(nodes, other, node.id)
        ]
        for other_id in hidden:
            update_node(nodes, other_id, hidden=True)
        logger.debug(f"Collapsing {node.id} hid {len(hidden)} nodes")

    return state.model_copy(update={
        "nodes": nodes,
        "measurements": measurements,
        "laid_out": LayoutState.INITIAL,
    })


def expand_all(state: QueryData) -> QueryData:
    """Restore the true hierarchy, uncollapse everything, then coalesce again."""
    nodes = {
        node_id: node.model_copy(update={
            "hidden": False,
            "collapsed": False,
            "parent_id": node.original_parent_id,
            "parent_resource_id": node.original_parent_resource_id,
            "width": None,
            "height": None,
        })
        for node_id, node in state.nodes.items()
    }

    if state.section != MenuSection.ENVIRONMENTS:
        coalesce_nodes(nodes)

    for node_id, node in nodes.items():
        if not node.hidden and node.hidden is not None:
            nodes[node_id] = node.model_copy(update={"hidden": None})

    return state.model_copy(update={
        "nodes": nodes,
        "measurements": {},
        "fit_view_after_layout": True,
        "laid_out": LayoutState.INITIAL,
    })


def collapse_all(state: QueryData) -> QueryData:
    """Collapse every container and hide every node that has a display parent."""
    nodes = dict(state.nodes)

    for node in state.nodes.values():
        if not node.parent_id and node.num_children == 0:
            continue
        changes = {"width": None, "height": None}
        if node.parent_id:
            changes["hidden"] = True
        if node.num_children > 0:
            changes["collapsed"] = True
        nodes[node.id] = node.model_copy(update=changes)

    return state.model_copy(update={
        "nodes": nodes,
        "measurements": {},
        "fit_view_after_layout": True,
        "laid_out": LayoutState.INITIAL,
    })
