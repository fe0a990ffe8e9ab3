"""
Node Coalescer and Visibility Manager.

Coalescing hides single-child ancestors and reparents their descendant to
simplify the visible tree. `show_node` reverses enough of that (and of any
collapsing) to make a node visible with its context.

Both functions work on a nodes dict owned by the caller and replace entries
with updated copies; Node objects taken from a previous state are never
mutated.
"""

import logging
from typing import Dict, Optional

from ..core.errors import GraphIntegrityError
from ..core.types import Measurement, Node

logger = logging.getLogger(__name__)


def get_node(nodes: Dict[str, Node], node_id: str) -> Node:
    node = nodes.get(node_id)
    if node is None:
        raise GraphIntegrityError(f"Node {node_id} not found", item_id=node_id)
    return node


def update_node(nodes: Dict[str, Node], node_id: str, **changes) -> Node:
    node = get_node(nodes, node_id).model_copy(update=changes)
    nodes[node_id] = node
    return node


def first_child(nodes: Dict[str, Node], node_id: str) -> Optional[Node]:
    """The first node whose true parent is `node_id`."""
    for node in nodes.values():
        if node.original_parent_id == node_id:
            return node
    return None


def visible_ancestor(nodes: Dict[str, Node], node_id: str) -> Node:
    """Walk up display parents from `node_id` until a visible node (or the root) is found."""
    node = get_node(nodes, node_id)
    while node.hidden and node.parent_id:
        node = get_node(nodes, node.parent_id)
    return node


def coalesce_nodes(nodes: Dict[str, Node]) -> None:
    """
    Merge single-child chains.

    For every leaf, walk up the display parents. Each ancestor with exactly
    one child is hidden and the leaf is reparented past it. The walk stops at
    the first ancestor with several children. If every ancestor up to the
    root was merged, the leaf itself is made visible.
    """
    hidden_count = 0

    for node_id in list(nodes):
        if nodes[node_id].num_children > 0:
            continue

        parent_id = nodes[node_id].parent_id
        coalesced_to_root = True

        while parent_id:
            parent = get_node(nodes, parent_id)
            if parent.num_children != 1:
                coalesced_to_root = False
                break

            if not parent.hidden:
                hidden_count += 1
            update_node(nodes, parent_id, hidden=True)
            update_node(
                nodes,
                node_id,
                parent_id=parent.parent_id,
                parent_resource_id=parent.parent_resource_id,
            )
            parent_id = parent.parent_id

        if coalesced_to_root:
            update_node(nodes, node_id, hidden=False)

    logger.debug(f"Coalesced {hidden_count} single-child nodes")


def _descend_coalesced(nodes: Dict[str, Node], node_id: str, coalesce: bool) -> str:
    """
    The leaf standing in for `node_id` if it was coalesced away, else `node_id`.

    Only single-child chains that end in a leaf are merged by `coalesce_nodes`;
    a chain that reaches a node with several children was left visible.
    """
    if not coalesce:
        return node_id

    current_id = node_id
    while get_node(nodes, current_id).num_children == 1:
        child = first_child(nodes, current_id)
        if child is None:
            raise GraphIntegrityError(f"Could not find child node for node {current_id}", item_id=current_id)
        current_id = child.id

    if get_node(nodes, current_id).num_children == 0:
        return current_id
    return node_id


def show_node(
    nodes: Dict[str, Node],
    measurements: Dict[str, Measurement],
    node_id: str,
    coalesce_nodes: bool = True,
) -> str:
    """
    Make a node visible along with the context around it.

    A node that was coalesced away is replaced by the leaf that stands in
    for it. Every display ancestor is uncollapsed and
    unhidden, and hidden siblings of each ancestor are revealed too so the
    user never sees an ancestor that looks like it has a single child.
    Measurements of every touched node are dropped to force re-measurement.

    Args:
        nodes: Nodes dict owned by the caller. Updated in place.
        measurements: Measurements dict owned by the caller. Updated in place.
        node_id: The node to show.
        coalesce_nodes: Whether coalesced chains should be descended.

    Returns:
        str: The id of the node that was actually revealed.

    Raises:
        GraphIntegrityError: If a node or the child of a coalesced node is missing.
    """
    node_id = _descend_coalesced(nodes, node_id, coalesce_nodes)

    node = update_node(nodes, node_id, hidden=None)
    measurements.pop(node_id, None)

    parent_id = node.parent_id
    while parent_id:
        parent = update_node(nodes, parent_id, hidden=None, collapsed=False)
        measurements.pop(parent_id, None)
        update_node(nodes, node_id, parent_resource_id=parent.resource_id)

        hidden_siblings = [
            other.id for other in nodes.values()
            if other.original_parent_id == parent_id and other.hidden
        ]
        for sibling_id in hidden_siblings:
            revealed_id = _descend_coalesced(nodes, sibling_id, coalesce_nodes)
            update_node(
                nodes,
                revealed_id,
                hidden=None,
                parent_resource_id=parent.resource_id,
                width=None,
                height=None,
            )
            measurements.pop(revealed_id, None)

        parent_id = parent.parent_id

    logger.debug(f"Revealed node {node_id}")
    return node_id


def reveal_descendants(
    nodes: Dict[str, Node],
    measurements: Dict[str, Measurement],
    node_id: str,
    coalesce_nodes: bool = True,
) -> None:
    """
    Reveal the subtree below an expanded node down to collapsed containers.

    Children of every expanded node become visible; coalesced chains are
    descended so their hidden single-child links stay hidden.
    """
    children: Dict[str, list] = {}
    for node in nodes.values():
        if node.original_parent_id:
            children.setdefault(node.original_parent_id, []).append(node.id)

    pending = [node_id]
    while pending:
        current = get_node(nodes, pending.pop())
        if current.collapsed:
            continue
        for child_id in children.get(current.id, []):
            revealed_id = _descend_coalesced(nodes, child_id, coalesce_nodes)
            if get_node(nodes, revealed_id).hidden:
                update_node(nodes, revealed_id, hidden=None, width=None, height=None)
                measurements.pop(revealed_id, None)
            pending.append(revealed_id)
