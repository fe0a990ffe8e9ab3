"""
Selection handlers.

Selection is kept twice: as id sets on `state.selection` and as `selected`
flags on nodes and edges. Every handler here updates both together.

Transitive rules:
- selecting a resource selects the edges it participates in;
- selecting an edge selects its whole event chain;
- an issue is selected automatically once all its resources and edges are.
"""

import logging
from typing import Dict, FrozenSet, Iterable, Optional, Set

from ...core.errors import GraphIntegrityError
from ...core.ids import edge_id_from_resource_ids, node_id_from_resource_id
from ...core.types import Edge, Issue, LayoutState, Measurement, Node, QueryData, Selection
from ...graph.events import chain_closure
from ...graph.visibility import get_node, show_node
from ..actions import (
    DeselectEdge,
    DeselectIssue,
    DeselectResource,
    SelectEdge,
    SelectIssue,
    SelectResource,
)

logger = logging.getLogger(__name__)


def _get_edge(edges: Dict[str, Edge], edge_id: str) -> Edge:
    edge = edges.get(edge_id)
    if edge is None:
        raise GraphIntegrityError(f"Edge {edge_id} not found", item_id=edge_id)
    return edge


def _get_issue(state: QueryData, issue_id: str) -> Issue:
    issue = (state.issues or {}).get(issue_id)
    if issue is None:
        raise GraphIntegrityError(f"Issue with id {issue_id} not found", item_id=issue_id)
    return issue


def _flag_nodes(nodes: Dict[str, Node], node_ids: Iterable[str], selected: bool) -> None:
    for node_id in node_ids:
        node = get_node(nodes, node_id)
        if node.selected != selected:
            nodes[node_id] = node.model_copy(update={"selected": selected})


def _flag_edges(edges: Dict[str, Edge], edge_ids: Iterable[str], selected: bool) -> None:
    for edge_id in edge_ids:
        edge = _get_edge(edges, edge_id)
        if edge.selected != selected:
            edges[edge_id] = edge.model_copy(update={"selected": selected})


def auto_select_issues(
    issues: Optional[Dict[str, Issue]],
    resources: FrozenSet[str],
    edges: FrozenSet[str],
    selected: FrozenSet[str],
) -> FrozenSet[str]:
    """Add every issue whose resources and edges are all selected."""
    added = {
        issue.id
        for issue in (issues or {}).values()
        if issue.id not in selected
        and all(resource_id in resources for resource_id in issue.resource_ids)
        and all(edge_id in edges for edge_id in issue.edge_ids)
    }
    return selected | added


def incident_edge_ids(state: QueryData, node_id: str) -> Set[str]:
    """Edges in which `node_id` is the principal or the target."""
    return {
        edge_id_from_resource_ids(event.principal, event.resource)
        for event in state.resource_events
        if node_id_from_resource_id(event.principal) == node_id
        or node_id_from_resource_id(event.resource) == node_id
    }


def select_resource(state: QueryData, action: SelectResource) -> QueryData:
    node = get_node(state.nodes, action.resource_id)
    if node.selected:
        return state

    nodes = dict(state.nodes)
    nodes[node.id] = node.model_copy(update={"selected": True})

    measurements = state.measurements
    laid_out = state.laid_out
    if node.hidden:
        measurements = dict(state.measurements)
        show_node(nodes, measurements, node.id)
        laid_out = LayoutState.INITIAL

    resources = state.selection.resources | {node.id}
    selected_edges = state.selection.edges

    edges = state.edges
    if action.select_edges:
        incident = incident_edge_ids(state, node.id)
        edges = dict(state.edges)
        _flag_edges(edges, incident, True)
        selected_edges = selected_edges | incident

    issues = auto_select_issues(state.issues, resources, selected_edges, state.selection.issues)

    logger.debug(f"Selected resource {node.id}")
    return state.model_copy(update={
        "nodes": nodes,
        "edges": edges,
        "measurements": measurements,
        "laid_out": laid_out,
        "fit_view_after_layout": state.fit_view_after_layout or action.refit_view,
        "selection": Selection(resources=resources, edges=selected_edges, issues=issues),
    })


def deselect_resource(state: QueryData, action: DeselectResource) -> QueryData:
    node = get_node(state.nodes, action.resource_id)
    if not node.selected:
        return state

    nodes = dict(state.nodes)
    nodes[node.id] = node.model_copy(update={"selected": False})
    resources = state.selection.resources - {node.id}

    # Drop edges of this resource unless the other endpoint is still selected
    dropped: Set[str] = set()
    for event in state.resource_events:
        principal = node_id_from_resource_id(event.principal)
        target = node_id_from_resource_id(event.resource)
        if node.id not in (principal, target):
            continue
        if principal not in resources and target not in resources:
            dropped.add(edge_id_from_resource_ids(event.principal, event.resource))

    edges = dict(state.edges)
    _flag_edges(edges, dropped & state.selection.edges, False)
    selected_edges = state.selection.edges - dropped

    issues = frozenset(
        issue_id for issue_id in state.selection.issues
        if not _issue_broken(_get_issue(state, issue_id), resources, selected_edges)
    )

    logger.debug(f"Deselected resource {node.id}")
    return state.model_copy(update={
        "nodes": nodes,
        "edges": edges,
        "selection": Selection(resources=resources, edges=selected_edges, issues=issues),
    })


def _issue_broken(issue: Issue, resources: FrozenSet[str], edges: FrozenSet[str]) -> bool:
    return any(r not in resources for r in issue.resource_ids) or any(e not in edges for e in issue.edge_ids)


def select_edge(state: QueryData, action: SelectEdge) -> QueryData:
    edge = _get_edge(state.edges, action.edge_id)
    if edge.selected:
        return state

    chain = chain_closure(edge.id, state.event_chain_links)
    edges = dict(state.edges)
    _flag_edges(edges, chain, True)

    nodes = state.nodes
    measurements = state.measurements
    laid_out = state.laid_out

    endpoints = []
    for edge_id in sorted(chain):
        chained = edges[edge_id]
        endpoints.extend([chained.original_source_id or chained.source, chained.original_target_id or chained.target])

    for endpoint in endpoints:
        if get_node(nodes, endpoint).hidden:
            if nodes is state.nodes:
                nodes = dict(state.nodes)
                measurements = dict(state.measurements)
            show_node(nodes, measurements, endpoint)
            laid_out = LayoutState.INITIAL

    selected_edges = state.selection.edges | chain
    issues = auto_select_issues(state.issues, state.selection.resources, selected_edges, state.selection.issues)

    logger.debug(f"Selected edge {edge.id} with {len(chain) - 1} chained edges")
    return state.model_copy(update={
        "nodes": nodes,
        "edges": edges,
        "measurements": measurements,
        "laid_out": laid_out,
        "fit_view_after_layout": state.fit_view_after_layout or action.refit_view,
        "selection": state.selection.model_copy(update={"edges": selected_edges, "issues": issues}),
    })


def deselect_edge(state: QueryData, action: DeselectEdge) -> QueryData:
    edge = _get_edge(state.edges, action.edge_id)
    if not edge.selected:
        return state

    # Chained edges go too, unless a selected resource still holds them
    anchored: Set[str] = set()
    for resource_id in state.selection.resources:
        anchored |= incident_edge_ids(state, resource_id)
    dropped = {edge.id} | (chain_closure(edge.id, state.event_chain_links) - anchored)

    edges = dict(state.edges)
    _flag_edges(edges, dropped & state.selection.edges | {edge.id}, False)
    selected_edges = state.selection.edges - dropped

    issues = frozenset(
        issue_id for issue_id in state.selection.issues
        if not any(edge_id in dropped for edge_id in _get_issue(state, issue_id).edge_ids)
    )

    logger.debug(f"Deselected edge {edge.id}")
    return state.model_copy(update={
        "edges": edges,
        "selection": state.selection.model_copy(update={"edges": selected_edges, "issues": issues}),
    })


def select_issue(state: QueryData, action: SelectIssue) -> QueryData:
    issue = _get_issue(state, action.issue_id)

    nodes: Dict[str, Node] = dict(state.nodes)
    measurements: Dict[str, Measurement] = dict(state.measurements)
    laid_out = state.laid_out

    for resource_id in issue.resource_ids:
        node = get_node(nodes, resource_id)
        if node.selected:
            continue
        nodes[resource_id] = node.model_copy(update={"selected": True})
        if node.hidden:
            show_node(nodes, measurements, resource_id)
            laid_out = LayoutState.INITIAL

    edges = dict(state.edges)
    _flag_edges(edges, issue.edge_ids, True)

    resources = state.selection.resources | set(issue.resource_ids)
    selected_edges = state.selection.edges | set(issue.edge_ids)
    issues = auto_select_issues(state.issues, resources, selected_edges, state.selection.issues | {issue.id})

    logger.debug(f"Selected issue {issue.id}")
    return state.model_copy(update={
        "nodes": nodes,
        "edges": edges,
        "measurements": measurements,
        "laid_out": laid_out,
        "fit_view_after_layout": state.fit_view_after_layout or action.refit_view,
        "selection": Selection(resources=resources, edges=selected_edges, issues=issues),
    })


def deselect_issue(state: QueryData, action: DeselectIssue) -> QueryData:
    issue = _get_issue(state, action.issue_id)

    nodes = dict(state.nodes)
    _flag_nodes(nodes, issue.resource_ids, False)
    edges = dict(state.edges)
    _flag_edges(edges, issue.edge_ids, False)

    resources = state.selection.resources - set(issue.resource_ids)
    selected_edges = state.selection.edges - set(issue.edge_ids)

    issues = frozenset(
        other_id for other_id in state.selection.issues
        if other_id != issue.id and not _issue_broken(_get_issue(state, other_id), resources, selected_edges)
    )

    logger.debug(f"Deselected issue {issue.id}")
    return state.model_copy(update={
        "nodes": nodes,
        "edges": edges,
        "selection": Selection(resources=resources, edges=selected_edges, issues=issues),
    })


def clear_selection(state: QueryData) -> QueryData:
    """Deselect everything. Returns `state` itself when nothing is selected."""
    if state.selection.is_empty():
        return state

    nodes = dict(state.nodes)
    _flag_nodes(nodes, [node_id for node_id, node in nodes.items() if node.selected], False)
    edges = dict(state.edges)
    _flag_edges(edges, [edge_id for edge_id, edge in edges.items() if edge.selected], False)

    return state.model_copy(update={"nodes": nodes, "edges": edges, "selection": Selection()})
