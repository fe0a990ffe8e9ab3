"""
Issue Detector.

Two passes over the flattened per-hop event list:
- secret custody: a secret value held in two or more places, and secrets
  hardcoded in source blobs;
- cross-environment access: a principal acting on a resource whose
  environment sets are both non-empty and disjoint.

Issue ids are built from the participating node and edge ids only, so two
runs over the same input produce the same id set in any event order.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..config import (
    BLOB_RESOURCE_TYPE,
    SECRET_HARDCODED_EVENT_TYPE,
    SECRET_HELD_EVENT_TYPE,
    SECRET_VALUE_RESOURCE_TYPE,
)
from .environments import index_resources
from .errors import GraphIntegrityError
from .ids import edge_id_from_resource_ids, label_for_resource, node_id_from_resource_id
from .types import (
    Issue,
    MenuSection,
    Node,
    QueryData,
    Resource,
    ResourceEnvironments,
    ResourceEvent,
)

logger = logging.getLogger(__name__)


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def _source_location(principal) -> str:
    parts = [part.id for part in principal]
    org = parts[1] if len(parts) > 1 else ""
    repo = parts[2] if len(parts) > 2 else ""
    path = parts[3] if len(parts) > 3 else ""
    return f"GitHub Repo {org}/{repo} /{path}"


def secret_issues(events: Sequence[ResourceEvent]) -> Dict[str, Issue]:
    """Detect secrets held in multiple places and secrets hardcoded in blobs."""
    held_by: Dict[str, List[ResourceEvent]] = {}

    for event in events:
        if event.type not in (SECRET_HELD_EVENT_TYPE, SECRET_HARDCODED_EVENT_TYPE):
            continue
        if event.resource[0].type != SECRET_VALUE_RESOURCE_TYPE:
            continue
        held_by.setdefault(node_id_from_resource_id(event.resource), []).append(event)

    issues: Dict[str, Issue] = {}

    for secret_id, holder_events in held_by.items():
        secret_label = label_for_resource(holder_events[0].resource)

        # Held and Hardcoded events count toward the same threshold
        if len(holder_events) >= 2:
            issue_id = f"multiple-helds-{secret_id}"
            issues[issue_id] = Issue(
                id=issue_id,
                message=f"Secret Value {secret_label} is held in multiple locations",
                resource_ids=_unique(
                    [secret_id] + [node_id_from_resource_id(event.principal) for event in holder_events]
                ),
                edge_ids=_unique(
                    [edge_id_from_resource_ids(event.principal, event.resource) for event in holder_events]
                ),
            )

        for event in holder_events:
            if event.type != SECRET_HARDCODED_EVENT_TYPE or event.principal[-1].type != BLOB_RESOURCE_TYPE:
                continue

            edge_id = edge_id_from_resource_ids(event.principal, event.resource)
            issue_id = f"hardcoded-secret-value-{edge_id}"
            issues[issue_id] = Issue(
                id=issue_id,
                message=f"Secret Value {secret_label} is hardcoded in {_source_location(event.principal)}",
                resource_ids=[secret_id, node_id_from_resource_id(event.principal)],
                edge_ids=[edge_id],
            )

    return issues


def environment_issues(
    events: Sequence[ResourceEvent],
    resources: Sequence[Resource],
    resources_environments: Dict[str, ResourceEnvironments],
) -> Dict[str, Issue]:
    """
    Detect access between resources in disjoint environments.

    Raises:
        GraphIntegrityError: If an event endpoint is not a known resource.
    """
    resources_by_id = index_resources(resources)
    issues: Dict[str, Issue] = {}

    for event in events:
        resource_node_id = node_id_from_resource_id(event.resource)
        if resource_node_id not in resources_by_id:
            raise GraphIntegrityError(
                f"Resource with id {resource_node_id} not found while checking for environment issues",
                item_id=resource_node_id,
            )

        resource_envs = set(resources_environments.get(resource_node_id) or {})
        if not resource_envs:
            continue

        principal_node_id = node_id_from_resource_id(event.principal)
        if principal_node_id not in resources_by_id:
            raise GraphIntegrityError(
                f"Principal resource with id {principal_node_id} not found while checking for environment issues",
                item_id=principal_node_id,
            )

        principal_envs = set(resources_environments.get(principal_node_id) or {})
        if not principal_envs or principal_envs & resource_envs:
            continue

        issue_id = f"across-environments-{principal_node_id}-{resource_node_id}"
        issues[issue_id] = Issue(
            id=issue_id,
            message=(
                f"Principal {label_for_resource(event.principal)} performed action {event.type} "
                f"on resource {label_for_resource(event.resource)} across environments"
            ),
            resource_ids=[resource_node_id, principal_node_id],
            edge_ids=[edge_id_from_resource_ids(event.principal, event.resource)],
        )

    return issues


def detect_issues(state: QueryData) -> Optional[Dict[str, Issue]]:
    """Run the passes enabled for the state's section; None when the section shows no issues."""
    if state.section == MenuSection.SECRETS:
        issues = secret_issues(state.resource_events)
        issues.update(environment_issues(state.resource_events, state.resources, state.resources_environments))
        return issues

    if state.section == MenuSection.ENVIRONMENTS:
        return environment_issues(state.resource_events, state.resources, state.resources_environments)

    return None


def update_issues(state: QueryData) -> QueryData:
    """
    Re-run detection and re-annotate nodes when the issue set changed.

    When the new issue ids equal the current ones the state is returned
    unchanged, keeping the existing issue map and nodes.
    """
    new_issues = detect_issues(state)

    if state.issues is None and new_issues is None:
        return state
    if state.issues is not None and new_issues is not None and state.issues.keys() == new_issues.keys():
        return state

    issue_ids_by_node: Dict[str, List[str]] = {}
    for issue in (new_issues or {}).values():
        for resource_id in issue.resource_ids:
            if resource_id not in state.nodes:
                raise GraphIntegrityError(
                    f"Node {resource_id} referenced by issue {issue.id} not found",
                    item_id=resource_id,
                )
            issue_ids_by_node.setdefault(resource_id, []).append(issue.id)

    nodes: Dict[str, Node] = {}
    for node_id, node in state.nodes.items():
        issue_ids = issue_ids_by_node.get(node_id, [])
        if issue_ids == node.resource_issue_ids:
            nodes[node_id] = node
        else:
            nodes[node_id] = node.model_copy(update={"resource_issue_ids": issue_ids})

    logger.debug(f"Issues updated: {len(new_issues or {})} detected")
    return state.model_copy(update={"issues": new_issues, "nodes": nodes})
