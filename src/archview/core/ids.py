"""
Identifier and path utilities.

A node id is the canonical string form of a ResourceId:
`::Type::id::Type::id...`. Edge ids join the source and target node ids.
"""

from typing import List, Optional, Sequence

from ..config import KUBERNETES_CLUSTER_RESOURCE_TYPE, SECRET_VALUE_RESOURCE_TYPE
from .types import ResourceIdPart


def node_id_from_resource_id(resource_id: Sequence[ResourceIdPart]) -> str:
    return "::" + "::".join(f"{part.type}::{part.id}" for part in resource_id)


def edge_id_from_resource_ids(source: Sequence[ResourceIdPart], target: Sequence[ResourceIdPart]) -> str:
    return edge_id_from_node_ids(node_id_from_resource_id(source), node_id_from_resource_id(target))


def edge_id_from_node_ids(source: str, target: str) -> str:
    return f"{source}-{target}"


def parent_resource_id(resource_id: Sequence[ResourceIdPart]) -> Optional[List[ResourceIdPart]]:
    """The id of the enclosing resource, or None for a top-level resource."""
    if len(resource_id) <= 1:
        return None
    return list(resource_id[:-1])


def is_same_or_descendant(resource_id: Sequence[ResourceIdPart], ancestor: Sequence[ResourceIdPart]) -> bool:
    """True if `ancestor` is a (non-strict) prefix of `resource_id`."""
    if len(resource_id) < len(ancestor):
        return False
    return list(resource_id[: len(ancestor)]) == list(ancestor)


def label_for_resource(
    resource_id: Optional[Sequence[ResourceIdPart]],
    parent_id: Optional[Sequence[ResourceIdPart]] = None,
) -> str:
    """
    Short display label for a resource.

    Kubernetes containers show namespace and deployment so generic container
    names stay distinguishable; parts already shown by the enclosing parent
    are omitted.
    """
    if not resource_id:
        return ""

    if (
        len(resource_id) >= 4
        and resource_id[0].type == KUBERNETES_CLUSTER_RESOURCE_TYPE
        and resource_id[1].type == "Namespace"
        and resource_id[3].type == "Container"
    ):
        depth = len(parent_id) if parent_id else 0
        if depth == 2:
            return f"{resource_id[2].id} › {resource_id[3].id}"
        if depth == 3:
            return resource_id[3].id
        return f"{resource_id[1].id} › {resource_id[2].id} › {resource_id[3].id}"

    primary = resource_id[-1]
    if primary.type == SECRET_VALUE_RESOURCE_TYPE:
        return primary.id[:7]
    if primary.type == KUBERNETES_CLUSTER_RESOURCE_TYPE:
        return primary.id.split("-")[0]
    return primary.id
