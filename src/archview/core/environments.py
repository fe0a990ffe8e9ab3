"""
Environment Inheritance Resolver.

A resource carries the environments tagged directly on it plus every
environment tagged on one of its ancestors. Results are memoized per node
id in a cache dict owned by the QueryData aggregate; tagging or untagging
invalidates the whole subtree before recomputation.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import ENVIRONMENT_COLOR_COUNT
from .errors import GraphIntegrityError
from .ids import is_same_or_descendant, node_id_from_resource_id, parent_resource_id
from .types import (
    InheritedEnvironment,
    NodeEnvironment,
    Resource,
    ResourceEnvironments,
    ResourceIdPart,
)

logger = logging.getLogger(__name__)

DIRECT = InheritedEnvironment()


def index_resources(resources: Iterable[Resource]) -> Dict[str, Resource]:
    return {node_id_from_resource_id(resource.id): resource for resource in resources}


def inherited_environments(
    resource_id: Sequence[ResourceIdPart],
    resources_by_id: Dict[str, Resource],
    cache: Dict[str, ResourceEnvironments],
) -> ResourceEnvironments:
    """
    Resolve the environments applying to a resource.

    Direct tags map to an entry with `inherited_from=None`; inherited tags
    name the nearest tagging ancestor. The result is stored in `cache`.

    Args:
        resource_id: The resource to resolve.
        resources_by_id: Resources indexed by node id.
        cache: Memoized results keyed by node id. Updated in place.

    Returns:
        ResourceEnvironments: Environment name to inheritance info.

    Raises:
        GraphIntegrityError: If the resource is not in `resources_by_id`.
    """
    node_id = node_id_from_resource_id(resource_id)
    if node_id not in resources_by_id:
        raise GraphIntegrityError(
            f"Resource with id {node_id} not found while resolving inherited environments",
            item_id=node_id,
        )
    return _resolve(list(resource_id), node_id, resources_by_id, cache)


def _resolve(
    resource_id: List[ResourceIdPart],
    node_id: str,
    resources_by_id: Dict[str, Resource],
    cache: Dict[str, ResourceEnvironments],
) -> ResourceEnvironments:
    cached = cache.get(node_id)
    if cached is not None:
        return cached

    result: ResourceEnvironments = {}

    parent = parent_resource_id(resource_id)
    if parent is not None:
        # Ancestors absent from the dataset are transparent
        parent_envs = _resolve(parent, node_id_from_resource_id(parent), resources_by_id, cache)
        for name, env in parent_envs.items():
            if env.inherited_from is None:
                result[name] = InheritedEnvironment(inherited_from=parent)
            else:
                result[name] = env

    resource = resources_by_id.get(node_id)
    if resource is not None:
        for name in resource.environments or []:
            result[name] = DIRECT

    cache[node_id] = result
    return result


def invalidate_subtree(
    cache: Dict[str, ResourceEnvironments],
    resource_id: Sequence[ResourceIdPart],
) -> Dict[str, ResourceEnvironments]:
    """Return a copy of `cache` without the entries for a resource and all its descendants."""
    node_id = node_id_from_resource_id(resource_id)
    prefix = node_id + "::"
    kept = {key: value for key, value in cache.items() if key != node_id and not key.startswith(prefix)}
    logger.debug(f"Invalidated {len(cache) - len(kept)} cached environment entries under {node_id}")
    return kept


def resolve_all(resources: Sequence[Resource]) -> Tuple[Dict[str, ResourceEnvironments], List[str]]:
    """
    Resolve every resource and collect the global environment list.

    The environment list keeps first-seen order so colour indices are stable.
    """
    resources_by_id = index_resources(resources)
    cache: Dict[str, ResourceEnvironments] = {}
    environments: List[str] = []
    seen = set()

    for resource in resources:
        inherited_environments(resource.id, resources_by_id, cache)
        for name in resource.environments or []:
            if name not in seen:
                seen.add(name)
                environments.append(name)

    return cache, environments


def recompute_subtree(
    resources: Sequence[Resource],
    cache: Dict[str, ResourceEnvironments],
    resource_id: Sequence[ResourceIdPart],
) -> Dict[str, ResourceEnvironments]:
    """Invalidate and re-resolve a resource and its descendants. Returns a new cache."""
    resources_by_id = index_resources(resources)
    new_cache = invalidate_subtree(cache, resource_id)
    for resource in resources:
        if is_same_or_descendant(resource.id, resource_id):
            inherited_environments(resource.id, resources_by_id, new_cache)
    return new_cache


def color_index(environments: Sequence[str], name: str) -> int:
    return environments.index(name) % ENVIRONMENT_COLOR_COUNT


def node_environments(
    resource_envs: Optional[ResourceEnvironments],
    environments: Sequence[str],
) -> List[NodeEnvironment]:
    """Environment badges for a node, ordered by global environment index."""
    entries = [
        (environments.index(name), name, env)
        for name, env in (resource_envs or {}).items()
        if name in environments
    ]
    entries.sort(key=lambda entry: entry[0])
    return [
        NodeEnvironment(
            name=name,
            color_index=index % ENVIRONMENT_COLOR_COUNT,
            inherited_from=env.inherited_from,
        )
        for index, name, env in entries
    ]
