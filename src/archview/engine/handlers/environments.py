"""
Environment tag handlers.

Tagging updates local state optimistically and hands persistence to the
injected EnvironmentPersister; the caller's callback learns the outcome.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ...core.environments import node_environments, recompute_subtree
from ...core.errors import GraphIntegrityError
from ...core.ids import is_same_or_descendant, node_id_from_resource_id
from ...core.issues import update_issues
from ...core.types import Node, QueryData, Resource, ResourceIdPart
from ..actions import Callback, TagEnvironment, UntagEnvironment
from ..capabilities import Capabilities

logger = logging.getLogger(__name__)


def _find_resource(resources: Sequence[Resource], resource_id: Sequence[ResourceIdPart]) -> Optional[int]:
    for index, resource in enumerate(resources):
        if resource.id == list(resource_id):
            return index
    return None


def _replace_environments(
    resources: List[Resource],
    resource_id: Sequence[ResourceIdPart],
    environments: Optional[List[str]],
) -> List[Resource]:
    index = _find_resource(resources, resource_id)
    if index is None:
        return resources
    resources = list(resources)
    resources[index] = resources[index].model_copy(update={"environments": environments})
    return resources


def _apply(
    state: QueryData,
    resource_id: List[ResourceIdPart],
    environments: Optional[List[str]],
    global_environments: List[str],
    capabilities: Capabilities,
    callback: Optional[Callback],
) -> QueryData:
    resources = _replace_environments(state.resources, resource_id, environments)
    original_resources = _replace_environments(state.original_data.resources, resource_id, environments)
    original_data = state.original_data.model_copy(update={"resources": original_resources})

    cache = recompute_subtree(original_resources, state.resources_environments, resource_id)

    nodes: Dict[str, Node] = dict(state.nodes)
    refreshed = 0
    for resource in resources:
        if not is_same_or_descendant(resource.id, resource_id):
            continue
        node_id = node_id_from_resource_id(resource.id)
        node = nodes.get(node_id)
        if node is None:
            continue
        badges = node_environments(cache.get(node_id), global_environments)
        if badges != node.environments:
            nodes[node_id] = node.model_copy(update={"environments": badges})
            refreshed += 1
    logger.debug(f"Refreshed environment badges on {refreshed} nodes")

    _persist(capabilities, resource_id, environments or [], callback)

    new_state = state.model_copy(update={
        "resources": resources,
        "original_data": original_data,
        "environments": global_environments,
        "resources_environments": cache,
        "nodes": nodes,
    })
    return update_issues(new_state)


def _persist(
    capabilities: Capabilities,
    resource_id: List[ResourceIdPart],
    environments: List[str],
    callback: Optional[Callback],
) -> None:
    if capabilities.persister is None:
        logger.debug("No environment persister configured, keeping change local")
        if callback is not None:
            callback(None)
        return
    capabilities.persister.persist(resource_id, environments, callback=callback)


def _resolve_target(state: QueryData, resource_id: List[ResourceIdPart], verb: str) -> Tuple[Resource, str]:
    index = _find_resource(state.resources, resource_id)
    if index is None:
        node_id = node_id_from_resource_id(resource_id)
        raise GraphIntegrityError(
            f"Resource with id {node_id} not found while attempting to {verb} environment.",
            item_id=node_id,
        )
    return state.resources[index], node_id_from_resource_id(resource_id)


def tag_environment(state: QueryData, action: TagEnvironment, capabilities: Capabilities) -> QueryData:
    """
    Tag a resource with an environment.

    The tag is inherited by every descendant without its own tag of the same
    name. Tagging a resource that already carries the tag changes nothing.

    Raises:
        GraphIntegrityError: If the resource is not part of the current view.
    """
    resource, node_id = _resolve_target(state, action.resource_id, "tag")

    current = resource.environments or []
    if action.environment in current:
        logger.info(f"{node_id} is already tagged {action.environment}")
        return state

    global_environments = state.environments
    if action.environment not in global_environments:
        global_environments = [*global_environments, action.environment]

    logger.info(f"Tagging {node_id} with environment {action.environment}")
    return _apply(
        state,
        action.resource_id,
        [*current, action.environment],
        global_environments,
        capabilities,
        action.callback,
    )


def untag_environment(state: QueryData, action: UntagEnvironment, capabilities: Capabilities) -> QueryData:
    """
    Remove an environment tag from a resource and everything inheriting it.

    The global environment list is left as is so colour indices stay stable.

    Raises:
        GraphIntegrityError: If the resource is not part of the current view.
        ValueError: If the resource is not tagged with the environment.
    """
    resource, node_id = _resolve_target(state, action.resource_id, "untag")

    current = resource.environments or []
    if action.environment not in current:
        raise ValueError(f"Resource with id {node_id} does not have environment {action.environment} tagged.")

    remaining = [name for name in current if name != action.environment]

    logger.info(f"Removing environment {action.environment} from {node_id}")
    return _apply(
        state,
        action.resource_id,
        remaining or None,
        state.environments,
        capabilities,
        action.callback,
    )
