"""
Builds a fresh QueryData from a fetched dataset.

`initialize` is also what a date-filter change runs: everything derived from
the dataset is recomputed from `original_data` for the new window.
"""

import logging
from typing import Optional

from ..config import SECRET_VALUE_RESOURCE_TYPE
from ..core.date_filter import DateFilter, default_date_filter, is_within_date_range, validate_date_filter
from ..core.environments import resolve_all
from ..core.issues import update_issues
from ..core.types import (
    InitialCollapseNodesType,
    LayoutState,
    MenuSection,
    QueryData,
    QueryResponse,
    ViewSize,
)
from ..graph.builder import LabelWidth, flow_from_query_response, highlight_secret_values
from ..graph.events import flatten_resource_events

logger = logging.getLogger(__name__)

DEFAULT_VIEW_SIZE = ViewSize(width=1600, height=900)


def initial_collapse_nodes_type(section: MenuSection) -> InitialCollapseNodesType:
    if section == MenuSection.SECRETS:
        return InitialCollapseNodesType.NONE
    if section == MenuSection.ENVIRONMENTS:
        return InitialCollapseNodesType.ENVIRONMENTS
    return InitialCollapseNodesType.ALL


def initialize(state: QueryData, label_width: Optional[LabelWidth] = None) -> QueryData:
    """
    Recompute every derived member of `state` from its original data.

    Resources and events outside the date filter are dropped before the
    graph is built. Environment inheritance is resolved over the full
    dataset so a filtered-out ancestor still passes its tags down.

    Raises:
        DateFilterError: If the state's date filter is invalid.
        GraphIntegrityError: If the dataset references missing resources.
    """
    validate_date_filter(state.date_filter)
    date_filter = state.date_filter
    original = state.original_data

    resources_environments, environments = resolve_all(original.resources)

    resources = [
        resource for resource in original.resources
        if is_within_date_range(date_filter, resource.first_seen_at, resource.last_seen_at)
    ]
    events = [
        event for event in original.events
        if is_within_date_range(date_filter, event.first_seen_at, event.last_seen_at)
    ]
    flattened = flatten_resource_events(events)

    flow = flow_from_query_response(
        resources,
        resources_environments,
        environments,
        flattened.resource_events,
        original.global_containers,
        initial_collapse_nodes_type(state.section),
        state.section,
        label_width=label_width,
    )

    nodes = flow.nodes
    if state.section == MenuSection.SECRETS:
        nodes = highlight_secret_values(nodes, SECRET_VALUE_RESOURCE_TYPE)

    logger.info(
        f"Initialized {state.section} view: {len(resources)}/{len(original.resources)} resources, "
        f"{len(events)}/{len(original.events)} events in range"
    )

    new_state = state.model_copy(update={
        "resources": resources,
        "events": events,
        "global_containers": original.global_containers,
        "environments": environments,
        "resources_environments": resources_environments,
        "resource_events": flattened.resource_events,
        "event_chain_links": flattened.event_chain_links,
        "nodes": nodes,
        "edges": flow.edges,
        "measurements": {},
        "issues": None,
        "fit_view_after_layout": True,
        "laid_out": LayoutState.INITIAL,
    })
    return update_issues(new_state)


def create_query_data(
    response: QueryResponse,
    section: MenuSection,
    date_filter: Optional[DateFilter] = None,
    view_size: Optional[ViewSize] = None,
    label_width: Optional[LabelWidth] = None,
) -> QueryData:
    """Build the initial QueryData for a freshly fetched dataset."""
    state = QueryData(
        section=section,
        original_data=response,
        date_filter=date_filter or default_date_filter(),
        view_size=view_size or DEFAULT_VIEW_SIZE,
    )
    return initialize(state, label_width=label_width)
