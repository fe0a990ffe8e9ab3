"""
Layout lifecycle and whole-state handlers.

The layout pipeline advances Initial -> InitialRenderCompleted -> Measured
-> LaidOut. These handlers only move the state machine; the session (or
another host) performs the measurement and solve in between.
"""

import logging
from typing import Optional

from ...core.date_filter import is_date_filter_equal, validate_date_filter
from ...core.types import LayoutState, QueryData
from ...graph.builder import LabelWidth
from ...layout.viewport import fit_viewport
from ..actions import FitView, Reinitialize, SetDateFilter, UpdateLayout, UpdateMeasurements
from ..initializer import initialize
from .selection import clear_selection

logger = logging.getLogger(__name__)


def initial_render_completed(state: QueryData) -> QueryData:
    if state.laid_out != LayoutState.INITIAL:
        return state
    return state.model_copy(update={"laid_out": LayoutState.INITIAL_RENDER_COMPLETED})


def update_measurements(state: QueryData, action: UpdateMeasurements) -> QueryData:
    return state.model_copy(update={
        "measurements": dict(action.measurements),
        "laid_out": LayoutState.MEASURED,
    })


def update_layout(state: QueryData, action: UpdateLayout) -> QueryData:
    """Install solved nodes and edges, framing the selection if a fit was requested."""
    viewport = state.viewport
    if state.fit_view_after_layout:
        viewport = fit_viewport(action.nodes, action.edges, state.view_size, fit_to_selection=True)

    return state.model_copy(update={
        "nodes": dict(action.nodes),
        "edges": dict(action.edges),
        "viewport": viewport,
        "fit_view_after_layout": False,
        "laid_out": LayoutState.LAID_OUT,
    })


def fit_view(state: QueryData, action: FitView) -> QueryData:
    viewport = fit_viewport(
        state.nodes,
        state.edges,
        state.view_size,
        fit_to_selection=action.fit_to_selection,
        duration=action.duration,
    )
    return state.model_copy(update={"viewport": viewport, "fit_view_after_layout": False})


def set_date_filter(state: QueryData, action: SetDateFilter, label_width: Optional[LabelWidth] = None) -> QueryData:
    """
    Rebuild the view for a new date window.

    The selection is cleared since selected items may fall outside the new
    window. An unchanged filter returns `state` itself.

    Raises:
        DateFilterError: If the new filter is invalid.
    """
    if is_date_filter_equal(state.date_filter, action.date_filter):
        return state

    validate_date_filter(action.date_filter)
    logger.info(
        f"Date filter changed to {action.date_filter.start_date.isoformat()} - "
        f"{action.date_filter.end_date.isoformat()}"
    )

    cleared = clear_selection(state).model_copy(update={
        "date_filter": action.date_filter,
        "laid_out": LayoutState.INITIAL,
    })
    return initialize(cleared, label_width=label_width)


def reinitialize(action: Reinitialize) -> QueryData:
    return action.state.model_copy()
