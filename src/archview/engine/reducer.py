"""
The state-transition function.

`reduce` routes each action to its handler. Handlers are pure apart from
the persistence capability used by the environment tag handlers.
"""

import logging
from typing import Callable, Dict, Optional, Type

from ..core.errors import UnknownActionError
from ..core.types import QueryData
from . import actions as a
from .capabilities import Capabilities
from .handlers import collapse, environments, lifecycle, selection

logger = logging.getLogger(__name__)

Handler = Callable[[QueryData, a.Action, Capabilities], QueryData]

_HANDLERS: Dict[Type, Handler] = {
    a.InitialRenderCompleted: lambda state, action, caps: lifecycle.initial_render_completed(state),
    a.UpdateMeasurements: lambda state, action, caps: lifecycle.update_measurements(state, action),
    a.UpdateLayout: lambda state, action, caps: lifecycle.update_layout(state, action),
    a.SetDateFilter: lambda state, action, caps: lifecycle.set_date_filter(state, action, caps.label_width),
    a.FitView: lambda state, action, caps: lifecycle.fit_view(state, action),
    a.Reinitialize: lambda state, action, caps: lifecycle.reinitialize(action),
    a.ToggleNodeCollapsed: lambda state, action, caps: collapse.toggle_node_collapsed(state, action),
    a.ExpandAll: lambda state, action, caps: collapse.expand_all(state),
    a.CollapseAll: lambda state, action, caps: collapse.collapse_all(state),
    a.SelectResource: lambda state, action, caps: selection.select_resource(state, action),
    a.DeselectResource: lambda state, action, caps: selection.deselect_resource(state, action),
    a.SelectEdge: lambda state, action, caps: selection.select_edge(state, action),
    a.DeselectEdge: lambda state, action, caps: selection.deselect_edge(state, action),
    a.SelectIssue: lambda state, action, caps: selection.select_issue(state, action),
    a.DeselectIssue: lambda state, action, caps: selection.deselect_issue(state, action),
    a.ClearSelection: lambda state, action, caps: selection.clear_selection(state),
    a.TagEnvironment: lambda state, action, caps: environments.tag_environment(state, action, caps),
    a.UntagEnvironment: lambda state, action, caps: environments.untag_environment(state, action, caps),
}


def reduce(state: QueryData, action: a.Action, capabilities: Optional[Capabilities] = None) -> QueryData:
    """
    Apply one action to the state.

    Args:
        state: The current state. Never modified.
        action: One of the action models in `archview.engine.actions`.
        capabilities: Injected side effects. Defaults to none.

    Returns:
        QueryData: The next state, or `state` itself when nothing changed.

    Raises:
        UnknownActionError: If the action type has no handler.
        GraphIntegrityError: If the action references a missing node, edge, issue or resource.
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise UnknownActionError(getattr(action, "action", type(action).__name__))

    logger.debug(f"Reducing {action.action}")
    return handler(state, action, capabilities or Capabilities())
