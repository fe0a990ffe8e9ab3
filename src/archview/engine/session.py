"""
A synchronous host for the engine.

GraphSession owns the current QueryData, serializes dispatches, notifies
subscribers, and drives the layout pipeline that an interactive renderer
would otherwise drive from its render and measurement callbacks.
"""

import logging
from typing import Callable, Dict, List, Optional, Protocol

from ..config import NODE_CHAR_WIDTH, NODE_HEIGHT, NODE_MIN_WIDTH
from ..core.ids import label_for_resource
from ..core.types import LayoutState, Measurement, Node, QueryData
from ..graph.builder import estimate_label_width
from ..layout.adapter import layout_graph
from ..layout.models import LayoutSolver
from ..layout.solver import LayeredLayoutSolver
from .actions import Action, InitialRenderCompleted, UpdateLayout, UpdateMeasurements
from .capabilities import Capabilities, EnvironmentPersister
from .reducer import reduce

logger = logging.getLogger(__name__)

Listener = Callable[[QueryData], None]


class Measurer(Protocol):
    """Reports the rendered size of visible nodes."""

    def measure(self, nodes: Dict[str, Node]) -> Dict[str, Measurement]:
        ...

    def label_width(self, text: str) -> float:
        ...


class EstimatedMeasurer:
    """Sizes nodes from the length of their display label."""

    def __init__(self, char_width: float = NODE_CHAR_WIDTH, height: float = NODE_HEIGHT):
        self.char_width = char_width
        self.height = height

    def measure(self, nodes: Dict[str, Node]) -> Dict[str, Measurement]:
        measurements: Dict[str, Measurement] = {}
        for node_id, node in nodes.items():
            if node.hidden:
                continue
            label = label_for_resource(node.resource_id, node.parent_resource_id)
            width = max(NODE_MIN_WIDTH, len(label) * self.char_width)
            measurements[node_id] = Measurement(width=width, height=self.height)
        return measurements

    def label_width(self, text: str) -> float:
        return estimate_label_width(text)


class GraphSession:
    """
    Holds one QueryData and applies actions to it.

    Example:
        >>> session = GraphSession(create_query_data(response, MenuSection.SECRETS))
        >>> session.settle()
        >>> session.dispatch(SelectResource(resource_id=node_id))
        >>> session.settle()
    """

    def __init__(
        self,
        state: QueryData,
        solver: Optional[LayoutSolver] = None,
        measurer: Optional[Measurer] = None,
        persister: Optional[EnvironmentPersister] = None,
    ):
        self._state = state
        self.solver = solver or LayeredLayoutSolver()
        self.measurer = measurer or EstimatedMeasurer()
        self.capabilities = Capabilities(persister=persister, label_width=self.measurer.label_width)
        self._listeners: List[Listener] = []
        self._logger = logging.getLogger(f"{__name__}.GraphSession")

    @property
    def state(self) -> QueryData:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called after every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> QueryData:
        new_state = reduce(self._state, action, self.capabilities)
        if new_state is not self._state:
            self._state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self._state

    def settle(self, max_passes: int = 10) -> QueryData:
        """
        Run the layout pipeline until the state is laid out.

        Each pass renders (InitialRenderCompleted), measures the visible
        nodes, solves the layout and installs it. A solve whose input state
        was replaced in the meantime is discarded and the pass repeats.
        """
        for _ in range(max_passes):
            if self._state.laid_out == LayoutState.LAID_OUT:
                return self._state

            if self._state.laid_out == LayoutState.INITIAL:
                self.dispatch(InitialRenderCompleted())

            if self._state.laid_out == LayoutState.INITIAL_RENDER_COMPLETED:
                self.dispatch(UpdateMeasurements(measurements=self.measurer.measure(self._state.nodes)))

            if self._state.laid_out == LayoutState.MEASURED:
                solved_from = self._state
                nodes, edges = layout_graph(solved_from.nodes, solved_from.edges, solved_from.measurements, self.solver)
                if self._state is not solved_from:
                    self._logger.info("State changed during layout, discarding stale result")
                    continue
                self.dispatch(UpdateLayout(nodes=nodes, edges=edges))

        self._logger.warning(f"Layout did not settle after {max_passes} passes")
        return self._state
