"""Unit tests for GraphSession."""

import logging
from unittest.mock import MagicMock

from archview.core.types import LayoutState, Node
from archview.engine.actions import ClearSelection, SelectResource
from archview.engine.session import EstimatedMeasurer, GraphSession
from archview.layout.solver import LayeredLayoutSolver
from builders import ACCOUNT, ROLE_1, SECRET, nid, rid


class InterruptingSolver:
    """Dispatches an action from inside the first solve, like a user clicking mid-layout."""

    def __init__(self, action):
        self.action = action
        self.session = None
        self.calls = 0
        self._solver = LayeredLayoutSolver()

    def layout(self, graph, options):
        self.calls += 1
        if self.calls == 1:
            self.session.dispatch(self.action)
        return self._solver.layout(graph, options)


class TestSettle:
    def test_runs_pipeline_to_laid_out(self, secrets_state):
        session = GraphSession(secrets_state)

        state = session.settle()

        assert state.laid_out == LayoutState.LAID_OUT
        assert all(node.width for node in state.nodes.values() if not node.hidden)
        assert state.measurements
        assert not state.fit_view_after_layout

    def test_settled_state_is_left_alone(self, secrets_state):
        session = GraphSession(secrets_state)
        state = session.settle()

        assert session.settle() is state

    def test_stale_layout_is_discarded(self, secrets_state):
        solver = InterruptingSolver(SelectResource(resource_id=nid(*ROLE_1)))
        session = GraphSession(secrets_state, solver=solver)
        solver.session = session

        state = session.settle()

        assert solver.calls == 2
        assert state.laid_out == LayoutState.LAID_OUT
        assert state.nodes[nid(*ROLE_1)].selected

    def test_gives_up_after_max_passes(self, secrets_state, caplog):
        session = GraphSession(secrets_state)

        with caplog.at_level(logging.WARNING):
            state = session.settle(max_passes=0)

        assert state.laid_out == LayoutState.INITIAL
        assert "did not settle" in caplog.text

    def test_reselect_after_settle_lays_out_again(self, inventory_state):
        session = GraphSession(inventory_state)
        session.settle()

        session.dispatch(SelectResource(resource_id=nid(*ROLE_1)))
        assert session.state.laid_out == LayoutState.INITIAL

        state = session.settle()
        assert state.laid_out == LayoutState.LAID_OUT
        assert state.nodes[nid(*ROLE_1)].width


class TestSubscribe:
    def test_listeners_see_each_change(self, secrets_state):
        session = GraphSession(secrets_state)
        listener = MagicMock()
        session.subscribe(listener)

        state = session.dispatch(SelectResource(resource_id=nid(*ROLE_1)))

        listener.assert_called_once_with(state)

    def test_no_notification_without_change(self, secrets_state):
        session = GraphSession(secrets_state)
        listener = MagicMock()
        session.subscribe(listener)

        session.dispatch(ClearSelection())

        listener.assert_not_called()

    def test_unsubscribe(self, secrets_state):
        session = GraphSession(secrets_state)
        listener = MagicMock()
        unsubscribe = session.subscribe(listener)

        unsubscribe()
        unsubscribe()
        session.dispatch(SelectResource(resource_id=nid(*ROLE_1)))

        listener.assert_not_called()


class TestEstimatedMeasurer:
    def test_skips_hidden_nodes(self):
        nodes = {
            "a": Node(id="a", resource_id=rid(*ACCOUNT)),
            "b": Node(id="b", resource_id=rid(*ROLE_1), hidden=True),
        }

        assert set(EstimatedMeasurer().measure(nodes)) == {"a"}

    def test_width_grows_with_label(self):
        nodes = {
            "short": Node(id="short", resource_id=rid(*SECRET)),
            "long": Node(id="long", resource_id=rid(("IAM Role", "y" * 40))),
        }

        measured = EstimatedMeasurer().measure(nodes)

        assert measured["short"].width == 120.0
        assert measured["long"].width == 360.0
        assert measured["long"].height == 60.0

    def test_session_uses_measurer_for_labels(self, secrets_state):
        measurer = EstimatedMeasurer()
        session = GraphSession(secrets_state, measurer=measurer)

        assert session.capabilities.label_width("Held") == measurer.label_width("Held")
