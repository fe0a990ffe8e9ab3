"""Unit tests for the graph builder."""

from unittest.mock import MagicMock

from archview.core.environments import resolve_all
from archview.core.types import InitialCollapseNodesType, MenuSection
from archview.graph.builder import (
    add_node_and_parents,
    estimate_label_width,
    flow_from_query_response,
    highlight_secret_values,
)
from archview.graph.events import flatten_resource_events
from builders import container, eid, event, nid, resource, rid

ACCOUNT = (("AWS Account", "A"),)
REGION = ACCOUNT + (("Region", "eu"),)
ROLE_1 = REGION + (("IAM Role", "P1"),)
ROLE_2 = REGION + (("IAM Role", "P2"),)
SECRET = (("Secret Value", "abcdef1234567890"),)


def build(resources, events=(), containers=(), collapse=InitialCollapseNodesType.NONE,
          section=MenuSection.SECRETS, label_width=None):
    cache, environments = resolve_all(resources)
    flattened = flatten_resource_events(list(events))
    return flow_from_query_response(
        resources, cache, environments, flattened.resource_events, list(containers),
        collapse, section, label_width=label_width,
    )


class TestNodeSynthesis:
    """Every resource and event endpoint gets a node, ancestors included."""

    def test_add_node_and_parents_creates_ancestors(self):
        nodes = {}
        node = add_node_and_parents(rid(*ROLE_1), nodes)

        assert set(nodes) == {nid(*ACCOUNT), nid(*REGION), nid(*ROLE_1)}
        assert node.parent_id == nid(*REGION)
        assert node.original_parent_resource_id == rid(*REGION)
        assert nodes[nid(*ACCOUNT)].parent_id is None
        assert nodes[nid(*ACCOUNT)].extent is None

    def test_event_endpoints_become_nodes(self):
        flow = build([resource(*SECRET)], [event(ROLE_1, SECRET, "Held")])
        assert nid(*ROLE_1) in flow.nodes
        assert nid(*ACCOUNT) in flow.nodes

    def test_nodes_sorted_and_counted(self):
        flow = build([resource(*ROLE_2), resource(*ROLE_1)], section=MenuSection.ENVIRONMENTS)

        assert list(flow.nodes) == sorted(flow.nodes)
        assert flow.nodes[nid(*REGION)].num_children == 2
        assert flow.nodes[nid(*ACCOUNT)].num_children == 1

    def test_environment_badges_and_timestamps(self):
        flow = build([resource(*ACCOUNT, environments=["prod"]), resource(*REGION)])

        badges = flow.nodes[nid(*REGION)].environments
        assert [(b.name, b.color_index, b.inherited_from) for b in badges] == [("prod", 0, rid(*ACCOUNT))]
        assert flow.nodes[nid(*REGION)].first_seen_at is not None


class TestGlobalContainers:
    def test_contained_node_is_reparented(self):
        cluster = (("Kubernetes Cluster", "prod"),)
        deployment = (("AWS Account", "B"), ("ECS Service", "api"))
        flow = build(
            [resource(*cluster), resource(*deployment)],
            containers=[container(cluster, deployment)],
            section=MenuSection.ENVIRONMENTS,
        )

        node = flow.nodes[nid(*deployment)]
        assert node.parent_id == nid(*cluster)
        assert node.original_parent_id == nid(*cluster)
        assert node.parent_resource_id == rid(*cluster)
        assert flow.nodes[nid(*cluster)].num_children == 1

    def test_missing_contained_node_is_skipped(self):
        cluster = (("Kubernetes Cluster", "prod"),)
        flow = build([resource(*cluster)], containers=[container(cluster, (("Pod", "x"),))])
        assert nid(("Pod", "x")) not in flow.nodes


class TestCollapsePolicies:
    def test_none_shows_everything_before_coalescing(self):
        flow = build([resource(*ROLE_1), resource(*ROLE_2)], section=MenuSection.ENVIRONMENTS)
        assert all(not node.hidden and not node.collapsed for node in flow.nodes.values())

    def test_all_hides_children(self):
        flow = build(
            [resource(*ROLE_1), resource(*ROLE_2)],
            collapse=InitialCollapseNodesType.ALL,
            section=MenuSection.INVENTORY,
        )

        assert flow.nodes[nid(*ACCOUNT)].collapsed
        assert not flow.nodes[nid(*ACCOUNT)].hidden
        assert flow.nodes[nid(*REGION)].hidden
        assert flow.nodes[nid(*ROLE_1)].hidden

    def test_environments_expands_to_tagged_nodes(self):
        other = (("AWS Account", "B"), ("Region", "us"))
        flow = build(
            [resource(*ROLE_1, environments=["prod"]), resource(*ROLE_2), resource(*other)],
            collapse=InitialCollapseNodesType.ENVIRONMENTS,
            section=MenuSection.ENVIRONMENTS,
        )

        assert not flow.nodes[nid(*ACCOUNT)].collapsed
        assert not flow.nodes[nid(*REGION)].collapsed
        assert not flow.nodes[nid(*ROLE_1)].hidden
        assert flow.nodes[nid(("AWS Account", "B"))].collapsed
        assert flow.nodes[nid(*other)].hidden


class TestCoalescing:
    def test_single_child_chain_is_coalesced(self):
        flow = build([resource(*ROLE_1), resource(*SECRET)])

        assert flow.nodes[nid(*ACCOUNT)].hidden
        assert flow.nodes[nid(*REGION)].hidden
        assert flow.nodes[nid(*ROLE_1)].hidden is False
        assert flow.nodes[nid(*ROLE_1)].parent_id is None

    def test_environments_view_never_coalesces(self):
        flow = build([resource(*ROLE_1)], section=MenuSection.ENVIRONMENTS)
        assert not any(node.hidden for node in flow.nodes.values())


class TestEdges:
    def test_parallel_events_share_an_edge(self):
        flow = build(
            [resource(*ROLE_1), resource(*SECRET)],
            [event(ROLE_1, SECRET, "Held"), event(ROLE_1, SECRET, "Read")],
        )

        edge = flow.edges[eid(ROLE_1, SECRET)]
        assert edge.label.text == "(Multiple)"
        assert [e.type for e in edge.events] == ["Held", "Read"]
        assert edge.original_source_id == nid(*ROLE_1)

    def test_self_loop_from_collapsing_is_hidden(self):
        flow = build(
            [resource(*ROLE_1), resource(*ROLE_2)],
            [event(ROLE_1, ROLE_2, "AssumeRole")],
            collapse=InitialCollapseNodesType.ALL,
            section=MenuSection.INVENTORY,
        )
        assert flow.edges[eid(ROLE_1, ROLE_2)].hidden

    def test_visible_edge_is_not_hidden(self):
        flow = build([resource(*ROLE_1), resource(*ROLE_2)], [event(ROLE_1, ROLE_2, "AssumeRole")])
        assert not flow.edges[eid(ROLE_1, ROLE_2)].hidden

    def test_label_width_measured_once_per_text(self):
        measure = MagicMock(return_value=42.0)
        flow = build(
            [resource(*ROLE_1), resource(*ROLE_2), resource(*SECRET)],
            [event(ROLE_1, SECRET, "Held"), event(ROLE_2, SECRET, "Held")],
            label_width=measure,
        )

        measure.assert_called_once_with("Held")
        assert all(edge.label.width == 42.0 for edge in flow.edges.values())

    def test_default_label_width_estimate(self):
        assert estimate_label_width("Held") == 4 * 7.0 + 16.0


class TestHighlight:
    def test_secret_values_highlighted(self):
        flow = build([resource(*ROLE_1), resource(*SECRET)])

        nodes = highlight_secret_values(flow.nodes, "Secret Value")

        assert nodes[nid(*SECRET)].highlighted
        assert not nodes[nid(*ROLE_1)].highlighted
        assert not flow.nodes[nid(*SECRET)].highlighted
