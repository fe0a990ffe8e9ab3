"""Unit tests for the layout tree helpers."""

from archview.layout.models import (
    ROOT_ID,
    LayoutNode,
    container_offset,
    find_common_container,
    index_layout_tree,
    strict_ancestors,
)

ACCOUNT = "::AWS Account::A"
REGION = "::AWS Account::A::Region::eu"
ROLE_1 = "::AWS Account::A::Region::eu::IAM Role::P1"
ROLE_2 = "::AWS Account::A::Region::eu::IAM Role::P2"
BUCKET = "::AWS Account::A::S3 Bucket::assets"
SECRET = "::Secret Value::abcdef1"


def tree():
    role_1 = LayoutNode(id=ROLE_1, x=10, y=5)
    role_2 = LayoutNode(id=ROLE_2, x=10, y=80)
    region = LayoutNode(id=REGION, children=[role_1, role_2], x=20, y=66)
    bucket = LayoutNode(id=BUCKET, x=300, y=66)
    account = LayoutNode(id=ACCOUNT, children=[region, bucket], x=100, y=40)
    return LayoutNode(id=ROOT_ID, children=[account, LayoutNode(id=SECRET)])


class TestIndexLayoutTree:
    def test_parents_and_nodes(self):
        nodes, parents = index_layout_tree(tree())

        assert set(nodes) == {ACCOUNT, REGION, ROLE_1, ROLE_2, BUCKET, SECRET}
        assert parents[ACCOUNT] is None
        assert parents[SECRET] is None
        assert parents[ROLE_1] == REGION
        assert ROOT_ID not in nodes

    def test_strict_ancestors_walk_to_the_top(self):
        _, parents = index_layout_tree(tree())
        assert strict_ancestors(ROLE_1, parents) == [REGION, ACCOUNT]
        assert strict_ancestors(ACCOUNT, parents) == []


class TestFindCommonContainer:
    """Edge coordinates are relative to the container enclosing both endpoints."""

    def test_siblings_use_the_shared_parent(self):
        _, parents = index_layout_tree(tree())
        assert find_common_container(ROLE_1, ROLE_2, parents) == REGION

    def test_prefix_ending_inside_a_type_name(self):
        _, parents = index_layout_tree(tree())
        assert find_common_container(ROLE_1, BUCKET, parents) == ACCOUNT

    def test_loopback_uses_the_node_parent(self):
        _, parents = index_layout_tree(tree())
        assert find_common_container(ROLE_1, ROLE_1, parents) == REGION

    def test_unrelated_nodes_use_the_root(self):
        _, parents = index_layout_tree(tree())
        assert find_common_container(ROLE_1, SECRET, parents) is None

    def test_prefix_not_in_layout_tree_falls_back_to_common_ancestor(self):
        """A coalesced-away container named by the prefix is skipped."""
        role_1 = LayoutNode(id=ROLE_1)
        role_2 = LayoutNode(id=ROLE_2)
        # Region was coalesced, the roles sit directly in the account
        graph = LayoutNode(id=ROOT_ID, children=[LayoutNode(id=ACCOUNT, children=[role_1, role_2])])
        _, parents = index_layout_tree(graph)

        assert find_common_container(ROLE_1, ROLE_2, parents) == ACCOUNT


class TestContainerOffset:
    def test_sums_relative_positions(self):
        nodes, parents = index_layout_tree(tree())
        assert container_offset(ROLE_2, nodes, parents) == (130.0, 186.0)

    def test_root_has_no_offset(self):
        nodes, parents = index_layout_tree(tree())
        assert container_offset(None, nodes, parents) == (0.0, 0.0)
