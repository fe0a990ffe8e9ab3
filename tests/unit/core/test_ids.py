"""Unit tests for identifier and label helpers."""

from archview.core.ids import (
    edge_id_from_resource_ids,
    is_same_or_descendant,
    label_for_resource,
    node_id_from_resource_id,
    parent_resource_id,
)
from builders import rid


class TestNodeIds:
    def test_node_id_joins_type_and_id_pairs(self):
        assert node_id_from_resource_id(rid(("AWS Account", "A"), ("Region", "R"))) == "::AWS Account::A::Region::R"

    def test_edge_id_joins_node_ids(self):
        source = rid(("IAM Role", "P"))
        target = rid(("Bucket", "B"))
        assert edge_id_from_resource_ids(source, target) == "::IAM Role::P-::Bucket::B"

    def test_parent_resource_id(self):
        assert parent_resource_id(rid(("AWS Account", "A"))) is None
        assert parent_resource_id(rid(("AWS Account", "A"), ("Region", "R"))) == rid(("AWS Account", "A"))

    def test_is_same_or_descendant(self):
        account = rid(("AWS Account", "A"))
        region = rid(("AWS Account", "A"), ("Region", "R"))

        assert is_same_or_descendant(region, account)
        assert is_same_or_descendant(account, account)
        assert not is_same_or_descendant(account, region)
        assert not is_same_or_descendant(rid(("AWS Account", "B"), ("Region", "R")), account)


class TestLabels:
    """Display labels used in issue messages and node sizing."""

    def test_plain_resource_uses_last_segment(self):
        assert label_for_resource(rid(("AWS Account", "A"), ("Region", "us-east-1"))) == "us-east-1"

    def test_secret_value_is_truncated(self):
        assert label_for_resource(rid(("Secret Value", "abcdef1234567890"))) == "abcdef1"

    def test_cluster_drops_suffix(self):
        assert label_for_resource(rid(("Kubernetes Cluster", "prod-east-1"))) == "prod"

    def test_kubernetes_container_relative_to_parent(self):
        container = rid(
            ("Kubernetes Cluster", "prod"),
            ("Namespace", "payments"),
            ("Deployment", "api"),
            ("Container", "app"),
        )

        assert label_for_resource(container) == "payments › api › app"
        assert label_for_resource(container, container[:2]) == "api › app"
        assert label_for_resource(container, container[:3]) == "app"

    def test_empty_resource(self):
        assert label_for_resource([]) == ""
