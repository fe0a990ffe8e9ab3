"""Unit tests for the issue detector."""

import itertools

import pytest

from archview.core.environments import resolve_all
from archview.core.errors import GraphIntegrityError
from archview.core.issues import detect_issues, environment_issues, secret_issues, update_issues
from archview.core.types import MenuSection
from archview.graph.events import flatten_resource_events
from builders import ROLE_1, ROLE_2, SECRET, eid, event, nid, resource

REPO_BLOB = (
    ("GitHub", "github.com"),
    ("GitHub Org", "acme"),
    ("GitHub Repo", "api"),
    ("Blob", "src/settings.py"),
)

ACCOUNT_PROD = (("AWS Account", "prod"),)
ACCOUNT_DEV = (("AWS Account", "dev"),)
PROD_ROLE = ACCOUNT_PROD + (("IAM Role", "deployer"),)
DEV_BUCKET = ACCOUNT_DEV + (("S3 Bucket", "assets"),)


def flattened(*events):
    return flatten_resource_events(list(events)).resource_events


class TestSecretIssues:
    """Secret custody checks."""

    def test_secret_held_twice(self):
        """Two holders of one secret produce one issue naming the secret first."""
        issues = secret_issues(flattened(event(ROLE_1, SECRET, "Held"), event(ROLE_2, SECRET, "Held")))

        issue_id = f"multiple-helds-{nid(*SECRET)}"
        assert list(issues) == [issue_id]
        assert issues[issue_id].resource_ids == [nid(*SECRET), nid(*ROLE_1), nid(*ROLE_2)]
        assert issues[issue_id].edge_ids == [eid(ROLE_1, SECRET), eid(ROLE_2, SECRET)]
        assert issues[issue_id].message == "Secret Value abcdef1 is held in multiple locations"

    def test_single_holder_is_fine(self):
        assert secret_issues(flattened(event(ROLE_1, SECRET, "Held"))) == {}

    def test_hardcoded_and_held_share_threshold(self):
        issues = secret_issues(flattened(event(ROLE_1, SECRET, "Held"), event(REPO_BLOB, SECRET, "Hardcoded")))

        assert f"multiple-helds-{nid(*SECRET)}" in issues

    def test_hardcoded_in_blob(self):
        issues = secret_issues(flattened(event(REPO_BLOB, SECRET, "Hardcoded")))

        issue_id = f"hardcoded-secret-value-{eid(REPO_BLOB, SECRET)}"
        assert list(issues) == [issue_id]
        assert issues[issue_id].message == "Secret Value abcdef1 is hardcoded in GitHub Repo acme/api /src/settings.py"
        assert issues[issue_id].resource_ids == [nid(*SECRET), nid(*REPO_BLOB)]

    def test_other_event_types_ignored(self):
        events = flattened(event(ROLE_1, SECRET, "Read"), event(ROLE_2, SECRET, "Read"))
        assert secret_issues(events) == {}

    def test_detection_is_order_independent(self):
        """Every permutation of the input yields the same issue ids."""
        events = flattened(
            event(ROLE_1, SECRET, "Held"),
            event(ROLE_2, SECRET, "Held"),
            event(REPO_BLOB, SECRET, "Hardcoded"),
        )
        expected = set(secret_issues(events))

        for permutation in itertools.permutations(events):
            assert set(secret_issues(list(permutation))) == expected


class TestEnvironmentIssues:
    """Cross-environment access."""

    @pytest.fixture
    def resources(self):
        return [
            resource(*ACCOUNT_PROD, environments=["prod"]),
            resource(*ACCOUNT_DEV, environments=["dev"]),
            resource(*PROD_ROLE),
            resource(*DEV_BUCKET),
        ]

    def test_access_across_disjoint_environments(self, resources):
        cache, _ = resolve_all(resources)

        issues = environment_issues(flattened(event(PROD_ROLE, DEV_BUCKET, "Write")), resources, cache)

        issue_id = f"across-environments-{nid(*PROD_ROLE)}-{nid(*DEV_BUCKET)}"
        assert list(issues) == [issue_id]
        assert issues[issue_id].resource_ids == [nid(*DEV_BUCKET), nid(*PROD_ROLE)]
        assert issues[issue_id].edge_ids == [eid(PROD_ROLE, DEV_BUCKET)]
        assert issues[issue_id].message == (
            "Principal deployer performed action Write on resource assets across environments"
        )

    def test_shared_environment_is_fine(self, resources):
        resources[1] = resources[1].model_copy(update={"environments": ["dev", "prod"]})
        cache, _ = resolve_all(resources)

        assert environment_issues(flattened(event(PROD_ROLE, DEV_BUCKET)), resources, cache) == {}

    def test_untagged_principal_is_fine(self, resources):
        resources[0] = resources[0].model_copy(update={"environments": None})
        cache, _ = resolve_all(resources)

        assert environment_issues(flattened(event(PROD_ROLE, DEV_BUCKET)), resources, cache) == {}

    def test_unknown_resource_raises(self, resources):
        cache, _ = resolve_all(resources)
        stranger = (("AWS Account", "other"),)

        with pytest.raises(GraphIntegrityError):
            environment_issues(flattened(event(PROD_ROLE, stranger)), resources, cache)


class TestUpdateIssues:
    def test_secrets_section_runs_both_passes(self, secrets_state):
        assert set(detect_issues(secrets_state)) == {f"multiple-helds-{nid(*SECRET)}"}

    def test_inventory_has_no_issues(self, inventory_state):
        assert inventory_state.issues is None
        assert detect_issues(inventory_state) is None

    def test_nodes_annotated_with_issue_ids(self, secrets_state):
        issue_id = f"multiple-helds-{nid(*SECRET)}"
        for node_id in (nid(*SECRET), nid(*ROLE_1), nid(*ROLE_2)):
            assert secrets_state.nodes[node_id].resource_issue_ids == [issue_id]

    def test_unchanged_issue_set_returns_same_state(self, secrets_state):
        assert update_issues(secrets_state) is secrets_state

    def test_changed_issue_set_reannotates(self, secrets_state):
        state = secrets_state.model_copy(update={"section": MenuSection.ENVIRONMENTS})

        updated = update_issues(state)

        assert updated.issues == {}
        assert updated.nodes[nid(*SECRET)].resource_issue_ids == []
