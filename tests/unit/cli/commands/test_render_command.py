"""
Unit tests for the 'render' command.
"""

import json

from archview.cli.commands.render import RENDERED_FIELDS
from builders import ROLE_1, SECRET, WINDOW_ARGS, eid, nid


class TestRenderCommand:
    """Runs the full pipeline through the CLI."""

    def test_writes_laid_out_graph(self, invoke, dataset_file, tmp_path):
        output = tmp_path / "graph.json"

        result = invoke("render", str(dataset_file), *WINDOW_ARGS, "-o", str(output))

        assert result.exit_code == 0, result.output
        payload = json.loads(output.read_text())
        assert set(payload) == RENDERED_FIELDS
        assert payload["laid_out"] == "laidOut"
        assert payload["section"] == "secrets"
        assert payload["nodes"][nid(*SECRET)]["width"] > 0
        assert eid(ROLE_1, SECRET) in payload["edges"]

    def test_selection_is_applied(self, invoke, dataset_file, tmp_path):
        output = tmp_path / "graph.json"

        result = invoke(
            "render", str(dataset_file), *WINDOW_ARGS, "--select", nid(*ROLE_1), "-o", str(output)
        )

        assert result.exit_code == 0, result.output
        payload = json.loads(output.read_text())
        assert nid(*ROLE_1) in payload["selection"]["resources"]
        assert payload["nodes"][nid(*ROLE_1)]["selected"]

    def test_unknown_node_fails(self, invoke, dataset_file):
        result = invoke("render", str(dataset_file), *WINDOW_ARGS, "--select", "::Nope::x")

        assert result.exit_code == 1
        assert "::Nope::x" in result.output

    def test_invalid_dataset_fails(self, invoke, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[")

        result = invoke("render", str(path))

        assert result.exit_code == 1
        assert "is not valid JSON" in result.output
