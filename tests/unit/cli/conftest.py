"""Fixtures for invoking the archview CLI."""

import json

import pytest
from click.testing import CliRunner

from archview.cli.main import main



@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("ARCHVIEW_API_ENDPOINT", "ARCHVIEW_ACCOUNT_ID", "ARCHVIEW_API_TIMEOUT", "ARCHVIEW_PLAYGROUND"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def dataset_file(tmp_path, secrets_response):
    path = tmp_path / "data.json"
    path.write_text(json.dumps(secrets_response.model_dump(mode="json")))
    return path


@pytest.fixture
def invoke(tmp_path):
    """Run the CLI with a settings file that does not exist."""
    runner = CliRunner()
    config = tmp_path / "missing.yaml"

    def _invoke(*args):
        return runner.invoke(main, ["--config", str(config), *args])

    return _invoke
