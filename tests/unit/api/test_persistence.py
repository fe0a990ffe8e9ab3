"""
Unit tests for background environment persistence.
"""

from unittest.mock import MagicMock, patch

import pytest

from archview.api.persistence import FAILURE_PREFIX, UNKNOWN_FAILURE, ThreadedEnvironmentPersister
from archview.core.errors import ApiError
from archview.core.result import Err, Ok
from builders import ACCOUNT, rid


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def persister(client):
    with patch("archview.api.persistence.atexit.register"):
        yield ThreadedEnvironmentPersister(client)


class TestSend:
    """The worker body, run synchronously."""

    def test_success_reports_none(self, persister, client):
        client.set_environments.return_value = Ok(None)
        callback = MagicMock()

        persister._send(rid(*ACCOUNT), ["prod"], callback)

        client.set_environments.assert_called_once_with(rid(*ACCOUNT), ["prod"])
        callback.assert_called_once_with(None)

    def test_api_failure_reports_message(self, persister, client):
        client.set_environments.return_value = Err(ApiError("forbidden", status=403))
        callback = MagicMock()

        persister._send(rid(*ACCOUNT), ["prod"], callback)

        callback.assert_called_once_with(f"{FAILURE_PREFIX}: forbidden")

    def test_unexpected_exception_is_caught(self, persister, client, caplog):
        client.set_environments.side_effect = RuntimeError("boom")
        callback = MagicMock()

        persister._send(rid(*ACCOUNT), ["prod"], callback)

        callback.assert_called_once_with(UNKNOWN_FAILURE)
        assert "Unexpected failure" in caplog.text

    def test_missing_callback_is_fine(self, persister, client):
        client.set_environments.return_value = Err(ApiError("forbidden"))
        persister._send(rid(*ACCOUNT), ["prod"], None)


class TestPersist:
    def test_runs_on_a_tracked_thread(self, persister):
        with patch("archview.api.persistence.threading.Thread") as mock_thread:
            persister.persist(rid(*ACCOUNT), ["prod"])

        mock_thread.assert_called_once_with(target=persister._send, args=(rid(*ACCOUNT), ["prod"], None))
        mock_thread.return_value.start.assert_called_once()
        assert persister._threads == [mock_thread.return_value]

    def test_end_to_end_callback(self, persister, client):
        client.set_environments.return_value = Ok(None)
        callback = MagicMock()

        persister.persist(rid(*ACCOUNT), ["prod"], callback=callback)
        persister._flush()

        callback.assert_called_once_with(None)

    def test_exit_hook_registered(self, client):
        with patch("archview.api.persistence.atexit.register") as mock_register:
            persister = ThreadedEnvironmentPersister(client)

        mock_register.assert_called_once_with(persister._flush)
