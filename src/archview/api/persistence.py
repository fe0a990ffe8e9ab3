"""
Background environment persistence.

The engine updates its state before the API call is made; each call runs on
its own thread and reports back through the caller's callback.
"""

import atexit
import logging
import threading
from typing import List, Optional

from ..core.types import ResourceIdPart
from ..engine.capabilities import PersistCallback
from .client import ApiClient

logger = logging.getLogger(__name__)

FAILURE_PREFIX = "Failed to update environments for resource"
UNKNOWN_FAILURE = "An unknown error occurred while updating environments for resource."


class ThreadedEnvironmentPersister:
    """
    Persists environment tags without blocking the caller.

    Pending requests are joined at interpreter exit.
    """

    def __init__(self, client: ApiClient, join_timeout: float = 5.0):
        self.client = client
        self.join_timeout = join_timeout
        self._threads: List[threading.Thread] = []
        self._logger = logging.getLogger(f"{__name__}.ThreadedEnvironmentPersister")

        atexit.register(self._flush)

    def _flush(self):
        """Wait for pending requests to finish."""
        for thread in [t for t in self._threads if t.is_alive()]:
            thread.join(timeout=self.join_timeout)

    def persist(
        self,
        resource_id: List[ResourceIdPart],
        environments: List[str],
        callback: Optional[PersistCallback] = None,
    ) -> None:
        thread = threading.Thread(target=self._send, args=(list(resource_id), list(environments), callback))
        thread.daemon = False
        self._threads = [t for t in self._threads if t.is_alive()]
        self._threads.append(thread)
        thread.start()

    def _send(
        self,
        resource_id: List[ResourceIdPart],
        environments: List[str],
        callback: Optional[PersistCallback],
    ) -> None:
        try:
            result = self.client.set_environments(resource_id, environments)
        except Exception:
            self._logger.exception("Unexpected failure while persisting environments")
            if callback is not None:
                callback(UNKNOWN_FAILURE)
            return

        if result.is_err():
            message = f"{FAILURE_PREFIX}: {result.error.message}"
            self._logger.error(message)
            if callback is not None:
                callback(message)
            return

        self._logger.debug(f"Persisted environments {environments} for {resource_id}")
        if callback is not None:
            callback(None)
