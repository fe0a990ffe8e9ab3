"""
Account API client.

Talks JSON over HTTP with urllib. Calls that the engine fires and forgets
return a Result; the dataset fetch raises since nothing can render without it.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional
from urllib import error, request

from pydantic import ValidationError

from ..config import Settings
from ..core.errors import AccountUnreachableError, ApiError
from ..core.result import Err, Ok, Result
from ..core.types import QueryResponse, ResourceIdPart

logger = logging.getLogger(__name__)

QueryKind = Literal["secrets", "all"]


@dataclass(frozen=True)
class AccountContext:
    endpoint: str
    account_id: str

    def api_url(self, path: str) -> str:
        return f"{self.endpoint.rstrip('/')}{path}"


class ApiClient:
    """
    Client for a single account.

    Args:
        context: Endpoint and account to talk to.
        timeout: Per-request timeout in seconds.
        playground: When set, persistence calls succeed without touching the network.
    """

    def __init__(self, context: AccountContext, timeout: float = 10.0, playground: bool = False):
        self.context = context
        self.timeout = timeout
        self.playground = playground

    @classmethod
    def from_settings(cls, settings: Settings) -> "ApiClient":
        if not settings.account_id:
            raise ApiError("No account configured; set api.account_id or ARCHVIEW_ACCOUNT_ID")
        context = AccountContext(endpoint=settings.api_endpoint, account_id=settings.account_id)
        return cls(context, timeout=settings.api_timeout, playground=settings.playground)

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Result[Any, ApiError]:
        url = self.context.api_url(path)
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = request.Request(url, data=data, method=method, headers={"Content-Type": "application/json"})

        try:
            with request.urlopen(req, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
        except error.HTTPError as e:
            text = e.read().decode("utf-8", errors="replace") or str(e.reason)
            return Err(ApiError(text, status=e.code))
        except (error.URLError, OSError) as e:
            return Err(ApiError(str(getattr(e, "reason", e))))

        if not body:
            return Ok(None)
        try:
            return Ok(json.loads(body))
        except json.JSONDecodeError as e:
            return Err(ApiError(f"Invalid JSON from {url}: {e}"))

    def fetch_query(self, kind: QueryKind = "secrets") -> QueryResponse:
        """
        Download the resource/event dataset.

        Raises:
            AccountUnreachableError: If the request fails or the body is not a valid dataset.
        """
        account_id = self.context.account_id
        result = self._request("GET", f"/account/{account_id}/query/{kind}")
        if result.is_err():
            raise AccountUnreachableError(account_id, result.error.message, status=result.error.status)

        try:
            response = QueryResponse.model_validate(result.value or {})
        except ValidationError as e:
            raise AccountUnreachableError(account_id, f"malformed dataset: {e}") from e

        logger.info(
            f"Fetched {kind} dataset for account {account_id}: "
            f"{len(response.resources)} resources, {len(response.events)} events"
        )
        return response

    def set_environments(self, resource_id: List[ResourceIdPart], environments: List[str]) -> Result[None, ApiError]:
        """Replace the environments tagged directly on a resource."""
        if self.playground:
            logger.debug("Playground mode, skipping environment persistence")
            return Ok(None)

        payload = {
            "resource_id": [part.model_dump() for part in resource_id],
            "environments": environments,
        }
        result = self._request("POST", f"/account/{self.context.account_id}/resource/set_environments", payload)
        if result.is_err():
            return result
        return Ok(None)
