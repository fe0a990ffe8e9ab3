"""Shared fixtures for the unit tests."""

import pytest

from archview.core.types import MenuSection, QueryResponse
from archview.engine.initializer import create_query_data
from builders import ACCOUNT, ROLE_1, ROLE_2, SECRET, WINDOW, event, resource


@pytest.fixture
def secrets_response() -> QueryResponse:
    """Two roles of one account both holding the same secret value."""
    return QueryResponse(
        resources=[resource(*ACCOUNT), resource(*ROLE_1), resource(*ROLE_2), resource(*SECRET)],
        events=[event(ROLE_1, SECRET, "Held"), event(ROLE_2, SECRET, "Held")],
    )


@pytest.fixture
def secrets_state(secrets_response):
    return create_query_data(secrets_response, MenuSection.SECRETS, date_filter=WINDOW)


@pytest.fixture
def inventory_state(secrets_response):
    return create_query_data(secrets_response, MenuSection.INVENTORY, date_filter=WINDOW)
