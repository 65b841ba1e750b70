"""API test fixtures: TestClient over in-memory billing services."""

import pytest
from starlette.testclient import TestClient

from api.app import create_app


@pytest.fixture
def app(bill_service):
    return create_app({"bill": bill_service})


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def action(client):
    """POST an action and return the response."""
    def _post(action_name: str, data: dict, domain: str = "bill"):
        return client.post("/api/actions", json={"domain": domain, "action": action_name, "data": data})
    return _post
