"""Tests for the Grist HTTP client."""
from unittest.mock import MagicMock

import pytest
import requests

from gristctl.core.grist import GristAPIError, GristClient, GristConnectionError


@pytest.fixture()
def session(make_response):
    session = MagicMock()
    session.headers = {}
    session.request.return_value = make_response(200, [])
    return session


@pytest.fixture()
def client(session):
    return GristClient("https://grist.test/", "tok", timeout=7, session=session)


def test_bearer_token_set_on_session(client, session):
    assert session.headers["Authorization"] == "Bearer tok"


def test_request_builds_url_and_sends_json(client, session):
    client.request("POST", "/api/scim/v2/Users", json={"userName": "alice"})

    session.request.assert_called_once_with(
        "POST",
        "https://grist.test/api/scim/v2/Users",
        json={"userName": "alice"},
        headers={"Content-Type": "application/json"},
        timeout=7,
    )


def test_request_returns_error_responses_untouched(client, session, make_response):
    session.request.return_value = make_response(409, {"detail": "exists"})

    resp = client.request("POST", "/api/scim/v2/Users", json={})

    assert resp.status_code == 409


def test_request_wraps_transport_failures(client, session):
    session.request.side_effect = requests.ConnectionError("Connection refused")

    with pytest.raises(GristConnectionError) as exc:
        client.request("DELETE", "/api/scim/v2/Users/1")

    assert exc.value.method == "DELETE"
    assert exc.value.endpoint == "https://grist.test/api/scim/v2/Users/1"
    assert "Connection refused" in exc.value.reason


def test_get_raises_on_http_error(client, session, make_response):
    session.request.return_value = make_response(403, {"error": "forbidden"})

    with pytest.raises(GristAPIError) as exc:
        client.get("/api/orgs")

    assert exc.value.status_code == 403


def test_test_connection_ok(client, session):
    assert client.test_connection() is True
    assert session.request.call_args[0][:2] == ("GET", "https://grist.test/api/orgs")


def test_test_connection_rejects_bad_token(client, session, make_response):
    session.request.return_value = make_response(401, {"error": "unauthorized"})
    assert client.test_connection() is False


def test_test_connection_handles_unreachable_server(client, session):
    session.request.side_effect = requests.Timeout("timed out")
    assert client.test_connection() is False
