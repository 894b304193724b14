"""Pytest shared fixtures."""
import json
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from gristctl.config import GristConfig


class StubResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, payload=None, text: str = None, headers: dict = None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.headers = headers or {}
        self.url = "https://grist.test"

    def json(self):
        return json.loads(self.text)


class FakeTransport:
    """Records every call and replays queued responses (or raises queued exceptions)."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def request(self, method, path, json=None, **kwargs):
        self.calls.append((method, path, json))
        if not self.responses:
            raise AssertionError(f"Unexpected backend call: {method} {path}")
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_real_http(monkeypatch):
    """Prevent unit tests from reaching a live Grist server."""

    def _refuse(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests.Session, "request", _refuse)


@pytest.fixture()
def transport():
    """Empty fake transport; tests queue responses on ``transport.responses``."""
    return FakeTransport()


@pytest.fixture()
def make_response():
    """Factory for StubResponse objects."""
    return StubResponse


@pytest.fixture()
def grist_config(tmp_path):
    return GristConfig(
        grist_url="https://grist.test",
        grist_token="test-token",
        scim_base_path="/api/scim/v2",
        request_timeout=5,
        bulk_max_payload_bytes=4096,
        config_file=tmp_path / ".gristctl",
    )
