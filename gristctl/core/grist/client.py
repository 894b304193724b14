"""Low-level HTTP client for the Grist REST API.

Handles bearer authentication, URL building, and HTTP operations.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import requests

from .exceptions import GristAPIError, GristConnectionError

REQUEST_TIMEOUT = 30

logger = logging.getLogger(__name__)


class GristClient:
    """HTTP client for the Grist REST API.

    One client wraps one ``requests.Session`` and is safe to reuse across
    calls. It never retries.

    Usage:
        client = GristClient("https://grist.example.com", "api-token")
        response = client.request("POST", "/api/scim/v2/Users", json={...})
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize Grist client.

        Args:
            base_url: Grist server URL (e.g. https://docs.getgrist.com)
            token: Grist API key sent as bearer token
            timeout: Per-request timeout in seconds
            session: Optional pre-built session (tests inject a fake one)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers["Authorization"] = f"Bearer {token}"

    def url_for(self, path: str) -> str:
        """Build an absolute URL from an API path such as ``/api/orgs``."""
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        **kwargs,
    ) -> requests.Response:
        """Send one request and return the response whatever its status.

        Args:
            method: HTTP verb
            path: API path relative to the server URL
            json: JSON-serializable body; no body is sent when None
            **kwargs: Additional arguments for Session.request

        Returns:
            Response object

        Raises:
            GristConnectionError: When no HTTP response was received
        """
        url = self.url_for(path)
        headers = kwargs.pop("headers", {})
        headers.setdefault("Content-Type", "application/json")

        logger.debug("%s %s", method, url)
        try:
            return self._session.request(
                method,
                url,
                json=json,
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise GristConnectionError(method, url, str(exc)) from exc

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request, raising on HTTP error.

        Raises:
            GristAPIError: On HTTP error
            GristConnectionError: When no HTTP response was received
        """
        resp = self.request("GET", path, params=params, **kwargs)
        self._handle_error(resp)
        return resp

    def test_connection(self) -> bool:
        """Return True when the server lists organizations for this token."""
        try:
            resp = self.get("/api/orgs")
        except (GristAPIError, GristConnectionError) as exc:
            logger.warning("Grist connection check failed: %s", exc)
            return False
        return resp.status_code == 200

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            GristAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise GristAPIError(resp.status_code, resp.text, resp.url)
