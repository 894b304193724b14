"""Grist-specific exceptions for error handling."""


class GristError(Exception):
    """Base exception for all Grist API operations."""
    pass


class GristAPIError(GristError):
    """HTTP error from the Grist REST API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class GristConnectionError(GristError):
    """The request never produced an HTTP response (refused, DNS, timeout)."""

    def __init__(self, method: str, endpoint: str, reason: str):
        self.method = method
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"{method} {endpoint}: {reason}")
