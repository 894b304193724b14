"""Grist REST API client library.

Architecture:
- client.py: bearer-authenticated HTTP client (one requests.Session)
- exceptions.py: typed exceptions for error handling

Usage:
    from gristctl.core.grist import GristClient

    client = GristClient("https://grist.example.com", token)
    client.test_connection()
"""
from .client import GristClient, REQUEST_TIMEOUT
from .exceptions import GristError, GristAPIError, GristConnectionError

__all__ = [
    "GristClient",
    "REQUEST_TIMEOUT",
    "GristError",
    "GristAPIError",
    "GristConnectionError",
]
