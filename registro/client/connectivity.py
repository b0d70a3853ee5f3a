"""
Connectivity checks. Being offline is a normal state, never an error.
"""
from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class StaticConnectivity:
    """A switch the host app (or a test) flips when the network changes."""

    def __init__(self, connected: bool = True):
        self.connected = connected

    def is_connected(self) -> bool:
        return self.connected


class ProbeConnectivity:
    """Online means the server's /health endpoint answers in time."""

    def __init__(self, http: httpx.Client, path: str = "/health", timeout: float = 2.0):
        self.http = http
        self.path = path
        self.timeout = timeout

    def is_connected(self) -> bool:
        try:
            response = self.http.get(self.path, timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.debug("Connectivity probe failed: %s", exc)
            return False
        return response.status_code < 500
