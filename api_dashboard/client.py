"""Async client for the monitored backend API.

Usage:
    client = BackendClient("https://backend.example.com/api", api_key="...")
    payload = await client.get("/internal/deals", params={"pageSize": 1})
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from api_dashboard.config import settings

logger = logging.getLogger(__name__)


class BackendAPIError(Exception):
    """Backend answered with a non-2xx status or an unreadable body."""

    def __init__(self, message: str, status_code: int | None = None, path: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.path = path


class BackendClient:
    """Minimal read-only client for the backend's internal endpoints."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    async def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET a backend path and return the decoded JSON body.

        Raises:
            BackendAPIError: On non-2xx status or a body that is not a JSON object.
            httpx.HTTPError: On transport failures.
        """
        response = await self._client.get(f"{self.base_url}{path}", params=params)

        if not response.is_success:
            raise BackendAPIError(
                f"API Error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                path=path,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise BackendAPIError(f"Invalid JSON from {path}: {e}", response.status_code, path) from e

        if not isinstance(body, dict):
            raise BackendAPIError(f"Unexpected payload from {path}", response.status_code, path)
        return body

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()


_client: BackendClient | None = None


def get_backend_client() -> BackendClient:
    """Return the shared client, creating it from settings on first use."""
    global _client
    if _client is None:
        _client = BackendClient(settings.BACKEND_API_URL, settings.BACKEND_API_KEY)
        logger.info(f"Backend client created for {settings.BACKEND_API_URL}")
    return _client


async def close_backend_client() -> None:
    """Close the shared client if it was created."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
