"""Backend reachability probe."""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone

from api_dashboard.client import BackendClient, get_backend_client
from api_dashboard.config import settings
from api_dashboard.models import ApiHealth

logger = logging.getLogger(__name__)

HEALTH_PATH = "/internal/health"


class ApiHealthProbe:
    """Checks that the backend answers its internal health endpoint."""

    def __init__(self, client: BackendClient | None = None, timeout: float | None = None):
        self._client = client
        self._timeout = timeout if timeout is not None else settings.PROBE_TIMEOUT_SECONDS

    async def check_health(self) -> ApiHealth:
        """Ping the backend.

        Returns:
            ApiHealth with status "ok" and latency, or "error" if unreachable
            or slower than the probe timeout.
        """
        started = time.perf_counter()
        client = self._client or get_backend_client()
        try:
            body = await asyncio.wait_for(client.get(HEALTH_PATH), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Backend health check timed out after {self._timeout:g}s")
            return ApiHealth(status="error", internal=False, checked_at=datetime.now(timezone.utc))
        except Exception as e:
            logger.warning(f"Backend health check failed: {e}")
            return ApiHealth(status="error", internal=False, checked_at=datetime.now(timezone.utc))

        internal = body.get("internal")
        return ApiHealth(
            status="error" if body.get("status") == "error" else "ok",
            internal=internal if isinstance(internal, bool) else True,
            checked_at=datetime.now(timezone.utc),
            response_time_ms=int((time.perf_counter() - started) * 1000),
        )
