"""Background monitor that refreshes the dashboard on a fixed interval."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from api_dashboard.models import DashboardData, ResourceStatus
from api_dashboard.orchestrator import DashboardOrchestrator
from api_dashboard.websocket.events import (
    NotificationEvent,
    ResourceUpdateEvent,
    SummaryUpdateEvent,
)

if TYPE_CHECKING:
    from api_dashboard.websocket.manager import ConnectionManager

logger = logging.getLogger(__name__)


class DashboardMonitor:
    """Runs poll cycles back to back and broadcasts what changed."""

    def __init__(
        self,
        connection_manager: ConnectionManager,
        orchestrator: DashboardOrchestrator | None = None,
        interval: int = 60,
    ):
        """Initialize the monitor.

        Args:
            connection_manager: WebSocket manager for broadcasting updates
            orchestrator: Runs one poll cycle. Defaults to the shared backend client.
            interval: Seconds between refresh cycles (default: 60)
        """
        self._connection_manager = connection_manager
        self._orchestrator = orchestrator or DashboardOrchestrator()
        self._interval = interval
        self._previous: dict[str, ResourceStatus] = {}
        self._task: asyncio.Task | None = None

    def detect_changes(self, data: DashboardData) -> list[ResourceStatus]:
        """Resources whose status, score or record count differ from the last cycle."""
        changed = []
        for resource in data.resources:
            previous = self._previous.get(resource.slug)
            if (
                previous is None
                or previous.status != resource.status
                or previous.health_score != resource.health_score
                or previous.total_records != resource.total_records
            ):
                changed.append(resource)
        return changed

    async def refresh(self) -> DashboardData:
        """Run one cycle and broadcast resource changes plus the summary."""
        data = await self._orchestrator.fetch_dashboard_data()

        for resource in self.detect_changes(data):
            event = ResourceUpdateEvent(
                resource=resource.slug,
                status=resource.status.value,
                health_score=resource.health_score,
                total_records=resource.total_records,
            )
            await self._connection_manager.broadcast(event.model_dump(mode="json"), resource=resource.slug)

        summary = data.summary
        event = SummaryUpdateEvent(
            healthy_resources=summary.healthy_resources,
            warning_resources=summary.warning_resources,
            critical_resources=summary.critical_resources,
            total_records=summary.total_records,
            average_health_score=summary.average_health_score,
            api_status=data.api_health.status,
        )
        await self._connection_manager.broadcast(event.model_dump(mode="json"))

        self._previous = {resource.slug: resource for resource in data.resources}
        return data

    async def _run_loop(self) -> None:
        """Internal loop; a failed cycle is reported and retried next interval."""
        try:
            while True:
                try:
                    await self.refresh()
                except Exception as e:
                    logger.error(f"Dashboard refresh failed: {e}", exc_info=True)
                    event = NotificationEvent(level="error", message=f"Dashboard refresh failed: {e}")
                    await self._connection_manager.broadcast(event.model_dump(mode="json"))
                await asyncio.sleep(self._interval)
        except asyncio.CancelledError:
            logger.info("Dashboard monitor stopped")
            raise

    async def start(self) -> None:
        """Start the background refresh loop."""
        if self._task is not None:
            logger.warning("Dashboard monitor already running")
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Dashboard monitor started with {self._interval}s interval")

    async def stop(self) -> None:
        """Stop the background refresh task."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Dashboard monitor stopped")
