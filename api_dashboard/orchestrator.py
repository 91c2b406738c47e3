"""Dashboard orchestrator: one fan-out/fan-in poll cycle."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Sequence

from api_dashboard.client import BackendClient
from api_dashboard.models import DashboardData
from api_dashboard.scoring import score_dashboard
from api_dashboard.services.api_health import ApiHealthProbe
from api_dashboard.services.base import BaseResourceProbe
from api_dashboard.services.calls import CallsProbe
from api_dashboard.services.deals import DealsProbe
from api_dashboard.services.installers import InstallersProbe
from api_dashboard.services.lost_reasons import LostReasonsProbe
from api_dashboard.services.opportunities import OpportunitiesProbe
from api_dashboard.services.qualifications import QualificationsProbe
from api_dashboard.services.regions import RegionsProbe
from api_dashboard.services.templates import TemplatesProbe
from api_dashboard.services.unmatched_calls import UnmatchedCallsProbe

logger = logging.getLogger(__name__)

# Display order of resources on the dashboard
RESOURCE_PROBES: tuple[type[BaseResourceProbe], ...] = (
    DealsProbe,
    RegionsProbe,
    InstallersProbe,
    OpportunitiesProbe,
    CallsProbe,
    QualificationsProbe,
    LostReasonsProbe,
    TemplatesProbe,
    UnmatchedCallsProbe,
)


class DashboardOrchestrator:
    """Runs the reachability probe and all resource probes concurrently."""

    def __init__(
        self,
        client: BackendClient | None = None,
        probes: Sequence[BaseResourceProbe] | None = None,
        api_health_probe: ApiHealthProbe | None = None,
        timeout: float | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            client: Backend client shared by all probes. Defaults to the shared client.
            probes: Resource probes in display order. Defaults to RESOURCE_PROBES.
            api_health_probe: Backend reachability probe.
            timeout: Per-probe timeout override in seconds.
        """
        if probes is None:
            probes = [probe_cls(client, timeout=timeout) for probe_cls in RESOURCE_PROBES]
        self._probes = list(probes)
        self._api_health_probe = api_health_probe or ApiHealthProbe(client, timeout=timeout)

    @property
    def probes(self) -> list[BaseResourceProbe]:
        return list(self._probes)

    def get_probe(self, slug: str) -> BaseResourceProbe | None:
        """Return the probe registered under ``slug``, if any."""
        for probe in self._probes:
            if probe.slug == slug:
                return probe
        return None

    async def fetch_dashboard_data(self) -> DashboardData:
        """Run one poll cycle.

        Probes convert their own failures into error statuses, so nothing
        short of a programming error escapes from here.

        Returns:
            DashboardData with resources in probe order and the summary.
        """
        api_health, *resources = await asyncio.gather(
            self._api_health_probe.check_health(),
            *(probe.check_health() for probe in self._probes),
        )

        summary = score_dashboard(resources, now=datetime.now(timezone.utc))
        logger.info(
            f"Dashboard refreshed: {summary.healthy_resources}/{summary.total_resources} healthy, "
            f"average score {summary.average_health_score}"
        )
        return DashboardData(api_health=api_health, resources=resources, summary=summary)
