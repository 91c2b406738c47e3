"""Installers resource probe."""
from __future__ import annotations

from typing import Any

from api_dashboard.models import HealthIndicator, HealthStatus
from api_dashboard.scoring import CountThresholds, FreshnessThresholds, evaluate_ratio
from api_dashboard.services.base import (
    BaseResourceProbe,
    ProbeExtract,
    ProbeRequest,
    as_dict,
    as_list,
    count_where,
    make_last_record,
    recent_activity_for,
    record_timestamp,
)


class InstallersProbe(BaseResourceProbe):
    """Probe for installation companies receiving opportunities."""

    name = "Installers"
    slug = "installers"
    description = "Solar panel installation companies"
    endpoint = "/internal/installers"
    requests = (ProbeRequest("list", "/internal/installers", {"include": "regions"}),)
    freshness = FreshnessThresholds(warning_hours=168, critical_hours=720)
    counts = CountThresholds(min_threshold=1, warning_threshold=3)
    available_fields = ("id", "installerName", "isActive", "activatedAt", "deactivatedAt", "regions")
    available_filters = ("active", "include")

    def extract(self, responses: dict[str, dict[str, Any]]) -> ProbeExtract:
        installers = as_list(as_dict(responses.get("list")).get("data"))
        last = as_dict(installers[-1]) if installers else {}
        active = count_where(installers, "isActive")

        indicators = []
        if installers and active == 0:
            # nobody can receive opportunities, whatever the ratio says
            indicators.append(HealthIndicator(
                name="Active Installers",
                status=HealthStatus.CRITICAL,
                message=f"No active installers out of {len(installers)}",
                value=0,
            ))
        else:
            coverage = evaluate_ratio(
                "Active Installers",
                active,
                len(installers),
                healthy_at=0.8,
                warning_at=0.5,
                label="of installers active",
            )
            if coverage is not None:
                indicators.append(coverage)

        status_label = "Active" if last.get("isActive") else "Inactive"
        return ProbeExtract(
            total_records=len(installers),
            last_record=make_last_record(last, f"{last.get('installerName')} ({status_label})"),
            last_activity=record_timestamp(last),
            recent_activity=recent_activity_for(last),
            indicators=indicators,
        )
