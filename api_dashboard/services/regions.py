"""Regions resource probe."""
from __future__ import annotations

from typing import Any

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


class RegionsProbe(BaseResourceProbe):
    """Probe for geographic regions and their postal-code coverage."""

    name = "Regions"
    slug = "regions"
    description = "Geographic regions organized by postal code coverage"
    endpoint = "/internal/regions"
    requests = (ProbeRequest("list", "/internal/regions"),)
    freshness = FreshnessThresholds(warning_hours=168, critical_hours=720)
    counts = CountThresholds(min_threshold=1, warning_threshold=5)
    available_fields = ("id", "name", "normalizedName", "postalCodeDigits", "isActive", "installers", "quotas")
    available_filters = ("active", "include")

    def extract(self, responses: dict[str, dict[str, Any]]) -> ProbeExtract:
        regions = as_list(as_dict(responses.get("list")).get("data"))
        last = as_dict(regions[-1]) if regions else {}

        indicators = []
        coverage = evaluate_ratio(
            "Active Regions",
            count_where(regions, "isActive"),
            len(regions),
            healthy_at=0.8,
            warning_at=0.5,
            label="of regions active",
        )
        if coverage is not None:
            indicators.append(coverage)

        return ProbeExtract(
            total_records=len(regions),
            last_record=make_last_record(last, f"{last.get('name')} ({last.get('postalCodeDigits')})"),
            last_activity=record_timestamp(last),
            recent_activity=recent_activity_for(last),
            indicators=indicators,
        )
