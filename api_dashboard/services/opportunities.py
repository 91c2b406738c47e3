"""Opportunities resource probe.

Opportunities are qualified deals handed to installers. Besides volume, the
win rate among closed opportunities is tracked.
"""
from __future__ import annotations

from typing import Any

from api_dashboard.scoring import CountThresholds, FreshnessThresholds, evaluate_ratio
from api_dashboard.services.base import (
    BaseResourceProbe,
    ProbeExtract,
    ProbeRequest,
    as_dict,
    as_list,
    first_int,
    make_last_record,
    recent_activity_for,
    record_timestamp,
)


class OpportunitiesProbe(BaseResourceProbe):
    """Probe for installer opportunities."""

    name = "Opportunities"
    slug = "opportunities"
    description = "Qualified deals sent to installers"
    endpoint = "/internal/opportunities"
    requests = (
        ProbeRequest("list", "/internal/opportunities", {"pageSize": 1, "sort": "-createdAt"}),
        ProbeRequest("stats", "/internal/opportunities/stats"),
    )
    freshness = FreshnessThresholds(warning_hours=48, critical_hours=168)
    counts = CountThresholds(min_threshold=5, warning_threshold=50)
    available_fields = (
        "id", "installerId", "installerName", "dealId", "stage",
        "stageTimestamps", "amount", "lostData", "wonData",
    )
    available_filters = ("installerId", "dealId", "isOpen", "stageName", "search", "include")
    supports_search = True
    supports_pagination = True

    def extract(self, responses: dict[str, dict[str, Any]]) -> ProbeExtract:
        listing = as_dict(responses.get("list"))
        stats = as_dict(as_dict(responses.get("stats")).get("data"))
        by_status = as_dict(stats.get("byStatus"))

        total = first_int(stats.get("total"), as_dict(listing.get("meta")).get("total")) or 0
        last = as_dict(next(iter(as_list(listing.get("data"))), None))

        won = first_int(stats.get("won"), by_status.get("won")) or 0
        lost = first_int(stats.get("lost"), by_status.get("lost")) or 0

        indicators = []
        win_rate = evaluate_ratio(
            "Win Rate", won, won + lost, healthy_at=0.3, warning_at=0.15, label="of closed opportunities won"
        )
        if win_rate is not None:
            indicators.append(win_rate)

        stage_name = as_dict(last.get("stage")).get("name")
        return ProbeExtract(
            total_records=total,
            last_record=make_last_record(last, f"{last.get('installerName')} - {stage_name}"),
            last_activity=record_timestamp(last),
            recent_activity=recent_activity_for(last, stats),
            indicators=indicators,
        )
