"""Deals resource probe.

Deals are the sales pipeline's entry point, so volume and freshness matter
most; the lost-deal ratio flags a pipeline that is mostly leaking.
"""
from __future__ import annotations

from typing import Any

from api_dashboard.models import HealthIndicator, HealthStatus
from api_dashboard.scoring import CountThresholds, FreshnessThresholds, round_half_up
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

LOST_RATIO_WARNING = 0.5


class DealsProbe(BaseResourceProbe):
    """Probe for sales deals."""

    name = "Deals"
    slug = "deals"
    description = "Sales deals progressing through pipeline stages"
    endpoint = "/internal/deals"
    requests = (
        ProbeRequest("list", "/internal/deals", {"pageSize": 1, "sort": "-createdAt"}),
        ProbeRequest("stats", "/internal/deals/stats"),
    )
    freshness = FreshnessThresholds(warning_hours=24, critical_hours=72)
    counts = CountThresholds(min_threshold=10, warning_threshold=100)
    available_fields = (
        "id", "name", "phone", "email", "stage", "source", "city", "tags",
        "contact", "address", "attribution", "leadFormData",
    )
    available_filters = (
        "stages", "sources", "search", "assignedTo", "createdAfter",
        "createdBefore", "hasConversation", "lastMessageBy",
    )
    supports_search = True
    supports_pagination = True

    def extract(self, responses: dict[str, dict[str, Any]]) -> ProbeExtract:
        listing = as_dict(responses.get("list"))
        stats = as_dict(as_dict(responses.get("stats")).get("data"))

        total = first_int(stats.get("total"), as_dict(listing.get("meta")).get("total")) or 0
        last = as_dict(next(iter(as_list(listing.get("data"))), None))

        indicators = []
        if total > 0:
            lost = first_int(as_dict(stats.get("byStage")).get("lost"), stats.get("lost"))
            if lost is not None:
                indicators.append(lost_ratio_indicator(lost, total))

        return ProbeExtract(
            total_records=total,
            last_record=make_last_record(last, f"{last.get('name') or 'Unknown'} - {last.get('stage')}"),
            last_activity=record_timestamp(last),
            recent_activity=recent_activity_for(last, stats),
            indicators=indicators,
        )


def lost_ratio_indicator(lost: int, total: int) -> HealthIndicator:
    """Warn when more than half of all deals are lost."""
    ratio = lost / total
    percent = round_half_up(ratio * 100)
    if ratio > LOST_RATIO_WARNING:
        return HealthIndicator(
            name="Lost Deal Ratio",
            status=HealthStatus.WARNING,
            message=f"{percent}% of deals lost ({lost}/{total})",
            value=f"{percent}%",
        )
    return HealthIndicator(
        name="Lost Deal Ratio",
        status=HealthStatus.HEALTHY,
        message=f"{percent}% of deals lost",
        value=f"{percent}%",
    )
