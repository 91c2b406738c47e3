"""Unmatched calls resource probe.

This resource is a work queue: calls the telephony integration could not tie
to a deal. Fewer and younger items are better, so it runs in inverted
queue-depth mode instead of the freshness/count evaluators.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from api_dashboard.models import EvaluationMode, HealthIndicator, HealthStatus
from api_dashboard.scoring import round_half_up
from api_dashboard.services.base import (
    BaseResourceProbe,
    ProbeExtract,
    ProbeRequest,
    as_dict,
    as_list,
    first_int,
    make_last_record,
    parse_timestamp,
    recent_activity_for,
    record_timestamp,
)

STALE_ITEM_HOURS = 48


class UnmatchedCallsProbe(BaseResourceProbe):
    """Probe for calls awaiting manual matching."""

    name = "Unmatched Calls"
    slug = "unmatched-calls"
    description = "Calls awaiting manual resolution"
    endpoint = "/internal/unmatched-calls"
    requests = (ProbeRequest("list", "/internal/unmatched-calls"),)
    mode = EvaluationMode.QUEUE_DEPTH_INVERTED
    available_fields = ("id", "telephonyServiceId", "phoneNumber", "rawPayload", "status", "resolvedToCallId")
    available_filters = ("limit", "offset", "createdAfter", "createdBefore")
    supports_pagination = True

    def extract(self, responses: dict[str, dict[str, Any]]) -> ProbeExtract:
        data = as_dict(as_dict(responses.get("list")).get("data"))
        calls = as_list(data.get("unmatchedCalls"))
        total = first_int(as_dict(data.get("meta")).get("total"))
        if total is None:
            total = len(calls)
        last = as_dict(calls[0]) if calls else {}

        indicators = []
        created = [
            stamp for stamp in (parse_timestamp(as_dict(c).get("createdAt")) for c in calls)
            if stamp is not None
        ]
        if created:
            indicators.append(oldest_item_indicator(min(created)))

        return ProbeExtract(
            total_records=total,
            last_record=make_last_record(last, f"{last.get('phoneNumber')} ({last.get('status')})"),
            last_activity=record_timestamp(last),
            recent_activity=recent_activity_for(last),
            indicators=indicators,
        )


def oldest_item_indicator(oldest: datetime, now: datetime | None = None) -> HealthIndicator:
    """Warn when the oldest queued call has waited more than 48 hours."""
    now = now or datetime.now(timezone.utc)
    hours = round_half_up(max((now - oldest).total_seconds() / 3600, 0.0))
    if hours > STALE_ITEM_HOURS:
        return HealthIndicator(
            name="Oldest Item",
            status=HealthStatus.WARNING,
            message=f"Oldest unmatched call waiting {hours}h",
            value=hours,
        )
    return HealthIndicator(
        name="Oldest Item",
        status=HealthStatus.HEALTHY,
        message=f"Oldest unmatched call waiting {hours}h",
        value=hours,
    )
