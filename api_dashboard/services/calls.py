"""Calls resource probe."""
from __future__ import annotations

from typing import Any

from api_dashboard.scoring import (
    CountThresholds,
    FreshnessThresholds,
    evaluate_ratio,
    evaluate_threshold,
)
from api_dashboard.services.base import (
    BaseResourceProbe,
    ProbeExtract,
    ProbeRequest,
    as_dict,
    as_int,
    as_list,
    first_int,
    make_last_record,
    recent_activity_for,
    record_timestamp,
)

ANSWERED_OUTCOMES = ("answered", "completed")
BACKLOG_WARNING = 100


class CallsProbe(BaseResourceProbe):
    """Probe for follow-up phone calls."""

    name = "Calls"
    slug = "calls"
    description = "Phone calls for deal follow-up"
    endpoint = "/internal/calls"
    requests = (
        ProbeRequest("list", "/internal/calls", {"pageSize": 1, "sort": "-createdAt"}),
        ProbeRequest("stats", "/internal/calls/stats"),
    )
    freshness = FreshnessThresholds(warning_hours=24, critical_hours=72)
    counts = CountThresholds(min_threshold=10, warning_threshold=100)
    available_fields = (
        "id", "dealId", "phoneNumber", "direction", "status", "priority",
        "callType", "outcome", "callDuration", "timestamps",
    )
    available_filters = ("dealId", "status", "priority", "callType", "outcome", "dateAfter", "dateBefore")
    supports_pagination = True

    def extract(self, responses: dict[str, dict[str, Any]]) -> ProbeExtract:
        listing = as_dict(responses.get("list"))
        stats = as_dict(as_dict(responses.get("stats")).get("data"))

        total = first_int(stats.get("totalCalls"), as_dict(listing.get("meta")).get("total")) or 0
        last = as_dict(next(iter(as_list(listing.get("data"))), None))

        indicators = []
        outcomes = {key: as_int(value) or 0 for key, value in as_dict(stats.get("byOutcome")).items()}
        answered = sum(outcomes.get(key, 0) for key in ANSWERED_OUTCOMES)
        answer_rate = evaluate_ratio(
            "Answer Rate",
            answered,
            sum(outcomes.values()),
            healthy_at=0.5,
            warning_at=0.3,
            label="of calls answered",
        )
        if answer_rate is not None:
            indicators.append(answer_rate)

        pending = first_int(stats.get("pending"), as_dict(stats.get("byStatus")).get("pending"))
        if pending is not None:
            indicators.append(evaluate_threshold(
                "Call Backlog",
                pending,
                BACKLOG_WARNING,
                over_message=f"{pending} calls pending",
                ok_message=f"{pending} calls pending",
            ))

        return ProbeExtract(
            total_records=total,
            last_record=make_last_record(last, f"{last.get('callType')} - {last.get('status')}"),
            last_activity=record_timestamp(last),
            recent_activity=recent_activity_for(last, stats),
            indicators=indicators,
        )
