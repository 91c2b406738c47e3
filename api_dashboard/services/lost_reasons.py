"""Lost reasons resource probe."""
from __future__ import annotations

from typing import Any

from api_dashboard.scoring import CountThresholds, FreshnessThresholds, evaluate_threshold
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

MIN_ACTIVE_REASONS = 5


class LostReasonsProbe(BaseResourceProbe):
    """Probe for the predefined lost-reason taxonomy."""

    name = "Lost Reasons"
    slug = "lost-reasons"
    description = "Predefined reasons for lost deals/opportunities"
    endpoint = "/internal/lost-reasons"
    requests = (ProbeRequest("list", "/internal/lost-reasons"),)
    freshness = FreshnessThresholds(warning_hours=720, critical_hours=2160)
    counts = CountThresholds(min_threshold=5, warning_threshold=10)
    available_fields = (
        "id", "value", "category", "description", "typicalCues",
        "applicableTo", "isRecyclable", "isActive",
    )
    available_filters = ("active", "category", "domain")

    def extract(self, responses: dict[str, dict[str, Any]]) -> ProbeExtract:
        reasons = as_list(as_dict(responses.get("list")).get("data"))
        last = as_dict(reasons[-1]) if reasons else {}
        active = count_where(reasons, "isActive")

        indicators = []
        if reasons:
            indicators.append(evaluate_threshold(
                "Active Reasons",
                active,
                MIN_ACTIVE_REASONS,
                over_message=f"Only {active} active reasons (minimum {MIN_ACTIVE_REASONS})",
                ok_message=f"{active} active reasons",
                above=False,
            ))

        return ProbeExtract(
            total_records=len(reasons),
            last_record=make_last_record(last, f"{last.get('value')} ({last.get('category')})"),
            last_activity=record_timestamp(last),
            recent_activity=recent_activity_for(last),
            indicators=indicators,
        )
