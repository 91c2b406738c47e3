"""Qualifications resource probe."""
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
    as_list,
    count_where,
    make_last_record,
    recent_activity_for,
    record_timestamp,
)

PENDING_WARNING = 20


class QualificationsProbe(BaseResourceProbe):
    """Probe for the latest customer qualification of each deal."""

    name = "Qualifications"
    slug = "qualifications"
    description = "Customer qualification records"
    endpoint = "/internal/qualifications"
    requests = (ProbeRequest("list", "/internal/qualifications", {"isLatest": "true"}),)
    freshness = FreshnessThresholds(warning_hours=48, critical_hours=168)
    counts = CountThresholds(min_threshold=5, warning_threshold=50)
    available_fields = (
        "id", "dealId", "callId", "status", "source", "fullAddress",
        "averageEnergyBill", "decisionStage", "decisionTimeline", "primaryMotivation",
    )
    available_filters = ("dealId", "status", "source", "isLatest")

    def extract(self, responses: dict[str, dict[str, Any]]) -> ProbeExtract:
        qualifications = as_list(as_dict(responses.get("list")).get("data"))
        last = as_dict(qualifications[0]) if qualifications else {}

        approved = count_where(qualifications, "status", "approved")
        rejected = count_where(qualifications, "status", "rejected")
        pending = count_where(qualifications, "status", "pending")

        indicators = []
        approval = evaluate_ratio(
            "Approval Rate",
            approved,
            approved + rejected,
            healthy_at=0.7,
            warning_at=0.4,
            label="of decided qualifications approved",
        )
        if approval is not None:
            indicators.append(approval)

        if qualifications:
            indicators.append(evaluate_threshold(
                "Pending Review",
                pending,
                PENDING_WARNING,
                over_message=f"{pending} qualifications awaiting review",
                ok_message=f"{pending} qualifications pending",
            ))

        return ProbeExtract(
            total_records=len(qualifications),
            last_record=make_last_record(last, f"{last.get('status')} - v{last.get('version')}"),
            last_activity=record_timestamp(last),
            recent_activity=recent_activity_for(last),
            indicators=indicators,
        )
