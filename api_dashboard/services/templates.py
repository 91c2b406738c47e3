"""WhatsApp templates resource probe."""
from __future__ import annotations

from typing import Any

from api_dashboard.scoring import CountThresholds, FreshnessThresholds, evaluate_ratio
from api_dashboard.services.base import (
    BaseResourceProbe,
    ProbeExtract,
    ProbeRequest,
    as_dict,
    as_list,
    make_last_record,
    recent_activity_for,
    record_timestamp,
)


class TemplatesProbe(BaseResourceProbe):
    """Probe for WhatsApp message templates."""

    name = "Templates"
    slug = "templates"
    description = "WhatsApp message templates"
    endpoint = "/internal/templates"
    requests = (ProbeRequest("list", "/internal/templates"),)
    freshness = FreshnessThresholds(warning_hours=168, critical_hours=720)
    counts = CountThresholds(min_threshold=5, warning_threshold=20)
    available_fields = (
        "id", "externalId", "templateName", "language", "body", "status",
        "category", "messageType", "buttons", "variables",
    )
    available_filters = ("messageType", "status", "isEnriched", "include")

    def extract(self, responses: dict[str, dict[str, Any]]) -> ProbeExtract:
        templates = as_list(as_dict(responses.get("list")).get("data"))
        last = as_dict(templates[-1]) if templates else {}

        approved = sum(
            1 for t in templates
            if isinstance(t, dict) and str(t.get("status") or "").upper() == "APPROVED"
        )

        indicators = []
        approval = evaluate_ratio(
            "Template Approval",
            approved,
            len(templates),
            healthy_at=0.8,
            warning_at=0.5,
            label="of templates approved",
        )
        if approval is not None:
            indicators.append(approval)

        return ProbeExtract(
            total_records=len(templates),
            last_record=make_last_record(last, f"{last.get('templateName')} ({last.get('status')})"),
            last_activity=record_timestamp(last),
            recent_activity=recent_activity_for(last),
            indicators=indicators,
        )
