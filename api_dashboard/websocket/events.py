"""WebSocket event models for the dashboard."""

from datetime import datetime, timezone
from typing import Literal
from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ResourceUpdateEvent(BaseModel):
    """Status change of one monitored resource."""

    type: Literal["resource_update"] = "resource_update"
    resource: str = Field(..., description="Resource slug (deals/regions/...)")
    status: str = Field(..., description="healthy/warning/degraded/critical/error")
    health_score: int = Field(..., description="Score from 0 to 100")
    total_records: int | None = Field(None, description="Record count, null if unknown")
    timestamp: datetime = Field(default_factory=_now)


class SummaryUpdateEvent(BaseModel):
    """Dashboard-wide summary after a refresh cycle."""

    type: Literal["summary_update"] = "summary_update"
    healthy_resources: int
    warning_resources: int
    critical_resources: int
    total_records: int
    average_health_score: int
    api_status: str = Field(..., description="Backend reachability: ok/error")
    timestamp: datetime = Field(default_factory=_now)


class NotificationEvent(BaseModel):
    """General notification event."""

    type: Literal["notification"] = "notification"
    level: str = Field(..., description="Notification level: info/warning/error")
    message: str = Field(..., description="Notification message")
    timestamp: datetime = Field(default_factory=_now)
