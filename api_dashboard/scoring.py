"""Health scoring for monitored resources.

Signal evaluators turn one raw measurement into a HealthIndicator. The
aggregator folds a resource's indicators into a status and a 0-100 score,
and folds all resources into a dashboard summary.

All functions here are pure: same inputs, same result.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Sequence

from api_dashboard.models import (
    DashboardSummary,
    HealthIndicator,
    HealthStatus,
    ResourceStatus,
)

STATUS_WEIGHTS = {
    HealthStatus.HEALTHY: 100,
    HealthStatus.WARNING: 70,
    HealthStatus.DEGRADED: 40,
    HealthStatus.CRITICAL: 20,
    HealthStatus.ERROR: 0,
}

# (minimum score, status), checked top-down
SCORE_BANDS = (
    (90, HealthStatus.HEALTHY),
    (70, HealthStatus.WARNING),
    (40, HealthStatus.DEGRADED),
    (20, HealthStatus.CRITICAL),
)

LATENCY_HEALTHY_MS = 500
LATENCY_WARNING_MS = 1500
LATENCY_DEGRADED_MS = 5000

QUEUE_WARNING_SIZE = 10
QUEUE_DEGRADED_SIZE = 50


@dataclass(frozen=True)
class FreshnessThresholds:
    """Hours since last activity at which freshness degrades."""
    warning_hours: float
    critical_hours: float


@dataclass(frozen=True)
class CountThresholds:
    """Record counts below which volume is considered low."""
    min_threshold: int
    warning_threshold: int


def round_half_up(value: float) -> int:
    """Round a non-negative number to the nearest integer, .5 going up."""
    return int(value + 0.5)


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


# =============================================================================
# Signal evaluators
# =============================================================================

def evaluate_freshness(
    last_activity: datetime | None,
    thresholds: FreshnessThresholds,
    now: datetime | None = None,
) -> HealthIndicator:
    """Judge how recently the resource saw activity.

    Missing activity is a warning, not an error: it lowers confidence but does
    not prove the resource is broken.
    """
    name = "Data Freshness"
    if last_activity is None:
        return HealthIndicator(
            name=name,
            status=HealthStatus.WARNING,
            message="No recent data available",
        )

    now = _as_utc(now or datetime.now(timezone.utc))
    hours_since = (now - _as_utc(last_activity)).total_seconds() / 3600
    hours = round_half_up(max(hours_since, 0.0))

    if hours_since < thresholds.warning_hours:
        status = HealthStatus.HEALTHY
        message = f"Last activity {hours}h ago"
    elif hours_since < thresholds.critical_hours:
        status = HealthStatus.WARNING
        message = f"No activity for {hours}h (expected within {thresholds.warning_hours:g}h)"
    else:
        status = HealthStatus.CRITICAL
        message = f"Stale: no activity for {hours}h"

    return HealthIndicator(name=name, status=status, message=message, value=hours)


def evaluate_record_count(count: int | None, thresholds: CountThresholds) -> HealthIndicator:
    """Judge record volume. Zero is always critical, whatever the thresholds."""
    name = "Record Count"
    if count is None:
        return HealthIndicator(
            name=name,
            status=HealthStatus.ERROR,
            message="Unable to fetch count",
        )

    if count == 0:
        status, message = HealthStatus.CRITICAL, "No records found"
    elif count < thresholds.min_threshold:
        status = HealthStatus.DEGRADED
        message = f"Only {count} records (minimum {thresholds.min_threshold})"
    elif count < thresholds.warning_threshold:
        status = HealthStatus.WARNING
        message = f"{count} records (below {thresholds.warning_threshold})"
    else:
        status, message = HealthStatus.HEALTHY, f"{count} records"

    return HealthIndicator(name=name, status=status, message=message, value=count)


def evaluate_latency(elapsed_ms: int) -> HealthIndicator:
    """Judge the round-trip time of the fetch that produced the data."""
    if elapsed_ms < LATENCY_HEALTHY_MS:
        status = HealthStatus.HEALTHY
    elif elapsed_ms < LATENCY_WARNING_MS:
        status = HealthStatus.WARNING
    elif elapsed_ms < LATENCY_DEGRADED_MS:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.CRITICAL

    return HealthIndicator(
        name="Response Time",
        status=status,
        message=f"Responded in {elapsed_ms}ms",
        value=elapsed_ms,
    )


def evaluate_queue_depth(size: int | None) -> HealthIndicator:
    """Judge a work queue where fewer pending items is healthier."""
    name = "Queue Size"
    if size is None:
        return HealthIndicator(name=name, status=HealthStatus.ERROR, message="Unable to fetch queue size")

    if size == 0:
        status, message = HealthStatus.HEALTHY, "Queue is empty"
    elif size < QUEUE_WARNING_SIZE:
        status, message = HealthStatus.WARNING, f"{size} items awaiting resolution"
    elif size < QUEUE_DEGRADED_SIZE:
        status, message = HealthStatus.DEGRADED, f"{size} items awaiting resolution"
    else:
        status, message = HealthStatus.CRITICAL, f"Backlog of {size} items awaiting resolution"

    return HealthIndicator(name=name, status=status, message=message, value=size)


def evaluate_ratio(
    name: str,
    numerator: int,
    denominator: int,
    healthy_at: float,
    warning_at: float,
    label: str,
) -> HealthIndicator | None:
    """Band a ratio into healthy / warning / degraded.

    Returns None when the denominator is zero, since the ratio is undefined.
    """
    if denominator <= 0:
        return None

    ratio = numerator / denominator
    if ratio >= healthy_at:
        status = HealthStatus.HEALTHY
    elif ratio >= warning_at:
        status = HealthStatus.WARNING
    else:
        status = HealthStatus.DEGRADED

    percent = round_half_up(ratio * 100)
    return HealthIndicator(
        name=name,
        status=status,
        message=f"{percent}% {label} ({numerator}/{denominator})",
        value=f"{percent}%",
    )


def evaluate_threshold(
    name: str,
    value: int,
    limit: int,
    over_message: str,
    ok_message: str,
    above: bool = True,
) -> HealthIndicator:
    """Warn when a value crosses a single limit.

    With above=True the warning fires for value > limit, otherwise for
    value < limit.
    """
    crossed = value > limit if above else value < limit
    if crossed:
        return HealthIndicator(name=name, status=HealthStatus.WARNING, message=over_message, value=value)
    return HealthIndicator(name=name, status=HealthStatus.HEALTHY, message=ok_message, value=value)


# =============================================================================
# Aggregation
# =============================================================================

def status_for_score(score: int) -> HealthStatus:
    """Map a 0-100 score back onto a status band."""
    for minimum, status in SCORE_BANDS:
        if score >= minimum:
            return status
    return HealthStatus.ERROR


def score_resource(indicators: Sequence[HealthIndicator]) -> tuple[HealthStatus, int]:
    """Fold indicators into an overall (status, score).

    The score is the rounded mean of the indicator weights, so a single error
    among healthy signals lowers the score rather than vetoing it. An empty
    list fails closed.
    """
    if not indicators:
        return HealthStatus.ERROR, 0

    total = sum(STATUS_WEIGHTS[indicator.status] for indicator in indicators)
    score = round_half_up(total / len(indicators))
    return status_for_score(score), score


def score_dashboard(
    resources: Iterable[ResourceStatus],
    now: datetime | None = None,
) -> DashboardSummary:
    """Summarize all resources of one poll cycle.

    Critical and errored resources share one bucket. Errored resources still
    count towards the average with their score of 0.
    """
    resources = list(resources)
    scores = [resource.health_score for resource in resources]

    return DashboardSummary(
        total_resources=len(resources),
        healthy_resources=sum(1 for r in resources if r.status == HealthStatus.HEALTHY),
        warning_resources=sum(1 for r in resources if r.status == HealthStatus.WARNING),
        critical_resources=sum(
            1 for r in resources if r.status in (HealthStatus.CRITICAL, HealthStatus.ERROR)
        ),
        total_records=sum(r.total_records for r in resources if r.total_records is not None),
        average_health_score=round_half_up(sum(scores) / len(scores)) if scores else 0,
        last_updated=now or datetime.now(timezone.utc),
    )
