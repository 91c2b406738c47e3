"""Base probe interface for monitored backend resources.

A probe is declared by class attributes (endpoint, requests, thresholds,
evaluation mode, capability metadata) plus one ``extract`` method that reads
the raw responses. ``check_health`` does the rest and never raises.
"""
from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from api_dashboard.client import BackendAPIError, BackendClient, get_backend_client
from api_dashboard.config import settings
from api_dashboard.models import (
    EvaluationMode,
    HealthIndicator,
    HealthStatus,
    LastRecord,
    RecentActivity,
    ResourceStatus,
)
from api_dashboard.scoring import (
    CountThresholds,
    FreshnessThresholds,
    evaluate_freshness,
    evaluate_latency,
    evaluate_queue_depth,
    evaluate_record_count,
    score_resource,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeRequest:
    """One backend call made by a probe, keyed for ``extract``."""
    key: str
    path: str
    params: Optional[dict[str, Any]] = None


@dataclass
class ProbeExtract:
    """What a probe reads out of its raw responses."""
    total_records: int
    last_record: Optional[LastRecord] = None
    last_activity: Optional[datetime] = None
    recent_activity: RecentActivity = field(default_factory=RecentActivity)
    indicators: list[HealthIndicator] = field(default_factory=list)


# =============================================================================
# Defensive payload helpers
# =============================================================================

def as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def as_int(value: Any) -> Optional[int]:
    """Coerce a payload number to int, None for anything else."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return None
    return None


def first_int(*values: Any) -> Optional[int]:
    """Return the first value that coerces to int."""
    for value in values:
        number = as_int(value)
        if number is not None:
            return number
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def record_timestamp(record: dict[str, Any]) -> Optional[datetime]:
    """Latest of a record's updatedAt / createdAt."""
    stamps = [
        stamp
        for stamp in (parse_timestamp(record.get("updatedAt")), parse_timestamp(record.get("createdAt")))
        if stamp is not None
    ]
    return max(stamps) if stamps else None


def make_last_record(record: Any, preview: str) -> Optional[LastRecord]:
    """Build the last-record preview, or None when there is no record."""
    if not isinstance(record, dict) or not record:
        return None
    record_id = record.get("id")
    return LastRecord(
        id=str(record_id) if record_id is not None else None,
        created_at=record.get("createdAt"),
        updated_at=record.get("updatedAt"),
        preview=preview,
    )


def recent_activity_for(record: Any, stats: dict[str, Any] | None = None) -> RecentActivity:
    record = as_dict(record)
    stats = stats or {}
    return RecentActivity(
        last_created=record.get("createdAt"),
        last_updated=record.get("updatedAt"),
        last_24h=as_int(stats.get("last24h")),
        last_7d=as_int(stats.get("last7d")),
    )


def count_where(records: list[Any], key: str, expected: Any = True) -> int:
    """Count dict records whose ``key`` equals ``expected``."""
    return sum(1 for r in records if isinstance(r, dict) and r.get(key) == expected)


# =============================================================================
# Probe base class
# =============================================================================

class BaseResourceProbe(ABC):
    """Abstract base class for resource health probes."""

    name: str = ""
    slug: str = ""
    description: str = ""
    endpoint: str = ""
    requests: tuple[ProbeRequest, ...] = ()
    freshness: Optional[FreshnessThresholds] = None
    counts: Optional[CountThresholds] = None
    mode: EvaluationMode = EvaluationMode.STANDARD
    available_fields: tuple[str, ...] = ()
    available_filters: tuple[str, ...] = ()
    supports_search: bool = False
    supports_pagination: bool = False

    def __init__(self, client: BackendClient | None = None, timeout: float | None = None):
        """Initialize the probe.

        Args:
            client: Backend client. Defaults to the shared client.
            timeout: Seconds before the probe gives up. Defaults to settings.
        """
        self._client = client
        self._timeout = timeout if timeout is not None else settings.PROBE_TIMEOUT_SECONDS

    @property
    def client(self) -> BackendClient:
        return self._client or get_backend_client()

    @abstractmethod
    def extract(self, responses: dict[str, dict[str, Any]]) -> ProbeExtract:
        """Read counts, last record and extra indicators from raw responses.

        Args:
            responses: Decoded JSON bodies keyed by ProbeRequest.key

        Returns:
            ProbeExtract for this resource
        """

    async def _fetch(self) -> dict[str, dict[str, Any]]:
        """Issue all of this probe's requests concurrently."""
        bodies = await asyncio.gather(
            *(self.client.get(request.path, params=request.params) for request in self.requests)
        )
        return {request.key: body for request, body in zip(self.requests, bodies)}

    def build_indicators(self, extract: ProbeExtract, elapsed_ms: int) -> list[HealthIndicator]:
        """Generic evaluators first, then the resource-specific ones."""
        indicators: list[HealthIndicator] = []
        if self.mode == EvaluationMode.QUEUE_DEPTH_INVERTED:
            indicators.append(evaluate_queue_depth(extract.total_records))
            indicators.append(evaluate_latency(elapsed_ms))
        else:
            indicators.append(evaluate_freshness(extract.last_activity, self.freshness))
            indicators.append(evaluate_record_count(extract.total_records, self.counts))
            indicators.append(evaluate_latency(elapsed_ms))
        indicators.extend(extract.indicators)
        return indicators

    async def check_health(self) -> ResourceStatus:
        """Fetch, extract and score this resource.

        Returns:
            ResourceStatus; transport, parsing and timeout failures come back
            as an error status instead of raising.
        """
        fetched_at = datetime.now(timezone.utc)
        started = time.perf_counter()
        try:
            responses = await asyncio.wait_for(self._fetch(), timeout=self._timeout)
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            extract = self.extract(responses)
            indicators = self.build_indicators(extract, elapsed_ms)
        except asyncio.TimeoutError:
            logger.warning(f"{self.name} probe timed out after {self._timeout:g}s")
            return self.error_status(f"Timed out after {self._timeout:g}s", fetched_at)
        except BackendAPIError as e:
            logger.warning(f"{self.name} probe failed: {e}")
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            return self.error_status(str(e), fetched_at, response_time_ms=elapsed_ms)
        except Exception as e:
            logger.warning(f"{self.name} probe failed: {e}")
            return self.error_status(str(e) or type(e).__name__, fetched_at)

        status, score = score_resource(indicators)
        return ResourceStatus(
            name=self.name,
            slug=self.slug,
            description=self.description,
            endpoint=self.endpoint,
            status=status,
            health_score=score,
            health_indicators=indicators,
            total_records=extract.total_records,
            last_record=extract.last_record,
            recent_activity=extract.recent_activity,
            available_fields=list(self.available_fields),
            available_filters=list(self.available_filters),
            supports_search=self.supports_search,
            supports_pagination=self.supports_pagination,
            fetched_at=fetched_at,
            response_time_ms=elapsed_ms,
        )

    def error_status(
        self,
        message: str,
        fetched_at: datetime,
        response_time_ms: int | None = None,
    ) -> ResourceStatus:
        """Well-formed error snapshot for a failed probe."""
        return ResourceStatus(
            name=self.name,
            slug=self.slug,
            description=self.description,
            endpoint=self.endpoint,
            status=HealthStatus.ERROR,
            health_score=0,
            health_indicators=[
                HealthIndicator(name="API Connection", status=HealthStatus.ERROR, message=message)
            ],
            total_records=None,
            last_record=None,
            supports_search=self.supports_search,
            supports_pagination=self.supports_pagination,
            error_message=message,
            fetched_at=fetched_at,
            response_time_ms=response_time_ms,
        )
