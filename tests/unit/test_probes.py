"""Unit tests for the resource probes.

Backend responses are served by httpx.MockTransport (see conftest).
"""
from __future__ import annotations

import asyncio

import httpx
import pytest

from api_dashboard.models import HealthStatus
from api_dashboard.services.api_health import ApiHealthProbe
from api_dashboard.services.base import parse_timestamp, record_timestamp
from api_dashboard.services.calls import CallsProbe
from api_dashboard.services.deals import DealsProbe
from api_dashboard.services.installers import InstallersProbe
from api_dashboard.services.lost_reasons import LostReasonsProbe
from api_dashboard.services.opportunities import OpportunitiesProbe
from api_dashboard.services.qualifications import QualificationsProbe
from api_dashboard.services.regions import RegionsProbe
from api_dashboard.services.templates import TemplatesProbe
from api_dashboard.services.unmatched_calls import UnmatchedCallsProbe
from tests.conftest import hours_ago


def indicators_by_name(resource) -> dict:
    return {indicator.name: indicator for indicator in resource.health_indicators}


class SlowClient:
    """Backend client that never answers in time."""

    async def get(self, path, params=None):
        await asyncio.sleep(5)
        return {}


@pytest.mark.unit
class TestHelpers:
    def test_parse_timestamp_z_suffix(self):
        parsed = parse_timestamp("2026-01-02T03:04:05Z")
        assert parsed is not None
        assert parsed.tzinfo is not None
        assert parsed.hour == 3

    def test_parse_timestamp_rejects_garbage(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(12345) is None

    def test_record_timestamp_prefers_latest(self):
        record = {"createdAt": "2026-01-01T00:00:00Z", "updatedAt": "2026-01-05T00:00:00Z"}
        assert record_timestamp(record).day == 5
        assert record_timestamp({}) is None


@pytest.mark.unit
class TestDealsProbe:
    @pytest.mark.asyncio
    async def test_healthy(self, backend_client):
        result = await DealsProbe(backend_client).check_health()

        assert result.status == HealthStatus.HEALTHY
        assert result.health_score == 100
        assert result.total_records == 250
        assert result.last_record.preview == "Ana Garcia - new"
        assert result.recent_activity.last_24h == 12
        assert [i.name for i in result.health_indicators] == [
            "Data Freshness", "Record Count", "Response Time", "Lost Deal Ratio",
        ]
        assert result.response_time_ms is not None
        assert result.error_message is None

    @pytest.mark.asyncio
    async def test_empty_backend(self, routes, backend_client):
        routes["/internal/deals"] = {"data": [], "meta": {"total": 0}}
        routes["/internal/deals/stats"] = {"data": {"total": 0}}

        result = await DealsProbe(backend_client).check_health()
        indicators = indicators_by_name(result)

        assert indicators["Record Count"].status == HealthStatus.CRITICAL
        assert indicators["Data Freshness"].status == HealthStatus.WARNING
        assert "Lost Deal Ratio" not in indicators
        assert result.total_records == 0
        assert result.last_record is None
        # warning 70 + critical 20 + healthy 100 -> 63
        assert result.health_score == 63
        assert result.status == HealthStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_mostly_lost_is_warning(self, routes, backend_client):
        routes["/internal/deals/stats"] = {"data": {"total": 100, "byStage": {"lost": 51}}}

        result = await DealsProbe(backend_client).check_health()

        assert indicators_by_name(result)["Lost Deal Ratio"].status == HealthStatus.WARNING

    @pytest.mark.asyncio
    async def test_total_falls_back_to_list_meta(self, routes, backend_client):
        routes["/internal/deals/stats"] = {"data": {}}

        result = await DealsProbe(backend_client).check_health()

        assert result.total_records == 250

    @pytest.mark.asyncio
    async def test_total_defaults_to_zero(self, routes, backend_client):
        routes["/internal/deals"] = {"data": []}
        routes["/internal/deals/stats"] = {}

        result = await DealsProbe(backend_client).check_health()

        assert result.total_records == 0
        assert result.status != HealthStatus.ERROR

    @pytest.mark.asyncio
    async def test_unknown_name_preview(self, routes, backend_client):
        routes["/internal/deals"] = {"data": [{"id": 7, "stage": "won", "createdAt": hours_ago(2)}]}

        result = await DealsProbe(backend_client).check_health()

        assert result.last_record.id == "7"
        assert result.last_record.preview == "Unknown - won"


@pytest.mark.unit
class TestProbeFailures:
    @pytest.mark.asyncio
    async def test_network_error(self, routes, backend_client):
        routes["/internal/installers"] = httpx.ConnectError("Connection refused")

        result = await InstallersProbe(backend_client).check_health()

        assert result.status == HealthStatus.ERROR
        assert result.health_score == 0
        assert len(result.health_indicators) == 1
        assert result.health_indicators[0].name == "API Connection"
        assert result.health_indicators[0].status == HealthStatus.ERROR
        assert result.total_records is None
        assert result.last_record is None
        assert result.available_fields == []
        assert result.available_filters == []
        assert result.error_message == "Connection refused"
        assert result.response_time_ms is None

    @pytest.mark.asyncio
    async def test_http_error_status(self, routes, backend_client):
        routes["/internal/calls/stats"] = (500, {"error": "boom"})

        result = await CallsProbe(backend_client).check_health()

        assert result.status == HealthStatus.ERROR
        assert result.error_message.startswith("API Error: 500")
        assert result.response_time_ms is not None
        assert result.supports_pagination is True

    @pytest.mark.asyncio
    async def test_timeout(self):
        result = await DealsProbe(SlowClient(), timeout=0.01).check_health()

        assert result.status == HealthStatus.ERROR
        assert result.error_message == "Timed out after 0.01s"
        assert result.supports_search is True

    @pytest.mark.asyncio
    async def test_malformed_payload_is_tolerated(self, routes, backend_client):
        routes["/internal/regions"] = {"data": "not-a-list"}

        result = await RegionsProbe(backend_client).check_health()

        assert result.total_records == 0
        assert indicators_by_name(result)["Record Count"].status == HealthStatus.CRITICAL


@pytest.mark.unit
class TestCoverageProbes:
    @pytest.mark.asyncio
    async def test_regions_coverage(self, routes, backend_client):
        routes["/internal/regions"]["data"][0]["isActive"] = False

        result = await RegionsProbe(backend_client).check_health()
        coverage = indicators_by_name(result)["Active Regions"]

        assert coverage.status == HealthStatus.HEALTHY
        assert coverage.value == "80%"
        assert result.last_record.preview == "Region 4 (28)"

    @pytest.mark.asyncio
    async def test_installers_none_active_is_critical(self, routes, backend_client):
        for installer in routes["/internal/installers"]["data"]:
            installer["isActive"] = False

        result = await InstallersProbe(backend_client).check_health()

        assert indicators_by_name(result)["Active Installers"].status == HealthStatus.CRITICAL
        assert result.last_record.preview == "Installer 2 (Inactive)"

    @pytest.mark.asyncio
    async def test_installers_partial_coverage(self, routes, backend_client):
        routes["/internal/installers"]["data"][0]["isActive"] = False

        result = await InstallersProbe(backend_client).check_health()

        # 2 of 3 active
        assert indicators_by_name(result)["Active Installers"].status == HealthStatus.WARNING

    @pytest.mark.asyncio
    async def test_lost_reasons_floor(self, routes, backend_client):
        for reason in routes["/internal/lost-reasons"]["data"][3:]:
            reason["isActive"] = False

        result = await LostReasonsProbe(backend_client).check_health()

        assert indicators_by_name(result)["Active Reasons"].status == HealthStatus.WARNING


@pytest.mark.unit
class TestRatioProbes:
    @pytest.mark.asyncio
    async def test_opportunities_low_win_rate(self, routes, backend_client):
        routes["/internal/opportunities/stats"] = {"data": {"total": 60, "won": 2, "lost": 18}}

        result = await OpportunitiesProbe(backend_client).check_health()

        assert indicators_by_name(result)["Win Rate"].status == HealthStatus.DEGRADED
        assert result.last_record.preview == "Installer 0 - proposal"

    @pytest.mark.asyncio
    async def test_opportunities_without_closed_skip_win_rate(self, routes, backend_client):
        routes["/internal/opportunities/stats"] = {"data": {"total": 60}}

        result = await OpportunitiesProbe(backend_client).check_health()

        assert "Win Rate" not in indicators_by_name(result)

    @pytest.mark.asyncio
    async def test_calls_answer_rate_and_backlog(self, routes, backend_client):
        routes["/internal/calls/stats"] = {
            "data": {"totalCalls": 400, "byOutcome": {"answered": 40, "no_answer": 60}, "pending": 150}
        }

        result = await CallsProbe(backend_client).check_health()
        indicators = indicators_by_name(result)

        assert indicators["Answer Rate"].status == HealthStatus.WARNING
        assert indicators["Call Backlog"].status == HealthStatus.WARNING
        assert result.total_records == 400

    @pytest.mark.asyncio
    async def test_qualifications(self, routes, backend_client):
        records = (
            [{"id": "a", "status": "approved", "version": 3, "createdAt": hours_ago(1)}] * 3
            + [{"id": "r", "status": "rejected"}]
            + [{"id": "p", "status": "pending"}] * 25
        )
        routes["/internal/qualifications"] = {"data": records}

        result = await QualificationsProbe(backend_client).check_health()
        indicators = indicators_by_name(result)

        assert indicators["Approval Rate"].status == HealthStatus.HEALTHY
        assert indicators["Approval Rate"].value == "75%"
        assert indicators["Pending Review"].status == HealthStatus.WARNING
        assert result.last_record.preview == "approved - v3"

    @pytest.mark.asyncio
    async def test_templates_approval(self, routes, backend_client):
        templates = routes["/internal/templates"]["data"][:10]
        for template in templates[4:]:
            template["status"] = "REJECTED"
        templates[0]["status"] = "approved"
        routes["/internal/templates"] = {"data": templates}

        result = await TemplatesProbe(backend_client).check_health()

        assert indicators_by_name(result)["Template Approval"].status == HealthStatus.DEGRADED


@pytest.mark.unit
class TestUnmatchedCallsProbe:
    @pytest.mark.asyncio
    async def test_empty_queue_is_healthy(self, backend_client):
        result = await UnmatchedCallsProbe(backend_client).check_health()
        names = [i.name for i in result.health_indicators]

        assert result.status == HealthStatus.HEALTHY
        assert result.total_records == 0
        assert "Data Freshness" not in names
        assert "Record Count" not in names
        assert names[0] == "Queue Size"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("total, expected", [
        (49, HealthStatus.DEGRADED),
        (50, HealthStatus.CRITICAL),
    ])
    async def test_queue_bands(self, routes, backend_client, total, expected):
        routes["/internal/unmatched-calls"] = {"data": {"unmatchedCalls": [], "meta": {"total": total}}}

        result = await UnmatchedCallsProbe(backend_client).check_health()

        assert indicators_by_name(result)["Queue Size"].status == expected

    @pytest.mark.asyncio
    async def test_old_items_flagged(self, routes, backend_client):
        calls = [
            {"id": "u1", "phoneNumber": "+34600000001", "status": "pending", "createdAt": hours_ago(2)},
            {"id": "u2", "phoneNumber": "+34600000002", "status": "pending", "createdAt": hours_ago(72)},
        ]
        routes["/internal/unmatched-calls"] = {"data": {"unmatchedCalls": calls}}

        result = await UnmatchedCallsProbe(backend_client).check_health()
        indicators = indicators_by_name(result)

        assert result.total_records == 2
        assert indicators["Oldest Item"].status == HealthStatus.WARNING
        assert indicators["Queue Size"].status == HealthStatus.WARNING
        assert result.last_record.preview == "+34600000001 (pending)"


@pytest.mark.unit
class TestApiHealthProbe:
    @pytest.mark.asyncio
    async def test_ok(self, backend_client):
        result = await ApiHealthProbe(backend_client).check_health()
        assert result.status == "ok"
        assert result.internal is True
        assert result.response_time_ms is not None

    @pytest.mark.asyncio
    async def test_unreachable(self, routes, backend_client):
        routes["/internal/health"] = httpx.ConnectError("unreachable")

        result = await ApiHealthProbe(backend_client).check_health()

        assert result.status == "error"
        assert result.internal is False
        assert result.response_time_ms is None

    @pytest.mark.asyncio
    async def test_slow_backend_times_out(self):
        result = await ApiHealthProbe(SlowClient(), timeout=0.01).check_health()

        assert result.status == "error"
        assert result.internal is False
