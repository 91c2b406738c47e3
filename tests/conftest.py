"""Shared test fixtures for the dashboard test suite.

Provides:
- pytest markers
- A backend client wired to an in-process httpx.MockTransport
- Realistic backend payloads for every monitored endpoint
"""
from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest

repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from api_dashboard.client import BackendClient
from api_dashboard.models import HealthStatus, ResourceStatus

BASE_URL = "http://backend.test/api"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external deps)")


def hours_ago(hours: float) -> str:
    """ISO timestamp (Z suffix, like the backend sends) some hours in the past."""
    stamp = datetime.now(timezone.utc) - timedelta(hours=hours)
    return stamp.isoformat().replace("+00:00", "Z")


def make_backend_client(routes: dict[str, Any]) -> BackendClient:
    """Build a BackendClient answering from a path -> response mapping.

    A route value may be a JSON body (HTTP 200), a (status, body) tuple, or an
    exception instance to raise as a transport failure. Unknown paths get 404.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        route = routes.get(path)
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(route, Exception):
            raise route
        if isinstance(route, tuple):
            status, body = route
            return httpx.Response(status, json=body)
        return httpx.Response(200, json=route)

    return BackendClient(BASE_URL, api_key="test-key", transport=httpx.MockTransport(handler))


def make_resource(
    status: HealthStatus = HealthStatus.HEALTHY,
    score: int = 100,
    total_records: int | None = 10,
    slug: str = "deals",
) -> ResourceStatus:
    """Minimal ResourceStatus for aggregation tests."""
    return ResourceStatus(
        name=slug.title(),
        slug=slug,
        description="test resource",
        endpoint=f"/internal/{slug}",
        status=status,
        health_score=score,
        total_records=total_records,
        fetched_at=datetime.now(timezone.utc),
    )


def healthy_routes() -> dict[str, Any]:
    """Payloads for which every resource scores healthy."""
    recent = hours_ago(1)
    return {
        "/internal/health": {"status": "ok", "internal": True},
        "/internal/deals": {
            "data": [{"id": "deal-1", "name": "Ana Garcia", "stage": "new", "createdAt": recent}],
            "meta": {"total": 250},
        },
        "/internal/deals/stats": {"data": {"total": 250, "byStage": {"lost": 50}, "last24h": 12}},
        "/internal/regions": {
            "data": [
                {"id": f"r{i}", "name": f"Region {i}", "postalCodeDigits": "28", "isActive": True,
                 "createdAt": recent}
                for i in range(5)
            ]
        },
        "/internal/installers": {
            "data": [
                {"id": f"i{i}", "installerName": f"Installer {i}", "isActive": True, "createdAt": recent}
                for i in range(3)
            ]
        },
        "/internal/opportunities": {
            "data": [{"id": "opp-1", "installerName": "Installer 0", "stage": {"name": "proposal"},
                      "createdAt": recent}],
            "meta": {"total": 60},
        },
        "/internal/opportunities/stats": {"data": {"total": 60, "won": 12, "lost": 18}},
        "/internal/calls": {
            "data": [{"id": "call-1", "callType": "follow_up", "status": "completed", "createdAt": recent}],
            "meta": {"total": 400},
        },
        "/internal/calls/stats": {
            "data": {"totalCalls": 400, "byOutcome": {"answered": 300, "no_answer": 100}, "pending": 20}
        },
        "/internal/qualifications": {
            "data": [{"id": "q0", "status": "approved", "version": 2, "createdAt": recent}]
            + [{"id": f"q{i}", "status": "approved", "version": 1, "createdAt": recent} for i in range(1, 60)]
        },
        "/internal/lost-reasons": {
            "data": [
                {"id": f"lr{i}", "value": f"reason {i}", "category": "price", "isActive": True,
                 "createdAt": recent}
                for i in range(12)
            ]
        },
        "/internal/templates": {
            "data": [
                {"id": f"t{i}", "templateName": f"welcome_{i}", "status": "APPROVED", "createdAt": recent}
                for i in range(25)
            ]
        },
        "/internal/unmatched-calls": {"data": {"unmatchedCalls": [], "meta": {"total": 0}}},
    }


@pytest.fixture
def routes() -> dict[str, Any]:
    """Mutable copy of the all-healthy backend payloads."""
    return healthy_routes()


@pytest.fixture
def backend_client(routes) -> BackendClient:
    """BackendClient serving the ``routes`` fixture; later edits to ``routes`` apply."""
    return make_backend_client(routes)
