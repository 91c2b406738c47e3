"""Unit tests for the background dashboard monitor and the WebSocket manager."""
from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from api_dashboard.orchestrator import DashboardOrchestrator
from api_dashboard.tasks.dashboard_monitor import DashboardMonitor
from api_dashboard.websocket.manager import ConnectionManager


def sent_types(manager: MagicMock) -> list[str]:
    return [call.args[0]["type"] for call in manager.broadcast.await_args_list]


@pytest.fixture
def manager() -> MagicMock:
    fake = MagicMock()
    fake.broadcast = AsyncMock()
    return fake


@pytest.mark.unit
class TestDashboardMonitor:
    @pytest.mark.asyncio
    async def test_first_refresh_broadcasts_everything(self, manager, backend_client):
        monitor = DashboardMonitor(manager, DashboardOrchestrator(backend_client))

        data = await monitor.refresh()

        assert len(data.resources) == 9
        assert sent_types(manager) == ["resource_update"] * 9 + ["summary_update"]
        first = manager.broadcast.await_args_list[0]
        assert first.kwargs["resource"] == "deals"
        assert first.args[0]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_unchanged_refresh_only_sends_summary(self, manager, backend_client):
        monitor = DashboardMonitor(manager, DashboardOrchestrator(backend_client))
        await monitor.refresh()
        manager.broadcast.reset_mock()

        await monitor.refresh()

        assert sent_types(manager) == ["summary_update"]

    @pytest.mark.asyncio
    async def test_changed_resource_is_broadcast(self, manager, routes, backend_client):
        monitor = DashboardMonitor(manager, DashboardOrchestrator(backend_client))
        await monitor.refresh()
        manager.broadcast.reset_mock()

        routes["/internal/templates"] = httpx.ConnectError("down")
        await monitor.refresh()

        assert sent_types(manager) == ["resource_update", "summary_update"]
        event = manager.broadcast.await_args_list[0].args[0]
        assert event["resource"] == "templates"
        assert event["status"] == "error"
        summary = manager.broadcast.await_args_list[1].args[0]
        assert summary["critical_resources"] == 1

    @pytest.mark.asyncio
    async def test_failed_cycle_sends_notification(self, manager):
        orchestrator = AsyncMock()
        orchestrator.fetch_dashboard_data.side_effect = RuntimeError("backend exploded")
        monitor = DashboardMonitor(manager, orchestrator, interval=3600)

        await monitor.start()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await monitor.stop()

        message = manager.broadcast.await_args_list[0].args[0]
        assert message["type"] == "notification"
        assert message["level"] == "error"
        assert "backend exploded" in message["message"]

    @pytest.mark.asyncio
    async def test_start_twice_is_ignored(self, manager):
        orchestrator = AsyncMock()
        monitor = DashboardMonitor(manager, orchestrator, interval=3600)

        await monitor.start()
        task = monitor._task
        await monitor.start()

        assert monitor._task is task
        await monitor.stop()
        assert monitor._task is None


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []
        self.accepted = False

    async def accept(self):
        self.accepted = True

    async def send_text(self, text: str):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))


@pytest.mark.unit
class TestConnectionManager:
    @pytest.mark.asyncio
    async def test_subscriptions_filter_resource_events(self):
        manager = ConnectionManager()
        everything, deals_only = FakeWebSocket(), FakeWebSocket()
        await manager.connect(everything, "a")
        await manager.connect(deals_only, "b")
        await manager.subscribe("b", "deals")

        await manager.broadcast({"type": "resource_update", "resource": "calls"}, resource="calls")
        await manager.broadcast({"type": "resource_update", "resource": "deals"}, resource="deals")
        await manager.broadcast({"type": "summary_update"})

        assert everything.accepted
        assert [m.get("resource") for m in everything.sent] == ["calls", "deals", None]
        assert [m.get("resource") for m in deals_only.sent] == ["deals", None]

    @pytest.mark.asyncio
    async def test_unsubscribe_restores_everything(self):
        manager = ConnectionManager()
        socket = FakeWebSocket()
        await manager.connect(socket, "a")
        await manager.subscribe("a", "deals")
        await manager.unsubscribe("a", "deals")

        await manager.broadcast({"type": "resource_update"}, resource="calls")

        assert len(socket.sent) == 1

    @pytest.mark.asyncio
    async def test_dead_connection_is_dropped(self):
        manager = ConnectionManager()
        await manager.connect(FakeWebSocket(fail=True), "dead")
        await manager.connect(FakeWebSocket(), "alive")
        await manager.subscribe("dead", "deals")

        await manager.broadcast({"type": "summary_update"})

        assert list(manager.active_connections) == ["alive"]
        assert "dead" not in manager.subscriptions
