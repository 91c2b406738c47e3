"""WebSocket handlers for real-time dashboard updates."""

from api_dashboard.websocket.manager import ConnectionManager
from api_dashboard.websocket.events import (
    ResourceUpdateEvent,
    SummaryUpdateEvent,
    NotificationEvent,
)

__all__ = [
    "ConnectionManager",
    "ResourceUpdateEvent",
    "SummaryUpdateEvent",
    "NotificationEvent",
]
