"""WebSocket connection manager for dashboard push updates."""

import json
import logging
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections and per-resource subscriptions."""

    def __init__(self):
        """Initialize with empty connections and subscriptions."""
        self.active_connections: dict[str, WebSocket] = {}
        self.subscriptions: dict[str, set[str]] = {}

    async def connect(self, websocket: WebSocket, client_id: str) -> None:
        """Accept and store a WebSocket connection.

        Args:
            websocket: The WebSocket connection to accept
            client_id: Unique identifier for the client
        """
        await websocket.accept()
        self.active_connections[client_id] = websocket

    async def disconnect(self, client_id: str) -> None:
        """Remove a client connection and their subscriptions."""
        self.active_connections.pop(client_id, None)
        self.subscriptions.pop(client_id, None)

    async def subscribe(self, client_id: str, resource: str) -> None:
        """Subscribe a client to updates of one resource.

        Args:
            client_id: The client subscribing
            resource: Slug of the resource (e.g. "deals")
        """
        self.subscriptions.setdefault(client_id, set()).add(resource)

    async def unsubscribe(self, client_id: str, resource: str) -> None:
        """Unsubscribe a client from a resource."""
        if client_id in self.subscriptions:
            self.subscriptions[client_id].discard(resource)

    def _wants(self, client_id: str, resource: str | None) -> bool:
        # Clients without subscriptions receive everything
        if resource is None:
            return True
        subscribed = self.subscriptions.get(client_id)
        return not subscribed or resource in subscribed

    async def broadcast(self, message: dict, resource: str | None = None) -> None:
        """Send a message to connected clients, handling disconnections gracefully.

        Args:
            message: JSON-serializable dictionary to send
            resource: If specified, skip clients subscribed only to other resources
        """
        json_message = json.dumps(message, default=str)
        disconnected = []

        for client_id, websocket in list(self.active_connections.items()):
            if not self._wants(client_id, resource):
                continue
            try:
                await websocket.send_text(json_message)
            except Exception as e:
                logger.warning(f"Failed to send to {client_id}: {e}")
                disconnected.append(client_id)

        for client_id in disconnected:
            await self.disconnect(client_id)

    async def send_personal(self, client_id: str, message: dict) -> None:
        """Send a message to a specific client."""
        websocket = self.active_connections.get(client_id)
        if websocket:
            await websocket.send_text(json.dumps(message, default=str))
