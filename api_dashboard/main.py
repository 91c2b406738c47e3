"""API Dashboard FastAPI application.

Serves backend resource health snapshots and the roadmap project catalog,
with push updates over a WebSocket.
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from api_dashboard import db
from api_dashboard.client import close_backend_client
from api_dashboard.config import settings, setup_logging
from api_dashboard.routers.dashboard import orchestrator
from api_dashboard.routers.dashboard import router as dashboard_router
from api_dashboard.routers.projects import router as projects_router
from api_dashboard.tasks.dashboard_monitor import DashboardMonitor
from api_dashboard.websocket.manager import ConnectionManager

logger = logging.getLogger(__name__)

manager = ConnectionManager()
dashboard_monitor = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown.

    On startup: Initialize the project store pool and dashboard monitor
    On shutdown: Stop the monitor and close the backend client and pool
    """
    global dashboard_monitor

    if db.is_configured():
        try:
            await db.get_pool()
            logger.info("Database pool initialized")
        except Exception as e:
            logger.warning(f"Database pool initialization failed: {e}")

    dashboard_monitor = DashboardMonitor(
        manager,
        orchestrator=orchestrator,
        interval=settings.REFRESH_INTERVAL_SECONDS,
    )
    await dashboard_monitor.start()

    yield

    if dashboard_monitor:
        await dashboard_monitor.stop()

    await close_backend_client()

    try:
        await db.close_pool()
        logger.info("Database pool closed")
    except Exception as e:
        logger.warning(f"Error closing database pool: {e}")


app = FastAPI(
    title="API Dashboard",
    lifespan=lifespan,
)

app.include_router(dashboard_router)
app.include_router(projects_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for real-time updates.

    Handles subscription messages:
    - {"action": "subscribe", "resource": "deals"}
    - {"action": "unsubscribe", "resource": "deals"}

    Args:
        websocket: The WebSocket connection
    """
    client_id = str(uuid.uuid4())
    await manager.connect(websocket, client_id)
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await manager.send_personal(
                    client_id,
                    {"type": "error", "message": "Invalid JSON message"},
                )
                continue

            action = message.get("action") if isinstance(message, dict) else None
            if action in ("subscribe", "unsubscribe"):
                resource = message.get("resource")
                if not resource or not isinstance(resource, str):
                    await manager.send_personal(
                        client_id,
                        {"type": "error", "message": "Missing or invalid 'resource' field"},
                    )
                    continue
                if action == "subscribe":
                    await manager.subscribe(client_id, resource)
                else:
                    await manager.unsubscribe(client_id, resource)
                await manager.send_personal(
                    client_id,
                    {"type": "subscription", "action": f"{action}d", "resource": resource},
                )
            elif action is not None:
                await manager.send_personal(
                    client_id,
                    {"type": "error", "message": f"Unknown action: {action}"},
                )
    except WebSocketDisconnect:
        logger.debug(f"WebSocket client {client_id} disconnected")
    finally:
        await manager.disconnect(client_id)


def run():
    """Run the uvicorn server with configured host and port."""
    setup_logging()
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
    )


if __name__ == "__main__":
    run()
