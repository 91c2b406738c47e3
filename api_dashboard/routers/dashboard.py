"""Dashboard snapshot router."""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from api_dashboard.models import DashboardResponse, ResourceStatus
from api_dashboard.orchestrator import DashboardOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

orchestrator = DashboardOrchestrator()


@router.get("", response_model=DashboardResponse)
async def get_dashboard():
    """Run a poll cycle and return the full dashboard snapshot.

    Returns:
        DashboardResponse with success=True and the snapshot, or HTTP 500
        with success=False if the cycle itself failed.
    """
    try:
        data = await orchestrator.fetch_dashboard_data()
    except Exception as e:
        logger.error(f"Dashboard API error: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or "Failed to fetch dashboard data"},
        )
    return DashboardResponse(success=True, data=data)


@router.get("/resources/{slug}", response_model=ResourceStatus)
async def get_resource(slug: str) -> ResourceStatus:
    """Probe a single resource.

    Raises:
        HTTPException: 404 if no resource is registered under the slug.
    """
    probe = orchestrator.get_probe(slug)
    if probe is None:
        raise HTTPException(status_code=404, detail=f"Resource '{slug}' not found")
    return await probe.check_health()
