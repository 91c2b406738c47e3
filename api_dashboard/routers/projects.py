"""Project proposals router: filtered listing, stats and custom order."""

import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from api_dashboard.models import ProjectProposal
from api_dashboard.services.projects import (
    CustomOrderStore,
    ProjectCatalogService,
    filter_projects,
    project_stats,
    sort_projects,
    stage_counts,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])

catalog_service = ProjectCatalogService()
_order_store: CustomOrderStore | None = None


def get_order_store() -> CustomOrderStore:
    """Return the custom order store, loading it on first use."""
    global _order_store
    if _order_store is None:
        _order_store = CustomOrderStore()
    return _order_store


class OrderUpdate(BaseModel):
    """Full replacement of the custom order."""
    project_ids: list[str]


class MoveRequest(BaseModel):
    """A drag from one displayed slot onto another."""
    displayed_ids: list[str] = Field(..., description="Project ids in their current display order")
    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


async def _load_projects() -> list[ProjectProposal]:
    try:
        return await catalog_service.get_projects()
    except FileNotFoundError as e:
        logger.error(f"Project catalog not found: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Project catalog not found")


@router.get("")
async def list_projects(
    category: Optional[str] = Query(None),
    stage: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    sort_by: Literal["priority", "stage", "difficulty", "custom"] = Query("priority"),
) -> dict[str, Any]:
    """List projects after filtering and sorting.

    Returns:
        Dict with:
        - projects: filtered, sorted projects
        - total: size of the unfiltered catalog
        - showing: number of projects returned
        - stage_counts: unfiltered count per stage
        - categories: distinct categories in the catalog
    """
    projects = await _load_projects()
    store = get_order_store()
    order = store.ensure_seeded([p.id for p in projects])

    filtered = filter_projects(projects, category=category, stage=stage, priority=priority)
    ordered = sort_projects(filtered, sort_by=sort_by, custom_order=order)

    return {
        "projects": [p.model_dump() for p in ordered],
        "total": len(projects),
        "showing": len(ordered),
        "stage_counts": stage_counts(projects),
        "categories": sorted({p.category for p in projects}),
    }


@router.get("/stats")
async def get_project_stats() -> dict[str, Any]:
    """Catalog breakdown by stage, priority and category."""
    return project_stats(await _load_projects())


@router.get("/order")
async def get_order() -> dict[str, list[str]]:
    """Current custom order."""
    return {"order": get_order_store().order}


@router.put("/order")
async def put_order(update: OrderUpdate) -> dict[str, list[str]]:
    """Replace the custom order."""
    return {"order": get_order_store().set_order(update.project_ids)}


@router.post("/order/move")
async def move_project(move: MoveRequest) -> dict[str, list[str]]:
    """Apply a drag-to-reorder gesture.

    Raises:
        HTTPException: 400 if an index is outside the displayed list.
    """
    try:
        order = get_order_store().move(move.displayed_ids, move.from_index, move.to_index)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"order": order}


@router.delete("/order")
async def reset_order() -> dict[str, list[str]]:
    """Reset the custom order to catalog order."""
    projects = await _load_projects()
    return {"order": get_order_store().reset([p.id for p in projects])}
