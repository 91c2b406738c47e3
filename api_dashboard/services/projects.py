"""Project catalog service.

Serves roadmap project proposals from the live project store, falling back
field-by-field to a static JSON catalog, and keeps the user's custom order
in a sidecar file outside the proposals themselves.
"""
from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from api_dashboard import db
from api_dashboard.config import settings
from api_dashboard.models import DataRequirements, HumanRole, ProjectProposal, SubTask

logger = logging.getLogger(__name__)

PILLAR_ORDER = {
    "Data Foundation": 1,
    "Knowledge Generation": 2,
    "Human Empowerment": 3,
}

STATUS_TO_STAGE = {
    "idea": "Idea",
    "planning": "Planned",
    "in_progress": "Under Dev",
    "testing": "Pilot",
    "deployed": "Deployed",
    "on_hold": "On Hold",
    "cancelled": "Cancelled",
}

TASK_PHASES = {
    "discovery": "Discovery",
    "planning": "Planning",
    "development": "Development",
    "testing": "Testing",
    "training": "Training",
    "rollout": "Rollout",
    "monitoring": "Monitoring",
}

TASK_STATUSES = {
    "backlog": "Not Started",
    "ready": "Not Started",
    "not_started": "Not Started",
    "in_progress": "In Progress",
    "review": "In Progress",
    "done": "Done",
    "completed": "Done",
    "blocked": "Blocked",
}

TASK_DIFFICULTIES = {
    "trivial": "Easy",
    "easy": "Easy",
    "medium": "Medium",
    "hard": "Hard",
    "complex": "Hard",
}

AI_POTENTIAL = {
    "none": "None",
    "low": "Low",
    "medium": "Medium",
    "high": "High",
    "full": "High",
}

PRIORITIES = {"critical": "Critical", "high": "High", "medium": "Medium", "low": "Low"}

PRIORITY_ORDER = {"Critical": 0, "High": 1, "Medium": 2, "Low": 3}
STAGE_ORDER = {"Deployed": 0, "Under Dev": 1, "Pilot": 2, "Planned": 3, "Idea": 4}
DIFFICULTY_ORDER = {"Easy": 0, "Medium": 1, "Hard": 2}
UNRANKED = 99

SORT_KEYS = ("priority", "stage", "difficulty", "custom")

# Narrative fields where an empty live value must not wipe the static one
RICH_FIELDS = frozenset({
    "human_role",
    "data_requirements",
    "benefits",
    "prerequisites",
    "depends_on",
    "enables",
    "related_to",
    "current_loa",
    "potential_loa",
    "resources_used",
    "primary_users",
    "api_endpoints",
    "prototype_url",
    "notion_url",
    "ops_process",
    "why_it_matters",
    "missing_api_data",
    "integrations_needed",
})

PROJECTS_QUERY = """
    SELECT p.*, pl.name AS pillar_name, tm.name AS owner_team_name
    FROM projects p
    LEFT JOIN pillars pl ON pl.id = p.pillar_id
    LEFT JOIN teams tm ON tm.id = p.owner_team_id
    ORDER BY p.priority, p.title
"""

TASKS_QUERY = """
    SELECT t.*, tm.name AS owner_team_name
    FROM tasks t
    LEFT JOIN teams tm ON tm.id = t.owner_team_id
    ORDER BY t.order_index
"""


# =============================================================================
# Live source
# =============================================================================

def _list(value: Any) -> list[str]:
    return [str(v) for v in value] if value else []


def convert_task_row(row: Mapping[str, Any]) -> SubTask:
    """Convert a tasks row into a SubTask."""
    return SubTask(
        id=str(row["id"]),
        title=row.get("title") or "",
        description=row.get("description") or "",
        phase=TASK_PHASES.get(row.get("phase") or "", "Development"),
        status=TASK_STATUSES.get(row.get("status") or "", "Not Started"),
        difficulty=TASK_DIFFICULTIES.get(row.get("difficulty") or "", "Medium"),
        ai_potential=AI_POTENTIAL.get(row.get("ai_potential") or "none", "None"),
        ai_assist_description=row.get("ai_assist_description") or "",
        estimated_hours=row.get("estimated_hours") or "TBD",
        owner=row.get("owner_team_name") or "TBD",
        tools_needed=_list(row.get("tools_needed")),
        knowledge_areas=_list(row.get("knowledge_areas")),
        acceptance_criteria=_list(row.get("acceptance_criteria")),
        success_metrics=_list(row.get("success_metrics")),
        risks=_list(row.get("risks")),
        is_foundational=bool(row.get("is_foundational")),
        is_critical_path=bool(row.get("is_critical_path")),
    )


def convert_project_row(row: Mapping[str, Any], tasks: Sequence[SubTask] = ()) -> ProjectProposal:
    """Convert a projects row (with joined pillar/team names) into a ProjectProposal."""
    pillar = row.get("pillar_name") or "Data Foundation"
    owner = row.get("owner_team_name") or "TBD"
    hours_min, hours_max = row.get("estimated_hours_min"), row.get("estimated_hours_max")
    estimated_hours = f"{hours_min}-{hours_max}h" if hours_min and hours_max else "TBD"

    return ProjectProposal(
        id=row.get("slug") or str(row["id"]),
        title=row.get("title") or "",
        description=row.get("description") or "",
        pillar=pillar,
        pillar_order=PILLAR_ORDER.get(pillar, 1),
        why_it_matters=row.get("why_it_matters") or "",
        human_role=HumanRole(
            before=row.get("human_role_before") or "",
            after=row.get("human_role_after") or "",
            who_is_empowered=_list(row.get("who_is_empowered")) or [owner],
            new_capabilities=_list(row.get("new_capabilities")),
        ),
        difficulty=TASK_DIFFICULTIES.get(row.get("difficulty") or "", "Medium"),
        estimated_hours=estimated_hours,
        resources_used=_list(row.get("resources_used")),
        api_endpoints=_list(row.get("api_endpoints")),
        depends_on=_list(row.get("depends_on")),
        enables=_list(row.get("enables")),
        related_to=_list(row.get("related_to")),
        data_requirements=DataRequirements(
            required=_list(row.get("data_required")),
            generates=_list(row.get("data_generates")),
            improves=_list(row.get("data_improves")),
        ),
        priority=PRIORITIES.get(row.get("priority") or "", "Medium"),
        stage=STATUS_TO_STAGE.get(row.get("status") or "", "Idea"),
        benefits=_list(row.get("benefits")),
        prerequisites=_list(row.get("prerequisites")),
        category=row.get("category") or "General",
        ops_process=row.get("ops_process") or "",
        current_loa=row.get("current_loa") or "",
        potential_loa=row.get("potential_loa") or "",
        missing_api_data=_list(row.get("missing_api_data")),
        integrations_needed=_list(row.get("integrations_needed")),
        primary_users=_list(row.get("primary_users")),
        data_status=row.get("data_status") or "None",
        next_milestone=row.get("next_milestone") or "",
        prototype_url=row.get("prototype_url") or "",
        notion_url=row.get("notion_url") or "",
        owner=owner,
        sub_task_count=len(tasks),
        completed_sub_tasks=sum(1 for t in tasks if t.status == "Done"),
        progress=int(row.get("progress_percentage") or row.get("progress") or 0),
        tasks=list(tasks),
    )


class LiveProjectSource:
    """Reads projects and their tasks from the PostgreSQL project store."""

    async def fetch_projects(self) -> list[ProjectProposal]:
        """Fetch all live projects.

        Returns:
            Projects ordered by priority then title, or an empty list if the
            store is not configured or the query fails.
        """
        if not db.is_configured():
            return []

        try:
            pool = await db.get_pool()
            async with pool.acquire() as conn:
                project_rows = await conn.fetch(PROJECTS_QUERY)
                task_rows = await conn.fetch(TASKS_QUERY)
        except Exception as e:
            logger.error(f"Error fetching projects from store: {e}", exc_info=True)
            return []

        tasks_by_project: dict[str, list[SubTask]] = {}
        for row in task_rows:
            tasks_by_project.setdefault(str(row["project_id"]), []).append(convert_task_row(row))

        return [
            convert_project_row(row, tasks_by_project.get(str(row["id"]), []))
            for row in project_rows
        ]


# =============================================================================
# Static catalog and merge
# =============================================================================

def load_static_catalog(path: str | Path | None = None) -> list[ProjectProposal]:
    """Load the static fallback catalog.

    Raises:
        FileNotFoundError: If the catalog file does not exist.
    """
    catalog_path = Path(path or settings.STATIC_CATALOG_PATH)
    if not catalog_path.exists():
        raise FileNotFoundError(f"Project catalog not found at {catalog_path}")

    entries = json.loads(catalog_path.read_text(encoding="utf-8"))
    return [ProjectProposal.model_validate(entry) for entry in entries]


def is_empty(value: Any) -> bool:
    """None, blank strings, empty collections and all-empty mappings are empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, dict):
        return all(is_empty(v) for v in value.values())
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def merge_project(live: ProjectProposal, static: ProjectProposal) -> ProjectProposal:
    """Overlay a live project on its static counterpart.

    Live values win, except rich fields where an empty live value keeps the
    static one. Lists are replaced, never concatenated.
    """
    merged = static.model_dump()
    for field_name, live_value in live.model_dump().items():
        if field_name in RICH_FIELDS and is_empty(live_value):
            continue
        merged[field_name] = live_value
    return ProjectProposal.model_validate(merged)


def merge_projects(
    live: Sequence[ProjectProposal],
    static: Sequence[ProjectProposal],
) -> list[ProjectProposal]:
    """Merge live projects with the static catalog by id.

    Live order is kept; static-only projects are appended in catalog order.
    """
    static_by_id = {project.id: project for project in static}
    live_ids = {project.id for project in live}

    merged = [
        merge_project(project, static_by_id[project.id]) if project.id in static_by_id else project
        for project in live
    ]
    merged.extend(project for project in static if project.id not in live_ids)
    return merged


# =============================================================================
# Filtering and sorting
# =============================================================================

def filter_projects(
    projects: Iterable[ProjectProposal],
    category: str | None = None,
    stage: str | None = None,
    priority: str | None = None,
) -> list[ProjectProposal]:
    """Keep projects matching every given filter. None or "all" disables a filter."""
    result = list(projects)
    if category and category != "all":
        result = [p for p in result if p.category == category]
    if stage and stage != "all":
        result = [p for p in result if p.stage == stage]
    if priority and priority != "all":
        result = [p for p in result if p.priority == priority]
    return result


def sort_projects(
    projects: Iterable[ProjectProposal],
    sort_by: str = "priority",
    custom_order: Sequence[str] = (),
) -> list[ProjectProposal]:
    """Stable sort by priority, stage, difficulty or custom position.

    Unknown values and ids missing from the custom order go last.
    """
    if sort_by == "custom":
        positions = {project_id: index for index, project_id in enumerate(custom_order)}
        return sorted(projects, key=lambda p: positions.get(p.id, len(positions) + UNRANKED))
    if sort_by == "priority":
        return sorted(projects, key=lambda p: PRIORITY_ORDER.get(p.priority, UNRANKED))
    if sort_by == "stage":
        return sorted(projects, key=lambda p: STAGE_ORDER.get(p.stage, UNRANKED))
    if sort_by == "difficulty":
        return sorted(projects, key=lambda p: DIFFICULTY_ORDER.get(p.difficulty, UNRANKED))
    raise ValueError(f"Unknown sort key: {sort_by}")


def stage_counts(projects: Iterable[ProjectProposal]) -> dict[str, int]:
    """Projects per stage, with every ranked stage present."""
    counts = Counter(p.stage for p in projects)
    return {stage: counts.get(stage, 0) for stage in STAGE_ORDER}


def project_stats(projects: Sequence[ProjectProposal]) -> dict[str, Any]:
    """Catalog breakdown by stage, priority and category."""
    return {
        "total_projects": len(projects),
        "total_tasks": sum(len(p.tasks) for p in projects),
        "by_stage": dict(Counter(p.stage for p in projects)),
        "by_priority": dict(Counter(p.priority for p in projects)),
        "by_category": dict(Counter(p.category for p in projects)),
    }


# =============================================================================
# Custom order sidecar
# =============================================================================

class CustomOrderStore:
    """Persisted list of project ids defining the user's manual order.

    Loaded on construction and written on every change.
    """

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path or settings.CUSTOM_ORDER_PATH)
        self._order: list[str] = self._load()

    @property
    def order(self) -> list[str]:
        return list(self._order)

    def _load(self) -> list[str]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable custom order at {self._path}: {e}")
            return []
        if not isinstance(data, list):
            return []
        return [str(item) for item in data]

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._order), encoding="utf-8")

    def set_order(self, project_ids: Sequence[str]) -> list[str]:
        """Replace the order, dropping duplicate ids."""
        self._order = list(dict.fromkeys(project_ids))
        if self._order:
            self._save()
        return self.order

    def ensure_seeded(self, project_ids: Sequence[str]) -> list[str]:
        """Seed an empty order with the catalog order."""
        if not self._order and project_ids:
            self.set_order(project_ids)
        return self.order

    def move(self, displayed_ids: Sequence[str], from_index: int, to_index: int) -> list[str]:
        """Move the project dragged from one displayed slot onto another.

        The dragged id is removed from the full order and inserted at the
        position the target held before the move.

        Raises:
            IndexError: If an index is outside the displayed list.
        """
        if not (0 <= from_index < len(displayed_ids) and 0 <= to_index < len(displayed_ids)):
            raise IndexError("Drag index outside the displayed projects")
        if from_index == to_index:
            return self.order

        dragged_id = displayed_ids[from_index]
        target_id = displayed_ids[to_index]
        if dragged_id not in self._order or target_id not in self._order:
            return self.order

        new_order = list(self._order)
        target_position = new_order.index(target_id)
        new_order.remove(dragged_id)
        new_order.insert(target_position, dragged_id)
        return self.set_order(new_order)

    def reset(self, project_ids: Sequence[str]) -> list[str]:
        """Restore the catalog order and forget the persisted one."""
        self._order = list(dict.fromkeys(project_ids))
        if self._path.exists():
            self._path.unlink()
        return self.order


# =============================================================================
# Catalog service
# =============================================================================

class ProjectCatalogService:
    """Merged project catalog: live store first, static catalog as fallback."""

    def __init__(
        self,
        live_source: LiveProjectSource | None = None,
        static_path: str | Path | None = None,
    ):
        self._live_source = live_source or LiveProjectSource()
        self._static_path = static_path

    async def get_projects(self) -> list[ProjectProposal]:
        """Return every project, live values taking precedence."""
        static = load_static_catalog(self._static_path)
        live = await self._live_source.fetch_projects()
        if not live:
            logger.info("No live projects, serving static catalog")
            return static
        return merge_projects(live, static)
