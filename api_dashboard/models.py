"""Data models for dashboard resource health and project proposals."""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(str, Enum):
    """Health status of a signal or resource, best first."""
    HEALTHY = "healthy"
    WARNING = "warning"
    DEGRADED = "degraded"
    CRITICAL = "critical"
    ERROR = "error"


class EvaluationMode(str, Enum):
    """How a probe's record count is judged.

    STANDARD: more and fresher records are better.
    QUEUE_DEPTH_INVERTED: the count is a work queue, fewer is better.
    """
    STANDARD = "standard"
    QUEUE_DEPTH_INVERTED = "queue_depth_inverted"


class HealthIndicator(BaseModel):
    """One evaluated signal."""
    model_config = ConfigDict(frozen=True)

    name: str
    status: HealthStatus
    message: str
    value: Optional[Union[int, float, str]] = None


class LastRecord(BaseModel):
    """Preview of the most recent entity of a resource."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    preview: Optional[str] = None


class RecentActivity(BaseModel):
    """Informational recency pointers for a resource."""
    model_config = ConfigDict(frozen=True)

    last_created: Optional[str] = None
    last_updated: Optional[str] = None
    last_24h: Optional[int] = None
    last_7d: Optional[int] = None


class ResourceStatus(BaseModel):
    """Full health snapshot of one monitored resource."""
    model_config = ConfigDict(frozen=True)

    name: str
    slug: str
    description: str
    endpoint: str
    status: HealthStatus
    health_score: int = Field(..., ge=0, le=100)
    health_indicators: list[HealthIndicator] = Field(default_factory=list)
    total_records: Optional[int] = None
    last_record: Optional[LastRecord] = None
    recent_activity: RecentActivity = Field(default_factory=RecentActivity)
    available_fields: list[str] = Field(default_factory=list)
    available_filters: list[str] = Field(default_factory=list)
    supports_search: bool = False
    supports_pagination: bool = False
    error_message: Optional[str] = None
    fetched_at: datetime
    response_time_ms: Optional[int] = None


class ApiHealth(BaseModel):
    """Backend reachability, independent of per-resource scoring."""
    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "error"]
    internal: bool
    checked_at: datetime
    response_time_ms: Optional[int] = None


class DashboardSummary(BaseModel):
    """Dashboard-wide counts derived from all resources."""
    model_config = ConfigDict(frozen=True)

    total_resources: int
    healthy_resources: int
    warning_resources: int
    critical_resources: int
    total_records: int
    average_health_score: int
    last_updated: datetime


class DashboardData(BaseModel):
    """Aggregate result of one poll cycle."""
    model_config = ConfigDict(frozen=True)

    api_health: ApiHealth
    resources: list[ResourceStatus]
    summary: DashboardSummary


class DashboardResponse(BaseModel):
    """Envelope returned by the dashboard snapshot endpoint."""
    success: bool
    data: Optional[DashboardData] = None
    error: Optional[str] = None


# =============================================================================
# Project proposals
# =============================================================================

class HumanRole(BaseModel):
    """How a project changes the work of the people involved."""
    model_config = ConfigDict(frozen=True)

    before: str = ""
    after: str = ""
    who_is_empowered: list[str] = Field(default_factory=list)
    new_capabilities: list[str] = Field(default_factory=list)


class DataRequirements(BaseModel):
    """Data a project consumes, produces and improves."""
    model_config = ConfigDict(frozen=True)

    required: list[str] = Field(default_factory=list)
    generates: list[str] = Field(default_factory=list)
    improves: list[str] = Field(default_factory=list)


class SubTask(BaseModel):
    """Work item belonging to a project."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    phase: str = "Development"
    status: str = "Not Started"
    difficulty: str = "Medium"
    ai_potential: str = "None"
    ai_assist_description: str = ""
    estimated_hours: str = "TBD"
    owner: str = "TBD"
    tools_needed: list[str] = Field(default_factory=list)
    knowledge_areas: list[str] = Field(default_factory=list)
    acceptance_criteria: list[str] = Field(default_factory=list)
    success_metrics: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    is_foundational: bool = False
    is_critical_path: bool = False


class ProjectProposal(BaseModel):
    """Roadmap item shown in the projects view."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    pillar: str = "Data Foundation"
    pillar_order: int = 1
    why_it_matters: str = ""
    human_role: HumanRole = Field(default_factory=HumanRole)
    difficulty: Literal["Easy", "Medium", "Hard"] = "Medium"
    estimated_hours: str = "TBD"
    resources_used: list[str] = Field(default_factory=list)
    api_endpoints: list[str] = Field(default_factory=list)
    depends_on: list[str] = Field(default_factory=list)
    enables: list[str] = Field(default_factory=list)
    related_to: list[str] = Field(default_factory=list)
    data_requirements: DataRequirements = Field(default_factory=DataRequirements)
    priority: Literal["Critical", "High", "Medium", "Low"] = "Medium"
    stage: str = "Idea"
    benefits: list[str] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)
    category: str = "General"
    ops_process: str = ""
    current_loa: str = ""
    potential_loa: str = ""
    missing_api_data: list[str] = Field(default_factory=list)
    integrations_needed: list[str] = Field(default_factory=list)
    primary_users: list[str] = Field(default_factory=list)
    data_status: str = "None"
    next_milestone: str = ""
    prototype_url: str = ""
    notion_url: str = ""
    owner: str = "TBD"
    sub_task_count: int = 0
    completed_sub_tasks: int = 0
    progress: int = 0
    tasks: list[SubTask] = Field(default_factory=list)
