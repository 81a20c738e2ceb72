"""Pydantic models for REST API."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pimanager.state_store import HealthSample, PipelineStep, ProjectStatus

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    data: T | None = None
    error: str | None = None


# Project models


class ProjectCreate(BaseModel):
    """Request model for creating or replacing a project definition."""

    id: str = Field(..., min_length=1, max_length=255, pattern=r"^[^/\s]+$")
    description: str = ""
    pipeline: list[PipelineStep] = Field(default_factory=list)
    path: str = ""
    port: str = Field(default="", max_length=5)

    @field_validator("port", mode="before")
    @classmethod
    def _port_as_string(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, int):
            return str(value)
        return value


class ProjectResponse(BaseModel):
    """Response model for a project."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    description: str
    pipeline: list[PipelineStep]
    path: str
    status: ProjectStatus
    last_log: str
    current_step: str
    progress: int
    port: str


def project_to_response(project: Any) -> ProjectResponse:
    """Convert a Project model to ProjectResponse."""
    return ProjectResponse.model_validate(project)


# Control models


class ActionResponse(BaseModel):
    """Response model for project actions (start/stop)."""

    status: str


# System models


class ServerInfoResponse(BaseModel):
    """Response model for the API root."""

    name: str
    version: str
    uptime_s: int


class HealthResponse(BaseModel):
    """Response model for the liveness check."""

    ok: bool
    last_check: str


class HostHealthResponse(BaseModel):
    """Response model for host health plus sample history."""

    hostname: str = ""
    cpu_usage: float = 0.0
    memory_total: int = 0
    memory_used: int = 0
    memory_percent: float = 0.0
    temperature: float = 0.0
    disk_total: int = 0
    disk_used: int = 0
    disk_percent: float = 0.0
    load_avg_1: float = 0.0
    load_avg_5: float = 0.0
    load_avg_15: float = 0.0
    uptime: str = "N/A"
    history: list[HealthSample] = Field(default_factory=list)


class DirectoryEntry(BaseModel):
    """A sub-directory shown by the file browser."""

    name: str
    path: str
    abs_path: str
    is_dir: bool = True


class DirectoryListing(BaseModel):
    """Response model for the file browser."""

    current_path: str
    entries: list[DirectoryEntry]
