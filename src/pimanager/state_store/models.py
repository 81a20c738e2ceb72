"""Pydantic models for State Store."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProjectStatus(StrEnum):
    """Project status enum."""

    IDLE = "IDLE"
    BOOTING = "BOOTING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


class PipelineStep(BaseModel):
    """A single named shell command in a project's pipeline."""

    model_config = ConfigDict(frozen=True)

    name: str
    cmd: str


class Project(BaseModel):
    """Project model - a named pipeline plus its live run state.

    Writes to the store always replace the whole record, so status, progress,
    current step, log and port are observed together.
    """

    id: str = Field(..., min_length=1)
    description: str = ""
    pipeline: list[PipelineStep] = Field(default_factory=list)
    path: str = ""
    status: ProjectStatus = ProjectStatus.IDLE
    last_log: str = ""
    current_step: str = ""
    progress: int = Field(default=0, ge=0, le=100)
    port: str = ""

    @field_validator("pipeline", mode="before")
    @classmethod
    def _null_pipeline(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def _empty_status(cls, value: Any) -> Any:
        return ProjectStatus.IDLE if value in (None, "") else value

    @field_validator("port", mode="before")
    @classmethod
    def _port_as_string(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def is_running(self) -> bool:
        """Whether the project is booting or active."""
        return self.status in (ProjectStatus.BOOTING, ProjectStatus.ACTIVE)

    def __repr__(self) -> str:
        return f"<Project(id={self.id!r}, status={self.status.value!r}, progress={self.progress})>"


class HealthSample(BaseModel):
    """A timestamped host health reading."""

    time: datetime = Field(default_factory=lambda: datetime.now(UTC))
    cpu_usage: float = 0.0
    memory_percent: float = 0.0
    temperature: float = 0.0
    disk_percent: float = 0.0
