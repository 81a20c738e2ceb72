"""Supervisor package - Background project pipeline runs."""

from pimanager.supervisor.exceptions import (
    ActionsDisabledError,
    ProjectAlreadyRunningError,
    SupervisorError,
)
from pimanager.supervisor.process import StepProcess, describe_exit
from pimanager.supervisor.registry import CancellationToken, TaskHandle, TaskRegistry
from pimanager.supervisor.run import PipelineRun
from pimanager.supervisor.supervisor import Supervisor

__all__ = [
    "ActionsDisabledError",
    "CancellationToken",
    "PipelineRun",
    "ProjectAlreadyRunningError",
    "StepProcess",
    "Supervisor",
    "SupervisorError",
    "TaskHandle",
    "TaskRegistry",
    "describe_exit",
]
