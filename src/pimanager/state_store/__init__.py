"""State Store - In-memory project state with atomic on-disk snapshots."""

from pimanager.state_store.exceptions import (
    ProjectNotFoundError,
    SnapshotError,
    StateStoreError,
)
from pimanager.state_store.models import (
    HealthSample,
    PipelineStep,
    Project,
    ProjectStatus,
)
from pimanager.state_store.store import HISTORY_LIMIT, StateStore, history_path_for

__all__ = [
    "HISTORY_LIMIT",
    "HealthSample",
    "PipelineStep",
    "Project",
    "ProjectNotFoundError",
    "ProjectStatus",
    "SnapshotError",
    "StateStore",
    "StateStoreError",
    "history_path_for",
]
