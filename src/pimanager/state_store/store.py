"""StateStore - Main API for State Store operations."""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from collections import deque
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from pimanager.state_store.exceptions import ProjectNotFoundError, SnapshotError
from pimanager.state_store.models import HealthSample, Project

logger = logging.getLogger(__name__)

# Keep last 43200 points (30 days if sampled every 60s)
HISTORY_LIMIT = 43200

_history_adapter = TypeAdapter(list[HealthSample])


def history_path_for(path: str | Path) -> Path:
    """Derive the history file path from the snapshot path.

    "state.json" becomes "state-history.json".
    """
    path = Path(path)
    return path.with_name(f"{path.stem}-history{path.suffix}")


class StateStore:
    """Main API for State Store operations.

    Holds projects and host health history in memory. Reads return copies,
    every write swaps in a whole new record, and nothing reaches disk until
    snapshot() is called.

    The project file and the history file are replaced independently, so a
    crash between the two renames can leave them from different points in
    time. Each file on its own is always complete.
    """

    def __init__(self, path: str | Path = "state.json") -> None:
        """Initialize an empty State Store.

        Args:
            path: Path of the project snapshot file.
        """
        self.path = Path(path)
        self.history_path = history_path_for(self.path)
        self._lock = threading.Lock()
        self._snapshot_lock = threading.Lock()
        self._projects: dict[str, Project] = {}
        self._history: deque[HealthSample] = deque(maxlen=HISTORY_LIMIT)

    # --- Project Operations ---

    def add_project(self, project: Project) -> None:
        """Insert or replace a project by ID.

        Args:
            project: The full project record to store.
        """
        record = project.model_copy(deep=True)
        with self._lock:
            self._projects[record.id] = record

    def update_project(self, project_id: str, changes: dict[str, Any]) -> bool:
        """Set some fields of a stored project, leaving the others as they are.

        The read and the write happen under one lock acquisition, so a
        concurrent definition change is never lost.

        Args:
            project_id: The project's unique ID.
            changes: Field names mapped to their new values.

        Returns:
            True if the project was updated, False if it is gone.
        """
        with self._lock:
            current = self._projects.get(project_id)
            if current is None:
                return False
            self._projects[project_id] = current.model_copy(update=copy.deepcopy(changes))
            return True

    def remove_project(self, project_id: str) -> None:
        """Delete a project. Unknown IDs are ignored."""
        with self._lock:
            self._projects.pop(project_id, None)

    def get_project(self, project_id: str) -> Project:
        """Get project by ID.

        Args:
            project_id: The project's unique ID

        Returns:
            A copy of the Project

        Raises:
            ProjectNotFoundError: If project doesn't exist
        """
        with self._lock:
            project = self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project with id '{project_id}' not found")
        return project.model_copy(deep=True)

    def has_project(self, project_id: str) -> bool:
        with self._lock:
            return project_id in self._projects

    def list_projects(self) -> list[Project]:
        """List all projects.

        Returns:
            Copies of all projects, ordered by ID
        """
        with self._lock:
            projects = list(self._projects.values())
        return [p.model_copy(deep=True) for p in sorted(projects, key=lambda p: p.id)]

    # --- History Operations ---

    def add_health_sample(self, sample: HealthSample) -> None:
        """Append a health sample, evicting the oldest beyond HISTORY_LIMIT."""
        record = sample.model_copy()
        with self._lock:
            self._history.append(record)

    def get_history(self) -> list[HealthSample]:
        """Return a copy of the health history, oldest first."""
        with self._lock:
            history = list(self._history)
        return [s.model_copy() for s in history]

    # --- Persistence ---

    def snapshot(self) -> None:
        """Write projects and history to disk atomically.

        Stored records are never mutated in place, so copying references under
        the lock is enough for a consistent view; encoding and I/O happen after
        the lock is released.

        Raises:
            SnapshotError: If either file could not be written. The previous
                file at that path is left intact.
        """
        with self._snapshot_lock:
            with self._lock:
                projects = list(self._projects.values())
                history = list(self._history)

            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._write_atomic(
                    self.path,
                    {"projects": [p.model_dump(mode="json") for p in projects]},
                    prefix="state-",
                    indent=2,
                )
                self._write_atomic(
                    self.history_path,
                    [s.model_dump(mode="json") for s in history],
                    prefix="history-",
                    indent=None,
                )
            except (OSError, TypeError, ValueError) as e:
                raise SnapshotError(f"Failed to write snapshot to '{self.path}': {e}") from e

        logger.debug("Snapshot written: %d projects, %d samples", len(projects), len(history))

    @staticmethod
    def _write_atomic(target: Path, payload: Any, prefix: str, indent: int | None) -> None:
        """Encode payload to a temp file beside target, then rename it over target."""
        fd, tmp_name = tempfile.mkstemp(prefix=prefix, suffix=".tmp", dir=target.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=indent)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def load(self) -> None:
        """Hydrate the store from the last snapshot, if any.

        A missing or malformed file leaves that data set at its empty default.
        """
        projects = self._read_projects()
        history = self._read_history()
        with self._lock:
            if projects is not None:
                self._projects = {p.id: p for p in projects}
            if history is not None:
                self._history = deque(history[-HISTORY_LIMIT:], maxlen=HISTORY_LIMIT)
        logger.info(
            "Loaded state from %s (%d projects, %d samples)",
            self.path,
            len(projects or []),
            len(history or []),
        )

    def _read_projects(self) -> list[Project] | None:
        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.info("No snapshot at %s, starting empty", self.path)
            return None
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable snapshot %s: %s", self.path, e)
            return None

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed snapshot %s: expected an object", self.path)
            return None
        try:
            return [Project.model_validate(p) for p in data.get("projects") or []]
        except (ValidationError, TypeError) as e:
            logger.warning("Ignoring malformed snapshot %s: %s", self.path, e)
            return None

    def _read_history(self) -> list[HealthSample] | None:
        try:
            with self.history_path.open(encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable history %s: %s", self.history_path, e)
            return None

        try:
            return _history_adapter.validate_python(data or [])
        except ValidationError as e:
            logger.warning("Ignoring malformed history %s: %s", self.history_path, e)
            return None
