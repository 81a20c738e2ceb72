"""Task registry - At most one live run per project."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pimanager.supervisor.exceptions import ProjectAlreadyRunningError

if TYPE_CHECKING:
    from collections.abc import Callable


class CancellationToken:
    """Cancellation signal shared by a run, its watchers and its port lookups.

    wait() also returns early when an `until` predicate turns true, provided
    whoever changes the predicate calls wake().
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        with self._cond:
            return self._cancelled

    def cancel(self) -> None:
        with self._cond:
            self._cancelled = True
            self._cond.notify_all()

    def wake(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def wait(
        self,
        timeout: float | None = None,
        until: Callable[[], bool] | None = None,
    ) -> bool:
        """Block until cancelled, `until()` is true, or the timeout expires.

        Returns:
            Whether the token is cancelled.
        """
        with self._cond:
            self._cond.wait_for(
                lambda: self._cancelled or (until is not None and until()),
                timeout,
            )
            return self._cancelled


@dataclass(eq=False)
class TaskHandle:
    """Runtime-only link between a project ID and its in-flight run.

    Attributes:
        project_id: The project being run.
        token: Cancellation token observed by the run.
        thread: Thread executing the run, once started.
    """

    project_id: str
    token: CancellationToken = field(default_factory=CancellationToken)
    thread: threading.Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def cancel(self) -> None:
        self.token.cancel()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the run thread to finish.

        Returns:
            True if the run is no longer executing.
        """
        if self.thread is None:
            return True
        self.thread.join(timeout)
        return not self.thread.is_alive()


class TaskRegistry:
    """Map of project ID to live task handle, guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handles: dict[str, TaskHandle] = {}

    def register(self, project_id: str) -> TaskHandle:
        """Create the handle for a new run.

        Raises:
            ProjectAlreadyRunningError: If a handle already exists for the ID.
        """
        with self._lock:
            if project_id in self._handles:
                raise ProjectAlreadyRunningError(f"Project '{project_id}' is already running")
            handle = TaskHandle(project_id=project_id)
            self._handles[project_id] = handle
            return handle

    def get(self, project_id: str) -> TaskHandle | None:
        with self._lock:
            return self._handles.get(project_id)

    def remove(self, project_id: str, handle: TaskHandle | None = None) -> TaskHandle | None:
        """Remove a project's handle.

        Args:
            project_id: The project ID.
            handle: If given, remove only when it is still the registered handle.

        Returns:
            The removed handle, or None if nothing was removed.
        """
        with self._lock:
            current = self._handles.get(project_id)
            if current is None or (handle is not None and current is not handle):
                return None
            del self._handles[project_id]
            return current

    def active_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._handles)

    def __contains__(self, project_id: object) -> bool:
        with self._lock:
            return project_id in self._handles

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
