"""Supervisor - Starts, stops and kills project pipeline runs."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from pimanager.port_discovery import PortDiscovery, kill_port_owners
from pimanager.state_store import ProjectNotFoundError, ProjectStatus, SnapshotError
from pimanager.supervisor.exceptions import ActionsDisabledError
from pimanager.supervisor.registry import TaskHandle, TaskRegistry
from pimanager.supervisor.run import RUN_FIELDS, PipelineRun

if TYPE_CHECKING:
    from collections.abc import Callable

    from pimanager.state_store import Project, StateStore

logger = logging.getLogger(__name__)


class Supervisor:
    """Owns one cancellable background run per project.

    The Supervisor:
    - Rejects a start while a run for the same project is in flight
    - Runs pipeline steps on a dedicated thread per project
    - Stops runs by cancelling them and killing their process groups
    - Falls back to killing whatever holds the project's port
    - Snapshots the store after definition changes and finished runs
    """

    def __init__(
        self,
        state_store: StateStore,
        registry: TaskRegistry | None = None,
        port_discovery: PortDiscovery | None = None,
        allow_actions: bool = False,
        stop_timeout: float = 5.0,
        port_killer: Callable[[str], list[int]] = kill_port_owners,
    ) -> None:
        """Initialize the Supervisor.

        Args:
            state_store: Store holding the project records.
            registry: Task registry (a fresh one if omitted).
            port_discovery: Port lookup for started steps.
            allow_actions: Whether starting pipelines is permitted.
            stop_timeout: Seconds stop/delete wait for a run to wind down.
            port_killer: Kills processes bound to a port, returns their pids.
        """
        self.state_store = state_store
        self.registry = registry if registry is not None else TaskRegistry()
        self.port_discovery = port_discovery if port_discovery is not None else PortDiscovery()
        self.allow_actions = allow_actions
        self.stop_timeout = stop_timeout
        self.port_killer = port_killer

    def is_running(self, project_id: str) -> bool:
        return project_id in self.registry

    def save_project(self, project: Project) -> Project:
        """Insert or replace a project definition and persist it.

        An existing project keeps its run state (status, progress, current
        step and log), and keeps its port when the new definition has none.
        The merge happens inside the store, so it is safe while a run is
        publishing progress.
        """
        changes = {
            name: getattr(project, name)
            for name in type(project).model_fields
            if name not in RUN_FIELDS
        }
        if not project.port:
            del changes["port"]
        if not self.state_store.update_project(project.id, changes):
            self.state_store.add_project(project)
        logger.info("Saved project %s", project.id)
        self.snapshot()
        return self.state_store.get_project(project.id)

    def start_project(self, project_id: str) -> TaskHandle:
        """Start a project's pipeline in the background.

        Args:
            project_id: The project's unique ID.

        Returns:
            The handle of the new run.

        Raises:
            ActionsDisabledError: If starting pipelines is disabled.
            ProjectNotFoundError: If the project doesn't exist.
            ProjectAlreadyRunningError: If a run is already in flight.
        """
        if not self.allow_actions:
            raise ActionsDisabledError("Project actions are disabled")

        project = self.state_store.get_project(project_id)
        handle = self.registry.register(project_id)

        reset = {
            "status": ProjectStatus.BOOTING,
            "progress": 0,
            "current_step": "",
            "last_log": "",
        }
        project = project.model_copy(update=reset)
        if not self.state_store.update_project(project_id, reset):
            self.registry.remove(project_id, handle)
            raise ProjectNotFoundError(f"Project with id '{project_id}' not found")

        run = PipelineRun(
            project=project,
            handle=handle,
            store=self.state_store,
            registry=self.registry,
            port_discovery=self.port_discovery,
        )
        handle.thread = threading.Thread(
            target=run.execute,
            name=f"project-run-{project_id}",
            daemon=True,
        )
        handle.thread.start()
        logger.info("Started project %s", project_id)
        return handle

    def kill_project(self, project_id: str) -> TaskHandle | None:
        """Cancel a project's run and kill anything bound to its port.

        Displayed status is left alone; callers reset or remove the record.

        Returns:
            The cancelled handle, or None if no run was in flight.
        """
        handle = self.registry.get(project_id)
        if handle is not None:
            handle.cancel()
            self.registry.remove(project_id, handle)
            logger.info("Cancelled run of project %s", project_id)

        try:
            project = self.state_store.get_project(project_id)
        except ProjectNotFoundError:
            return handle
        if project.port:
            self.port_killer(project.port)
        return handle

    def stop_project(self, project_id: str) -> Project:
        """Stop a project and reset it to IDLE.

        Safe to call on a project that is not running.

        Returns:
            The reset project.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
        """
        handle = self.kill_project(project_id)
        self._wait_for(handle)

        project = self.state_store.get_project(project_id)
        if self.is_running(project_id):
            # Restarted while this stop was winding down; the new run owns the record.
            return project
        self.state_store.update_project(
            project_id,
            {"status": ProjectStatus.IDLE, "progress": 0, "current_step": ""},
        )
        logger.info("Stopped project %s", project_id)
        return self.state_store.get_project(project_id)

    def delete_project(self, project_id: str) -> None:
        """Kill a project's run and remove it. Unknown IDs are ignored."""
        handle = self.kill_project(project_id)
        self._wait_for(handle)
        self.state_store.remove_project(project_id)
        logger.info("Deleted project %s", project_id)
        self.snapshot()

    def wait(self, project_id: str, timeout: float | None = None) -> bool:
        """Wait for a project's in-flight run, if any, to finish.

        Returns:
            True if no run is executing afterwards.
        """
        handle = self.registry.get(project_id)
        if handle is None:
            return True
        return handle.join(timeout)

    def shutdown(self, timeout: float | None = None) -> None:
        """Cancel every in-flight run and wait for the threads to end."""
        handles = []
        for project_id in self.registry.active_ids():
            handle = self.kill_project(project_id)
            if handle is not None:
                handles.append(handle)
        for handle in handles:
            if not handle.join(timeout if timeout is not None else self.stop_timeout):
                logger.warning("Run of project %s did not stop in time", handle.project_id)

    def snapshot(self) -> bool:
        """Persist the store, logging instead of raising on failure.

        Returns:
            True if the snapshot was written.
        """
        try:
            self.state_store.snapshot()
        except SnapshotError:
            logger.exception("Snapshot failed")
            return False
        return True

    def _wait_for(self, handle: TaskHandle | None) -> None:
        if handle is not None and not handle.join(self.stop_timeout):
            logger.warning(
                "Run of project %s still running after %.1fs",
                handle.project_id,
                self.stop_timeout,
            )
