"""Pipeline run - Executes one project's steps on a background thread."""

from __future__ import annotations

import io
import logging
import threading
from typing import TYPE_CHECKING

from pimanager.logging import truncate_output
from pimanager.state_store import (
    ProjectNotFoundError,
    ProjectStatus,
    SnapshotError,
)
from pimanager.supervisor.process import StepProcess, describe_exit

if TYPE_CHECKING:
    from pimanager.port_discovery import PortDiscovery
    from pimanager.state_store import PipelineStep, Project, StateStore
    from pimanager.supervisor.registry import TaskHandle, TaskRegistry

logger = logging.getLogger(__name__)

STEP_MARKER = "===> [{index}/{total}] Running Step: {name}\n"
START_FAILURE_MARKER = "Failed to start: {error}\n"
STEP_ERROR_MARKER = "\nERROR in step '{name}': {error}\n"
STEP_SEPARATOR = "\n"
STOPPED_MARKER = "\nStopped by user.\n"

# Fields a run owns; the definition fields belong to whoever saves the project
RUN_FIELDS = ("status", "current_step", "progress", "last_log")

WATCHER_JOIN_TIMEOUT = 1.0


class PipelineRun:
    """One execution of a project's pipeline.

    The run keeps a private working copy of the project. Every change to it
    (step and progress, each output chunk, a discovered port, the terminal
    status) happens under the run lock and is immediately published to the
    store. Only the run-owned fields are published, so a definition saved
    mid-run survives and applies to the next start. Publishing stops once a
    newer run owns the project, and a project deleted mid-run is never
    written back.
    """

    def __init__(
        self,
        project: Project,
        handle: TaskHandle,
        store: StateStore,
        registry: TaskRegistry,
        port_discovery: PortDiscovery,
    ) -> None:
        self.project = project.model_copy(deep=True)
        self.handle = handle
        self.store = store
        self.registry = registry
        self.port_discovery = port_discovery
        self.lock = threading.Lock()
        self._log = io.StringIO()
        self._log.write(self.project.last_log)

    @property
    def project_id(self) -> str:
        return self.project.id

    def execute(self) -> ProjectStatus:
        """Run every step in order, then record the terminal status.

        Returns:
            The terminal status written to the store.
        """
        steps = list(self.project.pipeline)
        total = len(steps)
        failed = False
        logger.info("Run started for project %s (%d steps)", self.project_id, total)

        try:
            for index, step in enumerate(steps, start=1):
                if self.handle.cancelled:
                    logger.info("Run for project %s cancelled before step %d", self.project_id, index)
                    break

                with self.lock:
                    self.project.current_step = step.name
                    self.project.progress = index * 100 // total
                    self._publish()
                self.append_log(STEP_MARKER.format(index=index, total=total, name=step.name))

                if not self._run_step(step):
                    failed = True
                    break
        except Exception as e:
            logger.exception("Run for project %s crashed", self.project_id)
            self.append_log(f"\nInternal error: {e}\n")
            failed = True

        return self._finish(failed)

    def append_log(self, text: str) -> None:
        """Append output to the run log and publish it."""
        with self.lock:
            self._write_log(text)
            self._publish()

    def _write_log(self, text: str) -> None:
        self._log.write(text)
        self.project.last_log = self._log.getvalue()

    def _publish(self, *extra_fields: str) -> None:
        """Write the run-owned fields to the store. Caller holds the run lock."""
        current = self.registry.get(self.project_id)
        if current is not None and current is not self.handle:
            return
        changes = {name: getattr(self.project, name) for name in (*RUN_FIELDS, *extra_fields)}
        self.store.update_project(self.project_id, changes)

    def _run_step(self, step: PipelineStep) -> bool:
        """Run one step to completion.

        Returns:
            True if the step exited cleanly.
        """
        try:
            process = StepProcess.spawn(step.cmd, cwd=self.project.path or None)
        except OSError as e:
            logger.error(
                "Step %r of project %s failed to start: %s",
                step.name,
                self.project_id,
                truncate_output(str(e)),
            )
            self.append_log(START_FAILURE_MARKER.format(error=e))
            return False

        with self.lock:
            needs_port = not self.project.port
        if needs_port:
            self.port_discovery.start(process.pid, self.set_discovered_port, self.handle.token)

        watcher = threading.Thread(
            target=self._watch_cancellation,
            args=(process,),
            name=f"cancel-watcher-{self.project_id}",
            daemon=True,
        )
        watcher.start()

        with self.lock:
            output_start = len(self.project.last_log)
        try:
            process.stream(self.append_log)
            returncode = process.wait()
        finally:
            process.release()
            self.handle.token.wake()
        watcher.join(WATCHER_JOIN_TIMEOUT)

        if returncode != 0:
            error = describe_exit(returncode)
            with self.lock:
                output = self.project.last_log[output_start:]
            logger.warning(
                "Step %r of project %s failed: %s\n%s",
                step.name,
                self.project_id,
                error,
                truncate_output(output),
            )
            self.append_log(STEP_ERROR_MARKER.format(name=step.name, error=error))
            return False

        self.append_log(STEP_SEPARATOR)
        return True

    def _watch_cancellation(self, process: StepProcess) -> None:
        if self.handle.token.wait(until=process.is_released):
            process.kill_group()

    def set_discovered_port(self, port: str) -> None:
        """Record a discovered port, first writer wins.

        Ignored once the run is no longer booting or active, or when a port
        has been set by any other means.
        """
        with self.lock:
            if self.project.status not in (ProjectStatus.BOOTING, ProjectStatus.ACTIVE):
                return
            if self.project.port:
                return
            try:
                if self.store.get_project(self.project_id).port:
                    return
            except ProjectNotFoundError:
                return
            self.project.port = port
            self._publish("port")
        logger.info("Project %s is listening on port %s", self.project_id, port)

    def _finish(self, failed: bool) -> ProjectStatus:
        stopped = self.handle.cancelled or self.registry.get(self.project_id) is not self.handle

        with self.lock:
            self.project.current_step = ""
            if stopped:
                self.project.status = ProjectStatus.IDLE
                self.project.progress = 0
                self._write_log(STOPPED_MARKER)
            elif failed:
                self.project.status = ProjectStatus.FAILED
            else:
                self.project.status = ProjectStatus.ACTIVE
            status = self.project.status
            self._publish()

        self.registry.remove(self.project_id, self.handle)
        logger.info("Run finished for project %s: %s", self.project_id, status.value)

        try:
            self.store.snapshot()
        except SnapshotError:
            logger.exception("Snapshot after run of project %s failed", self.project_id)
        return status
