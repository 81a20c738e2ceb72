"""Background workers for periodic snapshots and health sampling."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from pimanager.state_store import SnapshotError
from pimanager.telemetry import collect_sample

if TYPE_CHECKING:
    from collections.abc import Callable

    from pimanager.state_store import HealthSample, StateStore

logger = logging.getLogger(__name__)


class BackgroundWorker:
    """Runs the periodic snapshot and health sampling threads.

    The first health sample is taken as soon as the worker starts.
    """

    def __init__(
        self,
        state_store: StateStore,
        snapshot_interval: float = 30.0,
        health_interval: float = 60.0,
        sampler: Callable[[], HealthSample] = collect_sample,
    ) -> None:
        """Initialize the worker.

        Args:
            state_store: Store to snapshot and to append samples to.
            snapshot_interval: Seconds between snapshots.
            health_interval: Seconds between health samples.
            sampler: Produces one health sample.
        """
        self.state_store = state_store
        self.snapshot_interval = snapshot_interval
        self.health_interval = health_interval
        self.sampler = sampler
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        """Start both loops. Calling start on a running worker does nothing."""
        if self.running:
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(target=self._snapshot_loop, name="snapshot-worker", daemon=True),
            threading.Thread(target=self._health_loop, name="health-worker", daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        logger.info(
            "Started background worker (snapshot every %.0fs, health every %.0fs)",
            self.snapshot_interval,
            self.health_interval,
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal both loops to exit and wait for them."""
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        logger.info("Stopped background worker")

    def _snapshot_loop(self) -> None:
        while not self._stop.wait(self.snapshot_interval):
            try:
                self.state_store.snapshot()
            except SnapshotError:
                logger.exception("Periodic snapshot failed")

    def _health_loop(self) -> None:
        self.record_sample()
        while not self._stop.wait(self.health_interval):
            self.record_sample()

    def record_sample(self) -> None:
        """Take one health sample and append it to the history."""
        try:
            sample = self.sampler()
        except Exception as e:
            logger.exception("Health sampling failed: %s", e)
            return
        self.state_store.add_health_sample(sample)
