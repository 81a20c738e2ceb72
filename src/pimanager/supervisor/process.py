"""Step processes - Shell commands run in their own process group."""

from __future__ import annotations

import codecs
import logging
import os
import signal
import subprocess
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096


def describe_exit(returncode: int) -> str:
    """Describe a process exit code ("exit status 1", "signal: SIGKILL")."""
    if returncode < 0:
        try:
            return f"signal: {signal.Signals(-returncode).name}"
        except ValueError:
            return f"signal: {-returncode}"
    return f"exit status {returncode}"


class StepProcess:
    """Owning handle for one running pipeline step.

    The step runs as `sh -c <cmd>` in a new session, so it leads its own
    process group and everything it spawns can be killed together. The group
    is killed at most through kill_group(); release() marks the natural exit
    after which kill_group() does nothing.
    """

    def __init__(self, popen: subprocess.Popen[bytes]) -> None:
        self.popen = popen
        try:
            self.pgid = os.getpgid(popen.pid)
        except OSError:
            self.pgid = popen.pid
        self._lock = threading.Lock()
        self._released = False

    @classmethod
    def spawn(cls, cmd: str, cwd: str | None = None) -> StepProcess:
        """Start a shell command with stdout and stderr merged.

        Raises:
            OSError: If the process could not be started (e.g. bad cwd).
        """
        popen = subprocess.Popen(
            ["sh", "-c", cmd],
            cwd=cwd or None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
        logger.debug("Spawned pid %d: %s", popen.pid, cmd)
        return cls(popen)

    @property
    def pid(self) -> int:
        return self.popen.pid

    def stream(self, on_chunk: Callable[[str], None], chunk_size: int = CHUNK_SIZE) -> None:
        """Feed output to on_chunk as it arrives, until every writer closes the pipe."""
        stdout = self.popen.stdout
        if stdout is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        with stdout:
            while True:
                data = stdout.read1(chunk_size)
                if not data:
                    break
                text = decoder.decode(data)
                if text:
                    on_chunk(text)
        tail = decoder.decode(b"", final=True)
        if tail:
            on_chunk(tail)

    def wait(self) -> int:
        return self.popen.wait()

    def release(self) -> None:
        with self._lock:
            self._released = True

    def is_released(self) -> bool:
        with self._lock:
            return self._released

    def kill_group(self) -> bool:
        """SIGKILL the whole process group unless the step already exited.

        Returns:
            True if the signal was delivered.
        """
        with self._lock:
            if self._released:
                return False
            try:
                os.killpg(self.pgid, signal.SIGKILL)
            except ProcessLookupError:
                return False
            except PermissionError as e:
                logger.warning("Not allowed to kill process group %d: %s", self.pgid, e)
                return False
        logger.info("Killed process group %d", self.pgid)
        return True
