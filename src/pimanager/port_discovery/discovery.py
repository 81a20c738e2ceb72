"""Port Discovery - Find the TCP port a process tree is listening on."""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import TYPE_CHECKING

import psutil

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from pimanager.supervisor.registry import CancellationToken

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0
DEFAULT_ATTEMPTS = 30


def process_group_pids(pid: int) -> list[int]:
    """Collect a process, its descendants and its process group members.

    Pipeline steps lead their own session, so once the root has exited and
    been reaped its pid is still the group ID of anything it left running.

    Args:
        pid: Root process ID.

    Returns:
        Process IDs with the root first. Processes that vanish or cannot be
        inspected are skipped.
    """
    pids = [pid]
    try:
        for child in psutil.Process(pid).children(recursive=True):
            if child.pid not in pids:
                pids.append(child.pid)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        pass

    try:
        pgid = os.getpgid(pid)
    except OSError:
        pgid = pid

    for proc in psutil.process_iter(["pid"]):
        try:
            if proc.pid not in pids and os.getpgid(proc.pid) == pgid:
                pids.append(proc.pid)
        except OSError:
            continue
    return pids


def _listening_ports(pids: Iterable[int]) -> list[int]:
    wanted = set(pids)
    try:
        connections = [c for c in psutil.net_connections(kind="tcp") if c.pid in wanted]
    except psutil.AccessDenied:
        # System-wide listing needs privileges on some platforms; fall back to
        # asking each process for its own sockets.
        connections = []
        for pid in wanted:
            try:
                connections.extend(psutil.Process(pid).net_connections(kind="tcp"))
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
    return [c.laddr.port for c in connections if c.status == psutil.CONN_LISTEN and c.laddr]


def find_listening_port(pid: int) -> str:
    """Find a listening TCP port owned by a process tree.

    The bind address (IPv4, IPv6, wildcard) is ignored; only the port is kept.

    Args:
        pid: Root process ID.

    Returns:
        The first listening port as a string, or "" if none was found.
    """
    try:
        ports = _listening_ports(process_group_pids(pid))
    except psutil.Error as e:
        logger.debug("Port lookup for pid %d failed: %s", pid, e)
        return ""
    return str(ports[0]) if ports else ""


def kill_port_owners(port: str) -> list[int]:
    """Kill every process holding a socket bound locally to a port.

    This server's own process is never killed.

    Args:
        port: TCP/UDP port number as a string.

    Returns:
        Sorted process IDs that were sent SIGKILL.
    """
    if not port.isdigit():
        return []
    target = int(port)
    own_pid = os.getpid()

    try:
        connections = psutil.net_connections(kind="inet")
    except psutil.AccessDenied as e:
        logger.warning("Cannot list sockets to free port %s: %s", port, e)
        return []

    owners = {c.pid for c in connections if c.pid and c.laddr and c.laddr.port == target}
    owners.discard(own_pid)

    killed = []
    for pid in sorted(owners):
        try:
            psutil.Process(pid).kill()
            killed.append(pid)
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            logger.debug("Could not kill pid %d on port %s: %s", pid, port, e)
    if killed:
        logger.info("Killed pids %s bound to port %s", killed, port)
    return killed


class PortDiscovery:
    """Polls for the port a started process ends up listening on.

    Discovery is best effort: after the configured number of attempts it
    gives up silently and the project simply has no known port.
    """

    def __init__(
        self,
        find_port: Callable[[int], str] = find_listening_port,
        interval: float = DEFAULT_INTERVAL,
        attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        """Initialize Port Discovery.

        Args:
            find_port: Lookup from root pid to port string ("" if none).
            interval: Seconds to wait before each attempt.
            attempts: Maximum number of attempts.
        """
        self.find_port = find_port
        self.interval = interval
        self.attempts = attempts

    def poll(self, pid: int, token: CancellationToken | None = None) -> str | None:
        """Poll until a port is found, attempts run out, or the token is cancelled.

        Args:
            pid: Root process ID to inspect.
            token: Optional cancellation token that ends polling early.

        Returns:
            The discovered port, or None.
        """
        for attempt in range(1, self.attempts + 1):
            if token is not None:
                if token.wait(timeout=self.interval):
                    return None
            else:
                time.sleep(self.interval)

            port = self.find_port(pid)
            if port:
                logger.debug("Discovered port %s for pid %d (attempt %d)", port, pid, attempt)
                return port
        logger.debug("No listening port found for pid %d", pid)
        return None

    def start(
        self,
        pid: int,
        on_port: Callable[[str], None],
        token: CancellationToken | None = None,
    ) -> threading.Thread:
        """Poll on a daemon thread and hand a found port to on_port once."""

        def run() -> None:
            port = self.poll(pid, token)
            if port:
                on_port(port)

        thread = threading.Thread(target=run, name=f"port-discovery-{pid}", daemon=True)
        thread.start()
        return thread
