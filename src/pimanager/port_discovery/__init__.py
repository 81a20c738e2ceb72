"""Port Discovery - Best-effort mapping from a process tree to its listening port."""

from pimanager.port_discovery.discovery import (
    PortDiscovery,
    find_listening_port,
    kill_port_owners,
    process_group_pids,
)

__all__ = [
    "PortDiscovery",
    "find_listening_port",
    "kill_port_owners",
    "process_group_pids",
]
