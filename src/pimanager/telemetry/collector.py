"""Host health readings via psutil."""

from __future__ import annotations

import logging
import socket
import time
from datetime import UTC, datetime
from typing import Any

import psutil

from pimanager.state_store import HealthSample

logger = logging.getLogger(__name__)

CPU_SAMPLE_SECONDS = 0.1


def _percent(used: float, total: float) -> float:
    return used / total * 100 if total > 0 else 0.0


def read_temperature() -> float:
    """Return the first available sensor temperature in Celsius, or 0.0."""
    sensors = getattr(psutil, "sensors_temperatures", None)
    if sensors is None:
        return 0.0
    try:
        readings = sensors()
    except (OSError, RuntimeError) as e:
        logger.debug("Temperature sensors unavailable: %s", e)
        return 0.0
    # Raspberry Pi exposes the SoC sensor as cpu_thermal
    for name in ("cpu_thermal", "coretemp", *readings):
        entries = readings.get(name)
        if entries:
            return float(entries[0].current)
    return 0.0


def format_uptime(seconds: float) -> str:
    """Format seconds as "2d 3h 4m", "3h 4m" or "4m"."""
    secs = int(seconds)
    days, hours, mins = secs // 86400, (secs % 86400) // 3600, (secs % 3600) // 60
    if days > 0:
        return f"{days}d {hours}h {mins}m"
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def collect_sample() -> HealthSample:
    """Take one health sample for the history."""
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage("/")
    return HealthSample(
        time=datetime.now(UTC),
        cpu_usage=psutil.cpu_percent(interval=CPU_SAMPLE_SECONDS),
        memory_percent=_percent(memory.total - memory.available, memory.total),
        temperature=read_temperature(),
        disk_percent=_percent(disk.used, disk.total),
    )


def collect_host_info() -> dict[str, Any]:
    """Read the current host health for the dashboard."""
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage("/")
    load1, load5, load15 = psutil.getloadavg()
    memory_used = memory.total - memory.available
    return {
        "hostname": socket.gethostname(),
        "cpu_usage": psutil.cpu_percent(interval=CPU_SAMPLE_SECONDS),
        "memory_total": memory.total,
        "memory_used": memory_used,
        "memory_percent": _percent(memory_used, memory.total),
        "temperature": read_temperature(),
        "disk_total": disk.total,
        "disk_used": disk.used,
        "disk_percent": _percent(disk.used, disk.total),
        "load_avg_1": load1,
        "load_avg_5": load5,
        "load_avg_15": load15,
        "uptime": format_uptime(time.time() - psutil.boot_time()),
    }
