"""Telemetry - Host health readings."""

from pimanager.telemetry.collector import (
    collect_host_info,
    collect_sample,
    format_uptime,
    read_temperature,
)

__all__ = [
    "collect_host_info",
    "collect_sample",
    "format_uptime",
    "read_temperature",
]
