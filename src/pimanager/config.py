"""Runtime configuration for pi-manager."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

DEFAULT_ADDR = "127.0.0.1:8080"
DEFAULT_STATE_PATH = "/var/lib/pi-manager/state.json"


class ConfigError(Exception):
    """Raised when configuration is invalid."""


def _default_fs_base() -> str:
    home = os.path.expanduser("~")
    return home if home and home != "~" else "/"


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


@dataclass
class Settings:
    """Server settings.

    Attributes:
        addr: Bind address for the HTTP server, as "host:port".
        state_path: Path of the project snapshot file. The health history
            lives next to it with a "-history" suffix.
        allow_actions: Whether the API may execute project pipelines.
        fs_base: Directory the file-browser endpoint is confined to.
        snapshot_interval: Seconds between periodic snapshots.
        health_interval: Seconds between host health samples.
        stop_timeout: Seconds a stop request waits for a run to wind down.
        log_dir: Directory for log files (None = logging default).
        log_level: Log level name (None = logging default).
    """

    addr: str = DEFAULT_ADDR
    state_path: str = DEFAULT_STATE_PATH
    allow_actions: bool = False
    fs_base: str = field(default_factory=_default_fs_base)
    snapshot_interval: float = 30.0
    health_interval: float = 60.0
    stop_timeout: float = 5.0
    log_dir: str | None = None
    log_level: str | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check values for consistency.

        Raises:
            ConfigError: If any value is out of range.
        """
        self.host_port()
        for name in ("snapshot_interval", "health_interval"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.stop_timeout < 0:
            raise ConfigError("stop_timeout must not be negative")
        if not self.state_path:
            raise ConfigError("state_path must not be empty")

    def host_port(self) -> tuple[str, int]:
        """Split addr into host and port.

        Raises:
            ConfigError: If addr is not "host:port".
        """
        host, sep, port = self.addr.rpartition(":")
        if not sep or not port.isdigit():
            raise ConfigError(f"addr must look like host:port, got {self.addr!r}")
        return host or "0.0.0.0", int(port)

    @property
    def fs_base_path(self) -> Path:
        return Path(self.fs_base or "/").resolve()

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from PIMANAGER_* environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Returns:
            Settings with environment overrides applied.

        Raises:
            ConfigError: If a variable has an invalid value.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        if "PIMANAGER_ADDR" in env:
            values["addr"] = env["PIMANAGER_ADDR"]
        if "PIMANAGER_STATE" in env:
            values["state_path"] = env["PIMANAGER_STATE"]
        if "PIMANAGER_ALLOW_ACTIONS" in env:
            values["allow_actions"] = _parse_bool(
                "PIMANAGER_ALLOW_ACTIONS", env["PIMANAGER_ALLOW_ACTIONS"]
            )
        if "PIMANAGER_FS_BASE" in env:
            values["fs_base"] = env["PIMANAGER_FS_BASE"]
        for key, attr in (
            ("PIMANAGER_SNAPSHOT_INTERVAL", "snapshot_interval"),
            ("PIMANAGER_HEALTH_INTERVAL", "health_interval"),
            ("PIMANAGER_STOP_TIMEOUT", "stop_timeout"),
        ):
            if key in env:
                values[attr] = _parse_float(key, env[key])
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> Settings:
        """Return a copy with non-None overrides applied (e.g. CLI options)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)
