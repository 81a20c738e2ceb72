"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003
from typing import Annotated

from fastapi import Depends

from pimanager.config import Settings
from pimanager.state_store import StateStore
from pimanager.supervisor import Supervisor

# Global StateStore instance (initialized on app startup)
_state_store: StateStore | None = None


def init_state_store(store: StateStore) -> StateStore:
    """Initialize the global StateStore instance."""
    global _state_store  # noqa: PLW0603
    _state_store = store
    return _state_store


def close_state_store() -> None:
    """Release the global StateStore instance."""
    global _state_store  # noqa: PLW0603
    _state_store = None


def get_state_store() -> Generator[StateStore, None, None]:
    """Dependency that provides the StateStore instance."""
    if _state_store is None:
        raise RuntimeError("StateStore not initialized. Call init_state_store() first.")
    yield _state_store


# Type alias for dependency injection
StateStoreDep = Annotated[StateStore, Depends(get_state_store)]

# Global Supervisor instance (initialized on app startup)
_supervisor: Supervisor | None = None


def init_supervisor(supervisor: Supervisor) -> None:
    """Initialize the global Supervisor instance."""
    global _supervisor  # noqa: PLW0603
    _supervisor = supervisor


def close_supervisor() -> None:
    """Release the global Supervisor instance."""
    global _supervisor  # noqa: PLW0603
    _supervisor = None


def get_supervisor() -> Generator[Supervisor, None, None]:
    """Dependency that provides the Supervisor instance."""
    if _supervisor is None:
        raise RuntimeError("Supervisor not initialized. Call init_supervisor() first.")
    yield _supervisor


# Type alias for dependency injection
SupervisorDep = Annotated[Supervisor, Depends(get_supervisor)]

# Global Settings instance
_settings: Settings | None = None


def init_settings(settings: Settings) -> None:
    """Initialize the global Settings instance."""
    global _settings  # noqa: PLW0603
    _settings = settings


def get_settings() -> Generator[Settings, None, None]:
    """Dependency that provides the active Settings."""
    if _settings is None:
        raise RuntimeError("Settings not initialized. Call init_settings() first.")
    yield _settings


# Type alias for dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
