"""Shared pytest fixtures and configuration."""

from collections.abc import Callable
from pathlib import Path

import pytest

from pimanager.state_store import PipelineStep, Project, StateStore


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    """Snapshot path inside a temporary directory."""
    return tmp_path / "state.json"


@pytest.fixture
def store(state_path: Path) -> StateStore:
    """Create an empty StateStore backed by a temporary directory."""
    return StateStore(state_path)


@pytest.fixture
def make_project() -> Callable[..., Project]:
    """Factory for projects whose steps are given as (name, cmd) pairs."""

    def factory(project_id: str = "app", *steps: tuple[str, str], **fields: object) -> Project:
        pipeline = [PipelineStep(name=name, cmd=cmd) for name, cmd in steps]
        return Project(id=project_id, pipeline=pipeline, **fields)

    return factory
