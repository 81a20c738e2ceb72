"""REST API for pi-manager."""

from pimanager.api.app import app, create_app
from pimanager.api.models import (
    ActionResponse,
    APIResponse,
    ProjectCreate,
    ProjectResponse,
)

__all__ = [
    "APIResponse",
    "ActionResponse",
    "ProjectCreate",
    "ProjectResponse",
    "app",
    "create_app",
]
