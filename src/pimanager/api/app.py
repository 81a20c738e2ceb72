"""FastAPI application setup."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pimanager.api.dependencies import (
    close_state_store,
    close_supervisor,
    init_settings,
    init_state_store,
    init_supervisor,
)
from pimanager.api.models import APIResponse
from pimanager.api.routes import control, projects, system
from pimanager.api.worker import BackgroundWorker
from pimanager.config import Settings
from pimanager.state_store import ProjectNotFoundError, StateStore, StateStoreError
from pimanager.supervisor import (
    ActionsDisabledError,
    ProjectAlreadyRunningError,
    Supervisor,
    SupervisorError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    settings: Settings = app.state.settings or Settings.from_env()
    init_settings(settings)

    store = StateStore(settings.state_path)
    store.load()
    init_state_store(store)

    supervisor = Supervisor(
        state_store=store,
        allow_actions=settings.allow_actions,
        stop_timeout=settings.stop_timeout,
    )
    init_supervisor(supervisor)

    worker = BackgroundWorker(
        state_store=store,
        snapshot_interval=settings.snapshot_interval,
        health_interval=settings.health_interval,
    )
    worker.start()
    app.state.started_at = time.monotonic()
    logger.info("pi-manager started (actions %s)", "enabled" if settings.allow_actions else "disabled")

    yield
    # Shutdown
    worker.stop()
    supervisor.shutdown()
    if not supervisor.snapshot():
        logger.error("Snapshot on exit failed")
    close_supervisor()
    close_state_store()
    logger.info("pi-manager stopped")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIResponse[None](data=None, error=message).model_dump(),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Server settings. Read from the environment at startup if omitted.
    """
    app = FastAPI(
        title="pi-manager API",
        description="REST API for pi-manager - project pipeline supervisor",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ProjectNotFoundError)
    async def project_not_found_handler(
        _request: Request, _exc: ProjectNotFoundError
    ) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, "not found")

    @app.exception_handler(ProjectAlreadyRunningError)
    async def already_running_handler(
        _request: Request, _exc: ProjectAlreadyRunningError
    ) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, "project already running")

    @app.exception_handler(ActionsDisabledError)
    async def actions_disabled_handler(
        _request: Request, _exc: ActionsDisabledError
    ) -> JSONResponse:
        return _error(status.HTTP_403_FORBIDDEN, "actions disabled")

    @app.exception_handler(StateStoreError)
    async def state_store_error_handler(_request: Request, _exc: StateStoreError) -> JSONResponse:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    @app.exception_handler(SupervisorError)
    async def supervisor_error_handler(_request: Request, _exc: SupervisorError) -> JSONResponse:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    # Include routers
    app.include_router(system.router, prefix="/api/v1")
    app.include_router(projects.router, prefix="/api/v1")
    app.include_router(control.router, prefix="/api/v1")

    return app


# Default app instance
app = create_app()
