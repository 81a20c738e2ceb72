"""Server info, health and file-browser endpoints."""

import os
import time
from datetime import UTC, datetime
from pathlib import Path

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse

from pimanager.api.dependencies import SettingsDep, StateStoreDep
from pimanager.api.models import (
    APIResponse,
    DirectoryEntry,
    DirectoryListing,
    HealthResponse,
    HostHealthResponse,
    ServerInfoResponse,
)
from pimanager.telemetry import collect_host_info

router = APIRouter(tags=["system"])

SERVER_NAME = "pi-manager"
SERVER_VERSION = "0.1.0"

# Directories the file browser never shows
HIDDEN_DIRECTORIES = {"go", "snap", "node_modules"}


@router.get("/", response_model=APIResponse[ServerInfoResponse])
def server_info(request: Request) -> APIResponse[ServerInfoResponse]:
    """Report server name, version and uptime."""
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return APIResponse(
        data=ServerInfoResponse(
            name=SERVER_NAME,
            version=SERVER_VERSION,
            uptime_s=int(time.monotonic() - started_at),
        )
    )


@router.get("/health", response_model=APIResponse[HealthResponse])
def health() -> APIResponse[HealthResponse]:
    """Liveness check."""
    return APIResponse(
        data=HealthResponse(ok=True, last_check=datetime.now(UTC).isoformat(timespec="seconds"))
    )


@router.get("/pi-health", response_model=APIResponse[HostHealthResponse])
def host_health(store: StateStoreDep) -> APIResponse[HostHealthResponse]:
    """Current host health plus the recorded sample history."""
    info = collect_host_info()
    return APIResponse(data=HostHealthResponse(**info, history=store.get_history()))


@router.get("/fs", response_model=APIResponse[DirectoryListing])
def list_directories(
    settings: SettingsDep,
    path: str = Query(default="", description="Path relative to the browse base"),
) -> APIResponse[DirectoryListing] | JSONResponse:
    """List visible sub-directories below the configured base path."""
    base = settings.fs_base_path
    target = (base / path.lstrip("/")).resolve()
    if target != base and base not in target.parents:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=APIResponse[None](data=None, error="path outside allowed base").model_dump(),
        )
    if not target.is_dir():
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=APIResponse[None](
                data=None, error="not found or not a directory"
            ).model_dump(),
        )

    entries = []
    try:
        with os.scandir(target) as it:
            listing = sorted(it, key=lambda e: e.name)
    except PermissionError:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=APIResponse[None](data=None, error="permission denied").model_dump(),
        )

    for entry in listing:
        if entry.name.startswith(".") or entry.name in HIDDEN_DIRECTORIES:
            continue
        if not entry.is_dir():
            continue
        full = Path(entry.path)
        entries.append(
            DirectoryEntry(
                name=entry.name,
                path=str(full.relative_to(base)),
                abs_path=str(full),
            )
        )
    return APIResponse(data=DirectoryListing(current_path=str(target), entries=entries))
