"""Project CRUD endpoints."""

from fastapi import APIRouter, status

from pimanager.api.dependencies import StateStoreDep, SupervisorDep
from pimanager.api.models import (
    APIResponse,
    ProjectCreate,
    ProjectResponse,
    project_to_response,
)
from pimanager.state_store import Project

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=APIResponse[list[ProjectResponse]])
def list_projects(store: StateStoreDep) -> APIResponse[list[ProjectResponse]]:
    """List all projects."""
    projects = store.list_projects()
    return APIResponse(data=[project_to_response(p) for p in projects])


@router.post(
    "",
    response_model=APIResponse[ProjectResponse],
    status_code=status.HTTP_201_CREATED,
)
def save_project(
    project: ProjectCreate, supervisor: SupervisorDep
) -> APIResponse[ProjectResponse]:
    """Create a project, or replace the definition of an existing one."""
    saved = supervisor.save_project(
        Project(
            id=project.id,
            description=project.description,
            pipeline=project.pipeline,
            path=project.path,
            port=project.port,
        )
    )
    return APIResponse(data=project_to_response(saved))


@router.get("/{project_id}", response_model=APIResponse[ProjectResponse])
def get_project(project_id: str, store: StateStoreDep) -> APIResponse[ProjectResponse]:
    """Get a project by ID, including live status, progress and log."""
    project = store.get_project(project_id)
    return APIResponse(data=project_to_response(project))


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(project_id: str, supervisor: SupervisorDep) -> None:
    """Stop a project's processes and delete it."""
    supervisor.delete_project(project_id)
