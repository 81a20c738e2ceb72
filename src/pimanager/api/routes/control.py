"""Control endpoints for starting and stopping project pipelines."""

from fastapi import APIRouter

from pimanager.api.dependencies import SupervisorDep
from pimanager.api.models import APIResponse, ActionResponse

router = APIRouter(prefix="/projects", tags=["control"])


@router.post("/{project_id}/start", response_model=APIResponse[ActionResponse])
def start_project(project_id: str, supervisor: SupervisorDep) -> APIResponse[ActionResponse]:
    """Start a project's pipeline in the background."""
    supervisor.start_project(project_id)
    return APIResponse(data=ActionResponse(status="started"))


@router.post("/{project_id}/stop", response_model=APIResponse[ActionResponse])
def stop_project(project_id: str, supervisor: SupervisorDep) -> APIResponse[ActionResponse]:
    """Stop a project's pipeline and reset it to IDLE."""
    supervisor.stop_project(project_id)
    return APIResponse(data=ActionResponse(status="stopped"))
