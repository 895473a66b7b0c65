"""
Workflow Configuration Routes

CRUD for validation workflows and their ordered approval steps.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from ...deps import get_current_user_dep, get_correlation_id_dep
from ....domain.models import ActorContext
from ....services.workflow_service import WorkflowService
from ....utils.logger import get_logger
from .schemas import (
    CreateWorkflowBody, UpdateWorkflowBody, StepBody, StepUpdateBody, MoveStepBody, envelope
)

logger = get_logger(__name__)
router = APIRouter(prefix="/validation/workflows", tags=["Workflows"])


# =============================================================================
# Workflows
# =============================================================================

@router.get("")
async def list_workflows(
    trigger_type: Optional[str] = Query(None, alias="type"),
    active_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=500),
    actor: ActorContext = Depends(get_current_user_dep)
):
    service = WorkflowService()
    workflows, total = service.list_workflows(
        actor,
        trigger_type=trigger_type,
        active_only=active_only,
        skip=(page - 1) * page_size,
        limit=page_size
    )
    return envelope(
        [w.model_dump(mode="json") for w in workflows],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_workflow(
    body: CreateWorkflowBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Create a workflow; it stays inactive unless `is_active` is set"""
    service = WorkflowService()
    workflow = service.create_workflow(
        name=body.name,
        trigger_type=body.trigger_type,
        actor=actor,
        description=body.description,
        segment_id=body.segment_id,
        priority=body.priority,
        is_active=body.is_active,
        steps=[s.model_dump(exclude_none=True) for s in body.steps],
        correlation_id=correlation_id
    )
    return envelope(workflow.model_dump(mode="json"), message="Workflow created")


@router.get("/stats/summary")
async def workflow_stats(
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Totals for the workflow configuration page"""
    service = WorkflowService()
    return envelope(service.get_stats(actor))


@router.get("/{workflow_id}")
async def get_workflow(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_user_dep)
):
    service = WorkflowService()
    return envelope(service.get_workflow(workflow_id, actor).model_dump(mode="json"))


@router.put("/{workflow_id}")
async def update_workflow(
    workflow_id: str,
    body: UpdateWorkflowBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Update workflow metadata.

    Sending `steps` replaces the whole chain in the order given. Requests
    already submitted keep the chain they were created with.
    """
    service = WorkflowService()
    updates = body.model_dump(exclude_unset=True, exclude={"steps", "version"})
    steps = None
    if body.steps is not None:
        steps = [s.model_dump(exclude_none=True) for s in body.steps]

    workflow = service.update_workflow(
        workflow_id,
        updates,
        actor,
        steps=steps,
        expected_version=body.version,
        correlation_id=correlation_id
    )
    return envelope(workflow.model_dump(mode="json"), message="Workflow updated")


@router.delete("/{workflow_id}")
async def delete_workflow(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    service = WorkflowService()
    service.delete_workflow(workflow_id, actor, correlation_id=correlation_id)
    return envelope(None, message="Workflow deleted")


@router.put("/{workflow_id}/toggle")
async def toggle_workflow(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    service = WorkflowService()
    workflow = service.toggle_active(workflow_id, actor, correlation_id=correlation_id)
    state = "activated" if workflow.is_active else "deactivated"
    return envelope(workflow.model_dump(mode="json"), message=f"Workflow {state}")


# =============================================================================
# Steps
# =============================================================================

@router.post("/{workflow_id}/steps", status_code=status.HTTP_201_CREATED)
async def add_step(
    workflow_id: str,
    body: StepBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Append a step at the end of the chain"""
    service = WorkflowService()
    workflow, step = service.add_step(
        workflow_id,
        body.model_dump(exclude_none=True),
        actor,
        correlation_id=correlation_id
    )
    return envelope(
        workflow.model_dump(mode="json"),
        message="Step added",
        step=step.model_dump(mode="json")
    )


@router.put("/{workflow_id}/steps/{step_id}")
async def update_step(
    workflow_id: str,
    step_id: str,
    body: StepUpdateBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    service = WorkflowService()
    workflow, step = service.update_step(
        workflow_id,
        step_id,
        body.model_dump(exclude_unset=True),
        actor,
        correlation_id=correlation_id
    )
    return envelope(
        workflow.model_dump(mode="json"),
        message="Step updated",
        step=step.model_dump(mode="json")
    )


@router.delete("/{workflow_id}/steps/{step_id}")
async def delete_step(
    workflow_id: str,
    step_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Remove a step; later steps shift up by one"""
    service = WorkflowService()
    workflow = service.delete_step(workflow_id, step_id, actor, correlation_id=correlation_id)
    return envelope(workflow.model_dump(mode="json"), message="Step deleted")


@router.post("/{workflow_id}/steps/{step_id}/move")
async def move_step(
    workflow_id: str,
    step_id: str,
    body: MoveStepBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    service = WorkflowService()
    workflow = service.move_step(
        workflow_id,
        step_id,
        body.direction,
        actor,
        correlation_id=correlation_id
    )
    return envelope(workflow.model_dump(mode="json"), message="Step moved")
