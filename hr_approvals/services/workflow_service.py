"""Workflow Service - Validation workflow and step configuration"""
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..config.settings import settings
from ..domain.models import ValidationWorkflow, WorkflowStep, ActorContext
from ..domain.enums import AuditEventType, Capability, MoveDirection
from ..domain.errors import (
    ValidationError, StepNotFoundError, StepBoundaryError, WorkflowInUseError
)
from ..repositories.workflow_repo import WorkflowRepository
from ..repositories.request_repo import RequestRepository
from ..engine.permission_guard import PermissionGuard
from ..engine.audit_writer import AuditWriter
from ..utils.idgen import generate_workflow_id, generate_workflow_step_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Fields a caller may set on a step; order and ids are owned by the service
STEP_FIELDS = (
    "approver_type", "approver_id", "approver_role", "approver_name",
    "timeout_hours", "reminder_hours", "allow_delegation",
)
WORKFLOW_FIELDS = ("name", "description", "trigger_type", "segment_id", "priority", "is_active")


def _field_errors(e: PydanticValidationError) -> Dict[str, Any]:
    return {"errors": [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in e.errors()
    ]}


class WorkflowService:
    """
    Service for validation workflow templates.

    Steps are embedded in the workflow document. Every mutation rewrites
    the full step list in one version-checked update and renumbers it
    1..N, so the order indices stay dense.
    """

    def __init__(
        self,
        repo: Optional[WorkflowRepository] = None,
        request_repo: Optional[RequestRepository] = None,
        permission_guard: Optional[PermissionGuard] = None,
        audit_writer: Optional[AuditWriter] = None
    ):
        self.repo = repo or WorkflowRepository()
        self.request_repo = request_repo or RequestRepository()
        self.permission_guard = permission_guard or PermissionGuard()
        self.audit_writer = audit_writer or AuditWriter()

    # =========================================================================
    # Workflows
    # =========================================================================

    def create_workflow(
        self,
        name: str,
        trigger_type: str,
        actor: ActorContext,
        description: Optional[str] = None,
        segment_id: Optional[str] = None,
        priority: int = 0,
        is_active: bool = False,
        steps: Optional[List[Dict[str, Any]]] = None,
        correlation_id: Optional[str] = None
    ) -> ValidationWorkflow:
        """Create a workflow, optionally with an initial step list"""
        self.permission_guard.require(actor, Capability.MANAGE_WORKFLOWS)

        now = utc_now()
        workflow_id = generate_workflow_id()
        workflow = ValidationWorkflow(
            workflow_id=workflow_id,
            name=name,
            description=description,
            trigger_type=trigger_type,
            segment_id=segment_id,
            priority=priority,
            is_active=is_active,
            steps=self._build_steps(workflow_id, steps or []),
            created_by=actor.snapshot(),
            created_at=now,
            updated_at=now,
            version=1
        )

        self.repo.create_workflow(workflow)
        self.audit_writer.write_workflow_change(
            workflow_id,
            AuditEventType.CREATE_WORKFLOW,
            actor,
            details={"name": name, "trigger_type": trigger_type, "steps": len(workflow.steps)},
            correlation_id=correlation_id
        )
        return workflow

    def get_workflow(self, workflow_id: str, actor: ActorContext) -> ValidationWorkflow:
        """Get workflow by ID"""
        self.permission_guard.require(actor, Capability.VIEW_WORKFLOWS)
        return self.repo.get_workflow_or_raise(workflow_id)

    def list_workflows(
        self,
        actor: ActorContext,
        trigger_type: Optional[str] = None,
        active_only: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[ValidationWorkflow], int]:
        """List workflows with total count"""
        self.permission_guard.require(actor, Capability.VIEW_WORKFLOWS)
        workflows = self.repo.list_workflows(
            trigger_type=trigger_type,
            active_only=active_only,
            skip=skip,
            limit=limit
        )
        total = self.repo.count_workflows(trigger_type=trigger_type, active_only=active_only)
        return workflows, total

    def update_workflow(
        self,
        workflow_id: str,
        updates: Dict[str, Any],
        actor: ActorContext,
        steps: Optional[List[Dict[str, Any]]] = None,
        expected_version: Optional[int] = None,
        correlation_id: Optional[str] = None
    ) -> ValidationWorkflow:
        """
        Update workflow metadata.

        When `steps` is given the whole step list is replaced and renumbered
        in the given order.
        """
        self.permission_guard.require(actor, Capability.MANAGE_WORKFLOWS)
        workflow = self.repo.get_workflow_or_raise(workflow_id)
        version = expected_version if expected_version is not None else workflow.version

        fields = {k: v for k, v in updates.items() if k in WORKFLOW_FIELDS}
        if "name" in fields and not (fields["name"] or "").strip():
            raise ValidationError("Workflow name cannot be empty")
        if "trigger_type" in fields and not (fields["trigger_type"] or "").strip():
            raise ValidationError("Workflow trigger_type cannot be empty")
        self._check_workflow_fields(workflow, fields)
        if steps is not None:
            fields["steps"] = [
                s.model_dump(mode="json") for s in self._build_steps(workflow_id, steps)
            ]

        if not fields:
            return workflow

        updated = self.repo.update_workflow(workflow_id, fields, expected_version=version)
        self.audit_writer.write_workflow_change(
            workflow_id,
            AuditEventType.UPDATE_WORKFLOW,
            actor,
            details={"fields": sorted(fields.keys())},
            correlation_id=correlation_id
        )
        return updated

    def toggle_active(
        self,
        workflow_id: str,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> ValidationWorkflow:
        """Flip is_active; requests already submitted keep their chain"""
        self.permission_guard.require(actor, Capability.MANAGE_WORKFLOWS)
        workflow = self.repo.get_workflow_or_raise(workflow_id)

        updated = self.repo.update_workflow(
            workflow_id,
            {"is_active": not workflow.is_active},
            expected_version=workflow.version
        )
        self.audit_writer.write_workflow_change(
            workflow_id,
            AuditEventType.TOGGLE_WORKFLOW,
            actor,
            details={"is_active": updated.is_active},
            correlation_id=correlation_id
        )
        logger.info(
            f"Workflow {'activated' if updated.is_active else 'deactivated'}",
            extra={"workflow_id": workflow_id, "actor_id": actor.user_id}
        )
        return updated

    def delete_workflow(
        self,
        workflow_id: str,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> bool:
        """
        Delete a workflow and its steps.

        Refused while any open request was bound to it. Closed requests keep
        their own chain snapshot and provenance fields.
        """
        self.permission_guard.require(actor, Capability.MANAGE_WORKFLOWS)
        workflow = self.repo.get_workflow_or_raise(workflow_id)

        in_flight = self.request_repo.count_open_for_workflow(workflow_id)
        if in_flight:
            raise WorkflowInUseError(
                f"Workflow '{workflow.name}' is used by {in_flight} open request(s)",
                details={"workflow_id": workflow_id, "open_requests": in_flight}
            )

        success = self.repo.delete_workflow(workflow_id)
        if success:
            self.audit_writer.write_workflow_change(
                workflow_id,
                AuditEventType.DELETE_WORKFLOW,
                actor,
                details={"name": workflow.name},
                correlation_id=correlation_id
            )
        return success

    def get_stats(self, actor: ActorContext) -> Dict[str, int]:
        """Workflow counts and the number of requests still awaiting a decision"""
        self.permission_guard.require(actor, Capability.VIEW_WORKFLOWS)
        total = self.repo.count_workflows()
        active = self.repo.count_workflows(active_only=True)
        return {
            "total": total,
            "active": active,
            "inactive": total - active,
            "trigger_types": len(self.repo.list_trigger_types()),
            "pending_requests": self.request_repo.count_open(),
        }

    # =========================================================================
    # Steps
    # =========================================================================

    def add_step(
        self,
        workflow_id: str,
        step_data: Dict[str, Any],
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> Tuple[ValidationWorkflow, WorkflowStep]:
        """Append a step at position N+1"""
        self.permission_guard.require(actor, Capability.MANAGE_WORKFLOWS)
        workflow = self.repo.get_workflow_or_raise(workflow_id)

        steps = workflow.ordered_steps()
        new_step = self._make_step(workflow_id, len(steps) + 1, step_data)
        steps.append(new_step)

        updated = self.repo.replace_steps(workflow_id, steps, workflow.version)
        self._audit_step(updated, AuditEventType.ADD_STEP, new_step, actor, correlation_id)
        return updated, new_step

    def update_step(
        self,
        workflow_id: str,
        step_id: str,
        step_data: Dict[str, Any],
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> Tuple[ValidationWorkflow, WorkflowStep]:
        """Edit approver and timing fields; the order is unchanged"""
        self.permission_guard.require(actor, Capability.MANAGE_WORKFLOWS)
        workflow = self.repo.get_workflow_or_raise(workflow_id)
        current = self._get_step_or_raise(workflow, step_id)

        merged = current.model_dump()
        merged.update({k: v for k, v in step_data.items() if k in STEP_FIELDS})
        edited = self._validate_step(merged)

        steps = [edited if s.step_id == step_id else s for s in workflow.ordered_steps()]
        updated = self.repo.replace_steps(workflow_id, steps, workflow.version)
        self._audit_step(updated, AuditEventType.UPDATE_STEP, edited, actor, correlation_id)
        return updated, edited

    def move_step(
        self,
        workflow_id: str,
        step_id: str,
        direction: MoveDirection,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> ValidationWorkflow:
        """Swap a step with its neighbour"""
        self.permission_guard.require(actor, Capability.MANAGE_WORKFLOWS)
        workflow = self.repo.get_workflow_or_raise(workflow_id)
        step = self._get_step_or_raise(workflow, step_id)

        steps = workflow.ordered_steps()
        index = step.order - 1
        target = index - 1 if direction == MoveDirection.UP else index + 1
        if target < 0 or target >= len(steps):
            raise StepBoundaryError(
                f"Step {step.order} cannot move {direction.value}",
                details={"step_id": step_id, "order": step.order, "total_steps": len(steps)}
            )

        steps[index], steps[target] = steps[target], steps[index]
        updated = self.repo.replace_steps(workflow_id, self._renumber(steps), workflow.version)

        moved = updated.get_step(step_id)
        self._audit_step(updated, AuditEventType.MOVE_STEP, moved, actor, correlation_id)
        return updated

    def delete_step(
        self,
        workflow_id: str,
        step_id: str,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> ValidationWorkflow:
        """Remove a step and close the gap it leaves"""
        self.permission_guard.require(actor, Capability.MANAGE_WORKFLOWS)
        workflow = self.repo.get_workflow_or_raise(workflow_id)
        removed = self._get_step_or_raise(workflow, step_id)

        remaining = [s for s in workflow.ordered_steps() if s.step_id != step_id]
        updated = self.repo.replace_steps(workflow_id, self._renumber(remaining), workflow.version)
        self._audit_step(updated, AuditEventType.DELETE_STEP, removed, actor, correlation_id)
        return updated

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_step_or_raise(self, workflow: ValidationWorkflow, step_id: str) -> WorkflowStep:
        step = workflow.get_step(step_id)
        if step is None:
            raise StepNotFoundError(
                f"Step {step_id} not found in workflow {workflow.workflow_id}",
                details={"workflow_id": workflow.workflow_id, "step_id": step_id}
            )
        return step

    def _check_workflow_fields(self, workflow: ValidationWorkflow, fields: Dict[str, Any]) -> None:
        """Validate the workflow as it would be stored, before writing anything"""
        merged = workflow.model_dump()
        merged.update({k: v for k, v in fields.items() if k != "steps"})
        try:
            ValidationWorkflow.model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError("Invalid workflow update", details=_field_errors(e))

    def _validate_step(self, data: Dict[str, Any]) -> WorkflowStep:
        try:
            return WorkflowStep.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError("Invalid step definition", details=_field_errors(e))

    def _make_step(self, workflow_id: str, order: int, step_data: Dict[str, Any]) -> WorkflowStep:
        data = {k: v for k, v in step_data.items() if k in STEP_FIELDS and v is not None}
        data.setdefault("timeout_hours", settings.default_step_timeout_hours)
        data.setdefault("reminder_hours", settings.default_reminder_hours)
        data.update(step_id=generate_workflow_step_id(), workflow_id=workflow_id, order=order)
        return self._validate_step(data)

    def _build_steps(self, workflow_id: str, steps: List[Dict[str, Any]]) -> List[WorkflowStep]:
        return [self._make_step(workflow_id, i, data) for i, data in enumerate(steps, start=1)]

    def _renumber(self, steps: List[WorkflowStep]) -> List[WorkflowStep]:
        return [s.model_copy(update={"order": i}) for i, s in enumerate(steps, start=1)]

    def _audit_step(
        self,
        workflow: ValidationWorkflow,
        event_type: AuditEventType,
        step: Optional[WorkflowStep],
        actor: ActorContext,
        correlation_id: Optional[str]
    ) -> None:
        self.audit_writer.write_workflow_change(
            workflow.workflow_id,
            event_type,
            actor,
            details={
                "step_id": step.step_id if step else None,
                "order": step.order if step else None,
                "total_steps": len(workflow.steps)
            },
            correlation_id=correlation_id
        )
        logger.info(
            f"{event_type.value} on workflow {workflow.name}",
            extra={"workflow_id": workflow.workflow_id, "step_id": step.step_id if step else None}
        )
