"""
Decision Ledger - Per-request state machine and append-only decision history

A request moves pending -> approved_n1 -> ... -> approved_n{N-1} -> approved,
or to rejected (by an approver) or cancelled (by the requester) from any
open state. Terminal states never change again.

Every transition is a single conditional write on the request version, so
two approvers racing on the same step cannot both record a decision.
"""
from datetime import date
from typing import Optional

from ..domain.models import (
    ActorContext, HRRequest, ChainStep, DecisionRecord, UserSnapshot, ValidationWorkflow,
    RequestPayload, RequestStatus, PendingStatus, ApprovedThroughStatus, ApprovedStatus,
    RejectedStatus, CancelledStatus
)
from ..domain.enums import Decision
from ..domain.errors import (
    ConcurrencyError, InvalidStateError, StepMismatchError, NotAuthorizedError,
    CommentRequiredError, NoWorkflowConfiguredError, ValidationError
)
from ..repositories.request_repo import RequestRepository
from ..repositories.workflow_repo import WorkflowRepository
from ..utils.idgen import generate_request_id
from ..utils.time import utc_now, today
from ..utils.logger import get_logger
from .permission_guard import PermissionGuard
from .audit_writer import AuditWriter

logger = get_logger(__name__)


class DecisionLedger:
    """
    Owns request status and decision history.

    Check order for decide: not found, terminal state, step mismatch,
    authority, then the rejection comment.
    """

    def __init__(
        self,
        request_repo: Optional[RequestRepository] = None,
        workflow_repo: Optional[WorkflowRepository] = None,
        permission_guard: Optional[PermissionGuard] = None,
        audit_writer: Optional[AuditWriter] = None
    ):
        self.request_repo = request_repo or RequestRepository()
        self.workflow_repo = workflow_repo or WorkflowRepository()
        self.permission_guard = permission_guard or PermissionGuard()
        self.audit_writer = audit_writer or AuditWriter()

    # =========================================================================
    # Submission
    # =========================================================================

    def match_workflow(self, request_type: str, segment_id: Optional[str] = None) -> ValidationWorkflow:
        """
        Pick the workflow for a request type.

        Candidates are active workflows with this trigger type and at least
        one step. A workflow scoped to the requester's segment beats an
        unscoped one, then higher priority, then the most recently created.
        """
        candidates = [
            wf for wf in self.workflow_repo.find_active_for_trigger(request_type)
            if wf.steps and (wf.segment_id is None or wf.segment_id == segment_id)
        ]
        if not candidates:
            raise NoWorkflowConfiguredError(
                f"No active validation workflow configured for '{request_type}'",
                details={"request_type": request_type}
            )

        return max(
            candidates,
            key=lambda wf: (wf.segment_id is not None, wf.priority, wf.created_at)
        )

    def submit(
        self,
        requester: UserSnapshot,
        payload: RequestPayload,
        reason: str,
        actor: ActorContext,
        attachment_id: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> HRRequest:
        """
        Create a request in `pending` with a snapshot of the matching
        workflow's steps as its approval chain.
        """
        request_type = payload.request_type
        workflow = self.match_workflow(request_type, requester.segment_id)
        chain = [ChainStep.from_template(step) for step in workflow.ordered_steps()]
        start_date, end_date = payload.date_range()

        now = utc_now()
        request = HRRequest(
            request_id=generate_request_id(),
            requester=requester,
            request_type=request_type,
            payload=payload,
            reason=reason,
            attachment_id=attachment_id,
            start_date=start_date,
            end_date=end_date,
            quantity=payload.quantity,
            status=PendingStatus(),
            workflow_id=workflow.workflow_id,
            workflow_name=workflow.name,
            chain=chain,
            submitted_at=now,
            updated_at=now,
            step_started_at=now,
        )

        self.request_repo.create_request(request)
        self.audit_writer.write_submit(request, actor, correlation_id)

        logger.info(
            f"Submitted {request_type} request through workflow {workflow.name} ({len(chain)} steps)",
            extra={"request_id": request.request_id, "workflow_id": workflow.workflow_id, "actor_id": actor.user_id}
        )
        return request

    # =========================================================================
    # Decisions
    # =========================================================================

    def decide(
        self,
        request_id: str,
        decision: Decision,
        actor: ActorContext,
        comment: Optional[str] = None,
        step_order: Optional[int] = None,
        request_type: Optional[str] = None,
        on_date: Optional[date] = None,
        correlation_id: Optional[str] = None
    ) -> HRRequest:
        """
        Record an approve / reject decision on the pending step.

        `step_order` defaults to the current level. `on_date` is the day
        used for delegation lookup.
        """
        request = self.request_repo.get_request_or_raise(request_id)

        if request_type and request_type != request.request_type:
            raise ValidationError(
                f"Request {request_id} is a '{request.request_type}' request, not '{request_type}'",
                details={"request_type": request.request_type}
            )

        self._ensure_open(request)

        level = request.current_approver_level
        if step_order is None:
            step_order = level
        if step_order != level:
            raise StepMismatchError(
                "This request was already processed",
                details={"expected_step": level, "given_step": step_order, "status": request.status_code}
            )

        step = request.current_step
        authority = self.permission_guard.resolve_authority(actor, request, step, on_date or today())
        if authority is None:
            raise NotAuthorizedError(
                f"You are not the approver of step {step_order} for this request",
                details={"step_order": step_order}
            )

        comment = (comment or "").strip() or None
        if decision == Decision.REJECT and not comment:
            raise CommentRequiredError("A comment is required to reject a request")

        now = utc_now()
        record = DecisionRecord(
            step_order=step_order,
            decision=decision,
            actor=actor.snapshot(),
            on_behalf_of=authority.on_behalf_of,
            delegation_id=authority.delegation_id,
            comment=comment,
            decided_at=now,
        )

        new_status = self._next_status(request, decision, step_order)
        advancing = isinstance(new_status, ApprovedThroughStatus)

        try:
            updated = self.request_repo.commit_transition(
                request.request_id,
                request.version,
                new_status,
                record=record,
                step_started_at=now if advancing else None
            )
        except ConcurrencyError:
            current = self.request_repo.get_request_or_raise(request_id)
            logger.warning(
                f"Lost decision race on step {step_order}",
                extra={"request_id": request_id, "step_order": step_order, "actor_id": actor.user_id}
            )
            raise StepMismatchError(
                "This request was already processed",
                details={"status": current.status_code, "current_level": current.current_approver_level}
            )

        self.audit_writer.write_decision(updated, record, actor, correlation_id)

        logger.info(
            f"Step {step_order} {updated.status_code} by {actor.user_id}"
            + (f" on behalf of {authority.on_behalf_of}" if authority.on_behalf_of else ""),
            extra={
                "request_id": request_id,
                "step_order": step_order,
                "decision": decision.value,
                "status": updated.status_code,
                "delegation_id": authority.delegation_id
            }
        )

        return updated

    # =========================================================================
    # Cancellation
    # =========================================================================

    def cancel(
        self,
        request_id: str,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> HRRequest:
        """Withdraw an open request (requester only)"""
        request = self.request_repo.get_request_or_raise(request_id)

        if request.requester.user_id != actor.user_id:
            raise NotAuthorizedError("Only the requester can cancel this request")
        self._ensure_open(request)

        try:
            updated = self.request_repo.commit_transition(
                request.request_id,
                request.version,
                CancelledStatus()
            )
        except ConcurrencyError:
            current = self.request_repo.get_request_or_raise(request_id)
            self._ensure_open(current)
            raise ConcurrencyError(
                "The request changed while it was being cancelled, please retry",
                details={"status": current.status_code, "current_level": current.current_approver_level}
            )

        self.audit_writer.write_cancel(updated, actor, correlation_id)
        return updated

    # =========================================================================
    # Helpers
    # =========================================================================

    def _ensure_open(self, request: HRRequest) -> None:
        if request.is_terminal:
            raise InvalidStateError(
                f"Request is already {request.status_code}",
                details={"status": request.status_code}
            )

    def _next_status(self, request: HRRequest, decision: Decision, step_order: int) -> RequestStatus:
        if decision == Decision.REJECT:
            return RejectedStatus()
        if step_order >= request.total_steps:
            return ApprovedStatus()
        return ApprovedThroughStatus(step=step_order)

