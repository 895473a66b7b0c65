"""Request Service - Submission, queries and decisions on HR requests"""
from datetime import date, time
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from ..domain.models import (
    ActorContext, HRRequest, RequestPayload, CorrectionPayload
)
from ..domain.enums import Capability, Decision, StatusKind
from ..domain.errors import (
    AlreadyExistsError, ApproverResolutionError, PermissionDeniedError, ValidationError
)
from ..repositories.request_repo import RequestRepository
from ..repositories.employee_repo import EmployeeRepository
from ..repositories.audit_repo import AuditRepository
from ..engine.ledger import DecisionLedger
from ..engine.permission_guard import PermissionGuard
from ..utils.time import add_hours, is_overdue, today
from ..utils.logger import get_logger
from .notification_service import NotificationService

logger = get_logger(__name__)

_payload_adapter = TypeAdapter(RequestPayload)


def request_to_dict(request: HRRequest) -> Dict[str, Any]:
    """Serialize a request with its derived read-only fields"""
    data = request.model_dump(mode="json")
    data["status_code"] = request.status_code
    data["total_steps"] = request.total_steps
    data["current_approver_level"] = request.current_approver_level

    step = request.current_step
    due_at = add_hours(request.step_started_at, step.timeout_hours) if step else None
    data["current_step_due_at"] = due_at.isoformat() if due_at else None
    data["is_overdue"] = is_overdue(due_at)
    return data


def _validation_details(e: PydanticValidationError) -> Dict[str, Any]:
    return {"errors": [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in e.errors()
    ]}


class RequestService:
    """Service for HR request operations"""

    def __init__(
        self,
        ledger: Optional[DecisionLedger] = None,
        employee_repo: Optional[EmployeeRepository] = None,
        audit_repo: Optional[AuditRepository] = None,
        notification_service: Optional[NotificationService] = None
    ):
        self.ledger = ledger or DecisionLedger()
        self.request_repo: RequestRepository = self.ledger.request_repo
        self.permission_guard: PermissionGuard = self.ledger.permission_guard
        self.employee_repo = employee_repo or EmployeeRepository()
        self.audit_repo = audit_repo or AuditRepository()
        self.notification_service = notification_service or NotificationService()

    # =========================================================================
    # Submission
    # =========================================================================

    def submit_request(
        self,
        actor: ActorContext,
        payload: Any,
        reason: str,
        attachment_id: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> HRRequest:
        """
        Submit a typed request.

        `payload` is either a payload model or a raw dict carrying a `kind`
        discriminator.
        """
        self.permission_guard.require(actor, Capability.SUBMIT_REQUESTS)

        if not (reason or "").strip():
            raise ValidationError("A reason is required")

        if isinstance(payload, dict):
            try:
                payload = _payload_adapter.validate_python(payload)
            except PydanticValidationError as e:
                raise ValidationError("Invalid request payload", details=_validation_details(e))

        requester = self.employee_repo.get_employee_or_raise(actor.user_id)

        if isinstance(payload, CorrectionPayload):
            existing = self.request_repo.find_live_correction(actor.user_id, payload.request_date)
            if existing:
                raise AlreadyExistsError(
                    f"A correction request already exists for {payload.request_date.isoformat()}",
                    details={"request_id": existing.request_id, "status": existing.status_code}
                )

        return self.ledger.submit(
            requester=requester.snapshot(),
            payload=payload,
            reason=reason.strip(),
            actor=actor,
            attachment_id=attachment_id,
            correlation_id=correlation_id
        )

    def submit_correction(
        self,
        actor: ActorContext,
        request_date: date,
        reason: str,
        requested_check_in: Optional[time] = None,
        requested_check_out: Optional[time] = None,
        correlation_id: Optional[str] = None
    ) -> HRRequest:
        """Submit an attendance correction request"""
        return self.submit_request(
            actor,
            {
                "kind": "correction",
                "request_date": request_date,
                "requested_check_in": requested_check_in,
                "requested_check_out": requested_check_out,
            },
            reason,
            correlation_id=correlation_id
        )

    # =========================================================================
    # Requester queries
    # =========================================================================

    def list_my_requests(
        self,
        actor: ActorContext,
        status: Optional[StatusKind] = None,
        request_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[HRRequest]:
        return self.request_repo.list_for_requester(
            actor.user_id,
            status_kinds=[status.value] if status else None,
            request_type=request_type,
            skip=skip,
            limit=limit
        )

    def get_request(self, actor: ActorContext, request_id: str) -> HRRequest:
        """Get a request the actor is allowed to see"""
        request = self.request_repo.get_request_or_raise(request_id)
        if not self.permission_guard.can_view_request(actor, request):
            raise PermissionDeniedError(
                "You do not have permission to view this request",
                details={"request_id": request_id}
            )
        return request

    def cancel_request(
        self,
        actor: ActorContext,
        request_id: str,
        correlation_id: Optional[str] = None
    ) -> HRRequest:
        return self.ledger.cancel(request_id, actor, correlation_id=correlation_id)

    # =========================================================================
    # Approver queries
    # =========================================================================

    def list_pending_for_approver(
        self,
        actor: ActorContext,
        request_type: Optional[str] = None,
        on_date: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """Open requests whose current step the actor may decide"""
        day = on_date or today()
        result = []

        for request in self.request_repo.list_open(request_type):
            step = request.current_step
            if step is None:
                continue
            try:
                authority = self.permission_guard.resolve_authority(actor, request, step, day)
            except ApproverResolutionError as e:
                logger.warning(
                    f"Skipping request in approval queue: {e.message}",
                    extra={"request_id": request.request_id, "step_order": step.order}
                )
                continue
            if authority is None:
                continue

            item = request_to_dict(request)
            item["delegation_info"] = {
                "is_delegated": authority.delegation is not None,
                "delegation_id": authority.delegation_id,
                "delegator_id": authority.on_behalf_of,
                "delegator_name": authority.delegation.delegator_name if authority.delegation else None,
            }
            result.append(item)

        return result

    def list_history(self, actor: ActorContext, limit: int = 50) -> List[HRRequest]:
        """Requests the actor decided on, most recently updated first"""
        return self.request_repo.list_decided_by(actor.user_id, limit=limit)

    def get_validation_detail(
        self,
        actor: ActorContext,
        request_id: str,
        on_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """Request with chain, history, current approvers and audit trail"""
        request = self.get_request(actor, request_id)
        day = on_date or today()

        current_approvers: List[Dict[str, Any]] = []
        can_decide = False
        step = request.current_step
        if step is not None:
            try:
                for authority in self.permission_guard.approval_authorities(request, step, day):
                    current_approvers.append({
                        "user_id": authority.delegation.delegate_id if authority.delegation else authority.nominal_approver_id,
                        "on_behalf_of": authority.on_behalf_of,
                        "delegation_id": authority.delegation_id,
                    })
                can_decide = any(a["user_id"] == actor.user_id for a in current_approvers)
            except ApproverResolutionError as e:
                logger.warning(
                    f"Could not resolve current approvers: {e.message}",
                    extra={"request_id": request_id, "step_order": step.order}
                )

        data = request_to_dict(request)
        data["current_approvers"] = current_approvers
        data["can_decide"] = can_decide
        data["can_cancel"] = self.permission_guard.can_cancel_request(actor, request)
        data["audit_events"] = [
            e.model_dump(mode="json") for e in self.audit_repo.get_events_for_entity(request_id, limit=50)
        ]
        return data

    # =========================================================================
    # Decisions
    # =========================================================================

    def approve(
        self,
        actor: ActorContext,
        request_id: str,
        comment: Optional[str] = None,
        request_type: Optional[str] = None,
        step_order: Optional[int] = None,
        correlation_id: Optional[str] = None
    ) -> HRRequest:
        return self._decide(
            request_id,
            Decision.APPROVE,
            actor,
            comment=comment,
            step_order=step_order,
            request_type=request_type,
            correlation_id=correlation_id
        )

    def reject(
        self,
        actor: ActorContext,
        request_id: str,
        comment: Optional[str],
        request_type: Optional[str] = None,
        step_order: Optional[int] = None,
        correlation_id: Optional[str] = None
    ) -> HRRequest:
        return self._decide(
            request_id,
            Decision.REJECT,
            actor,
            comment=comment,
            step_order=step_order,
            request_type=request_type,
            correlation_id=correlation_id
        )

    def _decide(self, request_id: str, decision: Decision, actor: ActorContext, **kwargs) -> HRRequest:
        updated = self.ledger.decide(request_id, decision, actor, **kwargs)
        if updated.is_terminal:
            self.notification_service.notify_request_decided(updated, actor)
        return updated
