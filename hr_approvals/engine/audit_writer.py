"""Audit Writer - Append-only audit events"""
from typing import Any, Dict, Optional

from ..domain.models import AuditEvent, ActorContext, DecisionRecord, HRRequest
from ..domain.enums import AuditEventType, Decision
from ..repositories.audit_repo import AuditRepository
from ..utils.idgen import generate_audit_event_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditWriter:
    """
    Write audit events (append-only)

    Every state change on requests, workflows and delegations produces an
    audit event.
    """

    def __init__(self, repo: Optional[AuditRepository] = None):
        self.repo = repo or AuditRepository()

    def write_event(
        self,
        entity_type: str,
        entity_id: str,
        event_type: AuditEventType,
        actor: ActorContext,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None
    ) -> AuditEvent:
        """Write a single audit event"""
        event = AuditEvent(
            audit_event_id=generate_audit_event_id(),
            entity_type=entity_type,
            entity_id=entity_id,
            event_type=event_type,
            actor=actor.snapshot(),
            details=details or {},
            timestamp=utc_now(),
            correlation_id=correlation_id
        )

        return self.repo.create_event(event)

    def write_submit(
        self,
        request: HRRequest,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> AuditEvent:
        """Write request submission event"""
        return self.write_event(
            entity_type="request",
            entity_id=request.request_id,
            event_type=AuditEventType.SUBMIT_REQUEST,
            actor=actor,
            details={
                "request_type": request.request_type,
                "workflow_id": request.workflow_id,
                "total_steps": request.total_steps
            },
            correlation_id=correlation_id
        )

    def write_decision(
        self,
        request: HRRequest,
        record: DecisionRecord,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> AuditEvent:
        """Write approve / reject event"""
        event_type = AuditEventType.APPROVE if record.decision == Decision.APPROVE else AuditEventType.REJECT
        return self.write_event(
            entity_type="request",
            entity_id=request.request_id,
            event_type=event_type,
            actor=actor,
            details={
                "step_order": record.step_order,
                "status": request.status_code,
                "comment": record.comment,
                "on_behalf_of": record.on_behalf_of,
                "delegation_id": record.delegation_id
            },
            correlation_id=correlation_id
        )

    def write_cancel(
        self,
        request: HRRequest,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> AuditEvent:
        """Write request cancellation event"""
        return self.write_event(
            entity_type="request",
            entity_id=request.request_id,
            event_type=AuditEventType.CANCEL_REQUEST,
            actor=actor,
            correlation_id=correlation_id
        )

    def write_workflow_change(
        self,
        workflow_id: str,
        event_type: AuditEventType,
        actor: ActorContext,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None
    ) -> AuditEvent:
        """Write a workflow or step configuration event"""
        return self.write_event(
            entity_type="workflow",
            entity_id=workflow_id,
            event_type=event_type,
            actor=actor,
            details=details,
            correlation_id=correlation_id
        )

    def write_delegation_change(
        self,
        delegation_id: str,
        event_type: AuditEventType,
        actor: ActorContext,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None
    ) -> AuditEvent:
        """Write delegation created / cancelled event"""
        return self.write_event(
            entity_type="delegation",
            entity_id=delegation_id,
            event_type=event_type,
            actor=actor,
            details=details,
            correlation_id=correlation_id
        )
