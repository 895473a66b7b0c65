"""Delegation Service - Approval delegation management"""
from datetime import date
from typing import Any, Dict, List, Optional

from ..domain.models import ActorContext, Delegation, Employee
from ..domain.enums import AuditEventType, Capability, DelegationStatus
from ..domain.errors import (
    InvalidRangeError, InvalidStateError, OverlappingDelegationError,
    PermissionDeniedError, ValidationError
)
from ..repositories.delegation_repo import DelegationRepository
from ..repositories.employee_repo import EmployeeRepository
from ..engine.delegation_overlay import DelegationOverlay
from ..engine.permission_guard import PermissionGuard
from ..engine.audit_writer import AuditWriter
from ..utils.idgen import generate_delegation_id
from ..utils.time import utc_now, today
from ..utils.logger import get_logger
from .notification_service import NotificationService

logger = get_logger(__name__)


def delegation_to_dict(delegation: Delegation, on_date: Optional[date] = None) -> Dict[str, Any]:
    data = delegation.model_dump(mode="json")
    data["current_status"] = delegation.status_on(on_date or today()).value
    return data


class DelegationService:
    """Service for delegation operations"""

    def __init__(
        self,
        repo: Optional[DelegationRepository] = None,
        employee_repo: Optional[EmployeeRepository] = None,
        notification_service: Optional[NotificationService] = None,
        permission_guard: Optional[PermissionGuard] = None,
        audit_writer: Optional[AuditWriter] = None
    ):
        self.repo = repo or DelegationRepository()
        self.employee_repo = employee_repo or EmployeeRepository()
        self.notification_service = notification_service or NotificationService()
        self.overlay = DelegationOverlay(self.repo)
        self.permission_guard = permission_guard or PermissionGuard(overlay=self.overlay)
        self.audit_writer = audit_writer or AuditWriter()

    # =========================================================================
    # Create / Cancel
    # =========================================================================

    def create_delegation(
        self,
        actor: ActorContext,
        delegate_id: str,
        start_date: date,
        end_date: date,
        request_types: Optional[List[str]] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        delegator_id: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> Delegation:
        """
        Create a delegation from the actor (or, for administrators, from
        `delegator_id`) to `delegate_id`.

        Rejects inverted ranges, self-delegation, unknown or inactive
        delegates and any overlap with an active delegation of the same
        delegator.
        """
        self.permission_guard.require(actor, Capability.CREATE_DELEGATIONS)

        delegator_id = delegator_id or actor.user_id
        if delegator_id != actor.user_id:
            self.permission_guard.require(actor, Capability.MANAGE_ALL_DELEGATIONS)

        self._check_range(start_date, end_date)
        if delegate_id == delegator_id:
            raise ValidationError("You cannot delegate to yourself")

        delegate = self.employee_repo.get_employee(delegate_id)
        if delegate is None or not delegate.is_active:
            raise ValidationError(
                "Delegate must be an active employee",
                details={"delegate_id": delegate_id}
            )
        delegator = self.employee_repo.get_employee(delegator_id)

        scope = sorted(set(request_types)) if request_types else None

        guard = self.repo.guard_version(delegator_id)
        self._check_overlap(delegator_id, start_date, end_date, scope)
        self.repo.claim_guard(delegator_id, guard)

        delegation = Delegation(
            delegation_id=generate_delegation_id(),
            delegator_id=delegator_id,
            delegator_name=delegator.display_name if delegator else actor.display_name,
            delegate_id=delegate_id,
            delegate_name=delegate.display_name,
            start_date=start_date,
            end_date=end_date,
            request_types=scope,
            reason=reason,
            notes=notes,
            is_active=True,
            created_by=actor.user_id,
            created_at=utc_now()
        )
        self.repo.create_delegation(delegation)

        self.audit_writer.write_delegation_change(
            delegation.delegation_id,
            AuditEventType.CREATE_DELEGATION,
            actor,
            details={
                "delegator_id": delegator_id,
                "delegate_id": delegate_id,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "request_types": scope
            },
            correlation_id=correlation_id
        )
        self.notification_service.notify_delegation_assigned(delegation, actor)
        return delegation

    def update_delegation(
        self,
        actor: ActorContext,
        delegation_id: str,
        end_date: Optional[date] = None,
        notes: Optional[str] = None,
        on_date: Optional[date] = None,
        correlation_id: Optional[str] = None
    ) -> Delegation:
        """
        Change the end date or notes of a delegation that is upcoming or in
        force. A new end date goes through the range and overlap checks
        again.
        """
        delegation = self.repo.get_delegation_or_raise(delegation_id)

        if delegation.delegator_id != actor.user_id:
            self.permission_guard.require(actor, Capability.MANAGE_ALL_DELEGATIONS)

        state = delegation.status_on(on_date or today())
        if state in (DelegationStatus.CANCELLED, DelegationStatus.EXPIRED):
            raise InvalidStateError(
                f"Cannot modify a {state.value} delegation",
                details={"delegation_id": delegation_id, "status": state.value}
            )

        updates: Dict[str, Any] = {}
        if notes is not None:
            updates["notes"] = notes
        if end_date is not None and end_date != delegation.end_date:
            self._check_range(delegation.start_date, end_date)
            guard = self.repo.guard_version(delegation.delegator_id)
            self._check_overlap(
                delegation.delegator_id,
                delegation.start_date,
                end_date,
                delegation.request_types,
                exclude_id=delegation_id
            )
            self.repo.claim_guard(delegation.delegator_id, guard)
            updates["end_date"] = end_date.isoformat()

        if not updates:
            return delegation

        updated = self.repo.update_delegation(delegation_id, updates)
        self.audit_writer.write_delegation_change(
            delegation_id,
            AuditEventType.UPDATE_DELEGATION,
            actor,
            details=updates,
            correlation_id=correlation_id
        )
        return updated

    def cancel_delegation(
        self,
        actor: ActorContext,
        delegation_id: str,
        reason: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> Delegation:
        """Deactivate a delegation (delegator or delegation administrator)"""
        delegation = self.repo.get_delegation_or_raise(delegation_id)

        if delegation.delegator_id != actor.user_id:
            self.permission_guard.require(actor, Capability.MANAGE_ALL_DELEGATIONS)
        if not delegation.is_active:
            raise InvalidStateError(
                "Delegation is already cancelled",
                details={"delegation_id": delegation_id}
            )

        cancelled = self.repo.mark_cancelled(delegation_id, {
            "cancelled_at": utc_now().isoformat(),
            "cancelled_by": actor.user_id,
            "cancellation_reason": reason,
        })

        self.audit_writer.write_delegation_change(
            delegation_id,
            AuditEventType.CANCEL_DELEGATION,
            actor,
            details={"reason": reason},
            correlation_id=correlation_id
        )
        self.notification_service.notify_delegation_cancelled(cancelled, actor)
        return cancelled

    # =========================================================================
    # Queries
    # =========================================================================

    def list_delegations(
        self,
        actor: ActorContext,
        all_users: bool = False,
        active_only: bool = False
    ) -> List[Delegation]:
        """Delegations given by the actor, or every delegation for administrators"""
        if all_users:
            self.permission_guard.require(actor, Capability.MANAGE_ALL_DELEGATIONS)
            return self.repo.list_delegations(active_only=active_only)
        return self.repo.list_delegations(delegator_id=actor.user_id, active_only=active_only)

    def list_received(self, actor: ActorContext, on_date: Optional[date] = None) -> List[Delegation]:
        """Delegations currently in force where the actor is the delegate"""
        day = on_date or today()
        return [
            d for d in self.repo.list_delegations(delegate_id=actor.user_id, active_only=True)
            if d.status_on(day) == DelegationStatus.ACTIVE
        ]

    def get_delegation(self, actor: ActorContext, delegation_id: str) -> Delegation:
        delegation = self.repo.get_delegation_or_raise(delegation_id)
        if actor.user_id in (delegation.delegator_id, delegation.delegate_id):
            return delegation
        if self.permission_guard.has_capability(actor, Capability.MANAGE_ALL_DELEGATIONS):
            return delegation
        raise PermissionDeniedError(
            "You do not have permission to view this delegation",
            details={"delegation_id": delegation_id}
        )

    def check_approval(
        self,
        actor: ActorContext,
        approver_id: str,
        request_type: Optional[str] = None,
        on_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """Whether the actor may approve in place of `approver_id` on a day"""
        day = on_date or today()
        if actor.user_id == approver_id:
            return {"can_approve": True, "is_delegated": False, "delegation": None}

        if request_type:
            delegation = self.overlay.find_delegation(approver_id, request_type, day)
        else:
            covering = self.repo.find_covering(approver_id, day)
            delegation = covering[0] if covering else None

        if delegation is not None and delegation.delegate_id == actor.user_id:
            return {
                "can_approve": True,
                "is_delegated": True,
                "delegation": delegation_to_dict(delegation, day)
            }
        return {"can_approve": False, "is_delegated": False, "delegation": None}

    def available_delegates(self, actor: ActorContext) -> List[Employee]:
        """Active employees the actor can delegate to"""
        self.permission_guard.require(actor, Capability.CREATE_DELEGATIONS)
        return self.employee_repo.list_active(exclude_id=actor.user_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_range(self, start_date: date, end_date: date) -> None:
        if start_date > end_date:
            raise InvalidRangeError(
                "Start date must be on or before end date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}
            )

    def _check_overlap(
        self,
        delegator_id: str,
        start_date: date,
        end_date: date,
        scope: Optional[List[str]],
        exclude_id: Optional[str] = None
    ) -> None:
        conflicts = [
            d for d in self.repo.find_active_overlapping(delegator_id, start_date, end_date)
            if d.delegation_id != exclude_id and d.scope_overlaps(scope)
        ]
        if conflicts:
            raise OverlappingDelegationError(
                "An active delegation already covers this period",
                details={"conflicting_delegation_ids": [d.delegation_id for d in conflicts]}
            )
