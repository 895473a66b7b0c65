"""Permission Guard - Authorization enforcement for all actions"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, FrozenSet, List, Optional

from ..domain.models import ActorContext, ChainStep, Delegation, HRRequest
from ..domain.enums import Capability, Role
from ..domain.errors import ApproverResolutionError, PermissionDeniedError
from ..utils.logger import get_logger
from ..utils.time import today
from .step_resolver import StepResolver
from .delegation_overlay import DelegationOverlay

logger = get_logger(__name__)


ROLE_CAPABILITIES: Dict[str, FrozenSet[Capability]] = {
    Role.EMPLOYEE.value: frozenset({Capability.SUBMIT_REQUESTS}),
    Role.MANAGER.value: frozenset({
        Capability.SUBMIT_REQUESTS,
        Capability.VIEW_WORKFLOWS,
        Capability.CREATE_DELEGATIONS,
    }),
    Role.HR.value: frozenset({
        Capability.SUBMIT_REQUESTS,
        Capability.VIEW_WORKFLOWS,
        Capability.MANAGE_WORKFLOWS,
        Capability.CREATE_DELEGATIONS,
        Capability.MANAGE_ALL_DELEGATIONS,
    }),
    Role.ADMIN.value: frozenset(Capability),
}


@dataclass(frozen=True)
class ApprovalAuthority:
    """Why an actor may decide the pending step"""
    nominal_approver_id: str
    delegation: Optional[Delegation] = None

    @property
    def on_behalf_of(self) -> Optional[str]:
        return self.nominal_approver_id if self.delegation else None

    @property
    def delegation_id(self) -> Optional[str]:
        return self.delegation.delegation_id if self.delegation else None


class PermissionGuard:
    """
    Permission enforcement for request, workflow and delegation operations

    Rules:
    - Operation-level access comes from the role -> capability map
    - Only a nominal approver of the pending step, or the delegate of one,
      may decide it
    - Only the requester can cancel a request
    - The requester never decides their own request, directly or as a
      delegate
    """

    def __init__(
        self,
        step_resolver: Optional[StepResolver] = None,
        overlay: Optional[DelegationOverlay] = None
    ):
        self.resolver = step_resolver or StepResolver()
        self.overlay = overlay or DelegationOverlay()

    # =========================================================================
    # Capabilities
    # =========================================================================

    def capabilities_for(self, actor: ActorContext) -> FrozenSet[Capability]:
        caps: set = set()
        for role in actor.roles:
            caps |= ROLE_CAPABILITIES.get(role, frozenset())
        return frozenset(caps)

    def has_capability(self, actor: ActorContext, capability: Capability) -> bool:
        return capability in self.capabilities_for(actor)

    def require(self, actor: ActorContext, capability: Capability) -> None:
        """Raise PermissionDeniedError if the actor lacks the capability"""
        if not self.has_capability(actor, capability):
            logger.info(
                f"Capability {capability.value} denied for {actor.user_id}",
                extra={"actor_id": actor.user_id}
            )
            raise PermissionDeniedError(
                f"Missing permission: {capability.value}",
                details={"capability": capability.value}
            )

    # =========================================================================
    # Step authority
    # =========================================================================

    def approval_authorities(
        self,
        request: HRRequest,
        step: ChainStep,
        on_date: date
    ) -> List[ApprovalAuthority]:
        """Every user entitled to decide the step, with the delegation used if any"""
        requester_id = request.requester.user_id
        authorities: List[ApprovalAuthority] = []
        for nominal_id in self.resolver.resolve_approvers(step, request.requester):
            if nominal_id == requester_id:
                continue
            authorities.append(ApprovalAuthority(nominal_approver_id=nominal_id))
            if not step.allow_delegation:
                continue
            delegation = self.overlay.find_delegation(nominal_id, request.request_type, on_date)
            if delegation is not None and delegation.delegate_id != requester_id:
                authorities.append(ApprovalAuthority(nominal_approver_id=nominal_id, delegation=delegation))
        return authorities

    def resolve_authority(
        self,
        actor: ActorContext,
        request: HRRequest,
        step: ChainStep,
        on_date: date
    ) -> Optional[ApprovalAuthority]:
        """
        Authority of the actor over the pending step, or None.

        Direct authority wins over delegated authority when both apply.
        """
        delegated = None
        for authority in self.approval_authorities(request, step, on_date):
            if authority.delegation is None:
                if authority.nominal_approver_id == actor.user_id:
                    return authority
            elif authority.delegation.delegate_id == actor.user_id and delegated is None:
                delegated = authority
        return delegated

    def can_cancel_request(self, actor: ActorContext, request: HRRequest) -> bool:
        """Only the requester can cancel, and only while the request is open"""
        return request.requester.user_id == actor.user_id and not request.is_terminal

    def can_view_request(self, actor: ActorContext, request: HRRequest) -> bool:
        if request.requester.user_id == actor.user_id:
            return True
        if self.has_capability(actor, Capability.MANAGE_WORKFLOWS):
            return True
        if any(record.actor.user_id == actor.user_id for record in request.history):
            return True
        step = request.current_step
        if step is None:
            return False
        try:
            return self.resolve_authority(actor, request, step, today()) is not None
        except ApproverResolutionError as e:
            logger.warning(f"Could not resolve approvers for visibility check: {e}")
            return False
