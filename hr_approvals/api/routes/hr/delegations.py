"""
Delegation Routes

Temporary transfer of approval authority between employees.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from ...deps import get_current_user_dep, get_correlation_id_dep
from ....domain.models import ActorContext
from ....services.delegation_service import DelegationService, delegation_to_dict
from ....utils.logger import get_logger
from .schemas import CreateDelegationBody, UpdateDelegationBody, envelope

logger = get_logger(__name__)
router = APIRouter(prefix="/delegations", tags=["Delegations"])


@router.get("")
async def list_delegations(
    scope: Optional[str] = Query(None, pattern="^(mine|all)$"),
    active_only: bool = Query(False),
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Delegations given by the caller; `scope=all` lists everyone's (administrators)"""
    service = DelegationService()
    delegations = service.list_delegations(
        actor,
        all_users=scope == "all",
        active_only=active_only
    )
    return envelope([delegation_to_dict(d) for d in delegations])


@router.get("/received")
async def list_received_delegations(
    actor: ActorContext = Depends(get_current_user_dep)
):
    service = DelegationService()
    return envelope([delegation_to_dict(d) for d in service.list_received(actor)])


@router.get("/available-delegates")
async def list_available_delegates(
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Active employees other than the caller"""
    service = DelegationService()
    employees = service.available_delegates(actor)
    return envelope([
        {
            "employee_id": e.employee_id,
            "display_name": e.display_name,
            "email": e.email,
            "department": e.department,
        }
        for e in employees
    ])


@router.get("/check-approval/{approver_id}")
async def check_approval(
    approver_id: str,
    request_type: Optional[str] = Query(None),
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Whether the caller can approve today in place of `approver_id`"""
    service = DelegationService()
    return envelope(service.check_approval(actor, approver_id, request_type=request_type))


@router.get("/{delegation_id}")
async def get_delegation(
    delegation_id: str,
    actor: ActorContext = Depends(get_current_user_dep)
):
    service = DelegationService()
    return envelope(delegation_to_dict(service.get_delegation(actor, delegation_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_delegation(
    body: CreateDelegationBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    service = DelegationService()
    delegation = service.create_delegation(
        actor,
        delegate_id=body.delegate_id,
        start_date=body.start_date,
        end_date=body.end_date,
        request_types=body.request_types,
        reason=body.reason,
        notes=body.notes,
        delegator_id=body.delegator_id,
        correlation_id=correlation_id
    )
    return envelope(delegation_to_dict(delegation), message="Delegation created")


@router.put("/{delegation_id}")
async def update_delegation(
    delegation_id: str,
    body: UpdateDelegationBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Change the end date or notes of an upcoming or running delegation"""
    service = DelegationService()
    delegation = service.update_delegation(
        actor,
        delegation_id,
        end_date=body.end_date,
        notes=body.notes,
        correlation_id=correlation_id
    )
    return envelope(delegation_to_dict(delegation), message="Delegation updated")


@router.delete("/{delegation_id}")
async def cancel_delegation(
    delegation_id: str,
    reason: Optional[str] = Query(None, max_length=1000),
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Cancel a delegation; it stays in the history as cancelled"""
    service = DelegationService()
    delegation = service.cancel_delegation(
        actor,
        delegation_id,
        reason=reason,
        correlation_id=correlation_id
    )
    return envelope(delegation_to_dict(delegation), message="Delegation cancelled")
