"""
Validation Routes

Approver endpoints:
- Pending queue (direct and delegated)
- Decision history
- Request detail
- Approve / reject
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from ...deps import get_current_user_dep, get_correlation_id_dep
from ....domain.models import ActorContext
from ....services.request_service import RequestService, request_to_dict
from ....utils.logger import get_logger
from .schemas import DecisionBody, envelope

logger = get_logger(__name__)
router = APIRouter(prefix="/validation", tags=["Validation"])


@router.get("/pending")
async def list_pending(
    request_type: Optional[str] = Query(None, alias="type"),
    actor: ActorContext = Depends(get_current_user_dep)
):
    """
    Requests awaiting the caller's decision.

    Includes steps the caller holds through an active delegation; those
    items carry `delegation_info.is_delegated = true`.
    """
    service = RequestService()
    items = service.list_pending_for_approver(actor, request_type=request_type)
    return envelope(items, total=len(items))


@router.get("/history")
async def list_history(
    limit: int = Query(50, ge=1, le=200),
    actor: ActorContext = Depends(get_current_user_dep)
):
    service = RequestService()
    requests = service.list_history(actor, limit=limit)
    return envelope([request_to_dict(r) for r in requests])


@router.get("/{request_id}")
async def get_request_detail(
    request_id: str,
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Request with chain, history, current approvers and audit trail"""
    service = RequestService()
    return envelope(service.get_validation_detail(actor, request_id))


@router.post("/{request_id}/approve")
async def approve_request(
    request_id: str,
    body: Optional[DecisionBody] = None,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    body = body or DecisionBody()
    service = RequestService()
    request = service.approve(
        actor,
        request_id,
        comment=body.comment,
        request_type=body.request_type,
        step_order=body.step_order,
        correlation_id=correlation_id
    )
    return envelope(request_to_dict(request), message="Request approved")


@router.post("/{request_id}/reject")
async def reject_request(
    request_id: str,
    body: DecisionBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Reject at the current step; a non-empty comment is required"""
    service = RequestService()
    request = service.reject(
        actor,
        request_id,
        comment=body.comment,
        request_type=body.request_type,
        step_order=body.step_order,
        correlation_id=correlation_id
    )
    return envelope(request_to_dict(request), message="Request rejected")
