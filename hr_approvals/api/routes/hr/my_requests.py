"""
Employee Request Routes

Self-service endpoints for the requester:
- Submit requests and attendance corrections
- List and read own requests
- Cancel an open request
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from ...deps import get_current_user_dep, get_correlation_id_dep
from ....domain.models import ActorContext
from ....domain.enums import StatusKind
from ....services.request_service import RequestService, request_to_dict
from ....utils.logger import get_logger
from .schemas import SubmitRequestBody, CorrectionRequestBody, envelope

logger = get_logger(__name__)
router = APIRouter(prefix="/my", tags=["My Requests"])


@router.get("/requests")
async def list_my_requests(
    status_filter: Optional[StatusKind] = Query(None, alias="status"),
    request_type: Optional[str] = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Requests submitted by the current user, newest first"""
    service = RequestService()
    requests = service.list_my_requests(
        actor,
        status=status_filter,
        request_type=request_type,
        skip=(page - 1) * page_size,
        limit=page_size
    )
    return envelope([request_to_dict(r) for r in requests], page=page, page_size=page_size)


@router.post("/requests", status_code=status.HTTP_201_CREATED)
async def submit_request(
    body: SubmitRequestBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Submit a request.

    The payload `kind` selects the variant (leave, overtime, correction,
    administrative). The request is bound to the matching active workflow.
    """
    service = RequestService()
    request = service.submit_request(
        actor,
        body.payload,
        body.reason,
        attachment_id=body.attachment_id,
        correlation_id=correlation_id
    )
    return envelope(request_to_dict(request), message="Request submitted")


@router.post("/correction-requests", status_code=status.HTTP_201_CREATED)
async def submit_correction_request(
    body: CorrectionRequestBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Submit an attendance correction for one day"""
    service = RequestService()
    request = service.submit_correction(
        actor,
        request_date=body.request_date,
        reason=body.reason,
        requested_check_in=body.requested_check_in,
        requested_check_out=body.requested_check_out,
        correlation_id=correlation_id
    )
    return envelope(request_to_dict(request), message="Correction request submitted")


@router.get("/requests/{request_id}")
async def get_my_request(
    request_id: str,
    actor: ActorContext = Depends(get_current_user_dep)
):
    service = RequestService()
    request = service.get_request(actor, request_id)
    return envelope(request_to_dict(request))


@router.post("/requests/{request_id}/cancel")
async def cancel_my_request(
    request_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Withdraw an open request"""
    service = RequestService()
    request = service.cancel_request(actor, request_id, correlation_id=correlation_id)
    return envelope(request_to_dict(request), message="Request cancelled")
