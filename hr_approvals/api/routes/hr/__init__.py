"""HR validation routes"""
from fastapi import APIRouter

from .my_requests import router as my_requests_router
from .workflows import router as workflows_router
from .validation import router as validation_router
from .delegations import router as delegations_router
from .notifications import router as notifications_router

router = APIRouter()

router.include_router(my_requests_router)
# Registered before the validation router so /validation/workflows is not
# captured by /validation/{request_id}
router.include_router(workflows_router)
router.include_router(validation_router)
router.include_router(delegations_router)
router.include_router(notifications_router)

__all__ = ["router"]
