"""Notification Service - In-app notifications for the notification bell"""
from typing import List, Optional, Tuple

from ..domain.models import ActorContext, Delegation, HRRequest, InAppNotification, ApprovedStatus
from ..domain.enums import NotificationCategory
from ..repositories.notification_repo import NotificationRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)


class NotificationService:
    """Service for creating and reading in-app notifications"""

    def __init__(self, repo: Optional[NotificationRepository] = None):
        self.repo = repo or NotificationRepository()

    # =========================================================================
    # Producers
    # =========================================================================

    def notify_request_decided(self, request: HRRequest, actor: ActorContext) -> InAppNotification:
        """Tell the requester their request reached a final decision"""
        outcome = "approved" if isinstance(request.status, ApprovedStatus) else "rejected"
        notification = self.repo.create_notification(
            recipient_id=request.requester.user_id,
            category=NotificationCategory.REQUEST_DECIDED,
            title=f"Request {outcome}",
            message=f"Your {request.request_type} request was {outcome} by {actor.display_name}",
            request_id=request.request_id,
            actor_id=actor.user_id,
            actor_display_name=actor.display_name
        )
        logger.info(
            f"Notified {request.requester.user_id} of {outcome} request",
            extra={"request_id": request.request_id, "actor_id": actor.user_id}
        )
        return notification

    def notify_delegation_assigned(self, delegation: Delegation, actor: ActorContext) -> InAppNotification:
        return self.repo.create_notification(
            recipient_id=delegation.delegate_id,
            category=NotificationCategory.DELEGATION_ASSIGNED,
            title="New delegation",
            message=(
                f"{delegation.delegator_name or delegation.delegator_id} delegated their approvals to you "
                f"from {delegation.start_date.isoformat()} to {delegation.end_date.isoformat()}"
            ),
            delegation_id=delegation.delegation_id,
            actor_id=actor.user_id,
            actor_display_name=actor.display_name
        )

    def notify_delegation_cancelled(self, delegation: Delegation, actor: ActorContext) -> InAppNotification:
        return self.repo.create_notification(
            recipient_id=delegation.delegate_id,
            category=NotificationCategory.DELEGATION_CANCELLED,
            title="Delegation cancelled",
            message=f"The delegation from {delegation.delegator_name or delegation.delegator_id} was cancelled",
            delegation_id=delegation.delegation_id,
            actor_id=actor.user_id,
            actor_display_name=actor.display_name
        )

    # =========================================================================
    # Bell
    # =========================================================================

    def list_for_user(
        self,
        actor: ActorContext,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[InAppNotification], int]:
        """Notifications for the actor plus their unread count"""
        items = self.repo.get_notifications_for_user(
            actor.user_id,
            skip=skip,
            limit=limit,
            unread_only=unread_only
        )
        return items, self.repo.get_unread_count(actor.user_id)

    def mark_read(self, actor: ActorContext, notification_id: str) -> InAppNotification:
        return self.repo.mark_as_read(notification_id, actor.user_id)
