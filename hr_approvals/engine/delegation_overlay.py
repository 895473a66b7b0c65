"""Delegation Overlay - Effective approver after applying delegations"""
from datetime import date
from typing import Optional

from ..domain.models import Delegation
from ..repositories.delegation_repo import DelegationRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DelegationOverlay:
    """
    Rewrite a nominal approver into the user who should receive the step.

    Delegations are single-hop: a delegate's own delegations are not
    followed.
    """

    def __init__(self, delegation_repo: Optional[DelegationRepository] = None):
        self.repo = delegation_repo or DelegationRepository()

    def find_delegation(
        self,
        nominal_approver_id: str,
        request_type: str,
        on_date: date
    ) -> Optional[Delegation]:
        """Delegation in force for that approver, type and day, if any"""
        matches = [
            d for d in self.repo.find_covering(nominal_approver_id, on_date)
            if d.covers(on_date, request_type)
        ]
        if not matches:
            return None

        if len(matches) > 1:
            # Creation-time checks should make this impossible
            logger.warning(
                f"{len(matches)} overlapping delegations for {nominal_approver_id} on {on_date}; "
                f"using the most recent",
                extra={"delegation_id": matches[0].delegation_id}
            )
        return max(matches, key=lambda d: d.created_at)

    def effective_approver(self, nominal_approver_id: str, request_type: str, on_date: date) -> str:
        delegation = self.find_delegation(nominal_approver_id, request_type, on_date)
        if delegation is None:
            return nominal_approver_id
        return delegation.delegate_id
