"""Step Resolver - Maps a chain step to its nominal approvers"""
from typing import List, Optional

from ..config.settings import settings
from ..domain.models import ChainStep, UserSnapshot
from ..domain.enums import ApproverType
from ..domain.errors import ApproverResolutionError, ManagerNotFoundError
from ..repositories.employee_repo import EmployeeRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)


class StepResolver:
    """
    Resolve the nominal approver set of a step, ignoring delegations.

    - user: the configured user id
    - manager: the requester's direct manager in the directory
    - role: every active employee holding the role
    - hr: every active employee holding the configured HR role

    For multi-user sets any member may decide; the ledger keeps only the
    first committed decision.
    """

    def __init__(self, employee_repo: Optional[EmployeeRepository] = None):
        self.employees = employee_repo or EmployeeRepository()

    def resolve_approvers(self, step: ChainStep, requester: UserSnapshot) -> List[str]:
        if step.approver_type == ApproverType.USER:
            if not step.approver_id:
                raise ApproverResolutionError(
                    f"Step {step.order} has no approver configured",
                    details={"step_order": step.order}
                )
            return [step.approver_id]

        if step.approver_type == ApproverType.MANAGER:
            manager = self.employees.get_manager(requester.user_id)
            if manager is None:
                raise ManagerNotFoundError(
                    f"No manager found for employee {requester.user_id}",
                    details={"employee_id": requester.user_id, "step_order": step.order}
                )
            return [manager.employee_id]

        if step.approver_type == ApproverType.ROLE:
            role = step.approver_role or ""
        else:
            role = settings.hr_approver_role

        approvers = [e.employee_id for e in self.employees.list_by_role(role)]
        if not approvers:
            logger.warning(
                f"No active employee holds role '{role}'",
                extra={"step_order": step.order}
            )
        return approvers
