"""Tests for delegations and their effect on approval authority"""

from datetime import date, datetime, timedelta, timezone

import pytest

from hr_approvals.engine.ledger import DecisionLedger
from hr_approvals.engine.delegation_overlay import DelegationOverlay
from hr_approvals.repositories.delegation_repo import DelegationRepository
from hr_approvals.repositories.audit_repo import AuditRepository
from hr_approvals.services.delegation_service import DelegationService
from hr_approvals.services.request_service import RequestService
from hr_approvals.services.notification_service import NotificationService
from hr_approvals.domain.models import Delegation, LeavePayload, OvertimePayload
from hr_approvals.domain.enums import AuditEventType, Decision, DelegationStatus, NotificationCategory
from hr_approvals.domain.errors import (
    ConcurrencyError, InvalidRangeError, InvalidStateError, NotAuthorizedError, OverlappingDelegationError,
    PermissionDeniedError, ValidationError
)
from hr_approvals.utils.time import today

from .conftest import HR_STEP, MANAGER_STEP

APRIL_1 = date(2026, 4, 1)
APRIL_5 = date(2026, 4, 5)
APRIL_10 = date(2026, 4, 10)
APRIL_15 = date(2026, 4, 15)


@pytest.fixture
def service():
    return DelegationService()


@pytest.fixture
def ledger():
    return DecisionLedger()


def submit_leave(actor):
    return RequestService().submit_request(
        actor,
        LeavePayload(leave_type="ANNUAL", start_date=APRIL_5, end_date=APRIL_5, days_requested=1),
        "Appointment"
    )


class TestCreate:

    def test_create_and_notify(self, service, actors):
        delegation = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)

        assert delegation.delegator_id == "E-MGR"
        assert delegation.delegate_name == "Omar Fassi"
        assert delegation.request_types is None
        assert delegation.status_on(APRIL_5) == DelegationStatus.ACTIVE
        assert delegation.status_on(APRIL_15) == DelegationStatus.EXPIRED

        items, unread = NotificationService().list_for_user(actors["E-DLG"])
        assert unread == 1
        assert items[0].category == NotificationCategory.DELEGATION_ASSIGNED

    def test_inverted_range(self, service, actors):
        with pytest.raises(InvalidRangeError):
            service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_10, APRIL_1)

    def test_self_delegation(self, service, actors):
        with pytest.raises(ValidationError):
            service.create_delegation(actors["E-MGR"], "E-MGR", APRIL_1, APRIL_10)

    def test_delegate_must_be_active(self, service, actors):
        with pytest.raises(ValidationError):
            service.create_delegation(actors["E-MGR"], "E-GONE", APRIL_1, APRIL_10)
        with pytest.raises(ValidationError):
            service.create_delegation(actors["E-MGR"], "E-NOBODY", APRIL_1, APRIL_10)

    def test_overlap_rejected(self, service, actors):
        service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)
        with pytest.raises(OverlappingDelegationError):
            service.create_delegation(actors["E-MGR"], "E-DIR", APRIL_5, APRIL_15)

    def test_disjoint_scopes_may_overlap_in_time(self, service, actors):
        service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10, request_types=["ANNUAL"])
        second = service.create_delegation(
            actors["E-MGR"], "E-DIR", APRIL_1, APRIL_10, request_types=["heures_sup", "heures_sup"]
        )
        assert second.request_types == ["heures_sup"]

    def test_adjacent_ranges_allowed(self, service, actors):
        service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_5)
        later = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_5 + timedelta(days=1), APRIL_10)
        assert later.start_date == date(2026, 4, 6)

    def test_employees_cannot_delegate(self, service, actors):
        with pytest.raises(PermissionDeniedError):
            service.create_delegation(actors["E-001"], "E-002", APRIL_1, APRIL_10)

    def test_on_behalf_requires_manage_all(self, service, actors):
        with pytest.raises(PermissionDeniedError):
            service.create_delegation(actors["E-DLG"], "E-DIR", APRIL_1, APRIL_10, delegator_id="E-MGR")

        delegation = service.create_delegation(
            actors["E-HR1"], "E-DLG", APRIL_1, APRIL_10, delegator_id="E-MGR"
        )
        assert delegation.delegator_id == "E-MGR"
        assert delegation.created_by == "E-HR1"


class TestApprovalAuthority:

    def test_delegate_approves_within_window(self, service, ledger, actors, annual_workflow):
        service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)
        request = submit_leave(actors["E-001"])

        updated = ledger.decide(request.request_id, Decision.APPROVE, actors["E-DLG"], on_date=APRIL_5)

        record = updated.history[0]
        assert updated.status_code == "approved_n1"
        assert record.actor.user_id == "E-DLG"
        assert record.on_behalf_of == "E-MGR"
        assert record.delegation_id is not None

    def test_delegate_refused_after_window(self, service, ledger, actors, annual_workflow):
        service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)
        request = submit_leave(actors["E-001"])

        with pytest.raises(NotAuthorizedError):
            ledger.decide(request.request_id, Decision.APPROVE, actors["E-DLG"], on_date=APRIL_15)

    def test_requester_gets_no_authority_as_delegate(self, service, ledger, actors, annual_workflow):
        service.create_delegation(actors["E-MGR"], "E-001", APRIL_1, APRIL_10)
        request = submit_leave(actors["E-001"])

        with pytest.raises(NotAuthorizedError):
            ledger.decide(request.request_id, Decision.APPROVE, actors["E-001"], on_date=APRIL_5)

        updated = ledger.decide(request.request_id, Decision.APPROVE, actors["E-MGR"], on_date=APRIL_5)
        assert updated.history[0].actor.user_id == "E-MGR"

    def test_delegator_keeps_authority(self, service, ledger, actors, annual_workflow):
        service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)
        request = submit_leave(actors["E-001"])

        updated = ledger.decide(request.request_id, Decision.APPROVE, actors["E-MGR"], on_date=APRIL_5)
        assert updated.history[0].on_behalf_of is None
        assert updated.history[0].delegation_id is None

    def test_scope_limits_delegation(self, service, ledger, actors, overtime_workflow):
        service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10, request_types=["ANNUAL"])
        request = RequestService().submit_request(
            actors["E-001"], OvertimePayload(request_date=APRIL_5, estimated_hours=2), "Inventory"
        )

        with pytest.raises(NotAuthorizedError):
            ledger.decide(request.request_id, Decision.APPROVE, actors["E-DLG"], on_date=APRIL_5)

    def test_step_can_forbid_delegation(self, service, ledger, actors, make_workflow):
        make_workflow("ANNUAL", [dict(MANAGER_STEP, allow_delegation=False), HR_STEP])
        service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)
        request = submit_leave(actors["E-001"])

        with pytest.raises(NotAuthorizedError):
            ledger.decide(request.request_id, Decision.APPROVE, actors["E-DLG"], on_date=APRIL_5)

    def test_cancelled_delegation_no_longer_applies(self, service, ledger, actors, annual_workflow):
        delegation = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)
        service.cancel_delegation(actors["E-MGR"], delegation.delegation_id, reason="Back early")
        request = submit_leave(actors["E-001"])

        with pytest.raises(NotAuthorizedError):
            ledger.decide(request.request_id, Decision.APPROVE, actors["E-DLG"], on_date=APRIL_5)

    def test_pending_queue_marks_delegated_items(self, service, actors, annual_workflow):
        start = today()
        service.create_delegation(actors["E-MGR"], "E-DLG", start, start + timedelta(days=3))
        request = submit_leave(actors["E-001"])

        queue = RequestService().list_pending_for_approver(actors["E-DLG"])
        assert [i["request_id"] for i in queue] == [request.request_id]
        info = queue[0]["delegation_info"]
        assert info["is_delegated"] is True
        assert info["delegator_id"] == "E-MGR"
        assert info["delegator_name"] == "Karim Alaoui"

    def test_most_recent_delegation_wins(self, actors):
        repo = DelegationRepository()
        created = datetime(2026, 3, 1, tzinfo=timezone.utc)
        for delegation_id, delegate_id, offset in (("DLG-OLD", "E-DLG", 0), ("DLG-NEW", "E-DIR", 1)):
            repo.create_delegation(Delegation(
                delegation_id=delegation_id,
                delegator_id="E-MGR",
                delegate_id=delegate_id,
                start_date=APRIL_1,
                end_date=APRIL_10,
                created_by="E-MGR",
                created_at=created + timedelta(days=offset),
            ))

        overlay = DelegationOverlay(repo)
        assert overlay.find_delegation("E-MGR", "ANNUAL", APRIL_5).delegation_id == "DLG-NEW"
        assert overlay.effective_approver("E-MGR", "ANNUAL", APRIL_5) == "E-DIR"
        assert overlay.effective_approver("E-MGR", "ANNUAL", APRIL_15) == "E-MGR"


class TestCancelAndQuery:

    def test_cancel(self, service, actors):
        delegation = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)

        cancelled = service.cancel_delegation(actors["E-MGR"], delegation.delegation_id, reason="Back early")
        assert cancelled.is_active is False
        assert cancelled.cancelled_by == "E-MGR"
        assert cancelled.cancellation_reason == "Back early"
        assert cancelled.status_on(APRIL_5) == DelegationStatus.CANCELLED

        with pytest.raises(InvalidStateError):
            service.cancel_delegation(actors["E-MGR"], delegation.delegation_id)

        items, _ = NotificationService().list_for_user(actors["E-DLG"])
        assert NotificationCategory.DELEGATION_CANCELLED in {n.category for n in items}

    def test_cancel_by_other_user(self, service, actors):
        delegation = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)

        with pytest.raises(PermissionDeniedError):
            service.cancel_delegation(actors["E-DLG"], delegation.delegation_id)
        assert service.cancel_delegation(actors["E-ADM"], delegation.delegation_id).is_active is False

    def test_cancelled_range_can_be_reused(self, service, actors):
        delegation = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)
        service.cancel_delegation(actors["E-MGR"], delegation.delegation_id)
        replacement = service.create_delegation(actors["E-MGR"], "E-DIR", APRIL_1, APRIL_10)
        assert replacement.is_active is True

    def test_list_and_received(self, service, actors):
        start = today()
        current = service.create_delegation(actors["E-MGR"], "E-DLG", start, start + timedelta(days=2))
        service.create_delegation(
            actors["E-MGR"], "E-DLG", start + timedelta(days=10), start + timedelta(days=12)
        )

        assert len(service.list_delegations(actors["E-MGR"])) == 2
        assert service.list_delegations(actors["E-DLG"]) == []
        assert [d.delegation_id for d in service.list_received(actors["E-DLG"])] == [current.delegation_id]

        with pytest.raises(PermissionDeniedError):
            service.list_delegations(actors["E-MGR"], all_users=True)
        assert len(service.list_delegations(actors["E-ADM"], all_users=True)) == 2

    def test_get_visibility(self, service, actors):
        delegation = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)

        assert service.get_delegation(actors["E-DLG"], delegation.delegation_id).delegator_id == "E-MGR"
        with pytest.raises(PermissionDeniedError):
            service.get_delegation(actors["E-001"], delegation.delegation_id)

    def test_check_approval(self, service, actors):
        delegation = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)

        result = service.check_approval(actors["E-DLG"], "E-MGR", request_type="ANNUAL", on_date=APRIL_5)
        assert result["can_approve"] is True
        assert result["is_delegated"] is True
        assert result["delegation"]["delegation_id"] == delegation.delegation_id

        assert service.check_approval(actors["E-DLG"], "E-MGR", on_date=APRIL_15)["can_approve"] is False
        assert service.check_approval(actors["E-MGR"], "E-MGR")["is_delegated"] is False

    def test_available_delegates_excludes_self_and_inactive(self, service, actors):
        ids = {e.employee_id for e in service.available_delegates(actors["E-MGR"])}
        assert "E-MGR" not in ids
        assert "E-GONE" not in ids
        assert "E-DLG" in ids


class TestUpdate:

    def test_extend_and_annotate(self, service, actors):
        delegation = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)

        updated = service.update_delegation(
            actors["E-MGR"], delegation.delegation_id, end_date=APRIL_15, notes="Trip extended", on_date=APRIL_5
        )
        assert updated.end_date == APRIL_15
        assert updated.notes == "Trip extended"
        assert updated.start_date == APRIL_1

        events = AuditRepository().get_events_for_entity(delegation.delegation_id)
        assert AuditEventType.UPDATE_DELEGATION in {e.event_type for e in events}

    def test_new_end_date_is_checked_again(self, service, actors):
        first = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_5)
        service.create_delegation(actors["E-MGR"], "E-DIR", APRIL_10, APRIL_15)

        with pytest.raises(OverlappingDelegationError):
            service.update_delegation(actors["E-MGR"], first.delegation_id, end_date=APRIL_10, on_date=APRIL_1)
        with pytest.raises(InvalidRangeError):
            service.update_delegation(
                actors["E-MGR"], first.delegation_id, end_date=date(2026, 3, 30), on_date=APRIL_1
            )

        # Its own current range is not a conflict
        moved = service.update_delegation(
            actors["E-MGR"], first.delegation_id, end_date=date(2026, 4, 8), on_date=APRIL_1
        )
        assert moved.end_date == date(2026, 4, 8)

    def test_expired_or_cancelled_cannot_change(self, service, actors):
        delegation = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)

        with pytest.raises(InvalidStateError):
            service.update_delegation(actors["E-MGR"], delegation.delegation_id, notes="late", on_date=APRIL_15)

        service.cancel_delegation(actors["E-MGR"], delegation.delegation_id)
        with pytest.raises(InvalidStateError):
            service.update_delegation(actors["E-MGR"], delegation.delegation_id, notes="late", on_date=APRIL_5)

    def test_only_delegator_or_administrator(self, service, actors):
        delegation = service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_10)

        with pytest.raises(PermissionDeniedError):
            service.update_delegation(actors["E-DLG"], delegation.delegation_id, notes="mine now", on_date=APRIL_5)
        updated = service.update_delegation(
            actors["E-ADM"], delegation.delegation_id, notes="Approved by HR", on_date=APRIL_5
        )
        assert updated.notes == "Approved by HR"


class RacingDelegationRepository(DelegationRepository):
    """Runs a competing write right after the overlap query"""

    def __init__(self, competitor):
        super().__init__()
        self._competitor = competitor

    def find_active_overlapping(self, delegator_id, start_date, end_date):
        found = super().find_active_overlapping(delegator_id, start_date, end_date)
        if self._competitor is not None:
            competitor, self._competitor = self._competitor, None
            competitor()
        return found


class TestConcurrentWrites:

    def test_concurrent_overlapping_creates(self, service, actors):
        racing = DelegationService(repo=RacingDelegationRepository(
            lambda: service.create_delegation(actors["E-MGR"], "E-DIR", APRIL_1, APRIL_10)
        ))

        with pytest.raises(ConcurrencyError):
            racing.create_delegation(actors["E-MGR"], "E-DLG", APRIL_5, APRIL_15)

        active = service.list_delegations(actors["E-MGR"], active_only=True)
        assert [d.delegate_id for d in active] == ["E-DIR"]

    def test_guard_version_moves_once_per_write(self, service, actors):
        repo = DelegationRepository()
        assert repo.guard_version("E-MGR") == 0

        service.create_delegation(actors["E-MGR"], "E-DLG", APRIL_1, APRIL_5)
        assert repo.guard_version("E-MGR") == 1

        with pytest.raises(ConcurrencyError):
            repo.claim_guard("E-MGR", 0)
        repo.claim_guard("E-MGR", 1)
        assert repo.guard_version("E-MGR") == 2
