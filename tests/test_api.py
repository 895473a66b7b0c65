"""HTTP tests for the /api/v1/hr endpoints"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from hr_approvals.main import create_app
from hr_approvals.utils.time import today

BASE = "/api/v1/hr"

LEAVE_BODY = {
    "payload": {
        "kind": "leave",
        "leave_type": "ANNUAL",
        "start_date": "2026-04-06",
        "end_date": "2026-04-08",
        "days_requested": 3,
    },
    "reason": "Family trip",
}


@pytest.fixture
def client():
    # No context manager: the lifespan would connect to a real MongoDB
    return TestClient(create_app())


def submit_leave(client, auth_headers, employee_id="E-001"):
    response = client.post(f"{BASE}/my/requests", json=LEAVE_BODY, headers=auth_headers(employee_id))
    assert response.status_code == 201
    return response.json()["data"]


class TestEnvelope:

    def test_missing_token(self, client):
        response = client.get(f"{BASE}/my/requests")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "AUTHENTICATION_ERROR"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, client):
        response = client.get(f"{BASE}/my/requests", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_correlation_id_is_echoed(self, client, auth_headers):
        headers = dict(auth_headers("E-001"), **{"X-Correlation-Id": "COR-test-1"})
        response = client.get(f"{BASE}/my/requests", headers=headers)
        assert response.status_code == 200
        assert response.headers["X-Correlation-Id"] == "COR-test-1"

    def test_body_validation_error(self, client, auth_headers, annual_workflow):
        response = client.post(
            f"{BASE}/my/requests",
            json={"payload": LEAVE_BODY["payload"]},
            headers=auth_headers("E-001")
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"][0]["field"] == "reason"

    def test_unknown_route(self, client, auth_headers):
        response = client.get(f"{BASE}/nowhere", headers=auth_headers("E-001"))
        assert response.status_code == 404
        assert response.json()["code"] == "HTTP_404"


class TestMyRequests:

    def test_submit_and_list(self, client, auth_headers, annual_workflow):
        created = submit_leave(client, auth_headers)
        assert created["status_code"] == "pending"
        assert created["current_approver_level"] == 1
        assert created["total_steps"] == 3
        assert created["is_overdue"] is False

        response = client.get(f"{BASE}/my/requests", headers=auth_headers("E-001"))
        body = response.json()
        assert body["success"] is True
        assert [r["request_id"] for r in body["data"]] == [created["request_id"]]

        detail = client.get(f"{BASE}/my/requests/{created['request_id']}", headers=auth_headers("E-001"))
        assert detail.json()["data"]["reason"] == "Family trip"

    def test_other_employee_cannot_read(self, client, auth_headers, annual_workflow):
        created = submit_leave(client, auth_headers)
        response = client.get(f"{BASE}/my/requests/{created['request_id']}", headers=auth_headers("E-002"))
        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"

    def test_no_workflow(self, client, auth_headers):
        response = client.post(f"{BASE}/my/requests", json=LEAVE_BODY, headers=auth_headers("E-001"))
        assert response.status_code == 422
        assert response.json()["code"] == "NO_WORKFLOW_CONFIGURED"

    def test_correction_request(self, client, auth_headers, correction_workflow):
        body = {"request_date": "2026-03-10", "requested_check_in": "08:30:00", "reason": "Badge failure"}

        first = client.post(f"{BASE}/my/correction-requests", json=body, headers=auth_headers("E-001"))
        assert first.status_code == 201
        assert first.json()["data"]["request_type"] == "correction"

        duplicate = client.post(f"{BASE}/my/correction-requests", json=body, headers=auth_headers("E-001"))
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == "ALREADY_EXISTS"

    def test_correction_needs_a_time(self, client, auth_headers, correction_workflow):
        body = {"request_date": "2026-03-10", "reason": "Badge failure"}
        response = client.post(f"{BASE}/my/correction-requests", json=body, headers=auth_headers("E-001"))
        assert response.status_code == 400

    def test_cancel(self, client, auth_headers, annual_workflow):
        created = submit_leave(client, auth_headers)
        url = f"{BASE}/my/requests/{created['request_id']}/cancel"

        assert client.post(url, headers=auth_headers("E-MGR")).status_code == 403
        response = client.post(url, headers=auth_headers("E-001"))
        assert response.json()["data"]["status_code"] == "cancelled"
        assert client.post(url, headers=auth_headers("E-001")).json()["code"] == "INVALID_STATE"


class TestValidation:

    def test_approve_then_reject(self, client, auth_headers, annual_workflow):
        created = submit_leave(client, auth_headers)
        request_id = created["request_id"]

        pending = client.get(f"{BASE}/validation/pending", headers=auth_headers("E-MGR")).json()
        assert pending["total"] == 1

        approved = client.post(f"{BASE}/validation/{request_id}/approve", headers=auth_headers("E-MGR"))
        assert approved.status_code == 200
        assert approved.json()["data"]["status_code"] == "approved_n1"

        no_comment = client.post(
            f"{BASE}/validation/{request_id}/reject", json={}, headers=auth_headers("E-DIR")
        )
        assert no_comment.status_code == 400
        assert no_comment.json()["code"] == "COMMENT_REQUIRED"

        rejected = client.post(
            f"{BASE}/validation/{request_id}/reject",
            json={"comment": "Busy period", "step_order": 2},
            headers=auth_headers("E-DIR")
        )
        assert rejected.json()["data"]["status_code"] == "rejected"

        history = client.get(f"{BASE}/validation/history", headers=auth_headers("E-DIR")).json()
        assert [r["request_id"] for r in history["data"]] == [request_id]

        notifications = client.get(f"{BASE}/notifications", headers=auth_headers("E-001")).json()
        assert notifications["unread_count"] == 1
        notification_id = notifications["data"][0]["notification_id"]

        read = client.put(f"{BASE}/notifications/{notification_id}/read", headers=auth_headers("E-001"))
        assert read.json()["data"]["is_read"] is True

    def test_wrong_approver(self, client, auth_headers, annual_workflow):
        created = submit_leave(client, auth_headers)
        response = client.post(
            f"{BASE}/validation/{created['request_id']}/approve", headers=auth_headers("E-HR1")
        )
        assert response.status_code == 403
        assert response.json()["code"] == "NOT_AUTHORIZED"

    def test_stale_step(self, client, auth_headers, annual_workflow):
        created = submit_leave(client, auth_headers)
        url = f"{BASE}/validation/{created['request_id']}/approve"
        client.post(url, json={"step_order": 1}, headers=auth_headers("E-MGR"))

        response = client.post(url, json={"step_order": 1}, headers=auth_headers("E-MGR"))
        assert response.status_code == 409
        assert response.json()["code"] == "STEP_MISMATCH"

    def test_detail(self, client, auth_headers, sick_workflow):
        body = dict(LEAVE_BODY, payload=dict(LEAVE_BODY["payload"], leave_type="SICK"))
        created = client.post(f"{BASE}/my/requests", json=body, headers=auth_headers("E-001")).json()["data"]

        detail = client.get(f"{BASE}/validation/{created['request_id']}", headers=auth_headers("E-HR2"))
        data = detail.json()["data"]
        assert data["can_decide"] is True
        assert len(data["audit_events"]) == 1


class TestWorkflowRoutes:

    def test_workflow_lifecycle(self, client, auth_headers):
        headers = auth_headers("E-HR1")
        created = client.post(
            f"{BASE}/validation/workflows",
            json={
                "name": "Overtime",
                "trigger_type": "heures_sup",
                "steps": [{"approver_type": "manager"}, {"approver_type": "hr"}],
            },
            headers=headers
        )
        assert created.status_code == 201
        workflow = created.json()["data"]
        workflow_id = workflow["workflow_id"]
        assert workflow["is_active"] is False

        listing = client.get(f"{BASE}/validation/workflows", headers=headers).json()
        assert listing["total"] == 1

        added = client.post(
            f"{BASE}/validation/workflows/{workflow_id}/steps",
            json={"approver_type": "user", "approver_id": "E-DIR"},
            headers=headers
        ).json()
        assert added["step"]["order"] == 3
        step_id = added["step"]["step_id"]

        moved = client.post(
            f"{BASE}/validation/workflows/{workflow_id}/steps/{step_id}/move",
            json={"direction": "up"},
            headers=headers
        ).json()["data"]
        assert [s["approver_type"] for s in sorted(moved["steps"], key=lambda s: s["order"])] == [
            "manager", "user", "hr"
        ]

        invalid = client.post(
            f"{BASE}/validation/workflows/{workflow_id}/steps/{moved['steps'][0]['step_id']}/move",
            json={"direction": "sideways"},
            headers=headers
        )
        assert invalid.status_code == 400

        toggled = client.put(f"{BASE}/validation/workflows/{workflow_id}/toggle", headers=headers).json()
        assert toggled["data"]["is_active"] is True

        deleted = client.delete(f"{BASE}/validation/workflows/{workflow_id}", headers=headers)
        assert deleted.json()["success"] is True

    def test_employee_cannot_manage(self, client, auth_headers):
        response = client.post(
            f"{BASE}/validation/workflows",
            json={"name": "Overtime", "trigger_type": "heures_sup"},
            headers=auth_headers("E-001")
        )
        assert response.status_code == 403

    def test_null_update_leaves_workflow_usable(self, client, auth_headers, annual_workflow):
        url = f"{BASE}/validation/workflows/{annual_workflow.workflow_id}"
        headers = auth_headers("E-HR1")

        for body in ({"priority": None}, {"is_active": None}):
            response = client.put(url, json=body, headers=headers)
            assert response.status_code == 400
            assert response.json()["code"] == "VALIDATION_ERROR"

        assert client.get(url, headers=headers).json()["data"]["priority"] == annual_workflow.priority
        submit_leave(client, auth_headers)

    def test_stats_summary(self, client, auth_headers, annual_workflow):
        submit_leave(client, auth_headers)

        response = client.get(f"{BASE}/validation/workflows/stats/summary", headers=auth_headers("E-HR1"))
        assert response.status_code == 200
        stats = response.json()["data"]
        assert stats["total"] == 1
        assert stats["active"] == 1
        assert stats["pending_requests"] == 1


class TestDelegationRoutes:

    def test_create_receive_cancel(self, client, auth_headers):
        start = today()
        created = client.post(
            f"{BASE}/delegations",
            json={
                "delegate_id": "E-DLG",
                "start_date": start.isoformat(),
                "end_date": (start + timedelta(days=5)).isoformat(),
            },
            headers=auth_headers("E-MGR")
        )
        assert created.status_code == 201
        delegation = created.json()["data"]
        assert delegation["current_status"] == "active"

        received = client.get(f"{BASE}/delegations/received", headers=auth_headers("E-DLG")).json()
        assert [d["delegation_id"] for d in received["data"]] == [delegation["delegation_id"]]

        check = client.get(
            f"{BASE}/delegations/check-approval/E-MGR",
            params={"request_type": "ANNUAL"},
            headers=auth_headers("E-DLG")
        ).json()
        assert check["data"]["can_approve"] is True

        cancelled = client.delete(
            f"{BASE}/delegations/{delegation['delegation_id']}",
            params={"reason": "Back early"},
            headers=auth_headers("E-MGR")
        ).json()
        assert cancelled["data"]["current_status"] == "cancelled"

    def test_overlap_conflict(self, client, auth_headers):
        body = {"delegate_id": "E-DLG", "start_date": "2026-04-01", "end_date": "2026-04-10"}
        client.post(f"{BASE}/delegations", json=body, headers=auth_headers("E-MGR"))

        response = client.post(f"{BASE}/delegations", json=body, headers=auth_headers("E-MGR"))
        assert response.status_code == 409
        assert response.json()["code"] == "OVERLAPPING_DELEGATION"

    def test_available_delegates(self, client, auth_headers):
        response = client.get(f"{BASE}/delegations/available-delegates", headers=auth_headers("E-MGR"))
        ids = {e["employee_id"] for e in response.json()["data"]}
        assert "E-MGR" not in ids
        assert "E-DLG" in ids

    def test_update_end_date(self, client, auth_headers):
        start = today()
        created = client.post(
            f"{BASE}/delegations",
            json={
                "delegate_id": "E-DLG",
                "start_date": start.isoformat(),
                "end_date": (start + timedelta(days=5)).isoformat(),
            },
            headers=auth_headers("E-MGR")
        ).json()["data"]
        url = f"{BASE}/delegations/{created['delegation_id']}"

        updated = client.put(
            url,
            json={"end_date": (start + timedelta(days=9)).isoformat(), "notes": "Trip extended"},
            headers=auth_headers("E-MGR")
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["end_date"] == (start + timedelta(days=9)).isoformat()
        assert updated.json()["data"]["notes"] == "Trip extended"

        inverted = client.put(
            url, json={"end_date": (start - timedelta(days=1)).isoformat()}, headers=auth_headers("E-MGR")
        )
        assert inverted.status_code == 400

        client.delete(url, headers=auth_headers("E-MGR"))
        cancelled = client.put(url, json={"notes": "too late"}, headers=auth_headers("E-MGR"))
        assert cancelled.status_code == 409
        assert cancelled.json()["code"] == "INVALID_STATE"
