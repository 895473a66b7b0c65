"""
Pytest Configuration and Fixtures

Every test runs against a fresh in-memory MongoDB (mongomock) seeded with a
small org chart:

    E-DIR (director) <- E-MGR (manager) <- E-001, E-002 (employees)
    E-HR1, E-HR2 (hr)     E-DLG (deputy manager)     E-ADM (admin)
    E-ORPHAN (employee without a manager)     E-SEG (employee in segment SEG-RABAT)
"""

import os
from typing import Any, Dict, List, Optional

# Console logging only while testing
os.environ.setdefault("LOG_TO_FILE", "false")

import mongomock  # noqa: E402
import pytest  # noqa: E402

from hr_approvals.repositories.mongo_client import use_database  # noqa: E402
from hr_approvals.repositories.employee_repo import EmployeeRepository  # noqa: E402
from hr_approvals.services.workflow_service import WorkflowService  # noqa: E402
from hr_approvals.domain.models import ActorContext, Employee, ValidationWorkflow  # noqa: E402
from hr_approvals.domain.enums import ApproverType  # noqa: E402
from hr_approvals.utils.jwt import create_access_token  # noqa: E402


EMPLOYEES: List[Employee] = [
    Employee(employee_id="E-DIR", display_name="Nadia Benali", email="nadia@example.com",
             roles=["manager", "director"]),
    Employee(employee_id="E-MGR", display_name="Karim Alaoui", email="karim@example.com",
             manager_id="E-DIR", roles=["manager"]),
    Employee(employee_id="E-DLG", display_name="Omar Fassi", email="omar@example.com",
             manager_id="E-DIR", roles=["manager"]),
    Employee(employee_id="E-HR1", display_name="Salma Idrissi", email="salma@example.com",
             manager_id="E-DIR", roles=["hr"]),
    Employee(employee_id="E-HR2", display_name="Youssef Tazi", email="youssef@example.com",
             manager_id="E-DIR", roles=["hr"]),
    Employee(employee_id="E-ADM", display_name="Admin", email="admin@example.com",
             roles=["admin"]),
    Employee(employee_id="E-001", display_name="Amine Berrada", email="amine@example.com",
             manager_id="E-MGR", roles=["employee"]),
    Employee(employee_id="E-002", display_name="Leila Chraibi", email="leila@example.com",
             manager_id="E-MGR", roles=["employee"]),
    Employee(employee_id="E-ORPHAN", display_name="Rachid Ouali", email="rachid@example.com",
             roles=["employee"]),
    Employee(employee_id="E-SEG", display_name="Hind Sqalli", email="hind@example.com",
             manager_id="E-MGR", segment_id="SEG-RABAT", roles=["employee"]),
    Employee(employee_id="E-GONE", display_name="Former Staff", roles=["manager"], is_active=False),
]

MANAGER_STEP = {"approver_type": ApproverType.MANAGER, "approver_name": "Manager"}
DIRECTOR_STEP = {"approver_type": ApproverType.ROLE, "approver_role": "director", "approver_name": "Director"}
HR_STEP = {"approver_type": ApproverType.HR, "approver_name": "HR"}


@pytest.fixture(autouse=True)
def db():
    """Fresh database for each test"""
    database = mongomock.MongoClient()["hr_validation_test"]
    use_database(database)
    repo = EmployeeRepository()
    for employee in EMPLOYEES:
        repo.upsert_employee(employee)
    yield database
    use_database(None)


@pytest.fixture
def actors() -> Dict[str, ActorContext]:
    """Actor context for every seeded employee, keyed by employee ID"""
    return {
        e.employee_id: ActorContext(
            user_id=e.employee_id,
            display_name=e.display_name,
            email=e.email,
            roles=list(e.roles),
        )
        for e in EMPLOYEES
    }


@pytest.fixture
def make_workflow(actors):
    """Factory creating an active workflow through the service"""
    def _make(
        trigger_type: str,
        steps: List[Dict[str, Any]],
        name: Optional[str] = None,
        **kwargs: Any
    ) -> ValidationWorkflow:
        kwargs.setdefault("is_active", True)
        return WorkflowService().create_workflow(
            name=name or f"{trigger_type} workflow",
            trigger_type=trigger_type,
            actor=actors["E-ADM"],
            steps=steps,
            **kwargs
        )

    return _make


@pytest.fixture
def annual_workflow(make_workflow) -> ValidationWorkflow:
    """Manager -> director -> HR"""
    return make_workflow("ANNUAL", [MANAGER_STEP, DIRECTOR_STEP, HR_STEP], name="Annual leave")


@pytest.fixture
def sick_workflow(make_workflow) -> ValidationWorkflow:
    """HR only"""
    return make_workflow("SICK", [HR_STEP], name="Sick leave")


@pytest.fixture
def overtime_workflow(make_workflow) -> ValidationWorkflow:
    """Manager -> HR"""
    return make_workflow("heures_sup", [MANAGER_STEP, HR_STEP], name="Overtime")


@pytest.fixture
def correction_workflow(make_workflow) -> ValidationWorkflow:
    return make_workflow("correction", [MANAGER_STEP, HR_STEP], name="Attendance correction")


@pytest.fixture
def auth_headers():
    """Factory building a bearer header for a seeded employee"""
    by_id = {e.employee_id: e for e in EMPLOYEES}

    def _headers(employee_id: str) -> Dict[str, str]:
        employee = by_id[employee_id]
        token = create_access_token({
            "sub": employee.employee_id,
            "name": employee.display_name,
            "email": employee.email,
            "roles": list(employee.roles),
        })
        return {"Authorization": f"Bearer {token}"}

    return _headers
