"""
Seed Data Script - Creates a sample org chart and default validation workflows
Run: python -m scripts.seed_data
"""
from typing import Any, Dict, List

from hr_approvals.repositories.mongo_client import create_indexes
from hr_approvals.repositories.employee_repo import EmployeeRepository
from hr_approvals.repositories.workflow_repo import WorkflowRepository
from hr_approvals.services.workflow_service import WorkflowService
from hr_approvals.domain.models import ActorContext, Employee
from hr_approvals.domain.enums import (
    ApproverType, Role, OVERTIME_REQUEST_TYPE, CORRECTION_REQUEST_TYPE
)

SEED_ACTOR = ActorContext(
    user_id="system-seed",
    display_name="Seed Script",
    roles=[Role.ADMIN.value]
)

EMPLOYEES: List[Employee] = [
    Employee(employee_id="E-DIR", display_name="Nadia Benali", email="n.benali@example.com",
             department="Operations", roles=["manager", "director"]),
    Employee(employee_id="E-MGR", display_name="Karim Alaoui", email="k.alaoui@example.com",
             department="Operations", manager_id="E-DIR", roles=["manager"]),
    Employee(employee_id="E-HR1", display_name="Salma Idrissi", email="s.idrissi@example.com",
             department="Human Resources", manager_id="E-DIR", roles=["hr"]),
    Employee(employee_id="E-HR2", display_name="Youssef Tazi", email="y.tazi@example.com",
             department="Human Resources", manager_id="E-DIR", roles=["hr"]),
    Employee(employee_id="E-001", display_name="Amine Berrada", email="a.berrada@example.com",
             department="Operations", manager_id="E-MGR", roles=["employee"]),
    Employee(employee_id="E-002", display_name="Leila Chraibi", email="l.chraibi@example.com",
             department="Operations", manager_id="E-MGR", roles=["employee"]),
]

MANAGER_STEP = {"approver_type": ApproverType.MANAGER.value, "approver_name": "Direct manager"}
DIRECTOR_STEP = {
    "approver_type": ApproverType.ROLE.value,
    "approver_role": "director",
    "approver_name": "Director",
}
HR_STEP = {"approver_type": ApproverType.HR.value, "approver_name": "HR"}

WORKFLOWS: List[Dict[str, Any]] = [
    {
        "name": "Annual leave",
        "trigger_type": "ANNUAL",
        "description": "Manager, director, then HR",
        "steps": [MANAGER_STEP, DIRECTOR_STEP, HR_STEP],
    },
    {
        "name": "Sick leave",
        "trigger_type": "SICK",
        "description": "HR only",
        "steps": [HR_STEP],
    },
    {
        "name": "Overtime",
        "trigger_type": OVERTIME_REQUEST_TYPE,
        "description": "Manager then HR",
        "steps": [MANAGER_STEP, HR_STEP],
    },
    {
        "name": "Attendance correction",
        "trigger_type": CORRECTION_REQUEST_TYPE,
        "description": "Manager then HR",
        "steps": [MANAGER_STEP, HR_STEP],
    },
]


def seed_employees() -> None:
    repo = EmployeeRepository()
    for employee in EMPLOYEES:
        repo.upsert_employee(employee)
    print(f"Upserted {len(EMPLOYEES)} employees")


def seed_workflows() -> None:
    repo = WorkflowRepository()
    service = WorkflowService(repo=repo)

    for definition in WORKFLOWS:
        if repo.find_active_for_trigger(definition["trigger_type"]):
            print(f"Skipping '{definition['name']}': an active workflow already handles {definition['trigger_type']}")
            continue
        workflow = service.create_workflow(
            name=definition["name"],
            trigger_type=definition["trigger_type"],
            actor=SEED_ACTOR,
            description=definition["description"],
            is_active=True,
            steps=definition["steps"]
        )
        print(f"Created workflow {workflow.workflow_id}: {workflow.name} ({len(workflow.steps)} steps)")


def main() -> None:
    create_indexes()
    seed_employees()
    seed_workflows()
    print("Seed complete")


if __name__ == "__main__":
    main()
