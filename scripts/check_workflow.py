"""
Script to inspect a validation workflow and report step-order problems
Run: python -m scripts.check_workflow WF-XXXX
"""
import sys

from hr_approvals.repositories.workflow_repo import WorkflowRepository


def check_workflow(workflow_id: str) -> bool:
    workflow = WorkflowRepository().get_workflow(workflow_id)
    if workflow is None:
        print(f"Workflow {workflow_id} not found")
        return False

    print(f"Workflow: {workflow.name}")
    print(f"   Trigger: {workflow.trigger_type}")
    print(f"   Segment: {workflow.segment_id or '-'}")
    print(f"   Active:  {workflow.is_active}")
    print(f"   Version: {workflow.version}")
    print()

    steps = workflow.ordered_steps()
    print("=" * 60)
    print(f"STEPS ({len(steps)})")
    print("=" * 60)
    for step in steps:
        target = step.approver_id or step.approver_role or ""
        print(f"   {step.order}. {step.approver_type.value:<8} {target:<16} {step.approver_name or ''}")

    problems = []
    if not steps:
        problems.append("workflow has no steps; requests cannot be routed to it")
    orders = [s.order for s in steps]
    if orders != list(range(1, len(steps) + 1)):
        problems.append(f"step orders are not dense 1..N: {orders}")

    print()
    if problems:
        for problem in problems:
            print(f"   ! {problem}")
        return False
    print("   OK")
    return True


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python -m scripts.check_workflow <workflow_id>")
        sys.exit(2)
    sys.exit(0 if check_workflow(sys.argv[1]) else 1)
