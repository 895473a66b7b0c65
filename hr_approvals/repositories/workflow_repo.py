"""Workflow Repository - Data access for validation workflows and their steps"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from .mongo_client import get_collection
from ..domain.models import ValidationWorkflow, WorkflowStep
from ..domain.errors import WorkflowNotFoundError, ConcurrencyError, AlreadyExistsError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowRepository:
    """Repository for validation workflow operations"""

    def __init__(self):
        self._workflows: Collection = get_collection("validation_workflows")

    # =========================================================================
    # Workflow CRUD
    # =========================================================================

    def create_workflow(self, workflow: ValidationWorkflow) -> ValidationWorkflow:
        """Create a new workflow"""
        doc = workflow.model_dump(mode="json")
        doc["_id"] = workflow.workflow_id

        try:
            self._workflows.insert_one(doc)
        except DuplicateKeyError:
            raise AlreadyExistsError(f"Workflow {workflow.workflow_id} already exists")

        logger.info(f"Created workflow: {workflow.workflow_id}", extra={"workflow_id": workflow.workflow_id})
        return workflow

    def get_workflow(self, workflow_id: str) -> Optional[ValidationWorkflow]:
        """Get workflow by ID"""
        doc = self._workflows.find_one({"workflow_id": workflow_id})
        if doc:
            doc.pop("_id", None)
            return ValidationWorkflow.model_validate(doc)
        return None

    def get_workflow_or_raise(self, workflow_id: str) -> ValidationWorkflow:
        """Get workflow by ID or raise error"""
        workflow = self.get_workflow(workflow_id)
        if not workflow:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
        return workflow

    def update_workflow(
        self,
        workflow_id: str,
        updates: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> ValidationWorkflow:
        """
        Update workflow with optimistic concurrency

        Args:
            workflow_id: Workflow ID
            updates: Fields to update
            expected_version: Expected version for optimistic lock
        """
        updates["updated_at"] = utc_now().isoformat()

        filter_query: Dict[str, Any] = {"workflow_id": workflow_id}
        if expected_version is not None:
            filter_query["version"] = expected_version
            updates["version"] = expected_version + 1

        result = self._workflows.find_one_and_update(
            filter_query,
            {"$set": updates},
            return_document=True
        )

        if result is None:
            if expected_version is not None:
                exists = self._workflows.find_one({"workflow_id": workflow_id})
                if exists:
                    raise ConcurrencyError(
                        f"Workflow {workflow_id} was modified. Please refresh and try again.",
                        details={"expected_version": expected_version}
                    )
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")

        result.pop("_id", None)
        logger.info(f"Updated workflow: {workflow_id}", extra={"workflow_id": workflow_id})
        return ValidationWorkflow.model_validate(result)

    def replace_steps(
        self,
        workflow_id: str,
        steps: List[WorkflowStep],
        expected_version: int
    ) -> ValidationWorkflow:
        """Write the full step list in one version-checked update"""
        return self.update_workflow(
            workflow_id,
            {"steps": [step.model_dump(mode="json") for step in steps]},
            expected_version
        )

    def delete_workflow(self, workflow_id: str) -> bool:
        """Delete a workflow (steps are embedded and go with it)"""
        result = self._workflows.delete_one({"workflow_id": workflow_id})
        if result.deleted_count:
            logger.info(f"Deleted workflow: {workflow_id}", extra={"workflow_id": workflow_id})
        return result.deleted_count > 0

    def list_workflows(
        self,
        trigger_type: Optional[str] = None,
        active_only: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[ValidationWorkflow]:
        """List workflows, highest priority first"""
        query: Dict[str, Any] = {}

        if trigger_type:
            query["trigger_type"] = trigger_type
        if active_only:
            query["is_active"] = True

        cursor = (
            self._workflows.find(query)
            .sort([("priority", DESCENDING), ("name", 1)])
            .skip(skip)
            .limit(limit)
        )

        workflows = []
        for doc in cursor:
            doc.pop("_id", None)
            workflows.append(ValidationWorkflow.model_validate(doc))
        return workflows

    def count_workflows(self, trigger_type: Optional[str] = None, active_only: bool = False) -> int:
        """Count workflows"""
        query: Dict[str, Any] = {}
        if trigger_type:
            query["trigger_type"] = trigger_type
        if active_only:
            query["is_active"] = True
        return self._workflows.count_documents(query)

    def list_trigger_types(self) -> List[str]:
        """Distinct trigger types across all workflows"""
        return sorted(self._workflows.distinct("trigger_type"))

    def find_active_for_trigger(self, trigger_type: str) -> List[ValidationWorkflow]:
        """Active workflows candidate for a new request of this type"""
        return self.list_workflows(trigger_type=trigger_type, active_only=True)
