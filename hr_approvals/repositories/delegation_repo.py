"""Delegation Repository - Data access for approval delegations"""
from datetime import date
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from .mongo_client import get_collection
from ..domain.models import Delegation
from ..domain.errors import ConcurrencyError, DelegationNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DelegationRepository:
    """
    Repository for delegation operations

    Writes that change a delegator's date coverage go through a per-delegator
    guard document. Its version is bumped once per write, and a writer whose
    guard moved since it ran the overlap check fails.
    """

    def __init__(self):
        self._delegations: Collection = get_collection("delegations")
        self._guards: Collection = get_collection("delegation_guards")

    def _to_model(self, doc: Dict[str, Any]) -> Delegation:
        doc.pop("_id", None)
        return Delegation.model_validate(doc)

    def create_delegation(self, delegation: Delegation) -> Delegation:
        """Create a delegation"""
        doc = delegation.model_dump(mode="json")
        doc["_id"] = delegation.delegation_id

        self._delegations.insert_one(doc)
        logger.info(
            f"Created delegation {delegation.delegator_id} -> {delegation.delegate_id}",
            extra={"delegation_id": delegation.delegation_id}
        )
        return delegation

    def get_delegation(self, delegation_id: str) -> Optional[Delegation]:
        """Get delegation by ID"""
        doc = self._delegations.find_one({"delegation_id": delegation_id})
        if doc:
            return self._to_model(doc)
        return None

    def get_delegation_or_raise(self, delegation_id: str) -> Delegation:
        """Get delegation by ID or raise error"""
        delegation = self.get_delegation(delegation_id)
        if not delegation:
            raise DelegationNotFoundError(f"Delegation {delegation_id} not found")
        return delegation

    def find_active_overlapping(self, delegator_id: str, start_date: date, end_date: date) -> List[Delegation]:
        """Active delegations of a delegator whose date range intersects [start, end]"""
        # Dates are stored as ISO strings, which sort chronologically
        cursor = self._delegations.find({
            "delegator_id": delegator_id,
            "is_active": True,
            "start_date": {"$lte": end_date.isoformat()},
            "end_date": {"$gte": start_date.isoformat()},
        })
        return [self._to_model(doc) for doc in cursor]

    def find_covering(self, delegator_id: str, on_date: date) -> List[Delegation]:
        """Active delegations of a delegator in force on a given day, newest first"""
        day = on_date.isoformat()
        cursor = self._delegations.find({
            "delegator_id": delegator_id,
            "is_active": True,
            "start_date": {"$lte": day},
            "end_date": {"$gte": day},
        }).sort("created_at", DESCENDING)
        return [self._to_model(doc) for doc in cursor]

    def list_delegations(
        self,
        delegator_id: Optional[str] = None,
        delegate_id: Optional[str] = None,
        active_only: bool = False,
        limit: int = 200
    ) -> List[Delegation]:
        """List delegations, newest first"""
        query: Dict[str, Any] = {}
        if delegator_id:
            query["delegator_id"] = delegator_id
        if delegate_id:
            query["delegate_id"] = delegate_id
        if active_only:
            query["is_active"] = True

        cursor = self._delegations.find(query).sort("created_at", DESCENDING).limit(limit)
        return [self._to_model(doc) for doc in cursor]

    def update_delegation(self, delegation_id: str, updates: Dict[str, Any]) -> Delegation:
        """Edit an active delegation"""
        result = self._delegations.find_one_and_update(
            {"delegation_id": delegation_id, "is_active": True},
            {"$set": updates},
            return_document=True
        )
        if result is None:
            raise DelegationNotFoundError(f"Active delegation {delegation_id} not found")

        logger.info(f"Updated delegation: {delegation_id}", extra={"delegation_id": delegation_id})
        return self._to_model(result)

    def mark_cancelled(self, delegation_id: str, updates: Dict[str, Any]) -> Delegation:
        """Deactivate an active delegation"""
        updates["is_active"] = False
        result = self._delegations.find_one_and_update(
            {"delegation_id": delegation_id, "is_active": True},
            {"$set": updates},
            return_document=True
        )
        if result is None:
            raise DelegationNotFoundError(f"Active delegation {delegation_id} not found")

        logger.info(f"Cancelled delegation: {delegation_id}", extra={"delegation_id": delegation_id})
        return self._to_model(result)

    # =========================================================================
    # Per-delegator write guard
    # =========================================================================

    def guard_version(self, delegator_id: str) -> int:
        doc = self._guards.find_one({"_id": delegator_id})
        return doc["version"] if doc else 0

    def claim_guard(self, delegator_id: str, expected_version: int) -> None:
        """
        Bump the delegator's guard from `expected_version`.

        Raises:
            ConcurrencyError: another write for this delegator committed first
        """
        try:
            self._guards.find_one_and_update(
                {"_id": delegator_id, "version": expected_version},
                {"$inc": {"version": 1}},
                upsert=True
            )
        except DuplicateKeyError:
            logger.warning(
                f"Concurrent delegation write for {delegator_id}",
                extra={"actor_id": delegator_id}
            )
            raise ConcurrencyError(
                "Another delegation change for this approver was saved at the same time, please retry",
                details={"delegator_id": delegator_id}
            )
