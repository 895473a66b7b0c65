"""Request Repository - Data access for HR requests and their decision history"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING

from .mongo_client import get_collection
from ..domain.models import HRRequest, DecisionRecord, RequestStatus
from ..domain.enums import StatusKind
from ..domain.errors import RequestNotFoundError, ConcurrencyError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

OPEN_STATUS_KINDS = [StatusKind.PENDING.value, StatusKind.APPROVED_THROUGH.value]


class RequestRepository:
    """Repository for HR request operations"""

    def __init__(self):
        self._requests: Collection = get_collection("hr_requests")

    def _to_model(self, doc: Dict[str, Any]) -> HRRequest:
        doc.pop("_id", None)
        return HRRequest.model_validate(doc)

    def create_request(self, request: HRRequest) -> HRRequest:
        """Create a new request"""
        doc = request.model_dump(mode="json")
        doc["_id"] = request.request_id

        self._requests.insert_one(doc)
        logger.info(f"Created request: {request.request_id}", extra={"request_id": request.request_id})
        return request

    def get_request(self, request_id: str) -> Optional[HRRequest]:
        """Get request by ID"""
        doc = self._requests.find_one({"request_id": request_id})
        if doc:
            return self._to_model(doc)
        return None

    def get_request_or_raise(self, request_id: str) -> HRRequest:
        """Get request by ID or raise error"""
        request = self.get_request(request_id)
        if not request:
            raise RequestNotFoundError(f"Request {request_id} not found")
        return request

    def commit_transition(
        self,
        request_id: str,
        expected_version: int,
        status: RequestStatus,
        record: Optional[DecisionRecord] = None,
        step_started_at: Optional[datetime] = None
    ) -> HRRequest:
        """
        Apply a status transition with optimistic concurrency

        The update only matches the document at `expected_version`, so two
        writers that read the same state cannot both commit.
        """
        now = utc_now()
        updates: Dict[str, Any] = {
            "status": status.model_dump(mode="json"),
            "version": expected_version + 1,
            "updated_at": now.isoformat(),
        }
        if step_started_at is not None:
            updates["step_started_at"] = step_started_at.isoformat()

        update_doc: Dict[str, Any] = {"$set": updates}
        if record is not None:
            update_doc["$push"] = {"history": record.model_dump(mode="json")}

        result = self._requests.find_one_and_update(
            {"request_id": request_id, "version": expected_version},
            update_doc,
            return_document=True
        )

        if result is None:
            exists = self._requests.find_one({"request_id": request_id})
            if exists:
                raise ConcurrencyError(
                    f"Request {request_id} was modified. Please refresh and try again.",
                    details={"expected_version": expected_version}
                )
            raise RequestNotFoundError(f"Request {request_id} not found")

        logger.info(
            f"Request {request_id} moved to {status.kind}",
            extra={"request_id": request_id, "status": status.kind}
        )
        return self._to_model(result)

    def list_for_requester(
        self,
        user_id: str,
        status_kinds: Optional[List[str]] = None,
        request_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[HRRequest]:
        """Requests submitted by a user, newest first"""
        query: Dict[str, Any] = {"requester.user_id": user_id}
        if status_kinds:
            query["status.kind"] = {"$in": status_kinds}
        if request_type:
            query["request_type"] = request_type

        cursor = self._requests.find(query).sort("submitted_at", DESCENDING).skip(skip).limit(limit)
        return [self._to_model(doc) for doc in cursor]

    def list_open(self, request_type: Optional[str] = None) -> List[HRRequest]:
        """Non-terminal requests, oldest first (approval queue order)"""
        query: Dict[str, Any] = {"status.kind": {"$in": OPEN_STATUS_KINDS}}
        if request_type:
            query["request_type"] = request_type

        cursor = self._requests.find(query).sort("submitted_at", 1)
        return [self._to_model(doc) for doc in cursor]

    def list_decided_by(self, user_id: str, limit: int = 50) -> List[HRRequest]:
        """Requests where the user recorded at least one decision"""
        cursor = (
            self._requests.find({"history.actor.user_id": user_id})
            .sort("updated_at", DESCENDING)
            .limit(limit)
        )
        return [self._to_model(doc) for doc in cursor]

    def count_open(self) -> int:
        """Requests still awaiting a decision"""
        return self._requests.count_documents({"status.kind": {"$in": OPEN_STATUS_KINDS}})

    def count_open_for_workflow(self, workflow_id: str) -> int:
        """In-flight requests whose chain was snapshotted from this workflow"""
        return self._requests.count_documents({
            "workflow_id": workflow_id,
            "status.kind": {"$in": OPEN_STATUS_KINDS},
        })

    def find_live_correction(self, user_id: str, request_date: date) -> Optional[HRRequest]:
        """Correction request for that day that is neither rejected nor cancelled"""
        doc = self._requests.find_one({
            "requester.user_id": user_id,
            "payload.kind": "correction",
            "payload.request_date": request_date.isoformat(),
            "status.kind": {"$nin": [StatusKind.REJECTED.value, StatusKind.CANCELLED.value]},
        })
        if doc:
            return self._to_model(doc)
        return None
