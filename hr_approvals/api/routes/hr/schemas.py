"""
HR Schemas

Request bodies for the HR validation endpoints and the response envelope.
"""

from datetime import date, time
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ....domain.models import RequestPayload
from ....domain.enums import ApproverType, MoveDirection


def envelope(data: Any = None, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Success envelope: {success: true, data, ...}"""
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    body.update(extra)
    return body


# =============================================================================
# Requests
# =============================================================================

class SubmitRequestBody(BaseModel):
    """Submit a leave, overtime, correction or administrative request"""
    payload: RequestPayload
    reason: str = Field(..., min_length=1, max_length=2000)
    attachment_id: Optional[str] = None


class CorrectionRequestBody(BaseModel):
    """Attendance correction for one day"""
    request_date: date
    requested_check_in: Optional[time] = None
    requested_check_out: Optional[time] = None
    reason: str = Field(..., min_length=1, max_length=2000)


class DecisionBody(BaseModel):
    """Approve / reject body"""
    request_type: Optional[str] = None
    comment: Optional[str] = Field(None, max_length=2000)
    step_order: Optional[int] = Field(None, ge=1, description="Defaults to the current level")


# =============================================================================
# Workflows
# =============================================================================

class StepBody(BaseModel):
    """Approval step definition"""
    approver_type: ApproverType = ApproverType.ROLE
    approver_id: Optional[str] = None
    approver_role: Optional[str] = None
    approver_name: Optional[str] = Field(None, max_length=200)
    timeout_hours: Optional[int] = Field(None, gt=0)
    reminder_hours: Optional[int] = Field(None, gt=0)
    allow_delegation: Optional[bool] = None


class StepUpdateBody(BaseModel):
    """Partial step update; only the fields sent are changed"""
    approver_type: Optional[ApproverType] = None
    approver_id: Optional[str] = None
    approver_role: Optional[str] = None
    approver_name: Optional[str] = Field(None, max_length=200)
    timeout_hours: Optional[int] = Field(None, gt=0)
    reminder_hours: Optional[int] = Field(None, gt=0)
    allow_delegation: Optional[bool] = None


class CreateWorkflowBody(BaseModel):
    """Create a validation workflow"""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    trigger_type: str = Field(..., min_length=1, max_length=100)
    segment_id: Optional[str] = None
    priority: int = 0
    is_active: bool = False
    steps: List[StepBody] = Field(default_factory=list)


class UpdateWorkflowBody(BaseModel):
    """Update workflow metadata, optionally replacing every step"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    trigger_type: Optional[str] = Field(None, min_length=1, max_length=100)
    segment_id: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None
    steps: Optional[List[StepBody]] = None
    version: Optional[int] = Field(None, ge=1, description="Expected version for optimistic locking")


class MoveStepBody(BaseModel):
    direction: MoveDirection


# =============================================================================
# Delegations
# =============================================================================

class CreateDelegationBody(BaseModel):
    """Delegate approval authority for a date window"""
    delegate_id: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    request_types: Optional[List[str]] = Field(None, description="Omit for every request type")
    reason: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)
    delegator_id: Optional[str] = Field(None, description="Administrators only: delegate on behalf of")


class UpdateDelegationBody(BaseModel):
    """Extend or shorten a delegation, or change its notes"""
    end_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)
