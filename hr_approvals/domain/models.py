"""Domain Models - Pydantic schemas for all entities"""
from datetime import date, datetime, time
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, EmailStr, ConfigDict, Field, model_validator

from .enums import (
    ApproverType, Decision, DelegationStatus, NotificationCategory, AuditEventType,
    StatusKind, TERMINAL_STATUS_KINDS, OVERTIME_REQUEST_TYPE, CORRECTION_REQUEST_TYPE
)


# ============================================================================
# User & Identity Snapshots
# ============================================================================

class UserSnapshot(BaseModel):
    """Snapshot of user identity at a point in time"""
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., description="Employee / profile ID")
    display_name: str = Field(..., description="User display name")
    email: Optional[str] = None
    department: Optional[str] = None
    segment_id: Optional[str] = None


class ActorContext(BaseModel):
    """Current actor context from JWT token"""
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., description="Authenticated user ID")
    display_name: str = Field(..., description="User display name")
    email: Optional[str] = None
    roles: List[str] = Field(default_factory=list, description="Assigned roles")

    def snapshot(self) -> UserSnapshot:
        return UserSnapshot(user_id=self.user_id, display_name=self.display_name, email=self.email)


class Employee(BaseModel):
    """Directory entry used as the org chart"""
    model_config = ConfigDict(extra="ignore")

    employee_id: str
    display_name: str
    email: Optional[EmailStr] = None
    department: Optional[str] = None
    segment_id: Optional[str] = None
    manager_id: Optional[str] = Field(None, description="Direct manager (N+1)")
    roles: List[str] = Field(default_factory=list)
    is_active: bool = True

    def snapshot(self) -> UserSnapshot:
        return UserSnapshot(
            user_id=self.employee_id,
            display_name=self.display_name,
            email=self.email,
            department=self.department,
            segment_id=self.segment_id,
        )


# ============================================================================
# Validation Workflow Templates
# ============================================================================

class WorkflowStep(BaseModel):
    """One approval gate within a validation workflow"""
    model_config = ConfigDict(extra="forbid")

    step_id: str
    workflow_id: str
    order: int = Field(..., ge=1, description="1-based position, dense within the workflow")
    approver_type: ApproverType = ApproverType.ROLE
    approver_id: Optional[str] = Field(None, description="Required when approver_type is 'user'")
    approver_role: Optional[str] = Field(None, description="Required when approver_type is 'role'")
    approver_name: Optional[str] = Field(None, description="Display label")
    timeout_hours: int = Field(48, gt=0)
    reminder_hours: int = Field(24, gt=0)
    allow_delegation: bool = True

    @model_validator(mode="after")
    def _check_approver_target(self) -> "WorkflowStep":
        if self.approver_type == ApproverType.USER and not self.approver_id:
            raise ValueError("approver_id is required for user steps")
        if self.approver_type == ApproverType.ROLE and not self.approver_role:
            raise ValueError("approver_role is required for role steps")
        return self


class ValidationWorkflow(BaseModel):
    """Reusable approval template bound to a request trigger type"""
    model_config = ConfigDict(extra="forbid")

    workflow_id: str
    name: str
    description: Optional[str] = None
    trigger_type: str = Field(..., description="Request type tag this workflow handles")
    segment_id: Optional[str] = None
    priority: int = 0
    is_active: bool = False
    steps: List[WorkflowStep] = Field(default_factory=list)
    created_by: UserSnapshot
    created_at: datetime
    updated_at: datetime
    version: int = 1

    def ordered_steps(self) -> List[WorkflowStep]:
        return sorted(self.steps, key=lambda s: s.order)

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        for step in self.steps:
            if step.step_id == step_id:
                return step
        return None


# ============================================================================
# Request Status (tagged variant)
# ============================================================================

class PendingStatus(BaseModel):
    kind: Literal["pending"] = "pending"


class ApprovedThroughStatus(BaseModel):
    kind: Literal["approved_through"] = "approved_through"
    step: int = Field(..., ge=1, description="Last signed-off step")


class ApprovedStatus(BaseModel):
    kind: Literal["approved"] = "approved"


class RejectedStatus(BaseModel):
    kind: Literal["rejected"] = "rejected"


class CancelledStatus(BaseModel):
    kind: Literal["cancelled"] = "cancelled"


RequestStatus = Annotated[
    Union[PendingStatus, ApprovedThroughStatus, ApprovedStatus, RejectedStatus, CancelledStatus],
    Field(discriminator="kind"),
]


def status_code(status: RequestStatus) -> str:
    """Legacy display code: pending, approved_n{k}, approved, rejected, cancelled"""
    if isinstance(status, ApprovedThroughStatus):
        return f"approved_n{status.step}"
    return status.kind


def is_terminal_status(status: RequestStatus) -> bool:
    return StatusKind(status.kind) in TERMINAL_STATUS_KINDS


# ============================================================================
# Request Payloads (tagged union)
# ============================================================================

class LeavePayload(BaseModel):
    """Leave request (congé)"""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["leave"] = "leave"
    leave_type: str = Field(..., min_length=1, description="Leave type code, e.g. ANNUAL, SICK")
    start_date: date
    end_date: date
    days_requested: float = Field(..., gt=0)

    @model_validator(mode="after")
    def _check_range(self) -> "LeavePayload":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self

    @property
    def request_type(self) -> str:
        return self.leave_type

    def date_range(self) -> Tuple[Optional[date], Optional[date]]:
        return self.start_date, self.end_date

    @property
    def quantity(self) -> Optional[float]:
        return self.days_requested


class OvertimePayload(BaseModel):
    """Overtime request (heures supplémentaires)"""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["overtime"] = "overtime"
    request_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    estimated_hours: float = Field(..., gt=0)

    @property
    def request_type(self) -> str:
        return OVERTIME_REQUEST_TYPE

    def date_range(self) -> Tuple[Optional[date], Optional[date]]:
        return self.request_date, self.request_date

    @property
    def quantity(self) -> Optional[float]:
        return self.estimated_hours


class CorrectionPayload(BaseModel):
    """Attendance correction request"""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["correction"] = "correction"
    request_date: date
    requested_check_in: Optional[time] = None
    requested_check_out: Optional[time] = None

    @model_validator(mode="after")
    def _check_times(self) -> "CorrectionPayload":
        if self.requested_check_in is None and self.requested_check_out is None:
            raise ValueError("at least one of requested_check_in / requested_check_out is required")
        return self

    @property
    def request_type(self) -> str:
        return CORRECTION_REQUEST_TYPE

    def date_range(self) -> Tuple[Optional[date], Optional[date]]:
        return self.request_date, self.request_date

    @property
    def quantity(self) -> Optional[float]:
        return None


class AdministrativePayload(BaseModel):
    """Administrative request (attestation, document, ...)"""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["administrative"] = "administrative"
    document_type: str = Field(..., min_length=1, description="Administrative request code")
    details: Optional[str] = Field(None, max_length=2000)

    @property
    def request_type(self) -> str:
        return self.document_type

    def date_range(self) -> Tuple[Optional[date], Optional[date]]:
        return None, None

    @property
    def quantity(self) -> Optional[float]:
        return None


RequestPayload = Annotated[
    Union[LeavePayload, OvertimePayload, CorrectionPayload, AdministrativePayload],
    Field(discriminator="kind"),
]


# ============================================================================
# HR Request (approvable unit)
# ============================================================================

class ChainStep(BaseModel):
    """Snapshot of a workflow step bound to one request"""
    model_config = ConfigDict(extra="forbid")

    order: int = Field(..., ge=1)
    source_step_id: Optional[str] = None
    approver_type: ApproverType
    approver_id: Optional[str] = None
    approver_role: Optional[str] = None
    approver_name: Optional[str] = None
    timeout_hours: int = Field(..., gt=0)
    allow_delegation: bool = True

    @classmethod
    def from_template(cls, step: WorkflowStep) -> "ChainStep":
        return cls(
            order=step.order,
            source_step_id=step.step_id,
            approver_type=step.approver_type,
            approver_id=step.approver_id,
            approver_role=step.approver_role,
            approver_name=step.approver_name,
            timeout_hours=step.timeout_hours,
            allow_delegation=step.allow_delegation,
        )


class DecisionRecord(BaseModel):
    """Immutable entry of a request's decision history"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    step_order: int
    decision: Decision
    actor: UserSnapshot
    on_behalf_of: Optional[str] = Field(None, description="Nominal approver when acting as delegate")
    delegation_id: Optional[str] = None
    comment: Optional[str] = None
    decided_at: datetime


class HRRequest(BaseModel):
    """Approvable HR request: shared envelope plus a variant payload"""
    model_config = ConfigDict(extra="forbid")

    request_id: str
    requester: UserSnapshot
    request_type: str
    payload: RequestPayload
    reason: str
    attachment_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    quantity: Optional[float] = None

    status: RequestStatus = Field(default_factory=PendingStatus)
    workflow_id: str
    workflow_name: str
    chain: List[ChainStep]
    history: List[DecisionRecord] = Field(default_factory=list)

    submitted_at: datetime
    updated_at: datetime
    step_started_at: datetime = Field(..., description="When the current step became pending")
    version: int = 1

    @property
    def total_steps(self) -> int:
        return len(self.chain)

    @property
    def is_terminal(self) -> bool:
        return is_terminal_status(self.status)

    @property
    def status_code(self) -> str:
        return status_code(self.status)

    @property
    def approved_steps(self) -> int:
        if isinstance(self.status, ApprovedThroughStatus):
            return self.status.step
        if isinstance(self.status, ApprovedStatus):
            return self.total_steps
        return sum(1 for record in self.history if record.decision == Decision.APPROVE)

    @property
    def current_approver_level(self) -> Optional[int]:
        """1-based index of the step awaiting decision, None once terminal"""
        if self.is_terminal:
            return None
        return self.approved_steps + 1

    @property
    def current_step(self) -> Optional[ChainStep]:
        level = self.current_approver_level
        if level is None or level > self.total_steps:
            return None
        return self.chain[level - 1]


# ============================================================================
# Delegation
# ============================================================================

class Delegation(BaseModel):
    """Time-bounded grant of one user's approval authority to another"""
    model_config = ConfigDict(extra="forbid")

    delegation_id: str
    delegator_id: str
    delegator_name: Optional[str] = None
    delegate_id: str
    delegate_name: Optional[str] = None
    start_date: date
    end_date: date = Field(..., description="Inclusive")
    request_types: Optional[List[str]] = Field(None, description="None means every request type")
    reason: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True
    created_by: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None

    def covers(self, on_date: date, request_type: str) -> bool:
        """True if this delegation applies to a step of that type on that day"""
        if not self.is_active:
            return False
        if not (self.start_date <= on_date <= self.end_date):
            return False
        return self.request_types is None or request_type in self.request_types

    def scope_overlaps(self, request_types: Optional[List[str]]) -> bool:
        if self.request_types is None or request_types is None:
            return True
        return bool(set(self.request_types) & set(request_types))

    def status_on(self, day: date) -> DelegationStatus:
        if not self.is_active:
            return DelegationStatus.CANCELLED
        if day < self.start_date:
            return DelegationStatus.UPCOMING
        if day > self.end_date:
            return DelegationStatus.EXPIRED
        return DelegationStatus.ACTIVE


# ============================================================================
# Audit & Notifications
# ============================================================================

class AuditEvent(BaseModel):
    """Audit event (append-only)"""
    model_config = ConfigDict(extra="forbid")

    audit_event_id: str
    entity_type: str = Field(..., description="request, workflow or delegation")
    entity_id: str
    event_type: AuditEventType
    actor: UserSnapshot
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    correlation_id: Optional[str] = None


class InAppNotification(BaseModel):
    """
    In-app notification for the notification bell.
    Each notification targets a specific user and tracks read status.
    """
    model_config = ConfigDict(extra="forbid")

    notification_id: str
    recipient_id: str
    category: NotificationCategory
    title: str
    message: str
    request_id: Optional[str] = None
    delegation_id: Optional[str] = None
    actor_id: Optional[str] = None
    actor_display_name: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime
