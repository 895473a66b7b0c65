"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class RequestKind(str, Enum):
    """Payload variant of an HR request"""
    LEAVE = "leave"
    OVERTIME = "overtime"
    CORRECTION = "correction"
    ADMINISTRATIVE = "administrative"


class StatusKind(str, Enum):
    """Request status variant"""
    PENDING = "pending"
    APPROVED_THROUGH = "approved_through"  # Steps 1..k signed off, k+1 pending
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


TERMINAL_STATUS_KINDS = frozenset({StatusKind.APPROVED, StatusKind.REJECTED, StatusKind.CANCELLED})


class ApproverType(str, Enum):
    """How the approver of a workflow step is resolved"""
    USER = "user"
    ROLE = "role"
    MANAGER = "manager"
    HR = "hr"


class Decision(str, Enum):
    """Approval decision at one step"""
    APPROVE = "approve"
    REJECT = "reject"


class MoveDirection(str, Enum):
    """Step move direction"""
    UP = "up"
    DOWN = "down"


class DelegationStatus(str, Enum):
    """Delegation status relative to a given day"""
    UPCOMING = "upcoming"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Role(str, Enum):
    """Back-office roles carried in the token"""
    EMPLOYEE = "employee"
    MANAGER = "manager"
    HR = "hr"
    ADMIN = "admin"


class Capability(str, Enum):
    """Operation-level capabilities checked by the permission guard"""
    SUBMIT_REQUESTS = "requests.submit"
    VIEW_WORKFLOWS = "workflows.view"
    MANAGE_WORKFLOWS = "workflows.manage"
    CREATE_DELEGATIONS = "delegations.create"
    MANAGE_ALL_DELEGATIONS = "delegations.manage_all"


class NotificationCategory(str, Enum):
    """In-app notification categories"""
    DELEGATION_ASSIGNED = "DELEGATION_ASSIGNED"
    DELEGATION_CANCELLED = "DELEGATION_CANCELLED"
    REQUEST_DECIDED = "REQUEST_DECIDED"


class AuditEventType(str, Enum):
    """Types of audit events"""
    SUBMIT_REQUEST = "SUBMIT_REQUEST"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL_REQUEST = "CANCEL_REQUEST"
    CREATE_WORKFLOW = "CREATE_WORKFLOW"
    UPDATE_WORKFLOW = "UPDATE_WORKFLOW"
    TOGGLE_WORKFLOW = "TOGGLE_WORKFLOW"
    DELETE_WORKFLOW = "DELETE_WORKFLOW"
    ADD_STEP = "ADD_STEP"
    UPDATE_STEP = "UPDATE_STEP"
    MOVE_STEP = "MOVE_STEP"
    DELETE_STEP = "DELETE_STEP"
    CREATE_DELEGATION = "CREATE_DELEGATION"
    UPDATE_DELEGATION = "UPDATE_DELEGATION"
    CANCEL_DELEGATION = "CANCEL_DELEGATION"


# Request type tags with a fixed value per payload kind
OVERTIME_REQUEST_TYPE = "heures_sup"
CORRECTION_REQUEST_TYPE = "correction"
