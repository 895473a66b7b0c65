"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "success": False,
            "error": self.message,
            "code": self.error_code,
            "details": self.details
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Capability missing from the actor's role set"""
    error_code = "PERMISSION_DENIED"


class NotAuthorizedError(AuthorizationError):
    """Actor is not the effective approver of the pending step"""
    error_code = "NOT_AUTHORIZED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class CommentRequiredError(ValidationError):
    """Rejection submitted without a comment"""
    error_code = "COMMENT_REQUIRED"


class InvalidRangeError(ValidationError):
    """Start date after end date"""
    error_code = "INVALID_RANGE"


class StepBoundaryError(ValidationError):
    """Step cannot move past either end of the workflow"""
    error_code = "STEP_BOUNDARY"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class WorkflowNotFoundError(NotFoundError):
    """Validation workflow not found"""
    error_code = "WORKFLOW_NOT_FOUND"


class StepNotFoundError(NotFoundError):
    """Workflow step not found"""
    error_code = "STEP_NOT_FOUND"


class RequestNotFoundError(NotFoundError):
    """HR request not found"""
    error_code = "REQUEST_NOT_FOUND"


class DelegationNotFoundError(NotFoundError):
    """Delegation not found"""
    error_code = "DELEGATION_NOT_FOUND"


class EmployeeNotFoundError(NotFoundError):
    """Employee not found in directory"""
    error_code = "EMPLOYEE_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Optimistic concurrency conflict"""
    error_code = "CONCURRENCY_CONFLICT"


class StepMismatchError(ConflictError):
    """Decision targets a step that is not the current one"""
    error_code = "STEP_MISMATCH"


class InvalidStateError(ConflictError):
    """Action not valid for current state"""
    error_code = "INVALID_STATE"


class AlreadyExistsError(ConflictError):
    """Resource already exists"""
    error_code = "ALREADY_EXISTS"


class OverlappingDelegationError(ConflictError):
    """An active delegation already covers the same scope and dates"""
    error_code = "OVERLAPPING_DELEGATION"


class WorkflowInUseError(ConflictError):
    """Workflow still backs in-flight requests"""
    error_code = "WORKFLOW_IN_USE"


# Engine Errors
class NoWorkflowConfiguredError(DomainError):
    """No active workflow matches the request type"""
    error_code = "NO_WORKFLOW_CONFIGURED"
    http_status = 422


class ApproverResolutionError(DomainError):
    """Could not resolve approver"""
    error_code = "APPROVER_RESOLUTION_ERROR"
    http_status = 400


class ManagerNotFoundError(ApproverResolutionError):
    """Requester has no manager in the directory"""
    error_code = "MANAGER_NOT_FOUND"
