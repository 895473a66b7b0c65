"""Service modules - Business logic layer"""
from .notification_service import NotificationService
from .workflow_service import WorkflowService
from .request_service import RequestService, request_to_dict
from .delegation_service import DelegationService, delegation_to_dict

__all__ = [
    "NotificationService",
    "WorkflowService",
    "RequestService",
    "request_to_dict",
    "DelegationService",
    "delegation_to_dict",
]
