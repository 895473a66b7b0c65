"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection
from .workflow_repo import WorkflowRepository
from .request_repo import RequestRepository
from .delegation_repo import DelegationRepository
from .employee_repo import EmployeeRepository
from .audit_repo import AuditRepository
from .notification_repo import NotificationRepository

__all__ = [
    "get_database",
    "get_collection",
    "WorkflowRepository",
    "RequestRepository",
    "DelegationRepository",
    "EmployeeRepository",
    "AuditRepository",
    "NotificationRepository",
]
