"""Approval Engine - Decision ledger, approver resolution and delegation overlay"""
from .ledger import DecisionLedger
from .permission_guard import PermissionGuard, ApprovalAuthority
from .step_resolver import StepResolver
from .delegation_overlay import DelegationOverlay
from .audit_writer import AuditWriter

__all__ = [
    "DecisionLedger",
    "PermissionGuard",
    "ApprovalAuthority",
    "StepResolver",
    "DelegationOverlay",
    "AuditWriter",
]
