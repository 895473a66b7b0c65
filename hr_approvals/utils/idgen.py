"""ID Generation Utilities"""
import uuid
from datetime import datetime
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Args:
        prefix: Optional prefix for the ID (e.g., 'REQ', 'WF', 'DLG')

    Returns:
        Unique ID string

    Examples:
        >>> generate_id('REQ')
        'REQ-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_workflow_id() -> str:
    """Generate validation workflow ID"""
    return generate_id("WF")


def generate_workflow_step_id() -> str:
    """Generate workflow step ID"""
    return generate_id("WFS")


def generate_request_id() -> str:
    """Generate HR request ID"""
    return generate_id("REQ")


def generate_delegation_id() -> str:
    """Generate delegation ID"""
    return generate_id("DLG")


def generate_notification_id() -> str:
    """Generate notification ID"""
    return generate_id("NTF")


def generate_audit_event_id() -> str:
    """Generate audit event ID"""
    return generate_id("AUD")


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing

    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
