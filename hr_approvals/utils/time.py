"""Time Utilities - UTC timestamps and date helpers"""
from datetime import date, datetime, timezone, timedelta
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def today() -> date:
    """Current calendar day (UTC), used for delegation windows"""
    return utc_now().date()


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (MongoDB returns naive UTC values)"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def add_hours(dt: datetime, hours: int) -> datetime:
    """Add hours to datetime"""
    return dt + timedelta(hours=hours)


def is_overdue(due_at: Optional[datetime]) -> bool:
    """
    Check if due datetime has passed

    Args:
        due_at: Due datetime or None

    Returns:
        True if overdue, False otherwise
    """
    if due_at is None:
        return False
    return utc_now() > ensure_utc(due_at)
