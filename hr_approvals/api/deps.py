"""API Dependencies - Common dependencies for routes"""
from typing import Optional
from fastapi import Header

from ..domain.models import ActorContext
from ..utils.jwt import get_current_user as _jwt_get_current_user  # Internal use only
from ..utils.logger import set_correlation_id, get_correlation_id
from ..utils.idgen import generate_correlation_id


async def get_correlation_id_dep(
    x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-Id")
) -> str:
    """
    Get or generate correlation ID for request tracing

    Prefers the ID already bound by the middleware, then the client
    header, and generates one otherwise.
    """
    correlation_id = get_correlation_id() or x_correlation_id or generate_correlation_id()
    set_correlation_id(correlation_id)
    return correlation_id


async def get_current_user_dep(
    authorization: Optional[str] = Header(None)
) -> ActorContext:
    """
    Dependency to get current user from Authorization header

    Raises:
        AuthenticationError: if the token is missing or invalid (401 envelope)
    """
    return _jwt_get_current_user(authorization)
