"""
Error Handlers

Centralized exception handlers for the FastAPI application. Every error
leaves the API as {success: false, error, code, details}.
"""

from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...domain.errors import DomainError, AuthenticationError
from ...utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


def _error_body(message: str, code: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    return {"success": False, "error": message, "code": code, "details": details or {}}


def _headers() -> Dict[str, str]:
    return {"X-Correlation-Id": get_correlation_id() or ""}


def _summarize_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    # Raw pydantic errors may carry exception objects in ctx
    return [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in errors
    ]


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Handle domain-specific errors (business logic errors).

    These are expected errors that occur during normal operation,
    such as validation failures, not found errors, permission denied, etc.
    """
    logger.warning(
        f"Domain error: {exc.error_code} - {exc.message}",
        extra={"error_code": exc.error_code}
    )
    headers = _headers()
    if isinstance(exc, AuthenticationError):
        headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
        headers=headers
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors.

    These occur when request data doesn't match expected schema.
    """
    errors = _summarize_validation_errors(exc.errors())
    logger.warning(
        f"Validation error: {errors}, "
        f"path={request.url.path}, "
        f"method={request.method}",
        extra={"error_code": "VALIDATION_ERROR"}
    )
    message = errors[0]["message"] if len(errors) == 1 else "Request validation failed"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(message, "VALIDATION_ERROR", {"errors": errors}),
        headers=_headers()
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and other framework-level HTTP errors"""
    message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message, f"HTTP_{exc.status_code}"),
        headers=_headers()
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Logs full stack trace for debugging.
    """
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            "An unexpected error occurred",
            "INTERNAL_ERROR",
            {"hint": "Check server logs for details"}
        ),
        headers=_headers()
    )


def register_error_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
