"""
Exception handlers for consistent API error responses.

Every error leaves the API in the same envelope:
`{"success": false, "error": ..., "details": ...}`. Details are only
included for client errors; server-side failures are logged instead.
"""

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

from modules.reporting.exceptions import ReportingBaseException, handle_reporting_exception

logger = logging.getLogger(__name__)


async def handle_reporting_error(request: Request, exc: ReportingBaseException) -> JSONResponse:
    """Render reporting exceptions with the status they declare"""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code or 'ERROR'} at {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.error_code or 'ERROR'} at {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=handle_reporting_exception(exc))


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    """Convert ValueError to consistent API response"""
    logger.warning(f"ValueError at {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": str(exc)},
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query parameters"""
    logger.warning(f"Request validation failed at {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "Invalid request parameters",
            "details": [
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in exc.errors()
            ],
        },
    )


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    """Wrap HTTPException raised at the router edge in the standard envelope"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for errors no other handler claims"""
    logger.error(f"Unhandled {type(exc).__name__} at {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error"},
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app"""
    app.add_exception_handler(ReportingBaseException, handle_reporting_error)
    app.add_exception_handler(ValueError, handle_value_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)
