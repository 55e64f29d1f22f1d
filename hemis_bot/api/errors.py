"""FastAPI exception handlers for domain errors."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse
from structlog import get_logger

from hemis_bot.core.errors import DomainError

logger = get_logger()

# Map domain error codes to HTTP status codes
ERROR_STATUS_MAP = {
    "UPSTREAM_ERROR": status.HTTP_502_BAD_GATEWAY,
    "PERSISTENCE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "DOMAIN_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_body(code: str, message: str, request: Request) -> dict[str, dict[str, str | None]]:
    return {
        "error": {
            "code": code,
            "message": message,
            "request_id": getattr(request.state, "request_id", None),
        }
    }


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Translate a domain error into a JSON response.

    Domain errors are expected failures (HEMIS down, unreadable file), so
    they are logged at WARNING with their context.
    """
    http_status = ERROR_STATUS_MAP.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.warning(
        "domain_error_handled",
        error_code=exc.code,
        http_status=http_status,
        message=exc.message,
        context=exc.context,
    )

    return JSONResponse(status_code=http_status, content=error_body(exc.code, exc.message, request))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(f"HTTP_{exc.status_code}", str(exc.detail), request),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unexpected errors: log with stack trace, answer with a generic 500."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("INTERNAL_ERROR", "An unexpected error occurred", request),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register handlers for DomainError, HTTPException and the catch-all Exception.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)
