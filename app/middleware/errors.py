"""Error handling middleware."""

import traceback

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.status import (
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)
from starlette.types import ASGIApp

from app.core.errors import AppError, InternalServerError
from app.core.logging import get_logger

logger = get_logger()

# Map exception types to status codes (None means use exception's status_code)
ErrorMapping = dict[type[Exception], int | None]

ERROR_MAPPING: ErrorMapping = {
    AppError: None,
    StarletteHTTPException: None,
    RequestValidationError: HTTP_422_UNPROCESSABLE_ENTITY,
    OperationalError: HTTP_503_SERVICE_UNAVAILABLE,
}


def _correlation_id(request: Request) -> str | None:
    correlation_id = getattr(request.state, "correlation_id", None)
    return str(correlation_id) if correlation_id else None


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else error["msg"])
    return "; ".join(parts) or "Invalid request"


def get_error_detail(exc: Exception) -> tuple[str, int]:
    """Classify an exception into a client-safe message and status code.

    Args:
        exc: The exception raised while handling a request

    Returns:
        The message to return and the HTTP status code
    """
    for error_type in ERROR_MAPPING:
        if not isinstance(exc, error_type):
            continue
        if isinstance(exc, AppError):
            return exc.message, exc.status_code
        if isinstance(exc, StarletteHTTPException):
            return str(exc.detail), exc.status_code
        if isinstance(exc, RequestValidationError):
            return _validation_message(exc), HTTP_422_UNPROCESSABLE_ENTITY
        if isinstance(exc, OperationalError):
            return "Database unavailable", HTTP_503_SERVICE_UNAVAILABLE
    fallback = InternalServerError()
    return fallback.message, fallback.status_code


def create_error_response(
    error_type: str, detail: str, status_code: int, correlation_id: str | None
) -> JSONResponse:
    """Create JSON error response with optional correlation ID."""
    response = JSONResponse(
        status_code=status_code,
        content={
            "error": error_type,
            "message": detail,
            "status_code": status_code,
            "correlation_id": correlation_id if correlation_id else "unknown",
        },
        media_type="application/json",
    )
    if correlation_id:
        response.headers["X-Request-ID"] = correlation_id
    return response


async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle any exception and return a JSON response.

    Args:
    ----
        request: The request that caused the exception
        exc: The exception to handle

    Returns:
    -------
        A JSON response with error details
    """
    correlation_id = _correlation_id(request)
    detail, status_code = get_error_detail(exc)
    error_type = exc.__class__.__name__

    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "request_error",
            error_type=error_type,
            error_message=str(exc),
            status_code=status_code,
            path=request.url.path,
            method=request.method,
            correlation_id=correlation_id,
            traceback="".join(traceback.format_exception(exc)),
        )
    else:
        logger.warning(
            "request_rejected",
            error_type=error_type,
            error_message=detail,
            status_code=status_code,
            path=request.url.path,
            method=request.method,
            correlation_id=correlation_id,
        )

    if status_code == HTTP_500_INTERNAL_SERVER_ERROR:
        fallback = InternalServerError()
        error_type, detail = fallback.__class__.__name__, fallback.message
    return create_error_response(error_type, detail, status_code, correlation_id)


def register_exception_handlers(app: FastAPI) -> None:
    """Route handled exception types through the shared JSON error shape."""
    app.add_exception_handler(AppError, handle_exception)
    app.add_exception_handler(HTTPException, handle_exception)
    app.add_exception_handler(StarletteHTTPException, handle_exception)
    app.add_exception_handler(RequestValidationError, handle_exception)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware turning unhandled exceptions into consistent error responses."""

    def __init__(self, app: ASGIApp) -> None:
        """
        Initialize middleware.

        Args:
        ----
            app: The ASGI application
        """
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """
        Process the request/response cycle and handle errors.

        Args:
        ----
            request: The incoming request
            call_next: The next handler in the middleware chain

        Returns:
        -------
            The response from downstream handlers or error response
        """
        try:
            return await call_next(request)
        except Exception as exc:
            return await handle_exception(request, exc)
