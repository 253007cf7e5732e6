"""Correlation ID middleware for request tracking."""

import re
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from structlog.contextvars import bind_contextvars, clear_contextvars

from app.core.logging import get_logger

logger = get_logger()

CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# Client supplied ids are echoed back, so only accept short token-like values
_VALID_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


def resolve_correlation_id(request: Request) -> str:
    """
    Return the caller's correlation ID when it is acceptable, else a new UUID.

    Args:
    ----
        request: The incoming request

    Returns:
    -------
        The correlation ID for this request
    """
    for header in CORRELATION_HEADERS:
        value = request.headers.get(header, "")
        if value and _VALID_ID.match(value):
            return value
    return str(uuid.uuid4())


class CorrelationMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle request correlation IDs.

    The ID is stored on ``request.state``, bound into the structlog context
    for every record logged while handling the request, and returned in the
    ``X-Request-ID`` response header.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        clear_contextvars()

        correlation_id = resolve_correlation_id(request)
        bind_contextvars(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        return response
