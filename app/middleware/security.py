"""Security headers middleware."""

from collections.abc import Mapping

from fastapi import Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.types import ASGIApp

DEFAULT_SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses.

    Responses under ``api_prefix`` carry API keys and user data, so they are
    also marked as not cacheable.
    """

    def __init__(
        self,
        app: ASGIApp,
        api_prefix: str = "/api",
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(app)
        self.api_prefix = api_prefix
        self.security_headers = dict(headers or DEFAULT_SECURITY_HEADERS)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        for header_name, header_value in self.security_headers.items():
            response.headers.setdefault(header_name, header_value)
        if request.url.path.startswith(self.api_prefix):
            response.headers["Cache-Control"] = "no-store"

        return response
