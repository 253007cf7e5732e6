"""Typed application errors.

Services raise these; the error handling middleware turns them into JSON
responses using ``status_code``. Anything that is not an ``AppError`` is
reported to the client as a generic 500.
"""

from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)


class AppError(Exception):
    """Base class for errors that map directly onto an HTTP status."""

    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "Internal Server Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(AppError):
    """Malformed business input, including failed geocoding of caller data."""

    status_code = HTTP_400_BAD_REQUEST
    code = "Bad Request"


class UnauthorizedError(AppError):
    """Missing or invalid API key."""

    status_code = HTTP_401_UNAUTHORIZED
    code = "Unauthorized"


class NotFoundError(AppError):
    """Referenced user or region does not exist."""

    status_code = HTTP_404_NOT_FOUND
    code = "Not Found"


class ConflictError(AppError):
    """Uniqueness violation enforced by the database."""

    status_code = HTTP_409_CONFLICT
    code = "Conflict"


class ServiceUnavailableError(AppError):
    """Database not writable or geocoding provider unreachable."""

    status_code = HTTP_503_SERVICE_UNAVAILABLE
    code = "Service Unavailable"


class NotPrimaryError(ServiceUnavailableError):
    """The connection does not target a writable primary node."""

    def __init__(
        self, message: str, current: str | None = None, hosts: list[str] | None = None
    ) -> None:
        super().__init__(message)
        self.current = current
        self.hosts = hosts or []


class InternalServerError(AppError):
    """Unclassified failure; the message never carries internal detail."""

    status_code = HTTP_500_INTERNAL_SERVER_ERROR
    code = "Internal Server Error"

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
