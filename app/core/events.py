"""Application startup and shutdown events."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, cast

from prometheus_client import Counter, Histogram

from app.core.config import Settings, settings
from app.core.db import ConnectionState, DatabaseManager
from app.core.geocoding import GeocodingClient, create_geocoding_client
from app.core.logging import configure_logging

# Prometheus metrics
REQUESTS_TOTAL = Counter(
    "app_http_requests_total",
    "Total number of HTTP requests",
    labelnames=["method", "path"],
)

RESPONSES_TOTAL = Counter(
    "app_http_responses_total",
    "Total number of HTTP responses",
    labelnames=["status_code"],
)

REQUEST_DURATION = Histogram(
    "app_http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=["method", "path"],
)

logger: logging.Logger = logging.getLogger("app.core.events")


class AppStateDict:
    """Application state with health check capabilities."""

    def __init__(
        self,
        db: DatabaseManager | None = None,
        geocoder: GeocodingClient | None = None,
    ) -> None:
        self.db = db
        self.geocoder = geocoder

    async def health_check(self) -> dict[str, Any]:
        """Check health of all components.

        Returns:
            Dict containing health status of all components
        """
        health_status: dict[str, Any] = {
            "status": "healthy",
            "components": {"database": False, "geocoder": self.geocoder is not None},
            "details": {},
        }

        if self.db is not None:
            db_health = await self.db.health()
            health_status["components"]["database"] = db_health["database"]
            health_status["details"]["database"] = {"state": db_health["state"]}

        if not all(health_status["components"].values()):
            health_status["status"] = "degraded"
        return health_status


def create_start_app_handler(
    app: Any, config: Settings = settings
) -> Callable[[], Awaitable[None]]:
    """Create startup event handler.

    Args:
        app: FastAPI application instance
        config: Settings to build the database manager and geocoder from

    Returns:
        Startup handler function
    """

    async def start_app() -> None:
        configure_logging(level=config.LOG_LEVEL, json_logs=config.JSON_LOGS)

        db = DatabaseManager.from_settings(config)
        # Failure leaves the manager reconnecting in the background
        state = await db.initialize()

        app.state = AppStateDict(db=db, geocoder=create_geocoding_client(config))

        if state is not ConnectionState.CONNECTED:
            logger.warning(
                f"Database unavailable at startup ({state.value}); "
                "requests will receive 503 until it reconnects"
            )
        logger.info(
            "Application startup complete - "
            f"Database hosts: {', '.join(db.hosts) or 'local'}, "
            f"Geocoding provider: {config.GEOCODING_PROVIDER}"
        )

    return start_app


def create_stop_app_handler(app: Any) -> Callable[[], Awaitable[None]]:
    """Create shutdown event handler.

    Args:
        app: FastAPI application instance

    Returns:
        Shutdown handler function
    """

    async def stop_app() -> None:
        state = cast(AppStateDict, app.state)
        db = getattr(state, "db", None)
        if db is not None:
            logger.info("Closing database connections...")
            await db.close()
        logger.info("Application shutdown complete")

    return stop_app


def create_lifespan(
    config: Settings = settings,
) -> Callable[[Any], Any]:
    """Wrap the startup and shutdown handlers into a lifespan context.

    Args:
        config: Settings passed to the startup handler

    Returns:
        Lifespan factory for ``FastAPI(lifespan=...)``
    """

    @asynccontextmanager
    async def lifespan(app: Any) -> AsyncIterator[None]:
        await create_start_app_handler(app, config)()
        try:
            yield
        finally:
            await create_stop_app_handler(app)()

    return lifespan
