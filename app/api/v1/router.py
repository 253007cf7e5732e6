"""API v1 router module."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.api.v1.auth import router as auth_router
from app.api.v1.regions import router as regions_router
from app.api.v1.users import router as users_router
from app.core.config import settings

router = APIRouter(default_response_class=JSONResponse)

router.include_router(users_router)
router.include_router(regions_router)
router.include_router(auth_router)


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint.

    Returns 200 while the database is connected and 503 otherwise, with the
    connection manager state in both cases.
    """
    state = request.app.state
    if hasattr(state, "health_check"):
        health = await state.health_check()
    else:
        health = {"status": "unhealthy", "components": {}, "details": {}}

    body = {
        **health,
        "version": settings.version,
        "correlation_id": getattr(request.state, "correlation_id", None),
    }
    status_code = 200 if health["status"] == "healthy" else 503
    return JSONResponse(body, status_code=status_code)
