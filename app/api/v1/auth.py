"""API key management endpoints."""

from fastapi import APIRouter

from app.api.deps import CurrentUser, Users
from app.models.user import ApiKeyResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/regenerate-key", response_model=ApiKeyResponse)
async def regenerate_api_key(current_user: CurrentUser, users: Users) -> ApiKeyResponse:
    """Replace the caller's API key. The previous key stops working immediately."""
    api_key = await users.regenerate_api_key(current_user.id)
    return ApiKeyResponse(
        api_key=api_key,
        message="API key regenerated. Store it securely; it will not be shown again.",
    )
