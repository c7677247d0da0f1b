"""Profile API routes."""

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from src.api.deps import CurrentUser, require_account
from src.schemas.profile import ProfileResponse, SaveProfileRequest
from src.services.profile_service import ProfileService

router = APIRouter(prefix="/profiles", tags=["profiles"])

AccountIdQuery = Query(default=None, alias="accountId", description="Owning account id (defaults to caller)")


@router.get(
    "",
    response_model=list[ProfileResponse],
    summary="List profiles",
    description="Returns the account's profiles with their links, oldest first.",
)
async def list_profiles(
    user: CurrentUser,
    account_id: UUID | None = AccountIdQuery,
) -> list[ProfileResponse]:
    """List the caller's profiles.

    Args:
        user: The authenticated user context.
        account_id: Account id from the query string.

    Returns:
        list[ProfileResponse]: Profiles with ordered links.
    """
    owner = require_account(user, account_id)
    service = ProfileService()
    profiles = await service.list_profiles(owner)
    return [ProfileResponse(**profile) for profile in profiles]


@router.post(
    "",
    response_model=ProfileResponse,
    summary="Create or replace a profile",
    description=(
        "Creates a profile when no id is given, otherwise replaces it. "
        "The link list replaces the stored links."
    ),
    responses={
        403: {"description": "Profile or account belongs to someone else"},
        409: {"description": "Handle already used by another of the account's profiles"},
        422: {"description": "Name or handle missing"},
    },
)
async def save_profile(data: SaveProfileRequest, user: CurrentUser) -> ProfileResponse:
    """Save a profile and its links.

    Args:
        data: Account id and profile payload.
        user: The authenticated user context.

    Returns:
        ProfileResponse: The stored profile.
    """
    owner = require_account(user, data.account_id)
    service = ProfileService()
    profile = await service.save_profile(owner, data.profile)
    return ProfileResponse(**profile)


@router.delete(
    "/{profile_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a profile",
    description="Deletes a profile. Another profile becomes active if needed.",
)
async def delete_profile(
    profile_id: UUID,
    user: CurrentUser,
    account_id: UUID | None = AccountIdQuery,
) -> Response:
    """Delete one of the caller's profiles.

    Args:
        profile_id: The profile to delete.
        user: The authenticated user context.
        account_id: Account id from the query string.

    Returns:
        Response: Empty 204 response.
    """
    owner = require_account(user, account_id)
    service = ProfileService()
    await service.delete_profile(owner, profile_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{profile_id}/activate",
    response_model=ProfileResponse,
    summary="Activate a profile",
    description="Makes the profile the one served at the account's public handle.",
    responses={403: {"description": "Profile not found for this account"}},
)
async def activate_profile(
    profile_id: UUID,
    user: CurrentUser,
    account_id: UUID | None = AccountIdQuery,
) -> ProfileResponse:
    """Make a profile the account's active profile.

    Args:
        profile_id: The profile to activate.
        user: The authenticated user context.
        account_id: Account id from the query string.

    Returns:
        ProfileResponse: The activated profile.
    """
    owner = require_account(user, account_id)
    service = ProfileService()
    profile = await service.set_active_profile(owner, profile_id)
    return ProfileResponse(**profile)
