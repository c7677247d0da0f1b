"""Hardware tag (Linket) API routes."""

from uuid import UUID

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import RedirectResponse

from src.api.deps import CurrentUser, require_account
from src.api.middleware.error_handler import ValidationError
from src.schemas.linket import (
    ClaimLinketRequest,
    LinketAction,
    LinketListResponse,
    LinketResponse,
    ReleaseLinketResponse,
    UpdateLinketRequest,
)
from src.services.linket_service import LinketService

router = APIRouter(prefix="/linkets", tags=["linkets"])
tap_router = APIRouter(tags=["linkets"])


@router.get(
    "",
    response_model=LinketListResponse,
    summary="List claimed tags",
    description="Returns the account's tags with their assigned profiles.",
)
async def list_linkets(
    user: CurrentUser,
    account_id: UUID | None = Query(default=None, alias="accountId"),
    legacy_user_id: UUID | None = Query(default=None, alias="userId", include_in_schema=False),
) -> LinketListResponse:
    """List the caller's tags.

    Args:
        user: The authenticated user context.
        account_id: Account id from the query string.
        legacy_user_id: Same as ``accountId``, older clients send ``userId``.

    Returns:
        LinketListResponse: Claimed tags.
    """
    owner = require_account(user, account_id or legacy_user_id)
    service = LinketService()
    linkets = await service.list_linkets(owner)
    return LinketListResponse(linkets=[LinketResponse.model_validate(item) for item in linkets])


@router.post(
    "/claim",
    response_model=LinketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Claim a tag",
    description="Binds a tag to the account by chip UID or claim code.",
    responses={
        409: {"description": "Tag already claimed by another account"},
        422: {"description": "Invalid or expired claim code"},
    },
)
async def claim_linket(data: ClaimLinketRequest, user: CurrentUser) -> LinketResponse:
    """Claim a tag for the caller.

    Args:
        data: Account id and chip UID or claim code.
        user: The authenticated user context.

    Returns:
        LinketResponse: The new (or existing) assignment.
    """
    owner = require_account(user, data.account_id)
    service = LinketService()
    result = await service.claim_tag(owner, data.code, nickname=data.nickname)
    return LinketResponse.model_validate(result)


@router.patch(
    "/{assignment_id}",
    response_model=LinketResponse | ReleaseLinketResponse,
    summary="Assign, rename or release a tag",
    description=(
        "Assigns the tag to a profile (profileId, null follows the active profile), "
        "renames it (nickname) or releases it (action=release)."
    ),
    responses={403: {"description": "Tag or profile not found for this account"}},
)
async def update_linket(
    assignment_id: UUID,
    data: UpdateLinketRequest,
    user: CurrentUser,
) -> LinketResponse | ReleaseLinketResponse:
    """Change one of the caller's tags.

    Args:
        assignment_id: The assignment to change.
        data: Requested change.
        user: The authenticated user context.

    Returns:
        LinketResponse | ReleaseLinketResponse: The updated assignment, or
        the release confirmation.
    """
    owner = require_account(user, data.account_id)
    service = LinketService()

    action = data.action
    if action is None:
        if "profile_id" in data.model_fields_set:
            action = LinketAction.ASSIGN
        elif "nickname" in data.model_fields_set:
            action = LinketAction.RENAME
        else:
            raise ValidationError("Nothing to update: send profileId, nickname or action")

    if action == LinketAction.RELEASE:
        return ReleaseLinketResponse(**await service.release(owner, assignment_id))

    if action == LinketAction.RENAME:
        result = await service.rename(owner, assignment_id, data.nickname)
    else:
        result = await service.assign_profile(owner, assignment_id, data.profile_id)
        if "nickname" in data.model_fields_set:
            result = await service.rename(owner, assignment_id, data.nickname)
    return LinketResponse.model_validate(result)


@tap_router.get(
    "/t/{chip_uid}",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Tag tap redirect",
    description="Redirects a tap to the tag's profile, or to the claim page for unclaimed tags.",
    responses={404: {"description": "Unknown tag"}},
)
async def tap_linket(chip_uid: str, request: Request) -> RedirectResponse:
    """Redirect a tag tap.

    Args:
        chip_uid: UID encoded on the chip.
        request: Incoming request, for the user agent.

    Returns:
        RedirectResponse: 307 to the destination page.
    """
    service = LinketService()
    result = await service.resolve_tap(chip_uid, user_agent=request.headers.get("user-agent"))
    return RedirectResponse(url=result["url"], status_code=status.HTTP_307_TEMPORARY_REDIRECT)
