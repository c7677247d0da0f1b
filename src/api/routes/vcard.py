"""vCard API routes."""

from uuid import UUID

from fastapi import APIRouter, Query, Response

from src.api.deps import CurrentUser, require_account
from src.schemas.vcard import SaveVCardRequest, VCardFields
from src.services.vcard_service import VCardService

router = APIRouter(prefix="/vcard", tags=["vcard"])


@router.get(
    "/profile",
    response_model=VCardFields,
    summary="Load vCard details",
    description="Returns the account's vCard details; empty when none are saved.",
)
async def get_vcard_profile(
    user: CurrentUser,
    account_id: UUID | None = Query(default=None, alias="accountId"),
) -> VCardFields:
    """Load the caller's vCard details.

    Args:
        user: The authenticated user context.
        account_id: Account id from the query string.

    Returns:
        VCardFields: Stored details.
    """
    owner = require_account(user, account_id)
    service = VCardService()
    return await service.get_vcard_fields(owner)


@router.put(
    "/profile",
    response_model=VCardFields,
    summary="Save vCard details",
    description="Stores the account's vCard details. Blank values are cleared.",
)
async def save_vcard_profile(data: SaveVCardRequest, user: CurrentUser) -> VCardFields:
    """Save the caller's vCard details.

    Args:
        data: Account id and details.
        user: The authenticated user context.

    Returns:
        VCardFields: Stored details.
    """
    owner = require_account(user, data.account_id)
    service = VCardService()
    return await service.save_vcard_fields(owner, data.fields)


@router.get(
    "/{handle}",
    response_class=Response,
    summary="Download a vCard",
    description="vCard 3.0 for the profile published at a handle.",
    responses={200: {"content": {"text/vcard": {}}}, 404: {"description": "Unknown handle"}},
)
async def download_vcard(handle: str) -> Response:
    """Download the contact card for a public handle.

    Args:
        handle: Public handle.

    Returns:
        Response: vCard attachment.
    """
    service = VCardService()
    normalised, body = await service.get_public_vcard(handle)
    return Response(
        content=body,
        media_type="text/vcard; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{normalised}.vcf"'},
    )
