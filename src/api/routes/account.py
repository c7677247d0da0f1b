"""Account handle API routes."""

from uuid import UUID

from fastapi import APIRouter, Query

from src.api.deps import CurrentUser, require_account
from src.schemas.account import AccountHandleResponse
from src.services.account_service import AccountService

router = APIRouter(prefix="/account", tags=["account"])


@router.get(
    "/handle",
    response_model=AccountHandleResponse,
    summary="Resolve the account's public handle",
    description="Returns the account's handle, assigning one on first use.",
    responses={403: {"description": "userId names another account"}},
)
async def get_account_handle(
    user: CurrentUser,
    user_id: UUID | None = Query(default=None, alias="userId", description="Account id (defaults to caller)"),
) -> AccountHandleResponse:
    """Resolve the caller's public handle.

    Args:
        user: The authenticated user context.
        user_id: Account id from the query string.

    Returns:
        AccountHandleResponse: Handle and avatar details.
    """
    account_id = require_account(user, user_id)
    service = AccountService()
    account = await service.get_account_handle(account_id)
    return AccountHandleResponse(**account)
