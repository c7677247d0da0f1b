"""Request dependencies: the signed-in account and the anonymous sender key."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status

from src.api.middleware.auth import AuthError, decode_jwt
from src.api.middleware.error_handler import AuthorizationError
from src.schemas.auth import UserContext


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer <Supabase access token>")] = "",
) -> UserContext:
    """Resolve the dashboard caller from ``Authorization: Bearer <token>``.

    Raises:
        HTTPException: 401 when the header is missing, malformed or the
            token is refused.
    """
    if not authorization:
        raise _unauthorized("Authorization header required")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise _unauthorized("Invalid authorization header format. Expected: Bearer <token>")

    try:
        return decode_jwt(token).to_user_context()
    except AuthError as e:
        raise _unauthorized(e.message) from e


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


def require_account(user: UserContext, account_id: UUID | str | None) -> str:
    """Check that a request acts on the caller's own account.

    Routes carry the account id explicitly (``accountId`` / ``userId``);
    it must match the token subject. A missing id means the caller's
    own account.

    Returns:
        str: The account id to act on.

    Raises:
        AuthorizationError: If the id names a different account.
    """
    if account_id is not None and str(account_id) != str(user.user_id):
        raise AuthorizationError("You can only manage your own account")
    return str(user.user_id)


def get_client_key(request: Request) -> str:
    """Identify the sender of a public request for rate limiting.

    Uses the first ``X-Forwarded-For`` hop when behind a proxy, else the
    socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


ClientKey = Annotated[str, Depends(get_client_key)]
