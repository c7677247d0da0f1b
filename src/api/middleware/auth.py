"""Verification of the Supabase access tokens the dashboard sends.

Public pages, taps and lead submissions are anonymous; everything an
owner edits requires a signed-in session token.
"""

import json
from enum import Enum
from functools import lru_cache
from typing import Any

import jwt
from jwt import PyJWK

from src.core.config import get_settings
from src.schemas.auth import TokenPayload

# Supabase asymmetric signing keys
ALGORITHMS = ["ES256", "RS256"]

# Role Supabase puts on tokens issued to signed-in users
SESSION_ROLE = "authenticated"

# Clock skew tolerated between Supabase Auth and this API, in seconds
LEEWAY_SECONDS = 30


class AuthErrorCode(str, Enum):
    """Why a token was refused."""

    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    NOT_A_SESSION = "NOT_A_SESSION"


class AuthError(Exception):
    """Raised when an access token cannot be accepted."""

    def __init__(self, message: str, code: AuthErrorCode) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


@lru_cache
def get_signing_key() -> Any:
    """Public key parsed from ``SUPABASE_SIGNING_KEY_JWK``.

    Raises:
        AuthError: If the setting is empty or not a JSON JWK.
    """
    raw = get_settings().supabase_signing_key_jwk
    if not raw:
        raise AuthError("Signing key not configured", AuthErrorCode.INVALID_TOKEN)
    try:
        return PyJWK.from_dict(json.loads(raw)).key
    except json.JSONDecodeError as e:
        raise AuthError(f"Invalid signing key JWK format: {e}", AuthErrorCode.INVALID_TOKEN) from e


def decode_jwt(token: str) -> TokenPayload:
    """Verify a session token and return its claims.

    Tokens must carry ``sub``, ``exp`` and ``iat``. The anon and
    service-role keys are JWTs too; they are refused because they name
    no account.

    Raises:
        AuthError: With a code saying whether the token expired, was
            signed by another key, was malformed or is not a user session.
    """
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            get_signing_key(),
            algorithms=ALGORITHMS,
            leeway=LEEWAY_SECONDS,
            options={"verify_aud": False, "require": ["exp", "iat", "sub"]},
        )
    except AuthError:
        raise
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Token has expired", AuthErrorCode.TOKEN_EXPIRED) from e
    except jwt.InvalidSignatureError as e:
        raise AuthError("Invalid token signature", AuthErrorCode.INVALID_SIGNATURE) from e
    except jwt.MissingRequiredClaimError as e:
        raise AuthError(f"Token missing required claim: {e}", AuthErrorCode.INVALID_TOKEN) from e
    except jwt.PyJWTError as e:
        raise AuthError(f"Invalid token: {e}", AuthErrorCode.INVALID_TOKEN) from e

    role = claims.get("role")
    if role is not None and role != SESSION_ROLE:
        raise AuthError(f"Tokens with role '{role}' cannot manage an account", AuthErrorCode.NOT_A_SESSION)

    return TokenPayload.model_validate(claims)
