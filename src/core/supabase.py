"""Supabase client and helpers shared by the services."""

from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Iterator
from uuid import UUID

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client, create_client

from src.core.config import get_settings

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


@lru_cache
def get_supabase_client() -> Client:
    """Get cached Supabase client singleton for database operations.

    Uses the secret key for backend operations, which bypasses RLS
    at the PostgREST level. Ownership checks therefore happen in the
    services before any write is issued.

    Returns:
        Client: Supabase client instance.
    """
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
    )


def first_row(response: Any) -> dict[str, Any] | None:
    """Return the first row of a PostgREST response, or None.

    Args:
        response: Result of ``.execute()``; may be None for empty single selects.

    Returns:
        dict | None: The first row if any.
    """
    if response is None or not response.data:
        return None
    data = response.data
    if isinstance(data, list):
        return data[0]
    return data


def coerce_uuid(value: Any) -> str | None:
    """Return the canonical string form of a UUID value, or None if it is not one."""
    if not value:
        return None
    try:
        return str(UUID(str(value)))
    except ValueError:
        return None


@contextmanager
def raise_for_conflict(message: str | None = None) -> Iterator[None]:
    """Translate unique-constraint violations into ConflictError.

    Any other PostgREST error propagates unchanged.

    Args:
        message: Optional message overriding the storage layer's text.
    """
    # Imported lazily: the error middleware imports this module.
    from src.api.middleware.error_handler import ConflictError

    try:
        yield
    except PostgrestAPIError as e:
        if e.code == UNIQUE_VIOLATION:
            raise ConflictError(message or e.message or "Duplicate value") from e
        raise


async def check_database_connection() -> dict[str, Any]:
    """Probe the accounts table with a one-row select.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        client = get_supabase_client()
        client.table("user_profiles").select("id").limit(1).execute()
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
