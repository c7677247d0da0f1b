"""Account handle resolution and lazy account materialization."""

import logging
import re
from datetime import datetime
from typing import Any

from postgrest.exceptions import APIError as PostgrestAPIError

from src.core.config import get_settings
from src.core.supabase import UNIQUE_VIOLATION, first_row, get_supabase_client
from src.models.account import AccountRecord

logger = logging.getLogger(__name__)

ACCOUNT_TABLE = "profiles"
PROFILE_TABLE = "user_profiles"
ACCOUNT_COLUMNS = "user_id, username, display_name, avatar_url, updated_at"

# Insert attempts when another account grabs the same handle concurrently
MAX_HANDLE_ATTEMPTS = 3

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9_-]")
_REPEATED_DASH = re.compile(r"-{2,}")


def normalize_handle(value: str | None) -> str:
    """Trim and lowercase a handle."""
    return (value or "").strip().lower()


def sanitize_handle(value: str | None, max_length: int | None = None) -> str:
    """Turn arbitrary text into a URL-safe account handle.

    Args:
        value: Raw handle or preferred name.
        max_length: Maximum length; defaults to the configured handle length.

    Returns:
        str: Lowercase handle of ``[a-z0-9_-]`` characters, possibly empty.
    """
    limit = max_length or get_settings().handle_max_length
    handle = _WHITESPACE.sub("-", normalize_handle(value))
    handle = _DISALLOWED.sub("", handle)
    handle = _REPEATED_DASH.sub("-", handle).strip("-")
    return handle[:limit].rstrip("-")


def fallback_handle(user_id: str) -> str:
    """Synthesized handle for an account without a preferred one."""
    return f"user-{str(user_id).replace('-', '')[:8]}"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a PostgREST timestamp string."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def build_avatar_url(path: str | None, updated_at: str | None) -> str | None:
    """Build the public avatar URL with a version cache-buster.

    Args:
        path: Object path inside the avatar bucket, or an absolute URL.
        updated_at: Timestamp of the last avatar change.

    Returns:
        str | None: Public URL, or None when no avatar is set.
    """
    if not path:
        return None
    settings = get_settings()
    if path.startswith(("http://", "https://")):
        base = path
    else:
        base = (
            f"{settings.supabase_url.rstrip('/')}/storage/v1/object/public/"
            f"{settings.avatar_bucket}/{path.lstrip('/')}"
        )
    version = parse_timestamp(updated_at)
    if version is None:
        return base
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}v={int(version.timestamp())}"


class AccountService:
    """Maps account ids to public handles and back."""

    def __init__(self) -> None:
        """Initialize account service with Supabase client."""
        self.client = get_supabase_client()

    async def get_account(self, user_id: str) -> AccountRecord | None:
        """Get the account row for a user.

        Args:
            user_id: The auth user ID.

        Returns:
            AccountRecord | None: The account row or None if not materialized yet.
        """
        response = (
            self.client.table(ACCOUNT_TABLE)
            .select(ACCOUNT_COLUMNS)
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        return first_row(response)

    async def get_account_by_handle(self, handle: str) -> AccountRecord | None:
        """Find the account owning a public handle (case-insensitive).

        Args:
            handle: Handle in any case, with surrounding whitespace allowed.

        Returns:
            AccountRecord | None: The owning account or None.
        """
        normalised = normalize_handle(handle)
        if not normalised:
            return None
        response = (
            self.client.table(ACCOUNT_TABLE)
            .select(ACCOUNT_COLUMNS)
            .eq("username", normalised)
            .limit(1)
            .execute()
        )
        return first_row(response)

    async def get_account_handle(self, user_id: str) -> dict[str, Any]:
        """Resolve the public handle of an account, creating one if absent.

        Preference order: stored username, the handle of the account's
        active profile, then a synthesized ``user-xxxxxxxx`` handle.

        Args:
            user_id: The auth user ID.

        Returns:
            dict: ``handle``, ``display_name``, ``avatar_path``,
            ``avatar_updated_at`` and ``avatar_url``.
        """
        account = await self.get_account(user_id)
        if not account or not account.get("username"):
            preferred = await self._active_profile_handle(user_id)
            account = await self.ensure_account(user_id, preferred_handle=preferred)

        return {
            "handle": normalize_handle(account["username"]),
            "display_name": account.get("display_name"),
            "avatar_path": account.get("avatar_url"),
            "avatar_updated_at": parse_timestamp(account.get("updated_at")),
            "avatar_url": build_avatar_url(account.get("avatar_url"), account.get("updated_at")),
        }

    async def ensure_account(
        self,
        user_id: str,
        preferred_handle: str | None = None,
        display_name: str | None = None,
    ) -> AccountRecord:
        """Return the account row, materializing it or its handle if missing.

        An existing username is never changed. A missing display name is
        filled in from ``display_name``.

        Args:
            user_id: The auth user ID.
            preferred_handle: Seed for a new handle.
            display_name: Display name to record if none is set.

        Returns:
            AccountRecord: The account row with a username.
        """
        user_id = str(user_id)
        existing = await self.get_account(user_id)

        if existing and existing.get("username"):
            if display_name and not existing.get("display_name"):
                response = (
                    self.client.table(ACCOUNT_TABLE)
                    .update({"display_name": display_name})
                    .eq("user_id", user_id)
                    .execute()
                )
                return first_row(response) or {**existing, "display_name": display_name}
            return existing

        seed = sanitize_handle(preferred_handle) or fallback_handle(user_id)
        last_error: PostgrestAPIError | None = None

        for _ in range(MAX_HANDLE_ATTEMPTS):
            username = await self._unique_handle(seed, user_id)
            try:
                if existing:
                    response = (
                        self.client.table(ACCOUNT_TABLE)
                        .update({"username": username})
                        .eq("user_id", user_id)
                        .execute()
                    )
                else:
                    response = (
                        self.client.table(ACCOUNT_TABLE)
                        .insert(
                            {
                                "user_id": user_id,
                                "username": username,
                                "display_name": display_name,
                            }
                        )
                        .execute()
                    )
            except PostgrestAPIError as e:
                if e.code != UNIQUE_VIOLATION:
                    raise
                last_error = e
                continue

            logger.info("Assigned handle %s to account %s", username, user_id)
            row = first_row(response)
            if row:
                return row
            return {
                **(existing or {}),
                "user_id": user_id,
                "username": username,
                "display_name": (existing or {}).get("display_name") or display_name,
                "avatar_url": (existing or {}).get("avatar_url"),
                "updated_at": (existing or {}).get("updated_at"),
            }

        assert last_error is not None
        raise last_error

    async def _unique_handle(self, seed: str, user_id: str) -> str:
        """Find the first free ``seed``, ``seed-1``, ``seed-2``... handle."""
        max_length = get_settings().handle_max_length
        candidate = seed
        counter = 1
        while await self._handle_taken(candidate, user_id):
            suffix = f"-{counter}"
            candidate = f"{seed[: max_length - len(suffix)]}{suffix}"
            counter += 1
        return candidate

    async def _handle_taken(self, handle: str, user_id: str) -> bool:
        response = (
            self.client.table(ACCOUNT_TABLE)
            .select("user_id")
            .eq("username", handle)
            .limit(1)
            .execute()
        )
        row = first_row(response)
        return bool(row) and row["user_id"] != user_id

    async def _active_profile_handle(self, user_id: str) -> str | None:
        response = (
            self.client.table(PROFILE_TABLE)
            .select("handle")
            .eq("user_id", str(user_id))
            .eq("is_active", True)
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )
        row = first_row(response)
        return normalize_handle(row["handle"]) if row and row.get("handle") else None
