"""Account model type definitions for database operations."""

from typing import TypedDict


class AccountRecord(TypedDict):
    """Row of the ``profiles`` table: one per auth user.

    ``username`` is the account's public handle, unique across accounts.
    """

    user_id: str
    username: str | None
    display_name: str | None
    avatar_url: str | None
    updated_at: str | None
