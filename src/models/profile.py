"""Profile and link model type definitions for database operations."""

from typing import TypedDict


class UserProfileRecord(TypedDict):
    """Row of the ``user_profiles`` table.

    At most one row per ``user_id`` has ``is_active`` set; exactly one
    when the account has any profiles.
    """

    id: str
    user_id: str
    name: str
    handle: str
    headline: str | None
    theme: str
    is_active: bool
    created_at: str
    updated_at: str


class ProfileLinkRecord(TypedDict):
    """Row of the ``profile_links`` table."""

    id: str
    profile_id: str
    user_id: str
    title: str
    url: str
    order_index: int
    is_active: bool
    created_at: str
    updated_at: str | None


class ProfileWithLinks(UserProfileRecord):
    """Profile row with its embedded, ordered links."""

    links: list[ProfileLinkRecord]
