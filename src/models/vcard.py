"""vCard model type definitions for database operations."""

from typing import TypedDict


class VCardProfileRecord(TypedDict):
    """Row of the ``vcard_profiles`` table (one per user)."""

    id: str
    user_id: str
    full_name: str | None
    title: str | None
    email: str | None
    phone: str | None
    company: str | None
    website: str | None
    address: str | None
    note: str | None
    photo_data: str | None
    photo_name: str | None
    created_at: str
    updated_at: str
