"""Profile Pydantic schemas for API request/response models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ThemeName(str, Enum):
    """Named visual themes for public profile pages."""

    LIGHT = "light"
    DARK = "dark"
    MIDNIGHT = "midnight"
    FOREST = "forest"
    GILDED = "gilded"
    SILVER = "silver"
    AUTUMN = "autumn"


class LinkPayload(BaseModel):
    """One link as submitted by the editor.

    ``id`` is reused for the reinserted row when it is a UUID.
    """

    id: str | None = Field(default=None, description="Existing link id to keep stable across saves")
    title: str = Field(default="", max_length=255, description="Link title")
    url: str = Field(default="", max_length=2048, description="Destination URL")
    is_active: bool | None = Field(
        default=None, description="Soft-disable flag; omitted keeps the stored value"
    )


class ProfilePayload(BaseModel):
    """Full-replace payload for creating or updating a profile.

    Name and handle are checked by the service so that blank values
    produce the standard validation error envelope.
    """

    id: UUID | None = Field(default=None, description="Existing profile id; absent means create")
    name: str = Field(default="", max_length=255, description="Profile display name")
    handle: str = Field(default="", max_length=255, description="Handle, unique per account")
    headline: str | None = Field(default=None, max_length=500, description="Optional headline")
    theme: str | None = Field(default=ThemeName.LIGHT.value, description="Theme name")
    links: list[LinkPayload] = Field(default_factory=list, description="Ordered link list")
    active: bool = Field(default=False, description="Make this the account's active profile")


class SaveProfileRequest(BaseModel):
    """Body of POST /profiles."""

    model_config = ConfigDict(populate_by_name=True)

    account_id: UUID = Field(alias="accountId", description="Owning account id")
    profile: ProfilePayload = Field(description="Profile payload")


class ProfileLinkResponse(BaseModel):
    """Persisted link."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Link identifier")
    profile_id: UUID = Field(description="Owning profile")
    user_id: UUID = Field(description="Owning account")
    title: str = Field(description="Link title")
    url: str = Field(description="Destination URL")
    order_index: int = Field(description="Display order")
    is_active: bool = Field(description="Soft-disable flag")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")


class ProfileResponse(BaseModel):
    """Persisted profile with its ordered links."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Profile identifier")
    user_id: UUID = Field(description="Owning account")
    name: str = Field(description="Profile display name")
    handle: str = Field(description="Profile handle")
    headline: str | None = Field(default=None, description="Headline")
    theme: str = Field(description="Theme name")
    is_active: bool = Field(description="Whether this is the account's active profile")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")
    links: list[ProfileLinkResponse] = Field(default_factory=list, description="Ordered links")


class AccountSummary(BaseModel):
    """Public view of an account."""

    handle: str = Field(description="Account handle")
    display_name: str | None = Field(default=None, description="Display name")
    avatar_url: str | None = Field(default=None, description="Cache-busted public avatar URL")


class PublicProfileResponse(BaseModel):
    """Data rendered on a public profile page."""

    account: AccountSummary = Field(description="Owning account")
    profile: ProfileResponse = Field(description="Active profile with visible links only")
