"""Account handle schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class AccountHandleResponse(BaseModel):
    """Resolved public handle of an account."""

    handle: str = Field(description="Normalized public handle")
    display_name: str | None = Field(default=None, description="Account display name")
    avatar_path: str | None = Field(default=None, description="Avatar object path in storage")
    avatar_updated_at: datetime | None = Field(default=None, description="Avatar version timestamp")
    avatar_url: str | None = Field(default=None, description="Public avatar URL with cache-buster")
