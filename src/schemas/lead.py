"""Lead submission and listing schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LeadSubmission(BaseModel):
    """Answers posted by a visitor to a public form."""

    model_config = ConfigDict(populate_by_name=True)

    values: dict[str, Any] = Field(default_factory=dict, description="Answers keyed by field key")
    consent: bool = Field(default=False, description="Consent checkbox state")
    honeypot: str | None = Field(default=None, description="Hidden trap input; humans leave it empty")
    source_url: str | None = Field(
        default=None, max_length=2048, alias="sourceUrl", description="Page the form was submitted from"
    )


class LeadSubmitResponse(BaseModel):
    """Acknowledgement shown to the visitor."""

    success: bool = Field(default=True)
    success_message: str = Field(description="Message to display")
    redirect_url: str | None = Field(default=None, description="Where to send the visitor, if configured")


class LeadResponse(BaseModel):
    """Stored lead."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    handle: str
    name: str
    email: str
    phone: str | None = None
    company: str | None = None
    message: str | None = None
    custom_fields: dict[str, Any] | None = None
    source_url: str | None = None
    created_at: datetime


class LeadListResponse(BaseModel):
    """Owner's leads, newest first."""

    leads: list[LeadResponse]
    total: int
