"""vCard contact card schemas."""

from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class VCardFields(BaseModel):
    """Contact details an account shares as a downloadable vCard."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    full_name: str | None = Field(
        default=None, max_length=200, validation_alias=AliasChoices("fullName", "full_name")
    )
    title: str | None = Field(default=None, max_length=200)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=64)
    company: str | None = Field(default=None, max_length=200)
    website: str | None = Field(default=None, max_length=2048)
    address: str | None = Field(default=None, max_length=500)
    note: str | None = Field(default=None, max_length=2000)
    photo_data: str | None = Field(
        default=None,
        validation_alias=AliasChoices("photoData", "photo_data"),
        description="Photo as a data URL (data:image/jpeg;base64,...)",
    )
    photo_name: str | None = Field(
        default=None, max_length=255, validation_alias=AliasChoices("photoName", "photo_name")
    )


class SaveVCardRequest(BaseModel):
    """Body of PUT /vcard/profile."""

    model_config = ConfigDict(populate_by_name=True)

    account_id: UUID = Field(validation_alias=AliasChoices("accountId", "userId", "account_id"))
    fields: VCardFields = Field(default_factory=VCardFields)
