"""Lead form builder schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FieldType(str, Enum):
    """Input types a lead form field can render as."""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"


class FieldValidation(BaseModel):
    """Per-field validation rules, stored as camelCase JSON."""

    model_config = ConfigDict(populate_by_name=True)

    min_length: int | None = Field(default=None, ge=0, alias="minLength", description="Minimum answer length")
    email_format: bool = Field(default=False, alias="emailFormat", description="Require an email address")


class LeadFormSettings(BaseModel):
    """Form-level behaviour, stored as one camelCase JSON document per form."""

    model_config = ConfigDict(populate_by_name=True)

    submit_label: str = Field(default="Send", alias="submitLabel")
    success_message: str = Field(default="Thanks! I'll reach out soon.", alias="successMessage")
    redirect_enabled: bool = Field(default=False, alias="redirectEnabled")
    redirect_url: str = Field(default="", alias="redirectUrl")
    consent_enabled: bool = Field(default=False, alias="consentEnabled")
    consent_label: str = Field(default="I agree to share my info.", alias="consentLabel")
    spam_protection: bool = Field(default=False, alias="spamProtection")
    notify_enabled: bool = Field(default=False, alias="notifyEnabled")
    notify_email: bool = Field(default=True, alias="notifyEmail")
    notify_sms: bool = Field(default=False, alias="notifySms")
    published: bool = Field(default=False)


class LeadFormFieldInput(BaseModel):
    """One field as edited in the builder.

    ``key`` may be left empty; it is derived from the label.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, description="Existing field id")
    key: str = Field(default="", max_length=255, description="Answer key, unique per form")
    label: str = Field(default="Field", max_length=255, description="Label shown to visitors")
    type: FieldType = Field(default=FieldType.TEXT, description="Input type")
    required: bool = Field(default=False)
    is_active: bool = Field(default=True, alias="enabled", description="Shown on the public form")
    is_hidden: bool = Field(default=False, alias="hidden", description="Kept but not rendered")
    placeholder: str = Field(default="", max_length=255)
    options: list[str] = Field(default_factory=list, description="Choices for select fields")
    validation: FieldValidation = Field(default_factory=FieldValidation)


class LeadFormFieldResponse(BaseModel):
    """Persisted lead form field."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    key: str
    label: str
    type: FieldType
    required: bool
    placeholder: str | None = None
    options: list[str] | None = None
    is_hidden: bool = False
    is_active: bool = True
    validation: FieldValidation | None = None
    order_index: int
    created_at: datetime | None = None


class PublicLeadFormField(BaseModel):
    """Field definition served to visitors."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    key: str
    label: str
    type: FieldType
    required: bool
    placeholder: str | None = None
    options: list[str] | None = None
    validation: FieldValidation | None = None
    order_index: int


class SaveLeadFormRequest(BaseModel):
    """Body of PUT /lead-forms/{handle}."""

    model_config = ConfigDict(populate_by_name=True)

    account_id: UUID = Field(alias="accountId", description="Owning account id")
    fields: list[LeadFormFieldInput] = Field(default_factory=list, description="Ordered fields")
    settings: LeadFormSettings = Field(default_factory=LeadFormSettings)


class LeadFormResponse(BaseModel):
    """Owner view of a form."""

    handle: str
    fields: list[LeadFormFieldResponse]
    settings: LeadFormSettings


class PublicLeadFormResponse(BaseModel):
    """Visitor view of a form."""

    handle: str
    fields: list[PublicLeadFormField]
    settings: LeadFormSettings


class LeadFormTemplate(BaseModel):
    """Built-in starting point for a form."""

    id: str
    label: str
    fields: list[LeadFormFieldInput]
