"""Lead and lead form model type definitions for database operations."""

from typing import Any, TypedDict


class LeadRecord(TypedDict):
    """Row of the ``leads`` table."""

    id: str
    user_id: str
    handle: str
    name: str
    email: str
    phone: str | None
    company: str | None
    message: str | None
    custom_fields: dict[str, Any] | None
    source_url: str | None
    created_at: str


class FieldValidationRecord(TypedDict, total=False):
    """Stored shape of ``lead_form_fields.validation`` (camelCase as written by the builder)."""

    minLength: int | None
    emailFormat: bool


class LeadFormFieldRecord(TypedDict):
    """Row of the ``lead_form_fields`` table.

    ``key`` is unique within ``(user_id, handle)``.
    """

    id: str
    user_id: str
    handle: str
    key: str | None
    label: str
    type: str
    required: bool
    placeholder: str | None
    options: list[str] | None
    is_hidden: bool | None
    validation: FieldValidationRecord | None
    order_index: int
    is_active: bool
    created_at: str


class LeadFormSettingsRecord(TypedDict):
    """Row of the ``lead_form_settings`` table (one per ``(user_id, handle)``)."""

    id: str
    user_id: str
    handle: str
    settings: dict[str, Any]
    created_at: str
    updated_at: str
