"""Lead form builder persistence and public form definitions."""

import logging
import re
from typing import Any
from uuid import UUID, uuid4

from src.api.middleware.error_handler import NotFoundError, ValidationError
from src.core.config import get_settings
from src.core.supabase import coerce_uuid, first_row, get_supabase_client, raise_for_conflict
from src.models.lead import LeadFormFieldRecord
from src.schemas.common import utc_now
from src.schemas.lead_form import (
    FieldType,
    LeadFormFieldInput,
    LeadFormSettings,
    LeadFormTemplate,
)
from src.services.account_service import AccountService, normalize_handle

logger = logging.getLogger(__name__)

FIELD_TABLE = "lead_form_fields"
SETTINGS_TABLE = "lead_form_settings"

_KEY_DISALLOWED = re.compile(r"[^a-z0-9_]+")


def normalize_key(value: str | None, max_length: int | None = None) -> str:
    """Turn a label or key into a lowercase ``[a-z0-9_]`` answer key.

    Args:
        value: Raw key or label.
        max_length: Maximum key length; defaults to the configured length.

    Returns:
        str: Normalized key, possibly empty.
    """
    limit = max_length or get_settings().lead_key_max_length
    key = _KEY_DISALLOWED.sub("_", (value or "").strip().lower()).strip("_")
    return key[:limit]


def ensure_unique_keys(fields: list[LeadFormFieldInput]) -> list[LeadFormFieldInput]:
    """Normalize keys and suffix repeats with ``_1``, ``_2``...

    Args:
        fields: Fields in display order.

    Returns:
        list[LeadFormFieldInput]: Copies of the fields with unique keys.
    """
    limit = get_settings().lead_key_max_length
    used: set[str] = set()
    result = []
    for field in fields:
        base = normalize_key(field.key or field.label or "field", limit) or "field"
        key = base
        counter = 1
        while key in used:
            suffix = f"_{counter}"
            key = f"{base[: limit - len(suffix)]}{suffix}"
            counter += 1
        used.add(key)
        result.append(field.model_copy(update={"key": key}))
    return result


def merge_settings(stored: dict[str, Any] | None) -> LeadFormSettings:
    """Overlay stored settings on the defaults, ignoring unknown keys."""
    return LeadFormSettings.model_validate({**LeadFormSettings().model_dump(by_alias=True), **(stored or {})})


def _template_field(label: str, field_type: FieldType, **overrides: Any) -> LeadFormFieldInput:
    return LeadFormFieldInput(label=label, type=field_type, **overrides)


TEMPLATES: list[LeadFormTemplate] = [
    LeadFormTemplate(
        id="basic",
        label="Basic contact",
        fields=[
            _template_field("Name", FieldType.TEXT, required=True, key="name"),
            _template_field("Email", FieldType.EMAIL, required=True, key="email"),
            _template_field("Message", FieldType.TEXTAREA, key="message"),
        ],
    ),
    LeadFormTemplate(
        id="demo",
        label="Request a demo",
        fields=[
            _template_field("Name", FieldType.TEXT, required=True, key="name"),
            _template_field("Email", FieldType.EMAIL, required=True, key="email"),
            _template_field("Company", FieldType.TEXT, key="company"),
            _template_field("Role", FieldType.TEXT, key="role"),
        ],
    ),
    LeadFormTemplate(
        id="quote",
        label="Get a quote",
        fields=[
            _template_field("Name", FieldType.TEXT, required=True, key="name"),
            _template_field("Email", FieldType.EMAIL, required=True, key="email"),
            _template_field(
                "Budget",
                FieldType.SELECT,
                key="budget",
                options=["<$1k", "$1k-$5k", "$5k-$10k", "$10k+"],
            ),
            _template_field("Notes", FieldType.TEXTAREA, key="notes"),
        ],
    ),
    LeadFormTemplate(
        id="intro",
        label="Book an intro",
        fields=[
            _template_field("Name", FieldType.TEXT, required=True, key="name"),
            _template_field("Email", FieldType.EMAIL, required=True, key="email"),
            _template_field("Preferred time", FieldType.TEXT, key="preferred_time"),
        ],
    ),
    LeadFormTemplate(
        id="waitlist",
        label="Waitlist",
        fields=[
            _template_field("Email", FieldType.EMAIL, required=True, key="email"),
        ],
    ),
]


def list_templates() -> list[LeadFormTemplate]:
    """Built-in form templates, basic contact first."""
    return [template.model_copy(deep=True) for template in TEMPLATES]


def apply_template(template_id: str) -> list[LeadFormFieldInput]:
    """Fresh fields for a template, each with a new id.

    Raises:
        NotFoundError: If the template id is unknown.
    """
    for template in TEMPLATES:
        if template.id == template_id:
            fields = [field.model_copy(update={"id": str(uuid4())}) for field in template.fields]
            return ensure_unique_keys(fields)
    raise NotFoundError(f"Unknown lead form template '{template_id}'")


class LeadFormService:
    """Lead form fields and settings, scoped by ``(user_id, handle)``."""

    def __init__(self) -> None:
        """Initialize lead form service with Supabase client."""
        self.client = get_supabase_client()

    async def get_form(self, user_id: UUID | str, handle: str) -> dict[str, Any]:
        """Load a form for its owner.

        Args:
            user_id: The owning account ID.
            handle: Form scope handle.

        Returns:
            dict: ``handle``, ordered ``fields`` (all of them) and merged ``settings``.
        """
        handle = self._require_handle(handle)
        fields = await self._load_fields(str(user_id), handle)
        settings = await self._load_settings(str(user_id), handle)
        return {"handle": handle, "fields": fields, "settings": merge_settings(settings)}

    async def save_form(
        self,
        user_id: UUID | str,
        handle: str,
        fields: list[LeadFormFieldInput],
        settings: LeadFormSettings,
    ) -> dict[str, Any]:
        """Persist a form definition.

        Keys are made unique, rows are upserted on their key in display
        order, rows no longer submitted are deleted, and settings are
        upserted.

        Args:
            user_id: The owning account ID.
            handle: Form scope handle.
            fields: Fields in display order.
            settings: Form settings.

        Returns:
            dict: The form as stored, in the shape of ``get_form``.
        """
        user_id = str(user_id)
        handle = self._require_handle(handle)
        fields = ensure_unique_keys(fields)

        existing = await self._load_fields(user_id, handle)
        key_to_id = {row["key"]: row["id"] for row in existing if row.get("key")}
        id_to_key = {row["id"]: row.get("key") for row in existing}

        # Ids follow keys first so a row keeps its id while its key is unchanged.
        ids: list[str | None] = [key_to_id.get(field.key) for field in fields]
        used = {field_id for field_id in ids if field_id}
        for index, field in enumerate(fields):
            if ids[index]:
                continue
            candidate = coerce_uuid(field.id)
            if candidate is None or candidate in used:
                candidate = str(uuid4())
            ids[index] = candidate
            used.add(candidate)

        stale = [
            row_id
            for row_id, key in id_to_key.items()
            if row_id not in used or key != fields[ids.index(row_id)].key
        ]
        if stale:
            (
                self.client.table(FIELD_TABLE)
                .delete()
                .eq("user_id", user_id)
                .eq("handle", handle)
                .in_("id", stale)
                .execute()
            )

        rows = [
            {
                "id": ids[index],
                "user_id": user_id,
                "handle": handle,
                "key": field.key,
                "label": field.label.strip() or "Field",
                "type": field.type.value,
                "required": field.required,
                "placeholder": field.placeholder or None,
                "options": field.options or None,
                "is_hidden": field.is_hidden,
                "validation": field.validation.model_dump(by_alias=True, exclude_none=True),
                "order_index": index + 1,
                "is_active": field.is_active,
            }
            for index, field in enumerate(fields)
        ]
        if rows:
            with raise_for_conflict("Two fields on this form share the same key"):
                (
                    self.client.table(FIELD_TABLE)
                    .upsert(rows, on_conflict="user_id,handle,key")
                    .execute()
                )

        (
            self.client.table(SETTINGS_TABLE)
            .upsert(
                {
                    "user_id": user_id,
                    "handle": handle,
                    "settings": settings.model_dump(by_alias=True),
                    "updated_at": utc_now().isoformat(),
                },
                on_conflict="user_id,handle",
            )
            .execute()
        )

        logger.info("Saved lead form %s for account %s (%d fields)", handle, user_id, len(rows))
        return await self.get_form(user_id, handle)

    async def get_public_form(self, handle: str) -> dict[str, Any]:
        """Load the form a visitor sees on a public page.

        Args:
            handle: Public handle from the URL.

        Returns:
            dict: ``user_id``, ``handle``, visible ``fields`` and merged ``settings``.

        Raises:
            NotFoundError: If no account owns the handle.
        """
        normalised = normalize_handle(handle)
        account = await AccountService().get_account_by_handle(normalised)
        if not account:
            raise NotFoundError(f"No lead form found for '{normalised}'")

        user_id = account["user_id"]
        fields = [
            field
            for field in await self._load_fields(user_id, normalised)
            if field.get("is_active", True) and not field.get("is_hidden")
        ]
        settings = await self._load_settings(user_id, normalised)
        return {
            "user_id": user_id,
            "handle": normalised,
            "fields": fields,
            "settings": merge_settings(settings),
        }

    async def _load_fields(self, user_id: str, handle: str) -> list[LeadFormFieldRecord]:
        response = (
            self.client.table(FIELD_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("handle", handle)
            .order("order_index")
            .execute()
        )
        rows = response.data or []
        for row in rows:
            if not row.get("key"):
                row["key"] = normalize_key(row.get("label")) or "field"
        return rows

    async def _load_settings(self, user_id: str, handle: str) -> dict[str, Any] | None:
        response = (
            self.client.table(SETTINGS_TABLE)
            .select("settings")
            .eq("user_id", user_id)
            .eq("handle", handle)
            .limit(1)
            .execute()
        )
        row = first_row(response)
        return row.get("settings") if row else None

    @staticmethod
    def _require_handle(handle: str) -> str:
        normalised = normalize_handle(handle)
        if not normalised:
            raise ValidationError("Handle is required")
        return normalised
