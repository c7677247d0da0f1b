"""Lead form builder session: load, edit and autosave one form."""

import logging
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from src.client.api_client import LinketApiClient
from src.client.autosave import AutosaveReconciler
from src.client.navigation import EditorStateRegistry
from src.schemas.lead_form import FieldType, LeadFormFieldInput, LeadFormSettings

logger = logging.getLogger(__name__)


class LeadFormDraft(BaseModel):
    """A lead form being edited: ordered fields plus form settings."""

    handle: str
    fields: list[LeadFormFieldInput] = Field(default_factory=list)
    settings: LeadFormSettings = Field(default_factory=LeadFormSettings)


def map_lead_form(record: dict[str, Any]) -> LeadFormDraft:
    """Build a draft from a ``GET``/``PUT /lead-forms/{handle}`` response."""
    fields = []
    for row in record.get("fields") or []:
        fields.append(
            LeadFormFieldInput(
                id=str(row["id"]) if row.get("id") else None,
                key=row.get("key") or "",
                label=row.get("label") or "Field",
                type=row.get("type") or FieldType.TEXT,
                required=bool(row.get("required")),
                is_active=row.get("is_active", True),
                is_hidden=bool(row.get("is_hidden")),
                placeholder=row.get("placeholder") or "",
                options=row.get("options") or [],
                validation=row.get("validation") or {},
            )
        )
    return LeadFormDraft(
        handle=record["handle"],
        fields=fields,
        settings=LeadFormSettings.model_validate(record.get("settings") or {}),
    )


class LeadFormEditorSession:
    """Edits the lead form attached to one handle with background saving.

    Args:
        api: Client for the signed-in account.
        handle: Profile handle the form belongs to.
        registry: Optional registry the session reports unsaved work to.
        delay: Autosave debounce in seconds.
    """

    registry_name = "lead_form"

    def __init__(
        self,
        api: LinketApiClient,
        handle: str,
        registry: EditorStateRegistry | None = None,
        delay: float | None = None,
    ) -> None:
        self.api = api
        self.handle = handle
        self.registry = registry
        self.delay = delay
        self.reconciler: AutosaveReconciler[LeadFormDraft] | None = None

    @property
    def draft(self) -> LeadFormDraft:
        return self._require_reconciler().draft

    async def load(self) -> LeadFormDraft:
        """Load the form; a handle with no form yet loads empty with default settings."""
        draft = map_lead_form(await self.api.get_lead_form(self.handle))
        self.reconciler = AutosaveReconciler(self._save, draft, delay=self.delay)
        if self.registry is not None:
            self.registry.register(self.registry_name, self.reconciler)
        return draft

    async def _save(self, draft: LeadFormDraft) -> LeadFormDraft:
        record = await self.api.save_lead_form(
            draft.handle,
            [field.model_dump(mode="json", by_alias=True) for field in draft.fields],
            draft.settings.model_dump(mode="json", by_alias=True),
        )
        return map_lead_form(record)

    def add_field(
        self, label: str = "Field", field_type: FieldType = FieldType.TEXT, **changes: Any
    ) -> LeadFormFieldInput:
        """Append a field. Its key is derived from the label when saved."""
        reconciler = self._require_reconciler()
        field = LeadFormFieldInput(id=str(uuid4()), label=label, type=field_type)
        if changes:
            field = field.model_copy(update=changes)
        reconciler.update(reconciler.draft.model_copy(update={"fields": [*reconciler.draft.fields, field]}))
        return field

    def update_field(self, field_id: str, **changes: Any) -> None:
        reconciler = self._require_reconciler()
        fields = [
            field.model_copy(update=changes) if field.id == field_id else field
            for field in reconciler.draft.fields
        ]
        reconciler.update(reconciler.draft.model_copy(update={"fields": fields}))

    def remove_field(self, field_id: str) -> None:
        reconciler = self._require_reconciler()
        fields = [field for field in reconciler.draft.fields if field.id != field_id]
        reconciler.update(reconciler.draft.model_copy(update={"fields": fields}))

    def move_field(self, field_id: str, index: int) -> None:
        """Move a field to ``index`` in display order."""
        reconciler = self._require_reconciler()
        fields = list(reconciler.draft.fields)
        moving = next((field for field in fields if field.id == field_id), None)
        if moving is None:
            return
        fields.remove(moving)
        fields.insert(max(0, min(index, len(fields))), moving)
        reconciler.update(reconciler.draft.model_copy(update={"fields": fields}))

    def update_settings(self, **changes: Any) -> LeadFormSettings:
        """Change form settings by field name, e.g. ``submit_label="Join"``."""
        reconciler = self._require_reconciler()
        settings = reconciler.draft.settings.model_copy(update=changes)
        reconciler.update(reconciler.draft.model_copy(update={"settings": settings}))
        return settings

    async def apply_template(self, template_id: str) -> list[LeadFormFieldInput]:
        """Replace the fields with a built-in template's.

        Raises:
            KeyError: If the server offers no template with that id.
        """
        reconciler = self._require_reconciler()
        templates = await self.api.list_lead_form_templates()
        template = next((item for item in templates if item.get("id") == template_id), None)
        if template is None:
            raise KeyError(template_id)
        fields = [
            LeadFormFieldInput.model_validate({**field, "id": str(uuid4())})
            for field in template.get("fields") or []
        ]
        logger.info("Applying lead form template %s to %s", template_id, self.handle)
        reconciler.update(reconciler.draft.model_copy(update={"fields": fields}))
        return fields

    async def close(self) -> None:
        """Finish any running save and stop reporting to the registry."""
        if self.reconciler is None:
            return
        await self.reconciler.close()
        if self.registry is not None:
            self.registry.unregister(self.registry_name)

    def _require_reconciler(self) -> AutosaveReconciler[LeadFormDraft]:
        if self.reconciler is None:
            raise RuntimeError("Call load() before editing")
        return self.reconciler
