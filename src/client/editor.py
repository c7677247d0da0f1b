"""Profile editor session: load, edit and autosave the active profile."""

import logging
from typing import Any

from src.client.api_client import LinketApiClient
from src.client.autosave import AutosaveReconciler
from src.client.drafts import (
    DEFAULT_PROFILE_NAME,
    LinkDraft,
    ProfileDraft,
    map_profile,
    merge_profile_ui,
    new_link,
    to_payload,
)
from src.client.navigation import EditorStateRegistry

logger = logging.getLogger(__name__)


class ProfileEditorSession:
    """Edits one account's active profile with background saving.

    Args:
        api: Client for the signed-in account.
        registry: Optional registry the session reports unsaved work to.
        delay: Autosave debounce in seconds.
    """

    def __init__(
        self,
        api: LinketApiClient,
        registry: EditorStateRegistry | None = None,
        delay: float | None = None,
    ) -> None:
        self.api = api
        self.registry = registry
        self.delay = delay
        self.reconciler: AutosaveReconciler[ProfileDraft] | None = None

    @property
    def draft(self) -> ProfileDraft:
        return self._require_reconciler().draft

    async def load(self) -> ProfileDraft:
        """Load the active profile, creating a starter profile for new accounts."""
        profiles = await self.api.list_profiles()
        if profiles:
            record = next((profile for profile in profiles if profile.get("is_active")), profiles[0])
        else:
            record = await self._create_starter_profile()

        draft = map_profile(record)
        self.reconciler = AutosaveReconciler(
            self._save,
            draft,
            delay=self.delay,
            merge=merge_profile_ui,
        )
        if self.registry is not None:
            self.registry.register("profile", self.reconciler)
        return draft

    async def _create_starter_profile(self) -> dict[str, Any]:
        account = await self.api.get_account_handle()
        handle = account.get("handle") or f"user-{self.api.account_id.replace('-', '')[:8]}"
        logger.info("Creating starter profile %s for account %s", handle, self.api.account_id)
        return await self.api.save_profile(
            {
                "name": DEFAULT_PROFILE_NAME,
                "handle": handle,
                "headline": "",
                "theme": "light",
                "links": [{"title": "Website", "url": "https://"}],
                "active": True,
            }
        )

    async def _save(self, draft: ProfileDraft) -> ProfileDraft:
        record = await self.api.save_profile(to_payload(draft))
        return map_profile(record)

    def edit(self, **changes: Any) -> ProfileDraft:
        """Change top-level fields (name, handle, headline, theme, active)."""
        reconciler = self._require_reconciler()
        draft = reconciler.draft.model_copy(update=changes)
        reconciler.update(draft)
        return draft

    def add_link(self, label: str = "New link", url: str = "https://") -> LinkDraft:
        reconciler = self._require_reconciler()
        link = new_link(label, url)
        reconciler.update(reconciler.draft.model_copy(update={"links": [*reconciler.draft.links, link]}))
        return link

    def update_link(self, link_id: str, **changes: Any) -> None:
        reconciler = self._require_reconciler()
        links = [
            link.model_copy(update=changes) if link.id == link_id else link
            for link in reconciler.draft.links
        ]
        reconciler.update(reconciler.draft.model_copy(update={"links": links}))

    def remove_link(self, link_id: str) -> None:
        reconciler = self._require_reconciler()
        links = [link for link in reconciler.draft.links if link.id != link_id]
        reconciler.update(reconciler.draft.model_copy(update={"links": links}))

    async def close(self) -> None:
        """Finish any running save and stop reporting to the registry."""
        if self.reconciler is None:
            return
        await self.reconciler.close()
        if self.registry is not None:
            self.registry.unregister("profile")

    def _require_reconciler(self) -> AutosaveReconciler[ProfileDraft]:
        if self.reconciler is None:
            raise RuntimeError("Call load() before editing")
        return self.reconciler
