"""Debounced, single-flight autosave for editor drafts."""

import asyncio
import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

from src.core.config import get_settings
from src.schemas.common import utc_now

logger = logging.getLogger(__name__)

DraftT = TypeVar("DraftT")


class SaveStatus(str, Enum):
    """Autosave state shown next to the editor."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


def serialize_draft(draft: Any) -> str:
    """Stable text form of a draft, used only to compare drafts."""
    if hasattr(draft, "model_dump"):
        draft = draft.model_dump(mode="json")
    return json.dumps(draft, sort_keys=True, default=str)


class AutosaveReconciler(Generic[DraftT]):
    """Keeps an editable draft in step with the server.

    Each ``update`` restarts a debounce timer; when it fires the latest
    draft is saved. At most one save runs at a time. Edits or timer
    firings during a save set a single pending flag, and when the
    running save finishes exactly one more save is made with whatever
    the draft is then. Older drafts therefore never reach the server
    after newer ones.

    A failed save leaves the draft untouched and moves to ``error``;
    nothing is retried until ``retry`` is called or the draft changes.
    Failures never raise out of the reconciler.

    Args:
        save: Coroutine that persists a draft and returns the canonical
            version from the server.
        initial: Draft as last loaded from the server.
        delay: Debounce in seconds; defaults to ``autosave_debounce_ms``.
        merge: Optional ``merge(saved, draft_sent)`` that copies
            client-only fields the server does not store onto the saved
            version.
        serialize: Function used to compare drafts for dirtiness.
    """

    def __init__(
        self,
        save: Callable[[DraftT], Awaitable[DraftT]],
        initial: DraftT,
        delay: float | None = None,
        merge: Callable[[DraftT, DraftT], DraftT] | None = None,
        serialize: Callable[[DraftT], str] = serialize_draft,
    ) -> None:
        self._save = save
        self._merge = merge
        self._serialize = serialize
        self.delay = delay if delay is not None else get_settings().autosave_debounce_ms / 1000

        self.draft: DraftT = initial
        self.last_snapshot: DraftT = initial
        self.status = SaveStatus.IDLE
        self.error: str | None = None
        self.last_saved_at: datetime | None = None

        self._revision = 0
        self._pending = False
        self._timer: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None

    @property
    def is_dirty(self) -> bool:
        """Whether the draft differs from the last saved version."""
        return self._serialize(self.draft) != self._serialize(self.last_snapshot)

    @property
    def is_saving(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def status_text(self) -> str:
        """Short status line for the editor header."""
        if self.status == SaveStatus.SAVING:
            return "Saving..."
        if self.status == SaveStatus.ERROR:
            return f"Save failed: {self.error}"
        if self.is_dirty:
            return "Unsaved changes"
        if self.status == SaveStatus.SAVED:
            return "All changes saved"
        return ""

    def can_leave(self) -> bool:
        """Navigation guard: nothing unsaved and nothing being saved."""
        return not self.is_dirty and not self.is_saving

    def update(self, draft: DraftT) -> None:
        """Replace the draft and schedule a save.

        Must be called from within a running event loop.
        """
        self.draft = draft
        self._revision += 1

        # Compared against the snapshot the running save will replace
        if self.is_saving:
            self._pending = True
            return
        if not self.is_dirty:
            self._cancel_timer()
            return
        self._restart_timer()

    async def save_now(self) -> None:
        """Save the current draft immediately and wait until saving settles."""
        self._cancel_timer()
        self._request_save()
        await self.wait_idle()

    async def retry(self) -> None:
        """Save again after a failure, with the draft as it is now."""
        await self.save_now()

    async def wait_idle(self) -> None:
        """Wait for the debounce timer and any save (and its follow-up) to finish."""
        while True:
            tasks = [task for task in (self._timer, self._inflight) if task is not None and not task.done()]
            if not tasks:
                return
            await asyncio.wait(tasks)

    async def close(self) -> None:
        """Drop any scheduled save and wait for a running one to finish."""
        self._cancel_timer()
        self._pending = False
        if self._inflight is not None:
            await asyncio.wait([self._inflight])

    def _restart_timer(self) -> None:
        self._cancel_timer()
        self._timer = asyncio.create_task(self._debounce())

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _debounce(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        self._request_save()

    def _request_save(self) -> None:
        if self.is_saving:
            self._pending = True
            return
        self._pending = False
        self._inflight = asyncio.create_task(self._run_save())

    async def _run_save(self) -> None:
        draft = self.draft
        revision = self._revision
        self.status = SaveStatus.SAVING
        self.error = None

        try:
            saved = await self._save(draft)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.status = SaveStatus.ERROR
            self.error = getattr(e, "message", None) or str(e) or "Unable to save"
            logger.warning("Autosave failed: %s", self.error)
        else:
            if self._merge is not None:
                saved = self._merge(saved, draft)
            self.last_snapshot = saved
            # Keep edits made while the save was running
            if self._revision == revision:
                self.draft = saved
            self.last_saved_at = utc_now()
            self.status = SaveStatus.SAVED

        self._inflight = None
        if self._pending:
            self._pending = False
            if self.is_dirty:
                self._request_save()
