"""Unit tests for the debounced single-flight autosave."""

import asyncio
from typing import Any

import pytest

from src.client.autosave import AutosaveReconciler, SaveStatus

DELAY = 0.02


class RecordingSaver:
    """Save coroutine that records every draft it receives.

    When ``gate`` is set, each save waits for it before returning, so a
    test can hold a save in flight.
    """

    def __init__(self, gate: asyncio.Event | None = None, fail_times: int = 0) -> None:
        self.saved: list[Any] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate = gate
        self.started = asyncio.Event()
        self.fail_times = fail_times

    async def __call__(self, draft: dict[str, Any]) -> dict[str, Any]:
        self.saved.append(dict(draft))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            if self.fail_times:
                self.fail_times -= 1
                raise RuntimeError("Handle already taken")
            return {**draft, "version": len(self.saved)}
        finally:
            self.in_flight -= 1


def ignore_version(draft: dict[str, Any]) -> str:
    return repr(sorted((key, value) for key, value in draft.items() if key != "version"))


class TestDebounce:
    """Edits inside the debounce window collapse into one save."""

    @pytest.mark.asyncio
    async def test_rapid_edits_make_one_save_with_final_state(self) -> None:
        saver = RecordingSaver()
        reconciler = AutosaveReconciler(saver, {"name": "a"}, delay=DELAY, serialize=ignore_version)

        reconciler.update({"name": "b"})
        reconciler.update({"name": "c"})
        reconciler.update({"name": "d"})
        await reconciler.wait_idle()

        assert saver.saved == [{"name": "d"}]
        assert reconciler.status == SaveStatus.SAVED
        assert reconciler.is_dirty is False
        assert reconciler.last_saved_at is not None

    @pytest.mark.asyncio
    async def test_reverting_to_saved_state_cancels_save(self) -> None:
        saver = RecordingSaver()
        reconciler = AutosaveReconciler(saver, {"name": "a"}, delay=DELAY)

        reconciler.update({"name": "b"})
        reconciler.update({"name": "a"})
        await reconciler.wait_idle()

        assert saver.saved == []
        assert reconciler.status == SaveStatus.IDLE


class TestSingleFlight:
    """Only one save runs at a time and the latest draft wins."""

    @pytest.mark.asyncio
    async def test_edit_during_save_triggers_exactly_one_more(self) -> None:
        gate = asyncio.Event()
        saver = RecordingSaver(gate=gate)
        reconciler = AutosaveReconciler(saver, {"name": "a"}, delay=DELAY, serialize=ignore_version)

        reconciler.update({"name": "b"})
        await saver.started.wait()
        assert reconciler.status == SaveStatus.SAVING

        reconciler.update({"name": "c"})
        reconciler.update({"name": "d"})
        reconciler.update({"name": "e"})
        gate.set()
        await reconciler.wait_idle()

        assert saver.saved == [{"name": "b"}, {"name": "e"}]
        assert saver.max_in_flight == 1
        assert reconciler.draft["name"] == "e"
        assert reconciler.is_dirty is False

    @pytest.mark.asyncio
    async def test_reverting_during_save_sends_reverted_draft(self) -> None:
        gate = asyncio.Event()
        saver = RecordingSaver(gate=gate)
        reconciler = AutosaveReconciler(saver, {"name": "a"}, delay=DELAY, serialize=ignore_version)

        reconciler.update({"name": "b"})
        await saver.started.wait()
        reconciler.update({"name": "a"})
        gate.set()
        await reconciler.wait_idle()

        assert saver.saved == [{"name": "b"}, {"name": "a"}]
        assert reconciler.draft["name"] == "a"
        assert reconciler.is_dirty is False
        assert reconciler.status == SaveStatus.SAVED

    @pytest.mark.asyncio
    async def test_follow_up_uses_draft_at_completion_time(self) -> None:
        gate = asyncio.Event()
        saver = RecordingSaver(gate=gate)
        reconciler = AutosaveReconciler(saver, {"name": "a"}, delay=DELAY, serialize=ignore_version)

        reconciler.update({"name": "b"})
        await saver.started.wait()
        reconciler.update({"name": "c"})
        await asyncio.sleep(DELAY * 2)
        reconciler.update({"name": "final"})
        gate.set()
        await reconciler.wait_idle()

        assert saver.saved[-1] == {"name": "final"}
        assert len(saver.saved) == 2

    @pytest.mark.asyncio
    async def test_edits_made_during_save_are_kept(self) -> None:
        gate = asyncio.Event()
        saved_versions: list[dict[str, Any]] = []

        async def save(draft: dict[str, Any]) -> dict[str, Any]:
            await gate.wait()
            canonical = {**draft, "name": draft["name"].strip()}
            saved_versions.append(canonical)
            return canonical

        reconciler = AutosaveReconciler(save, {"name": "a"}, delay=DELAY)
        reconciler.update({"name": " b "})
        await asyncio.sleep(DELAY * 2)
        reconciler.update({"name": " c "})
        assert reconciler.draft == {"name": " c "}

        gate.set()
        await reconciler.wait_idle()

        assert saved_versions == [{"name": "b"}, {"name": "c"}]
        assert reconciler.draft == {"name": "c"}

    @pytest.mark.asyncio
    async def test_unedited_draft_replaced_by_canonical(self) -> None:
        async def save(draft: dict[str, Any]) -> dict[str, Any]:
            return {"name": draft["name"].lower()}

        reconciler = AutosaveReconciler(save, {"name": "a"}, delay=DELAY)
        reconciler.update({"name": "JESS"})
        await reconciler.wait_idle()

        assert reconciler.draft == {"name": "jess"}
        assert reconciler.last_snapshot == {"name": "jess"}


class TestFailures:
    """Failed saves keep the draft and wait for a retry."""

    @pytest.mark.asyncio
    async def test_failure_keeps_draft_and_reports_message(self) -> None:
        saver = RecordingSaver(fail_times=1)
        reconciler = AutosaveReconciler(saver, {"name": "a"}, delay=DELAY, serialize=ignore_version)

        reconciler.update({"name": "b"})
        await reconciler.wait_idle()

        assert reconciler.status == SaveStatus.ERROR
        assert reconciler.error == "Handle already taken"
        assert reconciler.status_text == "Save failed: Handle already taken"
        assert reconciler.draft == {"name": "b"}
        assert reconciler.is_dirty is True
        assert len(saver.saved) == 1

    @pytest.mark.asyncio
    async def test_retry_sends_current_draft(self) -> None:
        saver = RecordingSaver(fail_times=1)
        reconciler = AutosaveReconciler(saver, {"name": "a"}, delay=DELAY, serialize=ignore_version)
        reconciler.update({"name": "b"})
        await reconciler.wait_idle()

        reconciler.draft = {"name": "b2"}
        await reconciler.retry()

        assert saver.saved == [{"name": "b"}, {"name": "b2"}]
        assert reconciler.status == SaveStatus.SAVED
        assert reconciler.error is None


class TestMergeAndGuards:
    """UI merge hook and navigation guard."""

    @pytest.mark.asyncio
    async def test_merge_reapplies_client_fields(self) -> None:
        async def save(draft: dict[str, Any]) -> dict[str, Any]:
            return {"name": draft["name"]}

        def merge(saved: dict[str, Any], sent: dict[str, Any]) -> dict[str, Any]:
            return {**saved, "color": sent.get("color")}

        reconciler = AutosaveReconciler(save, {"name": "a", "color": "#fff"}, delay=DELAY, merge=merge)
        reconciler.update({"name": "b", "color": "#000"})
        await reconciler.wait_idle()

        assert reconciler.draft == {"name": "b", "color": "#000"}
        assert reconciler.is_dirty is False

    @pytest.mark.asyncio
    async def test_can_leave_only_when_clean(self) -> None:
        gate = asyncio.Event()
        saver = RecordingSaver(gate=gate)
        reconciler = AutosaveReconciler(saver, {"name": "a"}, delay=DELAY, serialize=ignore_version)
        assert reconciler.can_leave() is True

        reconciler.update({"name": "b"})
        assert reconciler.can_leave() is False

        await saver.started.wait()
        assert reconciler.can_leave() is False

        gate.set()
        await reconciler.wait_idle()
        assert reconciler.can_leave() is True

    @pytest.mark.asyncio
    async def test_close_drops_scheduled_save(self) -> None:
        saver = RecordingSaver()
        reconciler = AutosaveReconciler(saver, {"name": "a"}, delay=DELAY)

        reconciler.update({"name": "b"})
        await reconciler.close()
        await asyncio.sleep(DELAY * 2)

        assert saver.saved == []
