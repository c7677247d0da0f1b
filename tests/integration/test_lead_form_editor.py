"""Lead form builder session running against the API in-process."""

from collections.abc import AsyncGenerator, Generator
from typing import Any

import httpx
import pytest
import pytest_asyncio

from src.client.api_client import LinketApiClient
from src.client.autosave import SaveStatus
from src.client.lead_form_editor import LeadFormEditorSession
from src.client.navigation import EditorStateRegistry
from src.schemas.lead_form import FieldType
from tests.fakes import ACCOUNT_ID, FakeSupabase

DELAY = 0.02


@pytest.fixture
def app(fake_db: FakeSupabase, user_context: Any) -> Generator[Any, None, None]:
    from src.api.deps import get_current_user
    from src.main import app

    app.dependency_overrides[get_current_user] = lambda: user_context
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api(app: Any) -> AsyncGenerator[LinketApiClient, None]:
    client = LinketApiClient(
        "http://testserver",
        access_token="unused",
        account_id=ACCOUNT_ID,
        transport=httpx.ASGITransport(app=app),
    )
    yield client
    await client.aclose()


def stored_keys(fake_db: FakeSupabase) -> list[str]:
    rows = sorted(fake_db.rows("lead_form_fields"), key=lambda row: row["order_index"])
    return [row["key"] for row in rows]


class TestLeadFormEditorSession:
    """Load, edit and autosave a lead form through the HTTP surface."""

    @pytest.mark.asyncio
    async def test_new_form_loads_empty(self, api: LinketApiClient) -> None:
        session = LeadFormEditorSession(api, "jess", delay=DELAY)

        draft = await session.load()

        assert draft.handle == "jess"
        assert draft.fields == []
        assert draft.settings.submit_label == "Send"

    @pytest.mark.asyncio
    async def test_edits_are_saved_in_background(self, api: LinketApiClient, fake_db: FakeSupabase) -> None:
        registry = EditorStateRegistry()
        session = LeadFormEditorSession(api, "jess", registry=registry, delay=DELAY)
        await session.load()

        email = session.add_field("Email", FieldType.EMAIL, required=True)
        session.add_field("Company")
        session.update_field(email.id, placeholder="you@example.com")
        session.update_settings(submit_label="Join", published=True)
        assert registry.can_leave() is False

        await session.reconciler.wait_idle()

        assert session.reconciler.status == SaveStatus.SAVED
        assert registry.can_leave() is True
        assert stored_keys(fake_db) == ["email", "company"]
        stored_email = next(row for row in fake_db.rows("lead_form_fields") if row["key"] == "email")
        assert stored_email["id"] == email.id
        assert stored_email["placeholder"] == "you@example.com"
        assert fake_db.rows("lead_form_settings")[0]["settings"]["submitLabel"] == "Join"
        assert [field.key for field in session.draft.fields] == ["email", "company"]

        await session.close()
        assert registry.blocking() == []

    @pytest.mark.asyncio
    async def test_remove_and_reorder(self, api: LinketApiClient, fake_db: FakeSupabase) -> None:
        session = LeadFormEditorSession(api, "jess", delay=DELAY)
        await session.load()
        name = session.add_field("Name")
        email = session.add_field("Email", FieldType.EMAIL)
        phone = session.add_field("Phone", FieldType.PHONE)
        await session.reconciler.wait_idle()

        session.move_field(phone.id, 0)
        session.remove_field(name.id)
        await session.reconciler.wait_idle()

        assert stored_keys(fake_db) == ["phone", "email"]
        assert [field.id for field in session.draft.fields] == [phone.id, email.id]

    @pytest.mark.asyncio
    async def test_apply_template_replaces_fields(self, api: LinketApiClient, fake_db: FakeSupabase) -> None:
        session = LeadFormEditorSession(api, "jess", delay=DELAY)
        await session.load()
        session.add_field("Favourite colour")

        fields = await session.apply_template("waitlist")
        await session.reconciler.wait_idle()

        assert [field.key for field in fields] == ["email"]
        assert stored_keys(fake_db) == ["email"]

    @pytest.mark.asyncio
    async def test_unknown_template(self, api: LinketApiClient) -> None:
        session = LeadFormEditorSession(api, "jess", delay=DELAY)
        await session.load()

        with pytest.raises(KeyError):
            await session.apply_template("nope")
        assert session.reconciler.is_dirty is False

    @pytest.mark.asyncio
    async def test_editing_before_load(self, api: LinketApiClient) -> None:
        session = LeadFormEditorSession(api, "jess", delay=DELAY)

        with pytest.raises(RuntimeError):
            session.add_field("Email")
