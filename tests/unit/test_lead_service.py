"""Unit tests for LeadService and answer handling."""

import csv
import io
from unittest.mock import AsyncMock, patch

import pytest

from src.api.middleware.error_handler import NotFoundError, RateLimitError, ValidationError
from src.schemas.lead import LeadSubmission
from src.schemas.lead_form import FieldType, LeadFormFieldInput, LeadFormSettings
from src.services.lead_form_service import LeadFormService
from src.services.lead_service import LeadService, collect_answers, extract_contact, validate_answers
from tests.fakes import ACCOUNT_ID, FakeSupabase

BASIC_FIELDS = [
    LeadFormFieldInput(label="Name", key="name", required=True),
    LeadFormFieldInput(label="Email", key="email", type=FieldType.EMAIL, required=True),
    LeadFormFieldInput(label="Message", key="message", type=FieldType.TEXTAREA),
]


async def publish_form(
    db: FakeSupabase,
    fields: list[LeadFormFieldInput] | None = None,
    **settings,
) -> None:
    db.seed("profiles", {"user_id": ACCOUNT_ID, "username": "jess"})
    await LeadFormService().save_form(
        ACCOUNT_ID,
        "jess",
        fields if fields is not None else BASIC_FIELDS,
        LeadFormSettings(published=True, **settings),
    )


def submission(**values) -> LeadSubmission:
    return LeadSubmission(values=values)


class TestAnswers:
    """Tests for collect_answers and extract_contact."""

    def test_collect_answers_fills_defaults_and_drops_unknown(self) -> None:
        fields = [
            {"key": "name", "label": "Name", "type": "text"},
            {"key": "optin", "label": "Opt in", "type": "checkbox"},
        ]

        answers = collect_answers(fields, {"name": "Ann", "extra": "x"})

        assert answers == {"name": "Ann", "optin": False}

    def test_collect_answers_derives_missing_keys_from_label(self) -> None:
        answers = collect_answers([{"key": None, "label": "Full Name", "type": "text"}], {"full_name": "Ann"})

        assert answers == {"full_name": "Ann"}

    def test_extract_contact_from_split_names(self) -> None:
        contact = extract_contact(
            {"first_name": " Ann ", "last_name": "Lee", "email": "ann@x.io", "school": "MIT", "notes": "hi"}
        )

        assert contact == {
            "name": "Ann Lee",
            "email": "ann@x.io",
            "phone": None,
            "company": "MIT",
            "message": "hi",
        }

    def test_extract_contact_prefers_name(self) -> None:
        contact = extract_contact({"name": "Ann", "full_name": "Ann Marie Lee", "phone": "  "})

        assert contact["name"] == "Ann"
        assert contact["phone"] is None


class TestValidateAnswers:
    """Tests for validate_answers."""

    def test_consent_required(self) -> None:
        with pytest.raises(ValidationError) as exc:
            validate_answers([], {}, LeadFormSettings(consentEnabled=True), consent=False)

        assert exc.value.message == "Please accept the consent checkbox."

    def test_required_fields_reported_together(self) -> None:
        fields = [
            {"key": "name", "label": "Name", "type": "text", "required": True},
            {"key": "terms", "label": "Terms", "type": "checkbox", "required": True},
        ]

        with pytest.raises(ValidationError) as exc:
            validate_answers(fields, {"name": "  ", "terms": False}, LeadFormSettings(), consent=False)

        assert [d["field"] for d in exc.value.details] == ["name", "terms"]

    def test_min_length_and_email_rules(self) -> None:
        fields = [
            {"key": "bio", "label": "Bio", "type": "text", "validation": {"minLength": 5}},
            {"key": "work_email", "label": "Work", "type": "text", "validation": {"emailFormat": True}},
        ]

        with pytest.raises(ValidationError) as exc:
            validate_answers(fields, {"bio": "hey", "work_email": "nope"}, LeadFormSettings(), consent=False)

        assert exc.value.details == [
            {"field": "bio", "message": "Must be at least 5 characters"},
            {"field": "work_email", "message": "Enter a valid email address"},
        ]

    def test_blank_optional_fields_skip_rules(self) -> None:
        fields = [{"key": "bio", "label": "Bio", "type": "text", "validation": {"minLength": 5}}]

        validate_answers(fields, {"bio": ""}, LeadFormSettings(), consent=False)


class TestSubmitLead:
    """Tests for submit_lead."""

    @pytest.mark.asyncio
    async def test_lead_is_stored(self, fake_db: FakeSupabase) -> None:
        await publish_form(fake_db)

        result = await LeadService().submit_lead(
            "Jess",
            LeadSubmission(values={"name": "Ann", "email": "ann@x.io", "utm": "x"}, source_url="https://l.ink/jess"),
        )

        assert result == {"success_message": "Thanks! I'll reach out soon.", "redirect_url": None}
        [lead] = fake_db.rows("leads")
        assert lead["user_id"] == ACCOUNT_ID
        assert lead["handle"] == "jess"
        assert lead["name"] == "Ann"
        assert lead["custom_fields"] == {"name": "Ann", "email": "ann@x.io", "message": ""}
        assert lead["source_url"] == "https://l.ink/jess"

    @pytest.mark.asyncio
    async def test_redirect_returned_when_enabled(self, fake_db: FakeSupabase) -> None:
        await publish_form(fake_db, redirectEnabled=True, redirectUrl="https://jess.dev/thanks")

        result = await LeadService().submit_lead("jess", submission(name="Ann", email="ann@x.io"))

        assert result["redirect_url"] == "https://jess.dev/thanks"

    @pytest.mark.asyncio
    async def test_honeypot_is_silently_dropped(self, fake_db: FakeSupabase) -> None:
        await publish_form(fake_db)

        result = await LeadService().submit_lead("jess", LeadSubmission(values={}, honeypot="buy now"))

        assert result["success_message"] == "Thanks! I'll reach out soon."
        assert fake_db.rows("leads") == []

    @pytest.mark.asyncio
    async def test_name_and_email_required_even_when_optional(self, fake_db: FakeSupabase) -> None:
        await publish_form(fake_db, fields=[LeadFormFieldInput(label="Phone", key="phone")])

        with pytest.raises(ValidationError) as exc:
            await LeadService().submit_lead("jess", submission(phone="555"))

        assert exc.value.message == "Name and email required."
        assert fake_db.rows("leads") == []

    @pytest.mark.asyncio
    async def test_invalid_email(self, fake_db: FakeSupabase) -> None:
        await publish_form(fake_db)

        with pytest.raises(ValidationError):
            await LeadService().submit_lead("jess", submission(name="Ann", email="ann@"))

    @pytest.mark.asyncio
    async def test_unknown_handle(self, fake_db: FakeSupabase) -> None:
        with pytest.raises(NotFoundError):
            await LeadService().submit_lead("ghost", submission(name="Ann", email="ann@x.io"))

    @pytest.mark.asyncio
    async def test_rate_limited_with_spam_protection(self, fake_db: FakeSupabase, test_settings) -> None:
        await publish_form(fake_db, spamProtection=True)
        service = LeadService()

        for _ in range(test_settings.rate_limit_lead_requests):
            await service.submit_lead("jess", submission(name="Ann", email="ann@x.io"), client_key="1.2.3.4")

        with pytest.raises(RateLimitError):
            await service.submit_lead("jess", submission(name="Ann", email="ann@x.io"), client_key="1.2.3.4")

        await service.submit_lead("jess", submission(name="Bo", email="bo@x.io"), client_key="5.6.7.8")
        assert len(fake_db.rows("leads")) == test_settings.rate_limit_lead_requests + 1

    @pytest.mark.asyncio
    async def test_owner_is_notified(self, fake_db: FakeSupabase) -> None:
        await publish_form(fake_db, notifyEnabled=True)
        fake_db.auth.admin.users[ACCOUNT_ID] = "owner@example.com"

        with patch("src.services.lead_service.EmailService") as email_cls:
            email_cls.return_value.send_lead_notification = AsyncMock(return_value={"success": True})
            await LeadService().submit_lead("jess", submission(name="Ann", email="ann@x.io"))

        email_cls.return_value.send_lead_notification.assert_awaited_once()
        to_email, handle, lead = email_cls.return_value.send_lead_notification.await_args.args
        assert (to_email, handle, lead["email"]) == ("owner@example.com", "jess", "ann@x.io")

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_submission(self, fake_db: FakeSupabase) -> None:
        await publish_form(fake_db, notifyEnabled=True)
        fake_db.auth.admin.users[ACCOUNT_ID] = "owner@example.com"

        with patch("src.services.lead_service.EmailService") as email_cls:
            email_cls.return_value.send_lead_notification = AsyncMock(side_effect=RuntimeError("smtp down"))
            result = await LeadService().submit_lead("jess", submission(name="Ann", email="ann@x.io"))

        assert result["success_message"]
        assert len(fake_db.rows("leads")) == 1

    @pytest.mark.asyncio
    async def test_no_notification_when_disabled(self, fake_db: FakeSupabase) -> None:
        await publish_form(fake_db)

        with patch("src.services.lead_service.EmailService") as email_cls:
            await LeadService().submit_lead("jess", submission(name="Ann", email="ann@x.io"))

        email_cls.assert_not_called()


class TestListAndExport:
    """Tests for list_leads and export_leads_csv."""

    @pytest.mark.asyncio
    async def test_newest_first_and_filtered_by_handle(self, fake_db: FakeSupabase) -> None:
        fake_db.seed(
            "leads",
            {"user_id": ACCOUNT_ID, "handle": "jess", "name": "Old", "email": "old@x.io"},
            {"user_id": ACCOUNT_ID, "handle": "work", "name": "Other", "email": "other@x.io"},
            {"user_id": ACCOUNT_ID, "handle": "jess", "name": "New", "email": "new@x.io"},
        )
        service = LeadService()

        assert [lead["name"] for lead in await service.list_leads(ACCOUNT_ID)] == ["New", "Other", "Old"]
        assert [lead["name"] for lead in await service.list_leads(ACCOUNT_ID, handle="JESS")] == ["New", "Old"]
        assert len(await service.list_leads(ACCOUNT_ID, limit=1)) == 1

    @pytest.mark.asyncio
    async def test_csv_export(self, fake_db: FakeSupabase) -> None:
        fake_db.seed(
            "leads",
            {
                "user_id": ACCOUNT_ID,
                "handle": "jess",
                "name": "Ann, Jr.",
                "email": "ann@x.io",
                "phone": None,
                "custom_fields": {"name": "Ann, Jr.", "budget": "$1k-$5k"},
            },
        )

        text = await LeadService().export_leads_csv(ACCOUNT_ID)

        assert text.endswith("\r\n")
        header, row = list(csv.reader(io.StringIO(text)))
        assert header[:4] == ["created_at", "handle", "name", "email"]
        assert row[1:5] == ["jess", "Ann, Jr.", "ann@x.io", ""]
        assert row[-1] == '{"budget": "$1k-$5k", "name": "Ann, Jr."}'
