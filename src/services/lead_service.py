"""Public lead capture and the owner's lead inbox."""

import csv
import io
import json
import logging
import re
from typing import Any
from uuid import UUID

from src.api.middleware.error_handler import RateLimitError, ValidationError
from src.core.rate_limiter import get_rate_limiter, submission_key
from src.core.supabase import first_row, get_supabase_client
from src.models.lead import LeadFormFieldRecord, LeadRecord
from src.schemas.lead import LeadSubmission
from src.schemas.lead_form import FieldType, LeadFormSettings
from src.services.email_service import EmailService
from src.services.lead_form_service import LeadFormService, normalize_key

logger = logging.getLogger(__name__)

LEAD_TABLE = "leads"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

CSV_COLUMNS = [
    "created_at",
    "handle",
    "name",
    "email",
    "phone",
    "company",
    "message",
    "source_url",
    "custom_fields",
]


def _text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    return str(value).strip()


def field_key(field: LeadFormFieldRecord) -> str:
    """Answer key a field is submitted under."""
    return normalize_key(field.get("key") or field.get("label") or field.get("id"))


def collect_answers(fields: list[LeadFormFieldRecord], values: dict[str, Any]) -> dict[str, Any]:
    """Pick the submitted answer for every form field.

    Unanswered checkboxes become False and other unanswered fields an
    empty string. Keys not on the form are dropped.
    """
    answers: dict[str, Any] = {}
    for field in fields:
        key = field_key(field)
        default: Any = False if field.get("type") == FieldType.CHECKBOX.value else ""
        answers[key] = values.get(key, default)
    return answers


def extract_contact(answers: dict[str, Any]) -> dict[str, str | None]:
    """Best-effort mapping of arbitrary answer keys onto lead columns.

    Returns:
        dict: ``name`` and ``email`` (possibly empty strings), plus
        ``phone``, ``company`` and ``message`` (None when blank).
    """
    combined = " ".join(
        part for part in (_text(answers.get("first_name")), _text(answers.get("last_name"))) if part
    )
    name = _text(answers.get("name")) or combined or _text(answers.get("full_name"))
    return {
        "name": name,
        "email": _text(answers.get("email")),
        "phone": _text(answers.get("phone")) or None,
        "company": _text(answers.get("company")) or _text(answers.get("school")) or None,
        "message": _text(answers.get("message")) or _text(answers.get("notes")) or None,
    }


def validate_answers(
    fields: list[LeadFormFieldRecord],
    answers: dict[str, Any],
    settings: LeadFormSettings,
    consent: bool,
) -> None:
    """Apply consent, required-field and per-field rules.

    Raises:
        ValidationError: With one detail entry per offending field.
    """
    if settings.consent_enabled and not consent:
        raise ValidationError("Please accept the consent checkbox.")

    missing = []
    for field in fields:
        if not field.get("required"):
            continue
        key = field_key(field)
        value = answers.get(key)
        if field.get("type") == FieldType.CHECKBOX.value:
            if value is not True:
                missing.append(key)
        elif not _text(value):
            missing.append(key)
    if missing:
        raise ValidationError(
            "Please fill in the required fields.",
            details=[{"field": key, "message": "This field is required"} for key in missing],
        )

    problems = []
    for field in fields:
        key = field_key(field)
        value = _text(answers.get(key))
        if not value:
            continue
        rules = field.get("validation") or {}
        min_length = rules.get("minLength")
        if min_length and len(value) < min_length:
            problems.append({"field": key, "message": f"Must be at least {min_length} characters"})
        if (rules.get("emailFormat") or field.get("type") == FieldType.EMAIL.value) and not EMAIL_PATTERN.match(value):
            problems.append({"field": key, "message": "Enter a valid email address"})
    if problems:
        raise ValidationError("Please check the highlighted fields.", details=problems)


class LeadService:
    """Service for capturing and listing leads."""

    def __init__(self) -> None:
        """Initialize lead service with Supabase client."""
        self.client = get_supabase_client()

    async def submit_lead(
        self,
        handle: str,
        submission: LeadSubmission,
        client_key: str | None = None,
    ) -> dict[str, Any]:
        """Capture a visitor's answers to a public form.

        A filled honeypot gets the normal success response and nothing is
        stored.

        Args:
            handle: Public handle the form belongs to.
            submission: Answers, consent state, honeypot and source URL.
            client_key: Identifies the sender for rate limiting (e.g. IP).

        Returns:
            dict: ``success_message`` and ``redirect_url``.

        Raises:
            NotFoundError: If no account owns the handle.
            ValidationError: If the answers do not satisfy the form.
            RateLimitError: If spam protection is on and the sender is over the limit.
        """
        form = await LeadFormService().get_public_form(handle)
        settings: LeadFormSettings = form["settings"]
        fields = form["fields"]
        result = {
            "success_message": settings.success_message,
            "redirect_url": settings.redirect_url if settings.redirect_enabled and settings.redirect_url else None,
        }

        if submission.honeypot and submission.honeypot.strip():
            logger.info("Dropped honeypot lead submission for %s", form["handle"])
            return result

        if settings.spam_protection:
            await self._check_rate_limit(form["handle"], client_key)

        answers = collect_answers(fields, submission.values)
        validate_answers(fields, answers, settings, submission.consent)

        contact = extract_contact(answers)
        if not contact["name"] or not contact["email"]:
            raise ValidationError("Name and email required.")
        if not EMAIL_PATTERN.match(contact["email"]):
            raise ValidationError(
                "Enter a valid email address",
                details=[{"field": "email", "message": "Enter a valid email address"}],
            )

        response = (
            self.client.table(LEAD_TABLE)
            .insert(
                {
                    "user_id": form["user_id"],
                    "handle": form["handle"],
                    **contact,
                    "custom_fields": answers,
                    "source_url": submission.source_url,
                }
            )
            .execute()
        )
        lead = first_row(response) or {**contact, "custom_fields": answers}
        logger.info("Captured lead for %s", form["handle"])

        if settings.notify_enabled and settings.notify_email:
            await self._notify_owner(form["user_id"], form["handle"], lead)

        return result

    async def list_leads(
        self,
        user_id: UUID | str,
        handle: str | None = None,
        limit: int = 100,
    ) -> list[LeadRecord]:
        """List an account's leads, newest first.

        Args:
            user_id: The owning account ID.
            handle: Restrict to one form scope.
            limit: Maximum number of rows.

        Returns:
            list[LeadRecord]: Lead rows.
        """
        query = self.client.table(LEAD_TABLE).select("*").eq("user_id", str(user_id))
        if handle:
            query = query.eq("handle", handle.strip().lower())
        response = query.order("created_at", desc=True).limit(limit).execute()
        return response.data or []

    async def export_leads_csv(self, user_id: UUID | str, handle: str | None = None, limit: int = 5000) -> str:
        """Render an account's leads as CSV, newest first."""
        leads = await self.list_leads(user_id, handle=handle, limit=limit)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\r\n")
        writer.writerow(CSV_COLUMNS)
        for lead in leads:
            row = []
            for column in CSV_COLUMNS:
                value = lead.get(column)
                if column == "custom_fields":
                    value = json.dumps(value, sort_keys=True) if value else ""
                row.append("" if value is None else value)
            writer.writerow(row)
        return buffer.getvalue()

    async def _check_rate_limit(self, handle: str, client_key: str | None) -> None:
        decision = await get_rate_limiter().hit(submission_key(handle, client_key))
        if not decision.allowed:
            logger.info("Rate limited lead submissions to %s from %s", handle, client_key)
            raise RateLimitError(
                message="Too many submissions. Please wait before trying again.",
                retry_after=decision.retry_after,
            )

    async def _notify_owner(self, user_id: str, handle: str, lead: dict[str, Any]) -> None:
        """Email the owner about a new lead; failures never reach the visitor."""
        try:
            user_response = self.client.auth.admin.get_user_by_id(user_id)
            owner_email = user_response.user.email if user_response and user_response.user else None
            if not owner_email:
                logger.warning("No email address for account %s; lead notification skipped", user_id)
                return
            await EmailService().send_lead_notification(owner_email, handle, lead)
        except Exception as e:
            logger.error("Lead notification for %s failed: %s", handle, str(e))
