"""vCard contact fields and vCard 3.0 rendering."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from src.api.middleware.error_handler import ValidationError
from src.core.supabase import first_row, get_supabase_client
from src.models.vcard import VCardProfileRecord
from src.schemas.common import utc_now
from src.schemas.vcard import VCardFields
from src.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

VCARD_TABLE = "vcard_profiles"
VCARD_COLUMNS = "full_name, title, email, phone, company, website, address, note, photo_data, photo_name"

# RFC 2425 content lines are folded at 75 octets
LINE_LIMIT = 75
CRLF = "\r\n"

_DATA_URL = re.compile(r"^data:image/(?P<subtype>[a-z0-9.+-]+);base64,(?P<data>[A-Za-z0-9+/=\s]+)$", re.IGNORECASE)


@dataclass
class ContactCard:
    """Everything that goes into one vCard."""

    handle: str
    first_name: str
    last_name: str = ""
    org: str | None = None
    title: str | None = None
    email: str | None = None
    phone: str | None = None
    website: str | None = None
    address: str | None = None
    note: str | None = None
    photo_data_url: str | None = None
    revision: datetime = field(default_factory=utc_now)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


def split_name(full_name: str) -> tuple[str, str]:
    """Split a display name into (first, last); the last word is the surname."""
    parts = full_name.split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return " ".join(parts[:-1]), parts[-1]


def escape_text(value: str) -> str:
    """Escape a vCard text value."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "\\n")
    )


def fold_line(line: str) -> str:
    """Fold a content line into 75-octet chunks without splitting a UTF-8 sequence.

    Continuation lines start with a single space, which counts toward
    their 75 octets.
    """
    encoded = line.encode("utf-8")
    if len(encoded) <= LINE_LIMIT:
        return line

    chunks = []
    current = ""
    current_size = 0
    limit = LINE_LIMIT
    for char in line:
        size = len(char.encode("utf-8"))
        if current_size + size > limit:
            chunks.append(current)
            current = ""
            current_size = 0
            limit = LINE_LIMIT - 1
        current += char
        current_size += size
    chunks.append(current)
    return (CRLF + " ").join(chunks)


def build_vcard(card: ContactCard) -> str:
    """Render a contact as a vCard 3.0 document with CRLF line endings."""
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{escape_text(card.last_name)};{escape_text(card.first_name)};;;",
        f"FN:{escape_text(card.full_name or card.handle)}",
    ]
    if card.org:
        lines.append(f"ORG:{escape_text(card.org)}")
    if card.title:
        lines.append(f"TITLE:{escape_text(card.title)}")
    if card.email:
        lines.append(f"EMAIL;TYPE=INTERNET,WORK,PREF:{escape_text(card.email)}")
    if card.phone:
        lines.append(f"TEL;TYPE=CELL,PREF:{escape_text(card.phone)}")
    if card.website:
        lines.append(f"URL:{escape_text(card.website)}")
    if card.address:
        lines.append(f"ADR;TYPE=WORK:;;{escape_text(card.address)};;;;")
    if card.note:
        lines.append(f"NOTE:{escape_text(card.note)}")
    if card.photo_data_url:
        match = _DATA_URL.match(card.photo_data_url.strip())
        if match:
            image_type = match.group("subtype").upper()
            if image_type == "JPG":
                image_type = "JPEG"
            data = re.sub(r"\s+", "", match.group("data"))
            lines.append(f"PHOTO;ENCODING=b;TYPE={image_type}:{data}")
    lines.append(f"UID:urn:uuid:{card.handle}")
    lines.append(f"REV:{card.revision.strftime('%Y-%m-%dT%H:%M:%SZ')}")
    lines.append("END:VCARD")
    return CRLF.join(fold_line(line) for line in lines) + CRLF


def _clean(value: str | None) -> str | None:
    return (value or "").strip() or None


class VCardService:
    """Service for an account's vCard details."""

    def __init__(self) -> None:
        """Initialize vCard service with Supabase client."""
        self.client = get_supabase_client()

    async def get_vcard_fields(self, user_id: UUID | str) -> VCardFields:
        """Load an account's vCard details; all empty when none are saved."""
        response = (
            self.client.table(VCARD_TABLE)
            .select(VCARD_COLUMNS)
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        row = first_row(response)
        return VCardFields.model_validate(row) if row else VCardFields()

    async def save_vcard_fields(self, user_id: UUID | str, fields: VCardFields) -> VCardFields:
        """Store an account's vCard details; blank values are stored as null.

        Raises:
            ValidationError: If the photo is not an image data URL.
        """
        photo_data = fields.photo_data or None
        if photo_data and not _DATA_URL.match(photo_data.strip()):
            raise ValidationError(
                "Photo must be an image data URL",
                details=[{"field": "photo_data", "message": "Expected data:image/...;base64,..."}],
            )

        row: dict[str, Any] = {
            "user_id": str(user_id),
            "full_name": _clean(fields.full_name),
            "title": _clean(fields.title),
            "email": _clean(fields.email),
            "phone": _clean(fields.phone),
            "company": _clean(fields.company),
            "website": _clean(fields.website),
            "address": _clean(fields.address),
            "note": _clean(fields.note),
            "photo_data": photo_data,
            "photo_name": _clean(fields.photo_name) if photo_data else None,
            "updated_at": utc_now().isoformat(),
        }
        response = (
            self.client.table(VCARD_TABLE)
            .upsert(row, on_conflict="user_id")
            .execute()
        )
        saved: VCardProfileRecord | None = first_row(response)
        return VCardFields.model_validate(saved or row)

    async def get_public_vcard(self, handle: str) -> tuple[str, str]:
        """Build the vCard offered on a public page.

        Args:
            handle: Public handle from the URL.

        Returns:
            tuple: (normalized handle, vCard text).

        Raises:
            NotFoundError: If nothing is published under the handle.
        """
        public = await ProfileService().get_public_profile(handle)
        account, profile = public["account"], public["profile"]
        normalised = handle.strip().lower()

        fields = await self.get_vcard_fields(profile["user_id"])
        fallback = profile.get("name") or account.get("display_name") or account.get("handle") or normalised
        first_name, last_name = split_name(fields.full_name or fallback)

        card = ContactCard(
            handle=normalised,
            first_name=first_name,
            last_name=last_name,
            org=fields.company,
            title=fields.title,
            email=fields.email,
            phone=fields.phone,
            website=fields.website,
            address=fields.address,
            note=fields.note,
            photo_data_url=fields.photo_data,
        )
        return normalised, build_vcard(card)
