"""Hardware tag claiming, assignment and tap resolution."""

import logging
from typing import Any
from urllib.parse import quote
from uuid import UUID

from src.api.middleware.error_handler import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.core.config import get_settings
from src.core.supabase import first_row, get_supabase_client, raise_for_conflict
from src.models.linket import HardwareTagRecord, TagAssignmentRecord, TagEventType, TagStatus
from src.schemas.common import utc_now
from src.services.account_service import AccountService
from src.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

TAG_TABLE = "hardware_tags"
ASSIGNMENT_TABLE = "tag_assignments"
EVENT_TABLE = "tag_events"
PROFILE_TABLE = "user_profiles"


def normalize_tag_code(code: str | None) -> str:
    """Chip UIDs and claim codes are stored trimmed and uppercase."""
    return (code or "").strip().upper()


class LinketService:
    """Service for the tags an account has claimed."""

    def __init__(self) -> None:
        """Initialize linket service with Supabase client."""
        self.client = get_supabase_client()

    async def claim_tag(self, user_id: UUID | str, code: str, nickname: str | None = None) -> dict[str, Any]:
        """Bind a tag to an account by chip UID or claim code.

        Claiming a tag the account already holds returns the existing
        assignment.

        Args:
            user_id: The claiming account ID.
            code: Chip UID or printed claim code, any case.
            nickname: Optional label for the tag.

        Returns:
            dict: The assignment with its tag, as in ``list_linkets``.

        Raises:
            ValidationError: If the code is unknown or the tag is retired.
            ConflictError: If another account holds the tag.
        """
        user_id = str(user_id)
        tag = await self._find_tag(code)
        if not tag or tag["status"] == TagStatus.RETIRED.value:
            raise ValidationError("Invalid or expired claim code")

        existing = await self._assignment_for_tag(tag["id"])
        if existing:
            if existing["user_id"] != user_id:
                raise ConflictError("This Linket has already been claimed by another account")
            return await self._detail(existing, tag)

        with raise_for_conflict("This Linket has already been claimed by another account"):
            response = (
                self.client.table(ASSIGNMENT_TABLE)
                .insert(
                    {
                        "tag_id": tag["id"],
                        "user_id": user_id,
                        "profile_id": None,
                        "nickname": (nickname or "").strip() or None,
                    }
                )
                .execute()
            )
        assignment = first_row(response)

        now = utc_now().isoformat()
        response = (
            self.client.table(TAG_TABLE)
            .update({"status": TagStatus.CLAIMED.value, "last_claimed_at": now, "updated_at": now})
            .eq("id", tag["id"])
            .execute()
        )
        tag = first_row(response) or {**tag, "status": TagStatus.CLAIMED.value, "last_claimed_at": now}

        await self._record_event(tag["id"], TagEventType.CLAIM, {"user_id": user_id})
        logger.info("Tag %s claimed by account %s", tag["chip_uid"], user_id)
        return await self._detail(assignment, tag)

    async def assign_profile(
        self,
        user_id: UUID | str,
        assignment_id: UUID | str,
        profile_id: UUID | str | None,
    ) -> dict[str, Any]:
        """Point a claimed tag at a profile, or at the active profile when None.

        Raises:
            AuthorizationError: If the assignment or profile is not the caller's.
        """
        user_id = str(user_id)
        assignment = await self._require_assignment(user_id, assignment_id)

        if profile_id is not None:
            owned = (
                self.client.table(PROFILE_TABLE)
                .select("id")
                .eq("id", str(profile_id))
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
            if not first_row(owned):
                raise AuthorizationError("Profile not found for this account")

        response = (
            self.client.table(ASSIGNMENT_TABLE)
            .update(
                {
                    "profile_id": str(profile_id) if profile_id else None,
                    "updated_at": utc_now().isoformat(),
                }
            )
            .eq("id", assignment["id"])
            .execute()
        )
        assignment = first_row(response) or {**assignment, "profile_id": str(profile_id) if profile_id else None}

        await self._record_event(
            assignment["tag_id"],
            TagEventType.ASSIGN,
            {"user_id": user_id, "profile_id": assignment["profile_id"]},
        )
        return await self._detail(assignment)

    async def rename(self, user_id: UUID | str, assignment_id: UUID | str, nickname: str | None) -> dict[str, Any]:
        """Change the label an account gives its tag."""
        assignment = await self._require_assignment(str(user_id), assignment_id)
        nickname = (nickname or "").strip() or None
        response = (
            self.client.table(ASSIGNMENT_TABLE)
            .update({"nickname": nickname, "updated_at": utc_now().isoformat()})
            .eq("id", assignment["id"])
            .execute()
        )
        return await self._detail(first_row(response) or {**assignment, "nickname": nickname})

    async def release(self, user_id: UUID | str, assignment_id: UUID | str) -> dict[str, Any]:
        """Give a tag up so it can be claimed again.

        Returns:
            dict: ``assignment_id`` and ``tag_id`` of the released tag.

        Raises:
            AuthorizationError: If the assignment is not the caller's.
        """
        user_id = str(user_id)
        assignment = await self._require_assignment(user_id, assignment_id)

        (
            self.client.table(ASSIGNMENT_TABLE)
            .delete()
            .eq("id", assignment["id"])
            .eq("user_id", user_id)
            .execute()
        )
        (
            self.client.table(TAG_TABLE)
            .update({"status": TagStatus.UNCLAIMED.value, "updated_at": utc_now().isoformat()})
            .eq("id", assignment["tag_id"])
            .execute()
        )
        await self._record_event(assignment["tag_id"], TagEventType.RELEASE, {"user_id": user_id})
        logger.info("Tag %s released by account %s", assignment["tag_id"], user_id)
        return {"released": True, "assignment_id": assignment["id"], "tag_id": assignment["tag_id"]}

    async def list_linkets(self, user_id: UUID | str) -> list[dict[str, Any]]:
        """List an account's tags with their tag and profile details, oldest first."""
        response = (
            self.client.table(ASSIGNMENT_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at")
            .execute()
        )
        assignments: list[TagAssignmentRecord] = response.data or []
        if not assignments:
            return []

        tag_ids = list({assignment["tag_id"] for assignment in assignments})
        tags = {
            row["id"]: row
            for row in (self.client.table(TAG_TABLE).select("*").in_("id", tag_ids).execute().data or [])
        }

        profile_ids = list({a["profile_id"] for a in assignments if a.get("profile_id")})
        profiles: dict[str, dict[str, Any]] = {}
        if profile_ids:
            rows = (
                self.client.table(PROFILE_TABLE)
                .select("id, name, handle")
                .in_("id", profile_ids)
                .execute()
                .data
                or []
            )
            profiles = {row["id"]: row for row in rows}

        return [
            self._shape(assignment, tags.get(assignment["tag_id"]), profiles.get(assignment.get("profile_id") or ""))
            for assignment in assignments
            if assignment["tag_id"] in tags
        ]

    async def resolve_tap(self, chip_uid: str, user_agent: str | None = None) -> dict[str, Any]:
        """Work out where a tap on a tag should land.

        Assigned tags open their profile, falling back to the account's
        active profile. Unclaimed tags open the claim page. Every tap of
        a claimed tag is recorded as a scan.

        Args:
            chip_uid: UID read from the chip.
            user_agent: Tapping browser, stored with the scan.

        Returns:
            dict: ``url`` to redirect to, plus ``tag_id`` and ``profile_id``.

        Raises:
            NotFoundError: If the chip is unknown or retired.
        """
        settings = get_settings()
        tag = await self._find_tag(chip_uid, chip_only=True)
        if not tag or tag["status"] == TagStatus.RETIRED.value:
            raise NotFoundError("Unknown Linket")

        assignment = await self._assignment_for_tag(tag["id"])
        if not assignment:
            url = f"{settings.frontend_url.rstrip('/')}/claim?chip={quote(tag['chip_uid'])}"
            return {"url": url, "tag_id": tag["id"], "profile_id": None}

        user_id = assignment["user_id"]
        profiles = ProfileService()
        profile = None
        if assignment.get("profile_id"):
            profile = await profiles.get_profile(assignment["profile_id"])
            if profile and profile["user_id"] != user_id:
                profile = None
        if profile is None:
            profile = await profiles.get_active_profile(user_id)

        if profile and not profile.get("is_active"):
            handle = profile["handle"]
        else:
            handle = (await AccountService().get_account_handle(user_id))["handle"]

        await self._record_event(
            tag["id"],
            TagEventType.SCAN,
            {
                "user_id": user_id,
                "assignment_id": assignment["id"],
                "profile_id": profile["id"] if profile else None,
                "user_agent": user_agent,
            },
        )
        (
            self.client.table(ASSIGNMENT_TABLE)
            .update({"last_redirected_at": utc_now().isoformat()})
            .eq("id", assignment["id"])
            .execute()
        )

        return {
            "url": settings.public_profile_url(handle),
            "tag_id": tag["id"],
            "profile_id": profile["id"] if profile else None,
        }

    async def _find_tag(self, code: str, chip_only: bool = False) -> HardwareTagRecord | None:
        normalised = normalize_tag_code(code)
        if not normalised:
            return None
        columns = ["chip_uid"] if chip_only else ["chip_uid", "claim_code"]
        for column in columns:
            response = (
                self.client.table(TAG_TABLE)
                .select("*")
                .eq(column, normalised)
                .limit(1)
                .execute()
            )
            row = first_row(response)
            if row:
                return row
        return None

    async def _assignment_for_tag(self, tag_id: str) -> TagAssignmentRecord | None:
        response = (
            self.client.table(ASSIGNMENT_TABLE)
            .select("*")
            .eq("tag_id", tag_id)
            .limit(1)
            .execute()
        )
        return first_row(response)

    async def _require_assignment(self, user_id: str, assignment_id: UUID | str) -> TagAssignmentRecord:
        response = (
            self.client.table(ASSIGNMENT_TABLE)
            .select("*")
            .eq("id", str(assignment_id))
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        assignment = first_row(response)
        if not assignment:
            raise AuthorizationError("Linket not found for this account")
        return assignment

    async def _record_event(self, tag_id: str, event_type: TagEventType, metadata: dict[str, Any]) -> None:
        """Append to the tag's event log; a failed write is logged, not raised."""
        try:
            (
                self.client.table(EVENT_TABLE)
                .insert(
                    {
                        "tag_id": tag_id,
                        "event_type": event_type.value,
                        "metadata": metadata,
                        "occurred_at": utc_now().isoformat(),
                    }
                )
                .execute()
            )
        except Exception as e:
            logger.error("Failed to record %s event for tag %s: %s", event_type.value, tag_id, str(e))

    async def _detail(self, assignment: TagAssignmentRecord, tag: HardwareTagRecord | None = None) -> dict[str, Any]:
        if tag is None:
            tag = first_row(
                self.client.table(TAG_TABLE).select("*").eq("id", assignment["tag_id"]).limit(1).execute()
            )
        profile = None
        if assignment.get("profile_id"):
            profile = first_row(
                self.client.table(PROFILE_TABLE)
                .select("id, name, handle")
                .eq("id", assignment["profile_id"])
                .limit(1)
                .execute()
            )
        return self._shape(assignment, tag, profile)

    @staticmethod
    def _shape(
        assignment: TagAssignmentRecord,
        tag: HardwareTagRecord | None,
        profile: dict[str, Any] | None,
    ) -> dict[str, Any]:
        return {
            **assignment,
            "profile_name": profile.get("name") if profile else None,
            "profile_handle": profile.get("handle") if profile else None,
            "tag": tag,
        }
