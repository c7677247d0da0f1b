"""Profile store with the single active profile rule."""

import logging
from typing import Any
from uuid import UUID, uuid4

from src.api.middleware.error_handler import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.core.supabase import coerce_uuid, first_row, get_supabase_client, raise_for_conflict
from src.models.profile import ProfileLinkRecord, ProfileWithLinks, UserProfileRecord
from src.schemas.common import utc_now
from src.schemas.profile import LinkPayload, ProfilePayload, ThemeName
from src.services.account_service import (
    AccountService,
    build_avatar_url,
    normalize_handle,
)

logger = logging.getLogger(__name__)

PROFILE_TABLE = "user_profiles"
LINK_TABLE = "profile_links"

THEMES = {theme.value for theme in ThemeName}


def normalize_theme(theme: str | None) -> str:
    """Map a theme name onto a known theme, falling back to light."""
    value = (theme or ThemeName.LIGHT.value).strip().lower()
    return value if value in THEMES else ThemeName.LIGHT.value


def link_sort_key(link: ProfileLinkRecord) -> tuple[int, str]:
    """Display order: order_index, ties broken by creation time."""
    return (link.get("order_index") or 0, link.get("created_at") or "")


class ProfileService:
    """Service for profiles and their links.

    Every write leaves an account with profiles holding exactly one
    active profile. Activation demotes siblings before promoting, so a
    reader can see zero active profiles for a moment but never two;
    ``ensure_has_active_profile`` repairs a zero state and runs on
    every list.
    """

    def __init__(self) -> None:
        """Initialize profile service with Supabase client."""
        self.client = get_supabase_client()

    async def list_profiles(self, user_id: UUID | str) -> list[ProfileWithLinks]:
        """List an account's profiles with links, oldest first.

        Args:
            user_id: The account ID.

        Returns:
            list[ProfileWithLinks]: Profiles ordered by creation time.
        """
        await self.ensure_has_active_profile(user_id)

        response = (
            self.client.table(PROFILE_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at")
            .execute()
        )
        return await self._attach_links(response.data or [])

    async def get_profile(self, profile_id: UUID | str) -> ProfileWithLinks | None:
        """Get a profile with its links by ID.

        Args:
            profile_id: The profile's UUID.

        Returns:
            ProfileWithLinks | None: The profile or None if not found.
        """
        response = (
            self.client.table(PROFILE_TABLE)
            .select("*")
            .eq("id", str(profile_id))
            .limit(1)
            .execute()
        )
        row = first_row(response)
        if not row:
            return None
        return (await self._attach_links([row]))[0]

    async def get_active_profile(self, user_id: UUID | str) -> ProfileWithLinks | None:
        """Get the account's active profile with its links."""
        response = (
            self.client.table(PROFILE_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        row = first_row(response)
        if not row:
            return None
        return (await self._attach_links([row]))[0]

    async def get_profile_by_handle(self, handle: str) -> ProfileWithLinks | None:
        """Find a profile by its handle across all accounts.

        Active profiles win over inactive ones sharing the handle.

        Args:
            handle: Profile handle, any case.

        Returns:
            ProfileWithLinks | None: The matching profile or None.
        """
        normalised = normalize_handle(handle)
        if not normalised:
            return None
        response = (
            self.client.table(PROFILE_TABLE)
            .select("*")
            .eq("handle", normalised)
            .order("is_active", desc=True)
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )
        row = first_row(response)
        if not row:
            return None
        return (await self._attach_links([row]))[0]

    async def get_public_profile(self, handle: str) -> dict[str, Any]:
        """Resolve the data rendered on a public page.

        The handle is first resolved as an account handle, serving that
        account's active profile. Otherwise a profile with that handle
        is served. Only active links are returned.

        Args:
            handle: Public handle from the URL.

        Returns:
            dict: ``account`` summary and ``profile`` with visible links.

        Raises:
            NotFoundError: If nothing is published under the handle.
        """
        normalised = normalize_handle(handle)
        account = await AccountService().get_account_by_handle(normalised)

        profile = None
        if account:
            profile = await self.get_active_profile(account["user_id"])

        if profile and account:
            summary = {
                "handle": normalize_handle(account.get("username")) or normalised,
                "display_name": account.get("display_name"),
                "avatar_url": build_avatar_url(account.get("avatar_url"), account.get("updated_at")),
            }
        else:
            profile = await self.get_profile_by_handle(normalised)
            if not profile:
                raise NotFoundError(f"No public profile found for '{normalised}'")
            summary = {
                "handle": normalised,
                "display_name": profile.get("name"),
                "avatar_url": None,
            }

        profile["links"] = [link for link in profile["links"] if link.get("is_active", True)]
        return {"account": summary, "profile": profile}

    async def save_profile(self, user_id: UUID | str, payload: ProfilePayload) -> ProfileWithLinks:
        """Create or fully replace a profile and its links.

        Args:
            user_id: The owning account ID.
            payload: Profile fields and ordered link list.

        Returns:
            ProfileWithLinks: The profile as stored after the write.

        Raises:
            ValidationError: If name or handle is blank.
            ConflictError: If another profile of the account uses the handle.
            AuthorizationError: If ``payload.id`` is not a profile of this account.
        """
        user_id = str(user_id)
        name = payload.name.strip()
        handle = normalize_handle(payload.handle)
        if not name:
            raise ValidationError("Profile name is required")
        if not handle:
            raise ValidationError("Handle is required")

        headline = (payload.headline or "").strip() or None
        theme = normalize_theme(payload.theme)

        profile_id = str(payload.id) if payload.id else None
        if profile_id:
            await self._require_owned(user_id, profile_id)

        await self._check_handle_free(user_id, handle, exclude_id=profile_id)

        with raise_for_conflict(f"You already have a profile with the handle '{handle}'"):
            if profile_id is None:
                response = (
                    self.client.table(PROFILE_TABLE)
                    .insert(
                        {
                            "user_id": user_id,
                            "name": name,
                            "handle": handle,
                            "headline": headline,
                            "theme": theme,
                            "is_active": False,
                        }
                    )
                    .execute()
                )
                profile_id = first_row(response)["id"]
                logger.info("Created profile %s for account %s", profile_id, user_id)
            else:
                (
                    self.client.table(PROFILE_TABLE)
                    .update(
                        {
                            "name": name,
                            "handle": handle,
                            "headline": headline,
                            "theme": theme,
                            "updated_at": utc_now().isoformat(),
                        }
                    )
                    .eq("id", profile_id)
                    .eq("user_id", user_id)
                    .execute()
                )

        await self._replace_links(user_id, profile_id, payload.links)
        await AccountService().ensure_account(user_id, preferred_handle=handle, display_name=name)

        if payload.active:
            await self.ensure_single_active_profile(user_id, profile_id)
        else:
            await self.ensure_has_active_profile(user_id, preferred_id=profile_id)

        profile = await self.get_profile(profile_id)
        if not profile:
            raise NotFoundError("Profile not found after save")
        return profile

    async def delete_profile(self, user_id: UUID | str, profile_id: UUID | str) -> None:
        """Delete a profile and hand the active flag to another one.

        Deleting a profile that does not exist is a no-op.

        Args:
            user_id: The owning account ID.
            profile_id: The profile to delete.
        """
        (
            self.client.table(PROFILE_TABLE)
            .delete()
            .eq("id", str(profile_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        await self.ensure_has_active_profile(user_id)

    async def set_active_profile(self, user_id: UUID | str, profile_id: UUID | str) -> ProfileWithLinks:
        """Make a profile the account's only active profile.

        Args:
            user_id: The owning account ID.
            profile_id: The profile to activate.

        Returns:
            ProfileWithLinks: The activated profile.

        Raises:
            AuthorizationError: If the profile does not belong to the account.
        """
        await self.ensure_single_active_profile(user_id, profile_id)
        profile = await self.get_profile(profile_id)
        if not profile:
            raise NotFoundError("Profile not found")
        return profile

    async def ensure_single_active_profile(self, user_id: UUID | str, profile_id: UUID | str) -> None:
        """Demote every profile of the account, then promote one.

        Args:
            user_id: The owning account ID.
            profile_id: The profile that must end up active.

        Raises:
            AuthorizationError: If the profile does not belong to the account.
        """
        user_id, profile_id = str(user_id), str(profile_id)
        await self._require_owned(user_id, profile_id)

        (
            self.client.table(PROFILE_TABLE)
            .update({"is_active": False})
            .eq("user_id", user_id)
            .neq("id", profile_id)
            .execute()
        )
        (
            self.client.table(PROFILE_TABLE)
            .update({"is_active": True, "updated_at": utc_now().isoformat()})
            .eq("id", profile_id)
            .eq("user_id", user_id)
            .execute()
        )

    async def ensure_has_active_profile(
        self,
        user_id: UUID | str,
        preferred_id: UUID | str | None = None,
    ) -> str | None:
        """Promote a profile if the account has profiles but none active.

        Safe to call repeatedly; a healthy account is left untouched.

        Args:
            user_id: The owning account ID.
            preferred_id: Profile to promote first, if any. Defaults to the
                most recently updated profile.

        Returns:
            str | None: ID of the profile promoted, or None if nothing changed.
        """
        user_id = str(user_id)
        active = (
            self.client.table(PROFILE_TABLE)
            .select("id")
            .eq("user_id", user_id)
            .eq("is_active", True)
            .execute()
        )
        active_ids = [row["id"] for row in active.data or []]
        if len(active_ids) == 1:
            return None

        if len(active_ids) > 1:
            keep = str(preferred_id) if preferred_id and str(preferred_id) in active_ids else None
            if keep is None:
                keep = await self._most_recent_profile_id(user_id, only_active=True)
            logger.warning("Account %s had %d active profiles; keeping %s", user_id, len(active_ids), keep)
            await self.ensure_single_active_profile(user_id, keep)
            return keep

        candidate = str(preferred_id) if preferred_id else await self._most_recent_profile_id(user_id)
        if candidate is None:
            return None

        (
            self.client.table(PROFILE_TABLE)
            .update({"is_active": True, "updated_at": utc_now().isoformat()})
            .eq("id", candidate)
            .eq("user_id", user_id)
            .execute()
        )
        logger.info("Promoted profile %s to active for account %s", candidate, user_id)
        return candidate

    async def _most_recent_profile_id(self, user_id: str, only_active: bool = False) -> str | None:
        query = self.client.table(PROFILE_TABLE).select("id").eq("user_id", user_id)
        if only_active:
            query = query.eq("is_active", True)
        response = query.order("updated_at", desc=True).limit(1).execute()
        row = first_row(response)
        return row["id"] if row else None

    async def _require_owned(self, user_id: str, profile_id: str) -> UserProfileRecord:
        response = (
            self.client.table(PROFILE_TABLE)
            .select("*")
            .eq("id", profile_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        row = first_row(response)
        if not row:
            raise AuthorizationError("Profile not found for this account")
        return row

    async def _check_handle_free(self, user_id: str, handle: str, exclude_id: str | None) -> None:
        query = (
            self.client.table(PROFILE_TABLE)
            .select("id")
            .eq("user_id", user_id)
            .eq("handle", handle)
        )
        if exclude_id:
            query = query.neq("id", exclude_id)
        if first_row(query.limit(1).execute()):
            raise ConflictError(f"You already have a profile with the handle '{handle}'")

    async def _replace_links(self, user_id: str, profile_id: str, links: list[LinkPayload]) -> None:
        """Delete the profile's links and insert the submitted list in order."""
        existing_response = (
            self.client.table(LINK_TABLE)
            .select("id, is_active, created_at")
            .eq("profile_id", profile_id)
            .execute()
        )
        existing = {row["id"]: row for row in existing_response.data or []}

        (
            self.client.table(LINK_TABLE)
            .delete()
            .eq("profile_id", profile_id)
            .execute()
        )

        if not links:
            return

        now = utc_now().isoformat()
        rows = []
        for index, link in enumerate(links):
            link_id = coerce_uuid(link.id) or str(uuid4())
            previous = existing.get(link_id)
            if link.is_active is not None:
                is_active = link.is_active
            elif previous is not None:
                is_active = previous.get("is_active", True)
            else:
                is_active = True
            rows.append(
                {
                    "id": link_id,
                    "profile_id": profile_id,
                    "user_id": user_id,
                    "title": link.title.strip() or f"Link {index + 1}",
                    "url": link.url.strip(),
                    "order_index": index,
                    "is_active": is_active,
                    "created_at": previous["created_at"] if previous else now,
                    "updated_at": now,
                }
            )

        with raise_for_conflict("A link id in this profile is already in use"):
            self.client.table(LINK_TABLE).insert(rows).execute()

    async def _attach_links(self, profiles: list[UserProfileRecord]) -> list[ProfileWithLinks]:
        """Load links for the given profiles and attach them in display order."""
        if not profiles:
            return []
        ids = [profile["id"] for profile in profiles]
        response = (
            self.client.table(LINK_TABLE)
            .select("*")
            .in_("profile_id", ids)
            .execute()
        )
        by_profile: dict[str, list[ProfileLinkRecord]] = {profile_id: [] for profile_id in ids}
        for link in response.data or []:
            by_profile.setdefault(link["profile_id"], []).append(link)

        return [
            {**profile, "links": sorted(by_profile[profile["id"]], key=link_sort_key)}
            for profile in profiles
        ]
