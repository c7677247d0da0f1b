"""Unit tests for AccountService and handle helpers."""

import pytest

from src.services.account_service import (
    AccountService,
    build_avatar_url,
    fallback_handle,
    normalize_handle,
    sanitize_handle,
)
from tests.fakes import ACCOUNT_ID, OTHER_ACCOUNT_ID, FakeSupabase


class TestHandleHelpers:
    """Tests for handle normalization helpers."""

    def test_normalize_trims_and_lowercases(self) -> None:
        assert normalize_handle("  My-Handle ") == "my-handle"
        assert normalize_handle(None) == ""

    def test_sanitize_strips_unsafe_characters(self) -> None:
        assert sanitize_handle(" Jess  Doe!! ") == "jess-doe"
        assert sanitize_handle("--a--b--") == "a-b"
        assert sanitize_handle("émile_42") == "mile_42"

    def test_sanitize_truncates(self) -> None:
        assert sanitize_handle("abcdefghij", max_length=5) == "abcde"
        assert sanitize_handle("abcd-efgh", max_length=5) == "abcd"

    def test_fallback_handle(self) -> None:
        assert fallback_handle(ACCOUNT_ID) == "user-660e8400"


class TestBuildAvatarUrl:
    """Tests for avatar URL building."""

    def test_no_avatar(self) -> None:
        assert build_avatar_url(None, None) is None

    def test_storage_path_with_version(self) -> None:
        url = build_avatar_url("u/1.png", "2026-01-02T03:04:05+00:00")
        assert url == (
            "https://test-project.supabase.co/storage/v1/object/public/avatars/u/1.png?v=1767323045"
        )

    def test_absolute_url_kept(self) -> None:
        assert build_avatar_url("https://cdn.example.com/a.png?x=1", None) == "https://cdn.example.com/a.png?x=1"


class TestEnsureAccount:
    """Tests for lazy account creation."""

    @pytest.mark.asyncio
    async def test_creates_account_with_preferred_handle(self, fake_db: FakeSupabase) -> None:
        account = await AccountService().ensure_account(ACCOUNT_ID, preferred_handle="Jess Doe", display_name="Jess")

        assert account["username"] == "jess-doe"
        assert fake_db.tables["profiles"][0]["display_name"] == "Jess"

    @pytest.mark.asyncio
    async def test_suffixes_taken_handle(self, fake_db: FakeSupabase) -> None:
        fake_db.seed("profiles", {"user_id": OTHER_ACCOUNT_ID, "username": "jess"})

        account = await AccountService().ensure_account(ACCOUNT_ID, preferred_handle="jess")

        assert account["username"] == "jess-1"

    @pytest.mark.asyncio
    async def test_existing_username_is_never_changed(self, fake_db: FakeSupabase) -> None:
        fake_db.seed("profiles", {"user_id": ACCOUNT_ID, "username": "original", "display_name": None})

        account = await AccountService().ensure_account(ACCOUNT_ID, preferred_handle="new", display_name="Jess")

        assert account["username"] == "original"
        assert account["display_name"] == "Jess"

    @pytest.mark.asyncio
    async def test_fills_missing_username(self, fake_db: FakeSupabase) -> None:
        fake_db.seed("profiles", {"user_id": ACCOUNT_ID, "username": None})

        account = await AccountService().ensure_account(ACCOUNT_ID)

        assert account["username"] == "user-660e8400"


class TestGetAccountHandle:
    """Tests for handle resolution."""

    @pytest.mark.asyncio
    async def test_uses_active_profile_handle(self, fake_db: FakeSupabase) -> None:
        fake_db.seed(
            "user_profiles",
            {"user_id": ACCOUNT_ID, "name": "Work", "handle": "jess-work", "theme": "light", "is_active": True},
        )

        result = await AccountService().get_account_handle(ACCOUNT_ID)

        assert result["handle"] == "jess-work"
        assert result["avatar_url"] is None

    @pytest.mark.asyncio
    async def test_synthesizes_handle_without_profiles(self, fake_db: FakeSupabase) -> None:
        result = await AccountService().get_account_handle(ACCOUNT_ID)

        assert result["handle"] == "user-660e8400"

    @pytest.mark.asyncio
    async def test_lookup_by_handle_is_case_insensitive(self, fake_db: FakeSupabase) -> None:
        fake_db.seed("profiles", {"user_id": ACCOUNT_ID, "username": "jess"})

        account = await AccountService().get_account_by_handle("  JESS ")

        assert account is not None
        assert account["user_id"] == ACCOUNT_ID
