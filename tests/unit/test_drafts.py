"""Unit tests for editor drafts and the navigation registry."""

from src.client.drafts import (
    ICON_COLORS,
    LinkDraft,
    LinkIcon,
    ProfileDraft,
    guess_icon,
    map_profile,
    merge_profile_ui,
    new_link,
    to_payload,
)
from src.client.navigation import EditorStateRegistry

PROFILE_RECORD = {
    "id": "550e8400-e29b-41d4-a716-446655440000",
    "user_id": "660e8400-e29b-41d4-a716-446655440000",
    "name": "Jess",
    "handle": "jess",
    "headline": None,
    "theme": "dark",
    "is_active": True,
    "updated_at": "2026-01-01T00:00:00+00:00",
    "links": [
        {"id": "l1", "title": "Instagram", "url": "https://instagram.com/jess", "is_active": True},
        {"id": "l2", "title": "Portfolio", "url": "jess.dev", "is_active": False},
    ],
}


class TestGuessIcon:
    """Tests for icon guessing."""

    def test_known_sites(self) -> None:
        assert guess_icon("Follow me", "https://instagram.com/x") == LinkIcon.INSTAGRAM
        assert guess_icon("", "https://x.com/jess") == LinkIcon.TWITTER
        assert guess_icon("My Website", "") == LinkIcon.GLOBE
        assert guess_icon("Notes", "notes") == LinkIcon.LINK


class TestMapProfile:
    """Tests for server record to draft mapping."""

    def test_maps_fields_and_links(self) -> None:
        draft = map_profile(PROFILE_RECORD)

        assert draft.id == PROFILE_RECORD["id"]
        assert draft.headline == ""
        assert draft.theme == "dark"
        assert draft.active is True
        assert [link.label for link in draft.links] == ["Instagram", "Portfolio"]
        assert draft.links[0].icon == LinkIcon.INSTAGRAM
        assert draft.links[0].color == ICON_COLORS[LinkIcon.INSTAGRAM]
        assert draft.links[1].visible is False

    def test_payload_round_trip_fields(self) -> None:
        payload = to_payload(map_profile(PROFILE_RECORD))

        assert payload["id"] == PROFILE_RECORD["id"]
        assert payload["links"][1] == {"id": "l2", "title": "Portfolio", "url": "jess.dev", "is_active": False}

    def test_new_profile_payload_has_no_id(self) -> None:
        payload = to_payload(ProfileDraft(name="Jess", handle="jess"))
        assert "id" not in payload


class TestMergeProfileUi:
    """Tests for re-applying client-only link fields."""

    def test_keeps_icon_and_color_by_link_id(self) -> None:
        sent = map_profile(PROFILE_RECORD)
        sent.links[0] = sent.links[0].model_copy(update={"icon": LinkIcon.LINK, "color": "#123456"})
        added = new_link("Shop", "https://shop")
        sent.links.append(added)

        returned = map_profile(
            {**PROFILE_RECORD, "links": [*PROFILE_RECORD["links"], {"id": "server-id", "title": "Shop", "url": "https://shop"}]}
        )
        merged = merge_profile_ui(returned, sent)

        assert merged.links[0].icon == LinkIcon.LINK
        assert merged.links[0].color == "#123456"
        assert merged.links[2].id == "server-id"
        assert merged.links[2].icon == LinkIcon.GLOBE

    def test_without_previous(self) -> None:
        returned = map_profile(PROFILE_RECORD)
        assert merge_profile_ui(returned, None) is returned


class StaticGuard:
    def __init__(self, ok: bool) -> None:
        self.ok = ok

    def can_leave(self) -> bool:
        return self.ok


class TestEditorStateRegistry:
    """Tests for the navigation registry."""

    def test_blocks_while_any_editor_has_work(self) -> None:
        registry = EditorStateRegistry()
        registry.register("profile", StaticGuard(True))
        registry.register("lead-form", StaticGuard(False))

        assert registry.can_leave() is False
        assert registry.blocking() == ["lead-form"]

        registry.unregister("lead-form")
        assert registry.can_leave() is True

    def test_unregister_callback_only_removes_own_guard(self) -> None:
        registry = EditorStateRegistry()
        remove_old = registry.register("profile", StaticGuard(False))
        registry.register("profile", StaticGuard(True))

        remove_old()

        assert registry.blocking() == []
        assert registry.can_leave() is True


def test_link_draft_defaults() -> None:
    link = LinkDraft(id="x")
    assert link.visible is True
    assert link.icon == LinkIcon.LINK
