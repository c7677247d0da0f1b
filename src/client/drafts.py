"""Editor-side profile drafts and their mapping to API payloads."""

from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class LinkIcon(str, Enum):
    """Icons offered for a link button."""

    INSTAGRAM = "instagram"
    GLOBE = "globe"
    TWITTER = "twitter"
    LINK = "link"


ICON_COLORS = {
    LinkIcon.INSTAGRAM: "#9B7CF5",
    LinkIcon.GLOBE: "#55D88A",
    LinkIcon.TWITTER: "#F1B16C",
    LinkIcon.LINK: "#CBD5F5",
}

DEFAULT_PROFILE_NAME = "Linket Public Profile"


class LinkDraft(BaseModel):
    """A link being edited.

    ``icon`` and ``color`` exist only in the editor; the server does not
    store them.
    """

    id: str
    label: str = ""
    url: str = ""
    icon: LinkIcon = LinkIcon.LINK
    color: str = ICON_COLORS[LinkIcon.LINK]
    visible: bool = True


class ProfileDraft(BaseModel):
    """A profile being edited."""

    id: str | None = None
    name: str = ""
    handle: str = ""
    headline: str = ""
    theme: str = "light"
    active: bool = False
    links: list[LinkDraft] = Field(default_factory=list)
    updated_at: str | None = None


def guess_icon(title: str, url: str) -> LinkIcon:
    """Pick an icon from a link's title and URL."""
    raw = f"{title} {url}".lower()
    if "instagram" in raw:
        return LinkIcon.INSTAGRAM
    if "twitter" in raw or "x.com" in raw:
        return LinkIcon.TWITTER
    if "website" in raw or "http" in raw:
        return LinkIcon.GLOBE
    return LinkIcon.LINK


def new_link(label: str = "New link", url: str = "https://") -> LinkDraft:
    """A link added in the editor, with a temporary client id."""
    return LinkDraft(
        id=f"link-{uuid4().hex[:8]}",
        label=label,
        url=url,
        icon=LinkIcon.GLOBE,
        color=ICON_COLORS[LinkIcon.GLOBE],
    )


def map_profile(record: dict[str, Any]) -> ProfileDraft:
    """Turn a profile returned by the API into an editor draft."""
    links = []
    for index, link in enumerate(record.get("links") or []):
        icon = guess_icon(link.get("title") or "", link.get("url") or "")
        links.append(
            LinkDraft(
                id=str(link.get("id") or f"link-{index}"),
                label=link.get("title") or "",
                url=link.get("url") or "",
                icon=icon,
                color=ICON_COLORS[icon],
                visible=link.get("is_active", True),
            )
        )
    return ProfileDraft(
        id=str(record["id"]) if record.get("id") else None,
        name=record.get("name") or "",
        handle=record.get("handle") or "",
        headline=record.get("headline") or "",
        theme=record.get("theme") or "light",
        active=bool(record.get("is_active")),
        links=links,
        updated_at=str(record["updated_at"]) if record.get("updated_at") else None,
    )


def to_payload(draft: ProfileDraft) -> dict[str, Any]:
    """Body of the ``profile`` field for POST /profiles."""
    payload: dict[str, Any] = {
        "name": draft.name,
        "handle": draft.handle,
        "headline": draft.headline,
        "theme": draft.theme,
        "active": draft.active,
        "links": [
            {"id": link.id, "title": link.label, "url": link.url, "is_active": link.visible}
            for link in draft.links
        ],
    }
    if draft.id and draft.id.strip():
        payload["id"] = draft.id
    return payload


def merge_profile_ui(saved: ProfileDraft, previous: ProfileDraft | None) -> ProfileDraft:
    """Copy icon, colour and visibility from the draft that was sent onto the saved profile.

    Matched by link id; links the server gave new ids keep their guessed
    look.
    """
    if previous is None:
        return saved
    ui_by_id = {link.id: link for link in previous.links}
    links = []
    for link in saved.links:
        before = ui_by_id.get(link.id)
        if before is not None:
            link = link.model_copy(update={"icon": before.icon, "color": before.color, "visible": before.visible})
        links.append(link)
    return saved.model_copy(update={"links": links})
