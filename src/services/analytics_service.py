"""Scan and lead rollups for the dashboard."""

import csv
import io
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from uuid import UUID

from src.core.supabase import get_supabase_client
from src.models.linket import TagEventType
from src.schemas.common import utc_now
from src.services.account_service import parse_timestamp

MAX_DAYS = 365
TOP_PROFILE_LIMIT = 5


def clamp_days(days: int) -> int:
    """Keep a requested range within one day to one year."""
    return max(1, min(MAX_DAYS, int(days)))


def _day(value: str | None) -> date | None:
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).date()


def timeline_csv(timeline: list[dict[str, Any]]) -> str:
    """Render a timeline as ``date,scans,leads`` rows, each ending in CRLF."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow(["date", "scans", "leads"])
    for point in timeline:
        writer.writerow([point["date"].isoformat(), point["scans"], point["leads"]])
    return buffer.getvalue()


class AnalyticsService:
    """Read-only aggregation over tag events and leads."""

    def __init__(self) -> None:
        """Initialize analytics service with Supabase client."""
        self.client = get_supabase_client()

    async def get_user_analytics(self, user_id: UUID | str, days: int = 30) -> dict[str, Any]:
        """Summarize an account's scans and leads over the last ``days`` UTC days.

        Args:
            user_id: The account ID.
            days: Range length including today, clamped to 1..365.

        Returns:
            dict: ``days``, ``totals``, zero-filled ``timeline`` (oldest
            first) and ``top_profiles``.
        """
        user_id = str(user_id)
        days = clamp_days(days)
        today = utc_now().date()
        start = today - timedelta(days=days - 1)
        since = datetime.combine(start, time.min, tzinfo=timezone.utc).isoformat()

        assignments = (
            self.client.table("tag_assignments")
            .select("id, tag_id, profile_id, nickname")
            .eq("user_id", user_id)
            .execute()
            .data
            or []
        )
        tag_ids = [assignment["tag_id"] for assignment in assignments]

        scans: list[dict[str, Any]] = []
        if tag_ids:
            scans = (
                self.client.table("tag_events")
                .select("tag_id, occurred_at")
                .in_("tag_id", tag_ids)
                .eq("event_type", TagEventType.SCAN.value)
                .gte("occurred_at", since)
                .execute()
                .data
                or []
            )

        leads = (
            self.client.table("leads")
            .select("handle, created_at")
            .eq("user_id", user_id)
            .gte("created_at", since)
            .execute()
            .data
            or []
        )

        scans_by_day = Counter(_day(row.get("occurred_at")) for row in scans)
        leads_by_day = Counter(_day(row.get("created_at")) for row in leads)
        timeline = []
        for offset in range(days):
            current = start + timedelta(days=offset)
            timeline.append(
                {"date": current, "scans": scans_by_day.get(current, 0), "leads": leads_by_day.get(current, 0)}
            )

        total_scans = sum(point["scans"] for point in timeline)
        total_leads = sum(point["leads"] for point in timeline)

        return {
            "days": days,
            "totals": {
                "scans": total_scans,
                "leads": total_leads,
                "conversion": total_leads / total_scans if total_scans else 0.0,
                "tags": len(assignments),
            },
            "timeline": timeline,
            "top_profiles": await self._top_profiles(assignments, scans, leads),
        }

    async def export_timeline_csv(self, user_id: UUID | str, days: int = 30) -> str:
        """CSV of the daily timeline for the last ``days`` days."""
        analytics = await self.get_user_analytics(user_id, days)
        return timeline_csv(analytics["timeline"])

    async def _top_profiles(
        self,
        assignments: list[dict[str, Any]],
        scans: list[dict[str, Any]],
        leads: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        if not assignments:
            return []

        profile_ids = list({a["profile_id"] for a in assignments if a.get("profile_id")})
        profiles: dict[str, dict[str, Any]] = {}
        if profile_ids:
            rows = (
                self.client.table("user_profiles")
                .select("id, name, handle")
                .in_("id", profile_ids)
                .execute()
                .data
                or []
            )
            profiles = {row["id"]: row for row in rows}

        scans_by_tag = Counter(row["tag_id"] for row in scans)
        leads_by_handle = Counter(row.get("handle") for row in leads)

        ranked = []
        for assignment in assignments:
            profile = profiles.get(assignment.get("profile_id") or "")
            handle = profile["handle"] if profile else None
            ranked.append(
                {
                    "assignment_id": assignment["id"],
                    "profile_id": assignment.get("profile_id"),
                    "handle": handle,
                    "display_name": (profile or {}).get("name") or assignment.get("nickname"),
                    "nickname": assignment.get("nickname"),
                    "scans": scans_by_tag.get(assignment["tag_id"], 0),
                    "leads": leads_by_handle.get(handle, 0) if handle else 0,
                }
            )
        ranked.sort(key=lambda item: (item["scans"], item["leads"]), reverse=True)
        return ranked[:TOP_PROFILE_LIMIT]
