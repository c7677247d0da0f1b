"""Dashboard analytics schemas."""

import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class AnalyticsTotals(BaseModel):
    """Totals over the requested range."""

    scans: int = Field(default=0, description="Tag taps")
    leads: int = Field(default=0, description="Captured leads")
    conversion: float = Field(default=0.0, description="Leads per scan (0 when there are no scans)")
    tags: int = Field(default=0, description="Tags currently claimed")


class TimelinePoint(BaseModel):
    """One UTC day."""

    date: datetime.date
    scans: int = 0
    leads: int = 0


class TopProfile(BaseModel):
    """Per-tag performance."""

    assignment_id: UUID
    profile_id: UUID | None = None
    handle: str | None = None
    display_name: str | None = None
    nickname: str | None = None
    scans: int = 0
    leads: int = 0


class AnalyticsResponse(BaseModel):
    """Dashboard rollup for an account."""

    days: int
    totals: AnalyticsTotals
    timeline: list[TimelinePoint]
    top_profiles: list[TopProfile] = Field(default_factory=list)
