"""Hardware tag (Linket) model type definitions for database operations."""

from enum import Enum
from typing import Any, TypedDict


class TagStatus(str, Enum):
    """Lifecycle status of a physical tag."""

    UNCLAIMED = "unclaimed"
    CLAIMED = "claimed"
    RETIRED = "retired"


class TagEventType(str, Enum):
    """Event types written to ``tag_events``."""

    SCAN = "scan"
    CLAIM = "claim"
    RELEASE = "release"
    ASSIGN = "assign"


class HardwareTagRecord(TypedDict):
    """Row of the ``hardware_tags`` table."""

    id: str
    chip_uid: str
    claim_code: str | None
    status: str
    last_claimed_at: str | None
    created_at: str
    updated_at: str


class TagAssignmentRecord(TypedDict):
    """Row of the ``tag_assignments`` table.

    A null ``profile_id`` means taps resolve to the account's active profile.
    """

    id: str
    tag_id: str
    user_id: str
    profile_id: str | None
    nickname: str | None
    last_redirected_at: str | None
    created_at: str
    updated_at: str


class TagEventRecord(TypedDict):
    """Row of the ``tag_events`` table."""

    id: str
    tag_id: str
    event_type: str
    metadata: dict[str, Any] | None
    occurred_at: str
