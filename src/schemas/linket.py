"""Hardware tag (Linket) schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

ACCOUNT_ID_ALIASES = AliasChoices("accountId", "userId", "account_id")


class LinketAction(str, Enum):
    """Operations accepted by PATCH /linkets/{assignmentId}."""

    ASSIGN = "assign"
    RENAME = "rename"
    RELEASE = "release"


class ClaimLinketRequest(BaseModel):
    """Body of POST /linkets/claim."""

    model_config = ConfigDict(populate_by_name=True)

    account_id: UUID = Field(validation_alias=ACCOUNT_ID_ALIASES, description="Claiming account id")
    code: str = Field(
        min_length=1,
        max_length=128,
        validation_alias=AliasChoices("chipUid", "claimCode", "code"),
        description="Chip UID or printed claim code",
    )
    nickname: str | None = Field(default=None, max_length=80, description="Optional label for the tag")


class UpdateLinketRequest(BaseModel):
    """Body of PATCH /linkets/{assignmentId}.

    Without an explicit ``action``, a present ``profileId`` assigns and a
    present ``nickname`` renames. ``profileId: null`` clears the
    assignment so taps follow the active profile.
    """

    model_config = ConfigDict(populate_by_name=True)

    account_id: UUID = Field(validation_alias=ACCOUNT_ID_ALIASES, description="Owning account id")
    action: LinketAction | None = Field(default=None)
    profile_id: UUID | None = Field(
        default=None,
        validation_alias=AliasChoices("profileId", "profile_id"),
        description="Profile to open on tap",
    )
    nickname: str | None = Field(default=None, max_length=80)


class HardwareTagSummary(BaseModel):
    """Tag details shown next to an assignment."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    chip_uid: str
    status: str
    last_claimed_at: datetime | None = None


class LinketResponse(BaseModel):
    """A claimed tag and where it points."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Assignment id")
    tag_id: UUID
    profile_id: UUID | None = None
    profile_name: str | None = None
    profile_handle: str | None = None
    nickname: str | None = None
    last_redirected_at: datetime | None = None
    created_at: datetime | None = None
    tag: HardwareTagSummary


class LinketListResponse(BaseModel):
    """All tags claimed by an account."""

    linkets: list[LinketResponse]


class ReleaseLinketResponse(BaseModel):
    """Result of releasing a tag."""

    released: bool = True
    assignment_id: UUID
    tag_id: UUID
