"""Database model type definitions."""

from src.models.account import AccountRecord
from src.models.lead import LeadFormFieldRecord, LeadFormSettingsRecord, LeadRecord
from src.models.linket import (
    HardwareTagRecord,
    TagAssignmentRecord,
    TagEventRecord,
    TagEventType,
    TagStatus,
)
from src.models.profile import ProfileLinkRecord, ProfileWithLinks, UserProfileRecord
from src.models.vcard import VCardProfileRecord

__all__ = [
    "AccountRecord",
    "UserProfileRecord",
    "ProfileLinkRecord",
    "ProfileWithLinks",
    "LeadRecord",
    "LeadFormFieldRecord",
    "LeadFormSettingsRecord",
    "HardwareTagRecord",
    "TagAssignmentRecord",
    "TagEventRecord",
    "TagEventType",
    "TagStatus",
    "VCardProfileRecord",
]
