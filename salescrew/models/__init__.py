"""Data models for leads, validation and role-play."""

from .leads import (
    UserCriteria,
    Contact,
    Pitch,
    Company,
    CrmLead,
    VALIDATION_STATUSES,
    BUYING_LIKELIHOODS,
    LEAD_STATUSES,
)
from .validation import (
    ValidationResult,
    ValidationRecord,
    ValidationHistoryEntry,
    DomainPattern,
    CACHE_TTL_DAYS,
)
from .generation_state import AttemptRecord, GenerationLedger
from .history import UserSearch, ExcludedCompany, SearchAnalytics
from .roleplay import SessionState, TranscriptEntry, Transcript, RolePlayRecord

__all__ = [
    "UserCriteria",
    "Contact",
    "Pitch",
    "Company",
    "CrmLead",
    "VALIDATION_STATUSES",
    "BUYING_LIKELIHOODS",
    "LEAD_STATUSES",
    "ValidationResult",
    "ValidationRecord",
    "ValidationHistoryEntry",
    "DomainPattern",
    "CACHE_TTL_DAYS",
    "AttemptRecord",
    "GenerationLedger",
    "UserSearch",
    "ExcludedCompany",
    "SearchAnalytics",
    "SessionState",
    "TranscriptEntry",
    "Transcript",
    "RolePlayRecord",
]
