"""Search history, analytics and exclusion records."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .leads import UserCriteria


class UserSearch(BaseModel):
    """A saved set of criteria that produced one generation run."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    criteria: UserCriteria
    created_at: datetime = Field(default_factory=datetime.now)


class ExcludedCompany(BaseModel):
    """A company the user never wants suggested again."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    company_name: str
    website: str = ""
    reason: str = ""
    excluded_at: datetime = Field(default_factory=datetime.now)


class SearchAnalytics(BaseModel):
    """Aggregate numbers for one generation run."""

    search_id: Optional[str] = None
    leads_generated: int = 0
    valid_emails_count: int = 0
    invalid_emails_count: int = Field(0, description="invalid, soft-fail and unknown contacts")
    high_likelihood_count: int = 0
    medium_likelihood_count: int = 0
    low_likelihood_count: int = 0
    average_confidence_score: int = 0
    leads_added_to_crm: int = 0
    search_duration_seconds: int = 0
    industries_found: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
