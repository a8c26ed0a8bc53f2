"""Generation run tracking models for transparency and debugging."""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class AttemptRecord(BaseModel):
    """What happened in one LLM attempt of a generation run."""

    attempt_number: int = Field(..., ge=1)
    prompt_chars: int = Field(0, description="Length of the rendered prompt")
    rejected_emails_in: List[str] = Field(
        default_factory=list,
        description="Addresses the prompt told the model not to reuse"
    )
    companies_returned: int = Field(0)
    emails_validated: int = Field(0, description="Distinct addresses validated")
    status_counts: Dict[str, int] = Field(default_factory=dict)
    valid_count: int = Field(0, description="Contacts classified valid (the yield)")
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None


class GenerationLedger(BaseModel):
    """Complete record of the attempts made for one generation request."""

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    excluded_company_names: List[str] = Field(default_factory=list)
    attempts: List[AttemptRecord] = Field(default_factory=list)
    yield_target: int = Field(5)
    max_attempts: int = Field(3)
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    def add_attempt(self, record: AttemptRecord):
        self.attempts.append(record)

    @property
    def final_attempt(self) -> Optional[AttemptRecord]:
        return self.attempts[-1] if self.attempts else None

    @property
    def met_yield_target(self) -> bool:
        """Whether the returned attempt reached the valid-email target."""
        final = self.final_attempt
        return final is not None and final.valid_count >= self.yield_target

    @property
    def llm_calls(self) -> int:
        return len(self.attempts)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None
