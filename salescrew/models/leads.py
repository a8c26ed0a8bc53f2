"""Pydantic models for lead data structures."""

import uuid
from datetime import date
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ValidationStatus = Literal["valid", "soft-fail", "invalid", "unknown"]
BuyingLikelihood = Literal["High", "Medium", "Low", "unknown"]
LeadStatus = Literal["New", "Contacted", "Meeting", "Negotiation", "Closed"]

VALIDATION_STATUSES = ("valid", "soft-fail", "invalid", "unknown")
BUYING_LIKELIHOODS = ("High", "Medium", "Low", "unknown")
LEAD_STATUSES = ("New", "Contacted", "Meeting", "Negotiation", "Closed")
SUBJECT_LINE_COUNT = 3


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class UserCriteria(BaseModel):
    """What the user is selling and who they want to sell it to."""

    model_config = ConfigDict(frozen=True)

    product_name: str = Field("", description="Product name")
    product_description: str = Field("", description="What the product does")
    target_audience: str = Field("", description="Target audience / ICP")
    company_size: str = Field("", description="Ideal company size")
    industry: str = Field("", description="Target industry")
    geography: str = Field("", description="Geography / market region")
    price_range: str = Field("", description="Price range or ticket size")
    value_proposition: str = Field("", description="Core value proposition")
    competitive_edge: str = Field("", description="Competitive edge / USP")
    keywords: str = Field("", description="Keywords to match")

    @field_validator("*", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_text(value).strip()


class Contact(BaseModel):
    """Best person to reach at a lead company."""

    name: str = Field("", description="Contact full name")
    title: str = Field("", description="Job title")
    department: str = Field("", description="Department")
    validated_email: str = Field("", description="Most likely email address")
    validation_status: ValidationStatus = Field(
        "unknown",
        description="Deliverability classification from the email validator"
    )

    @field_validator("name", "title", "department", "validated_email", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_text(value).strip()

    @field_validator("validation_status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> str:
        value = _as_text(value).strip().lower()
        return value if value in VALIDATION_STATUSES else "unknown"


class Pitch(BaseModel):
    """Outreach package generated for a contact."""

    subject_lines: List[str] = Field(
        default_factory=lambda: [""] * SUBJECT_LINE_COUNT,
        description="Exactly 3 subject line options; missing ones are blank"
    )
    email_short: str = Field("", description="Short email (<=80 words)")
    email_medium: str = Field("", description="Medium email (~120 words)")
    email_long: str = Field("", description="Long narrative email")

    @field_validator("subject_lines", mode="before")
    @classmethod
    def _subjects(cls, value: Any) -> List[str]:
        if value is None:
            value = []
        elif isinstance(value, str):
            value = [value]
        subjects = [text for text in (_as_text(v).strip() for v in value) if text]
        subjects = subjects[:SUBJECT_LINE_COUNT]
        return subjects + [""] * (SUBJECT_LINE_COUNT - len(subjects))

    @field_validator("email_short", "email_medium", "email_long", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_text(value)


class Company(BaseModel):
    """A lead candidate returned by one generation run."""

    model_config = ConfigDict(populate_by_name=True)

    company_name: str = Field("", alias="company", description="Company name (natural key in a run)")
    website: str = Field("", description="Company website")
    industry: str = Field("", description="Industry")
    reason_for_fit: str = Field("", description="Why this company fits the ICP")
    confidence_score: int = Field(0, ge=0, le=100, description="Model confidence 0-100")
    likely_to_buy: BuyingLikelihood = Field("unknown", description="Buying likelihood")
    contact: Contact = Field(default_factory=Contact)
    pitch: Pitch = Field(default_factory=Pitch)
    quality_score: Optional[int] = Field(None, ge=0, le=100, description="Derived quality score")

    @field_validator("company_name", "website", "industry", "reason_for_fit", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_text(value).strip()

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> int:
        try:
            score = int(round(float(value)))
        except (TypeError, ValueError):
            return 0
        return max(0, min(100, score))

    @field_validator("likely_to_buy", mode="before")
    @classmethod
    def _likelihood(cls, value: Any) -> str:
        text = _as_text(value).strip().lower()
        for option in BUYING_LIKELIHOODS:
            if option.lower() == text:
                return option
        return "unknown"

    @field_validator("contact", "pitch", mode="before")
    @classmethod
    def _nested(cls, value: Any) -> Any:
        return value if value is not None else {}

    @property
    def email(self) -> str:
        return self.contact.validated_email

    def to_json_dict(self) -> dict:
        """Serialize using the wire field names (``company`` for the name)."""
        return self.model_dump(mode="json", by_alias=True)


class CrmLead(Company):
    """A company promoted into the user's tracked sales pipeline."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: LeadStatus = Field("New", description="Pipeline stage")
    last_contacted: Optional[str] = Field(None, description="Date of last contact")
    email_sent: bool = Field(False)
    reply_received: bool = Field(False)
    notes: str = Field("")

    @classmethod
    def from_company(cls, company: Company) -> "CrmLead":
        """Start tracking a company at the New stage."""
        return cls(**company.model_dump())

    def apply_update(
        self,
        status: Optional[str] = None,
        email_sent: Optional[bool] = None,
        reply_received: Optional[bool] = None,
        last_contacted: Optional[str] = None,
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> "CrmLead":
        """
        Return a copy of this lead with the given changes applied.

        Marking the email as sent stamps ``last_contacted`` with today's date
        when it has never been set.
        """
        updates = {}
        if status is not None:
            if status not in LEAD_STATUSES:
                raise ValueError(f"Unknown lead status: {status}")
            updates["status"] = status
        if reply_received is not None:
            updates["reply_received"] = reply_received
        if notes is not None:
            updates["notes"] = notes
        if last_contacted is not None:
            updates["last_contacted"] = last_contacted or None
        if email_sent is not None:
            updates["email_sent"] = email_sent
            stamped = updates.get("last_contacted", self.last_contacted)
            if email_sent and not stamped:
                updates["last_contacted"] = (today or date.today()).isoformat()
        return self.model_copy(update=updates)
