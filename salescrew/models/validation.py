"""Email validation results, cache records and learned domain patterns."""

from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .leads import ValidationStatus

ValidationMethod = Literal["api", "regex", "dns", "smtp", "manual", "pattern"]

CACHE_TTL_DAYS = 30


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValidationResult(BaseModel):
    """Outcome of validating one email address."""

    email: str
    status: ValidationStatus
    method: ValidationMethod
    confidence: int = Field(..., ge=0, le=100)
    message: Optional[str] = None


class ValidationRecord(BaseModel):
    """Cached validation keyed by lowercased email address."""

    email: str = Field(..., description="Lowercased address (cache key)")
    status: ValidationStatus
    method: ValidationMethod
    confidence: int = Field(..., ge=0, le=100)
    domain: str = ""
    message: Optional[str] = None
    validated_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime

    @classmethod
    def from_result(
        cls,
        result: ValidationResult,
        domain: str,
        now: Optional[datetime] = None,
        ttl_days: int = CACHE_TTL_DAYS,
    ) -> "ValidationRecord":
        now = now or utcnow()
        return cls(
            email=result.email.lower(),
            status=result.status,
            method=result.method,
            confidence=result.confidence,
            domain=domain,
            message=result.message,
            validated_at=now,
            expires_at=now + timedelta(days=ttl_days),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or utcnow())

    def to_result(self) -> ValidationResult:
        return ValidationResult(
            email=self.email,
            status=self.status,
            method=self.method,
            confidence=self.confidence,
            message=self.message,
        )


class ValidationHistoryEntry(BaseModel):
    """Append-only log line for every freshly computed validation."""

    email: str
    status: ValidationStatus
    method: ValidationMethod
    message: Optional[str] = None
    validated_at: datetime = Field(default_factory=utcnow)


class DomainPattern(BaseModel):
    """Learned local-part convention for one email domain."""

    domain: str
    common_pattern: str = Field("unknown", description="e.g. firstname.lastname")
    confidence_score: int = Field(50, ge=0, le=100)
    total_validations: int = 0
    successful_validations: int = 0
    updated_at: datetime = Field(default_factory=utcnow)

    def record_success(self, increment: int = 5) -> None:
        """Count another API-verified valid address; confidence only grows."""
        self.total_validations += 1
        self.successful_validations += 1
        self.confidence_score = min(100, self.confidence_score + increment)
        self.updated_at = utcnow()
