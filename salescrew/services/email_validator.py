"""Email deliverability classification with caching and domain pattern learning."""

import asyncio
import logging
import re
from typing import Dict, Iterable, Optional, Protocol

from ..exceptions import VerifierError
from ..models.validation import (
    CACHE_TTL_DAYS,
    DomainPattern,
    ValidationHistoryEntry,
    ValidationRecord,
    ValidationResult,
    utcnow,
)
from ..prompts.templates import PERSONAL_EMAIL_DOMAINS
from .email_verifier import VerifierResponse
from .store import RecordStore

logger = logging.getLogger(__name__)

EMAIL_FORMAT = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Provider verdict -> (status, confidence)
API_STATUS_MAP = {
    "valid": ("valid", 95),
    "risky": ("soft-fail", 60),
    "invalid": ("invalid", 90),
}
API_UNKNOWN = ("unknown", 30)

PATTERN_SEPARATORS = (".", "_", "-")


class EmailVerifier(Protocol):
    async def verify(self, email: str) -> VerifierResponse:
        ...


def is_valid_format(email: str) -> bool:
    """Shape check for local@domain.tld."""
    return bool(email) and EMAIL_FORMAT.match(email) is not None


def extract_email_domain(email: str) -> str:
    parts = email.split("@")
    return parts[1].lower() if len(parts) == 2 else ""


def infer_email_pattern(email: str) -> str:
    """
    Guess the local-part convention of an address.

    Examples:
        jane.doe@acme.com -> firstname.lastname
        jdoe@acme.com -> firstinitiallastname
        JDoe@acme.com -> unknown
    """
    local_part = email.split("@")[0]
    if any(sep in local_part for sep in PATTERN_SEPARATORS):
        return "firstname.lastname"
    if local_part and local_part[0].islower():
        return "firstinitiallastname"
    return "unknown"


class EmailValidator:
    """
    Classifies addresses as valid / soft-fail / invalid / unknown.

    Resolution order: format check, cache, external verifier (when
    configured) or heuristic fallback. Fresh results are written back to
    the cache, appended to the history log and, for API-verified valid
    addresses, fed into the domain pattern table.
    """

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        verifier: Optional[EmailVerifier] = None,
        cache_ttl_days: int = CACHE_TTL_DAYS
    ):
        """
        Initialize the validator.

        Args:
            store: Backing store for cache, history and patterns; no caching when None
            verifier: External verification client; heuristics are used when None
            cache_ttl_days: Lifetime of a cached result
        """
        self.store = store
        self.verifier = verifier
        self.cache_ttl_days = cache_ttl_days

    async def validate(self, email: str) -> ValidationResult:
        """Classify one address. Never raises for verifier or store trouble."""
        if not is_valid_format(email):
            return ValidationResult(
                email=email,
                status="invalid",
                method="regex",
                confidence=90,
                message="Invalid email format",
            )

        cached = await self._read_cache(email)
        if cached is not None:
            logger.debug(f"[Validator] Cache hit for {email}")
            return cached

        if self.verifier is not None:
            result = await self._validate_via_api(email)
        else:
            result = self._validate_via_heuristics(email)

        await self._record(result)
        return result

    async def validate_status(self, email: str) -> str:
        return (await self.validate(email)).status

    async def bulk_validate(self, emails: Iterable[str]) -> Dict[str, ValidationResult]:
        """
        Validate many addresses concurrently.

        Addresses are deduplicated case-insensitively; the result is keyed
        by lowercased address.
        """
        unique = list(dict.fromkeys(e.strip().lower() for e in emails if e and e.strip()))
        if not unique:
            return {}
        logger.info(f"[Validator] Validating {len(unique)} unique addresses")
        results = await asyncio.gather(*(self.validate(email) for email in unique))
        return dict(zip(unique, results))

    def validation_statistics(self) -> Dict[str, int]:
        """Counts of cached validations by status."""
        stats = {"total": 0, "valid": 0, "soft_fail": 0, "invalid": 0, "unknown": 0}
        if self.store is None:
            return stats
        try:
            statuses = self.store.list_validation_statuses()
        except Exception as e:
            logger.error(f"[Validator] Failed to get validation statistics: {e}")
            return stats
        stats["total"] = len(statuses)
        for status in statuses:
            key = status.replace("-", "_")
            if key in stats:
                stats[key] += 1
        return stats

    async def _validate_via_api(self, email: str) -> ValidationResult:
        try:
            response = await self.verifier.verify(email)
        except VerifierError as e:
            logger.warning(f"[Validator] Verifier unavailable for {email}: {e}")
            status, confidence = API_UNKNOWN
            return ValidationResult(
                email=email,
                status=status,
                method="regex",
                confidence=confidence,
                message=str(e) or "API request failed",
            )

        status, confidence = API_STATUS_MAP.get(response.status, API_UNKNOWN)
        return ValidationResult(
            email=email,
            status=status,
            method="api",
            confidence=confidence,
            message=response.reason,
        )

    def _validate_via_heuristics(self, email: str) -> ValidationResult:
        if extract_email_domain(email) in PERSONAL_EMAIL_DOMAINS:
            return ValidationResult(
                email=email,
                status="soft-fail",
                method="regex",
                confidence=50,
                message="Personal email domain",
            )
        return ValidationResult(
            email=email,
            status="unknown",
            method="regex",
            confidence=40,
            message="Format valid, but not fully verified",
        )

    async def _read_cache(self, email: str) -> Optional[ValidationResult]:
        if self.store is None:
            return None
        try:
            record = await asyncio.to_thread(self.store.get_validation, email.lower())
        except Exception as e:
            logger.error(f"[Validator] Failed to check cached validation: {e}")
            return None
        if record is None or record.is_expired():
            return None
        return record.to_result()

    async def _record(self, result: ValidationResult) -> None:
        """
        Write a fresh result to cache, history and (when earned) the pattern table.

        Store calls run in worker threads so a blocking store never
        serializes concurrent validations.
        """
        if self.store is None:
            return
        domain = extract_email_domain(result.email)
        now = utcnow()

        try:
            await asyncio.to_thread(
                self.store.upsert_validation,
                ValidationRecord.from_result(result, domain, now=now, ttl_days=self.cache_ttl_days)
            )
        except Exception as e:
            logger.error(f"[Validator] Error saving validation to cache: {e}")

        try:
            await asyncio.to_thread(self.store.append_validation_history, ValidationHistoryEntry(
                email=result.email.lower(),
                status=result.status,
                method=result.method,
                message=result.message,
                validated_at=now,
            ))
        except Exception as e:
            logger.error(f"[Validator] Error appending validation history: {e}")

        if result.status == "valid" and result.method == "api" and domain:
            try:
                await asyncio.to_thread(self._learn_pattern, domain, result.email)
            except Exception as e:
                logger.error(f"[Validator] Error updating domain pattern for {domain}: {e}")

    def _learn_pattern(self, domain: str, email: str) -> None:
        pattern = self.store.get_domain_pattern(domain)
        if pattern is None:
            pattern = DomainPattern(
                domain=domain,
                common_pattern=infer_email_pattern(email),
                confidence_score=50,
                total_validations=1,
                successful_validations=1,
            )
        else:
            pattern.record_success()
        self.store.upsert_domain_pattern(pattern)
