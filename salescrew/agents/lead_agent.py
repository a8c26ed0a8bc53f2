"""Lead Agent - Researches companies, validates contacts and retries on low yield."""

import json
import logging
import re
from datetime import datetime
from typing import Callable, List, NamedTuple, Optional, Protocol, Sequence, Tuple

from pydantic import ValidationError

from ..exceptions import FormatError
from ..models.generation_state import AttemptRecord, GenerationLedger
from ..models.leads import Company, UserCriteria
from ..prompts.builder import build_prompt
from ..services.email_validator import EmailValidator
from ..utils.scoring import apply_quality_scores
from .base_agent import BaseAgent

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
YIELD_TARGET = 5

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")


class TextGateway(Protocol):
    async def invoke(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        ...


class AttemptOutcome(NamedTuple):
    """Result of one attempt plus the rejected emails to carry into the next."""

    companies: List[Company]
    rejected_emails: Tuple[str, ...]
    record: AttemptRecord


def strip_code_fences(text: str) -> str:
    text = (text or "").strip()
    text = _FENCE_START.sub("", text)
    text = _FENCE_END.sub("", text)
    return text.strip()


def parse_companies(raw_text: str) -> List[Company]:
    """
    Parse model output into companies.

    Accepts an object with a ``companies`` array (missing key means none)
    or a bare array. Entries that are not objects, or that cannot be
    coerced into a Company, are dropped.

    Raises:
        FormatError: the text is not JSON, or has some other top-level shape
    """
    text = strip_code_fences(raw_text)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"[Pipeline] Failed to parse JSON response from AI ({e}). Raw text: {raw_text[:500]}")
        raise FormatError(raw_text=raw_text) from e

    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        items = data.get("companies") or []
        if not isinstance(items, list):
            raise FormatError(raw_text=raw_text)
    else:
        raise FormatError(raw_text=raw_text)

    companies = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            companies.append(Company.model_validate(item))
        except ValidationError as e:
            logger.warning(f"[Pipeline] Skipping malformed company entry: {e.error_count()} errors")
    return companies


class LeadGenerationAgent(BaseAgent):
    """
    Generates, validates and scores lead candidates.

    Each attempt renders a prompt, calls the model, parses the companies and
    validates every contact email concurrently. When fewer than
    ``yield_target`` contacts come back valid, the next attempt is told not
    to reuse the failed addresses. The last attempt's list is returned
    whatever its yield.
    """

    def __init__(
        self,
        gateway: TextGateway,
        validator: EmailValidator,
        on_progress: Optional[Callable[[str], None]] = None,
        max_attempts: int = MAX_ATTEMPTS,
        yield_target: int = YIELD_TARGET
    ):
        super().__init__(on_progress)
        self.gateway = gateway
        self.validator = validator
        self.max_attempts = max_attempts
        self.yield_target = yield_target

    async def execute(
        self,
        criteria: UserCriteria,
        excluded_company_names: Sequence[str] = (),
        geolocation_hint: Optional[str] = None,
        **kwargs
    ) -> List[Company]:
        """Generate leads - list-only wrapper around execute_with_ledger."""
        companies, _ = await self.execute_with_ledger(
            criteria,
            excluded_company_names=excluded_company_names,
            geolocation_hint=geolocation_hint
        )
        return companies

    async def execute_with_ledger(
        self,
        criteria: UserCriteria,
        excluded_company_names: Sequence[str] = (),
        geolocation_hint: Optional[str] = None
    ) -> Tuple[List[Company], GenerationLedger]:
        """
        Run attempts until the yield target is met or attempts run out.

        Returns:
            Tuple of (companies from the final attempt, generation ledger)
        """
        excluded = list(excluded_company_names)
        ledger = GenerationLedger(
            excluded_company_names=excluded,
            yield_target=self.yield_target,
            max_attempts=self.max_attempts
        )

        companies: List[Company] = []
        rejected_emails: Tuple[str, ...] = ()

        for attempt_number in range(1, self.max_attempts + 1):
            self.report_progress(f"Attempt {attempt_number}/{self.max_attempts}: researching companies...")

            companies, rejected_emails, record = await self.run_attempt(
                attempt_number,
                criteria,
                excluded,
                rejected_emails,
                geolocation_hint=geolocation_hint
            )
            ledger.add_attempt(record)

            if record.valid_count >= self.yield_target:
                self.report_progress(
                    f"Found {record.valid_count} valid emails in attempt {attempt_number}"
                )
                break

            if attempt_number < self.max_attempts:
                self.report_progress(
                    f"Only {record.valid_count} valid emails; retrying with "
                    f"{len(rejected_emails)} addresses excluded"
                )
            else:
                logger.warning(
                    f"[Pipeline] Yield target not met after {self.max_attempts} attempts "
                    f"({record.valid_count}/{self.yield_target} valid); returning last attempt"
                )

        apply_quality_scores(companies)
        ledger.finished_at = datetime.now()
        self.report_progress(f"Generation complete: {len(companies)} companies")
        return companies, ledger

    async def run_attempt(
        self,
        attempt_number: int,
        criteria: UserCriteria,
        excluded_company_names: Sequence[str],
        rejected_emails: Sequence[str],
        geolocation_hint: Optional[str] = None
    ) -> AttemptOutcome:
        """
        One prompt, one model call, one concurrent validation pass.

        Args:
            attempt_number: 1-based attempt index
            criteria: User criteria for the prompt
            excluded_company_names: Companies the model must not return
            rejected_emails: Addresses rejected by the previous attempt
            geolocation_hint: Optional searcher location

        Returns:
            AttemptOutcome whose rejected_emails are this attempt's non-valid addresses
        """
        record = AttemptRecord(
            attempt_number=attempt_number,
            rejected_emails_in=list(rejected_emails)
        )

        prompt = build_prompt(
            criteria,
            excluded_company_names=excluded_company_names,
            rejected_emails=rejected_emails,
            geolocation_hint=geolocation_hint
        )
        record.prompt_chars = len(prompt)
        logger.info(f"[Pipeline] Attempt {attempt_number}: prompt {len(prompt)} chars")

        raw_text = await self.gateway.invoke(prompt)
        companies = parse_companies(raw_text)
        record.companies_returned = len(companies)

        self.report_progress(f"Validating {sum(1 for c in companies if c.email)} contact emails...")
        results = await self.validator.bulk_validate(c.email for c in companies if c.email)
        record.emails_validated = len(results)

        for company in companies:
            email = company.email.strip().lower()
            company.contact.validation_status = results[email].status if email else "unknown"

        status_counts = {}
        for company in companies:
            status = company.contact.validation_status
            status_counts[status] = status_counts.get(status, 0) + 1
        record.status_counts = status_counts
        record.valid_count = status_counts.get("valid", 0)
        record.finished_at = datetime.now()

        next_rejected = tuple(
            c.email for c in companies
            if c.email and c.contact.validation_status != "valid"
        )
        logger.info(
            f"[Pipeline] Attempt {attempt_number}: {len(companies)} companies, "
            f"{record.valid_count} valid emails"
        )
        return AttemptOutcome(companies, next_rejected, record)


async def generate_leads_and_pitches(
    criteria: UserCriteria,
    geolocation_hint: Optional[str] = None,
    excluded_company_names: Sequence[str] = (),
    *,
    gateway: TextGateway,
    validator: EmailValidator,
    on_progress: Optional[Callable[[str], None]] = None
) -> List[Company]:
    """
    Public entry point for lead generation.

    Raises:
        FormatError: the model returned malformed output
        GatewayError: the model call failed on every credential
    """
    agent = LeadGenerationAgent(gateway, validator, on_progress=on_progress)
    return await agent.execute(
        criteria,
        excluded_company_names=excluded_company_names,
        geolocation_hint=geolocation_hint
    )
