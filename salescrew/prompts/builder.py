"""Renders prompts from user criteria, leads and transcripts. No I/O."""

from typing import Iterable, Optional, Sequence

from ..models.leads import Company, UserCriteria
from ..models.roleplay import TranscriptEntry
from .templates import (
    COACH_USER_PROMPT,
    CRITERIA_LABELS,
    DEFAULT_PRODUCT_NAME,
    DEFAULT_VALUE_PROPOSITION,
    EXCLUDED_COMPANIES_RULE,
    LEAD_RESEARCH_OUTPUT_FORMAT,
    LEAD_RESEARCH_PREAMBLE,
    PERSONA_INSTRUCTION,
    PERSONAL_EMAIL_DOMAINS,
    REJECTED_EMAILS_RULE,
    SEARCHER_LOCATION_LINE,
)


def _unique(values: Iterable[str]) -> list:
    seen = set()
    result = []
    for value in values:
        value = (value or "").strip()
        key = value.lower()
        if value and key not in seen:
            seen.add(key)
            result.append(value)
    return result


def build_prompt(
    criteria: UserCriteria,
    excluded_company_names: Sequence[str] = (),
    rejected_emails: Sequence[str] = (),
    geolocation_hint: Optional[str] = None,
) -> str:
    """
    Render the lead research prompt.
    
    Every non-empty criteria field becomes a labeled line; empty fields are
    left out entirely. Exclusion and rejection rules appear only when their
    lists are non-empty.
    
    Args:
        criteria: What the user sells and to whom
        excluded_company_names: Companies the model must not list again
        rejected_emails: Addresses that failed verification on earlier attempts
        geolocation_hint: Optional free-text location of the searcher
        
    Returns:
        Prompt text
    """
    rules = [LEAD_RESEARCH_PREAMBLE.format(personal_domains="/".join(PERSONAL_EMAIL_DOMAINS))]
    
    companies = _unique(excluded_company_names)
    if companies:
        rules.append(EXCLUDED_COMPANIES_RULE.format(companies=", ".join(companies)))
    
    emails = _unique(rejected_emails)
    if emails:
        rules.append(REJECTED_EMAILS_RULE.format(emails=", ".join(emails)))
    
    context_lines = []
    for field_name, label in CRITERIA_LABELS:
        value = getattr(criteria, field_name)
        if value:
            context_lines.append(f"- {label}: {value}")
    if geolocation_hint and geolocation_hint.strip():
        context_lines.append(SEARCHER_LOCATION_LINE.format(location=geolocation_hint.strip()))
    
    sections = [
        "\n".join(rules),
        "USER'S PRODUCT CONTEXT:\n" + "\n".join(context_lines),
        LEAD_RESEARCH_OUTPUT_FORMAT,
    ]
    return "\n\n".join(sections)


def build_persona_instruction(lead: Company, criteria: Optional[UserCriteria] = None) -> str:
    """System instruction that makes the voice model play the lead's contact."""
    product_name = criteria.product_name if criteria and criteria.product_name else DEFAULT_PRODUCT_NAME
    value_prop = (
        criteria.value_proposition
        if criteria and criteria.value_proposition
        else DEFAULT_VALUE_PROPOSITION
    )
    return PERSONA_INSTRUCTION.format(
        name=lead.contact.name,
        title=lead.contact.title,
        company=lead.company_name,
        product_name=product_name,
        value_proposition=value_prop,
    )


def format_transcript(entries: Iterable[TranscriptEntry]) -> str:
    """One line per turn, labeled from the salesperson's point of view."""
    return "\n".join(
        f"{'Salesperson' if entry.speaker == 'user' else 'Prospect'}: {entry.text}"
        for entry in entries
    )


def build_feedback_prompt(
    entries: Iterable[TranscriptEntry],
    criteria: Optional[UserCriteria],
    lead: Company,
) -> str:
    def field(name: str) -> str:
        value = getattr(criteria, name) if criteria else ""
        return value or "N/A"

    return COACH_USER_PROMPT.format(
        product_name=field("product_name"),
        value_proposition=field("value_proposition"),
        competitive_edge=field("competitive_edge"),
        contact_name=lead.contact.name,
        contact_title=lead.contact.title,
        company=lead.company_name,
        transcript=format_transcript(entries),
    )
