"""Turning generated companies into CRM leads and run summaries."""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.history import SearchAnalytics
from ..models.leads import VALIDATION_STATUSES, Company, CrmLead
from ..utils.fuzzy_matcher import find_best_match

logger = logging.getLogger(__name__)


def promote_to_crm(
    selected: Iterable[Company],
    existing: Sequence[CrmLead] = ()
) -> Tuple[List[CrmLead], List[str]]:
    """
    Create CRM leads for the selected companies.

    Companies that fuzzy-match a tracked lead (or an earlier pick in the
    selection) are skipped.

    Args:
        selected: Companies chosen from a generation run
        existing: Leads already in the CRM

    Returns:
        Tuple of (new leads at stage New, names that were skipped)
    """
    tracked = [lead.company_name for lead in existing]
    created: List[CrmLead] = []
    skipped: List[str] = []

    for company in selected:
        match, _ = find_best_match(company.company_name, tracked)
        if match is not None:
            skipped.append(company.company_name)
            continue
        tracked.append(company.company_name)
        created.append(CrmLead.from_company(company))

    if skipped:
        logger.info(f"[CRM] Skipped {len(skipped)} companies already in the pipeline")
    return created, skipped


def summarize_selection(companies: Iterable[Company]) -> Dict[str, List[Company]]:
    """
    Bucket a selection by contact validation status.

    Used to warn before promoting leads whose email is not verified.
    """
    buckets: Dict[str, List[Company]] = {status: [] for status in VALIDATION_STATUSES}
    for company in companies:
        buckets[company.contact.validation_status].append(company)
    return buckets


def needs_validation_warning(companies: Iterable[Company]) -> bool:
    buckets = summarize_selection(companies)
    return any(buckets[status] for status in ("soft-fail", "invalid", "unknown"))


def summarize_search(
    companies: Sequence[Company],
    duration_seconds: float,
    search_id: Optional[str] = None
) -> SearchAnalytics:
    """Aggregate numbers for one generation run."""
    valid = sum(1 for c in companies if c.contact.validation_status == "valid")
    likelihoods = [c.likely_to_buy for c in companies]
    average_confidence = 0
    if companies:
        total = sum(c.confidence_score for c in companies)
        average_confidence = int(total / len(companies) + 0.5)

    return SearchAnalytics(
        search_id=search_id,
        leads_generated=len(companies),
        valid_emails_count=valid,
        invalid_emails_count=len(companies) - valid,
        high_likelihood_count=likelihoods.count("High"),
        medium_likelihood_count=likelihoods.count("Medium"),
        low_likelihood_count=likelihoods.count("Low"),
        average_confidence_score=average_confidence,
        search_duration_seconds=int(duration_seconds),
        industries_found=list(dict.fromkeys(c.industry for c in companies if c.industry)),
    )
