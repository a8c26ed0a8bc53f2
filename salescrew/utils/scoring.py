"""Lead quality scoring: a weighted blend of confidence, deliverability and intent."""

from typing import Dict, Iterable, List, Sequence, TypeVar

from ..models.leads import Company

VALIDATION_STATUS_SCORES: Dict[str, int] = {
    "valid": 100,
    "soft-fail": 50,
    "unknown": 25,
    "invalid": 0,
}

BUYING_LIKELIHOOD_SCORES: Dict[str, int] = {
    "High": 100,
    "Medium": 60,
    "Low": 30,
    "unknown": 0,
}

CONFIDENCE_WEIGHT = 0.40
VALIDATION_WEIGHT = 0.35
BUYING_LIKELIHOOD_WEIGHT = 0.25

QUALITY_LABELS = [
    (80, "Excellent"),
    (60, "Good"),
    (40, "Fair"),
    (20, "Poor"),
]

T = TypeVar("T")


def _round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def calculate_lead_quality_score(
    confidence: float,
    validation_status: str,
    buying_likelihood: str
) -> Dict[str, int]:
    """
    Score a lead from 0-100.

    Args:
        confidence: Model confidence (0-100)
        validation_status: valid / soft-fail / unknown / invalid
        buying_likelihood: High / Medium / Low / unknown

    Returns:
        Dict with overall, confidence, validation and buying_likelihood
        sub-scores. Unrecognized labels score 0.
    """
    validation_score = VALIDATION_STATUS_SCORES.get(validation_status, 0)
    likelihood_score = BUYING_LIKELIHOOD_SCORES.get(buying_likelihood, 0)

    weighted = (
        confidence * CONFIDENCE_WEIGHT
        + validation_score * VALIDATION_WEIGHT
        + likelihood_score * BUYING_LIKELIHOOD_WEIGHT
    )
    overall = max(0, min(100, _round_half_up(weighted)))

    return {
        "overall": overall,
        "confidence": int(confidence),
        "validation": validation_score,
        "buying_likelihood": likelihood_score,
    }


def calculate_company_quality_score(company: Company) -> int:
    """Overall quality score for a generated company."""
    return calculate_lead_quality_score(
        company.confidence_score,
        company.contact.validation_status,
        company.likely_to_buy,
    )["overall"]


def apply_quality_scores(companies: Iterable[Company]) -> List[Company]:
    """Set ``quality_score`` on every company in place and return them."""
    scored = []
    for company in companies:
        company.quality_score = calculate_company_quality_score(company)
        scored.append(company)
    return scored


def sort_leads_by_quality(leads: Sequence[T], descending: bool = True) -> List[T]:
    """Order leads by quality score; missing scores count as 0."""
    return sorted(
        leads,
        key=lambda lead: getattr(lead, "quality_score", None) or 0,
        reverse=descending,
    )


def filter_leads_by_quality_range(leads: Sequence[T], min_score: int, max_score: int) -> List[T]:
    """Keep leads whose quality score falls inside [min_score, max_score]."""
    return [
        lead for lead in leads
        if min_score <= (getattr(lead, "quality_score", None) or 0) <= max_score
    ]


def get_quality_score_label(score: int) -> str:
    """Human-readable band for a quality score."""
    for threshold, label in QUALITY_LABELS:
        if score >= threshold:
            return label
    return "Very Poor"
