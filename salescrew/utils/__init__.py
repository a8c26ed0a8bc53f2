"""Utility functions for Sales Crew."""

from .fuzzy_matcher import (
    normalize_company_name,
    fuzzy_match_score,
    find_best_match,
    dedupe_names,
)
from .url_utils import normalize_url, is_valid_url, extract_domain, get_protocol
from .scoring import (
    calculate_lead_quality_score,
    calculate_company_quality_score,
    apply_quality_scores,
    sort_leads_by_quality,
    filter_leads_by_quality_range,
    get_quality_score_label,
)

__all__ = [
    "normalize_company_name",
    "fuzzy_match_score",
    "find_best_match",
    "dedupe_names",
    "normalize_url",
    "is_valid_url",
    "extract_domain",
    "get_protocol",
    "calculate_lead_quality_score",
    "calculate_company_quality_score",
    "apply_quality_scores",
    "sort_leads_by_quality",
    "filter_leads_by_quality_range",
    "get_quality_score_label",
]
