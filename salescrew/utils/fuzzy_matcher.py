"""Fuzzy matching utilities for company name deduplication."""

import re
from difflib import SequenceMatcher
from typing import Iterable, List, Optional, Tuple


# Common company suffixes to remove during normalization
COMPANY_SUFFIXES = [
    r'\s+incorporated$',
    r'\s+corporation$',
    r'\s+company$',
    r'\s+limited$',
    r'\s+holdings$',
    r'\s+technologies$',
    r'\s+technology$',
    r'\s+solutions$',
    r'\s+group$',
    r'\s+inc\.?$',
    r'\s+llc\.?$',
    r'\s+ltd\.?$',
    r'\s+corp\.?$',
    r'\s+co\.?$',
    r'\s+plc\.?$',
    r'\s+gmbh\.?$',
    r'\s+sa\.?$',
    r'\s+ag\.?$',
    r'\s+bv\.?$',
]

# Default matching threshold (85%)
DEFAULT_MATCH_THRESHOLD = 85


def normalize_company_name(name: str) -> str:
    """
    Normalize a company name for consistent matching.
    
    Rules:
    - Convert to lowercase
    - Remove trailing legal/business suffixes (Inc, LLC, Ltd, Technologies, etc.)
    - Remove parenthetical content, punctuation and whitespace
    - Example: "Acme Technologies, Inc." -> "acme"
    
    Args:
        name: Original company name
        
    Returns:
        Normalized name string
    """
    if not name:
        return ""
    
    normalized = name.lower().strip()
    
    # Drop the comma before a suffix ("Acme, Inc.")
    normalized = re.sub(r',\s*', ' ', normalized)
    
    # Suffixes can stack ("Acme Technologies Inc"), so strip until stable
    previous = None
    while previous != normalized:
        previous = normalized
        for suffix_pattern in COMPANY_SUFFIXES:
            normalized = re.sub(suffix_pattern, '', normalized, flags=re.IGNORECASE).strip()
    
    # Remove parenthetical content like "(formerly XYZ)"
    normalized = re.sub(r'\s*\([^)]*\)\s*', '', normalized)
    
    # Remove punctuation
    normalized = re.sub(r'[^\w\s]', '', normalized)
    
    # Remove all whitespace
    normalized = re.sub(r'\s+', '', normalized)
    
    return normalized


def fuzzy_match_score(name1: str, name2: str) -> int:
    """
    Calculate similarity score between two company names.
    
    Uses difflib's SequenceMatcher (Ratcliff/Obershelp) on the
    normalized names.
    
    Returns:
        Similarity score from 0 to 100
    """
    if not name1 or not name2:
        return 0
    
    norm1 = normalize_company_name(name1)
    norm2 = normalize_company_name(name2)
    
    if not norm1 or not norm2:
        return 0
    
    if norm1 == norm2:
        return 100
    
    ratio = SequenceMatcher(None, norm1, norm2).ratio()
    
    return int(ratio * 100)


def find_best_match(
    company_name: str,
    candidates: Iterable[str],
    threshold: int = DEFAULT_MATCH_THRESHOLD
) -> Tuple[Optional[str], int]:
    """
    Find the candidate name that best matches a company name.
    
    Args:
        company_name: Name to search for
        candidates: Names to compare against
        threshold: Minimum score to be considered a match
        
    Returns:
        Tuple of (best_matching_name, match_score), or (None, 0)
    """
    if not company_name:
        return None, 0
    
    normalized_search = normalize_company_name(company_name)
    
    best_match: Optional[str] = None
    best_score = 0
    
    for candidate in candidates:
        if normalize_company_name(candidate) == normalized_search:
            return candidate, 100
        
        score = fuzzy_match_score(company_name, candidate)
        
        if score > best_score and score >= threshold:
            best_score = score
            best_match = candidate
    
    return best_match, best_score


def dedupe_names(names: Iterable[str]) -> List[str]:
    """Drop empty and normalized-duplicate names, keeping first spelling."""
    seen = set()
    result = []
    for name in names:
        normalized = normalize_company_name(name)
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        result.append(name.strip())
    return result
