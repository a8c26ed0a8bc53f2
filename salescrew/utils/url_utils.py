"""Website string helpers used when displaying and scoring leads."""

from typing import Optional
from urllib.parse import urlparse


def normalize_url(url: str) -> str:
    """
    Canonicalize a website string so it always carries a scheme.

    Example: "acme.io" -> "https://acme.io"
    """
    if not url:
        return ""

    trimmed = url.strip()
    if not trimmed:
        return ""

    if trimmed.lower().startswith(("http://", "https://")):
        return trimmed

    return f"https://{trimmed}"


def _parse(url: str):
    normalized = normalize_url(url)
    if not normalized:
        return None
    try:
        parsed = urlparse(normalized)
        # Accessing port validates it
        parsed.port
    except ValueError:
        return None
    if not parsed.hostname or any(c.isspace() for c in normalized):
        return None
    return parsed


def is_valid_url(url: str) -> bool:
    """True when the string normalizes to an http(s) URL with a host."""
    parsed = _parse(url)
    return parsed is not None and parsed.scheme in ("http", "https")


def extract_domain(url: str) -> str:
    """Return the lowercased host name, or "" when the URL cannot be parsed."""
    parsed = _parse(url)
    return parsed.hostname if parsed else ""


def get_protocol(url: str) -> Optional[str]:
    """Return "http" or "https", or None for anything else."""
    parsed = _parse(url)
    if parsed and parsed.scheme in ("http", "https"):
        return parsed.scheme
    return None
