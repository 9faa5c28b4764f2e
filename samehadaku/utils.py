"""
Shared utility functions for the scraper.
"""

import re
from typing import Optional


API_PREFIX = "/samehadaku"


def slug_from_url(url: Optional[str]) -> str:
    """
    Extract the last non-empty path segment of a URL.

    Args:
        url: Absolute or relative URL (e.g., https://v1.samehadaku.how/anime/one-piece/)

    Returns:
        Slug (e.g., one-piece) or empty string if none
    """
    if not url:
        return ""
    path = url.split("?", 1)[0].split("#", 1)[0]
    segments = [s for s in path.split("/") if s]
    if not segments:
        return ""
    last = segments[-1]
    # A bare host (https://site.tld/) has no slug
    if len(segments) == 2 and segments[0].endswith(":"):
        return ""
    return last


def strip_non_numeric(text: Optional[str], keep: str = "") -> str:
    """
    Remove every character that is not a digit (or listed in keep).

    Args:
        text: Raw text (e.g., "Score 8.52")
        keep: Extra characters to preserve (e.g., "." for decimals)

    Returns:
        Numeric string, empty when nothing numeric was found
    """
    if not text:
        return ""
    pattern = rf"[^0-9{re.escape(keep)}]" if keep else r"[^0-9]"
    cleaned = re.sub(pattern, "", text)
    # Separators alone carry no number
    if not re.search(r"\d", cleaned):
        return ""
    return cleaned


def parse_int(text: Optional[str]) -> Optional[int]:
    """Return the first integer found in text, or None."""
    if not text:
        return None
    match = re.search(r"\d+", text)
    return int(match.group(0)) if match else None


def title_case_slug(slug: str) -> str:
    """
    Turn a hyphenated slug into a title.

    Args:
        slug: e.g. "slice-of-life"

    Returns:
        e.g. "Slice Of Life"
    """
    return " ".join(w[:1].upper() + w[1:] for w in slug.split("-") if w)


def normalize_search_term(term: str) -> str:
    """Lower-case and collapse whitespace so equal searches share a key."""
    return " ".join(term.strip().lower().split())


def anime_href(anime_id: str) -> str:
    return f"{API_PREFIX}/anime/{anime_id}"


def genre_href(genre_id: str) -> str:
    return f"{API_PREFIX}/genres/{genre_id}"


def batch_href(batch_id: str) -> str:
    return f"{API_PREFIX}/batch/{batch_id}"


def episode_href(episode_id: str) -> str:
    return f"{API_PREFIX}/episode/{episode_id}"
