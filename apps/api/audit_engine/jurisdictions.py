"""
MERIDIAN Audit Engine: Jurisdiction Registry

Upstream documents name jurisdictions in free text ("Dubai, UAE", "Hyderabad",
"NYC"). Everything past this module works on ISO 3166 alpha-2 codes.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# Registry
# ─────────────────────────────────────────────

SUPPORTED_JURISDICTIONS: Dict[str, Dict] = {
    "IN": {
        "name": "India",
        "aliases": ["india", "indian", "hyderabad", "mumbai", "delhi", "new delhi", "bangalore",
                    "bengaluru", "chennai", "pune", "kolkata"],
    },
    "AE": {
        "name": "United Arab Emirates",
        "aliases": ["uae", "u.a.e.", "united arab emirates", "dubai", "abu dhabi", "sharjah"],
    },
    "SG": {
        "name": "Singapore",
        "aliases": ["singapore"],
    },
    "US": {
        "name": "United States",
        "aliases": ["us", "u.s.", "usa", "u.s.a.", "united states", "america", "nyc",
                    "new york", "california", "miami", "texas", "san francisco"],
    },
    "GB": {
        "name": "United Kingdom",
        "aliases": ["uk", "united kingdom", "great britain", "england", "london"],
    },
    "FR": {
        "name": "France",
        "aliases": ["france", "paris"],
    },
    "JP": {
        "name": "Japan",
        "aliases": ["japan", "tokyo", "osaka"],
    },
    "DE": {
        "name": "Germany",
        "aliases": ["germany", "berlin", "munich", "frankfurt"],
    },
    "PT": {
        "name": "Portugal",
        "aliases": ["portugal", "lisbon", "porto"],
    },
    "CH": {
        "name": "Switzerland",
        "aliases": ["switzerland", "zurich", "geneva"],
    },
    "HK": {
        "name": "Hong Kong",
        "aliases": ["hong kong"],
    },
    "CA": {
        "name": "Canada",
        "aliases": ["canada", "toronto", "vancouver"],
    },
    "AU": {
        "name": "Australia",
        "aliases": ["australia", "sydney", "melbourne"],
    },
}


def _build_alias_patterns() -> List[Tuple[re.Pattern, str]]:
    pairs = []
    for code, info in SUPPORTED_JURISDICTIONS.items():
        for alias in info["aliases"]:
            pairs.append((alias, code))
    # Longest alias first so "new york" beats "york"-style collisions
    pairs.sort(key=lambda p: len(p[0]), reverse=True)
    return [
        (re.compile(r"(?<![a-z])" + re.escape(alias) + r"(?![a-z])"), code)
        for alias, code in pairs
    ]


_ALIAS_PATTERNS = _build_alias_patterns()


def normalize_jurisdiction(text: Optional[str]) -> Optional[str]:
    """
    Resolve free-text jurisdiction to an ISO code.

    Aliases must match on word boundaries, so "us" matches "US" or "Austin, US"
    but not "Australia" or "Russia". Returns None when nothing matches.
    """
    if not text:
        return None
    lowered = text.strip().lower()
    if lowered.upper() in SUPPORTED_JURISDICTIONS:
        return lowered.upper()
    for pattern, code in _ALIAS_PATTERNS:
        if pattern.search(lowered):
            return code
    logger.debug("No jurisdiction match for %r", text)
    return None


def jurisdiction_name(code: Optional[str]) -> str:
    if not code:
        return ""
    info = SUPPORTED_JURISDICTIONS.get(code.upper())
    return info["name"] if info else code
