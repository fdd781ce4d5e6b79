"""Prohibited-content patterns for plans and scripts.

These run before any model-based check and are authoritative: a match blocks
generation no matter what the validator model says or whether it is reachable.
List order is the reporting order.
"""

import re
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProhibitedPattern:
    pattern: re.Pattern
    description: str


PROHIBITED_PATTERNS: tuple[ProhibitedPattern, ...] = (
    ProhibitedPattern(
        re.compile(r"\$\d+(?:\.\d{1,2})?[KMB]", re.IGNORECASE),
        "Financial figures",
    ),
    ProhibitedPattern(
        re.compile(r"Q[1-4]\s*(?:20|FY)\d{2}", re.IGNORECASE),
        "Quarterly projections",
    ),
    ProhibitedPattern(
        re.compile(r"\b(?:competitor|versus|vs\.?|compared to)\b", re.IGNORECASE),
        "Competitor mentions",
    ),
    ProhibitedPattern(
        re.compile(
            r"\b(?:coming soon|roadmap|future release|will launch|planning to)\b",
            re.IGNORECASE,
        ),
        "Forward-looking statements",
    ),
    ProhibitedPattern(
        re.compile(r"\b(?:guaranteed|promise|ensure)\b", re.IGNORECASE),
        "Guarantees",
    ),
)


def find_prohibited(text: str) -> Optional[ProhibitedPattern]:
    """Return the first pattern (in list order) that matches ``text``."""
    for entry in PROHIBITED_PATTERNS:
        if entry.pattern.search(text):
            return entry
    return None
