"""Text matching utilities for comparing phrases.

Provides normalization functions for case-insensitive and whitespace-tolerant
string comparisons.
"""


def normalize_phrase(s: str) -> str:
    """
    Normalize a phrase for strict-but-whitespace/case-insensitive matching.
    - strip leading/trailing whitespace
    - case-fold (handles more than lower() for non-ASCII text)
    """
    return s.strip().casefold()


def fold_case(s: str) -> str:
    """Case-fold without touching whitespace, for substring checks."""
    return s.casefold()
