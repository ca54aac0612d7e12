"""
String similarity for title matching.

Similarity is the normalized Levenshtein distance of the case-folded
strings: 1.0 for identical titles, falling towards 0.0 as more edits
are needed to turn one into the other. Distances come from rapidfuzz.
"""
from typing import Optional

from rapidfuzz.distance import Levenshtein


def edit_distance(a: str, b: str) -> int:
    """
    Levenshtein distance with unit insertion, deletion and substitution cost.

    Comparison is case-insensitive.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of edits turning ``a`` into ``b``
    """
    return Levenshtein.distance((a or "").casefold(), (b or "").casefold())


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Normalized similarity of two strings in ``[0, 1]``.

    Defined as ``(max_len - edit_distance) / max_len``. Two empty strings
    are identical (1.0); one empty or missing side scores 0.0.

    Args:
        a: First string
        b: Second string

    Returns:
        Similarity score
    """
    a = a or ""
    b = b or ""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0

    longest = max(len(a.casefold()), len(b.casefold()))
    return (longest - edit_distance(a, b)) / longest
