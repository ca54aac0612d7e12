"""
Match selector for MangaMapper.

Given the listings a target site returned for a search and the titles
a work is known by in the catalog, pick the listing that most likely
is the same work. There is no shared key between the catalog and the
sites, so the choice is made on title similarity alone.
"""
from typing import Iterable, List, Optional, Sequence

from models import MangaSearchResult, MatchResult

from .exceptions import NoCandidatesError
from .similarity import similarity

DEFAULT_THRESHOLD = 0.4


def build_queries(primary_title: Optional[str], alternates: Iterable[str] = ()) -> List[str]:
    """Primary title followed by the alternates, without blanks or repeats."""
    queries = []
    seen = set()
    for query in [primary_title, *alternates]:
        if not query or not query.strip():
            continue
        key = query.strip().casefold()
        if key in seen:
            continue
        seen.add(key)
        queries.append(query.strip())
    return queries


def score_candidate(candidate: MangaSearchResult, queries: Sequence[str]) -> tuple[float, str]:
    """
    Best similarity of a candidate against the query titles.

    Every title the candidate declares (its main title and its own
    alternate titles) is compared with every query.

    Returns:
        Tuple of (score, query that produced it)
    """
    best_score = 0.0
    best_query = ""
    for query in queries:
        for title in candidate.all_titles:
            score = similarity(title, query)
            if score > best_score:
                best_score = score
                best_query = query
    return best_score, best_query


def select_best(candidates: Sequence[MangaSearchResult],
                primary_title: Optional[str],
                alternates: Iterable[str] = (),
                threshold: float = DEFAULT_THRESHOLD) -> MatchResult:
    """
    Pick the best-matching listing.

    The candidate with the highest score wins; on equal scores the one
    seen first is kept. When the best score stays below ``threshold`` the
    first candidate is returned with ``fallback=True`` instead of failing.

    Args:
        candidates: Listings in the order the site returned them
        primary_title: Canonical catalog title
        alternates: Other names of the work
        threshold: Minimum score for a confident match

    Returns:
        MatchResult describing the chosen listing

    Raises:
        NoCandidatesError: If ``candidates`` is empty
    """
    if not candidates:
        raise NoCandidatesError(f"No candidates to match against '{primary_title}'")

    queries = build_queries(primary_title, alternates)

    scored = [score_candidate(candidate, queries) for candidate in candidates]

    best: Optional[MangaSearchResult] = None
    best_score = -1.0
    best_query = ""
    for candidate, (score, query) in zip(candidates, scored):
        if score > best_score:
            best, best_score, best_query = candidate, score, query

    if best_score < threshold:
        first_score, _ = scored[0]
        return MatchResult(candidate=candidates[0], score=first_score, matched_on="", fallback=True)

    return MatchResult(candidate=best, score=best_score, matched_on=best_query)
