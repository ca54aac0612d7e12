"""
Chapter list assembly helpers.

Sites list chapters in their own order and sometimes only show part of
the run (MangaPark in particular hides older chapters behind extra
requests). These helpers bring a provider's chapter list into the shape
every caller expects: newest first, one entry per number, and with
obviously missing chapter numbers filled in when the listing is sparse.
"""
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from models import Chapter

logger = logging.getLogger(__name__)

NEIGHBOUR_RANGE = 5

# (number, nearby real chapters) -> (chapter_id, url)
PlaceholderFactory = Callable[[int, List[Chapter]], Tuple[str, str]]


def sort_chapters(chapters: Sequence[Chapter]) -> List[Chapter]:
    """Sort chapters by number, newest (highest) first."""
    return sorted(chapters, key=lambda chapter: chapter.sort_key, reverse=True)


def dedupe_by_number(chapters: Sequence[Chapter]) -> List[Chapter]:
    """Keep the first chapter seen for each chapter number."""
    seen = set()
    unique = []
    for chapter in chapters:
        key = chapter.chapter_number.strip() if chapter.chapter_number else chapter.chapter_id
        if key in seen:
            continue
        seen.add(key)
        unique.append(chapter)
    return unique


def _numeric(chapter: Chapter) -> Optional[float]:
    try:
        return float(chapter.chapter_number)
    except (TypeError, ValueError):
        return None


def nearby_chapters(chapters: Sequence[Chapter], number: int, distance: int = NEIGHBOUR_RANGE) -> List[Chapter]:
    """Real chapters less than ``distance`` away from ``number``, closest first."""
    nearby = []
    for chapter in chapters:
        if chapter.generated:
            continue
        existing = _numeric(chapter)
        if existing is not None and abs(existing - number) < distance:
            nearby.append((abs(existing - number), chapter))
    nearby.sort(key=lambda item: item[0])
    return [chapter for _, chapter in nearby]


def fill_chapter_gaps(chapters: Sequence[Chapter],
                      coverage: float = 0.5,
                      placeholder: Optional[PlaceholderFactory] = None,
                      log=None) -> List[Chapter]:
    """
    Synthesise chapters missing from a sparse listing.

    When fewer than ``highest * coverage`` chapters are listed, every
    integer number from 1 to the highest chapter number (rounded down)
    that is not present gets a placeholder chapter. Placeholders are
    flagged with ``generated=True`` and may not resolve on the site.

    Args:
        chapters: Chapters as listed by the site
        coverage: Fraction of the expected count below which gaps are filled
        placeholder: Site-specific factory returning ``(chapter_id, url)``
            for a missing number, given nearby real chapters
        log: Logger to report to

    Returns:
        New list sorted newest first, including any placeholders
    """
    log = log or logger
    result = list(chapters)

    numbers = [n for n in (_numeric(chapter) for chapter in chapters) if n is not None]
    highest = max(numbers, default=0.0)
    if highest < 1 or len(chapters) >= highest * coverage:
        return sort_chapters(result)

    present = set(numbers)
    added = 0
    for number in range(1, int(highest) + 1):
        if number in present:
            continue

        if placeholder:
            chapter_id, url = placeholder(number, nearby_chapters(chapters, number))
        else:
            chapter_id, url = f"chapter-{number}", ""

        result.append(Chapter(
            chapter_id=chapter_id,
            title=f"Chapter {number}",
            chapter_number=str(number),
            url=url,
            release_date="Unknown",
            generated=True,
        ))
        added += 1

    log.info(f"Generated {added} missing chapters (listed {len(chapters)} of {highest:g})")
    return sort_chapters(result)
