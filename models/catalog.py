"""
Catalog data models for MangaMapper.

A catalog entry is the canonical identity of a work, fetched from the
external metadata catalog (AniList) and used to find the same work on
the scraped sites.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class CatalogTitles:
    """Title variants of a catalog entry."""
    romaji: Optional[str] = None
    english: Optional[str] = None
    native: Optional[str] = None

    @property
    def primary(self) -> Optional[str]:
        return self.english or self.romaji or self.native

    def variants(self) -> List[str]:
        return [title for title in (self.romaji, self.english, self.native) if title]


@dataclass(frozen=True)
class CatalogMedia:
    """
    Canonical metadata for one catalog ID.

    ``alternate_names`` is ordered: synonyms first, then every title
    variant, without case-insensitive duplicates.
    """
    id: int
    titles: CatalogTitles
    synonyms: Tuple[str, ...] = ()
    alternate_names: Tuple[str, ...] = ()
    genres: Tuple[str, ...] = ()
    description: str = ""
    cover_image: str = ""
    format: str = ""
    status: str = ""

    @property
    def primary_title(self) -> str:
        return self.titles.primary or ""

    @property
    def display_title(self) -> str:
        """Title reported back to callers (english, then romaji)."""
        return self.titles.english or self.titles.romaji or self.primary_title


def merge_alternate_names(*groups) -> Tuple[str, ...]:
    """Flatten name groups into an ordered tuple, dropping blanks and repeats."""
    seen = set()
    names = []
    for group in groups:
        for name in group or ():
            if not name or not name.strip():
                continue
            key = name.strip().casefold()
            if key in seen:
                continue
            seen.add(key)
            names.append(name.strip())
    return tuple(names)
