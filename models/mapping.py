"""
Mapping result models for MangaMapper.

These are the shapes produced by the mapper for its callers: a catalog
identity paired with the matching listing on a target site, and the
page list of a chapter.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .chapter import Chapter, Page
from .manga import MangaSearchResult


@dataclass
class MatchResult:
    """
    The listing chosen by the match selector, for diagnostics.

    ``matched_on`` is the query string (primary title or an alternate)
    that produced the winning score. ``fallback`` is set when no
    candidate reached the threshold and the first one was taken.
    """
    candidate: MangaSearchResult
    score: float
    matched_on: str = ""
    fallback: bool = False

    def __str__(self) -> str:
        source = "fallback" if self.fallback else f"matched on '{self.matched_on}'"
        return f"{self.candidate.title} (ID: {self.candidate.manga_id}), similarity {self.score:.2f}, {source}"


@dataclass
class SiteMapping:
    """The listing found on a target site, with its chapter list."""
    provider_id: str
    id: str
    title: str
    chapters: List[Chapter] = field(default_factory=list)
    image: str = ""
    description: str = ""
    genres: List[str] = field(default_factory=list)
    status: str = ""
    authors: List[str] = field(default_factory=list)
    alternative_titles: List[str] = field(default_factory=list)
    rating: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'id': self.id,
            'title': self.title,
            'chapters': [chapter.to_dict() for chapter in self.chapters],
        }
        if self.image:
            data['image'] = self.image
        if self.description:
            data['description'] = self.description
        if self.genres:
            data['genres'] = list(self.genres)
        if self.status:
            data['status'] = self.status
        if self.authors:
            data['authors'] = list(self.authors)
        if self.alternative_titles:
            data['altTitles'] = list(self.alternative_titles)
        if self.rating:
            data['rating'] = self.rating
        return data


@dataclass
class MappingResult:
    """Catalog identity mapped onto one target site."""
    origin_id: int
    origin_title: str
    target_site: SiteMapping
    match: Optional[MatchResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'originId': self.origin_id,
            'originTitle': self.origin_title,
            'targetSite': self.target_site.to_dict(),
        }


@dataclass
class PagesResult:
    """Ordered page images of one chapter."""
    provider_id: str
    chapter_ref: str
    pages: List[Page] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chapterId': self.chapter_ref,
            'pages': [page.to_dict() for page in self.pages],
        }
