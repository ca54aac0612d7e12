"""
Manga data models for MangaMapper.

This module contains the data structures returned by provider searches
and detail lookups on the target sites.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from .chapter import Chapter


@dataclass
class MangaSearchResult:
    """
    Result from search - one candidate listing on a target site.

    Candidates are scored against the catalog titles and discarded,
    except for the winner.
    """
    provider_id: str      # e.g., "mangapark"
    manga_id: str         # Provider-specific ID
    title: str
    url: str = ""
    cover_url: str = ""
    alternative_titles: List[str] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)
    latest_chapter: str = ""

    def __str__(self) -> str:
        """String representation for display purposes."""
        return f"[{self.provider_id}] {self.title}"

    @property
    def all_titles(self) -> List[str]:
        """Get all titles including alternatives."""
        titles = [self.title]
        titles.extend(self.alternative_titles)
        return [title for title in titles if title]


@dataclass
class Pagination:
    """Pagination details reported by a search page."""
    current_page: int = 1
    has_next_page: bool = False
    total_pages: int = 0
    total_results: int = 0


@dataclass
class SearchResults:
    """A page of search results, with pagination when the site reports it."""
    results: List[MangaSearchResult] = field(default_factory=list)
    pagination: Optional[Pagination] = None

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):
        return iter(self.results)

    def __bool__(self) -> bool:
        return bool(self.results)


@dataclass
class MangaInfo:
    """
    Detailed listing information retrieved from a provider.

    Includes the normalized chapter list, sorted newest first.
    """
    provider_id: str
    manga_id: str
    title: str
    url: str = ""
    cover_url: str = ""
    alternative_titles: List[str] = field(default_factory=list)
    description: str = ""
    authors: List[str] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    status: str = "Unknown"
    rating: str = ""
    chapters: List[Chapter] = field(default_factory=list)

    def __str__(self) -> str:
        """String representation for display purposes."""
        return f"{self.title} - {self.status} ({len(self.chapters)} chapters)"
