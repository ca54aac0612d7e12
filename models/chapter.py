"""
Chapter data models for MangaMapper.

This module contains data structures for representing manga chapters
and the page images that belong to them.
"""
from dataclasses import dataclass, asdict
from typing import Dict, Any


@dataclass
class Chapter:
    """
    Chapter information for a listing on a target site.

    ``chapter_id`` is always usable as the chapter reference for the
    provider's page fetch. Chapters synthesised to fill numbering gaps
    carry ``generated=True`` and may not be reachable.
    """
    chapter_id: str       # Provider-specific ID, reusable for page fetch
    title: str
    chapter_number: str   # Can be "1", "1.5", "Extra", etc.
    url: str
    release_date: str = "Unknown"
    generated: bool = False

    def __str__(self) -> str:
        """String representation for display purposes."""
        marker = " (generated)" if self.generated else ""
        return f"Chapter {self.chapter_number}: {self.title}{marker}"

    @property
    def sort_key(self) -> float:
        """Get a numeric sort key for proper chapter ordering."""
        try:
            return float(self.chapter_number)
        except (TypeError, ValueError):
            return 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Render the caller-facing chapter record."""
        data = {
            'id': self.chapter_id,
            'title': self.title,
            'number': self.chapter_number,
            'url': self.url,
            'date': self.release_date,
        }
        if self.generated:
            data['generated'] = True
        return data


@dataclass
class Page:
    """A single page image of a chapter, ordered by ``index`` (1-based)."""
    url: str
    index: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
