"""
Models package for MangaMapper.

This package contains all data models used throughout the application.
"""
from .chapter import Chapter, Page
from .manga import MangaSearchResult, MangaInfo, Pagination, SearchResults
from .catalog import CatalogMedia, CatalogTitles, merge_alternate_names
from .mapping import MatchResult, MappingResult, PagesResult, SiteMapping

__all__ = [
    'Chapter', 'Page',
    'MangaSearchResult', 'MangaInfo', 'Pagination', 'SearchResults',
    'CatalogMedia', 'CatalogTitles', 'merge_alternate_names',
    'MatchResult', 'MappingResult', 'PagesResult', 'SiteMapping',
]
