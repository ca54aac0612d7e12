"""
Core package for MangaMapper.

This package contains the core functionality of the mapper: title
similarity and matching, page extraction, the provider contract and
registry, the catalog client and the orchestrating Mapper.
"""
from .exceptions import (
    MapperError, NotFoundError, NoListingFoundError, NoCandidatesError,
    UpstreamError, FetchError, ProviderError, NOT_FOUND_ERRORS, is_not_found,
)
from .config import Config
from .similarity import edit_distance, similarity
from .matcher import select_best, DEFAULT_THRESHOLD
from .extraction import Document, ExtractionPipeline
from .base_provider import BaseProvider
from .provider_manager import ProviderManager
from .catalog import AniListClient
from .mapper import Mapper

__all__ = [
    'MapperError', 'NotFoundError', 'NoListingFoundError', 'NoCandidatesError',
    'UpstreamError', 'FetchError', 'ProviderError', 'NOT_FOUND_ERRORS', 'is_not_found',
    'Config', 'edit_distance', 'similarity', 'select_best', 'DEFAULT_THRESHOLD',
    'Document', 'ExtractionPipeline', 'BaseProvider', 'ProviderManager',
    'AniListClient', 'Mapper',
]
