"""
Exception hierarchy for MangaMapper.

Every failure the core can produce is a subclass of MapperError, so a
caller (the CLI, or an HTTP layer built on top of the core) can tell a
"not found" outcome from a generic failure without parsing messages.
"""
from typing import Optional


class MapperError(Exception):
    """Base exception for all MangaMapper errors."""
    pass


class NotFoundError(MapperError):
    """Raised when a catalog ID has no corresponding record."""

    def __init__(self, message: str, catalog_id: Optional[int] = None):
        super().__init__(message)
        self.catalog_id = catalog_id


class NoListingFoundError(MapperError):
    """Raised when no site listing matches the title or any alternate."""

    def __init__(self, provider_id: str, title: str, tried: Optional[list] = None):
        self.provider_id = provider_id
        self.title = title
        self.tried = list(tried or [])
        super().__init__(f"No matching manga found on {provider_id} for title: {title}")


class NoCandidatesError(MapperError):
    """Raised when the match selector is handed an empty candidate list."""
    pass


class UpstreamError(MapperError):
    """Raised on transport, status or parse failures of a remote service."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class FetchError(UpstreamError):
    """Raised when a target-site document cannot be fetched."""

    def __init__(self, url: str, status: Optional[int] = None, message: str = ""):
        self.url = url
        detail = message or (f"HTTP {status}" if status else "request failed")
        super().__init__(f"Failed to fetch {url}: {detail}", status=status)


class ProviderError(MapperError):
    """
    Adapter failure wrapped with provider context.

    The original exception's message is kept in the text and the
    exception itself is chained as ``__cause__`` by the raiser.
    """

    def __init__(self, message: str, provider_id: str = ""):
        self.provider_id = provider_id
        prefix = f"[{provider_id}] " if provider_id else ""
        super().__init__(f"{prefix}{message}")


NOT_FOUND_ERRORS = (NotFoundError, NoListingFoundError)


def is_not_found(error: BaseException) -> bool:
    """Check whether an error belongs to the "not found" response class."""
    return isinstance(error, NOT_FOUND_ERRORS)
