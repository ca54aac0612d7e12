"""
Base provider abstract class for MangaMapper.

This module defines the abstract base class that all target-site
adapters must implement, and the shared HTTP plumbing they use to talk
to their site.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin
import httpx
import logging

from models import MangaInfo, Page, SearchResults

from .config import Config
from .exceptions import FetchError
from .extraction import (
    Document,
    ExtractionPipeline,
    broad_image_strategy,
    dom_attribute_strategy,
    json_field_strategy,
    script_array_strategy,
)

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """
    Abstract base class for all target-site adapters.

    All adapters must inherit from this class and implement the required
    abstract methods. This ensures consistency and allows the provider
    manager and the mapper to work with any site.

    Provider implementations should:
    - Set provider_id, provider_name, and base_url as class attributes
    - Implement all abstract methods as coroutines
    - Fetch through ``_fetch`` so failures surface as FetchError
    - Log through the ``log`` they are handed (request scoped), falling
      back to the module logger
    """

    # Provider metadata (set in subclass)
    provider_id: str = ""        # e.g., "mangapark"
    provider_name: str = ""      # e.g., "MangaPark"
    base_url: str = ""           # e.g., "https://mangapark.net"

    def __init__(self, config: Optional[Config] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the provider.

        Args:
            config: Application configuration (defaults are used when None)
            transport: Optional httpx transport, used by tests to stub the network
        """
        if not self.provider_id or not self.provider_name or not self.base_url:
            raise ValueError("Provider must set provider_id, provider_name, and base_url")

        self.config = config or Config()
        self.timeout = self.config.network_timeout
        self.user_agent = self.config.user_agent
        self.transport = transport
        logger.debug(f"Initialized provider: {self.provider_name} ({self.provider_id})")

    @abstractmethod
    async def search(self, query: str, page: int = 1, log=None) -> SearchResults:
        """
        Search the site's listings by title.

        Args:
            query: Search query string
            page: Page number for pagination (1-indexed)
            log: Request-scoped logger

        Returns:
            SearchResults, in the order the site returned them

        Raises:
            FetchError: If the search page cannot be fetched
        """
        pass

    @abstractmethod
    async def get_manga_info(self, manga_id: str, log=None) -> MangaInfo:
        """
        Get listing details together with the chapter list.

        Args:
            manga_id: Provider-specific manga ID
            log: Request-scoped logger

        Returns:
            MangaInfo whose chapters are sorted newest first

        Raises:
            FetchError: If the listing page cannot be fetched
        """
        pass

    @abstractmethod
    def resolve_chapter_url(self, chapter_ref: str) -> str:
        """
        Turn a chapter reference into a single fetchable URL.

        A reference may be an absolute URL, a composite
        ``"containerId/chapterId"`` path or a bare chapter identifier.
        """
        pass

    def build_pipeline(self) -> ExtractionPipeline:
        """
        Extraction strategies for this site's chapter reader.

        The default chain has no site-specific CDN pattern; adapters that
        know their image host override this.
        """
        return ExtractionPipeline(
            strategies=[
                json_field_strategy(),
                dom_attribute_strategy(),
                script_array_strategy(),
                broad_image_strategy(),
            ],
            base_url=self.base_url,
        )

    async def fetch_chapter_pages(self, chapter_ref: str, log=None) -> List[Page]:
        """
        Get the ordered page images of a chapter.

        Args:
            chapter_ref: Chapter ID as returned in MangaInfo.chapters, or a URL
            log: Request-scoped logger

        Returns:
            List of Page objects, indexed from 1 (empty if none were found)

        Raises:
            FetchError: If the chapter page cannot be fetched
        """
        log = log or logger
        url = self.resolve_chapter_url(chapter_ref)
        log.info(f"Fetching chapter pages from {url}")

        document = await self._fetch_document(url)
        pages = self.build_pipeline().run(document, log=log)
        log.info(f"Found {len(pages)} pages")
        return pages

    def get_headers(self) -> Dict[str, str]:
        """
        Return HTTP headers for requests.

        Override this method if the site needs special headers.

        Returns:
            Dictionary of HTTP headers
        """
        return {
            'User-Agent': self.user_agent,
            'Referer': self.base_url,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.5',
        }

    def absolute_url(self, href: str) -> str:
        """Resolve a site-relative link against ``base_url``."""
        if not href:
            return ""
        if href.startswith('//'):
            return 'https:' + href
        return urljoin(self.base_url + '/', href)

    async def _fetch(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """
        GET a URL with this provider's headers and timeout.

        Raises:
            FetchError: On transport errors or a non-success status
        """
        try:
            async with httpx.AsyncClient(
                headers=self.get_headers(),
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise FetchError(url, message=str(e) or e.__class__.__name__) from e

        if response.status_code >= 400:
            raise FetchError(url, status=response.status_code)
        return response

    async def _fetch_document(self, url: str, params: Optional[Dict[str, Any]] = None) -> Document:
        response = await self._fetch(url, params=params)
        return Document(url=str(response.url), text=response.text)

    async def _fetch_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._fetch(url, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(url, status=response.status_code, message=f"invalid JSON: {e}") from e

    def __str__(self) -> str:
        """String representation of the provider."""
        return f"{self.provider_name} ({self.provider_id})"

    def __repr__(self) -> str:
        """Detailed string representation."""
        return f"{self.__class__.__name__}(id='{self.provider_id}', name='{self.provider_name}', url='{self.base_url}')"
