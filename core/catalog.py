"""
AniList catalog client.

The catalog is the identity side of the mapper: a numeric AniList ID is
resolved into the canonical title of the work and every other name it
is known by, which the mapper then uses to find the work on a target
site.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from models import CatalogMedia, CatalogTitles, merge_alternate_names

from .config import Config
from .exceptions import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)


class AniListClient:
    """
    AniList GraphQL API client.

    No authentication is needed. One short-lived HTTP client is opened
    per call so concurrent requests share nothing.
    """

    MEDIA_FIELDS = """
        id
        title {
          romaji
          english
          native
        }
        coverImage {
          large
        }
        synonyms
        format
        status
        description
        genres
    """

    GET_BY_ID_QUERY = """
    query ($id: Int) {
      Media(id: $id) {%s}
    }
    """ % MEDIA_FIELDS

    SEARCH_QUERY = """
    query ($search: String, $perPage: Int) {
      Page(page: 1, perPage: $perPage) {
        media(search: $search, type: MANGA, sort: SEARCH_MATCH) {%s}
      }
    }
    """ % MEDIA_FIELDS

    def __init__(self, config: Optional[Config] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or Config()
        self.base_url = self.config.catalog_url
        self.timeout = self.config.network_timeout
        self.transport = transport

    async def get_info(self, media_id: int, log=None) -> CatalogMedia:
        """
        Resolve a catalog ID into its titles and metadata.

        Args:
            media_id: AniList media ID
            log: Request-scoped logger

        Returns:
            CatalogMedia with primary title and alternate names

        Raises:
            NotFoundError: If AniList has no media with this ID
            UpstreamError: On transport, status or response format failures
        """
        log = log or logger
        try:
            media_id = int(media_id)
        except (TypeError, ValueError):
            raise NotFoundError(f"Invalid AniList ID: {media_id!r}", catalog_id=None)

        log.debug(f"Resolving AniList ID {media_id}")
        data = await self._query(self.GET_BY_ID_QUERY, {'id': media_id}, catalog_id=media_id)

        media = (data or {}).get('Media')
        if not media:
            raise NotFoundError(f"No media found with ID {media_id}", catalog_id=media_id)

        result = self._parse_media(media)
        log.info(f"AniList {media_id} is '{result.primary_title}' ({len(result.alternate_names)} alternate names)")
        return result

    async def search(self, query: str, limit: int = 20, log=None) -> List[CatalogMedia]:
        """
        Search AniList manga by title.

        Args:
            query: Title to search for
            limit: Maximum results

        Returns:
            List of CatalogMedia in AniList's relevance order
        """
        log = log or logger
        data = await self._query(self.SEARCH_QUERY, {'search': query, 'perPage': limit})
        page = (data or {}).get('Page') or {}
        results = [self._parse_media(media) for media in page.get('media') or [] if media]
        log.debug(f"AniList search '{query}' returned {len(results)} results")
        return results

    async def _query(self, query: str, variables: Dict[str, Any], catalog_id: Optional[int] = None) -> Dict[str, Any]:
        """POST a GraphQL query and return its ``data`` member."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.base_url,
                    json={'query': query, 'variables': variables},
                    headers={'Content-Type': 'application/json', 'Accept': 'application/json'},
                )
        except httpx.HTTPError as e:
            raise UpstreamError(f"AniList request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            if response.status_code == 404 and catalog_id is not None:
                raise NotFoundError(f"No media found with ID {catalog_id}", catalog_id=catalog_id) from e
            raise UpstreamError(f"AniList returned invalid JSON (HTTP {response.status_code})",
                                status=response.status_code) from e

        errors = payload.get('errors') if isinstance(payload, dict) else None
        if errors:
            message = errors[0].get('message', 'unknown error') if isinstance(errors[0], dict) else str(errors[0])
            status = errors[0].get('status') if isinstance(errors[0], dict) else None
            if catalog_id is not None and (response.status_code == 404 or status == 404 or message == 'Not Found.'
                                           or message == 'Not Found'):
                raise NotFoundError(f"No media found with ID {catalog_id}", catalog_id=catalog_id)
            raise UpstreamError(f"AniList API error: {message}", status=response.status_code)

        if response.status_code == 404 and catalog_id is not None:
            raise NotFoundError(f"No media found with ID {catalog_id}", catalog_id=catalog_id)
        if response.status_code >= 400:
            raise UpstreamError(f"AniList returned HTTP {response.status_code}", status=response.status_code)
        if not isinstance(payload, dict) or 'data' not in payload:
            raise UpstreamError("AniList response has no data", status=response.status_code)

        return payload['data']

    @staticmethod
    def _parse_media(media: Dict[str, Any]) -> CatalogMedia:
        title = media.get('title') or {}
        titles = CatalogTitles(
            romaji=title.get('romaji'),
            english=title.get('english'),
            native=title.get('native'),
        )
        synonyms = tuple(s for s in media.get('synonyms') or [] if s)
        cover = media.get('coverImage') or {}

        return CatalogMedia(
            id=media.get('id'),
            titles=titles,
            synonyms=synonyms,
            alternate_names=merge_alternate_names(synonyms, titles.variants()),
            genres=tuple(media.get('genres') or []),
            description=media.get('description') or "",
            cover_image=cover.get('large') or "",
            format=media.get('format') or "",
            status=media.get('status') or "",
        )
