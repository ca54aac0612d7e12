"""
Aggregation orchestrator for MangaMapper.

The Mapper ties the pieces together for one request: it resolves a
catalog ID into titles, searches the target site (retrying with the
alternate names when the main title finds nothing), picks the best
listing and returns its normalized chapter list. It also exposes page
extraction for a single chapter.
"""
import logging
from typing import Iterable, List, Optional

from models import CatalogMedia, MappingResult, MatchResult, PagesResult, SearchResults, SiteMapping

from .base_provider import BaseProvider
from .catalog import AniListClient
from .config import Config
from .exceptions import MapperError, NoCandidatesError, NoListingFoundError, ProviderError
from .logging_utils import request_logger
from .matcher import build_queries, select_best
from .provider_manager import ProviderManager

logger = logging.getLogger(__name__)


class Mapper:
    """
    Maps catalog identities onto target-site listings.

    Each public coroutine is one request: it mints its own request-scoped
    logger and passes it down to the catalog, the adapter and the
    extraction pipeline. No state is shared between requests.
    """

    def __init__(self, provider_manager: ProviderManager,
                 catalog: Optional[AniListClient] = None,
                 config: Optional[Config] = None):
        self.config = config or provider_manager.config
        self.provider_manager = provider_manager
        self.catalog = catalog or AniListClient(config=self.config, transport=provider_manager.transport)

    def _get_provider(self, provider_id: str) -> BaseProvider:
        return self.provider_manager.get_provider(provider_id)

    async def resolve(self, anilist_id: int, log=None) -> CatalogMedia:
        """Resolve a catalog ID (NotFoundError / UpstreamError propagate)."""
        return await self.catalog.get_info(anilist_id, log=log)

    async def lookup(self, query: str, limit: int = 20) -> List[CatalogMedia]:
        """Search the catalog by title (UpstreamError propagates)."""
        log = request_logger('anilist', 'lookup')
        return await self.catalog.search(query, limit=limit, log=log)

    async def get_chapters(self, provider_id: str, anilist_id: int) -> MappingResult:
        """
        Map a catalog ID onto a target site and fetch its chapter list.

        Args:
            provider_id: Target site
            anilist_id: AniList media ID

        Returns:
            MappingResult with the matched listing and its chapters

        Raises:
            NotFoundError: If the catalog ID does not exist
            UpstreamError: If the catalog cannot be reached
            NoListingFoundError: If no search on the site returned anything
            ProviderError: For any other failure of the adapter
        """
        provider = self._get_provider(provider_id)
        log = request_logger(provider_id, 'chapters')

        media = await self.resolve(anilist_id, log=log)
        log.info(f"Mapping '{media.primary_title}' (AniList {media.id}) onto {provider.provider_name}")

        match = await self._find_listing(provider, media.primary_title, media.alternate_names, log)
        log.info(f"Best match: {match}")

        try:
            info = await provider.get_manga_info(match.candidate.manga_id, log=log)
        except ProviderError:
            raise
        except MapperError as e:
            raise ProviderError(str(e), provider_id=provider_id) from e
        except Exception as e:
            log.exception(f"Unexpected error fetching listing {match.candidate.manga_id}")
            raise ProviderError(str(e), provider_id=provider_id) from e

        log.info(f"Listing '{info.title or match.candidate.title}' has {len(info.chapters)} chapters")

        target = SiteMapping(
            provider_id=provider_id,
            id=match.candidate.manga_id,
            title=match.candidate.title,
            chapters=info.chapters,
            image=info.cover_url or match.candidate.cover_url,
            description=info.description,
            genres=info.genres or match.candidate.genres,
            status=info.status if info.status and info.status != "Unknown" else "",
            authors=info.authors or match.candidate.authors,
            alternative_titles=info.alternative_titles or match.candidate.alternative_titles,
            rating=info.rating,
        )
        return MappingResult(
            origin_id=media.id,
            origin_title=media.display_title,
            target_site=target,
            match=match,
        )

    async def find_listing(self, provider_id: str, title: str, alternates: Iterable[str] = ()) -> MatchResult:
        """
        Find the listing for a title on a target site.

        Searches the primary title first and then each alternate in
        order, stopping at the first search that returns anything; the
        best match of that result set is returned.
        """
        provider = self._get_provider(provider_id)
        log = request_logger(provider_id, 'find')
        return await self._find_listing(provider, title, alternates, log)

    async def _find_listing(self, provider: BaseProvider, title: str, alternates: Iterable[str], log) -> MatchResult:
        provider_id = provider.provider_id
        alternates = list(alternates)
        queries = build_queries(title, alternates)
        threshold = self.config.get_match_threshold(provider_id)

        if not queries:
            raise NoListingFoundError(provider_id, title or "")

        tried = []
        for position, query in enumerate(queries):
            tried.append(query)
            log.info(f"Searching for '{query}'")
            try:
                results = await provider.search(query, log=log)
            except MapperError as e:
                if position == 0:
                    raise ProviderError(str(e), provider_id=provider_id) from e
                log.warning(f"Search for alternate '{query}' failed: {e}")
                continue
            except Exception as e:
                if position == 0:
                    log.exception(f"Unexpected error searching for '{query}'")
                    raise ProviderError(str(e), provider_id=provider_id) from e
                log.warning(f"Search for alternate '{query}' failed: {e}")
                continue

            if not results:
                log.info(f"No results for '{query}'")
                continue

            log.info(f"Found {len(results)} results for '{query}'")
            try:
                return select_best(results.results, title, alternates, threshold=threshold)
            except NoCandidatesError as e:
                raise ProviderError(str(e), provider_id=provider_id) from e

        raise NoListingFoundError(provider_id, title, tried=tried)

    async def fetch_pages(self, provider_id: str, chapter_ref: str) -> PagesResult:
        """
        Extract the page images of one chapter.

        Raises:
            ProviderError: If the chapter cannot be fetched or parsed
        """
        provider = self._get_provider(provider_id)
        log = request_logger(provider_id, 'pages')

        try:
            pages = await provider.fetch_chapter_pages(chapter_ref, log=log)
        except ProviderError:
            raise
        except MapperError as e:
            raise ProviderError(str(e), provider_id=provider_id) from e
        except Exception as e:
            log.exception(f"Unexpected error fetching pages of {chapter_ref}")
            raise ProviderError(str(e), provider_id=provider_id) from e

        return PagesResult(provider_id=provider_id, chapter_ref=chapter_ref, pages=pages)

    async def search(self, provider_id: str, query: str, page: int = 1) -> SearchResults:
        """Run a single search on a target site."""
        provider = self._get_provider(provider_id)
        log = request_logger(provider_id, 'search')

        try:
            return await provider.search(query, page=page, log=log)
        except ProviderError:
            raise
        except MapperError as e:
            raise ProviderError(str(e), provider_id=provider_id) from e
        except Exception as e:
            log.exception(f"Unexpected error searching for '{query}'")
            raise ProviderError(str(e), provider_id=provider_id) from e
