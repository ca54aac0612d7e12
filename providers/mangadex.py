"""
MangaDex provider for MangaMapper.

MangaDex is the one target with a public JSON API, so nothing here is
scraped: listings come from /manga, chapters from the paginated
/manga/{id}/feed and page images from the /at-home/server endpoint,
whose CDN base URLs expire after a while and must never be cached.
"""
import logging
from typing import Any, Dict, List

from core.base_provider import BaseProvider
from core.chapters import dedupe_by_number, sort_chapters
from models import Chapter, MangaInfo, MangaSearchResult, Page, Pagination, SearchResults

logger = logging.getLogger(__name__)


class MangaDexProvider(BaseProvider):
    """Provider implementation for the MangaDex API."""

    provider_id = "mangadex"
    provider_name = "MangaDex"
    base_url = "https://api.mangadex.org"
    site_url = "https://mangadex.org"
    covers_url = "https://uploads.mangadex.org/covers"

    SEARCH_LIMIT = 20
    FEED_LIMIT = 500
    CONTENT_RATINGS = ["safe", "suggestive", "erotica"]
    LANGUAGE = "en"

    def get_headers(self) -> Dict[str, str]:
        return {
            'User-Agent': self.user_agent,
            'Accept': 'application/json',
        }

    async def search(self, query: str, page: int = 1, log=None) -> SearchResults:
        log = log or logger
        page = max(page, 1)
        params = {
            "title": query,
            "limit": self.SEARCH_LIMIT,
            "offset": (page - 1) * self.SEARCH_LIMIT,
            "includes[]": ["cover_art", "author"],
            "contentRating[]": self.CONTENT_RATINGS,
            "order[relevance]": "desc",
        }

        data = await self._fetch_json(f"{self.base_url}/manga", params=params)
        results = [self._parse_manga(manga) for manga in data.get("data") or []]

        total = int(data.get("total") or 0)
        pagination = Pagination(
            current_page=page,
            has_next_page=page * self.SEARCH_LIMIT < total,
            total_pages=-(-total // self.SEARCH_LIMIT) if total else 0,
            total_results=total,
        )
        log.info(f"MangaDex search '{query}' returned {len(results)} of {total} results")
        return SearchResults(results=results, pagination=pagination)

    async def get_manga_info(self, manga_id: str, log=None) -> MangaInfo:
        log = log or logger
        params = {"includes[]": ["cover_art", "author", "artist"]}
        data = await self._fetch_json(f"{self.base_url}/manga/{manga_id}", params=params)
        manga = data.get("data") or {}
        listing = self._parse_manga(manga)

        description = (manga.get("attributes") or {}).get("description") or {}
        chapters = await self._fetch_feed(manga_id, log)

        return MangaInfo(
            provider_id=self.provider_id,
            manga_id=manga_id,
            title=listing.title,
            url=listing.url,
            cover_url=listing.cover_url,
            alternative_titles=listing.alternative_titles,
            description=description.get("en") or next(iter(description.values()), ""),
            authors=listing.authors,
            genres=listing.genres,
            status=((manga.get("attributes") or {}).get("status") or "Unknown").capitalize(),
            chapters=chapters,
        )

    async def fetch_chapter_pages(self, chapter_ref: str, log=None) -> List[Page]:
        """
        Get page images through the at-home delivery network.

        The server response names a base URL, the chapter hash and the
        file names; each page URL is ``baseUrl/data/hash/filename``.
        """
        log = log or logger
        chapter_id = self._chapter_id(chapter_ref)
        data = await self._fetch_json(f"{self.base_url}/at-home/server/{chapter_id}")

        base = data.get("baseUrl", "").rstrip("/")
        chapter = data.get("chapter") or {}
        hash_code = chapter.get("hash", "")
        filenames = chapter.get("data") or []

        pages = [
            Page(url=f"{base}/data/{hash_code}/{filename}", index=index)
            for index, filename in enumerate(filenames, 1)
        ]
        log.info(f"Found {len(pages)} pages for chapter {chapter_id}")
        return pages

    def resolve_chapter_url(self, chapter_ref: str) -> str:
        return f"{self.site_url}/chapter/{self._chapter_id(chapter_ref)}"

    async def _fetch_feed(self, manga_id: str, log) -> List[Chapter]:
        """Walk the paginated chapter feed (oldest first)."""
        raw_chapters: List[Dict[str, Any]] = []
        offset = 0
        while True:
            params = {
                "translatedLanguage[]": [self.LANGUAGE],
                "limit": self.FEED_LIMIT,
                "offset": offset,
                "order[chapter]": "asc",
                "contentRating[]": self.CONTENT_RATINGS,
                "includeExternalUrl": 0,
            }
            data = await self._fetch_json(f"{self.base_url}/manga/{manga_id}/feed", params=params)
            batch = data.get("data") or []
            raw_chapters.extend(batch)

            total = int(data.get("total") or 0)
            offset += len(batch)
            if not batch or offset >= total:
                break

        log.debug(f"MangaDex feed for {manga_id} has {len(raw_chapters)} entries")
        chapters = dedupe_by_number([self._parse_chapter(chapter) for chapter in raw_chapters])
        return sort_chapters(chapters)

    def _parse_manga(self, data: Dict[str, Any]) -> MangaSearchResult:
        attrs = data.get("attributes") or {}
        titles = attrs.get("title") or {}
        title = (
            titles.get("en") or
            titles.get("ja-ro") or
            titles.get("ja") or
            next(iter(titles.values()), "Unknown")
        )

        alt_titles = []
        for alt in attrs.get("altTitles") or []:
            for value in alt.values():
                if value and value != title and value not in alt_titles:
                    alt_titles.append(value)

        authors = []
        for rel in data.get("relationships") or []:
            if rel.get("type") in ("author", "artist"):
                name = (rel.get("attributes") or {}).get("name")
                if name and name not in authors:
                    authors.append(name)

        genres = []
        for tag in attrs.get("tags") or []:
            name = (tag.get("attributes") or {}).get("name") or {}
            name = name.get("en", "") if isinstance(name, dict) else name
            if name:
                genres.append(name)

        return MangaSearchResult(
            provider_id=self.provider_id,
            manga_id=data.get("id", ""),
            title=title,
            url=f"{self.site_url}/title/{data.get('id', '')}",
            cover_url=self._cover_url(data),
            alternative_titles=alt_titles,
            genres=genres,
            authors=authors,
            latest_chapter=str(attrs.get("lastChapter") or ""),
        )

    def _cover_url(self, data: Dict[str, Any]) -> str:
        for rel in data.get("relationships") or []:
            if rel.get("type") == "cover_art":
                filename = (rel.get("attributes") or {}).get("fileName")
                if filename:
                    return f"{self.covers_url}/{data.get('id')}/{filename}"
        return ""

    def _parse_chapter(self, data: Dict[str, Any]) -> Chapter:
        attrs = data.get("attributes") or {}
        number = attrs.get("chapter") or "0"
        volume = attrs.get("volume")

        title = attrs.get("title") or ""
        if not title:
            title = f"Vol. {volume} Ch. {number}" if volume else f"Chapter {number}"

        return Chapter(
            chapter_id=data.get("id", ""),
            title=title,
            chapter_number=number,
            url=f"{self.site_url}/chapter/{data.get('id', '')}",
            release_date=attrs.get("publishAt") or attrs.get("readableAt") or "Unknown",
        )

    @staticmethod
    def _chapter_id(chapter_ref: str) -> str:
        """Chapter UUID from a bare id or a mangadex.org chapter URL."""
        return chapter_ref.strip().rstrip("/").split("/")[-1]
