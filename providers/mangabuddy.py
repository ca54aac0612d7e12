"""
MangaBuddy provider for MangaMapper.

Chapter readers keep their images in a ``chapImages`` comma-separated
string; lazy-load placeholder GIFs are excluded.
"""
import logging
from typing import List

from bs4 import BeautifulSoup

from core.base_provider import BaseProvider
from core.chapters import dedupe_by_number, sort_chapters
from core.extraction import (
    DEFAULT_SCRIPT_PATTERNS,
    ExtractionPipeline,
    broad_image_strategy,
    cdn_pattern_strategy,
    dom_attribute_strategy,
    json_field_strategy,
    script_array_strategy,
)
from core.utils import clean_text, extract_chapter_number, path_segments
from models import Chapter, MangaInfo, MangaSearchResult, Pagination, SearchResults


logger = logging.getLogger(__name__)

MANGABUDDY_CDN_PATTERN = r'https?://(?:[a-z0-9-]+\.)?mbcdn[a-z0-9]*\.(?:org|com)/res/manga/[^"\'\s),\\]+\.(?:jpe?g|png|webp)'

# The reader keeps its image list as a comma-separated string
MANGABUDDY_SCRIPT_PATTERNS = (
    r'var\s+chapImages\s*=\s*[\'"]([^\'"]+)[\'"]',
    *DEFAULT_SCRIPT_PATTERNS,
)

PLACEHOLDER_IMAGES = ('/static/common/x.gif', 'thumb.', 'thumbnail.')


class MangaBuddyProvider(BaseProvider):
    """Provider implementation for MangaBuddy."""

    provider_id = "mangabuddy"
    provider_name = "MangaBuddy"
    base_url = "https://mangabuddy.com"

    async def search(self, query: str, page: int = 1, log=None) -> SearchResults:
        log = log or logger
        params = {'q': query}
        if page > 1:
            params['page'] = page

        document = await self._fetch_document(f"{self.base_url}/search", params=params)
        soup = document.soup

        results: List[MangaSearchResult] = []
        for item in soup.select(".book-item"):
            link = item.select_one("a")
            if not link or not link.get('href'):
                continue

            image = link.select_one("img")
            title = link.get('title') or (image.get('alt') if image else '') or ''
            manga_id = path_segments(link['href'])[-1] if path_segments(link['href']) else ''
            if not manga_id:
                continue

            latest = item.select_one(".latest-chapter")
            results.append(MangaSearchResult(
                provider_id=self.provider_id,
                manga_id=manga_id,
                title=clean_text(title),
                url=self.absolute_url(link['href']),
                cover_url=self.absolute_url((image.get('data-src') or image.get('src', '')) if image else ''),
                genres=[clean_text(span.get_text()) for span in item.select(".genres span") if clean_text(span.get_text())],
                latest_chapter=clean_text(latest.get_text()) if latest else "",
            ))

        has_next = bool(soup.select(f".pagination a[href*='page={page + 1}']"))
        log.info(f"MangaBuddy search '{query}' returned {len(results)} results")
        return SearchResults(results=results, pagination=Pagination(current_page=page, has_next_page=has_next))

    async def get_manga_info(self, manga_id: str, log=None) -> MangaInfo:
        log = log or logger
        manga_id = manga_id.strip('/')
        url = f"{self.base_url}/{manga_id}"
        document = await self._fetch_document(url)
        soup = document.soup

        image = soup.select_one(".book-info .cover img")
        description = soup.select_one(".book-info .summary .content")
        rating = soup.select_one(".book-info .detail .rating strong")
        chapters = dedupe_by_number(self._extract_chapters(soup, manga_id))
        log.debug(f"Parsed {len(chapters)} chapters from {url}")

        return MangaInfo(
            provider_id=self.provider_id,
            manga_id=manga_id,
            title=clean_text(soup.select_one(".book-info .detail .name").get_text())
            if soup.select_one(".book-info .detail .name") else "",
            url=url,
            cover_url=self.absolute_url((image.get('data-src') or image.get('src', '')) if image else ''),
            description=clean_text(description.get_text()) if description else "",
            authors=[text for text in [self._meta_value(soup, "Author")] if text],
            genres=self._meta_links(soup, "Genres"),
            status=self._meta_value(soup, "Status") or "Unknown",
            rating=clean_text(rating.get_text()) if rating else "",
            chapters=sort_chapters(chapters),
        )

    def resolve_chapter_url(self, chapter_ref: str) -> str:
        chapter_ref = chapter_ref.strip()
        if chapter_ref.startswith(('http://', 'https://')):
            return chapter_ref
        return f"{self.base_url}/{chapter_ref.strip('/')}"

    def build_pipeline(self) -> ExtractionPipeline:
        return ExtractionPipeline(
            strategies=[
                json_field_strategy(fields=('url',)),
                cdn_pattern_strategy(MANGABUDDY_CDN_PATTERN, name='mangabuddy-cdn'),
                dom_attribute_strategy(
                    selectors=('.chapter-lazy-image', '.chapter-images img', '.chapter-image'),
                    exclude=PLACEHOLDER_IMAGES,
                ),
                script_array_strategy(patterns=MANGABUDDY_SCRIPT_PATTERNS),
                broad_image_strategy(exclude=PLACEHOLDER_IMAGES),
            ],
            base_url=self.base_url,
        )

    # Helper methods

    def _extract_chapters(self, soup: BeautifulSoup, manga_id: str) -> List[Chapter]:
        chapters: List[Chapter] = []
        for item in soup.select(".chapter-list li"):
            link = item.select_one("a")
            if not link or not link.get('href'):
                continue

            parts = path_segments(link['href'])
            if not parts:
                continue
            slug = parts[-2] if len(parts) > 1 else manga_id
            title_el = link.select_one(".chapter-title")
            title = clean_text(title_el.get_text() if title_el else link.get_text())
            date_el = link.select_one(".chapter-update")

            chapters.append(Chapter(
                chapter_id=f"{slug}/{parts[-1]}",
                title=title,
                chapter_number=extract_chapter_number(title or parts[-1]),
                url=self.absolute_url(link['href']),
                release_date=clean_text(date_el.get_text()) if date_el and clean_text(date_el.get_text()) else "Unknown",
            ))
        return chapters

    @staticmethod
    def _meta_item(soup: BeautifulSoup, label: str):
        for item in soup.select(".book-info .detail .meta-item"):
            if label.lower() in clean_text(item.get_text()).lower():
                return item
        return None

    def _meta_value(self, soup: BeautifulSoup, label: str) -> str:
        item = self._meta_item(soup, label)
        span = item.select_one("span") if item else None
        return clean_text(span.get_text()) if span else ""

    def _meta_links(self, soup: BeautifulSoup, label: str) -> List[str]:
        item = self._meta_item(soup, label)
        if not item:
            return []
        return [clean_text(link.get_text()).strip(' ,') for link in item.select("a") if clean_text(link.get_text())]
