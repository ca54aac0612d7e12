"""
Asura Scans provider for MangaMapper.

The site is a Next.js app: series pages are plain HTML, but chapter
readers ship their page list inside the streamed flight payload, which
the JSON field strategy reads.
"""
import logging
import re
from typing import List

from bs4 import BeautifulSoup

from core.base_provider import BaseProvider
from core.chapters import dedupe_by_number, sort_chapters
from core.extraction import (
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

ASURA_CDN_PATTERN = r'https?://gg\.asuracomic\.net/storage/media/\d+/(?:conversions/)?[^"\'\s\\<>]+?\.(?:webp|jpe?g|png)'


class AsuraScansProvider(BaseProvider):
    """Provider implementation for Asura Scans (asuracomic.net)."""

    provider_id = "asurascans"
    provider_name = "AsuraScans"
    base_url = "https://asuracomic.net"

    async def search(self, query: str, page: int = 1, log=None) -> SearchResults:
        log = log or logger
        query = query.strip()
        if not query:
            return SearchResults()

        search_url = f"{self.base_url}/series"
        log.debug(f"Searching AsuraScans: {search_url} name={query!r} page={page}")
        document = await self._fetch_document(search_url, params={'page': max(page, 1), 'name': query})
        soup = document.soup

        results: List[MangaSearchResult] = []
        seen_ids = set()
        for card in soup.select("a[href*='series/']"):
            manga_id = self._series_slug(card.get('href', ''))
            if not manga_id or manga_id in seen_ids:
                continue
            seen_ids.add(manga_id)

            title_el = card.select_one("span.block.font-bold")
            title = clean_text(title_el.get_text() if title_el else card.get_text())
            if not title:
                continue

            cover = card.select_one("img")
            latest = card.find(string=re.compile(r'Chapter\s*\d', re.IGNORECASE))
            results.append(MangaSearchResult(
                provider_id=self.provider_id,
                manga_id=manga_id,
                title=title,
                url=f"{self.base_url}/series/{manga_id}",
                cover_url=self.absolute_url(cover.get('src', '')) if cover else "",
                latest_chapter=clean_text(latest) if latest else "",
            ))

        has_next = bool(soup.select(f"a[href*='page={max(page, 1) + 1}']"))
        log.info(f"AsuraScans search '{query}' returned {len(results)} results")
        return SearchResults(results=results, pagination=Pagination(current_page=page, has_next_page=has_next))

    async def get_manga_info(self, manga_id: str, log=None) -> MangaInfo:
        log = log or logger
        url = self._build_manga_url(manga_id)
        document = await self._fetch_document(url)
        soup = document.soup
        manga_id = self._series_slug(manga_id) or manga_id

        chapters = dedupe_by_number(self._extract_chapters(soup, manga_id))
        log.debug(f"Parsed {len(chapters)} chapters from {url}")

        return MangaInfo(
            provider_id=self.provider_id,
            manga_id=manga_id,
            title=self._extract_title(soup),
            url=url,
            cover_url=self._extract_cover_url(soup),
            description=self._extract_description(soup),
            authors=self._extract_labelled(soup, "Author"),
            genres=self._extract_genres(soup),
            status=self._extract_status(soup),
            chapters=sort_chapters(chapters),
        )

    def resolve_chapter_url(self, chapter_ref: str) -> str:
        chapter_ref = chapter_ref.strip()
        if chapter_ref.startswith(('http://', 'https://')):
            return chapter_ref
        path = chapter_ref.strip('/')
        if path.startswith('series/'):
            path = path[len('series/'):]
        return f"{self.base_url}/series/{path}"

    def build_pipeline(self) -> ExtractionPipeline:
        return ExtractionPipeline(
            strategies=[
                json_field_strategy(fields=('url',)),
                cdn_pattern_strategy(ASURA_CDN_PATTERN, name='asura-cdn'),
                dom_attribute_strategy(selectors=('img.object-cover.mx-auto', 'div.w-full img')),
                script_array_strategy(),
                broad_image_strategy(),
            ],
            base_url=self.base_url,
        )

    # Helper methods

    def _build_manga_url(self, manga_id: str) -> str:
        if manga_id.startswith('http'):
            return manga_id
        return f"{self.base_url}/series/{manga_id.strip('/')}"

    @staticmethod
    def _series_slug(href: str) -> str:
        parts = path_segments(href or "")
        if "series" in parts:
            idx = parts.index("series")
            return parts[idx + 1] if idx + 1 < len(parts) else ""
        return parts[0] if parts else ""

    def _extract_chapters(self, soup: BeautifulSoup, manga_id: str) -> List[Chapter]:
        chapters: List[Chapter] = []
        seen = set()
        for link in soup.select("a[href*='/chapter/']"):
            parts = path_segments(link.get('href', ''))
            if 'chapter' not in parts:
                continue
            idx = parts.index('chapter')
            if idx + 1 >= len(parts):
                continue

            slug = parts[idx - 1] if idx > 0 and parts[idx - 1] != 'series' else manga_id
            chapter_id = f"{slug}/chapter/{parts[idx + 1]}"
            if chapter_id in seen:
                continue
            seen.add(chapter_id)

            title_el = link.select_one("h3")
            title = clean_text(title_el.get_text() if title_el else link.get_text())
            date_el = link.select_one("h3.text-xs")
            chapters.append(Chapter(
                chapter_id=chapter_id,
                title=title or f"Chapter {parts[idx + 1]}",
                chapter_number=extract_chapter_number(parts[idx + 1]),
                url=self.resolve_chapter_url(chapter_id),
                release_date=clean_text(date_el.get_text()) if date_el else "Unknown",
            ))
        return chapters

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str:
        title_el = soup.select_one("span.text-xl.font-bold") or soup.select_one("h1")
        if title_el:
            return clean_text(title_el.get_text())
        og_title = soup.select_one("meta[property='og:title']")
        return clean_text(og_title.get('content', '')) if og_title else ""

    def _extract_cover_url(self, soup: BeautifulSoup) -> str:
        for candidate in (soup.select_one("img[alt='poster']"), soup.select_one("img.rounded")):
            if candidate and candidate.get('src'):
                return self.absolute_url(candidate['src'])
        og_image = soup.select_one("meta[property='og:image']")
        return og_image.get('content', '') if og_image else ""

    @staticmethod
    def _extract_description(soup: BeautifulSoup) -> str:
        desc_el = soup.select_one("span.font-medium.text-sm p") or soup.select_one("meta[name='description']")
        if desc_el is None:
            return ""
        return clean_text(desc_el.get('content') if desc_el.name == 'meta' else desc_el.get_text())

    @staticmethod
    def _extract_labelled(soup: BeautifulSoup, label: str) -> List[str]:
        for heading in soup.find_all("h3"):
            if clean_text(heading.get_text()).lower() != label.lower():
                continue
            value = heading.find_next_sibling("h3")
            if value:
                text = clean_text(value.get_text())
                if text and text != '_':
                    return [text]
        return []

    @staticmethod
    def _extract_genres(soup: BeautifulSoup) -> List[str]:
        for heading in soup.find_all("h3"):
            if clean_text(heading.get_text()).lower() == "genres":
                container = heading.find_parent("div")
                if container:
                    return [clean_text(button.get_text()) for button in container.find_all("button")
                            if clean_text(button.get_text())]
        return []

    def _extract_status(self, soup: BeautifulSoup) -> str:
        labelled = self._extract_labelled(soup, "Status")
        return labelled[0].capitalize() if labelled else "Unknown"
