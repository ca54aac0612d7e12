"""
MangaKakalot provider for MangaMapper.
"""
import logging
import re
from typing import List, Optional
from urllib.parse import quote

from bs4 import BeautifulSoup

from core.base_provider import BaseProvider
from core.chapters import dedupe_by_number, sort_chapters
from core.exceptions import FetchError
from core.extraction import (
    DEFAULT_SCRIPT_PATTERNS,
    ExtractionPipeline,
    broad_image_strategy,
    dom_attribute_strategy,
    json_field_strategy,
    script_array_strategy,
)
from core.utils import clean_text, extract_chapter_number, make_url_friendly, path_segments
from models import Chapter, MangaInfo, MangaSearchResult, Pagination, SearchResults


logger = logging.getLogger(__name__)

IMAGE_URL_RE = re.compile(r'\.(?:jpe?g|png|webp)(?:\?|$)', re.IGNORECASE)

KAKALOT_SCRIPT_PATTERNS = (
    *DEFAULT_SCRIPT_PATTERNS,
    r'var\s+imagesArray\s*=\s*(\[.+?\])\s*;',
    r'"pages"\s*:\s*(\[.+?\])',
    r'"images"\s*:\s*(\[.+?\])',
)

EXCLUDED_IMAGES = ('thumb.', 'avatars')


def is_image_url(url: str) -> bool:
    """Only URLs ending in an image extension are chapter pages on this site."""
    return bool(IMAGE_URL_RE.search(url))


class MangaKakalotProvider(BaseProvider):
    """Provider implementation for MangaKakalot."""

    provider_id = "mangakakalot"
    provider_name = "MangaKakalot"
    base_url = "https://www.mangakakalot.gg"

    def get_headers(self) -> dict:
        headers = super().get_headers()
        headers['Referer'] = f"{self.base_url}/"
        return headers

    async def search(self, query: str, page: int = 1, log=None) -> SearchResults:
        """
        Search by title, retrying with the underscore slug form.

        The site's search is path based and often only finds a title in
        its slug form, so the plain query is tried first and the
        URL-friendly one second. A failed attempt is logged and the next
        form is tried.
        """
        log = log or logger
        attempts = []
        for candidate in (quote(query.strip(), safe=''), make_url_friendly(query)):
            if candidate and candidate not in attempts:
                attempts.append(candidate)

        for search_query in attempts:
            search_url = f"{self.base_url}/search/story/{search_query}"
            params = {'page': page} if page > 1 else None
            try:
                document = await self._fetch_document(search_url, params=params)
            except FetchError as e:
                log.warning(f"MangaKakalot search '{search_query}' failed: {e}")
                continue

            soup = document.soup
            results = self._parse_results(soup)
            if results:
                log.info(f"MangaKakalot search '{search_query}' returned {len(results)} results")
                return SearchResults(results=results, pagination=self._parse_pagination(soup, page))

        log.info(f"MangaKakalot search '{query}' returned no results")
        return SearchResults(results=[], pagination=Pagination(current_page=page))

    async def get_manga_info(self, manga_id: str, log=None) -> MangaInfo:
        log = log or logger
        manga_id = manga_id.strip('/')
        url = f"{self.base_url}/manga/{manga_id}"
        document = await self._fetch_document(url)
        soup = document.soup

        title = soup.select_one(".manga-info-text h1")
        image = soup.select_one(".manga-info-pic img")
        alternative = soup.select_one(".manga-info-text .story-alternative")
        description = soup.select_one("#contentBox")

        alt_titles = []
        if alternative:
            text = clean_text(alternative.get_text()).replace('Alternative :', '').strip()
            alt_titles = [part.strip() for part in re.split(r'[;,]', text) if part.strip()]

        author = self._info_field(soup, "Author", "Author(s) :")
        chapters = dedupe_by_number(self._extract_chapters(soup, manga_id))
        log.debug(f"Parsed {len(chapters)} chapters from {url}")

        return MangaInfo(
            provider_id=self.provider_id,
            manga_id=manga_id,
            title=clean_text(title.get_text()) if title else "",
            url=url,
            cover_url=self.absolute_url(image.get('src', '')) if image else "",
            alternative_titles=alt_titles,
            description=clean_text(description.get_text()) if description else "",
            authors=[name.strip() for name in author.split(',') if name.strip()] if author else [],
            genres=[clean_text(a.get_text()) for a in soup.select(".manga-info-text li.genres a") if clean_text(a.get_text())],
            status=self._info_field(soup, "Status", "Status :") or "Unknown",
            chapters=sort_chapters(chapters),
        )

    def resolve_chapter_url(self, chapter_ref: str) -> str:
        chapter_ref = chapter_ref.strip()
        if chapter_ref.startswith(('http://', 'https://')):
            return chapter_ref

        parts = path_segments(chapter_ref)
        if parts and parts[0] == 'manga':
            parts = parts[1:]
        if len(parts) >= 2:
            return f"{self.base_url}/manga/{'/'.join(parts)}"
        return f"{self.base_url}/{'/'.join(parts)}"

    def build_pipeline(self) -> ExtractionPipeline:
        return ExtractionPipeline(
            strategies=[
                json_field_strategy(fields=('url',)),
                dom_attribute_strategy(
                    selectors=('.container-chapter-reader img',),
                    attributes=('data-src', 'src'),
                    exclude=EXCLUDED_IMAGES,
                ),
                script_array_strategy(patterns=KAKALOT_SCRIPT_PATTERNS),
                broad_image_strategy(exclude=EXCLUDED_IMAGES),
            ],
            base_url=self.base_url,
            accept=is_image_url,
        )

    # Helper methods

    def _parse_results(self, soup: BeautifulSoup) -> List[MangaSearchResult]:
        results = []
        for item in soup.select(".panel_story_list .story_item"):
            link = item.select_one(".story_name a")
            href = link.get('href', '') if link else ''
            if not href or '/manga/' not in href:
                continue

            manga_id = href.split('/manga/', 1)[1].strip('/')
            image = item.select_one("img")
            latest = item.select_one(".story_chapter a")
            author = ""
            for span in item.select(".story_item_right span"):
                text = clean_text(span.get_text())
                if text.startswith("Author"):
                    author = text.replace('Author(s) :', '').strip()

            results.append(MangaSearchResult(
                provider_id=self.provider_id,
                manga_id=manga_id,
                title=clean_text(link.get_text()),
                url=self.absolute_url(href),
                cover_url=self.absolute_url(image.get('src', '')) if image else "",
                authors=[name.strip() for name in author.split(',') if name.strip()],
                latest_chapter=clean_text(latest.get_text()) if latest else "",
            ))
        return results

    @staticmethod
    def _parse_pagination(soup: BeautifulSoup, page: int) -> Pagination:
        current = soup.select_one(".panel_page_number .page_select")
        last = soup.select_one(".panel_page_number .page_last")
        quantity = soup.select_one(".panel_page_number .group_qty .page_blue")

        try:
            current_page = int(clean_text(current.get_text())) if current else page
        except ValueError:
            current_page = page

        total_pages = 1
        if last:
            match = re.search(r'Last\((\d+)\)', last.get_text())
            if match:
                total_pages = int(match.group(1))

        total_results = 0
        if quantity:
            match = re.search(r'Total:\s*([\d,]+)\s*stories', quantity.get_text())
            if match:
                total_results = int(match.group(1).replace(',', ''))

        has_next = last is not None and 'page_blue' not in (last.get('class') or []) and current_page < total_pages
        return Pagination(
            current_page=current_page,
            has_next_page=has_next,
            total_pages=total_pages,
            total_results=total_results,
        )

    def _extract_chapters(self, soup: BeautifulSoup, manga_id: str) -> List[Chapter]:
        chapters: List[Chapter] = []
        for row in soup.select(".chapter-list .row"):
            spans = row.select("span")
            link = spans[0].select_one("a") if spans else None
            if not link or not link.get('href'):
                continue

            parts = path_segments(link['href'])
            if not parts:
                continue
            title = clean_text(link.get_text())
            date = clean_text(spans[-1].get_text()) if len(spans) > 1 else ""

            chapters.append(Chapter(
                chapter_id=f"{manga_id}/{parts[-1]}",
                title=title,
                chapter_number=extract_chapter_number(parts[-1] if 'chapter' in parts[-1] else title),
                url=self.absolute_url(link['href']),
                release_date=date or "Unknown",
            ))
        return chapters

    @staticmethod
    def _info_field(soup: BeautifulSoup, label: str, prefix: str) -> Optional[str]:
        for item in soup.select(".manga-info-text li"):
            text = clean_text(item.get_text())
            if text.startswith(label):
                return text.replace(prefix, '').strip(' :')
        return None
