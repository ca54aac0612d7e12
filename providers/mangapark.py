"""
MangaPark provider for MangaMapper.

Title pages often list only part of a series, so sparse chapter lists
are filled with placeholders built from a neighbouring chapter's URL.
Chapter images are served from the site's own CDN hosts.
"""
import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import quote

from bs4 import BeautifulSoup

from core.base_provider import BaseProvider
from core.chapters import dedupe_by_number, fill_chapter_gaps
from core.extraction import (
    DEFAULT_SCRIPT_PATTERNS,
    ExtractionPipeline,
    broad_image_strategy,
    cdn_pattern_strategy,
    dom_attribute_strategy,
    json_field_strategy,
    script_array_strategy,
)
from core.utils import clean_text, path_segments
from models import Chapter, MangaInfo, MangaSearchResult, Pagination, SearchResults


logger = logging.getLogger(__name__)

# Image hosts look like s01.mpqsc.org/media/... or mpfip.org/media/...
MANGAPARK_CDN_PATTERN = r'https?://(?:[a-z0-9-]+\.)?mp[a-z]{3,4}\.org/media/[^"\'\s)\\]+\.(?:jpe?g|png|webp)'

MANGAPARK_SCRIPT_PATTERNS = (
    r'var\s+imglist\s*=\s*(\[.+?\])\s*;',
    *DEFAULT_SCRIPT_PATTERNS,
    r'_load\((\[.*?\])\)',
)

CHAPTER_SLUG_PATTERNS = (
    re.compile(r'^\d+-volume-(\d+)-chapter-\d+'),
    re.compile(r'^\d+-chapter-\d+'),
    re.compile(r'^\d+-ch-\d+'),
)


class MangaParkProvider(BaseProvider):
    """Provider implementation for MangaPark."""

    provider_id = "mangapark"
    provider_name = "MangaPark"
    base_url = "https://mangapark.net"

    async def search(self, query: str, page: int = 1, log=None) -> SearchResults:
        log = log or logger
        params = {'word': query}
        if page > 1:
            params['page'] = page

        document = await self._fetch_document(f"{self.base_url}/search", params=params)
        soup = document.soup

        results: List[MangaSearchResult] = []
        for item in soup.select("div.flex.border-b.border-b-base-200.pb-5"):
            link = item.select_one("h3.font-bold a")
            if not link or not link.get('href'):
                continue
            manga_id = link['href'].replace('/title/', '').strip('/')
            if not manga_id:
                continue

            title = clean_text(link.get_text())
            image = item.select_one("img")
            info_rows = item.select("div.text-xs.opacity-80.line-clamp-2")

            results.append(MangaSearchResult(
                provider_id=self.provider_id,
                manga_id=manga_id,
                title=title,
                url=f"{self.base_url}/title/{manga_id}",
                cover_url=self.absolute_url(image.get('src', '')) if image else "",
                alternative_titles=self._span_texts(info_rows[0]) if info_rows else [],
                authors=self._span_texts(info_rows[1]) if len(info_rows) > 1 else [],
                genres=[clean_text(span.get_text()) for span in
                        item.select("div.flex.flex-wrap.text-xs.opacity-70 span span") if clean_text(span.get_text())],
            ))

        has_next = bool(soup.select(f"a[href*='page={page + 1}']"))
        log.info(f"MangaPark search '{query}' returned {len(results)} results")
        return SearchResults(results=results, pagination=Pagination(current_page=page, has_next_page=has_next))

    async def get_manga_info(self, manga_id: str, log=None) -> MangaInfo:
        log = log or logger
        manga_id = manga_id.strip('/')
        url = f"{self.base_url}/title/{manga_id}"
        document = await self._fetch_document(url)
        soup = document.soup

        title_tag = soup.select_one("title")
        title = clean_text(title_tag.get_text().split(' - ')[0]) if title_tag else ""
        image = soup.select_one("meta[property='og:image']")

        listed = dedupe_by_number(self._extract_chapters(soup, manga_id))
        highest = max((int(chapter.sort_key) for chapter in listed), default=0)
        log.info(f"Found {len(listed)} chapters on page, highest chapter number {highest}")

        chapters = fill_chapter_gaps(
            listed,
            coverage=self.config.generation_coverage,
            placeholder=lambda number, nearby: self._placeholder(manga_id, number, nearby),
            log=log,
        )

        return MangaInfo(
            provider_id=self.provider_id,
            manga_id=manga_id,
            title=title,
            url=url,
            cover_url=self.absolute_url(image.get('content', '')) if image else "",
            description=clean_text(soup.select_one(".limit-html-p").get_text()) if soup.select_one(".limit-html-p") else "",
            genres=[clean_text(el.get_text()) for el in soup.select(".whitespace-nowrap.font-bold.border-b")
                    if clean_text(el.get_text())],
            chapters=chapters,
        )

    def resolve_chapter_url(self, chapter_ref: str) -> str:
        chapter_ref = chapter_ref.strip()
        if chapter_ref.startswith(('http://', 'https://')):
            return chapter_ref
        path = chapter_ref.strip('/')
        if path.startswith('title/'):
            path = path[len('title/'):]
        return f"{self.base_url}/title/{path}"

    def build_pipeline(self) -> ExtractionPipeline:
        return ExtractionPipeline(
            strategies=[
                json_field_strategy(fields=('url',)),
                cdn_pattern_strategy(MANGAPARK_CDN_PATTERN, name='mangapark-cdn'),
                dom_attribute_strategy(selectors=('img',)),
                script_array_strategy(patterns=MANGAPARK_SCRIPT_PATTERNS),
                broad_image_strategy(),
            ],
            base_url=self.base_url,
        )

    # Helper methods

    @staticmethod
    def _span_texts(container) -> List[str]:
        texts = []
        for span in container.select("span span"):
            text = clean_text(span.get_text())
            if text and '/' not in text:
                texts.append(text)
        return texts

    @staticmethod
    def _parse_chapter_number(text: str) -> Optional[str]:
        match = re.search(r'Chapter\s+(\d+(?:\.\d+)?)', text, re.IGNORECASE)
        if not match:
            match = re.search(r'Ch\.?\s*(\d+(?:\.\d+)?)', text, re.IGNORECASE)
        if not match:
            numbers = re.findall(r'\d+(?:\.\d+)?', text)
            if len(numbers) != 1:
                return None
            return numbers[0]
        return match.group(1)

    def _extract_chapters(self, soup: BeautifulSoup, manga_id: str) -> List[Chapter]:
        chapters: List[Chapter] = []
        for link in soup.select("div[data-name='chapter-list'] a"):
            href = link.get('href')
            if not href:
                continue

            text = clean_text(link.get_text())
            number = self._parse_chapter_number(text)
            if number is None:
                continue

            slug = path_segments(href)[-1] if path_segments(href) else ""
            if not any(pattern.match(slug) for pattern in CHAPTER_SLUG_PATTERNS):
                slug = f"chapter-{number}"

            container = link.find_parent(class_="px-2")
            time_el = container.select_one("time span") if container else None

            chapters.append(Chapter(
                chapter_id=f"{manga_id}/{slug}",
                title=text,
                chapter_number=number,
                url=self.absolute_url(href),
                release_date=clean_text(time_el.get_text()) if time_el else "Unknown",
            ))
        return chapters

    def _placeholder(self, manga_id: str, number: int, nearby: List[Chapter]) -> Tuple[str, str]:
        """Guess the id and URL of a chapter missing from the listing."""
        for template in nearby:
            slug = template.chapter_id.rsplit('/', 1)[-1]
            base = template.url.rsplit('/', 1)[0]

            volume = CHAPTER_SLUG_PATTERNS[0].match(slug)
            if volume:
                generated = f"volume-{volume.group(1)}-chapter-{number}"
            elif CHAPTER_SLUG_PATTERNS[1].match(slug):
                generated = f"chapter-{number}"
            elif CHAPTER_SLUG_PATTERNS[2].match(slug):
                generated = f"ch-{number}"
            else:
                continue
            return f"{manga_id}/{generated}", f"{base}/{generated}"

        generated = f"chapter-{number}"
        return f"{manga_id}/{generated}", f"{self.base_url}/title/{quote(manga_id)}/{generated}"
