"""
Page image extraction for MangaMapper.

Chapter readers on the scraped sites change often and hide their image
lists in different places: JSON embedded in script payloads, lazy-loaded
<img> tags, JavaScript array literals, or plain URLs somewhere in the
markup. Each of these is handled by one extraction strategy, and an
ExtractionPipeline tries them in order of precision, stopping at the
first strategy that finds anything.

A strategy is any callable taking a Document and returning candidate
URL strings. The factories in this module build the standard ones,
parameterised per site.
"""
import ast
import json
import logging
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Callable, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from models import Page

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('jpg', 'jpeg', 'png', 'webp')
DENYLIST = ('avatar', 'icon', 'logo', 'banner')
DEFAULT_URL_FIELDS = ('url', 'src', 'path', 'i', 'img')

_EXT = '(?:' + '|'.join(IMAGE_EXTENSIONS) + ')'

# Any absolute image URL with a host and a path, plus an optional query string
BROAD_IMAGE_RE = re.compile(r'https?://[^/"\'\s)<>\\]+/[^"\'\s)<>\\]+?\.' + _EXT + r'(?:\?[^"\'\s)<>\\]*)?(?=[^A-Za-z0-9]|$)', re.IGNORECASE)

# Common JavaScript assignments holding a chapter's image list
DEFAULT_SCRIPT_PATTERNS = (
    r'var\s+images\s*=\s*(\[.+?\])\s*;',
    r'var\s+pages\s*=\s*(\[.+?\])\s*;',
    r'var\s+chapter_images\s*=\s*(\[.+?\])\s*;',
    r'var\s+chapterImages\s*=\s*(\[.+?\])\s*;',
    r'images:\s*(\[.+?\])',
    r'data-images\s*=\s*\'([^\']+)\'',
)

Strategy = Callable[['Document'], List[str]]


@dataclass
class Document:
    """A fetched chapter page: its URL, raw body and lazily parsed DOM."""
    url: str
    text: str

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.text, 'html.parser')


def is_excluded(url: str, extra: Iterable[str] = ()) -> bool:
    """
    Check a URL against the non-page image denylist.

    Avatars, icons, logos and banners are never chapter pages, nor are
    small thumbnails.
    """
    lowered = url.lower()
    if any(token in lowered for token in DENYLIST):
        return True
    if 'thumb' in lowered and 'small' in lowered:
        return True
    return any(token in lowered for token in extra)


def split_candidates(value: str) -> List[str]:
    """
    Split a value that may hold a comma-separated list of URLs.

    The value is only split when every part after the first looks like a
    URL or a path, so commas inside a single URL are left alone.
    """
    value = (value or '').strip()
    if ',' not in value:
        return [value] if value else []

    parts = [part.strip() for part in value.split(',')]
    parts = [part for part in parts if part]
    if all(part.startswith(('http://', 'https://', '//', '/')) for part in parts[1:]):
        return parts
    return [value]


def unescape_url(url: str) -> str:
    """Undo JSON/JavaScript escaping of slashes in a URL."""
    return url.replace('\\u002F', '/').replace('\\u002f', '/').replace('\\/', '/')


def _named(name: str, func: Strategy) -> Strategy:
    func.strategy_name = name
    return func


def json_field_strategy(fields: Sequence[str] = ('url',),
                        extensions: Sequence[str] = IMAGE_EXTENSIONS) -> Strategy:
    """
    Strategy 1: ``"url":"...jpg"`` tokens in embedded JSON.

    Tolerates JSON that is itself embedded in a string (escaped quotes, as
    in Next.js flight payloads) and escaped slashes.
    """
    field_re = '|'.join(re.escape(name) for name in fields)
    ext_re = '(?:' + '|'.join(extensions) + ')'
    pattern = re.compile(
        r'\\?"(?:' + field_re + r')\\?"\s*:\s*\\?"([^"]+?\.' + ext_re + r'(?:\?[^"\\]*)?)\\?"',
        re.IGNORECASE,
    )

    def extract(document: Document) -> List[str]:
        return [unescape_url(match) for match in pattern.findall(document.text)]

    return _named('json-fields', extract)


def cdn_pattern_strategy(pattern: str, name: str = 'cdn-pattern') -> Strategy:
    """Strategy 2: a site-specific regex over known asset-host URLs."""
    compiled = re.compile(pattern, re.IGNORECASE)

    def extract(document: Document) -> List[str]:
        return [unescape_url(match.group(0)) for match in compiled.finditer(document.text)]

    return _named(name, extract)


def dom_attribute_strategy(selectors: Sequence[str] = ('img',),
                           attributes: Sequence[str] = ('data-src', 'src'),
                           exclude: Iterable[str] = ()) -> Strategy:
    """
    Strategy 3: image-bearing elements in the parsed DOM.

    The first non-empty attribute wins, so lazy-loading ``data-src`` is
    preferred over the ``src`` placeholder.
    """
    selector = ', '.join(selectors)
    extra = tuple(exclude)

    def extract(document: Document) -> List[str]:
        urls = []
        for element in document.soup.select(selector):
            value = next((element.get(attr).strip() for attr in attributes if element.get(attr, '').strip()), '')
            for url in split_candidates(value):
                if not is_excluded(url, extra):
                    urls.append(url)
        return urls

    return _named('dom-attributes', extract)


def _parse_array(raw: str):
    """Parse a captured JavaScript literal as JSON, then as a Python literal."""
    try:
        return json.loads(raw)
    except ValueError:
        pass

    try:
        # Single-quoted arrays, possibly with escaped apostrophes
        return ast.literal_eval(raw.strip())
    except (ValueError, SyntaxError) as e:
        if not raw.lstrip().startswith('['):
            # Not an array literal: a plain comma-separated list of URLs
            return split_candidates(raw)
        raise ValueError(f"Unparseable array literal: {e}") from e


def script_array_strategy(patterns: Sequence[str] = DEFAULT_SCRIPT_PATTERNS,
                          url_fields: Sequence[str] = DEFAULT_URL_FIELDS) -> Strategy:
    """
    Strategy 4: JavaScript array literals assigned to known variables.

    Patterns are tried in order; the first one whose capture parses into a
    non-empty list of URLs is used. Items may be bare strings or objects
    carrying one of ``url_fields``.
    """
    compiled = [re.compile(pattern, re.DOTALL) for pattern in patterns]

    def extract(document: Document) -> List[str]:
        for regex in compiled:
            match = regex.search(document.text)
            if not match or not match.group(1):
                continue

            try:
                data = _parse_array(match.group(1))
            except ValueError as e:
                logger.debug(f"Could not parse image data matched by {regex.pattern!r}: {e}")
                continue

            if not isinstance(data, list):
                continue

            urls = []
            for item in data:
                if isinstance(item, str):
                    url = item
                elif isinstance(item, dict):
                    url = next((item[name] for name in url_fields if isinstance(item.get(name), str) and item[name]), '')
                else:
                    url = ''
                if url:
                    urls.append(unescape_url(url.strip()))

            if urls:
                return urls
        return []

    return _named('script-array', extract)


def broad_image_strategy(exclude: Iterable[str] = ()) -> Strategy:
    """Strategy 5: any image URL anywhere in the body, minus the denylist."""
    extra = tuple(exclude)

    def extract(document: Document) -> List[str]:
        urls = []
        for match in BROAD_IMAGE_RE.finditer(document.text):
            url = match.group(0).strip()
            if url and not is_excluded(url, extra):
                urls.append(url)
        return urls

    return _named('broad-image', extract)


def strategy_name(strategy: Strategy) -> str:
    return getattr(strategy, 'strategy_name', getattr(strategy, '__name__', repr(strategy)))


@dataclass
class ExtractionPipeline:
    """
    Ordered, short-circuiting chain of extraction strategies.

    Strategies run in order and the first one producing at least one
    usable URL provides the whole result; results of different strategies
    are never blended. URLs are deduplicated in first-seen order and
    numbered from 1.
    """
    strategies: List[Strategy] = field(default_factory=list)
    base_url: Optional[str] = None
    accept: Optional[Callable[[str], bool]] = None

    def run(self, document: Document, log=None) -> List[Page]:
        """Extract the ordered page list of a document."""
        pages, _ = self.run_with_source(document, log=log)
        return pages

    def run_with_source(self, document: Document, log=None) -> Tuple[List[Page], Optional[str]]:
        """
        Extract pages and report which strategy produced them.

        Returns:
            Tuple of (pages, strategy name or None when nothing was found)
        """
        log = log or logger
        for strategy in self.strategies:
            name = strategy_name(strategy)
            candidates = strategy(document)
            pages = self.build_pages(candidates, document.url)
            if pages:
                log.debug(f"Strategy '{name}' found {len(pages)} images")
                return pages, name
            log.debug(f"Strategy '{name}' found nothing")

        log.warning(f"No images found in {document.url}")
        return [], None

    def build_pages(self, candidates: Iterable[str], page_url: str = '') -> List[Page]:
        """Split, resolve, filter and deduplicate candidates into numbered pages."""
        seen = set()
        pages: List[Page] = []
        for candidate in candidates:
            for url in split_candidates(candidate):
                url = self._resolve(url, page_url)
                if not url or url in seen:
                    continue
                if self.accept and not self.accept(url):
                    continue
                seen.add(url)
                pages.append(Page(url=url, index=len(pages) + 1))

        pages.sort(key=lambda page: page.index)
        return pages

    def _resolve(self, url: str, page_url: str) -> str:
        url = url.strip()
        if not url or url.startswith('data:'):
            return ''
        if url.startswith('//'):
            return 'https:' + url
        if url.startswith(('http://', 'https://')):
            return url
        base = page_url or self.base_url
        return urljoin(base, url) if base else url
