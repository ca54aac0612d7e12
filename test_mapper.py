#!/usr/bin/env python3
"""
Mapper tests.

The mapper is exercised end to end against an in-memory adapter and
catalog, so the retry chain, match selection and error wrapping can be
checked without any network.
"""
import asyncio
import logging
import sys
from pathlib import Path

import pytest

# Add the current directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.base_provider import BaseProvider
from core.config import Config
from core.exceptions import (
    FetchError,
    NoListingFoundError,
    NotFoundError,
    ProviderError,
    UpstreamError,
    is_not_found,
)
from core.mapper import Mapper
from core.provider_manager import ProviderManager
from models import (
    CatalogMedia,
    CatalogTitles,
    Chapter,
    MangaInfo,
    MangaSearchResult,
    Page,
    SearchResults,
    merge_alternate_names,
)

logger = logging.getLogger(__name__)


def listing(manga_id, title, alternative_titles=()):
    return MangaSearchResult(
        provider_id="fake",
        manga_id=manga_id,
        title=title,
        url=f"https://fake.example.com/{manga_id}",
        alternative_titles=list(alternative_titles),
    )


class FakeProvider(BaseProvider):
    """In-memory adapter: canned search results per query."""

    provider_id = "fake"
    provider_name = "Fake"
    base_url = "https://fake.example.com"

    def __init__(self, results=None, errors=None, info=None, info_error=None, pages=None, config=None):
        super().__init__(config=config or Config())
        self.results = results or {}
        self.errors = errors or {}
        self.info = info
        self.info_error = info_error
        self.pages = pages or []
        self.queries = []
        self.info_requests = []

    async def search(self, query, page=1, log=None):
        self.queries.append(query)
        if query in self.errors:
            raise self.errors[query]
        return SearchResults(results=list(self.results.get(query, [])))

    async def get_manga_info(self, manga_id, log=None):
        self.info_requests.append(manga_id)
        if self.info_error:
            raise self.info_error
        if self.info is not None:
            return self.info
        return MangaInfo(
            provider_id=self.provider_id,
            manga_id=manga_id,
            title="Solo Leveling",
            url=f"{self.base_url}/{manga_id}",
            chapters=[
                Chapter("sl/chapter-2", "Chapter 2", "2", f"{self.base_url}/sl/chapter-2", "Jan 02, 2020"),
                Chapter("sl/chapter-1", "Chapter 1", "1", f"{self.base_url}/sl/chapter-1", "Jan 01, 2020"),
            ],
        )

    def resolve_chapter_url(self, chapter_ref):
        return f"{self.base_url}/{chapter_ref}"

    async def fetch_chapter_pages(self, chapter_ref, log=None):
        if isinstance(self.pages, Exception):
            raise self.pages
        return self.pages


SOLO_LEVELING = CatalogMedia(
    id=105398,
    titles=CatalogTitles(romaji="Na Honjaman Level Up", english="Solo Leveling", native="나 혼자만 레벨업"),
    synonyms=("Only I Level Up",),
    alternate_names=merge_alternate_names(
        ("Only I Level Up",), ("Na Honjaman Level Up", "Solo Leveling", "나 혼자만 레벨업"),
    ),
)


class FakeCatalog:
    """In-memory catalog keyed by ID."""

    def __init__(self, media=(SOLO_LEVELING,), error=None):
        self.media = {item.id: item for item in media}
        self.error = error

    async def get_info(self, media_id, log=None):
        if self.error:
            raise self.error
        if int(media_id) not in self.media:
            raise NotFoundError(f"No media found with ID {media_id}", catalog_id=int(media_id))
        return self.media[int(media_id)]

    async def search(self, query, limit=20, log=None):
        if self.error:
            raise self.error
        needle = query.casefold()
        found = [
            item for item in self.media.values()
            if any(needle in name.casefold() for name in (item.display_title,) + tuple(item.alternate_names))
        ]
        return found[:limit]


def make_mapper(provider, catalog=None):
    config = Config(overrides={'matching': {'thresholds': {'fake': 0.4}}})
    manager = ProviderManager(config=config, discover=False)
    manager.register(provider)
    return Mapper(manager, catalog=catalog or FakeCatalog(), config=config)


def run(coro):
    return asyncio.run(coro)


# Listing search and selection

def test_get_chapters_prefers_exact_title():
    provider = FakeProvider(results={"Solo Leveling": [
        listing("solo-leveling-ragnarok", "Solo Leveling: Ragnarok"),
        listing("solo-leveling", "Solo Leveling"),
        listing("solo-max-level-newbie", "Solo Max-Level Newbie"),
    ]})
    mapper = make_mapper(provider)

    result = run(mapper.get_chapters("fake", 105398))

    assert provider.queries == ["Solo Leveling"]
    assert provider.info_requests == ["solo-leveling"]
    assert result.match.score == 1.0
    assert not result.match.fallback
    assert result.to_dict() == {
        "originId": 105398,
        "originTitle": "Solo Leveling",
        "targetSite": {
            "id": "solo-leveling",
            "title": "Solo Leveling",
            "chapters": [
                {"id": "sl/chapter-2", "title": "Chapter 2", "number": "2",
                 "url": "https://fake.example.com/sl/chapter-2", "date": "Jan 02, 2020"},
                {"id": "sl/chapter-1", "title": "Chapter 1", "number": "1",
                 "url": "https://fake.example.com/sl/chapter-1", "date": "Jan 01, 2020"},
            ],
        },
    }
    logger.info(f"✓ Matched {result.match}")


def test_get_chapters_retries_alternates_until_results():
    provider = FakeProvider(results={
        "Only I Level Up": [listing("only-i-level-up", "Only I Level Up")],
        "Na Honjaman Level Up": [listing("wrong", "Wrong Title")],
    })
    mapper = make_mapper(provider)

    result = run(mapper.get_chapters("fake", 105398))

    assert provider.queries == ["Solo Leveling", "Only I Level Up"]
    assert result.target_site.id == "only-i-level-up"
    assert result.match.matched_on == "Only I Level Up"


def test_get_chapters_reports_when_nothing_is_found():
    provider = FakeProvider()
    mapper = make_mapper(provider)

    with pytest.raises(NoListingFoundError) as exc_info:
        run(mapper.get_chapters("fake", 105398))

    error = exc_info.value
    assert is_not_found(error)
    assert str(error) == "No matching manga found on fake for title: Solo Leveling"
    assert error.tried == ["Solo Leveling", "Only I Level Up", "Na Honjaman Level Up", "나 혼자만 레벨업"]
    assert provider.info_requests == []


EXAMPLE_MANGA = CatalogMedia(
    id=1,
    titles=CatalogTitles(romaji="Example Manga"),
    alternate_names=("Reibun Manga", "Sample Comic", "Demo Manga"),
)


def test_example_manga_exact_title_beats_near_miss():
    provider = FakeProvider(results={"Example Manga": [
        listing("example-mango", "Example Mango"),
        listing("example-manga", "Example Manga"),
    ]})
    mapper = make_mapper(provider, catalog=FakeCatalog(media=(EXAMPLE_MANGA,)))

    result = run(mapper.get_chapters("fake", 1))

    assert result.target_site.id == "example-manga"
    assert result.origin_title == "Example Manga"


def test_example_manga_stops_at_first_alternate_with_results():
    provider = FakeProvider(results={
        "Sample Comic": [listing("sample-comic", "Sample Comic")],
        "Demo Manga": [listing("demo-manga", "Demo Manga")],
    })
    mapper = make_mapper(provider, catalog=FakeCatalog(media=(EXAMPLE_MANGA,)))

    result = run(mapper.get_chapters("fake", 1))

    assert result.target_site.id == "sample-comic"
    assert provider.queries == ["Example Manga", "Reibun Manga", "Sample Comic"]


def test_failed_alternate_search_is_skipped():
    provider = FakeProvider(
        errors={"Only I Level Up": FetchError("https://fake.example.com/search", status=503)},
        results={"Na Honjaman Level Up": [listing("solo-leveling", "Solo Leveling")]},
    )
    mapper = make_mapper(provider)

    result = run(mapper.get_chapters("fake", 105398))

    assert provider.queries == ["Solo Leveling", "Only I Level Up", "Na Honjaman Level Up"]
    assert result.target_site.id == "solo-leveling"


def test_failed_primary_search_is_a_provider_error():
    cause = FetchError("https://fake.example.com/search", status=500)
    provider = FakeProvider(errors={"Solo Leveling": cause})
    mapper = make_mapper(provider)

    with pytest.raises(ProviderError) as exc_info:
        run(mapper.get_chapters("fake", 105398))

    assert exc_info.value.__cause__ is cause
    assert exc_info.value.provider_id == "fake"
    assert str(exc_info.value) == "[fake] Failed to fetch https://fake.example.com/search: HTTP 500"
    assert provider.queries == ["Solo Leveling"]


def test_unexpected_search_failure_is_wrapped():
    provider = FakeProvider(errors={"Solo Leveling": RuntimeError("layout changed")})
    mapper = make_mapper(provider)

    with pytest.raises(ProviderError, match="layout changed"):
        run(mapper.get_chapters("fake", 105398))


def test_weak_matches_fall_back_to_first_result():
    provider = FakeProvider(results={"Solo Leveling": [
        listing("first", "Xyz"),
        listing("second", "Qwrtz"),
    ]})
    mapper = make_mapper(provider)

    result = run(mapper.get_chapters("fake", 105398))

    assert result.match.fallback
    assert result.target_site.id == "first"


def test_listing_alternate_titles_are_matched():
    provider = FakeProvider(results={"Solo Leveling": [
        listing("other", "Solo Camping"),
        listing("na-honjaman", "나 혼자만 레벨업", alternative_titles=["Solo Leveling"]),
    ]})
    mapper = make_mapper(provider)

    match = run(mapper.find_listing("fake", "Solo Leveling", ["Only I Level Up"]))

    assert match.candidate.manga_id == "na-honjaman"
    assert match.score == 1.0


# Error propagation

def test_listing_failures_are_provider_errors():
    cause = RuntimeError("unexpected markup")
    provider = FakeProvider(results={"Solo Leveling": [listing("solo-leveling", "Solo Leveling")]}, info_error=cause)
    mapper = make_mapper(provider)

    with pytest.raises(ProviderError) as exc_info:
        run(mapper.get_chapters("fake", 105398))

    assert exc_info.value.__cause__ is cause
    assert not is_not_found(exc_info.value)


def test_unknown_catalog_id_propagates():
    provider = FakeProvider()
    mapper = make_mapper(provider)

    with pytest.raises(NotFoundError):
        run(mapper.get_chapters("fake", 1))

    assert provider.queries == []


def test_catalog_outage_propagates():
    mapper = make_mapper(FakeProvider(), catalog=FakeCatalog(error=UpstreamError("AniList returned HTTP 500", status=500)))

    with pytest.raises(UpstreamError):
        run(mapper.get_chapters("fake", 105398))


def test_unknown_provider():
    mapper = make_mapper(FakeProvider())

    with pytest.raises(ProviderError, match="Provider 'nowhere' not found"):
        run(mapper.get_chapters("nowhere", 105398))


# Optional listing metadata

def test_listing_metadata_is_reported():
    info = MangaInfo(
        provider_id="fake",
        manga_id="solo-leveling",
        title="Solo Leveling",
        url="https://fake.example.com/solo-leveling",
        cover_url="https://fake.example.com/cover.jpg",
        description="E-rank hunter.",
        genres=["Action"],
        status="Unknown",
        chapters=[Chapter("sl/chapter-1", "Chapter 1", "1", "https://fake.example.com/sl/chapter-1")],
    )
    provider = FakeProvider(results={"Solo Leveling": [listing("solo-leveling", "Solo Leveling")]}, info=info)

    data = run(make_mapper(provider).get_chapters("fake", 105398)).to_dict()["targetSite"]

    assert data["image"] == "https://fake.example.com/cover.jpg"
    assert data["description"] == "E-rank hunter."
    assert data["genres"] == ["Action"]
    assert "status" not in data
    assert data["chapters"][0]["date"] == "Unknown"


def test_listing_rating_is_reported():
    info = MangaInfo(
        provider_id="fake",
        manga_id="solo-leveling",
        title="Solo Leveling",
        url="https://fake.example.com/solo-leveling",
        rating="4.8",
    )
    provider = FakeProvider(results={"Solo Leveling": [listing("solo-leveling", "Solo Leveling")]}, info=info)

    data = run(make_mapper(provider).get_chapters("fake", 105398)).to_dict()["targetSite"]

    assert data["rating"] == "4.8"


# Catalog lookup

def test_lookup_searches_catalog():
    mapper = make_mapper(FakeProvider(), catalog=FakeCatalog())

    results = run(mapper.lookup("level up"))

    assert [media.id for media in results] == [105398]
    assert run(mapper.lookup("nothing like it")) == []


def test_lookup_propagates_catalog_errors():
    mapper = make_mapper(FakeProvider(), catalog=FakeCatalog(error=UpstreamError("AniList request failed")))

    with pytest.raises(UpstreamError):
        run(mapper.lookup("solo"))


# Pages

def test_fetch_pages():
    pages = [Page("https://cdn.example.com/1.jpg", 1), Page("https://cdn.example.com/2.jpg", 2)]
    mapper = make_mapper(FakeProvider(pages=pages))

    result = run(mapper.fetch_pages("fake", "sl/chapter-1"))

    assert result.to_dict() == {
        "chapterId": "sl/chapter-1",
        "pages": [
            {"url": "https://cdn.example.com/1.jpg", "index": 1},
            {"url": "https://cdn.example.com/2.jpg", "index": 2},
        ],
    }


def test_fetch_pages_without_images_is_empty():
    result = run(make_mapper(FakeProvider(pages=[])).fetch_pages("fake", "sl/chapter-1"))
    assert result.pages == []


def test_fetch_pages_failure_is_provider_error():
    cause = FetchError("https://fake.example.com/sl/chapter-1", status=404)
    mapper = make_mapper(FakeProvider(pages=cause))

    with pytest.raises(ProviderError) as exc_info:
        run(mapper.fetch_pages("fake", "sl/chapter-1"))

    assert exc_info.value.__cause__ is cause


def test_concurrent_requests_do_not_interfere():
    provider = FakeProvider(results={
        "Solo Leveling": [listing("solo-leveling", "Solo Leveling")],
        "Omniscient Reader": [listing("orv", "Omniscient Reader")],
    })
    mapper = make_mapper(provider)

    async def both():
        return await asyncio.gather(
            mapper.find_listing("fake", "Solo Leveling"),
            mapper.find_listing("fake", "Omniscient Reader"),
        )

    first, second = run(both())

    assert first.candidate.manga_id == "solo-leveling"
    assert second.candidate.manga_id == "orv"


def main():
    """Run the mapper tests."""
    return pytest.main([__file__, "-v"])


if __name__ == "__main__":
    sys.exit(main())
