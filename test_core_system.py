#!/usr/bin/env python3
"""
Tests for the MangaMapper core system.

Covers the pieces that need no network: title similarity, match
selection, chapter assembly, configuration, the error taxonomy,
request-scoped logging and provider discovery.
"""
import logging
import sys
from pathlib import Path

import pytest

# Add the current directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.chapters import dedupe_by_number, fill_chapter_gaps, nearby_chapters, sort_chapters
from core.config import Config, DEFAULT_USER_AGENT
from core.exceptions import (
    FetchError, NoCandidatesError, NoListingFoundError, NotFoundError,
    ProviderError, UpstreamError, is_not_found,
)
from core.logging_utils import RequestLogger, request_logger
from core.matcher import build_queries, select_best
from core.provider_manager import ProviderManager
from core.similarity import edit_distance, similarity
from models import CatalogTitles, Chapter, MangaSearchResult, merge_alternate_names

logger = logging.getLogger(__name__)


def listing(title, manga_id=None, alt_titles=None):
    return MangaSearchResult(
        provider_id="test",
        manga_id=manga_id or title.lower().replace(' ', '-'),
        title=title,
        alternative_titles=list(alt_titles or []),
    )


def chapter(number, chapter_id=None):
    return Chapter(
        chapter_id=chapter_id or f"series/chapter-{number}",
        title=f"Chapter {number}",
        chapter_number=str(number),
        url=f"https://example.com/series/chapter-{number}",
    )


# Similarity

def test_similarity_identity():
    """Identical strings score 1.0, regardless of case."""
    assert similarity("Solo Leveling", "Solo Leveling") == 1.0
    assert similarity("Solo Leveling", "SOLO LEVELING") == 1.0
    logger.info("✓ Identical titles score 1.0")


def test_similarity_empty_inputs():
    """One empty side scores 0.0; two empty sides are identical."""
    assert similarity("", "") == 1.0
    assert similarity("Berserk", "") == 0.0
    assert similarity(None, "Berserk") == 0.0
    assert similarity("Berserk", None) == 0.0


def test_similarity_is_symmetric_and_bounded():
    pairs = [("kitten", "sitting"), ("One Piece", "One Punch Man"), ("a", "abc")]
    for a, b in pairs:
        score = similarity(a, b)
        assert score == similarity(b, a)
        assert 0.0 <= score <= 1.0


def test_edit_distance():
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("", "abc") == 3
    assert edit_distance("ABC", "abc") == 0
    assert edit_distance("Solo Leveling", "Solo Levelinh") == 1
    assert similarity("kitten", "sitting") == pytest.approx(4 / 7)


# Match selection

def test_select_best_prefers_exact_title():
    candidates = [listing("Solo Leveling: Ragnarok"), listing("Solo Leveling")]

    match = select_best(candidates, "Solo Leveling")

    assert match.candidate.title == "Solo Leveling"
    assert match.score == 1.0
    assert match.matched_on == "Solo Leveling"
    assert not match.fallback
    logger.info(f"✓ Selected {match}")


def test_select_best_keeps_first_on_tie():
    first = listing("Berserk", manga_id="first")
    second = listing("Berserk", manga_id="second")

    match = select_best([first, second], "Berserk")

    assert match.candidate.manga_id == "first"


def test_select_best_uses_candidate_alternative_titles():
    candidates = [
        listing("Tower of God"),
        listing("Na Honjaman Level Up", alt_titles=["Solo Leveling"]),
    ]

    match = select_best(candidates, "Solo Leveling")

    assert match.candidate.title == "Na Honjaman Level Up"
    assert match.score == 1.0


def test_select_best_reports_matching_alternate():
    candidates = [listing("Solo Leveling")]

    match = select_best(candidates, "Ore dake Level Up na Ken", ["Solo Leveling"])

    assert match.matched_on == "Solo Leveling"
    assert match.score == 1.0


def test_select_best_falls_back_to_first_candidate():
    candidates = [listing("xyz", manga_id="first"), listing("qqq", manga_id="second")]

    match = select_best(candidates, "Solo Leveling", threshold=0.4)

    assert match.candidate.manga_id == "first"
    assert match.fallback
    assert match.score < 0.4


def test_select_best_fallback_reports_first_candidate_score():
    candidates = [listing("Zzzzzzzzzz", manga_id="a"), listing("Solo Levelinx", manga_id="b")]

    match = select_best(candidates, "Solo Leveling", threshold=0.99)

    assert match.candidate.manga_id == "a"
    assert match.fallback
    assert match.score == pytest.approx(similarity("Zzzzzzzzzz", "Solo Leveling"))
    assert match.score < similarity("Solo Levelinx", "Solo Leveling")


def test_select_best_is_deterministic():
    candidates = [listing("One Piece"), listing("One Punch Man"), listing("Onepunch-Man")]

    first = select_best(candidates, "One-Punch Man", ["Onepunch Man"])
    second = select_best(candidates, "One-Punch Man", ["Onepunch Man"])

    assert first == second


def test_select_best_rejects_empty_candidates():
    with pytest.raises(NoCandidatesError):
        select_best([], "Solo Leveling")


def test_build_queries_skips_blank_and_repeated():
    queries = build_queries("Solo Leveling", ["", "  ", "solo leveling", "Only I Level Up", "Only I Level Up"])
    assert queries == ["Solo Leveling", "Only I Level Up"]


def test_merge_alternate_names_orders_and_dedupes():
    titles = CatalogTitles(romaji="Ore dake Level Up na Ken", english="Solo Leveling", native="나 혼자만 레벨업")
    names = merge_alternate_names(["Only I Level Up", "solo leveling"], titles.variants())

    assert names == ("Only I Level Up", "solo leveling", "Ore dake Level Up na Ken", "나 혼자만 레벨업")
    assert titles.primary == "Solo Leveling"


# Chapter assembly

def test_sort_chapters_descending():
    chapters = [chapter(1), chapter(10), chapter(2), chapter("1.5")]
    assert [c.chapter_number for c in sort_chapters(chapters)] == ["10", "2", "1.5", "1"]


def test_sort_chapters_non_numeric_last():
    extra = Chapter(chapter_id="series/extra", title="Extra", chapter_number="Extra", url="")
    assert sort_chapters([extra, chapter(3)])[-1] is extra


def test_dedupe_by_number_keeps_first():
    first = chapter(5, chapter_id="a")
    duplicate = chapter(5, chapter_id="b")

    assert dedupe_by_number([first, chapter(4), duplicate]) == [first, chapter(4)]


def test_fill_chapter_gaps_on_sparse_list():
    chapters = fill_chapter_gaps([chapter(1), chapter(2), chapter(10)], coverage=0.5)

    assert [c.chapter_number for c in chapters] == [str(n) for n in range(10, 0, -1)]
    generated = [c for c in chapters if c.generated]
    assert [c.chapter_number for c in generated] == [str(n) for n in range(9, 2, -1)]
    for c in generated:
        assert c.release_date == "Unknown"
        assert c.title == f"Chapter {c.chapter_number}"
        assert c.to_dict()['generated'] is True
    logger.info(f"✓ Generated {len(generated)} placeholder chapters")


def test_fill_chapter_gaps_respects_coverage():
    listed = [chapter(1), chapter(2), chapter(5)]

    # 3 listed of 5 is not below half coverage
    assert len(fill_chapter_gaps(listed, coverage=0.5)) == 3

    filled = fill_chapter_gaps(listed, coverage=0.75)
    assert [c.chapter_number for c in filled] == ["5", "4", "3", "2", "1"]
    assert [c.generated for c in filled] == [False, True, True, False, False]


def test_fill_chapter_gaps_with_fractional_latest_chapter():
    chapters = fill_chapter_gaps([chapter(1), chapter(2), chapter(10.5)], coverage=0.5)

    assert [c.chapter_number for c in chapters] == ["10.5"] + [str(n) for n in range(10, 0, -1)]
    assert [c.chapter_number for c in chapters if c.generated] == [str(n) for n in range(10, 2, -1)]


def test_fill_chapter_gaps_leaves_complete_list():
    chapters = fill_chapter_gaps([chapter(n) for n in range(1, 6)], coverage=0.5)

    assert len(chapters) == 5
    assert not any(c.generated for c in chapters)


def test_fill_chapter_gaps_uses_placeholder_factory():
    seen = {}

    def placeholder(number, nearby):
        seen[number] = [c.chapter_number for c in nearby]
        return f"series/generated-{number}", f"https://example.com/series/generated-{number}"

    chapters = fill_chapter_gaps([chapter(1), chapter(8)], coverage=0.5, placeholder=placeholder)
    by_number = {c.chapter_number: c for c in chapters}

    assert by_number["4"].chapter_id == "series/generated-4"
    assert by_number["4"].url == "https://example.com/series/generated-4"
    assert seen[2] == ["1"]
    assert seen[7] == ["8"]
    assert seen[4] == ["1", "8"]


def test_nearby_chapters_excludes_distance_limit():
    listed = [chapter(1), chapter(6), chapter(10)]

    assert [c.chapter_number for c in nearby_chapters(listed, 5)] == ["6", "1"]
    assert [c.chapter_number for c in nearby_chapters(listed, 11)] == ["10"]
    assert nearby_chapters(listed, 15) == []


def test_chapter_to_dict():
    data = chapter(3).to_dict()
    assert data == {
        'id': 'series/chapter-3',
        'title': 'Chapter 3',
        'number': '3',
        'url': 'https://example.com/series/chapter-3',
        'date': 'Unknown',
    }


# Configuration

def test_config_defaults():
    config = Config(overrides={})

    assert config.get_match_threshold("mangadex") == 0.4
    assert config.get_match_threshold("mangapark") == 0.3
    assert config.get_match_threshold("unknown-site") == 0.4
    assert config.generation_coverage == 0.5
    assert "mangakakalot" in config.enabled_providers
    assert config.catalog_url == "https://graphql.anilist.co"


def test_config_file_is_merged_over_defaults(tmp_path):
    config_file = tmp_path / "settings.yaml"
    config_file.write_text(
        "network:\n"
        "  timeout: 10\n"
        "matching:\n"
        "  thresholds:\n"
        "    mangapark: 0.5\n",
        encoding="utf-8",
    )

    config = Config(str(config_file))

    assert config.config_path == config_file
    assert config.network_timeout == 10.0
    assert config.user_agent == DEFAULT_USER_AGENT
    assert config.get_match_threshold("mangapark") == 0.5
    assert config.get_match_threshold("mangabuddy") == 0.3
    logger.info(f"✓ Loaded {config}")


def test_config_from_environment(tmp_path, monkeypatch):
    config_file = tmp_path / "env.yaml"
    config_file.write_text("chapters:\n  generation_coverage: 0.75\n", encoding="utf-8")
    monkeypatch.setenv(Config.ENV_VAR, str(config_file))

    assert Config().generation_coverage == 0.75


def test_config_get_set_and_save(tmp_path):
    config = Config(str(tmp_path / "missing.yaml"), overrides={'logging': {'level': 'DEBUG'}})
    config.config_path = tmp_path / "saved" / "settings.yaml"

    config.set("providers.enabled", ["mangadex"])
    config.save()
    reloaded = Config(str(config.config_path))

    assert config.get("logging.level") == "DEBUG"
    assert config.get("no.such.key", "fallback") == "fallback"
    assert reloaded.enabled_providers == ["mangadex"]
    assert reloaded.log_level == "DEBUG"


# Errors

def test_not_found_classification():
    assert is_not_found(NotFoundError("missing", catalog_id=1))
    assert is_not_found(NoListingFoundError("mangapark", "Solo Leveling"))
    assert not is_not_found(ProviderError("boom", provider_id="mangapark"))
    assert not is_not_found(UpstreamError("down"))


def test_error_messages():
    no_listing = NoListingFoundError("mangapark", "Solo Leveling", tried=["Solo Leveling"])
    fetch = FetchError("https://example.com/a", status=503)
    wrapped = ProviderError(str(fetch), provider_id="mangapark")

    assert str(no_listing) == "No matching manga found on mangapark for title: Solo Leveling"
    assert no_listing.tried == ["Solo Leveling"]
    assert isinstance(fetch, UpstreamError)
    assert fetch.status == 503
    assert str(fetch) == "Failed to fetch https://example.com/a: HTTP 503"
    assert str(wrapped) == "[mangapark] Failed to fetch https://example.com/a: HTTP 503"


# Logging

def test_request_logger_prefixes_messages(caplog):
    log = request_logger("mangapark", "chapters", base=logging.getLogger("test.request"))

    with caplog.at_level(logging.INFO, logger="test.request"):
        log.info("hello")

    assert isinstance(log, RequestLogger)
    assert len(log.extra['request_id']) == 8
    assert caplog.records[-1].getMessage() == f"[mangapark {log.extra['request_id']}] hello"
    assert caplog.records[-1].operation == "chapters"


def test_request_loggers_get_distinct_ids():
    first = request_logger("mangadex", "pages")
    second = request_logger("mangadex", "pages")
    assert first.extra['request_id'] != second.extra['request_id']


# Provider discovery

def test_provider_manager_loads_enabled_providers():
    config = Config(overrides={'providers': {'enabled': ['mangapark', 'mangadex', 'no-such-site']}})

    manager = ProviderManager(config=config)

    assert manager.list_providers() == ['mangapark', 'mangadex']
    assert 'mangabuddy' not in manager
    assert manager.get_provider('mangapark').provider_name == "MangaPark"
    assert manager.get_provider_info('mangapark')['threshold'] == 0.3
    logger.info(f"✓ Loaded providers: {manager.list_providers()}")


def test_provider_manager_discovers_all_sites():
    manager = ProviderManager(config=Config(overrides={}))

    assert sorted(manager.list_providers()) == [
        'asurascans', 'mangabuddy', 'mangadex', 'mangakakalot', 'mangapark',
    ]


def test_provider_modules_are_documented():
    manager = ProviderManager(config=Config(overrides={}))

    for provider_id in manager.list_providers():
        module = sys.modules[type(manager.get_provider(provider_id)).__module__]
        assert module.__doc__ and module.__doc__.strip(), provider_id


def test_provider_manager_unknown_provider():
    manager = ProviderManager(config=Config(overrides={}), discover=False)

    with pytest.raises(ProviderError, match="not found"):
        manager.get_provider('mangapark')


def main():
    """Run the core system tests."""
    return pytest.main([__file__, "-v"])


if __name__ == "__main__":
    sys.exit(main())
