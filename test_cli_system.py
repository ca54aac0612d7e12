#!/usr/bin/env python3
"""
Test script for the MangaMapper CLI.

The Typer commands are invoked through typer.testing.CliRunner with
the mapper factory swapped for one built on in-memory fakes, so the
output formats and exit codes can be checked without network access.
"""
import json
import logging
import sys
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

# Add the current directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent))

import cli.app as cli_app
from cli.app import EXIT_ERROR, EXIT_NOT_FOUND, app
from core.exceptions import FetchError
from models import Page
from test_mapper import FakeCatalog, FakeProvider, listing, make_mapper

logger = logging.getLogger(__name__)

runner = CliRunner()


def use_mapper(monkeypatch, provider, catalog=None):
    mapper = make_mapper(provider, catalog=catalog)
    monkeypatch.setattr(cli_app, "build_mapper", lambda config: mapper)
    return mapper


def json_output(result):
    """JSON document printed by a --json command."""
    return json.loads(result.stdout[result.stdout.index('{\n'):])


def test_cli_imports():
    """Test that the entry point and CLI components import."""
    from main import main
    from cli import build_mapper
    from cli.tables import display_mapping, display_pages, display_search_results

    assert callable(main)
    assert callable(build_mapper)
    logger.info("✓ CLI imports successful")


def test_chapters_json(monkeypatch):
    provider = FakeProvider(results={"Solo Leveling": [listing("solo-leveling", "Solo Leveling")]})
    use_mapper(monkeypatch, provider)

    result = runner.invoke(app, ["chapters", "fake", "105398", "--json"])

    assert result.exit_code == 0, result.output
    data = json_output(result)
    assert data["originId"] == 105398
    assert data["originTitle"] == "Solo Leveling"
    assert data["targetSite"]["id"] == "solo-leveling"
    assert [chapter["id"] for chapter in data["targetSite"]["chapters"]] == ["sl/chapter-2", "sl/chapter-1"]


def test_chapters_table(monkeypatch):
    provider = FakeProvider(results={"Solo Leveling": [listing("solo-leveling", "Solo Leveling")]})
    use_mapper(monkeypatch, provider)

    result = runner.invoke(app, ["chapters", "fake", "105398"])

    assert result.exit_code == 0, result.output
    assert "Chapters (2)" in result.stdout
    assert "sl/chapter-1" in result.stdout


def test_unknown_anilist_id_exits_with_not_found(monkeypatch):
    use_mapper(monkeypatch, FakeProvider())

    result = runner.invoke(app, ["chapters", "fake", "1"])

    assert result.exit_code == EXIT_NOT_FOUND
    assert "No media found" in result.stdout


def test_no_listing_exits_with_not_found(monkeypatch):
    use_mapper(monkeypatch, FakeProvider())

    result = runner.invoke(app, ["chapters", "fake", "105398", "--json"])

    assert result.exit_code == EXIT_NOT_FOUND
    assert "No matching manga found" in result.stdout


def test_provider_failure_exits_with_error(monkeypatch):
    provider = FakeProvider(errors={"Solo Leveling": FetchError("https://fake.example.com/search", status=500)})
    use_mapper(monkeypatch, provider)

    result = runner.invoke(app, ["chapters", "fake", "105398"])

    assert result.exit_code == EXIT_ERROR


def test_unknown_provider_exits_with_error(monkeypatch):
    use_mapper(monkeypatch, FakeProvider())

    result = runner.invoke(app, ["pages", "nowhere", "sl/chapter-1"])

    assert result.exit_code == EXIT_ERROR
    assert "not found" in result.stdout


def test_pages_json(monkeypatch):
    provider = FakeProvider(pages=[Page("https://cdn.example.com/1.jpg", 1)])
    use_mapper(monkeypatch, provider)

    result = runner.invoke(app, ["pages", "fake", "sl/chapter-1", "--json"])

    assert result.exit_code == 0, result.output
    assert json_output(result) == {
        "chapterId": "sl/chapter-1",
        "pages": [{"url": "https://cdn.example.com/1.jpg", "index": 1}],
    }


def test_search(monkeypatch):
    provider = FakeProvider(results={"solo": [listing("solo-leveling", "Solo Leveling")]})
    use_mapper(monkeypatch, provider)

    result = runner.invoke(app, ["search", "fake", "solo"])

    assert result.exit_code == 0, result.output
    assert "solo-leveling" in result.stdout
    assert provider.queries == ["solo"]


def test_info(monkeypatch):
    use_mapper(monkeypatch, FakeProvider(), catalog=FakeCatalog())

    result = runner.invoke(app, ["info", "105398"])

    assert result.exit_code == 0, result.output
    assert "Na Honjaman Level Up" in result.stdout
    assert "Only I Level Up" in result.stdout


def test_providers(monkeypatch):
    use_mapper(monkeypatch, FakeProvider())

    result = runner.invoke(app, ["providers"])

    assert result.exit_code == 0, result.output
    assert "fake" in result.stdout
    assert "0.40" in result.stdout



def test_lookup(monkeypatch):
    use_mapper(monkeypatch, FakeProvider(), catalog=FakeCatalog())

    result = runner.invoke(app, ["lookup", "solo"])

    assert result.exit_code == 0, result.output
    assert "105398" in result.stdout


def test_config_shows_setting(tmp_path):
    settings = tmp_path / "settings.yaml"
    settings.write_text("network:\n  timeout: 12\n", encoding="utf-8")

    result = runner.invoke(app, ["--config", str(settings), "config", "network.timeout"])

    assert result.exit_code == 0, result.output
    assert "network.timeout: 12" in result.stdout


def test_config_saves_new_value(tmp_path):
    settings = tmp_path / "settings.yaml"
    settings.write_text("network:\n  timeout: 12\n", encoding="utf-8")

    result = runner.invoke(app, ["--config", str(settings), "config", "matching.thresholds.mangapark", "0.5"])

    assert result.exit_code == 0, result.output
    saved = yaml.safe_load(settings.read_text(encoding="utf-8"))
    assert saved["matching"]["thresholds"]["mangapark"] == 0.5
    assert saved["network"]["timeout"] == 12


def test_config_unknown_setting(tmp_path):
    settings = tmp_path / "settings.yaml"
    settings.write_text("network:\n  timeout: 12\n", encoding="utf-8")

    result = runner.invoke(app, ["--config", str(settings), "config", "no.such.setting"])

    assert result.exit_code == EXIT_ERROR
    assert "Unknown setting" in result.stdout


def main():
    """Run the CLI tests."""
    return pytest.main([__file__, "-v"])


if __name__ == "__main__":
    sys.exit(main())
