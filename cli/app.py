"""
Command-line front end for MangaMapper.

This module contains the Typer application wrapping the Mapper: it maps
AniList IDs onto target sites, lists chapters and extracts page images,
rendering results with Rich tables or as JSON.
"""
import asyncio
import json
import logging
from typing import Optional

import typer
import yaml

from core.catalog import AniListClient
from core.config import Config
from core.exceptions import MapperError, is_not_found
from core.logging_utils import setup_logging
from core.mapper import Mapper
from core.provider_manager import ProviderManager

from .tables import (
    display_catalog_card,
    display_catalog_results,
    display_error_message,
    display_mapping,
    display_pages,
    display_providers_table,
    display_search_results,
    display_success_message,
)

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_NOT_FOUND = 2

app = typer.Typer(help="Map AniList manga onto reading sites and extract chapter pages.", no_args_is_help=True)


def build_mapper(config: Config) -> Mapper:
    """Create the Mapper with the enabled providers and the AniList catalog."""
    provider_manager = ProviderManager(config=config)
    return Mapper(provider_manager, AniListClient(config=config), config)


def _mapper(ctx: typer.Context) -> Mapper:
    if ctx.obj.get('mapper') is None:
        ctx.obj['mapper'] = build_mapper(ctx.obj['config'])
    return ctx.obj['mapper']


def _run(coro):
    """Run a mapper coroutine, turning errors into exit codes."""
    try:
        return asyncio.run(coro)
    except MapperError as e:
        logger.debug(f"Command failed: {e!r}")
        display_error_message(str(e))
        raise typer.Exit(code=EXIT_NOT_FOUND if is_not_found(e) else EXIT_ERROR)


def _echo_json(data) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to a settings.yaml file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Load configuration and set up logging for every command."""
    config = Config(config_path)
    setup_logging('DEBUG' if verbose else config.log_level, config.log_file)
    ctx.obj = {'config': config, 'mapper': None}


@app.command()
def providers(ctx: typer.Context):
    """List the enabled providers."""
    mapper = _mapper(ctx)
    manager = mapper.provider_manager
    display_providers_table([manager.get_provider_info(provider_id) for provider_id in manager.list_providers()])


@app.command()
def search(
    ctx: typer.Context,
    provider: str = typer.Argument(..., help="Provider ID"),
    query: str = typer.Argument(..., help="Title to search for"),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Results page"),
):
    """Search a provider's listings."""
    results = _run(_mapper(ctx).search(provider, query, page=page))
    display_search_results(results, provider)


@app.command()
def chapters(
    ctx: typer.Context,
    provider: str = typer.Argument(..., help="Provider ID"),
    anilist_id: int = typer.Argument(..., help="AniList media ID"),
    as_json: bool = typer.Option(False, "--json", help="Print the mapping as JSON"),
):
    """Map an AniList ID onto a provider and list its chapters."""
    result = _run(_mapper(ctx).get_chapters(provider, anilist_id))
    if as_json:
        _echo_json(result.to_dict())
    else:
        display_mapping(result)


@app.command()
def pages(
    ctx: typer.Context,
    provider: str = typer.Argument(..., help="Provider ID"),
    chapter_ref: str = typer.Argument(..., help="Chapter ID (as listed by 'chapters') or chapter URL"),
    as_json: bool = typer.Option(False, "--json", help="Print the pages as JSON"),
):
    """Extract the page images of a chapter."""
    result = _run(_mapper(ctx).fetch_pages(provider, chapter_ref))
    if as_json:
        _echo_json(result.to_dict())
    else:
        display_pages(result)


@app.command()
def info(
    ctx: typer.Context,
    anilist_id: int = typer.Argument(..., help="AniList media ID"),
):
    """Show the titles an AniList ID resolves to."""
    media = _run(_mapper(ctx).resolve(anilist_id))
    display_catalog_card(media)


@app.command()
def lookup(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Title to search AniList for"),
    limit: int = typer.Option(10, "--limit", "-n", min=1, max=50, help="Maximum results"),
):
    """Search AniList by title to find media IDs."""
    results = _run(_mapper(ctx).lookup(query, limit=limit))
    display_catalog_results(results, query)


@app.command("config")
def config_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Setting in dot notation, e.g. network.timeout"),
    value: Optional[str] = typer.Argument(None, help="New value in YAML syntax; omit to show the current one"),
):
    """Show or change a setting in the configuration file."""
    config: Config = ctx.obj['config']

    if value is None:
        current = config.get(key)
        if current is None:
            display_error_message(f"Unknown setting '{key}'")
            raise typer.Exit(code=EXIT_ERROR)
        typer.echo(yaml.safe_dump({key: current}, default_flow_style=False, allow_unicode=True).rstrip())
        return

    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError as e:
        display_error_message(f"Invalid value for '{key}': {e}")
        raise typer.Exit(code=EXIT_ERROR)

    config.set(key, parsed)
    try:
        config.save()
    except OSError as e:
        display_error_message(f"Failed to save configuration: {e}")
        raise typer.Exit(code=EXIT_ERROR)
    display_success_message(f"{key} set to {parsed!r} in {config.config_path}")
