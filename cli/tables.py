"""
Table formatting for MangaMapper CLI.

This module handles all Rich table displays: providers, search
results, mapped chapter lists, page lists and catalog entries.
"""
from typing import Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from models import CatalogMedia, MappingResult, PagesResult, SearchResults

console = Console()


def _truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit - 3] + "..."
    return text


def display_providers_table(providers: List[Dict]) -> None:
    """
    Display the enabled providers.

    Args:
        providers: Provider info dictionaries from ProviderManager.get_provider_info
    """
    table = Table(title="Enabled Providers", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Base URL", style="dim")
    table.add_column("Threshold", style="green", justify="center")

    for info in providers:
        table.add_row(info['id'], info['name'], info['base_url'], f"{info['threshold']:.2f}")

    console.print(table)


def display_search_results(results: SearchResults, provider_id: str) -> None:
    """
    Display one page of search results.

    Args:
        results: Search results to display
        provider_id: Provider that produced them
    """
    page = results.pagination.current_page if results.pagination else 1
    has_next = results.pagination.has_next_page if results.pagination else False
    total_pages = f"{page}+" if has_next else str(page)

    table = Table(title=f"{provider_id} - Page {page}/{total_pages}", show_header=True, header_style="bold magenta")
    table.add_column("#", style="cyan", width=4, justify="center")
    table.add_column("ID", style="green", max_width=30)
    table.add_column("Title", style="white", max_width=40)
    table.add_column("Alt Titles", style="dim", max_width=30)
    table.add_column("Latest", style="yellow", max_width=16)

    for i, result in enumerate(results, 1):
        alt_titles = " | ".join(result.alternative_titles[:2])
        if len(result.alternative_titles) > 2:
            alt_titles += f" (+{len(result.alternative_titles) - 2} more)"
        table.add_row(str(i), result.manga_id, _truncate(result.title, 40), alt_titles, result.latest_chapter)

    console.print(table)


def display_mapping(result: MappingResult) -> None:
    """
    Display a catalog-to-site mapping with its chapter list.

    Args:
        result: Mapping produced by Mapper.get_chapters
    """
    target = result.target_site

    info_table = Table(show_header=False, show_edge=False, pad_edge=False)
    info_table.add_column("Field", style="cyan", width=12)
    info_table.add_column("Value", style="white")
    info_table.add_row("AniList:", f"{result.origin_title} ({result.origin_id})")
    info_table.add_row("Listing:", f"{target.title} ({target.id})")
    if result.match:
        source = "fallback to first result" if result.match.fallback else f"matched on '{result.match.matched_on}'"
        info_table.add_row("Similarity:", f"{result.match.score:.2f}, {source}")
    if target.status:
        info_table.add_row("Status:", f"[bold]{target.status}[/bold]")
    if target.genres:
        info_table.add_row("Genres:", ", ".join(target.genres[:5]))
    if target.rating:
        info_table.add_row("Rating:", target.rating)

    console.print(Panel(
        info_table,
        title=f"[bold green]{target.provider_id}[/bold green]",
        border_style="green",
        padding=(1, 2)
    ))

    table = Table(title=f"Chapters ({len(target.chapters)})", show_header=True, header_style="bold magenta")
    table.add_column("Number", style="cyan", justify="center")
    table.add_column("Title", style="white", max_width=40)
    table.add_column("ID", style="green", max_width=40)
    table.add_column("Date", style="dim")

    for chapter in target.chapters:
        title = _truncate(chapter.title, 40)
        if chapter.generated:
            title = f"[yellow]{title} (generated)[/yellow]"
        table.add_row(chapter.chapter_number, title, chapter.chapter_id, chapter.release_date)

    console.print(table)


def display_pages(result: PagesResult) -> None:
    """
    Display the page images of a chapter.

    Args:
        result: Pages produced by Mapper.fetch_pages
    """
    table = Table(title=f"{result.chapter_ref} ({len(result.pages)} pages)", show_header=True, header_style="bold magenta")
    table.add_column("#", style="cyan", width=4, justify="center")
    table.add_column("URL", style="white", overflow="fold")

    for page in result.pages:
        table.add_row(str(page.index), page.url)

    console.print(table)


def display_catalog_card(media: CatalogMedia) -> None:
    """
    Display a resolved catalog entry with its alternate names.

    Args:
        media: Catalog entry to display
    """
    info_table = Table(show_header=False, show_edge=False, pad_edge=False)
    info_table.add_column("Field", style="cyan", width=12)
    info_table.add_column("Value", style="white")

    info_table.add_row("Romaji:", media.titles.romaji or "-")
    info_table.add_row("English:", media.titles.english or "-")
    info_table.add_row("Native:", media.titles.native or "-")
    if media.format:
        info_table.add_row("Format:", media.format)
    if media.status:
        info_table.add_row("Status:", f"[bold]{media.status}[/bold]")
    if media.genres:
        info_table.add_row("Genres:", ", ".join(media.genres))
    if media.alternate_names:
        info_table.add_row("Alternates:", "\n".join(media.alternate_names))

    console.print(Panel(
        info_table,
        title=f"[bold green]{media.primary_title} ({media.id})[/bold green]",
        border_style="green",
        padding=(1, 2)
    ))


def display_catalog_results(results: List[CatalogMedia], query: str) -> None:
    """
    Display AniList search results.

    Args:
        results: Catalog entries in relevance order
        query: Title that was searched for
    """
    table = Table(title=f"AniList - '{query}'", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Title", style="white", max_width=40)
    table.add_column("Native", style="dim", max_width=24)
    table.add_column("Format", style="yellow")
    table.add_column("Status", style="green")

    for media in results:
        table.add_row(
            str(media.id),
            _truncate(media.display_title, 40),
            media.titles.native or "",
            media.format or "",
            media.status or "",
        )

    console.print(table)


def display_error_message(message: str) -> None:
    """
    Display an error message in a highlighted box.

    Args:
        message: Error message to display
    """
    panel = Panel(
        f"[red]✗ {message}[/red]",
        style="red",
        padding=(0, 1)
    )
    console.print(panel)


def display_success_message(message: str) -> None:
    """Display a success message in a highlighted box."""
    console.print(Panel(f"[green]✓ {message}[/green]", style="green", padding=(0, 1)))
