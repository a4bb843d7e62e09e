from __future__ import annotations

from itertools import chain
from typing import Any, Dict, List, Optional

import typer

from movie_merge.cli.utils import cli_errors, console, open_repository, print_summary, run_context
from movie_merge.core.pipeline import IngestPipeline
from movie_merge.scrapers.archive import ArchiveScraper, SCRAPE_URL
from movie_merge.scrapers.youtube import API_URL, DEFAULT_MIN_DURATION, YouTubeScraper

scrape_app = typer.Typer(
    name="scrape",
    help="Scrape provider catalogs into the store",
    add_completion=False,
)


@scrape_app.command("archive")
def scrape_archive_command(
    ctx: typer.Context,
    collection: Optional[List[str]] = typer.Option(
        None,
        "--collection",
        "-c",
        help="Archive.org collection (repeatable; default: all configured)",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        min=1,
        help="Items per collection",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write the store"),
):
    """
    Scrape Archive.org collections.
    """
    run = run_context(ctx)
    section = run.config.archive
    collections = collection or list(section.get("collections") or [])
    if not collections:
        console.print("[yellow]No collections configured[/yellow]")
        raise typer.Exit(code=0)

    scraper = ArchiveScraper(
        base_url=section.get("base_url", SCRAPE_URL),
        page_size=int(section.get("page_size", 100)),
        timeout=float(section.get("timeout_seconds", 30)),
    )
    entries = chain.from_iterable(scraper.iter_entries(c, limit) for c in collections)

    with cli_errors():
        _, summary = IngestPipeline(run, open_repository(run)).run(entries, dry_run=dry_run)

    print_summary(f"Archive.org ({', '.join(collections)})", summary, dry_run)


def _channels(section: Dict[str, Any], requested: Optional[List[str]]) -> List[Dict[str, Any]]:
    configured = [c for c in section.get("channels") or [] if isinstance(c, dict) and c.get("id")]
    if not requested:
        return configured
    by_id = {c["id"]: c for c in configured}
    return [by_id.get(handle, {"id": handle}) for handle in requested]


@scrape_app.command("youtube")
def scrape_youtube_command(
    ctx: typer.Context,
    channel: Optional[List[str]] = typer.Option(
        None,
        "--channel",
        "-c",
        help="Channel handle such as @Netzkino (repeatable; default: all configured)",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        min=1,
        help="Videos per channel",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write the store"),
):
    """
    Scrape full-length movies from YouTube channels.
    """
    run = run_context(ctx)
    section = run.config.youtube
    channels = _channels(section, channel)
    if not channels:
        console.print("[yellow]No channels configured[/yellow]")
        raise typer.Exit(code=0)

    with cli_errors():
        scraper = YouTubeScraper(
            run.config.secret("youtube"),
            base_url=section.get("base_url", API_URL),
            min_duration_seconds=int(section.get("min_duration_seconds", DEFAULT_MIN_DURATION)),
            timeout=float(section.get("timeout_seconds", 30)),
        )
        entries = chain.from_iterable(scraper.iter_entries(c, limit) for c in channels)
        _, summary = IngestPipeline(run, open_repository(run)).run(entries, dry_run=dry_run)

    print_summary(f"YouTube ({', '.join(c['id'] for c in channels)})", summary, dry_run)
