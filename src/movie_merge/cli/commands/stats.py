from __future__ import annotations

import typer
from rich.table import Table

from movie_merge.cli.utils import cli_errors, console, open_failures, open_repository, run_context


def stats_command(ctx: typer.Context):
    """
    Show summary statistics for the movie store.
    """
    run = run_context(ctx)
    with cli_errors():
        store = open_repository(run).load()
        failures = open_failures(run)

    stats = store.stats()

    table = Table(title="Movie Store Statistics")
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")

    table.add_row("Entries", str(stats["entries"]))
    table.add_row("Canonical (tt…)", str(stats["canonical"]))
    table.add_row("Temporary", str(stats["temporary"]))
    if stats["other_keys"]:
        table.add_row("Other keys", str(stats["other_keys"]))
    table.add_row("With metadata", str(stats["with_metadata"]))
    table.add_row("Verified", str(stats["verified"]))
    table.add_row("Sources", str(stats["sources"]))
    for kind, count in stats["sources_by_type"].items():
        table.add_row(f"  {kind}", str(count))
    table.add_row("Failed OMDB lookups", str(len(failures)))

    console.print(table)
