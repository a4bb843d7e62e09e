from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer
from rich.console import Console
from rich.table import Table

from movie_merge.core.context import RunContext
from movie_merge.core.exceptions import MovieMergeError
from movie_merge.core.pipeline import BatchSummary
from movie_merge.matching.failures import FailureLog
from movie_merge.store.persistence import StoreRepository

console = Console()


def run_context(ctx: typer.Context) -> RunContext:
    """The RunContext built by the app callback."""
    obj = ctx.find_root().obj
    if not isinstance(obj, RunContext):
        raise typer.BadParameter("movie-merge global options were not initialised")
    return obj


def open_repository(run: RunContext) -> StoreRepository:
    return StoreRepository(run.store_path)


def open_failures(run: RunContext) -> FailureLog:
    return FailureLog.load(run.failures_path)


@contextmanager
def cli_errors() -> Iterator[None]:
    """
    Report MovieMergeError as a one-line message and exit 1.
    """
    try:
        yield
    except MovieMergeError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc


def summary_table(title: str, summary: BatchSummary, dry_run: bool = False) -> Table:
    table = Table(title=f"{title} (dry run)" if dry_run else title)
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")
    for name, value in summary.as_dict().items():
        table.add_row(name.capitalize(), str(value))
    return table


def print_summary(title: str, summary: BatchSummary, dry_run: bool = False) -> None:
    console.print(summary_table(title, summary, dry_run))
    if summary.failures:
        failures = Table(title=f"First {len(summary.failures)} failures")
        failures.add_column("Key")
        failures.add_column("Reason")
        for row in summary.failures:
            failures.add_row(row["key"], row["reason"])
        console.print(failures)
