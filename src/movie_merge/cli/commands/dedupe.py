from __future__ import annotations

from typing import Optional

import typer
from rich.table import Table

from movie_merge.cli.utils import cli_errors, console, open_failures, open_repository, run_context
from movie_merge.postprocess.deduplicate import DEFAULT_THRESHOLD, apply_groups, find_groups


def dedupe_command(
    ctx: typer.Context,
    threshold: Optional[float] = typer.Option(
        None,
        "--threshold",
        "-t",
        min=0.0,
        max=1.0,
        help="Title similarity needed to group two entries (default from config)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Merge in memory and report, but do not write the store",
    ),
    report: bool = typer.Option(
        False,
        "--report",
        help="Only list duplicate groups; nothing is merged",
    ),
):
    """
    Find and merge duplicate entries (same IMDB id or near-identical titles).
    """
    run = run_context(ctx)
    if threshold is None:
        threshold = float(run.setting("dedupe", "threshold", DEFAULT_THRESHOLD))

    with cli_errors():
        repository = open_repository(run)
        store = repository.load()
        groups = find_groups(store, threshold)

        table = Table(title=f"Duplicate groups (threshold {threshold:.2f})")
        table.add_column("Keys")
        table.add_column("Titles")
        table.add_column("Reason")
        table.add_column("Min sim.", justify="right")
        for group in groups:
            titles = [store.get(k).title or "" for k in group.keys if store.get(k) is not None]
            table.add_row(
                "\n".join(group.keys),
                "\n".join(titles),
                "+".join(group.reasons),
                f"{group.min_similarity:.2f}" if group.min_similarity is not None else "-",
            )
        console.print(table)

        if report or not groups:
            return

        summary = apply_groups(store, groups)

        if not dry_run:
            repository.save(store)
            failures = open_failures(run)
            for key in summary.removed_keys:
                failures.forget(key)
            if failures.dirty:
                failures.save()

    console.print(
        f"{'Would merge' if dry_run else 'Merged'} {summary.groups} groups: "
        f"{summary.entries_before} -> {summary.entries_after} entries"
    )
