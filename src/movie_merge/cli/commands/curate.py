"""
Curator commands: manual re-keying, unmatching and source edits.

Each command loads the store, applies one merge-engine operation and saves.
The failure log follows key changes.
"""

from __future__ import annotations

from typing import Optional

import typer

from movie_merge.cli.utils import cli_errors, console, open_failures, open_repository, run_context
from movie_merge.core.exceptions import EntryNotFoundError, MalformedRecordError
from movie_merge.entities.models import SOURCE_TYPES
from movie_merge.identity.keys import is_canonical_key, is_temporary_key
from movie_merge.omdb.client import build_omdb_client
from movie_merge.store.merge import annotate_source, move_entry, remove_source, revert_to_temporary


def migrate_command(
    ctx: typer.Context,
    old_key: str = typer.Argument(..., help="Current key"),
    new_key: str = typer.Argument(..., help="Target key (tt… or archive-/youtube-…)"),
):
    """
    Move an entry to another key, merging into any entry already there.

    A tt… target is stamped with its OMDB details unless an entry already
    resolved to that id sits there. An archive-/youtube- target must name
    one of the entry's own sources.
    """
    run = run_context(ctx)
    with cli_errors():
        if not (is_canonical_key(new_key) or is_temporary_key(new_key)):
            raise MalformedRecordError(f"Invalid target key: {new_key}")

        repository = open_repository(run)
        store = repository.load()
        if old_key not in store:
            raise EntryNotFoundError(f"Movie {old_key} not found")

        metadata = None
        occupant = store.get(new_key)
        if is_canonical_key(new_key) and new_key != old_key and not (occupant and occupant.metadata):
            metadata = build_omdb_client(run.config).fetch_details(new_key)

        final_key = move_entry(store, old_key, new_key, metadata=metadata)
        repository.save(store)

        failures = open_failures(run)
        if is_canonical_key(final_key):
            failures.forget(old_key)
        else:
            failures.rename(old_key, final_key)
        if failures.dirty:
            failures.save()

    console.print(f"Migrated [bold]{old_key}[/bold] -> [bold]{final_key}[/bold]")


def unmatch_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key of the entry to unmatch"),
):
    """
    Drop an entry's OMDB match and move it back to a temporary key.
    """
    run = run_context(ctx)
    with cli_errors():
        repository = open_repository(run)
        store = repository.load()
        _, new_key = revert_to_temporary(store, key)
        repository.save(store)

    console.print(f"Unmatched [bold]{key}[/bold] -> [bold]{new_key}[/bold]")


def remove_source_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key of the entry"),
    source_id: str = typer.Argument(..., help="Provider id of the source to remove"),
    source_type: Optional[str] = typer.Option(
        None,
        "--type",
        help="Source type (archive.org or youtube) when ids are ambiguous",
    ),
):
    """
    Remove one source from an entry; the entry is deleted with its last source.
    """
    run = run_context(ctx)
    with cli_errors():
        if source_type is not None and source_type not in SOURCE_TYPES:
            raise MalformedRecordError(f"Unknown source type: {source_type}")

        repository = open_repository(run)
        store = repository.load()
        _, final_key = remove_source(store, key, source_id, kind=source_type)
        repository.save(store)

        if final_key != key:
            failures = open_failures(run)
            if final_key is None:
                failures.forget(key)
            else:
                failures.rename(key, final_key)
            if failures.dirty:
                failures.save()

    if final_key is None:
        console.print(f"Removed last source of [bold]{key}[/bold]; entry deleted")
    elif final_key != key:
        console.print(f"Removed {source_id}; entry re-keyed to [bold]{final_key}[/bold]")
    else:
        console.print(f"Removed {source_id} from [bold]{key}[/bold]")


def label_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key of the entry"),
    source_id: str = typer.Argument(..., help="Provider id of the source"),
    label: Optional[str] = typer.Option(None, "--label", help="Free-text label; empty string clears it"),
    quality: Optional[str] = typer.Option(None, "--quality", help="Quality note; empty string clears it"),
):
    """
    Set the curator label and/or quality note on a source.
    """
    if label is None and quality is None:
        raise typer.BadParameter("give --label and/or --quality")

    run = run_context(ctx)
    with cli_errors():
        repository = open_repository(run)
        store = repository.load()
        source = annotate_source(store, key, source_id, label=label, quality=quality)
        repository.save(store)

    console.print(f"Updated {source.kind} source {source.id}: label={source.label!r} quality={source.quality!r}")
