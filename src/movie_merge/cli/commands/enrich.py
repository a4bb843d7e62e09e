from __future__ import annotations

from typing import Optional

import typer

from movie_merge.cli.utils import cli_errors, open_failures, open_repository, print_summary, run_context
from movie_merge.core.exceptions import ConfigurationError
from movie_merge.core.pipeline import EnrichmentPipeline
from movie_merge.matching.confidence import ConfidenceTier
from movie_merge.matching.resolver import DEFAULT_YEAR_TOLERANCE, IdentityResolver
from movie_merge.omdb.client import build_omdb_client


def enrich_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        min=1,
        help="Process at most this many pending entries",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Resolve but do not write the store or failure log",
    ),
    min_confidence: Optional[str] = typer.Option(
        None,
        "--min-confidence",
        help="Lowest tier accepted as a match (low, medium, high, exact)",
    ),
    force_retry_failed: bool = typer.Option(
        False,
        "--force-retry-failed",
        help="Retry entries already recorded in the failure log",
    ),
):
    """
    Match temporary entries against OMDB and migrate them to IMDB ids.
    """
    run = run_context(ctx)
    with cli_errors():
        try:
            tier = ConfidenceTier.parse(min_confidence or run.setting("resolver", "min_confidence", "medium"))
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        client = build_omdb_client(run.config)
        failures = open_failures(run)
        resolver = IdentityResolver(
            client,
            failures,
            min_tier=tier,
            year_tolerance=int(run.setting("resolver", "year_tolerance", DEFAULT_YEAR_TOLERANCE)),
        )
        pipeline = EnrichmentPipeline(run, open_repository(run), failures, resolver)
        _, summary = pipeline.run(limit=limit, dry_run=dry_run, force_retry=force_retry_failed)

    print_summary("Enrichment", summary, dry_run)
