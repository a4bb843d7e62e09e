from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from movie_merge.cli.commands import (
    dedupe_command,
    enrich_command,
    label_command,
    migrate_command,
    remove_source_command,
    scrape_app,
    stats_command,
    unmatch_command,
)
from movie_merge.cli.utils import cli_errors
from movie_merge.config import get_config, load_config
from movie_merge.core.context import RunContext
from movie_merge.logging import configure_logging, get_logger

log = get_logger("cli")

app = typer.Typer(
    name="movie-merge",
    help="Movie identity resolution and merge engine",
    add_completion=False,
)


@app.callback()
def global_options(
    ctx: typer.Context,
    store: Optional[Path] = typer.Option(
        None,
        "--store",
        help="Path to the movie store JSON (default from config)",
    ),
    failures: Optional[Path] = typer.Option(
        None,
        "--failures",
        help="Path to the OMDB failure log (default from config)",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        exists=True,
        dir_okay=False,
        help="Alternative YAML config file",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging",
    ),
):
    with cli_errors():
        cfg = load_config(config) if config else get_config()
    if debug:
        cfg.debug = True
    configure_logging(cfg)

    ctx.obj = RunContext(
        config=cfg,
        logger=log,
        store_path=store or cfg.path("store"),
        failures_path=failures or cfg.path("failures"),
        debug=bool(cfg.debug),
    )


app.command("enrich")(enrich_command)
app.command("dedupe")(dedupe_command)
app.add_typer(scrape_app, name="scrape")
app.command("stats")(stats_command)
app.command("migrate")(migrate_command)
app.command("unmatch")(unmatch_command)
app.command("remove-source")(remove_source_command)
app.command("label")(label_command)


def main():
    app()


if __name__ == "__main__":
    main()
