"""
CLI command modules for movie_merge.

Each command module defines Typer-compatible command functions; ``scrape``
contributes a sub-application.
"""

from movie_merge.cli.commands.curate import (
    label_command,
    migrate_command,
    remove_source_command,
    unmatch_command,
)
from movie_merge.cli.commands.dedupe import dedupe_command
from movie_merge.cli.commands.enrich import enrich_command
from movie_merge.cli.commands.scrape import scrape_app
from movie_merge.cli.commands.stats import stats_command

__all__ = [
    "dedupe_command",
    "enrich_command",
    "label_command",
    "migrate_command",
    "remove_source_command",
    "scrape_app",
    "stats_command",
    "unmatch_command",
]
