"""
CLI package for movie_merge.

Provides the Typer application entrypoint and shared CLI utilities.
"""

from movie_merge.cli.app import app, main

__all__ = [
    "app",
    "main",
]
