"""
Logging package for ``movie_merge``.

Use ``get_logger("<area>")`` in modules; the CLI calls ``configure_logging``
once the run's config is known.
"""

from .logger import configure_logging, get_logger, log_file

__all__ = [
    "configure_logging",
    "get_logger",
    "log_file",
]
