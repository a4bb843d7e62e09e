import os
from pathlib import Path

import yaml

from movie_merge.core.exceptions import ConfigurationError

PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_PATH = PROJECT_ROOT / "config" / "movie_merge.yml"
CONFIG_ENV = "MOVIE_MERGE_CONFIG"

DEFAULTS = {
    "debug": False,
    "paths": {
        "store": "data/movies.json",
        "failures": "data/failed-omdb.json",
        "logs_dir": "logs",
    },
    "logging": {"level": "INFO", "file": "movie_merge.log", "rotate": False, "http_level": "WARNING"},
    "omdb": {
        "base_url": "https://www.omdbapi.com/",
        "api_key_env": "OMDB_API_KEY",
        "min_interval_seconds": 0.25,
        "rate_limit_delay_seconds": 5.0,
        "max_attempts": 3,
        "backoff_seconds": 1.0,
        "max_backoff_seconds": 8.0,
        "timeout_seconds": 15,
    },
    "resolver": {"min_confidence": "medium", "year_tolerance": 2},
    "pipeline": {"checkpoint_every": 10, "failure_report_cap": 20},
    "dedupe": {"threshold": 0.85},
    "archive": {
        "base_url": "https://archive.org/services/search/v1/scrape",
        "collections": ["feature_films"],
        "page_size": 100,
        "timeout_seconds": 30,
    },
    "youtube": {
        "base_url": "https://www.googleapis.com/youtube/v3",
        "api_key_env": "YOUTUBE_API_KEY",
        "min_duration_seconds": 2400,
        "timeout_seconds": 30,
        "channels": [],
    },
}


def _merge(base, overlay):
    merged = dict(base)
    for key, value in (overlay or {}).items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class MMConfig:
    def __init__(self, data):
        data = _merge(DEFAULTS, data)
        self.paths = data.get("paths", {})
        self.logging = data.get("logging", {})
        self.omdb = data.get("omdb", {})
        self.resolver = data.get("resolver", {})
        self.pipeline = data.get("pipeline", {})
        self.dedupe = data.get("dedupe", {})
        self.archive = data.get("archive", {})
        self.youtube = data.get("youtube", {})
        self.debug = data.get("debug", False)

    def secret(self, section: str, env_key: str = "api_key_env") -> str:
        """Read the API key named by ``<section>.<env_key>`` from the environment."""
        env_name = getattr(self, section, {}).get(env_key)
        value = os.environ.get(env_name or "", "").strip()
        if not value:
            raise ConfigurationError(f"{env_name} environment variable is required")
        return value

    def path(self, name: str) -> Path:
        return Path(self.paths.get(name, DEFAULTS["paths"].get(name, name)))


def load_config(path=None) -> 'MMConfig':
    explicit = path or os.environ.get(CONFIG_ENV)
    config_path = Path(explicit) if explicit else CONFIG_PATH

    if not config_path.exists():
        if explicit:
            raise ConfigurationError(f"Config file not found: {config_path}")
        return MMConfig({})

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid config file {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must hold a mapping")

    return MMConfig(data)

_config_cache = None

def get_config() -> 'MMConfig':
    global _config_cache
    if _config_cache is None:
        _config_cache = load_config()
    return _config_cache
