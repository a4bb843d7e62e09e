"""
YouTube channel scraper (Data API v3).

channel handle -> uploads playlist -> paged playlist items -> video details.
Shorts, trailers, clips, previews and anything shorter than the configured
minimum duration are skipped.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterator, List, Optional

import requests

from movie_merge.core.exceptions import ExternalServiceError
from movie_merge.entities.models import CanonicalEntry, YouTubeSource
from movie_merge.identity.keys import temporary_key_for
from movie_merge.logging import get_logger
from movie_merge.normalization.channel_rules import clean_for_channel, rule_for
from movie_merge.normalization.title_normalizer import extract_year_and_clean_title
from movie_merge.scrapers.http import get_json
from movie_merge.utils import utc_now_iso

log = get_logger("scrapers.youtube")

API_URL = "https://www.googleapis.com/youtube/v3"
MAX_RESULTS = 50
DEFAULT_MIN_DURATION = 40 * 60

EXCLUDED_TITLE_WORDS = ("#shorts", "trailer", "clip", "preview")
ISO_DURATION_RE = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def parse_iso_duration(value: Optional[str]) -> Optional[int]:
    """``PT1H32M10S`` -> 5530. None for missing or malformed values."""
    if not value:
        return None
    m = ISO_DURATION_RE.match(value.strip())
    if not m:
        return None
    parts = {k: int(v) if v else 0 for k, v in m.groupdict().items()}
    return parts["days"] * 86400 + parts["hours"] * 3600 + parts["minutes"] * 60 + parts["seconds"]


def is_excluded_title(title: str) -> bool:
    lowered = (title or "").lower()
    return any(word in lowered for word in EXCLUDED_TITLE_WORDS)


def _best_thumbnail(snippet: Dict[str, Any]) -> Optional[str]:
    thumbs = snippet.get("thumbnails") or {}
    for size in ("maxres", "high", "medium", "default"):
        url = (thumbs.get(size) or {}).get("url")
        if url:
            return url
    return None


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def build_youtube_entry(video: Dict[str, Any], channel: Dict[str, Any], now: Optional[str] = None) -> CanonicalEntry:
    """
    Turn a ``videos.list`` item into a temporary-keyed entry. The channel's
    title rule is applied and a title-embedded year becomes ``releaseYear``.
    """
    snippet = video.get("snippet") or {}
    details = video.get("contentDetails") or {}
    stats = video.get("statistics") or {}
    video_id = str(video["id"])
    raw_title = snippet.get("title") or video_id

    handle = channel.get("id")
    cleaned = clean_for_channel(raw_title, handle)
    title, year = extract_year_and_clean_title(cleaned)

    rule = rule_for(handle)
    source = YouTubeSource(
        id=video_id,
        url=f"https://www.youtube.com/watch?v={video_id}",
        title=raw_title,
        description=snippet.get("description") or None,
        channel_name=snippet.get("channelTitle") or (rule.channel_name if rule else handle),
        channel_id=snippet.get("channelId"),
        release_year=year,
        language=channel.get("language"),
        duration=parse_iso_duration(details.get("duration")),
        published_at=snippet.get("publishedAt"),
        view_count=_as_int(stats.get("viewCount")),
        thumbnail=_best_thumbnail(snippet),
        added_at=now or utc_now_iso(),
    )
    return CanonicalEntry(
        key=temporary_key_for(source),
        titles=[title],
        year=year,
        sources=[source],
    )


class YouTubeScraper:
    def __init__(
        self,
        api_key: str,
        session: Optional[requests.Session] = None,
        *,
        base_url: str = API_URL,
        min_duration_seconds: int = DEFAULT_MIN_DURATION,
        timeout: float = 30,
    ):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.min_duration_seconds = min_duration_seconds
        self.timeout = timeout

    def _get(self, resource: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return get_json(
            self.session,
            f"{self.base_url}/{resource}",
            {**params, "key": self.api_key},
            timeout=self.timeout,
        )

    def resolve_channel(self, channel: str) -> Dict[str, Any]:
        """Look up a channel by ``@handle`` or ``UC...`` id."""
        params: Dict[str, Any] = {"part": "snippet,contentDetails"}
        if channel.startswith("UC"):
            params["id"] = channel
        else:
            params["forHandle"] = channel if channel.startswith("@") else f"@{channel}"

        items = self._get("channels", params).get("items") or []
        if not items:
            raise ExternalServiceError(f"Channel not found: {channel}")
        return items[0]

    @staticmethod
    def uploads_playlist(channel: Dict[str, Any]) -> str:
        related = (channel.get("contentDetails") or {}).get("relatedPlaylists") or {}
        return related.get("uploads") or re.sub(r"^UC", "UU", str(channel["id"]))

    def iter_video_ids(self, playlist_id: str) -> Iterator[str]:
        page_token: Optional[str] = None
        page = 0
        while True:
            params: Dict[str, Any] = {
                "part": "contentDetails",
                "playlistId": playlist_id,
                "maxResults": MAX_RESULTS,
            }
            if page_token:
                params["pageToken"] = page_token
            data = self._get("playlistItems", params)
            page += 1
            items = data.get("items") or []
            log.debug("Playlist %s page %d: %d items", playlist_id, page, len(items))
            for item in items:
                video_id = (item.get("contentDetails") or {}).get("videoId")
                if video_id:
                    yield video_id
            page_token = data.get("nextPageToken")
            if not page_token:
                return

    def fetch_videos(self, video_ids: List[str]) -> List[Dict[str, Any]]:
        if not video_ids:
            return []
        data = self._get(
            "videos",
            {"part": "snippet,statistics,contentDetails", "id": ",".join(video_ids[:MAX_RESULTS])},
        )
        return data.get("items") or []

    def keep_video(self, video: Dict[str, Any]) -> bool:
        title = (video.get("snippet") or {}).get("title") or ""
        if is_excluded_title(title):
            return False
        duration = parse_iso_duration((video.get("contentDetails") or {}).get("duration")) or 0
        return duration >= self.min_duration_seconds

    def iter_videos(self, channel: str, limit: Optional[int] = None) -> Iterator[Dict[str, Any]]:
        info = self.resolve_channel(channel)
        playlist = self.uploads_playlist(info)
        log.info("Scraping %s (uploads playlist %s)", channel, playlist)

        yielded = 0
        batch: List[str] = []

        def flush() -> Iterator[Dict[str, Any]]:
            for video in self.fetch_videos(batch):
                if self.keep_video(video):
                    yield video
            batch.clear()

        for video_id in self.iter_video_ids(playlist):
            batch.append(video_id)
            if len(batch) < MAX_RESULTS:
                continue
            for video in flush():
                yield video
                yielded += 1
                if limit is not None and yielded >= limit:
                    return

        for video in flush():
            yield video
            yielded += 1
            if limit is not None and yielded >= limit:
                return

    def iter_entries(self, channel: Dict[str, Any], limit: Optional[int] = None) -> Iterator[CanonicalEntry]:
        for video in self.iter_videos(channel["id"], limit):
            yield build_youtube_entry(video, channel)
