"""
Archive.org collection scraper (Scrape API, cursor paging).
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterator, Optional

import requests

from movie_merge.entities.models import ArchiveSource, CanonicalEntry
from movie_merge.identity.keys import temporary_key_for
from movie_merge.logging import get_logger
from movie_merge.scrapers.http import get_json
from movie_merge.utils import utc_now_iso

log = get_logger("scrapers.archive")

SCRAPE_URL = "https://archive.org/services/search/v1/scrape"
SCRAPE_FIELDS = "identifier,title,description,date,year,downloads,collection,language,runtime,length"
MIN_PAGE_SIZE = 100

YEAR_RE = re.compile(r"\b(19|20)\d{2}\b")


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def extract_year(date: Optional[str]) -> Optional[int]:
    if not date:
        return None
    m = YEAR_RE.search(str(date))
    return int(m.group(0)) if m else None


def parse_duration(runtime: Any) -> Optional[int]:
    """Seconds from ``"5400"``, ``"1:30:00"`` or ``"90:00"``; None otherwise."""
    value = _first(runtime)
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return int(text)

    parts = text.split(":")
    if not all(p.strip().isdigit() for p in parts):
        return None
    nums = [int(p) for p in parts]
    if len(nums) == 3:
        return nums[0] * 3600 + nums[1] * 60 + nums[2]
    if len(nums) == 2:
        return nums[0] * 60 + nums[1]
    return None


def build_archive_entry(item: Dict[str, Any], collection: str, now: Optional[str] = None) -> CanonicalEntry:
    """Turn one scrape API item into a temporary-keyed entry."""
    identifier = str(item["identifier"])
    title = _first(item.get("title")) or identifier
    description = item.get("description")
    if isinstance(description, list):
        description = "\n".join(str(d) for d in description)
    release_date = _first(item.get("date")) or _first(item.get("year"))
    downloads = item.get("downloads")

    source = ArchiveSource(
        id=identifier,
        url=f"https://archive.org/details/{identifier}",
        title=str(title),
        description=description or None,
        collection=collection,
        downloads=int(downloads) if isinstance(downloads, (int, float)) else None,
        thumbnail=f"https://archive.org/services/img/{identifier}",
        duration=parse_duration(item.get("runtime") or item.get("length")),
        release_date=str(release_date) if release_date else None,
        language=_first(item.get("language")),
        added_at=now or utc_now_iso(),
    )
    return CanonicalEntry(
        key=temporary_key_for(source),
        titles=[str(title)],
        year=extract_year(str(release_date) if release_date else None),
        sources=[source],
    )


class ArchiveScraper:
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        base_url: str = SCRAPE_URL,
        page_size: int = MIN_PAGE_SIZE,
        timeout: float = 30,
    ):
        self.session = session or requests.Session()
        self.base_url = base_url
        # the scrape API rejects counts below 100
        self.page_size = max(MIN_PAGE_SIZE, int(page_size))
        self.timeout = timeout

    def iter_items(self, collection: str, limit: Optional[int] = None) -> Iterator[Dict[str, Any]]:
        cursor: Optional[str] = None
        yielded = 0
        while True:
            params = {
                "q": f"mediatype:movies AND collection:{collection}",
                "fields": SCRAPE_FIELDS,
                "count": str(self.page_size),
            }
            if cursor:
                params["cursor"] = cursor

            data = get_json(self.session, self.base_url, params, timeout=self.timeout)
            items = data.get("items") or []
            log.info("Archive %s: page of %d items (total=%s)", collection, len(items), data.get("total"))

            for item in items:
                if not isinstance(item, dict) or not item.get("identifier"):
                    continue
                yield item
                yielded += 1
                if limit is not None and yielded >= limit:
                    return

            cursor = data.get("cursor")
            if not cursor or not items:
                return

    def iter_entries(self, collection: str, limit: Optional[int] = None) -> Iterator[CanonicalEntry]:
        for item in self.iter_items(collection, limit):
            yield build_archive_entry(item, collection)
