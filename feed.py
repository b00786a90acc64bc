"""
feed.py  —  Feed retrieval, ingestion cycles and cover art

  fetch_feed_text      GET the published sheet export, cache-busted every call
  run_ingestion_cycle  fetch -> parse -> replace, with trigger-aware error surfacing
  lookup_cover_art     iTunes search for a cover, through an explicit CoverArtCache

A cycle that fails leaves the previous collection in place. Timer cycles never
surface errors to the dashboard; they are only logged. Responses are applied
in completion order, so a slow stale response can overwrite a newer one until
the next cycle.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from config import DashboardConfig
from logging_config import get_logger
from pipeline import SAMPLE_FEED, FeedError, PlayCollection, parse_feed

log = get_logger(__name__)

TRIGGER_INITIAL = "initial"
TRIGGER_USER = "user"
TRIGGER_TIMER = "timer"

ITUNES_SEARCH_URL = "https://itunes.apple.com/search"


# ── Feed retrieval ─────────────────────────────────────────────────────────────

def fetch_feed_text(url: str, timeout: float, session=None) -> str:
    """Download the feed body. Raises FeedError on transport or HTTP failure."""
    http = session or requests
    try:
        response = http.get(
            url,
            params={"cache_bust": int(time.time() * 1000)},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise FeedError(f"Could not reach the playlog feed: {e}") from e

    if not response.ok:
        raise FeedError(
            f"The playlog feed answered HTTP {response.status_code}. "
            "Check that the sheet is published to the web as CSV."
        )

    text = response.text
    log.info("feed_fetched", url=url, bytes=len(text))
    return text


def load_raw_text(config: DashboardConfig, session=None) -> str:
    if not config.feed_url:
        return SAMPLE_FEED
    return fetch_feed_text(config.feed_url, config.request_timeout, session=session)


# ── Ingestion cycle ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CycleResult:
    trigger:       str
    ok:            bool
    event_count:   int = 0
    error:         Optional[str] = None
    surface_error: bool = False


def run_ingestion_cycle(
    collection: PlayCollection,
    config: DashboardConfig,
    trigger: str = TRIGGER_USER,
    fetch: Optional[Callable[[DashboardConfig], str]] = None,
) -> CycleResult:
    """
    One fetch-parse-normalize-replace pass.

    FeedError (unreachable feed, bad status, empty sheet, unusable header) is
    caught here and reported in the result; the collection is only replaced
    after the whole feed parsed.
    """
    fetch = fetch or load_raw_text
    try:
        raw_text = fetch(config)
        events = parse_feed(raw_text, config)
    except FeedError as e:
        surface = trigger != TRIGGER_TIMER
        log.error("ingestion_failed", trigger=trigger, surfaced=surface, error=str(e))
        return CycleResult(trigger=trigger, ok=False, error=str(e), surface_error=surface)

    collection.replace(events)
    log.info("ingestion_completed", trigger=trigger, events=len(collection))
    return CycleResult(trigger=trigger, ok=True, event_count=len(collection))


# ── Cover art ──────────────────────────────────────────────────────────────────

def cover_key(artist: str, title: str) -> str:
    return f"{artist} {title}".lower().strip()


class CoverArtCache:
    """
    Artist+title -> cover URL (or None for "no cover found").
    Owned by the dashboard session and passed to lookup_cover_art.
    max_entries=None keeps every entry; otherwise least recently used go first.

    Failed lookups are remembered for failure_ttl seconds so reruns inside
    that window skip the network instead of waiting on it again.
    """

    def __init__(
        self,
        max_entries: Optional[int] = 500,
        failure_ttl: float = 120.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.failure_ttl = failure_ttl
        self._clock = clock
        self._entries: OrderedDict[str, Optional[str]] = OrderedDict()
        self._failed_at: dict[str, float] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[str]:
        value = self._entries.get(key)
        if key in self._entries:
            self._entries.move_to_end(key)
        return value

    def mark_failed(self, key: str) -> None:
        self._failed_at[key] = self._clock()

    def recently_failed(self, key: str) -> bool:
        failed_at = self._failed_at.get(key)
        if failed_at is None:
            return False
        if self._clock() - failed_at >= self.failure_ttl:
            del self._failed_at[key]
            return False
        return True

    def put(self, key: str, url: Optional[str]) -> None:
        self._failed_at.pop(key, None)
        self._entries[key] = url
        self._entries.move_to_end(key)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)


def lookup_cover_art(
    artist: str,
    title: str,
    cache: CoverArtCache,
    session=None,
    timeout: float = 5.0,
) -> Optional[str]:
    """
    Cover image URL for a track, or None.
    Network failures return None and are only retried once the cache's
    failure_ttl has passed.
    """
    key = cover_key(artist, title)
    if key in cache:
        return cache.get(key)
    if cache.recently_failed(key):
        return None

    http = session or requests
    try:
        response = http.get(
            ITUNES_SEARCH_URL,
            params={"term": key, "entity": "song", "limit": 1},
            timeout=timeout,
        )
        response.raise_for_status()
        results = response.json().get("results") or []
    except (requests.RequestException, ValueError) as e:
        log.warning("cover_art_lookup_failed", artist=artist, title=title, error=str(e))
        cache.mark_failed(key)
        return None

    url = results[0].get("artworkUrl100") if results else None
    if url:
        url = url.replace("100x100", "400x400")
    cache.put(key, url)
    return url
