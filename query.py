"""
query.py  —  Filtering, pagination and export selection

The dashboard and the playlist export read the same collection through
different criteria:

  PlayQuery     station + date + hour + free-text search   (on-screen list)
  ExportQuery   station + date + export hour               (report rows, never search)

Filtering keeps the collection order (newest first). Pagination is a
presentation-time slice handled by PageCursor; the filtered view itself is
never truncated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from config import DEFAULT_PAGE_SIZE
from logging_config import get_logger
from pipeline import PlayEvent

log = get_logger(__name__)


class EmptyExportError(RuntimeError):
    """The export criteria match no rows; no document should be produced."""


@dataclass(frozen=True)
class PlayQuery:
    station:       str = ""
    calendar_date: str = ""
    hour:          str = ""
    search:        str = ""


@dataclass(frozen=True)
class ExportQuery:
    station:       str = ""
    calendar_date: str = ""
    hour:          str = ""

    def as_play_query(self) -> PlayQuery:
        return PlayQuery(
            station=self.station,
            calendar_date=self.calendar_date,
            hour=self.hour,
        )


def hour_options() -> list[str]:
    """'00' .. '23' for the hour selector."""
    return [f"{h:02d}" for h in range(24)]


def matches(event: PlayEvent, query: PlayQuery) -> bool:
    station = query.station.strip()
    if station and event.station.strip() != station:
        return False
    if query.calendar_date and event.calendar_date != query.calendar_date:
        return False
    if query.hour and not event.clock_time.startswith(query.hour):
        return False
    if query.search:
        haystack = (event.artist + event.title).lower()
        if query.search.lower() not in haystack:
            return False
    return True


def filter_events(events: Iterable[PlayEvent], query: PlayQuery) -> list[PlayEvent]:
    return [e for e in events if matches(e, query)]


def is_now_playing(query: PlayQuery, position: int) -> bool:
    """
    Whether the row at *position* of a filtered view is framed as on air.

    Only the first row qualifies, and only while the view is still "latest
    plays": a search term or an hour filter turns it into a result list.
    """
    return position == 0 and not query.search and not query.hour


class PageCursor:
    """How many rows of the filtered view are visible ("load more" pagination)."""

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE, station: str = ""):
        self.page_size = page_size
        self.visible = page_size
        self.station = station

    def show_more(self) -> int:
        self.visible += self.page_size
        return self.visible

    def reset(self) -> None:
        self.visible = self.page_size

    def sync_station(self, station: str) -> bool:
        """Track the station filter; a change resets the cursor. Returns True on reset."""
        if station == self.station:
            return False
        self.station = station
        self.reset()
        return True

    def page(self, view: Sequence[PlayEvent]) -> Sequence[PlayEvent]:
        return view[: self.visible]

    def has_more(self, view: Sequence[PlayEvent]) -> bool:
        return len(view) > self.visible


def select_export_rows(
    events: Iterable[PlayEvent], query: ExportQuery
) -> list[PlayEvent]:
    """
    Rows for the playlist report, in display order.
    Raises EmptyExportError when nothing matches.
    """
    rows = filter_events(events, query.as_play_query())
    if not rows:
        log.info(
            "export_refused",
            station=query.station,
            calendar_date=query.calendar_date,
            hour=query.hour,
        )
        raise EmptyExportError(
            "No matching records to export for the selected station, date and hour."
        )
    return rows
