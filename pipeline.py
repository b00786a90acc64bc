"""
pipeline.py  —  Playlog Ingestion Pipeline

Turns the raw CSV export of the airplay sheet into a sorted, read-only set of
play events for the dashboard and the playlist export.

  Stage 1  Row tokenization
           Character scan with quote toggling, so "Artist, Jr." stays one cell.
           Blank lines are dropped, ragged rows are tolerated.

  Stage 2  Header resolution
           Header cells are lowercased and stripped of accents, then each
           logical field (station, artist, title, played_at) is matched by
           exact synonym first and substring second. Missing artist or title
           is the only fatal condition.

  Stage 3  Event normalization
           Timestamp parsers are tried in a fixed order:
             '-' -> '/' generic parse  ->  verbatim-text generic parse  ->  manual split
           The UTC station gets its offset removed once. Dates are always
           stored as YYYY-MM-DD. Placeholder and header-echo rows are dropped.

  Stage 4  Collection
           Stable sort by recency (newest first) and an atomic swap of the
           whole set per ingestion cycle.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from config import DashboardConfig
from logging_config import get_logger

log = get_logger(__name__)

# Demo feed used when no PLAYLOG_FEED_URL is configured
SAMPLE_FEED = """radio,artista,musica,tocou_em
Metropolitana FM,Anitta,Envolver,17/10/2026 14:32:10
Metropolitana FM,"Earth, Wind & Fire",September,17/10/2026 14:28:45
Metropolitana FM,Desconhecido,Vinheta,17/10/2026 14:27:00
Metropolitana FM,Dua Lipa,Houdini,17/10/2026 14:24:03

Rádio Cidade,Foo Fighters,Everlong,2026-10-17T17:20:00
Rádio Cidade,Pitty,Me Adora,2026-10-17T17:16:30
Metropolitana FM,Ludmilla,Sou Má,17/10/2026 13:58:51
Metropolitana FM,The Weeknd,Blinding Lights,16/10/2026 23:51:12
Metropolitana FM,Harry Styles,As It Was,16/10/2026 23:47:40
,Marisa Monte,Ainda Bem,16/10/2026 22:10:00
Metropolitana FM,Jorge & Mateus,Propaganda,
"""

DATE_SENTINEL = "---"
TIME_SENTINEL = "00:00"
DEFAULT_TITLE = "Sem Título"

# Normalized artist values that mark a row as filler rather than a real play
_PLACEHOLDER_ARTISTS = {"", "unknown", "desconhecido"}


class FeedError(RuntimeError):
    """The feed cannot be turned into a collection this cycle."""


class HeaderResolutionError(FeedError):
    """Artist or title column could not be located in the header row."""

    def __init__(self, missing: list[str], detected: list[str]):
        self.missing = missing
        self.detected = detected
        super().__init__(
            f"Required columns not found ({', '.join(missing)}). "
            f"Detected header cells: {', '.join(detected) or '(none)'}"
        )


# ══════════════════════════════════════════════════════════════════════════════
# Stage 1  Row tokenization
# ══════════════════════════════════════════════════════════════════════════════

_LINE_BREAK = re.compile(r"\r?\n")


def _clean_cell(value: str) -> str:
    """Trim and remove one layer of wrapping quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        value = value[1:-1].replace('""', '"').strip()
    return value


def tokenize_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one line on *delimiter*, ignoring delimiters inside quotes."""
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
            current.append(char)
        elif char == delimiter and not in_quotes:
            cells.append(_clean_cell("".join(current)))
            current = []
        else:
            current.append(char)

    cells.append(_clean_cell("".join(current)))
    return cells


def tokenize(text: str, delimiter: str = ",") -> list[list[str]]:
    """Split raw feed text into rows of cells; blank lines never become rows."""
    return [
        tokenize_line(line, delimiter)
        for line in _LINE_BREAK.split(text)
        if line.strip()
    ]


# ══════════════════════════════════════════════════════════════════════════════
# Stage 2  Header resolution
# ══════════════════════════════════════════════════════════════════════════════

FIELD_SYNONYMS = {
    "station":   ("radio", "emissora", "station"),
    "artist":    ("artista", "artist"),
    "title":     ("musica", "titulo", "track", "title"),
    "played_at": ("tocou_em", "data", "hora", "time", "horario", "played_at"),
}

REQUIRED_FIELDS = ("artist", "title")


def normalize_label(text: str) -> str:
    """Lowercase, strip diacritics and surrounding whitespace."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c)).strip()


@dataclass(frozen=True)
class HeaderMap:
    station:   Optional[int]
    artist:    Optional[int]
    title:     Optional[int]
    played_at: Optional[int]
    labels:    tuple[str, ...] = ()

    def cell(self, row: list[str], field: str) -> str:
        """Cell for *field* in *row*; '' for unresolved fields and short rows."""
        index = getattr(self, field)
        if index is None or index >= len(row):
            return ""
        return row[index]

    def label(self, field: str) -> str:
        index = getattr(self, field)
        if index is None or index >= len(self.labels):
            return ""
        return self.labels[index]


def _find_column(labels: list[str], synonyms: Iterable[str]) -> Optional[int]:
    synonyms = tuple(synonyms)
    for synonym in synonyms:
        if synonym in labels:
            return labels.index(synonym)
    for synonym in synonyms:
        for index, label in enumerate(labels):
            if synonym in label:
                return index
    return None


def resolve_header(header_row: list[str]) -> HeaderMap:
    """
    Map logical fields to column indices.
    Raises HeaderResolutionError when artist or title is missing.
    """
    labels = [normalize_label(cell) for cell in header_row]
    resolved = {field: _find_column(labels, synonyms)
                for field, synonyms in FIELD_SYNONYMS.items()}

    missing = [f for f in REQUIRED_FIELDS if resolved[f] is None]
    if missing:
        raise HeaderResolutionError(missing, labels)

    return HeaderMap(labels=tuple(labels), **resolved)


# ══════════════════════════════════════════════════════════════════════════════
# Stage 3  Event normalization
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PlayEvent:
    id:            str
    station:       str
    artist:        str
    title:         str
    calendar_date: str
    clock_time:    str
    sort_key:      float
    raw_played_at: str = ""


@dataclass(frozen=True)
class ParsedStamp:
    calendar_date: str
    clock_time:    str
    sort_key:      float


# Year-first only: day/month order is never guessed here
_GENERIC_FORMATS = [
    "%Y/%m/%d %H:%M:%S", "%Y/%m/%d %H:%M", "%Y/%m/%d %H:%M:%S.%f",
    "%Y/%m/%dT%H:%M:%S", "%Y/%m/%dT%H:%M", "%Y/%m/%dT%H:%M:%S.%f",
    "%Y/%m/%d",
]

_ISO_SEPARATOR = re.compile(r"\dT\d")


def _generic_parse(text: str) -> Optional[datetime]:
    text = text.strip()
    if not text:
        return None
    for fmt in _GENERIC_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    # Offsets are dropped: the wall clock as written is what the sheet means
    return parsed.replace(tzinfo=None)


def _parse_slashed(raw: str) -> Optional[datetime]:
    return _generic_parse(raw.replace("-", "/"))


def _parse_verbatim(raw: str) -> Optional[datetime]:
    return _generic_parse(raw)


TIMESTAMP_STRATEGIES: tuple[Callable[[str], Optional[datetime]], ...] = (
    _parse_slashed,
    _parse_verbatim,
)


def _stamp_from_moment(moment: datetime) -> ParsedStamp:
    return ParsedStamp(
        calendar_date=moment.strftime("%Y-%m-%d"),
        clock_time=moment.strftime("%H:%M"),
        sort_key=moment.replace(tzinfo=timezone.utc).timestamp(),
    )


def _reconstruct(date_token: str, time_token: str) -> Optional[datetime]:
    """DD/MM/YYYY + HH:MM  ->  YYYY/MM/DD HH:MM"""
    parts = date_token.replace("-", "/").split("/")
    if len(parts) != 3 or not time_token:
        return None
    day, month, year = parts
    try:
        return datetime.strptime(f"{year}/{month}/{day} {time_token}", "%Y/%m/%d %H:%M")
    except ValueError:
        return None


def _canonical_date(date_token: str) -> str:
    if not date_token:
        return DATE_SENTINEL
    try:
        return datetime.strptime(date_token.replace("-", "/"), "%d/%m/%Y").strftime("%Y-%m-%d")
    except ValueError:
        return date_token


def _parse_manual(raw: str) -> ParsedStamp:
    date_token, _, time_token = raw.strip().partition(" ")
    time_token = time_token.strip()

    # Hours and minutes only, so "9:05:00" rebuilds as well as "09:05:00"
    moment = _reconstruct(date_token, ":".join(time_token.split(":")[:2]))
    if moment is not None:
        return _stamp_from_moment(moment)

    return ParsedStamp(
        calendar_date=_canonical_date(date_token),
        clock_time=time_token[:5] or TIME_SENTINEL,
        sort_key=0.0,
    )


def parse_played_at(raw: str, correction_hours: int = 0) -> ParsedStamp:
    """
    Resolve a played-at cell into date, time and sort key. Never raises.

    correction_hours is subtracted from machine-readable (ISO 'T') stamps that
    a generic parser understood; the manual fallback is never shifted.
    """
    for strategy in TIMESTAMP_STRATEGIES:
        moment = strategy(raw)
        if moment is None:
            continue
        if correction_hours and _ISO_SEPARATOR.search(raw):
            try:
                moment -= timedelta(hours=correction_hours)
            except OverflowError:
                break
        return _stamp_from_moment(moment)
    return _parse_manual(raw)


def normalize_row(
    row: list[str],
    header: HeaderMap,
    config: DashboardConfig,
    position: int,
) -> PlayEvent:
    station = header.cell(row, "station") or config.primary_station
    raw_played_at = header.cell(row, "played_at")

    correction = 0
    if config.utc_station and station == config.utc_station:
        correction = config.utc_offset_hours
    stamp = parse_played_at(raw_played_at, correction)

    return PlayEvent(
        id=f"row-{position}",
        station=station,
        artist=header.cell(row, "artist"),
        title=header.cell(row, "title") or DEFAULT_TITLE,
        calendar_date=stamp.calendar_date,
        clock_time=stamp.clock_time,
        sort_key=stamp.sort_key,
        raw_played_at=raw_played_at,
    )


def is_excluded(event: PlayEvent, header: HeaderMap) -> bool:
    """Placeholder artists and repeated header rows are not plays."""
    artist = normalize_label(event.artist)
    return artist in _PLACEHOLDER_ARTISTS or artist == header.label("artist")


def normalize_rows(
    rows: list[list[str]],
    header: HeaderMap,
    config: DashboardConfig,
) -> list[PlayEvent]:
    events: list[PlayEvent] = []
    dropped = 0
    for position, row in enumerate(rows):
        event = normalize_row(row, header, config, position)
        if is_excluded(event, header):
            dropped += 1
            continue
        events.append(event)

    if dropped:
        log.info("rows_dropped", dropped=dropped, kept=len(events))
    return events


# ══════════════════════════════════════════════════════════════════════════════
# Stage 4  Collection
# ══════════════════════════════════════════════════════════════════════════════

class PlayCollection:
    """
    All play events of the current ingestion cycle, newest first.

    The stored tuple is swapped in one assignment, so a reader holding a
    snapshot from all() keeps a consistent view while replace() runs.
    """

    def __init__(self, events: Iterable[PlayEvent] = ()):
        self._events: tuple[PlayEvent, ...] = ()
        if events:
            self.replace(events)

    def replace(self, events: Iterable[PlayEvent]) -> None:
        # sorted() is stable with reverse=True, so equal keys keep row order.
        # Unknown recency (0) goes last even below pre-1970 keys.
        self._events = tuple(sorted(
            events, key=lambda e: (e.sort_key != 0, e.sort_key), reverse=True,
        ))

    def all(self) -> tuple[PlayEvent, ...]:
        return self._events

    def __len__(self) -> int:
        return len(self._events)

    def stations(self) -> list[str]:
        """Distinct stations in first-seen (recency) order."""
        return list(dict.fromkeys(e.station for e in self._events))

    def distinct_dates(self, station: str = "") -> list[str]:
        station = station.strip()
        dates = {e.calendar_date for e in self._events
                 if not station or e.station.strip() == station}
        return sorted(dates, reverse=True)

    def latest_date(self, station: str = "") -> str:
        dates = self.distinct_dates(station)
        return dates[0] if dates else ""


# ══════════════════════════════════════════════════════════════════════════════
# Orchestrator
# ══════════════════════════════════════════════════════════════════════════════

def parse_feed(raw_text: str, config: DashboardConfig) -> list[PlayEvent]:
    """
    Run stages 1-3 over one feed body.
    Raises FeedError for feeds without data rows and HeaderResolutionError
    for unusable headers; row-level problems never raise.
    """
    rows = tokenize(raw_text, config.delimiter)
    if len(rows) < 2:
        raise FeedError(
            "The feed looks empty: expected a header row and at least one data row."
        )
    header = resolve_header(rows[0])
    return normalize_rows(rows[1:], header, config)
