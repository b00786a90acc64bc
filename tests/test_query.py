"""Tests for filtering, now-playing framing, pagination and export selection."""

from __future__ import annotations

import pytest

from pipeline import PlayCollection
from query import (
    EmptyExportError,
    ExportQuery,
    PageCursor,
    PlayQuery,
    filter_events,
    hour_options,
    is_now_playing,
    select_export_rows,
)


@pytest.fixture
def events(make_event):
    return PlayCollection([
        make_event(0, artist="Anitta", title="Envolver", clock_time="14:32", sort_key=9),
        make_event(1, artist="Dua Lipa", title="Houdini", clock_time="14:05", sort_key=8),
        make_event(2, artist="Pitty", title="Me Adora", clock_time="13:58", sort_key=7),
        make_event(3, station="Rádio Cidade", artist="Anitta", title="Girl From Rio",
                   clock_time="14:10", sort_key=6),
        make_event(4, artist="Ludmilla", title="Sou Má", calendar_date="2026-10-16",
                   clock_time="14:50", sort_key=5),
        make_event(5, artist="The Weeknd", title="Blinding Lights",
                   calendar_date="2026-10-16", clock_time="23:51", sort_key=4),
    ]).all()


def test_empty_query_matches_everything_in_order(events) -> None:
    assert filter_events(events, PlayQuery()) == list(events)


def test_station_match_is_trimmed_and_exact(events) -> None:
    view = filter_events(events, PlayQuery(station="  Rádio Cidade "))

    assert [e.title for e in view] == ["Girl From Rio"]
    assert filter_events(events, PlayQuery(station="Rádio")) == []


def test_date_match_is_exact(events) -> None:
    view = filter_events(events, PlayQuery(calendar_date="2026-10-16"))

    assert [e.artist for e in view] == ["Ludmilla", "The Weeknd"]


def test_hour_is_prefix_of_clock_time(events) -> None:
    view = filter_events(events, PlayQuery(hour="14"))

    assert [e.clock_time for e in view] == ["14:32", "14:05", "14:10", "14:50"]


def test_search_spans_artist_and_title(events) -> None:
    assert [e.title for e in filter_events(events, PlayQuery(search="HOUDINI"))] == ["Houdini"]
    # artist and title are searched as one concatenated string
    assert [e.title for e in filter_events(events, PlayQuery(search="piTTYme"))] == ["Me Adora"]


def test_filter_composition_is_intersection(events) -> None:
    station, date, hour, search = "Metropolitana FM", "2026-10-17", "14", "a"
    combined = filter_events(
        events, PlayQuery(station=station, calendar_date=date, hour=hour, search=search)
    )

    singles = [
        set(filter_events(events, PlayQuery(station=station))),
        set(filter_events(events, PlayQuery(calendar_date=date))),
        set(filter_events(events, PlayQuery(hour=hour))),
        set(filter_events(events, PlayQuery(search=search))),
    ]
    assert set(combined) == set.intersection(*singles)
    assert [e.artist for e in combined] == ["Anitta", "Dua Lipa"]


def test_now_playing_only_first_unfiltered_row() -> None:
    assert is_now_playing(PlayQuery(station="X", calendar_date="2026-10-17"), 0)
    assert not is_now_playing(PlayQuery(), 1)
    assert not is_now_playing(PlayQuery(search="anitta"), 0)
    assert not is_now_playing(PlayQuery(hour="14"), 0)


def test_hour_options() -> None:
    options = hour_options()

    assert len(options) == 24
    assert options[0] == "00"
    assert options[9] == "09"
    assert options[-1] == "23"


# ── Pagination ─────────────────────────────────────────────────────────────────

def test_cursor_grows_by_page_size(make_event) -> None:
    view = [make_event(i) for i in range(40)]
    cursor = PageCursor()

    assert len(cursor.page(view)) == 15
    assert cursor.has_more(view)
    cursor.show_more()
    assert len(cursor.page(view)) == 30
    cursor.show_more()
    assert len(cursor.page(view)) == 40
    assert not cursor.has_more(view)


def test_cursor_resets_on_station_change() -> None:
    cursor = PageCursor(station="Metropolitana FM")
    cursor.show_more()
    cursor.show_more()

    assert cursor.sync_station("Metropolitana FM") is False
    assert cursor.visible == 45

    assert cursor.sync_station("Rádio Cidade") is True
    assert cursor.visible == 15


def test_cursor_does_not_truncate_view(make_event) -> None:
    view = [make_event(i) for i in range(20)]
    cursor = PageCursor()

    cursor.page(view)

    assert len(view) == 20


# ── Export selection ───────────────────────────────────────────────────────────

def test_export_applies_station_date_and_hour(events) -> None:
    rows = select_export_rows(
        events,
        ExportQuery(station="Metropolitana FM", calendar_date="2026-10-17", hour="14"),
    )

    assert [e.artist for e in rows] == ["Anitta", "Dua Lipa"]


def test_export_ignores_on_screen_search(events) -> None:
    screen = PlayQuery(station="Metropolitana FM", calendar_date="2026-10-17", search="pitty")
    export = ExportQuery(station=screen.station, calendar_date=screen.calendar_date)

    assert len(filter_events(events, screen)) == 1
    assert len(select_export_rows(events, export)) == 3


def test_empty_export_is_refused(events) -> None:
    with pytest.raises(EmptyExportError):
        select_export_rows(
            events,
            ExportQuery(station="Metropolitana FM", calendar_date="2026-10-17", hour="03"),
        )
