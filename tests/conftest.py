"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import DashboardConfig  # noqa: E402
from pipeline import PlayEvent  # noqa: E402

UTC_STATION = "Rádio Cidade"


@pytest.fixture
def config() -> DashboardConfig:
    return DashboardConfig(
        feed_url="https://example.test/feed.csv",
        primary_station="Metropolitana FM",
        utc_station=UTC_STATION,
    )


@pytest.fixture
def make_event():
    """Factory for PlayEvent values with sensible defaults."""

    def _make(
        position: int = 0,
        station: str = "Metropolitana FM",
        artist: str = "Anitta",
        title: str = "Envolver",
        calendar_date: str = "2026-10-17",
        clock_time: str = "14:32",
        sort_key: float = 0.0,
    ) -> PlayEvent:
        return PlayEvent(
            id=f"row-{position}",
            station=station,
            artist=artist,
            title=title,
            calendar_date=calendar_date,
            clock_time=clock_time,
            sort_key=sort_key,
        )

    return _make


FEED_TEXT = (
    "Radio,Artista,Música,Tocou_Em\r\n"
    "Metropolitana FM,Anitta,Envolver,17/10/2026 14:32:10\r\n"
    'Metropolitana FM,"Earth, Wind & Fire",September,17/10/2026 14:28:45\r\n'
    "\r\n"
    "Metropolitana FM,Desconhecido,Vinheta,17/10/2026 14:27:00\r\n"
    "Rádio Cidade,Foo Fighters,Everlong,2026-10-17T17:20:00\r\n"
    "Metropolitana FM,Dua Lipa,Houdini,16/10/2026 23:51:12\r\n"
    ",Marisa Monte,Ainda Bem,2026-10-16 22:10:00\r\n"
    "Metropolitana FM,Jorge & Mateus,Propaganda,\r\n"
)


@pytest.fixture
def feed_text() -> str:
    return FEED_TEXT
