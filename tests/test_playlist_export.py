"""Tests for the playlist PDF and CSV renderers."""

from __future__ import annotations

import csv
import io
from datetime import date

import pdfplumber
import pytest

from playlist_export import (
    build_csv,
    build_playlist_pdf,
    export_filename,
    export_subtitle,
    export_title,
)


def _pdf_text(data: bytes) -> tuple[int, str]:
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        return len(pdf.pages), "\n".join(page.extract_text() or "" for page in pdf.pages)


def test_pdf_contains_title_and_rows(make_event) -> None:
    rows = [
        make_event(0, artist="Anitta", title="Envolver", clock_time="14:32"),
        make_event(1, artist="Earth, Wind & Fire", title="September", clock_time="14:28"),
    ]

    data = build_playlist_pdf(rows, export_title("Metropolitana FM"), "Date: 2026-10-17")

    assert data.startswith(b"%PDF")
    pages, text = _pdf_text(data)
    assert pages == 1
    assert "PLAYLIST REPORT - METROPOLITANA FM" in text
    assert "Earth, Wind & Fire" in text
    assert "14:28" in text


def test_long_reports_span_pages(make_event) -> None:
    rows = [make_event(i, artist=f"Artist {i:03d}") for i in range(120)]

    pages, text = _pdf_text(build_playlist_pdf(rows, "PLAYLIST REPORT", "Date: All dates"))

    assert pages > 1
    assert "Artist 000" in text
    assert "Artist 119" in text


def test_pdf_refuses_empty_rows() -> None:
    with pytest.raises(ValueError):
        build_playlist_pdf([], "PLAYLIST REPORT", "")


def test_csv_export(make_event) -> None:
    rows = [make_event(0, artist="Earth, Wind & Fire", title="September")]

    parsed = list(csv.reader(io.StringIO(build_csv(rows))))

    assert parsed[0] == ["Station", "Date", "Time", "Artist", "Title"]
    assert parsed[1] == ["Metropolitana FM", "2026-10-17", "14:32", "Earth, Wind & Fire", "September"]


def test_export_labels() -> None:
    assert export_title("") == "PLAYLIST REPORT"
    assert export_filename("") == "Playlist_All.pdf"
    assert export_filename("2026-10-17", "csv") == "Playlist_2026-10-17.csv"
    assert export_subtitle("", "", date(2026, 10, 17)) == (
        "Date: All dates | Generated on: 2026-10-17"
    )
    assert export_subtitle("2026-10-17", "09", date(2026, 10, 17)) == (
        "Date: 2026-10-17 | Hour: 09:00 | Generated on: 2026-10-17"
    )
