"""
playlist_export.py
Renders the playlist report for a station/date/hour selection.

  build_playlist_pdf   paginated A4 table (header row repeated on every page)
  build_csv            same rows as CSV text for the download button

Rows arrive already filtered and ordered by query.select_export_rows, which
refuses empty selections before anything is rendered.

Run: python playlist_export.py
Output: sample_playlist.pdf (built from the demo feed)
"""

from __future__ import annotations

import csv
import io
from datetime import date
from typing import Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import (
    HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle,
)

from pipeline import PlayEvent

OUTPUT = "sample_playlist.pdf"

EXPORT_COLUMNS = ["Date", "Time", "Artist", "Title"]

GOLD = "#F5C518"
INK = "#1a1a1a"


def export_title(station: str) -> str:
    return f"PLAYLIST REPORT - {station.upper()}" if station else "PLAYLIST REPORT"


def export_subtitle(calendar_date: str, hour: str, generated: Optional[date] = None) -> str:
    generated = generated or date.today()
    parts = [f"Date: {calendar_date or 'All dates'}"]
    if hour:
        parts.append(f"Hour: {hour}:00")
    parts.append(f"Generated on: {generated.isoformat()}")
    return " | ".join(parts)


def export_filename(calendar_date: str, extension: str = "pdf") -> str:
    label = calendar_date.replace("/", "-") if calendar_date else "All"
    return f"Playlist_{label}.{extension}"


def build_playlist_pdf(rows: Sequence[PlayEvent], title: str, subtitle: str) -> bytes:
    if not rows:
        raise ValueError("build_playlist_pdf needs at least one row")

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=1.8 * cm,
        rightMargin=1.8 * cm,
        topMargin=1.8 * cm,
        bottomMargin=1.8 * cm,
        title=title,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "PlaylistTitle",
        parent=styles["Heading1"],
        fontSize=16,
        spaceAfter=4,
        alignment=TA_LEFT,
        textColor=colors.HexColor(INK),
    )
    sub_style = ParagraphStyle(
        "PlaylistSub",
        parent=styles["Normal"],
        fontSize=9,
        textColor=colors.grey,
        spaceAfter=4,
    )
    cell_style = ParagraphStyle(
        "PlaylistCell",
        parent=styles["Normal"],
        fontSize=8,
        leading=10,
    )

    story = [
        Paragraph(escape(title), title_style),
        Paragraph(escape(subtitle), sub_style),
        Spacer(1, 0.2 * cm),
        HRFlowable(width="100%", thickness=1, color=colors.HexColor(GOLD)),
        Spacer(1, 0.3 * cm),
    ]

    table_data = [EXPORT_COLUMNS]
    for event in rows:
        table_data.append([
            event.calendar_date,
            event.clock_time,
            Paragraph(escape(event.artist), cell_style),
            Paragraph(escape(event.title), cell_style),
        ])

    col_widths = [2.6 * cm, 1.6 * cm, 6.0 * cm, 7.2 * cm]
    tbl = Table(table_data, colWidths=col_widths, repeatRows=1)
    tbl.setStyle(TableStyle([
        # Header
        ("BACKGROUND",    (0, 0), (-1, 0), colors.HexColor(INK)),
        ("TEXTCOLOR",     (0, 0), (-1, 0), colors.HexColor(GOLD)),
        ("FONTNAME",      (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE",      (0, 0), (-1, 0), 8),
        ("TOPPADDING",    (0, 0), (-1, 0), 6),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
        # Body
        ("FONTNAME",      (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE",      (0, 1), (-1, -1), 8),
        ("TOPPADDING",    (0, 1), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 1), (-1, -1), 4),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1),
         [colors.HexColor("#f9f9f9"), colors.white]),
        # Grid
        ("GRID",          (0, 0), (-1, -1), 0.4, colors.HexColor("#dddddd")),
        ("VALIGN",        (0, 0), (-1, -1), "MIDDLE"),
    ]))
    story.append(tbl)

    doc.build(story)
    return buf.getvalue()


def build_csv(rows: Sequence[PlayEvent]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["Station"] + EXPORT_COLUMNS)
    for event in rows:
        writer.writerow([
            event.station, event.calendar_date, event.clock_time,
            event.artist, event.title,
        ])
    return buf.getvalue()


if __name__ == "__main__":
    from config import DashboardConfig
    from pipeline import SAMPLE_FEED, PlayCollection, parse_feed
    from query import ExportQuery, select_export_rows

    cfg = DashboardConfig()
    collection = PlayCollection(parse_feed(SAMPLE_FEED, cfg))
    selection = ExportQuery(station=cfg.primary_station)
    export_rows = select_export_rows(collection.all(), selection)

    with open(OUTPUT, "wb") as fh:
        fh.write(build_playlist_pdf(
            export_rows,
            export_title(selection.station),
            export_subtitle(selection.calendar_date, selection.hour),
        ))
    print(f"✓ Sample playlist created: {OUTPUT}")
    print(f"  Rows included: {len(export_rows)}")
