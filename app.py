"""
app.py  —  Radio Playlog Dashboard
Live airplay log with filters, cover art and playlist export.

Run: streamlit run app.py
"""

import html
import time

import pandas as pd
import streamlit as st

from config import ConfigError, DashboardConfig
from feed import (
    TRIGGER_INITIAL, TRIGGER_TIMER, TRIGGER_USER,
    CoverArtCache, lookup_cover_art, run_ingestion_cycle,
)
from pipeline import PlayCollection
from playlist_export import (
    build_csv, build_playlist_pdf, export_filename, export_subtitle, export_title,
)
from query import (
    EmptyExportError, ExportQuery, PageCursor, PlayQuery,
    filter_events, hour_options, is_now_playing, select_export_rows,
)

# ── Page Config ────────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="Playlog Dashboard",
    page_icon="📻",
    layout="centered",
    initial_sidebar_state="expanded",
)

# ── Palette ────────────────────────────────────────────────────────────────────
INK      = "#0f172a"
SLATE    = "#64748b"
MIST     = "#f1f5f9"
WHITE    = "#FFFFFF"
YELLOW   = "#facc15"
SKY      = "#0ea5e9"
RED      = "#ef4444"

# ── Global Styles ──────────────────────────────────────────────────────────────
st.markdown(f"""
<style>
.pl-brand {{
    font-weight: 900;
    font-size: 22px;
    letter-spacing: -0.02em;
    color: {INK};
    line-height: 1;
}}
.pl-eyebrow {{
    font-size: 10px;
    font-weight: 800;
    letter-spacing: 0.2em;
    text-transform: uppercase;
    color: {SLATE};
    margin-top: 4px;
}}
.pl-card {{
    display: flex;
    gap: 16px;
    align-items: center;
    padding: 14px 18px;
    border-radius: 24px;
    background: {WHITE};
    border: 1px solid {MIST};
    margin-bottom: 12px;
}}
.pl-card.live {{
    background: {INK};
    border-left: 8px solid {YELLOW};
}}
.pl-cover {{
    width: 84px; height: 84px;
    flex-shrink: 0;
    border-radius: 16px;
    object-fit: cover;
    background: {MIST};
    display: flex; align-items: center; justify-content: center;
    font-size: 32px; color: {SLATE};
}}
.pl-card.live .pl-cover {{ width: 112px; height: 112px; }}
.pl-title {{ font-weight: 900; text-transform: uppercase; color: {INK}; font-size: 17px; }}
.pl-card.live .pl-title {{ color: {WHITE}; font-size: 21px; }}
.pl-artist {{ font-weight: 700; text-transform: uppercase; color: {SKY}; }}
.pl-card.live .pl-artist {{ color: {YELLOW}; }}
.pl-meta {{ font-size: 11px; font-weight: 700; color: {SLATE}; margin-top: 6px; }}
.pl-live-badge {{
    display: inline-block;
    background: {RED};
    color: {WHITE};
    font-size: 10px;
    font-weight: 900;
    text-transform: uppercase;
    padding: 2px 10px;
    border-radius: 999px;
    margin-bottom: 6px;
}}
.pl-empty {{
    padding: 48px;
    text-align: center;
    border: 4px dashed {MIST};
    border-radius: 32px;
    color: {SLATE};
    font-weight: 900;
    text-transform: uppercase;
    letter-spacing: 0.1em;
}}
.error-box {{
    border: 2px solid #fee2e2;
    border-radius: 24px;
    padding: 20px 24px;
    color: {INK};
    margin-bottom: 16px;
}}
.warn-box {{
    border-left: 4px solid {YELLOW};
    background: #fefce8;
    padding: 10px 14px;
    font-size: 13px;
    color: {INK};
}}
</style>
""", unsafe_allow_html=True)


# ── Config ─────────────────────────────────────────────────────────────────────
try:
    config = DashboardConfig.from_env()
except ConfigError as e:
    st.error(f"Invalid configuration: {e}")
    st.stop()

state = st.session_state


def ingest(trigger: str):
    result = run_ingestion_cycle(state["collection"], config, trigger)
    state["last_refresh"] = time.time()
    if result.ok:
        state["feed_error"] = None
    elif result.surface_error:
        state["feed_error"] = result.error
    return result


# ── First load ─────────────────────────────────────────────────────────────────
if "collection" not in state:
    state["collection"] = PlayCollection()
    state["cursor"] = PageCursor(config.page_size, config.primary_station)
    state["covers"] = CoverArtCache()
    state["feed_error"] = None
    state["station"] = config.primary_station
    first = ingest(TRIGGER_INITIAL)
    if first.ok:
        state["date_filter"] = state["collection"].latest_date(config.primary_station)

collection: PlayCollection = state["collection"]
cursor: PageCursor = state["cursor"]


# ── Helper: one play card ──────────────────────────────────────────────────────
def render_card(event, live: bool):
    cover = lookup_cover_art(
        event.artist, event.title, state["covers"], timeout=config.request_timeout
    )
    if cover:
        cover_html = f'<img class="pl-cover" src="{html.escape(cover)}" alt="Cover" />'
    else:
        cover_html = '<div class="pl-cover">♪</div>'
    badge = '<div class="pl-live-badge">● On air now</div>' if live else ""
    st.markdown(f"""
    <div class="pl-card{' live' if live else ''}">
      {cover_html}
      <div style="min-width:0">
        {badge}
        <div class="pl-title">{html.escape(event.title)}</div>
        <div class="pl-artist">{html.escape(event.artist)}</div>
        <div class="pl-meta">🕒 {html.escape(event.clock_time)} · {html.escape(event.calendar_date)}</div>
      </div>
    </div>
    """, unsafe_allow_html=True)


# ── Sidebar ────────────────────────────────────────────────────────────────────
with st.sidebar:
    st.markdown(f"""
    <div class="pl-brand">{html.escape(config.primary_station.upper())}</div>
    <div class="pl-eyebrow">Director Dashboard</div>
    """, unsafe_allow_html=True)
    st.markdown("<br>", unsafe_allow_html=True)

    stations = collection.stations()
    if config.primary_station not in stations:
        stations.insert(0, config.primary_station)
    if state.get("station") not in stations:
        state["station"] = config.primary_station
    station = st.selectbox("Station", stations, key="station")
    cursor.sync_station(station)

    if st.button("↻  Refresh now", use_container_width=True):
        ingest(TRIGGER_USER)
        st.rerun()

    source = "demo feed" if not config.feed_url else "published sheet"
    st.caption(f"Source: {source} · auto refresh every {config.refresh_seconds}s")


# ── Feed error panel ───────────────────────────────────────────────────────────
if state.get("feed_error"):
    st.markdown(f"""
    <div class="error-box">
      <strong>Sync failed</strong><br>
      <span style="color:{SLATE}">{html.escape(state["feed_error"])}</span>
      <ul style="font-size:12px;color:{SLATE};margin-top:10px">
        <li>File &gt; Share &gt; Publish to web</li>
        <li>Choose "Comma-separated values (.csv)"</li>
        <li>Keep the artist and title columns on the first tab</li>
      </ul>
    </div>
    """, unsafe_allow_html=True)
    if st.button("Reload dashboard"):
        ingest(TRIGGER_USER)
        st.rerun()

# ── Filters ────────────────────────────────────────────────────────────────────
search = st.text_input(
    "Search",
    placeholder="Search by song or artist…",
    key="search",
    label_visibility="collapsed",
)

date_options = [""] + collection.distinct_dates(station)
if state.get("date_filter", "") not in date_options:
    state["date_filter"] = collection.latest_date(station)

col_date, col_hour = st.columns([3, 1])
with col_date:
    date_filter = st.selectbox(
        "Date",
        date_options,
        key="date_filter",
        format_func=lambda d: d or "All dates",
    )
with col_hour:
    hour_filter = st.selectbox(
        "Hour",
        [""] + hour_options(),
        key="hour_filter",
        format_func=lambda h: f"{h}:00" if h else "Any hour",
    )

query = PlayQuery(
    station=station,
    calendar_date=date_filter,
    hour=hour_filter,
    search=search,
)
view = filter_events(collection.all(), query)

# ── Export ─────────────────────────────────────────────────────────────────────
with st.expander("Export playlist", expanded=False):
    export_hour = st.selectbox(
        "Report hour",
        [""] + hour_options(),
        key="export_hour",
        format_func=lambda h: f"{h}:00" if h else "All hours",
    )
    export_query = ExportQuery(station=station, calendar_date=date_filter, hour=export_hour)
    try:
        export_rows = select_export_rows(collection.all(), export_query)
    except EmptyExportError as e:
        st.markdown(f'<div class="warn-box">⚠ {html.escape(str(e))}</div>',
                    unsafe_allow_html=True)
    else:
        pdf_bytes = build_playlist_pdf(
            export_rows,
            export_title(station),
            export_subtitle(date_filter, export_hour),
        )
        col_pdf, col_csv = st.columns(2)
        with col_pdf:
            st.download_button(
                "⬇  Export playlist PDF",
                data=pdf_bytes,
                file_name=export_filename(date_filter),
                mime="application/pdf",
                use_container_width=True,
            )
        with col_csv:
            st.download_button(
                "⬇  CSV",
                data=build_csv(export_rows),
                file_name=export_filename(date_filter, "csv"),
                mime="text/csv",
                use_container_width=True,
            )
        st.caption(f"{len(export_rows)} row(s) in report")

# ── Results ────────────────────────────────────────────────────────────────────
tab_live, tab_table = st.tabs(["Live", "Table"])

with tab_live:
    if view:
        for position, event in enumerate(cursor.page(view)):
            render_card(event, is_now_playing(query, position))
        if cursor.has_more(view):
            if st.button("＋  Load more plays", use_container_width=True):
                cursor.show_more()
                st.rerun()
    else:
        st.markdown('<div class="pl-empty">No plays found</div>', unsafe_allow_html=True)

with tab_table:
    if view:
        df = pd.DataFrame(
            [
                {
                    "Date": e.calendar_date,
                    "Time": e.clock_time,
                    "Artist": e.artist,
                    "Title": e.title,
                }
                for e in view
            ]
        )
        st.dataframe(df, use_container_width=True, hide_index=True)
    else:
        st.markdown('<div class="pl-empty">No plays found</div>', unsafe_allow_html=True)


# ── Background refresh ─────────────────────────────────────────────────────────
@st.fragment(run_every=config.refresh_seconds)
def background_refresh():
    if time.time() - state["last_refresh"] >= config.refresh_seconds:
        before = state["collection"].all()
        ingest(TRIGGER_TIMER)
        if state["collection"].all() != before:
            st.rerun()
    st.caption(f"Last sync: {time.strftime('%H:%M:%S', time.localtime(state['last_refresh']))}")


background_refresh()
