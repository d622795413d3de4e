"""
Breakdown Dashboard — Live Maintenance KPIs

Run with:  streamlit run app.py
"""

import sys
import time
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
import streamlit as st
from dotenv import load_dotenv
from streamlit_autorefresh import st_autorefresh

sys.path.insert(0, str(Path(__file__).resolve().parent))

load_dotenv()

from breakdown_dashboard import config
from breakdown_dashboard.config import CATEGORIES, CATEGORY_COLORS, PIE_COLORS
from breakdown_dashboard.dashboard import (
    connection_status,
    format_last_updated,
    get_dashboard_payload,
)
from breakdown_dashboard.exceptions import DashboardError, user_message
from breakdown_dashboard.loaders import fetch_rows
from breakdown_dashboard.simulator import generate_breakdown_log

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Breakdown Dashboard",
    page_icon="🛠️",
    layout="wide",
    initial_sidebar_state="expanded",
)

POLL_INTERVAL_S = config.poll_interval_s()
STATUS_COLORS = {
    "Loading": "#3B82F6",
    "Connected": "#10B981",
    "Error": "#EF4444",
    "Demo": "#F59E0B",
}


# ---------------------------------------------------------------------------
# Data loading (cached for one polling interval)
# ---------------------------------------------------------------------------
@st.cache_data(ttl=POLL_INTERVAL_S, show_spinner="Loading data from Google Sheet...")
def load_rows(url: str):
    """Return (rows, error_message, fetched_at)."""
    try:
        rows = fetch_rows(url=url)
    except DashboardError as e:
        return [], user_message(e), time.time()
    return rows, None, time.time()


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title("Breakdown Dashboard")
st.sidebar.markdown("Live maintenance reliability KPIs")
st.sidebar.divider()

sheet_url = st.sidebar.text_input("Sheet endpoint", value=config.sheet_url())
demo_mode = st.sidebar.toggle("Use simulated data", value=False)

if st.sidebar.button("Refresh now"):
    load_rows.clear()

st_autorefresh(interval=int(POLL_INTERVAL_S * 1000), key="data_refresh")


def status_badge(status: str) -> str:
    return f"<span style='color:{STATUS_COLORS[status]}; font-weight:600;'>● {status}</span>"


status_slot = st.sidebar.empty()
status_slot.markdown(status_badge(connection_status(loaded=False)), unsafe_allow_html=True)

if demo_mode:
    rows, error, fetched_at = generate_breakdown_log(), None, time.time()
else:
    rows, error, fetched_at = load_rows(sheet_url)
status = connection_status(loaded=True, error=error, demo=demo_mode)

next_refresh = max(0, int(fetched_at + POLL_INTERVAL_S - time.time()))
status_slot.markdown(status_badge(status), unsafe_allow_html=True)
st.sidebar.caption(f"Last updated: {format_last_updated(fetched_at, time.time())}")
st.sidebar.caption(f"Next refresh in: {next_refresh}s")

payload = get_dashboard_payload(rows)

diag = payload["diagnostics"]
with st.sidebar.expander("Data quality"):
    st.write(f"Rows received: {payload['row_count']}")
    st.write(f"Rows bucketed: {diag['rows_bucketed']}")
    st.write(f"Breakdowns / service: {diag['breakdown_rows']} / {diag['service_rows']}")
    st.write(f"Uncategorised breakdowns: {diag['uncategorised_breakdowns']}")
    for reason, count in diag["skipped"].items():
        st.write(f"Skipped ({reason.replace('_', ' ')}): {count}")
    st.json(payload["columns"])


# ---------------------------------------------------------------------------
# Figure helpers
# ---------------------------------------------------------------------------
def _layout(fig: go.Figure, title: str, height: int = 320) -> go.Figure:
    fig.update_layout(
        title=title,
        height=height,
        plot_bgcolor="rgba(0,0,0,0)",
        margin=dict(l=10, r=10, t=40, b=30),
        legend=dict(orientation="h", y=-0.2),
    )
    return fig


def bar_figure(series: dict, y_max: int) -> go.Figure:
    weeks = [p["name"] for p in series["data"]]
    fig = go.Figure()
    if series["is_overall"]:
        for category in CATEGORIES:
            fig.add_trace(go.Bar(
                x=weeks,
                y=[p[category] for p in series["data"]],
                name=category,
                marker_color=CATEGORY_COLORS[category],
            ))
        fig.update_layout(barmode="stack")
    else:
        category = series["key"].split("-")[0].upper()
        fig.add_trace(go.Bar(
            x=weeks,
            y=[p["value"] for p in series["data"]],
            name=category,
            marker_color=CATEGORY_COLORS.get(category, "#60A5FA"),
            text=[p["value"] for p in series["data"]],
            textposition="outside",
        ))
    fig.update_yaxes(range=[0, y_max], dtick=max(1, y_max // 5))
    return _layout(fig, series["title"])


def line_figure(series: dict, y_max: int | None = None) -> go.Figure:
    fig = go.Figure(go.Scatter(
        x=[p["name"] for p in series["data"]],
        y=[p["value"] for p in series["data"]],
        mode="lines+markers",
        line=dict(color=CATEGORY_COLORS["Overall"], width=2),
        marker=dict(size=8),
        hovertext=[p["formattedValue"] for p in series["data"]],
        hoverinfo="x+text",
    ))
    if y_max is not None:
        fig.update_yaxes(range=[0, y_max])
    fig.update_yaxes(title="min/BD")
    return _layout(fig, series["title"])


def pie_figure(series: dict) -> go.Figure:
    fig = go.Figure(go.Pie(
        labels=[p["name"] for p in series["data"]],
        values=[p["value"] for p in series["data"]],
        marker=dict(colors=PIE_COLORS),
        hole=0.35,
    ))
    return _layout(fig, series["title"], height=300)


# ===========================================================================
# PAGE
# ===========================================================================
st.title("Live Breakdown Dashboard")
st.caption("Weekly breakdowns, MTTR and MTBF from the maintenance log")

if error:
    st.error(error)

if payload["is_empty"]:
    if not error:
        st.info(
            "No data available. No data was found in your Google Sheet. Please make "
            "sure your spreadsheet contains data and is properly configured."
        )
else:
    # Row 1: breakdown counts
    st.subheader("Breakdowns per Week")
    cols = st.columns(len(payload["bar_charts"]))
    for col, series in zip(cols, payload["bar_charts"]):
        with col:
            st.plotly_chart(bar_figure(series, payload["y_axis_max"]), use_container_width=True)

    # Row 2: MTTR
    st.subheader("Mean Time To Repair")
    cols = st.columns(len(payload["line_charts"]))
    for col, series in zip(cols, payload["line_charts"]):
        with col:
            st.plotly_chart(
                line_figure(series, payload["mttr_y_axis_max"]), use_container_width=True,
            )

    # Row 3: MTBF
    st.subheader("MTBF & Additional Metrics")
    col1, col2 = st.columns([2, 1])
    with col1:
        st.plotly_chart(line_figure(payload["mtbf_chart"]), use_container_width=True)
    with col2:
        latest = payload["weekly"][-1]
        st.metric(f"MTTR ({latest['week']})", latest["MTTR_formatted"])
        st.metric(f"MTBF ({latest['week']})", latest["MTBF_formatted"])
        st.metric(f"Breakdowns ({latest['week']})", latest["total_breakdowns"])

    # Row 4: top causes
    st.subheader("Top Breakdown Causes")
    cols = st.columns(len(payload["pie_charts"]))
    for col, series in zip(cols, payload["pie_charts"]):
        with col:
            if series["data"]:
                st.plotly_chart(pie_figure(series), use_container_width=True)
            else:
                st.markdown(f"**{series['title']}**")
                st.caption("No cause data")

# Raw data table
if rows:
    st.subheader(f"Google Sheet Data ({len(rows)} rows)")
    table = pd.DataFrame(rows).fillna("").astype(str).replace("", "-")
    st.dataframe(table, use_container_width=True, hide_index=True, height=380)
