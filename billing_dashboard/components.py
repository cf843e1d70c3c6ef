"""Reusable UI components for the billing dashboard."""

from __future__ import annotations

import datetime as dt
import time
from typing import Any

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from billing_dashboard.config import AUTO_REFRESH_INTERVAL, DELTA_COLORS, SOURCE_LABELS, TREND_COLOR

# ------------------------------------------------------------------
# Formatting
# ------------------------------------------------------------------


def format_currency(value: float | None) -> str:
    if value is None:
        return "--"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_delta(delta_pct: float) -> str:
    prefix = "+" if delta_pct > 0 else ""
    return f"{prefix}{delta_pct}%"


def delta_color(delta_pct: float) -> str:
    """Cost going up is bad news: red. Flat or falling: green."""
    return DELTA_COLORS["increase"] if delta_pct > 0 else DELTA_COLORS["decrease"]


def format_updated_at(value: str) -> str:
    try:
        return dt.datetime.fromisoformat(value).astimezone().strftime("%H:%M:%S")
    except (TypeError, ValueError):
        return value or ""


# ------------------------------------------------------------------
# Figures
# ------------------------------------------------------------------


def build_trend_figure(snapshot: dict[str, Any]) -> go.Figure:
    """Spline of cost over time; timestamps arrive as epoch milliseconds."""
    trend = snapshot.get("trend", [])
    fig = go.Figure(
        go.Scatter(
            x=[dt.datetime.fromtimestamp(p["timestamp"] / 1000, tz=dt.timezone.utc) for p in trend],
            y=[p["cost"] for p in trend],
            mode="lines",
            line={"shape": "spline", "color": TREND_COLOR},
            name="Billing Trend",
            hovertemplate="$%{y:.2f}<extra></extra>",
        )
    )
    fig.update_layout(
        height=300,
        margin={"l": 10, "r": 10, "t": 10, "b": 10},
        yaxis={"title": "Cost (USD)", "tickprefix": "$"},
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
    )
    return fig


def build_service_figure(snapshot: dict[str, Any]) -> go.Figure:
    services = snapshot.get("byService", [])
    fig = go.Figure(
        go.Pie(
            labels=[s["name"] for s in services],
            values=[s["cost"] for s in services],
            name="Service Share",
            hovertemplate="<b>$%{value:.2f}</b> (%{percent})<extra>%{label}</extra>",
        )
    )
    fig.update_layout(height=300, margin={"l": 10, "r": 10, "t": 10, "b": 10}, paper_bgcolor="rgba(0,0,0,0)")
    return fig


def cost_driver_rows(snapshot: dict[str, Any]) -> list[dict[str, str]]:
    return [
        {
            "Project": row["project"],
            "Service": row["service"],
            "Cost": format_currency(row["cost"]),
            "Change": format_delta(row["deltaPct"]),
        }
        for row in snapshot.get("tableRows", [])
    ]


# ------------------------------------------------------------------
# Streamlit renderers
# ------------------------------------------------------------------


def render_source_banner(source: str, is_configured: bool) -> None:
    label = SOURCE_LABELS.get(source, source)
    note = "" if is_configured else "  \n:orange[BigQuery not configured yet]"
    st.info(
        "The connection is stored locally on this machine and BigQuery is queried server-side. "
        f"Data source: **{label}**{note}"
    )


METRIC_LABELS = ("Total Cost", "Projected Month End", "Average Burn Rate", "Budget Usage")


def metric_values(snapshot: dict[str, Any] | None, loading: bool = False) -> list[tuple[str, str]]:
    """Card values; placeholders while a fetch is in flight or before the first snapshot."""
    metrics = (snapshot or {}).get("metrics")
    if loading or not metrics:
        placeholder = "Loading..." if loading else "--"
        return [(label, placeholder) for label in METRIC_LABELS]
    return [
        ("Total Cost", format_currency(metrics["totalCost"])),
        ("Projected Month End", format_currency(metrics["projectedMonthEnd"])),
        ("Average Burn Rate", f"{format_currency(metrics['avgHourlyBurn'])}/hr"),
        ("Budget Usage", f"{metrics['budgetUsagePct']}%"),
    ]


def render_metric_row(snapshot: dict[str, Any] | None, loading: bool = False) -> None:
    values = metric_values(snapshot, loading)
    cols = st.columns(len(values))
    for col, (label, value) in zip(cols, values, strict=False):
        with col:
            st.metric(label=label, value=value)


def render_cost_driver_table(snapshot: dict[str, Any]) -> None:
    rows = cost_driver_rows(snapshot)
    if not rows:
        st.info("No cost drivers for this period.")
        return
    deltas = [row["deltaPct"] for row in snapshot.get("tableRows", [])]

    def _style(column):
        if column.name != "Change":
            return [""] * len(column)
        return [f"color: {delta_color(d)}" for d in deltas]

    frame = pd.DataFrame(rows)
    st.dataframe(frame.style.apply(_style), use_container_width=True, hide_index=True)


def render_auto_refresh(interval: int = AUTO_REFRESH_INTERVAL) -> None:
    """Re-run the page every ``interval`` seconds.

    Must be called last: the sleep blocks the script run, and any widget
    interaction in the meantime interrupts it and re-runs immediately.
    """
    time.sleep(interval)
    st.rerun()
