"""
Plotly chart factory functions with consistent styling for the dashboard.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from safety_dashboard.analytics.charts import wrap_label
from safety_dashboard.config import LABEL_MAX_LENGTH

DEFAULT_TEMPLATE = "plotly_white"
DEFAULT_COLOR_SEQUENCE = [
    "#0d6efd",  # blue for counts
    "#dc3545",  # red for deaths / critical
    "#ffc107",  # amber for injuries / high
    "#198754",  # green for educated / spent
    "#6f42c1",
    "#20c997",
]
PRIORITY_COLORS = {
    "critical": "#dc3545",
    "high": "#fd7e14",
    "medium": "#ffc107",
    "low": "#198754",
}


def _configure_layout(
    fig: go.Figure,
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    yaxis_tickformat: Optional[str] = None,
    legend_title: Optional[str] = None,
) -> go.Figure:
    fig.update_layout(
        template=DEFAULT_TEMPLATE,
        colorway=DEFAULT_COLOR_SEQUENCE,
        title=title,
        legend_title=legend_title,
        hovermode="x unified",
        margin=dict(l=40, r=20, t=60, b=40),
    )
    if yaxis_title:
        fig.update_yaxes(title=yaxis_title)
    if yaxis_tickformat:
        fig.update_yaxes(tickformat=yaxis_tickformat)
    fig.update_xaxes(showgrid=False)
    fig.update_yaxes(showgrid=True, zeroline=True)
    return fig


def render_plotly(fig: go.Figure) -> None:
    st.plotly_chart(fig, use_container_width=True, config={"displayModeBar": False})


def wrapped_labels(labels: Sequence, max_length: int = LABEL_MAX_LENGTH) -> List[str]:
    """Axis labels broken into ``<br>``-joined lines."""
    return ["<br>".join(wrap_label(label, max_length)) for label in labels]


def line_chart(
    df: pd.DataFrame,
    x: str,
    y: str | List[str],
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    yaxis_tickformat: Optional[str] = None,
    markers: bool = True,
    category_orders: Optional[Dict[str, List[str]]] = None,
) -> go.Figure:
    fig = px.line(
        df,
        x=x,
        y=y,
        markers=markers,
        category_orders=category_orders,
    )
    fig = _configure_layout(fig, title, yaxis_title, yaxis_tickformat, legend_title="")
    return fig


def bar_chart(
    df: pd.DataFrame,
    x: str,
    y: str | List[str],
    barmode: str = "group",
    orientation: str = "v",
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    yaxis_tickformat: Optional[str] = None,
    text_auto: bool = False,
    wrap_categories: bool = True,
) -> go.Figure:
    fig = px.bar(
        df,
        x=x,
        y=y,
        barmode=barmode,
        orientation=orientation,
        text_auto=text_auto,
    )
    fig = _configure_layout(fig, title, yaxis_title, yaxis_tickformat, legend_title="")
    if text_auto:
        fig.update_traces(textposition="outside", cliponaxis=False)
    category = x if orientation == "v" else y
    if wrap_categories and isinstance(category, str) and category in df.columns:
        values = df[category].tolist()
        axis = dict(tickmode="array", tickvals=values, ticktext=wrapped_labels(values))
        if orientation == "v":
            fig.update_xaxes(**axis)
        else:
            fig.update_yaxes(**axis)
    return fig


def donut_chart(
    df: pd.DataFrame,
    names: str,
    values: str,
    title: Optional[str] = None,
    hole: float = 0.45,
) -> go.Figure:
    fig = px.pie(df, names=names, values=values, hole=hole)
    fig.update_traces(textinfo="percent+label", sort=False)
    fig.update_layout(
        template=DEFAULT_TEMPLATE,
        colorway=DEFAULT_COLOR_SEQUENCE,
        title=title,
        margin=dict(l=20, r=20, t=60, b=20),
    )
    return fig


def map_chart(
    df: pd.DataFrame,
    hover_name: Optional[str] = None,
    color: Optional[str] = None,
    size: Optional[str] = None,
    hover_data: Optional[List[str]] = None,
    zoom: float = 4.5,
) -> Optional[go.Figure]:
    """Scatter map on ``latitude``/``longitude``; None when no row has coordinates."""
    if "latitude" not in df.columns or "longitude" not in df.columns:
        return None
    working = df.assign(
        latitude=pd.to_numeric(df["latitude"], errors="coerce"),
        longitude=pd.to_numeric(df["longitude"], errors="coerce"),
    ).dropna(subset=["latitude", "longitude"])
    if working.empty:
        return None
    if size and size in working.columns:
        working[size] = pd.to_numeric(working[size], errors="coerce").fillna(0).clip(lower=0)
    fig = px.scatter_map(
        working,
        lat="latitude",
        lon="longitude",
        hover_name=hover_name if hover_name in working.columns else None,
        color=color if color in working.columns else None,
        size=size if size in working.columns else None,
        hover_data=[col for col in (hover_data or []) if col in working.columns],
        zoom=zoom,
        height=520,
    )
    fig.update_layout(margin=dict(l=0, r=0, t=0, b=0))
    return fig
