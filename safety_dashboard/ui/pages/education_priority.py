from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd
import streamlit as st

from safety_dashboard.analytics.priority import (
    LEVELS,
    PriorityBuckets,
    bucket_priority_items,
    priority_summary,
)
from safety_dashboard.data.loader import load_education_priority
from safety_dashboard.ui.components.charts import PRIORITY_COLORS
from safety_dashboard.ui.components.formatting import format_number, format_percent
from safety_dashboard.ui.components.kpi import KpiCard, render_kpi_cards
from safety_dashboard.ui.components.tables import render_table
from safety_dashboard.ui.pages.context import PageContext
from safety_dashboard.ui.pages.helpers import fetch_or_default, location_label

TABLE_COLUMNS = {
    "location": "Location",
    "market_share": "Market Share",
    "safety_riding_status": "Safety Riding",
    "total_schools": "Schools",
    "total_students": "Students",
    "total_accidents": "Accidents",
    "accident_severity": "Severity",
    "priority_score": "Score",
    "priority_level": "Priority",
}


def _quadrant(card: Dict[str, Any]) -> None:
    color = PRIORITY_COLORS[card["level"]]
    st.markdown(
        f"<div style='border-left: 6px solid {color}; padding-left: 0.75rem'>"
        f"<strong>{card['label']}</strong> · {card['count']} districts<br>"
        f"<small>{card['description']}</small></div>",
        unsafe_allow_html=True,
    )
    if not card["preview"]:
        st.caption("No districts in this quadrant.")
        return
    lines = [
        f"- **{location_label(item) or 'Unknown'}** · score {format_number(item.get('priority_score'))}"
        f" · share {format_percent(item.get('market_share'))}"
        for item in card["preview"]
    ]
    st.markdown("\n".join(lines))
    if card["remaining"]:
        st.caption(f"+{card['remaining']} more")


def _priority_table(buckets: PriorityBuckets) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for level in LEVELS:
        for item in buckets.bucket(level):
            rows.append({**item, "location": location_label(item)})
    if not rows:
        return pd.DataFrame()
    table = pd.DataFrame(rows)
    columns = [col for col in TABLE_COLUMNS if col in table.columns]
    return table[columns].rename(columns=TABLE_COLUMNS)


def render(context: PageContext) -> None:
    st.subheader("Education Priority")
    settings = context.settings
    payload = fetch_or_default(
        "education priority",
        lambda: load_education_priority(settings, context.session, context.filters),
        {},
    )
    threshold = payload.get("market_threshold", settings.market_threshold)
    buckets = bucket_priority_items(payload.get("items"), threshold=threshold)

    st.info(
        f"Market Share Threshold: {format_percent(buckets.threshold)}. Districts below the threshold "
        "require mandatory safety riding education."
    )

    summary = priority_summary(buckets)
    render_kpi_cards(
        [KpiCard(card["label"], card["count"], help_text=card["description"]) for card in summary],
        columns=4,
    )

    if buckets.total == 0:
        st.info("No priority data for the current filters.")
        return

    st.markdown("### Priority Matrix")
    top_row = st.columns(2)
    bottom_row = st.columns(2)
    for column, card in zip(top_row + bottom_row, summary):
        with column:
            _quadrant(card)

    st.markdown("### All Districts")
    render_table(
        _priority_table(buckets),
        column_config={
            "Market Share": {"type": "percent"},
            "Students": {"type": "number"},
        },
        export_file_name="education_priority.csv",
    )
    with st.expander("How is the score calculated?"):
        st.markdown(
            "- **Market share factor (40 pts):** the further below the threshold, the higher the priority\n"
            "- **Student population (30 pts):** scaled at 10.000 students\n"
            "- **Accident severity (30 pts):** scaled at a severity of 100\n"
            "- Levels: Critical ≥ 75, High ≥ 50, Medium ≥ 25, otherwise Low"
        )
