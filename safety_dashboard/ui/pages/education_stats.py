from __future__ import annotations

import pandas as pd
import streamlit as st

from safety_dashboard.analytics.charts import (
    coverage_by_location,
    education_stats_summary,
    school_coverage_rows,
)
from safety_dashboard.data.loader import load_collection, load_education_stats
from safety_dashboard.ui.components.charts import bar_chart, render_plotly
from safety_dashboard.ui.components.kpi import KpiCard, render_kpi_cards
from safety_dashboard.ui.components.tables import pagination_controls, render_pagination, render_table
from safety_dashboard.ui.pages.context import PageContext
from safety_dashboard.ui.pages.helpers import fetch_or_default

KEY = "sr_education_stats"

SCHOOL_COLUMNS = {
    "name": "School",
    "npsn": "NPSN",
    "district_name": "District",
    "city_name": "City",
    "province_name": "Province",
    "student_count": "Students",
    "total_student_educated": "Educated Students",
    "coverage_pct": "Coverage",
    "is_educated": "Educated",
}


def _coverage_chart(schools: pd.DataFrame, key: str, title: str) -> None:
    coverage = coverage_by_location(schools, key)
    if coverage.empty:
        st.info(f"No schools to chart for {title.lower()}.")
        return
    fig = bar_chart(
        coverage,
        x="label",
        y=["total", "educated"],
        title=title,
        yaxis_title="Schools",
    )
    render_plotly(fig)


def render(context: PageContext) -> None:
    st.subheader("Education Statistics")
    settings, session, filters = context.settings, context.session, context.filters

    search = st.text_input("Search schools", key=f"{KEY}_search").strip()
    if search != st.session_state.get(f"{KEY}_last_search", ""):
        st.session_state[f"{KEY}_page"] = 1
        st.session_state[f"{KEY}_last_search"] = search
    page, limit = pagination_controls(KEY)

    payload = fetch_or_default(
        "education statistics",
        lambda: load_education_stats(settings, session, filters, page=page, limit=limit, search=search or None),
        {},
    )
    summary = education_stats_summary(payload)
    render_kpi_cards(
        [
            KpiCard("Total Schools", summary["total_schools"]),
            KpiCard("Educated Schools", summary["educated_schools"]),
            KpiCard("Coverage", summary["coverage_pct"], kind="percent", decimals=1),
            KpiCard("Students Educated", summary["students_educated"]),
            KpiCard("Avg. Students / School", summary["avg_students_per_school"]),
        ],
        columns=5,
    )

    schools = fetch_or_default("schools", lambda: load_collection("schools", settings, session, filters), pd.DataFrame())
    col_province, col_city = st.columns(2)
    with col_province:
        _coverage_chart(schools, "province_name", "Coverage by Province")
    with col_city:
        _coverage_chart(schools, "city_name", "Coverage by City")

    rows = school_coverage_rows(payload.get("schools") if isinstance(payload, dict) else None)
    render_table(
        rows.rename(columns=SCHOOL_COLUMNS),
        column_config={
            "Students": {"type": "number"},
            "Educated Students": {"type": "number"},
            "Coverage": {"type": "percent"},
        },
        empty_message="No schools match the current filters.",
    )
    total = summary["total_schools"]
    render_pagination(KEY, total, (total + limit - 1) // limit)
