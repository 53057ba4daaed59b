from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd
import streamlit as st

from safety_dashboard.analytics.charts import (
    accident_trend_from_stats,
    budget_by_event,
    budget_utilization,
    education_coverage,
    event_type_distribution,
    monthly_accident_trend,
    publics_by_city,
    schools_by_province,
)
from safety_dashboard.data.loader import load_collection, load_dashboard_stats
from safety_dashboard.ui.components.charts import bar_chart, donut_chart, line_chart, render_plotly
from safety_dashboard.ui.components.kpi import KpiCard, render_kpi_cards
from safety_dashboard.ui.components.tables import render_table
from safety_dashboard.ui.pages.context import PageContext
from safety_dashboard.ui.pages.helpers import fetch_or_default


def _kpi_cards(stats: Dict[str, Any], schools: pd.DataFrame, publics: pd.DataFrame) -> List[KpiCard]:
    extra = stats.get("additional_stats") or {}
    school_cov = education_coverage(schools)
    public_cov = education_coverage(publics)
    trained_schools = extra.get("trained_schools", school_cov["educated"])
    trained_publics = extra.get("trained_publics", public_cov["educated"])
    return [
        KpiCard("Schools", stats.get("schools", school_cov["total"])),
        KpiCard("Public Entities", stats.get("publics", public_cov["total"])),
        KpiCard("Events", stats.get("events")),
        KpiCard("Accidents", stats.get("accidents")),
        KpiCard("Deaths", extra.get("total_deaths")),
        KpiCard("Injured", extra.get("total_injured")),
        KpiCard(
            "Trained Schools",
            trained_schools,
            help_text=f"Coverage {school_cov['coverage_pct']}% of loaded schools"
            if school_cov["coverage_pct"] is not None else None,
        ),
        KpiCard("Trained Public Entities", trained_publics),
        KpiCard("Avg. Attendees / Event", extra.get("avg_attendees_per_event")),
        KpiCard("Budget Utilisation", extra.get("budget_utilization_rate"), kind="percent"),
    ]


def _accident_trend(stats: Dict[str, Any], accidents: pd.DataFrame) -> pd.DataFrame:
    trend = accident_trend_from_stats(stats.get("accident_trends"))
    if trend.empty:
        trend = monthly_accident_trend(accidents)
    return trend


def render(context: PageContext) -> None:
    st.subheader("Dashboard Overview")
    settings, session, filters = context.settings, context.session, context.filters

    stats = fetch_or_default("dashboard statistics", lambda: load_dashboard_stats(settings, session, filters), {})
    schools = fetch_or_default("schools", lambda: load_collection("schools", settings, session, filters), pd.DataFrame())
    publics = fetch_or_default("public entities", lambda: load_collection("publics", settings, session, filters), pd.DataFrame())
    accidents = fetch_or_default("accidents", lambda: load_collection("accidents", settings, session, filters), pd.DataFrame())
    budgets = fetch_or_default("budgets", lambda: load_collection("budgets", settings, session, filters), pd.DataFrame())

    render_kpi_cards(_kpi_cards(stats, schools, publics), columns=5)

    st.markdown("### Accidents")
    trend = _accident_trend(stats, accidents)
    if trend.empty:
        st.info("No accident trend available.")
    else:
        fig = line_chart(
            trend,
            x="period",
            y=["accidents", "deaths", "injured"],
            title="Accident Trend (last 12 months)",
            yaxis_title="Count",
            category_orders={"period": trend["period"].tolist()},
        )
        render_plotly(fig)

    dist_col, util_col = st.columns(2)
    with dist_col:
        distribution = event_type_distribution(stats.get("event_distribution"))
        if distribution.empty or distribution["count"].sum() == 0:
            st.info("No events recorded yet.")
        else:
            render_plotly(donut_chart(distribution, names="event_type", values="count", title="Event Types"))
            render_table(
                distribution.rename(columns={"event_type": "Type", "count": "Events", "percentage": "Share"}),
                column_config={"Share": {"type": "percent"}},
            )
    with util_col:
        utilization = budget_utilization(stats.get("budget_utilization"))
        if utilization.empty:
            st.info("No budget utilisation data.")
        else:
            fig = bar_chart(
                utilization,
                x="period",
                y=["allocated", "spent"],
                title="Budget Allocated vs Spent",
                yaxis_title="Rupiah",
                yaxis_tickformat=",.0f",
            )
            render_plotly(fig)

    st.markdown("### Coverage")
    prov_col, city_col = st.columns(2)
    with prov_col:
        by_province = schools_by_province(schools)
        if by_province.empty:
            st.info("No schools loaded.")
        else:
            render_plotly(bar_chart(by_province, x="Province", y="Schools", title="Schools by Province (Top 10)", text_auto=True))
    with city_col:
        by_city = publics_by_city(publics)
        if by_city.empty:
            st.info("No public entities loaded.")
        else:
            render_plotly(
                bar_chart(by_city, x="City", y="Public Entities", title="Public Entities by City (Top 10)", text_auto=True)
            )

    by_event = budget_by_event(budgets)
    if not by_event.empty:
        fig = bar_chart(
            by_event,
            x="Event",
            y=["Allocated", "Spent"],
            title="Budget per Event (Top 10)",
            yaxis_title="Rupiah",
            yaxis_tickformat=",.0f",
        )
        render_plotly(fig)

    recent_events, recent_accidents = st.columns(2)
    with recent_events:
        st.markdown("#### Recent Events")
        render_table(
            pd.DataFrame(stats.get("recent_events") or []),
            columns=["title", "event_date", "event_type", "status", "attendees_count"],
            empty_message="No recent events.",
        )
    with recent_accidents:
        st.markdown("#### Recent Accidents")
        render_table(
            pd.DataFrame(stats.get("recent_accidents") or []),
            columns=["accident_date", "location", "city_name", "death_count", "injured_count"],
            empty_message="No recent accidents.",
        )
