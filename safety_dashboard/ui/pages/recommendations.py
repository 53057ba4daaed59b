from __future__ import annotations

import pandas as pd
import streamlit as st

from safety_dashboard.analytics.recommendations import (
    CityRecommendations,
    DistrictRecommendations,
    build_city_recommendations,
    build_district_recommendations,
    top_uneducated_schools,
)
from safety_dashboard.data.loader import (
    load_collection,
    load_market_share_city_suggestions,
    load_market_share_suggestions,
)
from safety_dashboard.ui.components.formatting import format_number, format_percent
from safety_dashboard.ui.components.tables import render_table
from safety_dashboard.ui.pages.context import PageContext
from safety_dashboard.ui.pages.helpers import fetch_or_default, location_label


def _district_cards(recs: DistrictRecommendations) -> None:
    uneducated_col, accident_col, market_col = st.columns(3)
    with uneducated_col:
        st.markdown("#### Most Uneducated Schools")
        top = recs.uneducated
        if top is None:
            st.caption("Every school with a known district has been educated.")
        else:
            st.metric(location_label(vars(top)), format_number(top.count), help="Schools not yet educated")
            with st.expander("Schools"):
                st.markdown("\n".join(f"- {name}" for name in top.schools))
    with accident_col:
        st.markdown("#### Most Accidents")
        top = recs.accident
        if top is None:
            st.caption("No accidents with a known district.")
        else:
            st.metric(location_label(vars(top)), format_number(top.count), help="Recorded accidents")
            st.caption(f"Deaths {format_number(top.deaths)} · Injured {format_number(top.injured)}")
    with market_col:
        st.markdown("#### Highest Market Share")
        top = recs.market_share
        if top is None:
            st.caption("No market share data.")
        else:
            st.metric(
                location_label(vars(top)),
                format_percent(top.market_share),
                delta=format_percent(top.monthly_difference) if top.monthly_difference else None,
            )
            st.caption(
                f"Competitor {format_percent(top.competitor_share)} · "
                f"Sales {format_number(top.total_sales)} vs {format_number(top.competitor_sales)}"
            )


def _school_list(schools: pd.DataFrame, city_name: str, province_name: str) -> None:
    render_table(
        pd.DataFrame(top_uneducated_schools(schools, city_name, province_name=province_name)),
        columns=["name", "district_name", "student_count"],
        column_config={"student_count": {"type": "number"}},
        empty_message="No uneducated schools in this city.",
    )


def _city_panel(recs: CityRecommendations, schools: pd.DataFrame) -> None:
    st.markdown("### City Recommendations")
    if recs.is_empty:
        st.info("No recommendations available. All cities are well covered!")
        return
    market_col, uneducated_col, accident_col = st.columns(3)
    with market_col:
        st.markdown("#### Market Share")
        city = recs.market_share
        if city is None:
            st.caption("No city market share data.")
        else:
            st.metric(f"{city.city_name}, {city.province_name}", format_percent(city.market_share))
            st.caption(f"Competitor {format_percent(city.competitor_share)}")
            _school_list(schools, city.city_name, city.province_name)
    with uneducated_col:
        st.markdown("#### Uneducated Schools")
        city = recs.uneducated
        if city is None:
            st.caption("Every school with a known city has been educated.")
        else:
            st.metric(f"{city.city_name}, {city.province_name}", format_number(city.uneducated), help="Schools not yet educated")
            st.caption(
                f"Educated {format_number(city.educated)} · "
                f"Students waiting {format_number(city.total_students)}"
            )
            _school_list(schools, city.city_name, city.province_name)
    with accident_col:
        st.markdown("#### Accident Blackspot")
        city = recs.accident
        if city is None:
            st.caption("No accidents with a known city.")
        else:
            st.metric(f"{city.city_name}, {city.province_name}", format_number(city.count), help="Recorded accidents")
            st.caption(f"Deaths {format_number(city.deaths)} · Injured {format_number(city.injured)}")
            _school_list(schools, city.city_name, city.province_name)


def render(context: PageContext) -> None:
    st.subheader("Recommendations")
    settings, session, filters = context.settings, context.session, context.filters

    schools = fetch_or_default("schools", lambda: load_collection("schools", settings, session, filters), pd.DataFrame())
    accidents = fetch_or_default("accidents", lambda: load_collection("accidents", settings, session, filters), pd.DataFrame())
    suggestions = fetch_or_default(
        "market share suggestions",
        lambda: load_market_share_suggestions(settings, session, filters),
        [],
    )
    top_cities = fetch_or_default(
        "city market share suggestions",
        lambda: load_market_share_city_suggestions(settings, session, filters),
        [],
    )

    st.markdown("### District Recommendations")
    recs = build_district_recommendations(schools, accidents, suggestions)
    if recs.is_empty:
        st.info("No recommendations available for the current filters.")
    else:
        _district_cards(recs)

    _city_panel(build_city_recommendations(schools, accidents, top_cities), schools)
