import safety_dashboard.bootstrap_env  # must be first to set env/secrets
import logging

import streamlit as st

from safety_dashboard.config import TABS, load_settings
from safety_dashboard.data.filters import serialize_filters
from safety_dashboard.ui.layout import setup_page, sidebar_filters_ui, sidebar_session_ui
from safety_dashboard.ui.pages import dashboard, education_priority, education_stats, recommendations
from safety_dashboard.ui.pages.context import PageContext
from safety_dashboard.ui.pages.records import LIST_PAGES, make_renderer

logger = logging.getLogger("safety_dashboard.app")

PAGE_RENDERERS = {
    "dashboard": dashboard.render,
    "education_priority": education_priority.render,
    "recommendations": recommendations.render,
    "education_stats": education_stats.render,
    **{resource: make_renderer(resource) for resource in LIST_PAGES},
}


def _active_filter_summary(filters) -> None:
    badges = []
    if filters.year:
        badges.append(f"Year: {filters.year}")
    if filters.month:
        badges.append(f"Month: {filters.month}")
    location = [filters.district_name, filters.city_name, filters.province_name]
    if any(location):
        badges.append("Location: " + ", ".join(part for part in location if part))

    summary_text = "Active Filters: " + " | ".join(badges) if badges else "Active Filters: All data"
    st.markdown(f"**{summary_text}**")


def main() -> None:
    setup_page()
    st.title("Safety Riding Education Dashboard")

    try:
        settings = load_settings()
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        st.error(f"Invalid configuration: {exc}")
        return

    session = sidebar_session_ui(settings)
    filters = sidebar_filters_ui(settings, session)
    st.session_state["sr_active_filters"] = serialize_filters(filters)

    if not settings.use_sample_data and not session.is_authenticated:
        st.info("Sign in from the sidebar to load data.")
        return

    _active_filter_summary(filters)

    context = PageContext(settings=settings, session=session, filters=filters)

    tab_labels = [tab.label for tab in TABS]
    streamlit_tabs = st.tabs(tab_labels)

    for streamlit_tab, tab_config in zip(streamlit_tabs, TABS):
        renderer = PAGE_RENDERERS.get(tab_config.key)
        if renderer is None:
            continue
        with streamlit_tab:
            renderer(context)


if __name__ == "__main__":
    main()
