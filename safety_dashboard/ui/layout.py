"""
Layout helpers for the Streamlit application (page config, sidebar session
and global filters).
"""

from __future__ import annotations

import calendar
import datetime as dt
import logging
from typing import Any, Dict, List, Optional

import streamlit as st

from safety_dashboard.config import Settings
from safety_dashboard.data.api_client import ApiError, AppSession, SafetyRidingClient
from safety_dashboard.data.filters import DEFAULT_FILTERS, GlobalFilters
from safety_dashboard.data.loader import clear_caches, load_location_options

logger = logging.getLogger(__name__)

ALL = "All"
YEARS_BACK = 5
SESSION_KEY = "sr_session"
FILTER_PREFIX = "sr_filter_"


def setup_page() -> None:
    """Set Streamlit page configuration and top-level styling."""
    st.set_page_config(
        page_title="Safety Riding Dashboard",
        layout="wide",
        page_icon=":motor_scooter:",
    )
    _inject_sidebar_primary_button_red()


def _clear_state_prefixes(prefixes: List[str]) -> None:
    for prefix in prefixes:
        for key in list(st.session_state.keys()):
            if key.startswith(prefix):
                del st.session_state[key]


def sidebar_session_ui(settings: Settings) -> AppSession:
    """Sign-in block; returns the session every request is made with."""
    st.sidebar.header("Session")
    if settings.use_sample_data:
        st.sidebar.info("Showing the offline sample dataset. Set API_URL to connect to the backend.")
        return AppSession(username="demo", role="viewer")

    session: Optional[AppSession] = st.session_state.get(SESSION_KEY)
    if session is None and settings.api_token:
        session = AppSession(token=settings.api_token, username="service token")

    if session is not None and session.is_authenticated:
        role = f" ({session.role})" if session.role else ""
        st.sidebar.caption(f"Signed in as **{session.username}**{role}")
        if st.sidebar.button("Sign out", key="sr_sign_out"):
            st.session_state.pop(SESSION_KEY, None)
            clear_caches()
            st.rerun()
        return session

    with st.sidebar.form("sr_login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in")
    if submitted:
        client = SafetyRidingClient(settings.api_url, timeout=settings.api_timeout)
        try:
            st.session_state[SESSION_KEY] = client.login(email, password)
        except ApiError as exc:
            logger.warning("Sign-in failed for %s: %s", email, exc)
            st.sidebar.error(f"Sign-in failed: {exc}")
        else:
            st.rerun()
    return AppSession()


def _location_select(
    label: str,
    key: str,
    options: List[Dict[str, Any]],
) -> Optional[Dict[str, Any]]:
    by_code = {opt["code"]: opt for opt in options}
    choice = st.sidebar.selectbox(
        label,
        [ALL] + list(by_code),
        key=key,
        format_func=lambda code: code if code == ALL else by_code[code]["name"],
        disabled=not options,
    )
    return by_code.get(choice)


def _safe_locations(level: str, settings: Settings, session: AppSession, **codes) -> List[Dict[str, Any]]:
    if not settings.use_sample_data and not session.is_authenticated:
        return []
    try:
        return load_location_options(level, settings, session, **codes)
    except ApiError as exc:
        logger.warning("Could not load %s options: %s", level, exc)
        st.sidebar.warning(f"Could not load {level} list: {exc}")
        return []


def sidebar_filters_ui(
    settings: Settings,
    session: AppSession,
    defaults: GlobalFilters = DEFAULT_FILTERS,
) -> GlobalFilters:
    """
    Render the sidebar filter controls and return the selected values.
    """
    st.sidebar.header("Global Filters")

    current_year = dt.date.today().year
    years = [ALL] + list(range(current_year, current_year - YEARS_BACK - 1, -1))
    year_index = years.index(defaults.year) if defaults.year in years else 0
    col_year, col_month = st.sidebar.columns(2)
    with col_year:
        year = st.selectbox("Year", years, index=year_index, key=f"{FILTER_PREFIX}year")
    with col_month:
        month = st.selectbox(
            "Month",
            [ALL] + list(range(1, 13)),
            key=f"{FILTER_PREFIX}month",
            format_func=lambda m: m if m == ALL else calendar.month_name[m],
        )

    province = _location_select(
        "Province",
        f"{FILTER_PREFIX}province",
        _safe_locations("province", settings, session),
    )
    city = None
    district = None
    if province:
        city = _location_select(
            "City / Regency",
            f"{FILTER_PREFIX}city",
            _safe_locations("city", settings, session, province_code=province["code"]),
        )
    if province and city:
        district = _location_select(
            "District",
            f"{FILTER_PREFIX}district",
            _safe_locations(
                "district",
                settings,
                session,
                province_code=province["code"],
                city_code=city["code"],
            ),
        )

    if st.sidebar.button("Reset filters", type="primary", key="sr_reset_filters"):
        _clear_state_prefixes([FILTER_PREFIX])
        st.rerun()

    st.sidebar.divider()
    if st.sidebar.button("🔄 Refresh Data", key="sr_refresh"):
        clear_caches()
        st.rerun()

    return GlobalFilters(
        year=None if year == ALL else int(year),
        month=None if month == ALL else int(month),
        province_name=province["name"] if province else None,
        city_name=city["name"] if city else None,
        district_name=district["name"] if district else None,
    )


def _inject_sidebar_primary_button_red() -> None:
    """Style PRIMARY buttons in the sidebar as red so the reset action stands out."""
    st.markdown(
        """
        <style>
        div[data-testid="stSidebar"] button[kind="primary"],
        div[data-testid="stSidebar"] button[data-testid="baseButton-primary"] {
            background-color: #e53935 !important;
            border-color: #e53935 !important;
            color: #ffffff !important;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )
