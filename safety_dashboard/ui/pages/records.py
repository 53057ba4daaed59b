"""
Generic list page used by every CRUD resource tab: search, pagination,
table or map view, CSV export, record details and admin create, edit and delete.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
import streamlit as st

from safety_dashboard.data.api_client import Page
from safety_dashboard.data.loader import delete_record, load_page, load_record, save_record
from safety_dashboard.ui.components.charts import map_chart, render_plotly
from safety_dashboard.ui.components.tables import (
    clamp_page,
    pagination_controls,
    render_pagination,
    render_table,
)
from safety_dashboard.ui.pages.context import PageContext
from safety_dashboard.ui.pages.helpers import fetch_or_default

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListPageConfig:
    resource: str
    title: str
    columns: List[str]
    title_field: str = "name"
    column_config: Dict[str, Dict[str, str]] = field(default_factory=dict)
    map_color: Optional[str] = None
    map_size: Optional[str] = None


LIST_PAGES: Dict[str, ListPageConfig] = {
    "schools": ListPageConfig(
        "schools",
        "Schools",
        ["name", "district_name", "city_name", "province_name", "student_count", "is_educated"],
        column_config={"student_count": {"type": "number"}},
        map_color="is_educated",
        map_size="student_count",
    ),
    "publics": ListPageConfig(
        "publics",
        "Public Entities",
        ["name", "category", "district_name", "city_name", "province_name", "member_count", "is_educated"],
        column_config={"member_count": {"type": "number"}},
        map_color="category",
        map_size="member_count",
    ),
    "events": ListPageConfig(
        "events",
        "Events",
        ["title", "event_date", "event_type", "status", "attendees_count", "location", "city_name"],
        title_field="title",
        column_config={"attendees_count": {"type": "number"}},
        map_color="event_type",
        map_size="attendees_count",
    ),
    "accidents": ListPageConfig(
        "accidents",
        "Accidents",
        ["accident_date", "location", "district_name", "city_name", "death_count", "injured_count", "police_report_no"],
        title_field="location",
        map_size="injured_count",
    ),
    "budgets": ListPageConfig(
        "budgets",
        "Budgets",
        ["event_title", "budget_date", "budget_amount", "actual_spent"],
        title_field="event_title",
        column_config={"budget_amount": {"type": "currency"}, "actual_spent": {"type": "currency"}},
    ),
    "market_share": ListPageConfig(
        "market_share",
        "Market Share",
        ["district_name", "city_name", "province_name", "month", "year", "market_share", "competitor_share", "total_sales"],
        title_field="district_name",
        column_config={
            "market_share": {"type": "percent"},
            "competitor_share": {"type": "percent"},
            "total_sales": {"type": "number"},
        },
    ),
    "users": ListPageConfig(
        "users",
        "Users",
        ["name", "email", "role", "is_active"],
    ),
}


def _flatten(items: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(items)
    if df.empty:
        return df
    # nested relations (budget.event, user.role) shown by their display name
    if "event" in df.columns and "event_title" not in df.columns:
        df["event_title"] = df["event"].map(lambda e: e.get("title") if isinstance(e, dict) else None)
    if "role" in df.columns:
        df["role"] = df["role"].map(lambda r: r.get("name") if isinstance(r, dict) else r)
    return df


def _record_label(record: Dict[str, Any], config: ListPageConfig) -> str:
    label = record.get(config.title_field) or record.get("name") or record.get("title")
    return f"{label} ({record.get('id')})" if label else str(record.get("id"))


def _parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        st.error(f"Invalid JSON: {exc}")
        return None
    if not isinstance(data, dict):
        st.error("Expected a JSON object.")
        return None
    return data


def _save(context: PageContext, config: ListPageConfig, data: Dict[str, Any], item_id: Any = None) -> None:
    try:
        save_record(config.resource, data, context.settings, context.session, item_id=item_id)
    except RuntimeError as exc:
        logger.warning("Saving %s %s failed: %s", config.resource, item_id, exc)
        st.error(f"Save failed: {exc}")
    else:
        st.success("Record saved.")
        st.rerun()


def _edit_form(record: Dict[str, Any], context: PageContext, config: ListPageConfig, item_id: str) -> None:
    # nested relations are read-only; the backend takes flat fields
    editable = {k: v for k, v in record.items() if k != "id" and not isinstance(v, (dict, list))}
    with st.form(f"sr_{config.resource}_edit_{item_id}"):
        text = st.text_area("Edit fields (JSON)", json.dumps(editable, indent=2, default=str), height=240)
        if st.form_submit_button("Save changes"):
            data = _parse_json_object(text)
            if data is not None:
                _save(context, config, data, item_id=item_id)


def _create_form(context: PageContext, config: ListPageConfig) -> None:
    template = {col: None for col in config.columns if col not in ("event_title",)}
    with st.expander(f"New {config.title.lower()} record"):
        with st.form(f"sr_{config.resource}_create"):
            text = st.text_area("Fields (JSON)", json.dumps(template, indent=2), height=200)
            if st.form_submit_button("Create"):
                data = _parse_json_object(text)
                if data is not None:
                    _save(context, config, data)


def _details(records: List[Dict[str, Any]], df: pd.DataFrame, context: PageContext, config: ListPageConfig) -> None:
    if "id" not in df.columns:
        return
    by_id = {str(record.get("id")): record for record in records}
    with st.expander("Record details"):
        selected = st.selectbox(
            "Record",
            list(by_id),
            key=f"sr_{config.resource}_detail",
            format_func=lambda item_id: _record_label(by_id[item_id], config),
        )
        if selected is None:
            return
        record = fetch_or_default(
            "record",
            lambda: load_record(config.resource, selected, context.settings, context.session),
            {},
        )
        record = record or by_id[selected]
        st.json(record, expanded=True)
        if not context.session.is_admin:
            return
        _edit_form(record, context, config, selected)
        confirm = st.checkbox("I understand this cannot be undone", key=f"sr_{config.resource}_confirm")
        if st.button("Delete record", type="primary", key=f"sr_{config.resource}_delete", disabled=not confirm):
            try:
                delete_record(config.resource, selected, context.settings, context.session)
            except RuntimeError as exc:
                logger.warning("Deleting %s %s failed: %s", config.resource, selected, exc)
                st.error(f"Delete failed: {exc}")
            else:
                st.success("Record deleted.")
                st.rerun()


def render_list(context: PageContext, config: ListPageConfig) -> None:
    st.subheader(config.title)
    key = f"sr_{config.resource}"

    col_search, col_view = st.columns([3, 1])
    with col_search:
        search = st.text_input("Search", key=f"{key}_search", placeholder=f"Search {config.title.lower()}").strip()
    with col_view:
        view = st.radio("View", ["Table", "Map"], horizontal=True, key=f"{key}_view")

    if search != st.session_state.get(f"{key}_last_search", ""):
        st.session_state[f"{key}_page"] = 1
        st.session_state[f"{key}_last_search"] = search

    page, limit = pagination_controls(key)
    result = fetch_or_default(
        config.title.lower(),
        lambda: load_page(
            config.resource,
            context.settings,
            context.session,
            page=page,
            limit=limit,
            search=search or None,
            filters=context.filters,
        ),
        Page(page=page, limit=limit),
    )
    if result.total_pages and page > result.total_pages:
        st.session_state[f"{key}_page"] = clamp_page(page, result.total_pages)
        st.rerun()

    df = _flatten(result.items)
    if view == "Map":
        fig = map_chart(
            df,
            hover_name=config.title_field,
            color=config.map_color,
            size=config.map_size,
            hover_data=config.columns[:4],
        )
        if fig is None:
            st.info("No records with coordinates on this page.")
        else:
            render_plotly(fig)
    else:
        render_table(
            df,
            columns=config.columns,
            column_config=config.column_config,
            export_file_name=f"{config.resource}_page{page}.csv",
            empty_message=f"No {config.title.lower()} found.",
        )

    render_pagination(key, result.total, result.total_pages)
    _details(result.items, df, context, config)
    if context.session.is_admin:
        _create_form(context, config)


def make_renderer(resource: str) -> Callable[[PageContext], None]:
    config = LIST_PAGES[resource]

    def render(context: PageContext) -> None:
        render_list(context, config)

    return render
