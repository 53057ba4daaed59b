"""
Reusable helpers for rendering data tables and list pagination.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

from safety_dashboard.ui.components.formatting import format_currency, format_number, format_percent

PAGE_SIZE_OPTIONS = [10, 25, 50, 100]


def format_columns(df: pd.DataFrame, column_config: Optional[Dict[str, Dict[str, str]]] = None) -> pd.DataFrame:
    formatted_df = df.copy()
    for column, config in (column_config or {}).items():
        if column not in formatted_df.columns:
            continue
        fmt_type = config.get("type")
        decimals = int(config.get("decimals", 1 if fmt_type == "percent" else 0))
        if fmt_type == "currency":
            formatted_df[column] = formatted_df[column].apply(lambda v: format_currency(v, decimals=decimals))
        elif fmt_type == "percent":
            formatted_df[column] = formatted_df[column].apply(lambda v: format_percent(v, decimals=decimals))
        elif fmt_type == "number":
            formatted_df[column] = formatted_df[column].apply(lambda v: format_number(v, decimals=decimals))
    return formatted_df


def render_table(
    df: pd.DataFrame,
    columns: Optional[List[str]] = None,
    column_config: Optional[Dict[str, Dict[str, str]]] = None,
    height: Optional[int] = None,
    export_file_name: Optional[str] = None,
    empty_message: str = "No data to display.",
) -> None:
    if df.empty:
        st.info(empty_message)
        return

    if columns:
        df = df[[col for col in columns if col in df.columns]]

    options = {"height": height} if height else {}
    st.dataframe(
        format_columns(df, column_config),
        use_container_width=True,
        hide_index=True,
        **options,
    )

    if export_file_name:
        csv_bytes = df.to_csv(index=False).encode("utf-8")
        st.download_button(
            "Download CSV",
            data=csv_bytes,
            file_name=export_file_name,
            mime="text/csv",
            key=f"download_{export_file_name}",
        )


def clamp_page(page: int, total_pages: int) -> int:
    return max(1, min(int(page), max(int(total_pages), 1)))


def pagination_controls(key: str) -> tuple[int, int]:
    """Current ``(page, limit)`` for a list, kept in session state under ``key``."""
    page_key = f"{key}_page"
    limit_key = f"{key}_limit"
    st.session_state.setdefault(page_key, 1)
    st.session_state.setdefault(limit_key, PAGE_SIZE_OPTIONS[0])
    return int(st.session_state[page_key]), int(st.session_state[limit_key])


def render_pagination(key: str, total: int, total_pages: int) -> None:
    page_key = f"{key}_page"
    limit_key = f"{key}_limit"
    page = clamp_page(st.session_state.get(page_key, 1), total_pages)
    col_info, col_prev, col_next, col_limit = st.columns([5, 1, 1, 2])
    with col_info:
        st.caption(f"{format_number(total)} records, page {page} of {max(total_pages, 1)}")
    with col_prev:
        if st.button("‹ Prev", key=f"{key}_prev", disabled=page <= 1):
            st.session_state[page_key] = page - 1
            st.rerun()
    with col_next:
        if st.button("Next ›", key=f"{key}_next", disabled=page >= total_pages):
            st.session_state[page_key] = page + 1
            st.rerun()
    with col_limit:
        current = st.session_state.get(limit_key, PAGE_SIZE_OPTIONS[0])
        limit = st.selectbox(
            "Per page",
            PAGE_SIZE_OPTIONS,
            index=PAGE_SIZE_OPTIONS.index(current) if current in PAGE_SIZE_OPTIONS else 0,
            key=f"{key}_limit_select",
            label_visibility="collapsed",
        )
        if limit != current:
            st.session_state[limit_key] = limit
            st.session_state[page_key] = 1
            st.rerun()
