"""
Filter utilities shared by the sidebar, the REST queries and the offline
sample dataset.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import pandas as pd

from safety_dashboard.analytics.charts import coerce_dates


@dataclass
class GlobalFilters:
    year: Optional[int]
    month: Optional[int]
    province_name: Optional[str]
    city_name: Optional[str]
    district_name: Optional[str]


DEFAULT_FILTERS = GlobalFilters(
    year=None,
    month=None,
    province_name=None,
    city_name=None,
    district_name=None,
)

# Date column each resource is filtered on for year/month
DATE_COLUMNS: Dict[str, str] = {
    "accidents": "accident_date",
    "events": "event_date",
    "budgets": "budget_date",
}


def to_query_filters(filters: GlobalFilters) -> Dict[str, Any]:
    """Mapping sent to the backend as ``filters[<key>]`` params."""
    query: Dict[str, Any] = {}
    if filters.year:
        query["year"] = filters.year
    if filters.month:
        query["month"] = filters.month
    if filters.province_name:
        query["province_name"] = filters.province_name
    if filters.city_name:
        query["city_name"] = filters.city_name
    if filters.district_name:
        query["district_name"] = filters.district_name
    return query


def apply_global_filters(df: pd.DataFrame, filters: GlobalFilters, resource: str) -> pd.DataFrame:
    """
    Apply the sidebar selection to an already-loaded frame. Used for the
    offline sample dataset; the REST backend filters server-side.
    """
    if df.empty:
        return df
    filtered = df.copy()

    date_col = DATE_COLUMNS.get(resource)
    if date_col and date_col in filtered.columns and (filters.year or filters.month):
        dates = coerce_dates(filtered[date_col])
        mask = dates.notna()
        if filters.year:
            mask &= dates.dt.year == filters.year
        if filters.month:
            mask &= dates.dt.month == filters.month
        filtered = filtered[mask]
    elif "year" in filtered.columns and filters.year:
        filtered = filtered[pd.to_numeric(filtered["year"], errors="coerce") == filters.year]
        if filters.month and "month" in filtered.columns:
            filtered = filtered[pd.to_numeric(filtered["month"], errors="coerce") == filters.month]

    for col in ("province_name", "city_name", "district_name"):
        value = getattr(filters, col)
        if value and col in filtered.columns:
            filtered = filtered[filtered[col].astype(str).str.lower() == value.lower()]

    filtered.attrs["applied_filters"] = serialize_filters(filters)
    return filtered


def serialize_filters(filters: GlobalFilters) -> Dict[str, Any]:
    """
    Convert the GlobalFilters dataclass to a JSON-serialisable dictionary to be
    stored in session_state or used for logging/debugging.
    """
    return {
        "year": filters.year,
        "month": filters.month,
        "province_name": filters.province_name,
        "city_name": filters.city_name,
        "district_name": filters.district_name,
    }
