"""
Fetch collections from the REST backend (or the offline sample dataset) and
normalise them into DataFrames for the pages.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import streamlit as st

from safety_dashboard.analytics.charts import coerce_dates
from safety_dashboard.analytics.locations import SENTINELS, is_true, numeric_column
from safety_dashboard.config import Settings
from safety_dashboard.data.api_client import AppSession, Page, SafetyRidingClient
from safety_dashboard.data.filters import GlobalFilters, apply_global_filters, to_query_filters
from safety_dashboard.data.sample import LOCATIONS as SAMPLE_LOCATIONS, generate_sample_data

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS: Dict[str, List[str]] = {
    "schools": ["student_count", "latitude", "longitude"],
    "publics": ["member_count", "latitude", "longitude"],
    "events": ["attendees_count", "latitude", "longitude"],
    "accidents": ["death_count", "injured_count", "minor_injured_count", "latitude", "longitude"],
    "budgets": ["budget_amount", "actual_spent"],
    "market_share": [
        "market_share",
        "competitor_share",
        "total_sales",
        "competitor_sales",
        "monthly_difference",
        "month",
        "year",
    ],
    "users": [],
}
DATE_COLUMNS: Dict[str, List[str]] = {
    "events": ["event_date"],
    "accidents": ["accident_date"],
    "budgets": ["budget_date"],
}

FilterKey = Tuple[Tuple[str, Any], ...]


def _normalize_sentinels(df: pd.DataFrame) -> pd.DataFrame:
    """Replace sentinel string tokens with None (in-place) and record counts in df.attrs.

    Adds / updates:
        df.attrs['sentinel_replacements'] = {column: count_replaced, ...}
    """
    replacements = {}
    for col in df.columns:
        if pd.api.types.is_string_dtype(df[col].dtype):
            mask = df[col].apply(lambda v: isinstance(v, str) and v.strip() in SENTINELS)
            count = int(mask.sum())
            if count:
                replacements[col] = count
                df.loc[mask, col] = None
    if replacements:
        existing = df.attrs.get("sentinel_replacements", {})
        existing.update(replacements)
        df.attrs["sentinel_replacements"] = existing
    return df


def normalize_records(records: List[Dict[str, Any]], resource: str) -> pd.DataFrame:
    """Build a DataFrame from raw records with numeric coercion and diagnostics.

    Date columns are kept as the original strings (the analytics parse them
    element-wise) and a parsed ``<col>_parsed`` column is added next to them.
    """
    df = pd.DataFrame(records)
    if df.empty:
        return df

    df = _normalize_sentinels(df)

    for col in NUMERIC_COLUMNS.get(resource, []):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")

    unparsed: Dict[str, int] = {}
    for col in DATE_COLUMNS.get(resource, []):
        if col in df.columns:
            parsed = coerce_dates(df[col])
            df[f"{col}_parsed"] = parsed
            unparsed[col] = int((parsed.isna() & df[col].notna()).sum())

    df.attrs["diagnostics"] = {
        "resource": resource,
        "dataframe_row_count": int(len(df)),
        "unique_id": int(df["id"].nunique()) if "id" in df.columns else None,
        "duplicate_id_rows": int(len(df) - df["id"].nunique()) if "id" in df.columns else None,
        "sentinel_replacements": df.attrs.get("sentinel_replacements", {}),
        "unparsed_dates": unparsed,
    }
    return df


def _filter_key(filters: Optional[GlobalFilters]) -> FilterKey:
    if filters is None:
        return ()
    return tuple(sorted(to_query_filters(filters).items()))


def make_client(settings: Settings, session: AppSession) -> SafetyRidingClient:
    if not settings.api_url:
        raise RuntimeError("API_URL is not configured")
    return SafetyRidingClient(settings.api_url, session=session, timeout=settings.api_timeout)


@st.cache_data(show_spinner=False)
def load_sample_data(seed: int = 42) -> Dict[str, Any]:
    return generate_sample_data(seed=seed)


@st.cache_data(show_spinner=False, ttl=600)
def _fetch_all_impl(
    api_url: str,
    token: Optional[str],
    timeout: float,
    resource: str,
    filter_key: FilterKey,
    page_size: int,
    max_pages: int,
) -> List[Dict[str, Any]]:
    """Cached by endpoint, credentials, resource and filters."""
    client = SafetyRidingClient(api_url, session=AppSession(token=token), timeout=timeout)
    items = client.list_all(resource, filters=dict(filter_key), page_size=page_size, max_pages=max_pages)
    logger.info("Fetched %d %s rows", len(items), resource)
    return items


@st.cache_data(show_spinner=False, ttl=600)
def _fetch_aggregate_impl(
    api_url: str,
    token: Optional[str],
    timeout: float,
    endpoint: str,
    filter_key: FilterKey,
) -> Dict[str, Any]:
    client = SafetyRidingClient(api_url, session=AppSession(token=token), timeout=timeout)
    fetchers = {
        "dashboard_stats": client.dashboard_stats,
        "education_priority": client.education_priority,
        "market_share_suggestions": client.market_share_suggestions,
    }
    return fetchers[endpoint](dict(filter_key))


def load_collection(
    resource: str,
    settings: Settings,
    session: AppSession,
    filters: Optional[GlobalFilters] = None,
) -> pd.DataFrame:
    """Every row of a resource (all pages) as a normalised DataFrame."""
    if settings.use_sample_data:
        records = load_sample_data().get(resource, [])
        df = normalize_records(records, resource)
        return apply_global_filters(df, filters, resource) if filters else df

    records = _fetch_all_impl(
        settings.api_url,
        session.token,
        settings.api_timeout,
        resource,
        _filter_key(filters),
        settings.api_page_size,
        settings.api_max_pages,
    )
    return normalize_records(records, resource)


def _search_frame(df: pd.DataFrame, search: Optional[str]) -> pd.DataFrame:
    """Rows where any column contains ``search`` (case-insensitive)."""
    if not search or df.empty:
        return df
    haystack = df.astype(str).agg(" ".join, axis=1).str.lower()
    return df[haystack.str.contains(search.lower(), regex=False)]


def load_page(
    resource: str,
    settings: Settings,
    session: AppSession,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    filters: Optional[GlobalFilters] = None,
) -> Page:
    """One page of a list endpoint; the sample dataset is paged locally."""
    if settings.use_sample_data:
        df = _search_frame(load_collection(resource, settings, session, filters), search)
        total = int(len(df))
        total_pages = (total + limit - 1) // limit
        start = (page - 1) * limit
        items = df.iloc[start: start + limit].to_dict(orient="records")
        return Page(items=items, total=total, total_pages=total_pages, page=page, limit=limit)

    client = make_client(settings, session)
    query = to_query_filters(filters) if filters else None
    return client.list_page(resource, page=page, limit=limit, filters=query, search=search)


def _load_aggregate(
    endpoint: str,
    settings: Settings,
    session: AppSession,
    filters: Optional[GlobalFilters],
) -> Dict[str, Any]:
    if settings.use_sample_data:
        payload = dict(load_sample_data().get(endpoint, {}))
        # row-shaped sample payloads honour the location and period filters
        for key in ("items", "districts", "top_cities"):
            if filters and isinstance(payload.get(key), list):
                rows = apply_global_filters(pd.DataFrame(payload[key]), filters, endpoint)
                payload[key] = rows.to_dict(orient="records")
        return payload
    return _fetch_aggregate_impl(
        settings.api_url,
        session.token,
        settings.api_timeout,
        endpoint,
        _filter_key(filters),
    )


def load_dashboard_stats(settings: Settings, session: AppSession, filters: Optional[GlobalFilters] = None) -> Dict[str, Any]:
    return _load_aggregate("dashboard_stats", settings, session, filters)


def load_education_priority(settings: Settings, session: AppSession, filters: Optional[GlobalFilters] = None) -> Dict[str, Any]:
    return _load_aggregate("education_priority", settings, session, filters)


def _suggestion_rows(payload: Any, keys: Tuple[str, ...]) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for key in keys:
        rows = payload.get(key)
        if isinstance(rows, list):
            return rows
    return []


def load_market_share_suggestions(
    settings: Settings,
    session: AppSession,
    filters: Optional[GlobalFilters] = None,
) -> List[Dict[str, Any]]:
    """District-level suggestions; the endpoint nests them under ``districts``/``top_districts``."""
    payload = _load_aggregate("market_share_suggestions", settings, session, filters)
    return _suggestion_rows(payload, ("districts", "topDistricts", "top_districts"))


def load_market_share_city_suggestions(
    settings: Settings,
    session: AppSession,
    filters: Optional[GlobalFilters] = None,
) -> List[Dict[str, Any]]:
    """City-level suggestions from the same endpoint (``top_cities``)."""
    payload = _load_aggregate("market_share_suggestions", settings, session, filters)
    if isinstance(payload, list):
        return []
    return _suggestion_rows(payload, ("top_cities", "topCities", "cities"))


@st.cache_data(show_spinner=False, ttl=3600)
def _fetch_locations_impl(
    api_url: str,
    token: Optional[str],
    timeout: float,
    level: str,
    province_code: Optional[str],
    city_code: Optional[str],
) -> List[Dict[str, Any]]:
    client = SafetyRidingClient(api_url, session=AppSession(token=token), timeout=timeout)
    if level == "province":
        return client.provinces()
    if level == "city":
        return client.cities(province_code or "")
    return client.districts(province_code or "", city_code or "")


def _sample_locations(level: str, province_code: Optional[str], city_code: Optional[str]) -> List[Dict[str, Any]]:
    names: List[str] = []
    for province, city, districts in SAMPLE_LOCATIONS:
        if level == "province":
            names.append(province)
        elif level == "city" and province == province_code:
            names.append(city)
        elif level == "district" and province == province_code and city == city_code:
            names.extend(districts)
    return [{"code": name, "name": name} for name in dict.fromkeys(names)]


def load_location_options(
    level: str,
    settings: Settings,
    session: AppSession,
    province_code: Optional[str] = None,
    city_code: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """``{code, name}`` options for the province → city → district selectors."""
    if level not in ("province", "city", "district"):
        raise ValueError(f"Unknown location level: {level}")
    if level != "province" and not province_code:
        return []
    if level == "district" and not city_code:
        return []
    if settings.use_sample_data:
        return _sample_locations(level, province_code, city_code)
    rows = _fetch_locations_impl(
        settings.api_url,
        session.token,
        settings.api_timeout,
        level,
        province_code,
        city_code,
    )
    return [
        {"code": str(row.get("code")), "name": row.get("name")}
        for row in rows
        if isinstance(row, dict) and row.get("name")
    ]


@st.cache_data(show_spinner=False, ttl=600)
def _fetch_education_stats_impl(
    api_url: str,
    token: Optional[str],
    timeout: float,
    filter_key: FilterKey,
    page: int,
    limit: int,
    search: Optional[str],
) -> Dict[str, Any]:
    client = SafetyRidingClient(api_url, session=AppSession(token=token), timeout=timeout)
    return client.education_stats(dict(filter_key), page=page, limit=limit, search=search)


def load_education_stats(
    settings: Settings,
    session: AppSession,
    filters: Optional[GlobalFilters] = None,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
) -> Dict[str, Any]:
    """``/education/stats`` payload: school totals plus one page of ``schools`` rows."""
    if not settings.use_sample_data:
        return _fetch_education_stats_impl(
            settings.api_url,
            session.token,
            settings.api_timeout,
            _filter_key(filters),
            page,
            limit,
            search,
        )

    df = _search_frame(load_collection("schools", settings, session, filters), search)
    if df.empty:
        return {"total_schools": 0, "total_educated_schools": 0, "total_all_students": 0, "schools": []}
    educated = df["is_educated"].map(is_true) if "is_educated" in df.columns else pd.Series(False, index=df.index)
    start = (page - 1) * limit
    return {
        "total_schools": int(len(df)),
        "total_educated_schools": int(educated.sum()),
        "total_all_students": int(numeric_column(df, "total_student_educated").sum()),
        "schools": df.iloc[start: start + limit].to_dict(orient="records"),
    }


def load_record(resource: str, item_id: Any, settings: Settings, session: AppSession) -> Dict[str, Any]:
    """One full record, nested relations included."""
    if settings.use_sample_data:
        for record in load_sample_data().get(resource, []):
            if str(record.get("id")) == str(item_id):
                return dict(record)
        return {}
    return make_client(settings, session).get(resource, item_id)


def save_record(
    resource: str,
    data: Dict[str, Any],
    settings: Settings,
    session: AppSession,
    item_id: Any = None,
) -> Dict[str, Any]:
    """Create a record, or update ``item_id`` when given."""
    if settings.use_sample_data:
        raise RuntimeError("Editing is not available for the sample dataset")
    client = make_client(settings, session)
    if item_id is None:
        saved = client.create(resource, data)
        logger.info("Created %s %s", resource, saved.get("id"))
    else:
        saved = client.update(resource, item_id, data)
        logger.info("Updated %s %s", resource, item_id)
    clear_caches()
    return saved


def delete_record(resource: str, item_id: Any, settings: Settings, session: AppSession) -> None:
    if settings.use_sample_data:
        raise RuntimeError("Deleting is not available for the sample dataset")
    make_client(settings, session).delete(resource, item_id)
    clear_caches()
    logger.info("Deleted %s %s", resource, item_id)


def clear_caches() -> None:
    _fetch_all_impl.clear()  # type: ignore[attr-defined]
    _fetch_aggregate_impl.clear()  # type: ignore[attr-defined]
    _fetch_locations_impl.clear()  # type: ignore[attr-defined]
    _fetch_education_stats_impl.clear()  # type: ignore[attr-defined]
