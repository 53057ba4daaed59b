from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, TypeVar

import pandas as pd
import streamlit as st

from safety_dashboard.data.api_client import ApiError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def fetch_or_default(what: str, loader: Callable[[], T], default: T) -> T:
    """Run a loader; on backend failure show the error and fall back to ``default``."""
    try:
        return loader()
    except ApiError as exc:
        logger.error("Loading %s failed: %s", what, exc)
        if exc.status_code == 401:
            st.warning(f"Sign in to load {what}.")
        else:
            st.error(f"Could not load {what}: {exc}")
        return default


def safe_sum(df: pd.DataFrame, column: str) -> float:
    if column not in df.columns:
        return 0.0
    return float(pd.to_numeric(df[column], errors="coerce").fillna(0).sum())


def location_label(record: Mapping[str, Any]) -> str:
    parts = [record.get("district_name"), record.get("city_name"), record.get("province_name")]
    return ", ".join(str(part) for part in parts if part)
