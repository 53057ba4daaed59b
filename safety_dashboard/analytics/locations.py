"""
Record normalisation shared by the analytics modules: turning record lists
into frames, sentinel handling, and the district composite key.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, NamedTuple, Optional, Set

import numpy as np
import pandas as pd

UNKNOWN_DISTRICT = "Unknown District"
UNKNOWN_CITY = "Unknown City"
UNKNOWN_PROVINCE = "Unknown Province"

SENTINELS: Set[str] = {"", "None", "none", "N/A", "n/a", "NA", "na", "null", "Null", "-", "—"}

DISTRICT_COLUMNS = ["district_name", "city_name", "province_name"]
KEY_COLUMNS = ["_district", "_city", "_province"]


class DistrictKey(NamedTuple):
    district_name: str
    city_name: str
    province_name: str


def records_frame(records: Any) -> pd.DataFrame:
    """Copy a list of dicts (or a DataFrame) into a fresh frame; anything else is empty."""
    if isinstance(records, pd.DataFrame):
        return records.reset_index(drop=True)
    if isinstance(records, (list, tuple)):
        rows = [row for row in records if isinstance(row, Mapping)]
        return pd.DataFrame(rows)
    return pd.DataFrame()


def records_list(records: Any) -> list[dict]:
    if isinstance(records, pd.DataFrame):
        return records.to_dict(orient="records")
    if isinstance(records, (list, tuple)):
        return [dict(row) for row in records if isinstance(row, Mapping)]
    return []


def clean_name(value: Any) -> Optional[str]:
    """Return a stripped name, or None for missing/NaN/sentinel values."""
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return None
    text = str(value).strip()
    if text in SENTINELS:
        return None
    return text


def is_true(value: Any) -> bool:
    """Only a real boolean True counts; strings and numbers do not."""
    return isinstance(value, (bool, np.bool_)) and bool(value)


def to_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def district_key(record: Mapping[str, Any]) -> Optional[DistrictKey]:
    """Composite district identity, or None when the district name is unusable."""
    district = clean_name(record.get("district_name"))
    if district is None or district == UNKNOWN_DISTRICT:
        return None
    return DistrictKey(
        district,
        clean_name(record.get("city_name")) or UNKNOWN_CITY,
        clean_name(record.get("province_name")) or UNKNOWN_PROVINCE,
    )


def known_districts(df: pd.DataFrame) -> pd.DataFrame:
    """Keep rows with a usable district and add the resolved key columns.

    ``KEY_COLUMNS`` hold the resolved district/city/province names; group on
    them with ``sort=False`` to keep first-encountered order.
    """
    working = df.copy()
    for col in DISTRICT_COLUMNS:
        if col not in working.columns:
            working[col] = None
    keys = [district_key(row) for row in working[DISTRICT_COLUMNS].to_dict(orient="records")]
    mask = pd.Series([key is not None for key in keys], index=working.index, dtype=bool)
    working = working[mask].copy()
    resolved = [key for key in keys if key is not None]
    for position, col in enumerate(KEY_COLUMNS):
        working[col] = [key[position] for key in resolved]
    return working


def key_from_row(row: Mapping[str, Any]) -> DistrictKey:
    return DistrictKey(*(row[col] for col in KEY_COLUMNS))


def numeric_column(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series(0.0, index=df.index, dtype="float64")
    return pd.to_numeric(df[col], errors="coerce").fillna(0.0)


def label_column(df: pd.DataFrame, col: str, unknown_label: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series(unknown_label, index=df.index, dtype=object)
    return df[col].map(lambda v: clean_name(v) or unknown_label)
