"""
Next-month targeting recommendations.

Three independent district recommendations (uneducated schools, accident
frequency, market share) and the same three at city level. Each one
tolerates empty or malformed collections and returns None when nothing
qualifies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from safety_dashboard.analytics.locations import (
    UNKNOWN_CITY,
    UNKNOWN_DISTRICT,
    UNKNOWN_PROVINCE,
    KEY_COLUMNS,
    clean_name,
    is_true,
    key_from_row,
    known_districts,
    label_column,
    numeric_column,
    records_frame,
)

UNKNOWN_SCHOOL = "Unknown School"

MARKET_COLUMNS = ("market_share", "competitor_share", "total_sales", "competitor_sales", "monthly_difference")
CITY_COLUMNS = ["_city", "_province"]


@dataclass
class UneducatedDistrict:
    district_name: str
    city_name: str
    province_name: str
    count: int
    schools: List[str] = field(default_factory=list)


@dataclass
class AccidentDistrict:
    district_name: str
    city_name: str
    province_name: str
    count: int
    deaths: int
    injured: int


@dataclass
class MarketShareDistrict:
    district_name: str
    city_name: str
    province_name: str
    market_share: float
    competitor_share: float
    total_sales: float
    competitor_sales: float
    monthly_difference: float


@dataclass
class UneducatedCity:
    city_name: str
    province_name: str
    uneducated: int
    educated: int
    total_students: int


@dataclass
class AccidentCity:
    city_name: str
    province_name: str
    count: int
    deaths: int
    injured: int


@dataclass
class MarketShareCity:
    city_name: str
    province_name: str
    market_share: float
    competitor_share: float
    total_sales: float
    competitor_sales: float
    monthly_difference: float


@dataclass
class DistrictRecommendations:
    uneducated: Optional[UneducatedDistrict] = None
    accident: Optional[AccidentDistrict] = None
    market_share: Optional[MarketShareDistrict] = None

    @property
    def is_empty(self) -> bool:
        return self.uneducated is None and self.accident is None and self.market_share is None


@dataclass
class CityRecommendations:
    market_share: Optional[MarketShareCity] = None
    uneducated: Optional[UneducatedCity] = None
    accident: Optional[AccidentCity] = None

    @property
    def is_empty(self) -> bool:
        return self.market_share is None and self.uneducated is None and self.accident is None


def _top_group(grouped: pd.DataFrame, column: str) -> Optional[pd.Series]:
    if grouped.empty:
        return None
    # stable sort keeps first-encountered group on ties
    return grouped.sort_values(column, ascending=False, kind="stable").iloc[0]


def _top_market_row(rows: Any) -> Optional[pd.Series]:
    df = records_frame(rows)
    if df.empty:
        return None
    df = df.assign(**{f"_{col}": numeric_column(df, col) for col in MARKET_COLUMNS})
    return df.sort_values("_market_share", ascending=False, kind="stable").iloc[0]


def _market_values(top: pd.Series) -> Dict[str, float]:
    return {col: float(top[f"_{col}"]) for col in MARKET_COLUMNS}


def _known_cities(df: pd.DataFrame) -> pd.DataFrame:
    """Keep rows with a usable city name and add the ``CITY_COLUMNS`` key.

    Cities are identified by name and province together, so same-named
    cities in different provinces stay apart.
    """
    if "city_name" in df.columns:
        cities = df["city_name"].map(clean_name)
    else:
        cities = pd.Series(None, index=df.index, dtype=object)
    working = df.assign(_city=cities, _province=label_column(df, "province_name", UNKNOWN_PROVINCE))
    return working[working["_city"].notna() & (working["_city"] != UNKNOWN_CITY)]


def recommend_uneducated_district(schools: Any) -> Optional[UneducatedDistrict]:
    """District with the most schools that have not been educated yet."""
    df = records_frame(schools)
    if df.empty:
        return None
    if "is_educated" in df.columns:
        df = df[~df["is_educated"].map(is_true)]
    df = known_districts(df)
    if df.empty:
        return None
    df = df.assign(school_name=label_column(df, "name", UNKNOWN_SCHOOL))
    grouped = (
        df.groupby(KEY_COLUMNS, sort=False)
        .agg(count=("school_name", "size"), schools=("school_name", list))
        .reset_index()
    )
    top = _top_group(grouped, "count")
    if top is None:
        return None
    key = key_from_row(top)
    return UneducatedDistrict(
        district_name=key.district_name,
        city_name=key.city_name,
        province_name=key.province_name,
        count=int(top["count"]),
        schools=list(top["schools"]),
    )


def recommend_accident_district(accidents: Any) -> Optional[AccidentDistrict]:
    """District with the most recorded accidents, with death/injury totals."""
    df = records_frame(accidents)
    if df.empty:
        return None
    df = known_districts(df)
    if df.empty:
        return None
    df = df.assign(
        _deaths=numeric_column(df, "death_count"),
        _injured=numeric_column(df, "injured_count"),
    )
    grouped = (
        df.groupby(KEY_COLUMNS, sort=False)
        .agg(count=("_deaths", "size"), deaths=("_deaths", "sum"), injured=("_injured", "sum"))
        .reset_index()
    )
    top = _top_group(grouped, "count")
    if top is None:
        return None
    key = key_from_row(top)
    return AccidentDistrict(
        district_name=key.district_name,
        city_name=key.city_name,
        province_name=key.province_name,
        count=int(top["count"]),
        deaths=int(top["deaths"]),
        injured=int(top["injured"]),
    )


def recommend_market_share_district(suggestions: Any) -> Optional[MarketShareDistrict]:
    """Highest market-share district from the dashboard suggestions."""
    top = _top_market_row(suggestions)
    if top is None:
        return None
    return MarketShareDistrict(
        district_name=clean_name(top.get("district_name")) or UNKNOWN_DISTRICT,
        city_name=clean_name(top.get("city_name")) or UNKNOWN_CITY,
        province_name=clean_name(top.get("province_name")) or UNKNOWN_PROVINCE,
        **_market_values(top),
    )


def build_district_recommendations(
    schools: Any,
    accidents: Any,
    suggestions: Any,
) -> DistrictRecommendations:
    """Run all three recommendations; one having no data never blocks the others."""
    return DistrictRecommendations(
        uneducated=recommend_uneducated_district(schools),
        accident=recommend_accident_district(accidents),
        market_share=recommend_market_share_district(suggestions),
    )


def recommend_uneducated_city(schools: Any) -> Optional[UneducatedCity]:
    """City with the most uneducated schools, with student totals of those schools."""
    df = records_frame(schools)
    if df.empty:
        return None
    df = _known_cities(df)
    if df.empty:
        return None
    if "is_educated" in df.columns:
        educated = df["is_educated"].map(is_true).astype(bool)
    else:
        educated = pd.Series(False, index=df.index, dtype=bool)
    students = numeric_column(df, "student_count")
    df = df.assign(
        _educated=educated,
        _uneducated=~educated,
        _pending_students=students.where(~educated, 0.0),
    )
    grouped = (
        df.groupby(CITY_COLUMNS, sort=False)
        .agg(
            uneducated=("_uneducated", "sum"),
            educated=("_educated", "sum"),
            total_students=("_pending_students", "sum"),
        )
        .reset_index()
    )
    top = _top_group(grouped, "uneducated")
    # fully educated cities are covered, not candidates
    if top is None or int(top["uneducated"]) == 0:
        return None
    return UneducatedCity(
        city_name=top["_city"],
        province_name=top["_province"],
        uneducated=int(top["uneducated"]),
        educated=int(top["educated"]),
        total_students=int(top["total_students"]),
    )


def recommend_accident_city(accidents: Any) -> Optional[AccidentCity]:
    """City with the most recorded accidents, with death/injury totals."""
    df = records_frame(accidents)
    if df.empty:
        return None
    df = _known_cities(df)
    if df.empty:
        return None
    df = df.assign(
        _deaths=numeric_column(df, "death_count"),
        _injured=numeric_column(df, "injured_count"),
    )
    grouped = (
        df.groupby(CITY_COLUMNS, sort=False)
        .agg(count=("_deaths", "size"), deaths=("_deaths", "sum"), injured=("_injured", "sum"))
        .reset_index()
    )
    top = _top_group(grouped, "count")
    if top is None:
        return None
    return AccidentCity(
        city_name=top["_city"],
        province_name=top["_province"],
        count=int(top["count"]),
        deaths=int(top["deaths"]),
        injured=int(top["injured"]),
    )


def recommend_market_share_city(top_cities: Any) -> Optional[MarketShareCity]:
    """Highest market-share city from the ``top_cities`` suggestions."""
    top = _top_market_row(top_cities)
    if top is None:
        return None
    return MarketShareCity(
        city_name=clean_name(top.get("city_name")) or UNKNOWN_CITY,
        province_name=clean_name(top.get("province_name")) or UNKNOWN_PROVINCE,
        **_market_values(top),
    )


def build_city_recommendations(schools: Any, accidents: Any, top_cities: Any) -> CityRecommendations:
    return CityRecommendations(
        market_share=recommend_market_share_city(top_cities),
        uneducated=recommend_uneducated_city(schools),
        accident=recommend_accident_city(accidents),
    )


def top_uneducated_schools(
    schools: Any,
    city_name: str,
    limit: int = 10,
    province_name: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Uneducated schools of one city, largest student body first.

    Pass ``province_name`` to tell apart same-named cities in different provinces.
    """
    df = records_frame(schools)
    if df.empty or "city_name" not in df.columns:
        return []
    mask = df["city_name"].map(clean_name) == clean_name(city_name)
    if province_name is not None:
        mask &= label_column(df, "province_name", UNKNOWN_PROVINCE) == province_name
    if "is_educated" in df.columns:
        mask &= ~df["is_educated"].map(is_true)
    selected = df[mask]
    if selected.empty:
        return []
    selected = selected.assign(student_count=numeric_column(selected, "student_count").astype(int))
    ranked = selected.sort_values("student_count", ascending=False, kind="stable").head(limit)
    return ranked.to_dict(orient="records")
