"""
Chart-ready series built from flat records: monthly trends, top-N rankings,
pre-aggregated passthroughs, education coverage and axis label wrapping.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from safety_dashboard.analytics.locations import (
    clean_name,
    is_true,
    label_column,
    numeric_column,
    records_frame,
    to_number,
)
from safety_dashboard.config import LABEL_MAX_LENGTH, MAX_TREND_MONTHS, TOP_N

MONTH_LABEL_FORMAT = "%b %Y"


def _parse_date(value: Any) -> pd.Timestamp:
    # Element-wise so mixed "2025-01-05" / ISO timestamp inputs both parse.
    # Numbers are not dates here; epoch integers would land in 1970.
    if isinstance(value, str):
        if not value.strip():
            return pd.NaT
    elif not isinstance(value, (dt.date, np.datetime64)):
        return pd.NaT
    try:
        parsed = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return pd.NaT
    if parsed is pd.NaT or pd.isna(parsed):
        return pd.NaT
    # keep the wall-clock time as recorded so "+07:00" dates stay in their own month
    if parsed.tzinfo is not None:
        parsed = parsed.tz_localize(None)
    return parsed


def coerce_dates(series: pd.Series) -> pd.Series:
    return pd.to_datetime(series.map(_parse_date), errors="coerce")


def monthly_accident_trend(accidents: Any, max_months: int = MAX_TREND_MONTHS) -> pd.DataFrame:
    """Accidents, deaths and injured per calendar month, last ``max_months`` months."""
    columns = ["period", "accidents", "deaths", "injured"]
    df = records_frame(accidents)
    if df.empty or "accident_date" not in df.columns:
        return pd.DataFrame(columns=columns)
    working = df.assign(
        _date=coerce_dates(df["accident_date"]),
        deaths=numeric_column(df, "death_count"),
        injured=numeric_column(df, "injured_count"),
    )
    working = working.dropna(subset=["_date"])
    if working.empty:
        return pd.DataFrame(columns=columns)
    working["_month"] = working["_date"].dt.to_period("M")
    grouped = (
        working.groupby("_month")
        .agg(accidents=("_date", "size"), deaths=("deaths", "sum"), injured=("injured", "sum"))
        .sort_index()
        .tail(max(int(max_months), 0))
        .reset_index()
    )
    grouped["period"] = grouped["_month"].dt.strftime(MONTH_LABEL_FORMAT)
    for col in ("accidents", "deaths", "injured"):
        grouped[col] = grouped[col].astype(int)
    return grouped[columns]


def accident_trend_from_stats(rows: Any) -> pd.DataFrame:
    """Normalise the server-aggregated ``accident_trends`` series."""
    columns = ["period", "accidents", "deaths", "injured"]
    df = records_frame(rows)
    if df.empty:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(
        {
            "period": label_column(df, "period", "Unknown"),
            "accidents": numeric_column(df, "accidents").astype(int),
            "deaths": numeric_column(df, "deaths").astype(int),
            "injured": numeric_column(df, "injured").astype(int),
        }
    )[columns]


def top_n_totals(
    records: Any,
    key: str,
    measure: Optional[str] = None,
    top_n: int = TOP_N,
    unknown_label: str = "Unknown",
) -> pd.DataFrame:
    """Group by ``key``, sum ``measure`` (or count rows), return the top ``top_n`` groups.

    Groups keep first-seen order before a stable descending sort, so ties
    resolve to whichever group appeared first.
    """
    df = records_frame(records)
    if df.empty:
        return pd.DataFrame(columns=["label", "value"])
    working = pd.DataFrame(
        {
            "label": label_column(df, key, unknown_label),
            "value": numeric_column(df, measure) if measure else 1,
        }
    )
    grouped = working.groupby("label", sort=False)["value"].sum().reset_index()
    return grouped.sort_values("value", ascending=False, kind="stable").head(top_n).reset_index(drop=True)


def schools_by_province(schools: Any, top_n: int = TOP_N) -> pd.DataFrame:
    ranked = top_n_totals(schools, "province_name", top_n=top_n)
    return ranked.rename(columns={"label": "Province", "value": "Schools"})


def publics_by_city(publics: Any, top_n: int = TOP_N) -> pd.DataFrame:
    ranked = top_n_totals(publics, "city_name", top_n=top_n)
    return ranked.rename(columns={"label": "City", "value": "Public Entities"})


def _event_title(event: Any) -> Optional[str]:
    if isinstance(event, dict):
        return clean_name(event.get("title"))
    return None


def budget_by_event(budgets: Any, top_n: int = TOP_N) -> pd.DataFrame:
    """Allocated and spent totals per event title, ranked by allocated amount."""
    columns = ["Event", "Allocated", "Spent"]
    df = records_frame(budgets)
    if df.empty:
        return pd.DataFrame(columns=columns)
    if "event" in df.columns:
        titles = df["event"].map(_event_title)
    else:
        titles = pd.Series(None, index=df.index, dtype=object)
    if "event_title" in df.columns:
        titles = titles.fillna(df["event_title"].map(clean_name))
    working = pd.DataFrame(
        {
            "Event": titles.fillna("Unknown Event"),
            "Allocated": numeric_column(df, "budget_amount"),
            "Spent": numeric_column(df, "actual_spent"),
        }
    )
    grouped = working.groupby("Event", sort=False)[["Allocated", "Spent"]].sum().reset_index()
    return grouped.sort_values("Allocated", ascending=False, kind="stable").head(top_n).reset_index(drop=True)


def event_type_distribution(rows: Any) -> pd.DataFrame:
    """Pre-aggregated ``{event_type, count}`` rows with each slice's share of the total.

    ``percentage`` is rounded to one decimal; it is None when the total is 0.
    Counts stay integers unless the payload carries fractional values.
    """
    columns = ["event_type", "count", "percentage"]
    df = records_frame(rows)
    if df.empty:
        return pd.DataFrame(columns=columns)
    counts = numeric_column(df, "count")
    if (counts % 1 == 0).all():
        counts = counts.astype(int)
    result = pd.DataFrame(
        {
            "event_type": label_column(df, "event_type", "Unknown"),
            "count": counts,
        }
    )
    total = result["count"].sum()
    if total > 0:
        result["percentage"] = (result["count"] / total * 100).round(1)
    else:
        result["percentage"] = None
    return result[columns]


def budget_utilization(rows: Any) -> pd.DataFrame:
    """Pre-aggregated ``{period, allocated, spent}`` rows plus spent/allocated percentage."""
    columns = ["period", "allocated", "spent", "utilization"]
    df = records_frame(rows)
    if df.empty:
        return pd.DataFrame(columns=columns)
    result = pd.DataFrame(
        {
            "period": label_column(df, "period", "Unknown"),
            "allocated": numeric_column(df, "allocated"),
            "spent": numeric_column(df, "spent"),
        }
    )
    result["utilization"] = pd.Series(
        [
            round(spent / allocated * 100, 1) if allocated > 0 else None
            for allocated, spent in zip(result["allocated"], result["spent"])
        ],
        index=result.index,
        dtype=object,
    )
    return result[columns]


def education_coverage(records: Any) -> Dict[str, Optional[float]]:
    """Educated vs. uneducated totals for schools or public entities."""
    df = records_frame(records)
    total = int(len(df))
    educated = int(df["is_educated"].map(is_true).sum()) if "is_educated" in df.columns else 0
    return {
        "total": total,
        "educated": educated,
        "uneducated": total - educated,
        "coverage_pct": round(educated / total * 100, 1) if total else None,
    }


def coverage_by_location(records: Any, key: str, top_n: int = TOP_N) -> pd.DataFrame:
    """Educated vs. total per ``key`` (province or city), largest groups first."""
    columns = ["label", "total", "educated", "coverage_pct"]
    df = records_frame(records)
    if df.empty:
        return pd.DataFrame(columns=columns)
    if "is_educated" in df.columns:
        educated = df["is_educated"].map(is_true).astype(int)
    else:
        educated = pd.Series(0, index=df.index, dtype=int)
    working = pd.DataFrame({"label": label_column(df, key, "Unknown"), "educated": educated})
    grouped = (
        working.groupby("label", sort=False)
        .agg(total=("educated", "size"), educated=("educated", "sum"))
        .reset_index()
    )
    grouped["coverage_pct"] = (grouped["educated"] / grouped["total"] * 100).round(1)
    ranked = grouped.sort_values("total", ascending=False, kind="stable").head(top_n)
    return ranked.reset_index(drop=True)[columns]


def education_stats_summary(payload: Any) -> Dict[str, Optional[float]]:
    """Totals of the ``/education/stats`` payload with coverage and students per school."""
    data = payload if isinstance(payload, Mapping) else {}
    total = int(to_number(data.get("total_schools")))
    educated = int(to_number(data.get("total_educated_schools")))
    students = int(to_number(data.get("total_all_students")))
    return {
        "total_schools": total,
        "educated_schools": educated,
        "uneducated_schools": max(total - educated, 0),
        "coverage_pct": round(educated / total * 100, 1) if total else None,
        "students_educated": students,
        "avg_students_per_school": round(students / total) if total else None,
    }


def school_coverage_rows(schools: Any) -> pd.DataFrame:
    """Per-school rows of the stats payload with the share of students educated."""
    columns = [
        "name",
        "npsn",
        "district_name",
        "city_name",
        "province_name",
        "student_count",
        "total_student_educated",
        "coverage_pct",
        "is_educated",
    ]
    df = records_frame(schools)
    if df.empty:
        return pd.DataFrame(columns=columns)
    students = numeric_column(df, "student_count")
    reached = numeric_column(df, "total_student_educated")
    result = df.assign(
        student_count=students.astype(int),
        total_student_educated=reached.astype(int),
        coverage_pct=pd.Series(
            [round(r / s * 100, 1) if s > 0 else None for s, r in zip(students, reached)],
            index=df.index,
            dtype=object,
        ),
        is_educated=df["is_educated"].map(is_true) if "is_educated" in df.columns else False,
    )
    for col in columns:
        if col not in result.columns:
            result[col] = None
    return result[columns]


def wrap_label(label: Any, max_length: int = LABEL_MAX_LENGTH) -> List[str]:
    """Greedily pack words into lines of at most ``max_length`` characters.

    Words longer than the limit are split into fixed-size chunks; the last
    chunk may share a line with the following word.
    """
    if label is None:
        return [""]
    max_length = max(int(max_length), 1)
    chunker = re.compile(f".{{1,{max_length}}}", re.DOTALL)

    lines: List[str] = []
    current = ""
    for word in str(label).split():
        tentative = f"{current} {word}" if current else word
        if len(tentative) <= max_length:
            current = tentative
            continue
        if current:
            lines.append(current)
        if len(word) > max_length:
            segments = chunker.findall(word)
            lines.extend(segments[:-1])
            current = segments[-1]
        else:
            current = word
    if current:
        lines.append(current)
    return lines or [""]
