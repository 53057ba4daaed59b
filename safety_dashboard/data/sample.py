"""
Deterministic sample dataset used when no backend is configured
(``DATA_SOURCE=sample`` or ``API_URL`` unset).
"""

from __future__ import annotations

from typing import Any, Dict, List

import numpy as np
import pandas as pd

from safety_dashboard.analytics.charts import (
    budget_utilization,
    education_coverage,
    event_type_distribution,
    monthly_accident_trend,
)
from safety_dashboard.analytics.priority import calculate_priority_score, priority_level_for_score
from safety_dashboard.config import DEFAULT_MARKET_THRESHOLD

LOCATIONS = [
    ("Jawa Barat", "Bandung", ["Coblong", "Sukajadi", "Cicendo"]),
    ("Jawa Barat", "Bekasi", ["Tambun Selatan", "Cikarang Barat"]),
    ("Jawa Tengah", "Semarang", ["Tembalang", "Banyumanik"]),
    ("Jawa Timur", "Surabaya", ["Wonokromo", "Rungkut", "Tegalsari"]),
    ("DKI Jakarta", "Jakarta Selatan", ["Kebayoran Baru", "Tebet"]),
    ("Banten", "Tangerang", ["Ciledug", "Karawaci"]),
]
EVENT_TYPES = ["seminar", "workshop", "competition", "campaign"]
EVENT_STATUSES = ["planned", "ongoing", "completed", "cancelled"]
PUBLIC_CATEGORIES = ["community", "company", "government", "ojek online"]
ROLES = ["admin", "staff", "viewer"]


def _districts() -> List[Dict[str, str]]:
    rows = []
    for province, city, districts in LOCATIONS:
        for district in districts:
            rows.append({"province_name": province, "city_name": city, "district_name": district})
    return rows


def _coords(rng: np.random.Generator, n: int) -> tuple[np.ndarray, np.ndarray]:
    lat = rng.uniform(-7.9, -6.1, n).round(5)
    lon = rng.uniform(106.5, 112.8, n).round(5)
    return lat, lon


def generate_sample_data(seed: int = 42, today: pd.Timestamp | None = None) -> Dict[str, Any]:
    rng = np.random.default_rng(seed)
    today = (today or pd.Timestamp.today()).normalize()
    districts = _districts()
    dates = pd.date_range(today - pd.DateOffset(months=18), today, freq="D")

    n_schools = 120
    school_loc = rng.integers(0, len(districts), n_schools)
    lat, lon = _coords(rng, n_schools)
    schools = []
    for i in range(n_schools):
        loc = districts[school_loc[i]]
        educated = bool(rng.random() < 0.35)
        students = int(rng.integers(150, 1400))
        schools.append(
            {
                "id": f"sch-{i + 1:04d}",
                "name": f"SMA Negeri {i + 1} {loc['city_name']}",
                "npsn": f"{20200000 + i + 1}",
                **loc,
                "is_educated": educated,
                "student_count": students,
                "total_student_educated": students if educated else 0,
                "latitude": float(lat[i]),
                "longitude": float(lon[i]),
            }
        )
    # a couple of rows with broken location data, as seen in real exports
    schools.append({"id": "sch-x001", "name": "SMK Tanpa Alamat", "district_name": None,
                    "city_name": "Bandung", "province_name": "Jawa Barat", "is_educated": False,
                    "student_count": 300, "total_student_educated": 0})

    n_publics = 60
    public_loc = rng.integers(0, len(districts), n_publics)
    lat, lon = _coords(rng, n_publics)
    publics = []
    for i in range(n_publics):
        loc = districts[public_loc[i]]
        publics.append(
            {
                "id": f"pub-{i + 1:04d}",
                "name": f"{rng.choice(PUBLIC_CATEGORIES).title()} {loc['district_name']} {i + 1}",
                "category": str(rng.choice(PUBLIC_CATEGORIES)),
                **loc,
                "is_educated": bool(rng.random() < 0.4),
                "member_count": int(rng.integers(20, 600)),
                "latitude": float(lat[i]),
                "longitude": float(lon[i]),
            }
        )

    n_events = 45
    lat, lon = _coords(rng, n_events)
    events = []
    for i in range(n_events):
        loc = districts[int(rng.integers(0, len(districts)))]
        event_date = pd.Timestamp(rng.choice(dates))
        events.append(
            {
                "id": f"evt-{i + 1:04d}",
                "title": f"Safety Riding {str(rng.choice(EVENT_TYPES)).title()} {loc['city_name']} #{i + 1}",
                "event_date": event_date.strftime("%Y-%m-%d"),
                "event_type": str(rng.choice(EVENT_TYPES)),
                "status": str(rng.choice(EVENT_STATUSES)),
                "attendees_count": int(rng.integers(25, 500)),
                "location": f"{loc['district_name']}, {loc['city_name']}",
                **loc,
                "latitude": float(lat[i]),
                "longitude": float(lon[i]),
            }
        )

    budgets = []
    for i, event in enumerate(events):
        amount = float(rng.integers(5, 80)) * 1_000_000
        budgets.append(
            {
                "id": f"bud-{i + 1:04d}",
                "event": {"title": event["title"]},
                "budget_amount": amount,
                "actual_spent": round(amount * float(rng.uniform(0.55, 1.1)), -3),
                "budget_date": event["event_date"],
            }
        )

    n_accidents = 220
    lat, lon = _coords(rng, n_accidents)
    # skew accidents towards a few hot-spot districts
    weights = rng.random(len(districts)) ** 3
    weights = weights / weights.sum()
    accidents = []
    for i in range(n_accidents):
        loc = districts[int(rng.choice(len(districts), p=weights))]
        accidents.append(
            {
                "id": f"acc-{i + 1:04d}",
                "accident_date": pd.Timestamp(rng.choice(dates)).strftime("%Y-%m-%d"),
                "death_count": int(rng.poisson(0.3)),
                "injured_count": int(rng.poisson(1.4)),
                **loc,
                "location": f"Jl. Raya {loc['district_name']}",
                "police_report_no": f"LP/{i + 1:05d}/{today.year}",
                "latitude": float(lat[i]),
                "longitude": float(lon[i]),
            }
        )

    market_share = []
    for idx, loc in enumerate(districts):
        share = round(float(rng.uniform(60, 97)), 2)
        total_sales = int(rng.integers(800, 6000))
        market_share.append(
            {
                "id": f"ms-{idx + 1:04d}",
                **loc,
                "month": int(today.month),
                "year": int(today.year),
                "market_share": share,
                "competitor_share": round(100 - share, 2),
                "total_sales": total_sales,
                "competitor_sales": int(total_sales * (100 - share) / share),
                "monthly_difference": round(float(rng.normal(0, 2.5)), 2),
            }
        )

    users = [
        {"id": f"usr-{i + 1:03d}", "name": name, "email": f"{name.lower()}@example.com",
         "role": ROLES[i % len(ROLES)], "is_active": True}
        for i, name in enumerate(["Admin", "Rina", "Budi", "Sari", "Dewi"])
    ]

    priority_items = _priority_rows(schools, accidents, market_share)

    accidents_df = pd.DataFrame(accidents)
    events_df = pd.DataFrame(events)
    event_counts = events_df.groupby("event_type").size().reset_index(name="count")
    budgets_df = pd.DataFrame(budgets)
    budget_dates = pd.to_datetime(budgets_df["budget_date"])
    budgets_df = budgets_df.assign(
        period=budget_dates.dt.strftime("%b %Y"),
        _order=budget_dates.dt.to_period("M"),
    )
    budget_series = (
        budgets_df.groupby(["_order", "period"])
        .agg(allocated=("budget_amount", "sum"), spent=("actual_spent", "sum"))
        .reset_index()
        .sort_values("_order")
        .tail(12)
    )

    school_cov = education_coverage(schools)
    public_cov = education_coverage(publics)
    total_allocated = float(sum(b["budget_amount"] for b in budgets))
    total_spent = float(sum(b["actual_spent"] for b in budgets))
    stats = {
        "schools": len(schools),
        "publics": len(publics),
        "events": len(events),
        "accidents": len(accidents),
        "budgets": len(budgets),
        "additional_stats": {
            "total_deaths": int(accidents_df["death_count"].sum()),
            "total_injured": int(accidents_df["injured_count"].sum()),
            "avg_attendees_per_event": int(events_df["attendees_count"].mean()),
            "budget_utilization_rate": round(total_spent / total_allocated * 100, 1) if total_allocated else 0.0,
            "trained_schools": school_cov["educated"],
            "trained_publics": public_cov["educated"],
        },
        "accident_trends": monthly_accident_trend(accidents).to_dict(orient="records"),
        "event_distribution": event_type_distribution(event_counts)[["event_type", "count"]].to_dict(orient="records"),
        "budget_utilization": budget_utilization(budget_series)[["period", "allocated", "spent"]].to_dict(orient="records"),
        "recent_events": sorted(events, key=lambda e: e["event_date"], reverse=True)[:5],
        "recent_accidents": sorted(accidents, key=lambda a: a["accident_date"], reverse=True)[:5],
    }

    return {
        "schools": schools,
        "publics": publics,
        "events": events,
        "budgets": budgets,
        "accidents": accidents,
        "market_share": market_share,
        "users": users,
        "education_priority": {
            "market_threshold": DEFAULT_MARKET_THRESHOLD,
            "items": priority_items,
        },
        "market_share_suggestions": {"districts": market_share, "top_cities": _city_shares(market_share)},
        "dashboard_stats": stats,
    }


def _priority_rows(
    schools: List[Dict[str, Any]],
    accidents: List[Dict[str, Any]],
    market_share: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Per-district rows shaped like ``GET /education/priority`` items."""
    school_df = pd.DataFrame(schools).dropna(subset=["district_name"])
    accident_df = pd.DataFrame(accidents)
    rows = []
    for ms in market_share:
        in_district = school_df["district_name"] == ms["district_name"]
        district_schools = school_df[in_district & (school_df["city_name"] == ms["city_name"])]
        district_accidents = accident_df[
            (accident_df["district_name"] == ms["district_name"])
            & (accident_df["city_name"] == ms["city_name"])
        ]
        total_students = int(district_schools["student_count"].sum())
        deaths = int(district_accidents["death_count"].sum())
        injured = int(district_accidents["injured_count"].sum())
        severity = deaths * 10 + injured * 3
        score = calculate_priority_score(ms["market_share"], DEFAULT_MARKET_THRESHOLD, total_students, severity)
        below = ms["market_share"] < DEFAULT_MARKET_THRESHOLD
        educated = district_schools[district_schools["is_educated"]]
        rows.append(
            {
                "province_name": ms["province_name"],
                "city_name": ms["city_name"],
                "district_name": ms["district_name"],
                "market_share": ms["market_share"],
                "competitor_share": ms["competitor_share"],
                "total_sales": ms["total_sales"],
                "total_schools": int(len(district_schools)),
                "educated_schools": int(len(educated)),
                "total_students": total_students,
                "total_student_educated": int(educated["student_count"].sum()),
                "total_accidents": int(len(district_accidents)),
                "total_deaths": deaths,
                "total_injured": injured,
                "accident_severity": severity,
                "is_below_threshold": below,
                "safety_riding_status": "Mandatory" if below else "Optional",
                "priority_score": score,
                "priority_level": priority_level_for_score(score),
            }
        )
    return rows


def _city_shares(market_share: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """City rows shaped like ``top_cities``: sales summed per city, highest share first."""
    df = pd.DataFrame(market_share)
    grouped = (
        df.groupby(["province_name", "city_name"], sort=False)
        .agg(
            total_sales=("total_sales", "sum"),
            competitor_sales=("competitor_sales", "sum"),
            monthly_difference=("monthly_difference", "mean"),
            month=("month", "first"),
            year=("year", "first"),
        )
        .reset_index()
    )
    market = grouped["total_sales"] + grouped["competitor_sales"]
    grouped["market_share"] = (grouped["total_sales"] / market * 100).round(2)
    grouped["competitor_share"] = (100 - grouped["market_share"]).round(2)
    grouped["monthly_difference"] = grouped["monthly_difference"].round(2)
    ranked = grouped.sort_values("market_share", ascending=False, kind="stable")
    return ranked.to_dict(orient="records")
