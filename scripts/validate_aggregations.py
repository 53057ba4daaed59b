"""Quick validation script for the analytics outputs.

Run with `python scripts/validate_aggregations.py` to check that the sample
dataset flows through the priority buckets, recommendations and chart
aggregators with the expected shapes.
"""

from __future__ import annotations

from safety_dashboard.analytics.charts import (
    budget_by_event,
    event_type_distribution,
    monthly_accident_trend,
    schools_by_province,
)
from safety_dashboard.analytics.priority import bucket_priority_items
from safety_dashboard.analytics.recommendations import build_city_recommendations, build_district_recommendations
from safety_dashboard.data.sample import generate_sample_data


def main() -> None:
    data = generate_sample_data(seed=7)

    priority = data["education_priority"]
    buckets = bucket_priority_items(priority["items"], threshold=priority["market_threshold"])
    if buckets.total != len(priority["items"]):
        raise SystemExit(f"Priority buckets lost rows: {buckets.total} != {len(priority['items'])}")

    recs = build_district_recommendations(
        data["schools"],
        data["accidents"],
        data["market_share_suggestions"]["districts"],
    )
    assert not recs.is_empty, "Sample data should produce recommendations"
    city_recs = build_city_recommendations(
        data["schools"],
        data["accidents"],
        data["market_share_suggestions"]["top_cities"],
    )
    assert city_recs.market_share is not None, "Sample data should rank cities by market share"

    trend = monthly_accident_trend(data["accidents"])
    assert 0 < len(trend) <= 12, "Trend must hold at most 12 monthly buckets"

    distribution = event_type_distribution(data["dashboard_stats"]["event_distribution"])
    assert abs(distribution["percentage"].sum() - 100) < 1, "Event shares should add up to ~100%"

    assert len(schools_by_province(data["schools"])) <= 10
    assert len(budget_by_event(data["budgets"])) <= 10

    print("Aggregation validation passed. Priority rows:", buckets.total, buckets.counts)


if __name__ == "__main__":
    main()
