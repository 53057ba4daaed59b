"""Tests for the offline sample dataset."""

import pandas as pd

from safety_dashboard.analytics.priority import calculate_priority_score, priority_level_for_score
from safety_dashboard.data.sample import LOCATIONS, generate_sample_data

TODAY = pd.Timestamp("2025-06-15")


def test_same_seed_gives_same_data():
    first = generate_sample_data(seed=3, today=TODAY)
    second = generate_sample_data(seed=3, today=TODAY)

    assert first["schools"] == second["schools"]
    assert first["accidents"] == second["accidents"]


def test_collections_have_expected_shape():
    data = generate_sample_data(seed=1, today=TODAY)

    assert len(data["schools"]) == 121
    assert len(data["budgets"]) == len(data["events"])
    district_count = sum(len(districts) for _, _, districts in LOCATIONS)
    assert len(data["market_share"]) == district_count
    assert data["market_share_suggestions"]["districts"] == data["market_share"]
    assert any(school["district_name"] is None for school in data["schools"])


def test_priority_rows_follow_score_formula():
    data = generate_sample_data(seed=5, today=TODAY)

    for item in data["education_priority"]["items"]:
        expected = calculate_priority_score(
            item["market_share"], 87.0, item["total_students"], item["accident_severity"]
        )
        assert item["priority_score"] == expected
        assert 0 <= item["priority_score"] <= 100
        assert item["priority_level"] == priority_level_for_score(expected)
        assert item["is_below_threshold"] == (item["market_share"] < 87.0)


def test_dashboard_stats_are_consistent():
    data = generate_sample_data(seed=2, today=TODAY)
    stats = data["dashboard_stats"]

    assert stats["schools"] == len(data["schools"])
    assert stats["additional_stats"]["total_deaths"] == sum(a["death_count"] for a in data["accidents"])
    assert 0 < len(stats["accident_trends"]) <= 12
    assert sum(row["count"] for row in stats["event_distribution"]) == len(data["events"])
    assert len(stats["recent_events"]) == 5
