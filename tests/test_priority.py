"""Tests for the education priority buckets and score formula."""

import copy

import pandas as pd
import pytest

from safety_dashboard.analytics.priority import (
    LEVELS,
    bucket_priority_items,
    calculate_priority_score,
    priority_level_for_score,
    priority_summary,
)


def _items(levels, scores):
    return [
        {"district_name": f"D{idx}", "priority_level": level, "priority_score": score}
        for idx, (level, score) in enumerate(zip(levels, scores))
    ]


def test_levels_are_case_insensitive_and_sorted_by_score():
    items = _items(["critical", "Critical", "HIGH", "low"], [10, 90, 50, 5])

    buckets = bucket_priority_items(items, threshold=87)

    assert [item["priority_score"] for item in buckets.critical] == [90, 10]
    assert [item["priority_score"] for item in buckets.high] == [50]
    assert buckets.medium == []
    assert [item["priority_score"] for item in buckets.low] == [5]


def test_every_item_lands_in_exactly_one_bucket():
    items = _items(["medium", "urgent", None, 3, " High ", "LOW", ""], [1, 2, 3, 4, 5, 6, 7])

    buckets = bucket_priority_items(items)

    assert buckets.total == len(items)
    assert buckets.counts == {"critical": 0, "high": 1, "medium": 1, "low": 5}
    placed = [item["district_name"] for level in LEVELS for item in buckets.bucket(level)]
    assert sorted(placed) == sorted(item["district_name"] for item in items)


def test_missing_or_non_numeric_score_ranks_as_zero():
    items = [
        {"district_name": "none", "priority_level": "high"},
        {"district_name": "neg", "priority_level": "high", "priority_score": -1},
        {"district_name": "text", "priority_level": "high", "priority_score": "abc"},
        {"district_name": "five", "priority_level": "high", "priority_score": 5},
    ]

    buckets = bucket_priority_items(items)

    assert [item["district_name"] for item in buckets.high] == ["five", "none", "text", "neg"]


def test_equal_scores_keep_input_order():
    items = _items(["medium"] * 4, [30, 40, 30, 30])

    buckets = bucket_priority_items(items)

    assert [item["district_name"] for item in buckets.medium] == ["D1", "D0", "D2", "D3"]


@pytest.mark.parametrize("value", [None, "critical", 42, {"items": []}, []])
def test_non_list_input_gives_empty_buckets(value):
    buckets = bucket_priority_items(value)

    assert buckets.total == 0
    assert all(buckets.bucket(level) == [] for level in LEVELS)


def test_dataframe_input_is_accepted():
    df = pd.DataFrame(_items(["critical", "low"], [80, 10]))

    buckets = bucket_priority_items(df)

    assert buckets.counts["critical"] == 1
    assert buckets.counts["low"] == 1


def test_threshold_is_display_only():
    items = _items(["high", "low", "critical"], [60, 10, 80])

    strict = bucket_priority_items(items, threshold=10)
    loose = bucket_priority_items(items, threshold=99)

    assert strict.counts == loose.counts
    assert loose.threshold == 99


def test_input_is_not_mutated():
    items = _items(["low", "critical", "critical"], [1, 2, 3])
    snapshot = copy.deepcopy(items)

    bucket_priority_items(items)

    assert items == snapshot


def test_priority_summary_previews_first_five():
    buckets = bucket_priority_items(_items(["high"] * 7, [70, 65, 60, 55, 54, 53, 52]))

    summary = {card["level"]: card for card in priority_summary(buckets)}

    assert [card["level"] for card in priority_summary(buckets)] == list(LEVELS)
    assert summary["high"]["count"] == 7
    assert [item["priority_score"] for item in summary["high"]["preview"]] == [70, 65, 60, 55, 54]
    assert summary["high"]["remaining"] == 2
    assert summary["critical"]["remaining"] == 0


def test_score_is_zero_at_threshold_without_students_or_accidents():
    assert calculate_priority_score(87, 87, 0, 0) == 0


def test_score_combines_three_factors():
    # half the threshold gap -> 20, 5000 students -> 15, severity 50 -> 15
    assert calculate_priority_score(43.5, 87, 5000, 50) == 50


def test_score_factors_are_capped():
    assert calculate_priority_score(0, 87, 50_000, 1_000) == 100
    assert calculate_priority_score(95, 87, 50_000, 0) == 30


def test_score_accepts_string_market_share():
    assert calculate_priority_score("87", 87, 0, 50) == 15


@pytest.mark.parametrize(
    "score,level",
    [(100, "Critical"), (75, "Critical"), (74, "High"), (50, "High"), (49, "Medium"), (25, "Medium"), (24, "Low"), (0, "Low")],
)
def test_priority_level_boundaries(score, level):
    assert priority_level_for_score(score) == level
