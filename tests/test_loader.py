"""Tests for loader normalisation and the offline sample source."""

from unittest.mock import patch

import pandas as pd
import pytest

from safety_dashboard.config import Settings
from safety_dashboard.data.api_client import AppSession
from safety_dashboard.data.filters import GlobalFilters
from safety_dashboard.data.loader import (
    load_collection,
    load_education_priority,
    load_education_stats,
    load_location_options,
    load_market_share_city_suggestions,
    load_market_share_suggestions,
    load_page,
    load_record,
    normalize_records,
    save_record,
)

SAMPLE_SETTINGS = Settings(
    api_url=None,
    api_token=None,
    api_timeout=30.0,
    api_page_size=100,
    api_max_pages=50,
    market_threshold=87.0,
    log_level="INFO",
    data_source="sample",
)
SESSION = AppSession()


def test_normalize_replaces_sentinels_and_coerces_numbers():
    records = [
        {"id": 1, "district_name": "N/A", "death_count": "2", "accident_date": "2025-01-02"},
        {"id": 1, "district_name": "Coblong", "death_count": "x", "accident_date": "nope"},
    ]

    df = normalize_records(records, "accidents")

    assert pd.isna(df["district_name"].iloc[0])
    assert df["death_count"].iloc[0] == 2
    assert pd.isna(df["death_count"].iloc[1])
    assert df["accident_date_parsed"].iloc[0] == pd.Timestamp("2025-01-02")
    diagnostics = df.attrs["diagnostics"]
    assert diagnostics["sentinel_replacements"] == {"district_name": 1}
    assert diagnostics["duplicate_id_rows"] == 1
    assert diagnostics["unparsed_dates"] == {"accident_date": 1}


def test_normalize_empty_records():
    assert normalize_records([], "schools").empty


def test_sample_collection_honours_location_filter():
    filters = GlobalFilters(year=None, month=None, province_name="Jawa Timur", city_name=None, district_name=None)

    schools = load_collection("schools", SAMPLE_SETTINGS, SESSION, filters)

    assert not schools.empty
    assert set(schools["province_name"]) == {"Jawa Timur"}


def test_sample_pages_are_sliced_locally():
    first = load_page("schools", SAMPLE_SETTINGS, SESSION, page=1, limit=25)
    last = load_page("schools", SAMPLE_SETTINGS, SESSION, page=first.total_pages, limit=25)

    assert first.total == 121
    assert first.total_pages == 5
    assert len(first.items) == 25
    assert len(last.items) == 21


def test_sample_search_matches_any_column():
    page = load_page("schools", SAMPLE_SETTINGS, SESSION, search="sma negeri 1 ")

    assert page.total > 0
    assert all("SMA Negeri 1" in item["name"] for item in page.items)


def test_sample_aggregates():
    priority = load_education_priority(SAMPLE_SETTINGS, SESSION)
    suggestions = load_market_share_suggestions(SAMPLE_SETTINGS, SESSION)

    assert priority["market_threshold"] == 87.0
    assert len(priority["items"]) == 14
    assert len(suggestions) == 14


def test_sample_aggregates_filtered_by_city():
    filters = GlobalFilters(year=None, month=None, province_name=None, city_name="Bandung", district_name=None)

    priority = load_education_priority(SAMPLE_SETTINGS, SESSION, filters)

    assert {item["district_name"] for item in priority["items"]} == {"Coblong", "Sukajadi", "Cicendo"}


def test_sample_location_options_cascade():
    provinces = load_location_options("province", SAMPLE_SETTINGS, SESSION)
    cities = load_location_options("city", SAMPLE_SETTINGS, SESSION, province_code="Jawa Barat")
    districts = load_location_options(
        "district", SAMPLE_SETTINGS, SESSION, province_code="Jawa Barat", city_code="Bekasi"
    )

    assert [p["name"] for p in provinces] == ["Jawa Barat", "Jawa Tengah", "Jawa Timur", "DKI Jakarta", "Banten"]
    assert [c["name"] for c in cities] == ["Bandung", "Bekasi"]
    assert [d["name"] for d in districts] == ["Tambun Selatan", "Cikarang Barat"]
    assert load_location_options("city", SAMPLE_SETTINGS, SESSION) == []


def test_normalize_parses_offset_dates_as_local_wall_clock():
    df = normalize_records(
        [{"id": 1, "accident_date": "2025-02-01T00:30:00+07:00"}, {"id": 2, "accident_date": "2025-02-03"}],
        "accidents",
    )

    assert df["accident_date_parsed"].tolist() == [pd.Timestamp("2025-02-01 00:30"), pd.Timestamp("2025-02-03")]
    assert df.attrs["diagnostics"]["unparsed_dates"] == {"accident_date": 0}


def test_sample_education_stats_totals_and_page():
    schools = load_collection("schools", SAMPLE_SETTINGS, SESSION)

    stats = load_education_stats(SAMPLE_SETTINGS, SESSION, page=2, limit=10)

    assert stats["total_schools"] == 121
    assert stats["total_educated_schools"] == int(schools["is_educated"].sum())
    assert stats["total_all_students"] == int(schools["total_student_educated"].sum())
    assert [school["id"] for school in stats["schools"]] == schools["id"].iloc[10:20].tolist()


def test_sample_education_stats_honours_filters_and_search():
    filters = GlobalFilters(year=None, month=None, province_name=None, city_name="Bandung", district_name=None)

    stats = load_education_stats(SAMPLE_SETTINGS, SESSION, filters, limit=100)
    missing = load_education_stats(SAMPLE_SETTINGS, SESSION, filters, search="no such school")

    assert stats["total_schools"] == len(stats["schools"]) > 0
    assert {school["city_name"] for school in stats["schools"]} == {"Bandung"}
    assert missing == {"total_schools": 0, "total_educated_schools": 0, "total_all_students": 0, "schools": []}


def test_sample_city_suggestions_ranked_by_share():
    cities = load_market_share_city_suggestions(SAMPLE_SETTINGS, SESSION)
    shares = [city["market_share"] for city in cities]

    assert len(cities) == 6
    assert shares == sorted(shares, reverse=True)
    assert {"city_name", "province_name", "competitor_share"} <= set(cities[0])


def test_city_suggestions_read_top_cities_key():
    payload = {"top_cities": [{"city_name": "Bandung"}], "top_districts": [{"district_name": "Coblong"}]}

    with patch("safety_dashboard.data.loader._load_aggregate", return_value=payload):
        cities = load_market_share_city_suggestions(SAMPLE_SETTINGS, SESSION)
        districts = load_market_share_suggestions(SAMPLE_SETTINGS, SESSION)

    assert cities == [{"city_name": "Bandung"}]
    assert districts == [{"district_name": "Coblong"}]


def test_city_suggestions_from_bare_list_payload_are_empty():
    with patch("safety_dashboard.data.loader._load_aggregate", return_value=[{"district_name": "Coblong"}]):
        assert load_market_share_city_suggestions(SAMPLE_SETTINGS, SESSION) == []


def test_sample_record_lookup():
    record = load_record("schools", "sch-0001", SAMPLE_SETTINGS, SESSION)

    assert record["id"] == "sch-0001"
    assert load_record("schools", "missing", SAMPLE_SETTINGS, SESSION) == {}


def test_sample_dataset_is_read_only():
    with pytest.raises(RuntimeError, match="sample"):
        save_record("schools", {"name": "SMA Baru"}, SAMPLE_SETTINGS, SESSION)
