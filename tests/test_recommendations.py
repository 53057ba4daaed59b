"""Tests for the district and city recommendations."""

import copy

import pandas as pd

from safety_dashboard.analytics.recommendations import (
    build_city_recommendations,
    build_district_recommendations,
    recommend_accident_city,
    recommend_accident_district,
    recommend_market_share_city,
    recommend_market_share_district,
    recommend_uneducated_city,
    recommend_uneducated_district,
    top_uneducated_schools,
)


def _school(name, district, city="Y", province="P", educated=False, students=0):
    return {
        "name": name,
        "district_name": district,
        "city_name": city,
        "province_name": province,
        "is_educated": educated,
        "student_count": students,
    }


def _accident(district, city="X", province="P", deaths=0, injured=0):
    return {
        "district_name": district,
        "city_name": city,
        "province_name": province,
        "death_count": deaths,
        "injured_count": injured,
    }


def test_accident_district_sums_deaths_and_injuries():
    accidents = [_accident("A", deaths=2, injured=1), _accident("A", deaths=0, injured=3)]

    top = recommend_accident_district(accidents)

    assert (top.district_name, top.city_name, top.province_name) == ("A", "X", "P")
    assert top.count == 2
    assert top.deaths == 2
    assert top.injured == 4


def test_uneducated_district_skips_educated_schools():
    schools = [_school("S1", "B"), _school("S2", "B", educated=True)]

    top = recommend_uneducated_district(schools)

    assert top.district_name == "B"
    assert top.count == 1
    assert top.schools == ["S1"]


def test_empty_suggestions_give_no_market_share_recommendation():
    recs = build_district_recommendations([_school("S1", "B")], [], [])

    assert recs.market_share is None
    assert recs.accident is None
    assert recs.uneducated is not None
    assert not recs.is_empty


def test_all_empty_inputs_give_empty_recommendations():
    recs = build_district_recommendations([], None, [])

    assert recs.is_empty


def test_unknown_districts_never_win():
    schools = [
        _school("S1", None),
        _school("S2", ""),
        _school("S3", "Unknown District"),
        _school("S4", "N/A"),
        _school("S5", float("nan")),
        _school("S6", "C"),
    ]

    top = recommend_uneducated_district(schools)

    assert top.district_name == "C"
    assert top.count == 1


def test_only_unknown_districts_gives_none():
    assert recommend_accident_district([_accident(None), _accident("  ")]) is None


def test_same_district_name_in_different_cities_is_not_merged():
    accidents = [_accident("A", city="X")] * 2 + [_accident("A", city="Z")] * 3

    top = recommend_accident_district(accidents)

    assert (top.district_name, top.city_name, top.count) == ("A", "Z", 3)


def test_ties_resolve_to_first_encountered_district():
    accidents = [_accident("D1"), _accident("D2"), _accident("D2", city="W"), _accident("D1", city="W")]

    top = recommend_accident_district(accidents)

    assert (top.district_name, top.city_name) == ("D1", "X")


def test_missing_city_and_province_get_unknown_labels():
    top = recommend_accident_district([{"district_name": "Q", "death_count": 1}])

    assert top.city_name == "Unknown City"
    assert top.province_name == "Unknown Province"
    assert top.injured == 0


def test_only_real_true_counts_as_educated():
    schools = [_school("S1", "B", educated="true"), _school("S2", "B", educated=1), _school(None, "B", educated=None)]

    top = recommend_uneducated_district(schools)

    assert top.count == 3
    assert top.schools == ["S1", "S2", "Unknown School"]


def test_market_share_accepts_strings_and_picks_highest():
    suggestions = [
        {"district_name": "M1", "city_name": "C", "province_name": "P", "market_share": "85.5"},
        {"district_name": "M2", "city_name": "C", "province_name": "P", "market_share": 90, "total_sales": "1200"},
        {"district_name": "M3", "city_name": "C", "province_name": "P", "market_share": None},
    ]

    top = recommend_market_share_district(suggestions)

    assert top.district_name == "M2"
    assert top.market_share == 90.0
    assert top.total_sales == 1200.0
    assert top.competitor_share == 0.0


def test_market_share_ties_keep_first_row():
    suggestions = [
        {"district_name": "First", "market_share": 88},
        {"district_name": "Second", "market_share": 88},
    ]

    assert recommend_market_share_district(suggestions).district_name == "First"


def test_market_share_handles_absent_input():
    assert recommend_market_share_district(None) is None
    assert recommend_market_share_district(pd.DataFrame()) is None


def test_dataframe_input_matches_list_input():
    accidents = [_accident("A", deaths=1), _accident("B"), _accident("A", injured=2)]

    assert recommend_accident_district(pd.DataFrame(accidents)) == recommend_accident_district(accidents)


def test_inputs_are_not_mutated():
    schools = [_school("S1", "B"), _school("S2", None)]
    snapshot = copy.deepcopy(schools)

    build_district_recommendations(schools, schools, schools)

    assert schools == snapshot


def test_city_recommendation_counts_uneducated_schools_and_students():
    schools = [
        _school("A1", "D1", city="Bandung", students=300),
        _school("A2", "D2", city="Bandung", students=200),
        _school("A3", "D2", city="Bandung", educated=True, students=900),
        _school("B1", "D3", city="Bekasi", students=1000),
        _school("B2", "D3", city="Bekasi", educated=True),
    ]

    city = recommend_uneducated_city(schools)

    assert city.city_name == "Bandung"
    assert city.uneducated == 2
    assert city.educated == 1
    assert city.total_students == 500


def test_city_recommendation_without_cities_is_none():
    assert recommend_uneducated_city([{"name": "S", "city_name": None}]) is None
    assert recommend_uneducated_city([]) is None


def test_top_uneducated_schools_ranked_by_students():
    schools = [
        _school("Small", "D1", city="Bandung", students=100),
        _school("Big", "D1", city="Bandung", students=900),
        _school("Done", "D1", city="Bandung", educated=True, students=5000),
        _school("Elsewhere", "D1", city="Bekasi", students=3000),
        _school("Mid", "D2", city="Bandung", students="400"),
    ]

    ranked = top_uneducated_schools(schools, "Bandung", limit=2)

    assert [school["name"] for school in ranked] == ["Big", "Mid"]


def test_city_recommendation_keeps_same_named_cities_apart():
    schools = [
        _school("A1", "D1", city="Pasir", province="Riau"),
        _school("A2", "D2", city="Pasir", province="Kalimantan Timur"),
        _school("B1", "D3", city="Bekasi", province="Jawa Barat"),
        _school("B2", "D3", city="Bekasi", province="Jawa Barat", students=50),
    ]

    city = recommend_uneducated_city(schools)

    assert (city.city_name, city.province_name) == ("Bekasi", "Jawa Barat")
    assert city.uneducated == 2


def test_top_uneducated_schools_filters_by_province():
    schools = [
        _school("Riau School", "D1", city="Pasir", province="Riau", students=100),
        _school("Kaltim School", "D2", city="Pasir", province="Kalimantan Timur", students=900),
    ]

    ranked = top_uneducated_schools(schools, "Pasir", province_name="Riau")

    assert [school["name"] for school in ranked] == ["Riau School"]
    assert len(top_uneducated_schools(schools, "Pasir")) == 2


def test_accident_city_counts_per_city_and_province():
    accidents = [
        _accident("A", city="Bandung", deaths=1, injured=2),
        _accident("B", city="Bandung", injured=1),
        _accident("C", city="Bekasi", deaths=3),
        _accident(None, city="Bekasi"),
        _accident("D", city="Bekasi", province="Other"),
        _accident("E", city=None, deaths=9),
    ]

    city = recommend_accident_city(accidents)

    assert (city.city_name, city.province_name) == ("Bandung", "P")
    assert (city.count, city.deaths, city.injured) == (2, 1, 3)


def test_accident_city_needs_a_city_name():
    assert recommend_accident_city([_accident("A", city="N/A")]) is None
    assert recommend_accident_city([]) is None


def test_market_share_city_picks_highest_share():
    top_cities = [
        {"city_name": "Bekasi", "province_name": "Jawa Barat", "market_share": "71.5", "competitor_share": 28.5},
        {"city_name": "Bandung", "province_name": "Jawa Barat", "market_share": 88.2, "total_sales": 4200},
        {"city_name": "Tangerang", "province_name": "Banten", "market_share": 88.2},
    ]

    city = recommend_market_share_city(top_cities)

    assert city.city_name == "Bandung"
    assert city.market_share == 88.2
    assert city.total_sales == 4200.0
    assert city.competitor_share == 0.0


def test_city_recommendations_are_independent():
    recs = build_city_recommendations(
        schools=[],
        accidents=[_accident("A", city="Bandung")],
        top_cities=None,
    )

    assert recs.market_share is None
    assert recs.uneducated is None
    assert recs.accident.city_name == "Bandung"
    assert not recs.is_empty


def test_fully_educated_cities_are_not_recommended():
    schools = [_school("Done", "D1", city="Bandung", educated=True)]

    assert recommend_uneducated_city(schools) is None


def test_city_recommendations_empty_when_nothing_qualifies():
    recs = build_city_recommendations(
        schools=[_school("Done", "D1", city="Bandung", educated=True)],
        accidents=[{"death_count": 1}],
        top_cities=[],
    )

    assert recs.is_empty
