"""Tests for the REST client."""

from unittest.mock import MagicMock

import pytest
import requests

from safety_dashboard.data.api_client import (
    ApiError,
    AppSession,
    SafetyRidingClient,
    build_filter_params,
)

BASE_URL = "https://backend.example/api"


def _response(payload=None, status=200, invalid_json=False):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.content = b"" if payload is None and not invalid_json else b"body"
    if invalid_json:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


def _client(*responses, token="secret", role=None):
    http = MagicMock()
    http.request.side_effect = list(responses)
    client = SafetyRidingClient(BASE_URL + "/", session=AppSession(token=token, role=role), http=http)
    return client, http


def test_build_filter_params_skips_blanks():
    params = build_filter_params({"year": 2025, "month": None, "city_name": " ", "province_name": "Banten"})

    assert params == {"filters[year]": 2025, "filters[province_name]": "Banten"}
    assert build_filter_params(None) == {}


def test_list_page_parses_envelope_and_sends_params():
    client, http = _client(_response({"data": [{"id": 1}, {"id": 2}], "total_data": 25, "total_pages": 3}))

    page = client.list_page("schools", page=2, limit=10, filters={"year": 2025}, search="smk")

    assert page.items == [{"id": 1}, {"id": 2}]
    assert (page.total, page.total_pages, page.page, page.limit) == (25, 3, 2, 10)
    args, kwargs = http.request.call_args
    assert args == ("GET", f"{BASE_URL}/schools")
    assert kwargs["params"] == {"page": 2, "limit": 10, "filters[year]": 2025, "search": "smk"}
    assert kwargs["headers"] == {"Authorization": "Bearer secret"}
    assert kwargs["timeout"] == 30.0


def test_no_authorization_header_without_token():
    client, http = _client(_response({"data": {"schools": 3}}), token=None)

    assert client.dashboard_stats() == {"schools": 3}
    assert http.request.call_args.kwargs["headers"] == {}


def test_list_page_tolerates_missing_fields():
    client, _ = _client(_response({"data": None}))

    page = client.list_page("events")

    assert page.items == []
    assert page.total == 0


def test_list_all_walks_every_page():
    client, http = _client(
        _response({"data": [{"id": 1}, {"id": 2}], "total_data": 3, "total_pages": 2}),
        _response({"data": [{"id": 3}], "total_data": 3, "total_pages": 2}),
    )

    items = client.list_all("accidents", filters={"year": 2024}, page_size=2)

    assert [item["id"] for item in items] == [1, 2, 3]
    assert http.request.call_count == 2
    assert http.request.call_args.kwargs["params"]["page"] == 2


def test_list_all_stops_at_page_cap():
    pages = [_response({"data": [{"id": n}], "total_pages": 10}) for n in range(3)]
    client, http = _client(*pages)

    items = client.list_all("budgets", page_size=1, max_pages=3)

    assert len(items) == 3
    assert http.request.call_count == 3


def test_error_status_raises_with_server_message():
    client, _ = _client(_response({"message": "boom"}, status=500))

    with pytest.raises(ApiError, match="boom") as excinfo:
        client.list_page("schools")

    assert excinfo.value.status_code == 500
    assert excinfo.value.url == f"{BASE_URL}/schools"


def test_unauthorized_raises_api_error():
    client, _ = _client(_response(None, status=401))

    with pytest.raises(ApiError) as excinfo:
        client.education_priority()

    assert excinfo.value.status_code == 401


def test_transport_failure_raises_api_error():
    http = MagicMock()
    http.request.side_effect = requests.ConnectionError("refused")
    client = SafetyRidingClient(BASE_URL, http=http)

    with pytest.raises(ApiError, match="refused") as excinfo:
        client.list_page("users")

    assert excinfo.value.status_code is None


def test_invalid_json_raises_api_error():
    client, _ = _client(_response(invalid_json=True))

    with pytest.raises(ApiError, match="invalid JSON"):
        client.list_page("publics")


def test_unknown_resource_is_rejected():
    client, _ = _client()

    with pytest.raises(ValueError, match="Unknown resource"):
        client.list_page("polda")


def test_item_paths():
    client, http = _client(
        _response({"data": {"id": 5, "name": "SMA 1"}}),
        _response({"message": "deleted"}),
    )

    assert client.get("schools", 5) == {"id": 5, "name": "SMA 1"}
    client.delete("market_share", 9)

    assert [call.args for call in http.request.call_args_list] == [
        ("GET", f"{BASE_URL}/school/5"),
        ("DELETE", f"{BASE_URL}/marketshare/9"),
    ]


def test_login_builds_session():
    client, http = _client(
        _response({"data": {"token": "jwt", "user": {"name": "Rina", "role": {"name": "Admin"}}}}),
        token=None,
    )

    session = client.login("rina@example.com", "pw")

    assert session == AppSession(token="jwt", username="Rina", role="Admin")
    assert session.is_authenticated
    assert session.is_admin
    assert http.request.call_args.kwargs["json"] == {"email": "rina@example.com", "password": "pw"}


def test_base_url_is_required():
    with pytest.raises(ValueError):
        SafetyRidingClient("")


def test_create_and_update_send_json_body():
    client, http = _client(
        _response({"data": {"id": 11, "name": "Kecamatan Bersih"}}),
        _response({"data": {"id": 11, "name": "Kecamatan Aman"}}),
    )

    created = client.create("publics", {"name": "Kecamatan Bersih"})
    updated = client.update("publics", 11, {"name": "Kecamatan Aman"})

    assert created["id"] == 11
    assert updated["name"] == "Kecamatan Aman"
    first, second = http.request.call_args_list
    assert first.args == ("POST", f"{BASE_URL}/public")
    assert first.kwargs["json"] == {"name": "Kecamatan Bersih"}
    assert second.args == ("PUT", f"{BASE_URL}/public/11")


def test_education_stats_forwards_filters():
    client, http = _client(_response({"data": {"total_schools": 4, "educated_schools": 1}}))

    stats = client.education_stats({"year": 2025, "city_name": None})

    assert stats["total_schools"] == 4
    assert http.request.call_args.args == ("GET", f"{BASE_URL}/education/stats")
    assert http.request.call_args.kwargs["params"] == {"filters[year]": 2025}


def test_education_stats_sends_paging_and_search():
    client, http = _client(_response({"data": {"total_schools": 40, "schools": []}}))

    client.education_stats({"year": 2025}, page=2, limit=25, search="sma")

    assert http.request.call_args.kwargs["params"] == {
        "filters[year]": 2025,
        "page": 2,
        "limit": 25,
        "search": "sma",
    }
