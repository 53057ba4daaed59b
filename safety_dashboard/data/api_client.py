"""
Thin HTTP client for the safety riding REST backend.

Every list endpoint answers with the envelope
``{"data": [...], "total_data": n, "total_pages": n, "message": "..."}``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

# resource key -> (list path, single-item path prefix)
RESOURCES: Dict[str, tuple[str, str]] = {
    "schools": ("/schools", "/school"),
    "publics": ("/publics", "/public"),
    "events": ("/events", "/event"),
    "accidents": ("/accidents", "/accident"),
    "budgets": ("/budgets", "/budget"),
    "market_share": ("/marketshares", "/marketshare"),
    "users": ("/users", "/user"),
}


class ApiError(RuntimeError):
    """Raised for transport failures and non-2xx answers from the backend."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


@dataclass
class Page:
    items: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0
    page: int = 1
    limit: int = 10


@dataclass(frozen=True)
class AppSession:
    """Explicit session passed to the client and pages instead of ambient auth state."""

    token: Optional[str] = None
    username: Optional[str] = None
    role: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() in {"admin", "superadmin"}


def build_filter_params(filters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Translate ``{"year": 2025}`` into ``{"filters[year]": 2025}``, skipping blanks."""
    params: Dict[str, Any] = {}
    if not filters:
        return params
    for key, value in filters.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        params[f"filters[{key}]"] = value
    return params


class SafetyRidingClient:
    def __init__(
        self,
        base_url: str,
        session: Optional[AppSession] = None,
        timeout: float = 30.0,
        http: Optional[requests.Session] = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.session = session or AppSession()
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({"Content-Type": "application/json"})

    def _headers(self) -> Dict[str, str]:
        if self.session.token:
            return {"Authorization": f"Bearer {self.session.token}"}
        return {}

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s params=%s", method, url, params)
        try:
            resp = self.http.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Request to %s failed: %s", url, exc)
            raise ApiError(f"Request failed: {exc}", url=url) from exc

        if resp.status_code == 401:
            logger.warning("Unauthorized request detected: %s", url)

        try:
            payload = resp.json() if resp.content else {}
        except ValueError:
            if resp.ok:
                raise ApiError("Backend returned invalid JSON", resp.status_code, url) from None
            payload = {}

        if not resp.ok:
            message = payload.get("message") if isinstance(payload, dict) else None
            logger.warning("Backend answered %s for %s: %s", resp.status_code, url, message)
            raise ApiError(message or f"HTTP {resp.status_code}", resp.status_code, url)

        if not isinstance(payload, dict):
            return {"data": payload}
        return payload

    # -- list/detail helpers -------------------------------------------------

    def _paths(self, resource: str) -> tuple[str, str]:
        try:
            return RESOURCES[resource]
        except KeyError:
            raise ValueError(f"Unknown resource: {resource}") from None

    def list_page(
        self,
        resource: str,
        page: int = 1,
        limit: int = 10,
        filters: Optional[Mapping[str, Any]] = None,
        search: Optional[str] = None,
    ) -> Page:
        list_path, _ = self._paths(resource)
        params: Dict[str, Any] = {"page": page, "limit": limit}
        params.update(build_filter_params(filters))
        if search:
            params["search"] = search
        payload = self.request("GET", list_path, params=params)
        items = payload.get("data") or []
        return Page(
            items=list(items) if isinstance(items, list) else [],
            total=int(payload.get("total_data") or 0),
            total_pages=int(payload.get("total_pages") or 0),
            page=page,
            limit=limit,
        )

    def list_all(
        self,
        resource: str,
        filters: Optional[Mapping[str, Any]] = None,
        page_size: int = 100,
        max_pages: int = 50,
    ) -> List[Dict[str, Any]]:
        """Walk the pages of a list endpoint until exhausted or ``max_pages`` is hit."""
        items: List[Dict[str, Any]] = []
        page = 1
        while page <= max_pages:
            result = self.list_page(resource, page=page, limit=page_size, filters=filters)
            items.extend(result.items)
            if not result.items or page >= max(result.total_pages, 1):
                break
            page += 1
        else:
            logger.warning("Stopped fetching %s after %d pages", resource, max_pages)
        return items

    def get(self, resource: str, item_id: Any) -> Dict[str, Any]:
        _, item_path = self._paths(resource)
        return self.request("GET", f"{item_path}/{item_id}").get("data") or {}

    def create(self, resource: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        _, item_path = self._paths(resource)
        return self.request("POST", item_path, json=data).get("data") or {}

    def update(self, resource: str, item_id: Any, data: Mapping[str, Any]) -> Dict[str, Any]:
        _, item_path = self._paths(resource)
        return self.request("PUT", f"{item_path}/{item_id}", json=data).get("data") or {}

    def delete(self, resource: str, item_id: Any) -> None:
        _, item_path = self._paths(resource)
        self.request("DELETE", f"{item_path}/{item_id}")

    # -- aggregated endpoints ------------------------------------------------

    def dashboard_stats(self, filters: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", "/dashboard/stats", params=build_filter_params(filters)).get("data") or {}

    def education_priority(self, filters: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", "/education/priority", params=build_filter_params(filters)).get("data") or {}

    def education_stats(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        """School education totals plus one page of per-school rows."""
        params = build_filter_params(filters)
        if page is not None:
            params["page"] = page
        if limit is not None:
            params["limit"] = limit
        if search:
            params["search"] = search
        return self.request("GET", "/education/stats", params=params).get("data") or {}

    def market_share_suggestions(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", "/marketshare/dashboard-suggestions", params=dict(params or {})).get("data") or {}

    # -- location hierarchy (form dropdowns) ---------------------------------

    def provinces(self, year: str = "2025") -> List[Dict[str, Any]]:
        return self.request("GET", "/province", params={"thn": year}).get("data") or []

    def cities(self, province_code: str, year: str = "2025") -> List[Dict[str, Any]]:
        params = {"pro": province_code, "thn": year, "lvl": "11"}
        return self.request("GET", "/city", params=params).get("data") or []

    def districts(self, province_code: str, city_code: str, year: str = "2025") -> List[Dict[str, Any]]:
        params = {"pro": province_code, "kab": city_code, "thn": year, "lvl": "12"}
        return self.request("GET", "/district", params=params).get("data") or []

    # -- auth ----------------------------------------------------------------

    def login(self, email: str, password: str) -> AppSession:
        payload = self.request("POST", "/user/login", json={"email": email, "password": password})
        data = payload.get("data") or {}
        user = data.get("user") or {}
        role = user.get("role")
        if isinstance(role, dict):
            role = role.get("name")
        self.session = AppSession(
            token=data.get("token") or data.get("access_token"),
            username=user.get("name") or user.get("email") or email,
            role=role,
        )
        logger.info("Signed in as %s", self.session.username)
        return self.session
