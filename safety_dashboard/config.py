"""
Application-wide configuration constants and helper utilities.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

import streamlit as st


@dataclass(frozen=True)
class TabConfig:
    key: str
    label: str


# Ordered tab definitions for the dashboard
TABS: List[TabConfig] = [
    TabConfig("dashboard", "Dashboard"),
    TabConfig("education_priority", "Education Priority"),
    TabConfig("recommendations", "Recommendations"),
    TabConfig("education_stats", "Education Stats"),
    TabConfig("schools", "Schools"),
    TabConfig("publics", "Public Entities"),
    TabConfig("events", "Events"),
    TabConfig("accidents", "Accidents"),
    TabConfig("budgets", "Budgets"),
    TabConfig("market_share", "Market Share"),
    TabConfig("users", "Users"),
]

DATA_SOURCES = ("api", "sample")

DEFAULT_MARKET_THRESHOLD = 87.0
TOP_N = 10
MAX_TREND_MONTHS = 12
LABEL_MAX_LENGTH = 14


@dataclass(frozen=True)
class Settings:
    api_url: Optional[str]
    api_token: Optional[str]
    api_timeout: float
    api_page_size: int
    api_max_pages: int
    market_threshold: float
    log_level: str
    data_source: str

    @property
    def use_sample_data(self) -> bool:
        return self.data_source == "sample" or not self.api_url


def _get_secret(name: str, default: str | None = None) -> str | None:
    """Try env first, then st.secrets (if available)."""
    val = os.getenv(name)
    if val:
        return val
    try:
        sec = getattr(st, "secrets", None)
        if sec:
            v = sec.get(name)  # type: ignore[index]
            return str(v) if v is not None else default
    except Exception:
        pass
    return default


def _parse_number(name: str, raw: str | None, default: float, cast=float):
    if raw is None or not str(raw).strip():
        return cast(default)
    try:
        value = cast(str(raw).strip())
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be numeric, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings() -> Settings:
    """Resolve settings from the environment (after bootstrap) and st.secrets."""
    api_url = _get_secret("API_URL")
    if api_url:
        api_url = api_url.rstrip("/")

    data_source = (_get_secret("DATA_SOURCE", "api") or "api").strip().lower()
    if data_source not in DATA_SOURCES:
        raise ValueError(f"DATA_SOURCE must be one of {DATA_SOURCES}, got {data_source!r}")

    return Settings(
        api_url=api_url or None,
        api_token=_get_secret("API_TOKEN"),
        api_timeout=_parse_number("API_TIMEOUT", _get_secret("API_TIMEOUT"), 30.0),
        api_page_size=_parse_number("API_PAGE_SIZE", _get_secret("API_PAGE_SIZE"), 100, int),
        api_max_pages=_parse_number("API_MAX_PAGES", _get_secret("API_MAX_PAGES"), 50, int),
        market_threshold=_parse_number(
            "MARKET_SHARE_THRESHOLD",
            _get_secret("MARKET_SHARE_THRESHOLD"),
            DEFAULT_MARKET_THRESHOLD,
        ),
        log_level=(_get_secret("LOG_LEVEL", "INFO") or "INFO").upper(),
        data_source=data_source,
    )
