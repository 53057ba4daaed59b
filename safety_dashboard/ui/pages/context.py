from __future__ import annotations

from dataclasses import dataclass

from safety_dashboard.config import Settings
from safety_dashboard.data.api_client import AppSession
from safety_dashboard.data.filters import GlobalFilters


@dataclass
class PageContext:
    settings: Settings
    session: AppSession
    filters: GlobalFilters
