"""
Education priority matrix: bucket district rows by their server-assigned
priority level and order each bucket by priority score.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from safety_dashboard.analytics.locations import records_list, to_number
from safety_dashboard.config import DEFAULT_MARKET_THRESHOLD

LEVELS = ("critical", "high", "medium", "low")
LEVEL_LABELS = {
    "critical": "Critical",
    "high": "High",
    "medium": "Medium",
    "low": "Low",
}
LEVEL_DESCRIPTIONS = {
    "critical": "Score 75-100: schedule education immediately",
    "high": "Score 50-74: plan within the next cycle",
    "medium": "Score 25-49: monitor and prepare",
    "low": "Score 0-24: maintain current coverage",
}

# Maximum points contributed by each factor of the backend score
MARKET_POINTS = 40.0
STUDENT_POINTS = 30.0
SEVERITY_POINTS = 30.0
STUDENT_SCALE = 10_000.0
SEVERITY_SCALE = 100.0


@dataclass
class PriorityBuckets:
    critical: List[Dict[str, Any]] = field(default_factory=list)
    high: List[Dict[str, Any]] = field(default_factory=list)
    medium: List[Dict[str, Any]] = field(default_factory=list)
    low: List[Dict[str, Any]] = field(default_factory=list)
    # Display only; bucketing never looks at it
    threshold: Optional[float] = None

    def bucket(self, level: str) -> List[Dict[str, Any]]:
        return getattr(self, level)

    @property
    def counts(self) -> Dict[str, int]:
        return {level: len(self.bucket(level)) for level in LEVELS}

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def normalize_level(value: Any) -> str:
    if not isinstance(value, str):
        return "low"
    level = value.strip().lower()
    return level if level in LEVELS else "low"


def _score(item: Dict[str, Any]) -> float:
    # Missing or non-numeric scores rank as 0
    return to_number(item.get("priority_score"))


def bucket_priority_items(items: Any, threshold: Optional[float] = None) -> PriorityBuckets:
    """Partition priority rows into critical/high/medium/low, each sorted by score desc."""
    buckets = PriorityBuckets(threshold=threshold)
    for item in records_list(items):
        buckets.bucket(normalize_level(item.get("priority_level"))).append(item)
    for level in LEVELS:
        # sorted() is stable, so equal scores keep their input order
        setattr(buckets, level, sorted(buckets.bucket(level), key=_score, reverse=True))
    return buckets


def priority_summary(buckets: PriorityBuckets, preview: int = 5) -> List[Dict[str, Any]]:
    """Card data per quadrant: count, the first ``preview`` districts and how many remain."""
    summary = []
    for level in LEVELS:
        items = buckets.bucket(level)
        summary.append(
            {
                "level": level,
                "label": LEVEL_LABELS[level],
                "description": LEVEL_DESCRIPTIONS[level],
                "count": len(items),
                "preview": items[:preview],
                "remaining": max(len(items) - preview, 0),
            }
        )
    return summary


def calculate_priority_score(
    market_share: float,
    threshold: float = DEFAULT_MARKET_THRESHOLD,
    total_students: float = 0,
    accident_severity: float = 0,
) -> int:
    """Backend scoring formula: market share gap, student population, accident severity."""
    score = 0.0
    market_share = to_number(market_share)
    if threshold > 0 and market_share < threshold:
        score += (threshold - market_share) / threshold * MARKET_POINTS
    score += min(to_number(total_students) / STUDENT_SCALE * STUDENT_POINTS, STUDENT_POINTS)
    score += min(to_number(accident_severity) / SEVERITY_SCALE * SEVERITY_POINTS, SEVERITY_POINTS)
    # Round half up like the server does
    final = int(score + 0.5)
    return max(0, min(final, 100))


def priority_level_for_score(score: float) -> str:
    if score >= 75:
        return "Critical"
    if score >= 50:
        return "High"
    if score >= 25:
        return "Medium"
    return "Low"
