"""
Number, rupiah and percentage formatting in the Indonesian style
(``.`` thousands separator, ``,`` decimal separator).
"""

from __future__ import annotations

import math
from typing import Any, Optional

MISSING = "–"

# Indonesian short scales: ribu, juta, miliar, triliun
SCALE_FACTORS = [
    (1_000_000_000_000, "T"),
    (1_000_000_000, "M"),
    (1_000_000, "jt"),
    (1_000, "rb"),
]


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _localize(text: str) -> str:
    # "1,234.5" -> "1.234,5"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_number(value: Any, decimals: int = 0) -> str:
    number = _as_float(value)
    if number is None:
        return MISSING
    return _localize(f"{number:,.{decimals}f}")


def _scale_value(value: float):
    for factor, suffix in SCALE_FACTORS:
        if abs(value) >= factor:
            return value / factor, suffix
    return value, ""


def format_currency(value: Any, decimals: int = 0, compact: bool = False) -> str:
    """Rupiah amount, e.g. ``Rp 1.250.000`` or ``Rp 1,3 jt`` when compact."""
    number = _as_float(value)
    if number is None:
        return MISSING
    if compact:
        scaled, suffix = _scale_value(number)
        if suffix:
            return f"Rp {_localize(f'{scaled:,.1f}')} {suffix}"
    return f"Rp {_localize(f'{number:,.{decimals}f}')}"


def format_percent(value: Any, decimals: int = 1) -> str:
    number = _as_float(value)
    if number is None:
        return MISSING
    return f"{_localize(f'{number:.{decimals}f}')}%"
