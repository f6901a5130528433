from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
import re
from typing import Literal

Axis = Literal["lat", "lon"]

LIMITS: dict[str, tuple[float, float]] = {
    "lat": (-90.0, 90.0),
    "lon": (-180.0, 180.0),
}

FORECAST_WINDOW_DAYS = 7

# signed integer part with optional fraction, or a bare fraction like ".5"
_DECIMAL_RE = re.compile(r"[-+]?[0-9]+(?:\.[0-9]+)?|\.[0-9]+")


@dataclass(frozen=True, slots=True)
class ErrorSummary:
    is_empty: bool
    is_decimal: bool
    is_in_range: bool


def is_decimal(value: str) -> bool:
    return _DECIMAL_RE.fullmatch(value) is not None


def is_in_range(value: str, axis: Axis) -> bool:
    low, high = LIMITS[axis]
    try:
        parsed = float(value)
    except ValueError:
        return False
    return low <= parsed <= high


def lat_lon_error_summary(value: str, axis: Axis) -> ErrorSummary:
    decimal = is_decimal(value)
    # range is only meaningful for a decimal; float() accepts things like "inf" or "1e3"
    in_range = is_in_range(value, axis) if decimal else False
    return ErrorSummary(is_empty=value == "", is_decimal=decimal, is_in_range=in_range)


def is_lat_lon_valid(value: str, axis: Axis) -> bool:
    summary = lat_lon_error_summary(value, axis)
    return not summary.is_empty and summary.is_decimal and summary.is_in_range


def is_name_valid(name: str) -> bool:
    return name != ""


def validate_date(day: date, today: date | None = None) -> bool:
    """True iff day falls between today and today + 7 days, both inclusive."""
    today = today or date.today()
    return today <= day <= today + timedelta(days=FORECAST_WINDOW_DAYS)
