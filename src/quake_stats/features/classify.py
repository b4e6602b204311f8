from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

# Display colors consumed by the front end, keyed by lower magnitude bound.
CYAN = "#00ffff"
ORCHID = "#da70d6"
ORANGE_RED = "#ff4500"
RED = "#ff0000"
ORANGE = "orange"
YELLOW = "yellow"
GREEN = "#08e108"

MAGNITUDE_COLOR_BANDS: tuple[tuple[float, str], ...] = (
    (9.0, CYAN),
    (8.0, ORCHID),
    (7.0, ORANGE_RED),
    (6.0, RED),
    (5.0, ORANGE),
    (4.0, YELLOW),
)
LOW_MAGNITUDE_COLOR = GREEN


def _as_magnitude(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    magnitude = float(value)
    if math.isnan(magnitude):
        return None
    return magnitude


def classify_magnitude(magnitude: Any) -> str:
    """Map a magnitude to its display color; never raises."""
    value = _as_magnitude(magnitude)
    if value is None or value <= 0:
        return LOW_MAGNITUDE_COLOR
    for lower_bound, color in MAGNITUDE_COLOR_BANDS:
        if value >= lower_bound:
            return color
    return LOW_MAGNITUDE_COLOR


def format_magnitude(magnitude: float) -> str:
    """One-decimal magnitude label; exact halves round away from zero (2.25 -> "2.3")."""
    value = Decimal(float(magnitude)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return f"{value:f}"
