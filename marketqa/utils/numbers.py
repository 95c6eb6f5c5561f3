"""Small numeric helpers shared across the mart and analyzers."""
from __future__ import annotations

import math
from typing import Any, Iterable


def safe_float(value: Any) -> float:
    """Return ``value`` as a finite float, mapping ``None``/NaN/inf to ``0.0``."""

    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def ratio_delta(current: float | None, previous: float | None) -> float | None:
    """Relative change ``(current - previous) / previous``.

    ``None`` when the baseline is missing or zero so callers never see
    ``inf``/``NaN`` growth values.
    """

    if current is None or previous is None:
        return None
    base = safe_float(previous)
    if math.isclose(base, 0.0, abs_tol=1e-12):
        return None
    return (safe_float(current) - base) / base


def safe_share(part: float, whole: float) -> float:
    whole = safe_float(whole)
    if whole <= 0:
        return 0.0
    return safe_float(part) / whole


def clamp(value: float, lower: float, upper: float) -> float:
    return min(upper, max(lower, value))


def mean(values: Iterable[float]) -> float:
    items = [safe_float(value) for value in values]
    if not items:
        return 0.0
    return sum(items) / len(items)


__all__ = ["clamp", "mean", "ratio_delta", "safe_float", "safe_share"]
