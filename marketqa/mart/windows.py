"""Historical window summaries over product and brand history points."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np

from marketqa.utils.numbers import clamp

WINDOW_SIZES: dict[str, int | None] = {"1m": 1, "3m": 3, "6m": 6, "12m": 12, "all": None}

DEFAULT_TREND_THRESHOLD = 0.08


@dataclass(slots=True)
class WindowPoint:
    """Minimal per-month observation consumed by :func:`summarize_window`."""

    date: str
    revenue: float
    units: float
    price: float = 0.0
    rating: float = 0.0


@dataclass(slots=True)
class WindowSummary:
    months: int = 0
    revenue: float = 0.0
    units: float = 0.0
    asp: float = 0.0
    avg_rating: float = 0.0
    revenue_growth_mom: float | None = None
    revenue_growth_window: float | None = None
    trend: str = "flat"


@dataclass(slots=True)
class AsinHistorySummary:
    asin: str
    title: str
    brand: str
    windows: Mapping[str, WindowSummary]
    fastest_growth_score: float


@dataclass(slots=True)
class BrandHistorySummary:
    brand: str
    windows: Mapping[str, WindowSummary]
    current_share: float = 0.0
    current_revenue_rank: int | None = None
    current_units_rank: int | None = None


@dataclass(slots=True)
class BrandHistoryPoint:
    date: str
    revenue: float
    units: float
    share: float
    rank_revenue: int | None
    rank_units: int | None
    rolling12_revenue: float | None = None
    rolling12_units: float | None = None


@dataclass(slots=True)
class TopAsin:
    asin: str
    title: str
    revenue: float
    units: float


@dataclass(slots=True)
class BrandTopAsinPoint:
    date: str
    top_asins: list[TopAsin] = field(default_factory=list)


def trend_from_growth(value: float | None, threshold: float = DEFAULT_TREND_THRESHOLD) -> str:
    """Map a growth ratio onto ``up``/``down``/``flat``."""

    if value is None:
        return "flat"
    if value >= threshold:
        return "up"
    if value <= -threshold:
        return "down"
    return "flat"


def _growth(latest: float, base: float) -> float | None:
    if base <= 0:
        return None
    return float((latest - base) / base)


def summarize_window(
    points: Sequence[WindowPoint],
    size: int | None,
    *,
    threshold: float = DEFAULT_TREND_THRESHOLD,
) -> WindowSummary:
    """Aggregate the last ``size`` points (all of them when ``size`` is ``None``)."""

    source = list(points) if size is None else list(points)[-size:]
    if not source:
        return WindowSummary()

    revenue = np.array([point.revenue for point in source], dtype=float)
    units = np.array([point.units for point in source], dtype=float)
    prices = np.array([point.price for point in source], dtype=float)
    ratings = np.array([point.rating for point in source], dtype=float)
    ratings = ratings[ratings > 0]

    revenue_total = float(revenue.sum())
    units_total = float(units.sum())
    asp = revenue_total / units_total if units_total > 0 else float(prices.mean())
    growth_mom = _growth(revenue[-1], revenue[-2]) if len(source) > 1 else None
    growth_window = _growth(revenue[-1], revenue[0])
    return WindowSummary(
        months=len(source),
        revenue=revenue_total,
        units=units_total,
        asp=asp,
        avg_rating=float(ratings.mean()) if ratings.size else 0.0,
        revenue_growth_mom=growth_mom,
        revenue_growth_window=growth_window,
        trend=trend_from_growth(growth_window, threshold),
    )


def build_windows(
    points: Sequence[WindowPoint], *, threshold: float = DEFAULT_TREND_THRESHOLD
) -> dict[str, WindowSummary]:
    return {key: summarize_window(points, size, threshold=threshold) for key, size in WINDOW_SIZES.items()}


def fastest_growth_score(windows: Mapping[str, WindowSummary]) -> float:
    """Blend of latest MoM, 3m and 6m window growth clamped to ``[-100, 200]``.

    A one-month window holds a single point, so the latest MoM is read from
    the 3m window.
    """

    growth_mom = windows["3m"].revenue_growth_mom or 0.0
    growth_3m = windows["3m"].revenue_growth_window or 0.0
    growth_6m = windows["6m"].revenue_growth_window or 0.0
    return clamp(growth_mom * 35 + growth_3m * 40 + growth_6m * 25, -100.0, 200.0)


__all__ = [
    "AsinHistorySummary",
    "BrandHistoryPoint",
    "BrandHistorySummary",
    "BrandTopAsinPoint",
    "DEFAULT_TREND_THRESHOLD",
    "TopAsin",
    "WINDOW_SIZES",
    "WindowPoint",
    "WindowSummary",
    "build_windows",
    "fastest_growth_score",
    "summarize_window",
    "trend_from_growth",
]
