"""Price-led / volume-led / balanced classification of every brand in a snapshot."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

from marketqa.schemas.snapshot import Snapshot
from marketqa.utils.numbers import safe_share
from marketqa.utils.text import normalize_key


class SalesArchetype(str, Enum):
    PRICE_LED = "price_led"
    VOLUME_LED = "volume_led"
    BALANCED = "balanced"

    @property
    def label(self) -> str:
        return self.value.replace("_", "-")


@dataclass(frozen=True, slots=True)
class BrandMix:
    brand: str
    key: str
    asp: float
    unit_share: float
    revenue_share: float


def percentile(values: Sequence[float], p: float) -> float:
    """Nearest-rank percentile: element ``floor((n - 1) * p)`` of the sorted values."""

    if len(values) == 0:
        return 0.0
    ordered = np.sort(np.asarray(values, dtype=float))
    index = min(len(ordered) - 1, max(0, int(np.floor((len(ordered) - 1) * p))))
    return float(ordered[index])


def brand_mix(snapshot: Snapshot) -> list[BrandMix]:
    rows: list[BrandMix] = []
    for row in snapshot.brand_totals:
        rows.append(
            BrandMix(
                brand=row.brand,
                key=normalize_key(row.brand),
                asp=row.revenue / row.units if row.units > 0 else 0.0,
                unit_share=safe_share(row.units, snapshot.totals.units),
                revenue_share=safe_share(row.revenue, snapshot.totals.revenue),
            )
        )
    return rows


def compute_brand_archetypes(snapshot: Snapshot) -> dict[str, SalesArchetype]:
    """Classify each brand against ASP and share percentiles across all brands.

    ``price_led``: ASP at or above p70, unit share at or below p40 and revenue
    share at least 0.7x the median.  ``volume_led`` mirrors it with ASP at or
    below p30 and unit share at or above p60.  Everything else is balanced.
    """

    rows = brand_mix(snapshot)
    asp_values = [row.asp for row in rows if row.asp > 0]
    unit_shares = [row.unit_share for row in rows]
    revenue_shares = [row.revenue_share for row in rows]

    asp_low = percentile(asp_values, 0.3)
    asp_high = percentile(asp_values, 0.7)
    unit_low = percentile(unit_shares, 0.4)
    unit_high = percentile(unit_shares, 0.6)
    revenue_floor = percentile(revenue_shares, 0.5) * 0.7

    archetypes: dict[str, SalesArchetype] = {}
    for row in rows:
        archetype = SalesArchetype.BALANCED
        if row.asp >= asp_high and row.unit_share <= unit_low and row.revenue_share >= revenue_floor:
            archetype = SalesArchetype.PRICE_LED
        elif row.asp <= asp_low and row.unit_share >= unit_high and row.revenue_share >= revenue_floor:
            archetype = SalesArchetype.VOLUME_LED
        archetypes[row.key] = archetype
    return archetypes


def brands_with_archetype(archetypes: dict[str, SalesArchetype], target: SalesArchetype) -> list[str]:
    return [key.upper() for key, value in archetypes.items() if value is target]


__all__ = [
    "BrandMix",
    "SalesArchetype",
    "brand_mix",
    "brands_with_archetype",
    "compute_brand_archetypes",
    "percentile",
]
