"""Snapshot data contracts shared by the mart builder and analyzers."""
from __future__ import annotations

from .snapshot import (
    BrandListing,
    BrandMixRow,
    BrandTotal,
    CategorySeries,
    PriceTier,
    ProductRow,
    QualityIssue,
    Rolling12BrandRank,
    Snapshot,
    SnapshotTotals,
    TypeBreakdownRow,
    parse_series,
)

__all__ = [
    "BrandListing",
    "BrandMixRow",
    "BrandTotal",
    "CategorySeries",
    "PriceTier",
    "ProductRow",
    "QualityIssue",
    "Rolling12BrandRank",
    "Snapshot",
    "SnapshotTotals",
    "TypeBreakdownRow",
    "parse_series",
]
