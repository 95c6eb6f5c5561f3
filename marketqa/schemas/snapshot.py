"""Canonical monthly snapshot contract consumed by the analytics core.

Snapshots are produced upstream (workbook/CSV ETL) and handed over as plain
mappings using camelCase keys.  The dataclasses below are immutable views of
that payload; parsing is tolerant so partially populated rows degrade to
``None``/``0`` rather than failing the whole series.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping


def _coerce_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _float(value: Any) -> float:
    number = _coerce_float(value)
    return 0.0 if number is None else number


def _int(value: Any) -> int:
    return int(_float(value))


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> str | None:
    text_value = _text(value)
    return text_value or None


def _rows(payload: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    raw = payload.get(key)
    if not isinstance(raw, (list, tuple)):
        return []
    return [item for item in raw if isinstance(item, Mapping)]


@dataclass(frozen=True, slots=True)
class ProductRow:
    """One product listing row as it appears in a snapshot source list."""

    asin: str
    title: str = ""
    brand: str = ""
    price: float = 0.0
    revenue: float = 0.0
    units: float = 0.0
    review_count: float = 0.0
    rating: float = 0.0
    tool_type: str | None = None
    subcategory: str | None = None
    avg_price: float | None = None
    monthly_revenue: float | None = None
    monthly_units: float | None = None
    estimated_revenue_12mo: float | None = None
    estimated_units_12mo: float | None = None
    tool_rating: float | None = None
    url: str | None = None
    features: Mapping[str, str] = field(default_factory=dict)

    @property
    def effective_revenue(self) -> float:
        return self.monthly_revenue if self.monthly_revenue is not None else self.revenue

    @property
    def effective_units(self) -> float:
        return self.monthly_units if self.monthly_units is not None else self.units

    @property
    def effective_price(self) -> float:
        return self.avg_price if self.avg_price is not None else self.price

    @property
    def effective_rating(self) -> float:
        return self.tool_rating if self.tool_rating is not None else self.rating

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ProductRow":
        features_raw = payload.get("features") or payload.get("featureValues") or {}
        features = (
            {str(key): _text(value) for key, value in features_raw.items()}
            if isinstance(features_raw, Mapping)
            else {}
        )
        return cls(
            asin=_text(payload.get("asin")),
            title=_text(payload.get("title")),
            brand=_text(payload.get("brand")),
            price=_float(payload.get("price")),
            revenue=_float(payload.get("revenue")),
            units=_float(payload.get("units")),
            review_count=_float(payload.get("reviewCount")),
            rating=_float(payload.get("rating")),
            tool_type=_optional_text(payload.get("toolType")),
            subcategory=_optional_text(payload.get("subcategory")),
            avg_price=_coerce_float(payload.get("avgPrice")),
            monthly_revenue=_coerce_float(payload.get("monthlyRevenue")),
            monthly_units=_coerce_float(payload.get("monthlyUnits")),
            estimated_revenue_12mo=_coerce_float(payload.get("estimatedRevenue12mo")),
            estimated_units_12mo=_coerce_float(payload.get("estimatedUnits12mo")),
            tool_rating=_coerce_float(payload.get("toolRating")),
            url=_optional_text(payload.get("url")),
            features=features,
        )


@dataclass(frozen=True, slots=True)
class BrandTotal:
    brand: str
    revenue: float
    units: float
    share: float

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "BrandTotal":
        return cls(
            brand=_text(payload.get("brand")),
            revenue=_float(payload.get("revenue")),
            units=_float(payload.get("units")),
            share=_float(payload.get("share")),
        )


@dataclass(frozen=True, slots=True)
class BrandListing:
    """Per-brand listing sheet carried alongside the top lists."""

    brand: str
    products: tuple[ProductRow, ...]

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "BrandListing":
        return cls(
            brand=_text(payload.get("brand")),
            products=tuple(ProductRow.from_mapping(row) for row in _rows(payload, "products")),
        )


@dataclass(frozen=True, slots=True)
class SnapshotTotals:
    revenue: float = 0.0
    units: float = 0.0
    asin_count: int = 0
    avg_price: float = 0.0

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "SnapshotTotals":
        return cls(
            revenue=_float(payload.get("revenue")),
            units=_float(payload.get("units")),
            asin_count=_int(payload.get("asinCount")),
            avg_price=_float(payload.get("avgPrice")),
        )


@dataclass(frozen=True, slots=True)
class PriceTier:
    label: str
    revenue: float
    share: float

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "PriceTier":
        return cls(
            label=_text(payload.get("label")),
            revenue=_float(payload.get("revenue")),
            share=_float(payload.get("share")),
        )


@dataclass(frozen=True, slots=True)
class Rolling12BrandRank:
    brand: str
    monthly: float
    grand_total: float
    rank: int

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Rolling12BrandRank":
        return cls(
            brand=_text(payload.get("brand")),
            monthly=_float(payload.get("monthly")),
            grand_total=_float(payload.get("grandTotal")),
            rank=_int(payload.get("rank")),
        )


@dataclass(frozen=True, slots=True)
class TypeBreakdownRow:
    """Type or price-scope breakdown metric (``typeBreakdowns.allAsins``)."""

    scope_key: str
    label: str
    avg_price: float = 0.0
    units: float = 0.0
    units_share: float = 0.0
    units_mom: float | None = None
    units_yoy: float | None = None
    revenue: float = 0.0
    revenue_share: float = 0.0
    revenue_mom: float | None = None
    revenue_yoy: float | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "TypeBreakdownRow":
        return cls(
            scope_key=_text(payload.get("scopeKey")),
            label=_text(payload.get("label")) or _text(payload.get("scopeKey")),
            avg_price=_float(payload.get("avgPrice")),
            units=_float(payload.get("units")),
            units_share=_float(payload.get("unitsShare")),
            units_mom=_coerce_float(payload.get("unitsMoM")),
            units_yoy=_coerce_float(payload.get("unitsYoY")),
            revenue=_float(payload.get("revenue")),
            revenue_share=_float(payload.get("revenueShare")),
            revenue_mom=_coerce_float(payload.get("revenueMoM")),
            revenue_yoy=_coerce_float(payload.get("revenueYoY")),
        )


@dataclass(frozen=True, slots=True)
class BrandMixRow:
    """Brand revenue inside one type scope (``typeBreakdowns.categoryBrandMix``)."""

    scope_key: str
    scope_label: str
    brand: str
    revenue: float = 0.0
    units: float = 0.0

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "BrandMixRow":
        return cls(
            scope_key=_text(payload.get("scopeKey")),
            scope_label=_text(payload.get("scopeLabel")),
            brand=_text(payload.get("brand")),
            revenue=_float(payload.get("revenue")),
            units=_float(payload.get("units")),
        )


@dataclass(frozen=True, slots=True)
class QualityIssue:
    code: str
    message: str
    severity: str = "warning"

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "QualityIssue":
        return cls(
            code=_text(payload.get("code")),
            message=_text(payload.get("message")),
            severity=_text(payload.get("severity")) or "warning",
        )


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One calendar month of aggregated market state for a category."""

    date: str
    label: str = ""
    totals: SnapshotTotals = field(default_factory=SnapshotTotals)
    top_products: tuple[ProductRow, ...] = ()
    top_by_units: tuple[ProductRow, ...] = ()
    brand_totals: tuple[BrandTotal, ...] = ()
    brand_listings: tuple[BrandListing, ...] = ()
    price_tiers: tuple[PriceTier, ...] = ()
    rolling12_revenue: tuple[Rolling12BrandRank, ...] = ()
    rolling12_units: tuple[Rolling12BrandRank, ...] = ()
    type_metrics: tuple[TypeBreakdownRow, ...] = ()
    brand_mix: tuple[BrandMixRow, ...] = ()
    quality_issues: tuple[QualityIssue, ...] = ()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Snapshot":
        rolling = payload.get("rolling12") if isinstance(payload.get("rolling12"), Mapping) else {}
        breakdowns = payload.get("typeBreakdowns") if isinstance(payload.get("typeBreakdowns"), Mapping) else {}
        totals = payload.get("totals") if isinstance(payload.get("totals"), Mapping) else {}
        listings = _rows(payload, "brandSheetListings") or _rows(payload, "brandListings")

        def _rolling(metric: str) -> tuple[Rolling12BrandRank, ...]:
            section = rolling.get(metric)
            if not isinstance(section, Mapping):
                return ()
            return tuple(Rolling12BrandRank.from_mapping(row) for row in _rows(section, "brands"))

        return cls(
            date=_text(payload.get("date")),
            label=_text(payload.get("label")),
            totals=SnapshotTotals.from_mapping(totals),
            top_products=tuple(ProductRow.from_mapping(row) for row in _rows(payload, "topProducts")),
            top_by_units=tuple(ProductRow.from_mapping(row) for row in _rows(payload, "top50ByUnits")),
            brand_totals=tuple(BrandTotal.from_mapping(row) for row in _rows(payload, "brandTotals")),
            brand_listings=tuple(BrandListing.from_mapping(row) for row in listings),
            price_tiers=tuple(PriceTier.from_mapping(row) for row in _rows(payload, "priceTiers")),
            rolling12_revenue=_rolling("revenue"),
            rolling12_units=_rolling("units"),
            type_metrics=tuple(TypeBreakdownRow.from_mapping(row) for row in _rows(breakdowns, "allAsins")),
            brand_mix=tuple(BrandMixRow.from_mapping(row) for row in _rows(breakdowns, "categoryBrandMix")),
            quality_issues=tuple(QualityIssue.from_mapping(row) for row in _rows(payload, "qualityIssues")),
        )


@dataclass(frozen=True, slots=True)
class CategorySeries:
    """Ordered snapshot series for one category."""

    id: str
    label: str
    snapshots: tuple[Snapshot, ...]

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "CategorySeries":
        return cls(
            id=_text(payload.get("id")),
            label=_text(payload.get("label")) or _text(payload.get("id")),
            snapshots=tuple(Snapshot.from_mapping(row) for row in _rows(payload, "snapshots")),
        )

    def sorted_snapshots(self) -> list[Snapshot]:
        return sorted(self.snapshots, key=lambda item: item.date)


def parse_series(payloads: Iterable[Mapping[str, Any]]) -> list[CategorySeries]:
    """Parse a list of category payloads."""

    return [CategorySeries.from_mapping(item) for item in payloads]


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
