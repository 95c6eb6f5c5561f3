"""Product row merging, dense ranking and history replay for the data mart."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from marketqa.schemas.snapshot import ProductRow, Snapshot
from marketqa.utils.numbers import ratio_delta
from marketqa.utils.text import normalize_key


@dataclass(slots=True)
class ProductHistoryPoint:
    """One ASIN observation in a snapshot in which it actually appeared."""

    date: str
    revenue: float
    units: float
    price: float
    rating: float
    reviews: float
    rank_revenue: int | None
    rank_units: int | None


@dataclass(slots=True)
class IndexedProduct:
    """Current-month view of one ASIN with its full history."""

    asin: str
    title: str
    brand: str
    type: str
    price: float
    revenue: float
    units: float
    rating: float
    reviews: float
    rank_revenue: int
    rank_units: int
    revenue_mom: float | None
    units_mom: float | None
    price_mom: float | None
    rating_mom: float | None
    history: tuple[ProductHistoryPoint, ...]
    url: str | None = None
    estimated_revenue_12mo: float | None = None
    estimated_units_12mo: float | None = None
    features: Mapping[str, str] | None = None

    @property
    def key(self) -> str:
        return normalize_key(self.asin)

    @property
    def brand_key(self) -> str:
        return normalize_key(self.brand)


@dataclass(slots=True)
class SnapshotProducts:
    """Merged products of one snapshot plus their dense ranks."""

    date: str
    rows: dict[str, ProductRow]
    rank_revenue: dict[str, int]
    rank_units: dict[str, int]


def _pick_text(current: str | None, incoming: str | None) -> str | None:
    if incoming and incoming.strip():
        return incoming
    return current


def _pick_positive(current: float | None, incoming: float | None) -> float | None:
    if incoming is not None and incoming > 0:
        return incoming
    return current


def _pick_larger(current: float | None, incoming: float | None) -> float | None:
    if incoming is None or incoming <= 0:
        return current
    if current is None or incoming > current:
        return incoming
    return current


def merge_product_rows(existing: ProductRow, incoming: ProductRow) -> ProductRow:
    """Merge ``incoming`` into ``existing`` field by field.

    Sparse fields in one source never erase populated fields from another:
    revenue and units keep the larger positive value, other numbers keep the
    later positive value and strings keep the later non-empty value.
    """

    features = dict(existing.features)
    features.update({key: value for key, value in incoming.features.items() if value})
    return replace(
        existing,
        asin=_pick_text(existing.asin, incoming.asin) or "",
        title=_pick_text(existing.title, incoming.title) or "",
        brand=_pick_text(existing.brand, incoming.brand) or "",
        tool_type=_pick_text(existing.tool_type, incoming.tool_type),
        subcategory=_pick_text(existing.subcategory, incoming.subcategory),
        url=_pick_text(existing.url, incoming.url),
        revenue=_pick_larger(existing.revenue, incoming.revenue) or 0.0,
        units=_pick_larger(existing.units, incoming.units) or 0.0,
        monthly_revenue=_pick_larger(existing.monthly_revenue, incoming.monthly_revenue),
        monthly_units=_pick_larger(existing.monthly_units, incoming.monthly_units),
        price=_pick_positive(existing.price, incoming.price) or 0.0,
        avg_price=_pick_positive(existing.avg_price, incoming.avg_price),
        rating=_pick_positive(existing.rating, incoming.rating) or 0.0,
        tool_rating=_pick_positive(existing.tool_rating, incoming.tool_rating),
        review_count=_pick_positive(existing.review_count, incoming.review_count) or 0.0,
        estimated_revenue_12mo=_pick_positive(existing.estimated_revenue_12mo, incoming.estimated_revenue_12mo),
        estimated_units_12mo=_pick_positive(existing.estimated_units_12mo, incoming.estimated_units_12mo),
        features=features,
    )


def _iter_sources(snapshot: Snapshot) -> Iterable[ProductRow]:
    yield from snapshot.top_by_units
    yield from snapshot.top_products
    for listing in snapshot.brand_listings:
        yield from listing.products


def extract_snapshot_products(snapshot: Snapshot) -> dict[str, ProductRow]:
    """Return every product row of ``snapshot`` de-duplicated by normalised ASIN."""

    merged: dict[str, ProductRow] = {}
    for row in _iter_sources(snapshot):
        key = normalize_key(row.asin)
        if not key:
            continue
        existing = merged.get(key)
        merged[key] = row if existing is None else merge_product_rows(existing, row)
    return merged


def dense_ranks(keys: Sequence[str], values: Sequence[float]) -> dict[str, int]:
    """Assign 1-based ranks by ``values`` descending.

    The sort is stable so ties keep the order in which ``keys`` were given.
    """

    if not keys:
        return {}
    frame = pd.DataFrame({"key": list(keys), "value": np.asarray(values, dtype=float)})
    ordered = frame.sort_values("value", ascending=False, kind="stable")
    return {key: position for position, key in enumerate(ordered["key"], start=1)}


def index_snapshot(snapshot: Snapshot) -> SnapshotProducts:
    rows = extract_snapshot_products(snapshot)
    keys = list(rows)
    return SnapshotProducts(
        date=snapshot.date,
        rows=rows,
        rank_revenue=dense_ranks(keys, [rows[key].effective_revenue for key in keys]),
        rank_units=dense_ranks(keys, [rows[key].effective_units for key in keys]),
    )


def product_history(key: str, indexed: Sequence[SnapshotProducts]) -> tuple[ProductHistoryPoint, ...]:
    """Replay ``key`` across ``indexed`` snapshots; gaps are skipped, never filled."""

    points: list[ProductHistoryPoint] = []
    for entry in indexed:
        row = entry.rows.get(key)
        if row is None:
            continue
        points.append(
            ProductHistoryPoint(
                date=entry.date,
                revenue=row.effective_revenue,
                units=row.effective_units,
                price=row.effective_price,
                rating=row.effective_rating,
                reviews=row.review_count,
                rank_revenue=entry.rank_revenue.get(key),
                rank_units=entry.rank_units.get(key),
            )
        )
    return tuple(points)


def _rating_delta(current: float, previous: ProductRow | None) -> float | None:
    if previous is None:
        return None
    before = previous.effective_rating
    if current <= 0 or before <= 0:
        return None
    return current - before


def build_indexed_products(
    current: SnapshotProducts,
    previous: SnapshotProducts | None,
    history_source: Sequence[SnapshotProducts],
) -> list[IndexedProduct]:
    """Build indexed products for ``current`` ordered by revenue rank."""

    products: list[IndexedProduct] = []
    for key, row in current.rows.items():
        before = previous.rows.get(key) if previous is not None else None
        products.append(
            IndexedProduct(
                asin=row.asin,
                title=row.title,
                brand=row.brand,
                type=row.tool_type or row.subcategory or "Unknown",
                price=row.effective_price,
                revenue=row.effective_revenue,
                units=row.effective_units,
                rating=row.effective_rating,
                reviews=row.review_count,
                rank_revenue=current.rank_revenue[key],
                rank_units=current.rank_units[key],
                revenue_mom=ratio_delta(row.effective_revenue, before.effective_revenue if before else None),
                units_mom=ratio_delta(row.effective_units, before.effective_units if before else None),
                price_mom=ratio_delta(row.effective_price, before.effective_price if before else None),
                rating_mom=_rating_delta(row.effective_rating, before),
                history=product_history(key, history_source),
                url=row.url,
                estimated_revenue_12mo=row.estimated_revenue_12mo,
                estimated_units_12mo=row.estimated_units_12mo,
                features=dict(row.features),
            )
        )
    products.sort(key=lambda item: item.rank_revenue)
    return products


__all__ = [
    "IndexedProduct",
    "ProductHistoryPoint",
    "SnapshotProducts",
    "build_indexed_products",
    "dense_ranks",
    "extract_snapshot_products",
    "index_snapshot",
    "merge_product_rows",
    "product_history",
]
