"""Build the indexed in-memory data mart for one category and snapshot date."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Sequence

import pandas as pd

from marketqa.cache import MartCache, MartCacheKey
from marketqa.mart.aliases import brand_display_names, build_brand_lookup, build_product_aliases
from marketqa.mart.archetypes import SalesArchetype, compute_brand_archetypes
from marketqa.mart.products import (
    IndexedProduct,
    SnapshotProducts,
    build_indexed_products,
    dense_ranks,
    index_snapshot,
)
from marketqa.mart.windows import (
    AsinHistorySummary,
    BrandHistoryPoint,
    BrandHistorySummary,
    BrandTopAsinPoint,
    TopAsin,
    WindowPoint,
    build_windows,
    fastest_growth_score,
)
from marketqa.schemas.snapshot import CategorySeries, ProductRow, Snapshot, TypeBreakdownRow
from marketqa.settings import EngineSettings
from marketqa.utils.text import normalize_key, unique

LOGGER = logging.getLogger(__name__)

_PRICE_SCOPE = re.compile(r"(tablet|handheld|dongle|other)")

PRODUCT_FRAME_COLUMNS = [
    "asin",
    "key",
    "title",
    "brand",
    "brand_key",
    "type",
    "price",
    "revenue",
    "units",
    "rating",
    "reviews",
    "rank_revenue",
    "rank_units",
    "revenue_mom",
    "units_mom",
]


class MartBuildError(RuntimeError):
    """Raised when the snapshot series violates the input contract."""


@dataclass(slots=True)
class DataMart:
    """Indexed, read-only view of a category at one snapshot date."""

    category_id: str
    category_label: str
    snapshot: Snapshot
    previous: Snapshot | None
    year_ago: Snapshot | None
    products: tuple[IndexedProduct, ...]
    products_by_asin: dict[str, IndexedProduct]
    products_by_brand: dict[str, list[IndexedProduct]]
    previous_products: dict[str, ProductRow]
    year_ago_products: dict[str, ProductRow]
    brand_series: dict[str, list[BrandHistoryPoint]]
    asin_history: dict[str, AsinHistorySummary]
    brand_history: dict[str, BrandHistorySummary]
    brand_top_asins_by_month: dict[str, list[BrandTopAsinPoint]]
    brand_lookup: dict[str, str]
    brand_display_by_key: dict[str, str]
    product_aliases: dict[str, tuple[str, ...]]
    type_metrics: tuple[TypeBreakdownRow, ...]
    brand_archetypes: dict[str, SalesArchetype]
    price_scope_metrics: tuple[TypeBreakdownRow, ...]
    quality_warnings: tuple[str, ...]
    product_frame: pd.DataFrame = field(compare=False, repr=False, default_factory=pd.DataFrame)

    @property
    def snapshot_date(self) -> str:
        return self.snapshot.date

    def brand_display(self, brand_key: str) -> str:
        return self.brand_display_by_key.get(brand_key, brand_key)

    def product(self, asin: str) -> IndexedProduct | None:
        return self.products_by_asin.get(normalize_key(asin))


def _parse_iso(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise MartBuildError(f"snapshot date must be ISO formatted (YYYY-MM-DD), got {value!r}") from exc


def previous_snapshot(ordered: Sequence[Snapshot], snapshot_date: str) -> Snapshot | None:
    earlier = [item for item in ordered if item.date < snapshot_date]
    return earlier[-1] if earlier else None


def year_ago_snapshot(ordered: Sequence[Snapshot], snapshot_date: str) -> Snapshot | None:
    """Return the snapshot from the same calendar month one year earlier."""

    target = _parse_iso(snapshot_date)
    prefix = f"{target.year - 1:04d}-{target.month:02d}"
    for item in ordered:
        if item.date[:7] == prefix:
            return item
    return None


def _brand_series(ordered: Sequence[Snapshot]) -> dict[str, list[BrandHistoryPoint]]:
    series: dict[str, list[BrandHistoryPoint]] = {}
    for snapshot in ordered:
        keys = [normalize_key(row.brand) for row in snapshot.brand_totals]
        revenue_ranks = dense_ranks(keys, [row.revenue for row in snapshot.brand_totals])
        units_ranks = dense_ranks(keys, [row.units for row in snapshot.brand_totals])
        rolling_revenue = {normalize_key(row.brand): row.grand_total for row in snapshot.rolling12_revenue}
        rolling_units = {normalize_key(row.brand): row.grand_total for row in snapshot.rolling12_units}
        for key, row in zip(keys, snapshot.brand_totals):
            if not key:
                continue
            series.setdefault(key, []).append(
                BrandHistoryPoint(
                    date=snapshot.date,
                    revenue=row.revenue,
                    units=row.units,
                    share=row.share,
                    rank_revenue=revenue_ranks.get(key),
                    rank_units=units_ranks.get(key),
                    rolling12_revenue=rolling_revenue.get(key),
                    rolling12_units=rolling_units.get(key),
                )
            )
    return series


def _asin_history(products: Sequence[IndexedProduct], threshold: float) -> dict[str, AsinHistorySummary]:
    summaries: dict[str, AsinHistorySummary] = {}
    for product in products:
        windows = build_windows(
            [
                WindowPoint(point.date, point.revenue, point.units, point.price, point.rating)
                for point in product.history
            ],
            threshold=threshold,
        )
        summaries[product.key] = AsinHistorySummary(
            asin=product.asin,
            title=product.title,
            brand=product.brand,
            windows=windows,
            fastest_growth_score=fastest_growth_score(windows),
        )
    return summaries


def _brand_history(
    series: Mapping[str, Sequence[BrandHistoryPoint]], threshold: float
) -> dict[str, BrandHistorySummary]:
    summaries: dict[str, BrandHistorySummary] = {}
    for brand_key, points in series.items():
        windows = build_windows(
            [
                WindowPoint(
                    point.date,
                    point.revenue,
                    point.units,
                    point.revenue / point.units if point.units > 0 else 0.0,
                )
                for point in points
            ],
            threshold=threshold,
        )
        latest = points[-1] if points else None
        summaries[brand_key] = BrandHistorySummary(
            brand=brand_key,
            windows=windows,
            current_share=latest.share if latest else 0.0,
            current_revenue_rank=latest.rank_revenue if latest else None,
            current_units_rank=latest.rank_units if latest else None,
        )
    return summaries


def _brand_top_asins(indexed: Sequence[SnapshotProducts]) -> dict[str, list[BrandTopAsinPoint]]:
    output: dict[str, list[BrandTopAsinPoint]] = {}
    for entry in indexed:
        by_brand: dict[str, list[ProductRow]] = {}
        for row in entry.rows.values():
            by_brand.setdefault(normalize_key(row.brand), []).append(row)
        for brand_key, rows in by_brand.items():
            rows.sort(key=lambda row: row.effective_revenue, reverse=True)
            output.setdefault(brand_key, []).append(
                BrandTopAsinPoint(
                    date=entry.date,
                    top_asins=[
                        TopAsin(row.asin, row.title, row.effective_revenue, row.effective_units)
                        for row in rows[:3]
                    ],
                )
            )
    return output


def _product_frame(products: Sequence[IndexedProduct]) -> pd.DataFrame:
    records = [
        {
            "asin": product.asin,
            "key": product.key,
            "title": product.title,
            "brand": product.brand,
            "brand_key": product.brand_key,
            "type": product.type,
            "price": product.price,
            "revenue": product.revenue,
            "units": product.units,
            "rating": product.rating,
            "reviews": product.reviews,
            "rank_revenue": product.rank_revenue,
            "rank_units": product.rank_units,
            "revenue_mom": product.revenue_mom,
            "units_mom": product.units_mom,
        }
        for product in products
    ]
    return pd.DataFrame.from_records(records, columns=PRODUCT_FRAME_COLUMNS)


def _build(series: CategorySeries, snapshot_date: str, settings: EngineSettings) -> DataMart | None:
    ordered = series.sorted_snapshots()
    snapshot = next((item for item in ordered if item.date == snapshot_date), None)
    if snapshot is None:
        LOGGER.warning(
            "mart.snapshot.missing",
            extra={"category": series.id, "snapshot_date": snapshot_date},
        )
        return None

    window = [item for item in ordered if item.date <= snapshot_date]
    previous = previous_snapshot(window, snapshot_date)
    year_ago = year_ago_snapshot(window, snapshot_date)

    indexed = [index_snapshot(item) for item in window]
    current_index = indexed[-1]
    previous_index = indexed[-2] if previous is not None else None
    year_ago_index = next((entry for entry in indexed if year_ago is not None and entry.date == year_ago.date), None)

    products = build_indexed_products(current_index, previous_index, indexed)
    products_by_brand: dict[str, list[IndexedProduct]] = {}
    for product in products:
        products_by_brand.setdefault(product.brand_key, []).append(product)

    brand_series = _brand_series(window)
    display_by_key = brand_display_names(snapshot.brand_totals, products)
    threshold = settings.trend_threshold
    quality = unique(issue.message for issue in snapshot.quality_issues)

    mart = DataMart(
        category_id=series.id,
        category_label=series.label,
        snapshot=snapshot,
        previous=previous,
        year_ago=year_ago,
        products=tuple(products),
        products_by_asin={product.key: product for product in products},
        products_by_brand=products_by_brand,
        previous_products=dict(previous_index.rows) if previous_index else {},
        year_ago_products=dict(year_ago_index.rows) if year_ago_index else {},
        brand_series=brand_series,
        asin_history=_asin_history(products, threshold),
        brand_history=_brand_history(brand_series, threshold),
        brand_top_asins_by_month=_brand_top_asins(indexed),
        brand_lookup=build_brand_lookup(
            display_by_key,
            stopwords=settings.brand_alias_stopwords,
            pinned=settings.pinned_brand_aliases,
            priority=settings.brand_priority,
        ),
        brand_display_by_key=display_by_key,
        product_aliases=build_product_aliases(products, settings.pinned_product_aliases),
        type_metrics=snapshot.type_metrics,
        brand_archetypes=compute_brand_archetypes(snapshot),
        price_scope_metrics=tuple(
            row for row in snapshot.type_metrics if _PRICE_SCOPE.search(normalize_key(row.scope_key))
        ),
        quality_warnings=tuple(quality[: settings.mart_warning_cap]),
        product_frame=_product_frame(products),
    )
    LOGGER.info(
        "mart.build.complete",
        extra={
            "category": series.id,
            "snapshot_date": snapshot_date,
            "products": len(products),
            "brands": len(display_by_key),
            "history_months": len(window),
        },
    )
    return mart


def build_data_mart(
    series: CategorySeries,
    snapshot_date: str,
    *,
    cache: MartCache | None = None,
    now: float | None = None,
    settings: EngineSettings | None = None,
) -> DataMart | None:
    """Return the mart for ``snapshot_date`` or ``None`` when no snapshot matches.

    With a ``cache`` the result (including the ``None`` outcome) is stored under
    ``category:date`` and reused while fresh.  ``now`` is forwarded to the cache
    so callers control expiry.
    """

    _parse_iso(snapshot_date)
    rules = settings or EngineSettings()
    if cache is None:
        return _build(series, snapshot_date, rules)
    key = MartCacheKey(series.id, snapshot_date)
    return cache.get_or_build(key, lambda: _build(series, snapshot_date, rules), now)


__all__ = [
    "DataMart",
    "MartBuildError",
    "PRODUCT_FRAME_COLUMNS",
    "build_data_mart",
    "previous_snapshot",
    "year_ago_snapshot",
]
