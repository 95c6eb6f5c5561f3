"""Tests for data mart construction from a snapshot series."""
from __future__ import annotations

import pytest

from marketqa.cache import MartCache, MartCacheKey
from marketqa.mart.builder import PRODUCT_FRAME_COLUMNS, MartBuildError, build_data_mart
from marketqa.mart.products import dense_ranks, merge_product_rows
from marketqa.schemas.snapshot import ProductRow
from marketqa.tests.data import (
    CATEGORY_ID,
    CURRENT_DATE,
    PREVIOUS_DATE,
    SNAPSHOT_DATES,
    YEAR_AGO_DATE,
    build_category_series,
    build_sample_mart,
)


def test_products_ordered_by_revenue_rank() -> None:
    mart = build_sample_mart()

    assert [product.asin for product in mart.products] == [
        "B0AUTEL001",
        "B07Z481NJM",
        "B0BLCK0001",
        "B0TOPDON01",
        "B0INNOVA02",
    ]
    assert [product.rank_revenue for product in mart.products] == [1, 2, 3, 4, 5]


def test_units_rank_ties_keep_source_order() -> None:
    mart = build_sample_mart()
    ranks = {product.asin: product.rank_units for product in mart.products}

    assert ranks == {
        "B0TOPDON01": 1,
        "B07Z481NJM": 2,
        "B0INNOVA02": 3,
        "B0AUTEL001": 4,
        "B0BLCK0001": 5,
    }


def test_listing_rows_merge_into_top_products() -> None:
    mart = build_sample_mart()
    product = mart.product("b07z481njm")

    assert product is not None
    assert product.title == "Innova 5610 OBD2 Scanner Bidirectional"
    assert product.revenue == pytest.approx(40000)
    assert product.url == "https://www.amazon.com/dp/B07Z481NJM"
    assert product.estimated_revenue_12mo == pytest.approx(380000)
    assert product.type == "Handheld"
    assert product.features == {"bluetooth": "no"}


def test_merge_product_rows_keeps_populated_fields() -> None:
    existing = ProductRow(asin="B01", title="Full title", brand="Acme", price=50.0, revenue=900.0, units=10.0)
    incoming = ProductRow(asin="B01", title="", brand="Acme", price=0.0, revenue=400.0, units=12.0, rating=4.2)

    merged = merge_product_rows(existing, incoming)

    assert merged.title == "Full title"
    assert merged.price == pytest.approx(50.0)
    assert merged.revenue == pytest.approx(900.0)
    assert merged.units == pytest.approx(12.0)
    assert merged.rating == pytest.approx(4.2)


def test_dense_ranks_stable_for_ties() -> None:
    assert dense_ranks(["a", "b", "c"], [5, 9, 5]) == {"b": 1, "a": 2, "c": 3}
    assert dense_ranks([], []) == {}


def test_month_over_month_and_history() -> None:
    mart = build_sample_mart()
    innova = mart.product("B07Z481NJM")
    blcktec = mart.product("B0BLCK0001")

    assert mart.previous is not None and mart.previous.date == PREVIOUS_DATE
    assert mart.year_ago is not None and mart.year_ago.date == YEAR_AGO_DATE
    assert innova is not None and blcktec is not None
    assert innova.revenue_mom == pytest.approx(40000 / 33000 - 1)
    assert innova.units_mom == pytest.approx(200 / 170 - 1)
    assert innova.rating_mom == pytest.approx(0.0)
    assert len(blcktec.history) == 9
    assert blcktec.history[0].date == "2024-06-01"
    assert blcktec.history[-1].rank_revenue == 3
    assert "b0blck0001" not in mart.year_ago_products
    assert "b07z481njm" in mart.year_ago_products


def test_first_snapshot_has_no_growth() -> None:
    mart = build_sample_mart(snapshot_date=SNAPSHOT_DATES[0])

    assert mart.previous is None
    assert mart.year_ago is None
    assert all(product.revenue_mom is None for product in mart.products)
    assert mart.previous_products == {}


def test_brand_series_and_history() -> None:
    mart = build_sample_mart()

    assert len(mart.brand_series["blcktec"]) == 9
    latest = mart.brand_series["blcktec"][-1]
    assert latest.rank_revenue == 3
    assert mart.brand_series["blcktec"][-2].rank_revenue == 4
    assert mart.brand_series["autel"][-1].rolling12_revenue == pytest.approx(543000)
    assert mart.brand_history["topdon"].current_units_rank == 1
    top = mart.brand_top_asins_by_month["innova"][-1]
    assert top.date == CURRENT_DATE
    assert [item.asin for item in top.top_asins] == ["B07Z481NJM", "B0INNOVA02"]


def test_type_metrics_and_quality_warnings() -> None:
    mart = build_sample_mart()

    assert {row.scope_key for row in mart.price_scope_metrics} == {"total_tablet", "total_handheld", "total_dongle"}
    assert mart.quality_warnings == (
        "2 listings are missing ratings.",
        "Brand sheet coverage is partial for Topdon.",
    )
    assert list(mart.product_frame.columns) == PRODUCT_FRAME_COLUMNS
    assert len(mart.product_frame) == 5


def test_missing_snapshot_returns_none(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level("WARNING", logger="marketqa.mart.builder")

    mart = build_data_mart(build_category_series(), "2023-06-01")

    assert mart is None
    assert any(record.getMessage() == "mart.snapshot.missing" for record in caplog.records)


def test_non_iso_date_rejected() -> None:
    with pytest.raises(MartBuildError):
        build_data_mart(build_category_series(), "02/01/2025")


def test_cache_reuses_mart_and_missing_outcome() -> None:
    series = build_category_series()
    cache = MartCache(ttl_seconds=60)

    first = build_data_mart(series, CURRENT_DATE, cache=cache, now=0.0)
    second = build_data_mart(series, CURRENT_DATE, cache=cache, now=10.0)
    missing = build_data_mart(series, "2023-06-01", cache=cache, now=10.0)

    assert first is not None
    assert first is second
    assert missing is None
    assert cache.has(MartCacheKey(CATEGORY_ID, "2023-06-01"), now=20.0)

    rebuilt = build_data_mart(series, CURRENT_DATE, cache=cache, now=61.0)
    assert rebuilt is not first
