"""Tests for competitor scoring and the product-level analyzers."""
from __future__ import annotations

import numpy as np
import pytest

from marketqa.analyzers.competitor import (
    find_closest_competitors,
    momentum_score,
    similarity_ratio,
    type_similarity,
)
from marketqa.analyzers.products import product_competitor, product_trend, top_products
from marketqa.settings import CompetitorRules
from marketqa.tests.data import PREVIOUS_DATE, build_context, build_sample_mart


@pytest.fixture(scope="module")
def mart():
    return build_sample_mart()


def test_similarity_ratio() -> None:
    scores = similarity_ratio(200.0, np.array([100.0, 200.0, 0.0]))

    assert scores.tolist() == pytest.approx([0.5, 1.0, 0.0])
    assert similarity_ratio(0.0, np.array([10.0])).tolist() == [0.0]


def test_type_similarity_levels() -> None:
    assert type_similarity("Handheld", "handheld") == 1.0
    assert type_similarity("Tablet", "Dongle") == pytest.approx(0.2)
    assert type_similarity("", "Tablet") == 0.0


def test_momentum_score_without_target_is_neutral() -> None:
    assert momentum_score(None, np.array([0.1, 0.9])).tolist() == [0.5, 0.5]


def test_closest_competitor_pool_and_boost(mart) -> None:
    target = mart.product("B07Z481NJM")

    result = find_closest_competitors(mart, target)

    assert result.pool_size == 1
    assert [item.product.asin for item in result.candidates] == ["B0BLCK0001"]
    assert result.confidence == pytest.approx(0.75)
    assert result.candidates[0].evidence[-1] == (
        "Rising-star boost: +8.0 (strong MoM growth and improving rank)."
    )


def test_wider_price_band_grows_pool(mart) -> None:
    target = mart.product("B07Z481NJM")

    result = find_closest_competitors(mart, target, CompetitorRules(price_band_abs=300))

    assert result.pool_size == 3
    assert len(result.candidates) == 3
    assert all(item.product.brand_key != target.brand_key for item in result.candidates)
    assert all(0.0 <= item.score <= 100.0 for item in result.candidates)


def test_product_competitor_analyzer(mart) -> None:
    output = product_competitor(build_context(mart, "Who is the closest competitor to Innova 5610?"))

    assert output.answer == "Closest Competitor: BLCKTEC B0BLCK0001"
    assert output.bullets[0].startswith("Target Innova B07Z481NJM: $40K revenue, 200 units")
    assert output.historical_window == "12m"


def test_product_trend(mart) -> None:
    output = product_trend(build_context(mart, "Show trend for Innova 5610"))

    assert output.answer == (
        "Innova B07Z481NJM is growing in revenue (+21.2%) and growing in units (+17.6%) vs last month."
    )
    assert output.bullets[2] == f"Previous snapshot ({PREVIOUS_DATE}) revenue: $33K, units: 170."
    assert output.confidence == pytest.approx(0.86)


def test_top_products_market_by_revenue(mart) -> None:
    output = top_products(build_context(mart, "Show the top products by revenue"))

    assert output.answer == "Top MARKET SKU: Autel B0AUTEL001 ($48K revenue)."
    assert len(output.bullets) == 5


def test_top_products_brand_by_units(mart) -> None:
    output = top_products(build_context(mart, "Show Innova top products by units"))

    assert output.answer == "Top INNOVA SKU: Innova B07Z481NJM (200 units)."
    assert output.bullets[1] == "#2 Innova B0INNOVA02: $7K / 100 units."
