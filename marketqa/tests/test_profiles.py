"""Tests for ASIN history, brand archetype and price-vs-volume analyzers."""
from __future__ import annotations

import pytest

from marketqa.analyzers.profiles import asin_history, brand_archetype, price_vs_volume_explainer
from marketqa.mart.archetypes import SalesArchetype
from marketqa.tests.data import build_context, build_sample_mart


@pytest.fixture(scope="module")
def mart():
    return build_sample_mart()


def test_price_vs_volume_lists_archetypes(mart) -> None:
    output = price_vs_volume_explainer(build_context(mart, "Which brands win from high price but low units?"))

    assert output.answer == "Price-led winners: AUTEL, BLCKTEC | Volume-led winners: TOPDON."
    assert output.bullets[2] == "Balanced brands: INNOVA."


def test_brand_archetype_for_named_brand(mart) -> None:
    output = brand_archetype(build_context(mart, "Why is Topdon performing well?"))

    assert output.answer == "Topdon is volume-led this month."
    assert output.sales_archetype is SalesArchetype.VOLUME_LED
    assert output.bullets[1] == "Revenue share 11.9% vs unit share 57.1%."


def test_brand_archetype_without_brand_explains_market(mart) -> None:
    output = brand_archetype(build_context(mart, "Why is the market performing well?"))

    assert output.answer.startswith("Price-led winners:")


def test_asin_history_for_product(mart) -> None:
    output = asin_history(build_context(mart, "Show ASIN history for Innova 5610"))

    assert output.answer == "ASIN History: Innova B07Z481NJM is up over the recent period."
    assert output.bullets[1] == "3M: $105K revenue, 530 units, growth +25.0%."
    assert output.historical_window == "12m"


def test_asin_history_falls_back_to_target_brand(mart) -> None:
    output = asin_history(
        build_context(mart, "Show top ASINs and past performance.", target_brand="topdon")
    )

    assert output.answer == "TOPDON top ASINs are B0TOPDON01 with historical trend support."
    assert output.top_contributors is not None
    assert output.top_contributors[0].trend == "up"


def test_asin_history_without_subject_asks(mart) -> None:
    output = asin_history(build_context(mart, "Show top ASINs and past performance."))

    assert output.answer.startswith("Tell me which brand or ASIN you want history for")
