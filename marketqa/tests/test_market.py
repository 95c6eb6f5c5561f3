"""Tests for category-level analyzers."""
from __future__ import annotations

import pytest

from marketqa.analyzers.market import (
    UNKNOWN_ANSWER,
    brand_comparison,
    data_clarification,
    feature_analysis,
    feature_flag,
    find_clarification,
    market_leader,
    market_size,
    price_range,
    price_volume_tradeoff,
    product_type_mix,
    rating_reviews,
    summarize_prices,
    trends_momentum,
    unknown_analyzer,
)
from marketqa.tests.data import CATEGORY_LABEL, build_context, build_sample_mart


@pytest.fixture(scope="module")
def mart():
    return build_sample_mart()


def test_summarize_prices_ignores_non_positive() -> None:
    stats = summarize_prices([10.0, 0.0, 40.0, 20.0, 30.0])

    assert stats.count == 4
    assert stats.median == pytest.approx(25.0)
    assert stats.average == pytest.approx(25.0)
    assert summarize_prices([]).count == 0


def test_feature_flag_values() -> None:
    assert feature_flag("Yes") is True
    assert feature_flag(" 0 ") is False
    assert feature_flag(None) is False
    assert feature_flag("sometimes") is None


def test_market_size(mart) -> None:
    output = market_size(build_context(mart, "How big is the market?"))

    assert output.answer.startswith(f"Current market size for {CATEGORY_LABEL}: $126K revenue")
    assert output.bullets[0] == "Annualized run-rate from current month: $1.5M."
    assert output.bullets[1] == "Revenue vs prior snapshot: +26.0%"


def test_market_leader(mart) -> None:
    output = market_leader(build_context(mart, "Who leads the market?"))

    assert output.answer == "Autel leads this month with $48K revenue and 38.1% share."
    assert len(output.bullets) == 4


def test_price_range(mart) -> None:
    output = price_range(build_context(mart, "What is the price range?"))

    assert output.answer == (
        "Observed price range is $25.00 to $480.00 with median $200.00 and average $215.00."
    )
    assert len(output.bullets) == 3


def test_type_mix_and_tradeoff(mart) -> None:
    mix = product_type_mix(build_context(mart, "What is the product type mix?"))
    tradeoff = price_volume_tradeoff(build_context(mart, "Where is the price volume tradeoff?"))

    assert mix.answer == "Tablet leads the type mix with 50.8% of revenue."
    assert tradeoff.answer == "Dongle shows the largest price-volume tradeoff signal."


def test_brand_comparison_named_and_default(mart) -> None:
    named = brand_comparison(build_context(mart, "Compare Autel vs Topdon"))
    default = brand_comparison(build_context(mart, "Compare the top brands"))

    assert named.answer == "Brand comparison: Topdon vs Autel."
    assert default.answer == "Brand comparison: Autel vs Innova."
    assert len(default.bullets) == 2


def test_feature_premium(mart) -> None:
    output = feature_analysis(build_context(mart, "Which features command a price premium?"))

    assert output.answer == "bluetooth has a +98.8% price premium in this dataset."
    assert output.bullets == (
        "bluetooth: with-feature avg $268.33 vs without-feature avg $135.00 (+98.8%).",
    )


def test_trends_momentum_includes_watchlist(mart) -> None:
    output = trends_momentum(build_context(mart, "What is the market momentum?"))

    assert output.answer == "Momentum snapshot: revenue +26.0% vs prior month, units +5.0% vs prior month."
    assert output.bullets[2] == "YoY revenue change: +57.5%"
    assert output.bullets[3] == "BLCKTEC B0BLCK0001 is rising (+300.0% MoM, rank #3)."


def test_rating_reviews(mart) -> None:
    output = rating_reviews(build_context(mart, "Which products have the best ratings and reviews?"))

    assert output.bullets[0] == "Autel Autel MaxiCOM MK808 Tablet: 4.7★, 4.1K reviews, $48K revenue."
    assert len(output.bullets) == 5


def test_data_clarification_match_and_fallback(mart) -> None:
    matched = data_clarification(build_context(mart, "How is revenue estimated vs actual?"))
    fallback = data_clarification(build_context(mart, "Explain the numbers please"))

    assert matched.confidence == pytest.approx(0.9)
    assert fallback.confidence == pytest.approx(0.7)
    assert find_clarification("What is 3P?") is not None


def test_unknown_analyzer(mart) -> None:
    output = unknown_analyzer(build_context(mart, "hello"))

    assert output.answer == UNKNOWN_ANSWER
    assert output.confidence == pytest.approx(0.5)
