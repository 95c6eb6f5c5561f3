"""Tests for analyzer routing and product clarifications."""
from __future__ import annotations

import pytest

from marketqa.query.intents import ChatIntent
from marketqa.query.router import AnalyzerId, map_intent_to_analyzer, route_intent
from marketqa.tests.data import build_context, build_sample_mart


@pytest.fixture(scope="module")
def mart():
    return build_sample_mart()


@pytest.mark.parametrize(
    ("message", "analyzer"),
    [
        ("Which price tiers are growing fastest?", AnalyzerId.PRICE_RANGE),
        ("Is market growth driven by price or units?", AnalyzerId.GROWTH_DRIVER),
        ("Which handheld brand is growing fastest?", AnalyzerId.TYPE_GROWTH),
        ("Which brand grew the most this month?", AnalyzerId.FASTEST_GROWTH),
        ("Which product is the fastest rank mover?", AnalyzerId.FASTEST_RANK_MOVER),
        ("What is the market concentration?", AnalyzerId.MARKET_CONCENTRATION),
        ("What are competitors doing?", AnalyzerId.MARKET_SHIFT),
        ("How big is the market?", AnalyzerId.MARKET_SIZE),
        ("Show Innova top products by units", AnalyzerId.TOP_PRODUCTS),
        ("Who is the closest competitor to Innova 5610?", AnalyzerId.PRODUCT_COMPETITOR),
    ],
)
def test_route_intent(mart, message: str, analyzer: AnalyzerId) -> None:
    ctx = build_context(mart, message)

    route = route_intent(ctx.parsed, ctx.resolution)

    assert route.analyzer is analyzer
    assert not route.needs_clarification


def test_product_route_without_product_asks_which_one(mart) -> None:
    trend = build_context(mart, "Show the product trend for this ASIN")
    competitor = build_context(mart, "Who is the closest competitor?")

    trend_route = route_intent(trend.parsed, trend.resolution)
    competitor_route = route_intent(competitor.parsed, competitor.resolution)

    assert trend_route.analyzer is AnalyzerId.UNKNOWN
    assert trend_route.clarification_question is not None
    assert trend_route.clarification_question.startswith("Which product should I track?")
    assert competitor_route.clarification_question is not None
    assert competitor_route.clarification_question.startswith("Which product should I compare?")


def test_ambiguous_product_route_uses_resolution_question(mart) -> None:
    ctx = build_context(mart, "Show the trend for the Innova OBD2 scanner")

    route = route_intent(ctx.parsed, ctx.resolution)

    assert route.needs_clarification
    assert route.clarification_question == ctx.resolution.clarification_question


def test_intent_mapping_fallbacks() -> None:
    assert map_intent_to_analyzer(ChatIntent.SELF_ASSESSMENT) is AnalyzerId.BRAND_HEALTH
    assert map_intent_to_analyzer(ChatIntent.COMPETITIVE_BENCHMARKING) is AnalyzerId.MARKET_SHIFT
    assert map_intent_to_analyzer(ChatIntent.MARKET_LEADER) is AnalyzerId.MARKET_LEADER
    assert map_intent_to_analyzer(ChatIntent.UNKNOWN) is AnalyzerId.UNKNOWN
