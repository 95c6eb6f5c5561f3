"""Tests for intent scoring and query plan inference."""
from __future__ import annotations

import pytest

from marketqa.query.intents import ChatIntent, detect_intent, score_intents, suggested_questions_for_intent
from marketqa.query.parser import parse_query


@pytest.mark.parametrize(
    ("message", "intent", "confidence"),
    [
        ("Which price tiers are growing fastest?", ChatIntent.PRICE_RANGE, 0.93),
        ("Who is the closest competitor to Innova 5610?", ChatIntent.PRODUCT_COMPETITOR, 0.92),
        ("Which brand grew the most this month?", ChatIntent.FASTEST_MOVER, 0.9),
        ("Is market growth driven by price or units?", ChatIntent.PRICE_VS_VOLUME_EXPLAINER, 0.92),
        ("Show the trend for the Innova OBD2 scanner", ChatIntent.PRODUCT_TREND, 0.84),
    ],
)
def test_forced_patterns_override_scoring(message: str, intent: ChatIntent, confidence: float) -> None:
    parsed = parse_query(message, "code_readers")

    assert parsed.intent is intent
    assert parsed.confidence == pytest.approx(confidence)


def test_keyword_scoring_confidence() -> None:
    detection = detect_intent("How big is the market?")

    assert detection.intent is ChatIntent.MARKET_SIZE
    assert detection.confidence == pytest.approx(1.0)


def test_competitor_language_scores_benchmarking() -> None:
    detection = detect_intent("What are competitors doing?")

    assert detection.intent is ChatIntent.COMPETITIVE_BENCHMARKING
    assert 0.5 < detection.confidence <= 1.0


def test_empty_and_unmatched_messages_are_unknown() -> None:
    assert detect_intent("   ").intent is ChatIntent.UNKNOWN
    assert detect_intent("hello there").confidence == 0.0


def test_category_vocabulary_boost() -> None:
    boosted = score_intents("thermal camera resolution", "thermal_imager")
    plain = score_intents("thermal camera resolution", None)

    assert boosted[ChatIntent.FEATURE_ANALYSIS] == 2
    assert plain[ChatIntent.FEATURE_ANALYSIS] == 0


def test_plan_inference() -> None:
    yoy = parse_query("Which brand grew the most year over year?")
    units = parse_query("Show Innova top products by units")
    handheld = parse_query("Which handheld brand is growing fastest over 6 months?")
    asin = parse_query("Show ASIN history for B07Z481NJM")

    assert yoy.plan.growth_window == "yoy"
    assert yoy.plan.historical_window == "12m"
    assert units.plan.ranking_metric == "units"
    assert units.plan.ranking_target == "units_rank"
    assert units.plan.scope_brands == ("innova",)
    assert handheld.plan.type_scope == "handheld"
    assert handheld.plan.target_level == "type"
    assert handheld.plan.historical_window == "6m"
    assert asin.plan.target_level == "asin"


def test_scope_flags_and_brand_patterns() -> None:
    own = parse_query("How are we doing vs last month compared with the market average?")
    brands = parse_query("Compare Autel vs Topdon")

    assert own.plan.include_own_brands
    assert own.scope.compare_to_last_month
    assert own.scope.compare_to_market
    assert own.plan.historical_window == "1m"
    assert brands.plan.scope_brands == ("topdon", "autel")
    assert parse_query("Which premium tier segment leads?").scope.requires_price_scope


def test_parse_is_deterministic() -> None:
    message = "Which handheld brand is growing fastest?"

    assert parse_query(message, "code_readers") == parse_query(message, "code_readers")


def test_suggested_questions_fall_back_to_unknown() -> None:
    assert "Ask your own question" in suggested_questions_for_intent("not_an_intent")
    assert suggested_questions_for_intent(ChatIntent.MARKET_SIZE)[0].startswith("How big is the market")
