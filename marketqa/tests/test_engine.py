"""End-to-end tests for question answering."""
from __future__ import annotations

import pytest

from marketqa.cache import MartCache
from marketqa.engine import ChatRequest, answer_question
from marketqa.response import CLARIFICATION_CONFIDENCE
from marketqa.tests.data import CATEGORY_ID, CURRENT_DATE, build_category_series


@pytest.fixture(scope="module")
def series():
    return build_category_series()


def _ask(series, message: str, **kwargs):
    request = ChatRequest(message=message, category_id=CATEGORY_ID, snapshot_date=CURRENT_DATE, **kwargs)
    return answer_question(request, series, cache=MartCache(), now=0.0)


def test_market_driver_question(series) -> None:
    response = _ask(series, "Is market growth driven by price or units?")

    assert response is not None
    assert response.intent == "growth_driver"
    assert response.answer == "Market growth is currently price-driven."
    assert [step.to_dict() for step in response.analysis_trace] == [
        {"step": "Build data mart", "status": "ok"},
        {"step": "Parse query intent (price_vs_volume_explainer)", "status": "ok"},
        {"step": "Resolve entities (brand/ASIN/product)", "status": "partial"},
        {"step": "Resolve scope (all_brands)", "status": "partial"},
        {"step": "Route analyzer (growth_driver)", "status": "ok"},
        {"step": "Execute deterministic analyzer", "status": "ok"},
        {"step": "Build proactive synthesis", "status": "ok"},
    ]
    assert response.warnings == [
        "2 listings are missing ratings.",
        "Brand sheet coverage is partial for Topdon.",
    ]


def test_unknown_snapshot_returns_none(series, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level("WARNING", logger="marketqa.engine")
    request = ChatRequest(message="How big is the market?", category_id=CATEGORY_ID, snapshot_date="2023-06-01")

    assert answer_question(request, series, cache=MartCache(), now=0.0) is None
    assert any(record.getMessage() == "engine.mart.missing" for record in caplog.records)


def test_ambiguous_product_question_asks_for_clarification(series) -> None:
    response = _ask(series, "Show the trend for the Innova OBD2 scanner")

    assert response is not None
    assert response.intent == "unknown"
    assert response.confidence == pytest.approx(CLARIFICATION_CONFIDENCE)
    assert response.analysis_trace[-1].step.startswith("Route analyzer")


def test_target_brand_flows_into_scope(series) -> None:
    response = _ask(series, "Show top ASINs and past performance.", target_brand="topdon")

    assert response is not None
    assert response.answer == "TOPDON top ASINs are B0TOPDON01 with historical trend support."


def test_answers_are_deterministic(series) -> None:
    first = _ask(series, "Which brand grew the most this month?")
    second = _ask(series, "Which brand grew the most this month?")

    assert first is not None and second is not None
    assert first.to_dict() == second.to_dict()


def test_cache_is_reused_across_questions(series) -> None:
    cache = MartCache()
    request = ChatRequest(message="Who leads the market?", category_id=CATEGORY_ID, snapshot_date=CURRENT_DATE)

    answer_question(request, series, cache=cache, now=0.0)
    answer_question(request, series, cache=cache, now=1.0)

    assert len(cache) == 1
