"""Tests for response assembly and the wire payload."""
from __future__ import annotations

import pytest

from marketqa.analyzers.registry import run_analyzer
from marketqa.query.router import AnalyzerId, route_intent
from marketqa.response import (
    CLARIFICATION_CONFIDENCE,
    ChatResponse,
    TraceStep,
    assemble_response,
    build_clarification_response,
    merge_warnings,
    trace_status,
)
from marketqa.synthesis import build_synthesis_summary
from marketqa.tests.data import CURRENT_DATE, build_context, build_sample_mart


@pytest.fixture(scope="module")
def mart():
    return build_sample_mart()


def test_merge_warnings_dedupes_and_caps() -> None:
    assert merge_warnings(["a", "b"], ["b", "c", "d"], 3) == ["a", "b", "c"]
    assert merge_warnings([], [], 6) == []


def test_trace_status() -> None:
    assert trace_status(True) == "ok"
    assert trace_status(False) == "partial"
    assert TraceStep("Build data mart", "ok").to_dict() == {"step": "Build data mart", "status": "ok"}


def test_to_dict_omits_unset_optional_fields() -> None:
    response = ChatResponse(
        intent="unknown",
        answer="hi",
        bullets=[],
        evidence=[],
        proactive=[],
        suggested_questions=[],
        warnings=[],
    )

    assert response.to_dict() == {
        "intent": "unknown",
        "answer": "hi",
        "bullets": [],
        "evidence": [],
        "proactive": [],
        "suggestedQuestions": [],
        "warnings": [],
    }


def test_assemble_response_passes_analyzer_output_through(mart) -> None:
    ctx = build_context(mart, "Which brand grew the most this month?")
    output = run_analyzer(AnalyzerId.FASTEST_GROWTH, ctx)

    response = assemble_response(
        AnalyzerId.FASTEST_GROWTH,
        output,
        mart,
        ctx.resolution,
        build_synthesis_summary(mart),
        [TraceStep("Build data mart", "ok")],
    )
    payload = response.to_dict()

    assert payload["intent"] == "fastest_growth"
    assert payload["answer"] == output.answer
    assert payload["salesArchetype"] == "price_led"
    assert payload["historicalWindow"] == "12m"
    assert payload["topContributors"][0]["asin"] == "B0BLCK0001"
    assert payload["warnings"] == ["2 listings are missing ratings.", "Brand sheet coverage is partial for Topdon."]
    assert payload["citations"][0]["snapshot"] == CURRENT_DATE


def test_clarification_response(mart) -> None:
    ctx = build_context(mart, "Show the trend for the Innova OBD2 scanner")
    route = route_intent(ctx.parsed, ctx.resolution)
    assert route.needs_clarification

    response = build_clarification_response(
        mart,
        route.clarification_question or "",
        ctx.resolution,
        build_synthesis_summary(mart),
        [],
    )

    assert response.intent == "unknown"
    assert response.confidence == pytest.approx(CLARIFICATION_CONFIDENCE)
    assert response.citations is not None
    assert response.citations[0].metric == "Entity resolver"
    assert response.to_dict()["entities"]["brands"] == list(ctx.resolution.brands)
