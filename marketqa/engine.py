"""Request orchestration: mart, query understanding, routing, analyzer and response."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from marketqa.analyzers.base import AnalyzerContext
from marketqa.analyzers.registry import run_analyzer
from marketqa.cache import MartCache
from marketqa.mart.builder import build_data_mart
from marketqa.query.entities import resolve_entities
from marketqa.query.parser import parse_query
from marketqa.query.router import route_intent
from marketqa.response import (
    TRACE_OK,
    ChatResponse,
    TraceStep,
    assemble_response,
    build_clarification_response,
    trace_status,
)
from marketqa.schemas.snapshot import CategorySeries
from marketqa.settings import EngineSettings
from marketqa.synthesis import build_synthesis_summary

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChatRequest:
    message: str
    category_id: str
    snapshot_date: str
    target_brand: str | None = None


def answer_question(
    request: ChatRequest,
    series: CategorySeries,
    *,
    cache: MartCache | None = None,
    settings: EngineSettings | None = None,
    now: float | None = None,
) -> ChatResponse | None:
    """Answer ``request`` against ``series``.

    Returns ``None`` when the requested snapshot date is not in the series so
    the caller can fall back to its own path.
    """

    settings = settings or EngineSettings()
    trace: list[TraceStep] = []

    mart = build_data_mart(series, request.snapshot_date, cache=cache, now=now, settings=settings)
    if mart is None:
        LOGGER.warning(
            "engine.mart.missing",
            extra={"category": request.category_id, "snapshot_date": request.snapshot_date},
        )
        return None
    trace.append(TraceStep("Build data mart", TRACE_OK))

    parsed = parse_query(request.message, request.category_id)
    trace.append(TraceStep(f"Parse query intent ({parsed.intent.value})", trace_status(parsed.confidence > 0)))

    resolution = resolve_entities(
        request.message,
        mart,
        parsed=parsed,
        target_brand=request.target_brand,
        own_brands=settings.own_brands,
    )
    trace.append(
        TraceStep("Resolve entities (brand/ASIN/product)", trace_status(bool(resolution.asins or resolution.brands)))
    )
    trace.append(
        TraceStep(f"Resolve scope ({resolution.scope.mode.value})", trace_status(not resolution.scope.is_market_wide))
    )

    route = route_intent(parsed, resolution)
    trace.append(TraceStep(f"Route analyzer ({route.analyzer.value})", TRACE_OK))

    if route.needs_clarification:
        synthesis = build_synthesis_summary(mart, settings)
        LOGGER.info(
            "engine.clarification",
            extra={"category": request.category_id, "intent": parsed.intent.value, "asins": resolution.asins},
        )
        return build_clarification_response(
            mart,
            route.clarification_question or "",
            resolution,
            synthesis,
            trace,
            warning_cap=settings.response_warning_cap,
        )

    ctx = AnalyzerContext(
        mart=mart,
        parsed=parsed,
        resolution=resolution,
        settings=settings,
        target_brand=request.target_brand,
    )
    output = run_analyzer(route.analyzer, ctx)
    trace.append(TraceStep("Execute deterministic analyzer", TRACE_OK))

    synthesis = build_synthesis_summary(mart, settings)
    trace.append(TraceStep("Build proactive synthesis", trace_status(bool(synthesis.proactive))))

    LOGGER.info(
        "engine.answer.complete",
        extra={
            "category": request.category_id,
            "snapshot_date": request.snapshot_date,
            "intent": parsed.intent.value,
            "analyzer": route.analyzer.value,
            "confidence": output.confidence,
        },
    )
    return assemble_response(
        route.analyzer,
        output,
        mart,
        resolution,
        synthesis,
        trace,
        warning_cap=settings.response_warning_cap,
    )


__all__ = ["ChatRequest", "answer_question"]
