"""Exhaustive ``AnalyzerId`` to handler dispatch table."""
from __future__ import annotations

import logging
from typing import Callable

from marketqa.analyzers.base import AnalyzerContext, AnalyzerOutput
from marketqa.analyzers.drivers import brand_health, growth_driver
from marketqa.analyzers.growth import fastest_growth, fastest_rank_mover, type_growth
from marketqa.analyzers.market import (
    brand_comparison,
    data_clarification,
    feature_analysis,
    market_leader,
    market_size,
    price_range,
    price_volume_tradeoff,
    product_type_mix,
    rating_reviews,
    trends_momentum,
    unknown_analyzer,
)
from marketqa.analyzers.products import product_competitor, product_trend, top_products
from marketqa.analyzers.profiles import asin_history, brand_archetype, price_vs_volume_explainer
from marketqa.analyzers.signals import (
    competitive_gaps,
    market_concentration,
    market_shift,
    opportunity_signal,
    risk_signal,
)
from marketqa.query.router import AnalyzerId

LOGGER = logging.getLogger(__name__)

AnalyzerHandler = Callable[[AnalyzerContext], AnalyzerOutput]

ANALYZER_HANDLERS: dict[AnalyzerId, AnalyzerHandler] = {
    AnalyzerId.FASTEST_GROWTH: fastest_growth,
    AnalyzerId.FASTEST_RANK_MOVER: fastest_rank_mover,
    AnalyzerId.TYPE_GROWTH: type_growth,
    AnalyzerId.GROWTH_DRIVER: growth_driver,
    AnalyzerId.ASIN_HISTORY: asin_history,
    AnalyzerId.BRAND_ARCHETYPE: brand_archetype,
    AnalyzerId.PRICE_VS_VOLUME_EXPLAINER: price_vs_volume_explainer,
    AnalyzerId.PRODUCT_COMPETITOR: product_competitor,
    AnalyzerId.PRODUCT_TREND: product_trend,
    AnalyzerId.BRAND_HEALTH: brand_health,
    AnalyzerId.MARKET_SHIFT: market_shift,
    AnalyzerId.RISK_SIGNAL: risk_signal,
    AnalyzerId.OPPORTUNITY_SIGNAL: opportunity_signal,
    AnalyzerId.TOP_PRODUCTS: top_products,
    AnalyzerId.MARKET_SIZE: market_size,
    AnalyzerId.MARKET_LEADER: market_leader,
    AnalyzerId.PRICE_RANGE: price_range,
    AnalyzerId.PRODUCT_TYPE_MIX: product_type_mix,
    AnalyzerId.PRICE_VOLUME_TRADEOFF: price_volume_tradeoff,
    AnalyzerId.BRAND_COMPARISON: brand_comparison,
    AnalyzerId.FEATURE_ANALYSIS: feature_analysis,
    AnalyzerId.COMPETITIVE_GAPS: competitive_gaps,
    AnalyzerId.TRENDS_MOMENTUM: trends_momentum,
    AnalyzerId.RATING_REVIEWS: rating_reviews,
    AnalyzerId.MARKET_CONCENTRATION: market_concentration,
    AnalyzerId.DATA_CLARIFICATION: data_clarification,
    AnalyzerId.UNKNOWN: unknown_analyzer,
}


def missing_handlers(handlers: dict[AnalyzerId, AnalyzerHandler]) -> list[AnalyzerId]:
    return [analyzer for analyzer in AnalyzerId if analyzer not in handlers]


_MISSING = missing_handlers(ANALYZER_HANDLERS)
if _MISSING:
    raise RuntimeError(f"Analyzer ids without a handler: {', '.join(item.value for item in _MISSING)}")


def run_analyzer(analyzer_id: AnalyzerId, ctx: AnalyzerContext) -> AnalyzerOutput:
    handler = ANALYZER_HANDLERS[analyzer_id]
    LOGGER.debug("analyzer.run", extra={"analyzer": analyzer_id.value, "snapshot_date": ctx.mart.snapshot_date})
    return handler(ctx)


__all__ = ["ANALYZER_HANDLERS", "AnalyzerHandler", "missing_handlers", "run_analyzer"]
