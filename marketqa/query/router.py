"""Map a parsed question and its resolved entities onto one analyzer."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from marketqa.query.entities import EntityResolution
from marketqa.query.intents import ChatIntent
from marketqa.query.parser import ParsedQuery


class AnalyzerId(str, Enum):
    FASTEST_GROWTH = "fastest_growth"
    FASTEST_RANK_MOVER = "fastest_rank_mover"
    TYPE_GROWTH = "type_growth"
    GROWTH_DRIVER = "growth_driver"
    ASIN_HISTORY = "asin_history"
    BRAND_ARCHETYPE = "brand_archetype"
    PRICE_VS_VOLUME_EXPLAINER = "price_vs_volume_explainer"
    PRODUCT_COMPETITOR = "product_competitor"
    PRODUCT_TREND = "product_trend"
    BRAND_HEALTH = "brand_health"
    MARKET_SHIFT = "market_shift"
    RISK_SIGNAL = "risk_signal"
    OPPORTUNITY_SIGNAL = "opportunity_signal"
    TOP_PRODUCTS = "top_products"
    MARKET_SIZE = "market_size"
    MARKET_LEADER = "market_leader"
    PRICE_RANGE = "price_range"
    PRODUCT_TYPE_MIX = "product_type_mix"
    PRICE_VOLUME_TRADEOFF = "price_volume_tradeoff"
    BRAND_COMPARISON = "brand_comparison"
    FEATURE_ANALYSIS = "feature_analysis"
    COMPETITIVE_GAPS = "competitive_gaps"
    TRENDS_MOMENTUM = "trends_momentum"
    RATING_REVIEWS = "rating_reviews"
    MARKET_CONCENTRATION = "market_concentration"
    DATA_CLARIFICATION = "data_clarification"
    UNKNOWN = "unknown"


PRODUCT_LEVEL_ANALYZERS = frozenset({AnalyzerId.PRODUCT_COMPETITOR, AnalyzerId.PRODUCT_TREND})

PRODUCT_CLARIFICATIONS: dict[AnalyzerId, str] = {
    AnalyzerId.PRODUCT_COMPETITOR: (
        "Which product should I compare? You can provide ASIN, for example: 'Compare B08XYZ1234 competitors'."
    ),
    AnalyzerId.PRODUCT_TREND: (
        "Which product should I track? You can provide ASIN, for example: 'Show trend for B08XYZ1234'."
    ),
}

_PRICE_TIER = re.compile(r"\b(price tier|price tiers|pricing tier|pricing tiers)\b")
_GROWTH_WORD = re.compile(r"\b(fastest|grow|growth|rising|increase)\b")
_GROWTH_DRIVER = re.compile(
    r"\b(due to price|due to units|driven by price|driven by units|price or units|unit driven|price driven)\b"
)
_RANK_MOVER = re.compile(
    r"\b(fastest rank mover|rank moved most|biggest rank jump|rank improvement|rank mover"
    r"|closing the gap fastest|rank shifts?)\b"
)
_FASTEST_GROWTH = re.compile(
    r"\b(fastest growth|growing fastest|grew fastest|grew the most|highest mom|highest yoy|fastest growing"
    r"|growth leader|who grew)\b"
)


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


# Pattern-only rules checked in order before intent-based forcing.
_FORCED_BY_PATTERN: tuple[tuple[tuple[re.Pattern[str], ...], AnalyzerId], ...] = (
    ((_PRICE_TIER, _GROWTH_WORD), AnalyzerId.PRICE_RANGE),
    ((_rx(r"\b(product should we prioritize|prioritize in this segment|prioritise in this segment)\b"),), AnalyzerId.OPPORTUNITY_SIGNAL),
    ((_rx(r"\b(lower competitive density|competitive density|lower competition)\b"),), AnalyzerId.COMPETITIVE_GAPS),
    (
        (_rx(r"\b(strongest competitors|top competitors|main competitors)\b"), _rx(r"\b(segment|type|tier)\b")),
        AnalyzerId.BRAND_COMPARISON,
    ),
    (
        (_rx(r"\b(rising stars?|rising fastest|strongest momentum|trend acceleration|trend reversal|rank shifts?)\b"),),
        AnalyzerId.TRENDS_MOMENTUM,
    ),
    ((_rx(r"\b(driving most of this growth|drivers? of growth|what drives growth)\b"),), AnalyzerId.GROWTH_DRIVER),
    ((_FASTEST_GROWTH,), AnalyzerId.FASTEST_GROWTH),
    (
        (_rx(r"\b(fastest rank mover|rank moved most|biggest rank jump|rank improvement|rank mover|closing the gap fastest)\b"),),
        AnalyzerId.FASTEST_RANK_MOVER,
    ),
    ((_GROWTH_DRIVER,), AnalyzerId.GROWTH_DRIVER),
)

# Intent (or phrasing) rules; the intent check wins even without the phrase.
_FORCED_BY_INTENT: tuple[tuple[ChatIntent, re.Pattern[str] | None, AnalyzerId], ...] = (
    (
        ChatIntent.TOP_PRODUCTS,
        _rx(r"\b(top sku|top\s*(1|one)\s*(sku|product|asin|scanner)|top product|best seller)\b"),
        AnalyzerId.TOP_PRODUCTS,
    ),
    (ChatIntent.FASTEST_MOVER, _rx(r"\b(fastest mover|moving fastest|biggest mover)\b"), AnalyzerId.FASTEST_GROWTH),
    (ChatIntent.ASIN_HISTORY, _rx(r"\b(top asins|past performance|asin history|history)\b"), AnalyzerId.ASIN_HISTORY),
    (
        ChatIntent.PRICE_VS_VOLUME_EXPLAINER,
        _rx(r"\b(high price.*low units|low price.*high units|price led|volume led|price vs volume)\b"),
        AnalyzerId.PRICE_VS_VOLUME_EXPLAINER,
    ),
    (ChatIntent.BRAND_ARCHETYPE, _rx(r"\b(why is .*performing|brand archetype)\b"), AnalyzerId.BRAND_ARCHETYPE),
    (
        ChatIntent.PRODUCT_COMPETITOR,
        _rx(r"\b(biggest competitor|closest competitor|competes with)\b"),
        AnalyzerId.PRODUCT_COMPETITOR,
    ),
    (ChatIntent.PRODUCT_TREND, _rx(r"\b(product trend|trend for|performance of)\b"), AnalyzerId.PRODUCT_TREND),
    (ChatIntent.BRAND_HEALTH, None, AnalyzerId.BRAND_HEALTH),
    (ChatIntent.MARKET_SHIFT, None, AnalyzerId.MARKET_SHIFT),
    (ChatIntent.RISK_SIGNAL, None, AnalyzerId.RISK_SIGNAL),
    (ChatIntent.OPPORTUNITY_SIGNAL, None, AnalyzerId.OPPORTUNITY_SIGNAL),
    (ChatIntent.TRENDS_MOMENTUM, None, AnalyzerId.TRENDS_MOMENTUM),
    (ChatIntent.RATING_REVIEWS, None, AnalyzerId.RATING_REVIEWS),
    (ChatIntent.BRAND_COMPARISON, None, AnalyzerId.BRAND_COMPARISON),
    (ChatIntent.FEATURE_ANALYSIS, None, AnalyzerId.FEATURE_ANALYSIS),
    (ChatIntent.DATA_CLARIFICATION, None, AnalyzerId.DATA_CLARIFICATION),
    (ChatIntent.PRICE_RANGE, None, AnalyzerId.PRICE_RANGE),
)

INTENT_TO_ANALYZER: dict[ChatIntent, AnalyzerId] = {
    ChatIntent.FASTEST_MOVER: AnalyzerId.FASTEST_GROWTH,
    ChatIntent.SELF_ASSESSMENT: AnalyzerId.BRAND_HEALTH,
    ChatIntent.COMPETITIVE_BENCHMARKING: AnalyzerId.MARKET_SHIFT,
    ChatIntent.RISK_THREAT: AnalyzerId.RISK_SIGNAL,
    ChatIntent.GROWTH_OPPORTUNITY: AnalyzerId.OPPORTUNITY_SIGNAL,
}


@dataclass(frozen=True, slots=True)
class IntentRoute:
    analyzer: AnalyzerId
    clarification_question: str | None = None

    @property
    def needs_clarification(self) -> bool:
        return self.clarification_question is not None


def map_intent_to_analyzer(intent: ChatIntent) -> AnalyzerId:
    mapped = INTENT_TO_ANALYZER.get(intent)
    if mapped is not None:
        return mapped
    try:
        return AnalyzerId(intent.value)
    except ValueError:
        return AnalyzerId.UNKNOWN


def force_analyzer(intent: ChatIntent, normalized: str) -> AnalyzerId | None:
    for patterns, analyzer in _FORCED_BY_PATTERN:
        if all(pattern.search(normalized) for pattern in patterns):
            return analyzer
    for rule_intent, pattern, analyzer in _FORCED_BY_INTENT:
        if intent is rule_intent or (pattern is not None and pattern.search(normalized)):
            return analyzer
    return None


def route_intent(parsed: ParsedQuery, resolution: EntityResolution) -> IntentRoute:
    """Pick the analyzer; product-level routes without a unique product get a clarification."""

    normalized = parsed.normalized
    if parsed.intent is ChatIntent.TOP_PRODUCTS:
        return IntentRoute(AnalyzerId.TOP_PRODUCTS)
    if _PRICE_TIER.search(normalized) and _GROWTH_WORD.search(normalized):
        return IntentRoute(AnalyzerId.PRICE_RANGE)
    if _GROWTH_DRIVER.search(normalized):
        return IntentRoute(AnalyzerId.GROWTH_DRIVER)
    if _RANK_MOVER.search(normalized):
        return IntentRoute(AnalyzerId.FASTEST_RANK_MOVER)
    if _FASTEST_GROWTH.search(normalized):
        if parsed.plan.target_level == "type" or parsed.plan.type_scope:
            return IntentRoute(AnalyzerId.TYPE_GROWTH)
        return IntentRoute(AnalyzerId.FASTEST_GROWTH)

    forced = force_analyzer(parsed.intent, normalized)
    if forced in PRODUCT_LEVEL_ANALYZERS:
        if not resolution.matched_products:
            return IntentRoute(AnalyzerId.UNKNOWN, PRODUCT_CLARIFICATIONS[forced])
        if resolution.ambiguous and resolution.clarification_question:
            return IntentRoute(AnalyzerId.UNKNOWN, resolution.clarification_question)
    if forced is not None:
        return IntentRoute(forced)

    if resolution.ambiguous and resolution.clarification_question:
        return IntentRoute(AnalyzerId.UNKNOWN, resolution.clarification_question)
    return IntentRoute(map_intent_to_analyzer(parsed.intent))


__all__ = [
    "AnalyzerId",
    "INTENT_TO_ANALYZER",
    "IntentRoute",
    "PRODUCT_CLARIFICATIONS",
    "PRODUCT_LEVEL_ANALYZERS",
    "force_analyzer",
    "map_intent_to_analyzer",
    "route_intent",
]
