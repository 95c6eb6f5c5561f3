"""Turn a free-text question into a parsed intent plus an execution plan."""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from marketqa.query.intents import ChatIntent, detect_intent

RANKING_METRICS = ("revenue", "units")
GROWTH_WINDOWS = ("mom", "yoy", "both")
HISTORICAL_WINDOWS = ("1m", "3m", "6m", "12m", "all")
TARGET_LEVELS = ("brand", "type", "asin", "market")
TYPE_SCOPES = ("tablet", "dongle", "handheld", "other_tools")


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


# Ordered: the first matching pattern overrides keyword scoring.
FORCED_PATTERNS: tuple[tuple[tuple[re.Pattern[str], ...], tuple[re.Pattern[str], ...], ChatIntent, float], ...] = (
    (
        (_rx(r"\b(price tier|price tiers|pricing tier|pricing tiers)\b"), _rx(r"\b(fastest|grow|growth|rising|increase)\b")),
        (),
        ChatIntent.PRICE_RANGE,
        0.93,
    ),
    (
        (_rx(r"\b(product should we prioritize|prioritize in this segment|prioritise in this segment)\b"),),
        (),
        ChatIntent.OPPORTUNITY_SIGNAL,
        0.88,
    ),
    (
        (_rx(r"\b(lower competitive density|competitive density|lower competition)\b"),),
        (),
        ChatIntent.COMPETITIVE_GAPS,
        0.86,
    ),
    (
        (_rx(r"\b(strongest competitors|top competitors|main competitors)\b"), _rx(r"\b(segment|type|tier)\b")),
        (),
        ChatIntent.BRAND_COMPARISON,
        0.88,
    ),
    (
        (_rx(r"\b(driving most of this growth|drivers? of growth|what is driving growth|what drives growth)\b"),),
        (),
        ChatIntent.PRICE_VS_VOLUME_EXPLAINER,
        0.9,
    ),
    (
        (_rx(r"\b(rising stars?|rising fastest|strongest momentum|trend acceleration|trend reversal|rank shifts?)\b"),),
        (),
        ChatIntent.TRENDS_MOMENTUM,
        0.86,
    ),
    (
        (_rx(r"\b(biggest competitor|main competitor|closest competitor|compete against|alternative to)\b"),),
        (),
        ChatIntent.PRODUCT_COMPETITOR,
        0.92,
    ),
    (
        (_rx(r"\b(top sku|top\s*(1|one)\s*(sku|product|asin|scanner)|top product|best seller|#1 product)\b"),),
        (),
        ChatIntent.TOP_PRODUCTS,
        0.95,
    ),
    (
        (_rx(r"\b(how did .* perform|how .* performed|performance of .* last month|how is .* performing)\b"),),
        (_rx(r"\b(asin|sku|model|b0[a-z0-9]{8})\b"),),
        ChatIntent.BRAND_HEALTH,
        0.9,
    ),
    (
        (_rx(r"\b(fastest mover|fast mover|moving fastest|biggest mover)\b"),),
        (),
        ChatIntent.FASTEST_MOVER,
        0.9,
    ),
    (
        (
            _rx(
                r"\b(fastest growth|growing fastest|grew fastest|grew the most|highest mom|highest yoy"
                r"|fastest growing|growth leader)\b"
            ),
        ),
        (),
        ChatIntent.FASTEST_MOVER,
        0.9,
    ),
    (
        (
            _rx(
                r"\b(fastest rank mover|rank moved most|biggest rank jump|rank improvement|rank mover"
                r"|closing the gap fastest)\b"
            ),
        ),
        (),
        ChatIntent.MARKET_SHIFT,
        0.9,
    ),
    (
        (_rx(r"\b(due to price|due to units|driven by price|driven by units|price or units|unit driven|price driven)\b"),),
        (),
        ChatIntent.PRICE_VS_VOLUME_EXPLAINER,
        0.92,
    ),
    (
        (_rx(r"\b(top asins|asin history|past performance|historical performance|history of)\b"),),
        (),
        ChatIntent.ASIN_HISTORY,
        0.88,
    ),
    (
        (_rx(r"\b(high price.*low units|low price.*high units|price led|volume led|price vs volume)\b"),),
        (),
        ChatIntent.PRICE_VS_VOLUME_EXPLAINER,
        0.9,
    ),
    (
        (_rx(r"\b(why is .*performing|why .*performing well|how is .*performing)\b"),),
        (),
        ChatIntent.BRAND_ARCHETYPE,
        0.83,
    ),
    (
        (_rx(r"\b(product trend|trend for|how .*perform|performance of|grew|declined)\b"),),
        (),
        ChatIntent.PRODUCT_TREND,
        0.84,
    ),
    (
        (_rx(r"\b(brand health|how did (innova|blcktec) do|our brand)\b"),),
        (),
        ChatIntent.BRAND_HEALTH,
        0.88,
    ),
    ((_rx(r"\b(shift|moving|moved|who moved|market changed)\b"),), (), ChatIntent.MARKET_SHIFT, 0.8),
    ((_rx(r"\b(risk|worried|threat|alert)\b"),), (), ChatIntent.RISK_SIGNAL, 0.82),
    ((_rx(r"\b(opportunity|whitespace|where to grow|opening)\b"),), (), ChatIntent.OPPORTUNITY_SIGNAL, 0.82),
)

EXPLICIT_BRAND_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("innova", _rx(r"\binnova\b")),
    ("blcktec", _rx(r"\bblcktec\b|\bblck\s*tek\b|\bblacktec\b")),
    ("topdon", _rx(r"\btopdon\b")),
    ("xtool", _rx(r"\bxtool\b")),
    ("otofix", _rx(r"\botofix\b")),
    ("autel", _rx(r"\bautel\b")),
    ("ancel", _rx(r"\bancel\b")),
    ("foxwell", _rx(r"\bfoxwell\b")),
    ("icarsoft", _rx(r"\bicarsoft\b")),
    ("obdlink", _rx(r"\bobdlink\b")),
    ("bluedriver", _rx(r"\bbluedriver\b|\bblue driver\b")),
)

_OWN_LANGUAGE = _rx(r"\b(our|ours|we|us)\b")
_ALL_BRANDS_LANGUAGE = _rx(r"\b(all brands|overall market|across brands|entire market)\b")
_LAST_MONTH = _rx(r"\b(last month|mom|month over month|vs last)\b")
_MARKET = _rx(r"\b(vs market|market average|market share|market)\b")
_TYPE_WORD = _rx(r"\b(type|segment)\b")
_PRICE_WORD = _rx(r"\b(price|tier|\$|budget|premium)\b")
# ASIN-shaped tokens need a digit; plain words such as "competitor" do not count.
_ASIN_LIKE = _rx(r"\b(?=[a-z0-9]*[0-9])[a-z0-9]{8,10}\b")


@dataclass(frozen=True, slots=True)
class QueryScope:
    compare_to_last_month: bool = False
    compare_to_market: bool = False
    requires_type_scope: bool = False
    requires_price_scope: bool = False


@dataclass(frozen=True, slots=True)
class QueryPlan:
    ranking_metric: str = "revenue"
    ranking_target: str = "revenue_rank"
    historical_window: str = "12m"
    growth_window: str = "mom"
    target_level: str = "brand"
    type_scope: str | None = None
    scope_brands: tuple[str, ...] = ()
    include_own_brands: bool = False
    mentions_all_brands: bool = False


@dataclass(frozen=True, slots=True)
class ParsedQuery:
    raw: str
    normalized: str
    intent: ChatIntent
    confidence: float
    scope: QueryScope = field(default_factory=QueryScope)
    plan: QueryPlan = field(default_factory=QueryPlan)


def force_intent_from_pattern(normalized: str) -> tuple[ChatIntent, float] | None:
    for required, excluded, intent, confidence in FORCED_PATTERNS:
        if all(pattern.search(normalized) for pattern in required) and not any(
            pattern.search(normalized) for pattern in excluded
        ):
            return intent, confidence
    return None


def infer_ranking_metric(normalized: str) -> str:
    return "units" if re.search(r"\b(unit|units|volume)\b", normalized) else "revenue"


def infer_ranking_target(normalized: str, ranking_metric: str) -> str:
    if re.search(r"\b(units rank|rank by units|unit rank)\b", normalized):
        return "units_rank"
    if re.search(r"\b(revenue rank|rank by revenue|sales rank)\b", normalized):
        return "revenue_rank"
    if re.search(r"\b(overall rank|overall ranking)\b", normalized):
        return "overall_rank"
    return "units_rank" if ranking_metric == "units" else "revenue_rank"


def infer_growth_window(normalized: str) -> str:
    if re.search(r"\b(mom.*yoy|yoy.*mom|month over month.*year over year|both)\b", normalized):
        return "both"
    if re.search(r"\b(yoy|year over year|same month last year)\b", normalized):
        return "yoy"
    return "mom"


def infer_historical_window(normalized: str) -> str:
    if re.search(r"\b(all time|full history|entire history)\b", normalized):
        return "all"
    if re.search(r"\b12\s*(m|mo|month)|12-month|12 month|1 year|one year|yoy\b", normalized):
        return "12m"
    if re.search(r"\b6\s*(m|mo|month)|6-month|6 month\b", normalized):
        return "6m"
    if re.search(r"\b3\s*(m|mo|month)|3-month|3 month|quarter\b", normalized):
        return "3m"
    if _LAST_MONTH.search(normalized):
        return "1m"
    return "12m"


def infer_type_scope(normalized: str) -> str | None:
    if re.search(r"\btablet(s)?\b", normalized):
        return "tablet"
    if re.search(r"\bhandheld(s)?\b", normalized):
        return "handheld"
    if re.search(r"\bdongle(s)?\b", normalized):
        return "dongle"
    if re.search(r"\bother tools?\b", normalized):
        return "other_tools"
    return None


def infer_explicit_brands(normalized: str) -> tuple[str, ...]:
    return tuple(brand for brand, pattern in EXPLICIT_BRAND_PATTERNS if pattern.search(normalized))


def infer_target_level(normalized: str, scope_brands: tuple[str, ...], type_scope: str | None) -> str:
    if type_scope:
        return "type"
    if re.search(r"\bmarket|overall|across all brands|entire market\b", normalized):
        return "market"
    if _ASIN_LIKE.search(normalized) or re.search(r"\b(asin|sku|model|product)\b", normalized):
        return "asin"
    return "brand"


def parse_query(message: str, category_id: str | None = None) -> ParsedQuery:
    """Parse ``message`` deterministically; equal input always yields an equal result."""

    normalized = message.lower().strip()
    detected = detect_intent(message, category_id)
    forced = force_intent_from_pattern(normalized)
    intent, confidence = forced if forced else (detected.intent, detected.confidence)

    ranking_metric = infer_ranking_metric(normalized)
    type_scope = infer_type_scope(normalized)
    scope_brands = infer_explicit_brands(normalized)
    plan = QueryPlan(
        ranking_metric=ranking_metric,
        ranking_target=infer_ranking_target(normalized, ranking_metric),
        historical_window=infer_historical_window(normalized),
        growth_window=infer_growth_window(normalized),
        target_level=infer_target_level(normalized, scope_brands, type_scope),
        type_scope=type_scope,
        scope_brands=scope_brands,
        include_own_brands=bool(_OWN_LANGUAGE.search(normalized)),
        mentions_all_brands=bool(_ALL_BRANDS_LANGUAGE.search(normalized)),
    )
    scope = QueryScope(
        compare_to_last_month=bool(_LAST_MONTH.search(normalized)),
        compare_to_market=bool(_MARKET.search(normalized)),
        requires_type_scope=bool(type_scope) or bool(_TYPE_WORD.search(normalized)),
        requires_price_scope=bool(_PRICE_WORD.search(normalized)),
    )
    return ParsedQuery(
        raw=message,
        normalized=normalized,
        intent=intent,
        confidence=confidence,
        scope=scope,
        plan=plan,
    )


__all__ = [
    "FORCED_PATTERNS",
    "GROWTH_WINDOWS",
    "HISTORICAL_WINDOWS",
    "ParsedQuery",
    "QueryPlan",
    "QueryScope",
    "RANKING_METRICS",
    "TARGET_LEVELS",
    "TYPE_SCOPES",
    "force_intent_from_pattern",
    "infer_explicit_brands",
    "infer_growth_window",
    "infer_historical_window",
    "infer_ranking_metric",
    "infer_ranking_target",
    "infer_target_level",
    "infer_type_scope",
    "parse_query",
]
