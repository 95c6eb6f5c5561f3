"""Keyword based intent scoring for free-text market questions.

Each intent owns a keyword list; a hit scores 1 point (2 for keywords longer
than five characters).  Category-specific vocabulary adds +2 per term and a
few regex heuristics add large fixed bonuses for phrasing that keyword hits
under-weight.  Ties keep declaration order.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class ChatIntent(str, Enum):
    FASTEST_MOVER = "fastest_mover"
    ASIN_HISTORY = "asin_history"
    BRAND_ARCHETYPE = "brand_archetype"
    PRICE_VS_VOLUME_EXPLAINER = "price_vs_volume_explainer"
    PRODUCT_COMPETITOR = "product_competitor"
    PRODUCT_TREND = "product_trend"
    BRAND_HEALTH = "brand_health"
    MARKET_SHIFT = "market_shift"
    RISK_SIGNAL = "risk_signal"
    OPPORTUNITY_SIGNAL = "opportunity_signal"
    MARKET_SIZE = "market_size"
    MARKET_LEADER = "market_leader"
    PRICE_RANGE = "price_range"
    TOP_PRODUCTS = "top_products"
    PRODUCT_TYPE_MIX = "product_type_mix"
    PRICE_VOLUME_TRADEOFF = "price_volume_tradeoff"
    BRAND_COMPARISON = "brand_comparison"
    FEATURE_ANALYSIS = "feature_analysis"
    COMPETITIVE_GAPS = "competitive_gaps"
    TRENDS_MOMENTUM = "trends_momentum"
    RATING_REVIEWS = "rating_reviews"
    MARKET_CONCENTRATION = "market_concentration"
    SELF_ASSESSMENT = "self_assessment"
    COMPETITIVE_BENCHMARKING = "competitive_benchmarking"
    RISK_THREAT = "risk_threat"
    GROWTH_OPPORTUNITY = "growth_opportunity"
    DATA_CLARIFICATION = "data_clarification"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class IntentDetection:
    intent: ChatIntent
    confidence: float


INTENT_KEYWORDS: dict[ChatIntent, tuple[str, ...]] = {
    ChatIntent.FASTEST_MOVER: (
        "fastest mover",
        "fast mover",
        "moving fastest",
        "biggest mover",
        "fastest growth",
        "grew the most",
        "highest mom",
        "highest yoy",
        "growth leader",
    ),
    ChatIntent.ASIN_HISTORY: ("asin history", "top asins", "past performance", "historical performance", "history"),
    ChatIntent.BRAND_ARCHETYPE: (
        "why is",
        "performing well",
        "high price low units",
        "low price high units",
        "archetype",
    ),
    ChatIntent.PRICE_VS_VOLUME_EXPLAINER: (
        "price vs volume",
        "price-led",
        "volume-led",
        "high price",
        "low price",
        "units sold",
    ),
    ChatIntent.MARKET_SIZE: ("market size", "total market", "how big", "total revenue", "total units", "tam"),
    ChatIntent.MARKET_LEADER: ("leader", "leading brand", "who is first", "top brand", "rank 1"),
    ChatIntent.PRICE_RANGE: ("price range", "average price", "median price", "asp range", "pricing band"),
    ChatIntent.TOP_PRODUCTS: (
        "top asin",
        "top asins",
        "top 1",
        "top one",
        "top product",
        "top products",
        "best seller",
        "top 50",
        "top by revenue",
        "top by units",
    ),
    ChatIntent.PRODUCT_TYPE_MIX: (
        "type mix",
        "product type",
        "segment mix",
        "tablet vs handheld",
        "dongle",
        "articulation",
    ),
    ChatIntent.PRICE_VOLUME_TRADEOFF: ("price volume", "tradeoff", "value segment", "volume share", "revenue share"),
    ChatIntent.BRAND_COMPARISON: ("compare brand", "brand comparison", "vs", "versus", "benchmark"),
    ChatIntent.FEATURE_ANALYSIS: (
        "feature",
        "premium",
        "with vs without",
        "laser",
        "wifi",
        "visual camera",
        "true rms",
        "auto-ranging",
        "magnification",
        "articulation",
    ),
    ChatIntent.COMPETITIVE_GAPS: (
        "gap",
        "whitespace",
        "opportunity cluster",
        "under served",
        "low competition",
        "opening",
    ),
    ChatIntent.TRENDS_MOMENTUM: ("trend", "momentum", "mom", "yoy", "month over month", "moving"),
    ChatIntent.RATING_REVIEWS: ("rating", "reviews", "star", "review velocity", "quality"),
    ChatIntent.MARKET_CONCENTRATION: ("concentration", "fragmented", "top 3 share", "top 5 share", "dominance"),
    ChatIntent.SELF_ASSESSMENT: (
        "how did we do",
        "how are we doing",
        "innova",
        "blcktec",
        "our performance",
        "trend",
        "asp",
        "1p",
        "3p",
        "top sku",
    ),
    ChatIntent.COMPETITIVE_BENCHMARKING: (
        "compare",
        "competitor",
        "competitors",
        "what are competitors doing",
        "competitors doing",
        "competition",
        "rank",
        "who gained",
        "who lost",
        "autel",
        "topdon",
        "ancel",
        "price move",
        "benchmark",
        "fastest rank mover",
        "rank moved most",
        "biggest rank jump",
    ),
    ChatIntent.RISK_THREAT: (
        "risk",
        "worry",
        "worried",
        "concern",
        "concerned",
        "what should i be worried about",
        "unusual",
        "alert",
        "threat",
        "losing share",
        "declining",
        "erosion",
        "slowing",
        "new entrant",
    ),
    ChatIntent.GROWTH_OPPORTUNITY: (
        "opportunity",
        "grow",
        "growth",
        "launch",
        "price tier",
        "addressable market",
        "move up one rank",
        "opening",
        "strategy",
    ),
    ChatIntent.DATA_CLARIFICATION: (
        "why",
        "what's included",
        "what is included",
        "difference",
        "how is revenue estimated",
        "actual or estimate",
        "adjusted report",
        "explain this number",
        "definition",
    ),
}

CATEGORY_KEYWORD_BOOSTS: dict[str, tuple[tuple[ChatIntent, tuple[str, ...]], ...]] = {
    "dmm": (
        (ChatIntent.FEATURE_ANALYSIS, ("true rms", "auto ranging", "automotive targeted")),
        (ChatIntent.PRODUCT_TYPE_MIX, ("multimeter", "analyzer")),
    ),
    "borescope": (
        (ChatIntent.FEATURE_ANALYSIS, ("2-way", "4-way", "lens", "display", "cable length")),
        (ChatIntent.PRODUCT_TYPE_MIX, ("articulation", "usb", "handheld")),
    ),
    "thermal_imager": (
        (ChatIntent.FEATURE_ANALYSIS, ("resolution", "super resolution", "laser", "wi-fi", "visual camera")),
        (ChatIntent.PRODUCT_TYPE_MIX, ("dongle", "handheld")),
    ),
    "night_vision": (
        (ChatIntent.FEATURE_ANALYSIS, ("magnification", "night vision", "thermal monocular")),
        (ChatIntent.PRICE_RANGE, ("price point", "budget")),
    ),
}

_TOP_WORD = re.compile(r"\btop\b(?:\s*\d+)?\b")
_PRODUCT_WORD = re.compile(r"\b(product|products|asin|asins|sku|scanner)\b")

REGEX_BONUSES: tuple[tuple[re.Pattern[str], ChatIntent, int], ...] = (
    (re.compile(r"\bwhat\s+are\s+competitors?\s+doing\b"), ChatIntent.COMPETITIVE_BENCHMARKING, 4),
    (re.compile(r"\b(what\s+should\s+i\s+be\s+worried\s+about|worried|concerned)\b"), ChatIntent.RISK_THREAT, 4),
    (re.compile(r"\b(fastest mover|moving fastest|biggest mover)\b"), ChatIntent.FASTEST_MOVER, 5),
    (
        re.compile(r"\b(fastest growth|grew the most|highest mom|highest yoy|growth leader)\b"),
        ChatIntent.FASTEST_MOVER,
        5,
    ),
    (
        re.compile(r"\b(fastest rank mover|rank moved most|biggest rank jump|rank improvement)\b"),
        ChatIntent.COMPETITIVE_BENCHMARKING,
        4,
    ),
    (
        re.compile(r"\b(due to price|due to units|driven by price|driven by units|price or units|unit driven|price driven)\b"),
        ChatIntent.PRICE_VS_VOLUME_EXPLAINER,
        5,
    ),
    (
        re.compile(r"\b(top asins|asin history|past performance|historical performance)\b"),
        ChatIntent.ASIN_HISTORY,
        5,
    ),
    (
        re.compile(r"\b(high price.*low units|low price.*high units|price.?led|volume.?led|price vs volume)\b"),
        ChatIntent.PRICE_VS_VOLUME_EXPLAINER,
        5,
    ),
    (re.compile(r"\b(why is .*performing|performing well)\b"), ChatIntent.BRAND_ARCHETYPE, 4),
)

SUGGESTED_QUESTIONS: dict[ChatIntent, tuple[str, ...]] = {
    ChatIntent.FASTEST_MOVER: (
        "Who is the fastest growth brand this month (MoM)?",
        "Who is the fastest growth brand this month (YoY)?",
        "Who is the fastest rank mover this month?",
    ),
    ChatIntent.ASIN_HISTORY: (
        "Show OTOFIX top ASINs and past performance.",
        "Give me ASIN history for Innova 5610.",
    ),
    ChatIntent.BRAND_ARCHETYPE: (
        "Why is OTOFIX performing well?",
        "Is BLCKTEC more price-led or volume-led this month?",
    ),
    ChatIntent.PRICE_VS_VOLUME_EXPLAINER: (
        "Which brands win from high price but low units?",
        "Which brands win from low price but high units?",
        "Is XTOOL growth driven by more units or higher ASP?",
    ),
    ChatIntent.PRODUCT_COMPETITOR: (
        "What is Innova 5610's biggest competitor this month?",
        "Which products are closest to BLCKTEC's top SKU?",
    ),
    ChatIntent.PRODUCT_TREND: (
        "How did Innova 5610 perform vs last month?",
        "Show trend for a specific ASIN.",
    ),
    ChatIntent.BRAND_HEALTH: (
        "How did Innova do this month?",
        "How did BLCKTEC do this month?",
    ),
    ChatIntent.MARKET_SHIFT: (
        "Which competitors moved share the most this month?",
        "What changed in market ranking this month?",
    ),
    ChatIntent.RISK_SIGNAL: (
        "What is our biggest risk right now?",
        "Which product is most at risk this month?",
    ),
    ChatIntent.OPPORTUNITY_SIGNAL: (
        "Where is the highest-growth opportunity right now?",
        "Which segment has low own share but high market weight?",
    ),
    ChatIntent.MARKET_SIZE: (
        "How big is the market this month in revenue and units?",
        "What is the annualized run rate from this snapshot?",
    ),
    ChatIntent.MARKET_LEADER: (
        "Who is the market leader this month?",
        "What share does the #1 brand hold?",
    ),
    ChatIntent.PRICE_RANGE: (
        "What is the market price range and median price?",
        "Which price tiers contribute most revenue?",
    ),
    ChatIntent.TOP_PRODUCTS: (
        "Show the top products by revenue.",
        "Show the top products by units.",
    ),
    ChatIntent.PRODUCT_TYPE_MIX: (
        "How is revenue split by product type?",
        "Which type leads in units vs revenue?",
    ),
    ChatIntent.PRICE_VOLUME_TRADEOFF: (
        "Where is volume high but revenue share low?",
        "Which types have premium pricing but low unit share?",
    ),
    ChatIntent.BRAND_COMPARISON: (
        "Compare the top two brands on share, units, and pricing.",
        "Which brand is closing the gap fastest?",
    ),
    ChatIntent.FEATURE_ANALYSIS: (
        "What feature premium is visible this month?",
        "Do feature-rich products outperform in revenue share?",
    ),
    ChatIntent.COMPETITIVE_GAPS: (
        "Which clusters are high-revenue with lower competition?",
        "Where is the best whitespace opportunity?",
    ),
    ChatIntent.TRENDS_MOMENTUM: (
        "What changed most versus last month?",
        "Are we seeing trend acceleration or reversal?",
    ),
    ChatIntent.RATING_REVIEWS: (
        "Which products have strong ratings and strong revenue?",
        "Any price-quality mismatch by brand?",
    ),
    ChatIntent.MARKET_CONCENTRATION: (
        "How concentrated is this market right now?",
        "What is top-3 and top-5 share?",
    ),
    ChatIntent.SELF_ASSESSMENT: (
        "How did Innova and BLCKTEC perform this month vs last month?",
        "What percentage of our revenue comes from the top 3 SKUs?",
        "How does our ASP compare with the market average?",
    ),
    ChatIntent.COMPETITIVE_BENCHMARKING: (
        "Who gained the most market share this month?",
        "Where do we rank in revenue and units this month?",
        "Did any competitor make aggressive price moves in our core segments?",
    ),
    ChatIntent.RISK_THREAT: (
        "What is our biggest risk right now?",
        "Are we losing share in any category for 3+ consecutive months?",
        "Did any competitor show breakout growth this month?",
    ),
    ChatIntent.GROWTH_OPPORTUNITY: (
        "Which category is growing fastest where we have low share?",
        "Which price tiers are growing fastest right now?",
        "What would it take to move up one market rank?",
    ),
    ChatIntent.DATA_CLARIFICATION: (
        "How is revenue estimated in this dashboard?",
        "Why did market share move while revenue stayed flat?",
        "What's included in the Other category?",
    ),
    ChatIntent.UNKNOWN: (
        "How did we do this month?",
        "What are competitors doing?",
        "What should I be worried about?",
        "Ask your own question",
    ),
}


def _keyword_points(keyword: str) -> int:
    return 2 if len(keyword) > 5 else 1


def score_intents(message: str, category_id: str | None = None) -> dict[ChatIntent, int]:
    """Return the raw score of every keyword-scored intent in declaration order."""

    normalized = message.lower().strip()
    scores = {
        intent: sum(_keyword_points(keyword) for keyword in keywords if keyword in normalized)
        for intent, keywords in INTENT_KEYWORDS.items()
    }
    for intent, terms in CATEGORY_KEYWORD_BOOSTS.get(category_id or "", ()):
        extra = sum(2 for term in terms if term in normalized)
        if extra:
            scores[intent] = scores.get(intent, 0) + extra

    if _TOP_WORD.search(normalized) and _PRODUCT_WORD.search(normalized):
        scores[ChatIntent.TOP_PRODUCTS] += 4
    for pattern, intent, bonus in REGEX_BONUSES:
        if pattern.search(normalized):
            scores[intent] += bonus
    return scores


def detect_intent(message: str, category_id: str | None = None) -> IntentDetection:
    """Pick the highest scoring intent; confidence is ``top / (top + runner-up)``."""

    if not message.strip():
        return IntentDetection(ChatIntent.UNKNOWN, 0.0)
    ranked = sorted(score_intents(message, category_id).items(), key=lambda item: item[1], reverse=True)
    top_intent, top_score = ranked[0]
    second_score = ranked[1][1] if len(ranked) > 1 else 0
    if top_score <= 0:
        return IntentDetection(ChatIntent.UNKNOWN, 0.0)
    confidence = min(1.0, top_score / max(1, top_score + second_score))
    return IntentDetection(top_intent, confidence)


def suggested_questions_for_intent(intent: ChatIntent | str) -> list[str]:
    try:
        key = ChatIntent(intent)
    except ValueError:
        key = ChatIntent.UNKNOWN
    return list(SUGGESTED_QUESTIONS.get(key, SUGGESTED_QUESTIONS[ChatIntent.UNKNOWN]))


__all__ = [
    "CATEGORY_KEYWORD_BOOSTS",
    "ChatIntent",
    "INTENT_KEYWORDS",
    "IntentDetection",
    "SUGGESTED_QUESTIONS",
    "detect_intent",
    "score_intents",
    "suggested_questions_for_intent",
]
