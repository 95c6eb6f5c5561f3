"""Category-level analyzers: size, leaders, pricing, mix, features, momentum and clarifications."""
from __future__ import annotations

import re
from dataclasses import dataclass

import numpy as np

from marketqa.analyzers.base import (
    AnalyzerContext,
    AnalyzerOutput,
    EvidenceItem,
    base_evidence,
    citation,
    find_brand_total,
    is_canonical_type_scope,
    unknown_output,
)
from marketqa.query.intents import ChatIntent, suggested_questions_for_intent
from marketqa.reports.formatting import (
    format_currency,
    format_number,
    format_percent,
    format_plain_currency,
    format_share,
    truncate,
)
from marketqa.schemas.snapshot import BrandTotal
from marketqa.synthesis import build_synthesis_summary
from marketqa.utils.numbers import ratio_delta, safe_share

UNKNOWN_ANSWER = (
    "I can analyze product competitors, product trends, market shifts, risks, and opportunities. "
    "Tell me a product ASIN or brand to go deeper."
)

TRUTHY_FEATURE_VALUES = frozenset({"true", "yes", "y", "1"})
FALSY_FEATURE_VALUES = frozenset({"false", "no", "n", "0", ""})


def _questions(intent: ChatIntent) -> tuple[str, ...]:
    return tuple(suggested_questions_for_intent(intent))


def trend_line(label: str, value: float | None) -> str:
    return f"{label}: {format_percent(value)}"


def market_size(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    totals = mart.snapshot.totals
    previous = mart.previous.totals if mart.previous else None
    return AnalyzerOutput(
        answer=(
            f"Current market size for {mart.category_label}: {format_currency(totals.revenue)} revenue and "
            f"{format_number(totals.units)} units."
        ),
        bullets=(
            f"Annualized run-rate from current month: {format_currency(totals.revenue * 12)}.",
            trend_line("Revenue vs prior snapshot", ratio_delta(totals.revenue, previous.revenue if previous else None)),
            trend_line("Units vs prior snapshot", ratio_delta(totals.units, previous.units if previous else None)),
        ),
        evidence=(*base_evidence(mart.snapshot), EvidenceItem("Category", mart.category_label)),
        confidence=0.9 if totals.revenue > 0 or totals.units > 0 else 0.55,
        assumptions=("Run-rate multiplies the current month by twelve and ignores seasonality.",),
        citations=(citation("Market totals", "snapshot.totals", mart.snapshot_date),),
        suggested_questions=_questions(ChatIntent.MARKET_SIZE),
    )


def _brands_by_revenue(ctx: AnalyzerContext) -> list[BrandTotal]:
    return sorted(ctx.mart.snapshot.brand_totals, key=lambda row: row.revenue, reverse=True)


def market_leader(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    brands = _brands_by_revenue(ctx)
    if brands:
        leader = brands[0]
        answer = (
            f"{leader.brand} leads this month with {format_currency(leader.revenue)} revenue and "
            f"{format_share(leader.share)} share."
        )
    else:
        answer = "No brand leaderboard could be computed from the current data coverage."
    return AnalyzerOutput(
        answer=answer,
        bullets=tuple(
            f"#{index} {row.brand}: {format_currency(row.revenue)} ({format_share(row.share)} share)"
            for index, row in enumerate(brands[:5], start=1)
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.88 if brands else 0.55,
        assumptions=("Leaderboard ranks brands by current-month revenue.",),
        citations=(citation("Brand leaderboard", "snapshot.brandTotals", mart.snapshot_date),),
        suggested_questions=_questions(ChatIntent.MARKET_LEADER),
    )


@dataclass(frozen=True, slots=True)
class PriceStats:
    minimum: float = 0.0
    maximum: float = 0.0
    median: float = 0.0
    average: float = 0.0
    count: int = 0


def summarize_prices(prices: list[float]) -> PriceStats:
    """Min/max/median/mean over positive prices; an even count averages the two middle values."""

    values = np.sort(np.asarray([price for price in prices if price > 0], dtype=float))
    if values.size == 0:
        return PriceStats()
    return PriceStats(
        minimum=float(values[0]),
        maximum=float(values[-1]),
        median=float(np.median(values)),
        average=float(values.mean()),
        count=int(values.size),
    )


def price_range(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    stats = summarize_prices([product.price for product in mart.products])
    return AnalyzerOutput(
        answer=(
            f"Observed price range is {format_plain_currency(stats.minimum)} to {format_plain_currency(stats.maximum)} "
            f"with median {format_plain_currency(stats.median)} and average {format_plain_currency(stats.average)}."
        ),
        bullets=tuple(
            f"{tier.label}: {format_share(tier.share)} revenue share ({format_currency(tier.revenue)})."
            for tier in mart.snapshot.price_tiers[:4]
        ),
        evidence=(*base_evidence(mart.snapshot), EvidenceItem("Priced Products", str(stats.count))),
        confidence=0.84 if stats.count else 0.6,
        assumptions=("Price statistics use current-month products with a positive price.",),
        citations=(
            citation("Product prices", "indexed products", mart.snapshot_date),
            citation("Price tiers", "snapshot.priceTiers", mart.snapshot_date),
        ),
        suggested_questions=_questions(ChatIntent.PRICE_RANGE),
    )


@dataclass(frozen=True, slots=True)
class TypeMix:
    label: str
    revenue: float
    units: float
    revenue_share: float
    unit_share: float


def type_mix_rows(ctx: AnalyzerContext) -> list[TypeMix]:
    """Canonical type breakdown rows, or a product-level rollup by type when the snapshot has none."""

    mart = ctx.mart
    canonical = [row for row in mart.type_metrics if is_canonical_type_scope(row.scope_key)]
    if canonical:
        rows = [TypeMix(row.label, row.revenue, row.units, row.revenue_share, row.units_share) for row in canonical]
    else:
        frame = mart.product_frame
        if frame.empty:
            return []
        grouped = frame.groupby("type", sort=False)[["revenue", "units"]].sum().reset_index()
        total_revenue = float(grouped["revenue"].sum())
        total_units = float(grouped["units"].sum())
        rows = [
            TypeMix(
                str(row.type),
                float(row.revenue),
                float(row.units),
                safe_share(row.revenue, total_revenue),
                safe_share(row.units, total_units),
            )
            for row in grouped.itertuples(index=False)
        ]
    rows.sort(key=lambda row: row.revenue_share, reverse=True)
    return rows


def product_type_mix(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    rows = type_mix_rows(ctx)
    if rows:
        answer = f"{rows[0].label} leads the type mix with {format_share(rows[0].revenue_share)} of revenue."
    else:
        answer = "Type-level mix is unavailable for this snapshot."
    return AnalyzerOutput(
        answer=answer,
        bullets=tuple(
            f"{row.label}: {format_share(row.revenue_share)} revenue share and {format_share(row.unit_share)} unit share."
            for row in rows[:6]
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.82 if rows else 0.6,
        assumptions=("Type mix prefers the snapshot type breakdown and falls back to product types.",),
        citations=(citation("Type mix", "snapshot.typeBreakdowns", mart.snapshot_date),),
        suggested_questions=_questions(ChatIntent.PRODUCT_TYPE_MIX),
    )


def price_volume_tradeoff(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    rows = type_mix_rows(ctx)
    strongest = max(rows, key=lambda row: abs(row.unit_share - row.revenue_share), default=None)
    return AnalyzerOutput(
        answer=(
            f"{strongest.label} shows the largest price-volume tradeoff signal."
            if strongest
            else "No strong price-volume imbalance signal was detected."
        ),
        bullets=tuple(
            f"{row.label}: unit-share minus revenue-share = {format_percent(row.unit_share - row.revenue_share)}."
            for row in rows[:6]
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.8 if rows else 0.6,
        assumptions=("Positive values mean a type sells more units than its revenue weight (lower price points).",),
        citations=(citation("Type mix", "snapshot.typeBreakdowns", mart.snapshot_date),),
        suggested_questions=_questions(ChatIntent.PRICE_VOLUME_TRADEOFF),
    )


def brand_comparison(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    named = [row for row in (find_brand_total(mart.snapshot, brand) for brand in ctx.resolution.brands) if row]
    compared = named[:2] if len(named) >= 2 else _brands_by_revenue(ctx)[:2]
    units_total = mart.snapshot.totals.units
    return AnalyzerOutput(
        answer=(
            f"Brand comparison: {compared[0].brand} vs {compared[1].brand}."
            if len(compared) >= 2
            else "Brand comparison requires at least two brands with measurable coverage."
        ),
        bullets=tuple(
            f"{row.brand}: {format_currency(row.revenue)} revenue, {format_number(row.units)} units, "
            f"{format_share(row.share)} share, {format_share(safe_share(row.units, units_total))} unit share."
            for row in compared
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.84 if len(compared) >= 2 else 0.55,
        assumptions=("Brands named in the question are compared; otherwise the top two by revenue.",),
        citations=(citation("Brand comparison", "snapshot.brandTotals", mart.snapshot_date),),
        suggested_questions=_questions(ChatIntent.BRAND_COMPARISON),
    )


@dataclass(frozen=True, slots=True)
class FeaturePremium:
    feature: str
    with_average: float
    without_average: float

    @property
    def premium(self) -> float:
        return (self.with_average - self.without_average) / self.without_average


def feature_flag(value: str | None) -> bool | None:
    """``True``/``False`` for recognised yes/no values, ``None`` for anything else."""

    text = (value or "").strip().lower()
    if text in TRUTHY_FEATURE_VALUES:
        return True
    if text in FALSY_FEATURE_VALUES:
        return False
    return None


def feature_premiums(ctx: AnalyzerContext) -> list[FeaturePremium]:
    products = [product for product in ctx.mart.products if product.price > 0]
    names: list[str] = []
    for product in products:
        for name in product.features or {}:
            if name not in names:
                names.append(name)

    premiums: list[FeaturePremium] = []
    for name in names:
        with_prices: list[float] = []
        without_prices: list[float] = []
        for product in products:
            flag = feature_flag((product.features or {}).get(name))
            if flag is True:
                with_prices.append(product.price)
            elif flag is False:
                without_prices.append(product.price)
        if not with_prices or not without_prices:
            continue
        without_average = float(np.mean(without_prices))
        if without_average <= 0:
            continue
        premiums.append(FeaturePremium(name, float(np.mean(with_prices)), without_average))
    premiums.sort(key=lambda item: abs(item.premium), reverse=True)
    return premiums


def feature_analysis(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    premiums = feature_premiums(ctx)
    top = premiums[0] if premiums else None
    return AnalyzerOutput(
        answer=(
            f"{top.feature} has a {format_percent(top.premium)} price premium in this dataset."
            if top
            else "Feature premium analysis is unavailable for this snapshot."
        ),
        bullets=tuple(
            f"{item.feature}: with-feature avg {format_plain_currency(item.with_average)} vs without-feature avg "
            f"{format_plain_currency(item.without_average)} ({format_percent(item.premium)})."
            for item in premiums[:5]
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.74 if premiums else 0.5,
        assumptions=("Feature flags are read from product feature columns; missing values count as without.",),
        citations=(citation("Feature premiums", "product feature flags", mart.snapshot_date),),
        suggested_questions=_questions(ChatIntent.FEATURE_ANALYSIS),
    )


def trends_momentum(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    totals = mart.snapshot.totals
    previous = mart.previous.totals if mart.previous else None
    year_ago = mart.year_ago.totals if mart.year_ago else None
    revenue_mom = ratio_delta(totals.revenue, previous.revenue if previous else None)
    units_mom = ratio_delta(totals.units, previous.units if previous else None)
    revenue_yoy = ratio_delta(totals.revenue, year_ago.revenue if year_ago else None)
    watchlist = build_synthesis_summary(mart, ctx.settings, ctx.own_brands).watchlist
    return AnalyzerOutput(
        answer=(
            f"Momentum snapshot: revenue {format_percent(revenue_mom)} vs prior month, "
            f"units {format_percent(units_mom)} vs prior month."
        ),
        bullets=(
            trend_line("MoM revenue change", revenue_mom),
            trend_line("MoM unit change", units_mom),
            trend_line("YoY revenue change", revenue_yoy),
            *watchlist[:3],
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.82 if previous else 0.65,
        assumptions=("Momentum compares market totals with the previous and year-ago snapshots.",),
        citations=(citation("Market momentum", "snapshot totals history", mart.snapshot_date),),
        suggested_questions=_questions(ChatIntent.TRENDS_MOMENTUM),
    )


def rating_reviews(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    rated = sorted(
        (product for product in mart.products if product.rating > 0), key=lambda product: product.rating, reverse=True
    )[:5]
    return AnalyzerOutput(
        answer=(
            "Rating/review quality snapshot highlights products combining strong ratings with meaningful revenue."
            if rated
            else "No rated products are available in this snapshot."
        ),
        bullets=tuple(
            f"{product.brand} {truncate(product.title, 64)}: {product.rating:.1f}★, "
            f"{format_number(product.reviews)} reviews, {format_currency(product.revenue)} revenue."
            for product in rated
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.8 if rated else 0.55,
        assumptions=("Ratings are current-month listing ratings; review counts are cumulative.",),
        citations=(citation("Ratings and reviews", "indexed products", mart.snapshot_date),),
        suggested_questions=_questions(ChatIntent.RATING_REVIEWS),
    )


@dataclass(frozen=True, slots=True)
class Clarification:
    pattern: re.Pattern[str]
    answer: str
    bullets: tuple[str, ...]


CLARIFICATIONS: tuple[Clarification, ...] = (
    Clarification(
        re.compile(r"(how.*revenue.*estimate|actual.*estimate|helium\s*10)", re.IGNORECASE),
        "Revenue in this dashboard is estimate-driven for market coverage, with Innova/BLCKTEC adjustments "
        "applied where those adjusted report snapshots are available.",
        (
            "Market-wide values are estimated from monthly competitor report workbooks.",
            "Innova/BLCKTEC figures can differ between standard and adjusted workbooks when actual inputs are applied.",
            "Always compare metrics within the same report mode for consistency.",
        ),
    ),
    Clarification(
        re.compile(r"(why.*(jump|drop|higher|lower)|why.*share)", re.IGNORECASE),
        "Large share moves can happen even when brand revenue is stable, because share is relative to the "
        "total market in that month.",
        (
            "If market size contracts faster than your brand, your share can rise without revenue growth.",
            "If market expands and your brand grows slower, share can decline despite absolute growth.",
            "Seasonality (for example, post-holiday normalization) can amplify this effect.",
        ),
    ),
    Clarification(
        re.compile(r"(what.*included.*other|other brand|other tools)", re.IGNORECASE),
        "The 'Other' grouping captures brands or tool types outside the primary named segments and "
        "brand-focused breakouts.",
        (
            "For brand views, it includes long-tail competitors not surfaced as top brand callouts.",
            "For type views, it includes non-tablet/non-handheld/non-dongle groupings.",
            "Use the scope filters to inspect segment-specific contributions.",
        ),
    ),
    Clarification(
        re.compile(r"(difference.*adjusted|adjusted.*standard|innova adjusted)", re.IGNORECASE),
        "Adjusted reports incorporate manual/actual corrections for key brands, while standard competitor "
        "analysis is purely pipeline-derived.",
        (
            "Adjusted mode is typically preferred for stakeholder decisions on Innova/BLCKTEC performance.",
            "Standard mode is useful for broad market comparability when adjustments are unavailable.",
            "Mixing adjusted and standard snapshots can create apparent discontinuities.",
        ),
    ),
    Clarification(
        re.compile(r"(difference.*1p.*3p|what.*1p|what.*3p)", re.IGNORECASE),
        "1P and 3P represent first-party vs third-party fulfillment/seller channels for Amazon listings.",
        (
            "1P: Amazon-retail style relationship and fulfillment pipeline.",
            "3P: Marketplace sellers operating on Amazon.",
            "If channel fields are absent in a snapshot, the split is reported as unavailable instead of inferred.",
        ),
    ),
)

FALLBACK_CLARIFICATION = (
    "I can clarify how each metric is computed and why month-to-month changes can diverge from absolute "
    "revenue movement.",
    (
        "Market share can move up when the total market shrinks faster than your brand.",
        "Different source workbooks can include different listing coverage and segmentation.",
    ),
)


def find_clarification(message: str) -> Clarification | None:
    return next((item for item in CLARIFICATIONS if item.pattern.search(message)), None)


def data_clarification(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    match = find_clarification(ctx.message)
    answer, bullets = (match.answer, match.bullets) if match else FALLBACK_CLARIFICATION
    return AnalyzerOutput(
        answer=answer,
        bullets=bullets,
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.9 if match else 0.7,
        assumptions=("Clarifications describe how the snapshot metrics are produced.",),
        citations=(citation("Metric definitions", "data clarification table", mart.snapshot_date),),
        suggested_questions=_questions(ChatIntent.DATA_CLARIFICATION),
    )


def unknown_analyzer(ctx: AnalyzerContext) -> AnalyzerOutput:
    return unknown_output(ctx.mart, UNKNOWN_ANSWER)


__all__ = [
    "CLARIFICATIONS",
    "Clarification",
    "FeaturePremium",
    "PriceStats",
    "TypeMix",
    "UNKNOWN_ANSWER",
    "brand_comparison",
    "data_clarification",
    "feature_analysis",
    "feature_flag",
    "feature_premiums",
    "find_clarification",
    "market_leader",
    "market_size",
    "price_range",
    "price_volume_tradeoff",
    "product_type_mix",
    "rating_reviews",
    "summarize_prices",
    "trend_line",
    "trends_momentum",
    "type_mix_rows",
    "unknown_analyzer",
]
