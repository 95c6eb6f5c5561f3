"""Market shift, risk, opportunity, gap and concentration analyzers."""
from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from marketqa.analyzers.base import (
    AnalyzerContext,
    AnalyzerOutput,
    EvidenceItem,
    base_evidence,
    brand_scope_set,
    citation,
    find_brand_total,
    label_for_scope,
)
from marketqa.query.intents import ChatIntent, suggested_questions_for_intent
from marketqa.reports.formatting import format_currency, format_percent, format_share, signed_points
from marketqa.schemas.snapshot import BrandTotal
from marketqa.synthesis import build_synthesis_summary, segment_own_share
from marketqa.utils.numbers import ratio_delta
from marketqa.utils.text import normalize_key

GAP_MIN_SHARE = 0.08
MAX_GAPS = 5

PRICE_BUCKETS = ((75, "<$75"), (200, "$75-$199"), (400, "$200-$399"))


@dataclass(frozen=True, slots=True)
class ShareMove:
    row: BrandTotal
    share_delta: float
    revenue_delta: float | None


def share_moves(ctx: AnalyzerContext) -> list[ShareMove]:
    """Brand share deltas vs the previous snapshot, largest absolute move first."""

    mart = ctx.mart
    moves = []
    for row in mart.snapshot.brand_totals:
        previous = find_brand_total(mart.previous, row.brand)
        moves.append(
            ShareMove(
                row=row,
                share_delta=row.share - (previous.share if previous else 0.0),
                revenue_delta=ratio_delta(row.revenue, previous.revenue if previous else None),
            )
        )
    moves.sort(key=lambda move: abs(move.share_delta), reverse=True)
    return moves


def market_shift(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    moves = share_moves(ctx)
    top = moves[0] if moves else None
    if top is not None:
        answer = f"{top.row.brand} shows the largest share movement this month ({signed_points(top.share_delta)})."
    else:
        answer = "Market shift signal is unavailable for this snapshot."
    return AnalyzerOutput(
        answer=answer,
        bullets=tuple(
            f"{move.row.brand}: share {format_share(move.row.share)} ({signed_points(move.share_delta)}), "
            f"revenue {format_percent(move.revenue_delta)} MoM."
            for move in moves[:4]
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.84 if mart.previous else 0.65,
        assumptions=("Comparisons use the immediately previous available snapshot.",),
        citations=(citation("Brand movement", "snapshot.brandTotals + previous snapshot", mart.snapshot_date),),
        suggested_questions=(
            "Which competitor is closest to Innova 5610?",
            "Where is the largest growth opportunity by type?",
            "Which products are rising stars this month?",
        ),
    )


def risk_signal(ctx: AnalyzerContext) -> AnalyzerOutput:
    """Concentration first, then high-revenue low-rating SKUs, within the brand scope."""

    mart = ctx.mart
    rules = ctx.settings.risk
    brand_keys = brand_scope_set(ctx.scope, ctx.own_brands)
    own = [product for product in mart.products if product.brand_key in brand_keys]
    own_revenue = sum(product.revenue for product in own)
    top_one_share = own[0].revenue / own_revenue if own and own_revenue > 0 else 0.0
    rated = [product for product in own if product.revenue > rules.min_revenue and product.rating > 0]
    weakest = min(rated, key=lambda product: product.rating) if rated else None

    if top_one_share >= rules.top_sku_concentration:
        answer = (
            f"Concentration risk: top SKU contributes {format_share(top_one_share)} of "
            f"{label_for_scope(ctx.scope).lower()} revenue."
        )
    elif weakest is not None:
        answer = (
            f"Quality risk: {weakest.asin} has high revenue ({format_currency(weakest.revenue)}) "
            f"but lower rating ({weakest.rating:.1f})."
        )
    else:
        answer = "No severe risk crossed configured thresholds."

    watchlist = build_synthesis_summary(mart, ctx.settings, ctx.own_brands).watchlist
    return AnalyzerOutput(
        answer=answer,
        bullets=(
            f"Own revenue concentration (Top 1): {format_share(top_one_share)}.",
            f"Rating pressure candidate: {weakest.brand} {weakest.asin} ({weakest.rating:.1f}★)."
            if weakest
            else "No high-revenue low-rating SKU found.",
            *watchlist[:2],
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.8,
        assumptions=("Risk thresholds use deterministic heuristic cutoffs (concentration and rating).",),
        citations=(citation("Risk scoring", "deterministic risk_signal analyzer", mart.snapshot_date),),
        suggested_questions=(
            "Which competitor is threatening our top SKU?",
            "Show competitor movements with largest share change.",
            "Where can we grow with lower competitive density?",
        ),
    )


def opportunity_signal(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    rules = ctx.settings.opportunity
    rows = sorted(
        (row for row in mart.type_metrics if row.revenue > 0), key=lambda row: row.revenue_share, reverse=True
    )
    brand_keys = brand_scope_set(ctx.scope, ctx.own_brands)
    candidate = None
    for row in rows:
        own_share = segment_own_share(mart.snapshot, row, brand_keys)
        if row.revenue_share >= rules.min_segment_share and own_share < rules.max_own_share:
            candidate = (row, own_share)
            break

    if candidate is not None:
        row, own_share = candidate
        answer = (
            f"Best opportunity: {row.label} has {format_share(row.revenue_share)} market revenue share "
            f"while own share is {format_share(own_share)}."
        )
    else:
        answer = "No clear high-weight low-share opportunity exceeded threshold this month."
    return AnalyzerOutput(
        answer=answer,
        bullets=tuple(
            f"{row.label}: {format_currency(row.revenue)} revenue, {format_share(row.revenue_share)} share."
            for row in rows[:4]
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.82 if rows else 0.6,
        assumptions=("Opportunity signal prioritizes large market-weight segments with low own participation.",),
        citations=(citation("Type breakdowns", "snapshot.typeBreakdowns", mart.snapshot_date),),
        suggested_questions=(
            "Which product should we prioritize in this segment?",
            "Who are the strongest competitors in this segment?",
            "What price tier is growing fastest?",
        ),
    )


def price_bucket(price: float) -> str:
    for ceiling, label in PRICE_BUCKETS:
        if price < ceiling:
            return label
    return "$400+"


def restore_label(value: str) -> str:
    if not value:
        return "Unknown"
    return " ".join(part[:1].upper() + part[1:] for part in value.split("_"))


def competitive_gap_lines(ctx: AnalyzerContext) -> list[str]:
    """Type x price-bucket clusters holding at least 8% of market revenue."""

    frame = ctx.mart.product_frame
    market_revenue = ctx.mart.snapshot.totals.revenue
    if frame.empty or market_revenue <= 0:
        return []
    clusters = pd.DataFrame(
        {
            "type_key": frame["type"].map(lambda value: normalize_key(value or "unknown")),
            "bucket": frame["price"].map(price_bucket),
            "brand": frame["brand"],
            "revenue": frame["revenue"],
        }
    )
    grouped = (
        clusters.groupby(["type_key", "bucket"], sort=False)
        .agg(revenue=("revenue", "sum"), brands=("brand", "nunique"))
        .reset_index()
    )
    grouped["share"] = grouped["revenue"] / market_revenue
    grouped = grouped.sort_values("share", ascending=False, kind="stable")
    grouped = grouped[grouped["share"] >= GAP_MIN_SHARE].head(MAX_GAPS)
    return [
        f"{restore_label(row.type_key)} @ {row.bucket}: {format_share(row.share)} of revenue across "
        f"{int(row.brands)} brands ({format_currency(row.revenue)})."
        for row in grouped.itertuples(index=False)
    ]


def competitive_gaps(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    lines = competitive_gap_lines(ctx)
    return AnalyzerOutput(
        answer=lines[0] if lines else "No high-confidence gap signal was detected with the current data coverage.",
        bullets=tuple(lines[1:]),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.78 if lines else 0.6,
        assumptions=("Clusters group current products by type and price bucket; share is relative to market revenue.",),
        citations=(citation("Type x price clusters", "indexed products", mart.snapshot_date),),
        suggested_questions=tuple(suggested_questions_for_intent(ChatIntent.COMPETITIVE_GAPS)),
    )


def concentration_label(top3_share: float) -> str:
    if top3_share >= 0.7:
        return "highly concentrated"
    if top3_share >= 0.45:
        return "moderately concentrated"
    return "fragmented"


def market_concentration(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    brands = sorted(mart.snapshot.brand_totals, key=lambda row: row.revenue, reverse=True)
    market_revenue = mart.snapshot.totals.revenue
    top3_share = sum(row.revenue for row in brands[:3]) / market_revenue if market_revenue > 0 else 0.0
    label = concentration_label(top3_share)

    bullets = [f"#{index} {row.brand}: {format_share(row.share)} share" for index, row in enumerate(brands[:5], start=1)]
    if mart.products and market_revenue > 0:
        leader = mart.products[0]
        bullets.append(
            f"Top SKU {leader.brand} {leader.asin} alone holds {format_share(leader.revenue / market_revenue)} "
            "of market revenue."
        )
    return AnalyzerOutput(
        answer=f"Top-3 brands hold {format_share(top3_share)} of revenue, indicating a {label} market.",
        bullets=tuple(bullets),
        evidence=(*base_evidence(mart.snapshot), EvidenceItem("Top 3 Share", format_share(top3_share))),
        confidence=0.8 if brands else 0.55,
        assumptions=("Concentration uses current-month brand revenue against total market revenue.",),
        citations=(citation("Brand concentration", "snapshot.brandTotals", mart.snapshot_date),),
        suggested_questions=tuple(suggested_questions_for_intent(ChatIntent.MARKET_CONCENTRATION)),
    )


__all__ = [
    "ShareMove",
    "competitive_gap_lines",
    "competitive_gaps",
    "concentration_label",
    "market_concentration",
    "market_shift",
    "opportunity_signal",
    "price_bucket",
    "restore_label",
    "risk_signal",
    "share_moves",
]
