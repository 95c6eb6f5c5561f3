"""Product-level analyzers: closest competitor, product trend and top products."""
from __future__ import annotations

from marketqa.analyzers.base import (
    AnalyzerContext,
    AnalyzerOutput,
    EvidenceItem,
    base_evidence,
    citation,
    label_for_scope,
    previous_point,
    scoped_products,
    unknown_output,
)
from marketqa.analyzers.competitor import find_closest_competitors
from marketqa.mart.products import IndexedProduct
from marketqa.query.scope import ScopeMode
from marketqa.reports.formatting import (
    describe_trend,
    format_currency,
    format_number,
    format_percent,
    format_rank,
)


def pick_target_product(ctx: AnalyzerContext) -> IndexedProduct | None:
    """Matched product, else the top scoped product, else the top own-brand product."""

    if ctx.matched_products:
        return ctx.matched_products[0]
    scoped = scoped_products(ctx.mart, ctx.scope)
    if scoped:
        return scoped[0]
    own = ctx.own_brands
    return next((product for product in ctx.mart.products if product.brand_key in own), None)


def product_competitor(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    target = pick_target_product(ctx)
    if target is None:
        return unknown_output(mart, "I couldn't identify a target product for competitor analysis.")

    result = find_closest_competitors(mart, target, ctx.settings.competitor)
    if not result.candidates:
        return unknown_output(
            mart,
            f"I couldn't find comparable competitors for {target.brand} {target.asin} in the current snapshot.",
        )
    top = result.candidates[0]
    return AnalyzerOutput(
        answer=f"Closest Competitor: {top.product.brand} {top.product.asin}",
        bullets=(
            f"Target {target.brand} {target.asin}: {format_currency(target.revenue)} revenue, "
            f"{format_number(target.units)} units, ASP {format_currency(target.price)}.",
            *top.evidence[:4],
            *(
                f"Alternative #{index}: {item.product.brand} {item.product.asin} ({item.score:.1f}/100)."
                for index, item in enumerate(result.candidates[1:], start=2)
            ),
        ),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Target Product", f"{target.brand} {target.asin}"),
            EvidenceItem("Closest Competitor", f"{top.product.brand} {top.product.asin}"),
        ),
        confidence=result.confidence,
        assumptions=result.assumptions,
        citations=(
            citation("Product matching", "brandSheetListings/topProducts", mart.snapshot_date),
            citation("Competitor scoring model", "deterministic competitor engine", mart.snapshot_date),
        ),
        suggested_questions=(
            f"What trend does {top.product.asin} show vs {target.asin}?",
            f"Are there faster-growing alternatives in {target.type}?",
            "Show competitor movement this month.",
        ),
        historical_window="12m",
    )


def product_trend(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    target = pick_target_product(ctx)
    if target is None:
        return unknown_output(mart, "I couldn't identify which product trend to analyze.")

    threshold = ctx.settings.trend_threshold
    previous = previous_point(mart, target)
    latest = target.history[-1] if target.history else None
    if previous is not None:
        previous_line = (
            f"Previous snapshot ({previous.date}) revenue: {format_currency(previous.revenue)}, "
            f"units: {format_number(previous.units)}."
        )
    else:
        previous_line = "No previous snapshot record available for this ASIN."
    if latest is not None and latest.rank_revenue is not None:
        rank_line = f"Latest tracked revenue rank history point: {format_rank(latest.rank_revenue)}."
    else:
        rank_line = "Rank history is partial."

    return AnalyzerOutput(
        answer=(
            f"{target.brand} {target.asin} is {describe_trend(target.revenue_mom, threshold)} in revenue "
            f"({format_percent(target.revenue_mom)}) and {describe_trend(target.units_mom, threshold)} in units "
            f"({format_percent(target.units_mom)}) vs last month."
        ),
        bullets=(
            f"Current monthly revenue: {format_currency(target.revenue)} | units: {format_number(target.units)}.",
            f"Current rank: {format_rank(target.rank_revenue)} by revenue, {format_rank(target.rank_units)} by units.",
            previous_line,
            rank_line,
        ),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Product", f"{target.brand} {target.asin}"),
            EvidenceItem("Revenue MoM", format_percent(target.revenue_mom)),
            EvidenceItem("Units MoM", format_percent(target.units_mom)),
        ),
        confidence=0.86 if len(target.history) >= 2 else 0.7,
        assumptions=("Trend is based on snapshot history for available months.",),
        citations=(
            citation("Product history series", "product index", mart.snapshot_date),
            citation("Monthly performance deltas", "topProducts/brandSheetListings", mart.snapshot_date),
        ),
        suggested_questions=(
            f"Who is the biggest competitor to {target.asin}?",
            f"Is {target.asin} losing share in its price band?",
            "Show market shift for top competitors.",
        ),
    )


def top_products(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    metric = ctx.plan.ranking_metric
    ranked = sorted(
        scoped_products(mart, ctx.scope),
        key=lambda product: product.units if metric == "units" else product.revenue,
        reverse=True,
    )[:5]
    scope_label = label_for_scope(ctx.scope)
    if not ranked and ctx.scope.mode in (ScopeMode.EXPLICIT_BRAND, ScopeMode.TARGET_BRAND):
        return unknown_output(mart, f"I couldn't find products for {scope_label}.")

    if ranked:
        leader = ranked[0]
        figure = f"{format_number(leader.units)} units" if metric == "units" else f"{format_currency(leader.revenue)} revenue"
        answer = f"Top {scope_label} SKU: {leader.brand} {leader.asin} ({figure})."
    else:
        answer = "No top-product data is available for this snapshot."
    return AnalyzerOutput(
        answer=answer,
        bullets=tuple(
            f"#{index} {product.brand} {product.asin}: {format_currency(product.revenue)} / "
            f"{format_number(product.units)} units."
            for index, product in enumerate(ranked, start=1)
        ),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Scope", scope_label),
            EvidenceItem("Ranked By", metric),
        ),
        confidence=0.9 if ranked else 0.55,
        assumptions=("Top-product ranking uses deterministic scope resolution and current snapshot monthly metrics.",),
        citations=(citation("Top products", "snapshot.topProducts + brandSheetListings", mart.snapshot_date),),
        suggested_questions=(
            "Who is the biggest competitor to the top product?",
            "How has the top product trended vs last month?",
            "Which products are rising fastest now?",
        ),
    )


__all__ = ["pick_target_product", "product_competitor", "product_trend", "top_products"]
