"""ASIN history and brand sales-profile analyzers."""
from __future__ import annotations

from marketqa.analyzers.base import (
    AnalyzerContext,
    AnalyzerOutput,
    EvidenceItem,
    base_evidence,
    brand_top_contributors,
    citation,
    contributor_bullet,
    summarize_brand,
    unknown_output,
)
from marketqa.mart.archetypes import SalesArchetype, brands_with_archetype
from marketqa.query.scope import ScopeMode
from marketqa.reports.formatting import format_currency, format_number, format_percent, format_rank, format_share
from marketqa.utils.text import normalize_key


def requested_brand(ctx: AnalyzerContext, *, allow_product: bool = False) -> str | None:
    """Brand named in the question, else the caller's target brand, else the matched product's brand."""

    if ctx.resolution.brands:
        return ctx.resolution.brands[0]
    if ctx.scope.mode in (ScopeMode.EXPLICIT_BRAND, ScopeMode.TARGET_BRAND):
        return ctx.scope.brands[0]
    if allow_product and ctx.matched_products:
        return ctx.matched_products[0].brand_key
    return None


def asin_history(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    target = ctx.resolution.primary_product
    if target is not None:
        history = mart.asin_history.get(target.key)
        window3 = history.windows["3m"] if history else None
        window12 = None
        if history is not None:
            window12 = history.windows["12m"] if history.windows["12m"].months else history.windows["all"]
        trend = window3.trend if window3 else "flat"
        return AnalyzerOutput(
            answer=f"ASIN History: {target.brand} {target.asin} is {trend} over the recent period.",
            bullets=(
                f"Latest month: {format_currency(target.revenue)} revenue, {format_number(target.units)} units, "
                f"ASP {format_currency(target.price)}.",
                (
                    f"3M: {format_currency(window3.revenue)} revenue, {format_number(window3.units)} units, "
                    f"growth {format_percent(window3.revenue_growth_window)}."
                )
                if window3
                else "3-month history is unavailable.",
                (
                    f"12M/all: {format_currency(window12.revenue)} revenue, {format_number(window12.units)} units, "
                    f"growth {format_percent(window12.revenue_growth_window)}."
                )
                if window12
                else "Longer-window history is unavailable.",
            ),
            evidence=(
                *base_evidence(mart.snapshot),
                EvidenceItem("ASIN", target.asin),
                EvidenceItem("3M Trend", window3.trend if window3 else "n/a"),
                EvidenceItem("Revenue Rank", format_rank(target.rank_revenue)),
            ),
            confidence=0.86 if history else 0.68,
            assumptions=("History is computed from available snapshots up to the selected month.",),
            citations=(citation("ASIN history windows", "asin_history", mart.snapshot_date),),
            suggested_questions=(
                f"Who is the biggest competitor to {target.asin}?",
                f"Show {target.brand} top ASIN contributors.",
                "Which brands are fastest movers this month?",
            ),
            historical_window="12m",
        )

    brand_key = requested_brand(ctx)
    if not brand_key:
        return unknown_output(
            mart,
            "Tell me which brand or ASIN you want history for, for example: "
            "'Show OTOFIX top ASINs and past performance.'",
        )
    label = brand_key.upper()
    contributors = brand_top_contributors(mart, brand_key)
    if not contributors:
        return unknown_output(mart, f"I couldn't find top ASIN history for {label}.")
    return AnalyzerOutput(
        answer=(
            f"{label} top ASINs are {', '.join(item.asin for item in contributors)} with historical trend support."
        ),
        bullets=tuple(contributor_bullet(item) for item in contributors),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Brand", label),
            EvidenceItem("Top ASIN", contributors[0].asin),
        ),
        confidence=0.83,
        assumptions=("Top ASIN history uses rolling monthly brand contributor snapshots.",),
        citations=(citation("Brand top ASIN history", "brand_top_asins_by_month", mart.snapshot_date),),
        suggested_questions=(
            f"Why is {label} performing well?",
            f"Is {label} price-led or volume-led?",
            "Who are the fastest movers this month?",
        ),
        historical_window="12m",
        top_contributors=tuple(contributors),
    )


def brand_archetype(ctx: AnalyzerContext) -> AnalyzerOutput:
    brand_key = requested_brand(ctx, allow_product=True)
    if brand_key is None:
        return price_vs_volume_explainer(ctx)

    mart = ctx.mart
    archetype = ctx.archetypes.get(normalize_key(brand_key))
    stats = summarize_brand(mart, brand_key)
    if stats is None or archetype is None:
        return unknown_output(mart, f"I couldn't classify {brand_key.upper()} from current data coverage.")
    contributors = brand_top_contributors(mart, brand_key)
    return AnalyzerOutput(
        answer=f"{stats.brand} is {archetype.label} this month.",
        bullets=(
            f"{stats.brand} revenue {format_currency(stats.revenue)} with {format_number(stats.units)} units "
            f"(ASP {format_currency(stats.asp)}).",
            f"Revenue share {format_share(stats.revenue_share)} vs unit share {format_share(stats.unit_share)}.",
            *(contributor_bullet(item) for item in contributors),
        ),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Brand", stats.brand),
            EvidenceItem("Archetype", archetype.label),
            EvidenceItem("ASP", format_currency(stats.asp)),
        ),
        confidence=0.84,
        assumptions=("Archetype classification uses deterministic percentile thresholds on ASP and unit/revenue mix.",),
        citations=(citation("Brand archetype scoring", "current snapshot brand metrics", mart.snapshot_date),),
        suggested_questions=(
            f"Show {stats.brand} top ASIN history.",
            f"Who is {stats.brand}'s fastest-moving ASIN?",
            "Which brands are volume-led this month?",
        ),
        historical_window="12m",
        sales_archetype=archetype,
        top_contributors=tuple(contributors),
    )


def price_vs_volume_explainer(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    price_led = brands_with_archetype(ctx.archetypes, SalesArchetype.PRICE_LED)[:3]
    volume_led = brands_with_archetype(ctx.archetypes, SalesArchetype.VOLUME_LED)[:3]
    balanced = brands_with_archetype(ctx.archetypes, SalesArchetype.BALANCED)[:4]
    return AnalyzerOutput(
        answer=(
            f"Price-led winners: {', '.join(price_led) or 'none'} | "
            f"Volume-led winners: {', '.join(volume_led) or 'none'}."
        ),
        bullets=(
            "Price-led = higher ASP with lower relative unit mix but strong revenue output.",
            "Volume-led = lower ASP with higher unit throughput and strong revenue conversion.",
            f"Balanced brands: {', '.join(balanced) or 'none'}.",
        ),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=0.82,
        assumptions=("Classification uses top/bottom 30% ASP percentiles with unit-share and revenue-share constraints.",),
        citations=(citation("Price-vs-volume classifier", "brand archetype engine", mart.snapshot_date),),
        suggested_questions=(
            "Why is OTOFIX performing well?",
            "Show fastest movers this month.",
            "Show top ASIN history for OTOFIX.",
        ),
        historical_window="12m",
    )


__all__ = ["asin_history", "brand_archetype", "price_vs_volume_explainer", "requested_brand"]
