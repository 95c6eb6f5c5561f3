"""Price/volume bridge and the analyzers built on it."""
from __future__ import annotations

from dataclasses import dataclass

from marketqa.analyzers.base import (
    AnalyzerContext,
    AnalyzerOutput,
    EvidenceItem,
    base_evidence,
    brand_scope_set,
    brand_top_contributors,
    citation,
    find_brand_total,
    label_for_scope,
    matches_type_scope,
    previous_point,
    rank_for_brand,
    summarize_brand,
    type_scope_label,
    unknown_output,
    window_label,
)
from marketqa.mart.archetypes import SalesArchetype
from marketqa.reports.formatting import (
    format_currency,
    format_number,
    format_percent,
    format_rank,
    format_share,
)
from marketqa.utils.numbers import ratio_delta
from marketqa.utils.text import normalize_key

STRATEGY_LABELS = {
    SalesArchetype.PRICE_LED: "high average price strategy",
    SalesArchetype.VOLUME_LED: "high unit volume strategy",
    SalesArchetype.BALANCED: "balanced price and volume strategy",
}


@dataclass(frozen=True, slots=True)
class DriverBreakdown:
    """Two-term revenue bridge; the cross term is folded into ``price_effect``."""

    current_asp: float
    previous_asp: float
    unit_effect: float
    price_effect: float
    primary_driver: str

    @property
    def total_effect(self) -> float:
        return self.unit_effect + self.price_effect


def compute_driver_breakdown(
    current_revenue: float,
    current_units: float,
    previous_revenue: float,
    previous_units: float,
) -> DriverBreakdown:
    """Split the revenue change into a units effect and a price effect.

    ``unit_effect = (units - previous_units) * previous_asp`` and
    ``price_effect = units * (asp - previous_asp)``.  The primary driver is the
    effect with the larger magnitude; ties go to units.
    """

    current_asp = current_revenue / current_units if current_units > 0 else 0.0
    previous_asp = previous_revenue / previous_units if previous_units > 0 else 0.0
    unit_effect = (current_units - previous_units) * previous_asp
    price_effect = current_units * (current_asp - previous_asp)
    primary = "units" if abs(unit_effect) >= abs(price_effect) else "price"
    return DriverBreakdown(current_asp, previous_asp, unit_effect, price_effect, primary)


def driver_split_bullet(driver: DriverBreakdown) -> str:
    return (
        f"Driver split: unit effect {format_currency(driver.unit_effect)}, "
        f"price effect {format_currency(driver.price_effect)}."
    )


def aggregate_type_totals(ctx: AnalyzerContext, type_scope: str) -> tuple[float, float, float, float]:
    """Current and previous-snapshot revenue/units summed over ``type_scope`` products."""

    revenue = units = previous_revenue = previous_units = 0.0
    for product in ctx.mart.products:
        if not matches_type_scope(product.type, type_scope):
            continue
        revenue += product.revenue
        units += product.units
        point = previous_point(ctx.mart, product)
        if point is not None:
            previous_revenue += point.revenue
            previous_units += point.units
    return revenue, units, previous_revenue, previous_units


def growth_driver(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    type_scope = ctx.plan.type_scope

    if type_scope:
        label = type_scope_label(type_scope)
        revenue, units, previous_revenue, previous_units = aggregate_type_totals(ctx, type_scope)
        driver = compute_driver_breakdown(revenue, units, previous_revenue, previous_units)
        return AnalyzerOutput(
            answer=(
                f"{label} growth is primarily {driver.primary_driver}-driven "
                f"({window_label(ctx.plan.growth_window)} context)."
            ),
            bullets=(
                f"{label} monthly revenue {format_currency(revenue)} "
                f"({format_percent(ratio_delta(revenue, previous_revenue))} MoM).",
                f"{label} monthly units {format_number(units)} "
                f"({format_percent(ratio_delta(units, previous_units))} MoM).",
                driver_split_bullet(driver),
            ),
            evidence=(
                *base_evidence(mart.snapshot),
                EvidenceItem("Scope", label),
                EvidenceItem("Primary Driver", driver.primary_driver.upper()),
            ),
            confidence=0.83,
            assumptions=("Growth driver decomposition uses ASP bridge between current and previous month.",),
            citations=(citation("Type growth driver", "type-scoped product aggregation", mart.snapshot_date),),
            suggested_questions=(
                f"Which brands are driving {label} growth?",
                f"Who is the fastest rank mover in {label}?",
                "Show top ASIN contributors in this type.",
            ),
        )

    if not ctx.scope.is_market_wide:
        requested = ctx.scope.brands[0]
        stats = summarize_brand(mart, requested)
        if stats is None:
            return unknown_output(mart, f"I couldn't find growth-driver details for {requested.upper()}.")
        previous = find_brand_total(mart.previous, stats.brand)
        driver = compute_driver_breakdown(
            stats.revenue,
            stats.units,
            previous.revenue if previous else 0.0,
            previous.units if previous else 0.0,
        )
        revenue_rank = rank_for_brand(mart.snapshot, stats.brand, "revenue")
        units_rank = rank_for_brand(mart.snapshot, stats.brand, "units")
        archetype = ctx.archetypes.get(normalize_key(stats.brand), SalesArchetype.BALANCED)
        return AnalyzerOutput(
            answer=f"{stats.brand} performance is mainly {driver.primary_driver}-driven this month.",
            bullets=(
                f"{stats.brand} monthly revenue {format_currency(stats.revenue)}, "
                f"monthly units {format_number(stats.units)}.",
                f"{stats.brand} rank: {format_rank(revenue_rank)} by revenue, {format_rank(units_rank)} by units.",
                f"ASP {format_currency(stats.asp)} and profile is {archetype.label}.",
                driver_split_bullet(driver),
            ),
            evidence=(
                *base_evidence(mart.snapshot),
                EvidenceItem("Scope", stats.brand),
                EvidenceItem("Primary Driver", driver.primary_driver.upper()),
                EvidenceItem("Revenue Rank", format_rank(revenue_rank)),
                EvidenceItem("Units Rank", format_rank(units_rank)),
            ),
            confidence=0.9,
            assumptions=("Brand driver decomposition uses monthly revenue/units and ASP bridge vs prior month.",),
            citations=(citation("Brand growth driver", "snapshot.brandTotals + prior snapshot", mart.snapshot_date),),
            suggested_questions=(
                f"Show top ASIN contributors for {stats.brand}.",
                f"How did {stats.brand} rank move vs last month?",
                f"Which {stats.brand} products are growing fastest?",
            ),
            sales_archetype=archetype,
            top_contributors=tuple(brand_top_contributors(mart, stats.brand)),
        )

    totals = mart.snapshot.totals
    previous_revenue = mart.previous.totals.revenue if mart.previous else 0.0
    previous_units = mart.previous.totals.units if mart.previous else 0.0
    driver = compute_driver_breakdown(totals.revenue, totals.units, previous_revenue, previous_units)
    return AnalyzerOutput(
        answer=f"Market growth is currently {driver.primary_driver}-driven.",
        bullets=(
            f"Market monthly revenue {format_currency(totals.revenue)} "
            f"({format_percent(ratio_delta(totals.revenue, previous_revenue))} MoM).",
            f"Market monthly units {format_number(totals.units)} "
            f"({format_percent(ratio_delta(totals.units, previous_units))} MoM).",
            driver_split_bullet(driver),
        ),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Scope", "MARKET"),
            EvidenceItem("Primary Driver", driver.primary_driver.upper()),
        ),
        confidence=0.8,
        assumptions=("Market driver decomposition uses total monthly revenue/units and ASP bridge vs prior month.",),
        citations=(citation("Market growth driver", "snapshot totals vs prior month", mart.snapshot_date),),
        suggested_questions=(
            "Which brands are driving most of this growth?",
            "Who is the fastest growth brand by units?",
            "Who is the fastest rank mover this month?",
        ),
    )


def brand_health(ctx: AnalyzerContext) -> AnalyzerOutput:
    """Scope-level revenue, ASP and driver summary for the resolved brands."""

    mart = ctx.mart
    brand_keys = brand_scope_set(ctx.scope, ctx.own_brands)
    current_rows = [row for row in mart.snapshot.brand_totals if normalize_key(row.brand) in brand_keys]
    previous_rows = [
        row for row in (mart.previous.brand_totals if mart.previous else ()) if normalize_key(row.brand) in brand_keys
    ]
    revenue = sum(row.revenue for row in current_rows)
    units = sum(row.units for row in current_rows)
    previous_revenue = sum(row.revenue for row in previous_rows)
    previous_units = sum(row.units for row in previous_rows)
    share = revenue / mart.snapshot.totals.revenue if mart.snapshot.totals.revenue > 0 else 0.0
    driver = compute_driver_breakdown(revenue, units, previous_revenue, previous_units)
    scope_label = label_for_scope(ctx.scope)

    single = current_rows[0] if len(current_rows) == 1 else None
    archetype = ctx.archetypes.get(normalize_key(single.brand)) if single else None
    strategy = STRATEGY_LABELS[archetype or SalesArchetype.BALANCED]
    if single is not None:
        rank_line = (
            f"{single.brand} rank is {format_rank(rank_for_brand(mart.snapshot, single.brand, 'revenue'))} by revenue "
            f"and {format_rank(rank_for_brand(mart.snapshot, single.brand, 'units'))} by units."
        )
    else:
        rank_line = f"Current scope includes {len(current_rows)} brands in this snapshot."

    return AnalyzerOutput(
        answer=(
            f"{scope_label} delivered {format_currency(revenue)} monthly revenue and {format_number(units)} units "
            f"({format_percent(ratio_delta(revenue, previous_revenue))} revenue MoM)."
        ),
        bullets=(
            rank_line,
            f"Average price is {format_currency(driver.current_asp)} "
            f"({format_percent(ratio_delta(driver.current_asp, driver.previous_asp))} MoM). "
            f"This scope is currently {strategy}.",
            f"Revenue movement is mainly driven by {driver.primary_driver}: units effect "
            f"{format_currency(driver.unit_effect)}, price effect {format_currency(driver.price_effect)}.",
            *(
                f"{row.brand}: {format_currency(row.revenue)} revenue, {format_number(row.units)} units, "
                f"{format_share(row.share)} share."
                for row in current_rows[:2]
            ),
            f"Market total: {format_currency(mart.snapshot.totals.revenue)} revenue, "
            f"{format_number(mart.snapshot.totals.units)} units.",
        ),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Scope", scope_label),
            EvidenceItem("Revenue", format_currency(revenue)),
            EvidenceItem("Units", format_number(units)),
            EvidenceItem("Avg Price", format_currency(driver.current_asp)),
            EvidenceItem("Share", format_share(share)),
        ),
        confidence=0.88 if current_rows else 0.62,
        assumptions=("Brand-health scope follows explicit brand > quick-action brand > own brands > market.",),
        citations=(citation("Brand totals", "snapshot.brandTotals", mart.snapshot_date),),
        suggested_questions=(
            "What are competitors doing this month?",
            "What is our biggest risk right now?",
            "Which own product has the strongest momentum?",
        ),
        sales_archetype=archetype,
    )


__all__ = [
    "DriverBreakdown",
    "STRATEGY_LABELS",
    "aggregate_type_totals",
    "brand_health",
    "compute_driver_breakdown",
    "driver_split_bullet",
    "growth_driver",
]
