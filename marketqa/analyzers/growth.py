"""Fastest growth, rank mover and type growth analyzers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar

from marketqa.analyzers.base import (
    AnalyzerContext,
    AnalyzerOutput,
    EvidenceItem,
    base_evidence,
    brand_top_contributors,
    citation,
    contributor_bullet,
    find_brand_total,
    growth_for_window,
    is_canonical_type_scope,
    matches_type_scope,
    previous_point,
    rank_for_brand,
    rank_metric_from_target,
    type_scope_label,
    unknown_output,
    window_label,
    year_ago_point,
)
from marketqa.mart.archetypes import SalesArchetype
from marketqa.mart.products import IndexedProduct
from marketqa.reports.formatting import (
    format_currency,
    format_number,
    format_percent,
    format_rank,
    signed_rank_delta,
)
from marketqa.schemas.snapshot import BrandTotal
from marketqa.utils.numbers import ratio_delta
from marketqa.utils.text import normalize_key

TOP_N = 5

T = TypeVar("T")


def rank_by_growth(rows: Sequence[T], growth: Callable[[T], float | None], limit: int = TOP_N) -> list[tuple[T, float]]:
    """Drop rows without growth and sort the rest descending; ties keep input order."""

    scored = [(row, value) for row in rows if (value := growth(row)) is not None]
    scored.sort(key=lambda item: item[1], reverse=True)
    return scored[:limit]


def _metric(row: BrandTotal | IndexedProduct | None, metric: str) -> float | None:
    if row is None:
        return None
    return row.units if metric == "units" else row.revenue


def fastest_growth(ctx: AnalyzerContext) -> AnalyzerOutput:
    plan = ctx.plan
    if plan.target_level == "type" or plan.type_scope:
        return type_growth(ctx)
    if plan.target_level == "asin":
        return _fastest_asin_growth(ctx)
    return _fastest_brand_growth(ctx)


def _fastest_asin_growth(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    metric = ctx.plan.ranking_metric
    window = ctx.plan.growth_window
    label = window_label(window)

    def growth(product: IndexedProduct) -> float | None:
        mom = product.units_mom if metric == "units" else product.revenue_mom
        point = year_ago_point(mart, product)
        yoy = ratio_delta(_metric(product, metric), _metric(point, metric) if point else None)
        return growth_for_window(window, mom, yoy)

    ranked = rank_by_growth(list(mart.products), growth)
    if not ranked:
        return unknown_output(mart, "I couldn't find ASIN growth results for the requested scope.")

    top = ranked[0][0]
    return AnalyzerOutput(
        answer=f"Fastest {metric} growth ASIN ({label}): {top.brand} {top.asin}.",
        bullets=tuple(
            f"#{index} {product.brand} {product.asin}: {format_percent(value)} ({label}), "
            f"{format_currency(product.revenue)} revenue, {format_number(product.units)} units."
            for index, (product, value) in enumerate(ranked, start=1)
        ),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Target Level", "ASIN"),
            EvidenceItem("Window", label),
            EvidenceItem("Metric", metric.upper()),
        ),
        confidence=0.86,
        assumptions=("ASIN growth compares current month against previous month and prior-year month when available.",),
        citations=(citation("ASIN growth", "products + history windows", mart.snapshot_date),),
        suggested_questions=(
            f"Who is the biggest competitor to {top.asin}?",
            f"Is {top.brand} growth driven by price or units?",
            "Which brands grew fastest in handheld tools?",
        ),
        historical_window="12m",
    )


def _fastest_brand_growth(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    metric = ctx.plan.ranking_metric
    window = ctx.plan.growth_window
    label = window_label(window)

    rows = list(mart.snapshot.brand_totals)
    if not ctx.scope.is_market_wide:
        allowed = {normalize_key(brand) for brand in ctx.scope.brands}
        rows = [row for row in rows if normalize_key(row.brand) in allowed]

    def growth(row: BrandTotal) -> float | None:
        mom = ratio_delta(_metric(row, metric), _metric(find_brand_total(mart.previous, row.brand), metric))
        yoy = ratio_delta(_metric(row, metric), _metric(find_brand_total(mart.year_ago, row.brand), metric))
        return growth_for_window(window, mom, yoy)

    ranked = rank_by_growth(rows, growth)
    if not ranked:
        return unknown_output(mart, "I couldn't find brand growth results for the requested scope.")

    top = ranked[0][0]
    contributors = brand_top_contributors(mart, top.brand)
    archetype = ctx.archetypes.get(normalize_key(top.brand), SalesArchetype.BALANCED)
    return AnalyzerOutput(
        answer=f"Fastest {metric} growth brand ({label}): {top.brand}.",
        bullets=(
            *(
                f"#{index} {row.brand}: {format_percent(value)} ({label}), "
                f"{format_currency(row.revenue)} revenue, {format_number(row.units)} units."
                for index, (row, value) in enumerate(ranked, start=1)
            ),
            f"Current growth profile for {top.brand}: {archetype.label}.",
            *(contributor_bullet(item) for item in contributors),
        ),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Target Level", "Brand"),
            EvidenceItem("Window", label),
            EvidenceItem("Metric", metric.upper()),
            EvidenceItem("Top Growth", top.brand),
        ),
        confidence=0.88,
        assumptions=("Brand growth compares current month versus previous month and prior-year month when available.",),
        citations=(citation("Brand growth", "snapshot.brandTotals + historical snapshots", mart.snapshot_date),),
        suggested_questions=(
            f"Show top ASIN contributors for {top.brand}.",
            f"Is {top.brand} growth driven more by units or ASP?",
            "Who is the fastest rank mover by units this month?",
        ),
        historical_window="12m",
        sales_archetype=archetype,
        top_contributors=tuple(contributors),
    )


@dataclass(slots=True)
class RankMove:
    label: str
    current: int | None
    previous: int | None
    revenue: float
    units: float

    @property
    def delta(self) -> int | None:
        if self.current is None or self.previous is None:
            return None
        return self.previous - self.current


def _top_moves(moves: Sequence[RankMove]) -> list[RankMove]:
    ranked = [move for move in moves if move.delta is not None]
    ranked.sort(key=lambda move: move.delta or 0, reverse=True)
    return ranked[:TOP_N]


def fastest_rank_mover(ctx: AnalyzerContext) -> AnalyzerOutput:
    """Rank delta = previous rank - current rank; entries without both ranks are excluded."""

    mart = ctx.mart
    rank_target = ctx.plan.ranking_target
    metric = rank_metric_from_target(rank_target)
    baseline = (mart.previous.label or mart.previous.date) if mart.previous else "previous snapshot"

    if ctx.plan.target_level == "asin":
        moves = []
        for product in mart.products:
            point = previous_point(mart, product)
            moves.append(
                RankMove(
                    label=f"{product.brand} {product.asin}",
                    current=product.rank_units if metric == "units" else product.rank_revenue,
                    previous=(point.rank_units if metric == "units" else point.rank_revenue) if point else None,
                    revenue=product.revenue,
                    units=product.units,
                )
            )
        ranked = _top_moves(moves)
        if not ranked:
            return unknown_output(mart, "I couldn't compute ASIN rank movement from available snapshots.")
        top = ranked[0]
        top_asin = top.label.split(" ")[-1]
        return AnalyzerOutput(
            answer=f"Fastest ASIN rank mover ({metric} rank): {top.label} ({signed_rank_delta(top.delta)}).",
            bullets=tuple(
                f"#{index} {move.label}: {format_rank(move.previous)} -> {format_rank(move.current)} "
                f"({signed_rank_delta(move.delta)})."
                for index, move in enumerate(ranked, start=1)
            ),
            evidence=(
                *base_evidence(mart.snapshot),
                EvidenceItem("Target Level", "ASIN"),
                EvidenceItem("Rank Target", rank_target),
                EvidenceItem("Baseline", baseline),
            ),
            confidence=0.84,
            assumptions=("Rank mover compares current rank versus immediately previous snapshot rank.",),
            citations=(citation("ASIN rank movement", "product history ranks", mart.snapshot_date),),
            suggested_questions=(
                f"How did {top_asin} perform by revenue and units?",
                f"Who competes closest with {top_asin}?",
                "Which brand gained rank fastest this month?",
            ),
        )

    moves = [
        RankMove(
            label=row.brand,
            current=rank_for_brand(mart.snapshot, row.brand, metric),
            previous=rank_for_brand(mart.previous, row.brand, metric) if mart.previous else None,
            revenue=row.revenue,
            units=row.units,
        )
        for row in mart.snapshot.brand_totals
    ]
    ranked = _top_moves(moves)
    if not ranked:
        return unknown_output(mart, "I couldn't compute brand rank movement from available snapshots.")
    top = ranked[0]
    return AnalyzerOutput(
        answer=(
            f"Fastest brand rank mover ({metric} rank): {top.label} "
            f"({signed_rank_delta(top.delta)} vs {baseline})."
        ),
        bullets=tuple(
            f"#{index} {move.label}: {format_rank(move.previous)} -> {format_rank(move.current)} "
            f"({signed_rank_delta(move.delta)}), {format_currency(move.revenue)} revenue, "
            f"{format_number(move.units)} units."
            for index, move in enumerate(ranked, start=1)
        ),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Target Level", "Brand"),
            EvidenceItem("Rank Target", rank_target),
            EvidenceItem("Baseline", baseline),
        ),
        confidence=0.87,
        assumptions=("Rank mover compares current rank versus immediately previous snapshot rank.",),
        citations=(citation("Brand rank movement", "snapshot.brandTotals rankings", mart.snapshot_date),),
        suggested_questions=(
            f"Show top ASIN contributors for {top.label}.",
            f"Is {top.label} growth driven by units or ASP?",
            "Which type segment has the fastest rank shifts?",
        ),
    )


@dataclass(slots=True)
class TypeBrandGrowth:
    brand: str
    revenue: float = 0.0
    units: float = 0.0
    previous_revenue: float = 0.0
    previous_units: float = 0.0
    year_ago_revenue: float = 0.0
    year_ago_units: float = 0.0

    def growth(self, metric: str, window: str) -> float | None:
        if metric == "units":
            mom = ratio_delta(self.units, self.previous_units)
            yoy = ratio_delta(self.units, self.year_ago_units)
        else:
            mom = ratio_delta(self.revenue, self.previous_revenue)
            yoy = ratio_delta(self.revenue, self.year_ago_revenue)
        return growth_for_window(window, mom, yoy)


def aggregate_type_brand_growth(ctx: AnalyzerContext, type_scope: str) -> list[TypeBrandGrowth]:
    """Sum product metrics inside ``type_scope`` per brand for now, last month and a year ago."""

    mart = ctx.mart
    buckets: dict[str, TypeBrandGrowth] = {}
    for product in mart.products:
        if not matches_type_scope(product.type, type_scope):
            continue
        bucket = buckets.setdefault(product.brand_key, TypeBrandGrowth(brand=product.brand))
        bucket.revenue += product.revenue
        bucket.units += product.units
        previous = previous_point(mart, product)
        if previous is not None:
            bucket.previous_revenue += previous.revenue
            bucket.previous_units += previous.units
        year_ago = year_ago_point(mart, product)
        if year_ago is not None:
            bucket.year_ago_revenue += year_ago.revenue
            bucket.year_ago_units += year_ago.units
    return list(buckets.values())


def type_growth(ctx: AnalyzerContext) -> AnalyzerOutput:
    mart = ctx.mart
    metric = ctx.plan.ranking_metric
    window = ctx.plan.growth_window
    label = window_label(window)
    type_scope = ctx.plan.type_scope

    if type_scope:
        scope_label = type_scope_label(type_scope)
        ranked = rank_by_growth(
            aggregate_type_brand_growth(ctx, type_scope), lambda row: row.growth(metric, window)
        )
        if not ranked:
            return unknown_output(mart, f"I couldn't find {scope_label} growth results from the current snapshot.")
        top = ranked[0][0]
        return AnalyzerOutput(
            answer=f"Fastest {scope_label} growth brand ({label}, {metric}): {top.brand}.",
            bullets=tuple(
                f"#{index} {row.brand}: {format_percent(value)} ({label}), "
                f"{format_currency(row.revenue)} revenue, {format_number(row.units)} units."
                for index, (row, value) in enumerate(ranked, start=1)
            ),
            evidence=(
                *base_evidence(mart.snapshot),
                EvidenceItem("Target Level", "Type > Brand"),
                EvidenceItem("Type Scope", scope_label),
                EvidenceItem("Window", label),
            ),
            confidence=0.84,
            assumptions=("Type growth is aggregated from ASIN-level monthly metrics within the selected type scope.",),
            citations=(citation("Type scoped growth", "product history grouped by type and brand", mart.snapshot_date),),
            suggested_questions=(
                f"Is {top.brand} in {scope_label} growth driven by units or ASP?",
                f"Who is the fastest rank mover within {scope_label}?",
                f"Show {top.brand} top {scope_label} ASINs.",
            ),
        )

    def row_growth(row) -> float | None:
        mom = row.units_mom if metric == "units" else row.revenue_mom
        yoy = row.units_yoy if metric == "units" else row.revenue_yoy
        return growth_for_window(window, mom, yoy)

    canonical = [row for row in mart.type_metrics if is_canonical_type_scope(row.scope_key)]
    ranked = rank_by_growth(canonical, row_growth)
    if not ranked:
        return unknown_output(mart, "I couldn't find type-level growth metrics for this snapshot.")
    top = ranked[0][0]
    return AnalyzerOutput(
        answer=f"Fastest growth product type ({label}, {metric}): {top.label}.",
        bullets=tuple(
            f"#{index} {row.label}: {format_percent(value)} ({label}), "
            f"{format_currency(row.revenue)} revenue, {format_number(row.units)} units."
            for index, (row, value) in enumerate(ranked, start=1)
        ),
        evidence=(
            *base_evidence(mart.snapshot),
            EvidenceItem("Target Level", "Type"),
            EvidenceItem("Window", label),
            EvidenceItem("Metric", metric.upper()),
        ),
        confidence=0.82,
        assumptions=("Type-level growth uses parsed Summary/Analysis type scopes when available.",),
        citations=(citation("Type growth", "snapshot.typeBreakdowns.allAsins", mart.snapshot_date),),
        suggested_questions=(
            "Which brands grew fastest inside this type?",
            "Is growth in this type driven by units or ASP?",
            "Who is the fastest rank mover by units this month?",
        ),
    )


__all__ = [
    "RankMove",
    "TypeBrandGrowth",
    "aggregate_type_brand_growth",
    "fastest_growth",
    "fastest_rank_mover",
    "rank_by_growth",
    "type_growth",
]
