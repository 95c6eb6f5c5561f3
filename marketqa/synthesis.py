"""Question-independent proactive suggestions and the rising-product watchlist."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from marketqa.mart.builder import DataMart
from marketqa.reports.formatting import format_currency, format_percent, format_share
from marketqa.schemas.snapshot import Snapshot, TypeBreakdownRow
from marketqa.settings import EngineSettings
from marketqa.utils.numbers import clamp
from marketqa.utils.text import normalize_key

LOGGER = logging.getLogger(__name__)

MAX_PROACTIVE = 3
MAX_WATCHLIST = 4
WATCHLIST_CANDIDATES = 3

SEGMENT_SCOPES = ("total_tablet", "total_handheld", "total_dongle", "total_other_tools")

EMPTY_WATCHLIST = "No high-velocity product exceeded the rising-star threshold this month."

SEVERITIES = ("info", "watch", "risk")


@dataclass(frozen=True, slots=True)
class ProactiveSuggestion:
    id: str
    title: str
    summary: str
    severity: str
    confidence: float

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "severity": self.severity,
            "confidence": self.confidence,
        }


@dataclass(slots=True)
class SynthesisSummary:
    proactive: list[ProactiveSuggestion] = field(default_factory=list)
    watchlist: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class SegmentExposure:
    row: TypeBreakdownRow
    own_share: float


def segment_own_share(snapshot: Snapshot, row: TypeBreakdownRow, brands: Iterable[str]) -> float:
    """Share of ``row`` revenue held by ``brands`` according to the category brand mix."""

    if row.revenue <= 0:
        return 0.0
    keys = {normalize_key(brand) for brand in brands}
    scope = normalize_key(row.scope_key)
    own_revenue = sum(
        mix.revenue
        for mix in snapshot.brand_mix
        if normalize_key(mix.scope_key) == scope and normalize_key(mix.brand) in keys
    )
    return own_revenue / row.revenue


def segment_exposures(snapshot: Snapshot, brands: Iterable[str]) -> list[SegmentExposure]:
    """Canonical type segments with positive revenue and the own-brand share of each."""

    brand_keys = frozenset(normalize_key(brand) for brand in brands)
    wanted = {normalize_key(scope) for scope in SEGMENT_SCOPES}
    return [
        SegmentExposure(row, segment_own_share(snapshot, row, brand_keys))
        for row in snapshot.type_metrics
        if normalize_key(row.scope_key) in wanted and row.revenue > 0
    ]


def segment_blind_spot(
    snapshot: Snapshot, brands: Iterable[str], settings: EngineSettings
) -> tuple[SegmentExposure, float] | None:
    """Highest scoring heavy segment where own brands are nearly absent."""

    rules = settings.opportunity
    best: tuple[SegmentExposure, float] | None = None
    for exposure in segment_exposures(snapshot, brands):
        weight = exposure.row.revenue_share
        if weight <= rules.min_segment_share or exposure.own_share >= rules.max_own_share:
            continue
        score = clamp(weight * 120 + (rules.max_own_share - exposure.own_share) * 700, 0.0, 100.0)
        if score > 0 and (best is None or score > best[1]):
            best = (exposure, score)
    return best


def build_synthesis_summary(
    mart: DataMart,
    settings: EngineSettings | None = None,
    own_brands: Iterable[str] | None = None,
) -> SynthesisSummary:
    """Derive proactive suggestions from mart-wide signals only."""

    settings = settings or EngineSettings()
    own = frozenset(normalize_key(brand) for brand in (own_brands if own_brands is not None else settings.own_brands))
    own_products = [product for product in mart.products if product.brand_key in own]
    other_products = [product for product in mart.products if product.brand_key not in own]
    summary = SynthesisSummary()

    if own_products:
        own_revenue = sum(product.revenue for product in own_products)
        concentration = own_products[0].revenue / max(1.0, own_revenue)
        summary.proactive.append(
            ProactiveSuggestion(
                id="monthly-performance",
                title="Monthly Performance Snapshot",
                summary=(
                    f"Own brands generated {format_currency(own_revenue)} from {len(own_products)} tracked products. "
                    f"Top-SKU concentration is {format_share(concentration)}."
                ),
                severity="watch" if concentration >= settings.risk.top_sku_concentration else "info",
                confidence=0.86,
            )
        )

    movers = sorted(
        (product for product in other_products if (product.revenue_mom or 0.0) >= settings.synthesis.mover_mom),
        key=lambda product: product.revenue_mom or 0.0,
        reverse=True,
    )[:2]
    if movers:
        summary.proactive.append(
            ProactiveSuggestion(
                id="competitive-alert",
                title="Competitive Alert: Who Moved",
                summary="; ".join(
                    f"{product.brand} {product.asin} grew {format_percent(product.revenue_mom)} MoM" for product in movers
                ),
                severity="watch",
                confidence=0.82,
            )
        )

    risk_candidates = sorted(
        (
            product
            for product in own_products
            if 0 < product.rating < settings.risk.max_rating and product.revenue > settings.risk.min_revenue
        ),
        key=lambda product: product.revenue,
        reverse=True,
    )
    if risk_candidates:
        weakest = risk_candidates[0]
        summary.proactive.append(
            ProactiveSuggestion(
                id="risk-of-month",
                title="Biggest Risk Right Now",
                summary=(
                    f"{weakest.brand} {weakest.asin} has strong revenue ({format_currency(weakest.revenue)}) "
                    f"but weak rating ({weakest.rating:.1f})."
                ),
                severity="risk",
                confidence=0.78,
            )
        )

    blind_spot = segment_blind_spot(mart.snapshot, own, settings)
    if blind_spot is not None:
        exposure, score = blind_spot
        summary.proactive.append(
            ProactiveSuggestion(
                id="segment-blind-spot",
                title="Segment Blindspot Risk",
                summary=(
                    f"{exposure.row.label} is {format_share(exposure.row.revenue_share)} of market revenue "
                    f"while own share is {format_share(exposure.own_share)}."
                ),
                severity="risk" if score >= 50 else "watch",
                confidence=0.76,
            )
        )

    rising = [
        product
        for product in mart.products
        if (product.revenue_mom or 0.0) >= settings.synthesis.rising_mom
        and product.rank_revenue <= settings.synthesis.rising_rank
    ][:WATCHLIST_CANDIDATES]
    summary.watchlist.extend(
        f"{product.brand} {product.asin} is rising (+{(product.revenue_mom or 0.0) * 100:.1f}% MoM, "
        f"rank #{product.rank_revenue})."
        for product in rising
    )
    if not summary.watchlist:
        summary.watchlist.append(EMPTY_WATCHLIST)

    summary.proactive = summary.proactive[:MAX_PROACTIVE]
    summary.watchlist = summary.watchlist[:MAX_WATCHLIST]
    LOGGER.debug(
        "synthesis.built",
        extra={"proactive": [item.id for item in summary.proactive], "watchlist": len(rising)},
    )
    return summary


__all__ = [
    "EMPTY_WATCHLIST",
    "MAX_PROACTIVE",
    "MAX_WATCHLIST",
    "ProactiveSuggestion",
    "SEGMENT_SCOPES",
    "SegmentExposure",
    "SynthesisSummary",
    "build_synthesis_summary",
    "segment_blind_spot",
    "segment_exposures",
    "segment_own_share",
]
