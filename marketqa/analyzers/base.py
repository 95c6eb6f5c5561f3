"""Shared analyzer contracts and helpers.

Every analyzer is a pure function ``(AnalyzerContext) -> AnalyzerOutput``.  The
context carries the mart, the parsed plan, the resolved scope and entities;
analyzers read from it and never mutate the mart.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from marketqa.mart.archetypes import SalesArchetype
from marketqa.mart.builder import DataMart
from marketqa.mart.products import IndexedProduct, ProductHistoryPoint
from marketqa.query.entities import EntityResolution
from marketqa.query.parser import ParsedQuery, QueryPlan
from marketqa.query.scope import ResolvedScope, ScopeMode
from marketqa.reports.formatting import format_currency, format_number
from marketqa.schemas.snapshot import BrandTotal, Snapshot
from marketqa.settings import EngineSettings
from marketqa.utils.numbers import safe_share
from marketqa.utils.text import normalize_key

MAX_BULLETS = 6

UNKNOWN_CONFIDENCE = 0.5

FALLBACK_QUESTIONS = (
    "Who is Innova 5610's biggest competitor?",
    "What are competitors doing this month?",
    "What should I be worried about?",
)


@dataclass(frozen=True, slots=True)
class EvidenceItem:
    label: str
    value: str


@dataclass(frozen=True, slots=True)
class Citation:
    metric: str
    source: str
    snapshot: str


@dataclass(frozen=True, slots=True)
class TopContributor:
    asin: str
    title: str
    revenue: float
    units: float
    trend: str


@dataclass(frozen=True, slots=True)
class AnalyzerOutput:
    """Structured finding returned by one analyzer; built fresh per request."""

    answer: str
    bullets: tuple[str, ...]
    evidence: tuple[EvidenceItem, ...]
    confidence: float
    assumptions: tuple[str, ...] = ()
    citations: tuple[Citation, ...] = ()
    suggested_questions: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    historical_window: str | None = None
    sales_archetype: SalesArchetype | None = None
    top_contributors: tuple[TopContributor, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "bullets", tuple(self.bullets)[:MAX_BULLETS])
        object.__setattr__(self, "evidence", tuple(self.evidence))
        object.__setattr__(self, "assumptions", tuple(self.assumptions))
        object.__setattr__(self, "citations", tuple(self.citations))
        object.__setattr__(self, "suggested_questions", tuple(self.suggested_questions))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        if self.top_contributors is not None:
            object.__setattr__(self, "top_contributors", tuple(self.top_contributors))
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


@dataclass(slots=True)
class AnalyzerContext:
    mart: DataMart
    parsed: ParsedQuery
    resolution: EntityResolution
    settings: EngineSettings = field(default_factory=EngineSettings)
    target_brand: str | None = None

    @property
    def scope(self) -> ResolvedScope:
        return self.resolution.scope

    @property
    def matched_products(self) -> list[IndexedProduct]:
        return self.resolution.matched_products

    @property
    def message(self) -> str:
        return self.parsed.raw

    @property
    def plan(self) -> QueryPlan:
        return self.parsed.plan

    @property
    def own_brands(self) -> frozenset[str]:
        return resolve_own_brands(self.target_brand, self.scope, self.settings.own_brands)

    @property
    def archetypes(self) -> dict[str, SalesArchetype]:
        return self.mart.brand_archetypes


def base_evidence(snapshot: Snapshot) -> list[EvidenceItem]:
    return [
        EvidenceItem("Snapshot", snapshot.date),
        EvidenceItem("Market Revenue", format_currency(snapshot.totals.revenue)),
        EvidenceItem("Market Units", format_number(snapshot.totals.units)),
    ]


def citation(metric: str, source: str, snapshot: str) -> Citation:
    return Citation(metric=metric, source=source, snapshot=snapshot)


def unknown_output(mart: DataMart, answer: str) -> AnalyzerOutput:
    """Low-confidence fallback with generic follow-up prompts."""

    return AnalyzerOutput(
        answer=answer,
        bullets=tuple(f"Try: {question}" for question in FALLBACK_QUESTIONS),
        evidence=tuple(base_evidence(mart.snapshot)),
        confidence=UNKNOWN_CONFIDENCE,
        assumptions=("No strong analyzer route matched this question.",),
        citations=(citation("Fallback", "metrics-engine", mart.snapshot_date),),
        suggested_questions=FALLBACK_QUESTIONS,
    )


def resolve_own_brands(
    target_brand: str | None, scope: ResolvedScope, configured: Sequence[str]
) -> frozenset[str]:
    """A caller target that is one of our brands narrows "own" to that brand."""

    target = normalize_key(target_brand)
    if target and target in configured:
        return frozenset({target})
    if scope.mode is ScopeMode.TARGET_BRAND and scope.brands:
        return frozenset(normalize_key(brand) for brand in scope.brands)
    return frozenset(configured)


def brand_scope_set(scope: ResolvedScope, own_brands: Iterable[str]) -> frozenset[str]:
    if scope.mode in (ScopeMode.EXPLICIT_BRAND, ScopeMode.TARGET_BRAND):
        scoped = frozenset(key for key in (normalize_key(brand) for brand in scope.brands) if key)
        if scoped:
            return scoped
    return frozenset(own_brands)


def scoped_products(mart: DataMart, scope: ResolvedScope) -> list[IndexedProduct]:
    if scope.is_market_wide:
        return list(mart.products)
    allowed = {normalize_key(brand) for brand in scope.brands}
    return [product for product in mart.products if product.brand_key in allowed]


def label_for_scope(scope: ResolvedScope) -> str:
    if scope.mode in (ScopeMode.EXPLICIT_BRAND, ScopeMode.TARGET_BRAND):
        return " + ".join(brand.upper() for brand in scope.brands)
    if scope.mode is ScopeMode.OWN_BRANDS:
        return "OWN BRANDS"
    return "MARKET"


def find_brand_total(snapshot: Snapshot | None, brand: str) -> BrandTotal | None:
    if snapshot is None:
        return None
    key = normalize_key(brand)
    return next((row for row in snapshot.brand_totals if normalize_key(row.brand) == key), None)


def rank_for_brand(snapshot: Snapshot, brand: str, metric: str) -> int | None:
    """1-based position of ``brand`` when brand totals are sorted by ``metric``."""

    ordered = sorted(
        snapshot.brand_totals,
        key=lambda row: row.units if metric == "units" else row.revenue,
        reverse=True,
    )
    key = normalize_key(brand)
    for position, row in enumerate(ordered, start=1):
        if normalize_key(row.brand) == key:
            return position
    return None


@dataclass(frozen=True, slots=True)
class BrandStats:
    brand: str
    revenue: float
    units: float
    asp: float
    revenue_share: float
    unit_share: float


def summarize_brand(mart: DataMart, brand: str) -> BrandStats | None:
    row = find_brand_total(mart.snapshot, brand)
    if row is None:
        return None
    return BrandStats(
        brand=row.brand,
        revenue=row.revenue,
        units=row.units,
        asp=row.revenue / row.units if row.units > 0 else 0.0,
        revenue_share=row.share,
        unit_share=safe_share(row.units, mart.snapshot.totals.units),
    )


def brand_top_contributors(mart: DataMart, brand: str, limit: int = 3) -> list[TopContributor]:
    key = normalize_key(brand)
    products = sorted(
        (product for product in mart.products if product.brand_key == key),
        key=lambda product: product.revenue,
        reverse=True,
    )[:limit]
    contributors: list[TopContributor] = []
    for product in products:
        history = mart.asin_history.get(product.key)
        trend = history.windows["3m"].trend if history is not None else "flat"
        contributors.append(TopContributor(product.asin, product.title, product.revenue, product.units, trend))
    return contributors


def contributor_bullet(item: TopContributor) -> str:
    return (
        f"{item.asin}: {format_currency(item.revenue)} revenue, "
        f"{format_number(item.units)} units, trend {item.trend}."
    )


def growth_for_window(window: str, mom: float | None, yoy: float | None) -> float | None:
    """Pick the growth value for ``window``; ``both`` averages whichever are present."""

    if window == "mom":
        return mom
    if window == "yoy":
        return yoy
    present = [value for value in (mom, yoy) if value is not None]
    if not present:
        return None
    return sum(present) / len(present)


def window_label(window: str) -> str:
    return {"mom": "MoM", "yoy": "YoY"}.get(window, "MoM + YoY")


def rank_metric_from_target(target: str) -> str:
    return "units" if target == "units_rank" else "revenue"


def find_history_point(history: Sequence[ProductHistoryPoint], date: str | None) -> ProductHistoryPoint | None:
    if not date:
        return None
    return next((point for point in history if point.date == date), None)


def previous_point(mart: DataMart, product: IndexedProduct) -> ProductHistoryPoint | None:
    """History point of ``product`` in the immediately previous snapshot, if it appeared there."""

    return find_history_point(product.history, mart.previous.date if mart.previous else None)


def year_ago_point(mart: DataMart, product: IndexedProduct) -> ProductHistoryPoint | None:
    return find_history_point(product.history, mart.year_ago.date if mart.year_ago else None)


def type_scope_label(scope: str) -> str:
    if scope == "other_tools":
        return "Other Tools"
    return scope[:1].upper() + scope[1:]


def matches_type_scope(type_name: str, scope: str) -> bool:
    normalized = normalize_key(type_name)
    if scope == "other_tools":
        return "other" in normalized
    if scope == "handheld":
        return "handheld" in normalized
    if scope == "dongle":
        return "dongle" in normalized
    return "tablet" in normalized


CANONICAL_TYPE_SCOPES = ("totaltablet", "totalhandheld", "totaldongle", "totalothertools")


def is_canonical_type_scope(scope_key: str) -> bool:
    normalized = normalize_key(scope_key)
    return any(marker in normalized for marker in CANONICAL_TYPE_SCOPES)


__all__ = [
    "AnalyzerContext",
    "AnalyzerOutput",
    "BrandStats",
    "CANONICAL_TYPE_SCOPES",
    "Citation",
    "EvidenceItem",
    "FALLBACK_QUESTIONS",
    "MAX_BULLETS",
    "TopContributor",
    "UNKNOWN_CONFIDENCE",
    "base_evidence",
    "brand_scope_set",
    "brand_top_contributors",
    "citation",
    "contributor_bullet",
    "find_brand_total",
    "find_history_point",
    "growth_for_window",
    "is_canonical_type_scope",
    "label_for_scope",
    "matches_type_scope",
    "previous_point",
    "rank_for_brand",
    "rank_metric_from_target",
    "resolve_own_brands",
    "scoped_products",
    "summarize_brand",
    "type_scope_label",
    "unknown_output",
    "year_ago_point",
]
