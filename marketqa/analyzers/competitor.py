"""Weighted proximity scoring of rival ASINs against a target product."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from marketqa.analyzers.base import previous_point
from marketqa.mart.builder import DataMart
from marketqa.mart.products import IndexedProduct
from marketqa.reports.formatting import format_signed
from marketqa.settings import CompetitorRules
from marketqa.utils.numbers import clamp
from marketqa.utils.text import normalize_key

LOGGER = logging.getLogger(__name__)

TOP_CANDIDATES = 3
RISING_MOM = 0.2
RISING_BOOST_CAP = 8.0

COMPETITOR_ASSUMPTIONS = (
    "Candidates are restricted to nearby price range (±20% or ±$120).",
    "Type match is prioritized; when type coverage is sparse, fallback pool expands to all products.",
    "Scores combine similarity and momentum, not absolute market leadership.",
)


@dataclass(slots=True)
class CompetitorCandidate:
    product: IndexedProduct
    score: float
    evidence: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CompetitorResult:
    target: IndexedProduct
    candidates: list[CompetitorCandidate]
    assumptions: tuple[str, ...]
    confidence: float
    pool_size: int = 0


def similarity_ratio(target: float, values: np.ndarray) -> np.ndarray:
    """``1 - |a - b| / max(a, b)`` clipped to ``[0, 1]``; zero when either side is non-positive."""

    values = np.asarray(values, dtype=float)
    if target <= 0:
        return np.zeros_like(values)
    gap = np.abs(values - target) / np.maximum(values, target)
    return np.where(values > 0, np.clip(1.0 - gap, 0.0, 1.0), 0.0)


def type_similarity(target_type: str, candidate_type: str) -> float:
    left = normalize_key(target_type)
    right = normalize_key(candidate_type)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    if left in right or right in left:
        return 0.65
    return 0.2


def rating_score(target: float, values: np.ndarray) -> np.ndarray:
    values = np.asarray(values, dtype=float)
    if target <= 0:
        return np.full_like(values, 0.5)
    favourability = np.clip(0.6 + (values - target) / 2.0, 0.0, 1.0)
    return np.where(values > 0, favourability, 0.5)


def momentum_score(target: float | None, values: np.ndarray) -> np.ndarray:
    values = np.asarray(values, dtype=float)
    if target is None:
        return np.full_like(values, 0.5)
    closeness = np.clip(1.0 - np.abs(values - target), 0.0, 1.0)
    return np.where(np.isnan(values), 0.5, closeness)


def is_rank_improving(mart: DataMart, product: IndexedProduct) -> bool:
    previous = previous_point(mart, product)
    if previous is None or previous.rank_revenue is None:
        return False
    return product.rank_revenue < previous.rank_revenue


def rising_star_boost(mart: DataMart, product: IndexedProduct) -> float:
    growth = product.revenue_mom or 0.0
    if growth < RISING_MOM or not is_rank_improving(mart, product):
        return 0.0
    return clamp(growth * 20, 0.0, RISING_BOOST_CAP)


def candidate_evidence(target: IndexedProduct, candidate: IndexedProduct) -> list[str]:
    return [
        f"Price: {format_signed(candidate.price - target.price)} vs target "
        f"({candidate.price:.0f} vs {target.price:.0f}).",
        f"Revenue: {format_signed(candidate.revenue - target.revenue)} monthly delta.",
        f"Units: {format_signed(candidate.units - target.units)} monthly delta.",
        f"Rating: {candidate.rating or 0:.1f} vs {target.rating or 0:.1f}.",
    ]


def competitor_confidence(target: IndexedProduct, pool_size: int, top_count: int) -> float:
    score = 0.45
    if target.type and normalize_key(target.type) != "unknown":
        score += 0.15
    if target.price > 0 and target.revenue > 0 and target.units > 0:
        score += 0.15
    if pool_size >= 5:
        score += 0.15
    if top_count >= TOP_CANDIDATES:
        score += 0.1
    return clamp(score, 0.0, 1.0)


def candidate_pool(
    mart: DataMart,
    target: IndexedProduct,
    rules: CompetitorRules,
    *,
    include_same_brand: bool = False,
) -> pd.DataFrame:
    """Rows of the mart product frame eligible for scoring against ``target``."""

    frame = mart.product_frame.copy()
    if frame.empty:
        return frame
    frame["type_key"] = frame["type"].map(normalize_key)
    target_type = normalize_key(target.type)
    same_type = frame[frame["type_key"] == target_type]
    pool = same_type if len(same_type) >= rules.same_type_min_pool else frame

    mask = pool["key"] != target.key
    if not include_same_brand:
        mask &= pool["brand_key"] != target.brand_key
    mask &= (pool["revenue"] > 0) & (pool["price"] > 0)
    price_delta = (pool["price"] - target.price).abs()
    relative = price_delta / target.price if target.price > 0 else pd.Series(1.0, index=pool.index)
    mask &= (relative <= rules.price_band_pct) | (price_delta <= rules.price_band_abs)
    min_revenue = max(rules.min_revenue, target.revenue * rules.min_revenue_pct)
    mask &= pool["revenue"] >= min_revenue
    return pool[mask].copy()


def find_closest_competitors(
    mart: DataMart,
    target: IndexedProduct,
    rules: CompetitorRules | None = None,
    *,
    include_same_brand: bool = False,
) -> CompetitorResult:
    """Score the eligible pool, keep the best three, then apply the rising-star boost."""

    rules = rules or CompetitorRules()
    weights = rules.weights
    pool = candidate_pool(mart, target, rules, include_same_brand=include_same_brand)

    if pool.empty:
        LOGGER.debug("competitor.pool.empty", extra={"asin": target.asin})
        return CompetitorResult(
            target=target,
            candidates=[],
            assumptions=COMPETITOR_ASSUMPTIONS,
            confidence=competitor_confidence(target, 0, 0),
        )

    momentum = pd.to_numeric(pool["revenue_mom"], errors="coerce").to_numpy(dtype=float)
    score = (
        similarity_ratio(target.price, pool["price"].to_numpy()) * weights.get("price", 0.0)
        + pool["type"].map(lambda value: type_similarity(target.type, value)).to_numpy(dtype=float)
        * weights.get("type", 0.0)
        + similarity_ratio(target.revenue, pool["revenue"].to_numpy()) * weights.get("revenue", 0.0)
        + similarity_ratio(target.units, pool["units"].to_numpy()) * weights.get("units", 0.0)
        + rating_score(target.rating, pool["rating"].to_numpy()) * weights.get("rating", 0.0)
        + momentum_score(target.revenue_mom, momentum) * weights.get("momentum", 0.0)
    )
    pool["score"] = np.clip(score, 0.0, 100.0)
    top = pool.sort_values("score", ascending=False, kind="stable").head(TOP_CANDIDATES)

    candidates: list[CompetitorCandidate] = []
    for row in top.itertuples(index=False):
        product = mart.products_by_asin[row.key]
        evidence = candidate_evidence(target, product)
        boost = rising_star_boost(mart, product)
        if boost > 0:
            evidence.append(f"Rising-star boost: +{boost:.1f} (strong MoM growth and improving rank).")
        candidates.append(CompetitorCandidate(product, clamp(float(row.score) + boost, 0.0, 100.0), evidence))
    candidates.sort(key=lambda item: item.score, reverse=True)

    LOGGER.debug(
        "competitor.scored",
        extra={"asin": target.asin, "pool": len(pool), "top": [item.product.asin for item in candidates]},
    )
    return CompetitorResult(
        target=target,
        candidates=candidates,
        assumptions=COMPETITOR_ASSUMPTIONS,
        confidence=competitor_confidence(target, len(pool), len(candidates)),
        pool_size=len(pool),
    )


__all__ = [
    "COMPETITOR_ASSUMPTIONS",
    "CompetitorCandidate",
    "CompetitorResult",
    "candidate_evidence",
    "candidate_pool",
    "competitor_confidence",
    "find_closest_competitors",
    "is_rank_improving",
    "momentum_score",
    "rating_score",
    "rising_star_boost",
    "similarity_ratio",
    "type_similarity",
]
