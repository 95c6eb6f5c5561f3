"""Decide which brands an analyzer is restricted to."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from marketqa.query.parser import ParsedQuery
from marketqa.utils.text import normalize_key, unique


class ScopeMode(str, Enum):
    EXPLICIT_BRAND = "explicit_brand"
    TARGET_BRAND = "target_brand"
    OWN_BRANDS = "own_brands"
    ALL_BRANDS = "all_brands"


@dataclass(frozen=True, slots=True)
class ResolvedScope:
    mode: ScopeMode
    brands: tuple[str, ...]
    source: str

    def __post_init__(self) -> None:
        if self.mode is not ScopeMode.ALL_BRANDS and not self.brands:
            raise ValueError(f"scope mode {self.mode.value} requires at least one brand")

    @property
    def is_market_wide(self) -> bool:
        return self.mode is ScopeMode.ALL_BRANDS


def resolve_scope(
    parsed: ParsedQuery,
    matched_brands: Sequence[str],
    target_brand: str | None,
    own_brands: Sequence[str],
) -> ResolvedScope:
    """Pick the scope by fixed priority: named brands, caller target, own brands, market.

    A question naming a competitor is about that competitor even when the
    caller passes its own target brand.
    """

    explicit = unique([*parsed.plan.scope_brands, *matched_brands])
    if explicit:
        return ResolvedScope(ScopeMode.EXPLICIT_BRAND, tuple(explicit), "Question contains explicit brand reference.")

    target = normalize_key(target_brand)
    if target:
        return ResolvedScope(ScopeMode.TARGET_BRAND, (target,), "Quick-action target brand context.")

    own = tuple(unique(normalize_key(brand) for brand in own_brands))
    if parsed.plan.include_own_brands and own:
        return ResolvedScope(ScopeMode.OWN_BRANDS, own, "Own-brand language in question.")

    return ResolvedScope(ScopeMode.ALL_BRANDS, (), "No brand scope specified; using market-wide scope.")


__all__ = ["ResolvedScope", "ScopeMode", "resolve_scope"]
