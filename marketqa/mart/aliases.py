"""Brand and product alias tables used by entity resolution."""
from __future__ import annotations

import re
from typing import Iterable, Mapping, Sequence

from marketqa.mart.products import IndexedProduct
from marketqa.schemas.snapshot import BrandTotal
from marketqa.utils.text import normalize_key, tokenize

_DIGIT = re.compile(r"[0-9]")

MIN_BRAND_TOKEN = 4
MIN_PRODUCT_ALIAS = 4
MIN_PRODUCT_TOKEN = 3


def brand_display_names(
    brand_totals: Iterable[BrandTotal], products: Iterable[IndexedProduct]
) -> dict[str, str]:
    """Map brand key to the first display name seen (brand totals before products)."""

    display: dict[str, str] = {}
    for name in [row.brand for row in brand_totals] + [product.brand for product in products]:
        key = normalize_key(name)
        if key and key not in display:
            display[key] = name
    return display


def brand_aliases(display: str, brand_key: str, stopwords: frozenset[str] | set[str]) -> list[str]:
    aliases = [brand_key, normalize_key(display)]
    aliases.extend(
        token for token in tokenize(display) if len(token) >= MIN_BRAND_TOKEN and token not in stopwords
    )
    return list(dict.fromkeys(alias for alias in aliases if alias))


def build_brand_lookup(
    display_by_key: Mapping[str, str],
    *,
    stopwords: frozenset[str] | set[str],
    pinned: Mapping[str, Sequence[str]],
    priority: Sequence[str],
) -> dict[str, str]:
    """Return ``alias -> brand key``.

    Derived aliases are first-writer-wins in display order.  Pinned aliases are
    then written for every pinned brand, brands in ``priority`` last and in
    reverse order, so the first priority brand owns any alias it pins.
    """

    lookup: dict[str, str] = {}
    for brand_key, display in display_by_key.items():
        for alias in brand_aliases(display, brand_key, stopwords):
            lookup.setdefault(alias, brand_key)

    ranked = [key for key in pinned if key not in priority]
    ranked.extend(key for key in reversed(priority) if key in pinned or key in display_by_key)
    for brand_key in ranked:
        for alias in [brand_key, *pinned.get(brand_key, ())]:
            alias_key = normalize_key(alias)
            if alias_key:
                lookup[alias_key] = brand_key
    return lookup


def build_product_aliases(
    products: Iterable[IndexedProduct], pinned: Mapping[str, str]
) -> dict[str, tuple[str, ...]]:
    """Return ``alias -> ASINs`` for model-number style product naming."""

    table: dict[str, dict[str, None]] = {}

    def _add(alias: str, asin: str) -> None:
        key = normalize_key(alias)
        if len(key) < MIN_PRODUCT_ALIAS:
            return
        table.setdefault(key, {})[asin.upper()] = None

    for product in products:
        _add(product.asin, product.asin)
        compact_brand = normalize_key(product.brand)
        for token in tokenize(f"{product.brand} {product.title}"):
            if len(token) >= MIN_PRODUCT_TOKEN and _DIGIT.search(token):
                _add(f"{compact_brand}{token}", product.asin)
                _add(f"{token}{compact_brand}", product.asin)

    for alias, asin in pinned.items():
        _add(alias, asin)
    return {alias: tuple(asins) for alias, asins in table.items()}


__all__ = [
    "brand_aliases",
    "brand_display_names",
    "build_brand_lookup",
    "build_product_aliases",
]
