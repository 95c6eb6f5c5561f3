"""Find brand and product mentions in a question using the mart's alias tables."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Generic, Mapping, Sequence, TypeVar

from marketqa.mart.builder import DataMart
from marketqa.mart.products import IndexedProduct
from marketqa.query.parser import ParsedQuery
from marketqa.query.scope import ResolvedScope, ScopeMode, resolve_scope
from marketqa.utils.text import normalize_key, tokenize, unique

V = TypeVar("V")

_ASIN_TOKEN = re.compile(r"\b[A-Z0-9]{8,10}\b", re.IGNORECASE)
_DIGIT = re.compile(r"[0-9]")
_SPECIFIC_PRODUCT = re.compile(r"\b(product|asin|scanner|model|competitor|trend)\b")
_BROAD_RANKING = re.compile(
    r"\b(top\s*(1|one)?\s*(sku|product|asin|scanner)|fastest mover|competitors doing|worried about|market leader)\b"
)

MAX_MATCHED_PRODUCTS = 8
TITLE_TOKEN_LIMIT = 24
PRODUCT_COMPACT_MIN = 7

ENTITY_SOURCES = ("exact_token", "alias", "inferred_title", "asin_match", "quick_action_target")


@dataclass(frozen=True, slots=True)
class EntitySourceHit:
    entity: str
    value: str
    source: str


@dataclass(frozen=True)
class AliasHit(Generic[V]):
    alias: str
    value: V
    source: str


@dataclass
class AliasCandidates(Generic[V]):
    hits: list[AliasHit[V]] = field(default_factory=list)

    def values(self) -> list[V]:
        seen: list[V] = []
        for hit in self.hits:
            if hit.value not in seen:
                seen.append(hit.value)
        return seen

    def __bool__(self) -> bool:
        return bool(self.hits)


def candidate_terms(text: str) -> list[str]:
    """Tokens of ``text`` plus adjacent-token joins (``blue driver`` -> ``bluedriver``)."""

    tokens = tokenize(text)
    joined = [first + second for first, second in zip(tokens, tokens[1:])]
    return unique([*tokens, *joined])


def resolve_aliases(
    text: str,
    table: Mapping[str, V],
    *,
    compact_min_length: int | None = None,
) -> AliasCandidates[V]:
    """Match ``table`` aliases against ``text``, longest alias first.

    An alias hits when it equals a token (or two adjacent tokens joined).  With
    ``compact_min_length`` set, aliases at least that long containing a digit
    also hit as substrings of the compacted text ("innova5610" in "Innova-5610").
    """

    terms = set(candidate_terms(text))
    compact = normalize_key(text)
    candidates: AliasCandidates[V] = AliasCandidates()
    for alias in sorted(table, key=len, reverse=True):
        value = table[alias]
        hit = alias in terms
        if not hit and compact_min_length is not None:
            hit = len(alias) >= compact_min_length and bool(_DIGIT.search(alias)) and alias in compact
        if hit:
            source = "exact_token" if isinstance(value, str) and alias == value else "alias"
            candidates.hits.append(AliasHit(alias, value, source))
    return candidates


@dataclass(slots=True)
class EntityResolution:
    brands: list[str]
    matched_products: list[IndexedProduct]
    entity_sources: list[EntitySourceHit]
    scope: ResolvedScope
    ambiguous: bool = False
    clarification_question: str | None = None

    @property
    def asins(self) -> list[str]:
        return [product.asin for product in self.matched_products]

    @property
    def products(self) -> list[str]:
        return [product.title for product in self.matched_products]

    @property
    def primary_product(self) -> IndexedProduct | None:
        return self.matched_products[0] if self.matched_products else None


def extract_asins(message: str) -> list[str]:
    return unique(match.upper() for match in _ASIN_TOKEN.findall(message))


def resolve_by_title(normalized: str, products: Sequence[IndexedProduct]) -> list[IndexedProduct]:
    """Score products by question tokens found in ``brand asin title``."""

    tokens = [token for token in tokenize(normalized) if len(token) >= 3][:TITLE_TOKEN_LIMIT]
    if not tokens:
        return []
    scored: list[tuple[int, IndexedProduct]] = []
    for product in products:
        title_tokens = {
            token for token in tokenize(f"{product.brand} {product.asin} {product.title}") if len(token) >= 2
        }
        score = sum(2 if len(token) >= 5 else 1 for token in tokens if token in title_tokens)
        if score >= 2:
            scored.append((score, product))
    scored.sort(key=lambda item: (-item[0], -item[1].revenue))
    return [product for _, product in scored[:MAX_MATCHED_PRODUCTS]]


def _dedupe_sources(sources: Sequence[EntitySourceHit]) -> list[EntitySourceHit]:
    seen: dict[tuple[str, str, str], EntitySourceHit] = {}
    for hit in sources:
        seen.setdefault((hit.entity, normalize_key(hit.value), hit.source), hit)
    return list(seen.values())


def is_specific_product_question(normalized: str) -> bool:
    return bool(_SPECIFIC_PRODUCT.search(normalized))


def is_broad_ranking_question(normalized: str) -> bool:
    return bool(_BROAD_RANKING.search(normalized))


def resolve_entities(
    message: str,
    mart: DataMart,
    *,
    parsed: ParsedQuery,
    target_brand: str | None = None,
    own_brands: Sequence[str] = (),
) -> EntityResolution:
    """Resolve brands, products and scope strictly from what the text supports.

    Products matched by ASIN or alias come before title-inferred ones; the
    ambiguity check looks at the strong matches when there are any.
    """

    normalized = message.lower()
    sources: list[EntitySourceHit] = []

    by_asin: list[IndexedProduct] = []
    for asin in extract_asins(message):
        product = mart.product(asin)
        if product is not None:
            by_asin.append(product)
            sources.append(EntitySourceHit("asin", product.asin, "asin_match"))

    by_alias: list[IndexedProduct] = []
    for hit in resolve_aliases(message, mart.product_aliases, compact_min_length=PRODUCT_COMPACT_MIN).hits:
        for asin in hit.value:
            product = mart.product(asin)
            if product is not None:
                by_alias.append(product)
                sources.append(EntitySourceHit("asin", product.asin, "alias"))

    brand_hits = resolve_aliases(message, mart.brand_lookup)
    for hit in brand_hits.hits:
        sources.append(EntitySourceHit("brand", hit.value, hit.source))
    brands = brand_hits.values()

    by_title = resolve_by_title(normalized, mart.products)
    for product in by_title:
        sources.append(EntitySourceHit("product", f"{product.brand} {product.asin}", "inferred_title"))

    strong = list({product.key: product for product in [*by_asin, *by_alias]}.values())
    combined = list({product.key: product for product in [*strong, *by_title]}.values())
    matched = combined[:MAX_MATCHED_PRODUCTS]

    scope = resolve_scope(parsed, brands, target_brand, own_brands)
    if scope.mode is ScopeMode.TARGET_BRAND:
        sources.append(EntitySourceHit("brand", scope.brands[0], "quick_action_target"))

    ambiguity_pool = strong or matched
    ambiguous = (
        len(ambiguity_pool) > 1
        and is_specific_product_question(normalized)
        and not is_broad_ranking_question(normalized)
    )
    question = None
    if ambiguous:
        labels = ", ".join(f"{product.brand} {product.asin}" for product in ambiguity_pool[:3])
        question = f"I found multiple products. Did you mean {labels}?"

    return EntityResolution(
        brands=brands,
        matched_products=matched,
        entity_sources=_dedupe_sources(sources),
        scope=scope,
        ambiguous=ambiguous,
        clarification_question=question,
    )


__all__ = [
    "AliasCandidates",
    "AliasHit",
    "ENTITY_SOURCES",
    "EntityResolution",
    "EntitySourceHit",
    "candidate_terms",
    "extract_asins",
    "is_broad_ranking_question",
    "is_specific_product_question",
    "resolve_aliases",
    "resolve_by_title",
    "resolve_entities",
]
