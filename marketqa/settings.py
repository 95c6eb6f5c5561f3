"""Runtime configuration: YAML thresholds merged over built-in defaults plus env overrides."""
from __future__ import annotations

import logging
import os
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from marketqa.utils.text import normalize_key, unique

LOGGER = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parents[1] / "configs" / "engine_rules.yml"

DEFAULT_RULES: dict[str, Any] = {
    "own_brands": ["innova", "blcktec"],
    "brand_priority": ["innova", "blcktec"],
    "pinned_brand_aliases": {
        "innova": ["innova"],
        "blcktec": ["blcktec", "blacktec", "blcktek"],
    },
    "pinned_product_aliases": {
        "innova5610": "B07Z481NJM",
        "5610innova": "B07Z481NJM",
    },
    "brand_alias_stopwords": [
        "product",
        "products",
        "tool",
        "tools",
        "scanner",
        "scanners",
        "diagnostic",
        "solutions",
        "america",
        "global",
        "system",
        "systems",
    ],
    "cache": {"ttl_seconds": 180},
    "trend": {"threshold": 0.08},
    "risk": {
        "top_sku_concentration": 0.55,
        "min_revenue": 100_000,
        "max_rating": 4.1,
    },
    "opportunity": {
        "min_segment_share": 0.20,
        "max_own_share": 0.05,
    },
    "synthesis": {
        "mover_mom": 0.5,
        "rising_mom": 0.25,
        "rising_rank": 20,
    },
    "competitor": {
        "weights": {
            "price": 25,
            "type": 25,
            "revenue": 20,
            "units": 10,
            "rating": 10,
            "momentum": 10,
        },
        "price_band_pct": 0.20,
        "price_band_abs": 120,
        "min_revenue": 10_000,
        "min_revenue_pct": 0.05,
        "same_type_min_pool": 4,
    },
    "warnings": {"mart_cap": 8, "response_cap": 6},
}


class ConfigurationError(RuntimeError):
    """Raised when environment-provided configuration cannot be used."""


def load_dotenv(path: str | os.PathLike[str] = ".env", *, override: bool = False) -> None:
    """Load ``KEY=VALUE`` pairs from ``path`` into ``os.environ``.

    Existing variables are kept unless ``override`` is set.  Missing files are
    ignored.
    """

    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if override or key not in os.environ:
            os.environ[key] = value.strip()


def _deep_update(target: dict[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_update(target[key], value)
        else:
            target[key] = value
    return target


def _detect_missing_fields(source: Mapping[str, Any], template: Mapping[str, Any], prefix: str = "") -> list[str]:
    missing: list[str] = []
    for key, expected in template.items():
        dotted = f"{prefix}{key}" if prefix else key
        if key not in source:
            missing.append(dotted)
            continue
        candidate = source[key]
        if isinstance(expected, Mapping) and key not in {"pinned_brand_aliases", "pinned_product_aliases"}:
            if not isinstance(candidate, Mapping):
                missing.append(dotted)
            else:
                missing.extend(_detect_missing_fields(candidate, expected, prefix=f"{dotted}."))
    return missing


def load_engine_rules(config_path: str | Path = CONFIG_PATH) -> dict[str, Any]:
    """Return the rule mapping with ``config_path`` merged over :data:`DEFAULT_RULES`."""

    path = Path(config_path)
    merged = deepcopy(DEFAULT_RULES)
    if not path.exists():
        LOGGER.warning("settings.rules.missing", extra={"path": str(path)})
        return merged

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError:
        LOGGER.error("settings.rules.parse_failed", extra={"path": str(path)}, exc_info=True)
        return merged
    except OSError:
        LOGGER.error("settings.rules.read_failed", extra={"path": str(path)}, exc_info=True)
        return merged

    if not isinstance(data, Mapping):
        LOGGER.error("settings.rules.not_mapping", extra={"path": str(path)})
        return merged

    _deep_update(merged, data)
    missing_fields = _detect_missing_fields(data, DEFAULT_RULES)
    if missing_fields:
        LOGGER.warning(
            "settings.rules.partial",
            extra={"path": str(path), "missing": ", ".join(missing_fields)},
        )
    return merged


def _float(raw: Mapping[str, Any], key: str, default: float) -> float:
    try:
        return float(raw.get(key, default))
    except (TypeError, ValueError):
        return default


def _int(raw: Mapping[str, Any], key: str, default: int) -> int:
    try:
        return int(raw.get(key, default))
    except (TypeError, ValueError):
        return default


def _section(rules: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = rules.get(name)
    return value if isinstance(value, Mapping) else {}


def _brand_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(unique(normalize_key(str(item)) for item in value))


@dataclass(slots=True)
class RiskRules:
    top_sku_concentration: float = 0.55
    min_revenue: float = 100_000
    max_rating: float = 4.1


@dataclass(slots=True)
class OpportunityRules:
    min_segment_share: float = 0.20
    max_own_share: float = 0.05


@dataclass(slots=True)
class SynthesisRules:
    mover_mom: float = 0.5
    rising_mom: float = 0.25
    rising_rank: int = 20


@dataclass(slots=True)
class CompetitorRules:
    weights: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_RULES["competitor"]["weights"]))
    price_band_pct: float = 0.20
    price_band_abs: float = 120
    min_revenue: float = 10_000
    min_revenue_pct: float = 0.05
    same_type_min_pool: int = 4


@dataclass(slots=True)
class EngineSettings:
    """Materialised engine configuration shared by the mart, analyzers and synthesis."""

    own_brands: tuple[str, ...] = ("innova", "blcktec")
    brand_priority: tuple[str, ...] = ("innova", "blcktec")
    pinned_brand_aliases: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: {key: tuple(value) for key, value in DEFAULT_RULES["pinned_brand_aliases"].items()}
    )
    pinned_product_aliases: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_RULES["pinned_product_aliases"])
    )
    brand_alias_stopwords: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_RULES["brand_alias_stopwords"])
    )
    cache_ttl_seconds: float = 180.0
    trend_threshold: float = 0.08
    risk: RiskRules = field(default_factory=RiskRules)
    opportunity: OpportunityRules = field(default_factory=OpportunityRules)
    synthesis: SynthesisRules = field(default_factory=SynthesisRules)
    competitor: CompetitorRules = field(default_factory=CompetitorRules)
    mart_warning_cap: int = 8
    response_warning_cap: int = 6

    @classmethod
    def from_rules(cls, rules: Mapping[str, Any]) -> "EngineSettings":
        """Build settings from a (merged) rule mapping."""

        risk = _section(rules, "risk")
        opportunity = _section(rules, "opportunity")
        synthesis = _section(rules, "synthesis")
        competitor = _section(rules, "competitor")
        warnings = _section(rules, "warnings")
        weights_raw = competitor.get("weights")
        weights = dict(DEFAULT_RULES["competitor"]["weights"])
        if isinstance(weights_raw, Mapping):
            for key, value in weights_raw.items():
                try:
                    weights[str(key)] = float(value)
                except (TypeError, ValueError):
                    LOGGER.warning("settings.competitor.bad_weight", extra={"weight": key})

        pinned_brands_raw = rules.get("pinned_brand_aliases")
        pinned_brands: dict[str, tuple[str, ...]] = {}
        if isinstance(pinned_brands_raw, Mapping):
            for brand, aliases in pinned_brands_raw.items():
                pinned_brands[normalize_key(str(brand))] = _brand_list(aliases)

        pinned_products_raw = rules.get("pinned_product_aliases")
        pinned_products: dict[str, str] = {}
        if isinstance(pinned_products_raw, Mapping):
            for alias, asin in pinned_products_raw.items():
                pinned_products[normalize_key(str(alias))] = str(asin).upper()

        stopwords = rules.get("brand_alias_stopwords") or []
        return cls(
            own_brands=_brand_list(rules.get("own_brands")),
            brand_priority=_brand_list(rules.get("brand_priority")),
            pinned_brand_aliases=pinned_brands,
            pinned_product_aliases=pinned_products,
            brand_alias_stopwords=frozenset(str(item).lower() for item in stopwords),
            cache_ttl_seconds=_float(_section(rules, "cache"), "ttl_seconds", 180.0),
            trend_threshold=_float(_section(rules, "trend"), "threshold", 0.08),
            risk=RiskRules(
                top_sku_concentration=_float(risk, "top_sku_concentration", 0.55),
                min_revenue=_float(risk, "min_revenue", 100_000),
                max_rating=_float(risk, "max_rating", 4.1),
            ),
            opportunity=OpportunityRules(
                min_segment_share=_float(opportunity, "min_segment_share", 0.20),
                max_own_share=_float(opportunity, "max_own_share", 0.05),
            ),
            synthesis=SynthesisRules(
                mover_mom=_float(synthesis, "mover_mom", 0.5),
                rising_mom=_float(synthesis, "rising_mom", 0.25),
                rising_rank=_int(synthesis, "rising_rank", 20),
            ),
            competitor=CompetitorRules(
                weights=weights,
                price_band_pct=_float(competitor, "price_band_pct", 0.20),
                price_band_abs=_float(competitor, "price_band_abs", 120),
                min_revenue=_float(competitor, "min_revenue", 10_000),
                min_revenue_pct=_float(competitor, "min_revenue_pct", 0.05),
                same_type_min_pool=_int(competitor, "same_type_min_pool", 4),
            ),
            mart_warning_cap=_int(warnings, "mart_cap", 8),
            response_warning_cap=_int(warnings, "response_cap", 6),
        )


def get_engine_settings(
    config_path: str | os.PathLike[str] | None = None,
    *,
    env_paths: Iterable[str | os.PathLike[str]] = (".env",),
) -> EngineSettings:
    """Return engine settings from the rules file and ``MARKETQA_*`` variables."""

    for candidate in env_paths:
        load_dotenv(candidate)
    path = config_path or os.getenv("MARKETQA_RULES_PATH") or CONFIG_PATH
    rules = load_engine_rules(path)

    own_brands_raw = os.getenv("MARKETQA_OWN_BRANDS")
    if own_brands_raw:
        rules["own_brands"] = [item for item in own_brands_raw.split(",") if item.strip()]

    ttl_raw = os.getenv("MARKETQA_CACHE_TTL")
    if ttl_raw:
        try:
            rules.setdefault("cache", {})["ttl_seconds"] = float(ttl_raw)
        except ValueError as exc:
            raise ConfigurationError("MARKETQA_CACHE_TTL must be a numeric value") from exc
    return EngineSettings.from_rules(rules)


__all__ = [
    "CONFIG_PATH",
    "CompetitorRules",
    "ConfigurationError",
    "DEFAULT_RULES",
    "EngineSettings",
    "OpportunityRules",
    "RiskRules",
    "SynthesisRules",
    "get_engine_settings",
    "load_dotenv",
    "load_engine_rules",
]
