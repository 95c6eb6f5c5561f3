"""Fourteen monthly snapshots of a small OBD2 scanner category.

The series runs from January 2024 to February 2025.  February 2025 closes at
$126K revenue / 1,050 units against $100K / 1,000 units in January, which gives
a $5K unit effect and a $21K price effect for the market-level driver split.
"""
from __future__ import annotations

from datetime import date
from typing import Any

from marketqa.analyzers.base import AnalyzerContext
from marketqa.mart.builder import DataMart, build_data_mart
from marketqa.query.entities import resolve_entities
from marketqa.query.parser import parse_query
from marketqa.schemas.snapshot import CategorySeries
from marketqa.settings import EngineSettings

CATEGORY_ID = "code_readers"
CATEGORY_LABEL = "Code Readers & Scanners"

SNAPSHOT_DATES = [date(2024 + (offset // 12), offset % 12 + 1, 1).isoformat() for offset in range(14)]
CURRENT_DATE = SNAPSHOT_DATES[-1]
PREVIOUS_DATE = SNAPSHOT_DATES[-2]
YEAR_AGO_DATE = SNAPSHOT_DATES[1]

TYPE_SCOPES = {
    "Tablet": "total_tablet",
    "Handheld": "total_handheld",
    "Dongle": "total_dongle",
}

PRODUCTS: list[dict[str, Any]] = [
    {
        "asin": "B07Z481NJM",
        "brand": "Innova",
        "title": "Innova 5610 OBD2 Scanner Bidirectional",
        "toolType": "Handheld",
        "price": 200.0,
        "rating": 4.0,
        "reviewCount": 5200,
        "features": {"bluetooth": "no"},
        "revenue": [24000, 25000, 26000, 26000, 27000, 27000, 28000, 29000, 30000, 30000, 31000, 32000, 33000, 40000],
        "units": [120, 130, 130, 130, 135, 135, 140, 145, 150, 150, 155, 160, 170, 200],
    },
    {
        "asin": "B0INNOVA02",
        "brand": "Innova",
        "title": "Innova 5210 OBD2 Code Reader",
        "toolType": "Handheld",
        "price": 70.0,
        "rating": 4.5,
        "reviewCount": 3100,
        "features": {"bluetooth": "no"},
        "revenue": [9000] * 12 + [8000, 7000],
        "units": [110] * 12 + [100, 100],
    },
    {
        "asin": "B0BLCK0001",
        "brand": "BLCKTEC",
        "title": "BLCKTEC 430T Tablet Scanner",
        "toolType": "Tablet",
        "price": 300.0,
        "rating": 4.6,
        "reviewCount": 900,
        "features": {"bluetooth": "yes"},
        "revenue": [None] * 5 + [2000, 2500, 3000, 3000, 3500, 3500, 4000, 4000, 16000],
        "units": [None] * 5 + [7, 8, 10, 10, 12, 12, 13, 15, 50],
    },
    {
        "asin": "B0AUTEL001",
        "brand": "Autel",
        "title": "Autel MaxiCOM MK808 Tablet",
        "toolType": "Tablet",
        "price": 480.0,
        "rating": 4.7,
        "reviewCount": 4100,
        "features": {"bluetooth": "yes"},
        "revenue": [38000, 40000, 40000, 41000, 42000, 43000, 44000, 45000, 46000, 47000, 48000, 49000, 50000, 48000],
        "units": [80, 90, 85, 85, 88, 90, 92, 94, 96, 98, 100, 102, 95, 100],
    },
    {
        "asin": "B0TOPDON01",
        "brand": "Topdon",
        "title": "Topdon TopScan OBD2 Dongle",
        "toolType": "Dongle",
        "price": 25.0,
        "rating": 4.4,
        "reviewCount": 2500,
        "features": {"bluetooth": "yes"},
        "revenue": [6000, 6000, 5500, 5500, 5000, 5000, 5000, 5000, 5000, 5000, 5000, 5000, 5000, 15000],
        "units": [500, 500, 480, 480, 450, 450, 450, 450, 460, 470, 480, 500, 620, 600],
    },
]


def _ratio(current: float, base: float | None) -> float | None:
    if not base:
        return None
    return round((current - base) / base, 4)


def _present(index: int) -> list[dict[str, Any]]:
    return [product for product in PRODUCTS if product["revenue"][index] is not None]


def _product_row(product: dict[str, Any], index: int) -> dict[str, Any]:
    return {
        "asin": product["asin"],
        "title": product["title"],
        "brand": product["brand"],
        "toolType": product["toolType"],
        "price": product["price"],
        "revenue": product["revenue"][index],
        "units": product["units"][index],
        "rating": product["rating"],
        "reviewCount": product["reviewCount"],
        "features": dict(product["features"]),
    }


def _grouped(index: int, key: str) -> dict[str, tuple[float, float]]:
    groups: dict[str, tuple[float, float]] = {}
    if index < 0:
        return groups
    for product in _present(index):
        revenue, units = groups.get(product[key], (0.0, 0.0))
        groups[product[key]] = (revenue + product["revenue"][index], units + product["units"][index])
    return groups


def _type_breakdowns(index: int, revenue_total: float, units_total: float) -> dict[str, Any]:
    current = _grouped(index, "toolType")
    previous = _grouped(index - 1, "toolType")
    year_ago = _grouped(index - 12, "toolType")
    rows = []
    mix = []
    for type_name, (revenue, units) in current.items():
        scope_key = TYPE_SCOPES[type_name]
        rows.append(
            {
                "scopeKey": scope_key,
                "label": type_name,
                "avgPrice": round(revenue / units, 2),
                "units": units,
                "unitsShare": round(units / units_total, 4),
                "unitsMoM": _ratio(units, previous.get(type_name, (0.0, 0.0))[1]),
                "unitsYoY": _ratio(units, year_ago.get(type_name, (0.0, 0.0))[1]),
                "revenue": revenue,
                "revenueShare": round(revenue / revenue_total, 4),
                "revenueMoM": _ratio(revenue, previous.get(type_name, (0.0, 0.0))[0]),
                "revenueYoY": _ratio(revenue, year_ago.get(type_name, (0.0, 0.0))[0]),
            }
        )
        brands: dict[str, tuple[float, float]] = {}
        for product in _present(index):
            if product["toolType"] != type_name:
                continue
            brand_revenue, brand_units = brands.get(product["brand"], (0.0, 0.0))
            brands[product["brand"]] = (
                brand_revenue + product["revenue"][index],
                brand_units + product["units"][index],
            )
        mix.extend(
            {"scopeKey": scope_key, "scopeLabel": type_name, "brand": brand, "revenue": revenue, "units": units}
            for brand, (revenue, units) in brands.items()
        )
    return {"allAsins": rows, "categoryBrandMix": mix}


def _snapshot_payload(index: int) -> dict[str, Any]:
    snapshot_date = SNAPSHOT_DATES[index]
    present = _present(index)
    revenue_total = float(sum(product["revenue"][index] for product in present))
    units_total = float(sum(product["units"][index] for product in present))
    brand_totals = sorted(
        (
            {
                "brand": brand,
                "revenue": revenue,
                "units": units,
                "share": round(revenue / revenue_total, 4),
            }
            for brand, (revenue, units) in _grouped(index, "brand").items()
        ),
        key=lambda row: row["revenue"],
        reverse=True,
    )
    payload: dict[str, Any] = {
        "date": snapshot_date,
        "label": date.fromisoformat(snapshot_date).strftime("%b %Y"),
        "totals": {
            "revenue": revenue_total,
            "units": units_total,
            "asinCount": len(present),
            "avgPrice": round(revenue_total / units_total, 2),
        },
        "topProducts": [_product_row(product, index) for product in present],
        "top50ByUnits": [
            {"asin": product["asin"], "brand": product["brand"], "units": product["units"][index]}
            for product in present
        ],
        "brandTotals": brand_totals,
        "typeBreakdowns": _type_breakdowns(index, revenue_total, units_total),
    }
    if snapshot_date == CURRENT_DATE:
        payload["brandSheetListings"] = [
            {
                "brand": "Innova",
                "products": [
                    {
                        "asin": "B07Z481NJM",
                        "brand": "Innova",
                        "url": "https://www.amazon.com/dp/B07Z481NJM",
                        "estimatedRevenue12mo": 380000,
                    }
                ],
            }
        ]
        payload["priceTiers"] = [
            {"label": "$300+", "revenue": 64000, "share": 0.5079},
            {"label": "$100-$299", "revenue": 40000, "share": 0.3175},
            {"label": "<$100", "revenue": 22000, "share": 0.1746},
        ]
        payload["rolling12"] = {
            "revenue": {
                "brands": [
                    {"brand": "Autel", "monthly": 48000, "grandTotal": 543000, "rank": 1},
                    {"brand": "Innova", "monthly": 47000, "grandTotal": 460000, "rank": 2},
                ]
            }
        }
        payload["qualityIssues"] = [
            {"code": "missing_rating", "message": "2 listings are missing ratings."},
            {"code": "missing_rating", "message": "2 listings are missing ratings."},
            {"code": "coverage", "message": "Brand sheet coverage is partial for Topdon.", "severity": "info"},
        ]
    return payload


def build_category_payload() -> dict[str, Any]:
    """Return the camelCase category document as delivered by the snapshot provider."""

    return {
        "id": CATEGORY_ID,
        "label": CATEGORY_LABEL,
        "snapshots": [_snapshot_payload(index) for index in range(len(SNAPSHOT_DATES))],
    }


def build_category_series() -> CategorySeries:
    return CategorySeries.from_mapping(build_category_payload())


def build_sample_mart(snapshot_date: str = CURRENT_DATE, settings: EngineSettings | None = None) -> DataMart:
    mart = build_data_mart(build_category_series(), snapshot_date, settings=settings)
    assert mart is not None
    return mart


def build_context(
    mart: DataMart,
    message: str,
    *,
    target_brand: str | None = None,
    settings: EngineSettings | None = None,
) -> AnalyzerContext:
    """Parse and resolve ``message`` against ``mart`` the same way the engine does."""

    settings = settings or EngineSettings()
    parsed = parse_query(message, mart.category_id)
    resolution = resolve_entities(
        message,
        mart,
        parsed=parsed,
        target_brand=target_brand,
        own_brands=settings.own_brands,
    )
    return AnalyzerContext(
        mart=mart,
        parsed=parsed,
        resolution=resolution,
        settings=settings,
        target_brand=target_brand,
    )
