"""Tests for proactive suggestions and the watchlist."""
from __future__ import annotations

import pytest

from marketqa.settings import EngineSettings, RiskRules
from marketqa.synthesis import EMPTY_WATCHLIST, build_synthesis_summary, segment_own_share
from marketqa.tests.data import SNAPSHOT_DATES, build_sample_mart


@pytest.fixture(scope="module")
def mart():
    return build_sample_mart()


def test_default_proactive_items(mart) -> None:
    summary = build_synthesis_summary(mart)

    assert [item.id for item in summary.proactive] == ["monthly-performance", "competitive-alert"]
    performance, alert = summary.proactive
    assert performance.severity == "watch"
    assert performance.summary == (
        "Own brands generated $63K from 3 tracked products. Top-SKU concentration is 63.5%."
    )
    assert alert.summary == "Topdon B0TOPDON01 grew +200.0% MoM"


def test_watchlist_lists_rising_products(mart) -> None:
    summary = build_synthesis_summary(mart)

    assert summary.watchlist == [
        "BLCKTEC B0BLCK0001 is rising (+300.0% MoM, rank #3).",
        "Topdon B0TOPDON01 is rising (+200.0% MoM, rank #4).",
    ]


def test_segment_blind_spot_for_other_own_brand(mart) -> None:
    summary = build_synthesis_summary(mart, own_brands=("topdon",))

    blind_spot = summary.proactive[-1]
    assert blind_spot.id == "segment-blind-spot"
    assert blind_spot.severity == "risk"
    assert blind_spot.summary == "Tablet is 50.8% of market revenue while own share is 0%."
    assert "BLCKTEC B0BLCK0001" in summary.proactive[1].summary


def test_risk_of_month_with_lower_revenue_floor(mart) -> None:
    settings = EngineSettings(risk=RiskRules(min_revenue=10000))

    summary = build_synthesis_summary(mart, settings)

    risk = next(item for item in summary.proactive if item.id == "risk-of-month")
    assert risk.summary == "Innova B07Z481NJM has strong revenue ($40K) but weak rating (4.0)."
    assert risk.severity == "risk"


def test_segment_own_share_uses_brand_mix(mart) -> None:
    tablet = next(row for row in mart.type_metrics if row.label == "Tablet")

    assert segment_own_share(mart.snapshot, tablet, {"blcktec"}) == pytest.approx(0.25)
    assert segment_own_share(mart.snapshot, tablet, set()) == 0.0


def test_first_snapshot_has_empty_watchlist_marker() -> None:
    mart = build_sample_mart(snapshot_date=SNAPSHOT_DATES[0])

    summary = build_synthesis_summary(mart)

    assert summary.watchlist == [EMPTY_WATCHLIST]
    assert "competitive-alert" not in [item.id for item in summary.proactive]


def test_proactive_to_dict(mart) -> None:
    payload = build_synthesis_summary(mart).proactive[0].to_dict()

    assert set(payload) == {"id", "title", "summary", "severity", "confidence"}
