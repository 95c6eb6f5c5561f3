"""Tests for fastest growth, rank mover and type growth analyzers."""
from __future__ import annotations

import pytest

from marketqa.analyzers.base import UNKNOWN_CONFIDENCE
from marketqa.analyzers.growth import fastest_growth, fastest_rank_mover, rank_by_growth, type_growth
from marketqa.mart.archetypes import SalesArchetype
from marketqa.tests.data import SNAPSHOT_DATES, build_context, build_sample_mart


@pytest.fixture(scope="module")
def mart():
    return build_sample_mart()


def test_rank_by_growth_drops_missing_and_keeps_tie_order() -> None:
    rows = [("a", 0.1), ("b", None), ("c", 0.3), ("d", 0.1)]

    ranked = rank_by_growth(rows, lambda row: row[1])

    assert [row[0] for row, _ in ranked] == ["c", "a", "d"]


def test_fastest_brand_growth_mom(mart) -> None:
    output = fastest_growth(build_context(mart, "Which brand grew the most this month?"))

    assert output.answer == "Fastest revenue growth brand (MoM): BLCKTEC."
    assert output.bullets[0] == "#1 BLCKTEC: +300.0% (MoM), $16K revenue, 50 units."
    assert output.sales_archetype is SalesArchetype.PRICE_LED
    assert output.top_contributors is not None
    assert output.top_contributors[0].asin == "B0BLCK0001"
    assert output.confidence == pytest.approx(0.88)


def test_fastest_brand_growth_yoy_skips_brands_without_baseline(mart) -> None:
    output = fastest_growth(build_context(mart, "Which brand grew the most year over year?"))

    assert output.answer == "Fastest revenue growth brand (YoY): Topdon."
    assert not any(bullet.startswith("#") and "BLCKTEC" in bullet for bullet in output.bullets)


def test_fastest_asin_growth(mart) -> None:
    output = fastest_growth(build_context(mart, "Which ASIN grew the most this month?"))

    assert output.answer == "Fastest revenue growth ASIN (MoM): BLCKTEC B0BLCK0001."
    assert output.bullets[1].startswith("#2 Topdon B0TOPDON01: +200.0% (MoM)")


def test_type_growth_within_scope(mart) -> None:
    output = fastest_growth(build_context(mart, "Which brand is growing fastest in handheld?"))

    assert output.answer == "Fastest Handheld growth brand (MoM, revenue): Innova."
    assert output.bullets == ("#1 Innova: +14.6% (MoM), $47K revenue, 300 units.",)


def test_type_growth_across_canonical_types(mart) -> None:
    output = type_growth(build_context(mart, "Which type grew the most?"))

    assert output.answer == "Fastest growth product type (MoM, revenue): Dongle."
    assert len(output.bullets) == 3


def test_brand_rank_mover(mart) -> None:
    output = fastest_rank_mover(build_context(mart, "Which brand is the fastest rank mover?"))

    assert output.answer == "Fastest brand rank mover (revenue rank): BLCKTEC (+1 vs Jan 2025)."
    assert output.bullets[0].startswith("#1 BLCKTEC: #4 -> #3 (+1)")


def test_asin_rank_mover(mart) -> None:
    output = fastest_rank_mover(build_context(mart, "Which product is the fastest rank mover?"))

    assert output.answer == "Fastest ASIN rank mover (revenue rank): BLCKTEC B0BLCK0001 (+2)."
    assert output.bullets[-1] == "#5 Innova B0INNOVA02: #3 -> #5 (-2)."


def test_first_snapshot_has_no_growth_results() -> None:
    mart = build_sample_mart(snapshot_date=SNAPSHOT_DATES[0])

    output = fastest_growth(build_context(mart, "Which brand grew the most this month?"))

    assert output.answer == "I couldn't find brand growth results for the requested scope."
    assert output.confidence == pytest.approx(UNKNOWN_CONFIDENCE)
