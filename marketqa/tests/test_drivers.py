"""Tests for the price/volume bridge, growth driver and brand health analyzers."""
from __future__ import annotations

import pytest

from marketqa.analyzers.drivers import brand_health, compute_driver_breakdown, growth_driver
from marketqa.tests.data import build_context, build_sample_mart


@pytest.fixture(scope="module")
def mart():
    return build_sample_mart()


def test_driver_breakdown_bridge() -> None:
    driver = compute_driver_breakdown(126000, 1050, 100000, 1000)

    assert driver.current_asp == pytest.approx(120.0)
    assert driver.previous_asp == pytest.approx(100.0)
    assert driver.unit_effect == pytest.approx(5000.0)
    assert driver.price_effect == pytest.approx(21000.0)
    assert driver.total_effect == pytest.approx(26000.0)
    assert driver.primary_driver == "price"


def test_driver_tie_goes_to_units() -> None:
    assert compute_driver_breakdown(0, 0, 0, 0).primary_driver == "units"


def test_market_growth_driver(mart) -> None:
    output = growth_driver(build_context(mart, "Is market growth driven by price or units?"))

    assert output.answer == "Market growth is currently price-driven."
    assert output.bullets[2] == "Driver split: unit effect $5K, price effect $21K."
    assert output.confidence == pytest.approx(0.8)


def test_brand_growth_driver(mart) -> None:
    output = growth_driver(build_context(mart, "Is Innova growth driven by price or units?"))

    assert output.answer == "Innova performance is mainly units-driven this month."
    assert output.bullets[1] == "Innova rank: #2 by revenue, #2 by units."
    assert output.confidence == pytest.approx(0.9)


def test_type_growth_driver(mart) -> None:
    output = growth_driver(build_context(mart, "Is handheld growth driven by price or units?"))

    assert output.answer == "Handheld growth is primarily units-driven (MoM context)."


def test_brand_health_single_brand(mart) -> None:
    output = brand_health(build_context(mart, "How did Innova do this month?"))

    assert output.answer == "INNOVA delivered $47K monthly revenue and 300 units (+14.6% revenue MoM)."
    assert output.bullets[0] == "Innova rank is #2 by revenue and #2 by units."
    assert output.confidence == pytest.approx(0.88)


def test_brand_health_own_brands(mart) -> None:
    output = brand_health(build_context(mart, "How are we doing this month?"))

    assert output.answer == "OWN BRANDS delivered $63K monthly revenue and 350 units (+40.0% revenue MoM)."
    assert output.bullets[0] == "Current scope includes 2 brands in this snapshot."
    assert output.sales_archetype is None
