"""Tests for answer-template formatting helpers."""
from __future__ import annotations

import pytest

from marketqa.reports.formatting import (
    describe_trend,
    format_currency,
    format_number,
    format_percent,
    format_plain_currency,
    format_rank,
    format_share,
    format_signed,
    signed_points,
    signed_rank_delta,
    truncate,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (126000, "$126K"),
        (1512000, "$1.5M"),
        (-5000, "-$5K"),
        (999960, "$1M"),
        (250, "$250"),
        (None, "$0"),
    ],
)
def test_format_currency_compact(value: float | None, expected: str) -> None:
    assert format_currency(value) == expected


def test_percent_and_share_formats() -> None:
    assert format_percent(0.26) == "+26.0%"
    assert format_percent(-0.25) == "-25.0%"
    assert format_percent(None) == "n/a"
    assert format_percent(float("nan")) == "n/a"
    assert format_share(0.2) == "20%"
    assert format_share(0.5079) == "50.8%"
    assert signed_points(-0.119) == "-11.9pt"
    assert signed_points(0.05) == "+5.0pt"


def test_rank_and_signed_formats() -> None:
    assert format_rank(3) == "#3"
    assert format_rank(None) == "n/a"
    assert signed_rank_delta(2) == "+2"
    assert signed_rank_delta(0) == "0"
    assert signed_rank_delta(-4) == "-4"
    assert signed_rank_delta(None) == "n/a"
    assert format_signed(-1500) == "-1,500"
    assert format_signed(21000) == "+21,000"


def test_plain_numbers_and_text() -> None:
    assert format_plain_currency(1299.99) == "$1,299.99"
    assert format_number(4100) == "4.1K"
    assert describe_trend(0.2) == "growing"
    assert describe_trend(-0.1) == "declining"
    assert describe_trend(0.01) == "stable"
    assert describe_trend(None) == "flat"
    assert truncate("Innova 5610 OBD2 Scanner", 10) == "Innova 56…"
    assert truncate("short", 10) == "short"
