"""Tests for brand and product alias tables."""
from __future__ import annotations

from marketqa.mart.aliases import brand_aliases, build_brand_lookup
from marketqa.tests.data import build_sample_mart


def test_brand_aliases_skip_stopwords_and_short_tokens() -> None:
    aliases = brand_aliases("Ancel Diagnostic Tools", "anceldiagnostictools", frozenset({"diagnostic", "tools"}))

    assert aliases == ["anceldiagnostictools", "ancel"]


def test_priority_brand_owns_pinned_alias() -> None:
    lookup = build_brand_lookup(
        {"autelpro": "Autel Pro", "autel": "Autel"},
        stopwords=frozenset(),
        pinned={"autel": ("autel", "autl")},
        priority=("autel",),
    )

    assert lookup["autelpro"] == "autelpro"
    assert lookup["autel"] == "autel"
    assert lookup["autl"] == "autel"


def test_first_priority_brand_wins_shared_pin() -> None:
    lookup = build_brand_lookup(
        {"innova": "Innova", "blcktec": "BLCKTEC"},
        stopwords=frozenset(),
        pinned={"innova": ("scan",), "blcktec": ("scan",)},
        priority=("innova", "blcktec"),
    )

    assert lookup["scan"] == "innova"


def test_sample_mart_alias_tables() -> None:
    mart = build_sample_mart()

    assert mart.brand_lookup["blacktec"] == "blcktec"
    assert mart.brand_lookup["topdon"] == "topdon"
    assert mart.product_aliases["innova5610"] == ("B07Z481NJM",)
    assert mart.product_aliases["5610innova"] == ("B07Z481NJM",)
    assert mart.product_aliases["b0topdon01"] == ("B0TOPDON01",)
    assert set(mart.product_aliases["innovaobd2"]) == {"B07Z481NJM", "B0INNOVA02"}
    assert mart.brand_display("blcktec") == "BLCKTEC"
