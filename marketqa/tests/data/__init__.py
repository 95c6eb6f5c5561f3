"""Synthetic snapshot series used by mart, analyzer and engine tests."""
from __future__ import annotations

__all__ = [
    "CATEGORY_ID",
    "CATEGORY_LABEL",
    "CURRENT_DATE",
    "PREVIOUS_DATE",
    "SNAPSHOT_DATES",
    "YEAR_AGO_DATE",
    "build_category_payload",
    "build_category_series",
    "build_context",
    "build_sample_mart",
]

from .snapshot_samples import (
    CATEGORY_ID,
    CATEGORY_LABEL,
    CURRENT_DATE,
    PREVIOUS_DATE,
    SNAPSHOT_DATES,
    YEAR_AGO_DATE,
    build_category_payload,
    build_category_series,
    build_context,
    build_sample_mart,
)
