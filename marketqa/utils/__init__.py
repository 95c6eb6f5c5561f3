"""Utility helpers for marketqa modules."""

from .numbers import clamp, mean, ratio_delta, safe_float, safe_share
from .text import normalize_key, tokenize, unique

__all__ = [
    "clamp",
    "mean",
    "normalize_key",
    "ratio_delta",
    "safe_float",
    "safe_share",
    "tokenize",
    "unique",
]
