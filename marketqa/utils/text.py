"""Text normalisation helpers shared by alias building and entity resolution."""
from __future__ import annotations

import re
from typing import Iterable

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def normalize_key(value: str | None) -> str:
    """Lower-case ``value`` and strip every character outside ``[a-z0-9]``."""

    return _NON_ALNUM.sub("", (value or "").lower())


def tokenize(value: str | None) -> list[str]:
    """Split ``value`` into lower-case alphanumeric tokens."""

    return [token for token in _TOKEN_SPLIT.split((value or "").lower()) if token]


def unique(values: Iterable[str]) -> list[str]:
    """Return non-empty values de-duplicated in first-seen order."""

    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


__all__ = ["normalize_key", "tokenize", "unique"]
