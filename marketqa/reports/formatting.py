"""Text formatting helpers used when filling analyzer answer templates."""
from __future__ import annotations

from marketqa.utils.numbers import safe_float

_COMPACT_UNITS = ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K"))


def _trim(number: float, digits: int = 1) -> str:
    text = f"{number:.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in {"-0", ""} else text


def _compact(value: float) -> str:
    magnitude = abs(value)
    for index, (scale, suffix) in enumerate(_COMPACT_UNITS):
        if magnitude >= scale:
            scaled = round(magnitude / scale, 1)
            # 999.96K rounds to 1000K; promote to the next unit.
            if scaled >= 1000 and index > 0:
                larger_scale, larger_suffix = _COMPACT_UNITS[index - 1]
                return f"{_trim(magnitude / larger_scale)}{larger_suffix}"
            return f"{_trim(scaled)}{suffix}"
    rounded = round(magnitude, 1)
    if rounded >= 1000:
        return "1K"
    return _trim(rounded)


def format_currency(value: float | None) -> str:
    """Compact USD: ``$126K``, ``$1.2M``, ``-$5K``."""

    number = safe_float(value)
    sign = "-" if number < 0 and round(abs(number), 1) > 0 else ""
    return f"{sign}${_compact(number)}"


def format_plain_currency(value: float | None) -> str:
    """Full USD with cents: ``$1,299.99``."""

    number = safe_float(value)
    sign = "-" if number < 0 else ""
    return f"{sign}${abs(number):,.2f}"


def format_number(value: float | None) -> str:
    number = safe_float(value)
    sign = "-" if number < 0 and round(abs(number), 1) > 0 else ""
    return f"{sign}{_compact(number)}"


def format_percent(value: float | None) -> str:
    """Signed percentage with one decimal, ``n/a`` for missing values."""

    if value is None or value != value:
        return "n/a"
    return f"{'+' if value >= 0 else ''}{value * 100:.1f}%"


def format_share(value: float | None) -> str:
    """Unsigned percentage for shares: ``37.5%``."""

    return f"{_trim(safe_float(value) * 100)}%"


def signed_points(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value * 100:.1f}pt"


def format_rank(value: int | None) -> str:
    return "n/a" if value is None else f"#{value}"


def signed_rank_delta(value: int | None) -> str:
    if value is None:
        return "n/a"
    if value == 0:
        return "0"
    return f"{'+' if value > 0 else ''}{round(value)}"


def format_signed(value: float) -> str:
    """Signed whole number with thousands separators: ``+12,345``."""

    rounded = round(safe_float(value))
    return f"{'+' if rounded >= 0 else ''}{rounded:,}"


def describe_trend(value: float | None, threshold: float = 0.08) -> str:
    if value is None:
        return "flat"
    if value >= threshold:
        return "growing"
    if value <= -threshold:
        return "declining"
    return "stable"


def truncate(value: str, length: int) -> str:
    if len(value) <= length:
        return value
    return f"{value[: max(0, length - 1)]}…"


__all__ = [
    "describe_trend",
    "format_currency",
    "format_number",
    "format_percent",
    "format_plain_currency",
    "format_rank",
    "format_share",
    "format_signed",
    "signed_points",
    "signed_rank_delta",
    "truncate",
]
