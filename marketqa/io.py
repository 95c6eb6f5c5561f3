"""Read snapshot series documents from local JSON files."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from marketqa.schemas.snapshot import CategorySeries, parse_series
from marketqa.utils.text import normalize_key

LOGGER = logging.getLogger(__name__)


class SnapshotFormatError(ValueError):
    """Raised when a snapshot document cannot be interpreted as a category series."""


def _category_payloads(document: Any) -> list[Mapping[str, Any]]:
    if isinstance(document, list):
        payloads = document
    elif isinstance(document, Mapping) and isinstance(document.get("categories"), list):
        payloads = document["categories"]
    elif isinstance(document, Mapping) and "snapshots" in document:
        payloads = [document]
    else:
        raise SnapshotFormatError("Document must be a category, a list of categories or {'categories': [...]}")
    if not all(isinstance(item, Mapping) for item in payloads):
        raise SnapshotFormatError("Every category entry must be a JSON object")
    return list(payloads)


def load_category_series(path: str | Path, category_id: str | None = None) -> CategorySeries:
    """Load one category series from ``path``.

    Without ``category_id`` the document must hold exactly one category.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot document not found: {path}")
    try:
        with path.open(encoding="utf-8") as handle:
            document = json.load(handle)
    except json.JSONDecodeError as exc:
        raise SnapshotFormatError(f"Invalid JSON in {path}: {exc}") from exc

    series = parse_series(_category_payloads(document))
    if category_id is not None:
        wanted = normalize_key(category_id)
        matches = [item for item in series if normalize_key(item.id) == wanted]
        if not matches:
            raise SnapshotFormatError(f"Category {category_id!r} not found in {path}")
        selected = matches[0]
    elif len(series) == 1:
        selected = series[0]
    else:
        raise SnapshotFormatError(f"{path} holds {len(series)} categories; pass a category id")

    for snapshot in selected.snapshots:
        if not snapshot.date:
            raise SnapshotFormatError(f"Snapshot without a date in category {selected.id!r}")
    LOGGER.info(
        "io.series.loaded",
        extra={"path": str(path), "category": selected.id, "snapshots": len(selected.snapshots)},
    )
    return selected


__all__ = ["SnapshotFormatError", "load_category_series"]
