"""CLI entry point answering one market question against a snapshot document."""

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from typing import Sequence

from marketqa.cache import MartCache
from marketqa.engine import ChatRequest, answer_question
from marketqa.io import SnapshotFormatError, load_category_series
from marketqa.mart.builder import MartBuildError
from marketqa.settings import ConfigurationError, get_engine_settings

LOGGER = logging.getLogger(__name__)
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Answer a market question from monthly category snapshots")
    parser.add_argument("--snapshots", required=True, help="Path to the category snapshot JSON document")
    parser.add_argument("--date", required=True, help="Snapshot date, e.g. 2025-02-01")
    parser.add_argument("--question", required=True, help="Natural-language question")
    parser.add_argument("--category", default=None, help="Category id when the document holds several")
    parser.add_argument("--target-brand", default=None, help="Caller brand context, e.g. innova")
    parser.add_argument("--config", default=None, help="Path to the YAML engine rules file")
    parser.add_argument("--log-level", default="WARNING", help="Logging level for stderr output")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), stream=sys.stderr)
    if not DATE_PATTERN.match(args.date):
        LOGGER.error("Invalid date format", extra={"date": args.date})
        return 1
    try:
        settings = get_engine_settings(args.config)
        series = load_category_series(args.snapshots, args.category)
        request = ChatRequest(
            message=args.question,
            category_id=series.id,
            snapshot_date=args.date,
            target_brand=args.target_brand,
        )
        response = answer_question(
            request,
            series,
            cache=MartCache(ttl_seconds=settings.cache_ttl_seconds),
            settings=settings,
        )
    except (ConfigurationError, SnapshotFormatError, MartBuildError, FileNotFoundError) as exc:
        LOGGER.error("answer_question_failed", extra={"date": args.date, "error": str(exc)})
        return 1
    except Exception:  # pragma: no cover - unexpected failures
        LOGGER.exception("answer_question_unexpected_error", extra={"date": args.date})
        return 1

    if response is None:
        LOGGER.error("Snapshot date not found", extra={"date": args.date, "category": series.id})
        return 1
    print(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI guard
    raise SystemExit(main())
