"""Tests for loading snapshot documents from disk."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from marketqa.io import SnapshotFormatError, load_category_series
from marketqa.tests.data import CATEGORY_ID, SNAPSHOT_DATES, build_category_payload


def _write(tmp_path: Path, document: object) -> Path:
    path = tmp_path / "snapshots.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def test_single_category_document(tmp_path: Path) -> None:
    series = load_category_series(_write(tmp_path, build_category_payload()))

    assert series.id == CATEGORY_ID
    assert [snapshot.date for snapshot in series.snapshots] == SNAPSHOT_DATES


def test_list_document_with_category_id(tmp_path: Path) -> None:
    other = dict(build_category_payload(), id="obd2_tablets")
    path = _write(tmp_path, [other, build_category_payload()])

    series = load_category_series(path, "Code_Readers")

    assert series.id == CATEGORY_ID


def test_wrapped_document(tmp_path: Path) -> None:
    path = _write(tmp_path, {"categories": [build_category_payload()]})

    assert load_category_series(path).id == CATEGORY_ID


def test_multiple_categories_need_an_id(tmp_path: Path) -> None:
    other = dict(build_category_payload(), id="obd2_tablets")
    path = _write(tmp_path, {"categories": [other, build_category_payload()]})

    with pytest.raises(SnapshotFormatError):
        load_category_series(path)


def test_unknown_category_id(tmp_path: Path) -> None:
    path = _write(tmp_path, build_category_payload())

    with pytest.raises(SnapshotFormatError):
        load_category_series(path, "battery_testers")


def test_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(SnapshotFormatError):
        load_category_series(path)


def test_unrecognised_shape(tmp_path: Path) -> None:
    with pytest.raises(SnapshotFormatError):
        load_category_series(_write(tmp_path, {"id": "x"}))


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_category_series(tmp_path / "absent.json")
