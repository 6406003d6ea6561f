"""Tests for the DuckDB counter store."""

from __future__ import annotations

import datetime
from pathlib import Path

import pytest

from counterbase.crawl.crawler import LATEST_POINT_SQL
from counterbase.storage.duckdb_store import DuckDBStore
from counterbase.submit.models import Point, Resolution, SubmitRequest

T0 = 1_700_000_000


def req(counter: str, direction: str, *values: tuple[int, float]) -> SubmitRequest:
    return SubmitRequest(
        id=counter,
        direction_id=direction,
        points=[Point(time=t, resolution=Resolution.HOUR, value=v) for t, v in values],
    )


@pytest.fixture
def store(duckdb_path: Path):
    with DuckDBStore(duckdb_path).connect() as db:
        yield db


def latest(store: DuckDBStore, counter: str, direction: str):
    return store.query(LATEST_POINT_SQL, {"counter_id": counter, "direction_id": direction})


def test_latest_point(store: DuckDBStore):
    store.submit(req("c1", "nb", (T0, 1.0), (T0 + 3600, 2.0)))
    store.submit(req("c1", "sb", (T0 + 7200, 9.0)))

    (point,) = latest(store, "c1", "nb")

    assert point.time == datetime.datetime.fromtimestamp(T0 + 3600, datetime.timezone.utc)
    assert point.value == 2.0


def test_no_points_stored(store: DuckDBStore):
    assert latest(store, "c1", "nb") == []


def test_resubmission_overwrites(store: DuckDBStore):
    store.submit(req("c1", "nb", (T0, 1.0), (T0 + 3600, 2.0)))
    store.submit(req("c1", "nb", (T0 + 3600, 5.0), (T0 + 7200, 6.0)))

    df = store.to_polars("SELECT time, value FROM counter_data ORDER BY time")

    assert df["time"].to_list() == [T0, T0 + 3600, T0 + 7200]
    assert df["value"].to_list() == [1.0, 5.0, 6.0]


def test_empty_submission_is_noop(store: DuckDBStore):
    store.submit(req("c1", "nb"))
    assert store.counter_summary().is_empty()


def test_parameters_are_not_interpolated(store: DuckDBStore):
    store.submit(req("o'brien", "nb", (T0, 1.0)))
    assert len(latest(store, "o'brien", "nb")) == 1


def test_cast_syntax_survives_placeholder_rewrite(store: DuckDBStore):
    store.submit(req("c1", "nb", (T0, 1.0)))
    rows = store.query(
        "SELECT time, value::DOUBLE FROM counter_data WHERE counter_id = :counter_id",
        {"counter_id": "c1"},
    )
    assert [r.value for r in rows] == [1.0]


def test_summary_and_latest_points(store: DuckDBStore):
    store.submit(req("c1", "nb", (T0, 1.0), (T0 + 3600, 2.0)))
    store.submit(req("c2", "non", (T0, 3.0)))

    summary = store.counter_summary()
    assert summary["counter_id"].to_list() == ["c1", "c2"]
    assert summary["points"].to_list() == [2, 1]

    recent = store.latest_points("c1", rows=1)
    assert recent["value"].to_list() == [2.0]


def test_data_persists_across_connections(duckdb_path: Path):
    store = DuckDBStore(duckdb_path)
    with store.connect():
        store.submit(req("c1", "nb", (T0, 1.0)))
    with store.connect():
        assert len(latest(store, "c1", "nb")) == 1
