"""DuckDB-backed counter store: submit sink and latest-point query sink."""

from __future__ import annotations

import datetime
import re
import threading
from collections.abc import Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import duckdb
import polars as pl

from counterbase.sources.base import QueryPoint
from counterbase.submit.models import SubmitRequest
from counterbase.utils.logging import get_logger

logger = get_logger(__name__)

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS counter_data (
        counter_id VARCHAR NOT NULL,
        direction_id VARCHAR NOT NULL,
        time BIGINT NOT NULL,
        resolution INTEGER NOT NULL,
        value DOUBLE NOT NULL,
        PRIMARY KEY (counter_id, direction_id, time)
    )
    """,
    """
    CREATE OR REPLACE VIEW latest_counter_data AS
    WITH latest_times AS (
        SELECT counter_id, direction_id, max(time) AS time
        FROM counter_data
        GROUP BY 1, 2
    )
    SELECT counter_data.*
    FROM counter_data, latest_times
    WHERE counter_data.counter_id = latest_times.counter_id
      AND counter_data.direction_id = latest_times.direction_id
      AND counter_data.time = latest_times.time
    """,
]

# ":name" placeholders (sqlite / datasette style) become DuckDB "$name".
# "::" casts are left alone.
_NAMED_PARAM = re.compile(r"(?<![:\w]):(\w+)")


class DuckDBStore:
    """Stores points in a local DuckDB file.

    Points are upserted by (counter_id, direction_id, time), so re-submitting
    an overlapping window only overwrites values.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._lock = threading.Lock()

    @contextmanager
    def connect(self) -> Generator[DuckDBStore, None, None]:
        """Context manager for the connection lifecycle; creates the schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = duckdb.connect(str(self._db_path))
        try:
            for statement in _SCHEMA:
                self._conn.execute(statement)
            yield self
        finally:
            self._conn.close()
            self._conn = None

    def _connection(self) -> duckdb.DuckDBPyConnection:
        assert self._conn is not None, "Not connected. Use `with store.connect():`"
        return self._conn

    def submit(self, request: SubmitRequest) -> None:
        """Upsert all points of a request in one transaction."""
        if not request.points:
            return

        rows = [
            (request.id, request.direction_id, pt.time, int(pt.resolution), pt.value)
            for pt in request.points
        ]

        conn = self._connection()
        with self._lock:
            conn.begin()
            try:
                conn.executemany("INSERT OR REPLACE INTO counter_data VALUES (?, ?, ?, ?, ?)", rows)
                conn.commit()
            except duckdb.Error:
                conn.rollback()
                raise

        times = [pt.time for pt in request.points]
        logger.info(
            "points_added",
            counter=request.id,
            direction=request.direction_id,
            points=len(rows),
            first=min(times),
            last=max(times),
            total=sum(pt.value for pt in request.points),
        )

    def query(self, sql: str, params: Mapping[str, object]) -> list[QueryPoint]:
        """Run a parameterized query whose rows are (unix_seconds, value)."""
        conn = self._connection()
        with self._lock:
            rows = conn.execute(_NAMED_PARAM.sub(r"$\1", sql), dict(params)).fetchall()

        return [
            QueryPoint(
                time=datetime.datetime.fromtimestamp(int(t), datetime.timezone.utc),
                value=float(v),
            )
            for t, v in rows
        ]

    def to_polars(self, sql: str, params: Mapping[str, object] | None = None) -> pl.DataFrame:
        """Execute SQL and return a Polars DataFrame."""
        conn = self._connection()
        with self._lock:
            return conn.execute(_NAMED_PARAM.sub(r"$\1", sql), dict(params) if params else None).pl()

    def counter_summary(self) -> pl.DataFrame:
        """Point counts and time ranges per counter direction."""
        return self.to_polars(
            """
            SELECT counter_id, direction_id, count(*) AS points,
                   to_timestamp(min(time)) AS first_time, to_timestamp(max(time)) AS last_time
            FROM counter_data
            GROUP BY 1, 2
            ORDER BY 1, 2
            """
        )

    def latest_points(self, counter_id: str, rows: int = 10) -> pl.DataFrame:
        """The most recent points of a counter, newest first."""
        return self.to_polars(
            f"""
            SELECT direction_id, to_timestamp(time) AS ts, resolution, value
            FROM counter_data
            WHERE counter_id = :counter_id
            ORDER BY time DESC
            LIMIT {int(rows)}
            """,
            {"counter_id": counter_id},
        )
