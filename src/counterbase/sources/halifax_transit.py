"""Halifax Transit daily ridership getter for ``hfxtransit:<route>`` sources.

The ridership dataset is one CSV covering every route, so it is downloaded
once per getter and served from memory afterwards. A failed download is
remembered and raised again on every later call rather than retried.
"""

from __future__ import annotations

import datetime
import io
import threading
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo

import httpx
import polars as pl

from counterbase.config.settings import HalifaxTransitSettings
from counterbase.directory.models import Counter, Direction, ServiceRange, Source
from counterbase.sources.base import GetRequest, SourceError
from counterbase.submit.models import Point, Resolution
from counterbase.utils.logging import get_logger

logger = get_logger(__name__)

DATE_COLUMN = "Route_Date"

# A route whose latest day trails the freshest route by more than this is
# considered discontinued.
STALE_AFTER = datetime.timedelta(days=7)


@dataclass
class TransitRoute:
    number: str
    name: str
    points: list[tuple[datetime.datetime, int]] = field(default_factory=list)


class HalifaxTransitGetter:
    """Serves per-route daily ridership from a single bulk CSV download."""

    source_name = "hfxtransit"

    def __init__(
        self,
        settings: HalifaxTransitSettings,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._csv_url = settings.csv_url
        self._tz = ZoneInfo(settings.timezone)
        self._client = client or httpx.Client(timeout=timeout)

        self._lock = threading.Lock()
        self._loaded = False
        self._error: SourceError | None = None
        self._routes: dict[str, TransitRoute] = {}

    def get(self, request: GetRequest) -> list[Point] | None:
        routes = self._load()
        route = routes.get(request.url.path)
        if route is None:
            return []

        return [
            Point(time=int(day.timestamp()), resolution=Resolution.DAY, value=float(count))
            for day, count in route.points
            if day > request.after
        ]

    def counters(self) -> list[Counter]:
        """Synthesize one directory counter per route in the dataset."""
        routes = self._load()
        if not routes:
            return []

        last_day = max(rt.points[-1][0] for rt in routes.values())

        counters = []
        for key in sorted(routes):
            rt = routes[key]
            first_day, route_last_day = rt.points[0][0], rt.points[-1][0]

            end = route_last_day.date() if last_day - route_last_day > STALE_AFTER else None
            service_range = ServiceRange(start=first_day.date(), end=end)

            counters.append(
                Counter(
                    id=rt.number,
                    name=rt.name,
                    mode="bus",
                    service_ranges=[service_range],
                    directions=[
                        Direction(
                            id="non",
                            name="nondirectional",
                            source=Source(url=f"hfxtransit:{rt.number}"),
                        )
                    ],
                )
            )
        return counters

    def _load(self) -> dict[str, TransitRoute]:
        with self._lock:
            if not self._loaded:
                try:
                    self._routes = self._fetch()
                except SourceError as e:
                    self._error = e
                except Exception as e:
                    self._error = SourceError(f"loading ridership CSV: {e!r}")
                    self._error.__cause__ = e
                self._loaded = True

        if self._error is not None:
            raise self._error
        return self._routes

    def _fetch(self) -> dict[str, TransitRoute]:
        logger.info("fetching_ridership", url=self._csv_url)

        try:
            response = self._client.get(self._csv_url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SourceError(f"ridership download failed: {e}") from e

        if response.status_code != httpx.codes.OK:
            raise SourceError(f"bad status {response.status_code} for ridership CSV")

        body = response.content
        try:
            columns = pl.read_csv(io.BytesIO(body), n_rows=0).columns
        except pl.exceptions.PolarsError as e:
            raise SourceError(f"reading ridership CSV header: {e}") from e
        if DATE_COLUMN not in columns:
            raise SourceError(f"{DATE_COLUMN} not in columns: {columns}")

        try:
            df = (
                pl.read_csv(io.BytesIO(body), infer_schema_length=0)
                .select(
                    pl.col("Route_Number").str.to_lowercase().alias("route"),
                    pl.col("Route_Name").alias("name"),
                    # e.g. "2023/04/01 00:00:00+00": only the date part counts
                    pl.col(DATE_COLUMN)
                    .str.extract(r"^\s*(\S+)", 1)
                    .str.to_date("%Y/%m/%d")
                    .alias("day"),
                    pl.col("Ridership_Total").str.strip_chars().cast(pl.Int64).alias("count"),
                )
                .sort(["route", "day"], maintain_order=True)
            )
        except pl.exceptions.PolarsError as e:
            raise SourceError(f"parsing ridership CSV: {e}") from e

        if df["day"].null_count() or df["count"].null_count():
            raise SourceError("ridership CSV has rows without a valid date or total")

        routes: dict[str, TransitRoute] = {}
        for (number,), group in df.group_by(["route"], maintain_order=True):
            days = [
                datetime.datetime.combine(d, datetime.time(), self._tz)
                for d in group["day"].to_list()
            ]
            routes[number] = TransitRoute(
                number=number,
                name=group["name"][0] or "",
                points=list(zip(days, group["count"].to_list())),
            )

        logger.info("ridership_loaded", routes=len(routes), rows=len(df))
        return routes
