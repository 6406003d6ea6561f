"""Incremental crawler: one pass over every active counter direction.

For each direction the crawler works out where the stored series ends,
asks the getter registered for the source URL scheme for anything newer,
and submits the result. Getter failures are collected and reported at the
end of the pass; configuration problems and sink failures stop the pass.
"""

from __future__ import annotations

import datetime
from urllib.parse import urlsplit

from counterbase.directory.models import Counter, Direction
from counterbase.sources.base import Directory, Getter, GetRequest, Querier, Submitter
from counterbase.submit.models import SubmitRequest
from counterbase.utils.logging import get_logger

logger = get_logger(__name__)

LATEST_POINT_SQL = (
    "select time, value from latest_counter_data"
    " where counter_id = :counter_id and direction_id = :direction_id"
)

BACKDATE_TAG = "backdate1d"


class CrawlError(Exception):
    """A crawl pass could not be completed."""


class FetchErrors(CrawlError):
    """One or more directions failed to fetch; the rest of the pass completed."""

    def __init__(self, errors: list[Exception]) -> None:
        self.errors = errors
        super().__init__("\n".join(str(e) for e in errors))


class Crawler:
    """Runs crawl passes against a directory, a latest-point querier and a submitter."""

    def __init__(self, directory: Directory, querier: Querier, submitter: Submitter) -> None:
        self.directory = directory
        self.querier = querier
        self.submitter = submitter
        self._getters: dict[str, Getter] = {}

    def add_getter(self, scheme: str, getter: Getter) -> None:
        """Route direction sources with URL scheme ``scheme`` to ``getter``."""
        self._getters[scheme] = getter

    def run(self) -> None:
        """Perform one pass over all active counters.

        Raises CrawlError right away for an unparseable or unroutable source
        URL. Querier and submitter exceptions propagate unchanged. Getter
        failures are logged, skipped, and raised together as FetchErrors once
        every direction has been visited.
        """
        counters = self.directory.counters()
        logger.info("crawl_started", counters=len(counters))

        fetch_errors: list[Exception] = []
        submitted = 0
        for ctr in counters:
            if not ctr.is_active:
                continue

            for direction in ctr.directions:
                getter, url = self._route(ctr, direction)
                after = self.cutoff(ctr, direction)

                try:
                    points = getter.get(GetRequest(url=url, after=after))
                except Exception as e:
                    logger.error(
                        "fetch_failed",
                        counter=ctr.id,
                        direction=direction.id,
                        after=after.isoformat(),
                        error=str(e),
                    )
                    fetch_errors.append(
                        CrawlError(
                            f"get for counter {ctr.id!r} direction {direction.id!r} "
                            f"after {after.isoformat()}: {e}"
                        )
                    )
                    continue

                # Getters are expected to filter already; the boundary point is
                # never resubmitted.
                cutoff = after.timestamp()
                points = [p for p in points or [] if p.time > cutoff]

                self.submitter.submit(
                    SubmitRequest(id=ctr.id, direction_id=direction.id, points=points)
                )
                submitted += len(points)
                logger.debug(
                    "direction_crawled",
                    counter=ctr.id,
                    direction=direction.id,
                    points=len(points),
                )

        logger.info("crawl_finished", points=submitted, failures=len(fetch_errors))
        if fetch_errors:
            raise FetchErrors(fetch_errors)

    def _route(self, ctr: Counter, direction: Direction):
        source_url = direction.source.url
        try:
            url = urlsplit(source_url)
        except ValueError as e:
            raise CrawlError(
                f"bad source URL {source_url!r} for counter {ctr.id!r} direction {direction.id!r}: {e}"
            ) from e

        getter = self._getters.get(url.scheme) if url.scheme else None
        if getter is None:
            raise CrawlError(
                f"no getter for active counter {ctr.id!r} direction {direction.id!r} "
                f"source URL {source_url!r}"
            )
        return getter, url

    def cutoff(self, ctr: Counter, direction: Direction) -> datetime.datetime:
        """Exclusive lower bound for new points of one counter direction.

        Defaults to a minute before the current service range started, or
        the time of the latest stored point when there is one. Counters tagged
        ``backdate1d`` with stored points go back one more day so revised
        figures are refetched.
        """
        after = ctr.service_ranges[-1].start_time - datetime.timedelta(minutes=1)

        latest = self.querier.query(
            LATEST_POINT_SQL,
            {"counter_id": ctr.id, "direction_id": direction.id},
        )
        if latest:
            after = latest[0].time
            if BACKDATE_TAG in ctr.tags:
                after -= datetime.timedelta(days=1)
                logger.info("backdating", counter=ctr.id, direction=direction.id, after=after.isoformat())

        return after
