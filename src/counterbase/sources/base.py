"""Getter Protocol and the collaborator interfaces the crawler consumes."""

from __future__ import annotations

import datetime
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from urllib.parse import SplitResult

from counterbase.directory.models import Counter
from counterbase.submit.models import Point, SubmitRequest


@dataclass(frozen=True)
class GetRequest:
    """What a getter is asked for: one direction's source, newer than ``after``."""

    url: SplitResult
    after: datetime.datetime


@dataclass(frozen=True)
class QueryPoint:
    """A (time, value) row returned by a query sink."""

    time: datetime.datetime
    value: float


class SourceError(Exception):
    """Base exception for all getter failures."""


@runtime_checkable
class Getter(Protocol):
    """Protocol every source family must fulfill.

    Uses structural subtyping: any class with a matching ``get`` conforms
    without inheriting from this protocol.
    """

    def get(self, request: GetRequest) -> list[Point] | None:
        """Return points with ``time`` strictly after ``request.after``, ascending.

        ``None`` means no data is available for this source configuration
        and is not an error. Raises SourceError on failure.
        """
        ...


class Directory(Protocol):
    def counters(self) -> list[Counter]:
        ...


class Querier(Protocol):
    def query(self, sql: str, params: Mapping[str, object]) -> list[QueryPoint]:
        """Run a parameterized query returning (time, value) rows."""
        ...


class Submitter(Protocol):
    def submit(self, request: SubmitRequest) -> None:
        ...
