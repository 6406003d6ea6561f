"""Normalized point and submission request models."""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, Field


class Resolution(IntEnum):
    MINUTE = 1
    HOUR = 2
    DAY = 3


class Point(BaseModel):
    """A count at a unix timestamp (seconds)."""

    time: int
    resolution: Resolution
    value: float


class SubmitRequest(BaseModel):
    """The points for one counter direction, handed to a submitter.

    Sinks upsert by ``time`` so overlapping re-fetches are safe. An empty
    ``points`` list is valid and a no-op.
    """

    id: str
    direction_id: str
    points: list[Point] = Field(default_factory=list)
