"""Counter directory models."""

from __future__ import annotations

import datetime

from pydantic import BaseModel, Field, field_serializer, field_validator

_EPOCH = datetime.datetime.fromtimestamp(0, datetime.timezone.utc)


class ServiceRange(BaseModel):
    """A period during which a counter was collecting data.

    Directory JSON carries plain dates (``YYYY-MM-DD``), read as midnight
    UTC; ``null`` or ``""`` means unset. An unset ``end`` means the range is
    still open.
    """

    start: datetime.datetime | None = None
    end: datetime.datetime | None = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def _parse_service_date(cls, value: object) -> object:
        if value == "":
            return None
        if isinstance(value, str) and len(value) == 10:
            value = datetime.date.fromisoformat(value)
        if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
            return datetime.datetime.combine(value, datetime.time(), datetime.timezone.utc)
        return value

    @field_validator("start", "end")
    @classmethod
    def _assume_utc(cls, value: datetime.datetime | None) -> datetime.datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=datetime.timezone.utc)
        return value

    @field_serializer("start", "end")
    def _format_service_date(self, value: datetime.datetime | None) -> str | None:
        return value.strftime("%Y-%m-%d") if value is not None else None

    @property
    def start_time(self) -> datetime.datetime:
        return self.start if self.start is not None else _EPOCH


class Location(BaseModel):
    lon: float = 0.0
    lat: float = 0.0
    text: str = ""


class Source(BaseModel):
    url: str


class Direction(BaseModel):
    id: str
    name: str = ""
    source: Source


class Note(BaseModel):
    text: str


class Counter(BaseModel):
    id: str
    name: str = ""
    service_ranges: list[ServiceRange] = Field(default_factory=list)
    mode: str = ""
    location: Location = Field(default_factory=Location)
    directions: list[Direction] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        # Only the last range decides.
        return bool(self.service_ranges) and self.service_ranges[-1].end is None
