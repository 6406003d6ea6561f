"""Loads the static counter directory from a JSON file or URL."""

from __future__ import annotations

import json
from pathlib import Path
from urllib.parse import urlsplit

import httpx
from pydantic import TypeAdapter, ValidationError

from counterbase.directory.models import Counter
from counterbase.utils.logging import get_logger

logger = get_logger(__name__)

_COUNTERS = TypeAdapter(list[Counter])


class DirectoryError(Exception):
    """The counter directory could not be loaded."""


class StaticDirectory:
    """A directory backed by an in-memory list of counters."""

    def __init__(self, counters: list[Counter]) -> None:
        self._counters = counters

    def counters(self) -> list[Counter]:
        return list(self._counters)


def parse_counters(raw: str | bytes) -> list[Counter]:
    try:
        return _COUNTERS.validate_json(raw)
    except ValidationError as e:
        raise DirectoryError(f"invalid counter directory: {e}") from e


def load_directory(url: str, timeout: float = 30.0) -> StaticDirectory:
    """Load counters from ``file://``, ``http(s)://`` or a plain path."""
    if not url:
        raise DirectoryError("no directory URL configured (set COUNTERBASE_DIRECTORY_URL)")

    parts = urlsplit(url)
    if parts.scheme in ("http", "https"):
        try:
            response = httpx.get(url, timeout=timeout, follow_redirects=True)
        except httpx.HTTPError as e:
            raise DirectoryError(f"fetching directory {url}: {e}") from e
        if response.status_code != httpx.codes.OK:
            raise DirectoryError(f"directory {url}: bad status {response.status_code}")
        counters = parse_counters(response.content)
    elif parts.scheme in ("file", ""):
        path = Path(parts.path if parts.scheme == "file" else url)
        try:
            counters = parse_counters(path.read_bytes())
        except OSError as e:
            raise DirectoryError(f"reading directory {path}: {e}") from e
    else:
        raise DirectoryError(f"unsupported directory URL scheme {parts.scheme!r}")

    logger.info("directory_loaded", counters=len(counters), source=url)
    return StaticDirectory(counters)


def dump_counters(counters: list[Counter]) -> str:
    """Serialize counters in the directory JSON format."""
    return json.dumps(_COUNTERS.dump_python(counters, mode="json"), indent=2)
