"""HTTP query client for a datasette-style SQL endpoint."""

from __future__ import annotations

import datetime
from collections.abc import Mapping

import httpx

from counterbase.sources.base import QueryPoint


class QueryError(Exception):
    """The query endpoint failed or returned something unusable."""


class HttpQuerier:
    """Runs read-only SQL through ``GET <url>?sql=...``.

    Named parameters (``:name`` in the SQL) are passed as extra query
    string arguments and bound server-side. Rows are ``[unix_seconds, value]``.
    """

    def __init__(self, url: str, timeout: float = 30.0, client: httpx.Client | None = None) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)

    def query(self, sql: str, params: Mapping[str, object]) -> list[QueryPoint]:
        try:
            response = self._client.get(self._url, params={"sql": sql, **params})
        except httpx.HTTPError as e:
            raise QueryError(f"query request failed: {e}") from e

        if response.status_code != httpx.codes.OK:
            raise QueryError(f"got bad status {response.status_code}")

        try:
            rows = response.json().get("rows") or []
            return [
                QueryPoint(
                    time=datetime.datetime.fromtimestamp(int(row[0]), datetime.timezone.utc),
                    value=float(row[1]),
                )
                for row in rows
            ]
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            raise QueryError(f"decoding query response: {e}") from e
