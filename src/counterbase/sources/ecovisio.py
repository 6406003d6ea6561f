"""Eco-Visio API client: bearer-token auth, private flow queries and public data.

The private API is the one behind the Eco-Visio web dashboard. It wants a
bearer token obtained from ``/connect`` and browser-like request headers.
"""

from __future__ import annotations

import datetime
import threading
from dataclasses import dataclass
from typing import Any

import httpx

from counterbase.sources.base import SourceError
from counterbase.submit.models import Resolution
from counterbase.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://www.eco-visio.net/api/aladdin/1.0.0"

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:80.0) Gecko/20100101 Firefox/80.0",
    "Accept-Language": "en-US,en;q=0.5",
    "X-Requested-With": "XMLHttpRequest",
    "Origin": "https://www.eco-visio.net",
    "DNT": "1",
    "Referer": "https://www.eco-visio.net/v5/",
}

# Resolutions the query endpoint understands; anything else yields no data.
_QUERY_STEPS = {Resolution.HOUR: "hour", Resolution.DAY: "day"}
_PUBLIC_INTERVALS = {Resolution.HOUR: 3, Resolution.DAY: 4}

_ERROR_BODY_LIMIT = 100


@dataclass(frozen=True)
class Datapoint:
    """A count for one time bucket, ``time`` as ``YYYY-MM-DD HH:MM:SS`` local time."""

    time: str
    count: int


def _lower_keys(obj: dict[str, Any]) -> dict[str, Any]:
    return {k.lower(): v for k, v in obj.items()}


def _body_excerpt(response: httpx.Response) -> str:
    return response.content[:_ERROR_BODY_LIMIT].decode("utf-8", errors="replace")


class EcoVisioAuth:
    """Single-slot bearer token cache for one Eco-Visio account.

    The token has no expiry tracking: it is used until ``invalidate`` is
    called, after which the next ``token`` call logs in again. The lock is
    held across the login so concurrent callers wait for one login instead
    of racing.
    """

    def __init__(
        self,
        username: str,
        password: str,
        client: httpx.Client,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self._username = username
        self._password = password
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._lock = threading.Lock()
        self._token = ""

    def token(self) -> str:
        """Return the cached token, logging in first if the slot is empty."""
        with self._lock:
            if not self._token:
                # A failed login leaves the slot empty and propagates.
                self._token = self._login()
            return self._token

    def invalidate(self) -> None:
        with self._lock:
            self._token = ""

    def _login(self) -> str:
        logger.info("eco_visio_login", username=self._username)
        try:
            response = self._client.post(
                f"{self._base_url}/connect",
                json={"login": self._username, "password": self._password},
                headers=BROWSER_HEADERS,
            )
        except httpx.HTTPError as e:
            raise SourceError(f"eco visio auth request failed: {e}") from e

        if not response.is_success:
            raise SourceError(
                f"bad status {response.status_code} for eco visio auth: {_body_excerpt(response)}"
            )

        try:
            token = response.json().get("access_token", "")
        except ValueError as e:
            raise SourceError(f"decoding eco visio auth response: {e}") from e

        if not token:
            raise SourceError("eco visio auth response has no access_token")
        return token


class EcoVisioQuerier:
    """Queries summed counts for a set of flows in a private domain."""

    def __init__(
        self,
        auth: EcoVisioAuth,
        user_id: str,
        domain_id: str,
        flow_ids: list[str],
        client: httpx.Client,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self._auth = auth
        self._user_id = user_id
        self._domain_id = domain_id
        self._flow_ids = flow_ids
        self._client = client
        self._base_url = base_url.rstrip("/")

    def query(
        self,
        begin: datetime.date,
        end: datetime.date,
        resolution: Resolution,
    ) -> list[Datapoint]:
        """Return counts for the days ``begin`` through ``end`` inclusive.

        All flows are summed per time bucket. The result is sorted by time.
        A 401 invalidates the cached token so the next call logs in again;
        the failing call is not retried.
        """
        step = _QUERY_STEPS.get(resolution)
        if step is None:
            return []

        # Our end is inclusive, the API's is not.
        end = end + datetime.timedelta(days=1)

        url = (
            f"{self._base_url}/domain/{self._domain_id}/user/{self._user_id}"
            f"/query/from/{begin.isoformat()}%2000:00/to/{end.isoformat()}%2000:00/by/{step}"
        )

        try:
            flows = [int(fid) for fid in self._flow_ids]
        except ValueError as e:
            raise SourceError(f"bad flow id in {self._flow_ids}: {e}") from e

        token = self._auth.token()

        try:
            response = self._client.post(
                url,
                json={"flows": flows},
                headers={**BROWSER_HEADERS, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise SourceError(f"querying {self._flow_ids}: {e}") from e

        if response.status_code == httpx.codes.UNAUTHORIZED:
            self._auth.invalidate()
        if not response.is_success:
            raise SourceError(
                f"bad status {response.status_code} querying {self._flow_ids}: {_body_excerpt(response)}"
            )

        try:
            return merge_flows(response.json())
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            raise SourceError(f"decoding query response for {self._flow_ids}: {e}") from e


def merge_flows(body: dict[str, Any]) -> list[Datapoint]:
    """Sum ``countdata`` rows of every flow by time bucket, sorted by time."""
    totals: dict[str, int] = {}
    for flow in body.values():
        for row in _lower_keys(flow).get("countdata") or []:
            time_str, count = row[0], row[1]
            if count is None:
                continue
            totals[time_str] = totals.get(time_str, 0) + int(count)

    return [Datapoint(time=t, count=totals[t]) for t in sorted(totals)]


class EcoVisioPublicClient:
    """Unauthenticated access to counters published on a public web page."""

    def __init__(self, client: httpx.Client, base_url: str = DEFAULT_BASE_URL) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    def get_datapoints(
        self,
        counter_id: str,
        begin: datetime.date,
        end: datetime.date,
        resolution: Resolution,
    ) -> list[Datapoint]:
        """Fetch counts for a public counter for ``begin`` through ``end`` inclusive."""
        interval = _PUBLIC_INTERVALS.get(resolution)
        if interval is None:
            return []

        params = {
            "idPdc": counter_id,
            "interval": interval,
            "debut": begin.strftime("%d/%m/%Y"),
            "fin": (end + datetime.timedelta(days=1)).strftime("%d/%m/%Y"),
        }
        body = self._get_json(f"/pbl/publicwebpageplus/data/{counter_id}", params)

        totals: dict[str, int] = {}
        for row in body:
            row = _lower_keys(row)
            count = row.get("comptage")
            if count is None:
                continue
            # Either "2024-05-01 13:00:00" or "2024-05-01T13:00:00".
            time_str = str(row["date"]).replace("T", " ")[:19]
            totals[time_str] = totals.get(time_str, 0) + int(count)

        return [Datapoint(time=t, count=totals[t]) for t in sorted(totals)]

    def sites(self, organization_id: str) -> list[dict[str, Any]]:
        """List the counting sites on an organization's public page."""
        body = self._get_json(f"/pbl/publicwebpageplus/{organization_id}", {"withNull": "true"})
        return [_lower_keys(site) for site in body]

    def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        try:
            response = self._client.get(
                f"{self._base_url}{path}", params=params, headers=BROWSER_HEADERS
            )
        except httpx.HTTPError as e:
            raise SourceError(f"eco visio public request {path} failed: {e}") from e

        if response.status_code != httpx.codes.OK:
            raise SourceError(f"bad status {response.status_code} for {path}: {_body_excerpt(response)}")

        try:
            return response.json()
        except ValueError as e:
            raise SourceError(f"decoding {path} response: {e}") from e
