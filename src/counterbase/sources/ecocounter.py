"""Eco-Counter getter for ``ecocounter://`` direction sources.

Two URL forms are understood:

- ``ecocounter://public/<counter id>``: a counter on a public Eco-Visio page.
- ``ecocounter://private/<domain>/<flow id>``: a flow in a private domain,
  using credentials registered with ``add_private_domain``.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from zoneinfo import ZoneInfo

import httpx

from counterbase.config.settings import EcoVisioSettings
from counterbase.directory.models import Counter, Location, ServiceRange
from counterbase.sources.base import GetRequest, SourceError
from counterbase.sources.ecovisio import (
    Datapoint,
    EcoVisioAuth,
    EcoVisioPublicClient,
    EcoVisioQuerier,
)
from counterbase.submit.models import Point, Resolution
from counterbase.utils.logging import get_logger

logger = get_logger(__name__)

_DATAPOINT_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class EcoCounterPrivateDomain:
    name: str
    user_id: str
    domain_id: str
    auth: EcoVisioAuth


class EcoCounterGetter:
    """Fetches hourly counts from Eco-Visio, public or private."""

    source_name = "ecocounter"

    def __init__(
        self,
        settings: EcoVisioSettings,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = settings.base_url
        self._tz = ZoneInfo(settings.timezone)
        self._client = client or httpx.Client(timeout=timeout)
        self._public = EcoVisioPublicClient(self._client, self._base_url)
        self._private_domains: dict[str, EcoCounterPrivateDomain] = {}

    def add_private_domain(
        self,
        name: str,
        username: str,
        password: str,
        user_id: str,
        domain_id: str,
    ) -> None:
        """Register credentials for ``ecocounter://private/<name>/...`` sources."""
        auth = EcoVisioAuth(username, password, self._client, self._base_url)
        self._private_domains[name] = EcoCounterPrivateDomain(
            name=name, user_id=user_id, domain_id=domain_id, auth=auth
        )

    @property
    def private_domains(self) -> list[str]:
        return sorted(self._private_domains)

    def get(self, request: GetRequest) -> list[Point] | None:
        url = request.url
        begin = request.after.astimezone(self._tz).date()
        end = datetime.datetime.now(self._tz).date()

        if url.netloc == "public":
            dps = self._public.get_datapoints(url.path.strip("/"), begin, end, Resolution.HOUR)
        elif url.netloc == "private":
            parts = url.path.strip("/").split("/")
            if len(parts) != 2:
                raise SourceError(f"bad path in URL {url.geturl()!r}")
            domain_name, flow_id = parts

            domain = self._private_domains.get(domain_name)
            if domain is None:
                logger.warning(
                    "private_domain_not_configured",
                    url=url.geturl(),
                    domain=domain_name,
                )
                return None

            querier = EcoVisioQuerier(
                auth=domain.auth,
                user_id=domain.user_id,
                domain_id=domain.domain_id,
                flow_ids=[flow_id],
                client=self._client,
                base_url=self._base_url,
            )
            dps = querier.query(begin, end, Resolution.HOUR)
        else:
            logger.warning("url_not_handled", url=url.geturl())
            return None

        return self._to_points(dps, request.after)

    def _to_points(self, dps: list[Datapoint], after: datetime.datetime) -> list[Point]:
        points = []
        for dp in dps:
            try:
                t = datetime.datetime.strptime(dp.time, _DATAPOINT_FORMAT).replace(tzinfo=self._tz)
            except ValueError as e:
                raise SourceError(f"invalid datapoint time {dp.time!r}") from e
            if t <= after:
                continue
            points.append(
                Point(time=int(t.timestamp()), resolution=Resolution.HOUR, value=float(dp.count))
            )
        return points

    def counters(self, organization_id: str) -> list[Counter]:
        """Describe the counters on an organization's public page."""
        counters = []
        for site in self._public.sites(organization_id):
            try:
                start = datetime.datetime.strptime(site["debut"], "%m/%d/%Y").date()
            except (KeyError, TypeError, ValueError) as e:
                raise SourceError(f"bad start date for site {site.get('idpdc')}: {e}") from e

            counters.append(
                Counter(
                    id=f"counter-{site['idpdc']}",
                    name=site.get("nom") or "",
                    location=Location(lon=site.get("lon") or 0.0, lat=site.get("lat") or 0.0),
                    service_ranges=[ServiceRange(start=start)],
                )
            )
        return counters
