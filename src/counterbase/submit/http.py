"""HTTP submit client for a remote counterbase submit API."""

from __future__ import annotations

import httpx

from counterbase.submit.models import SubmitRequest


class SubmitError(Exception):
    """A submission was rejected or could not be delivered."""


class HttpSubmitter:
    """POSTs each SubmitRequest as JSON to the submit endpoint."""

    def __init__(self, url: str, timeout: float = 30.0, client: httpx.Client | None = None) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)

    def submit(self, request: SubmitRequest) -> None:
        try:
            response = self._client.post(
                self._url,
                content=request.model_dump_json(),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise SubmitError(f"submit for {request.id}/{request.direction_id} failed: {e}") from e

        if not response.is_success:
            raise SubmitError(
                f"bad status {response.status_code} submitting {request.id}/{request.direction_id}"
            )
