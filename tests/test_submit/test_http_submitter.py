"""Tests for the HTTP submitter."""

from __future__ import annotations

import json

import pytest
import respx
from httpx import Response

from counterbase.submit.http import HttpSubmitter, SubmitError
from counterbase.submit.models import Point, Resolution, SubmitRequest

URL = "https://counts.test/submit"


def make_request() -> SubmitRequest:
    return SubmitRequest(
        id="test-1",
        direction_id="nb",
        points=[Point(time=1_700_000_000, resolution=Resolution.DAY, value=12.0)],
    )


@respx.mock
def test_submit_posts_json():
    route = respx.post(URL).mock(return_value=Response(204))

    HttpSubmitter(URL).submit(make_request())

    assert json.loads(route.calls.last.request.content) == {
        "id": "test-1",
        "direction_id": "nb",
        "points": [{"time": 1_700_000_000, "resolution": 3, "value": 12.0}],
    }


@respx.mock
def test_submit_rejected():
    respx.post(URL).mock(return_value=Response(500))

    with pytest.raises(SubmitError, match="500"):
        HttpSubmitter(URL).submit(make_request())
