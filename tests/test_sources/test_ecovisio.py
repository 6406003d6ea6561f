"""Tests for the Eco-Visio auth cache, flow querier and public client."""

from __future__ import annotations

import datetime
import json
import threading

import httpx
import pytest
import respx
from httpx import Response

from counterbase.sources.base import SourceError
from counterbase.sources.ecovisio import (
    Datapoint,
    EcoVisioAuth,
    EcoVisioPublicClient,
    EcoVisioQuerier,
    merge_flows,
)
from counterbase.submit.models import Resolution

BASE = "https://eco.test/api"
QUERY_PREFIX = f"{BASE}/domain/77/user/5/query/from/"


@pytest.fixture
def client() -> httpx.Client:
    return httpx.Client()


@pytest.fixture
def auth(client: httpx.Client) -> EcoVisioAuth:
    return EcoVisioAuth("alice", "s3cret", client, BASE)


def make_querier(auth, client, flows=("101",)) -> EcoVisioQuerier:
    return EcoVisioQuerier(
        auth=auth, user_id="5", domain_id="77", flow_ids=list(flows), client=client, base_url=BASE
    )


@respx.mock
def test_token_is_cached(auth: EcoVisioAuth):
    login = respx.post(f"{BASE}/connect").mock(
        return_value=Response(200, json={"access_token": "tok-1"})
    )

    assert auth.token() == "tok-1"
    assert auth.token() == "tok-1"
    assert login.call_count == 1
    assert json.loads(login.calls.last.request.content) == {"login": "alice", "password": "s3cret"}


@respx.mock
def test_failed_login_leaves_slot_empty(auth: EcoVisioAuth):
    login = respx.post(f"{BASE}/connect")
    login.side_effect = [
        Response(403, text="denied"),
        Response(200, json={"access_token": "tok-2"}),
    ]

    with pytest.raises(SourceError, match="403"):
        auth.token()

    assert auth.token() == "tok-2"
    assert login.call_count == 2


@respx.mock
def test_login_without_token_fails(auth: EcoVisioAuth):
    respx.post(f"{BASE}/connect").mock(return_value=Response(200, json={}))

    with pytest.raises(SourceError, match="access_token"):
        auth.token()


@respx.mock
def test_invalidate_forces_new_login(auth: EcoVisioAuth):
    login = respx.post(f"{BASE}/connect")
    login.side_effect = [
        Response(200, json={"access_token": "old"}),
        Response(200, json={"access_token": "new"}),
    ]

    assert auth.token() == "old"
    auth.invalidate()
    assert auth.token() == "new"


@respx.mock
def test_query_sums_flows_and_extends_end(auth, client):
    respx.post(f"{BASE}/connect").mock(return_value=Response(200, json={"access_token": "tok"}))
    query = respx.post(url__startswith=QUERY_PREFIX).mock(
        return_value=Response(
            200,
            json={
                "101": {"countData": [["2024-03-05 10:00:00", 3], ["2024-03-05 09:00:00", 1]]},
                "102": {"countData": [["2024-03-05 10:00:00", 4], ["2024-03-05 11:00:00", None]]},
            },
        )
    )

    dps = make_querier(auth, client, flows=("101", "102")).query(
        datetime.date(2024, 3, 4), datetime.date(2024, 3, 5), Resolution.HOUR
    )

    assert dps == [
        Datapoint(time="2024-03-05 09:00:00", count=1),
        Datapoint(time="2024-03-05 10:00:00", count=7),
    ]

    request = query.calls.last.request
    assert str(request.url).endswith("/from/2024-03-04%2000:00/to/2024-03-06%2000:00/by/hour")
    assert request.headers["Authorization"] == "Bearer tok"
    assert json.loads(request.content) == {"flows": [101, 102]}


@respx.mock
def test_query_unauthorized_invalidates_token(auth, client):
    login = respx.post(f"{BASE}/connect").mock(return_value=Response(200, json={"access_token": "tok"}))
    respx.post(url__startswith=QUERY_PREFIX).mock(return_value=Response(401, text="expired"))

    querier = make_querier(auth, client)
    day = datetime.date(2024, 3, 5)
    for _ in range(2):
        with pytest.raises(SourceError, match="401"):
            querier.query(day, day, Resolution.DAY)

    assert login.call_count == 2


@respx.mock
def test_query_error_body_is_truncated(auth, client):
    respx.post(f"{BASE}/connect").mock(return_value=Response(200, json={"access_token": "tok"}))
    respx.post(url__startswith=QUERY_PREFIX).mock(return_value=Response(500, text="x" * 500))

    with pytest.raises(SourceError) as excinfo:
        make_querier(auth, client).query(
            datetime.date(2024, 3, 5), datetime.date(2024, 3, 5), Resolution.HOUR
        )

    assert "x" * 100 in str(excinfo.value)
    assert "x" * 101 not in str(excinfo.value)


@respx.mock
def test_query_unsupported_resolution_is_empty(auth, client):
    day = datetime.date(2024, 3, 5)
    assert make_querier(auth, client).query(day, day, Resolution.MINUTE) == []
    assert not respx.calls


def test_merge_flows_handles_missing_countdata():
    assert merge_flows({"101": {}, "102": {"countdata": None}}) == []


@respx.mock
def test_public_datapoints(client):
    route = respx.get(f"{BASE}/pbl/publicwebpageplus/data/100012345").mock(
        return_value=Response(
            200,
            json=[
                {"date": "2024-03-05T10:00:00", "comptage": 12},
                {"date": "2024-03-05T09:00:00", "comptage": 8},
                {"date": "2024-03-05T11:00:00", "comptage": None},
            ],
        )
    )

    dps = EcoVisioPublicClient(client, BASE).get_datapoints(
        "100012345", datetime.date(2024, 3, 4), datetime.date(2024, 3, 5), Resolution.HOUR
    )

    assert dps == [
        Datapoint(time="2024-03-05 09:00:00", count=8),
        Datapoint(time="2024-03-05 10:00:00", count=12),
    ]
    params = route.calls.last.request.url.params
    assert params["idPdc"] == "100012345"
    assert params["interval"] == "3"
    assert params["debut"] == "04/03/2024"
    assert params["fin"] == "06/03/2024"


@respx.mock
def test_public_bad_status(client):
    respx.get(f"{BASE}/pbl/publicwebpageplus/42").mock(return_value=Response(404))

    with pytest.raises(SourceError, match="404"):
        EcoVisioPublicClient(client, BASE).sites("42")


@respx.mock
def test_concurrent_callers_share_one_login(auth: EcoVisioAuth):
    started = threading.Event()
    release = threading.Event()

    def held_login(request):
        started.set()
        release.wait(5)
        return Response(200, json={"access_token": "shared"})

    login = respx.post(f"{BASE}/connect").mock(side_effect=held_login)

    tokens: list[str] = []
    threads = [threading.Thread(target=lambda: tokens.append(auth.token())) for _ in range(8)]
    for t in threads:
        t.start()
    assert started.wait(5)
    release.set()
    for t in threads:
        t.join(5)

    assert tokens == ["shared"] * 8
    assert login.call_count == 1
