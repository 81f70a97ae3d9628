"""Atlas Measurement Client — retry/backoff behaviour against a mocked transport.

Tests cover:
    - Success: POST body is a ping definition, Authorization uses the key
    - 5xx then success: transient retry
    - 4xx: immediate FeedConnectionError, single request
    - 429 exhaustion: FeedConnectionError carrying Retry-After in ms
"""

import json

import httpx
import pytest

from latency_monitor.core.errors import FeedConnectionError
from latency_monitor.infrastructure.atlas_client import (
    AtlasMeasurementClient,
    build_ping_definition,
)


def make_client(handler, max_retries=2):
    return AtlasMeasurementClient(
        "secret-key",
        base_url="https://atlas.test/api/v2/",
        max_retries=max_retries,
        base_delay_ms=1,
        max_delay_ms=2,
        transport=httpx.MockTransport(handler),
    )


def test_ping_definition_shape():
    body = build_ping_definition("api.binance.com")
    (definition,) = body["definitions"]
    assert definition["type"] == "ping"
    assert definition["target"] == "api.binance.com"
    assert body["is_oneoff"] is False


async def test_create_measurement_success():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(201, json={"measurements": [1234]})

    client = make_client(handler)
    try:
        ids = await client.create_ping_measurement("okx.com")
    finally:
        await client.aclose()

    assert ids == [1234]
    (request,) = requests
    assert request.method == "POST"
    assert request.url.path == "/api/v2/measurements/"
    assert request.headers["Authorization"] == "Key secret-key"
    assert json.loads(request.content)["definitions"][0]["target"] == "okx.com"


async def test_server_error_is_retried():
    responses = [httpx.Response(503), httpx.Response(201, json={"measurements": [7]})]

    def handler(request):
        return responses.pop(0)

    client = make_client(handler)
    try:
        assert await client.create_ping_measurement("okx.com") == [7]
    finally:
        await client.aclose()
    assert responses == []


async def test_transport_error_is_retried():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(201, json={"measurements": [8]})

    client = make_client(handler)
    try:
        assert await client.create_ping_measurement("okx.com") == [8]
    finally:
        await client.aclose()
    assert len(calls) == 2


async def test_client_error_fails_immediately():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, text="bad target")

    client = make_client(handler)
    try:
        with pytest.raises(FeedConnectionError) as exc:
            await client.create_ping_measurement("nope")
    finally:
        await client.aclose()
    assert len(calls) == 1
    assert "bad target" in exc.value.message


async def test_rate_limit_exhaustion_reports_retry_after(monkeypatch):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(
        "latency_monitor.infrastructure.atlas_client.asyncio.sleep", fake_sleep,
    )

    def handler(request):
        return httpx.Response(429, headers={"Retry-After": "3"})

    client = make_client(handler, max_retries=1)
    try:
        with pytest.raises(FeedConnectionError) as exc:
            await client.create_ping_measurement("okx.com")
    finally:
        await client.aclose()
    assert exc.value.context.retry_after_ms == 3000
    assert sleeps == [3.0]
