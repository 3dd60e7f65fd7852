"""
REST Client Tests

Status mapping and retry policy over a fake aiohttp session.
"""

import asyncio

import pytest

from config.structs import RestConfig
from infrastructure.exceptions.exchange import (
    ExchangeServerError,
    InvalidParameterError,
    RateLimitErrorRest,
)
from infrastructure.networking.http import RestClient


class FakeResponse:

    def __init__(self, status, body="", headers=None):
        self.status = status
        self.headers = headers or {}
        self._body = body

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:

    def __init__(self, responses):
        self.closed = False
        self.requests = []
        self._responses = list(responses)

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self._responses.pop(0)

    async def close(self):
        self.closed = True


def make_client(responses, **config):
    client = RestClient("https://api.test/", RestConfig(**config))
    client._session = FakeSession(responses)
    return client


class TestStatusMapping:

    def test_rate_limit_carries_retry_after(self):
        with pytest.raises(RateLimitErrorRest) as exc_info:
            RestClient._raise_for_status(429, "slow down", {"Retry-After": "3"})
        assert exc_info.value.retry_after == 3

    def test_rate_limit_without_header(self):
        with pytest.raises(RateLimitErrorRest) as exc_info:
            RestClient._raise_for_status(429, "slow down", {"Retry-After": "soon"})
        assert exc_info.value.retry_after is None

    def test_server_and_client_errors(self):
        with pytest.raises(ExchangeServerError):
            RestClient._raise_for_status(502, "bad gateway")
        with pytest.raises(InvalidParameterError):
            RestClient._raise_for_status(404, "not found")


class TestRequests:

    @pytest.mark.asyncio
    async def test_json_decoded(self):
        client = make_client([FakeResponse(200, '{"status": "OK", "data": []}')])

        assert await client.get("/api/v1/info/markets", params={"market": "BTC-USD"}) == {"status": "OK", "data": []}
        method, url, kwargs = client._session.requests[0]
        assert (method, url) == ("GET", "https://api.test/api/v1/info/markets")
        assert kwargs == {"params": {"market": "BTC-USD"}}

    @pytest.mark.asyncio
    async def test_retry_after_overrides_backoff(self):
        client = make_client(
            [FakeResponse(429, "slow down", {"Retry-After": "0"}), FakeResponse(200, "[1, 2]")],
            retry_delay=30.0,
        )

        result = await asyncio.wait_for(client.post("/info", json_data={"type": "metaAndAssetCtxs"}), timeout=1.0)

        assert result == [1, 2]
        assert len(client._session.requests) == 2

    @pytest.mark.asyncio
    async def test_rate_limit_exhausts_retries(self):
        client = make_client(
            [FakeResponse(429, "slow down", {"Retry-After": "0"}) for _ in range(2)],
            max_retries=1,
        )

        with pytest.raises(RateLimitErrorRest):
            await client.get("/info")

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        client = make_client([FakeResponse(400, "bad market")])

        with pytest.raises(InvalidParameterError):
            await client.get("/info")
        assert len(client._session.requests) == 1
