"""
Tests for the aiohttp-backed HttpFetcher.
"""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from etlcore.config import HttpSettings
from etlcore.fetchers.http import HttpFetcher, HttpResponse


def test_response_ok_range():
    assert HttpResponse(url="u", status=200, body=b"").ok
    assert HttpResponse(url="u", status=204, body=b"").ok
    assert not HttpResponse(url="u", status=301, body=b"").ok
    assert not HttpResponse(url="u", status=404, body=b"").ok


def test_from_settings():
    fetcher = HttpFetcher.from_settings(
        HttpSettings(timeout_s=2.5, max_concurrency=3, retry_attempts=4, user_agent="ua/1")
    )
    assert fetcher._timeout.total == 2.5
    assert fetcher._retry_attempts == 4
    assert fetcher._headers["User-Agent"] == "ua/1"


@pytest.mark.asyncio
async def test_request_requires_session():
    fetcher = HttpFetcher()
    with pytest.raises(RuntimeError, match="async with"):
        await fetcher.request("GET", "http://127.0.0.1/")


@pytest.mark.asyncio
async def test_request_reads_body(base_url):
    async with HttpFetcher(timeout_seconds=5) as fetcher:
        resp = await fetcher.request("GET", f"{base_url}/api/data")
    assert resp.status == 200
    assert resp.body == b'{"data": 42}'
    assert resp.content_type.startswith("application/json")
    assert resp.url == f"{base_url}/api/data"


@pytest.mark.asyncio
async def test_session_closed_on_exit(base_url):
    fetcher = HttpFetcher(timeout_seconds=5)
    async with fetcher:
        await fetcher.request("GET", f"{base_url}/api/data")
    with pytest.raises(RuntimeError):
        await fetcher.request("GET", f"{base_url}/api/data")


@pytest.mark.asyncio
async def test_single_attempt_by_default():
    fetcher = HttpFetcher()
    send = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
    with patch.object(fetcher, "_send", send):
        with pytest.raises(aiohttp.ClientConnectionError):
            await fetcher.request("GET", "http://example.invalid/")
    assert send.await_count == 1


@pytest.mark.asyncio
async def test_opt_in_retry_recovers_from_network_error():
    fetcher = HttpFetcher(retry_attempts=2)
    ok = HttpResponse(url="http://example.invalid/", status=200, body=b"{}")
    send = AsyncMock(side_effect=[aiohttp.ClientConnectionError("reset"), ok])
    with patch.object(fetcher, "_send", send):
        resp = await fetcher.request("GET", "http://example.invalid/")
    assert resp is ok
    assert send.await_count == 2


@pytest.mark.asyncio
async def test_opt_in_retry_gives_up():
    fetcher = HttpFetcher(retry_attempts=2)
    send = AsyncMock(side_effect=aiohttp.ClientConnectionError("down"))
    with patch.object(fetcher, "_send", send):
        with pytest.raises(aiohttp.ClientConnectionError):
            await fetcher.request("GET", "http://example.invalid/")
    assert send.await_count == 2


@pytest.mark.asyncio
async def test_error_status_is_never_retried(base_url, hits):
    async with HttpFetcher(timeout_seconds=5, retry_attempts=3) as fetcher:
        resp = await fetcher.request("GET", f"{base_url}/fail/data")
    assert resp.status == 500
    assert hits["/fail/data"] == 1
