"""Tests for the httpx-based marketplace fetcher."""

import asyncio

import httpx
import pytest

from core.session_manager import SessionManager
from core.types import PipelineConfig
from network.httpx_scraper import JSON_ACCEPT, MarketplaceFetcher
from utils.error_handling import NetworkError, UpstreamTimeout


@pytest.mark.asyncio
async def test_requests_carry_identity_and_browser_headers(session: SessionManager, marketplace_stub) -> None:
    async with MarketplaceFetcher(session, transport=marketplace_stub.transport()) as fetcher:
        result = await fetcher.fetch("https://www.dhgate.com/product/x/1.html", stage="page fetch")

    assert result.ok
    request = marketplace_stub.requests[0]
    assert request.headers["cookie"] == session.get_identity()
    assert request.headers["user-agent"] == session.config.user_agent
    assert request.headers["referer"] == "https://www.dhgate.com"
    assert request.headers["sec-fetch-mode"] == "navigate"
    assert request.headers["accept"].startswith("text/html")


@pytest.mark.asyncio
async def test_identity_is_stable_across_requests(session: SessionManager, marketplace_stub) -> None:
    async with MarketplaceFetcher(session, transport=marketplace_stub.transport()) as fetcher:
        await fetcher.fetch("https://www.dhgate.com/a.html", stage="page fetch")
        await fetcher.fetch("https://www.dhgate.com/b.html", stage="page fetch")

    cookies = {request.headers["cookie"] for request in marketplace_stub.requests}
    assert len(cookies) == 1


@pytest.mark.asyncio
async def test_json_accept_sets_content_type(session: SessionManager, marketplace_stub) -> None:
    async with MarketplaceFetcher(session, transport=marketplace_stub.transport()) as fetcher:
        await fetcher.fetch(
            "https://www.dhgate.com/prod/ajax/recom.do",
            stage="recommendations",
            accept=JSON_ACCEPT,
            params={"itemcode": "1"},
        )

    request = marketplace_stub.requests[0]
    assert request.headers["accept"] == JSON_ACCEPT
    assert request.headers["content-type"] == JSON_ACCEPT
    assert request.url.params["itemcode"] == "1"


@pytest.mark.asyncio
async def test_non_success_status_is_returned_not_raised(session: SessionManager) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(503, text="maintenance"))

    async with MarketplaceFetcher(session, transport=transport) as fetcher:
        result = await fetcher.fetch("https://www.dhgate.com/a.html", stage="page fetch")

    assert result.status_code == 503
    assert result.text == "maintenance"
    assert not result.ok
    assert fetcher.metrics.failed_requests == 1


@pytest.mark.asyncio
async def test_slow_upstream_raises_timeout() -> None:
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, text="late")

    session = SessionManager(PipelineConfig(request_timeout_seconds=0.05))
    async with MarketplaceFetcher(session, transport=httpx.MockTransport(slow)) as fetcher:
        with pytest.raises(UpstreamTimeout) as excinfo:
            await fetcher.fetch("https://www.dhgate.com/a.html", stage="reviews")

    assert excinfo.value.stage == "reviews"
    assert excinfo.value.http_status == 504
    assert fetcher.metrics.timed_out_requests == 1


@pytest.mark.asyncio
async def test_exhausted_deadline_raises_without_request(session: SessionManager, marketplace_stub) -> None:
    async with MarketplaceFetcher(session, transport=marketplace_stub.transport()) as fetcher:
        with pytest.raises(UpstreamTimeout):
            await fetcher.fetch("https://www.dhgate.com/a.html", stage="page fetch", timeout=0)

    assert marketplace_stub.requests == []


@pytest.mark.asyncio
async def test_transport_failure_raises_network_error(session: SessionManager) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with MarketplaceFetcher(session, transport=httpx.MockTransport(refuse)) as fetcher:
        with pytest.raises(NetworkError) as excinfo:
            await fetcher.fetch("https://www.dhgate.com/a.html", stage="page fetch")

    assert excinfo.value.http_status == 502
    assert "connection refused" in str(excinfo.value)


@pytest.mark.asyncio
async def test_fetch_requires_started_client(session: SessionManager) -> None:
    fetcher = MarketplaceFetcher(session)

    with pytest.raises(RuntimeError):
        await fetcher.fetch("https://www.dhgate.com/a.html", stage="page fetch")
