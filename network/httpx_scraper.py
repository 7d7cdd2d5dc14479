"""
HTTP fetcher for marketplace pages and JSON endpoints built on httpx.

Every call carries a fixed browser-like header set plus the memoized
session identity; the marketplace rejects headerless requests.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Any, Mapping

import httpx

from core.session_manager import SessionManager
from core.types import FetchResult, PipelineConfig
from utils.error_handling import NetworkError, UpstreamTimeout
from utils.logger import get_logger


BROWSER_HEADERS: Dict[str, str] = {
    "accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "accept-language": "en-US,en;q=0.9",
    "cache-control": "no-cache",
    "pragma": "no-cache",
    "sec-ch-ua": '"Chromium";v="130", "Google Chrome";v="130", "Not?A_Brand";v="99"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"macOS"',
    "sec-fetch-dest": "document",
    "sec-fetch-mode": "navigate",
    "sec-fetch-site": "none",
    "sec-fetch-user": "?1",
    "upgrade-insecure-requests": "1",
}

JSON_ACCEPT = "application/json"


@dataclass
class ScrapeMetrics:
    """Metrics for tracking fetch performance"""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    timed_out_requests: int = 0
    response_times: List[float] = None

    def __post_init__(self):
        if self.response_times is None:
            self.response_times = []

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests

    @property
    def avg_response_time(self) -> float:
        if not self.response_times:
            return 0.0
        return sum(self.response_times) / len(self.response_times)


class MarketplaceFetcher:
    """
    Async fetcher with a hard wall-clock cap per call.

    Non-2xx responses are handed back to the caller with their full body so
    that upstream stages can report diagnostic detail. Only timeouts and
    transport failures raise.
    """

    def __init__(
        self,
        session: SessionManager,
        config: Optional[PipelineConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session
        self.config = config or session.config
        self.logger = get_logger(__name__)
        self.metrics = ScrapeMetrics()
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None
        self._owns_client = False

    def _get_httpx_client_config(self) -> Dict[str, Any]:
        """Build httpx client configuration from settings"""
        client_config: Dict[str, Any] = {
            # Deadlines are enforced per call with asyncio.wait_for.
            "timeout": httpx.Timeout(None),
            "limits": httpx.Limits(
                max_keepalive_connections=20,
                max_connections=50,
                keepalive_expiry=60.0,
            ),
            "http2": self.config.http2,
            "verify": self.config.verify_ssl,
            "follow_redirects": True,
        }
        if self._transport is not None:
            client_config["transport"] = self._transport
        return client_config

    def build_headers(
        self, accept: Optional[str] = None, extra: Optional[Mapping[str, str]] = None
    ) -> Dict[str, str]:
        headers = dict(BROWSER_HEADERS)
        headers.update(self.session.identity_headers())
        if accept:
            headers["accept"] = accept
            if accept == JSON_ACCEPT:
                headers["content-type"] = JSON_ACCEPT
        if extra:
            headers.update(extra)
        return headers

    async def __aenter__(self):
        """Async context manager entry"""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.aclose()

    async def start(self) -> None:
        if self.client is None:
            self.client = httpx.AsyncClient(**self._get_httpx_client_config())
            self._owns_client = True

    async def aclose(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.aclose()
        self.client = None
        self._owns_client = False

    async def fetch(
        self,
        url: str,
        *,
        stage: str,
        accept: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        extra_headers: Optional[Mapping[str, str]] = None,
    ) -> FetchResult:
        """
        GET ``url`` and return its status and body text.

        Raises:
            UpstreamTimeout: the call did not finish within ``timeout`` seconds
            NetworkError: connection-level failure
        """
        if self.client is None:
            raise RuntimeError("HTTP client not initialized. Use async context manager.")

        effective_timeout = self.config.request_timeout_seconds if timeout is None else timeout
        if effective_timeout <= 0:
            raise UpstreamTimeout(stage)

        headers = self.build_headers(accept=accept, extra=extra_headers)
        self.metrics.total_requests += 1
        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.client.get(url, params=params, headers=headers),
                timeout=effective_timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            self.metrics.failed_requests += 1
            self.metrics.timed_out_requests += 1
            self.logger.warning(
                "Timed out after %.1fs fetching %s (%s)",
                effective_timeout,
                url,
                stage,
                extra={"event_type": "fetch"},
            )
            raise UpstreamTimeout(stage, effective_timeout) from exc
        except httpx.TransportError as exc:
            self.metrics.failed_requests += 1
            self.logger.warning(
                "Transport error fetching %s (%s): %s",
                url,
                stage,
                exc,
                extra={"event_type": "fetch"},
            )
            raise NetworkError(stage, f"network error: {exc}") from exc

        response_time = time.perf_counter() - start_time
        self.metrics.response_times.append(response_time)
        if response.is_success:
            self.metrics.successful_requests += 1
        else:
            self.metrics.failed_requests += 1

        self.logger.debug(
            "Fetched %s -> HTTP %s in %.2fs",
            url,
            response.status_code,
            response_time,
            extra={"event_type": "fetch"},
        )
        return FetchResult(
            status_code=response.status_code,
            text=response.text,
            url=str(response.url),
        )
