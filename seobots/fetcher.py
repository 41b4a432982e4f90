"""Resilient page fetcher: direct request, proxy fallback chain, retry with backoff."""

import asyncio
import logging
import time
from typing import List, Optional, Set
from urllib.parse import quote

import aiohttp

from .config import settings
from .errors import FetchError, FetchFailed, FetchTimeout, NetworkError
from .http_client import get_session
from .models import PageData, ProxyEndpoint

logger = logging.getLogger(__name__)

# encodeURIComponent leaves these unescaped
URI_COMPONENT_SAFE = "-_.!~*'()"


class UnexpectedResponse(Exception):
    """A response arrived but cannot be used (bad status or malformed body)."""


# Failures that move the fetcher on to the next proxy or attempt
RECOVERABLE_ERRORS = (TimeoutError, aiohttp.ClientError, ValueError, UnexpectedResponse)


def _is_ok(status: int) -> bool:
    return 200 <= status < 300


class Fetcher:
    """Fetch documents with a layered fallback strategy.

    Every attempt tries a direct request first and then each proxy in order;
    the first usable response wins. When the whole chain fails the attempt is
    repeated after ``backoff_base * 2 ** (attempt - 1)`` seconds. Each request
    runs inside its own ``asyncio.timeout`` scope, so an expired timer only
    cancels that request and nothing outlives the call.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        proxies: Optional[List[ProxyEndpoint]] = None,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        self._session = session
        self.proxies = list(settings.PROXIES if proxies is None else proxies)
        self.max_attempts = max_attempts or settings.FETCH_MAX_ATTEMPTS
        self.backoff_base = settings.FETCH_BACKOFF_BASE if backoff_base is None else backoff_base
        self.user_agent = user_agent or settings.USER_AGENT
        self.fetched_urls: Set[str] = set()

    def reset(self) -> None:
        """Forget the URLs fetched so far."""
        self.fetched_urls.clear()

    def max_duration(self, timeout: float, max_attempts: Optional[int] = None) -> float:
        """Upper bound of one fetch() call: every request timing out plus all backoff sleeps."""
        attempts = max_attempts or self.max_attempts
        requests = attempts * (1 + len(self.proxies))
        backoff = sum(self.backoff_base * 2 ** (attempt - 1) for attempt in range(1, attempts))
        return requests * timeout + backoff

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            return await get_session()
        return self._session

    async def fetch(
        self,
        url: str,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        track: bool = True,
    ) -> PageData:
        """Fetch ``url`` or raise a classified FetchError.

        Args:
            url: Absolute URL to retrieve
            timeout: Seconds allowed per request (direct or proxied)
            max_attempts: Override for the number of full direct+proxy rounds
            track: Record the URL in ``fetched_urls`` on success

        Returns:
            PageData with the response body and headers
        """
        timeout = timeout or settings.PAGE_TIMEOUT
        attempts = max_attempts or self.max_attempts
        session = await self._get_session()
        started = time.perf_counter()
        direct_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            try:
                page = await self._fetch_direct(session, url, timeout)
            except RECOVERABLE_ERRORS as e:
                direct_error = e
                logger.debug(f"Direct fetch of {url} failed: {type(e).__name__}: {e}")
                page = await self._fetch_via_proxies(session, url, timeout)

            if page is not None:
                page.elapsed = time.perf_counter() - started
                if track:
                    self.fetched_urls.add(url)
                return page

            if attempt < attempts:
                delay = self.backoff_base * 2 ** (attempt - 1)
                logger.warning(f"Fetch attempt {attempt} for {url} failed, retrying in {delay:.1f}s...")
                await asyncio.sleep(delay)

        raise self._classify(url, attempts, timeout, direct_error) from direct_error

    async def _fetch_direct(self, session: aiohttp.ClientSession, url: str, timeout: float) -> PageData:
        async with asyncio.timeout(timeout):
            async with session.get(
                url,
                headers={"User-Agent": self.user_agent},
                allow_redirects=True,
            ) as response:
                if not _is_ok(response.status):
                    raise UnexpectedResponse(f"HTTP {response.status}")
                text = await response.text()
                return PageData(
                    url=url,
                    final_url=str(response.url),
                    status_code=response.status,
                    text=text,
                    headers=dict(response.headers),
                )

    async def _fetch_via_proxies(
        self,
        session: aiohttp.ClientSession,
        url: str,
        timeout: float,
    ) -> Optional[PageData]:
        """Walk the proxy chain; return the first usable page or None."""
        for index, proxy in enumerate(self.proxies, 1):
            proxy_url = proxy.prefix + quote(url, safe=URI_COMPONENT_SAFE)
            try:
                async with asyncio.timeout(timeout):
                    async with session.get(proxy_url) as response:
                        if proxy.json_envelope:
                            page = await self._read_envelope(response, url, index)
                        else:
                            if not _is_ok(response.status):
                                raise UnexpectedResponse(f"Proxy {index} failed: HTTP {response.status}")
                            page = PageData(
                                url=url,
                                final_url=url,
                                status_code=response.status,
                                text=await response.text(),
                                headers=dict(response.headers),
                            )
            except RECOVERABLE_ERRORS as e:
                logger.warning(f"Proxy {index} failed for {url}: {type(e).__name__}: {e}")
                continue

            page.proxy = proxy.prefix
            logger.info(f"Fetched {url} via proxy {index}")
            return page

        return None

    @staticmethod
    async def _read_envelope(response, url: str, index: int) -> PageData:
        """Unwrap a ``{"contents": ..., "status": {"http_code": ...}}`` body."""
        data = await response.json(content_type=None)
        if not isinstance(data, dict):
            raise UnexpectedResponse(f"Proxy {index} failed: malformed envelope")

        status = data.get("status")
        http_code = status.get("http_code") if isinstance(status, dict) else None
        contents = data.get("contents")

        if not _is_ok(response.status) or not contents or http_code != 200:
            raise UnexpectedResponse(f"Proxy {index} failed: HTTP {http_code or 'unknown'}")

        return PageData(
            url=url,
            final_url=url,
            status_code=200,
            text=contents,
            headers={"content-type": "text/html"},
        )

    @staticmethod
    def _classify(url: str, attempts: int, timeout: float, error: Optional[BaseException]) -> FetchError:
        if isinstance(error, TimeoutError):
            return FetchTimeout(
                f"Request timeout: Unable to fetch {url} within {timeout:g}s after {attempts} attempts",
                url, attempts, error,
            )
        if isinstance(error, aiohttp.ClientConnectionError):
            return NetworkError(
                f"Network error: Unable to connect to {url} after {attempts} attempts with multiple proxies",
                url, attempts, error,
            )
        return FetchFailed(
            f"Fetch failed for {url} after {attempts} attempts: {error or 'unknown error'}",
            url, attempts, error,
        )
