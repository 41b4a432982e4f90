"""Test doubles: fake aiohttp session and a scripted fetcher."""

import inspect
from typing import Callable, Dict, List, Optional, Union

from seobots.errors import FetchFailed
from seobots.fetcher import Fetcher
from seobots.models import PageData


class FakeResponse:
    def __init__(
        self,
        status: int = 200,
        text: str = "",
        headers: Optional[Dict[str, str]] = None,
        json_data=None,
        url: str = "",
    ):
        self.status = status
        self.headers = headers or {}
        self.url = url
        self._text = text
        self._json = json_data

    async def text(self) -> str:
        return self._text

    async def json(self, content_type=None):
        if self._json is None:
            raise ValueError("Response body is not JSON")
        return self._json

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class _FakeRequest:
    def __init__(self, handler, url: str):
        self._handler = handler
        self._url = url

    async def __aenter__(self):
        result = self._handler(self._url)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        if not result.url:
            result.url = self._url
        return result

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Mimics ``aiohttp.ClientSession.get`` with a per-URL handler.

    The handler returns a FakeResponse, returns/raises an exception, or is a
    coroutine function (to simulate slow servers).
    """

    def __init__(self, handler: Callable):
        self._handler = handler
        self.requests: List[str] = []

    def get(self, url: str, **kwargs):
        self.requests.append(url)
        return _FakeRequest(self._handler, url)


class StubFetcher(Fetcher):
    """Fetcher returning scripted pages; unknown URLs raise FetchFailed."""

    def __init__(self, pages: Dict[str, Union[PageData, Exception]], default: Optional[Exception] = None):
        super().__init__(session=FakeSession(lambda url: FakeResponse(status=500)), proxies=[])
        self.pages = pages
        self.default = default
        self.calls: List[str] = []

    async def fetch(self, url, timeout=None, max_attempts=None, track=True) -> PageData:
        self.calls.append(url)
        result = self.pages.get(url, self.default)
        if result is None:
            raise FetchFailed(f"Fetch failed for {url} after 1 attempts: HTTP 404", url, 1)
        if isinstance(result, Exception):
            raise result
        if track:
            self.fetched_urls.add(url)
        return result.model_copy()


def html_page(url: str, body: str, head: str = "", headers: Optional[Dict[str, str]] = None, elapsed: float = 0.2) -> PageData:
    return PageData(
        url=url,
        final_url=url,
        text=f"<html><head>{head}</head><body>{body}</body></html>",
        headers=headers or {},
        elapsed=elapsed,
    )
