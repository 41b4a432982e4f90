"""Exception hierarchy for the analyzer core."""

from typing import Optional


class SEOBotsError(Exception):
    """Base class for every error raised by seobots."""


class InvalidURL(SEOBotsError, ValueError):
    """The input is not a well-formed absolute http(s) URL."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid URL format provided: {url!r}")


class FetchError(SEOBotsError):
    """A fetch failed after every direct, proxy and retry attempt."""

    def __init__(self, message: str, url: str, attempts: int, cause: Optional[BaseException] = None):
        self.url = url
        self.attempts = attempts
        self.cause = cause
        super().__init__(message)


class FetchTimeout(FetchError):
    pass


class NetworkError(FetchError):
    pass


class FetchFailed(FetchError):
    pass
