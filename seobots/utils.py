"""Shared utility functions."""

from urllib.parse import urlparse


def extract_origin(url: str) -> str:
    """Return ``scheme://netloc`` of an absolute URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def is_absolute_http_url(url: str) -> bool:
    """True for a well-formed absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url)
        # Accessing .port validates the netloc (raises on garbage ports)
        parsed.port
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)
