"""Concurrent website SEO analysis by six category bots."""

__version__ = "1.0.0"
