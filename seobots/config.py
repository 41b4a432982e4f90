"""Application configuration settings."""

from typing import List

from pydantic_settings import BaseSettings

from .models import ProxyEndpoint


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Fetch timeouts (seconds per request attempt)
    PAGE_TIMEOUT: float = 10.0
    PERFORMANCE_TIMEOUT: float = 15.0
    ROBOTS_TIMEOUT: float = 5.0

    # Retry policy: direct -> proxy chain, repeated with exponential backoff
    FETCH_MAX_ATTEMPTS: int = 3
    FETCH_BACKOFF_BASE: float = 1.0  # seconds, doubled on every retry
    ROBOTS_MAX_ATTEMPTS: int = 1
    USER_AGENT: str = "SEO-Analyzer-Bot/1.0"

    # Ordered proxy fallback chain
    PROXIES: List[ProxyEndpoint] = [
        ProxyEndpoint(prefix="https://api.allorigins.win/get?url=", json_envelope=True),
        ProxyEndpoint(prefix="https://cors-anywhere.herokuapp.com/"),
        ProxyEndpoint(prefix="https://api.codetabs.com/v1/proxy?quest="),
    ]

    # Analyzer limits: each bot gets at least ANALYZER_TIMEOUT, or its worst-case
    # fetch and pacing time plus ANALYZER_TIMEOUT_MARGIN when that is longer
    ANALYZER_TIMEOUT: float = 120.0
    ANALYZER_TIMEOUT_MARGIN: float = 5.0
    # Multiplier for the bots' progress pacing pauses (0 disables pacing)
    PROGRESS_DELAY_SCALE: float = 1.0

    # Connection Pool Limits
    AIOHTTP_CONNECTION_LIMIT: int = 50
    AIOHTTP_LIMIT_PER_HOST: int = 10

    # Service
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    ANALYSIS_TTL: int = 3600  # seconds an analysis stays in memory
    MAX_SSE_DURATION: int = 900
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
