"""Analysis orchestrator: runs the six bots concurrently and aggregates their reports."""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Tuple

from .aggregator import build_site_analysis, failure_report
from .analyzers import ALL_ANALYZERS, BaseAnalyzer
from .config import settings
from .errors import InvalidURL
from .fetcher import Fetcher
from .models import CATEGORIES, Category, CategoryReport, SiteAnalysis
from .progress import BotHandle, BotTracker, ProgressSink
from .utils import extract_origin, is_absolute_http_url

logger = logging.getLogger(__name__)


class SiteAnalyzer:
    """Runs one analysis at a time over a shared fetcher.

    A failure inside any bot (unreachable host, timeout, parsing fault) is
    turned into a zero-score report for that category only; the other bots
    keep running and the caller always gets a complete six-category result.
    """

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        analyzer_timeout: Optional[float] = None,
        progress_delay_scale: Optional[float] = None,
    ):
        self.fetcher = fetcher or Fetcher()
        # None derives the limit per bot from its fetch budget
        self.analyzer_timeout = analyzer_timeout
        self.progress_delay_scale = progress_delay_scale
        self.base_url = ""
        self.results: Dict[Category, CategoryReport] = {}
        self.failed: List[Category] = []

    def _timeout_for(self, analyzer: BaseAnalyzer) -> float:
        if self.analyzer_timeout is not None:
            return self.analyzer_timeout
        return max(settings.ANALYZER_TIMEOUT, analyzer.time_budget(self.fetcher))

    def _create_analyzers(self) -> Dict[Category, BaseAnalyzer]:
        return {
            category: ALL_ANALYZERS[category](progress_delay_scale=self.progress_delay_scale)
            for category in CATEGORIES
        }

    async def run_analysis(self, url: str, progress_sink: Optional[ProgressSink] = None) -> SiteAnalysis:
        """Analyze ``url`` and return the aggregated report.

        Args:
            url: Absolute http(s) URL
            progress_sink: Optional callback receiving a six-bot snapshot after every change

        Raises:
            InvalidURL: If ``url`` is not a well-formed absolute URL. Nothing is fetched.
        """
        if not is_absolute_http_url(url):
            raise InvalidURL(url)

        self.base_url = extract_origin(url)
        self.results = {}
        self.failed = []
        self.fetcher.reset()

        analyzers = self._create_analyzers()
        tracker = BotTracker([analyzers[c].initial_state() for c in CATEGORIES], progress_sink)
        await tracker.publish()

        started = time.time()
        logger.info(f"Running {len(analyzers)} bots in parallel for {url}")

        outcomes = await asyncio.gather(
            *(
                self._run_single_analyzer(analyzers[category], url, tracker.handle(index))
                for index, category in enumerate(CATEGORIES)
            ),
            return_exceptions=True,
        )

        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                # Only reachable if the per-bot guard itself was bypassed
                logger.error(f"Bot task failed unexpectedly: {outcome}", exc_info=outcome)
                continue
            category, report = outcome
            self.results[category] = report

        logger.info(
            f"Analysis of {url} finished in {time.time() - started:.2f}s, "
            f"{len(CATEGORIES) - len(self.failed)}/{len(CATEGORIES)} bots successful"
        )
        if self.failed:
            logger.warning(f"Failed bots: {', '.join(c.value for c in self.failed)}")

        return build_site_analysis(
            url,
            self.results,
            crawled_pages=len(self.fetcher.fetched_urls),
            base_url=self.base_url,
        )

    async def _run_single_analyzer(
        self,
        analyzer: BaseAnalyzer,
        url: str,
        bot: BotHandle,
    ) -> Tuple[Category, CategoryReport]:
        """Run one bot with a timeout; convert any failure into a degraded report."""
        category = analyzer.name
        timeout = self._timeout_for(analyzer)
        try:
            started = time.time()
            report = await asyncio.wait_for(
                analyzer.run(url, self.fetcher, bot),
                timeout=timeout,
            )
            logger.info(f"Bot {category.value} completed in {time.time() - started:.2f}s (score {report.score})")
        except asyncio.TimeoutError:
            logger.error(f"Bot {category.value} timed out after {timeout:.1f} seconds")
            report = await self._fail(category, bot, f"timed out after {timeout:g} seconds")
        except Exception as e:
            # Log error but don't break other bots
            logger.error(f"Error in {category.value} analysis: {e}", exc_info=e)
            report = await self._fail(category, bot, str(e) or type(e).__name__)
        return category, report

    async def _fail(self, category: Category, bot: BotHandle, message: str) -> CategoryReport:
        self.failed.append(category)
        await bot.fail()
        return failure_report(category, message, self.base_url)


async def analyze_site(url: str, progress_sink: Optional[ProgressSink] = None) -> SiteAnalysis:
    """Convenience wrapper running one analysis with default settings."""
    return await SiteAnalyzer().run_analysis(url, progress_sink)
