"""Base class shared by the six category analyzers."""

import asyncio
import logging
import re
from typing import Dict, List, Optional, Union

from bs4 import BeautifulSoup, Tag

from ..config import settings
from ..fetcher import Fetcher
from ..models import BotState, Category, CategoryReport, Issue, PageData, Severity, status_from_score
from ..progress import BotHandle

logger = logging.getLogger(__name__)


class BaseAnalyzer:
    """A bot that fetches one page, reports progress and scores one category.

    Subclasses set the class attributes and implement ``analyze``; the score
    is ``max(0, 100 - len(issues) * penalty)``.
    """

    name: Category
    display_name: str = ""
    description: str = ""
    icon: str = ""

    penalty: int = 15

    # Synthetic progress pacing: one update per step, each followed by a pause
    progress_step: int = 20
    progress_delay: float = 0.2  # seconds

    def __init__(self, progress_delay_scale: Optional[float] = None):
        if progress_delay_scale is None:
            progress_delay_scale = settings.PROGRESS_DELAY_SCALE
        self.progress_delay_scale = progress_delay_scale

    @property
    def fetch_timeout(self) -> float:
        return settings.PAGE_TIMEOUT

    def pacing_duration(self) -> float:
        steps = len(range(0, 101, self.progress_step))
        return steps * self.progress_delay * self.progress_delay_scale

    def time_budget(self, fetcher: Fetcher) -> float:
        """Longest a healthy run may take: page fetch exhausting every retry, plus pacing and margin."""
        return (
            fetcher.max_duration(self.fetch_timeout)
            + self.pacing_duration()
            + settings.ANALYZER_TIMEOUT_MARGIN
        )

    @classmethod
    def initial_state(cls) -> BotState:
        return BotState(name=cls.display_name, description=cls.description, icon=cls.icon)

    async def run(self, url: str, fetcher: Fetcher, bot: BotHandle) -> CategoryReport:
        """Fetch the page, advance the bot and evaluate the rule set."""
        await bot.start()

        page = await fetcher.fetch(url, timeout=self.fetch_timeout)

        for progress in range(0, 101, self.progress_step):
            await bot.update(progress=progress)
            delay = self.progress_delay * self.progress_delay_scale
            if delay > 0:
                await asyncio.sleep(delay)

        report = await self.analyze(url, page, fetcher)
        await bot.complete(findings=len(report.issues) + len(report.positives))
        return report

    async def analyze(self, url: str, page: PageData, fetcher: Fetcher) -> CategoryReport:
        raise NotImplementedError

    def create_issue(
        self,
        issue_id: str,
        severity: Severity,
        title: str,
        description: str,
        recommendation: str,
        url: str,
    ) -> Issue:
        return Issue(
            id=issue_id,
            severity=severity,
            title=title,
            description=description,
            recommendation=recommendation,
            affected_pages=[url],
        )

    def create_report(
        self,
        issues: List[Issue],
        positives: List[str],
        metrics: Dict[str, Union[int, str]],
    ) -> CategoryReport:
        score = max(0, 100 - len(issues) * self.penalty)
        logger.debug(f"{self.name.value}: {len(issues)} issues, {len(positives)} positives, score {score}")
        return CategoryReport(
            score=score,
            status=status_from_score(score),
            issues=issues,
            positives=positives,
            metrics=metrics,
        )

    # Shared structural queries

    @staticmethod
    def find_meta(soup: BeautifulSoup, name: str) -> Optional[Tag]:
        """Find ``<meta name=...>`` with a case-insensitive name match."""
        return soup.find("meta", attrs={"name": re.compile(rf"^{re.escape(name)}$", re.I)})

    @staticmethod
    def count_images_without_alt(soup: BeautifulSoup) -> tuple[int, int]:
        """Return (total images, images with a missing or empty alt)."""
        images = soup.find_all("img")
        missing = sum(1 for img in images if not img.get("alt"))
        return len(images), missing
