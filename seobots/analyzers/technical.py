"""Technical SEO analyzer: title, meta description, H1, alt text, robots.txt, HTTPS."""

import logging
from typing import List

from ..config import settings
from ..errors import FetchError
from ..fetcher import Fetcher
from ..models import Category, CategoryReport, Issue, PageData, Severity
from ..utils import extract_origin
from .base import BaseAnalyzer

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 30


class TechnicalAnalyzer(BaseAnalyzer):
    """Analyzer for on-page technical SEO factors."""

    name = Category.TECHNICAL
    display_name = "Technical SEO Bot"
    description = "Analyzing technical SEO factors"
    icon = "🔧"

    penalty = 15
    progress_step = 20
    progress_delay = 0.2

    def time_budget(self, fetcher: Fetcher) -> float:
        robots = fetcher.max_duration(settings.ROBOTS_TIMEOUT, settings.ROBOTS_MAX_ATTEMPTS)
        return super().time_budget(fetcher) + robots

    async def analyze(self, url: str, page: PageData, fetcher: Fetcher) -> CategoryReport:
        soup = page.get_soup()
        issues: List[Issue] = []
        positives: List[str] = []

        # Title
        title_tag = soup.find("title")
        title = title_tag.get_text().strip() if title_tag else ""
        if len(title) < MIN_TITLE_LENGTH:
            issues.append(self.create_issue(
                "tech-1", Severity.HIGH,
                "Title tag missing or too short",
                f"Page title is missing or shorter than {MIN_TITLE_LENGTH} characters",
                "Add a descriptive title between 30-60 characters",
                url,
            ))
        else:
            positives.append("Title tag present and adequate length")

        # Meta description
        meta_description = self.find_meta(soup, "description")
        has_description = bool(meta_description and meta_description.get("content"))
        if not has_description:
            issues.append(self.create_issue(
                "tech-2", Severity.HIGH,
                "Meta description missing",
                "Page is missing meta description",
                "Add a compelling meta description between 150-160 characters",
                url,
            ))
        else:
            positives.append("Meta description present")

        # H1 structure
        h1_count = len(soup.find_all("h1"))
        if h1_count == 0:
            issues.append(self.create_issue(
                "tech-3", Severity.MEDIUM,
                "Missing H1 tag",
                "Page is missing H1 heading tag",
                "Add a single H1 tag with main page topic",
                url,
            ))
        elif h1_count > 1:
            issues.append(self.create_issue(
                "tech-4", Severity.MEDIUM,
                "Multiple H1 tags",
                "Page has multiple H1 tags",
                "Use only one H1 tag per page",
                url,
            ))
        else:
            positives.append("Proper H1 tag structure")

        # Image alt text
        image_count, images_without_alt = self.count_images_without_alt(soup)
        if images_without_alt > 0:
            issues.append(self.create_issue(
                "tech-5", Severity.MEDIUM,
                "Images missing alt text",
                f"{images_without_alt} images are missing alt text",
                "Add descriptive alt text to all images",
                url,
            ))
        elif image_count > 0:
            positives.append("All images have alt text")

        # robots.txt
        robots_url = f"{extract_origin(url)}/robots.txt"
        try:
            await fetcher.fetch(
                robots_url,
                timeout=settings.ROBOTS_TIMEOUT,
                max_attempts=settings.ROBOTS_MAX_ATTEMPTS,
                track=False,
            )
            positives.append("Robots.txt file present")
        except FetchError as e:
            logger.info(f"robots.txt not reachable at {robots_url}: {e}")
            issues.append(self.create_issue(
                "tech-6", Severity.LOW,
                "Robots.txt missing",
                "No robots.txt file found",
                "Create a robots.txt file to guide search engine crawlers",
                url,
            ))

        # HTTPS
        if url.startswith("https://"):
            positives.append("SSL certificate installed")
        else:
            issues.append(self.create_issue(
                "tech-7", Severity.HIGH,
                "No SSL certificate",
                "Website is not using HTTPS",
                "Install SSL certificate and redirect HTTP to HTTPS",
                url,
            ))

        return self.create_report(issues, positives, {
            "Title Length": f"{len(title)} chars" if title else "Missing",
            "Meta Description": "Present" if has_description else "Missing",
            "H1 Tags": h1_count,
            "Images": image_count,
            "Images with Alt": f"{image_count - images_without_alt}/{image_count}",
        })
