"""Mobile friendliness analyzer."""

import re
from typing import List

from ..fetcher import Fetcher
from ..models import Category, CategoryReport, Issue, PageData, Severity
from .base import BaseAnalyzer

MEDIA_QUERY_PATTERN = re.compile(r"@media[^{]+\{")


class MobileAnalyzer(BaseAnalyzer):
    """Analyzer for mobile viewport and friendliness."""

    name = Category.MOBILE
    display_name = "Mobile SEO Bot"
    description = "Checking mobile optimization"
    icon = "📱"

    penalty = 20
    progress_step = 33
    progress_delay = 0.2

    async def analyze(self, url: str, page: PageData, fetcher: Fetcher) -> CategoryReport:
        soup = page.get_soup()
        issues: List[Issue] = []
        positives: List[str] = []

        viewport_meta = self.find_meta(soup, "viewport")
        if viewport_meta is None:
            issues.append(self.create_issue(
                "mobile-1", Severity.HIGH,
                "Missing viewport meta tag",
                "Page is missing viewport meta tag for mobile optimization",
                'Add <meta name="viewport" content="width=device-width, initial-scale=1">',
                url,
            ))
        elif "width=device-width" not in (viewport_meta.get("content") or ""):
            issues.append(self.create_issue(
                "mobile-2", Severity.MEDIUM,
                "Incorrect viewport configuration",
                "Viewport meta tag is not properly configured",
                "Set viewport to width=device-width, initial-scale=1",
                url,
            ))
        else:
            positives.append("Proper viewport meta tag")

        # Inline CSS only; linked stylesheets are not fetched
        media_queries = MEDIA_QUERY_PATTERN.findall(page.text)
        if not media_queries:
            issues.append(self.create_issue(
                "mobile-3", Severity.MEDIUM,
                "No responsive design detected",
                "No CSS media queries found for responsive design",
                "Implement responsive design with CSS media queries",
                url,
            ))
        else:
            positives.append(f"Responsive design detected ({len(media_queries)} media queries)")

        buttons = soup.find_all("button") + soup.find_all(
            "input", attrs={"type": re.compile(r"^(button|submit)$", re.I)}
        )
        links = soup.find_all("a")
        touch_elements = len(buttons) + len(links)
        if touch_elements > 0:
            positives.append("Interactive elements present")

        apple_touch_icon = soup.find("link", rel="apple-touch-icon")
        if apple_touch_icon is None:
            issues.append(self.create_issue(
                "mobile-4", Severity.LOW,
                "Missing mobile icons",
                "No Apple touch icon found",
                "Add apple-touch-icon for better mobile experience",
                url,
            ))
        else:
            positives.append("Mobile icons configured")

        return self.create_report(issues, positives, {
            "Viewport": "Configured" if viewport_meta is not None else "Missing",
            "Media Queries": len(media_queries),
            "Touch Elements": touch_elements,
            "Mobile Icons": "Present" if apple_touch_icon is not None else "Missing",
        })
