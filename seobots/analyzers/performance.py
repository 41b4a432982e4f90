"""Performance analyzer: load time, image formats, resource count and page weight."""

from typing import List

from ..config import settings
from ..fetcher import Fetcher
from ..models import Category, CategoryReport, Issue, PageData, Severity
from .base import BaseAnalyzer

SLOW_LOAD_MS = 3000
MODERATE_LOAD_MS = 1500
MODERN_IMAGE_FORMATS = (".webp", ".avif")
MAX_SCRIPTS = 5
MAX_STYLESHEETS = 3
MAX_PAGE_BYTES = 1_000_000


class PerformanceAnalyzer(BaseAnalyzer):
    """Analyzer for page speed signals available from the raw response."""

    name = Category.PERFORMANCE
    display_name = "Performance Bot"
    description = "Measuring site speed and performance"
    icon = "⚡"

    penalty = 15
    progress_step = 20
    progress_delay = 0.25

    @property
    def fetch_timeout(self) -> float:
        return settings.PERFORMANCE_TIMEOUT

    async def analyze(self, url: str, page: PageData, fetcher: Fetcher) -> CategoryReport:
        soup = page.get_soup()
        issues: List[Issue] = []
        positives: List[str] = []

        load_time = round(page.elapsed * 1000)
        if load_time > SLOW_LOAD_MS:
            issues.append(self.create_issue(
                "perf-1", Severity.HIGH,
                "Slow page load time",
                f"Page took {load_time}ms to load",
                "Optimize images, minify CSS/JS, use CDN",
                url,
            ))
        elif load_time > MODERATE_LOAD_MS:
            issues.append(self.create_issue(
                "perf-2", Severity.MEDIUM,
                "Moderate page load time",
                f"Page took {load_time}ms to load",
                "Consider optimizing resources for faster loading",
                url,
            ))
        else:
            positives.append(f"Fast load time ({load_time}ms)")

        images = soup.find_all("img")
        unoptimized_images = 0
        for img in images:
            src = img.get("src")
            if src and not any(fmt in src for fmt in MODERN_IMAGE_FORMATS):
                unoptimized_images += 1

        if unoptimized_images > 0:
            issues.append(self.create_issue(
                "perf-3", Severity.MEDIUM,
                "Unoptimized images",
                f"{unoptimized_images} images could be optimized",
                "Use modern image formats (WebP, AVIF) and compress images",
                url,
            ))
        elif images:
            positives.append("Images appear optimized")

        scripts = soup.find_all("script", src=True)
        stylesheets = soup.find_all("link", rel="stylesheet")
        if len(scripts) > MAX_SCRIPTS or len(stylesheets) > MAX_STYLESHEETS:
            issues.append(self.create_issue(
                "perf-4", Severity.LOW,
                "Many external resources",
                "Page loads many external scripts and stylesheets",
                "Combine and minify CSS/JS files",
                url,
            ))
        else:
            positives.append("Reasonable number of external resources")

        page_kb = round(page.size_bytes / 1024)
        if page.size_bytes > MAX_PAGE_BYTES:
            issues.append(self.create_issue(
                "perf-5", Severity.MEDIUM,
                "Large page size",
                f"Page size is approximately {page_kb}KB",
                "Reduce page size by optimizing content and resources",
                url,
            ))
        else:
            positives.append(f"Reasonable page size ({page_kb}KB)")

        return self.create_report(issues, positives, {
            "Load Time": f"{load_time}ms",
            "Page Size": f"{page_kb}KB",
            "Images": len(images),
            "Scripts": len(scripts),
            "Stylesheets": len(stylesheets),
        })
