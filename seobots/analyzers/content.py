"""Content quality analyzer."""

from typing import List

from bs4.element import (
    NavigableString,
    RubyParenthesisString,
    RubyTextString,
    Script,
    Stylesheet,
    TemplateString,
)

from ..fetcher import Fetcher
from ..models import Category, CategoryReport, Issue, PageData, Severity
from ..utils import extract_origin
from .base import BaseAnalyzer

MIN_WORDS = 300
# Same strings a browser's textContent joins: script and style included, comments not
TEXT_CONTENT_TYPES = (
    NavigableString,
    Script,
    Stylesheet,
    TemplateString,
    RubyTextString,
    RubyParenthesisString,
)
MIN_HEADINGS = 3
MIN_INTERNAL_LINKS = 3
RELATIVE_PREFIXES = ("/", "./", "../")


class ContentAnalyzer(BaseAnalyzer):
    """Analyzer for word count, heading density, title/description overlap and internal linking."""

    name = Category.CONTENT
    display_name = "Content Analysis Bot"
    description = "Evaluating content quality and optimization"
    icon = "📝"

    penalty = 12
    progress_step = 25
    progress_delay = 0.3

    async def analyze(self, url: str, page: PageData, fetcher: Fetcher) -> CategoryReport:
        soup = page.get_soup()
        issues: List[Issue] = []
        positives: List[str] = []

        # Word count over the whole body text, tags joined without separators
        body_text = soup.body.get_text(types=TEXT_CONTENT_TYPES) if soup.body else ""
        word_count = len(body_text.split())
        if word_count < MIN_WORDS:
            issues.append(self.create_issue(
                "content-1", Severity.MEDIUM,
                "Low word count",
                f"Page has only {word_count} words",
                "Add more quality content (aim for 300+ words)",
                url,
            ))
        else:
            positives.append(f"Good word count ({word_count} words)")

        headings = soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])
        if len(headings) < MIN_HEADINGS:
            issues.append(self.create_issue(
                "content-2", Severity.LOW,
                "Poor heading structure",
                "Page has insufficient heading structure",
                "Use more headings to structure content (H2, H3, etc.)",
                url,
            ))
        else:
            positives.append("Good heading structure")

        # Near-duplicate title and description
        title_tag = soup.find("title")
        title = title_tag.get_text().strip() if title_tag else ""
        meta_description = self.find_meta(soup, "description")
        description = (meta_description.get("content") or "").strip() if meta_description else ""
        if title and description and description.lower()[:20] in title.lower():
            issues.append(self.create_issue(
                "content-3", Severity.LOW,
                "Title and meta description too similar",
                "Title and meta description are very similar",
                "Make title and meta description unique and complementary",
                url,
            ))

        internal_links = self._count_internal_links(soup, extract_origin(url))
        if internal_links < MIN_INTERNAL_LINKS:
            issues.append(self.create_issue(
                "content-4", Severity.MEDIUM,
                "Few internal links",
                "Page has very few internal links",
                "Add more internal links to improve site navigation and SEO",
                url,
            ))
        else:
            positives.append(f"Good internal linking ({internal_links} links)")

        return self.create_report(issues, positives, {
            "Word Count": word_count,
            "Headings": len(headings),
            "Internal Links": internal_links,
            "Readability": "Good" if word_count > MIN_WORDS else "Poor",
        })

    @staticmethod
    def _count_internal_links(soup, origin: str) -> int:
        """Anchors pointing at the same origin or using a relative path."""
        count = 0
        for a in soup.find_all("a", href=True):
            href = a["href"]
            if origin in href or href.startswith(RELATIVE_PREFIXES):
                count += 1
        return count
