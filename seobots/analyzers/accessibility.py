"""Accessibility analyzer."""

from typing import List

from ..fetcher import Fetcher
from ..models import Category, CategoryReport, Issue, PageData, Severity
from .base import BaseAnalyzer

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


class AccessibilityAnalyzer(BaseAnalyzer):
    """Analyzer for alt text, form labels, heading order and skip links."""

    name = Category.ACCESSIBILITY
    display_name = "Accessibility Bot"
    description = "Checking accessibility compliance"
    icon = "♿"

    penalty = 15
    progress_step = 20
    progress_delay = 0.25

    async def analyze(self, url: str, page: PageData, fetcher: Fetcher) -> CategoryReport:
        soup = page.get_soup()
        issues: List[Issue] = []
        positives: List[str] = []

        image_count, images_without_alt = self.count_images_without_alt(soup)
        if images_without_alt > 0:
            issues.append(self.create_issue(
                "a11y-1", Severity.MEDIUM,
                "Images missing alt text",
                f"{images_without_alt} images are missing alt text",
                "Add descriptive alt text to all images",
                url,
            ))
        elif image_count > 0:
            positives.append("All images have alt text")

        # Form controls need <label for=id> or aria-label
        inputs = soup.find_all(["input", "textarea", "select"])
        labelled_ids = {label.get("for") for label in soup.find_all("label") if label.get("for")}
        inputs_without_labels = 0
        for control in inputs:
            control_id = control.get("id")
            has_label = bool(control_id) and control_id in labelled_ids
            if not has_label and not control.get("aria-label"):
                inputs_without_labels += 1

        if inputs_without_labels > 0:
            issues.append(self.create_issue(
                "a11y-2", Severity.MEDIUM,
                "Form inputs missing labels",
                f"{inputs_without_labels} form inputs are missing labels",
                "Add proper labels or aria-label attributes to form inputs",
                url,
            ))
        elif inputs:
            positives.append("Form inputs have proper labels")

        headings = soup.find_all(HEADING_TAGS)
        heading_skips = self._has_heading_skip([int(h.name[1]) for h in headings])
        if heading_skips:
            issues.append(self.create_issue(
                "a11y-3", Severity.LOW,
                "Heading hierarchy issues",
                "Heading levels skip numbers (e.g., H1 to H3)",
                "Use proper heading hierarchy (H1, H2, H3, etc.)",
                url,
            ))
        elif headings:
            positives.append("Proper heading hierarchy")

        skip_links = [a for a in soup.find_all("a", href=True) if a["href"].startswith("#")]
        if not skip_links:
            issues.append(self.create_issue(
                "a11y-4", Severity.LOW,
                "No skip navigation links",
                "Page lacks skip navigation links for keyboard users",
                "Add skip links to main content for better keyboard navigation",
                url,
            ))
        else:
            positives.append("Skip navigation links present")

        return self.create_report(issues, positives, {
            "Images with Alt": f"{image_count - images_without_alt}/{image_count}",
            "Labeled Inputs": f"{len(inputs) - inputs_without_labels}/{len(inputs)}",
            "Heading Structure": "Issues" if heading_skips else "Good",
            "Skip Links": len(skip_links),
        })

    @staticmethod
    def _has_heading_skip(levels: List[int]) -> bool:
        """True when any heading is more than one level deeper than the previous one.

        The walk starts at level 0, so a page whose first heading is an H2 or
        deeper counts as a skip.
        """
        previous = 0
        for level in levels:
            if level > previous + 1:
                return True
            previous = level
        return False
