"""HTTPS and security headers analyzer."""

import re
from typing import List

from ..fetcher import Fetcher
from ..models import Category, CategoryReport, Issue, PageData, Severity
from .base import BaseAnalyzer

SECURITY_HEADERS = (
    "strict-transport-security",
    "x-frame-options",
    "x-content-type-options",
    "x-xss-protection",
)
MAX_MISSING_HEADERS = 2

INSECURE_REFERENCE_PATTERN = re.compile(r"""http://[^"'\s>]+""")


class SecurityAnalyzer(BaseAnalyzer):
    """Analyzer for HTTPS usage, security headers, mixed content and form targets."""

    name = Category.SECURITY
    display_name = "Security Scanner"
    description = "Scanning for security issues"
    icon = "🔒"

    penalty = 25
    progress_step = 25
    progress_delay = 0.3

    async def analyze(self, url: str, page: PageData, fetcher: Fetcher) -> CategoryReport:
        soup = page.get_soup()
        issues: List[Issue] = []
        positives: List[str] = []

        is_https = url.startswith("https://")

        # 1. HTTPS
        if is_https:
            positives.append("HTTPS enabled")
        else:
            issues.append(self.create_issue(
                "security-1", Severity.HIGH,
                "No HTTPS encryption",
                "Website is not using HTTPS",
                "Install SSL certificate and enable HTTPS",
                url,
            ))

        # 2. Mixed content
        http_resources = INSECURE_REFERENCE_PATTERN.findall(page.text)
        if http_resources and is_https:
            issues.append(self.create_issue(
                "security-2", Severity.MEDIUM,
                "Mixed content detected",
                f"{len(http_resources)} HTTP resources found on HTTPS page",
                "Update all resources to use HTTPS",
                url,
            ))

        # 3. Security headers (proxied responses carry none of them)
        missing_headers = sum(1 for header in SECURITY_HEADERS if not page.header(header))
        if missing_headers > MAX_MISSING_HEADERS:
            issues.append(self.create_issue(
                "security-3", Severity.MEDIUM,
                "Missing security headers",
                f"{missing_headers} important security headers are missing",
                "Configure security headers (HSTS, X-Frame-Options, etc.)",
                url,
            ))
        else:
            positives.append("Security headers configured")

        # 4. Forms submitting over plain HTTP
        forms = soup.find_all("form")
        insecure_forms = sum(
            1 for form in forms
            if (form.get("action") or "").startswith("http://")
        )
        if insecure_forms > 0:
            issues.append(self.create_issue(
                "security-4", Severity.HIGH,
                "Insecure forms detected",
                f"{insecure_forms} forms submit to HTTP URLs",
                "Update form actions to use HTTPS",
                url,
            ))
        elif forms:
            positives.append("Forms are secure")

        if forms:
            secure_forms = "Yes" if insecure_forms == 0 else "No"
        else:
            secure_forms = "N/A"

        return self.create_report(issues, positives, {
            "HTTPS": "Enabled" if is_https else "Disabled",
            "Mixed Content": len(http_resources),
            "Security Headers": f"{len(SECURITY_HEADERS) - missing_headers}/{len(SECURITY_HEADERS)}",
            "Secure Forms": secure_forms,
        })
